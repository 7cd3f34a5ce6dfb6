from pydantic import BaseModel, ConfigDict, Field


class AnalyzeRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    url: str = Field(
        min_length=1,
        max_length=2048,
        description="Site to diagnose. A missing scheme defaults to https://.",
        examples=["example.co.jp"],
    )
    industry: str = Field(min_length=1, max_length=255, examples=["税理士事務所"])
    region: str = Field(min_length=1, max_length=255, examples=["東京都渋谷区"])
