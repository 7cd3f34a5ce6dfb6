from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field

Rank = Literal["A", "B", "C", "D", "E"]

MAX_AXIS_SCORE = 20


class ScoreDetail(BaseModel):
    """Evaluation of one scoring axis."""

    model_config = ConfigDict(frozen=True)

    score: int = Field(ge=0, le=MAX_AXIS_SCORE)
    max_score: int = MAX_AXIS_SCORE
    label: str
    comment: str
    issues: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)


class ScoreBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    structured_data: int = Field(ge=0, le=MAX_AXIS_SCORE)
    content_quality: int = Field(ge=0, le=MAX_AXIS_SCORE)
    technical_seo: int = Field(ge=0, le=MAX_AXIS_SCORE)
    authority: int = Field(ge=0, le=MAX_AXIS_SCORE)
    ai_readiness: int = Field(ge=0, le=MAX_AXIS_SCORE)

    @property
    def total(self) -> int:
        return (
            self.structured_data
            + self.content_quality
            + self.technical_seo
            + self.authority
            + self.ai_readiness
        )


class ScoreDetails(BaseModel):
    model_config = ConfigDict(frozen=True)

    structured_data: ScoreDetail
    content_quality: ScoreDetail
    technical_seo: ScoreDetail
    authority: ScoreDetail
    ai_readiness: ScoreDetail


class PageScore(BaseModel):
    """Per-page score used by the page-by-page report table."""

    model_config = ConfigDict(frozen=True)

    url: str
    title: str
    score: int = Field(ge=0, le=100)
    issues: List[str] = Field(default_factory=list)


class AnalysisResult(BaseModel):
    """Output of the rule scoring engine, before or after citation fusion."""

    model_config = ConfigDict(frozen=True)

    total_score: int = Field(ge=0, le=100)
    rank: Rank
    scores: ScoreBreakdown
    score_details: ScoreDetails
    page_scores: List[PageScore] = Field(default_factory=list)
