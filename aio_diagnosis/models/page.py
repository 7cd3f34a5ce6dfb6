from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field


class ImageRef(BaseModel):
    model_config = ConfigDict(frozen=True)

    src: str
    alt: str


class Headings(BaseModel):
    """Heading texts per level, in document order."""

    model_config = ConfigDict(frozen=True)

    h1: List[str] = Field(default_factory=list)
    h2: List[str] = Field(default_factory=list)
    h3: List[str] = Field(default_factory=list)
    h4: List[str] = Field(default_factory=list)
    h5: List[str] = Field(default_factory=list)
    h6: List[str] = Field(default_factory=list)


class PageRecord(BaseModel):
    """Everything the scoring engine needs to know about one crawled page."""

    model_config = ConfigDict(frozen=True)

    url: str
    title: str = ""
    meta_description: str = ""
    meta_keywords: str = ""
    og_tags: Dict[str, str] = Field(default_factory=dict)
    canonical: str = ""
    headings: Headings = Field(default_factory=Headings)
    structured_data: List[Any] = Field(default_factory=list)  # parsed JSON-LD blocks
    text_content: str = ""
    word_count: int = 0  # character count of text_content
    images: List[ImageRef] = Field(default_factory=list)
    internal_links: List[str] = Field(default_factory=list)
    external_links: List[str] = Field(default_factory=list)
    has_ssl: bool = False
    has_faq: bool = False
    has_contact_info: bool = False
    has_address: bool = False
    has_phone: bool = False
    viewport: str = ""
    charset: str = ""
    lang: str = ""
