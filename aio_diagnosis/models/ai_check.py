from typing import List

from pydantic import BaseModel, ConfigDict, Field


class CitationQueryResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: str
    response: str  # truncated to 500 characters plus "..." marker
    cited: bool


class AICheckResult(BaseModel):
    """Outcome of probing a generative search engine for citations of a site.

    ``verified`` is False when the probe could not run at all; such a result
    only carries explanatory text and must not influence the score.
    """

    model_config = ConfigDict(frozen=True)

    is_cited: bool
    citation_context: str
    queries: List[CitationQueryResult] = Field(default_factory=list)
    overall_assessment: str
    improvement_suggestions: List[str] = Field(default_factory=list)
    verified: bool = True

    @property
    def cited_count(self) -> int:
        return sum(1 for q in self.queries if q.cited)
