from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from aio_diagnosis.models.ai_check import AICheckResult
from aio_diagnosis.models.score import PageScore, Rank, ScoreBreakdown, ScoreDetails


class DiagnosisResult(BaseModel):
    """Immutable snapshot of one finished analysis run."""

    model_config = ConfigDict(frozen=True)

    id: str
    url: str
    industry: str
    region: str
    total_score: int = Field(ge=0, le=100)
    rank: Rank
    scores: ScoreBreakdown
    score_details: ScoreDetails
    ai_check: Optional[AICheckResult] = None
    page_scores: List[PageScore]
    pages_analyzed: int
    created_at: datetime
