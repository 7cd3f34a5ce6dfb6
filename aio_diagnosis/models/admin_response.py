from datetime import datetime
from typing import Dict, List

from pydantic import BaseModel

from aio_diagnosis.models.score import Rank


class DiagnosisSummary(BaseModel):
    id: str
    url: str
    industry: str
    region: str
    total_score: int
    rank: Rank
    pages_analyzed: int
    created_at: datetime


class DiagnosisListResponse(BaseModel):
    data: List[DiagnosisSummary]
    total: int


class StatsResponse(BaseModel):
    total_diagnoses: int
    average_score: int
    rank_distribution: Dict[str, int]
    recent_count: int  # created within the trailing 30 days
