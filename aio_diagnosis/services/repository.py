"""Storage and retrieval of finished diagnoses."""

import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import List, Optional, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from aio_diagnosis.database import Diagnosis
from aio_diagnosis.models.admin_response import DiagnosisSummary, StatsResponse
from aio_diagnosis.models.diagnosis import DiagnosisResult

logger = logging.getLogger(__name__)

RECENT_WINDOW = timedelta(days=30)


def save_diagnosis(db: Session, result: DiagnosisResult) -> None:
    """Persist *result* keyed by its id.

    Raises:
        sqlalchemy.exc.SQLAlchemyError: if the row cannot be written.
    """
    row = Diagnosis(
        id=result.id,
        url=result.url,
        industry=result.industry,
        region=result.region,
        total_score=result.total_score,
        rank=result.rank,
        pages_analyzed=result.pages_analyzed,
        result_json=result.model_dump_json(),
        created_at=result.created_at,
    )
    try:
        db.add(row)
        db.commit()
    except Exception:
        db.rollback()
        raise
    logger.info("Stored diagnosis %s (%s, rank %s)", result.id, result.url, result.rank)


def get_diagnosis(db: Session, diagnosis_id: str) -> Optional[DiagnosisResult]:
    row = db.get(Diagnosis, diagnosis_id)
    if row is None:
        return None
    return DiagnosisResult.model_validate_json(row.result_json)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def list_diagnoses(
    db: Session, page: int = 1, limit: int = 20, search: str = ""
) -> Tuple[List[DiagnosisSummary], int]:
    """Return one page of summaries (newest first) and the total match count.

    *search* is a case-insensitive substring match over url, industry and
    region.
    """
    query = db.query(Diagnosis)
    if search:
        pattern = f"%{_escape_like(search)}%"
        query = query.filter(
            or_(
                Diagnosis.url.ilike(pattern, escape="\\"),
                Diagnosis.industry.ilike(pattern, escape="\\"),
                Diagnosis.region.ilike(pattern, escape="\\"),
            )
        )

    total = query.count()
    rows = (
        query.order_by(Diagnosis.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    summaries = [
        DiagnosisSummary(
            id=row.id,
            url=row.url,
            industry=row.industry,
            region=row.region,
            total_score=row.total_score,
            rank=row.rank,
            pages_analyzed=row.pages_analyzed,
            created_at=row.created_at,
        )
        for row in rows
    ]
    return summaries, total


def diagnosis_stats(db: Session, now: Optional[datetime] = None) -> StatsResponse:
    """Aggregate counts, average score and rank histogram over all diagnoses."""
    now = now or datetime.now(timezone.utc)
    rows = db.query(Diagnosis.total_score, Diagnosis.rank, Diagnosis.created_at).all()

    total = len(rows)
    average = int(sum(r.total_score for r in rows) / total + 0.5) if total else 0
    distribution = Counter(r.rank for r in rows)

    cutoff = now - RECENT_WINDOW
    recent = 0
    for r in rows:
        created_at = r.created_at
        # SQLite drops tzinfo on the way back
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        if created_at >= cutoff:
            recent += 1

    return StatsResponse(
        total_diagnoses=total,
        average_score=average,
        rank_distribution=dict(distribution),
        recent_count=recent,
    )


def delete_diagnosis(db: Session, diagnosis_id: str) -> bool:
    """Delete a diagnosis; return False when no such id exists."""
    row = db.get(Diagnosis, diagnosis_id)
    if row is None:
        return False
    db.delete(row)
    db.commit()
    logger.info("Deleted diagnosis %s", diagnosis_id)
    return True
