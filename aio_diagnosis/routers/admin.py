import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from sqlalchemy.orm import Session

from aio_diagnosis.database import get_db
from aio_diagnosis.models.admin_response import DiagnosisListResponse, StatsResponse
from aio_diagnosis.services.repository import delete_diagnosis, diagnosis_stats, list_diagnoses

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin")


@router.get("/diagnoses", response_model=DiagnosisListResponse, summary="List diagnoses")
async def admin_list_diagnoses(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=100),
    search: str = Query(default="", max_length=255),
    db: Session = Depends(get_db),
) -> DiagnosisListResponse:
    """Newest first, optionally filtered by a substring of url, industry or region."""
    data, total = list_diagnoses(db, page=page, limit=limit, search=search.strip())
    return DiagnosisListResponse(data=data, total=total)


@router.get("/stats", response_model=StatsResponse, summary="Aggregate diagnosis statistics")
async def admin_stats(db: Session = Depends(get_db)) -> StatsResponse:
    return diagnosis_stats(db)


@router.delete("/diagnoses/{diagnosis_id}", status_code=204, summary="Delete a diagnosis")
async def admin_delete_diagnosis(diagnosis_id: str, db: Session = Depends(get_db)) -> Response:
    if not delete_diagnosis(db, diagnosis_id):
        raise HTTPException(status_code=404, detail="診断結果が見つかりませんでした")
    return Response(status_code=204)
