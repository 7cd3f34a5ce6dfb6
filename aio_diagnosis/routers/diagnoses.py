from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from aio_diagnosis.database import get_db
from aio_diagnosis.models.diagnosis import DiagnosisResult
from aio_diagnosis.services.repository import get_diagnosis

router = APIRouter()


@router.get("/diagnoses/{diagnosis_id}", response_model=DiagnosisResult, summary="Fetch one diagnosis")
async def read_diagnosis(diagnosis_id: str, db: Session = Depends(get_db)) -> DiagnosisResult:
    result = get_diagnosis(db, diagnosis_id)
    if result is None:
        raise HTTPException(status_code=404, detail="診断結果が見つかりませんでした")
    return result
