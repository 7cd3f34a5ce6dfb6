import logging
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException, Request
from slowapi import Limiter
from slowapi.util import get_remote_address
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from aio_diagnosis.config import settings
from aio_diagnosis.database import get_db
from aio_diagnosis.models.analyze_request import AnalyzeRequest
from aio_diagnosis.models.diagnosis import DiagnosisResult
from aio_diagnosis.services.citation import CitationProber
from aio_diagnosis.services.diagnosis import CrawlFailedError, run_diagnosis
from aio_diagnosis.services.llm_client import build_llm_client
from aio_diagnosis.services.rate_limit import DelayPolicy
from aio_diagnosis.services.repository import save_diagnosis

logger = logging.getLogger(__name__)

limiter = Limiter(key_func=get_remote_address)
router = APIRouter()


@lru_cache()
def get_prober() -> CitationProber:
    """Process-wide prober; the LLM client is constructed once, here."""
    return CitationProber(build_llm_client(settings), DelayPolicy.from_settings())


@router.post(
    "/analyze",
    response_model=DiagnosisResult,
    summary="Diagnose a site's AI-search optimization",
    description=(
        "Crawls up to 20 pages of the site, scores them on five AIO axes, "
        "checks whether generative search cites the site for its industry and "
        "region, and returns the citation-adjusted diagnosis."
    ),
)
@limiter.limit(settings.ANALYZE_RATE_LIMIT)
async def analyze(
    request: Request,
    body: AnalyzeRequest,
    prober: CitationProber = Depends(get_prober),
    db: Session = Depends(get_db),
) -> DiagnosisResult:
    logger.info(
        "Analyze request received",
        extra={"url": body.url, "industry": body.industry, "region": body.region},
    )

    try:
        result = await run_diagnosis(body.url, body.industry, body.region, prober)
    except CrawlFailedError as exc:
        logger.warning("Crawl returned no pages for %s", body.url)
        raise HTTPException(status_code=400, detail=str(exc))

    # The answer is returned even when it cannot be stored
    try:
        save_diagnosis(db, result)
    except SQLAlchemyError:
        logger.exception("Failed to store diagnosis %s", result.id)

    return result
