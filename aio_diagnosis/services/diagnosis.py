"""End-to-end analysis run: crawl → score → probe → fuse."""

import logging
import uuid
from datetime import datetime, timezone

from aio_diagnosis.models.diagnosis import DiagnosisResult
from aio_diagnosis.services.analyzer import analyze_pages
from aio_diagnosis.services.citation import CitationProber
from aio_diagnosis.services.crawler import crawl_domain
from aio_diagnosis.services.fusion import apply_citation_penalty

logger = logging.getLogger(__name__)

CRAWL_FAILED_MESSAGE = "サイトのクロールに失敗しました。URLを確認してください。"


class CrawlFailedError(RuntimeError):
    """No page of the target site could be fetched."""


async def run_diagnosis(
    url: str, industry: str, region: str, prober: CitationProber
) -> DiagnosisResult:
    """Diagnose *url* and return the final, citation-adjusted result.

    Raises:
        CrawlFailedError: if the crawl returned no pages.
    """
    pages = await crawl_domain(url)
    if not pages:
        raise CrawlFailedError(CRAWL_FAILED_MESSAGE)

    baseline = analyze_pages(pages)
    logger.info(
        "Baseline score for %s: %d (%s) over %d page(s)",
        url,
        baseline.total_score,
        baseline.rank,
        len(pages),
    )

    home = pages[0]
    ai_check = await prober.check(url, industry, region, home.title, home.meta_description)
    final = apply_citation_penalty(baseline, ai_check)

    return DiagnosisResult(
        id=str(uuid.uuid4()),
        url=url,
        industry=industry,
        region=region,
        total_score=final.total_score,
        rank=final.rank,
        scores=final.scores,
        score_details=final.score_details,
        ai_check=ai_check,
        page_scores=final.page_scores,
        pages_analyzed=len(pages),
        created_at=datetime.now(timezone.utc),
    )
