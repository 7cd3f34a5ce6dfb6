"""Blend the rule-based score with the AI citation outcome.

A site that generative search never surfaces cannot keep a high AIO score,
however well it does on static checks: the baseline is scaled down by a
multiplier chosen from the citation rate.  Only numbers are rescaled; issue,
recommendation and comment texts are left as produced by the analyzer.
"""

from typing import Optional

from aio_diagnosis.models.ai_check import AICheckResult
from aio_diagnosis.models.score import AnalysisResult, ScoreBreakdown, ScoreDetail
from aio_diagnosis.services.analyzer import calculate_rank

MIN_TOTAL_SCORE = 10
MIN_AXIS_SCORE = 2
MIN_PAGE_SCORE = 5

_AXES = ("structured_data", "content_quality", "technical_seo", "authority", "ai_readiness")


def citation_rate(ai_check: AICheckResult) -> float:
    return ai_check.cited_count / (len(ai_check.queries) or 1)


def penalty_multiplier(rate: float) -> float:
    if rate == 0:
        return 0.40
    if rate < 0.5:
        return 0.60
    if rate < 1.0:
        return 0.80
    return 1.00


def _scale(value: int, multiplier: float, floor: int) -> int:
    # Half-up rounding
    return max(floor, int(value * multiplier + 0.5))


def _scale_detail(detail: ScoreDetail, multiplier: float) -> ScoreDetail:
    return detail.model_copy(update={"score": _scale(detail.score, multiplier, MIN_AXIS_SCORE)})


def apply_citation_penalty(
    baseline: AnalysisResult, ai_check: Optional[AICheckResult]
) -> AnalysisResult:
    """Return a new result with *baseline* rescaled by the citation outcome.

    An absent or unverified *ai_check* leaves the baseline unchanged.
    *baseline* itself is never modified.
    """
    if ai_check is None or not ai_check.verified:
        return baseline

    multiplier = penalty_multiplier(citation_rate(ai_check))

    total_score = _scale(baseline.total_score, multiplier, MIN_TOTAL_SCORE)
    scores = ScoreBreakdown(
        **{
            axis: _scale(getattr(baseline.scores, axis), multiplier, MIN_AXIS_SCORE)
            for axis in _AXES
        }
    )
    score_details = baseline.score_details.model_copy(
        update={
            axis: _scale_detail(getattr(baseline.score_details, axis), multiplier)
            for axis in _AXES
        }
    )
    page_scores = [
        page.model_copy(update={"score": _scale(page.score, multiplier, MIN_PAGE_SCORE)})
        for page in baseline.page_scores
    ]

    return AnalysisResult(
        total_score=total_score,
        rank=calculate_rank(total_score),
        scores=scores,
        score_details=score_details,
        page_scores=page_scores,
    )
