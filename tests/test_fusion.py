"""Tests for fusion.apply_citation_penalty."""

import pytest

from aio_diagnosis.models.ai_check import AICheckResult, CitationQueryResult
from aio_diagnosis.models.score import (
    AnalysisResult,
    PageScore,
    ScoreBreakdown,
    ScoreDetail,
    ScoreDetails,
)
from aio_diagnosis.services.analyzer import calculate_rank
from aio_diagnosis.services.citation import unavailable_result
from aio_diagnosis.services.fusion import (
    apply_citation_penalty,
    citation_rate,
    penalty_multiplier,
)

_AXES = ("structured_data", "content_quality", "technical_seo", "authority", "ai_readiness")


def _baseline(axis_scores, page_scores=(80, 10)) -> AnalysisResult:
    scores = dict(zip(_AXES, axis_scores))
    total = sum(axis_scores)
    details = {
        axis: ScoreDetail(score=value, label=axis, comment="comment", issues=["issue"])
        for axis, value in scores.items()
    }
    return AnalysisResult(
        total_score=total,
        rank=calculate_rank(total),
        scores=ScoreBreakdown(**scores),
        score_details=ScoreDetails(**details),
        page_scores=[
            PageScore(url=f"https://example.com/{n}/", title="t", score=score)
            for n, score in enumerate(page_scores)
        ],
    )


def _baseline_with_total(total: int) -> AnalysisResult:
    base, extra = divmod(total, 5)
    return _baseline([base + (1 if n < extra else 0) for n in range(5)])


def _ai_check(cited: int, total: int = 3) -> AICheckResult:
    return AICheckResult(
        is_cited=cited > 0,
        citation_context="ctx",
        queries=[
            CitationQueryResult(query=f"q{n}", response="r", cited=n < cited) for n in range(total)
        ],
        overall_assessment="assessment",
    )


class TestMultiplier:
    @pytest.mark.parametrize(
        "rate, expected",
        [(0.0, 0.4), (0.2, 0.6), (0.49, 0.6), (0.5, 0.8), (0.99, 0.8), (1.0, 1.0)],
    )
    def test_bands(self, rate, expected):
        assert penalty_multiplier(rate) == expected

    def test_citation_rate(self):
        assert citation_rate(_ai_check(2)) == pytest.approx(2 / 3)

    def test_rate_with_no_queries(self):
        assert citation_rate(_ai_check(0, total=0)) == 0.0


class TestApplyCitationPenalty:
    def test_never_cited_site_drops_to_e(self):
        result = apply_citation_penalty(_baseline([16, 15, 15, 15, 15]), _ai_check(0))
        assert result.total_score == 30
        assert result.rank == "E"
        assert result.scores.structured_data == 6
        assert result.scores.content_quality == 6
        assert [p.score for p in result.page_scores] == [32, 5]

    def test_always_cited_site_is_unchanged(self):
        baseline = _baseline([16, 15, 15, 15, 15])
        result = apply_citation_penalty(baseline, _ai_check(3))
        assert result.total_score == 76
        assert result.rank == "B"
        assert result.scores == baseline.scores

    @pytest.mark.parametrize("cited, total, rank", [(1, 46, "D"), (2, 61, "C")])
    def test_partial_citation(self, cited, total, rank):
        result = apply_citation_penalty(_baseline([16, 15, 15, 15, 15]), _ai_check(cited))
        assert result.total_score == total
        assert result.rank == rank

    def test_details_follow_axis_scores(self):
        result = apply_citation_penalty(_baseline([16, 15, 15, 15, 15]), _ai_check(0))
        for axis in _AXES:
            assert getattr(result.score_details, axis).score == getattr(result.scores, axis)
        assert result.score_details.authority.issues == ["issue"]
        assert result.score_details.authority.comment == "comment"

    def test_floors(self):
        result = apply_citation_penalty(_baseline([0, 3, 4, 2, 3], page_scores=(0, 4)), _ai_check(0))
        assert result.total_score == 10
        assert result.scores.structured_data == 2
        assert all(getattr(result.scores, axis) >= 2 for axis in _AXES)
        assert [p.score for p in result.page_scores] == [5, 5]

    def test_missing_check_is_identity(self):
        baseline = _baseline([16, 15, 15, 15, 15])
        assert apply_citation_penalty(baseline, None) == baseline

    def test_unverified_check_is_identity(self):
        baseline = _baseline([16, 15, 15, 15, 15])
        assert apply_citation_penalty(baseline, unavailable_result()) == baseline

    def test_baseline_is_not_modified(self):
        baseline = _baseline([16, 15, 15, 15, 15])
        snapshot = baseline.model_dump()
        apply_citation_penalty(baseline, _ai_check(0))
        assert baseline.model_dump() == snapshot

    def test_monotonic_and_never_inflating(self):
        for total in range(10, 101, 3):
            baseline = _baseline_with_total(total)
            adjusted = [
                apply_citation_penalty(baseline, _ai_check(cited)).total_score
                for cited in range(4)
            ]
            assert adjusted == sorted(adjusted)
            assert all(10 <= score <= total for score in adjusted)
