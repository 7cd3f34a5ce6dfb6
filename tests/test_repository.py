"""Tests for the diagnosis repository against in-memory SQLite."""

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from aio_diagnosis.database import Base
from aio_diagnosis.models.diagnosis import DiagnosisResult
from aio_diagnosis.models.score import ScoreBreakdown, ScoreDetail, ScoreDetails
from aio_diagnosis.services.analyzer import calculate_rank
from aio_diagnosis.services.citation import unavailable_result
from aio_diagnosis.services.repository import (
    delete_diagnosis,
    diagnosis_stats,
    get_diagnosis,
    list_diagnoses,
    save_diagnosis,
)

_NOW = datetime(2026, 6, 1, 12, 0, tzinfo=timezone.utc)
_AXES = ("structured_data", "content_quality", "technical_seo", "authority", "ai_readiness")


@pytest.fixture()
def db():
    engine = create_engine(
        "sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


def _result(diagnosis_id, total=50, url="https://example.com/", industry="税理士",
            region="渋谷区", created_at=_NOW) -> DiagnosisResult:
    per_axis = total // 5
    return DiagnosisResult(
        id=diagnosis_id,
        url=url,
        industry=industry,
        region=region,
        total_score=total,
        rank=calculate_rank(total),
        scores=ScoreBreakdown(**{axis: per_axis for axis in _AXES}),
        score_details=ScoreDetails(
            **{axis: ScoreDetail(score=per_axis, label=axis, comment="c") for axis in _AXES}
        ),
        ai_check=unavailable_result(),
        page_scores=[],
        pages_analyzed=3,
        created_at=created_at,
    )


class TestSaveAndGet:
    def test_round_trip_preserves_result(self, db):
        original = _result("d-1")
        save_diagnosis(db, original)
        loaded = get_diagnosis(db, "d-1")
        assert loaded == original
        assert loaded.ai_check.verified is False

    def test_unknown_id(self, db):
        assert get_diagnosis(db, "missing") is None

    def test_duplicate_id_raises_and_rolls_back(self, db):
        save_diagnosis(db, _result("d-1"))
        with pytest.raises(SQLAlchemyError):
            save_diagnosis(db, _result("d-1"))
        # Session is still usable after the rollback
        assert get_diagnosis(db, "d-1") is not None


class TestListDiagnoses:
    def test_newest_first_with_pagination(self, db):
        for n in range(5):
            save_diagnosis(db, _result(f"d-{n}", created_at=_NOW + timedelta(minutes=n)))
        first, total = list_diagnoses(db, page=1, limit=2)
        second, _ = list_diagnoses(db, page=2, limit=2)
        assert total == 5
        assert [s.id for s in first] == ["d-4", "d-3"]
        assert [s.id for s in second] == ["d-2", "d-1"]

    def test_search_matches_url_industry_or_region(self, db):
        save_diagnosis(db, _result("a", url="https://tax.example.com/"))
        save_diagnosis(db, _result("b", industry="歯科医院"))
        save_diagnosis(db, _result("c", region="大阪市"))
        assert [s.id for s in list_diagnoses(db, search="TAX")[0]] == ["a"]
        assert [s.id for s in list_diagnoses(db, search="歯科")[0]] == ["b"]
        assert [s.id for s in list_diagnoses(db, search="大阪")[0]] == ["c"]

    def test_search_treats_wildcards_literally(self, db):
        save_diagnosis(db, _result("a"))
        data, total = list_diagnoses(db, search="%")
        assert data == []
        assert total == 0


class TestStats:
    def test_empty(self, db):
        stats = diagnosis_stats(db, now=_NOW)
        assert stats.total_diagnoses == 0
        assert stats.average_score == 0
        assert stats.rank_distribution == {}
        assert stats.recent_count == 0

    def test_aggregates(self, db):
        save_diagnosis(db, _result("a", total=95))
        save_diagnosis(db, _result("b", total=40))
        save_diagnosis(db, _result("c", total=30, created_at=_NOW - timedelta(days=45)))
        stats = diagnosis_stats(db, now=_NOW)
        assert stats.total_diagnoses == 3
        assert stats.average_score == 55
        assert stats.rank_distribution == {"A": 1, "D": 1, "E": 1}
        assert stats.recent_count == 2


class TestDelete:
    def test_delete_existing(self, db):
        save_diagnosis(db, _result("a"))
        assert delete_diagnosis(db, "a") is True
        assert get_diagnosis(db, "a") is None

    def test_delete_missing(self, db):
        assert delete_diagnosis(db, "nope") is False
