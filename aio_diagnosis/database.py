"""SQLAlchemy engine, session factory and the ``diagnoses`` table.

Uses whatever DATABASE_URL points to; defaults to a local SQLite file.
"""

import logging
from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Integer, String, Text, create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from aio_diagnosis.config import settings

logger = logging.getLogger(__name__)

DATABASE_URL = settings.DATABASE_URL

# Some hosts expose postgres:// but SQLAlchemy requires postgresql://
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

engine = create_engine(
    DATABASE_URL,
    # SQLite needs this flag; ignored by Postgres
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {},
    pool_pre_ping=True,
)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class Diagnosis(Base):
    __tablename__ = "diagnoses"

    id             = Column(String(36), primary_key=True)
    url            = Column(String(2048), nullable=False, index=True)
    industry       = Column(String(255), nullable=False, index=True)
    region         = Column(String(255), nullable=False, index=True)
    total_score    = Column(Integer, nullable=False)
    rank           = Column(String(1), nullable=False, index=True)
    pages_analyzed = Column(Integer, nullable=False)
    # Full DiagnosisResult as JSON text; behaves the same on SQLite and Postgres
    result_json    = Column(Text, nullable=False)
    created_at     = Column(DateTime(timezone=True), default=_utcnow, index=True)


def init_db() -> None:
    """Create all tables. Safe to call on every startup."""
    Base.metadata.create_all(bind=engine)


def get_db():
    """Yield a session and ensure it's closed afterwards."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
