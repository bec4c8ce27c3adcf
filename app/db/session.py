import logging
import sqlite3

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from app.core.config import settings

logger = logging.getLogger(__name__)


class _Median:
    """SQLite aggregate: 50th percentile with linear interpolation (PERCENTILE_CONT(0.5))."""

    def __init__(self):
        self.values = []

    def step(self, value):
        if value is not None:
            self.values.append(value)

    def finalize(self):
        if not self.values:
            return None
        ordered = sorted(self.values)
        mid = len(ordered) // 2
        if len(ordered) % 2:
            return float(ordered[mid])
        return (ordered[mid - 1] + ordered[mid]) / 2.0


@event.listens_for(Engine, "connect")
def register_sqlite_functions(dbapi_connection, connection_record):
    # PostgreSQL 은 percentile_cont 를 쓰고, SQLite 에는 median() 을 등록
    if isinstance(dbapi_connection, sqlite3.Connection):
        dbapi_connection.create_aggregate("median", 1, _Median)


connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    settings.DATABASE_URL,
    pool_pre_ping=True,
    connect_args=connect_args,
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db() -> None:
    """모든 모델 테이블 생성"""
    from app.db.base import Base

    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ensured")
