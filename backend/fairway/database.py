"""Engine, session factory and the session dependencies."""

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from fairway.config import get_settings

settings = get_settings()

# MySQL closes idle connections after wait_timeout; recycle well before that.
engine = create_engine(
    settings.database_url,
    echo=settings.debug,
    future=True,
    pool_size=10,
    max_overflow=20,
    pool_pre_ping=True,
    pool_recycle=1800,
)
SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False, future=True)


def get_db() -> Iterator[Session]:
    """Request-scoped session for FastAPI dependencies."""

    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def get_db_session() -> Iterator[Session]:
    """Session for work that outlives the request.

    Push fan-out runs as a background task after the response is sent and the
    feed WebSocket only needs the database to resolve its token, so neither
    can borrow the request session.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
