from __future__ import annotations

import logging
from threading import Lock

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from app.core.config import settings

_LOG = logging.getLogger("app.db")

_engine: Engine | None = None
_engine_lock = Lock()

SessionLocal = sessionmaker(autocommit=False, autoflush=False)


class Base(DeclarativeBase):
    pass


def _engine_kwargs(url: str) -> dict:
    if make_url(url).get_backend_name() == "sqlite":
        return {"connect_args": {"check_same_thread": False}}
    return {"pool_pre_ping": True, "pool_timeout": settings.DB_POOL_TIMEOUT_SECONDS}


def get_engine() -> Engine:
    """Process-wide engine, created on first use and reused afterwards."""
    global _engine
    if _engine is None:
        with _engine_lock:
            if _engine is None:
                _engine = create_engine(settings.DATABASE_URL, **_engine_kwargs(settings.DATABASE_URL))
                _LOG.info("database engine created backend=%s", _engine.url.get_backend_name())
    return _engine


def dispose_engine() -> None:
    global _engine
    with _engine_lock:
        if _engine is not None:
            _engine.dispose()
            _engine = None
            _LOG.info("database engine disposed")


def get_db():
    db: Session = SessionLocal(bind=get_engine())
    try:
        yield db
    finally:
        db.close()
