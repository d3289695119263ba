from __future__ import annotations

import logging
from typing import Iterator, Optional

from fastapi import Request
from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.orm import Session, sessionmaker

from .config import Settings, settings

logger = logging.getLogger(__name__)


def build_database_url(cfg: Settings = settings) -> str | URL:
    """DATABASE_URL when set, otherwise a psycopg2 URL assembled from the DB_* parts."""
    if cfg.database_url:
        dsn = cfg.database_url.strip()
        # Heroku/Render style URLs
        if dsn.startswith("postgres://"):
            dsn = "postgresql+psycopg2://" + dsn[len("postgres://"):]
        return dsn
    if not cfg.db_host:
        raise RuntimeError("DATABASE_URL or DB_HOST must be configured")
    return URL.create(
        "postgresql+psycopg2",
        username=cfg.db_user,
        password=cfg.db_password,
        host=cfg.db_host,
        port=cfg.db_port,
        database=cfg.db_name,
        query={"sslmode": cfg.db_sslmode} if cfg.db_sslmode else {},
    )


def get_engine_from_dsn(dsn: str | URL, pool_size: int = 5) -> Engine:
    """Create the process-wide engine.

    Applies conservative pool settings to avoid pool exhaustion and stale connections.
    """
    low = str(dsn).lower()
    kwargs: dict = {"pool_pre_ping": True}
    if low.startswith("sqlite"):
        # SQLite in multithreaded FastAPI: allow cross-thread connections
        kwargs["connect_args"] = {"check_same_thread": False}
    else:
        kwargs.update({
            "pool_size": pool_size,
            "max_overflow": 10,
            "pool_recycle": 1800,  # seconds
        })
    return create_engine(dsn, **kwargs)


def make_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


def test_engine_connection(engine: Engine) -> tuple[bool, Optional[str]]:
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
        return True, None
    except Exception as e:  # pragma: no cover - basic smoke test only
        return False, str(e)


def get_db(request: Request) -> Iterator[Session]:
    """One session per request, released on every exit path."""
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()
