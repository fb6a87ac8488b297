"""Storage for contracts, their adjustment history and billing overrides.

Local runs keep everything in ``contract_billing.db`` next to the package.
Deployments point ``DATABASE_URL`` at PostgreSQL; with ``REQUIRE_POSTGRES=1``
a missing or SQLite URL fails at import time so adjustments are never
recorded in a throwaway file.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

LOGGER = logging.getLogger(__name__)

DEFAULT_DB_FILENAME = "contract_billing.db"
_DEFAULT_DB_PATH = Path(__file__).resolve().parent.parent / DEFAULT_DB_FILENAME

DATABASE_URL_ENV = "DATABASE_URL"
REQUIRE_POSTGRES_ENV = "REQUIRE_POSTGRES"
DATABASE_ECHO_ENV = "DATABASE_ECHO"

# Engine keyword -> (environment variable, default). Only used for server databases.
POOL_SETTINGS: Dict[str, tuple[str, int]] = {
    "pool_size": ("DATABASE_POOL_SIZE", 5),
    "max_overflow": ("DATABASE_MAX_OVERFLOW", 10),
    "pool_timeout": ("DATABASE_POOL_TIMEOUT", 30),
    "pool_recycle": ("DATABASE_POOL_RECYCLE", 1800),
}
CONNECT_TIMEOUT_ENV = "DATABASE_CONNECT_TIMEOUT"
DEFAULT_CONNECT_TIMEOUT = 10


def _read_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    return value


def _read_bool_env(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _is_sqlite(url: URL) -> bool:
    return url.drivername.startswith("sqlite")


def _sqlite_file(url: URL) -> Optional[Path]:
    if not _is_sqlite(url) or url.database in (None, "", ":memory:"):
        return None
    return Path(url.database)


def _resolve_database_url(raw_url: Optional[str]) -> str:
    """Database URL for the billing tables, creating the SQLite folder if needed."""

    require_postgres = _read_bool_env(REQUIRE_POSTGRES_ENV, False)
    if raw_url:
        url = make_url(raw_url)
    elif require_postgres:
        raise RuntimeError(
            f"{DATABASE_URL_ENV} must point at PostgreSQL when {REQUIRE_POSTGRES_ENV}=1"
        )
    else:
        url = make_url(f"sqlite:///{_DEFAULT_DB_PATH.as_posix()}")

    if require_postgres and _is_sqlite(url):
        raise RuntimeError(
            f"SQLite cannot hold contract data when {REQUIRE_POSTGRES_ENV}=1; "
            f"configure {DATABASE_URL_ENV}"
        )
    sqlite_file = _sqlite_file(url)
    if sqlite_file is not None:
        sqlite_file.parent.mkdir(parents=True, exist_ok=True)
    return url.render_as_string(hide_password=False)


def _engine_options(database_url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"echo": _read_bool_env(DATABASE_ECHO_ENV, False)}
    if _is_sqlite(make_url(database_url)):
        # FastAPI runs sync routes in a thread pool.
        options["connect_args"] = {"check_same_thread": False}
        return options
    options["pool_pre_ping"] = True
    for option, (env_name, default) in POOL_SETTINGS.items():
        options[option] = _read_int_env(env_name, default)
    options["connect_args"] = {
        "connect_timeout": _read_int_env(CONNECT_TIMEOUT_ENV, DEFAULT_CONNECT_TIMEOUT)
    }
    return options


SQLALCHEMY_DATABASE_URL = _resolve_database_url(os.getenv(DATABASE_URL_ENV))

engine = create_engine(SQLALCHEMY_DATABASE_URL, **_engine_options(SQLALCHEMY_DATABASE_URL))
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
LOGGER.debug("Contract billing database backend: %s", engine.url.get_backend_name())

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session; routers commit their own writes."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Session for the renewal report and other jobs run outside the API.

    Commits when the block succeeds and rolls back otherwise.
    """
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
