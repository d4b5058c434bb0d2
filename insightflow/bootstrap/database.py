"""PostgreSQL engine shared by the repositories.

``DATABASE_URL`` may use any postgres scheme; the driver is always forced
to asyncpg. ``SQLALCHEMY_ECHO`` turns on statement echo. When the variable
is unset the persistence bootstrap never reaches this module and the
in-memory stores are used instead.
"""

from __future__ import annotations

import os

from sqlalchemy.engine import URL, make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from structlog import get_logger

from insightflow.config.env import _get_bool_env

logger = get_logger()

ASYNC_DRIVER = "postgresql+asyncpg"
_POSTGRES_SCHEMES = ("postgres", "postgresql", "postgresql+asyncpg", "postgresql+psycopg2")

_engine: AsyncEngine | None = None
_session_factory: async_sessionmaker[AsyncSession] | None = None


def database_configured() -> bool:
    return bool(os.environ.get("DATABASE_URL", "").strip())


def get_database_url() -> URL:
    """Parse DATABASE_URL and switch it to the asyncpg driver.

    Raises:
        ValueError: If DATABASE_URL is unset or not a PostgreSQL URL.
    """
    raw = os.environ.get("DATABASE_URL", "").strip()
    if not raw:
        raise ValueError("DATABASE_URL environment variable not set")
    if "://" not in raw:
        raw = f"{ASYNC_DRIVER}://{raw}"
    url = make_url(raw)
    if url.drivername not in _POSTGRES_SCHEMES:
        raise ValueError(f"DATABASE_URL must point at PostgreSQL, got {url.drivername!r}")
    return url.set(drivername=ASYNC_DRIVER)


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    global _engine, _session_factory
    if _session_factory is None:
        url = get_database_url()
        _engine = create_async_engine(
            url,
            echo=_get_bool_env("SQLALCHEMY_ECHO", False),
            pool_pre_ping=True,
        )
        _session_factory = async_sessionmaker(_engine, expire_on_commit=False)
        logger.info(
            "database_engine_created",
            url=url.render_as_string(hide_password=True),
        )
    return _session_factory


def reset_database_bootstrap() -> None:
    """Forget the engine without disposing it (tests only)."""
    global _engine, _session_factory
    _engine = None
    _session_factory = None


async def close_database_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        await _engine.dispose()
        logger.info("database_engine_disposed")
    _engine = None
    _session_factory = None
