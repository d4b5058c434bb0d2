"""Schema bootstrap for the PostgreSQL adapters.

Statements are idempotent and ordered so referenced tables exist first.
"""

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

from insightflow.infrastructure.adapters.persistence.analysis_repository import ANALYSES_DDL
from insightflow.infrastructure.adapters.persistence.discussion_repository import (
    DISCUSSIONS_DDL,
)
from insightflow.infrastructure.adapters.persistence.participant_repository import (
    PARTICIPANTS_DDL,
)
from insightflow.infrastructure.adapters.persistence.session_repository import SESSIONS_DDL
from insightflow.infrastructure.adapters.persistence.vote_repository import VOTES_DDL

logger = get_logger()

SCHEMA_STATEMENTS: tuple[str, ...] = (
    SESSIONS_DDL,
    *PARTICIPANTS_DDL,
    *VOTES_DDL,
    *DISCUSSIONS_DDL,
    *ANALYSES_DDL,
)


async def ensure_schema(session_factory: async_sessionmaker[AsyncSession]) -> None:
    async with session_factory() as db:
        for statement in SCHEMA_STATEMENTS:
            await db.execute(text(statement))
        await db.commit()
    logger.info("database_schema_ensured", statements=len(SCHEMA_STATEMENTS))
