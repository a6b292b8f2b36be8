"""
Create missing tables and the Postgres-only guards the ORM metadata cannot express.

  python -m app.db.schema_check
"""
import asyncio
import logging
from typing import List

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

import app.core.models  # noqa: F401  (registers tables on Base.metadata)
from app.core.config import settings
from app.core.logging import setup_logging
from app.db.session import Base, engine

logger = logging.getLogger(__name__)


# At most one Active school year. Activation demotes before it promotes, so both the
# single-transaction path and the two-step fallback satisfy this index.
POSTGRES_GUARDS: List[str] = [
    """
    CREATE UNIQUE INDEX IF NOT EXISTS school_years_single_active
        ON school_years (status)
        WHERE status = 'Active';
    """,
    """
    CREATE INDEX IF NOT EXISTS students_sy_status_section_idx
        ON students (sy_id, status, section_id);
    """,
]


async def ensure_tables(db_engine: AsyncEngine) -> None:
    """
    Ensure all tables exist (create_all only adds what is missing), then apply
    the Postgres guards when connected to Postgres.
    """
    async with db_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
        if conn.dialect.name == "postgresql":
            for ddl in POSTGRES_GUARDS:
                await conn.execute(text(ddl))
    logger.info("Schema check complete (%d tables)", len(Base.metadata.tables))


async def main() -> None:
    setup_logging(environment=settings.environment, level_name=settings.log_level)
    await ensure_tables(engine)


if __name__ == "__main__":
    asyncio.run(main())
