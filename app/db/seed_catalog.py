"""
Seed script for the senior-high catalog.

This script:
1. Inserts grade levels 11 and 12
2. Inserts the ACAD and TVL tracks and their strands
3. Optionally creates the Unclassified section for the active school year

  python -m app.db.seed_catalog
"""
import asyncio
import logging
from typing import Dict, List, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.logging import setup_logging
from app.core.models import GradeLevel, Strand, Track
from app.db.session import AsyncSessionLocal

from app.api.v1.sections import service as section_service
from app.api.v1.school_years import service as school_year_service

logger = logging.getLogger(__name__)

GRADE_LEVELS: List[int] = [11, 12]

# track_code -> (track_name, [(strand_code, strand_name), ...])
TRACKS: Dict[str, Tuple[str, List[Tuple[str, str]]]] = {
    "ACAD": (
        "Academic",
        [
            ("STEM", "Science, Technology, Engineering and Mathematics"),
            ("ABM", "Accountancy, Business and Management"),
            ("HUMSS", "Humanities and Social Sciences"),
            ("GAS", "General Academic Strand"),
        ],
    ),
    "TVL": (
        "Technical-Vocational-Livelihood",
        [
            ("ICT", "Information and Communications Technology"),
            ("HE", "Home Economics"),
        ],
    ),
}


async def seed_catalog(db: AsyncSession) -> Dict[str, int]:
    """Insert missing grade levels, tracks and strands. Existing rows are left as they are."""
    created = {"grade_levels": 0, "tracks": 0, "strands": 0}

    for level in GRADE_LEVELS:
        existing = await db.execute(select(GradeLevel).where(GradeLevel.grade_level == level))
        if not existing.scalar_one_or_none():
            db.add(GradeLevel(grade_level=level))
            created["grade_levels"] += 1
    await db.commit()

    for track_code, (track_name, strands) in TRACKS.items():
        result = await db.execute(select(Track).where(Track.track_code == track_code))
        track = result.scalar_one_or_none()
        if not track:
            track = Track(track_code=track_code, track_name=track_name)
            db.add(track)
            await db.flush()
            created["tracks"] += 1
        for strand_code, strand_name in strands:
            existing = await db.execute(
                select(Strand).where(Strand.track_id == track.id, Strand.strand_code == strand_code)
            )
            if not existing.scalar_one_or_none():
                db.add(Strand(track_id=track.id, strand_code=strand_code, strand_name=strand_name))
                created["strands"] += 1
    await db.commit()
    return created


async def main() -> None:
    setup_logging(environment=settings.environment, level_name=settings.log_level)
    async with AsyncSessionLocal() as db:
        try:
            created = await seed_catalog(db)
            logger.info(
                "Catalog seeded: %d grade levels, %d tracks, %d strands created",
                created["grade_levels"], created["tracks"], created["strands"],
            )
            if await school_year_service.get_active_school_year_row(db):
                section = await section_service.ensure_unclassified_section(db)
                logger.info("Unclassified section for the active school year: %s", section.id)
            else:
                logger.info("No active school year; Unclassified section not created")
        except Exception:
            logger.exception("Seeding catalog failed")
            await db.rollback()
            raise


if __name__ == "__main__":
    asyncio.run(main())
