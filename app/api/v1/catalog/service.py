"""Grade level / track / strand catalog. Sections and students are keyed by these ids."""

from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ServiceError
from app.core.models import GradeLevel, Strand, Track

from .schemas import (
    GradeLevelCreate,
    GradeLevelResponse,
    StrandCreate,
    StrandResponse,
    TrackCreate,
    TrackResponse,
)


async def create_grade_level(db: AsyncSession, payload: GradeLevelCreate) -> GradeLevelResponse:
    obj = GradeLevel(grade_level=payload.grade_level)
    db.add(obj)
    try:
        await db.commit()
        await db.refresh(obj)
        return GradeLevelResponse.model_validate(obj)
    except IntegrityError:
        await db.rollback()
        raise ServiceError(f"Grade level {payload.grade_level} already exists", status.HTTP_409_CONFLICT)


async def list_grade_levels(db: AsyncSession) -> List[GradeLevelResponse]:
    result = await db.execute(select(GradeLevel).order_by(GradeLevel.grade_level))
    return [GradeLevelResponse.model_validate(g) for g in result.scalars().all()]


async def create_track(db: AsyncSession, payload: TrackCreate) -> TrackResponse:
    obj = Track(track_code=payload.track_code.strip().upper(), track_name=payload.track_name)
    db.add(obj)
    try:
        await db.commit()
        await db.refresh(obj)
        return TrackResponse.model_validate(obj)
    except IntegrityError:
        await db.rollback()
        raise ServiceError(f"Track '{payload.track_code}' already exists", status.HTTP_409_CONFLICT)


async def list_tracks(db: AsyncSession) -> List[TrackResponse]:
    result = await db.execute(select(Track).order_by(Track.track_code))
    return [TrackResponse.model_validate(t) for t in result.scalars().all()]


async def create_strand(db: AsyncSession, payload: StrandCreate) -> StrandResponse:
    track = await db.get(Track, payload.track_id)
    if not track:
        raise ServiceError("Track not found", status.HTTP_400_BAD_REQUEST)
    obj = Strand(
        track_id=payload.track_id,
        strand_code=payload.strand_code.strip().upper(),
        strand_name=payload.strand_name,
    )
    db.add(obj)
    try:
        await db.commit()
        await db.refresh(obj)
        return StrandResponse.model_validate(obj)
    except IntegrityError:
        await db.rollback()
        raise ServiceError(
            f"Strand '{payload.strand_code}' already exists for this track",
            status.HTTP_409_CONFLICT,
        )


async def list_strands(db: AsyncSession, track_id: Optional[UUID] = None) -> List[StrandResponse]:
    stmt = select(Strand)
    if track_id is not None:
        stmt = stmt.where(Strand.track_id == track_id)
    result = await db.execute(stmt.order_by(Strand.strand_code))
    return [StrandResponse.model_validate(s) for s in result.scalars().all()]


async def validate_key(
    db: AsyncSession,
    grade_id: Optional[UUID],
    track_id: Optional[UUID],
    strand_id: Optional[UUID],
) -> None:
    """Referenced catalog rows must exist, and a strand must belong to the given track."""
    if grade_id is not None and not await db.get(GradeLevel, grade_id):
        raise ServiceError("Grade level not found", status.HTTP_400_BAD_REQUEST)
    if track_id is not None and not await db.get(Track, track_id):
        raise ServiceError("Track not found", status.HTTP_400_BAD_REQUEST)
    if strand_id is not None:
        strand = await db.get(Strand, strand_id)
        if not strand:
            raise ServiceError("Strand not found", status.HTTP_400_BAD_REQUEST)
        if track_id is not None and strand.track_id != track_id:
            raise ServiceError("Strand does not belong to the given track", status.HTTP_400_BAD_REQUEST)
