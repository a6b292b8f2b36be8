from typing import Dict, List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.assignment import SectionCount, is_unclassified_name, normalize_gender
from app.core.config import settings
from app.core.enums import Gender, StudentStatus
from app.core.exceptions import PreconditionMissing, ServiceError
from app.core.models import Section, Student

from app.api.v1.catalog import service as catalog_service
from app.api.v1.school_years import service as school_year_service

from .schemas import SectionCreate, SectionResponse, SectionUpdate

DUPLICATE_SECTION_MESSAGE = (
    "A section with the same School Year, Grade, Track, Strand, and Section Name already exists."
)


def _section_to_response(s: Section, count: Optional[SectionCount] = None) -> SectionResponse:
    c = count or SectionCount()
    return SectionResponse(
        id=s.id,
        sy_id=s.sy_id,
        section_name=s.section_name,
        grade_id=s.grade_id,
        track_id=s.track_id,
        strand_id=s.strand_id,
        is_archived=s.is_archived,
        capacity=settings.max_section_capacity,
        total=c.total,
        male=c.male,
        female=c.female,
        created_at=s.created_at,
        updated_at=s.updated_at,
    )


async def resolve_sy_id(db: AsyncSession, sy_id: Optional[UUID] = None) -> UUID:
    """Explicit sy_id, else the active school year. No active year is a precondition failure."""
    if sy_id is not None:
        return sy_id
    sy = await school_year_service.get_active_school_year_row(db)
    if not sy:
        raise PreconditionMissing("No active school year found.")
    return sy.id


async def count_by_section(db: AsyncSession, sy_id: UUID) -> Dict[UUID, SectionCount]:
    """Map section_id -> {total, male, female} over Enrolled students of the school year."""
    r = await db.execute(
        select(Student.section_id, Student.gender, func.count(Student.id).label("cnt"))
        .where(
            Student.sy_id == sy_id,
            Student.status == StudentStatus.ENROLLED.value,
            Student.section_id.is_not(None),
        )
        .group_by(Student.section_id, Student.gender)
    )
    counts: Dict[UUID, SectionCount] = {}
    for row in r.all():
        c = counts.setdefault(row.section_id, SectionCount())
        c.total += row.cnt
        g = normalize_gender(row.gender)
        if g is Gender.MALE:
            c.male += row.cnt
        elif g is Gender.FEMALE:
            c.female += row.cnt
    return counts


async def get_unclassified_section(db: AsyncSession, sy_id: UUID) -> Optional[Section]:
    result = await db.execute(
        select(Section)
        .where(
            Section.sy_id == sy_id,
            func.lower(Section.section_name) == settings.unclassified_section_name.lower(),
        )
        .order_by(Section.created_at)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def ensure_unclassified_section(db: AsyncSession, sy_id: Optional[UUID] = None) -> SectionResponse:
    """Return the school year's Unclassified section, creating it (no grade/track/strand) if missing."""
    sy_id = await resolve_sy_id(db, sy_id)
    if not await school_year_service.get_school_year(db, sy_id):
        raise ServiceError("School year not found", status.HTTP_404_NOT_FOUND)
    existing = await get_unclassified_section(db, sy_id)
    if existing:
        counts = await count_by_section(db, sy_id)
        return _section_to_response(existing, counts.get(existing.id))
    obj = Section(sy_id=sy_id, section_name=settings.unclassified_section_name, is_archived=False)
    db.add(obj)
    await db.commit()
    await db.refresh(obj)
    return _section_to_response(obj)


async def create_section(db: AsyncSession, payload: SectionCreate) -> SectionResponse:
    name = payload.section_name.strip()
    if is_unclassified_name(name, settings.unclassified_section_name):
        raise ServiceError(
            f'"{settings.unclassified_section_name}" is reserved; use the unclassified endpoint',
            status.HTTP_400_BAD_REQUEST,
        )
    sy_id = await resolve_sy_id(db, payload.sy_id)
    if not await school_year_service.get_school_year(db, sy_id):
        raise ServiceError("School year not found", status.HTTP_404_NOT_FOUND)
    await catalog_service.validate_key(db, payload.grade_id, payload.track_id, payload.strand_id)
    obj = Section(
        sy_id=sy_id,
        section_name=name,
        grade_id=payload.grade_id,
        track_id=payload.track_id,
        strand_id=payload.strand_id,
        is_archived=False,
    )
    db.add(obj)
    try:
        await db.commit()
        await db.refresh(obj)
        return _section_to_response(obj)
    except IntegrityError:
        await db.rollback()
        raise ServiceError(DUPLICATE_SECTION_MESSAGE, status.HTTP_409_CONFLICT)


async def list_sections(
    db: AsyncSession,
    sy_id: Optional[UUID] = None,
    tab: str = "active",
    include_unclassified: bool = False,
    grade_id: Optional[UUID] = None,
    track_id: Optional[UUID] = None,
    q: Optional[str] = None,
) -> List[SectionResponse]:
    """
    Sections of a school year (default: active year) with Enrolled counts.
    tab: active | archived | all. Unclassified is hidden unless include_unclassified.
    """
    sy_id = await resolve_sy_id(db, sy_id)
    stmt = select(Section).where(Section.sy_id == sy_id)
    tab = (tab or "active").strip().lower()
    if tab == "active":
        stmt = stmt.where(Section.is_archived.is_(False))
    elif tab == "archived":
        stmt = stmt.where(Section.is_archived.is_(True))
    if grade_id is not None:
        stmt = stmt.where(Section.grade_id == grade_id)
    if track_id is not None:
        stmt = stmt.where(Section.track_id == track_id)
    result = await db.execute(stmt.order_by(Section.section_name))
    rows = result.scalars().all()
    if not include_unclassified:
        rows = [s for s in rows if not is_unclassified_name(s.section_name, settings.unclassified_section_name)]
    needle = (q or "").strip().lower()
    if needle:
        rows = [s for s in rows if needle in s.section_name.lower()]
    counts = await count_by_section(db, sy_id) if rows else {}
    return [_section_to_response(s, counts.get(s.id)) for s in rows]


async def get_section_row(db: AsyncSession, section_id: UUID) -> Optional[Section]:
    result = await db.execute(select(Section).where(Section.id == section_id))
    return result.scalar_one_or_none()


async def get_section(db: AsyncSession, section_id: UUID) -> Optional[SectionResponse]:
    obj = await get_section_row(db, section_id)
    if not obj:
        return None
    counts = await count_by_section(db, obj.sy_id)
    return _section_to_response(obj, counts.get(obj.id))


async def update_section(
    db: AsyncSession,
    section_id: UUID,
    payload: SectionUpdate,
) -> Optional[SectionResponse]:
    obj = await get_section_row(db, section_id)
    if not obj:
        return None
    sentinel = settings.unclassified_section_name
    if is_unclassified_name(obj.section_name, sentinel):
        raise ServiceError(f'The "{sentinel}" section cannot be modified', status.HTTP_400_BAD_REQUEST)
    if payload.section_name is not None:
        name = payload.section_name.strip()
        if is_unclassified_name(name, sentinel):
            raise ServiceError(f'"{sentinel}" is reserved', status.HTTP_400_BAD_REQUEST)
        obj.section_name = name

    grade_id = payload.grade_id if payload.grade_id is not None else obj.grade_id
    track_id = payload.track_id if payload.track_id is not None else obj.track_id
    if payload.clear_strand:
        strand_id = None
    else:
        strand_id = payload.strand_id if payload.strand_id is not None else obj.strand_id
    if (grade_id, track_id, strand_id) != (obj.grade_id, obj.track_id, obj.strand_id):
        # placed students must keep an exact key match with their section
        occupied = await db.execute(select(func.count(Student.id)).where(Student.section_id == obj.id))
        if occupied.scalar_one() > 0:
            await db.rollback()
            raise ServiceError(
                "Cannot change grade/track/strand of a section that has students; remove them first",
                status.HTTP_409_CONFLICT,
            )
        try:
            await catalog_service.validate_key(db, grade_id, track_id, strand_id)
        except ServiceError:
            await db.rollback()
            raise
        obj.grade_id = grade_id
        obj.track_id = track_id
        obj.strand_id = strand_id
    try:
        await db.commit()
        await db.refresh(obj)
    except IntegrityError:
        await db.rollback()
        raise ServiceError(DUPLICATE_SECTION_MESSAGE, status.HTTP_409_CONFLICT)
    counts = await count_by_section(db, obj.sy_id)
    return _section_to_response(obj, counts.get(obj.id))


async def set_archived(db: AsyncSession, section_id: UUID, is_archived: bool) -> Optional[SectionResponse]:
    """Archive or restore a section. Archived sections are never assignment targets; placed students stay."""
    obj = await get_section_row(db, section_id)
    if not obj:
        return None
    if is_unclassified_name(obj.section_name, settings.unclassified_section_name):
        raise ServiceError("The Unclassified section cannot be archived", status.HTTP_400_BAD_REQUEST)
    obj.is_archived = bool(is_archived)
    await db.commit()
    await db.refresh(obj)
    counts = await count_by_section(db, obj.sy_id)
    return _section_to_response(obj, counts.get(obj.id))
