"""Students per school year. Section placement itself goes through section_assignments."""

from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import delete, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.assignment import is_unclassified_name
from app.core.config import settings
from app.core.enums import StudentStatus
from app.core.exceptions import ServiceError
from app.core.models import Section, Student, StudentSchoolYear

from app.api.v1.catalog import service as catalog_service
from app.api.v1.sections import service as section_service

from .schemas import StudentCreate, StudentResponse, StudentStatusUpdate, StudentUpdate


def full_name(s) -> str:
    """'Last, First Ext M.' as shown on rosters."""
    mi = f" {s.middle_initial.strip()}." if (s.middle_initial or "").strip() else ""
    ext = f" {s.extension.strip()}" if (s.extension or "").strip() else ""
    return f"{s.last_name or ''}, {s.first_name or ''}{ext}{mi}".strip()


async def create_student(db: AsyncSession, payload: StudentCreate) -> StudentResponse:
    sy_id = await section_service.resolve_sy_id(db, payload.sy_id)
    await catalog_service.validate_key(db, payload.grade_id, payload.track_id, payload.strand_id)
    unclassified = await section_service.get_unclassified_section(db, sy_id)
    obj = Student(
        sy_id=sy_id,
        student_number=payload.student_number.strip(),
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        middle_initial=payload.middle_initial,
        extension=payload.extension,
        gender=payload.gender,
        status=payload.status.value,
        grade_id=payload.grade_id,
        track_id=payload.track_id,
        strand_id=payload.strand_id,
        section_id=unclassified.id if unclassified else None,
    )
    db.add(obj)
    try:
        await db.commit()
        await db.refresh(obj)
        return StudentResponse.model_validate(obj)
    except IntegrityError:
        await db.rollback()
        raise ServiceError(
            f"Student number '{payload.student_number}' already exists for this school year",
            status.HTTP_409_CONFLICT,
        )


async def list_students(
    db: AsyncSession,
    sy_id: Optional[UUID] = None,
    status_filter: Optional[str] = None,
    section_id: Optional[UUID] = None,
    q: Optional[str] = None,
) -> List[StudentResponse]:
    """Students of a school year (default: active), sorted by last name."""
    sy_id = await section_service.resolve_sy_id(db, sy_id)
    stmt = select(Student).where(Student.sy_id == sy_id)
    if status_filter:
        stmt = stmt.where(Student.status == status_filter)
    if section_id is not None:
        stmt = stmt.where(Student.section_id == section_id)
    needle = (q or "").strip()
    if needle:
        like = f"%{needle}%"
        stmt = stmt.where(
            or_(
                Student.student_number.ilike(like),
                Student.first_name.ilike(like),
                Student.last_name.ilike(like),
            )
        )
    result = await db.execute(stmt.order_by(Student.last_name, Student.first_name))
    return [StudentResponse.model_validate(s) for s in result.scalars().all()]


async def get_student(db: AsyncSession, student_id: UUID) -> Optional[StudentResponse]:
    obj = await db.get(Student, student_id)
    return StudentResponse.model_validate(obj) if obj else None


async def _placed_section(db: AsyncSession, obj: Student) -> Optional[Section]:
    """The real section the student sits in, or None when unplaced or parked in Unclassified."""
    if obj.section_id is None:
        return None
    sec = await section_service.get_section_row(db, obj.section_id)
    if not sec or is_unclassified_name(sec.section_name, settings.unclassified_section_name):
        return None
    return sec


async def update_student(
    db: AsyncSession,
    student_id: UUID,
    payload: StudentUpdate,
) -> Optional[StudentResponse]:
    """
    Update personal fields and grade/track/strand. A placed student whose key changes no longer
    matches their section, so they go back to Unclassified and lose the year's placement row.
    """
    obj = await db.get(Student, student_id)
    if not obj:
        return None
    old_key = (obj.grade_id, obj.track_id, obj.strand_id)
    for field in ("first_name", "last_name", "middle_initial", "extension", "gender", "grade_id", "track_id"):
        value = getattr(payload, field)
        if value is not None:
            setattr(obj, field, value.strip() if isinstance(value, str) else value)
    if payload.clear_strand:
        obj.strand_id = None
    elif payload.strand_id is not None:
        obj.strand_id = payload.strand_id
    try:
        await catalog_service.validate_key(db, obj.grade_id, obj.track_id, obj.strand_id)
    except ServiceError:
        await db.rollback()
        raise

    if (obj.grade_id, obj.track_id, obj.strand_id) != old_key and await _placed_section(db, obj):
        unclassified = await section_service.get_unclassified_section(db, obj.sy_id)
        obj.section_id = unclassified.id if unclassified else None
        await db.execute(
            delete(StudentSchoolYear).where(
                StudentSchoolYear.sy_id == obj.sy_id,
                StudentSchoolYear.student_id == obj.id,
            )
        )
    await db.commit()
    await db.refresh(obj)
    return StudentResponse.model_validate(obj)


async def update_student_status(
    db: AsyncSession,
    student_id: UUID,
    payload: StudentStatusUpdate,
) -> Optional[StudentResponse]:
    """
    Change enrollment status. Only Enrolled students count toward section capacity, so enrolling
    a student who already sits in a full section is rejected.
    """
    obj = await db.get(Student, student_id)
    if not obj:
        return None
    new_status = payload.status.value
    if new_status == StudentStatus.ENROLLED.value and obj.status != new_status:
        sec = await _placed_section(db, obj)
        if sec:
            counts = await section_service.count_by_section(db, obj.sy_id)
            current = counts.get(sec.id)
            if current is not None and current.total >= settings.max_section_capacity:
                raise ServiceError(
                    f"This section is at maximum capacity ({settings.max_section_capacity}).",
                    status.HTTP_409_CONFLICT,
                )
    obj.status = new_status
    await db.commit()
    await db.refresh(obj)
    return StudentResponse.model_validate(obj)
