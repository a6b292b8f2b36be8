import logging
from datetime import date
from typing import List, Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import audit_service
from app.core.config import settings
from app.core.enums import SchoolYearStatus
from app.core.exceptions import PersistenceFailure, ServiceError
from app.core.models import SchoolYear

from .schemas import ActivateSchoolYearResponse, SchoolYearCreate, SchoolYearResponse, SchoolYearUpdate

logger = logging.getLogger(__name__)

ACTIVE = SchoolYearStatus.ACTIVE.value
INACTIVE = SchoolYearStatus.INACTIVE.value


def _to_response(sy: SchoolYear) -> SchoolYearResponse:
    return SchoolYearResponse(
        id=sy.id,
        sy_code=sy.sy_code,
        status=sy.status,
        start_date=sy.start_date,
        end_date=sy.end_date,
        created_at=sy.created_at,
        updated_at=sy.updated_at,
    )


def _validate_dates(start_date: date, end_date: date) -> None:
    if end_date < start_date:
        raise ServiceError("end_date must be on or after start_date", status.HTTP_400_BAD_REQUEST)


async def _get_row(db: AsyncSession, sy_id: UUID) -> Optional[SchoolYear]:
    result = await db.execute(select(SchoolYear).where(SchoolYear.id == sy_id))
    return result.scalar_one_or_none()


async def create_school_year(db: AsyncSession, payload: SchoolYearCreate) -> SchoolYearResponse:
    """Create a school year. New years are always Inactive."""
    _validate_dates(payload.start_date, payload.end_date)
    code = payload.sy_code.strip()
    existing = await db.execute(select(SchoolYear).where(SchoolYear.sy_code == code))
    if existing.scalar_one_or_none():
        raise ServiceError(f"School year '{code}' already exists", status.HTTP_409_CONFLICT)
    sy = SchoolYear(
        sy_code=code,
        start_date=payload.start_date,
        end_date=payload.end_date,
        status=INACTIVE,
    )
    db.add(sy)
    try:
        await db.commit()
        await db.refresh(sy)
        return _to_response(sy)
    except IntegrityError:
        await db.rollback()
        raise ServiceError(f"School year '{code}' already exists", status.HTTP_409_CONFLICT)


async def list_school_years(
    db: AsyncSession,
    status_filter: Optional[str] = None,
    q: Optional[str] = None,
) -> List[SchoolYearResponse]:
    """List school years, newest code first. q searches code, dates and status."""
    stmt = select(SchoolYear)
    if status_filter and status_filter != "All":
        stmt = stmt.where(SchoolYear.status == status_filter)
    stmt = stmt.order_by(SchoolYear.sy_code.desc())
    result = await db.execute(stmt)
    rows = [_to_response(sy) for sy in result.scalars().all()]
    needle = (q or "").strip().lower()
    if needle:
        rows = [
            r for r in rows
            if needle in f"{r.sy_code} {r.start_date} {r.end_date} {r.status}".lower()
        ]
    return rows


async def get_school_year(db: AsyncSession, sy_id: UUID) -> Optional[SchoolYearResponse]:
    sy = await _get_row(db, sy_id)
    return _to_response(sy) if sy else None


async def get_active_school_year_row(db: AsyncSession) -> Optional[SchoolYear]:
    """
    The Active school year, or None. If a degraded activation ever left two Active rows,
    the one with the latest start_date wins.
    """
    result = await db.execute(
        select(SchoolYear)
        .where(SchoolYear.status == ACTIVE)
        .order_by(SchoolYear.start_date.desc())
        .limit(1)
    )
    return result.scalar_one_or_none()


async def get_active_school_year(db: AsyncSession) -> Optional[SchoolYearResponse]:
    sy = await get_active_school_year_row(db)
    return _to_response(sy) if sy else None


async def update_school_year(
    db: AsyncSession,
    sy_id: UUID,
    payload: SchoolYearUpdate,
) -> SchoolYearResponse:
    """Update code and dates. Status is left alone."""
    sy = await _get_row(db, sy_id)
    if not sy:
        raise ServiceError("School year not found", status.HTTP_404_NOT_FOUND)
    if payload.sy_code is not None:
        code = payload.sy_code.strip()
        other = await db.execute(
            select(SchoolYear).where(SchoolYear.sy_code == code, SchoolYear.id != sy_id)
        )
        if other.scalar_one_or_none():
            raise ServiceError(f"School year '{code}' already exists", status.HTTP_409_CONFLICT)
        sy.sy_code = code
    if payload.start_date is not None:
        sy.start_date = payload.start_date
    if payload.end_date is not None:
        sy.end_date = payload.end_date
    _validate_dates(sy.start_date, sy.end_date)
    try:
        await db.commit()
        await db.refresh(sy)
        return _to_response(sy)
    except IntegrityError:
        await db.rollback()
        raise ServiceError("School year code conflict", status.HTTP_409_CONFLICT)


async def _activate_atomic(db: AsyncSession, target_id: UUID) -> None:
    """Demote and promote inside one transaction: readers never see zero or two Active years."""
    await db.execute(
        update(SchoolYear)
        .where(SchoolYear.status == ACTIVE, SchoolYear.id != target_id)
        .values(status=INACTIVE)
    )
    await db.execute(update(SchoolYear).where(SchoolYear.id == target_id).values(status=ACTIVE))
    await audit_service.log_audit(
        db,
        audit_service.ENTITY_SCHOOL_YEAR,
        target_id,
        audit_service.ACTION_SCHOOL_YEAR_ACTIVATED,
        sy_id=target_id,
        from_status=INACTIVE,
        to_status=ACTIVE,
        remarks="atomic",
    )
    await db.commit()


async def _activate_sequential(db: AsyncSession, target_id: UUID) -> None:
    """
    Degraded two-step activation: commit the demotion, then commit the promotion.
    Between the two commits no school year is Active. Not linearizable; concurrent
    activations can interleave.
    """
    try:
        await db.execute(update(SchoolYear).where(SchoolYear.status == ACTIVE).values(status=INACTIVE))
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Demoting the active school year failed")
        raise PersistenceFailure(f"Could not deactivate the current school year: {e}")

    logger.warning("School year %s: sequential activation in progress, no Active school year until promoted", target_id)
    try:
        await db.execute(update(SchoolYear).where(SchoolYear.id == target_id).values(status=ACTIVE))
        await audit_service.log_audit(
            db,
            audit_service.ENTITY_SCHOOL_YEAR,
            target_id,
            audit_service.ACTION_SCHOOL_YEAR_ACTIVATED,
            sy_id=target_id,
            from_status=INACTIVE,
            to_status=ACTIVE,
            remarks="sequential",
        )
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Promoting school year %s failed after demotion; no school year is Active", target_id)
        raise PersistenceFailure(f"School year was not activated and no school year is Active: {e}")


async def activate_school_year(
    db: AsyncSession,
    sy_id: UUID,
    atomic: Optional[bool] = None,
) -> ActivateSchoolYearResponse:
    """
    Make sy_id the only Active school year. Tries the single-transaction path first and
    falls back to two sequential writes if the store rejects it (or when atomic activation
    is disabled in settings).
    """
    sy = await _get_row(db, sy_id)
    if not sy:
        raise ServiceError("School year not found", status.HTTP_404_NOT_FOUND)

    previous = await get_active_school_year_row(db)
    previous_id = previous.id if previous and previous.id != sy_id else None
    if sy.status == ACTIVE and previous_id is None:
        return ActivateSchoolYearResponse(school_year=_to_response(sy), previous_active_id=None, atomic=True)

    use_atomic = settings.school_year_atomic_activation if atomic is None else atomic
    used_atomic = False
    if use_atomic:
        try:
            await _activate_atomic(db, sy_id)
            used_atomic = True
        except SQLAlchemyError:
            await db.rollback()
            logger.warning("Atomic activation of school year %s failed; falling back to sequential updates", sy_id, exc_info=True)
    if not used_atomic:
        await _activate_sequential(db, sy_id)

    await db.refresh(sy)
    logger.info("School year %s (%s) activated; previous active: %s", sy.sy_code, sy_id, previous_id)
    return ActivateSchoolYearResponse(
        school_year=_to_response(sy),
        previous_active_id=previous_id,
        atomic=used_atomic,
    )
