from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import ActivateSchoolYearResponse, SchoolYearCreate, SchoolYearResponse, SchoolYearUpdate
from . import service

router = APIRouter(prefix="/api/v1/school-years", tags=["school-years"])


@router.post(
    "",
    response_model=SchoolYearResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_school_year(
    payload: SchoolYearCreate,
    db: AsyncSession = Depends(get_db),
) -> SchoolYearResponse:
    """Create a school year. It starts Inactive."""
    try:
        return await service.create_school_year(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[SchoolYearResponse])
async def list_school_years(
    status_filter: Optional[str] = Query(None, alias="status", description="All, Active or Inactive"),
    q: Optional[str] = Query(None, description="Search by code, date or status"),
    db: AsyncSession = Depends(get_db),
) -> List[SchoolYearResponse]:
    return await service.list_school_years(db, status_filter=status_filter, q=q)


@router.get("/active", response_model=Optional[SchoolYearResponse])
async def get_active_school_year(
    db: AsyncSession = Depends(get_db),
) -> Optional[SchoolYearResponse]:
    """The Active school year, or null when none is set."""
    return await service.get_active_school_year(db)


@router.get("/{sy_id}", response_model=SchoolYearResponse)
async def get_school_year(
    sy_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> SchoolYearResponse:
    sy = await service.get_school_year(db, sy_id)
    if not sy:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="School year not found")
    return sy


@router.put("/{sy_id}", response_model=SchoolYearResponse)
async def update_school_year(
    sy_id: UUID,
    payload: SchoolYearUpdate,
    db: AsyncSession = Depends(get_db),
) -> SchoolYearResponse:
    """Update code and dates."""
    try:
        return await service.update_school_year(db, sy_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/{sy_id}/activate", response_model=ActivateSchoolYearResponse)
async def activate_school_year(
    sy_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> ActivateSchoolYearResponse:
    """Make this the only Active school year. The previously Active one becomes Inactive."""
    try:
        return await service.activate_school_year(db, sy_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
