from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import SectionArchiveRequest, SectionCreate, SectionResponse, SectionUpdate
from . import service

router = APIRouter(prefix="/api/v1/sections", tags=["sections"])


@router.post(
    "",
    response_model=SectionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_section(
    payload: SectionCreate,
    db: AsyncSession = Depends(get_db),
) -> SectionResponse:
    try:
        return await service.create_section(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/unclassified", response_model=SectionResponse)
async def ensure_unclassified_section(
    sy_id: Optional[UUID] = Query(None, description="Defaults to the active school year"),
    db: AsyncSession = Depends(get_db),
) -> SectionResponse:
    """Get or create the school year's Unclassified holding section."""
    try:
        return await service.ensure_unclassified_section(db, sy_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("", response_model=List[SectionResponse])
async def list_sections(
    sy_id: Optional[UUID] = Query(None, description="Defaults to the active school year"),
    tab: str = Query("active", description="active, archived or all"),
    include_unclassified: bool = Query(False),
    grade_id: Optional[UUID] = Query(None),
    track_id: Optional[UUID] = Query(None),
    q: Optional[str] = Query(None, description="Search by section name"),
    db: AsyncSession = Depends(get_db),
) -> List[SectionResponse]:
    try:
        return await service.list_sections(
            db,
            sy_id=sy_id,
            tab=tab,
            include_unclassified=include_unclassified,
            grade_id=grade_id,
            track_id=track_id,
            q=q,
        )
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/{section_id}", response_model=SectionResponse)
async def get_section(
    section_id: UUID,
    db: AsyncSession = Depends(get_db),
) -> SectionResponse:
    obj = await service.get_section(db, section_id)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Section not found")
    return obj


@router.put("/{section_id}", response_model=SectionResponse)
async def update_section(
    section_id: UUID,
    payload: SectionUpdate,
    db: AsyncSession = Depends(get_db),
) -> SectionResponse:
    try:
        obj = await service.update_section(db, section_id, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Section not found")
    return obj


@router.post("/{section_id}/archive", response_model=SectionResponse)
async def set_section_archived(
    section_id: UUID,
    payload: SectionArchiveRequest,
    db: AsyncSession = Depends(get_db),
) -> SectionResponse:
    """Archive (is_archived=true) or restore (false) a section."""
    try:
        obj = await service.set_archived(db, section_id, payload.is_archived)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    if not obj:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Section not found")
    return obj
