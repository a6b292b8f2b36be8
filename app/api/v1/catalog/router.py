"""Catalog API: grade levels, tracks and strands."""

from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import ServiceError
from app.db.session import get_db

from .schemas import (
    GradeLevelCreate,
    GradeLevelResponse,
    StrandCreate,
    StrandResponse,
    TrackCreate,
    TrackResponse,
)
from . import service

router = APIRouter(prefix="/api/v1/catalog", tags=["catalog"])


@router.post("/grade-levels", response_model=GradeLevelResponse, status_code=status.HTTP_201_CREATED)
async def create_grade_level(
    payload: GradeLevelCreate,
    db: AsyncSession = Depends(get_db),
) -> GradeLevelResponse:
    try:
        return await service.create_grade_level(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/grade-levels", response_model=List[GradeLevelResponse])
async def list_grade_levels(db: AsyncSession = Depends(get_db)) -> List[GradeLevelResponse]:
    return await service.list_grade_levels(db)


@router.post("/tracks", response_model=TrackResponse, status_code=status.HTTP_201_CREATED)
async def create_track(
    payload: TrackCreate,
    db: AsyncSession = Depends(get_db),
) -> TrackResponse:
    try:
        return await service.create_track(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/tracks", response_model=List[TrackResponse])
async def list_tracks(db: AsyncSession = Depends(get_db)) -> List[TrackResponse]:
    return await service.list_tracks(db)


@router.post("/strands", response_model=StrandResponse, status_code=status.HTTP_201_CREATED)
async def create_strand(
    payload: StrandCreate,
    db: AsyncSession = Depends(get_db),
) -> StrandResponse:
    try:
        return await service.create_strand(db, payload)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/strands", response_model=List[StrandResponse])
async def list_strands(
    track_id: Optional[UUID] = Query(None, description="Only strands of this track"),
    db: AsyncSession = Depends(get_db),
) -> List[StrandResponse]:
    return await service.list_strands(db, track_id=track_id)
