import random
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.exceptions import PersistenceFailure, ServiceError
from app.db.session import get_db

from .repository import AssignmentRepository, SqlAlchemyAssignmentRepository
from .schemas import (
    AssignOneRequest,
    AssignOneResponse,
    AutoAssignResponse,
    RemoveFromSectionRequest,
    RemoveFromSectionResponse,
    ResetAssignmentsResponse,
    RosterStudent,
    SectionCountItem,
)
from . import service

router = APIRouter(prefix="/api/v1/section-assignments", tags=["section-assignments"])


def get_assignment_repository(db: AsyncSession = Depends(get_db)) -> AssignmentRepository:
    return SqlAlchemyAssignmentRepository(db)


def get_rng() -> Optional[random.Random]:
    """None means a fresh unseeded Random per run. Tests override this with a seeded one."""
    return None


@router.post("/auto-assign", response_model=AutoAssignResponse)
async def auto_assign(
    repo: AssignmentRepository = Depends(get_assignment_repository),
    rng: Optional[random.Random] = Depends(get_rng),
) -> AutoAssignResponse:
    """
    Randomly assign Enrolled unclassified students of the active school year to matching,
    non-archived sections (max capacity per section, gender balanced).
    """
    try:
        return await service.auto_assign(repo, rng)
    except PersistenceFailure as e:
        raise HTTPException(status_code=e.status_code, detail={"message": e.message, "assigned": e.assigned})
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/assign", response_model=AssignOneResponse)
async def assign_one(
    payload: AssignOneRequest,
    repo: AssignmentRepository = Depends(get_assignment_repository),
) -> AssignOneResponse:
    try:
        return await service.assign_one(repo, payload.student_id, payload.section_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/remove", response_model=RemoveFromSectionResponse)
async def remove_from_section(
    payload: RemoveFromSectionRequest,
    repo: AssignmentRepository = Depends(get_assignment_repository),
) -> RemoveFromSectionResponse:
    """Move one student back to Unclassified."""
    try:
        return await service.remove_from_section(repo, payload.student_id)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.post("/reset", response_model=ResetAssignmentsResponse)
async def reset_assignments(
    confirm: bool = Query(False, description="Must be true; resets every Enrolled student of the active year"),
    repo: AssignmentRepository = Depends(get_assignment_repository),
) -> ResetAssignmentsResponse:
    if not confirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Reset moves every Enrolled student back to Unclassified; pass confirm=true",
        )
    try:
        return await service.reset_assignments(repo)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/unclassified-students", response_model=List[RosterStudent])
async def list_unclassified_students(
    repo: AssignmentRepository = Depends(get_assignment_repository),
) -> List[RosterStudent]:
    try:
        return await service.list_unclassified_students(repo)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)


@router.get("/counts", response_model=List[SectionCountItem])
async def section_counts(
    repo: AssignmentRepository = Depends(get_assignment_repository),
) -> List[SectionCountItem]:
    try:
        return await service.section_counts(repo)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
