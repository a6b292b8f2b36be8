from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.enums import StudentStatus


class StudentCreate(BaseModel):
    """Student for a school year (default: active). Placed in the year's Unclassified section if it exists."""

    student_number: str = Field(..., min_length=1, max_length=50)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    middle_initial: Optional[str] = Field(None, max_length=5)
    extension: Optional[str] = Field(None, max_length=10)
    gender: Optional[str] = Field(None, max_length=20)
    status: StudentStatus = StudentStatus.PENDING
    grade_id: Optional[UUID] = None
    track_id: Optional[UUID] = None
    strand_id: Optional[UUID] = None
    sy_id: Optional[UUID] = None


class StudentUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    middle_initial: Optional[str] = Field(None, max_length=5)
    extension: Optional[str] = Field(None, max_length=10)
    gender: Optional[str] = Field(None, max_length=20)
    grade_id: Optional[UUID] = None
    track_id: Optional[UUID] = None
    strand_id: Optional[UUID] = None
    clear_strand: bool = False


class StudentStatusUpdate(BaseModel):
    status: StudentStatus


class StudentResponse(BaseModel):
    id: UUID
    sy_id: UUID
    student_number: str
    first_name: str
    last_name: str
    middle_initial: Optional[str] = None
    extension: Optional[str] = None
    gender: Optional[str] = None
    status: str
    grade_id: Optional[UUID] = None
    track_id: Optional[UUID] = None
    strand_id: Optional[UUID] = None
    section_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
