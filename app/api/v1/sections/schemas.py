from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class SectionCreate(BaseModel):
    section_name: str = Field(..., min_length=1, max_length=50)
    grade_id: Optional[UUID] = None
    track_id: Optional[UUID] = None
    strand_id: Optional[UUID] = Field(None, description="Leave empty for sections without a strand")
    sy_id: Optional[UUID] = Field(None, description="Defaults to the active school year")


class SectionUpdate(BaseModel):
    section_name: Optional[str] = Field(None, min_length=1, max_length=50)
    grade_id: Optional[UUID] = None
    track_id: Optional[UUID] = None
    strand_id: Optional[UUID] = None
    clear_strand: bool = Field(False, description="Set strand to none (strand_id is ignored)")


class SectionArchiveRequest(BaseModel):
    is_archived: bool


class SectionResponse(BaseModel):
    id: UUID
    sy_id: UUID
    section_name: str
    grade_id: Optional[UUID] = None
    track_id: Optional[UUID] = None
    strand_id: Optional[UUID] = None
    is_archived: bool
    capacity: int = Field(..., description="Max Enrolled students per section")
    total: int = Field(0, description="Enrolled students in this section")
    male: int = 0
    female: int = 0
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
