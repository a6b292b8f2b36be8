from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


class GradeLevelCreate(BaseModel):
    grade_level: int = Field(..., ge=1, le=12, description="e.g. 11 or 12")


class GradeLevelResponse(BaseModel):
    id: UUID
    grade_level: int

    class Config:
        from_attributes = True


class TrackCreate(BaseModel):
    track_code: str = Field(..., min_length=1, max_length=20, description="e.g. ACAD, TVL")
    track_name: Optional[str] = Field(None, max_length=100)


class TrackResponse(BaseModel):
    id: UUID
    track_code: str
    track_name: Optional[str] = None

    class Config:
        from_attributes = True


class StrandCreate(BaseModel):
    track_id: UUID = Field(..., description="Track this strand belongs to")
    strand_code: str = Field(..., min_length=1, max_length=20, description="e.g. STEM, GAS")
    strand_name: Optional[str] = Field(None, max_length=100)


class StrandResponse(BaseModel):
    id: UUID
    track_id: UUID
    strand_code: str
    strand_name: Optional[str] = None

    class Config:
        from_attributes = True
