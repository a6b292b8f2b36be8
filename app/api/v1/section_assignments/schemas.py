from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.assignment import AssignableStudent


class RosterStudent(AssignableStudent):
    """Student row loaded for assignment, with the fields shown in run reports."""

    sy_id: UUID
    student_number: str = ""
    first_name: str = ""
    last_name: str = ""
    middle_initial: Optional[str] = None
    extension: Optional[str] = None


class AssignOneRequest(BaseModel):
    student_id: UUID
    section_id: UUID


class RemoveFromSectionRequest(BaseModel):
    student_id: UUID


class AssignmentReportItem(BaseModel):
    student_id: UUID
    student_number: Optional[str] = None
    first_name: str = ""
    last_name: str = ""
    middle_initial: Optional[str] = None
    extension: Optional[str] = None
    gender: Optional[str] = None
    section_id: UUID
    section_name: Optional[str] = None


class AutoAssignResponse(BaseModel):
    assigned: int = Field(0, description="Students placed in a section")
    skipped: int = Field(0, description="Candidates left unclassified (missing key, no matching section, or all full)")
    reason: Optional[str] = None
    assignments: List[AssignmentReportItem] = Field(default_factory=list)


class AssignOneResponse(BaseModel):
    student_id: UUID
    section_id: UUID
    section_name: str


class RemoveFromSectionResponse(BaseModel):
    student_id: UUID
    section_id: UUID = Field(..., description="The Unclassified section the student was moved to")


class ResetAssignmentsResponse(BaseModel):
    sy_id: UUID
    students_reset: int
    placements_deleted: int


class SectionCountItem(BaseModel):
    section_id: UUID
    total: int
    male: int
    female: int
    capacity: int
