import re
from datetime import date, datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

SY_CODE_PATTERN = re.compile(r"^(\d{4})-(\d{4})$")


def _parse_sy_code(value: str) -> str:
    """YYYY-YYYY where the second year is the first plus one (e.g. 2025-2026)."""
    v = (value or "").strip()
    m = SY_CODE_PATTERN.match(v)
    if not m or int(m.group(2)) != int(m.group(1)) + 1:
        raise ValueError("sy_code must be two consecutive years, e.g. 2025-2026")
    return v


class SchoolYearCreate(BaseModel):
    """Create school year. Always created Inactive; activate it separately."""

    sy_code: str = Field(..., max_length=9, description="e.g. 2025-2026")
    start_date: date = Field(..., description="School year start date")
    end_date: date = Field(..., description="School year end date (on or after start_date)")

    @field_validator("sy_code")
    @classmethod
    def check_sy_code(cls, v: str) -> str:
        return _parse_sy_code(v)


class SchoolYearUpdate(BaseModel):
    """Update code and/or dates. Status only changes through activate."""

    sy_code: Optional[str] = Field(None, max_length=9)
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @field_validator("sy_code")
    @classmethod
    def check_sy_code(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return _parse_sy_code(v)


class SchoolYearResponse(BaseModel):
    id: UUID
    sy_code: str
    status: str
    start_date: date
    end_date: date
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ActivateSchoolYearResponse(BaseModel):
    """Result of activation. atomic=false means the two-step fallback ran."""

    school_year: SchoolYearResponse
    previous_active_id: Optional[UUID] = Field(None, description="Year demoted to Inactive, if any")
    atomic: bool = True
