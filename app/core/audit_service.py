"""
Audit trail for school-year activation and section assignment changes.
"""

from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from app.core.models import AuditLog

ENTITY_SCHOOL_YEAR = "school_year"
ENTITY_STUDENT = "student"

ACTION_SCHOOL_YEAR_ACTIVATED = "school_year.activated"
ACTION_AUTO_ASSIGN = "section.auto_assign"
ACTION_ASSIGN_ONE = "section.assign"
ACTION_REMOVE = "section.remove"
ACTION_RESET = "section.reset"


async def log_audit(
    db: AsyncSession,
    entity_type: str,
    entity_id: UUID,
    action: str,
    *,
    sy_id: Optional[UUID] = None,
    from_status: Optional[str] = None,
    to_status: Optional[str] = None,
    remarks: Optional[str] = None,
) -> None:
    """Append one audit log entry. Caller must commit."""
    entry = AuditLog(
        sy_id=sy_id,
        entity_type=entity_type,
        entity_id=entity_id,
        from_status=from_status,
        to_status=to_status,
        action=action,
        remarks=remarks,
        timestamp=datetime.utcnow(),
    )
    db.add(entry)
