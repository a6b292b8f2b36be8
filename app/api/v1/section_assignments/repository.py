"""
Persistence boundary for section assignment. The service only talks to AssignmentRepository;
SqlAlchemyAssignmentRepository is the store-backed implementation. Every write that moves a
student is filtered by the student's school year.
"""

import logging
from typing import Dict, List, Optional, Protocol, Tuple
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import audit_service
from app.core.assignment import AssignableSection, SectionCount
from app.core.enums import StudentStatus
from app.core.exceptions import PersistenceFailure
from app.core.models import Section, Student, StudentSchoolYear

from app.api.v1.school_years import service as school_year_service
from app.api.v1.sections import service as section_service

from .schemas import RosterStudent

logger = logging.getLogger(__name__)


class AssignmentRepository(Protocol):
    async def get_active_school_year_id(self) -> Optional[UUID]: ...

    async def get_unclassified_section_id(self, sy_id: UUID) -> Optional[UUID]: ...

    async def list_enrolled_students(self, sy_id: UUID) -> List[RosterStudent]: ...

    async def list_sections(self, sy_id: UUID) -> List[AssignableSection]: ...

    async def get_section(self, section_id: UUID) -> Optional[AssignableSection]: ...

    async def get_student(self, student_id: UUID) -> Optional[RosterStudent]: ...

    async def count_by_section(self, sy_id: UUID) -> Dict[UUID, SectionCount]: ...

    async def commit_placement(self, sy_id: UUID, student_id: UUID, section_id: UUID) -> None: ...

    async def remove_placement(self, sy_id: UUID, student_id: UUID, unclassified_section_id: UUID) -> None: ...

    async def reset(self, sy_id: UUID, unclassified_section_id: UUID) -> Tuple[int, int]: ...

    async def record_audit(
        self,
        sy_id: UUID,
        entity_type: str,
        entity_id: UUID,
        action: str,
        remarks: Optional[str] = None,
    ) -> None: ...


def _roster_student(s: Student) -> RosterStudent:
    return RosterStudent(
        id=s.id,
        sy_id=s.sy_id,
        student_number=s.student_number,
        first_name=s.first_name,
        last_name=s.last_name,
        middle_initial=s.middle_initial,
        extension=s.extension,
        gender=s.gender,
        status=s.status,
        grade_id=s.grade_id,
        track_id=s.track_id,
        strand_id=s.strand_id,
        section_id=s.section_id,
    )


class SqlAlchemyAssignmentRepository:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def get_active_school_year_id(self) -> Optional[UUID]:
        sy = await school_year_service.get_active_school_year_row(self.db)
        return sy.id if sy else None

    async def get_unclassified_section_id(self, sy_id: UUID) -> Optional[UUID]:
        sec = await section_service.get_unclassified_section(self.db, sy_id)
        return sec.id if sec else None

    async def list_enrolled_students(self, sy_id: UUID) -> List[RosterStudent]:
        result = await self.db.execute(
            select(Student)
            .where(Student.sy_id == sy_id, Student.status == StudentStatus.ENROLLED.value)
            .order_by(Student.last_name, Student.first_name)
        )
        return [_roster_student(s) for s in result.scalars().all()]

    async def list_sections(self, sy_id: UUID) -> List[AssignableSection]:
        result = await self.db.execute(select(Section).where(Section.sy_id == sy_id).order_by(Section.section_name))
        return [AssignableSection.model_validate(s) for s in result.scalars().all()]

    async def get_section(self, section_id: UUID) -> Optional[AssignableSection]:
        obj = await section_service.get_section_row(self.db, section_id)
        return AssignableSection.model_validate(obj) if obj else None

    async def get_student(self, student_id: UUID) -> Optional[RosterStudent]:
        obj = await self.db.get(Student, student_id)
        return _roster_student(obj) if obj else None

    async def count_by_section(self, sy_id: UUID) -> Dict[UUID, SectionCount]:
        return await section_service.count_by_section(self.db, sy_id)

    async def _upsert_join_row(self, sy_id: UUID, student_id: UUID, section_id: UUID) -> None:
        existing = await self.db.execute(
            select(StudentSchoolYear).where(
                StudentSchoolYear.sy_id == sy_id,
                StudentSchoolYear.student_id == student_id,
            )
        )
        row = existing.scalar_one_or_none()
        if row:
            row.section_id = section_id
        else:
            self.db.add(StudentSchoolYear(sy_id=sy_id, student_id=student_id, section_id=section_id))

    async def commit_placement(self, sy_id: UUID, student_id: UUID, section_id: UUID) -> None:
        """Point the student at section_id and upsert the (sy_id, student_id) join row, in one commit."""
        try:
            result = await self.db.execute(
                update(Student)
                .where(Student.id == student_id, Student.sy_id == sy_id)
                .values(section_id=section_id)
            )
            if result.rowcount == 0:
                await self.db.rollback()
                raise PersistenceFailure(f"Student {student_id} is not in school year {sy_id}")
            await self._upsert_join_row(sy_id, student_id, section_id)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Placing student %s in section %s failed", student_id, section_id)
            raise PersistenceFailure(str(e))

    async def remove_placement(self, sy_id: UUID, student_id: UUID, unclassified_section_id: UUID) -> None:
        try:
            await self.db.execute(
                update(Student)
                .where(Student.id == student_id, Student.sy_id == sy_id)
                .values(section_id=unclassified_section_id)
            )
            await self.db.execute(
                delete(StudentSchoolYear).where(
                    StudentSchoolYear.sy_id == sy_id,
                    StudentSchoolYear.student_id == student_id,
                )
            )
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Removing student %s from their section failed", student_id)
            raise PersistenceFailure(str(e))

    async def reset(self, sy_id: UUID, unclassified_section_id: UUID) -> Tuple[int, int]:
        """Move every Enrolled student of the year to Unclassified and drop the year's join rows."""
        try:
            moved = await self.db.execute(
                update(Student)
                .where(Student.sy_id == sy_id, Student.status == StudentStatus.ENROLLED.value)
                .values(section_id=unclassified_section_id)
            )
            deleted = await self.db.execute(delete(StudentSchoolYear).where(StudentSchoolYear.sy_id == sy_id))
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.exception("Resetting section assignments for school year %s failed", sy_id)
            raise PersistenceFailure(str(e))
        return moved.rowcount, deleted.rowcount

    async def record_audit(
        self,
        sy_id: UUID,
        entity_type: str,
        entity_id: UUID,
        action: str,
        remarks: Optional[str] = None,
    ) -> None:
        try:
            await audit_service.log_audit(self.db, entity_type, entity_id, action, sy_id=sy_id, remarks=remarks)
            await self.db.commit()
        except SQLAlchemyError:
            await self.db.rollback()
            logger.warning("Audit entry %s for %s was not saved", action, entity_id, exc_info=True)
