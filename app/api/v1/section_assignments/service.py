"""
Section assignment operations over the active school year: bulk auto-assign, manual assign,
remove one student, and reset. Every operation first resolves the active school year and its
Unclassified section; if either is missing nothing is written.
"""

import logging
import random
from typing import Dict, List, Optional, Tuple
from uuid import UUID

from fastapi import status

from app.core import audit_service
from app.core.assignment import filter_candidates, is_unclassified_name, matches_section, plan_auto_assignment
from app.core.config import settings
from app.core.enums import StudentStatus
from app.core.exceptions import PersistenceFailure, PreconditionMissing, ValidationFailed

from .repository import AssignmentRepository
from .schemas import (
    AssignOneResponse,
    AssignmentReportItem,
    AutoAssignResponse,
    RemoveFromSectionResponse,
    ResetAssignmentsResponse,
    RosterStudent,
    SectionCountItem,
)

logger = logging.getLogger(__name__)

REASON_NO_CANDIDATES = "No unclassified enrolled students found."
REASON_NO_PLACEMENTS = "No valid assignments found (capacity/match constraints)."


async def _require_context(repo: AssignmentRepository) -> Tuple[UUID, UUID]:
    """(active sy_id, Unclassified section id) or PreconditionMissing."""
    sy_id = await repo.get_active_school_year_id()
    if not sy_id:
        raise PreconditionMissing("No active school year found.")
    unclassified_id = await repo.get_unclassified_section_id(sy_id)
    if not unclassified_id:
        raise PreconditionMissing(
            f'"{settings.unclassified_section_name}" section not found for the active school year.'
        )
    return sy_id, unclassified_id


async def _require_student(repo: AssignmentRepository, student_id: UUID, sy_id: UUID) -> RosterStudent:
    student = await repo.get_student(student_id)
    if not student:
        raise ValidationFailed("Student not found.", status.HTTP_404_NOT_FOUND)
    if student.sy_id != sy_id:
        raise ValidationFailed("Student is not in the active school year.")
    return student


async def auto_assign(
    repo: AssignmentRepository,
    rng: Optional[random.Random] = None,
) -> AutoAssignResponse:
    """
    Place every unclassified Enrolled student of the active year into a matching section.
    Placements are committed one at a time in shuffled order; if the store fails partway,
    earlier placements stay committed and PersistenceFailure.assigned says how many.
    """
    sy_id, unclassified_id = await _require_context(repo)
    students = await repo.list_enrolled_students(sy_id)
    sections = await repo.list_sections(sy_id)
    counts = await repo.count_by_section(sy_id)

    plan = plan_auto_assignment(
        students,
        sections,
        unclassified_id,
        counts,
        rng,
        max_capacity=settings.max_section_capacity,
        gender_weight=settings.gender_balance_weight,
        sentinel_name=settings.unclassified_section_name,
    )
    if plan.candidates == 0:
        return AutoAssignResponse(assigned=0, skipped=0, reason=REASON_NO_CANDIDATES)
    if not plan.assigned:
        logger.info("Auto-assign for school year %s: 0 assigned, %d skipped", sy_id, plan.skipped)
        return AutoAssignResponse(assigned=0, skipped=plan.skipped, reason=REASON_NO_PLACEMENTS)

    committed = 0
    for record in plan.assigned:
        try:
            await repo.commit_placement(sy_id, record.student_id, record.section_id)
        except PersistenceFailure as e:
            logger.error(
                "Auto-assign for school year %s stopped after %d of %d placements: %s",
                sy_id, committed, len(plan.assigned), e.message,
            )
            raise PersistenceFailure(
                f"Auto-assign stopped after {committed} of {len(plan.assigned)} placements: {e.message}",
                assigned=committed,
            )
        committed += 1

    await repo.record_audit(
        sy_id,
        audit_service.ENTITY_SCHOOL_YEAR,
        sy_id,
        audit_service.ACTION_AUTO_ASSIGN,
        remarks=f"assigned={committed} skipped={plan.skipped}",
    )
    logger.info("Auto-assign for school year %s: %d assigned, %d skipped", sy_id, committed, plan.skipped)

    by_id: Dict[UUID, RosterStudent] = {s.id: s for s in students}
    names: Dict[UUID, str] = {sec.id: sec.section_name for sec in sections}
    report: List[AssignmentReportItem] = []
    for record in plan.assigned:
        st = by_id.get(record.student_id)
        report.append(
            AssignmentReportItem(
                student_id=record.student_id,
                student_number=st.student_number if st and st.student_number else None,
                first_name=st.first_name if st else "",
                last_name=st.last_name if st else "",
                middle_initial=st.middle_initial if st else None,
                extension=st.extension if st else None,
                gender=st.gender if st else None,
                section_id=record.section_id,
                section_name=names.get(record.section_id),
            )
        )
    return AutoAssignResponse(assigned=committed, skipped=plan.skipped, assignments=report)


async def assign_one(
    repo: AssignmentRepository,
    student_id: UUID,
    section_id: UUID,
) -> AssignOneResponse:
    """Manually place one student. Each rejection is a ValidationFailed raised before any write."""
    sy_id, unclassified_id = await _require_context(repo)
    student = await _require_student(repo, student_id, sy_id)
    if student.status != StudentStatus.ENROLLED.value:
        raise ValidationFailed("Only Enrolled students can be assigned to a section.")

    sec = await repo.get_section(section_id)
    if not sec:
        raise ValidationFailed("Section not found.", status.HTTP_404_NOT_FOUND)
    if sec.sy_id is not None and sec.sy_id != sy_id:
        raise ValidationFailed("Section is not in the active school year.")
    if sec.is_archived:
        raise ValidationFailed("Cannot assign to an archived section.")
    if sec.id == unclassified_id or is_unclassified_name(sec.section_name, settings.unclassified_section_name):
        raise ValidationFailed(f'Cannot assign to "{settings.unclassified_section_name}".')
    if not matches_section(student, sec):
        raise ValidationFailed("Student does not match the section's grade/track/strand.")

    counts = await repo.count_by_section(sy_id)
    current = counts.get(section_id)
    if current is not None and current.total >= settings.max_section_capacity:
        raise ValidationFailed(f"This section is at maximum capacity ({settings.max_section_capacity}).")

    await repo.commit_placement(sy_id, student.id, sec.id)
    await repo.record_audit(
        sy_id,
        audit_service.ENTITY_STUDENT,
        student.id,
        audit_service.ACTION_ASSIGN_ONE,
        remarks=f"section={sec.id}",
    )
    return AssignOneResponse(student_id=student.id, section_id=sec.id, section_name=sec.section_name)


async def remove_from_section(repo: AssignmentRepository, student_id: UUID) -> RemoveFromSectionResponse:
    """Move one student back to Unclassified and drop their placement row for the year."""
    sy_id, unclassified_id = await _require_context(repo)
    student = await _require_student(repo, student_id, sy_id)
    await repo.remove_placement(sy_id, student.id, unclassified_id)
    await repo.record_audit(
        sy_id,
        audit_service.ENTITY_STUDENT,
        student.id,
        audit_service.ACTION_REMOVE,
        remarks=f"from={student.section_id}",
    )
    return RemoveFromSectionResponse(student_id=student.id, section_id=unclassified_id)


async def reset_assignments(repo: AssignmentRepository) -> ResetAssignmentsResponse:
    """Undo all placements of the active year: Enrolled students go back to Unclassified."""
    sy_id, unclassified_id = await _require_context(repo)
    moved, deleted = await repo.reset(sy_id, unclassified_id)
    await repo.record_audit(
        sy_id,
        audit_service.ENTITY_SCHOOL_YEAR,
        sy_id,
        audit_service.ACTION_RESET,
        remarks=f"students={moved} placements={deleted}",
    )
    logger.info("Reset section assignments for school year %s: %d students, %d placements", sy_id, moved, deleted)
    return ResetAssignmentsResponse(sy_id=sy_id, students_reset=moved, placements_deleted=deleted)


async def list_unclassified_students(repo: AssignmentRepository) -> List[RosterStudent]:
    """Current auto-assign candidates of the active year, by last name."""
    sy_id, unclassified_id = await _require_context(repo)
    students = await repo.list_enrolled_students(sy_id)
    candidates = filter_candidates(students, unclassified_id)
    return sorted(candidates, key=lambda s: (s.last_name.lower(), s.first_name.lower()))


async def section_counts(repo: AssignmentRepository) -> List[SectionCountItem]:
    """Enrolled totals per section of the active year (Unclassified included)."""
    sy_id = await repo.get_active_school_year_id()
    if not sy_id:
        raise PreconditionMissing("No active school year found.")
    sections = await repo.list_sections(sy_id)
    counts = await repo.count_by_section(sy_id)
    items = []
    for sec in sections:
        c = counts.get(sec.id)
        items.append(
            SectionCountItem(
                section_id=sec.id,
                total=c.total if c else 0,
                male=c.male if c else 0,
                female=c.female if c else 0,
                capacity=settings.max_section_capacity,
            )
        )
    return items
