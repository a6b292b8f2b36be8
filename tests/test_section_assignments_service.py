"""Section assignment service against an in-memory repository."""

import random
from typing import Dict, List, Optional, Tuple
from uuid import UUID, uuid4

import pytest

from app.api.v1.section_assignments import service
from app.api.v1.section_assignments.schemas import RosterStudent
from app.core.assignment import AssignableSection, SectionCount, count_enrolled_by_section
from app.core.exceptions import PersistenceFailure, PreconditionMissing, ValidationFailed

GRADE = uuid4()
TRACK = uuid4()
STEM = uuid4()


class FakeAssignmentRepository:
    def __init__(self, sy_id: Optional[UUID] = None, with_unclassified: bool = True) -> None:
        self.sy_id = sy_id
        self.sections: Dict[UUID, AssignableSection] = {}
        self.students: Dict[UUID, RosterStudent] = {}
        self.placements: Dict[Tuple[UUID, UUID], UUID] = {}
        self.writes: List[Tuple[str, UUID]] = []
        self.audits: List[str] = []
        self.fail_after: Optional[int] = None
        self.unclassified_id: Optional[UUID] = None
        if sy_id and with_unclassified:
            self.unclassified_id = self.add_section("Unclassified", grade_id=None, track_id=None, strand_id=None).id

    def add_section(self, name: str, **kw) -> AssignableSection:
        sec = AssignableSection(
            id=uuid4(),
            section_name=name,
            sy_id=kw.pop("sy_id", self.sy_id),
            grade_id=kw.pop("grade_id", GRADE),
            track_id=kw.pop("track_id", TRACK),
            strand_id=kw.pop("strand_id", STEM),
            is_archived=kw.pop("is_archived", False),
        )
        self.sections[sec.id] = sec
        return sec

    def add_student(self, **kw) -> RosterStudent:
        st = RosterStudent(
            id=uuid4(),
            sy_id=kw.pop("sy_id", self.sy_id),
            student_number=kw.pop("student_number", f"S-{len(self.students):03d}"),
            first_name="First",
            last_name=kw.pop("last_name", f"Last{len(self.students):03d}"),
            gender=kw.pop("gender", "Male"),
            status=kw.pop("status", "Enrolled"),
            grade_id=kw.pop("grade_id", GRADE),
            track_id=kw.pop("track_id", TRACK),
            strand_id=kw.pop("strand_id", STEM),
            section_id=kw.pop("section_id", self.unclassified_id),
        )
        self.students[st.id] = st
        return st

    async def get_active_school_year_id(self) -> Optional[UUID]:
        return self.sy_id

    async def get_unclassified_section_id(self, sy_id: UUID) -> Optional[UUID]:
        return self.unclassified_id

    async def list_enrolled_students(self, sy_id: UUID) -> List[RosterStudent]:
        return [s for s in self.students.values() if s.sy_id == sy_id and s.status == "Enrolled"]

    async def list_sections(self, sy_id: UUID) -> List[AssignableSection]:
        return [s for s in self.sections.values() if s.sy_id == sy_id]

    async def get_section(self, section_id: UUID) -> Optional[AssignableSection]:
        return self.sections.get(section_id)

    async def get_student(self, student_id: UUID) -> Optional[RosterStudent]:
        return self.students.get(student_id)

    async def count_by_section(self, sy_id: UUID) -> Dict[UUID, SectionCount]:
        return count_enrolled_by_section(s for s in self.students.values() if s.sy_id == sy_id)

    async def commit_placement(self, sy_id: UUID, student_id: UUID, section_id: UUID) -> None:
        if self.fail_after is not None and len(self.writes) >= self.fail_after:
            raise PersistenceFailure("connection lost")
        self.writes.append(("place", student_id))
        self.students[student_id] = self.students[student_id].model_copy(update={"section_id": section_id})
        self.placements[(sy_id, student_id)] = section_id

    async def remove_placement(self, sy_id: UUID, student_id: UUID, unclassified_section_id: UUID) -> None:
        self.writes.append(("remove", student_id))
        self.students[student_id] = self.students[student_id].model_copy(
            update={"section_id": unclassified_section_id}
        )
        self.placements.pop((sy_id, student_id), None)

    async def reset(self, sy_id: UUID, unclassified_section_id: UUID) -> Tuple[int, int]:
        moved = 0
        for sid, st in list(self.students.items()):
            if st.sy_id == sy_id and st.status == "Enrolled":
                self.students[sid] = st.model_copy(update={"section_id": unclassified_section_id})
                moved += 1
        keys = [k for k in self.placements if k[0] == sy_id]
        for k in keys:
            del self.placements[k]
        return moved, len(keys)

    async def record_audit(self, sy_id, entity_type, entity_id, action, remarks=None) -> None:
        self.audits.append(action)


@pytest.mark.asyncio
async def test_auto_assign_without_active_year() -> None:
    repo = FakeAssignmentRepository(sy_id=None)
    with pytest.raises(PreconditionMissing) as exc:
        await service.auto_assign(repo)
    assert exc.value.message == "No active school year found."
    assert exc.value.status_code == 409


@pytest.mark.asyncio
async def test_auto_assign_without_unclassified_section() -> None:
    repo = FakeAssignmentRepository(sy_id=uuid4(), with_unclassified=False)
    repo.add_section("STEM-A")
    repo.add_student(section_id=None)
    with pytest.raises(PreconditionMissing) as exc:
        await service.auto_assign(repo)
    assert exc.value.message == '"Unclassified" section not found for the active school year.'
    assert repo.writes == []


@pytest.mark.asyncio
async def test_auto_assign_no_candidates_writes_nothing() -> None:
    repo = FakeAssignmentRepository(sy_id=uuid4())
    sec = repo.add_section("STEM-A")
    repo.add_student(section_id=sec.id)
    repo.add_student(status="Pending")

    result = await service.auto_assign(repo, random.Random(1))

    assert result.assigned == 0
    assert result.skipped == 0
    assert result.reason == service.REASON_NO_CANDIDATES
    assert repo.writes == []


@pytest.mark.asyncio
async def test_auto_assign_no_valid_placements() -> None:
    repo = FakeAssignmentRepository(sy_id=uuid4())
    repo.add_section("STEM-A", is_archived=True)
    repo.add_student()
    repo.add_student()

    result = await service.auto_assign(repo, random.Random(1))

    assert result.assigned == 0
    assert result.skipped == 2
    assert result.reason == service.REASON_NO_PLACEMENTS
    assert repo.writes == []


@pytest.mark.asyncio
async def test_auto_assign_places_candidates_and_reports() -> None:
    repo = FakeAssignmentRepository(sy_id=uuid4())
    a = repo.add_section("STEM-A")
    b = repo.add_section("STEM-B")
    for i in range(10):
        repo.add_student(gender="Male" if i % 2 else "Female")
    repo.add_student(strand_id=None)

    result = await service.auto_assign(repo, random.Random(11))

    assert result.assigned == 10
    assert result.skipped == 1
    assert result.reason is None
    assert len(result.assignments) == 10
    assert {item.section_name for item in result.assignments} <= {"STEM-A", "STEM-B"}
    counts = await repo.count_by_section(repo.sy_id)
    assert counts[a.id].total + counts[b.id].total == 10
    assert repo.audits == ["section.auto_assign"]


@pytest.mark.asyncio
async def test_auto_assign_partial_failure_reports_committed_count() -> None:
    repo = FakeAssignmentRepository(sy_id=uuid4())
    repo.add_section("STEM-A")
    for _ in range(5):
        repo.add_student()
    repo.fail_after = 3

    with pytest.raises(PersistenceFailure) as exc:
        await service.auto_assign(repo, random.Random(2))

    assert exc.value.assigned == 3
    assert exc.value.status_code == 500
    assert len(repo.placements) == 3


@pytest.mark.asyncio
async def test_assign_one_success() -> None:
    repo = FakeAssignmentRepository(sy_id=uuid4())
    sec = repo.add_section("STEM-A")
    st = repo.add_student()

    result = await service.assign_one(repo, st.id, sec.id)

    assert result.section_id == sec.id
    assert result.section_name == "STEM-A"
    assert repo.students[st.id].section_id == sec.id
    assert repo.audits == ["section.assign"]


@pytest.mark.asyncio
async def test_assign_one_rejections_write_nothing() -> None:
    repo = FakeAssignmentRepository(sy_id=uuid4())
    st = repo.add_student()
    other_year = repo.add_section("STEM-X", sy_id=uuid4())
    archived = repo.add_section("STEM-OLD", is_archived=True)
    gas = repo.add_section("GAS-A", strand_id=uuid4())
    full = repo.add_section("STEM-FULL")
    for _ in range(40):
        repo.add_student(section_id=full.id)

    cases = [
        (uuid4(), "Section not found."),
        (other_year.id, "Section is not in the active school year."),
        (archived.id, "Cannot assign to an archived section."),
        (repo.unclassified_id, 'Cannot assign to "Unclassified".'),
        (gas.id, "Student does not match the section's grade/track/strand."),
        (full.id, "This section is at maximum capacity (40)."),
    ]
    for section_id, message in cases:
        with pytest.raises(ValidationFailed) as exc:
            await service.assign_one(repo, st.id, section_id)
        assert exc.value.message == message
    assert repo.writes == []


@pytest.mark.asyncio
async def test_assign_one_unknown_student() -> None:
    repo = FakeAssignmentRepository(sy_id=uuid4())
    sec = repo.add_section("STEM-A")
    with pytest.raises(ValidationFailed) as exc:
        await service.assign_one(repo, uuid4(), sec.id)
    assert exc.value.status_code == 404


@pytest.mark.asyncio
async def test_assign_one_student_from_other_year() -> None:
    repo = FakeAssignmentRepository(sy_id=uuid4())
    sec = repo.add_section("STEM-A")
    st = repo.add_student(sy_id=uuid4())
    with pytest.raises(ValidationFailed) as exc:
        await service.assign_one(repo, st.id, sec.id)
    assert exc.value.message == "Student is not in the active school year."
    assert repo.writes == []


@pytest.mark.asyncio
async def test_remove_from_section() -> None:
    repo = FakeAssignmentRepository(sy_id=uuid4())
    sec = repo.add_section("STEM-A")
    st = repo.add_student()
    await service.assign_one(repo, st.id, sec.id)

    result = await service.remove_from_section(repo, st.id)

    assert result.section_id == repo.unclassified_id
    assert repo.students[st.id].section_id == repo.unclassified_id
    assert (repo.sy_id, st.id) not in repo.placements


@pytest.mark.asyncio
async def test_reset_assignments() -> None:
    repo = FakeAssignmentRepository(sy_id=uuid4())
    repo.add_section("STEM-A")
    repo.add_section("STEM-B")
    for _ in range(12):
        repo.add_student()
    await service.auto_assign(repo, random.Random(4))

    result = await service.reset_assignments(repo)

    assert result.students_reset == 12
    assert result.placements_deleted == 12
    assert all(s.section_id == repo.unclassified_id for s in repo.students.values())
    assert repo.audits[-1] == "section.reset"


@pytest.mark.asyncio
async def test_list_unclassified_students_sorted() -> None:
    repo = FakeAssignmentRepository(sy_id=uuid4())
    sec = repo.add_section("STEM-A")
    repo.add_student(last_name="Santos")
    repo.add_student(last_name="abad", section_id=None)
    repo.add_student(last_name="Cruz", section_id=sec.id)

    result = await service.list_unclassified_students(repo)

    assert [s.last_name for s in result] == ["abad", "Santos"]


@pytest.mark.asyncio
async def test_section_counts() -> None:
    repo = FakeAssignmentRepository(sy_id=uuid4())
    sec = repo.add_section("STEM-A")
    repo.add_student(section_id=sec.id, gender="Female")
    repo.add_student(section_id=sec.id, gender="Male")

    items = {i.section_id: i for i in await service.section_counts(repo)}

    assert items[sec.id].total == 2
    assert items[sec.id].female == 1
    assert items[sec.id].capacity == 40
    assert items[repo.unclassified_id].total == 0


@pytest.mark.asyncio
async def test_assign_one_rejects_non_enrolled_student() -> None:
    repo = FakeAssignmentRepository(sy_id=uuid4())
    sec = repo.add_section("STEM-A")
    for status_value in ("Pending", "Approval", "Approved", "Denied"):
        st = repo.add_student(status=status_value)
        with pytest.raises(ValidationFailed) as exc:
            await service.assign_one(repo, st.id, sec.id)
        assert exc.value.message == "Only Enrolled students can be assigned to a section."
    assert repo.writes == []


@pytest.mark.asyncio
async def test_auto_assign_report_leaves_missing_student_number_empty() -> None:
    repo = FakeAssignmentRepository(sy_id=uuid4())
    repo.add_section("STEM-A")
    repo.add_student(student_number="")

    result = await service.auto_assign(repo, random.Random(0))

    assert result.assignments[0].student_number is None
    assert result.assignments[0].section_name == "STEM-A"
