"""
Section auto-assignment engine.

Places unclassified Enrolled students into sections that share their exact
(grade, track, strand) key. Greedy and randomized: candidates are shuffled, then each
student goes to the matching section with the lowest score

    fill (total / max_capacity) + gender penalty + jitter U(0, 0.001)

where the gender penalty is (|male - female| after - |male - female| before) * weight
for students of known gender. Sections at max capacity are never chosen.

No I/O here. Callers pass rows loaded from the store plus a counts snapshot and get back a
plan to persist. Pass a seeded random.Random for reproducible runs.
"""

import random
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from app.core.enums import Gender, StudentStatus

DEFAULT_MAX_CAPACITY = 40
DEFAULT_GENDER_BALANCE_WEIGHT = 0.08
JITTER_SCALE = 0.001
UNCLASSIFIED_SECTION_NAME = "Unclassified"

SectionKey = Tuple[Optional[UUID], Optional[UUID], Optional[UUID]]


def norm(value: Optional[str]) -> str:
    return str(value or "").strip().lower()


def normalize_gender(value: Optional[str]) -> Optional[Gender]:
    """'Male ', 'FEMALE' -> Gender; anything else (None, 'other', '') -> None."""
    g = norm(value)
    if g == Gender.MALE.value:
        return Gender.MALE
    if g == Gender.FEMALE.value:
        return Gender.FEMALE
    return None


def is_unclassified_name(name: Optional[str], sentinel_name: str = UNCLASSIFIED_SECTION_NAME) -> bool:
    return norm(name) == norm(sentinel_name)


class AssignableStudent(BaseModel):
    """Student row as seen by the engine."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    grade_id: Optional[UUID] = None
    track_id: Optional[UUID] = None
    strand_id: Optional[UUID] = None
    gender: Optional[str] = None
    status: str = StudentStatus.ENROLLED.value
    section_id: Optional[UUID] = None


class AssignableSection(BaseModel):
    """Section row as seen by the engine."""

    model_config = ConfigDict(from_attributes=True, frozen=True)

    id: UUID
    section_name: str
    sy_id: Optional[UUID] = None
    grade_id: Optional[UUID] = None
    track_id: Optional[UUID] = None
    strand_id: Optional[UUID] = None
    is_archived: bool = False


class SectionCount(BaseModel):
    total: int = 0
    male: int = 0
    female: int = 0


class AssignmentRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    student_id: UUID
    section_id: UUID


class AssignmentPlan(BaseModel):
    assigned: List[AssignmentRecord] = Field(default_factory=list)
    skipped: int = 0
    candidates: int = 0


def section_key(row) -> SectionKey:
    return (row.grade_id, row.track_id, row.strand_id)


def matches_section(student, section) -> bool:
    """Exact key match. Grade and track are required on the student; a null strand only matches a null strand."""
    if student.grade_id is None or student.track_id is None:
        return False
    return section_key(student) == section_key(section)


def count_enrolled_by_section(students: Iterable) -> Dict[UUID, SectionCount]:
    """Build the counts snapshot from Enrolled students. Students with no section are not counted."""
    counts: Dict[UUID, SectionCount] = {}
    for s in students:
        if s.status != StudentStatus.ENROLLED.value or s.section_id is None:
            continue
        c = counts.setdefault(s.section_id, SectionCount())
        c.total += 1
        g = normalize_gender(s.gender)
        if g is Gender.MALE:
            c.male += 1
        elif g is Gender.FEMALE:
            c.female += 1
    return counts


class SectionCountTracker:
    """Running per-section totals for one assignment run. Copies the snapshot it is given."""

    def __init__(self, snapshot: Optional[Dict[UUID, SectionCount]] = None) -> None:
        self._counts: Dict[UUID, SectionCount] = {
            section_id: c.model_copy() for section_id, c in (snapshot or {}).items()
        }

    def get(self, section_id: UUID) -> SectionCount:
        c = self._counts.get(section_id)
        return c.model_copy() if c else SectionCount()

    def apply(self, section_id: UUID, gender: Optional[Gender]) -> SectionCount:
        c = self._counts.setdefault(section_id, SectionCount())
        c.total += 1
        if gender is Gender.MALE:
            c.male += 1
        elif gender is Gender.FEMALE:
            c.female += 1
        return c.model_copy()

    def as_dict(self) -> Dict[UUID, SectionCount]:
        return {section_id: c.model_copy() for section_id, c in self._counts.items()}


def filter_candidates(students: Iterable, unclassified_section_id: UUID) -> List:
    """Enrolled students with no section (legacy rows) or parked in the Unclassified section."""
    return [
        s
        for s in students
        if s.status == StudentStatus.ENROLLED.value
        and (s.section_id is None or s.section_id == unclassified_section_id)
    ]


def usable_sections(sections: Iterable, sentinel_name: str = UNCLASSIFIED_SECTION_NAME) -> List:
    """Valid targets: not archived and not the Unclassified holding section."""
    return [sec for sec in sections if not sec.is_archived and not is_unclassified_name(sec.section_name, sentinel_name)]


def group_sections_by_key(sections: Iterable) -> Dict[SectionKey, List]:
    grouped: Dict[SectionKey, List] = {}
    for sec in sections:
        grouped.setdefault(section_key(sec), []).append(sec)
    return grouped


def shuffled(items: List, rng: random.Random) -> List:
    """Fisher-Yates shuffle into a new list."""
    out = list(items)
    for i in range(len(out) - 1, 0, -1):
        j = rng.randint(0, i)
        out[i], out[j] = out[j], out[i]
    return out


def score_section(
    count: SectionCount,
    gender: Optional[Gender],
    *,
    max_capacity: int = DEFAULT_MAX_CAPACITY,
    gender_weight: float = DEFAULT_GENDER_BALANCE_WEIGHT,
) -> float:
    """Score without jitter; lower is better."""
    fill_score = count.total / max_capacity
    if gender is None:
        return fill_score
    before = abs(count.male - count.female)
    male = count.male + (1 if gender is Gender.MALE else 0)
    female = count.female + (1 if gender is Gender.FEMALE else 0)
    after = abs(male - female)
    return fill_score + (after - before) * gender_weight


def pick_best_section(
    sections: Iterable,
    gender: Optional[Gender],
    tracker: SectionCountTracker,
    rng: random.Random,
    *,
    max_capacity: int = DEFAULT_MAX_CAPACITY,
    gender_weight: float = DEFAULT_GENDER_BALANCE_WEIGHT,
):
    """Lowest-scoring section below capacity, or None when every candidate is full (or there are none)."""
    best = None
    best_score = float("inf")
    for sec in sections:
        c = tracker.get(sec.id)
        if c.total >= max_capacity:
            continue
        score = score_section(c, gender, max_capacity=max_capacity, gender_weight=gender_weight)
        score += rng.random() * JITTER_SCALE
        if score < best_score:
            best_score = score
            best = sec
    return best


def plan_auto_assignment(
    students: Iterable,
    sections: Iterable,
    unclassified_section_id: UUID,
    counts: Optional[Dict[UUID, SectionCount]] = None,
    rng: Optional[random.Random] = None,
    *,
    max_capacity: int = DEFAULT_MAX_CAPACITY,
    gender_weight: float = DEFAULT_GENDER_BALANCE_WEIGHT,
    sentinel_name: str = UNCLASSIFIED_SECTION_NAME,
) -> AssignmentPlan:
    """
    Plan placements for every candidate. Each candidate is either assigned or skipped
    (missing grade/track, no section with its key, or every matching section full).
    Later students see earlier placements through the tracker.
    """
    rng = rng or random.Random()
    candidates = filter_candidates(students, unclassified_section_id)
    plan = AssignmentPlan(candidates=len(candidates))
    if not candidates:
        return plan

    by_key = group_sections_by_key(usable_sections(sections, sentinel_name))
    tracker = SectionCountTracker(counts)

    for student in shuffled(candidates, rng):
        if student.grade_id is None or student.track_id is None:
            plan.skipped += 1
            continue
        pool = by_key.get(section_key(student), [])
        if not pool:
            plan.skipped += 1
            continue
        gender = normalize_gender(student.gender)
        best = pick_best_section(
            pool, gender, tracker, rng, max_capacity=max_capacity, gender_weight=gender_weight
        )
        if best is None:
            plan.skipped += 1
            continue
        plan.assigned.append(AssignmentRecord(student_id=student.id, section_id=best.id))
        tracker.apply(best.id, gender)

    return plan
