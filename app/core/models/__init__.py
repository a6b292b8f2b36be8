from app.core.models.audit_log import AuditLog
from app.core.models.grade_level import GradeLevel
from app.core.models.school_year import SchoolYear
from app.core.models.section_model import Section
from app.core.models.student import Student
from app.core.models.student_school_year import StudentSchoolYear
from app.core.models.track import Strand, Track

__all__ = [
    "AuditLog",
    "GradeLevel",
    "SchoolYear",
    "Section",
    "Strand",
    "Student",
    "StudentSchoolYear",
    "Track",
]
