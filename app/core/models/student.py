import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


class Student(Base):
    """
    Student record for one school year. section_id NULL (legacy) or pointing at the year's
    "Unclassified" section means the student still needs a section.
    Only status = Enrolled counts toward section capacity.
    """

    __tablename__ = "students"
    __table_args__ = (
        UniqueConstraint("sy_id", "student_number", name="uq_student_sy_number"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sy_id = Column(UUID(as_uuid=True), ForeignKey("school_years.id", ondelete="RESTRICT"), nullable=False, index=True)
    student_number = Column(String(50), nullable=False)
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    middle_initial = Column(String(5), nullable=True)
    extension = Column(String(10), nullable=True)
    gender = Column(String(20), nullable=True)
    status = Column(String(20), nullable=False, default="Pending")  # Pending | Approval | Approved | Enrolled | Denied
    grade_id = Column(UUID(as_uuid=True), ForeignKey("grade_levels.id"), nullable=True)
    track_id = Column(UUID(as_uuid=True), ForeignKey("tracks.id"), nullable=True)
    strand_id = Column(UUID(as_uuid=True), ForeignKey("strands.id"), nullable=True)
    section_id = Column(UUID(as_uuid=True), ForeignKey("sections.id", ondelete="SET NULL"), nullable=True, index=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
