"""Sections per school year, keyed by grade/track/strand. Each year also has one "Unclassified" holding section."""
import uuid
from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base


class Section(Base):
    """Section belongs to a school year. strand_id NULL only matches students with no strand."""

    __tablename__ = "sections"
    __table_args__ = (
        UniqueConstraint(
            "sy_id", "grade_id", "track_id", "strand_id", "section_name",
            name="sections_sy_id_grade_track_strand_name_key",
        ),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sy_id = Column(UUID(as_uuid=True), ForeignKey("school_years.id", ondelete="RESTRICT"), nullable=False, index=True)
    section_name = Column(String(50), nullable=False)
    grade_id = Column(UUID(as_uuid=True), ForeignKey("grade_levels.id"), nullable=True)
    track_id = Column(UUID(as_uuid=True), ForeignKey("tracks.id"), nullable=True)
    strand_id = Column(UUID(as_uuid=True), ForeignKey("strands.id"), nullable=True)
    is_archived = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    school_year = relationship("SchoolYear", backref="sections", foreign_keys=[sy_id])
