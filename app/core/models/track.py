import uuid
from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, String, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.db.session import Base


class Track(Base):
    """Senior-high track (e.g. ACAD, TVL)."""

    __tablename__ = "tracks"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    track_code = Column(String(20), nullable=False, unique=True)
    track_name = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)


class Strand(Base):
    """Strand under a track (e.g. STEM, GAS under ACAD). Optional on sections and students."""

    __tablename__ = "strands"
    __table_args__ = (
        UniqueConstraint("track_id", "strand_code", name="uq_strand_track_code"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    track_id = Column(UUID(as_uuid=True), ForeignKey("tracks.id", ondelete="CASCADE"), nullable=False)
    strand_code = Column(String(20), nullable=False)
    strand_name = Column(String(100), nullable=True)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)

    track = relationship("Track", backref="strands")
