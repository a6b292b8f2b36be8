import uuid
from datetime import datetime

from sqlalchemy import Column, Date, DateTime, String
from sqlalchemy.dialects.postgresql import UUID

from app.db.session import Base


class SchoolYear(Base):
    """
    School year (e.g. 2025-2026). At most one row has status = Active.
    New years are always created Inactive; activation demotes the previous Active year.
    """

    __tablename__ = "school_years"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    sy_code = Column(String(9), nullable=False, unique=True)  # e.g. "2025-2026"
    status = Column(String(20), nullable=False, default="Inactive")  # Active | Inactive
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
