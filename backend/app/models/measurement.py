"""
MeasurementEntry model - body measurements taken over time.

Each metric is optional; an omitted metric is stored as NULL rather
than zero so trend calculations can tell "not measured" from a value.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, DateTime, String, Integer, Float, Index
from app.database import Base


class MeasurementEntry(Base):
    __tablename__ = "student_measurements"

    id = Column(Integer, primary_key=True, autoincrement=True)
    student_id = Column(String(36), nullable=False)
    date = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc))
    weight = Column(Float, nullable=True, doc="kg")
    body_fat_pct = Column(Float, nullable=True, doc="%")
    waist = Column(Float, nullable=True, doc="cm")
    hip = Column(Float, nullable=True, doc="cm")

    __table_args__ = (
        Index("ix_student_measurements_student_id_date", "student_id", "date"),
    )

    def __repr__(self):
        return f"<MeasurementEntry(id={self.id}, student={self.student_id}, weight={self.weight})>"
