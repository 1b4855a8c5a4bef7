"""
Student model - one record per trainee.

Holds the lesson package (total_lessons / remaining_lessons) and the
money side (total_fee / balance). Debt is never stored; it is derived
from total_fee and balance by the ledger engine.
"""

import uuid
from datetime import datetime, timezone
from sqlalchemy import Column, Text, DateTime, String, Integer, Float, Index
from app.database import Base


class Student(Base):
    """
    SQLAlchemy model for the students table.

    remaining_lessons and balance are only ever changed through SQL-side
    increments issued by the document store.
    """
    __tablename__ = "students"

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()),
                doc="Unique student identifier")
    name = Column(Text, nullable=False,
                  doc="Display name")
    phone = Column(Text, nullable=True,
                   doc="Phone number, free format")
    total_lessons = Column(Integer, nullable=False, default=0,
                           doc="Lessons in the purchased package")
    remaining_lessons = Column(Integer, nullable=False, default=0,
                               doc="Lessons left; may go negative via manual correction")
    total_fee = Column(Float, nullable=True,
                       doc="Total package price (nullable - not every package is priced)")
    balance = Column(Float, nullable=False, default=0,
                     doc="Cumulative amount paid")
    created_at = Column(DateTime, default=lambda: datetime.now(timezone.utc),
                        doc="Timestamp when student record was created")

    __table_args__ = (
        Index("ix_students_name", "name"),
    )

    def __repr__(self):
        return f"<Student(id={self.id}, name='{self.name}', remaining={self.remaining_lessons})>"
