"""
HistoryEntry model - append-only audit trail per student.

Entries are written by the ledger engine after a successful record
update and are never edited or deleted. student_id carries no foreign
key: like a document-store subcollection, entries outlive a deleted
student.
"""

from datetime import datetime, timezone
from sqlalchemy import Column, Text, DateTime, String, Integer, Index
from app.database import Base


class HistoryEntry(Base):
    """SQLAlchemy model for the student_history table."""
    __tablename__ = "student_history"

    # Integer key doubles as insertion order for entries sharing a timestamp
    id = Column(Integer, primary_key=True, autoincrement=True,
                doc="Entry identifier")
    student_id = Column(String(36), nullable=False,
                        doc="Owning student")
    action = Column(Text, nullable=False,
                    doc="lesson_consumed | payment_received | info_updated | system_message")
    note = Column(Text, nullable=False,
                  doc="Engine-generated description")
    date = Column(DateTime, nullable=False, default=lambda: datetime.now(timezone.utc),
                  doc="Store-assigned timestamp")

    __table_args__ = (
        Index("ix_student_history_student_id_date", "student_id", "date"),
    )

    def __repr__(self):
        return f"<HistoryEntry(id={self.id}, student={self.student_id}, action='{self.action}')>"
