"""
Pydantic records shared by the store, the ledger engine and the routes.

The document store hands these out as snapshots; they are plain values
detached from any database session.
"""

from datetime import datetime
from enum import Enum
from typing import Optional
from pydantic import BaseModel, ConfigDict


class HistoryAction(str, Enum):
    LESSON_CONSUMED = "lesson_consumed"
    PAYMENT_RECEIVED = "payment_received"
    INFO_UPDATED = "info_updated"
    # Styled by the detail view but not written by any ledger command
    SYSTEM_MESSAGE = "system_message"


class AttentionReason(str, Enum):
    PACKAGE_FINISHED = "package_finished"
    IN_DEBT = "in_debt"
    LESSONS_RUNNING_LOW = "lessons_running_low"


class StudentRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    phone: Optional[str] = None
    total_lessons: int = 0
    remaining_lessons: int = 0
    total_fee: Optional[float] = None
    balance: Optional[float] = 0.0
    created_at: Optional[datetime] = None


class HistoryRecord(BaseModel):
    id: str
    student_id: str
    action: HistoryAction
    note: str
    date: Optional[datetime] = None


class MeasurementRecord(BaseModel):
    id: str
    student_id: str
    date: Optional[datetime] = None
    weight: Optional[float] = None
    body_fat_pct: Optional[float] = None
    waist: Optional[float] = None
    hip: Optional[float] = None


class AttentionItem(BaseModel):
    """A derived alert for the dashboard; never persisted."""
    student: StudentRecord
    reason: AttentionReason
    priority: int
    message: str


class DashboardStats(BaseModel):
    total_students: int
    total_revenue: float
    avg_remaining_lessons: float


class AuthSession(BaseModel):
    token: str
    email: str
    issued_at: datetime
