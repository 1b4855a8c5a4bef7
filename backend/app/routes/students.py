"""
Student API routes - registration, detail view and ledger commands.

Provides endpoints for:
- Listing students (Turkish name order, optional search)
- Registering a student with a lesson package
- Viewing a student with debt, history and measurement trends
- Editing, deleting, consuming lessons, recording payments and measurements

Domain errors (ValidationError, NotFoundError, StoreError, ...) propagate
to the exception handlers registered in main.py.
"""

import time
from typing import Optional
from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field

from app.dependencies import get_document_store, get_ledger
from app.schemas import StudentRecord
from app.services.document_store import ChildrenQuery, DocumentStore, StudentsQuery, Subcollection
from app.services.ledger import LedgerEngine, can_consume_lesson, remaining_debt
from app.services.measurements import measurement_trends, weight_series
from app.logging_config import get_logger, log_with_context

router = APIRouter()
logger = get_logger("http")


# ── Pydantic schemas ─────────────────────────────────────────

class StudentCreateRequest(BaseModel):
    """Schema for registering a student."""
    name: str = Field(..., description="Student's display name")
    phone: Optional[str] = Field(None, description="Phone number (optional)")
    total_lessons: int = Field(..., description="Lessons in the purchased package")
    balance: float = Field(0, description="Amount paid at registration")
    total_fee: Optional[float] = Field(None, description="Total package price")


class StudentUpdateRequest(BaseModel):
    """Partial update; omitted fields keep their current value."""
    name: Optional[str] = None
    phone: Optional[str] = None
    total_fee: Optional[float] = None


class PaymentRequest(BaseModel):
    amount: float = Field(..., description="Amount received, must be greater than zero")


class MeasurementRequest(BaseModel):
    weight: Optional[float] = Field(None, description="kg")
    body_fat_pct: Optional[float] = Field(None, description="%")
    waist: Optional[float] = Field(None, description="cm")
    hip: Optional[float] = Field(None, description="cm")


def serialize_student(student: StudentRecord) -> dict:
    """Student record plus the derived values every view needs."""
    data = student.model_dump(mode="json")
    data["remaining_debt"] = remaining_debt(student)
    data["can_consume_lesson"] = can_consume_lesson(student)
    return data


def _matches(student: StudentRecord, search: str) -> bool:
    needle = search.strip().casefold()
    return needle in student.name.casefold() or needle in (student.phone or "").casefold()


@router.get("/api/students")
def list_students(
    search: Optional[str] = Query(None, description="Search student name/phone"),
    store: DocumentStore = Depends(get_document_store)
):
    """List all students in name order."""
    start_time = time.time()

    students = store.list_once(StudentsQuery(order_by="name"))
    if search:
        students = [s for s in students if _matches(s, search)]

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Listed {} students".format(len(students)),
        extra_data={"duration_ms": round(duration_ms, 2), "search": search})

    return {
        "data": [serialize_student(s) for s in students],
        "total": len(students)
    }


@router.post("/api/students", status_code=201)
def create_student(
    request: StudentCreateRequest,
    store: DocumentStore = Depends(get_document_store),
    ledger: LedgerEngine = Depends(get_ledger)
):
    """Register a student; remaining lessons start equal to the package size."""
    student_id = ledger.create_student(
        name=request.name,
        total_lessons=request.total_lessons,
        balance=request.balance,
        phone=request.phone,
        total_fee=request.total_fee
    )
    return serialize_student(store.get_student(student_id))


@router.get("/api/students/{student_id}")
def get_student(student_id: str, store: DocumentStore = Depends(get_document_store)):
    """Get a student with history, measurements and their trends."""
    student = store.get_student(student_id)
    history = store.list_once(ChildrenQuery(student_id, Subcollection.HISTORY))
    measurements = store.list_once(ChildrenQuery(student_id, Subcollection.MEASUREMENTS))

    result = serialize_student(student)
    result["history"] = [h.model_dump(mode="json") for h in history]
    result["measurements"] = measurement_trends(measurements)
    result["weight_chart"] = weight_series(measurements)
    return result


@router.patch("/api/students/{student_id}")
def update_student(
    student_id: str,
    request: StudentUpdateRequest,
    store: DocumentStore = Depends(get_document_store),
    ledger: LedgerEngine = Depends(get_ledger)
):
    """Edit name, phone or package fee."""
    ledger.edit_student(student_id, **request.model_dump(exclude_none=True))
    return serialize_student(store.get_student(student_id))


@router.delete("/api/students/{student_id}")
def delete_student(student_id: str, ledger: LedgerEngine = Depends(get_ledger)):
    """Delete the student record (history and measurements are kept)."""
    ledger.delete_student(student_id)
    return {"message": "Student deleted", "student_id": student_id}


@router.post("/api/students/{student_id}/lessons/consume")
def consume_lesson(
    student_id: str,
    guarded: bool = Query(False, description="Refuse when no lessons remain"),
    store: DocumentStore = Depends(get_document_store),
    ledger: LedgerEngine = Depends(get_ledger)
):
    """Deduct one lesson. Unguarded calls may take the count below zero."""
    ledger.consume_lesson(student_id, guarded=guarded)
    return serialize_student(store.get_student(student_id))


@router.post("/api/students/{student_id}/payments")
def record_payment(
    student_id: str,
    request: PaymentRequest,
    store: DocumentStore = Depends(get_document_store),
    ledger: LedgerEngine = Depends(get_ledger)
):
    """Add a payment to the student's balance."""
    ledger.record_payment(student_id, request.amount)
    return serialize_student(store.get_student(student_id))


@router.post("/api/students/{student_id}/measurements", status_code=201)
def add_measurement(
    student_id: str,
    request: MeasurementRequest,
    ledger: LedgerEngine = Depends(get_ledger)
):
    """Record a body measurement. Not written to the history log."""
    measurement_id = ledger.add_measurement(student_id, **request.model_dump())
    return {"id": measurement_id, "student_id": student_id}
