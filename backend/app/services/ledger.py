"""
Ledger Engine - lesson credits, payments, debt and attention alerts.

Pure rules (no store access):
- can_consume_lesson(student): remaining_lessons > 0
- remaining_debt(student): max((total_fee or 0) - (balance or 0), 0)
- compute_dashboard(students): totals and average remaining lessons
- compute_attention_list(students): at most one alert per student,
  first matching rule wins:
    1. remaining_lessons <= 0           -> package finished (priority 1)
    2. remaining_debt > 0               -> in debt          (priority 1)
    3. 0 < remaining_lessons <= 2       -> running low      (priority 2)
  sorted by (priority, name collation)

Commands (LedgerEngine) validate their input before touching the store,
then perform the record update followed by a history append. A failed
update aborts the command with nothing written; a failed append after a
successful update raises PartialFailureError so the caller can reconcile.

consume_lesson has two modes. The default is unguarded and may push
remaining_lessons below zero, which the detail view uses for manual
corrections. guarded=True refuses once can_consume_lesson() is false, matching the
list view where the button is disabled at zero. The check runs inside
the store UPDATE, so concurrent guarded calls cannot go below zero.
"""

import math
import os
import time
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List, Optional

from app.errors import PartialFailureError, StoreError, ValidationError
from app.logging_config import get_logger, log_with_context
from app.schemas import AttentionItem, AttentionReason, DashboardStats, HistoryAction, StudentRecord
from app.services.collation import name_sort_key
from app.services.document_store import DocumentStore, Subcollection

# Channel logger for ledger operations
logger = get_logger("ledger")

# ──────────────────────────────────────────────────────────────
# Configuration constants
# ──────────────────────────────────────────────────────────────
CURRENCY = os.getenv("CURRENCY", "TRY")
LOW_LESSON_THRESHOLD = int(os.getenv("LOW_LESSON_THRESHOLD", "2"))

LESSON_CONSUMED_NOTE = "1 lesson manually deducted."
INFO_UPDATED_NOTE = "Student info updated."
PACKAGE_FINISHED_MESSAGE = "Package fully finished"

MEASUREMENT_FIELDS = ("weight", "body_fat_pct", "waist", "hip")


def format_amount(value: float) -> str:
    """1000 -> '1,000'; 1250.5 -> '1,250.50'."""
    if float(value).is_integer():
        return "{:,.0f}".format(value)
    return "{:,.2f}".format(value)


# ── Pure rules ───────────────────────────────────────────────

def can_consume_lesson(student: StudentRecord) -> bool:
    return (student.remaining_lessons or 0) > 0


def remaining_debt(student: StudentRecord) -> float:
    """Outstanding amount; missing fee or balance count as zero."""
    return float(max((student.total_fee or 0) - (student.balance or 0), 0))


def compute_dashboard(students: Iterable[StudentRecord]) -> DashboardStats:
    students = list(students)
    total_students = len(students)
    total_revenue = sum((s.balance or 0) for s in students)

    if total_students == 0:
        avg_remaining = 0.0
    else:
        total_remaining = sum((s.remaining_lessons or 0) for s in students)
        avg_remaining = float(
            Decimal(total_remaining / total_students).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
        )

    return DashboardStats(
        total_students=total_students,
        total_revenue=float(total_revenue),
        avg_remaining_lessons=avg_remaining,
    )


def _attention_for(student: StudentRecord) -> Optional[AttentionItem]:
    remaining = student.remaining_lessons or 0
    if remaining <= 0:
        return AttentionItem(student=student, reason=AttentionReason.PACKAGE_FINISHED,
                             priority=1, message=PACKAGE_FINISHED_MESSAGE)

    debt = remaining_debt(student)
    if debt > 0:
        return AttentionItem(student=student, reason=AttentionReason.IN_DEBT,
                             priority=1, message="{} {} owed".format(format_amount(debt), CURRENCY))

    if remaining <= LOW_LESSON_THRESHOLD:
        return AttentionItem(student=student, reason=AttentionReason.LESSONS_RUNNING_LOW,
                             priority=2, message="Only {} {} left".format(
                                 remaining, "lesson" if remaining == 1 else "lessons"))
    return None


def compute_attention_list(students: Iterable[StudentRecord]) -> List[AttentionItem]:
    items = [item for item in (_attention_for(s) for s in students) if item is not None]
    items.sort(key=lambda item: (item.priority, name_sort_key(item.student.name)))
    return items


# ── Input validation ─────────────────────────────────────────

def _require_number(value, field: str, allow_zero: bool) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError("{} must be a number".format(field), field=field)
    if not math.isfinite(value):
        raise ValidationError("{} must be a finite number".format(field), field=field)
    if value < 0 or (value == 0 and not allow_zero):
        bound = "zero or greater" if allow_zero else "greater than zero"
        raise ValidationError("{} must be {}".format(field, bound), field=field)
    return float(value)


def _require_name(name) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError("name is required", field="name")
    return name.strip()


class LedgerEngine:
    """
    Command side of the ledger.

    The store is injected; the engine keeps no state of its own. Writes
    are last-write-wins: lesson and balance changes use store-side
    increments and are safe under concurrent callers, edit_student
    overwrites and assumes a single editor.
    """

    def __init__(self, store: DocumentStore):
        self.store = store

    def create_student(self, name: str, total_lessons: int, balance: float = 0,
                       phone: Optional[str] = None, total_fee: Optional[float] = None) -> str:
        name = _require_name(name)
        if isinstance(total_lessons, bool) or not isinstance(total_lessons, int) or total_lessons < 0:
            raise ValidationError("total_lessons must be a whole number zero or greater",
                                  field="total_lessons")
        balance = _require_number(balance, "balance", allow_zero=True)
        if total_fee is not None:
            total_fee = _require_number(total_fee, "total_fee", allow_zero=True)

        student_id = self.store.create_student({
            "name": name,
            "phone": phone or None,
            "total_lessons": total_lessons,
            "remaining_lessons": total_lessons,
            "total_fee": total_fee,
            "balance": balance,
        })
        log_with_context(logger, "INFO", "Student registered: {}".format(name),
                         context={"student_id": student_id},
                         extra_data={"total_lessons": total_lessons, "balance": balance})
        return student_id

    def consume_lesson(self, student_id: str, guarded: bool = False) -> None:
        start_time = time.time()
        if guarded:
            applied = self.store.update_student(student_id, increments={"remaining_lessons": -1},
                                                require_lessons=True)
            if not applied:
                raise ValidationError("No remaining lessons to deduct", field="remaining_lessons")
        else:
            self.store.update_student(student_id, increments={"remaining_lessons": -1})
        self._append_history(student_id, HistoryAction.LESSON_CONSUMED, LESSON_CONSUMED_NOTE,
                             applied="remaining_lessons -1")

        log_with_context(logger, "INFO", "Lesson consumed",
                         context={"student_id": student_id},
                         extra_data={"guarded": guarded,
                                     "duration_ms": round((time.time() - start_time) * 1000, 2)})

    def record_payment(self, student_id: str, amount: float) -> None:
        amount = _require_number(amount, "amount", allow_zero=False)

        self.store.update_student(student_id, increments={"balance": amount})
        note = "{} {} added.".format(format_amount(amount), CURRENCY)
        self._append_history(student_id, HistoryAction.PAYMENT_RECEIVED, note,
                             applied="balance +{}".format(amount))

        log_with_context(logger, "INFO", "Payment recorded: {}".format(format_amount(amount)),
                         context={"student_id": student_id},
                         extra_data={"amount": amount})

    def edit_student(self, student_id: str, name: Optional[str] = None,
                     phone: Optional[str] = None, total_fee: Optional[float] = None) -> None:
        fields = {}
        if name is not None:
            fields["name"] = _require_name(name)
        if phone is not None:
            fields["phone"] = phone
        if total_fee is not None:
            fields["total_fee"] = _require_number(total_fee, "total_fee", allow_zero=True)
        if not fields:
            raise ValidationError("Nothing to update")

        self.store.update_student(student_id, fields=fields)
        self._append_history(student_id, HistoryAction.INFO_UPDATED, INFO_UPDATED_NOTE,
                             applied="fields {}".format(", ".join(sorted(fields))))

        log_with_context(logger, "INFO", "Student info updated",
                         context={"student_id": student_id},
                         extra_data={"fields": sorted(fields)})

    def add_measurement(self, student_id: str, weight: Optional[float] = None,
                        body_fat_pct: Optional[float] = None, waist: Optional[float] = None,
                        hip: Optional[float] = None) -> str:
        provided = {"weight": weight, "body_fat_pct": body_fat_pct, "waist": waist, "hip": hip}
        fields = {}
        for field in MEASUREMENT_FIELDS:
            value = provided[field]
            fields[field] = None if value is None else _require_number(value, field, allow_zero=False)
        if all(value is None for value in fields.values()):
            raise ValidationError("At least one measurement is required")

        # Measurements are not written to the history log
        measurement_id = self.store.append_child(student_id, Subcollection.MEASUREMENTS, fields)

        log_with_context(logger, "INFO", "Measurement added",
                         context={"student_id": student_id, "measurement_id": measurement_id},
                         extra_data={k: v for k, v in fields.items() if v is not None})
        return measurement_id

    def delete_student(self, student_id: str) -> None:
        self.store.delete_student(student_id)
        log_with_context(logger, "INFO", "Student deleted",
                         context={"student_id": student_id})

    def _append_history(self, student_id: str, action: HistoryAction, note: str, applied: str):
        try:
            self.store.append_child(student_id, Subcollection.HISTORY,
                                    {"action": action.value, "note": note})
        except StoreError as exc:
            log_with_context(logger, "ERROR", "History append failed after record update",
                             context={"student_id": student_id},
                             extra_data={"action": action.value, "applied": applied, "error": str(exc)})
            raise PartialFailureError(student_id, applied, cause=exc) from exc
