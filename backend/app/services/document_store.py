"""
Document Store - the narrow persistence contract the ledger engine uses.

The engine only ever talks to a DocumentStore: create/get/update/delete a
student, append to one of its subcollections (history, measurements),
read a query once or subscribe to it.

SqlAlchemyDocumentStore implements the contract on top of SQLAlchemy:
- remaining_lessons and balance are changed with SQL-side increments
  (col = col + :delta), never read-modify-write.
- Every SQLAlchemyError is rolled back, logged on the "store" channel and
  re-raised as StoreError.
- Subscribers get the current snapshot on subscribe and a fresh snapshot
  after every committed write that touches their query. Deliveries are
  serialised, so snapshots arrive in commit order.
"""

import threading
import time
import uuid
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional, Protocol, Union, runtime_checkable

from sqlalchemy import delete, select, update
from sqlalchemy.exc import SQLAlchemyError

from app.database import SessionLocal
from app.errors import NotFoundError, StoreError
from app.logging_config import get_logger, log_with_context
from app.models.history import HistoryEntry
from app.models.measurement import MeasurementEntry
from app.models.student import Student
from app.schemas import HistoryRecord, MeasurementRecord, StudentRecord
from app.services.collation import name_sort_key

logger = get_logger("store")


class Subcollection(str, Enum):
    HISTORY = "history"
    MEASUREMENTS = "measurements"


CREATE_FIELDS = frozenset({"name", "phone", "total_lessons", "remaining_lessons", "total_fee", "balance"})
EDITABLE_FIELDS = frozenset({"name", "phone", "total_fee"})
INCREMENT_FIELDS = frozenset({"remaining_lessons", "balance"})
CHILD_FIELDS = {
    Subcollection.HISTORY: frozenset({"action", "note"}),
    Subcollection.MEASUREMENTS: frozenset({"weight", "body_fat_pct", "waist", "hip"}),
}
_CHILD_MODELS = {
    Subcollection.HISTORY: HistoryEntry,
    Subcollection.MEASUREMENTS: MeasurementEntry,
}


# ── Queries ──────────────────────────────────────────────────

@dataclass(frozen=True)
class StudentsQuery:
    """All students, ordered by name (Turkish collation) or creation time."""
    order_by: str = "name"
    descending: bool = False

    def __post_init__(self):
        if self.order_by not in ("name", "created_at"):
            raise ValueError("Unsupported sort key: {}".format(self.order_by))


@dataclass(frozen=True)
class StudentQuery:
    """A single student document; its snapshot is None once deleted."""
    student_id: str


@dataclass(frozen=True)
class ChildrenQuery:
    """A student's history or measurements, ordered by date."""
    student_id: str
    subcollection: Subcollection
    descending: bool = True


Query = Union[StudentsQuery, StudentQuery, ChildrenQuery]
QUERY_TYPES = (StudentsQuery, StudentQuery, ChildrenQuery)
Unsubscribe = Callable[[], None]


@dataclass(frozen=True)
class _Change:
    student_id: str
    subcollection: Optional[Subcollection] = None

    def affects(self, query) -> bool:
        if isinstance(query, StudentsQuery):
            return self.subcollection is None
        if isinstance(query, StudentQuery):
            return self.subcollection is None and query.student_id == self.student_id
        if isinstance(query, ChildrenQuery):
            return (self.subcollection == query.subcollection
                    and query.student_id == self.student_id)
        return False


@dataclass
class _Subscription:
    query: object
    callback: Callable
    on_error: Optional[Callable] = None
    active: bool = True


@runtime_checkable
class DocumentStore(Protocol):
    """Persistence contract consumed by LedgerEngine."""

    def create_student(self, fields: dict) -> str:
        ...

    def get_student(self, student_id: str) -> StudentRecord:
        ...

    def update_student(self, student_id: str, fields: dict = None,
                       increments: dict = None, require_lessons: bool = False) -> bool:
        ...

    def delete_student(self, student_id: str) -> None:
        ...

    def append_child(self, student_id: str, subcollection: Subcollection,
                     fields: dict) -> str:
        ...

    def subscribe(self, query, callback: Callable,
                  on_error: Callable = None) -> Unsubscribe:
        ...

    def list_once(self, query):
        ...


# ── Record conversion ────────────────────────────────────────

def _student_record(row: Student) -> StudentRecord:
    return StudentRecord.model_validate(row)


def _history_record(row: HistoryEntry) -> HistoryRecord:
    return HistoryRecord(id=str(row.id), student_id=row.student_id,
                         action=row.action, note=row.note, date=row.date)


def _measurement_record(row: MeasurementEntry) -> MeasurementRecord:
    return MeasurementRecord(id=str(row.id), student_id=row.student_id, date=row.date,
                             weight=row.weight, body_fat_pct=row.body_fat_pct,
                             waist=row.waist, hip=row.hip)


_CHILD_RECORDS = {
    Subcollection.HISTORY: _history_record,
    Subcollection.MEASUREMENTS: _measurement_record,
}


def _reject_unknown(keys, allowed, what: str):
    unknown = set(keys) - allowed
    if unknown:
        raise ValueError("Unsupported {} field(s): {}".format(what, ", ".join(sorted(unknown))))


class SqlAlchemyDocumentStore:
    """DocumentStore backed by a SQLAlchemy session factory."""

    def __init__(self, session_factory=SessionLocal):
        self._session_factory = session_factory
        self._subscriptions = {}
        self._pending = deque()
        self._draining = False
        self._lock = threading.RLock()

    @contextmanager
    def _session(self, operation: str, context: dict = None):
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except SQLAlchemyError as exc:
            db.rollback()
            log_with_context(logger, "ERROR", "Store operation failed: {}".format(operation),
                             context=context, extra_data={"error": str(exc)})
            raise StoreError("{} failed".format(operation)) from exc
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # ── Writes ───────────────────────────────────────────────

    def create_student(self, fields: dict) -> str:
        _reject_unknown(fields, CREATE_FIELDS, "student")
        student_id = str(uuid.uuid4())
        with self._session("create_student", {"student_id": student_id}) as db:
            db.add(Student(id=student_id, created_at=datetime.now(timezone.utc), **fields))

        log_with_context(logger, "INFO", "Student created",
                         context={"student_id": student_id})
        self._publish(_Change(student_id))
        return student_id

    def update_student(self, student_id: str, fields: dict = None,
                       increments: dict = None, require_lessons: bool = False) -> bool:
        """
        Apply field overwrites and SQL-side increments in one UPDATE.

        With require_lessons=True the row only changes while
        remaining_lessons > 0; the check and the write are the same
        statement. Returns False when that condition stopped the update.
        """
        fields = dict(fields or {})
        increments = dict(increments or {})
        _reject_unknown(fields, EDITABLE_FIELDS, "editable")
        _reject_unknown(increments, INCREMENT_FIELDS, "increment")
        if not fields and not increments:
            return True

        values = dict(fields)
        for column_name, delta in increments.items():
            values[column_name] = getattr(Student, column_name) + delta

        statement = update(Student).where(Student.id == student_id)
        if require_lessons:
            statement = statement.where(Student.remaining_lessons > 0)

        context = {"student_id": student_id}
        with self._session("update_student", context) as db:
            result = db.execute(statement.values(**values))
            if result.rowcount == 0:
                if db.get(Student, student_id) is None:
                    raise NotFoundError(student_id)
                applied = False
            else:
                applied = True

        if not applied:
            log_with_context(logger, "INFO", "Student update skipped: no remaining lessons",
                             context=context)
            return False

        log_with_context(logger, "INFO", "Student updated", context=context,
                         extra_data={"fields": sorted(fields), "increments": increments})
        self._publish(_Change(student_id))
        return True

    def delete_student(self, student_id: str) -> None:
        # Record-only: history and measurements are left in place
        with self._session("delete_student", {"student_id": student_id}) as db:
            result = db.execute(delete(Student).where(Student.id == student_id))
            if result.rowcount == 0:
                raise NotFoundError(student_id)

        log_with_context(logger, "INFO", "Student deleted",
                         context={"student_id": student_id})
        self._publish(_Change(student_id))

    def append_child(self, student_id: str, subcollection: Subcollection,
                     fields: dict) -> str:
        subcollection = Subcollection(subcollection)
        _reject_unknown(fields, CHILD_FIELDS[subcollection], subcollection.value)
        model = _CHILD_MODELS[subcollection]

        context = {"student_id": student_id, "subcollection": subcollection.value}
        with self._session("append_child", context) as db:
            if db.get(Student, student_id) is None:
                raise NotFoundError(student_id)
            row = model(student_id=student_id, date=datetime.now(timezone.utc), **fields)
            db.add(row)
            db.flush()
            child_id = str(row.id)

        log_with_context(logger, "DEBUG", "Child record appended", context=context,
                         extra_data={"child_id": child_id})
        self._publish(_Change(student_id, subcollection))
        return child_id

    # ── Reads ────────────────────────────────────────────────

    def get_student(self, student_id: str) -> StudentRecord:
        with self._session("get_student", {"student_id": student_id}) as db:
            row = db.get(Student, student_id)
            if row is None:
                raise NotFoundError(student_id)
            return _student_record(row)

    def list_once(self, query):
        start_time = time.time()
        with self._session("list_once") as db:
            if isinstance(query, StudentsQuery):
                snapshot = self._list_students(db, query)
            elif isinstance(query, StudentQuery):
                row = db.get(Student, query.student_id)
                snapshot = _student_record(row) if row is not None else None
            elif isinstance(query, ChildrenQuery):
                snapshot = self._list_children(db, query)
            else:
                raise TypeError("Unsupported query: {!r}".format(query))

        log_with_context(logger, "DEBUG", "Snapshot read: {}".format(type(query).__name__),
                         extra_data={"duration_ms": round((time.time() - start_time) * 1000, 2)})
        return snapshot

    def _list_students(self, db, query: StudentsQuery) -> list:
        if query.order_by == "created_at":
            column = Student.created_at.desc() if query.descending else Student.created_at.asc()
            rows = db.scalars(select(Student).order_by(column, Student.id)).all()
            return [_student_record(row) for row in rows]

        records = [_student_record(row) for row in db.scalars(select(Student)).all()]
        return sorted(records, key=lambda r: name_sort_key(r.name), reverse=query.descending)

    def _list_children(self, db, query: ChildrenQuery) -> list:
        subcollection = Subcollection(query.subcollection)
        model = _CHILD_MODELS[subcollection]
        if query.descending:
            ordering = (model.date.desc(), model.id.desc())
        else:
            ordering = (model.date.asc(), model.id.asc())
        rows = db.scalars(
            select(model).where(model.student_id == query.student_id).order_by(*ordering)
        ).all()
        to_record = _CHILD_RECORDS[subcollection]
        return [to_record(row) for row in rows]

    # ── Live subscriptions ───────────────────────────────────

    def subscribe(self, query, callback: Callable,
                  on_error: Callable = None) -> Unsubscribe:
        """
        Register callback for live snapshots of query.

        The current snapshot is delivered before this returns. The returned
        callable removes the subscription; calling it twice is harmless.
        """
        if not isinstance(query, QUERY_TYPES):
            raise TypeError("Unsupported query: {!r}".format(query))
        subscription = _Subscription(query=query, callback=callback, on_error=on_error)
        token = object()
        with self._lock:
            self._subscriptions[token] = subscription
            self._deliver(subscription)

        def unsubscribe():
            with self._lock:
                subscription.active = False
                self._subscriptions.pop(token, None)

        return unsubscribe

    def _publish(self, change: _Change):
        with self._lock:
            self._pending.append(change)
            # A callback that writes to the store queues its change here;
            # the outer loop delivers it after the current round
            if self._draining:
                return
            self._draining = True
            try:
                while self._pending:
                    current = self._pending.popleft()
                    for subscription in list(self._subscriptions.values()):
                        if subscription.active and current.affects(subscription.query):
                            self._deliver(subscription)
            finally:
                self._draining = False

    def _deliver(self, subscription: _Subscription):
        try:
            snapshot = self.list_once(subscription.query)
        except StoreError as exc:
            if subscription.on_error is None:
                log_with_context(logger, "ERROR", "Snapshot delivery failed",
                                 extra_data={"query": repr(subscription.query), "error": str(exc)})
                return
            try:
                subscription.on_error(exc)
            except Exception:
                log_with_context(logger, "ERROR", "Subscriber error handler raised",
                                 extra_data={"query": repr(subscription.query), "error": str(exc)},
                                 exc_info=True)
            return

        try:
            subscription.callback(snapshot)
        except Exception:
            log_with_context(logger, "ERROR", "Subscriber callback raised",
                             extra_data={"query": repr(subscription.query)}, exc_info=True)


# ── Process-wide store ───────────────────────────────────────

_default_store = None
_default_store_lock = threading.Lock()


def get_store() -> SqlAlchemyDocumentStore:
    """Return the process-wide store, creating it on first use."""
    global _default_store
    with _default_store_lock:
        if _default_store is None:
            _default_store = SqlAlchemyDocumentStore(SessionLocal)
        return _default_store
