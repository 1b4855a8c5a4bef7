"""
Dashboard API route - aggregate statistics and the attention list.

Everything here is recomputed from a fresh student snapshot on every
request; nothing is cached or incrementally maintained.
"""

import time
from fastapi import APIRouter, Depends

from app.dependencies import get_document_store
from app.services.document_store import DocumentStore, StudentsQuery
from app.services.ledger import compute_attention_list, compute_dashboard
from app.logging_config import get_logger, log_with_context

router = APIRouter()
logger = get_logger("http")

PREVIEW_SIZE = 5


@router.get("/api/dashboard")
def get_dashboard(store: DocumentStore = Depends(get_document_store)):
    """
    Get dashboard stats, prioritized alerts and a short student preview.

    Alerts are ordered by priority (1 = urgent) and then by name in the
    same collation as the student list.
    """
    start_time = time.time()

    students = store.list_once(StudentsQuery(order_by="name"))
    stats = compute_dashboard(students)
    attention = compute_attention_list(students)

    duration_ms = (time.time() - start_time) * 1000
    log_with_context(logger, "INFO",
        "Dashboard computed: {} students, {} alerts".format(stats.total_students, len(attention)),
        extra_data={"duration_ms": round(duration_ms, 2)})

    return {
        "stats": stats.model_dump(),
        "attention": [
            {
                "student": {"id": item.student.id, "name": item.student.name},
                "reason": item.reason.value,
                "priority": item.priority,
                "message": item.message
            }
            for item in attention
        ],
        "students": [
            {"id": s.id, "name": s.name}
            for s in students[:PREVIEW_SIZE]
        ]
    }
