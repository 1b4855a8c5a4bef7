"""
FastAPI dependencies wiring routes to the store, engine and auth service.

Tests override get_document_store / get_auth_service through
app.dependency_overrides.
"""

import threading

from fastapi import Depends

from app.services.auth import AuthService
from app.services.document_store import DocumentStore, get_store
from app.services.ledger import LedgerEngine

_auth_service = None
_auth_lock = threading.Lock()


def get_document_store() -> DocumentStore:
    return get_store()


def get_ledger(store: DocumentStore = Depends(get_document_store)) -> LedgerEngine:
    return LedgerEngine(store)


def get_auth_service() -> AuthService:
    # Failed-attempt counters live on the instance, so keep one per process
    global _auth_service
    with _auth_lock:
        if _auth_service is None:
            _auth_service = AuthService()
        return _auth_service
