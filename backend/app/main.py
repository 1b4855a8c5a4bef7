"""
Trainer Ledger - FastAPI Application Entry Point.

This is the main application module that:
1. Initializes the FastAPI app with CORS middleware
2. Sets up structured JSON logging
3. Implements request ID middleware (X-Request-ID header)
4. Maps domain errors to JSON error responses
5. Registers all API route handlers and the health check

The application follows a modular architecture:
- routes/: API endpoint handlers
- models/: SQLAlchemy ORM models
- services/: Ledger engine, document store, auth, measurement trends
- logging_config.py: Structured logging configuration
- database.py: Database connection management
"""

import time
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id
)
from app.errors import (
    AuthError, AuthErrorCode, LedgerError, NotFoundError,
    PartialFailureError, StoreError, ValidationError
)
from app.routes import students, dashboard, auth
from app.database import create_tables, is_sqlite

# Import all models so they are registered with Base.metadata
from app.models import Student, HistoryEntry, MeasurementEntry, Trainer  # noqa: F401

# ──────────────────────────────────────────────────────────────
# Initialize structured logging BEFORE anything else
# ──────────────────────────────────────────────────────────────
setup_logging()
logger = get_logger("http")

# Auto-create tables for SQLite local development
if is_sqlite():
    logger.info("Using SQLite, creating tables directly")
    create_tables()

app = FastAPI(
    title="Trainer Ledger",
    description=(
        "Client management for personal trainers: lesson packages, payments, "
        "body measurements and a dashboard of students needing attention."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# In production, restrict origins to the actual frontend domain
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["X-Request-ID"]
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """
    Generate a request ID per HTTP request, expose it in X-Request-ID
    and log request start/completion with latency.
    """
    req_id = generate_request_id()
    request_id_var.set(req_id)
    start_time = time.time()

    log_with_context(logger, "INFO",
        f"Request started: {request.method} {request.url.path}",
        context={"request_id": req_id},
        extra_data={
            "ip": request.client.host if request.client else "unknown",
            "user_agent": request.headers.get("user-agent", ""),
            "query_params": dict(request.query_params)
        })

    response = await call_next(request)

    duration_ms = (time.time() - start_time) * 1000
    response.headers["X-Request-ID"] = req_id

    log_with_context(logger, "INFO",
        f"Request completed: {request.method} {request.url.path} → {response.status_code}",
        context={"request_id": req_id},
        extra_data={
            "duration_ms": round(duration_ms, 2),
            "status_code": response.status_code
        })

    return response


# ──────────────────────────────────────────────────────────────
# Domain error handlers
# ──────────────────────────────────────────────────────────────
def _status_for(exc: LedgerError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, NotFoundError):
        return 404
    if isinstance(exc, PartialFailureError):
        return 500
    if isinstance(exc, StoreError):
        return 503
    if isinstance(exc, AuthError):
        return 429 if exc.reason == AuthErrorCode.TOO_MANY_ATTEMPTS else 401
    return 500


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    status_code = _status_for(exc)
    level = "ERROR" if status_code >= 500 else "WARNING"
    log_with_context(logger, level,
        f"Request failed: {request.method} {request.url.path} → {status_code}",
        extra_data={"error": exc.code, "detail": exc.message})
    return JSONResponse(status_code=status_code, content=exc.to_dict())


app.include_router(auth.router, tags=["Auth"])
app.include_router(students.router, tags=["Students"])
app.include_router(dashboard.router, tags=["Dashboard"])


@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint for Docker health checks and monitoring."""
    return {"status": "healthy", "service": "trainer-ledger-backend", "version": "1.0.0"}


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "service": "Trainer Ledger",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "login": "POST /api/auth/login",
            "students_list": "GET /api/students",
            "student_create": "POST /api/students",
            "student_detail": "GET /api/students/{id}",
            "student_update": "PATCH /api/students/{id}",
            "student_delete": "DELETE /api/students/{id}",
            "consume_lesson": "POST /api/students/{id}/lessons/consume",
            "payment": "POST /api/students/{id}/payments",
            "measurement": "POST /api/students/{id}/measurements",
            "dashboard": "GET /api/dashboard"
        }
    }
