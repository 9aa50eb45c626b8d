"""
Raport Gradebook - FastAPI Application Entry Point.

This is the main application module that:
1. Initializes the FastAPI app with CORS middleware
2. Sets up structured JSON logging
3. Implements request ID middleware (X-Request-ID header)
4. Maps gradebook errors to JSON responses
5. Registers all API route handlers and the health check

The application follows a modular architecture:
- routes/: API endpoint handlers (presentation boundary)
- models/: pydantic domain records and the SQLAlchemy state table
- services/: history stack, mutation engine, ledger, persistence
- logging_config.py: Structured logging configuration
- database.py: Database connection management
"""

import time
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from raport.logging_config import (
    setup_logging, get_logger, log_with_context,
    request_id_var, generate_request_id
)
from raport.errors import GradebookError
from raport.routes import session, roster, subjects, grades, history, reports
from raport.database import DATABASE_URL, create_tables

# Import models so the state table is registered with Base.metadata
from raport.models.app_state import AppStateRecord

# ──────────────────────────────────────────────────────────────
# Initialize structured logging BEFORE anything else
# ──────────────────────────────────────────────────────────────
setup_logging()
logger = get_logger("http")

if DATABASE_URL.startswith("sqlite"):
    logger.info("Using SQLite, creating tables directly")
    create_tables()

app = FastAPI(
    title="Raport Gradebook",
    description=(
        "Grade book and report card service for a single school: roster management, "
        "grade entry, undoable data history, class ledgers and report cards."
    ),
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

# Allows the browser client to call the API; restrict origins in production.
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
    Generate a unique request ID for every HTTP request, expose it in
    the X-Request-ID response header and log start/completion with latency.
    """
    req_id = generate_request_id()
    request_id_var.set(req_id)

    start_time = time.time()

    log_with_context(logger, "INFO",
        f"Request started: {request.method} {request.url.path}",
        context={"request_id": req_id},
        extra_data={
            "ip": request.client.host if request.client else "unknown",
            "role": request.headers.get("x-role", ""),
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


@app.exception_handler(GradebookError)
async def gradebook_error_handler(request: Request, exc: GradebookError):
    """Validation, integrity and permission failures: nothing was changed."""
    log_with_context(logger, "WARNING",
        f"Request rejected: {exc.message}",
        extra_data={"status_code": exc.status_code, "error_type": type(exc).__name__})
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


app.include_router(session.router, tags=["Session"])
app.include_router(roster.router, tags=["Roster"])
app.include_router(subjects.router, tags=["Subjects"])
app.include_router(grades.router, tags=["Grades"])
app.include_router(history.router, tags=["History"])
app.include_router(reports.router, tags=["Reports"])


@app.get("/health", tags=["Health"])
def health_check():
    """Health check endpoint for Docker health checks and monitoring."""
    return {"status": "healthy", "service": "raport-gradebook", "version": "1.0.0"}


@app.get("/", tags=["Root"])
def root():
    """Root endpoint with API information."""
    return {
        "service": "Raport Gradebook",
        "version": "1.0.0",
        "docs": "/docs",
        "health": "/health",
        "endpoints": {
            "session": "POST /api/session",
            "roster": "GET /api/roster",
            "student_edit": "POST /api/students/{add|update|delete}",
            "subject_edit": "POST /api/subjects/{add|update|delete}",
            "bulk_upload": "POST /api/bulk/{students|teachers|homeroom}",
            "grades": "POST /api/grades",
            "undo": "POST /api/history/undo",
            "redo": "POST /api/history/redo",
            "ledger": "GET /api/reports/ledger",
            "report_card": "GET /api/reports/card/{student_id}"
        }
    }
