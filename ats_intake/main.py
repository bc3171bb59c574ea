# ats_intake/main.py

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, RedirectResponse
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from ats_intake.api.v1 import candidates
from ats_intake.core.config import settings
from ats_intake.core.exceptions import IntakeError, StorageError, SubmissionValidationError
from ats_intake.db.database import check_database_connection, get_db, init_db

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create upload directories and any missing tables."""
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)
    Path(settings.STAGING_DIR).mkdir(parents=True, exist_ok=True)
    init_db()
    logger.info("ATS intake API started.")
    yield
    logger.info("ATS intake API shutting down.")


# Create a FastAPI instance
app = FastAPI(
    title="ATS Candidate Intake API",
    description="Backend API for the applicant tracking system's candidate intake form",
    version="1.0.0",
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# All candidate endpoints live under /api/candidates/...
app.include_router(candidates.router, prefix="/api")


# --- Error envelopes: {"success": false, "error": ..., "errors": [...]} ---
@app.exception_handler(IntakeError)
async def intake_error_handler(request: Request, exc: IntakeError):
    content = {"success": False, "error": exc.message}
    if isinstance(exc, SubmissionValidationError):
        content["errors"] = [error.model_dump() for error in exc.errors]
    if isinstance(exc, StorageError):
        logger.error(f"{request.method} {request.url.path} failed: {exc.cause!r}")
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    error = str(exc.detail)
    if exc.status_code == 404 and exc.detail == "Not Found":
        error = "Route not found"
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": error},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part not in ("query", "path", "body")),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "Invalid request parameters", "errors": errors},
    )


# Basic root endpoint
@app.get("/", include_in_schema=False)
async def read_root():
    return RedirectResponse(url="/docs")


@app.get("/health", tags=["health"])
def health(db: Session = Depends(get_db)):
    """Service status, including whether the database answers."""
    database_ok = check_database_connection(db)
    return {
        "status": "healthy" if database_ok else "degraded",
        "database": "connected" if database_ok else "disconnected",
        "version": app.version,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
