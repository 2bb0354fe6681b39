"""
ReferralMe - Main Application

FastAPI backend with:
- PostgreSQL (SQLAlchemy) for structured data
- Local disk or MongoDB GridFS for uploaded files
- Firebase ID token verification + server-side sessions
- DeepSeek AI for optional ATS scoring and job description drafts
- Brevo for e-mail notifications

Run: uvicorn referralme.main:app --reload
"""

import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from referralme.api.routes import api_router
from referralme.core.config import get_settings
from referralme.core.logging_config import setup_logging
from referralme.db.mongodb import init_mongo_indexes
from referralme.db.postgres import check_database_connection, init_schema
from referralme.services.file_storage import get_file_storage
from referralme.utils.file_upload import body_too_large

settings = get_settings()
setup_logging()
logger = logging.getLogger(__name__)

# Multipart endpoints whose declared body size is checked before parsing
UPLOAD_PATHS = {"/api/upload", "/api/ats/analyze"}

# Create FastAPI app
app = FastAPI(
    title="ReferralMe",
    description="""
    A job-referral marketplace API.

    ## Features
    - **Authentication**: Firebase ID token exchange for a server session token
    - **Job postings**: Referrers post openings, seekers browse and filter them
    - **Referral requests**: Seekers ask for referrals; referrers move them through a fixed lifecycle
    - **Uploads**: Resumes and images with type/size checks
    - **ATS**: Resume scoring with suggestions
    - **Community & mentorship**: Posts, comments, mentorship requests
    - **Gamification**: Impact score, reputation, achievements, testimonials
    - **Matching**: Postings ranked against the seeker's skills
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def reject_oversized_uploads(request: Request, call_next):
    """413 before the multipart parser spools a body that cannot fit the size ceiling."""
    if (
        request.method == "POST"
        and request.url.path in UPLOAD_PATHS
        and body_too_large(request.headers.get("content-length"), settings.upload_max_size_bytes)
    ):
        logger.info("Refused %s upload of %s bytes", request.url.path, request.headers.get("content-length"))
        return JSONResponse(
            status_code=413,
            content={"detail": f"File too large. Maximum size: {settings.upload_max_size_mb}MB"}
        )
    return await call_next(request)


@app.middleware("http")
async def log_api_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    if request.url.path.startswith("/api"):
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info("%s %s %s in %.0fms", request.method, request.url.path, response.status_code, duration_ms)
    return response


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})


# Include API routes
app.include_router(api_router, prefix="/api")


@app.on_event("startup")
async def startup_event():
    """Create tables, and GridFS indexes when that backend is enabled."""
    init_schema()
    if settings.storage_backend == "gridfs":
        try:
            init_mongo_indexes()
        except Exception as e:
            # Uploads fall back to inline data while MongoDB is down
            logger.warning("MongoDB index initialization failed: %s", e)


@app.get("/health", tags=["Health"])
async def health_check():
    """Liveness plus database and file storage reachability."""
    database_ok = check_database_connection()
    storage = get_file_storage()
    storage_ok = storage.is_available()

    return {
        "status": "healthy" if database_ok else "degraded",
        "database": "connected" if database_ok else "disconnected",
        "storage": {"backend": storage.name, "status": "available" if storage_ok else "unavailable"},
    }
