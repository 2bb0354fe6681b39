"""
Job Posting Routes

POST /job-postings - Create job posting (referrer only)
POST /job-postings/generate-description - Draft description and requirements (referrer only)
GET /job-postings - List active postings with filters
GET /job-postings/my - Postings of the current referrer
GET /job-postings/{posting_id} - Get one posting
PUT /job-postings/{posting_id} - Update posting (owner only)
DELETE /job-postings/{posting_id} - Deactivate posting (owner only)
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException, Depends, Query
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import func, insert, select, update

from referralme.db.postgres import get_db_session, fetch_one, fetch_all
from referralme.db.schema import job_postings
from referralme.core.auth import get_current_referrer
from referralme.services import email_service, gamification_service, job_description_service
from referralme.schemas.schemas import (
    JobPostingCreate, JobPostingUpdate, JobPostingResponse, JobPostingListResponse,
    JobDescriptionRequest, JobDescriptionResponse, MessageResponse
)

router = APIRouter(prefix="/job-postings", tags=["Job Postings"])
logger = logging.getLogger(__name__)


def get_owned_posting(db, posting_id: int, referrer_id: str) -> dict:
    """404 when missing, 403 when another referrer owns it."""
    posting = fetch_one(db, select(job_postings).where(job_postings.c.id == posting_id))
    if not posting:
        raise HTTPException(status_code=404, detail="Job posting not found")
    if posting["referrer_id"] != referrer_id:
        raise HTTPException(status_code=403, detail="Not your job posting")
    return posting


@router.post("", response_model=JobPostingResponse, status_code=201)
async def create_job_posting(
    posting: JobPostingCreate,
    background_tasks: BackgroundTasks,
    referrer: dict = Depends(get_current_referrer)
):
    """Create a new job posting. Only referrers can post; postings start active."""
    now = datetime.utcnow()
    with get_db_session() as db:
        result = db.execute(
            insert(job_postings).values(
                **posting.model_dump(),
                referrer_id=referrer["id"],
                is_active=True,
                created_at=now,
                updated_at=now,
            )
        )
        posting_id = result.inserted_primary_key[0]
        row = fetch_one(db, select(job_postings).where(job_postings.c.id == posting_id))

        gamification_service.record_event(db, referrer["id"], "total_jobs_posted")

    logger.info("Referrer %s posted job %s (%s at %s)", referrer["id"], posting_id, row["title"], row["company"])
    background_tasks.add_task(email_service.notify_job_posted, referrer, row)
    background_tasks.add_task(email_service.notify_job_alerts, referrer, row)
    return JobPostingResponse(**row)


@router.post("/generate-description", response_model=JobDescriptionResponse)
async def generate_job_description(
    data: JobDescriptionRequest,
    referrer: dict = Depends(get_current_referrer)
):
    """Draft a description and requirements for a posting. Nothing is saved."""
    result = await run_in_threadpool(
        job_description_service.generate_description,
        data.title,
        data.company,
        data.experience_level.value,
        data.skills
    )
    logger.info("Referrer %s drafted a description for %s (%s)", referrer["id"], data.title, result["source"])
    return JobDescriptionResponse(**result)


@router.get("", response_model=JobPostingListResponse)
async def list_job_postings(
    page: int = Query(1, ge=1),
    page_size: int = Query(10, ge=1, le=50),
    search: Optional[str] = Query(None, description="Search in title and description"),
    company: Optional[str] = Query(None),
    location: Optional[str] = Query(None)
):
    """List active job postings with filters and pagination, newest first."""
    conditions = [job_postings.c.is_active.is_(True)]

    if search:
        pattern = f"%{search}%"
        conditions.append(job_postings.c.title.ilike(pattern) | job_postings.c.description.ilike(pattern))
    if company:
        conditions.append(job_postings.c.company.ilike(f"%{company}%"))
    if location:
        conditions.append(job_postings.c.location.ilike(f"%{location}%"))

    with get_db_session() as db:
        total = db.execute(select(func.count()).select_from(job_postings).where(*conditions)).scalar_one()
        rows = fetch_all(
            db,
            select(job_postings)
            .where(*conditions)
            .order_by(job_postings.c.created_at.desc(), job_postings.c.id.desc())
            .limit(page_size)
            .offset((page - 1) * page_size)
        )

    return JobPostingListResponse(
        job_postings=[JobPostingResponse(**r) for r in rows],
        total=total,
        page=page,
        page_size=page_size
    )


@router.get("/my", response_model=List[JobPostingResponse])
async def my_job_postings(referrer: dict = Depends(get_current_referrer)):
    """All postings of the current referrer, active or not."""
    with get_db_session() as db:
        rows = fetch_all(
            db,
            select(job_postings)
            .where(job_postings.c.referrer_id == referrer["id"])
            .order_by(job_postings.c.created_at.desc(), job_postings.c.id.desc())
        )
    return [JobPostingResponse(**r) for r in rows]


@router.get("/{posting_id}", response_model=JobPostingResponse)
async def get_job_posting(posting_id: int):
    """Get details of a specific job posting."""
    with get_db_session() as db:
        row = fetch_one(db, select(job_postings).where(job_postings.c.id == posting_id))
    if not row:
        raise HTTPException(status_code=404, detail="Job posting not found")
    return JobPostingResponse(**row)


@router.put("/{posting_id}", response_model=JobPostingResponse)
async def update_job_posting(
    posting_id: int,
    data: JobPostingUpdate,
    referrer: dict = Depends(get_current_referrer)
):
    """Update a job posting. Only the owning referrer can update."""
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")
    # Required columns cannot be cleared
    for field in ("title", "company", "location", "description", "is_active"):
        if field in changes and changes[field] is None:
            raise HTTPException(status_code=400, detail=f"'{field}' cannot be empty")

    with get_db_session() as db:
        get_owned_posting(db, posting_id, referrer["id"])
        db.execute(
            update(job_postings)
            .where(job_postings.c.id == posting_id)
            .values(**changes, updated_at=datetime.utcnow())
        )
        row = fetch_one(db, select(job_postings).where(job_postings.c.id == posting_id))

    return JobPostingResponse(**row)


@router.delete("/{posting_id}", response_model=MessageResponse)
async def deactivate_job_posting(posting_id: int, referrer: dict = Depends(get_current_referrer)):
    """Deactivate a job posting. Postings are never deleted; existing requests keep their reference."""
    with get_db_session() as db:
        get_owned_posting(db, posting_id, referrer["id"])
        db.execute(
            update(job_postings)
            .where(job_postings.c.id == posting_id)
            .values(is_active=False, updated_at=datetime.utcnow())
        )

    return MessageResponse(message="Job posting deactivated")
