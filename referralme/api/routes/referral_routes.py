"""
Referral Request Routes

POST /referral-requests - Ask for a referral on a job posting (seeker only)
GET /referral-requests/my - Requests sent by the current user
GET /referral-requests/received - Requests received by the current referrer
GET /referral-requests/stats - Referrer dashboard counts
GET /referral-requests/{request_id} - One request (sender or receiver)
PATCH /referral-requests/{request_id}/status - Lifecycle transition (owning referrer)
"""

import logging
from datetime import datetime
from typing import List

from fastapi import APIRouter, BackgroundTasks, HTTPException, Depends
from sqlalchemy import insert, select, update

from referralme.db.postgres import get_db_session, fetch_one, fetch_all, execute_raw_sql
from referralme.db.schema import job_postings, referral_requests, users
from referralme.core.auth import get_current_user, get_current_referrer, get_current_seeker
from referralme.services import ats_service, email_service, gamification_service
from referralme.services.lifecycle import REFERRAL_LIFECYCLE, InvalidTransitionError
from referralme.schemas.schemas import (
    ReferralRequestCreate, ReferralStatusUpdate, ReferralRequestResponse,
    ReferrerDashboardStats
)

router = APIRouter(prefix="/referral-requests", tags=["Referral Requests"])
logger = logging.getLogger(__name__)


def _with_posting():
    """Referral columns plus the posting's title and company."""
    return (
        select(
            referral_requests,
            job_postings.c.title.label("job_title"),
            job_postings.c.company.label("company"),
        )
        .select_from(referral_requests.join(job_postings, referral_requests.c.job_posting_id == job_postings.c.id))
    )


@router.post("", response_model=ReferralRequestResponse, status_code=201)
async def create_referral_request(
    data: ReferralRequestCreate,
    background_tasks: BackgroundTasks,
    seeker: dict = Depends(get_current_seeker)
):
    """
    Request a referral. The request starts as pending and is addressed to the
    referrer who owns the posting. One request per seeker and posting.
    """
    now = datetime.utcnow()
    with get_db_session() as db:
        posting = fetch_one(db, select(job_postings).where(job_postings.c.id == data.job_posting_id))
        if not posting:
            raise HTTPException(status_code=404, detail="Job posting not found")
        if not posting["is_active"]:
            raise HTTPException(status_code=400, detail="Job posting is no longer active")
        if posting["referrer_id"] == seeker["id"]:
            raise HTTPException(status_code=400, detail="Cannot request a referral for your own posting")

        existing = fetch_one(
            db,
            select(referral_requests.c.id).where(
                referral_requests.c.seeker_id == seeker["id"],
                referral_requests.c.job_posting_id == posting["id"]
            )
        )
        if existing:
            raise HTTPException(status_code=400, detail="You already requested a referral for this posting")

        result = db.execute(
            insert(referral_requests).values(
                **data.model_dump(exclude={"experience_level"}),
                experience_level=data.experience_level.value,
                seeker_id=seeker["id"],
                referrer_id=posting["referrer_id"],
                status=REFERRAL_LIFECYCLE.initial,
                ats_score=ats_service.score_for_posting(data.resume_text, posting),
                created_at=now,
                updated_at=now,
            )
        )
        request_id = result.inserted_primary_key[0]

        gamification_service.record_event(db, posting["referrer_id"], "total_applications", active=False)

        row = fetch_one(db, _with_posting().where(referral_requests.c.id == request_id))
        referrer = fetch_one(db, select(users).where(users.c.id == posting["referrer_id"]))

    logger.info("Seeker %s requested referral %s on posting %s", seeker["id"], request_id, posting["id"])
    background_tasks.add_task(email_service.notify_request_received, referrer, posting, row)
    return ReferralRequestResponse(**row)


@router.get("/my", response_model=List[ReferralRequestResponse])
async def my_referral_requests(user: dict = Depends(get_current_user)):
    """Requests the current user has sent, newest first."""
    with get_db_session() as db:
        rows = fetch_all(
            db,
            _with_posting()
            .where(referral_requests.c.seeker_id == user["id"])
            .order_by(referral_requests.c.created_at.desc(), referral_requests.c.id.desc())
        )
    return [ReferralRequestResponse(**r) for r in rows]


@router.get("/received", response_model=List[ReferralRequestResponse])
async def received_referral_requests(referrer: dict = Depends(get_current_referrer)):
    """Requests addressed to the current referrer, newest first."""
    with get_db_session() as db:
        rows = fetch_all(
            db,
            _with_posting()
            .where(referral_requests.c.referrer_id == referrer["id"])
            .order_by(referral_requests.c.created_at.desc(), referral_requests.c.id.desc())
        )
    return [ReferralRequestResponse(**r) for r in rows]


@router.get("/stats", response_model=ReferrerDashboardStats)
async def referrer_stats(referrer: dict = Depends(get_current_referrer)):
    """Dashboard counts for the current referrer."""
    by_status_rows = execute_raw_sql("""
        SELECT status, COUNT(*) AS count
        FROM referral_requests
        WHERE referrer_id = :rid
        GROUP BY status
    """, {"rid": referrer["id"]})

    active_rows = execute_raw_sql("""
        SELECT COUNT(*) AS count
        FROM job_postings
        WHERE referrer_id = :rid AND is_active = :active
    """, {"rid": referrer["id"], "active": True})

    by_status = {r["status"]: r["count"] for r in by_status_rows}
    return ReferrerDashboardStats(
        active_posts=active_rows[0]["count"],
        pending_requests=by_status.get("pending", 0),
        successful_referrals=by_status.get("completed", 0),
        total_requests=sum(by_status.values()),
        by_status=by_status
    )


@router.get("/{request_id}", response_model=ReferralRequestResponse)
async def get_referral_request(request_id: int, user: dict = Depends(get_current_user)):
    """One request, visible to the seeker who sent it and the referrer who received it."""
    with get_db_session() as db:
        row = fetch_one(db, _with_posting().where(referral_requests.c.id == request_id))
    if not row:
        raise HTTPException(status_code=404, detail="Referral request not found")
    if user["id"] not in (row["seeker_id"], row["referrer_id"]):
        raise HTTPException(status_code=403, detail="Not your referral request")
    return ReferralRequestResponse(**row)


@router.patch("/{request_id}/status", response_model=ReferralRequestResponse)
async def update_referral_status(
    request_id: int,
    data: ReferralStatusUpdate,
    background_tasks: BackgroundTasks,
    referrer: dict = Depends(get_current_referrer)
):
    """
    Move a request along its lifecycle. Only the referrer who owns the job
    posting may do this; moves outside the transition table answer 409.
    """
    with get_db_session() as db:
        current = fetch_one(db, select(referral_requests).where(referral_requests.c.id == request_id))
        if not current:
            raise HTTPException(status_code=404, detail="Referral request not found")

        posting = fetch_one(db, select(job_postings).where(job_postings.c.id == current["job_posting_id"]))
        if posting["referrer_id"] != referrer["id"]:
            raise HTTPException(status_code=403, detail="Only the posting's referrer can update this request")

        try:
            new_status = REFERRAL_LIFECYCLE.ensure_transition(current["status"], data.status.value)
        except InvalidTransitionError as e:
            raise HTTPException(status_code=409, detail=str(e))

        changes = {"status": new_status, "updated_at": datetime.utcnow()}
        for field in ("notes", "interview_date", "interview_notes"):
            value = getattr(data, field)
            if value is not None:
                changes[field] = value

        db.execute(update(referral_requests).where(referral_requests.c.id == request_id).values(**changes))

        if new_status == "completed":
            gamification_service.record_event(db, referrer["id"], "successful_placements")
        else:
            gamification_service.record_event(db, referrer["id"])

        row = fetch_one(db, _with_posting().where(referral_requests.c.id == request_id))

    logger.info("Referral %s: %s -> %s", request_id, current["status"], new_status)
    background_tasks.add_task(email_service.notify_status_update, row, posting, new_status, referrer)
    return ReferralRequestResponse(**row)
