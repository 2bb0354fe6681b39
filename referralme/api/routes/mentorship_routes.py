"""
Mentorship Routes

POST /mentorship/requests - Ask a referrer for a mentorship session
GET /mentorship/requests - Requests the current user sent or received
PATCH /mentorship/requests/{request_id}/status - Lifecycle transition (mentor only)
"""

import logging
from datetime import datetime
from typing import List, Literal, Optional

from fastapi import APIRouter, HTTPException, Depends, Query
from sqlalchemy import insert, or_, select, update

from referralme.db.postgres import get_db_session, fetch_one, fetch_all
from referralme.db.schema import mentorship_requests, users
from referralme.core.auth import get_current_user
from referralme.services.lifecycle import MENTORSHIP_LIFECYCLE, InvalidTransitionError
from referralme.schemas.schemas import (
    MentorshipRequestCreate, MentorshipStatusUpdate, MentorshipRequestResponse
)

router = APIRouter(prefix="/mentorship", tags=["Mentorship"])
logger = logging.getLogger(__name__)


@router.post("/requests", response_model=MentorshipRequestResponse, status_code=201)
async def create_mentorship_request(data: MentorshipRequestCreate, user: dict = Depends(get_current_user)):
    """Request a session with a mentor. Mentors are referrers."""
    if data.mentor_id == user["id"]:
        raise HTTPException(status_code=400, detail="Cannot request mentorship from yourself")

    now = datetime.utcnow()
    with get_db_session() as db:
        mentor = fetch_one(db, select(users.c.id, users.c.role).where(users.c.id == data.mentor_id))
        if not mentor:
            raise HTTPException(status_code=404, detail="Mentor not found")
        if mentor["role"] != "referrer":
            raise HTTPException(status_code=400, detail="Only referrers offer mentorship")

        result = db.execute(
            insert(mentorship_requests).values(
                mentee_id=user["id"],
                mentor_id=data.mentor_id,
                topic=data.topic,
                message=data.message,
                preferred_date=data.preferred_date,
                duration_minutes=data.duration_minutes,
                meeting_type=data.meeting_type.value,
                status=MENTORSHIP_LIFECYCLE.initial,
                created_at=now,
                updated_at=now,
            )
        )
        row = fetch_one(
            db,
            select(mentorship_requests).where(mentorship_requests.c.id == result.inserted_primary_key[0])
        )

    return MentorshipRequestResponse(**row)


@router.get("/requests", response_model=List[MentorshipRequestResponse])
async def list_mentorship_requests(
    as_role: Optional[Literal["mentee", "mentor"]] = Query(None, alias="as"),
    user: dict = Depends(get_current_user)
):
    """Sent (as=mentee), received (as=mentor) or both, newest first."""
    if as_role == "mentee":
        condition = mentorship_requests.c.mentee_id == user["id"]
    elif as_role == "mentor":
        condition = mentorship_requests.c.mentor_id == user["id"]
    else:
        condition = or_(
            mentorship_requests.c.mentee_id == user["id"],
            mentorship_requests.c.mentor_id == user["id"]
        )

    with get_db_session() as db:
        rows = fetch_all(
            db,
            select(mentorship_requests)
            .where(condition)
            .order_by(mentorship_requests.c.created_at.desc(), mentorship_requests.c.id.desc())
        )
    return [MentorshipRequestResponse(**r) for r in rows]


@router.patch("/requests/{request_id}/status", response_model=MentorshipRequestResponse)
async def update_mentorship_status(
    request_id: int,
    data: MentorshipStatusUpdate,
    user: dict = Depends(get_current_user)
):
    with get_db_session() as db:
        current = fetch_one(db, select(mentorship_requests).where(mentorship_requests.c.id == request_id))
        if not current:
            raise HTTPException(status_code=404, detail="Mentorship request not found")
        if current["mentor_id"] != user["id"]:
            raise HTTPException(status_code=403, detail="Only the mentor can update this request")

        try:
            new_status = MENTORSHIP_LIFECYCLE.ensure_transition(current["status"], data.status.value)
        except InvalidTransitionError as e:
            raise HTTPException(status_code=409, detail=str(e))

        changes = {"status": new_status, "updated_at": datetime.utcnow()}
        for field in ("meeting_link", "calendar_event_id", "preferred_date"):
            value = getattr(data, field)
            if value is not None:
                changes[field] = value

        db.execute(update(mentorship_requests).where(mentorship_requests.c.id == request_id).values(**changes))
        row = fetch_one(db, select(mentorship_requests).where(mentorship_requests.c.id == request_id))

    logger.info("Mentorship %s: %s -> %s", request_id, current["status"], new_status)
    return MentorshipRequestResponse(**row)
