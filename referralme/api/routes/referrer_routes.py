"""
Referrer Routes - public gamification data

GET /referrers/{referrer_id}/impact - Impact stats and reputation
GET /referrers/{referrer_id}/achievements - Unlocked badges
POST /referrers/{referrer_id}/testimonials - Leave a testimonial (seeker only)
GET /referrers/{referrer_id}/testimonials - Public testimonials
POST /referrers/{referrer_id}/success-stories - Add a success story (the referrer)
GET /referrers/{referrer_id}/success-stories - Public success stories
"""

from datetime import datetime
from typing import List

from fastapi import APIRouter, HTTPException, Depends
from sqlalchemy import insert, select

from referralme.db.postgres import get_db_session, fetch_one, fetch_all
from referralme.db.schema import referrer_testimonials, success_stories, users
from referralme.core.auth import get_current_referrer, get_current_seeker
from referralme.services import gamification_service
from referralme.schemas.schemas import (
    ImpactStatsResponse, AchievementResponse, TestimonialCreate, TestimonialResponse,
    SuccessStoryCreate, SuccessStoryResponse
)

router = APIRouter(prefix="/referrers", tags=["Referrers"])


def _require_referrer(db, referrer_id: str) -> dict:
    referrer = fetch_one(db, select(users).where(users.c.id == referrer_id))
    if not referrer or referrer["role"] != "referrer":
        raise HTTPException(status_code=404, detail="Referrer not found")
    return referrer


@router.get("/{referrer_id}/impact", response_model=ImpactStatsResponse)
async def get_impact(referrer_id: str):
    with get_db_session() as db:
        _require_referrer(db, referrer_id)
        stats = gamification_service.get_or_create_stats(db, referrer_id)
    return ImpactStatsResponse(**stats)


@router.get("/{referrer_id}/achievements", response_model=List[AchievementResponse])
async def get_achievements(referrer_id: str):
    with get_db_session() as db:
        _require_referrer(db, referrer_id)
        rows = gamification_service.list_achievements(db, referrer_id)
    return [AchievementResponse(**r) for r in rows]


@router.post("/{referrer_id}/testimonials", response_model=TestimonialResponse, status_code=201)
async def add_testimonial(referrer_id: str, data: TestimonialCreate, seeker: dict = Depends(get_current_seeker)):
    """One testimonial per seeker and referrer."""
    with get_db_session() as db:
        _require_referrer(db, referrer_id)
        existing = fetch_one(
            db,
            select(referrer_testimonials.c.id).where(
                referrer_testimonials.c.referrer_id == referrer_id,
                referrer_testimonials.c.seeker_id == seeker["id"]
            )
        )
        if existing:
            raise HTTPException(status_code=400, detail="You already left a testimonial for this referrer")

        seeker_name = " ".join(filter(None, [seeker["first_name"], seeker["last_name"]])) or seeker["email"] or "Anonymous"
        result = db.execute(
            insert(referrer_testimonials).values(
                referrer_id=referrer_id,
                seeker_id=seeker["id"],
                seeker_name=seeker_name,
                rating=data.rating,
                testimonial=data.testimonial,
                job_title=data.job_title,
                is_public=data.is_public,
                created_at=datetime.utcnow(),
            )
        )
        gamification_service.record_event(db, referrer_id, "testimonial_count", active=False)
        row = fetch_one(
            db,
            select(referrer_testimonials).where(referrer_testimonials.c.id == result.inserted_primary_key[0])
        )
    return TestimonialResponse(**row)


@router.get("/{referrer_id}/testimonials", response_model=List[TestimonialResponse])
async def list_testimonials(referrer_id: str):
    with get_db_session() as db:
        _require_referrer(db, referrer_id)
        rows = fetch_all(
            db,
            select(referrer_testimonials)
            .where(
                referrer_testimonials.c.referrer_id == referrer_id,
                referrer_testimonials.c.is_public.is_(True)
            )
            .order_by(referrer_testimonials.c.created_at.desc())
        )
    return [TestimonialResponse(**r) for r in rows]


@router.post("/{referrer_id}/success-stories", response_model=SuccessStoryResponse, status_code=201)
async def add_success_story(
    referrer_id: str,
    data: SuccessStoryCreate,
    referrer: dict = Depends(get_current_referrer)
):
    if referrer["id"] != referrer_id:
        raise HTTPException(status_code=403, detail="You can only add stories to your own profile")

    with get_db_session() as db:
        result = db.execute(
            insert(success_stories).values(
                referrer_id=referrer_id,
                **data.model_dump(),
                is_verified=False,
                created_at=datetime.utcnow(),
            )
        )
        row = fetch_one(db, select(success_stories).where(success_stories.c.id == result.inserted_primary_key[0]))
    return SuccessStoryResponse(**row)


@router.get("/{referrer_id}/success-stories", response_model=List[SuccessStoryResponse])
async def list_success_stories(referrer_id: str):
    with get_db_session() as db:
        _require_referrer(db, referrer_id)
        rows = fetch_all(
            db,
            select(success_stories)
            .where(success_stories.c.referrer_id == referrer_id, success_stories.c.is_public.is_(True))
            .order_by(success_stories.c.created_at.desc())
        )
    return [SuccessStoryResponse(**r) for r in rows]
