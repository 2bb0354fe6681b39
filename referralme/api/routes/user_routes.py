"""
User Routes

POST /users/role - Choose seeker or referrer (once), sends the welcome e-mail
PUT /users/profile - Update own profile; a replaced uploaded image is deleted
GET /users/{user_id} - Public profile (records a profile view)
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, BackgroundTasks, HTTPException, Depends, Request
from sqlalchemy import insert, or_, select, update

from referralme.db.postgres import get_db_session, fetch_one
from referralme.db.schema import ats_analysis, profile_views, referral_requests, users
from referralme.core.auth import get_current_user, get_optional_user
from referralme.services import email_service, gamification_service
from referralme.services.file_storage import StorageUnavailableError, filename_from_url, get_file_storage
from referralme.schemas.schemas import (
    RoleSelect, UserProfileUpdate, UserResponse, PublicProfileResponse
)

router = APIRouter(prefix="/users", tags=["Users"])
logger = logging.getLogger(__name__)

IMAGE_FIELDS = ("profile_image_url", "profile_icon")


def is_profile_complete(user: dict) -> bool:
    """Name and role for everyone, plus company/designation for referrers or skills for seekers."""
    if not user.get("first_name") or not user.get("role"):
        return False
    if user["role"] == "referrer":
        return bool(user.get("company") and user.get("designation"))
    return bool(user.get("skills"))


def release_upload(url: Optional[str]) -> bool:
    """
    Delete a stored upload that a profile no longer points at.

    Kept while any profile image, referral request or ATS analysis still
    references it. Returns True when a file was deleted.
    """
    filename = filename_from_url(url)
    if not filename:
        return False

    with get_db_session() as db:
        in_use = (
            db.execute(select(users.c.id).where(or_(*(users.c[f] == url for f in IMAGE_FIELDS))).limit(1)).first()
            or db.execute(select(referral_requests.c.id).where(referral_requests.c.resume_url == url).limit(1)).first()
            or db.execute(select(ats_analysis.c.id).where(ats_analysis.c.resume_url == url).limit(1)).first()
        )
    if in_use:
        return False

    try:
        return get_file_storage().delete(filename)
    except StorageUnavailableError as e:
        logger.warning("Could not delete replaced upload %s: %s", filename, e)
        return False


@router.post("/role", response_model=UserResponse)
async def select_role(
    data: RoleSelect,
    background_tasks: BackgroundTasks,
    user: dict = Depends(get_current_user)
):
    """Pick a role after first sign-in. The role cannot be changed later."""
    if user["role"]:
        if user["role"] == data.role.value:
            return UserResponse(**user)
        raise HTTPException(status_code=400, detail=f"Role already selected: {user['role']}")

    user["role"] = data.role.value
    with get_db_session() as db:
        db.execute(
            update(users)
            .where(users.c.id == user["id"])
            .values(role=data.role.value, profile_completed=is_profile_complete(user), updated_at=datetime.utcnow())
        )
        if data.role.value == "referrer":
            gamification_service.get_or_create_stats(db, user["id"])
        row = fetch_one(db, select(users).where(users.c.id == user["id"]))

    logger.info("User %s selected role %s", user["id"], row["role"])
    background_tasks.add_task(email_service.notify_welcome, row)
    return UserResponse(**row)


@router.put("/profile", response_model=UserResponse)
async def update_profile(
    data: UserProfileUpdate,
    background_tasks: BackgroundTasks,
    user: dict = Depends(get_current_user)
):
    """Update own profile. Only provided fields are updated."""
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields to update")

    merged = {**user, **changes}
    changes["profile_completed"] = is_profile_complete(merged)
    changes["updated_at"] = datetime.utcnow()

    with get_db_session() as db:
        db.execute(update(users).where(users.c.id == user["id"]).values(**changes))
        row = fetch_one(db, select(users).where(users.c.id == user["id"]))

    for field in IMAGE_FIELDS:
        if field in changes and user.get(field) and changes[field] != user[field]:
            background_tasks.add_task(release_upload, user[field])

    return UserResponse(**row)


@router.get("/{user_id}", response_model=PublicProfileResponse)
async def get_public_profile(
    user_id: str,
    request: Request,
    viewer: dict = Depends(get_optional_user)
):
    """Public profile. Views by anyone but the owner are recorded."""
    with get_db_session() as db:
        profile = fetch_one(db, select(users).where(users.c.id == user_id))
        if not profile:
            raise HTTPException(status_code=404, detail="User not found")

        if not viewer or viewer["id"] != user_id:
            db.execute(
                insert(profile_views).values(
                    viewed_user_id=user_id,
                    viewer_user_id=viewer["id"] if viewer else None,
                    viewer_ip=request.client.host if request.client else None,
                    user_agent=request.headers.get("user-agent"),
                    viewed_at=datetime.utcnow(),
                )
            )
            db.execute(
                update(users)
                .where(users.c.id == user_id)
                .values(profile_views=users.c.profile_views + 1)
            )
            profile["profile_views"] += 1
            if profile["role"] == "referrer":
                gamification_service.record_event(db, user_id, "profile_views", active=False)

    return PublicProfileResponse(**profile)
