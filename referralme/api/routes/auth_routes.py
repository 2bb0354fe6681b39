"""
Authentication Routes

POST /auth/session - Exchange an identity provider ID token for an access token
DELETE /auth/session - Sign out (drop the server-side session)
GET /auth/me - Get current user info
"""

import logging

from fastapi import APIRouter, HTTPException, Depends, status
from fastapi.concurrency import run_in_threadpool

from referralme.core.auth import (
    EmailInUseError, get_current_user, get_or_create_user, open_session, close_session
)
from referralme.core.identity import IdentityTokenError, verify_id_token
from referralme.schemas.schemas import SessionCreate, TokenResponse, UserResponse, MessageResponse

router = APIRouter(prefix="/auth", tags=["Authentication"])
logger = logging.getLogger(__name__)


@router.post("/session", response_model=TokenResponse)
async def create_session(request: SessionCreate):
    """
    Sign in with the identity provider's ID token.

    The token is verified (signature, audience, issuer, expiry) before any
    claim is used. The user is created on first sign-in; 409 when a new
    account's e-mail is already taken by another account.
    Include the returned token in requests: Authorization: Bearer <token>
    """
    try:
        identity = await run_in_threadpool(verify_id_token, request.id_token)
    except IdentityTokenError as e:
        logger.info("Rejected ID token: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        user, created = get_or_create_user(identity)
    except EmailInUseError:
        logger.info("Sign-in for %s refused: e-mail already registered", identity["uid"])
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This e-mail is already registered to another account",
        )
    token, expires_at = open_session(user)

    return TokenResponse(
        access_token=token,
        user_id=user["id"],
        role=user["role"],
        expires_at=expires_at,
        is_new_user=created
    )


@router.delete("/session", response_model=MessageResponse)
async def delete_session(user: dict = Depends(get_current_user)):
    """Sign out. The access token stops working immediately."""
    close_session(user["sid"])
    return MessageResponse(message="Signed out")


@router.get("/me", response_model=UserResponse)
async def get_me(user: dict = Depends(get_current_user)):
    """Get current authenticated user's info."""
    return UserResponse(**user)
