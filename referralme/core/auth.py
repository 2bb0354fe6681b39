"""
Authentication Utility - server sessions and access tokens.

Provides:
- First sign-in user creation from verified identity claims
- Session rows in the `sessions` table (sid, sess, expire)
- JWT access token creation/verification (carries sub + sid)
- FastAPI dependencies for protected routes
"""

import logging
import secrets
from datetime import datetime, timedelta
from typing import Optional, Tuple

from jose import JWTError, jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import delete, insert, select, update
from sqlalchemy.exc import IntegrityError

from referralme.core.config import get_settings
from referralme.db.postgres import get_db_session, fetch_one
from referralme.db.schema import sessions, users

settings = get_settings()
logger = logging.getLogger(__name__)

# Bearer token extractor; we raise our own 401 when it is missing
bearer_scheme = HTTPBearer(auto_error=False)


class EmailInUseError(Exception):
    """A new identity carries an e-mail that another account already holds."""


def create_access_token(data: dict, expires_at: datetime) -> str:
    """Create JWT access token."""
    to_encode = data.copy()
    to_encode.update({"exp": expires_at, "iat": datetime.utcnow()})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and verify JWT token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def _split_name(full_name: Optional[str]) -> Tuple[Optional[str], Optional[str]]:
    if not full_name:
        return None, None
    parts = full_name.strip().split(" ", 1)
    return parts[0], (parts[1] if len(parts) > 1 else None)


def get_or_create_user(identity: dict) -> Tuple[dict, bool]:
    """
    Find the user for verified identity claims, creating it on first sign-in.

    Returns:
        (user row as dict, created flag)

    Raises:
        EmailInUseError when the identity is new but its e-mail belongs to
        another user
    """
    with get_db_session() as db:
        user = fetch_one(db, select(users).where(users.c.id == identity["uid"]))
        if user:
            # Keep the verification flag in sync with the provider
            if identity.get("email_verified") and not user["is_email_verified"]:
                db.execute(
                    update(users)
                    .where(users.c.id == user["id"])
                    .values(is_email_verified=True, updated_at=datetime.utcnow())
                )
                user["is_email_verified"] = True
            return user, False

        email = identity.get("email")
        if email and fetch_one(db, select(users.c.id).where(users.c.email == email)):
            raise EmailInUseError(email)

        first_name, last_name = _split_name(identity.get("name"))
        try:
            db.execute(
                insert(users).values(
                    id=identity["uid"],
                    email=email,
                    first_name=first_name,
                    last_name=last_name,
                    profile_image_url=identity.get("picture"),
                    is_email_verified=bool(identity.get("email_verified")),
                    skills=[],
                )
            )
        except IntegrityError as e:
            # Lost a race with a concurrent first sign-in
            raise EmailInUseError(email) from e
        user = fetch_one(db, select(users).where(users.c.id == identity["uid"]))

    logger.info("Created user %s on first sign-in", identity["uid"])
    return user, True


def purge_expired_sessions(db) -> int:
    result = db.execute(delete(sessions).where(sessions.c.expire < datetime.utcnow()))
    return result.rowcount


def open_session(user: dict) -> Tuple[str, datetime]:
    """
    Create a session row for the user and return (access_token, expires_at).
    """
    sid = secrets.token_urlsafe(32)
    now = datetime.utcnow()
    expires_at = now + timedelta(minutes=settings.jwt_expire_minutes)

    with get_db_session() as db:
        purge_expired_sessions(db)
        db.execute(
            insert(sessions).values(
                sid=sid,
                sess={"user_id": user["id"], "email": user.get("email"), "issued_at": now.isoformat()},
                expire=expires_at,
            )
        )

    token = create_access_token({"sub": user["id"], "sid": sid}, expires_at)
    return token, expires_at


def close_session(sid: str) -> bool:
    with get_db_session() as db:
        result = db.execute(delete(sessions).where(sessions.c.sid == sid))
        return result.rowcount > 0


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> dict:
    """
    FastAPI dependency - Get current authenticated user.

    Usage:
        @router.get("/protected")
        async def route(user: dict = Depends(get_current_user)):
            return user
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid or expired token",
        headers={"WWW-Authenticate": "Bearer"},
    )

    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = decode_token(credentials.credentials)
    if not payload:
        raise credentials_exception

    user_id = payload.get("sub")
    sid = payload.get("sid")
    if not user_id or not sid:
        raise credentials_exception

    with get_db_session() as db:
        session_row = fetch_one(
            db,
            select(sessions.c.sid).where(
                sessions.c.sid == sid,
                sessions.c.expire > datetime.utcnow()
            )
        )
        if not session_row:
            raise credentials_exception

        user = fetch_one(db, select(users).where(users.c.id == user_id))

    if not user:
        raise credentials_exception

    user["sid"] = sid
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)
) -> Optional[dict]:
    """Dependency for public routes that behave differently for signed-in users."""
    if credentials is None:
        return None
    try:
        return await get_current_user(credentials)
    except HTTPException:
        return None


async def get_current_referrer(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require referrer role."""
    if user["role"] != "referrer":
        raise HTTPException(status_code=403, detail="Referrers only")
    return user


async def get_current_seeker(user: dict = Depends(get_current_user)) -> dict:
    """Dependency - Require seeker role."""
    if user["role"] != "seeker":
        raise HTTPException(status_code=403, detail="Seekers only")
    return user
