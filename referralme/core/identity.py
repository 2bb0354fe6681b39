"""
Identity provider token verification (Firebase Authentication ID tokens).

The client signs in with the identity provider and sends us its ID token once.
We check, before trusting any claim:
- RS256 signature against the provider's published x509 keys (by `kid`)
- audience == FIREBASE_PROJECT_ID
- issuer == https://securetoken.google.com/<project>
- expiry / issued-at (python-jose)
- a non-empty subject

Public keys are fetched with requests and cached until the Cache-Control
max-age of the key endpoint runs out.
"""

import logging
import re
import time
from typing import Dict, Optional, Tuple

import requests
from jose import ExpiredSignatureError, JWTError, jwt

from referralme.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

DEFAULT_KEYS_MAX_AGE = 3600
_MAX_AGE_RE = re.compile(r"max-age=(\d+)")

_key_cache: Dict[str, object] = {"keys": None, "expires_at": 0.0}


class IdentityTokenError(Exception):
    """The ID token is missing, malformed, unsigned by the provider or expired."""


def _cache_max_age(cache_control: Optional[str]) -> int:
    if not cache_control:
        return DEFAULT_KEYS_MAX_AGE
    match = _MAX_AGE_RE.search(cache_control)
    return int(match.group(1)) if match else DEFAULT_KEYS_MAX_AGE


def fetch_public_keys() -> Tuple[Dict[str, str], int]:
    """Download the provider's {kid: certificate PEM} map and its cache lifetime in seconds."""
    try:
        response = requests.get(
            settings.identity_keys_url,
            timeout=settings.identity_keys_timeout_seconds
        )
        response.raise_for_status()
        keys = response.json()
    except (requests.RequestException, ValueError) as e:
        raise IdentityTokenError(f"Could not load identity provider keys: {e}") from e

    if not isinstance(keys, dict) or not keys:
        raise IdentityTokenError("Identity provider returned no signing keys")

    logger.info("Loaded %d identity provider signing keys", len(keys))
    return keys, _cache_max_age(response.headers.get("Cache-Control"))


def get_public_keys(force_refresh: bool = False) -> Dict[str, str]:
    """Cached signing keys; refreshed after max-age or on demand."""
    if not force_refresh and _key_cache["keys"] and time.time() < _key_cache["expires_at"]:
        return _key_cache["keys"]
    keys, max_age = fetch_public_keys()
    _key_cache["keys"] = keys
    _key_cache["expires_at"] = time.time() + max_age
    return keys


def clear_key_cache() -> None:
    _key_cache["keys"] = None
    _key_cache["expires_at"] = 0.0


def verify_id_token(id_token: str) -> dict:
    """
    Verify an identity provider ID token and return its claims.

    Returns:
        {"uid", "email", "email_verified", "name", "picture"}

    Raises:
        IdentityTokenError when any check fails
    """
    if not settings.firebase_project_id:
        raise IdentityTokenError("FIREBASE_PROJECT_ID is not configured")

    try:
        header = jwt.get_unverified_header(id_token)
    except JWTError as e:
        raise IdentityTokenError("Malformed ID token") from e

    if header.get("alg") != "RS256":
        raise IdentityTokenError("ID token must be signed with RS256")

    kid = header.get("kid")
    if not kid:
        raise IdentityTokenError("ID token has no key id")

    keys = get_public_keys()
    if kid not in keys:
        # Keys rotate; one refresh before giving up
        keys = get_public_keys(force_refresh=True)
        if kid not in keys:
            raise IdentityTokenError("ID token signed with an unknown key")

    try:
        claims = jwt.decode(
            id_token,
            keys[kid],
            algorithms=["RS256"],
            audience=settings.firebase_project_id,
            issuer=settings.identity_issuer,
            options={"verify_at_hash": False}
        )
    except ExpiredSignatureError as e:
        raise IdentityTokenError("ID token has expired") from e
    except JWTError as e:
        raise IdentityTokenError(f"Invalid ID token: {e}") from e

    uid = claims.get("sub")
    if not uid or not isinstance(uid, str):
        raise IdentityTokenError("ID token has no subject")

    return {
        "uid": uid,
        "email": claims.get("email"),
        "email_verified": bool(claims.get("email_verified", False)),
        "name": claims.get("name"),
        "picture": claims.get("picture"),
    }
