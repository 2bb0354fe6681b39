import os
import shutil
import tempfile
import time

# Point the app at throwaway storage before any referralme module reads settings
_TMP_DIR = tempfile.mkdtemp(prefix="referralme-tests-")
os.environ["DATABASE_URL"] = f"sqlite:///{os.path.join(_TMP_DIR, 'test.db')}"
os.environ["UPLOAD_DIR"] = os.path.join(_TMP_DIR, "uploads")
os.environ["STORAGE_BACKEND"] = "local"
os.environ["UPLOAD_MAX_SIZE_MB"] = "1"
os.environ["FIREBASE_PROJECT_ID"] = "referralme-test"
os.environ["JWT_SECRET_KEY"] = "test-secret"
os.environ["DEEPSEEK_API_KEY"] = ""
os.environ["BREVO_API_KEY"] = ""

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import insert, select

from referralme.core import identity
from referralme.core.auth import open_session
from referralme.db.postgres import engine, get_db_session, fetch_one
from referralme.db.schema import metadata, users
from referralme.services import file_storage

PROJECT_ID = "referralme-test"
ISSUER = f"https://securetoken.google.com/{PROJECT_ID}"


@pytest.fixture(autouse=True)
def fresh_state():
    metadata.drop_all(engine)
    metadata.create_all(engine)
    shutil.rmtree(os.environ["UPLOAD_DIR"], ignore_errors=True)
    file_storage._storage = None
    identity.clear_key_cache()
    yield
    file_storage._storage = None
    identity.clear_key_cache()


@pytest.fixture
def client():
    from referralme.main import app
    return TestClient(app)


def insert_user(user_id, role=None, **fields):
    values = {
        "id": user_id,
        "email": f"{user_id}@example.com",
        "first_name": user_id.capitalize(),
        "role": role,
        "skills": [],
    }
    values.update(fields)
    with get_db_session() as db:
        db.execute(insert(users).values(**values))
        return fetch_one(db, select(users).where(users.c.id == user_id))


def headers_for(user):
    token, _ = open_session(user)
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_user():
    """make_user("alice", role="seeker", skills=[...]) -> (user row, auth headers)"""
    def _make(user_id, role=None, **fields):
        user = insert_user(user_id, role, **fields)
        return user, headers_for(user)
    return _make


@pytest.fixture
def referrer(make_user):
    return make_user("ref1", role="referrer", company="Acme", designation="Staff Engineer")


@pytest.fixture
def seeker(make_user):
    return make_user("seek1", role="seeker", skills=["Python", "SQL"])


# ============================================================
# IDENTITY PROVIDER
# ============================================================

def _rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _private_pem(key):
    return key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    ).decode()


def _public_pem(key):
    return key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode()


@pytest.fixture(scope="session")
def signing_key():
    return _rsa_key()


@pytest.fixture(scope="session")
def other_key():
    return _rsa_key()


@pytest.fixture
def provider_keys(monkeypatch, signing_key):
    """Serve {"kid-1": public key} instead of calling the key endpoint; counts fetches."""
    keys = {"kid-1": _public_pem(signing_key)}
    calls = []

    def fake_fetch():
        calls.append(1)
        return dict(keys), 3600

    monkeypatch.setattr(identity, "fetch_public_keys", fake_fetch)
    return {"keys": keys, "calls": calls}


@pytest.fixture
def make_id_token(signing_key):
    def _make(uid="firebase-uid-1", key=None, kid="kid-1", **overrides):
        now = int(time.time())
        claims = {
            "iss": ISSUER,
            "aud": PROJECT_ID,
            "sub": uid,
            "iat": now,
            "exp": now + 3600,
            "email": f"{uid}@example.com",
            "email_verified": True,
            "name": "Ada Lovelace",
            "picture": "https://example.com/ada.png",
        }
        claims.update(overrides)
        claims = {k: v for k, v in claims.items() if v is not None}
        return jwt.encode(
            claims,
            _private_pem(key or signing_key),
            algorithm="RS256",
            headers={"kid": kid},
        )
    return _make
