"""
Job Matching Service

PURPOSE:
Rank active job postings for a seeker. The same skill coverage picks the
seekers who get a job alert when a posting goes live.

HOW IT WORKS:
1. Build a feature text for the seeker (skills, designation, experience, bio)
   and for every active posting (title, description, requirements)
2. Turn each text into a hashed bag-of-words vector (numpy)
3. Cosine similarity between the seeker vector and each posting vector
4. Skill coverage: share of the seeker's skills mentioned by the posting
5. match_score = 0.6 * coverage + 0.4 * similarity

No external embedding API; the vectors are deterministic, so results are
reproducible and computed on request.
"""

import hashlib
import re
from typing import List

import numpy as np
from sqlalchemy import select

from referralme.db.postgres import get_db_session, fetch_all
from referralme.db.schema import job_postings, users

EMBEDDING_DIM = 256
SKILL_WEIGHT = 0.6
SIMILARITY_WEIGHT = 0.4

_TOKEN_RE = re.compile(r"[a-z0-9][a-z0-9+#.]*[a-z0-9+#]|[a-z0-9]")


# ============================================================
# EMBEDDING GENERATION
# ============================================================

def tokenize(text: str) -> List[str]:
    return _TOKEN_RE.findall((text or "").lower())


def text_embedding(text: str, dim: int = EMBEDDING_DIM) -> np.ndarray:
    """
    Hashed bag-of-words vector, L2-normalized.

    Each token lands in a bucket chosen by its sha256 digest, with a sign
    from the same digest, so word order does not matter.
    """
    vector = np.zeros(dim)
    for token in tokenize(text):
        digest = hashlib.sha256(token.encode()).digest()
        idx = int.from_bytes(digest[:4], "big") % dim
        sign = 1.0 if digest[4] % 2 == 0 else -1.0
        vector[idx] += sign

    magnitude = np.linalg.norm(vector)
    if magnitude > 0:
        vector = vector / magnitude
    return vector


# ============================================================
# SIMILARITY COMPUTATION
# ============================================================

def cosine_similarity(vec1, vec2) -> float:
    """
    Compute cosine similarity between two vectors.

    Returns:
        Float between -1 and 1 (1 = identical, 0 = orthogonal, -1 = opposite)
    """
    a = np.asarray(vec1, dtype=float)
    b = np.asarray(vec2, dtype=float)
    if a.shape != b.shape:
        raise ValueError("Vectors must have same dimension")

    magnitude_a = np.linalg.norm(a)
    magnitude_b = np.linalg.norm(b)
    if magnitude_a == 0 or magnitude_b == 0:
        return 0.0

    return float(np.dot(a, b) / (magnitude_a * magnitude_b))


def skill_coverage(skills: List[str], posting_text: str) -> List[str]:
    """Seeker skills mentioned in the posting text (case-insensitive, whole words)."""
    text = " " + " ".join(tokenize(posting_text)) + " "
    matched = []
    for skill in skills:
        normalized = " ".join(tokenize(skill))
        if normalized and f" {normalized} " in text:
            matched.append(skill)
    return matched


def seeker_features(user: dict) -> str:
    parts = [" ".join(user.get("skills") or [])]
    for field in ("designation", "experience", "bio"):
        if user.get(field):
            parts.append(user[field])
    return " ".join(parts)


def posting_features(posting: dict) -> str:
    return " ".join(filter(None, [posting["title"], posting["description"], posting.get("requirements")]))


# ============================================================
# RANKING
# ============================================================

def score_posting(user: dict, posting: dict, seeker_vector=None) -> dict:
    skills = user.get("skills") or []
    text = posting_features(posting)

    if seeker_vector is None:
        seeker_vector = text_embedding(seeker_features(user))
    similarity = max(0.0, cosine_similarity(seeker_vector, text_embedding(text)))

    matched = skill_coverage(skills, text)
    skill_match_pct = (len(matched) / len(skills) * 100) if skills else 0.0

    match_score = SKILL_WEIGHT * (skill_match_pct / 100) + SIMILARITY_WEIGHT * similarity
    return {
        "job_posting": posting,
        "match_score": round(match_score, 4),
        "skill_match_pct": round(skill_match_pct, 2),
        "skills_matched": matched,
        "similarity": round(similarity, 4),
    }


def rank_jobs_for_seeker(user: dict, limit: int = 10, min_score: float = 0.0) -> List[dict]:
    """
    Score every active posting for the seeker, best first.
    Postings owned by the seeker themselves are skipped.
    """
    with get_db_session() as db:
        postings = fetch_all(
            db,
            select(job_postings)
            .where(job_postings.c.is_active.is_(True), job_postings.c.referrer_id != user["id"])
            .order_by(job_postings.c.created_at.desc(), job_postings.c.id.desc())
        )

    seeker_vector = text_embedding(seeker_features(user))
    matches = [score_posting(user, posting, seeker_vector) for posting in postings]
    matches = [m for m in matches if m["match_score"] >= min_score]
    # Stable sort keeps newest first among equal scores
    matches.sort(key=lambda m: m["match_score"], reverse=True)
    return matches[:limit]


def seekers_for_posting(posting: dict, limit: int = 50) -> List[dict]:
    """
    Seekers with at least one skill the posting mentions, most skills first.
    The posting's own referrer and seekers without an e-mail are skipped.
    """
    with get_db_session() as db:
        seekers = fetch_all(
            db,
            select(users)
            .where(users.c.role == "seeker", users.c.email.is_not(None), users.c.id != posting["referrer_id"])
            .order_by(users.c.created_at, users.c.id)
        )

    text = posting_features(posting)
    matched = []
    for seeker in seekers:
        covered = skill_coverage(seeker.get("skills") or [], text)
        if covered:
            matched.append((len(covered), seeker))
    matched.sort(key=lambda pair: pair[0], reverse=True)
    return [seeker for _, seeker in matched[:limit]]
