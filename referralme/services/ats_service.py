"""
ATS Resume Scoring Service

Scores resume text 0-100 on four axes (skills, experience, format, keywords)
and returns suggestions:
- AI scoring through DeepSeek when DEEPSEEK_API_KEY is set
- deterministic keyword heuristic otherwise, or when the AI call fails

Every analysis is stored as an immutable ats_analysis row.
"""

import logging
import re
from collections import Counter
from datetime import datetime
from typing import List, Optional

from sqlalchemy import insert, select

from referralme.core.config import get_settings
from referralme.db.postgres import get_db_session, fetch_one
from referralme.db.schema import ats_analysis
from referralme.services.deepseek_client import get_deepseek_client

settings = get_settings()
logger = logging.getLogger(__name__)

COMMON_KEYWORDS = [
    "experience", "skills", "education", "management", "development",
    "javascript", "react", "python", "aws", "sql",
]

BASE_SUGGESTIONS = [
    "Add more quantifiable achievements with specific numbers",
    "Include industry-specific keywords relevant to your target role",
    "Optimize section headers for better ATS parsing",
    "Add a professional summary section at the top",
]

STOPWORDS = {
    "the", "and", "for", "with", "you", "our", "are", "will", "this", "that",
    "from", "have", "has", "who", "your", "able", "work", "team", "role",
    "about", "into", "their", "they", "them", "years", "year", "must",
    "should", "would", "also", "such", "other", "than", "more", "well",
    "using", "including", "strong", "good", "plus", "etc", "all", "any",
    "can", "not", "but", "job", "new", "join",
}

MAX_JOB_KEYWORDS = 10
_WORD_RE = re.compile(r"[a-z][a-z0-9+#]*")


def tokenize(text: str) -> List[str]:
    return _WORD_RE.findall(text.lower())


def job_keywords(job_description: str, limit: int = MAX_JOB_KEYWORDS) -> List[str]:
    """Most frequent non-trivial words of a job description, in first-seen order on ties."""
    words = [w for w in tokenize(job_description) if len(w) > 2 and w not in STOPWORDS]
    return [word for word, _ in Counter(words).most_common(limit)]


def _clamp(value, low: int = 0, high: int = 100) -> int:
    return max(low, min(high, int(round(float(value)))))


def heuristic_analysis(resume_text: str, job_description: Optional[str] = None) -> dict:
    """
    Keyword heuristic.

    skills   = min(95, share of common keywords present)
    experience = 85 when the resume talks about years/experience, else 60
    format   = 80
    keywords = skills, or the share of job-description keywords present
    overall  = mean of the four
    """
    text = resume_text.lower()

    matched_common = [k for k in COMMON_KEYWORDS if k in text]
    skills_score = min(95.0, len(matched_common) / len(COMMON_KEYWORDS) * 100)
    experience_score = 85.0 if ("years" in text or "experience" in text) else 60.0
    format_score = 80.0
    keywords_score = skills_score

    matched = matched_common
    missing = [k for k in COMMON_KEYWORDS if k not in text]
    suggestions = list(BASE_SUGGESTIONS)

    jd_keywords = job_keywords(job_description) if job_description else []
    if jd_keywords:
        resume_words = set(tokenize(resume_text))
        matched = [k for k in jd_keywords if k in resume_words]
        missing = [k for k in jd_keywords if k not in resume_words]
        keywords_score = min(95.0, len(matched) / len(jd_keywords) * 100)
        if missing:
            suggestions.append(f"Consider adding keywords from the job description: {', '.join(missing[:5])}")

    overall = (skills_score + experience_score + format_score + keywords_score) / 4

    return {
        "overall_score": _clamp(overall),
        "skills_score": _clamp(skills_score),
        "experience_score": _clamp(experience_score),
        "format_score": _clamp(format_score),
        "keywords_score": _clamp(keywords_score),
        "suggestions": suggestions,
        "matched_keywords": matched[:8],
        "missing_keywords": missing[:5],
        "source": "heuristic",
    }


def _normalize_ai_result(raw: dict) -> dict:
    """Coerce the model's JSON into the stored shape; KeyError/ValueError on garbage."""
    def _strings(key: str, limit: int) -> List[str]:
        values = raw.get(key) or []
        if not isinstance(values, list):
            raise ValueError(f"'{key}' is not a list")
        return [str(v) for v in values if str(v).strip()][:limit]

    return {
        "overall_score": _clamp(raw["overall_score"]),
        "skills_score": _clamp(raw["skills_score"]),
        "experience_score": _clamp(raw["experience_score"]),
        "format_score": _clamp(raw["format_score"]),
        "keywords_score": _clamp(raw["keywords_score"]),
        "suggestions": _strings("suggestions", 6),
        "matched_keywords": _strings("matched_keywords", 10),
        "missing_keywords": _strings("missing_keywords", 10),
        "source": "ai",
    }


def analyze_resume(resume_text: str, job_description: Optional[str] = None) -> dict:
    """Score a resume; AI when configured, heuristic otherwise."""
    if not resume_text or not resume_text.strip():
        raise ValueError("Resume text is empty")

    if settings.deepseek_api_key:
        try:
            raw = get_deepseek_client().analyze_resume(resume_text, job_description)
            return _normalize_ai_result(raw)
        except Exception as e:
            logger.warning("AI resume scoring failed, using heuristic: %s", e)

    return heuristic_analysis(resume_text, job_description)


def score_for_posting(resume_text: str, posting: dict) -> int:
    """Heuristic overall score of a resume against a job posting's text."""
    description = " ".join(filter(None, [posting.get("title"), posting.get("description"), posting.get("requirements")]))
    return heuristic_analysis(resume_text, description)["overall_score"]


def store_analysis(
    user_id: str,
    resume_text: str,
    result: dict,
    resume_url: Optional[str] = None,
    job_description: Optional[str] = None
) -> dict:
    """Insert one ats_analysis row and return it."""
    with get_db_session() as db:
        inserted = db.execute(
            insert(ats_analysis).values(
                user_id=user_id,
                resume_text=resume_text,
                resume_url=resume_url,
                job_description=job_description,
                overall_score=result["overall_score"],
                skills_score=result["skills_score"],
                experience_score=result["experience_score"],
                format_score=result["format_score"],
                keywords_score=result["keywords_score"],
                suggestions=result["suggestions"],
                matched_keywords=result["matched_keywords"],
                missing_keywords=result["missing_keywords"],
                source=result["source"],
                analyzed_at=datetime.utcnow(),
            )
        )
        analysis_id = inserted.inserted_primary_key[0]
        row = fetch_one(db, select(ats_analysis).where(ats_analysis.c.id == analysis_id))

    logger.info("Stored %s ATS analysis %s for user %s (score %d)",
                result["source"], analysis_id, user_id, result["overall_score"])
    return row
