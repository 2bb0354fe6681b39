"""
Job Description Drafting

Referrers can ask for a draft description and requirements list before
posting a job:
- DeepSeek writes the draft when DEEPSEEK_API_KEY is set
- a fixed template fills in title, company, level and skills otherwise,
  or when the AI call fails or returns an unusable answer

Nothing is stored; the referrer edits the draft and posts it as usual.
"""

import logging
from typing import List

from referralme.core.config import get_settings
from referralme.services.deepseek_client import get_deepseek_client

settings = get_settings()
logger = logging.getLogger(__name__)

YEARS_BY_LEVEL = {"entry": "1-2", "mid": "3-5"}

COMMON_REQUIREMENTS = [
    "Strong problem-solving and analytical skills",
    "Excellent communication and teamwork abilities",
    "Bachelor's degree in Computer Science or related field (or equivalent experience)",
    "Experience with modern development tools and methodologies",
    "Ability to work in a fast-paced, collaborative environment",
]


def template_description(title: str, company: str, experience_level: str, skills: List[str]) -> dict:
    skill_list = ", ".join(skills) or "modern technologies"
    description = "\n\n".join([
        f"We are seeking a talented {title} to join our dynamic team at {company}. "
        f"This is an excellent opportunity for a {experience_level}-level professional "
        f"to make a significant impact in a fast-growing organization.",
        f"In this role, you will work on challenging projects using {skill_list}. "
        f"You'll collaborate with cross-functional teams to deliver high-quality solutions "
        f"that drive business growth and innovation.",
        f"At {company}, we value innovation, collaboration, and continuous learning. "
        f"We offer competitive compensation, comprehensive benefits, and opportunities "
        f"for professional growth in a supportive environment.",
        "Join us in building the future and making a meaningful difference in our industry.",
    ])

    years = YEARS_BY_LEVEL.get(experience_level, "5+")
    requirements = [f"{years} years of experience in {title.lower()} or related role"]
    if skills:
        requirements.append(f"Proficiency in {', '.join(skills[:3])}")
    requirements.extend(COMMON_REQUIREMENTS)

    return {
        "description": description,
        "requirements": "\n".join(f"- {r}" for r in requirements),
        "source": "template",
    }


def _normalize_ai_result(raw: dict) -> dict:
    description = raw.get("description")
    requirements = raw.get("requirements")
    if isinstance(requirements, list):
        requirements = "\n".join(f"- {str(r).lstrip('- ')}" for r in requirements if str(r).strip())
    if not isinstance(description, str) or not description.strip():
        raise ValueError("AI reply has no description")
    if not isinstance(requirements, str) or not requirements.strip():
        raise ValueError("AI reply has no requirements")
    return {"description": description.strip(), "requirements": requirements.strip(), "source": "ai"}


def generate_description(title: str, company: str, experience_level: str, skills: List[str]) -> dict:
    """Draft description and requirements; AI when configured, template otherwise."""
    skills = [s.strip() for s in skills if s and s.strip()]

    if settings.deepseek_api_key:
        try:
            raw = get_deepseek_client().generate_job_description(title, company, experience_level, skills)
            return _normalize_ai_result(raw)
        except Exception as e:
            logger.warning("AI job description failed, using template: %s", e)

    return template_description(title, company, experience_level, skills)
