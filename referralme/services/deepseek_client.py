"""
DeepSeek API Client

DeepSeek uses an OpenAI-compatible API, so we use the openai library.

Used for optional ATS resume scoring and job description drafting. When
DEEPSEEK_API_KEY is empty no client is built: the ATS service scores with its
keyword heuristic and job descriptions come from a fixed template.

COST:
- deepseek-chat model
- short structured prompt, JSON answer
- results are stored as ATS analysis rows and never recomputed
"""
import json
import logging
import re
from typing import List, Optional

from openai import OpenAI, OpenAIError

from referralme.core.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

ATS_SYSTEM_PROMPT = """You are an applicant tracking system. Score the resume and return ONLY valid JSON.
Output format:
{
  "overall_score": integer 0-100,
  "skills_score": integer 0-100,
  "experience_score": integer 0-100,
  "format_score": integer 0-100,
  "keywords_score": integer 0-100,
  "suggestions": ["string", "..."],
  "matched_keywords": ["string", "..."],
  "missing_keywords": ["string", "..."]
}
Give at most 6 suggestions and at most 10 keywords per list.
When a job description is provided, score keywords against it.
Return ONLY the JSON, no explanation."""

JOB_DESCRIPTION_SYSTEM_PROMPT = """You write job postings for a referral platform. Return ONLY valid JSON.
Output format:
{
  "description": "3-4 short paragraphs of plain text",
  "requirements": "one requirement per line, each starting with \"- \""
}
Do not invent salary or location details. Return ONLY the JSON, no explanation."""

# Long resumes are cut before prompting
MAX_PROMPT_CHARS = 12000
_FENCE_RE = re.compile(r"```(?:json)?\s*(.*?)```", re.DOTALL)


class DeepSeekClient:
    """Thin wrapper over the chat completions endpoint."""

    model = "deepseek-chat"

    def __init__(self, timeout: float = 30.0):
        self.client = OpenAI(
            api_key=settings.deepseek_api_key,
            base_url=settings.deepseek_base_url,
            timeout=timeout,
            max_retries=1,
        )

    def _complete(self, system_prompt: str, user_content: str, max_tokens: int, json_mode: bool = False) -> str:
        kwargs = {"response_format": {"type": "json_object"}} if json_mode else {}
        completion = self.client.chat.completions.create(
            model=self.model,
            messages=[
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_content},
            ],
            max_tokens=max_tokens,
            temperature=0.1,
            **kwargs
        )
        return completion.choices[0].message.content or ""

    @staticmethod
    def parse_json_reply(reply: str) -> dict:
        """
        Pull the JSON object out of a model reply.
        Accepts a bare object, a ```json fenced block, or prose around an object.
        """
        fenced = _FENCE_RE.search(reply)
        if fenced:
            reply = fenced.group(1)
        start, end = reply.find("{"), reply.rfind("}")
        if start == -1 or end < start:
            raise ValueError("No JSON object in model reply")
        parsed = json.loads(reply[start:end + 1])
        if not isinstance(parsed, dict):
            raise ValueError("Model reply is not a JSON object")
        return parsed

    def analyze_resume(self, resume_text: str, job_description: Optional[str] = None) -> dict:
        """
        Score a resume, optionally against a job description.
        Returns the raw JSON dict; the ATS service clamps and validates it.
        """
        sections = [f"RESUME:\n{resume_text[:MAX_PROMPT_CHARS]}"]
        if job_description:
            sections.append(f"JOB DESCRIPTION:\n{job_description[:MAX_PROMPT_CHARS]}")

        reply = self._complete(ATS_SYSTEM_PROMPT, "\n\n".join(sections), max_tokens=800, json_mode=True)
        return self.parse_json_reply(reply)

    def generate_job_description(self, title: str, company: str, experience_level: str, skills: List[str]) -> dict:
        """Draft a description and requirements. Returns the raw JSON dict."""
        user_content = (
            f"Job title: {title}\n"
            f"Company: {company}\n"
            f"Experience level: {experience_level}\n"
            f"Key skills: {', '.join(skills) or 'not specified'}"
        )
        reply = self._complete(JOB_DESCRIPTION_SYSTEM_PROMPT, user_content, max_tokens=900, json_mode=True)
        return self.parse_json_reply(reply)

    def check_connection(self) -> bool:
        try:
            reply = self._complete("Answer with one word.", "Say OK", max_tokens=5)
        except OpenAIError as e:
            logger.warning("DeepSeek connection failed: %s", e)
            return False
        return "OK" in reply.upper()


_client: Optional[DeepSeekClient] = None


def get_deepseek_client() -> DeepSeekClient:
    global _client
    if _client is None:
        _client = DeepSeekClient()
    return _client
