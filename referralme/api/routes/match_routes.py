"""
Matching Routes

GET /matches/jobs - Active job postings ranked for the current seeker
"""

from typing import List

from fastapi import APIRouter, HTTPException, Depends, Query

from referralme.core.auth import get_current_seeker
from referralme.services.matching_service import rank_jobs_for_seeker
from referralme.schemas.schemas import JobMatchResponse, JobPostingResponse

router = APIRouter(prefix="/matches", tags=["Matching"])


@router.get("/jobs", response_model=List[JobMatchResponse])
async def job_matches(
    limit: int = Query(10, ge=1, le=50),
    min_score: float = Query(0.0, ge=0.0, le=1.0),
    seeker: dict = Depends(get_current_seeker)
):
    """
    Rank active postings by how well they fit the seeker's profile.
    Skills drive most of the score, so the profile needs at least one.
    """
    if not seeker.get("skills"):
        raise HTTPException(status_code=400, detail="Add skills to your profile to get job matches")

    matches = rank_jobs_for_seeker(seeker, limit=limit, min_score=min_score)
    return [
        JobMatchResponse(
            job_posting=JobPostingResponse(**m["job_posting"]),
            match_score=m["match_score"],
            skill_match_pct=m["skill_match_pct"],
            skills_matched=m["skills_matched"],
            similarity=m["similarity"]
        )
        for m in matches
    ]
