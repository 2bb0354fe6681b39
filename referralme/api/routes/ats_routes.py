"""
ATS Routes

POST /ats/analyze - Score a resume (pasted text or PDF/DOCX/TXT upload)
GET /ats/history - Own analyses, newest first
GET /ats/{analysis_id} - One analysis
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Depends, UploadFile, File, Form
from fastapi.concurrency import run_in_threadpool
from sqlalchemy import select

from referralme.db.postgres import get_db_session, fetch_one, fetch_all
from referralme.db.schema import ats_analysis
from referralme.core.auth import get_current_user
from referralme.core.config import get_settings
from referralme.services import ats_service
from referralme.utils.file_upload import extract_text_from_file
from referralme.schemas.schemas import ATSAnalysisResponse

router = APIRouter(prefix="/ats", tags=["ATS"])
settings = get_settings()


@router.post("/analyze", response_model=ATSAnalysisResponse, status_code=201)
async def analyze_resume(
    file: Optional[UploadFile] = File(None),
    resume_text: Optional[str] = Form(None),
    job_description: Optional[str] = Form(None),
    resume_url: Optional[str] = Form(None),
    user: dict = Depends(get_current_user)
):
    """
    Score a resume 0-100. Send either a file or resume_text.
    An optional job_description focuses the keyword score on that job.
    """
    if file is not None and file.filename:
        text, _ = await extract_text_from_file(file, settings.upload_max_size_bytes)
    elif resume_text and resume_text.strip():
        text = resume_text.strip()
    else:
        raise HTTPException(status_code=400, detail="Provide a resume file or resume_text")

    job_description = job_description.strip() if job_description else None
    # AI scoring is a blocking HTTP call
    result = await run_in_threadpool(ats_service.analyze_resume, text, job_description or None)
    row = ats_service.store_analysis(
        user["id"], text, result, resume_url=resume_url, job_description=job_description or None
    )
    return ATSAnalysisResponse(**row)


@router.get("/history", response_model=List[ATSAnalysisResponse])
async def analysis_history(user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        rows = fetch_all(
            db,
            select(ats_analysis)
            .where(ats_analysis.c.user_id == user["id"])
            .order_by(ats_analysis.c.analyzed_at.desc(), ats_analysis.c.id.desc())
        )
    return [ATSAnalysisResponse(**r) for r in rows]


@router.get("/{analysis_id}", response_model=ATSAnalysisResponse)
async def get_analysis(analysis_id: int, user: dict = Depends(get_current_user)):
    with get_db_session() as db:
        row = fetch_one(db, select(ats_analysis).where(ats_analysis.c.id == analysis_id))
    if not row:
        raise HTTPException(status_code=404, detail="Analysis not found")
    if row["user_id"] != user["id"]:
        raise HTTPException(status_code=403, detail="Not your analysis")
    return ATSAnalysisResponse(**row)
