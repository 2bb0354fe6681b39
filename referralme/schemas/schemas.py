"""
Pydantic Schemas - Request/Response Validation

All API request and response schemas in one file for simplicity.
Each form the client submits maps to one closed request model; unknown
fields are rejected.
"""

from pydantic import BaseModel, BeforeValidator, ConfigDict, EmailStr, Field, field_validator
from typing import Annotated, Optional, List, Literal
from datetime import datetime
from enum import Enum


class FormModel(BaseModel):
    """Base for request bodies: trimmed strings, no extra keys."""
    model_config = ConfigDict(str_strip_whitespace=True, extra="forbid")


# JSON list columns may hold NULL
StrList = Annotated[List[str], BeforeValidator(lambda v: v or [])]


# ============================================================
# ENUMS
# ============================================================

class UserRole(str, Enum):
    seeker = "seeker"
    referrer = "referrer"


class ReferralStatus(str, Enum):
    pending = "pending"
    under_review = "under_review"
    accepted = "accepted"
    rejected = "rejected"
    interview_scheduled = "interview_scheduled"
    interview_completed = "interview_completed"
    sent_to_hr = "sent_to_hr"
    completed = "completed"


class ExperienceLevel(str, Enum):
    entry = "entry"
    mid = "mid"
    senior = "senior"
    lead = "lead"


class PostType(str, Enum):
    experience = "experience"
    job_posting = "job_posting"
    tip = "tip"
    question = "question"


class MentorshipStatus(str, Enum):
    pending = "pending"
    accepted = "accepted"
    rejected = "rejected"
    scheduled = "scheduled"
    completed = "completed"


class MeetingType(str, Enum):
    video = "video"
    phone = "phone"
    in_person = "in_person"


class ReputationLevel(str, Enum):
    newcomer = "newcomer"
    helper = "helper"
    expert = "expert"
    legend = "legend"


# ============================================================
# AUTH SCHEMAS
# ============================================================

class SessionCreate(FormModel):
    id_token: str = Field(..., min_length=1)


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: str
    role: Optional[str] = None
    expires_at: datetime
    is_new_user: bool = False


# ============================================================
# USER SCHEMAS
# ============================================================

class RoleSelect(FormModel):
    role: UserRole


class UserProfileUpdate(FormModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, max_length=100)
    phone_number: Optional[str] = Field(None, max_length=50)
    designation: Optional[str] = Field(None, max_length=200)
    company: Optional[str] = Field(None, max_length=200)
    experience: Optional[str] = None
    skills: Optional[List[str]] = None
    linkedin_url: Optional[str] = Field(None, max_length=500)
    github_url: Optional[str] = Field(None, max_length=500)
    website_url: Optional[str] = Field(None, max_length=500)
    bio: Optional[str] = None
    location: Optional[str] = Field(None, max_length=200)
    profile_image_url: Optional[str] = None
    profile_icon: Optional[str] = None

    @field_validator("skills")
    @classmethod
    def clean_skills(cls, value):
        if value is None:
            return value
        # Drop blanks and case-insensitive duplicates, keep first spelling
        seen = set()
        cleaned = []
        for skill in value:
            skill = skill.strip()
            if skill and skill.lower() not in seen:
                seen.add(skill.lower())
                cleaned.append(skill)
        return cleaned


class UserResponse(BaseModel):
    id: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None
    profile_image_url: Optional[str] = None
    profile_icon: Optional[str] = None
    designation: Optional[str] = None
    company: Optional[str] = None
    experience: Optional[str] = None
    skills: StrList = []
    linkedin_url: Optional[str] = None
    github_url: Optional[str] = None
    website_url: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    phone_number: Optional[str] = None
    profile_views: int = 0
    is_email_verified: bool = False
    profile_completed: bool = False
    is_verified: bool = False
    created_at: datetime
    updated_at: datetime


class PublicProfileResponse(BaseModel):
    id: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[str] = None
    profile_image_url: Optional[str] = None
    designation: Optional[str] = None
    company: Optional[str] = None
    skills: StrList = []
    linkedin_url: Optional[str] = None
    github_url: Optional[str] = None
    website_url: Optional[str] = None
    bio: Optional[str] = None
    location: Optional[str] = None
    profile_views: int = 0
    is_verified: bool = False


# ============================================================
# JOB POSTING SCHEMAS
# ============================================================

class JobPostingCreate(FormModel):
    title: str = Field(..., min_length=1, max_length=200)
    company: str = Field(..., min_length=1, max_length=200)
    location: str = Field(..., min_length=1, max_length=200)
    salary: Optional[str] = Field(None, max_length=100)
    description: str = Field(..., min_length=10)
    requirements: Optional[str] = None


class JobPostingUpdate(FormModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    company: Optional[str] = Field(None, min_length=1, max_length=200)
    location: Optional[str] = Field(None, min_length=1, max_length=200)
    salary: Optional[str] = Field(None, max_length=100)
    description: Optional[str] = Field(None, min_length=10)
    requirements: Optional[str] = None
    is_active: Optional[bool] = None


class JobPostingResponse(BaseModel):
    id: int
    title: str
    company: str
    location: str
    salary: Optional[str] = None
    description: str
    requirements: Optional[str] = None
    referrer_id: str
    is_active: bool
    created_at: datetime
    updated_at: datetime


class JobPostingListResponse(BaseModel):
    job_postings: List[JobPostingResponse]
    total: int
    page: int
    page_size: int


class JobDescriptionRequest(FormModel):
    title: str = Field(..., min_length=1, max_length=200)
    company: str = Field(..., min_length=1, max_length=200)
    experience_level: ExperienceLevel = ExperienceLevel.mid
    skills: List[str] = Field(default_factory=list, max_length=30)


class JobDescriptionResponse(BaseModel):
    description: str
    requirements: str
    source: Literal["ai", "template"]


# ============================================================
# REFERRAL REQUEST SCHEMAS
# ============================================================

class ReferralRequestCreate(FormModel):
    job_posting_id: int
    full_name: str = Field(..., min_length=1, max_length=200)
    email: EmailStr
    phone_number: str = Field(..., min_length=1, max_length=50)
    experience_level: ExperienceLevel
    motivation: str = Field(..., min_length=1)
    resume_text: str = Field(..., min_length=1)
    resume_url: Optional[str] = None
    linkedin_url: Optional[str] = Field(None, max_length=500)


class ReferralStatusUpdate(FormModel):
    status: ReferralStatus
    notes: Optional[str] = None
    interview_date: Optional[datetime] = None
    interview_notes: Optional[str] = None


class ReferralRequestResponse(BaseModel):
    id: int
    job_posting_id: int
    seeker_id: str
    referrer_id: str
    full_name: str
    email: str
    phone_number: str
    experience_level: str
    motivation: str
    resume_text: str
    resume_url: Optional[str] = None
    linkedin_url: Optional[str] = None
    ats_score: Optional[int] = None
    notes: Optional[str] = None
    status: ReferralStatus
    interview_date: Optional[datetime] = None
    interview_notes: Optional[str] = None
    job_title: Optional[str] = None
    company: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class ReferrerDashboardStats(BaseModel):
    active_posts: int
    pending_requests: int
    successful_referrals: int
    total_requests: int
    by_status: dict


# ============================================================
# UPLOAD SCHEMAS
# ============================================================

class UploadResponse(BaseModel):
    storage: Literal["stored", "inline"]
    url: str
    filename: Optional[str] = None
    original_name: str
    content_type: Optional[str] = None
    size: int


# ============================================================
# ATS SCHEMAS
# ============================================================

class ATSAnalysisResponse(BaseModel):
    id: int
    user_id: str
    resume_url: Optional[str] = None
    overall_score: int
    skills_score: Optional[int] = None
    experience_score: Optional[int] = None
    format_score: Optional[int] = None
    keywords_score: Optional[int] = None
    suggestions: StrList = []
    matched_keywords: StrList = []
    missing_keywords: StrList = []
    source: str
    analyzed_at: datetime


# ============================================================
# COMMUNITY SCHEMAS
# ============================================================

class CommunityPostCreate(FormModel):
    title: str = Field(..., min_length=1, max_length=300)
    content: str = Field(..., min_length=1)
    type: PostType
    tags: List[str] = []

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, value):
        return [tag.strip().lower() for tag in value if tag and tag.strip()]


class CommunityPostResponse(BaseModel):
    id: int
    author_id: str
    author_name: Optional[str] = None
    title: str
    content: str
    type: PostType
    tags: StrList = []
    likes: int
    comment_count: int = 0
    created_at: datetime
    updated_at: datetime


class PostCommentCreate(FormModel):
    content: str = Field(..., min_length=1)


class PostCommentResponse(BaseModel):
    id: int
    post_id: int
    author_id: str
    author_name: Optional[str] = None
    content: str
    created_at: datetime


# ============================================================
# MENTORSHIP SCHEMAS
# ============================================================

class MentorshipRequestCreate(FormModel):
    mentor_id: str = Field(..., min_length=1)
    topic: str = Field(..., min_length=1, max_length=300)
    message: str = Field(..., min_length=1)
    preferred_date: Optional[datetime] = None
    duration_minutes: int = Field(30, ge=15, le=240)
    meeting_type: MeetingType = MeetingType.video


class MentorshipStatusUpdate(FormModel):
    status: MentorshipStatus
    meeting_link: Optional[str] = None
    calendar_event_id: Optional[str] = None
    preferred_date: Optional[datetime] = None


class MentorshipRequestResponse(BaseModel):
    id: int
    mentee_id: str
    mentor_id: str
    topic: str
    message: str
    preferred_date: Optional[datetime] = None
    duration_minutes: int
    meeting_type: MeetingType
    status: MentorshipStatus
    calendar_event_id: Optional[str] = None
    meeting_link: Optional[str] = None
    created_at: datetime
    updated_at: datetime


# ============================================================
# GAMIFICATION SCHEMAS
# ============================================================

class ImpactStatsResponse(BaseModel):
    referrer_id: str
    total_jobs_posted: int
    total_applications: int
    successful_placements: int
    impact_score: int
    reputation_level: ReputationLevel
    streak_days: int
    profile_views: int
    testimonial_count: int
    last_updated: datetime


class AchievementResponse(BaseModel):
    id: str
    achievement_type: str
    achievement_title: str
    achievement_description: Optional[str] = None
    badge_icon: str
    badge_color: str
    unlocked_at: datetime


class TestimonialCreate(FormModel):
    rating: int = Field(..., ge=1, le=5)
    testimonial: str = Field(..., min_length=1)
    job_title: Optional[str] = Field(None, max_length=200)
    is_public: bool = True


class TestimonialResponse(BaseModel):
    id: str
    referrer_id: str
    seeker_id: Optional[str] = None
    seeker_name: str
    rating: int
    testimonial: str
    job_title: Optional[str] = None
    created_at: datetime


class SuccessStoryCreate(FormModel):
    seeker_name: str = Field(..., min_length=1, max_length=200)
    job_title: str = Field(..., min_length=1, max_length=200)
    company: str = Field(..., min_length=1, max_length=200)
    story: str = Field(..., min_length=1)
    is_public: bool = True


class SuccessStoryResponse(BaseModel):
    id: str
    referrer_id: str
    seeker_name: str
    job_title: str
    company: str
    story: str
    is_verified: bool
    created_at: datetime


# ============================================================
# MATCHING SCHEMAS
# ============================================================

class JobMatchResponse(BaseModel):
    job_posting: JobPostingResponse
    match_score: float
    skill_match_pct: float
    skills_matched: List[str] = []
    similarity: float


# ============================================================
# GENERIC SCHEMAS
# ============================================================

class MessageResponse(BaseModel):
    message: str
    success: bool = True
