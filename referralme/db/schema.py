"""
Relational schema - SQLAlchemy Core table definitions.

Tables:
- sessions: server-side sessions (sid, sess, expire) with an expiry index
- users: one row per identity-provider account, created on first sign-in
- job_postings: openings owned by a referrer, soft-deactivated via is_active
- referral_requests: seeker -> job posting requests with a status lifecycle
- community_posts / post_comments: author-owned content
- mentorship_requests: mentee -> mentor requests with their own lifecycle
- ats_analysis: immutable resume score snapshots
- profile_views: public profile view log
- referrer_achievements / referrer_impact_stats / success_stories /
  referrer_testimonials: gamification records scoped to a referrer

Foreign keys are declared but no cascade is configured; endpoints check that
referenced rows exist before inserting.
"""

import uuid

from sqlalchemy import (
    JSON, Boolean, Column, Date, DateTime, ForeignKey, Index, Integer, MetaData,
    String, Table, Text, UniqueConstraint, func,
)

metadata = MetaData()


def _uuid() -> str:
    return str(uuid.uuid4())


sessions = Table(
    "sessions", metadata,
    Column("sid", String(128), primary_key=True),
    Column("sess", JSON, nullable=False),
    Column("expire", DateTime, nullable=False),
    Index("IDX_session_expire", "expire"),
)

users = Table(
    "users", metadata,
    Column("id", String(128), primary_key=True),
    Column("email", String(255), unique=True),
    Column("first_name", String(100)),
    Column("last_name", String(100)),
    Column("profile_image_url", String(1024)),
    Column("profile_icon", String(1024)),
    Column("role", String(20)),
    Column("designation", String(200)),
    Column("company", String(200)),
    Column("experience", Text),
    Column("skills", JSON),
    Column("linkedin_url", String(500)),
    Column("github_url", String(500)),
    Column("website_url", String(500)),
    Column("bio", Text),
    Column("location", String(200)),
    Column("phone_number", String(50)),
    Column("profile_views", Integer, nullable=False, server_default="0"),
    Column("is_email_verified", Boolean, nullable=False, server_default="0"),
    Column("verification_badges", JSON),
    Column("company_info", JSON),
    Column("profile_completed", Boolean, nullable=False, server_default="0"),
    Column("is_verified", Boolean, nullable=False, server_default="0"),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    Column("updated_at", DateTime, nullable=False, server_default=func.now()),
)

job_postings = Table(
    "job_postings", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("title", String(200), nullable=False),
    Column("company", String(200), nullable=False),
    Column("location", String(200), nullable=False),
    Column("salary", String(100)),
    Column("description", Text, nullable=False),
    Column("requirements", Text),
    Column("referrer_id", String(128), ForeignKey("users.id"), nullable=False, index=True),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    Column("updated_at", DateTime, nullable=False, server_default=func.now()),
)

referral_requests = Table(
    "referral_requests", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("job_posting_id", Integer, ForeignKey("job_postings.id"), nullable=False, index=True),
    Column("seeker_id", String(128), ForeignKey("users.id"), nullable=False, index=True),
    Column("referrer_id", String(128), ForeignKey("users.id"), nullable=False, index=True),
    Column("full_name", String(200), nullable=False),
    Column("email", String(255), nullable=False),
    Column("phone_number", String(50), nullable=False),
    Column("experience_level", String(20), nullable=False),
    Column("motivation", Text, nullable=False),
    Column("resume_text", Text, nullable=False),
    Column("resume_url", Text),
    Column("linkedin_url", String(500)),
    Column("ats_score", Integer),
    Column("notes", Text),
    Column("status", String(30), nullable=False, server_default="pending"),
    Column("interview_date", DateTime),
    Column("interview_notes", Text),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    Column("updated_at", DateTime, nullable=False, server_default=func.now()),
)

community_posts = Table(
    "community_posts", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("author_id", String(128), ForeignKey("users.id"), nullable=False, index=True),
    Column("title", String(300), nullable=False),
    Column("content", Text, nullable=False),
    Column("type", String(20), nullable=False),
    Column("tags", JSON),
    Column("likes", Integer, nullable=False, server_default="0"),
    Column("is_active", Boolean, nullable=False, server_default="1"),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    Column("updated_at", DateTime, nullable=False, server_default=func.now()),
)

post_comments = Table(
    "post_comments", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("post_id", Integer, ForeignKey("community_posts.id"), nullable=False, index=True),
    Column("author_id", String(128), ForeignKey("users.id"), nullable=False),
    Column("content", Text, nullable=False),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
)

mentorship_requests = Table(
    "mentorship_requests", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("mentee_id", String(128), ForeignKey("users.id"), nullable=False, index=True),
    Column("mentor_id", String(128), ForeignKey("users.id"), nullable=False, index=True),
    Column("topic", String(300), nullable=False),
    Column("message", Text, nullable=False),
    Column("preferred_date", DateTime),
    Column("duration_minutes", Integer, nullable=False, server_default="30"),
    Column("meeting_type", String(20), nullable=False, server_default="video"),
    Column("status", String(20), nullable=False, server_default="pending"),
    Column("calendar_event_id", String(200)),
    Column("meeting_link", String(1024)),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
    Column("updated_at", DateTime, nullable=False, server_default=func.now()),
)

ats_analysis = Table(
    "ats_analysis", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", String(128), ForeignKey("users.id"), nullable=False, index=True),
    Column("resume_text", Text, nullable=False),
    Column("resume_url", Text),
    Column("job_description", Text),
    Column("overall_score", Integer, nullable=False),
    Column("skills_score", Integer),
    Column("experience_score", Integer),
    Column("format_score", Integer),
    Column("keywords_score", Integer),
    Column("suggestions", JSON),
    Column("matched_keywords", JSON),
    Column("missing_keywords", JSON),
    Column("source", String(20), nullable=False, server_default="heuristic"),
    Column("analyzed_at", DateTime, nullable=False, server_default=func.now()),
)

profile_views = Table(
    "profile_views", metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("viewed_user_id", String(128), ForeignKey("users.id"), nullable=False, index=True),
    Column("viewer_user_id", String(128), ForeignKey("users.id")),
    Column("viewer_ip", String(64)),
    Column("user_agent", Text),
    Column("viewed_at", DateTime, nullable=False, server_default=func.now()),
)

referrer_achievements = Table(
    "referrer_achievements", metadata,
    Column("id", String(36), primary_key=True, default=_uuid),
    Column("referrer_id", String(128), ForeignKey("users.id"), nullable=False),
    Column("achievement_type", String(50), nullable=False),
    Column("achievement_title", String(100), nullable=False),
    Column("achievement_description", Text),
    Column("badge_icon", String(50), nullable=False),
    Column("badge_color", String(50), nullable=False),
    Column("unlocked_at", DateTime, nullable=False, server_default=func.now()),
    Column("is_visible", Boolean, nullable=False, server_default="1"),
    UniqueConstraint("referrer_id", "achievement_type", name="uq_referrer_achievement"),
)

referrer_impact_stats = Table(
    "referrer_impact_stats", metadata,
    Column("id", String(36), primary_key=True, default=_uuid),
    Column("referrer_id", String(128), ForeignKey("users.id"), nullable=False, unique=True),
    Column("total_jobs_posted", Integer, nullable=False, server_default="0"),
    Column("total_applications", Integer, nullable=False, server_default="0"),
    Column("successful_placements", Integer, nullable=False, server_default="0"),
    Column("impact_score", Integer, nullable=False, server_default="0"),
    Column("reputation_level", String(20), nullable=False, server_default="newcomer"),
    Column("streak_days", Integer, nullable=False, server_default="0"),
    Column("current_streak", Integer, nullable=False, server_default="0"),
    Column("last_active_on", Date),
    Column("profile_views", Integer, nullable=False, server_default="0"),
    Column("testimonial_count", Integer, nullable=False, server_default="0"),
    Column("last_updated", DateTime, nullable=False, server_default=func.now()),
)

success_stories = Table(
    "success_stories", metadata,
    Column("id", String(36), primary_key=True, default=_uuid),
    Column("referrer_id", String(128), ForeignKey("users.id"), nullable=False, index=True),
    Column("seeker_name", String(200), nullable=False),
    Column("job_title", String(200), nullable=False),
    Column("company", String(200), nullable=False),
    Column("story", Text, nullable=False),
    Column("is_public", Boolean, nullable=False, server_default="1"),
    Column("is_verified", Boolean, nullable=False, server_default="0"),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
)

referrer_testimonials = Table(
    "referrer_testimonials", metadata,
    Column("id", String(36), primary_key=True, default=_uuid),
    Column("referrer_id", String(128), ForeignKey("users.id"), nullable=False, index=True),
    Column("seeker_id", String(128), ForeignKey("users.id")),
    Column("seeker_name", String(200), nullable=False),
    Column("rating", Integer, nullable=False),
    Column("testimonial", Text, nullable=False),
    Column("job_title", String(200)),
    Column("is_public", Boolean, nullable=False, server_default="1"),
    Column("created_at", DateTime, nullable=False, server_default=func.now()),
)
