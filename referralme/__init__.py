"""
ReferralMe
A job-referral marketplace API: seekers request referrals from referrers who post openings.

Architecture:
- PostgreSQL: Structured data (users, sessions, job postings, referral requests, gamification)
- Local disk or MongoDB GridFS: Uploaded files
- Firebase Authentication: Sign-in only; ID tokens are verified, then a server session is issued
- DeepSeek AI: Optional ATS resume scoring
"""

__version__ = "1.0.0"
