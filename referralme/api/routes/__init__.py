"""
API Routes - Combines all route modules into single router.
"""

from fastapi import APIRouter

from referralme.api.routes.auth_routes import router as auth_router
from referralme.api.routes.user_routes import router as user_router
from referralme.api.routes.job_routes import router as job_router
from referralme.api.routes.referral_routes import router as referral_router
from referralme.api.routes.upload_routes import router as upload_router
from referralme.api.routes.ats_routes import router as ats_router
from referralme.api.routes.community_routes import router as community_router
from referralme.api.routes.mentorship_routes import router as mentorship_router
from referralme.api.routes.referrer_routes import router as referrer_router
from referralme.api.routes.match_routes import router as match_router

# Main API router
api_router = APIRouter()

# Include all sub-routers
api_router.include_router(auth_router)
api_router.include_router(user_router)
api_router.include_router(job_router)
api_router.include_router(referral_router)
api_router.include_router(upload_router)
api_router.include_router(ats_router)
api_router.include_router(community_router)
api_router.include_router(mentorship_router)
api_router.include_router(referrer_router)
api_router.include_router(match_router)
