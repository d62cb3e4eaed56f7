"""API Routes."""

from fastapi import APIRouter

from .health import router as health_router
from .posts import router as posts_router
from .schedule import router as schedule_router
from .social import router as social_router

# Create main API router
api_router = APIRouter()

# Include route modules
api_router.include_router(health_router, tags=["Health"])
api_router.include_router(schedule_router)
api_router.include_router(posts_router)
api_router.include_router(social_router)
