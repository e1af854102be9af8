"""API v1 router aggregator"""
from fastapi import APIRouter

from course_recommender.api.v1.endpoints import health, prerequisites, recommendations

api_router = APIRouter()

# Include all endpoint routers
api_router.include_router(health.router, tags=["health"])
api_router.include_router(recommendations.router, prefix="/recommendations", tags=["recommendations"])
api_router.include_router(prerequisites.router, prefix="/prerequisites", tags=["prerequisites"])
