"""
Main API router
"""
from fastapi import APIRouter

from app.api.v1 import (
    health,
    version,
    attendance,
    work_logs,
    points,
    achievements,
    leaderboard,
)
from app.api.v1.admin import admin_router

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(version.router, tags=["version"])
api_router.include_router(attendance.router, prefix="/attendance", tags=["attendance"])
api_router.include_router(work_logs.router, prefix="/work-logs", tags=["work-logs"])
api_router.include_router(points.router, prefix="/points", tags=["points"])
api_router.include_router(achievements.router, prefix="/achievements", tags=["achievements"])
api_router.include_router(leaderboard.router, prefix="/leaderboard", tags=["leaderboard"])
api_router.include_router(admin_router)
