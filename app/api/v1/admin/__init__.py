"""Admin API (ADMIN only)."""
from fastapi import APIRouter
from app.api.v1.admin import gamification as admin_gamification

admin_router = APIRouter(prefix="/admin", tags=["admin"])
admin_router.include_router(admin_gamification.router, prefix="/gamification", tags=["admin-gamification"])
