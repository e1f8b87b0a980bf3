"""
Admin gamification: current-cycle overview and attendance reward backfill.
"""
from typing import Optional
from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_roles
from app.models.employee import Employee, Role
from app.schemas.ingestion import ReprocessRequest
from app.schemas.report import AdminOverviewOut
from app.services.gamification_service import reprocess_attendance
from app.services.report_service import get_admin_overview

router = APIRouter()


@router.get("/overview", response_model=AdminOverviewOut)
async def overview_endpoint(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN)),
):
    """
    Current month across all employees: engagement, points by type,
    achievement unlock rates, top performers and recent activity.
    """
    return AdminOverviewOut.model_validate(get_admin_overview(db))


@router.post("/reprocess")
async def reprocess_endpoint(
    payload: Optional[ReprocessRequest] = Body(None),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN)),
):
    """
    Re-award attendance points for the trailing 30 days and re-check achievements.
    Idempotent: points already awarded for a record are not awarded again.
    """
    employee_id = payload.employee_id if payload else None
    return reprocess_attendance(db, employee_id=employee_id, actor_id=current_user.id)
