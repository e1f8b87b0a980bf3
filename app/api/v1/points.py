"""
Point balance, history and manual adjustments
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_current_user, require_roles
from app.models.employee import Employee, Role
from app.models.points import PointType
from app.schemas.points import PointsSummaryOut, PointTransactionOut, PointAdjustmentRequest
from app.schemas.report import EmployeeSummaryOut
from app.services.point_ledger_service import adjust_points, get_point_balance, list_transactions
from app.services.report_service import get_employee_summary

router = APIRouter()


def _summary(db: Session, employee_id: int, point_type: Optional[PointType], limit: int) -> PointsSummaryOut:
    return PointsSummaryOut(
        employee_id=employee_id,
        balance=get_point_balance(db, employee_id),
        transactions=[
            PointTransactionOut.model_validate(t)
            for t in list_transactions(db, employee_id, point_type=point_type, limit=limit)
        ],
    )


@router.get("/me", response_model=PointsSummaryOut)
async def my_points(
    point_type: Optional[PointType] = Query(None, description="Filter history by point type"),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Current balance and newest-first transaction history of the caller"""
    return _summary(db, current_user.id, point_type, limit)


@router.get("/me/summary", response_model=EmployeeSummaryOut)
async def my_summary(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """
    Lifetime and current-month points, achievement totals, monthly rank with
    the top 10, and recent activity of the caller
    """
    return EmployeeSummaryOut.model_validate(get_employee_summary(db, current_user.id), from_attributes=True)


@router.post("/adjust", response_model=PointTransactionOut, status_code=status.HTTP_201_CREATED)
async def adjust_points_endpoint(
    payload: PointAdjustmentRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN)),
):
    """Manual award or penalty (ADMIN). Recorded as a MANUAL transaction and audited."""
    return adjust_points(
        db,
        employee_id=payload.employee_id,
        points=payload.points,
        reason=payload.reason,
        actor_id=current_user.id,
    )


@router.get("/{employee_id}", response_model=PointsSummaryOut)
async def employee_points(
    employee_id: int,
    point_type: Optional[PointType] = Query(None),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN)),
):
    """Balance and history of any employee (ADMIN)"""
    if not db.query(Employee.id).filter(Employee.id == employee_id).first():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    return _summary(db, employee_id, point_type, limit)
