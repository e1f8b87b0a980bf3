"""
Achievement definitions, progress and evaluation
"""
from typing import List
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_current_user, require_roles
from app.models.employee import Employee, Role
from app.schemas.achievement import (
    AchievementCreate,
    AchievementUpdate,
    AchievementOut,
    EmployeeAchievementOut,
    EvaluationResult,
)
from app.services import achievement_service

router = APIRouter()


@router.get("", response_model=List[AchievementOut])
async def list_achievements(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Active achievement definitions"""
    return achievement_service.list_active_achievements(db)


@router.get("/me", response_model=List[EmployeeAchievementOut])
async def my_achievements(
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Progress rows of the caller (achievements never evaluated are absent)"""
    return achievement_service.list_employee_progress(db, current_user.id)


@router.post("", response_model=AchievementOut, status_code=status.HTTP_201_CREATED)
async def create_achievement(
    payload: AchievementCreate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN)),
):
    """Create a definition (ADMIN). 409 if the code is taken."""
    return achievement_service.create_achievement(db, payload.model_dump(mode="json"), actor_id=current_user.id)


@router.patch("/{achievement_id}", response_model=AchievementOut)
async def update_achievement(
    achievement_id: int,
    payload: AchievementUpdate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN)),
):
    """Edit a definition (ADMIN). Already unlocked progress is unaffected."""
    return achievement_service.update_achievement(
        db,
        achievement_id,
        payload.model_dump(exclude_unset=True, mode="json"),
        actor_id=current_user.id,
    )


@router.post("/evaluate/{employee_id}", response_model=EvaluationResult)
async def evaluate_employee(
    employee_id: int,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN)),
):
    """Run the evaluator now for one employee (ADMIN). Returns only newly unlocked definitions."""
    unlocked = achievement_service.evaluate_achievements(db, employee_id)
    return EvaluationResult(
        employee_id=employee_id,
        unlocked=[AchievementOut.model_validate(a) for a in unlocked],
    )
