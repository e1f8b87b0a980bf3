"""
Leaderboard snapshots
"""
from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_current_user, require_roles
from app.models.employee import Employee, Role
from app.models.leaderboard import LeaderboardPeriod
from app.schemas.leaderboard import LeaderboardEntryOut, LeaderboardRecomputeRequest, LeaderboardRecomputeResult
from app.services.audit_service import log_audit
from app.services.leaderboard_service import get_leaderboard, recompute_leaderboard

router = APIRouter()


@router.get("", response_model=List[LeaderboardEntryOut])
async def read_leaderboard(
    period: LeaderboardPeriod = Query(LeaderboardPeriod.MONTHLY),
    year: Optional[int] = Query(None, description="Defaults to the current period"),
    month: Optional[int] = Query(None, description="Month 1-12 (MONTHLY only)"),
    week: Optional[int] = Query(None, description="ISO week (WEEKLY only)"),
    limit: int = Query(50, ge=1, le=500),
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """Stored snapshot ordered by rank. Run /leaderboard/recompute to refresh it."""
    entries = get_leaderboard(db, period, year=year, month=month, week=week, limit=limit)
    result = []
    for entry in entries:
        item = LeaderboardEntryOut.model_validate(entry)
        item.employee_name = entry.employee.name if entry.employee else None
        result.append(item)
    return result


@router.post("/recompute", response_model=LeaderboardRecomputeResult)
async def recompute_leaderboard_endpoint(
    payload: LeaderboardRecomputeRequest,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.ADMIN)),
):
    """Recompute the current instance of a period (ADMIN). Idempotent; audited."""
    result = recompute_leaderboard(db, payload.period)
    log_audit(
        db=db,
        actor_id=current_user.id,
        action="LEADERBOARD_RECOMPUTE",
        entity_type="leaderboard",
        meta=result,
    )
    return result
