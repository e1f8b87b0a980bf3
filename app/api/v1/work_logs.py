"""
Work-log submission endpoints. Employees submit their own logs; HR/ADMIN can
record a past submission with its original timestamp.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.deps import get_db, get_current_user, require_roles
from app.models.employee import Employee, Role
from app.schemas.ingestion import (
    WorkLogSubmission,
    WorkLogBackfill,
    WorkLogOut,
    WorkLogSubmissionResponse,
)
from app.services.audit_service import log_audit
from app.services.gamification_service import submit_work_logs, process_work_log_rewards

router = APIRouter()


@router.post("/submit", response_model=WorkLogSubmissionResponse, status_code=status.HTTP_201_CREATED)
async def submit_work_logs_endpoint(
    payload: WorkLogSubmission,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(get_current_user),
):
    """
    Submit work logs. The submission is stamped with the server time, which
    decides the log date and the consistency bonus (before 18:00 local).
    """
    logs = submit_work_logs(db, current_user.id, [entry.model_dump() for entry in payload.logs])
    out = [WorkLogOut.model_validate(log) for log in logs]
    rewards = process_work_log_rewards(db, current_user.id, logs, logs[0].submitted_at)
    return WorkLogSubmissionResponse(logs=out, rewards=rewards)


@router.post("/records", response_model=WorkLogSubmissionResponse, status_code=status.HTTP_201_CREATED)
async def record_work_logs(
    payload: WorkLogBackfill,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR, Role.ADMIN)),
):
    """
    Record a submission made outside the system (HR/ADMIN). Rewards follow
    the given submitted_at, which must not be in the future. Audited.
    """
    logs = submit_work_logs(
        db,
        payload.employee_id,
        [entry.model_dump() for entry in payload.logs],
        submitted_at=payload.submitted_at,
    )
    log_audit(
        db=db,
        actor_id=current_user.id,
        action="WORK_LOG_BACKFILL",
        entity_type="work_log",
        entity_id=logs[0].id,
        meta={"employee_id": payload.employee_id, "logs": len(logs), "submitted_at": logs[0].submitted_at},
    )
    out = [WorkLogOut.model_validate(log) for log in logs]
    rewards = process_work_log_rewards(db, payload.employee_id, logs, logs[0].submitted_at)
    return WorkLogSubmissionResponse(logs=out, rewards=rewards)
