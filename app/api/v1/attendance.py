"""
Attendance ingestion endpoint (HR/ADMIN).
The record is stored first; points and achievements are processed best-effort afterwards.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.core.deps import get_db, require_roles
from app.models.employee import Employee, Role
from app.schemas.ingestion import AttendanceRecordCreate, AttendanceRecordOut, AttendanceRecordResponse
from app.services.gamification_service import create_attendance_record, process_attendance_rewards

router = APIRouter()


@router.post("/records", response_model=AttendanceRecordResponse, status_code=status.HTTP_201_CREATED)
async def record_attendance(
    payload: AttendanceRecordCreate,
    db: Session = Depends(get_db),
    current_user: Employee = Depends(require_roles(Role.HR, Role.ADMIN)),
):
    """
    Record one attendance day for an employee.

    - 409 if the employee already has a record for that date
    - rewards is null when reward processing failed; the record is kept either way
    """
    record = create_attendance_record(db, payload.model_dump())
    out = AttendanceRecordOut.model_validate(record)
    rewards = process_attendance_rewards(db, record.employee_id, record)
    return AttendanceRecordResponse(record=out, rewards=rewards)
