"""
Gamification Service - ingestion events and the reward hooks they trigger.

Recording attendance or a work-log submission is the primary action and is
committed first. Awarding points and evaluating achievements afterwards is
best-effort: a failure there is logged and never undoes or fails the
primary action.
"""
import logging
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional, Sequence

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.constants import REPROCESS_WINDOW_DAYS
from app.models.attendance import AttendanceRecord, ATTENDED_STATUSES, WorkLog
from app.models.employee import Employee
from app.services.achievement_service import evaluate_achievements
from app.services.audit_service import log_audit
from app.services.point_award_service import award_attendance_points, award_work_log_points
from app.utils.datetime_utils import assume_local, ensure_utc, local_date, local_day_start, now_utc

logger = logging.getLogger(__name__)


def _get_active_employee_or_404(db: Session, employee_id: int) -> Employee:
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if not employee:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    if not employee.active:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Employee is inactive")
    return employee


def _reward_summary(transactions, unlocked) -> Dict[str, Any]:
    return {
        "points_awarded": sum(t.points for t in transactions),
        "transactions": len(transactions),
        "achievements_unlocked": [a.code for a in unlocked],
    }


def process_attendance_rewards(
    db: Session,
    employee_id: int,
    record: AttendanceRecord,
    now: Optional[datetime] = None,
) -> Optional[Dict[str, Any]]:
    """
    Award attendance points for a stored record and re-evaluate achievements.

    Returns:
        Reward summary, or None if the hook failed (failure is logged only)
    """
    record_id = record.id
    try:
        transactions = award_attendance_points(db, employee_id, record, now=now)
        unlocked = evaluate_achievements(db, employee_id, now=now)
    except Exception as e:
        db.rollback()
        logger.warning(
            "Could not process attendance rewards for employee %s (record %s): %s",
            employee_id, record_id, e,
        )
        return None
    return _reward_summary(transactions, unlocked)


def process_work_log_rewards(
    db: Session,
    employee_id: int,
    logs: Sequence[WorkLog],
    submitted_at: datetime,
) -> Optional[Dict[str, Any]]:
    """Work-log counterpart of process_attendance_rewards."""
    try:
        transactions = award_work_log_points(db, employee_id, logs, submitted_at)
        unlocked = evaluate_achievements(db, employee_id, now=submitted_at)
    except Exception as e:
        db.rollback()
        logger.warning("Could not process work-log rewards for employee %s: %s", employee_id, e)
        return None
    return _reward_summary(transactions, unlocked)


def create_attendance_record(db: Session, data: Dict[str, Any]) -> AttendanceRecord:
    """
    Store one attendance record. Naive check-in/out times are local civil time.
    The record date defaults to the local date of the check-in.

    Raises:
        HTTPException 404/400 for unknown or inactive employees,
        400 if no date can be derived, 409 if the employee already has a record that day
    """
    employee_id = data["employee_id"]
    _get_active_employee_or_404(db, employee_id)

    check_in_time = assume_local(data.get("check_in_time"))
    check_out_time = assume_local(data.get("check_out_time"))
    record_date = data.get("date") or (local_date(check_in_time) if check_in_time else None)
    if record_date is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="date is required when check_in_time is not given",
        )
    if check_in_time and check_out_time and check_out_time < check_in_time:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="check_out_time must not be before check_in_time",
        )

    total_hours = data.get("total_hours")
    if total_hours is None and check_in_time and check_out_time:
        total_hours = round((check_out_time - check_in_time).total_seconds() / 3600, 2)

    record = AttendanceRecord(
        employee_id=employee_id,
        date=record_date,
        status=data["status"],
        check_in_time=check_in_time,
        check_out_time=check_out_time,
        total_hours=total_hours,
        overtime=data.get("overtime") or 0,
        source=data.get("source") or "upload",
    )
    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Attendance for employee {employee_id} on {record_date.isoformat()} already exists",
        )
    db.refresh(record)
    logger.info(
        "Attendance recorded: employee_id=%s date=%s status=%s",
        employee_id, record_date, record.status.value,
    )
    return record


def submit_work_logs(
    db: Session,
    employee_id: int,
    entries: Sequence[Dict[str, Any]],
    submitted_at: Optional[datetime] = None,
) -> List[WorkLog]:
    """
    Store one work-log submission (one or more logs). All logs share the
    submission timestamp and its local date. ``submitted_at`` defaults to now;
    a timestamp in the future is rejected.
    """
    _get_active_employee_or_404(db, employee_id)
    if not entries:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="At least one log is required")

    now = now_utc()
    submitted_at = assume_local(submitted_at) or now
    if submitted_at > now:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="submitted_at must not be in the future")
    log_date = local_date(submitted_at)
    logs = [
        WorkLog(
            employee_id=employee_id,
            log_date=log_date,
            total_minutes=entry.get("total_minutes") or 0,
            description=entry.get("description"),
            submitted_at=submitted_at,
        )
        for entry in entries
    ]
    db.add_all(logs)
    db.commit()
    for log in logs:
        db.refresh(log)
    logger.info(
        "Work logs submitted: employee_id=%s day=%s logs=%s minutes=%s",
        employee_id, log_date, len(logs), sum(log.total_minutes for log in logs),
    )
    return logs


def reprocess_attendance(
    db: Session,
    now: Optional[datetime] = None,
    employee_id: Optional[int] = None,
    actor_id: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Backfill: replay attendance awards for attended records of the trailing
    window and re-evaluate achievements. Safe to repeat because awards for
    the same record are ignored by the ledger.

    Each replayed row is stamped with the record's check-in (or the start of
    its local day) so it lands in the right leaderboard window.
    """
    now = ensure_utc(now) or now_utc()
    end = local_date(now)
    start = end - timedelta(days=REPROCESS_WINDOW_DAYS - 1)

    employees_q = db.query(Employee.id).filter(Employee.active == True)
    if employee_id is not None:
        _get_active_employee_or_404(db, employee_id)
        employees_q = employees_q.filter(Employee.id == employee_id)
    employee_ids = [row.id for row in employees_q.order_by(Employee.id)]

    records = (
        db.query(AttendanceRecord)
        .filter(
            AttendanceRecord.employee_id.in_(employee_ids),
            AttendanceRecord.status.in_(ATTENDED_STATUSES),
            AttendanceRecord.date >= start,
            AttendanceRecord.date <= end,
        )
        .order_by(AttendanceRecord.date, AttendanceRecord.id)
        .all()
    ) if employee_ids else []

    points_awarded = 0
    transactions = 0
    failed_records = []
    for record in records:
        earned_at = record.check_in_time or local_day_start(record.date)
        try:
            appended = award_attendance_points(db, record.employee_id, record, now=earned_at)
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Reprocess failed for attendance record %s: %s", record.id, e)
            failed_records.append(record.id)
            continue
        transactions += len(appended)
        points_awarded += sum(t.points for t in appended)

    unlocked = []
    for emp_id in employee_ids:
        try:
            unlocked.extend(a.code for a in evaluate_achievements(db, emp_id, now=now))
        except SQLAlchemyError as e:
            db.rollback()
            logger.warning("Achievement re-check failed for employee %s: %s", emp_id, e)

    summary = {
        "start": start.isoformat(),
        "end": end.isoformat(),
        "employees": len(employee_ids),
        "records_processed": len(records) - len(failed_records),
        "failed_records": failed_records,
        "transactions": transactions,
        "points_awarded": points_awarded,
        "achievements_unlocked": len(unlocked),
    }
    logger.info("Attendance reprocess finished: %s", summary)
    if actor_id is not None:
        log_audit(
            db=db,
            actor_id=actor_id,
            action="GAMIFICATION_REPROCESS",
            entity_type="point_transaction",
            meta=dict(summary, employee_id=employee_id),
        )
    return summary
