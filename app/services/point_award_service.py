"""
Point Award Service - translates attendance and work-log events into ledger rows.

Attendance (per record):
- PRESENT / WFH_APPROVED: +10 attendance bonus
- check-in at or before 09:30 local time: +5 punctuality bonus
- overtime: +15 per full hour (fractions below one hour earn nothing)

Work logs (per submission):
- one completion row: sum over logs of floor(minutes / 30) * 8
- +25 consistency bonus when the submission itself was made before 18:00 local
  time. The submission timestamp decides, never the wall clock at processing
  time, so delayed or backfilled processing awards the same points.

Every row carries related_type/related_id so a retried award is ignored by
the ledger's uniqueness constraint. Attendance rows are keyed by the record
id, work-log rows by the submission (the lowest id among its stored logs), so
a later submission on the same day is a separate event.
"""
import logging
import math
from datetime import datetime
from typing import List, Optional, Sequence

from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.constants import (
    ATTENDANCE_BONUS_POINTS,
    PUNCTUALITY_BONUS_POINTS,
    OVERTIME_POINTS_PER_HOUR,
    WORK_LOG_POINTS_PER_BLOCK,
    WORK_LOG_BLOCK_MINUTES,
    CONSISTENCY_BONUS_POINTS,
    RELATED_ATTENDANCE,
    RELATED_WORK_LOG,
)
from app.models.attendance import AttendanceRecord, ATTENDED_STATUSES, WorkLog
from app.models.points import PointTransaction, PointType
from app.services.point_ledger_service import append_transactions
from app.utils.datetime_utils import ensure_utc, now_utc, parse_hhmm, to_local
from app.utils.enums import enum_to_str

logger = logging.getLogger(__name__)

_ATTENDED = {s.value for s in ATTENDED_STATUSES}


def is_attended(status) -> bool:
    return enum_to_str(status) in _ATTENDED


def is_punctual_check_in(check_in_time: Optional[datetime]) -> bool:
    """True if the check-in falls at or before the punctuality cut-off in local civil time (minute resolution)."""
    if check_in_time is None:
        return False
    local = to_local(check_in_time).replace(second=0, microsecond=0)
    return local.time() <= parse_hhmm(settings.PUNCTUALITY_CUTOFF)


def is_on_time_submission(submitted_at: datetime) -> bool:
    """True if the submission was made strictly before the submission cut-off in local civil time."""
    return to_local(submitted_at).time() < parse_hhmm(settings.WORK_LOG_SUBMISSION_CUTOFF)


def work_log_points(total_minutes: Optional[int]) -> int:
    return ((total_minutes or 0) // WORK_LOG_BLOCK_MINUTES) * WORK_LOG_POINTS_PER_BLOCK


def submission_key(logs: Sequence[WorkLog]) -> Optional[str]:
    """Stable id of a submission: its lowest stored log id (None if no log is stored yet)."""
    ids = [log.id for log in logs if log.id is not None]
    return str(min(ids)) if ids else None


def award_attendance_points(
    db: Session,
    employee_id: int,
    record: AttendanceRecord,
    now: Optional[datetime] = None,
) -> List[PointTransaction]:
    """
    Award attendance, punctuality and overtime points for one attendance record.

    Args:
        db: Database session
        employee_id: Employee being awarded
        record: Attendance record (status, check_in_time, overtime hours, id)
        now: Instant stamped on the rows as earned_at (defaults to current UTC time)

    Returns:
        Transactions actually appended (empty if none qualify or all were already awarded)
    """
    earned_at = ensure_utc(now) or now_utc()
    related_id = str(record.id) if record.id is not None else None

    def _entry(point_type: PointType, points: int, reason: str) -> PointTransaction:
        return PointTransaction(
            employee_id=employee_id,
            points=points,
            point_type=point_type,
            reason=reason,
            related_id=related_id,
            related_type=RELATED_ATTENDANCE,
            earned_at=earned_at,
        )

    entries = []
    if is_attended(record.status):
        entries.append(_entry(PointType.ATTENDANCE_BONUS, ATTENDANCE_BONUS_POINTS, "Daily attendance bonus"))

    if is_punctual_check_in(record.check_in_time):
        entries.append(_entry(PointType.PUNCTUALITY_BONUS, PUNCTUALITY_BONUS_POINTS, "Early check-in bonus"))

    overtime = float(record.overtime or 0)
    overtime_points = math.floor(overtime) * OVERTIME_POINTS_PER_HOUR if overtime > 0 else 0
    if overtime_points > 0:
        entries.append(_entry(
            PointType.OVERTIME_BONUS,
            overtime_points,
            f"Overtime bonus ({overtime:g} hours)",
        ))

    appended = append_transactions(db, entries)
    if appended:
        logger.info(
            "Attendance points awarded: employee_id=%s record_id=%s rows=%s points=%s",
            employee_id, related_id, len(appended), sum(t.points for t in appended),
        )
    return appended


def award_work_log_points(
    db: Session,
    employee_id: int,
    logs: Sequence[WorkLog],
    submission_date: datetime,
) -> List[PointTransaction]:
    """
    Award work-log completion and consistency points for one submission.

    Args:
        db: Database session
        employee_id: Employee being awarded
        logs: Stored logs of one submission (each with id and total_minutes)
        submission_date: Timestamp of the submission; decides the on-time bonus
            and earned_at

    Returns:
        Transactions actually appended
    """
    submitted_at = ensure_utc(submission_date)
    related_id = submission_key(logs)

    def _entry(point_type: PointType, points: int, reason: str) -> PointTransaction:
        return PointTransaction(
            employee_id=employee_id,
            points=points,
            point_type=point_type,
            reason=reason,
            related_id=related_id,
            related_type=RELATED_WORK_LOG,
            earned_at=submitted_at,
        )

    entries = []
    total_minutes = sum((log.total_minutes or 0) for log in logs)
    completion_points = sum(work_log_points(log.total_minutes) for log in logs)
    if completion_points > 0:
        entries.append(_entry(
            PointType.WORK_LOG_COMPLETION,
            completion_points,
            f"Work log completion ({len(logs)} logs, {total_minutes} minutes)",
        ))

    if is_on_time_submission(submitted_at):
        entries.append(_entry(PointType.CONSISTENCY_BONUS, CONSISTENCY_BONUS_POINTS, "On-time work log submission"))

    appended = append_transactions(db, entries)
    if appended:
        logger.info(
            "Work-log points awarded: employee_id=%s submission=%s rows=%s points=%s",
            employee_id, related_id, len(appended), sum(t.points for t in appended),
        )
    return appended
