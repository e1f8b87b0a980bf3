"""
Leaderboard Service - ranked per-period snapshots.

Windows (local civil dates, inclusive):
- WEEKLY: trailing 7 days ending today; keyed by ISO year and ISO week
- MONTHLY: calendar month; keyed by year and month
- QUARTERLY: calendar quarter; keyed by year (month and week are 0)
- ANNUAL: calendar year; keyed by year

Entries are a cache derived from the ledger, attendance and progress rows:
recomputing a key is an upsert, and ranks are reassigned over the whole key
scope (total_points desc, employee_id asc).
"""
import calendar
import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.constants import WEEK_WINDOW_DAYS
from app.db.upsert import dialect_insert
from app.models.achievement import EmployeeAchievement
from app.models.attendance import AttendanceRecord
from app.models.employee import Employee
from app.models.leaderboard import LeaderboardEntry, LeaderboardPeriod
from app.models.points import (
    PointTransaction,
    ATTENDANCE_POINT_TYPES,
    WORK_LOG_POINT_TYPES,
    ACHIEVEMENT_POINT_TYPES,
)
from app.services.point_award_service import is_attended
from app.utils.datetime_utils import ensure_utc, local_date, local_day_bounds, now_utc
from app.utils.enums import enum_to_str, parse_enum

logger = logging.getLogger(__name__)

DEFAULT_LEADERBOARD_LIMIT = 50

_KEY_COLUMNS = ["employee_id", "period", "year", "month", "week"]


@dataclass(frozen=True)
class PeriodWindow:
    period: LeaderboardPeriod
    start: date
    end: date
    year: int
    month: int = 0
    week: int = 0

    @property
    def key(self) -> Dict[str, Any]:
        return {"period": self.period.value, "year": self.year, "month": self.month, "week": self.week}

    def utc_bounds(self):
        return local_day_bounds(self.start, self.end)


def period_window(period, now: datetime) -> PeriodWindow:
    """Window and key fields of the period instance containing ``now``."""
    period = parse_enum(LeaderboardPeriod, period, "period")
    today = local_date(now)

    if period == LeaderboardPeriod.WEEKLY:
        iso_year, iso_week, _ = today.isocalendar()
        return PeriodWindow(
            period=period,
            start=today - timedelta(days=WEEK_WINDOW_DAYS - 1),
            end=today,
            year=iso_year,
            week=iso_week,
        )
    if period == LeaderboardPeriod.MONTHLY:
        last_day = calendar.monthrange(today.year, today.month)[1]
        return PeriodWindow(
            period=period,
            start=today.replace(day=1),
            end=today.replace(day=last_day),
            year=today.year,
            month=today.month,
        )
    if period == LeaderboardPeriod.QUARTERLY:
        quarter = (today.month - 1) // 3 + 1
        first_month = (quarter - 1) * 3 + 1
        last_month = first_month + 2
        return PeriodWindow(
            period=period,
            start=date(today.year, first_month, 1),
            end=date(today.year, last_month, calendar.monthrange(today.year, last_month)[1]),
            year=today.year,
        )
    return PeriodWindow(
        period=period,
        start=date(today.year, 1, 1),
        end=date(today.year, 12, 31),
        year=today.year,
    )


def compute_employee_metrics(db: Session, employee_id: int, window: PeriodWindow) -> Dict[str, Any]:
    """
    Window totals for one employee.

    Returns:
        Dict with total/attendance/worklog/achievement points, attendance_rate
        (percent of the window's attendance records that are attended),
        avg_work_hours and achievement_count (unlocks inside the window)
    """
    lower, upper = window.utc_bounds()

    by_type = dict(
        db.query(PointTransaction.point_type, func.sum(PointTransaction.points))
        .filter(
            PointTransaction.employee_id == employee_id,
            PointTransaction.earned_at >= lower,
            PointTransaction.earned_at < upper,
        )
        .group_by(PointTransaction.point_type)
        .all()
    )

    def _sum(types) -> int:
        return int(sum(by_type.get(t) or 0 for t in types))

    records = (
        db.query(AttendanceRecord.status, AttendanceRecord.total_hours)
        .filter(
            AttendanceRecord.employee_id == employee_id,
            AttendanceRecord.date >= window.start,
            AttendanceRecord.date <= window.end,
        )
        .all()
    )
    attended = sum(1 for s, _ in records if is_attended(s))
    attendance_rate = round(attended * 100 / len(records), 2) if records else 0.0
    avg_work_hours = round(sum((h or 0) for _, h in records) / len(records), 2) if records else 0.0

    achievement_count = (
        db.query(func.count(EmployeeAchievement.id))
        .filter(
            EmployeeAchievement.employee_id == employee_id,
            EmployeeAchievement.is_completed == True,
            EmployeeAchievement.unlocked_at >= lower,
            EmployeeAchievement.unlocked_at < upper,
        )
        .scalar()
    ) or 0

    return {
        "total_points": int(sum((v or 0) for v in by_type.values())),
        "attendance_points": _sum(ATTENDANCE_POINT_TYPES),
        "worklog_points": _sum(WORK_LOG_POINT_TYPES),
        "achievement_points": _sum(ACHIEVEMENT_POINT_TYPES),
        "attendance_rate": attendance_rate,
        "avg_work_hours": avg_work_hours,
        "achievement_count": int(achievement_count),
    }


def _upsert_entry(db: Session, employee_id: int, window: PeriodWindow, metrics: Dict[str, Any], computed_at: datetime):
    values = dict(window.key, employee_id=employee_id, computed_at=computed_at, **metrics)
    stmt = dialect_insert(db, LeaderboardEntry).values(**values)
    stmt = stmt.on_conflict_do_update(
        index_elements=_KEY_COLUMNS,
        set_={**metrics, "computed_at": computed_at},
    )
    db.execute(stmt)


def _scope_query(db: Session, window: PeriodWindow):
    key = window.key
    return db.query(LeaderboardEntry).filter(
        LeaderboardEntry.period == key["period"],
        LeaderboardEntry.year == key["year"],
        LeaderboardEntry.month == key["month"],
        LeaderboardEntry.week == key["week"],
    )


def assign_ranks(db: Session, window: PeriodWindow) -> int:
    """Rank every entry of the key scope 1..N by total_points desc, employee_id asc."""
    entries = (
        _scope_query(db, window)
        .order_by(LeaderboardEntry.total_points.desc(), LeaderboardEntry.employee_id.asc())
        .all()
    )
    for rank, entry in enumerate(entries, start=1):
        entry.overall_rank = rank
    db.commit()
    return len(entries)


def recompute_leaderboard(db: Session, period, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Recompute the snapshot of the period instance containing ``now``.

    Each employee is written in its own transaction; a failure for one employee
    is logged and skipped and the run continues.

    Returns:
        Summary dict with the key fields, processed/failed counts and ranked entries
    """
    now = ensure_utc(now) or now_utc()
    window = period_window(period, now)
    employee_ids = [
        row.id for row in db.query(Employee.id).filter(Employee.active == True).order_by(Employee.id)
    ]

    processed = 0
    failed = []
    for employee_id in employee_ids:
        try:
            metrics = compute_employee_metrics(db, employee_id, window)
            _upsert_entry(db, employee_id, window, metrics, now)
            db.commit()
            processed += 1
        except Exception:
            db.rollback()
            logger.exception(
                "Leaderboard recompute failed for employee_id=%s period=%s year=%s month=%s week=%s",
                employee_id, window.period.value, window.year, window.month, window.week,
            )
            failed.append(employee_id)

    ranked = assign_ranks(db, window)
    logger.info(
        "Leaderboard recomputed: period=%s year=%s month=%s week=%s processed=%s failed=%s ranked=%s",
        window.period.value, window.year, window.month, window.week, processed, len(failed), ranked,
    )
    return {
        **window.key,
        "start": window.start.isoformat(),
        "end": window.end.isoformat(),
        "processed": processed,
        "failed": failed,
        "ranked": ranked,
    }


def get_leaderboard(
    db: Session,
    period,
    year: Optional[int] = None,
    month: Optional[int] = None,
    week: Optional[int] = None,
    limit: int = DEFAULT_LEADERBOARD_LIMIT,
    now: Optional[datetime] = None,
) -> List[LeaderboardEntry]:
    """
    Read a stored snapshot ordered by rank. Key fields not given default to
    the period instance containing ``now``.
    """
    window = period_window(period, ensure_utc(now) or now_utc())
    if limit < 1:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="limit must be positive")
    if window.period == LeaderboardPeriod.MONTHLY and month is not None and not 1 <= month <= 12:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="month must be between 1 and 12")
    if window.period != LeaderboardPeriod.MONTHLY and month is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="month only applies to MONTHLY")
    if window.period != LeaderboardPeriod.WEEKLY and week is not None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="week only applies to WEEKLY")
    if window.period == LeaderboardPeriod.WEEKLY and week is not None and not 1 <= week <= 53:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="week must be between 1 and 53")

    key = window.key
    q = db.query(LeaderboardEntry).filter(
        LeaderboardEntry.period == enum_to_str(window.period),
        LeaderboardEntry.year == (year if year is not None else key["year"]),
    )
    if window.period == LeaderboardPeriod.MONTHLY:
        q = q.filter(LeaderboardEntry.month == (month if month is not None else key["month"]))
    else:
        q = q.filter(LeaderboardEntry.month == 0)
    if window.period == LeaderboardPeriod.WEEKLY:
        q = q.filter(LeaderboardEntry.week == (week if week is not None else key["week"]))
    else:
        q = q.filter(LeaderboardEntry.week == 0)

    return (
        q.order_by(
            LeaderboardEntry.overall_rank.asc(),
            LeaderboardEntry.total_points.desc(),
            LeaderboardEntry.employee_id.asc(),
        )
        .limit(limit)
        .all()
    )
