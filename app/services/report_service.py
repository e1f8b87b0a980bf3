"""
Report service - read-only rollups of the ledger, progress rows and the
monthly leaderboard for the employee summary and the admin overview.

The "current cycle" is the local calendar month containing ``now`` (the
MONTHLY leaderboard window). Rank fields come from the stored MONTHLY
snapshot and are empty until it has been recomputed.
"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.models.achievement import Achievement, EmployeeAchievement
from app.models.employee import Employee
from app.models.leaderboard import LeaderboardEntry, LeaderboardPeriod
from app.models.points import PointTransaction
from app.services.leaderboard_service import PeriodWindow, period_window
from app.services.point_ledger_service import get_point_balance, list_transactions
from app.utils.datetime_utils import ensure_utc, now_utc
from app.utils.enums import enum_to_str

TOP_EMPLOYEES_LIMIT = 10
EMPLOYEE_RECENT_ACTIVITY_LIMIT = 10
ADMIN_RECENT_ACTIVITY_LIMIT = 15
RECENT_ACHIEVEMENTS_LIMIT = 5


def _monthly_top(db: Session, window: PeriodWindow, limit: int = TOP_EMPLOYEES_LIMIT) -> List[LeaderboardEntry]:
    return (
        db.query(LeaderboardEntry)
        .filter(
            LeaderboardEntry.period == window.period.value,
            LeaderboardEntry.year == window.year,
            LeaderboardEntry.month == window.month,
            LeaderboardEntry.week == 0,
        )
        .order_by(LeaderboardEntry.overall_rank.asc(), LeaderboardEntry.employee_id.asc())
        .limit(limit)
        .all()
    )


def _cycle_filter(q, window: PeriodWindow):
    lower, upper = window.utc_bounds()
    return q.filter(PointTransaction.earned_at >= lower, PointTransaction.earned_at < upper)


def get_employee_summary(db: Session, employee_id: int, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Points, achievements, monthly standing and recent activity of one employee.

    Returns:
        Dict with points, achievements, leaderboard and recent_activities sections
    """
    now = ensure_utc(now) or now_utc()
    window = period_window(LeaderboardPeriod.MONTHLY, now)

    cycle_points = _cycle_filter(
        db.query(func.coalesce(func.sum(PointTransaction.points), 0))
        .filter(PointTransaction.employee_id == employee_id),
        window,
    ).scalar()

    active_total = db.query(func.count(Achievement.id)).filter(Achievement.is_active == True).scalar() or 0
    progress_rows = (
        db.query(EmployeeAchievement)
        .filter(EmployeeAchievement.employee_id == employee_id)
        .all()
    )
    completed = [row for row in progress_rows if row.is_completed]
    completed.sort(key=lambda row: ensure_utc(row.unlocked_at) or now, reverse=True)

    own_entry = (
        db.query(LeaderboardEntry)
        .filter(
            LeaderboardEntry.employee_id == employee_id,
            LeaderboardEntry.period == window.period.value,
            LeaderboardEntry.year == window.year,
            LeaderboardEntry.month == window.month,
            LeaderboardEntry.week == 0,
        )
        .first()
    )

    return {
        "employee_id": employee_id,
        "cycle_start": window.start,
        "cycle_end": window.end,
        "points": {
            "total": get_point_balance(db, employee_id),
            "current_cycle": int(cycle_points or 0),
        },
        "achievements": {
            "total": int(active_total),
            "unlocked": len(completed),
            "progress": round(len(completed) * 100 / active_total) if active_total else 0,
            "recent": completed[:RECENT_ACHIEVEMENTS_LIMIT],
        },
        "leaderboard": {
            "current_rank": own_entry.overall_rank if own_entry else None,
            "total_points": own_entry.total_points if own_entry else 0,
            "top_employees": [
                {
                    "rank": entry.overall_rank,
                    "employee_id": entry.employee_id,
                    "name": entry.employee.name if entry.employee else None,
                    "points": entry.total_points,
                    "is_me": entry.employee_id == employee_id,
                }
                for entry in _monthly_top(db, window)
            ],
        },
        "recent_activities": list_transactions(db, employee_id, limit=EMPLOYEE_RECENT_ACTIVITY_LIMIT),
    }


def get_admin_overview(db: Session, now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Engagement and distribution figures for the current cycle across all employees.

    Returns:
        Dict with overview, top_performers, point_distribution, achievements
        and recent_activities sections
    """
    now = ensure_utc(now) or now_utc()
    window = period_window(LeaderboardPeriod.MONTHLY, now)

    total_employees = db.query(func.count(Employee.id)).filter(Employee.active == True).scalar() or 0

    points_total, activity_count = _cycle_filter(
        db.query(func.coalesce(func.sum(PointTransaction.points), 0), func.count(PointTransaction.id)),
        window,
    ).one()
    active_employees = _cycle_filter(
        db.query(func.count(func.distinct(PointTransaction.employee_id))),
        window,
    ).scalar() or 0

    by_type = _cycle_filter(
        db.query(
            PointTransaction.point_type,
            func.sum(PointTransaction.points),
            func.count(PointTransaction.id),
        ),
        window,
    ).group_by(PointTransaction.point_type).all()

    unlocked_by = dict(
        db.query(EmployeeAchievement.achievement_id, func.count(EmployeeAchievement.id))
        .filter(EmployeeAchievement.is_completed == True)
        .group_by(EmployeeAchievement.achievement_id)
        .all()
    )
    achievements = []
    for achievement in db.query(Achievement).filter(Achievement.is_active == True).order_by(Achievement.id):
        count = int(unlocked_by.get(achievement.id, 0))
        achievements.append({
            "id": achievement.id,
            "code": achievement.code,
            "name": achievement.name,
            "category": achievement.category,
            "point_value": achievement.point_value,
            "unlocked_by": count,
            "unlock_rate": round(count * 100 / total_employees, 2) if total_employees else 0.0,
        })

    recent = (
        db.query(PointTransaction, Employee.name)
        .join(Employee, PointTransaction.employee_id == Employee.id)
        .order_by(PointTransaction.earned_at.desc(), PointTransaction.id.desc())
        .limit(ADMIN_RECENT_ACTIVITY_LIMIT)
        .all()
    )

    return {
        "cycle_start": window.start,
        "cycle_end": window.end,
        "overview": {
            "total_employees": int(total_employees),
            "active_employees": int(active_employees),
            "engagement_rate": round(active_employees * 100 / total_employees) if total_employees else 0,
            "total_points_distributed": int(points_total or 0),
            "total_activities": int(activity_count or 0),
        },
        "top_performers": [
            {
                "rank": entry.overall_rank,
                "employee_id": entry.employee_id,
                "name": entry.employee.name if entry.employee else None,
                "total_points": entry.total_points,
                "attendance_points": entry.attendance_points,
                "worklog_points": entry.worklog_points,
                "achievement_points": entry.achievement_points,
                "attendance_rate": entry.attendance_rate,
                "avg_work_hours": entry.avg_work_hours,
            }
            for entry in _monthly_top(db, window)
        ],
        "point_distribution": sorted(
            (
                {"point_type": enum_to_str(point_type), "total_points": int(total or 0), "count": int(count)}
                for point_type, total, count in by_type
            ),
            key=lambda row: row["point_type"],
        ),
        "achievements": achievements,
        "recent_activities": [
            {
                "id": tx.id,
                "employee_id": tx.employee_id,
                "employee_name": name,
                "points": tx.points,
                "point_type": tx.point_type,
                "reason": tx.reason,
                "earned_at": tx.earned_at,
            }
            for tx, name in recent
        ],
    }
