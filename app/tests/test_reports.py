"""
Tests for the employee summary and the admin overview
"""
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from app.models.achievement import Achievement, EmployeeAchievement
from app.models.points import PointTransaction, PointType
from app.services.leaderboard_service import recompute_leaderboard
from app.services.point_ledger_service import append_transactions
from app.services.report_service import get_admin_overview, get_employee_summary

IST = ZoneInfo("Asia/Kolkata")
NOW = datetime(2026, 3, 14, 12, 0, tzinfo=IST)


def award(db, employee_id, points, earned_at, point_type=PointType.MANUAL, related_id=None):
    append_transactions(db, [PointTransaction(
        employee_id=employee_id,
        points=points,
        point_type=point_type,
        reason=f"{points} points",
        related_id=related_id,
        related_type="attendance" if related_id else None,
        earned_at=earned_at,
    )])


@pytest.fixture
def scenario(db, make_employee):
    """Two earners this month, one idle employee and one unlocked achievement"""
    me, rival, idle = make_employee(), make_employee(), make_employee()
    award(db, me.id, 25, datetime(2026, 2, 20, 6, 0, tzinfo=timezone.utc))
    award(db, me.id, 40, NOW - timedelta(hours=2))
    award(db, rival.id, 10, NOW - timedelta(hours=1), PointType.ATTENDANCE_BONUS, related_id="1")
    award(db, rival.id, 80, NOW)

    streak = Achievement(code="perfect_week", name="Perfect Week", point_value=0)
    work_logger = Achievement(code="work_logger", name="Work Logger", point_value=0)
    db.add_all([streak, work_logger])
    db.commit()
    db.add(EmployeeAchievement(
        employee_id=me.id,
        achievement_id=streak.id,
        progress=100,
        is_completed=True,
        unlocked_at=datetime(2026, 3, 12, 6, 0, tzinfo=timezone.utc),
    ))
    db.commit()

    recompute_leaderboard(db, "MONTHLY", now=NOW)
    return {"me": me, "rival": rival, "idle": idle, "streak": streak}


def test_employee_summary(db, scenario):
    me, rival = scenario["me"], scenario["rival"]

    summary = get_employee_summary(db, me.id, now=NOW)

    assert summary["points"] == {"total": 65, "current_cycle": 40}
    assert (summary["cycle_start"].isoformat(), summary["cycle_end"].isoformat()) == ("2026-03-01", "2026-03-31")

    achievements = summary["achievements"]
    assert (achievements["total"], achievements["unlocked"], achievements["progress"]) == (2, 1, 50)
    assert [row.achievement_id for row in achievements["recent"]] == [scenario["streak"].id]

    standing = summary["leaderboard"]
    assert standing["current_rank"] == 2
    assert standing["total_points"] == 40
    assert [(e["employee_id"], e["rank"], e["is_me"]) for e in standing["top_employees"]] == [
        (rival.id, 1, False),
        (me.id, 2, True),
        (scenario["idle"].id, 3, False),
    ]

    assert [t.points for t in summary["recent_activities"]] == [40, 25]


def test_employee_summary_without_snapshot(db, employee):
    summary = get_employee_summary(db, employee.id, now=NOW)

    assert summary["points"] == {"total": 0, "current_cycle": 0}
    assert summary["achievements"]["progress"] == 0
    assert summary["leaderboard"] == {"current_rank": None, "total_points": 0, "top_employees": []}
    assert summary["recent_activities"] == []


def test_admin_overview(db, scenario):
    me, rival = scenario["me"], scenario["rival"]

    overview = get_admin_overview(db, now=NOW)

    assert overview["overview"] == {
        "total_employees": 3,
        "active_employees": 2,
        "engagement_rate": 67,
        "total_points_distributed": 130,
        "total_activities": 3,
    }
    assert overview["point_distribution"] == [
        {"point_type": "ATTENDANCE_BONUS", "total_points": 10, "count": 1},
        {"point_type": "MANUAL", "total_points": 120, "count": 2},
    ]
    assert [(a["code"], a["unlocked_by"], a["unlock_rate"]) for a in overview["achievements"]] == [
        ("perfect_week", 1, 33.33),
        ("work_logger", 0, 0.0),
    ]
    assert [(p["employee_id"], p["rank"], p["total_points"]) for p in overview["top_performers"][:2]] == [
        (rival.id, 1, 90),
        (me.id, 2, 40),
    ]
    assert [(a["employee_id"], a["points"]) for a in overview["recent_activities"]] == [
        (rival.id, 80),
        (rival.id, 10),
        (me.id, 40),
        (me.id, 25),
    ]
    assert overview["recent_activities"][0]["employee_name"] == rival.name


def test_admin_overview_of_empty_system(db):
    overview = get_admin_overview(db, now=NOW)

    assert overview["overview"]["engagement_rate"] == 0
    assert overview["overview"]["total_points_distributed"] == 0
    assert overview["point_distribution"] == []
    assert overview["top_performers"] == []
