"""
Tests for leaderboard windows, aggregation and ranking
"""
from datetime import date, datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest
from fastapi import HTTPException

from app.models.achievement import Achievement, EmployeeAchievement
from app.models.attendance import AttendanceRecord, AttendanceStatus
from app.models.leaderboard import LeaderboardEntry, LeaderboardPeriod
from app.models.points import PointTransaction, PointType
from app.services import leaderboard_service
from app.services.leaderboard_service import (
    compute_employee_metrics,
    get_leaderboard,
    period_window,
    recompute_leaderboard,
)
from app.services.point_ledger_service import append_transactions

IST = ZoneInfo("Asia/Kolkata")
NOW = datetime(2026, 3, 14, 12, 0, tzinfo=IST)


def award(db, employee_id, points, point_type=PointType.MANUAL, earned_at=None, related_id=None):
    append_transactions(db, [PointTransaction(
        employee_id=employee_id,
        points=points,
        point_type=point_type,
        reason="test",
        related_id=related_id,
        related_type="test" if related_id else None,
        earned_at=earned_at or NOW,
    )])


def entries(db, period="MONTHLY"):
    return (
        db.query(LeaderboardEntry)
        .filter(LeaderboardEntry.period == period)
        .order_by(LeaderboardEntry.overall_rank)
        .all()
    )


@pytest.mark.parametrize("period,start,end,key", [
    ("WEEKLY", date(2026, 3, 8), date(2026, 3, 14), (2026, 0, 11)),
    ("MONTHLY", date(2026, 3, 1), date(2026, 3, 31), (2026, 3, 0)),
    ("QUARTERLY", date(2026, 1, 1), date(2026, 3, 31), (2026, 0, 0)),
    ("ANNUAL", date(2026, 1, 1), date(2026, 12, 31), (2026, 0, 0)),
])
def test_period_windows(period, start, end, key):
    window = period_window(period, NOW)

    assert (window.start, window.end) == (start, end)
    assert (window.year, window.month, window.week) == key


def test_period_window_uses_local_date():
    # 2026-03-31 19:00 UTC is already 1 April in IST
    window = period_window(LeaderboardPeriod.MONTHLY, datetime(2026, 3, 31, 19, 0, tzinfo=timezone.utc))
    assert (window.year, window.month) == (2026, 4)

    quarter = period_window(LeaderboardPeriod.QUARTERLY, datetime(2026, 3, 31, 19, 0, tzinfo=timezone.utc))
    assert (quarter.start, quarter.end) == (date(2026, 4, 1), date(2026, 6, 30))


def test_only_monthly_and_weekly_keys_use_month_and_week():
    at = datetime(2026, 5, 10, 12, 0, tzinfo=IST)

    assert period_window("QUARTERLY", at).key == {"period": "QUARTERLY", "year": 2026, "month": 0, "week": 0}
    assert period_window("ANNUAL", at).key == {"period": "ANNUAL", "year": 2026, "month": 0, "week": 0}
    assert period_window("MONTHLY", at).key["week"] == 0
    assert period_window("WEEKLY", at).key["month"] == 0


def test_weekly_key_uses_iso_year():
    window = period_window("weekly", datetime(2027, 1, 1, 12, 0, tzinfo=IST))
    assert (window.year, window.week) == (2026, 53)


def test_invalid_period_is_rejected():
    with pytest.raises(HTTPException) as exc_info:
        period_window("DAILY", NOW)
    assert exc_info.value.status_code == 400


def test_category_subtotals(db, employee):
    award(db, employee.id, 10, PointType.ATTENDANCE_BONUS, related_id="1")
    award(db, employee.id, 5, PointType.PUNCTUALITY_BONUS, related_id="1")
    award(db, employee.id, 15, PointType.OVERTIME_BONUS, related_id="1")
    award(db, employee.id, 8, PointType.WORK_LOG_COMPLETION, related_id="2026-03-10")
    award(db, employee.id, 25, PointType.CONSISTENCY_BONUS, related_id="2026-03-10")
    award(db, employee.id, 100, PointType.ACHIEVEMENT_UNLOCK, related_id="1")
    award(db, employee.id, -5)

    metrics = compute_employee_metrics(db, employee.id, period_window("MONTHLY", NOW))

    assert metrics["attendance_points"] == 30
    assert metrics["worklog_points"] == 33
    assert metrics["achievement_points"] == 100
    assert metrics["total_points"] == 158


def test_points_outside_local_window_are_excluded(db, employee):
    # 23:59:59 IST on 28 Feb, and 00:00 IST on 1 Mar
    award(db, employee.id, 7, earned_at=datetime(2026, 2, 28, 18, 29, 59, tzinfo=timezone.utc))
    award(db, employee.id, 11, earned_at=datetime(2026, 2, 28, 18, 30, tzinfo=timezone.utc))

    metrics = compute_employee_metrics(db, employee.id, period_window("MONTHLY", NOW))

    assert metrics["total_points"] == 11


def test_attendance_rate_hours_and_achievement_count(db, employee):
    for day, status, hours in [
        (date(2026, 3, 2), AttendanceStatus.PRESENT, 8),
        (date(2026, 3, 3), AttendanceStatus.WFH_APPROVED, 9),
        (date(2026, 3, 4), AttendanceStatus.ABSENT, None),
        (date(2026, 2, 27), AttendanceStatus.PRESENT, 10),
    ]:
        db.add(AttendanceRecord(employee_id=employee.id, date=day, status=status, total_hours=hours))
    first = Achievement(code="a", name="A", point_value=1)
    second = Achievement(code="b", name="B", point_value=1)
    db.add_all([first, second])
    db.commit()
    db.add_all([
        EmployeeAchievement(employee_id=employee.id, achievement_id=first.id, progress=100, is_completed=True,
                            unlocked_at=datetime(2026, 3, 5, 6, 0, tzinfo=timezone.utc)),
        EmployeeAchievement(employee_id=employee.id, achievement_id=second.id, progress=100, is_completed=True,
                            unlocked_at=datetime(2026, 2, 5, 6, 0, tzinfo=timezone.utc)),
    ])
    db.commit()

    metrics = compute_employee_metrics(db, employee.id, period_window("MONTHLY", NOW))

    assert metrics["attendance_rate"] == pytest.approx(66.67)
    assert metrics["avg_work_hours"] == pytest.approx(5.67)
    assert metrics["achievement_count"] == 1


def test_metrics_for_empty_window(db, employee):
    metrics = compute_employee_metrics(db, employee.id, period_window("WEEKLY", NOW))

    assert metrics == {
        "total_points": 0,
        "attendance_points": 0,
        "worklog_points": 0,
        "achievement_points": 0,
        "attendance_rate": 0.0,
        "avg_work_hours": 0.0,
        "achievement_count": 0,
    }


def test_recompute_ranks_by_total_points(db, make_employee):
    low, high = make_employee(), make_employee()
    award(db, low.id, 50)
    award(db, high.id, 80)

    result = recompute_leaderboard(db, "MONTHLY", now=NOW)

    assert result["processed"] == 2
    assert result["failed"] == []
    assert [(e.employee_id, e.overall_rank, e.total_points) for e in entries(db)] == [
        (high.id, 1, 80),
        (low.id, 2, 50),
    ]


def test_recompute_twice_is_idempotent(db, make_employee):
    a, b = make_employee(), make_employee()
    award(db, a.id, 30)
    award(db, b.id, 20)

    recompute_leaderboard(db, "MONTHLY", now=NOW)
    first = [(e.employee_id, e.overall_rank, e.total_points) for e in entries(db)]
    recompute_leaderboard(db, "MONTHLY", now=NOW + timedelta(minutes=5))
    second = [(e.employee_id, e.overall_rank, e.total_points) for e in entries(db)]

    assert first == second
    assert db.query(LeaderboardEntry).count() == 2


def test_recompute_updates_existing_rows(db, employee):
    award(db, employee.id, 30)
    recompute_leaderboard(db, "MONTHLY", now=NOW)
    award(db, employee.id, 12)

    recompute_leaderboard(db, "MONTHLY", now=NOW)

    [entry] = entries(db)
    assert entry.total_points == 42


def test_ties_are_broken_by_lower_employee_id(db, make_employee):
    first, second, third = make_employee(), make_employee(), make_employee()
    for emp in (third, first, second):
        award(db, emp.id, 40)

    recompute_leaderboard(db, "MONTHLY", now=NOW)

    assert [(e.employee_id, e.overall_rank) for e in entries(db)] == [
        (first.id, 1),
        (second.id, 2),
        (third.id, 3),
    ]


def test_periods_are_independent_keys(db, employee):
    award(db, employee.id, 10)

    for period in LeaderboardPeriod:
        recompute_leaderboard(db, period, now=NOW)

    rows = db.query(LeaderboardEntry).all()
    assert sorted((r.period, r.year, r.month, r.week) for r in rows) == [
        ("ANNUAL", 2026, 0, 0),
        ("MONTHLY", 2026, 3, 0),
        ("QUARTERLY", 2026, 0, 0),
        ("WEEKLY", 2026, 0, 11),
    ]


def test_inactive_employees_are_not_recomputed(db, make_employee):
    active = make_employee()
    inactive = make_employee(active=False)
    award(db, inactive.id, 100)

    result = recompute_leaderboard(db, "MONTHLY", now=NOW)

    assert result["processed"] == 1
    assert [e.employee_id for e in entries(db)] == [active.id]


def test_failure_for_one_employee_is_skipped(db, make_employee, monkeypatch):
    broken, healthy = make_employee(), make_employee()
    award(db, healthy.id, 25)
    real_metrics = leaderboard_service.compute_employee_metrics

    def flaky_metrics(db_, employee_id, window):
        if employee_id == broken.id:
            raise RuntimeError("boom")
        return real_metrics(db_, employee_id, window)

    monkeypatch.setattr(leaderboard_service, "compute_employee_metrics", flaky_metrics)

    result = recompute_leaderboard(db, "MONTHLY", now=NOW)

    assert result["failed"] == [broken.id]
    assert result["processed"] == 1
    assert [(e.employee_id, e.overall_rank) for e in entries(db)] == [(healthy.id, 1)]


def test_get_leaderboard_reads_requested_key(db, make_employee):
    a, b = make_employee(), make_employee()
    award(db, a.id, 10)
    award(db, b.id, 20)
    recompute_leaderboard(db, "MONTHLY", now=NOW)

    current = get_leaderboard(db, "MONTHLY", now=NOW)
    explicit = get_leaderboard(db, "MONTHLY", year=2026, month=3, now=NOW + timedelta(days=40))
    other_month = get_leaderboard(db, "MONTHLY", year=2026, month=2, now=NOW)
    top_one = get_leaderboard(db, "MONTHLY", limit=1, now=NOW)

    assert [e.employee_id for e in current] == [b.id, a.id]
    assert [e.employee_id for e in explicit] == [b.id, a.id]
    assert other_month == []
    assert [e.employee_id for e in top_one] == [b.id]


@pytest.mark.parametrize("period,params", [
    ("QUARTERLY", {"month": 1}),
    ("MONTHLY", {"month": 13}),
    ("MONTHLY", {"week": 10}),
    ("WEEKLY", {"week": 54}),
])
def test_get_leaderboard_validates_key_fields(db, period, params):
    with pytest.raises(HTTPException) as exc_info:
        get_leaderboard(db, period, now=NOW, **params)
    assert exc_info.value.status_code == 400


def test_quarterly_rows_are_stored_and_read_with_month_zero(db, employee):
    award(db, employee.id, 10)

    recompute_leaderboard(db, "QUARTERLY", now=NOW)

    [row] = db.query(LeaderboardEntry).filter(LeaderboardEntry.period == "QUARTERLY").all()
    assert (row.year, row.month, row.week) == (2026, 0, 0)
    assert [e.employee_id for e in get_leaderboard(db, "QUARTERLY", now=NOW)] == [employee.id]
