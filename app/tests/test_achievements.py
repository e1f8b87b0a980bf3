"""
Tests for achievement evaluation and one-time unlocks
"""
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest
from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.models.achievement import Achievement, EmployeeAchievement
from app.models.attendance import AttendanceRecord, AttendanceStatus, WorkLog
from app.models.points import PointTransaction, PointType
from app.services import achievement_service
from app.services.achievement_calculators import AchievementCode, get_calculator, registered_codes
from app.services.achievement_service import (
    _record_progress,
    compute_progress,
    evaluate_achievements,
    seed_default_achievements,
    update_achievement,
)
from app.services.point_ledger_service import adjust_points, append_transactions, get_point_balance
from app.utils.datetime_utils import ensure_utc

IST = ZoneInfo("Asia/Kolkata")
NOW = datetime(2026, 3, 14, 20, 0, tzinfo=IST)


def attend(db: Session, employee_id: int, days, hour=10, minute=0, status=AttendanceStatus.PRESENT):
    """One attendance record per day offset before NOW (0 = today)"""
    for offset in days:
        day = NOW.date() - timedelta(days=offset)
        check_in = datetime(day.year, day.month, day.day, hour, minute, tzinfo=IST)
        db.add(AttendanceRecord(
            employee_id=employee_id,
            date=day,
            status=status,
            check_in_time=ensure_utc(check_in),
            total_hours=8,
        ))
    db.commit()


def define(db: Session, code: str, point_value=100, requirements=None, is_active=True, name=None):
    achievement = Achievement(
        code=code,
        name=name or code.replace("_", " ").title(),
        category="ATTENDANCE",
        point_value=point_value,
        requirements=requirements,
        is_active=is_active,
    )
    db.add(achievement)
    db.commit()
    db.refresh(achievement)
    return achievement


def progress_row(db: Session, employee_id: int, achievement_id: int) -> EmployeeAchievement:
    return db.query(EmployeeAchievement).filter(
        EmployeeAchievement.employee_id == employee_id,
        EmployeeAchievement.achievement_id == achievement_id,
    ).one()


def unlock_rows(db: Session, employee_id: int):
    return db.query(PointTransaction).filter(
        PointTransaction.employee_id == employee_id,
        PointTransaction.point_type == PointType.ACHIEVEMENT_UNLOCK,
    ).all()


def test_every_builtin_code_has_a_calculator():
    assert registered_codes() == sorted(c.value for c in AchievementCode)
    assert get_calculator("no_such_code") is None


def test_seed_is_idempotent(db):
    assert seed_default_achievements(db) == 5
    assert seed_default_achievements(db) == 0
    assert db.query(Achievement).count() == 5
    values = {a.code: a.point_value for a in db.query(Achievement)}
    assert values == {
        "perfect_week": 100,
        "perfect_month": 50,
        "early_bird": 75,
        "work_logger": 80,
        "points_collector": 150,
    }


def test_seed_keeps_admin_edits(db):
    seed_default_achievements(db)
    achievement = db.query(Achievement).filter(Achievement.code == "early_bird").one()
    update_achievement(db, achievement.id, {"point_value": 999})

    seed_default_achievements(db)

    db.refresh(achievement)
    assert achievement.point_value == 999


def test_perfect_week_unlocks_once(db, employee):
    seed_default_achievements(db)
    attend(db, employee.id, range(6))

    unlocked = evaluate_achievements(db, employee.id, now=NOW)

    assert [a.code for a in unlocked] == ["perfect_week"]
    perfect_week = unlocked[0]
    row = progress_row(db, employee.id, perfect_week.id)
    assert row.is_completed is True
    assert row.progress == 100
    assert ensure_utc(row.unlocked_at) == NOW

    [unlock] = unlock_rows(db, employee.id)
    assert unlock.points == 100
    assert unlock.related_type == "achievement"
    assert unlock.related_id == str(perfect_week.id)
    assert unlock.reason == "Achievement unlocked: Perfect Week"


def test_second_evaluation_does_not_unlock_again(db, employee):
    seed_default_achievements(db)
    attend(db, employee.id, range(6))
    first = evaluate_achievements(db, employee.id, now=NOW)

    second = evaluate_achievements(db, employee.id, now=NOW + timedelta(hours=1))

    assert [a.code for a in first] == ["perfect_week"]
    assert second == []
    assert len(unlock_rows(db, employee.id)) == 1
    row = progress_row(db, employee.id, first[0].id)
    assert ensure_utc(row.unlocked_at) == NOW


def test_completed_achievement_is_never_uncompleted(db, employee):
    seed_default_achievements(db)
    attend(db, employee.id, range(6))
    [perfect_week] = evaluate_achievements(db, employee.id, now=NOW)

    # Sixty days later the trailing window is empty
    evaluate_achievements(db, employee.id, now=NOW + timedelta(days=60))

    row = progress_row(db, employee.id, perfect_week.id)
    assert row.is_completed is True
    assert row.progress == 100
    assert len(unlock_rows(db, employee.id)) == 1


def test_partial_progress_is_recorded(db, employee):
    seed_default_achievements(db)
    attend(db, employee.id, range(3), hour=9, minute=0)

    assert evaluate_achievements(db, employee.id, now=NOW) == []

    progress = {
        row.achievement.code: row.progress
        for row in achievement_service.list_employee_progress(db, employee.id)
    }
    assert progress == {
        "perfect_week": 50,        # 3 / 6
        "perfect_month": 12,       # 3 / 24
        "early_bird": 60,          # 3 / 5
        "work_logger": 0,
        "points_collector": 0,
    }


def test_window_excludes_days_older_than_seven(db, employee):
    attend(db, employee.id, [0, 1, 2, 3, 4, 7, 8])
    perfect_week = define(db, "perfect_week", requirements={"target": 6})

    assert compute_progress(db, employee.id, perfect_week, NOW) == 83  # 5 / 6


def test_absent_days_do_not_count(db, employee):
    attend(db, employee.id, [0, 1, 2], status=AttendanceStatus.ABSENT)
    attend(db, employee.id, [3, 4, 5], status=AttendanceStatus.WFH_APPROVED)
    perfect_week = define(db, "perfect_week", requirements={"target": 6})

    assert compute_progress(db, employee.id, perfect_week, NOW) == 50


def test_work_logger_counts_distinct_days(db, employee):
    for offset in (0, 0, 1, 2, 3, 4):
        day = NOW.date() - timedelta(days=offset)
        db.add(WorkLog(
            employee_id=employee.id,
            log_date=day,
            total_minutes=30,
            submitted_at=ensure_utc(datetime(day.year, day.month, day.day, 12, 0, tzinfo=IST)),
        ))
    db.commit()
    work_logger = define(db, "work_logger", point_value=80, requirements={"target": 5})

    unlocked = evaluate_achievements(db, employee.id, now=NOW)

    assert [a.id for a in unlocked] == [work_logger.id]


def test_points_collector_unlocks_from_lifetime_balance(db, employee, admin):
    collector = define(db, "points_collector", point_value=150, requirements={"target": 500})
    adjust_points(db, employee.id, 500, "Quarterly bonus", actor_id=admin.id)

    unlocked = evaluate_achievements(db, employee.id)

    assert [a.id for a in unlocked] == [collector.id]
    assert get_point_balance(db, employee.id) == 650


def test_points_collector_ignores_points_earned_after_now(db, employee):
    collector = define(db, "points_collector", requirements={"target": 500})
    append_transactions(db, [
        PointTransaction(employee_id=employee.id, points=300, point_type=PointType.MANUAL,
                         reason="before", earned_at=ensure_utc(NOW - timedelta(days=1))),
        PointTransaction(employee_id=employee.id, points=300, point_type=PointType.MANUAL,
                         reason="after", earned_at=ensure_utc(NOW + timedelta(days=1))),
    ])

    assert compute_progress(db, employee.id, collector, ensure_utc(NOW)) == 60
    assert get_point_balance(db, employee.id, as_of=NOW) == 300
    assert get_point_balance(db, employee.id) == 600


def test_window_days_requirement_widens_the_window(db, employee):
    attend(db, employee.id, [0, 1, 2, 8, 9, 10])
    default_window = define(db, "perfect_week", requirements={"target": 6})
    wide_window = define(db, "perfect_month", requirements={"target": 6, "window_days": 14})

    assert compute_progress(db, employee.id, default_window, NOW) == 50
    assert compute_progress(db, employee.id, wide_window, NOW) == 100


@pytest.mark.parametrize("window_days", [0, -3, 2.5, "7", True])
def test_malformed_window_days_give_zero_progress(db, employee, window_days):
    attend(db, employee.id, range(6))
    achievement = define(db, "perfect_week", requirements={"target": 6, "window_days": window_days})

    assert compute_progress(db, employee.id, achievement, NOW) == 0


@pytest.mark.parametrize("requirements", [None, "six days", [6], {"target": 0}, {"target": "six"}, {"target": True}])
def test_malformed_requirements_give_zero_progress(db, employee, requirements):
    attend(db, employee.id, range(6))
    achievement = define(db, "perfect_week", requirements=requirements)

    assert evaluate_achievements(db, employee.id, now=NOW) == []
    assert progress_row(db, employee.id, achievement.id).progress == 0
    assert unlock_rows(db, employee.id) == []


def test_unknown_code_gives_zero_progress(db, employee):
    achievement = define(db, "team_player", requirements={"target": 1})

    assert evaluate_achievements(db, employee.id, now=NOW) == []
    assert progress_row(db, employee.id, achievement.id).progress == 0


def test_inactive_definitions_are_skipped(db, employee):
    attend(db, employee.id, range(6))
    achievement = define(db, "perfect_week", requirements={"target": 6}, is_active=False)

    assert evaluate_achievements(db, employee.id, now=NOW) == []
    assert db.query(EmployeeAchievement).filter(
        EmployeeAchievement.achievement_id == achievement.id
    ).count() == 0


def test_dispatch_by_code_survives_rename(db, employee):
    attend(db, employee.id, range(6))
    achievement = define(db, "perfect_week", requirements={"target": 6}, name="Perfect Week")
    update_achievement(db, achievement.id, {"name": "Six Day Streak"})

    unlocked = evaluate_achievements(db, employee.id, now=NOW)

    assert [a.id for a in unlocked] == [achievement.id]
    assert unlock_rows(db, employee.id)[0].reason == "Achievement unlocked: Six Day Streak"


def test_two_employees_unlock_same_achievement(db, make_employee):
    first, second = make_employee(), make_employee()
    attend(db, first.id, range(6))
    attend(db, second.id, range(6))
    achievement = define(db, "perfect_week", requirements={"target": 6})

    assert [a.id for a in evaluate_achievements(db, first.id, now=NOW)] == [achievement.id]
    assert [a.id for a in evaluate_achievements(db, second.id, now=NOW)] == [achievement.id]
    assert len(unlock_rows(db, first.id)) == 1
    assert len(unlock_rows(db, second.id)) == 1


def test_completion_fires_only_for_first_writer(db, employee):
    achievement = define(db, "perfect_week", point_value=100, requirements={"target": 6})
    now = ensure_utc(NOW)

    assert _record_progress(db, employee.id, achievement, 100, now) is True
    assert _record_progress(db, employee.id, achievement, 100, now + timedelta(minutes=1)) is False
    assert _record_progress(db, employee.id, achievement, 40, now + timedelta(minutes=2)) is False

    row = progress_row(db, employee.id, achievement.id)
    assert row.progress == 100
    assert ensure_utc(row.unlocked_at) == now
    assert len(unlock_rows(db, employee.id)) == 1


def test_evaluate_unknown_employee(db):
    with pytest.raises(HTTPException) as exc_info:
        evaluate_achievements(db, 9999, now=NOW)
    assert exc_info.value.status_code == 404


def test_duplicate_code_is_rejected(db):
    seed_default_achievements(db)
    with pytest.raises(HTTPException) as exc_info:
        achievement_service.create_achievement(db, {"code": "early_bird", "name": "Another", "point_value": 1})
    assert exc_info.value.status_code == 409
