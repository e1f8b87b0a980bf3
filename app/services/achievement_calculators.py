"""
Achievement progress calculators.

Each calculator is registered under a stable achievement code (never the
display name) and returns an integer percentage 0..100 for one employee at
the reference instant ``now``. Trailing windows are counted in local civil
days and include today.

``requirements`` must be a JSON object. An optional ``target`` overrides the
built-in target and an optional ``window_days`` the trailing window length;
anything else malformed raises RequirementsError, which the evaluator turns
into progress 0.
"""
import enum
import math
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from app.core.constants import (
    PERFECT_WEEK_WORKING_DAYS,
    PERFECT_MONTH_WORKING_DAYS,
    EARLY_BIRD_TARGET_DAYS,
    WORK_LOGGER_TARGET_DAYS,
    POINTS_COLLECTOR_TARGET,
    WEEK_WINDOW_DAYS,
    MONTH_WINDOW_DAYS,
)
from app.models.attendance import AttendanceRecord, ATTENDED_STATUSES, WorkLog
from app.services.point_award_service import is_punctual_check_in
from app.services.point_ledger_service import get_point_balance
from app.utils.datetime_utils import local_date

Calculator = Callable[[Session, int, Any, datetime], int]


class AchievementCode(str, enum.Enum):
    PERFECT_WEEK = "perfect_week"
    PERFECT_MONTH = "perfect_month"
    EARLY_BIRD = "early_bird"
    WORK_LOGGER = "work_logger"
    POINTS_COLLECTOR = "points_collector"


class RequirementsError(ValueError):
    """Achievement requirements cannot be interpreted."""


_REGISTRY: Dict[str, Calculator] = {}


def register(code: AchievementCode):
    def decorator(fn: Calculator) -> Calculator:
        _REGISTRY[code.value] = fn
        return fn
    return decorator


def get_calculator(code: Optional[str]) -> Optional[Calculator]:
    if code is None:
        return None
    return _REGISTRY.get(code)


def registered_codes():
    return sorted(_REGISTRY)


def _target(requirements: Any, default: int) -> float:
    if not isinstance(requirements, dict):
        raise RequirementsError(f"requirements must be an object, got {type(requirements).__name__}")
    target = requirements.get("target", default)
    if isinstance(target, bool) or not isinstance(target, (int, float)) or target <= 0:
        raise RequirementsError(f"target must be a positive number, got {target!r}")
    return target


def _window_days(requirements: Any, default: int) -> int:
    days = requirements.get("window_days", default)
    if isinstance(days, bool) or not isinstance(days, int) or days <= 0:
        raise RequirementsError(f"window_days must be a positive integer, got {days!r}")
    return days


def _percent(count: float, target: float) -> int:
    return min(100, max(0, math.floor(count * 100 / target)))


def _window_start(now: datetime, days: int):
    today = local_date(now)
    return today - timedelta(days=days - 1), today


def _attended_days(db: Session, employee_id: int, now: datetime, days: int) -> int:
    start, end = _window_start(now, days)
    return (
        db.query(func.count(func.distinct(AttendanceRecord.date)))
        .filter(
            AttendanceRecord.employee_id == employee_id,
            AttendanceRecord.status.in_(ATTENDED_STATUSES),
            AttendanceRecord.date >= start,
            AttendanceRecord.date <= end,
        )
        .scalar()
    ) or 0


@register(AchievementCode.PERFECT_WEEK)
def perfect_week(db: Session, employee_id: int, requirements: Any, now: datetime) -> int:
    target = _target(requirements, PERFECT_WEEK_WORKING_DAYS)
    days = _window_days(requirements, WEEK_WINDOW_DAYS)
    return _percent(_attended_days(db, employee_id, now, days), target)


@register(AchievementCode.PERFECT_MONTH)
def perfect_month(db: Session, employee_id: int, requirements: Any, now: datetime) -> int:
    target = _target(requirements, PERFECT_MONTH_WORKING_DAYS)
    days = _window_days(requirements, MONTH_WINDOW_DAYS)
    return _percent(_attended_days(db, employee_id, now, days), target)


@register(AchievementCode.EARLY_BIRD)
def early_bird(db: Session, employee_id: int, requirements: Any, now: datetime) -> int:
    target = _target(requirements, EARLY_BIRD_TARGET_DAYS)
    start, end = _window_start(now, _window_days(requirements, WEEK_WINDOW_DAYS))
    rows = (
        db.query(AttendanceRecord.date, AttendanceRecord.check_in_time)
        .filter(
            AttendanceRecord.employee_id == employee_id,
            AttendanceRecord.check_in_time.isnot(None),
            AttendanceRecord.date >= start,
            AttendanceRecord.date <= end,
        )
        .all()
    )
    early_days = {day for day, check_in in rows if is_punctual_check_in(check_in)}
    return _percent(len(early_days), target)


@register(AchievementCode.WORK_LOGGER)
def work_logger(db: Session, employee_id: int, requirements: Any, now: datetime) -> int:
    target = _target(requirements, WORK_LOGGER_TARGET_DAYS)
    start, end = _window_start(now, _window_days(requirements, WEEK_WINDOW_DAYS))
    days = (
        db.query(func.count(func.distinct(WorkLog.log_date)))
        .filter(
            WorkLog.employee_id == employee_id,
            WorkLog.log_date >= start,
            WorkLog.log_date <= end,
        )
        .scalar()
    ) or 0
    return _percent(days, target)


@register(AchievementCode.POINTS_COLLECTOR)
def points_collector(db: Session, employee_id: int, requirements: Any, now: datetime) -> int:
    target = _target(requirements, POINTS_COLLECTOR_TARGET)
    return _percent(get_point_balance(db, employee_id, as_of=now), target)
