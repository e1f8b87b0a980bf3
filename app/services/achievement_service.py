"""
Achievement Service - definitions, progress evaluation and one-time unlocks.

Progress state per (employee, achievement):
    NOT_STARTED (no row) -> IN_PROGRESS (0 <= progress < 100) -> COMPLETED (terminal)

Completion is a conditional UPDATE ... WHERE is_completed = false. Only the
caller whose update hits the row appends the ACHIEVEMENT_UNLOCK transaction,
in the same database transaction. The ledger's related-event uniqueness is
the second guard against a double unlock.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, status
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.constants import RELATED_ACHIEVEMENT
from app.db.upsert import dialect_insert
from app.models.achievement import Achievement, AchievementCategory, EmployeeAchievement
from app.models.employee import Employee
from app.models.points import PointTransaction, PointType
from app.services.achievement_calculators import AchievementCode, RequirementsError, get_calculator
from app.services.audit_service import log_audit
from app.services.point_ledger_service import append_transactions
from app.utils.datetime_utils import ensure_utc, now_utc

logger = logging.getLogger(__name__)

DEFAULT_ACHIEVEMENTS = [
    {
        "code": AchievementCode.PERFECT_WEEK.value,
        "name": "Perfect Week",
        "description": "Attend all 6 working days in a week",
        "category": AchievementCategory.ATTENDANCE.value,
        "point_value": 100,
        "requirements": {"target": 6, "window_days": 7},
    },
    {
        "code": AchievementCode.PERFECT_MONTH.value,
        "name": "Perfect Month",
        "description": "Attend 24 working days within 30 days",
        "category": AchievementCategory.ATTENDANCE.value,
        "point_value": 50,
        "requirements": {"target": 24, "window_days": 30},
    },
    {
        "code": AchievementCode.EARLY_BIRD.value,
        "name": "Early Bird",
        "description": "Check in by 09:30 on 5 days in a week",
        "category": AchievementCategory.ATTENDANCE.value,
        "point_value": 75,
        "requirements": {"target": 5, "window_days": 7},
    },
    {
        "code": AchievementCode.WORK_LOGGER.value,
        "name": "Work Logger",
        "description": "Submit work logs on 5 days in a week",
        "category": AchievementCategory.PRODUCTIVITY.value,
        "point_value": 80,
        "requirements": {"target": 5, "window_days": 7},
    },
    {
        "code": AchievementCode.POINTS_COLLECTOR.value,
        "name": "Points Collector",
        "description": "Earn 500 points",
        "category": AchievementCategory.MILESTONE.value,
        "point_value": 150,
        "requirements": {"target": 500},
    },
]


def _get_employee_or_404(db: Session, employee_id: int) -> Employee:
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if not employee:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")
    return employee


def _get_achievement_or_404(db: Session, achievement_id: int) -> Achievement:
    achievement = db.query(Achievement).filter(Achievement.id == achievement_id).first()
    if not achievement:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Achievement not found")
    return achievement


def list_active_achievements(db: Session) -> List[Achievement]:
    return db.query(Achievement).filter(Achievement.is_active == True).order_by(Achievement.id).all()


def list_employee_progress(db: Session, employee_id: int) -> List[EmployeeAchievement]:
    return (
        db.query(EmployeeAchievement)
        .filter(EmployeeAchievement.employee_id == employee_id)
        .order_by(EmployeeAchievement.achievement_id)
        .all()
    )


def compute_progress(db: Session, employee_id: int, achievement: Achievement, now: datetime) -> int:
    """
    Progress 0..100 from the calculator registered for the achievement's code.
    Unknown codes and unusable requirements yield 0.
    """
    calculator = get_calculator(achievement.code)
    if calculator is None:
        logger.warning(
            "No progress calculator registered for achievement code=%r (id=%s)",
            achievement.code, achievement.id,
        )
        return 0
    try:
        progress = calculator(db, employee_id, achievement.requirements, now)
    except RequirementsError as e:
        logger.warning(
            "Malformed requirements for achievement code=%r (id=%s): %s",
            achievement.code, achievement.id, e,
        )
        return 0
    return max(0, min(100, int(progress)))


def _record_progress(
    db: Session,
    employee_id: int,
    achievement: Achievement,
    progress: int,
    now: datetime,
) -> bool:
    """
    Upsert the progress row and, on reaching 100, complete it with the unlock
    transaction in the same database transaction.

    Returns:
        True if this call moved the row to completed
    """
    db.execute(
        dialect_insert(db, EmployeeAchievement)
        .values(
            employee_id=employee_id,
            achievement_id=achievement.id,
            progress=0,
            is_completed=False,
            updated_at=now,
        )
        .on_conflict_do_nothing(index_elements=["employee_id", "achievement_id"])
    )

    pending = db.query(EmployeeAchievement).filter(
        EmployeeAchievement.employee_id == employee_id,
        EmployeeAchievement.achievement_id == achievement.id,
        EmployeeAchievement.is_completed == False,
    )

    if progress < 100:
        pending.update(
            {EmployeeAchievement.progress: progress, EmployeeAchievement.updated_at: now},
            synchronize_session=False,
        )
        db.commit()
        return False

    completed = pending.update(
        {
            EmployeeAchievement.progress: 100,
            EmployeeAchievement.is_completed: True,
            EmployeeAchievement.unlocked_at: now,
            EmployeeAchievement.updated_at: now,
        },
        synchronize_session=False,
    )
    if completed != 1:
        # Another evaluator completed it first
        db.commit()
        return False

    append_transactions(
        db,
        [
            PointTransaction(
                employee_id=employee_id,
                points=achievement.point_value or 0,
                point_type=PointType.ACHIEVEMENT_UNLOCK,
                reason=f"Achievement unlocked: {achievement.name}",
                related_id=str(achievement.id),
                related_type=RELATED_ACHIEVEMENT,
                earned_at=now,
            )
        ],
        commit=False,
    )
    db.commit()
    return True


def evaluate_achievements(
    db: Session,
    employee_id: int,
    now: Optional[datetime] = None,
) -> List[Achievement]:
    """
    Evaluate every active achievement for an employee.

    Args:
        db: Database session
        employee_id: Employee to evaluate
        now: Reference instant for trailing windows and unlocked_at (defaults to current UTC time)

    Returns:
        Definitions newly completed by this call (already-completed ones are never returned again)
    """
    _get_employee_or_404(db, employee_id)
    now = ensure_utc(now) or now_utc()

    completed_ids = {
        row.achievement_id
        for row in db.query(EmployeeAchievement.achievement_id).filter(
            EmployeeAchievement.employee_id == employee_id,
            EmployeeAchievement.is_completed == True,
        )
    }

    unlocked = []
    for achievement in list_active_achievements(db):
        if achievement.id in completed_ids:
            continue
        progress = compute_progress(db, employee_id, achievement, now)
        try:
            transitioned = _record_progress(db, employee_id, achievement, progress, now)
        except SQLAlchemyError:
            db.rollback()
            raise
        if transitioned:
            logger.info(
                "Achievement unlocked: employee_id=%s code=%s points=%s",
                employee_id, achievement.code, achievement.point_value,
            )
            unlocked.append(achievement)
    return unlocked


def create_achievement(db: Session, data: Dict[str, Any], actor_id: Optional[int] = None) -> Achievement:
    achievement = Achievement(**data)
    db.add(achievement)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Achievement with code '{data.get('code')}' already exists",
        )
    db.refresh(achievement)
    log_audit(
        db=db,
        actor_id=actor_id,
        action="ACHIEVEMENT_CREATE",
        entity_type="achievement",
        entity_id=achievement.id,
        meta={"code": achievement.code, "point_value": achievement.point_value},
    )
    return achievement


def update_achievement(
    db: Session,
    achievement_id: int,
    changes: Dict[str, Any],
    actor_id: Optional[int] = None,
) -> Achievement:
    """
    Edit a definition. Completed progress rows and their unlock transactions
    are historical and are not touched.
    """
    achievement = _get_achievement_or_404(db, achievement_id)
    for field, value in changes.items():
        setattr(achievement, field, value)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Achievement with code '{changes.get('code')}' already exists",
        )
    db.refresh(achievement)
    log_audit(
        db=db,
        actor_id=actor_id,
        action="ACHIEVEMENT_UPDATE",
        entity_type="achievement",
        entity_id=achievement.id,
        meta=changes,
    )
    return achievement


def seed_default_achievements(db: Session) -> int:
    """
    Insert the built-in definitions that are missing, matched by code.
    Existing definitions (possibly edited by admins) are left as they are.

    Returns:
        Number of definitions inserted
    """
    stmt = (
        dialect_insert(db, Achievement)
        .values([dict(d, is_active=True) for d in DEFAULT_ACHIEVEMENTS])
        .on_conflict_do_nothing(index_elements=["code"])
        .returning(Achievement.id)
    )
    inserted = len(db.execute(stmt).all())
    db.commit()
    if inserted:
        logger.info("Seeded %s default achievement(s)", inserted)
    return inserted
