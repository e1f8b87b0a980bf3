"""
Point Ledger Service - append-only store of point transactions.

- Rows are inserted, never updated or deleted.
- Balance = SUM(points) over the employee's rows.
- A batch is one INSERT statement: it lands completely or not at all.
- (employee_id, related_type, related_id, point_type) is unique in the DB;
  conflicting rows are skipped by ON CONFLICT DO NOTHING so retried awards
  for the same event are ignored instead of double-counted.
"""
import logging
from datetime import datetime
from typing import List, Optional, Sequence

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.db.upsert import dialect_insert
from app.models.employee import Employee
from app.models.points import PointTransaction, PointType
from app.services.audit_service import log_audit
from app.utils.datetime_utils import ensure_utc, now_utc

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 50


def _row_values(entry: PointTransaction) -> dict:
    return {
        "employee_id": entry.employee_id,
        "points": int(entry.points),
        "point_type": entry.point_type,
        "reason": entry.reason,
        "related_id": entry.related_id,
        "related_type": entry.related_type,
        "earned_at": ensure_utc(entry.earned_at) or now_utc(),
        "created_by_employee_id": entry.created_by_employee_id,
    }


def append_transactions(
    db: Session,
    entries: Sequence[PointTransaction],
    commit: bool = True,
) -> List[PointTransaction]:
    """
    Append a batch of (transient) PointTransaction rows.

    Args:
        db: Database session
        entries: Unsaved PointTransaction objects
        commit: Commit after the insert. Pass False to join the caller's transaction.

    Returns:
        The rows actually written, in insertion order. Rows rejected by the
        related-event uniqueness constraint are not returned.
    """
    if not entries:
        return []

    stmt = (
        dialect_insert(db, PointTransaction)
        .values([_row_values(e) for e in entries])
        .on_conflict_do_nothing()
        .returning(PointTransaction.id)
    )
    try:
        inserted_ids = [row[0] for row in db.execute(stmt)]
        if commit:
            db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    skipped = len(entries) - len(inserted_ids)
    if skipped:
        logger.info(
            "Ignored %s duplicate point award(s) for employee_id=%s",
            skipped, entries[0].employee_id,
        )
    if not inserted_ids:
        return []
    return (
        db.query(PointTransaction)
        .filter(PointTransaction.id.in_(inserted_ids))
        .order_by(PointTransaction.id)
        .all()
    )


def get_point_balance(db: Session, employee_id: int, as_of: Optional[datetime] = None) -> int:
    """
    Lifetime balance: sum of every transaction of the employee. With ``as_of``
    only rows earned at or before that instant count.
    """
    q = db.query(func.coalesce(func.sum(PointTransaction.points), 0)).filter(
        PointTransaction.employee_id == employee_id
    )
    if as_of is not None:
        q = q.filter(PointTransaction.earned_at <= ensure_utc(as_of))
    return int(q.scalar() or 0)


def list_transactions(
    db: Session,
    employee_id: int,
    point_type: Optional[PointType] = None,
    limit: int = DEFAULT_HISTORY_LIMIT,
) -> List[PointTransaction]:
    """Newest-first transaction history."""
    q = db.query(PointTransaction).filter(PointTransaction.employee_id == employee_id)
    if point_type is not None:
        q = q.filter(PointTransaction.point_type == point_type)
    return q.order_by(PointTransaction.earned_at.desc(), PointTransaction.id.desc()).limit(limit).all()


def adjust_points(
    db: Session,
    employee_id: int,
    points: int,
    reason: str,
    actor_id: int,
) -> PointTransaction:
    """
    Manual award or penalty by an administrator (MANUAL type, signed points).
    Corrections are new rows; existing rows are never edited.
    """
    if points == 0:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="points must be non-zero")
    if not reason or not reason.strip():
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="reason is required")
    employee = db.query(Employee).filter(Employee.id == employee_id).first()
    if not employee:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Employee not found")

    [transaction] = append_transactions(db, [
        PointTransaction(
            employee_id=employee_id,
            points=points,
            point_type=PointType.MANUAL,
            reason=reason.strip(),
            earned_at=now_utc(),
            created_by_employee_id=actor_id,
        )
    ])
    logger.info(
        "Manual point adjustment: employee_id=%s points=%s actor_id=%s",
        employee_id, points, actor_id,
    )
    log_audit(
        db=db,
        actor_id=actor_id,
        action="POINTS_ADJUST",
        entity_type="point_transaction",
        entity_id=transaction.id,
        meta={"employee_id": employee_id, "points": points, "reason": transaction.reason},
    )
    return transaction
