"""
Tests for the point ledger and manual adjustments
"""
from datetime import datetime, timezone

import pytest
from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError

from app.models.audit_log import AuditLog
from app.models.points import PointTransaction, PointType
from app.services.point_ledger_service import (
    adjust_points,
    append_transactions,
    get_point_balance,
    list_transactions,
)


def tx(employee_id, points, point_type=PointType.MANUAL, related_id=None, earned_at=None, related_type=None):
    return PointTransaction(
        employee_id=employee_id,
        points=points,
        point_type=point_type,
        reason="test",
        related_id=related_id,
        related_type=related_type,
        earned_at=earned_at or datetime(2026, 3, 10, 6, 0, tzinfo=timezone.utc),
    )


def test_append_empty_batch_is_noop(db, employee):
    assert append_transactions(db, []) == []
    assert db.query(PointTransaction).count() == 0


def test_balance_is_sum_of_all_transactions(db, employee):
    append_transactions(db, [
        tx(employee.id, 10, PointType.ATTENDANCE_BONUS, related_id="1", related_type="attendance"),
        tx(employee.id, 5, PointType.PUNCTUALITY_BONUS, related_id="1", related_type="attendance"),
        tx(employee.id, -7),
        tx(employee.id, 100, PointType.ACHIEVEMENT_UNLOCK, related_id="3", related_type="achievement"),
    ])

    rows = db.query(PointTransaction).filter(PointTransaction.employee_id == employee.id).all()
    assert get_point_balance(db, employee.id) == sum(r.points for r in rows) == 108


def test_balance_of_employee_without_transactions_is_zero(db, employee):
    assert get_point_balance(db, employee.id) == 0


def test_batch_is_all_or_nothing(db, employee):
    with pytest.raises(IntegrityError):
        append_transactions(db, [
            tx(employee.id, 10),
            tx(employee.id + 999, 10),  # unknown employee violates the foreign key
        ])

    assert db.query(PointTransaction).count() == 0


def test_duplicate_rows_in_batch_are_skipped(db, employee):
    appended = append_transactions(db, [
        tx(employee.id, 10, PointType.ATTENDANCE_BONUS, related_id="7", related_type="attendance"),
        tx(employee.id, 10, PointType.ATTENDANCE_BONUS, related_id="7", related_type="attendance"),
    ])

    assert len(appended) == 1
    assert get_point_balance(db, employee.id) == 10


def test_manual_rows_without_related_id_never_collide(db, employee):
    append_transactions(db, [tx(employee.id, 5), tx(employee.id, 5)])

    assert get_point_balance(db, employee.id) == 10


def test_list_transactions_newest_first_with_filter_and_limit(db, employee):
    append_transactions(db, [
        tx(employee.id, 1, earned_at=datetime(2026, 3, 1, tzinfo=timezone.utc)),
        tx(employee.id, 2, earned_at=datetime(2026, 3, 3, tzinfo=timezone.utc)),
        tx(employee.id, 3, PointType.CONSISTENCY_BONUS, related_id="2026-03-02", related_type="work_log",
           earned_at=datetime(2026, 3, 2, tzinfo=timezone.utc)),
    ])

    assert [t.points for t in list_transactions(db, employee.id)] == [2, 3, 1]
    assert [t.points for t in list_transactions(db, employee.id, limit=2)] == [2, 3]
    assert [t.points for t in list_transactions(db, employee.id, point_type=PointType.MANUAL)] == [2, 1]


def test_adjust_points_appends_manual_row_and_audits(db, employee, admin):
    transaction = adjust_points(db, employee.id, -20, "  Late submission penalty ", actor_id=admin.id)

    assert transaction.point_type == PointType.MANUAL
    assert transaction.points == -20
    assert transaction.reason == "Late submission penalty"
    assert transaction.created_by_employee_id == admin.id
    assert get_point_balance(db, employee.id) == -20

    audit = db.query(AuditLog).filter(AuditLog.action == "POINTS_ADJUST").one()
    assert audit.actor_id == admin.id
    assert audit.entity_id == transaction.id
    assert audit.meta_json["points"] == -20


def test_adjust_points_rejects_zero(db, employee, admin):
    with pytest.raises(HTTPException) as exc_info:
        adjust_points(db, employee.id, 0, "nothing", actor_id=admin.id)
    assert exc_info.value.status_code == 400


def test_adjust_points_requires_reason(db, employee, admin):
    with pytest.raises(HTTPException) as exc_info:
        adjust_points(db, employee.id, 5, "   ", actor_id=admin.id)
    assert exc_info.value.status_code == 400


def test_adjust_points_unknown_employee(db, admin):
    with pytest.raises(HTTPException) as exc_info:
        adjust_points(db, 4242, 5, "bonus", actor_id=admin.id)
    assert exc_info.value.status_code == 404
