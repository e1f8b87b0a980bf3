"""
Point ledger model
"""
from sqlalchemy import Column, Integer, DateTime, ForeignKey, String, Text, Enum as SQLEnum, UniqueConstraint, Index
from sqlalchemy.orm import relationship
import enum
from app.db.base import Base


class PointType(str, enum.Enum):
    ATTENDANCE_BONUS = "ATTENDANCE_BONUS"
    PUNCTUALITY_BONUS = "PUNCTUALITY_BONUS"
    OVERTIME_BONUS = "OVERTIME_BONUS"
    WORK_LOG_COMPLETION = "WORK_LOG_COMPLETION"
    CONSISTENCY_BONUS = "CONSISTENCY_BONUS"
    ACHIEVEMENT_UNLOCK = "ACHIEVEMENT_UNLOCK"
    MANUAL = "MANUAL"  # admin adjustment or penalty (signed)


# Category groups used for leaderboard subtotals
ATTENDANCE_POINT_TYPES = (PointType.ATTENDANCE_BONUS, PointType.PUNCTUALITY_BONUS, PointType.OVERTIME_BONUS)
WORK_LOG_POINT_TYPES = (PointType.WORK_LOG_COMPLETION, PointType.CONSISTENCY_BONUS)
ACHIEVEMENT_POINT_TYPES = (PointType.ACHIEVEMENT_UNLOCK,)


class PointTransaction(Base):
    """
    Immutable ledger row. Never updated or deleted; an employee's balance is
    the sum of their rows.

    (employee_id, related_type, related_id, point_type) is unique so a retried
    award for the same underlying event is ignored. Rows without a related_id
    (manual adjustments) never collide because NULLs are distinct.
    """
    __tablename__ = "point_transactions"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    points = Column(Integer, nullable=False)  # + award, - penalty
    point_type = Column(SQLEnum(PointType), nullable=False)
    reason = Column(Text, nullable=False)
    related_id = Column(String(64), nullable=True)
    related_type = Column(String(30), nullable=True)
    earned_at = Column(DateTime(timezone=True), nullable=False)  # UTC
    created_by_employee_id = Column(Integer, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "related_type", "related_id", "point_type", name="uq_point_tx_related"),
        Index("ix_point_tx_employee_earned", "employee_id", "earned_at"),
    )

    employee = relationship("Employee", foreign_keys=[employee_id])
