"""
Leaderboard snapshot model
"""
from sqlalchemy import Column, Integer, Float, DateTime, ForeignKey, String, UniqueConstraint, Index
from sqlalchemy.orm import relationship
import enum
from app.db.base import Base


class LeaderboardPeriod(str, enum.Enum):
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"
    QUARTERLY = "QUARTERLY"
    ANNUAL = "ANNUAL"


class LeaderboardEntry(Base):
    """
    Derived, recomputable standing of one employee for one period instance.
    Keyed by (employee_id, period, year, month, week); month is 0 unless
    MONTHLY and week is 0 unless WEEKLY. QUARTERLY rows are keyed by
    year alone, so a new quarter overwrites the previous quarter of that year.
    """
    __tablename__ = "leaderboard_entries"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    period = Column(String(10), nullable=False)
    year = Column(Integer, nullable=False)
    month = Column(Integer, nullable=False, default=0)
    week = Column(Integer, nullable=False, default=0)
    total_points = Column(Integer, nullable=False, default=0)
    attendance_points = Column(Integer, nullable=False, default=0)
    worklog_points = Column(Integer, nullable=False, default=0)
    achievement_points = Column(Integer, nullable=False, default=0)
    attendance_rate = Column(Float, nullable=False, default=0)  # percent
    avg_work_hours = Column(Float, nullable=False, default=0)
    achievement_count = Column(Integer, nullable=False, default=0)
    overall_rank = Column(Integer, nullable=True)
    computed_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        UniqueConstraint("employee_id", "period", "year", "month", "week", name="uq_leaderboard_key"),
        Index("ix_leaderboard_scope", "period", "year", "month", "week"),
    )

    employee = relationship("Employee")
