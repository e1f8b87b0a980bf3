"""
Achievement definition and per-employee progress models
"""
from sqlalchemy import Column, Integer, String, Text, Boolean, DateTime, ForeignKey, JSON, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class AchievementCategory(str, enum.Enum):
    ATTENDANCE = "ATTENDANCE"
    PRODUCTIVITY = "PRODUCTIVITY"
    MILESTONE = "MILESTONE"
    TEAMWORK = "TEAMWORK"


class Achievement(Base):
    """
    Administrator-managed goal. ``code`` selects the progress calculator and is
    independent of the display ``name`` so renames never change behaviour.
    """
    __tablename__ = "achievements"

    id = Column(Integer, primary_key=True, index=True)
    code = Column(String(50), unique=True, nullable=False, index=True)
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    category = Column(String(30), nullable=False, default=AchievementCategory.MILESTONE.value)
    point_value = Column(Integer, nullable=False, default=0)
    requirements = Column(JSON, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), onupdate=func.current_timestamp(), nullable=False)


class EmployeeAchievement(Base):
    """
    Progress of one employee towards one achievement.
    is_completed is terminal; unlocked_at is written once, on completion.
    """
    __tablename__ = "employee_achievements"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    achievement_id = Column(Integer, ForeignKey("achievements.id"), nullable=False, index=True)
    progress = Column(Integer, nullable=False, default=0)  # 0..100
    is_completed = Column(Boolean, nullable=False, default=False)
    unlocked_at = Column(DateTime(timezone=True), nullable=True)  # UTC
    updated_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "achievement_id", name="uq_employee_achievement"),
    )

    achievement = relationship("Achievement")
    employee = relationship("Employee", backref="achievements")
