"""
Database models
"""
from app.models.employee import Employee, Role
from app.models.audit_log import AuditLog
from app.models.attendance import (
    AttendanceRecord,
    AttendanceStatus,
    WorkLog,
    ATTENDED_STATUSES,
)
from app.models.points import (
    PointTransaction,
    PointType,
    ATTENDANCE_POINT_TYPES,
    WORK_LOG_POINT_TYPES,
    ACHIEVEMENT_POINT_TYPES,
)
from app.models.achievement import Achievement, AchievementCategory, EmployeeAchievement
from app.models.leaderboard import LeaderboardEntry, LeaderboardPeriod

__all__ = [
    "Employee",
    "Role",
    "AuditLog",
    "AttendanceRecord",
    "AttendanceStatus",
    "WorkLog",
    "ATTENDED_STATUSES",
    "PointTransaction",
    "PointType",
    "ATTENDANCE_POINT_TYPES",
    "WORK_LOG_POINT_TYPES",
    "ACHIEVEMENT_POINT_TYPES",
    "Achievement",
    "AchievementCategory",
    "EmployeeAchievement",
    "LeaderboardEntry",
    "LeaderboardPeriod",
]
