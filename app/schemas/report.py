"""
Employee summary and admin overview schemas
"""
from datetime import date, datetime
from typing import List, Optional
from pydantic import BaseModel, field_serializer

from app.models.points import PointType
from app.schemas.achievement import EmployeeAchievementOut
from app.schemas.points import PointTransactionOut
from app.utils.datetime_utils import iso_local


class PointTotals(BaseModel):
    total: int
    current_cycle: int


class AchievementTotals(BaseModel):
    total: int
    unlocked: int
    progress: int  # percent of active achievements unlocked
    recent: List[EmployeeAchievementOut]


class TopEmployee(BaseModel):
    rank: Optional[int] = None
    employee_id: int
    name: Optional[str] = None
    points: int
    is_me: bool


class StandingOut(BaseModel):
    current_rank: Optional[int] = None
    total_points: int
    top_employees: List[TopEmployee]


class EmployeeSummaryOut(BaseModel):
    """Points, achievements and monthly standing of the caller"""
    employee_id: int
    cycle_start: date
    cycle_end: date
    points: PointTotals
    achievements: AchievementTotals
    leaderboard: StandingOut
    recent_activities: List[PointTransactionOut]


class EngagementOut(BaseModel):
    total_employees: int
    active_employees: int
    engagement_rate: int
    total_points_distributed: int
    total_activities: int


class TopPerformer(BaseModel):
    rank: Optional[int] = None
    employee_id: int
    name: Optional[str] = None
    total_points: int
    attendance_points: int
    worklog_points: int
    achievement_points: int
    attendance_rate: float
    avg_work_hours: float


class PointTypeTotal(BaseModel):
    point_type: PointType
    total_points: int
    count: int


class AchievementStat(BaseModel):
    id: int
    code: str
    name: str
    category: str
    point_value: int
    unlocked_by: int
    unlock_rate: float


class RecentActivity(BaseModel):
    id: int
    employee_id: int
    employee_name: str
    points: int
    point_type: PointType
    reason: str
    earned_at: datetime

    @field_serializer("earned_at", when_used="always")
    def _ser_datetime(self, dt):
        return iso_local(dt)


class AdminOverviewOut(BaseModel):
    """Current-cycle engagement across all employees"""
    cycle_start: date
    cycle_end: date
    overview: EngagementOut
    top_performers: List[TopPerformer]
    point_distribution: List[PointTypeTotal]
    achievements: List[AchievementStat]
    recent_activities: List[RecentActivity]
