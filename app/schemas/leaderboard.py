"""
Leaderboard schemas
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, field_serializer

from app.models.leaderboard import LeaderboardPeriod
from app.utils.datetime_utils import iso_local


class LeaderboardEntryOut(BaseModel):
    """One ranked row of a stored snapshot"""
    employee_id: int
    employee_name: Optional[str] = None
    period: str
    year: int
    month: int
    week: int
    total_points: int
    attendance_points: int
    worklog_points: int
    achievement_points: int
    attendance_rate: float
    avg_work_hours: float
    achievement_count: int
    overall_rank: Optional[int] = None
    computed_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("computed_at", when_used="always")
    def _ser_datetime(self, dt):
        return iso_local(dt)


class LeaderboardRecomputeRequest(BaseModel):
    period: LeaderboardPeriod


class LeaderboardRecomputeResult(BaseModel):
    period: str
    year: int
    month: int
    week: int
    start: str
    end: str
    processed: int
    failed: List[int]
    ranked: int
