"""
Achievement schemas
"""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer

from app.models.achievement import AchievementCategory


class AchievementCreate(BaseModel):
    """Schema for creating an achievement definition"""
    code: str = Field(..., min_length=1, max_length=50, pattern=r"^[a-z0-9_]+$", description="Stable calculator code")
    name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: AchievementCategory = AchievementCategory.MILESTONE
    point_value: int = Field(0, ge=0)
    requirements: Optional[Dict[str, Any]] = None
    is_active: bool = True


class AchievementUpdate(BaseModel):
    """Schema for editing a definition. The code is immutable."""
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[AchievementCategory] = None
    point_value: Optional[int] = Field(None, ge=0)
    requirements: Optional[Dict[str, Any]] = None
    is_active: Optional[bool] = None


class AchievementOut(BaseModel):
    id: int
    code: str
    name: str
    description: Optional[str] = None
    category: str
    point_value: int
    requirements: Optional[Any] = None
    is_active: bool

    model_config = ConfigDict(from_attributes=True)


class EmployeeAchievementOut(BaseModel):
    """Progress row. Datetimes in local civil time with offset."""
    achievement_id: int
    progress: int
    is_completed: bool
    unlocked_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    achievement: AchievementOut

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("unlocked_at", "updated_at", when_used="always")
    def _ser_datetime(self, dt):
        from app.utils.datetime_utils import iso_local
        return iso_local(dt)


class EvaluationResult(BaseModel):
    employee_id: int
    unlocked: List[AchievementOut]
