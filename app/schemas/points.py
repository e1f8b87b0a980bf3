"""
Point ledger schemas
"""
from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer

from app.models.points import PointType
from app.utils.datetime_utils import iso_local


class PointTransactionOut(BaseModel):
    """Ledger row. earned_at in local civil time with offset."""
    id: int
    employee_id: int
    points: int
    point_type: PointType
    reason: str
    related_id: Optional[str] = None
    related_type: Optional[str] = None
    earned_at: datetime
    created_by_employee_id: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("earned_at", when_used="always")
    def _ser_datetime(self, dt):
        return iso_local(dt)


class PointsSummaryOut(BaseModel):
    """Balance plus newest-first history"""
    employee_id: int
    balance: int
    transactions: List[PointTransactionOut]


class PointAdjustmentRequest(BaseModel):
    """Manual award (positive) or penalty (negative)"""
    employee_id: int = Field(..., gt=0)
    points: int = Field(..., description="Signed, non-zero")
    reason: str = Field(..., min_length=1, max_length=500)
