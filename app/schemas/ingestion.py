"""
Attendance and work-log ingestion schemas.
Naive datetimes are read as local civil time.
"""
from datetime import date as date_type, datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict, Field, field_serializer

from app.models.attendance import AttendanceStatus
from app.utils.datetime_utils import iso_local


class AttendanceRecordCreate(BaseModel):
    """Schema for recording one attendance day"""
    employee_id: int = Field(..., gt=0)
    date: Optional[date_type] = Field(None, description="Local date; defaults to the check-in's local date")
    status: AttendanceStatus
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    total_hours: Optional[float] = Field(None, ge=0, le=24)
    overtime: float = Field(0, ge=0, le=24, description="Overtime hours")
    source: str = Field("upload", max_length=30)


class AttendanceRecordOut(BaseModel):
    id: int
    employee_id: int
    date: date_type
    status: AttendanceStatus
    check_in_time: Optional[datetime] = None
    check_out_time: Optional[datetime] = None
    total_hours: Optional[float] = None
    overtime: float
    source: str

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("check_in_time", "check_out_time", when_used="always")
    def _ser_datetime(self, dt):
        return iso_local(dt)


class WorkLogEntry(BaseModel):
    total_minutes: int = Field(..., ge=0, le=24 * 60)
    description: Optional[str] = Field(None, max_length=2000)


class WorkLogSubmission(BaseModel):
    """One submission of the caller's logs, stamped with the server time"""
    logs: List[WorkLogEntry] = Field(..., min_length=1)


class WorkLogBackfill(BaseModel):
    """Submission recorded on an employee's behalf with its original timestamp (HR/ADMIN)"""
    employee_id: int = Field(..., gt=0)
    logs: List[WorkLogEntry] = Field(..., min_length=1)
    submitted_at: datetime


class WorkLogOut(BaseModel):
    id: int
    employee_id: int
    log_date: date_type
    total_minutes: int
    description: Optional[str] = None
    submitted_at: datetime

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("submitted_at", when_used="always")
    def _ser_datetime(self, dt):
        return iso_local(dt)


class RewardSummary(BaseModel):
    points_awarded: int
    transactions: int
    achievements_unlocked: List[str]


class AttendanceRecordResponse(BaseModel):
    record: AttendanceRecordOut
    rewards: Optional[RewardSummary] = None


class WorkLogSubmissionResponse(BaseModel):
    logs: List[WorkLogOut]
    rewards: Optional[RewardSummary] = None


class ReprocessRequest(BaseModel):
    employee_id: Optional[int] = Field(None, gt=0, description="Limit the backfill to one employee")
