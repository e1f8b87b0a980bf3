"""
Attendance and work-log models.

Rows are produced by the ingestion pipeline (file uploads, punch clients);
the rewards engine reads them for awards, achievements and leaderboards.
"""
from sqlalchemy import Column, Integer, Date, DateTime, ForeignKey, String, Text, Float, Enum as SQLEnum, UniqueConstraint, Index
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
import enum
from app.db.base import Base


class AttendanceStatus(str, enum.Enum):
    PRESENT = "PRESENT"
    ABSENT = "ABSENT"
    LATE = "LATE"
    HALF_DAY = "HALF_DAY"
    LEAVE_APPROVED = "LEAVE_APPROVED"
    WFH_PENDING = "WFH_PENDING"
    WFH_APPROVED = "WFH_APPROVED"


# Statuses that count as a worked day for bonuses, achievements and attendance rate
ATTENDED_STATUSES = (AttendanceStatus.PRESENT, AttendanceStatus.WFH_APPROVED)


class AttendanceRecord(Base):
    __tablename__ = "attendance_records"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    date = Column(Date, nullable=False, index=True)  # local civil date
    status = Column(SQLEnum(AttendanceStatus), nullable=False)
    check_in_time = Column(DateTime(timezone=True), nullable=True)  # stored as UTC
    check_out_time = Column(DateTime(timezone=True), nullable=True)  # stored as UTC
    total_hours = Column(Float, nullable=True)
    overtime = Column(Float, nullable=False, default=0)  # hours
    source = Column(String, default="upload", nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    __table_args__ = (
        UniqueConstraint("employee_id", "date", name="uq_attendance_employee_date"),
    )

    employee = relationship("Employee", backref="attendance_records")


class WorkLog(Base):
    __tablename__ = "work_logs"

    id = Column(Integer, primary_key=True, index=True)
    employee_id = Column(Integer, ForeignKey("employees.id"), nullable=False, index=True)
    log_date = Column(Date, nullable=False)  # local civil date of the submission
    total_minutes = Column(Integer, nullable=False, default=0)
    description = Column(Text, nullable=True)
    submitted_at = Column(DateTime(timezone=True), nullable=False)  # stored as UTC
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), nullable=False)

    __table_args__ = (
        Index("ix_work_logs_employee_date", "employee_id", "log_date"),
    )

    employee = relationship("Employee", backref="work_logs")
