"""Rewards engine schema: ledger, achievements, leaderboard and the tables they read.

Revision ID: 001_rewards_engine
Revises:
Create Date: 2026-03-01

- point_transactions: append-only ledger; uq_point_tx_related rejects a second
  award for the same (employee, related event, point type).
- employee_achievements: one progress row per (employee, achievement).
- leaderboard_entries: unique per (employee, period, year, month, week) so
  recomputation can upsert.
- employees / attendance_records / work_logs / audit_logs: owned by the portal,
  created here when missing so a fresh database works end to end.
"""
from typing import Sequence, Union
from alembic import op
import sqlalchemy as sa

revision: str = "001_rewards_engine"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ATTENDANCE_STATUSES = (
    "PRESENT", "ABSENT", "LATE", "HALF_DAY", "LEAVE_APPROVED", "WFH_PENDING", "WFH_APPROVED",
)
POINT_TYPES = (
    "ATTENDANCE_BONUS", "PUNCTUALITY_BONUS", "OVERTIME_BONUS", "WORK_LOG_COMPLETION",
    "CONSISTENCY_BONUS", "ACHIEVEMENT_UNLOCK", "MANUAL",
)


def upgrade() -> None:
    bind = op.get_bind()
    inspector = sa.inspect(bind)
    tables = inspector.get_table_names()

    if "employees" not in tables:
        op.create_table(
            "employees",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("emp_code", sa.String(), nullable=False),
            sa.Column("name", sa.String(), nullable=False),
            sa.Column("role", sa.String(), nullable=False, server_default="EMPLOYEE"),
            sa.Column("join_date", sa.Date(), nullable=True),
            sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.PrimaryKeyConstraint("id"),
        )
        op.create_index(op.f("ix_employees_id"), "employees", ["id"], unique=False)
        op.create_index(op.f("ix_employees_emp_code"), "employees", ["emp_code"], unique=True)

    if "audit_logs" not in tables:
        op.create_table(
            "audit_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("actor_id", sa.Integer(), nullable=True),
            sa.Column("action", sa.String(), nullable=False),
            sa.Column("entity_type", sa.String(), nullable=False),
            sa.Column("entity_id", sa.Integer(), nullable=True),
            sa.Column("meta_json", sa.JSON(), nullable=True),
            sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.ForeignKeyConstraint(["actor_id"], ["employees.id"]),
        )
        op.create_index(op.f("ix_audit_logs_id"), "audit_logs", ["id"], unique=False)

    if "attendance_records" not in tables:
        op.create_table(
            "attendance_records",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("employee_id", sa.Integer(), nullable=False),
            sa.Column("date", sa.Date(), nullable=False),
            sa.Column("status", sa.Enum(*ATTENDANCE_STATUSES, name="attendancestatus"), nullable=False),
            sa.Column("check_in_time", sa.DateTime(timezone=True), nullable=True),
            sa.Column("check_out_time", sa.DateTime(timezone=True), nullable=True),
            sa.Column("total_hours", sa.Float(), nullable=True),
            sa.Column("overtime", sa.Float(), nullable=False, server_default="0"),
            sa.Column("source", sa.String(), nullable=False, server_default="upload"),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
            sa.UniqueConstraint("employee_id", "date", name="uq_attendance_employee_date"),
        )
        op.create_index(op.f("ix_attendance_records_id"), "attendance_records", ["id"], unique=False)
        op.create_index(op.f("ix_attendance_records_employee_id"), "attendance_records", ["employee_id"], unique=False)
        op.create_index(op.f("ix_attendance_records_date"), "attendance_records", ["date"], unique=False)

    if "work_logs" not in tables:
        op.create_table(
            "work_logs",
            sa.Column("id", sa.Integer(), nullable=False),
            sa.Column("employee_id", sa.Integer(), nullable=False),
            sa.Column("log_date", sa.Date(), nullable=False),
            sa.Column("total_minutes", sa.Integer(), nullable=False, server_default="0"),
            sa.Column("description", sa.Text(), nullable=True),
            sa.Column("submitted_at", sa.DateTime(timezone=True), nullable=False),
            sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
            sa.PrimaryKeyConstraint("id"),
            sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        )
        op.create_index(op.f("ix_work_logs_id"), "work_logs", ["id"], unique=False)
        op.create_index(op.f("ix_work_logs_employee_id"), "work_logs", ["employee_id"], unique=False)
        op.create_index("ix_work_logs_employee_date", "work_logs", ["employee_id", "log_date"], unique=False)

    op.create_table(
        "point_transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("points", sa.Integer(), nullable=False),
        sa.Column("point_type", sa.Enum(*POINT_TYPES, name="pointtype"), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("related_id", sa.String(64), nullable=True),
        sa.Column("related_type", sa.String(30), nullable=True),
        sa.Column("earned_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("created_by_employee_id", sa.Integer(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["created_by_employee_id"], ["employees.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("employee_id", "related_type", "related_id", "point_type", name="uq_point_tx_related"),
    )
    op.create_index(op.f("ix_point_transactions_id"), "point_transactions", ["id"], unique=False)
    op.create_index(op.f("ix_point_transactions_employee_id"), "point_transactions", ["employee_id"], unique=False)
    op.create_index("ix_point_tx_employee_earned", "point_transactions", ["employee_id", "earned_at"], unique=False)

    op.create_table(
        "achievements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("code", sa.String(50), nullable=False),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("category", sa.String(30), nullable=False, server_default="MILESTONE"),
        sa.Column("point_value", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("requirements", sa.JSON(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_achievements_id"), "achievements", ["id"], unique=False)
    op.create_index(op.f("ix_achievements_code"), "achievements", ["code"], unique=True)

    op.create_table(
        "employee_achievements",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("achievement_id", sa.Integer(), nullable=False),
        sa.Column("progress", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("unlocked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.ForeignKeyConstraint(["achievement_id"], ["achievements.id"]),
        sa.UniqueConstraint("employee_id", "achievement_id", name="uq_employee_achievement"),
    )
    op.create_index(op.f("ix_employee_achievements_id"), "employee_achievements", ["id"], unique=False)
    op.create_index(op.f("ix_employee_achievements_employee_id"), "employee_achievements", ["employee_id"], unique=False)
    op.create_index(op.f("ix_employee_achievements_achievement_id"), "employee_achievements", ["achievement_id"], unique=False)

    op.create_table(
        "leaderboard_entries",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("employee_id", sa.Integer(), nullable=False),
        sa.Column("period", sa.String(10), nullable=False),
        sa.Column("year", sa.Integer(), nullable=False),
        sa.Column("month", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("week", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("total_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("attendance_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("worklog_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("achievement_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("attendance_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("avg_work_hours", sa.Float(), nullable=False, server_default="0"),
        sa.Column("achievement_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("overall_rank", sa.Integer(), nullable=True),
        sa.Column("computed_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.UniqueConstraint("employee_id", "period", "year", "month", "week", name="uq_leaderboard_key"),
    )
    op.create_index(op.f("ix_leaderboard_entries_id"), "leaderboard_entries", ["id"], unique=False)
    op.create_index(op.f("ix_leaderboard_entries_employee_id"), "leaderboard_entries", ["employee_id"], unique=False)
    op.create_index("ix_leaderboard_scope", "leaderboard_entries", ["period", "year", "month", "week"], unique=False)


def downgrade() -> None:
    op.drop_table("leaderboard_entries")
    op.drop_table("employee_achievements")
    op.drop_table("achievements")
    op.drop_table("point_transactions")
    sa.Enum(name="pointtype").drop(op.get_bind(), checkfirst=True)
