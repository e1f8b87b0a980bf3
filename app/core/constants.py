"""
Point values and achievement targets
"""

SERVICE_NAME = "rewards-engine"

# Attendance awards
ATTENDANCE_BONUS_POINTS = 10
PUNCTUALITY_BONUS_POINTS = 5
OVERTIME_POINTS_PER_HOUR = 15

# Work-log awards
WORK_LOG_POINTS_PER_BLOCK = 8
WORK_LOG_BLOCK_MINUTES = 30
CONSISTENCY_BONUS_POINTS = 25

# Related types stored on point transactions
RELATED_ATTENDANCE = "attendance"
RELATED_WORK_LOG = "work_log"
RELATED_ACHIEVEMENT = "achievement"

# Achievement calculator defaults (overridable via requirements["target"])
PERFECT_WEEK_WORKING_DAYS = 6
PERFECT_MONTH_WORKING_DAYS = 24
EARLY_BIRD_TARGET_DAYS = 5
WORK_LOGGER_TARGET_DAYS = 5
POINTS_COLLECTOR_TARGET = 500

# Trailing windows (days, inclusive of today)
WEEK_WINDOW_DAYS = 7
MONTH_WINDOW_DAYS = 30

# Backfill window for the admin reprocess job
REPROCESS_WINDOW_DAYS = 30
