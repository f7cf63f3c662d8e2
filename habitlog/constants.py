"""
Application-wide constants and closed value sets.
"""
import os
from enum import Enum


class Priority(str, Enum):
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    OPTIONAL = "Optional"


class Status(str, Enum):
    NOT_STARTED = "Not Started"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"


class Category(str, Enum):
    WORK = "Work"
    MONEY = "Money B"
    IDEAS = "Ideas"
    CHORES = "Chores"
    SPIRITUALITY = "Spirituality"
    HEALTH = "Health"


# Sort rank used when ordering tasks by priority
PRIORITY_ORDER = {
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
    Priority.OPTIONAL: 4,
}

# Field limits
HABIT_NAME_MAX_LENGTH = 100
HABIT_ICON_MAX_LENGTH = 10
TASK_TEXT_MAX_LENGTH = 500
DEFAULT_SANITIZE_MAX_LENGTH = 500
DURATION_MIN_HOURS = 0
DURATION_MAX_HOURS = 24
MENTAL_STATE_MIN = 1
MENTAL_STATE_MAX = 10
USER_ID_MIN_LENGTH = 20
USER_ID_MAX_LENGTH = 128

TIME_PATTERN = r"^([0-1][0-9]|2[0-3]):[0-5][0-9]$"
USER_ID_PATTERN = r"^[A-Za-z0-9_-]+$"

# Task list filters and sort keys
TASK_FILTER_ALL = "all"
TASK_FILTER_TODAY = "today"
TASK_FILTER_OVERDUE = "overdue"
TASK_FILTER_COMPLETED = "completed"
TASK_FILTER_ACTIVE = "active"
TASK_FILTERS = (
    TASK_FILTER_ALL, TASK_FILTER_TODAY, TASK_FILTER_OVERDUE,
    TASK_FILTER_COMPLETED, TASK_FILTER_ACTIVE
)

TASK_SORT_DUE_DATE = "due_date"
TASK_SORT_PRIORITY = "priority"
TASK_SORT_STATUS = "status"
TASK_SORT_KEYS = (TASK_SORT_DUE_DATE, TASK_SORT_PRIORITY, TASK_SORT_STATUS)

# Configuration defaults
DEFAULT_DATABASE_URL = "sqlite:///./habitlog.db"
DEFAULT_JWT_SECRET = "dev-secret-change-me"
DEFAULT_JWT_ALGORITHM = "HS256"
DEFAULT_LOG_DIRECTORY_PROD = "/var/log/habitlog"
DEFAULT_LOG_DIRECTORY_DEV = "./logs"

CORS_ALLOWED_ORIGINS = [
    origin.strip()
    for origin in os.getenv("HABITLOG_CORS_ORIGINS", "http://localhost:3000").split(",")
    if origin.strip()
]
