"""
Input sanitization and validation.

Sanitizers clean free text and never raise. Validators accept or reject a
value and raise ValidationError before anything reaches storage.
"""
import math
import re
from datetime import date, datetime, timezone, tzinfo
from typing import Any, Optional, Type

from habitlog.constants import (
    Priority, Status, Category,
    HABIT_NAME_MAX_LENGTH, HABIT_ICON_MAX_LENGTH, TASK_TEXT_MAX_LENGTH,
    DEFAULT_SANITIZE_MAX_LENGTH, DURATION_MIN_HOURS, DURATION_MAX_HOURS,
    MENTAL_STATE_MIN, MENTAL_STATE_MAX, USER_ID_MIN_LENGTH, USER_ID_MAX_LENGTH,
    TIME_PATTERN, USER_ID_PATTERN,
)
from habitlog.exceptions import ValidationError
from habitlog.services.date_service import DateService

_CONTROL_CHARS = re.compile(r"[\x00-\x1F\x7F]")
_TIME_RE = re.compile(TIME_PATTERN)
_USER_ID_RE = re.compile(USER_ID_PATTERN)


def sanitize_string(value: Any, max_length: int = DEFAULT_SANITIZE_MAX_LENGTH) -> str:
    """
    Remove control characters, trim and truncate.

    Args:
        value: Raw input, anything that is not a str yields ""
        max_length: Maximum length of the result

    Returns:
        Cleaned string, at most max_length characters
    """
    if not isinstance(value, str):
        return ""
    sanitized = _CONTROL_CHARS.sub("", value).strip()
    # Strip again so a cut landing on whitespace still gives a fixed point
    return sanitized[:max_length].strip()


def _validate_text(value: Any, field: str, label: str, max_length: int) -> str:
    if not value or not isinstance(value, str):
        raise ValidationError(field, f"{label} is required and must be a string")
    sanitized = sanitize_string(value, max_length)
    if not sanitized:
        raise ValidationError(field, f"{label} cannot be empty")
    return sanitized


def validate_habit_name(name: Any) -> str:
    return _validate_text(name, "name", "Habit name", HABIT_NAME_MAX_LENGTH)


def validate_task_text(text: Any) -> str:
    return _validate_text(text, "task", "Task text", TASK_TEXT_MAX_LENGTH)


def validate_icon(icon: Any) -> str:
    return _validate_text(icon, "icon", "Icon", HABIT_ICON_MAX_LENGTH)


def validate_time(value: Any, field: str = "time") -> str:
    """Validate an optional 24-hour HH:MM time; empty input gives "" """
    if value is None or value == "":
        return ""
    if not isinstance(value, str):
        raise ValidationError(field, "Time must be a string")
    if not _TIME_RE.fullmatch(value):
        raise ValidationError(field, "Invalid time format. Use HH:MM (24-hour format)")
    return value


def validate_duration(value: Any) -> str:
    """
    Validate an optional duration in hours.

    Returns:
        Canonical string form ("24", "1.5"), or "" when empty
    """
    if value is None or value == "":
        return ""
    if isinstance(value, bool):
        raise ValidationError("duration", "Duration must be a number between 0 and 24 hours")
    try:
        hours = float(value)
    except (TypeError, ValueError):
        raise ValidationError("duration", "Duration must be a number between 0 and 24 hours")
    if math.isnan(hours) or not DURATION_MIN_HOURS <= hours <= DURATION_MAX_HOURS:
        raise ValidationError("duration", "Duration must be a number between 0 and 24 hours")
    if hours.is_integer():
        return str(int(hours))
    return str(hours)


def validate_mental_state(value: Any, label: str = "Value") -> Optional[int]:
    """Validate an optional 1-10 rating; None passes through"""
    if value is None:
        return None
    message = f"{label} must be a number between {MENTAL_STATE_MIN} and {MENTAL_STATE_MAX}"
    if isinstance(value, bool):
        raise ValidationError(label.lower(), message)
    try:
        rating = int(value)
    except (TypeError, ValueError):
        raise ValidationError(label.lower(), message)
    if not MENTAL_STATE_MIN <= rating <= MENTAL_STATE_MAX:
        raise ValidationError(label.lower(), message)
    return rating


def validate_date(value: Any, field: str = "date", tz: Optional[tzinfo] = None) -> datetime:
    """
    Validate a date, datetime or ISO-8601 string.

    Date-only values mean midnight UTC. Naive datetimes are read as wall time
    in tz, or the local calendar when tz is None.

    Returns:
        Timezone-aware datetime
    """
    if value is None or value == "":
        raise ValidationError(field, "Date is required")

    if isinstance(value, str):
        text = value.strip()
        try:
            if len(text) == 10:
                value = date.fromisoformat(text)
            else:
                if text.endswith(("Z", "z")):
                    text = text[:-1] + "+00:00"
                value = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(field, "Invalid date")

    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=tz or DateService.get_local_timezone())
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)

    raise ValidationError(field, "Invalid date")


def _validate_choice(value: Any, enum_cls: Type, field: str, label: str):
    try:
        return enum_cls(value)
    except (TypeError, ValueError):
        choices = ", ".join(member.value for member in enum_cls)
        raise ValidationError(field, f"{label} must be one of: {choices}")


def validate_priority(value: Any) -> Priority:
    return _validate_choice(value, Priority, "priority", "Priority")


def validate_status(value: Any) -> Status:
    return _validate_choice(value, Status, "status", "Status")


def validate_category(value: Any) -> Category:
    return _validate_choice(value, Category, "category", "Category")


def validate_completed(value: Any, default: Optional[bool] = None) -> bool:
    """Validate a completion flag; only real booleans pass, None gives default if set"""
    if value is None and default is not None:
        return default
    if not isinstance(value, bool):
        raise ValidationError("completed", "Completed must be a boolean")
    return value


def validate_user_id(user_id: Any) -> str:
    """Validate the identity string used as the tenant partition key"""
    if not user_id or not isinstance(user_id, str):
        raise ValidationError("user_id", "User ID is required")
    if not USER_ID_MIN_LENGTH <= len(user_id) <= USER_ID_MAX_LENGTH:
        raise ValidationError("user_id", "Invalid user ID format")
    if not _USER_ID_RE.fullmatch(user_id):
        raise ValidationError("user_id", "User ID contains invalid characters")
    return user_id


def validate_record_id(record_id: Any, label: str = "Record") -> str:
    if not record_id or not isinstance(record_id, str):
        raise ValidationError("id", f"{label} ID is required")
    return record_id


def validate_day(value: Any, field: str = "date", tz: Optional[tzinfo] = None) -> date:
    """
    Validate a calendar day.

    Dates and yyyy-MM-dd strings are taken as given; anything with a time of
    day is reduced to its day in tz (the local calendar when None).
    """
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    if isinstance(value, str) and len(value.strip()) == 10:
        try:
            return date.fromisoformat(value.strip())
        except ValueError:
            raise ValidationError(field, "Invalid date")
    return DateService.local_day(validate_date(value, field, tz), tz)


def validate_month(year: Any, month: Any) -> tuple[int, int]:
    """Validate a (year, month) pair, month 1-12"""
    if isinstance(year, bool) or not isinstance(year, int) or not 1 <= year <= 9999:
        raise ValidationError("year", "Year must be an integer between 1 and 9999")
    if isinstance(month, bool) or not isinstance(month, int) or not 1 <= month <= 12:
        raise ValidationError("month", "Month must be an integer between 1 and 12")
    return year, month
