import math
from datetime import datetime

from edugrid.core.config import GRACE_PERIOD_MINUTES
from edugrid.core.dates import parse_datetime
from edugrid.services.lookup import submissions_of


def grade_value(value) -> float | None:
    """Stored grades are numbers, or numeric strings in older documents."""
    if value is None or isinstance(value, bool):
        return None
    try:
        grade = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(grade) or math.isinf(grade):
        return None
    return grade


def calculate_task_stats(task: dict) -> dict:
    submissions = [s for s in submissions_of(task) if isinstance(s, dict)]
    grades = [g for g in (grade_value(s.get("grade")) for s in submissions) if g is not None]

    average = 0
    if grades:
        average = round(sum(grades) / len(grades), 2)

    return {
        "totalSubmissions": len(submissions),
        "gradedSubmissions": len(grades),
        "averageScore": average,
    }


def late_status(due_at, submitted_at) -> tuple[bool, int | None]:
    """
    Returns: (is_late, late_by_minutes)

    - no due date -> (False, None)
    - on time -> (False, 0)
    - within GRACE_PERIOD_MINUTES after due -> not late, minutes still reported
    """
    due = parse_datetime(due_at)
    submitted = parse_datetime(submitted_at)
    if due is None or submitted is None:
        return (False, None)

    if submitted <= due:
        return (False, 0)

    late_minutes = int((submitted - due).total_seconds() // 60)

    if late_minutes <= GRACE_PERIOD_MINUTES:
        return (False, late_minutes)

    return (True, late_minutes)


def days_until_due(due_at, now: datetime) -> int | None:
    due = parse_datetime(due_at)
    if due is None:
        return None
    return math.ceil((due - now).total_seconds() / 86400)


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'}"


def format_time_remaining(due_at, now: datetime) -> str | None:
    due = parse_datetime(due_at)
    if due is None:
        return None

    seconds = (due - now).total_seconds()
    if seconds < 0:
        return "Overdue"

    days, rest = divmod(int(seconds), 86400)
    hours, rest = divmod(rest, 3600)
    minutes = rest // 60

    if days > 0:
        return f"{_plural(days, 'day')}, {_plural(hours, 'hour')}"
    if hours > 0:
        return f"{_plural(hours, 'hour')}, {_plural(minutes, 'minute')}"
    return _plural(minutes, "minute")
