from datetime import datetime

from edugrid.core.config import DEFAULT_TASK_POINTS
from edugrid.core.dates import parse_datetime, utcnow
from edugrid.core.object_id import coerce_id
from edugrid.core.permissions import is_overdue
from edugrid.schemas.submission import SubmissionRead
from edugrid.schemas.task import TaskComputedStats, TaskRead, TaskStats
from edugrid.services.lookup import canonical_id, submissions_of
from edugrid.services.stats import (
    calculate_task_stats,
    days_until_due,
    format_time_remaining,
    grade_value,
    late_status,
)
from edugrid.services.submission_factory import backfill_attachments, default_student_name


def task_points(value) -> int:
    """Stored points, or the default when missing, negative or not a number."""
    if value is None or isinstance(value, bool):
        return DEFAULT_TASK_POINTS
    try:
        points = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return DEFAULT_TASK_POINTS
    return points if points >= 0 else DEFAULT_TASK_POINTS


def present_submission(submission: dict, task: dict, now: datetime | None = None) -> SubmissionRead:
    """
    A stored submission as clients see it: attachments back-filled and
    student name, submission time and status always present.
    """
    email = submission.get("studentEmail") or ""
    submitted_at = parse_datetime(submission.get("submittedAt")) or now or utcnow()
    attachments = backfill_attachments(submission)
    is_late, late_by_minutes = late_status(task.get("dueDate"), submitted_at)

    version = submission.get("version")
    return SubmissionRead(
        id=canonical_id(submission) or "",
        legacy_id=coerce_id(submission.get("_id")) or canonical_id(submission),
        student_email=email,
        student_name=submission.get("studentName") or default_student_name(email),
        submission_text=submission.get("submissionText") or "",
        submission_url=submission.get("submissionUrl") or None,
        attachments=attachments,
        files=attachments,
        submitted_at=submitted_at,
        status=submission.get("status") or "submitted",
        grade=grade_value(submission.get("grade")),
        feedback=submission.get("feedback"),
        graded_by=submission.get("gradedBy"),
        graded_at=parse_datetime(submission.get("gradedAt")),
        version=version if isinstance(version, int) else 1,
        is_late=is_late,
        late_by_minutes=late_by_minutes,
    )


def present_task(task: dict, now: datetime | None = None, computed: bool = False) -> TaskRead:
    now = now or utcnow()
    stats = calculate_task_stats(task)

    computed_stats = None
    if computed:
        computed_stats = TaskComputedStats(
            submission_count=len(submissions_of(task)),
            is_overdue=is_overdue(task, now),
            days_until_due=days_until_due(task.get("dueDate"), now),
            time_remaining=format_time_remaining(task.get("dueDate"), now),
        )

    is_published = task.get("isPublished")
    return TaskRead(
        id=canonical_id(task) or "",
        legacy_id=coerce_id(task.get("_id")),
        title=task.get("title") or "Untitled task",
        description=task.get("description") or "",
        instructions=task.get("instructions") or "",
        due_date=parse_datetime(task.get("dueDate")),
        points=task_points(task.get("points")),
        type=task.get("type"),
        attachments=[a for a in task.get("attachments") or [] if isinstance(a, dict)],
        created_at=parse_datetime(task.get("createdAt")),
        updated_at=parse_datetime(task.get("updatedAt")),
        created_by=task.get("createdBy") or None,
        is_published=True if is_published is None else bool(is_published),
        status=task.get("status") or "active",
        stats=TaskStats(
            total_submissions=stats["totalSubmissions"],
            graded_submissions=stats["gradedSubmissions"],
            average_score=stats["averageScore"],
        ),
        computed_stats=computed_stats,
    )
