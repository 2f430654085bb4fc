"""
Role and permission decisions for classroom tasks.

Everything here is a pure function of the caller's email and the stored
documents: no store access, no exceptions. Callers get a `Decision` with a
reason they can show to the user.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from edugrid.core.dates import parse_datetime, utcnow
from edugrid.services.lookup import find_student_submission, same_email, student_emails

# Every field older classroom documents used to record who runs the class
INSTRUCTOR_FIELDS = ("owner", "teacher", "teacherEmail", "createdBy")
INSTRUCTOR_LIST_FIELDS = ("instructors", "teachers")


class Role(str, Enum):
    INSTRUCTOR = "instructor"
    STUDENT = "student"
    UNAUTHORIZED = "unauthorized"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str
    existing_submission: dict | None = None
    is_graded: bool = False

    def __bool__(self) -> bool:
        return self.allowed


def _email_of(user) -> str | None:
    if user is None:
        return None
    if isinstance(user, str):
        return user
    return getattr(user, "email", None)


def is_instructor(user, classroom: dict | None) -> bool:
    email = _email_of(user)
    if not email or not classroom:
        return False

    for field in INSTRUCTOR_FIELDS:
        if same_email(classroom.get(field), email):
            return True

    for field in INSTRUCTOR_LIST_FIELDS:
        listed = classroom.get(field)
        if isinstance(listed, list) and any(same_email(entry, email) for entry in listed):
            return True

    return False


def is_student(user, classroom: dict | None) -> bool:
    email = _email_of(user)
    if not email or not classroom:
        return False
    return any(same_email(enrolled, email) for enrolled in student_emails(classroom))


def resolve_role(user, classroom: dict | None) -> Role:
    if is_instructor(user, classroom):
        return Role.INSTRUCTOR
    if is_student(user, classroom):
        return Role.STUDENT
    return Role.UNAUTHORIZED


def is_overdue(task: dict, now: datetime | None = None) -> bool:
    due = parse_datetime(task.get("dueDate"))
    if due is None:
        return False
    return (now or utcnow()) > due


def is_graded(submission: dict | None) -> bool:
    if not submission:
        return False
    return submission.get("status") == "graded" and submission.get("grade") is not None


def can_submit(user, task: dict, is_resubmission: bool = False, now: datetime | None = None) -> Decision:
    if is_overdue(task, now):
        return Decision(False, "Task is overdue")

    found = find_student_submission(task, _email_of(user) or "")
    existing = found[1] if found else None

    if existing is not None and not is_resubmission:
        return Decision(
            False,
            "Already submitted. Use resubmit option to update your submission.",
            existing_submission=existing,
        )
    if existing is not None:
        return Decision(True, "Resubmission allowed", existing_submission=existing)
    return Decision(True, "New submission allowed")


def can_resubmit(user, task: dict, now: datetime | None = None) -> Decision:
    if is_overdue(task, now):
        return Decision(False, "Cannot resubmit - task is overdue")

    found = find_student_submission(task, _email_of(user) or "")
    if found is None:
        return Decision(False, "No existing submission found. Submit the task first.")

    existing = found[1]
    # grading locks resubmission here; the submit endpoint still replaces graded work
    if is_graded(existing):
        return Decision(
            False,
            "Cannot resubmit - assignment has already been graded",
            existing_submission=existing,
            is_graded=True,
        )
    return Decision(True, "Resubmission allowed", existing_submission=existing)


def can_grade(user, classroom: dict | None) -> bool:
    return is_instructor(user, classroom)


def visible_submissions(user, classroom: dict | None, submissions: list) -> list:
    if is_instructor(user, classroom):
        return list(submissions)
    email = _email_of(user)
    return [
        sub for sub in submissions
        if isinstance(sub, dict) and same_email(sub.get("studentEmail"), email)
    ]


def has_access(user, classroom: dict | None, submission: dict | None) -> bool:
    if is_instructor(user, classroom):
        return True
    if submission and same_email(submission.get("studentEmail"), _email_of(user)):
        return True
    return False


def submission_status(user, classroom: dict | None, task: dict, now: datetime | None = None) -> dict:
    """Everything the client needs to decide which submit buttons to show."""
    now = now or utcnow()
    role = resolve_role(user, classroom)
    found = find_student_submission(task, _email_of(user) or "")
    existing = found[1] if found else None

    submit_check = can_submit(user, task, is_resubmission=False, now=now)
    resubmit_check = can_resubmit(user, task, now=now)
    is_member_student = role == Role.STUDENT

    return {
        "user_role": role.value,
        "has_submitted": existing is not None,
        "can_submit": is_member_student and submit_check.allowed,
        "can_resubmit": is_member_student and resubmit_check.allowed,
        "is_overdue": is_overdue(task, now),
        "is_graded": is_graded(existing),
        "submit_reason": submit_check.reason,
        "resubmit_reason": resubmit_check.reason,
        "existing_submission": existing,
    }
