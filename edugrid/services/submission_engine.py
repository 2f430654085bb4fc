"""
Submitting, replacing, listing and grading task submissions.

A student has at most one submission per task. Submitting again replaces
it in place under the same id and clears any grade, so the replacement has
to be graded again. All state lives in the classroom document and every
write is a single `ClassroomStore.update_one` call.
"""
import logging
from typing import NamedTuple

from edugrid.core import config
from edugrid.core.current_user import Identity
from edugrid.core.dates import parse_datetime, utcnow
from edugrid.core.object_id import coerce_id
from edugrid.core.permissions import (
    Role,
    can_grade,
    has_access,
    is_overdue,
    resolve_role,
    submission_status,
    visible_submissions,
)
from edugrid.core.results import Err, ErrorKind, Ok, Result
from edugrid.db.classroom_store import ClassroomStore
from edugrid.schemas.submission import (
    GradingRead,
    SubmissionCreate,
    SubmissionRead,
    SubmissionReceipt,
    SubmissionStatusRead,
)
from edugrid.schemas.task import PendingStudents, TaskAnalytics
from edugrid.services.classrooms import check_classroom_id, check_task_id, load_task
from edugrid.services.lookup import (
    canonical_id,
    find_student_submission,
    find_submission,
    find_task,
    same_email,
    student_emails,
    submissions_of,
)
from edugrid.services.presenters import present_submission, task_points
from edugrid.services.stats import calculate_task_stats, grade_value
from edugrid.services.submission_factory import build_submission, validate_submission

logger = logging.getLogger(__name__)


class SubmissionListing(NamedTuple):
    submissions: list[SubmissionRead]
    task_title: str | None
    role: Role


# How the grade update finds its target, strictest first. Historical documents
# are inconsistent about which id field is filled in.
GRADE_MATCH_STRATEGIES = ("id", "_id", "studentEmail")


def _roster_name(classroom: dict, email: str) -> str | None:
    for entry in classroom.get("students") or []:
        if isinstance(entry, dict) and same_email(entry.get("email"), email):
            return entry.get("name") or None
    return None


class TaskSubmissionEngine:
    def __init__(self, store: ClassroomStore, allow_late: bool | None = None):
        self.store = store
        self.allow_late = config.ALLOW_LATE_SUBMISSIONS if allow_late is None else allow_late

    # ------------------------------------------------------------------ submit

    def submit(
        self,
        classroom_id: str,
        task_id: str,
        payload: SubmissionCreate,
        student: Identity,
    ) -> Result[SubmissionReceipt]:
        """First submission or full replacement of the student's existing one."""
        invalid = check_classroom_id(classroom_id) or check_task_id(task_id)
        if invalid:
            return invalid

        problem = validate_submission(payload)
        if problem:
            return Err(ErrorKind.VALIDATION, problem)

        loaded = load_task(self.store, classroom_id, task_id)
        if isinstance(loaded, Err):
            return loaded
        classroom, task = loaded.value

        if resolve_role(student, classroom) != Role.STUDENT:
            return Err(ErrorKind.FORBIDDEN, "Only students enrolled in this classroom can submit")

        now = utcnow()
        if is_overdue(task, now):
            if not self.allow_late:
                return Err(ErrorKind.FORBIDDEN, "Task is overdue")
            logger.warning(
                "Late submission accepted: classroom=%s task=%s student=%s due=%s",
                classroom_id,
                task_id,
                student.email,
                task.get("dueDate"),
            )

        display_name = student.name or _roster_name(classroom, student.email)
        outcome: dict = {}

        def mutate(document: dict) -> bool:
            found = find_task(document, task_id)
            if found is None:
                return False
            _, stored_task = found

            submissions = submissions_of(stored_task, create=True)
            existing = find_student_submission(stored_task, student.email)

            if existing is None:
                record = build_submission(payload, student.email, student_name=display_name, now=now)
                submissions.append(record)
                outcome["replaced"] = False
            else:
                index, prior = existing
                record = build_submission(
                    payload,
                    prior.get("studentEmail") or student.email,
                    student_name=prior.get("studentName") or display_name,
                    submission_id=canonical_id(prior),
                    now=now,
                )
                legacy_id = coerce_id(prior.get("_id"))
                if legacy_id:
                    record["_id"] = legacy_id
                submissions[index] = record
                outcome["replaced"] = True

            stored_task["stats"] = calculate_task_stats(stored_task)
            outcome["record"] = record
            return True

        result = self.store.update_one(classroom_id, mutate)
        if result.matched_count == 0:
            return Err(ErrorKind.CONFLICT, "Failed to submit task")

        record = outcome["record"]
        replaced = outcome["replaced"]
        logger.info(
            "%s: classroom=%s task=%s student=%s submission=%s",
            "Submission replaced" if replaced else "Submission created",
            classroom_id,
            task_id,
            student.email,
            record["id"],
        )

        receipt = SubmissionReceipt(
            id=record["id"],
            student_email=record["studentEmail"],
            submitted_at=parse_datetime(record["submittedAt"]),
            status=record["status"],
            attachment_count=len(record["attachments"]),
            replaced=replaced,
        )
        if replaced:
            return Ok(receipt, "Task resubmitted successfully (previous submission replaced)")
        return Ok(receipt, "Task submitted successfully")

    # ------------------------------------------------------------------- reads

    def list_submissions(self, classroom_id: str, task_id: str, requester: Identity) -> Result[SubmissionListing]:
        loaded = load_task(self.store, classroom_id, task_id)
        if isinstance(loaded, Err):
            return loaded
        classroom, task = loaded.value

        role = resolve_role(requester, classroom)
        now = utcnow()
        visible = visible_submissions(requester, classroom, submissions_of(task))
        submissions = [present_submission(sub, task, now) for sub in visible if isinstance(sub, dict)]

        return Ok(SubmissionListing(submissions, task.get("title"), role))

    def get_submission(
        self,
        classroom_id: str,
        task_id: str,
        submission_id: str,
        requester: Identity,
    ) -> Result[SubmissionRead]:
        loaded = load_task(self.store, classroom_id, task_id)
        if isinstance(loaded, Err):
            return loaded
        classroom, task = loaded.value

        found = find_submission(task, submission_id)
        if found is None:
            return Err(ErrorKind.NOT_FOUND, "Submission not found")
        submission = found[1]

        if not has_access(requester, classroom, submission):
            return Err(
                ErrorKind.FORBIDDEN,
                "Access denied. You can only view your own submissions or submissions in classes you teach.",
            )

        return Ok(present_submission(submission, task))

    def my_submission(self, classroom_id: str, task_id: str, requester: Identity) -> Result[SubmissionRead]:
        loaded = load_task(self.store, classroom_id, task_id)
        if isinstance(loaded, Err):
            return loaded
        _, task = loaded.value

        found = find_student_submission(task, requester.email)
        if found is None:
            return Err(ErrorKind.NOT_FOUND, "No submission found for this task")
        return Ok(present_submission(found[1], task))

    def submission_status(self, classroom_id: str, task_id: str, requester: Identity) -> Result[SubmissionStatusRead]:
        loaded = load_task(self.store, classroom_id, task_id)
        if isinstance(loaded, Err):
            return loaded
        classroom, task = loaded.value

        now = utcnow()
        status = submission_status(requester, classroom, task, now)
        existing = status.pop("existing_submission")
        return Ok(
            SubmissionStatusRead(
                **status,
                existing_submission=present_submission(existing, task, now) if existing else None,
            )
        )

    # ------------------------------------------------------------------- grade

    def grade(
        self,
        classroom_id: str,
        task_id: str,
        submission_id: str,
        grade,
        feedback: str | None,
        grader: Identity,
    ) -> Result[GradingRead]:
        invalid = check_classroom_id(classroom_id) or check_task_id(task_id)
        if invalid:
            return invalid
        if not submission_id:
            return Err(ErrorKind.VALIDATION, "Submission ID is required")

        score = grade_value(grade.strip() if isinstance(grade, str) else grade)
        if score is None:
            return Err(ErrorKind.VALIDATION, "Grade must be a number")

        loaded = load_task(self.store, classroom_id, task_id)
        if isinstance(loaded, Err):
            return loaded
        classroom, task = loaded.value

        if not can_grade(grader, classroom):
            return Err(ErrorKind.FORBIDDEN, "Access denied. Only instructors can grade submissions.")

        found = find_submission(task, submission_id)
        if found is None:
            return Err(ErrorKind.NOT_FOUND, "Submission not found")
        submission = found[1]

        max_points = task_points(task.get("points"))
        if score < 0 or score > max_points:
            return Err(ErrorKind.VALIDATION, f"Grade must be between 0 and {max_points}")

        graded_at = utcnow()
        feedback = feedback or ""
        changes = {
            "grade": score,
            "feedback": feedback,
            "gradedBy": grader.email,
            "gradedAt": graded_at.isoformat(),
            "status": "graded",
        }

        for strategy in GRADE_MATCH_STRATEGIES:
            if strategy == "studentEmail":
                target = submission.get("studentEmail")
            else:
                target = coerce_id(submission.get(strategy)) or submission_id

            result = self.store.update_one(classroom_id, self._apply_grade(task_id, strategy, target, changes))
            if result.matched_count:
                break
            logger.warning(
                "Grade update matched nothing by %s: classroom=%s task=%s submission=%s",
                strategy,
                classroom_id,
                task_id,
                submission_id,
            )
        else:
            logger.error(
                "All grade update strategies failed: classroom=%s task=%s submission=%s",
                classroom_id,
                task_id,
                submission_id,
            )
            return Err(
                ErrorKind.CONFLICT,
                "Failed to update submission grade. Submission may have been modified.",
            )

        logger.info(
            "Submission graded: classroom=%s task=%s submission=%s grade=%s by=%s",
            classroom_id,
            task_id,
            submission_id,
            score,
            grader.email,
        )
        return Ok(
            GradingRead(
                submission_id=submission_id,
                student_email=submission.get("studentEmail") or "",
                grade=score,
                feedback=feedback,
                graded_by=grader.email,
                graded_at=graded_at,
            ),
            "Submission graded successfully",
        )

    @staticmethod
    def _apply_grade(task_id: str, strategy: str, target, changes: dict):
        def mutate(document: dict) -> bool:
            found = find_task(document, task_id)
            if found is None or not target:
                return False
            _, stored_task = found

            if strategy == "studentEmail":
                match = find_student_submission(stored_task, target)
            else:
                match = find_submission(stored_task, target, field=strategy)
            if match is None:
                return False

            match[1].update(changes)
            stored_task["stats"] = calculate_task_stats(stored_task)
            return True

        return mutate

    # --------------------------------------------------------------- analytics

    def analytics(self, classroom_id: str, task_id: str, requester: Identity) -> Result[TaskAnalytics]:
        loaded = load_task(self.store, classroom_id, task_id)
        if isinstance(loaded, Err):
            return loaded
        classroom, task = loaded.value

        if not can_grade(requester, classroom):
            return Err(ErrorKind.FORBIDDEN, "Access denied. Only instructors can view analytics.")

        now = utcnow()
        submissions = [s for s in submissions_of(task) if isinstance(s, dict)]
        total_students = len(student_emails(classroom))
        grades = [g for g in (grade_value(s.get("grade")) for s in submissions) if g is not None]
        submitted_times = [t for t in (parse_datetime(s.get("submittedAt")) for s in submissions) if t]

        return Ok(
            TaskAnalytics(
                total_students=total_students,
                submitted_count=len(submissions),
                graded_count=len(grades),
                resubmission_count=sum(1 for s in submissions if s.get("status") == "resubmitted"),
                submission_rate=_rate(len(submissions), total_students),
                grading_rate=_rate(len(grades), len(submissions)),
                average_grade=round(sum(grades) / len(grades), 2) if grades else None,
                due_date=parse_datetime(task.get("dueDate")),
                is_overdue=is_overdue(task, now),
                created_at=parse_datetime(task.get("createdAt")),
                last_submission_at=max(submitted_times) if submitted_times else None,
            )
        )

    def pending_students(self, classroom_id: str, task_id: str, requester: Identity) -> Result[PendingStudents]:
        """Enrolled students who have not submitted yet. Read-only; nothing is sent."""
        loaded = load_task(self.store, classroom_id, task_id)
        if isinstance(loaded, Err):
            return loaded
        classroom, task = loaded.value

        if not can_grade(requester, classroom):
            return Err(ErrorKind.FORBIDDEN, "Access denied. Only instructors can send reminders.")

        pending = [
            email for email in student_emails(classroom)
            if find_student_submission(task, email) is None
        ]
        return Ok(
            PendingStudents(
                task_title=task.get("title") or "",
                due_date=parse_datetime(task.get("dueDate")),
                pending_students=pending,
            ),
            f"Found {len(pending)} students to remind",
        )


def _rate(part: int, whole: int) -> float:
    if whole <= 0:
        return 0.0
    return round(part / whole * 100, 1)
