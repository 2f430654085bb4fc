"""
Locating tasks and submissions inside a classroom document.

Documents written by different client generations disagree about which id
field is populated: tasks and submissions may carry `_id`, `id`, or both,
and ids may be plain strings or {"$oid": ...} wrappers. Every lookup in the
code base goes through this module so that tolerance lives in one place.
"""
from edugrid.core.object_id import coerce_id


def task_list(classroom: dict, create: bool = False) -> list | None:
    """The mutable task list of a classroom (`tasks.assignments`, or a bare `tasks` list)."""
    tasks = classroom.get("tasks")
    if isinstance(tasks, list):
        return tasks
    if isinstance(tasks, dict):
        assignments = tasks.get("assignments")
        if isinstance(assignments, list):
            return assignments
        if create:
            tasks["assignments"] = []
            return tasks["assignments"]
        return None
    if create:
        classroom["tasks"] = {"assignments": []}
        return classroom["tasks"]["assignments"]
    return None


def known_ids(item: dict) -> set[str]:
    ids = set()
    for field in ("_id", "id"):
        value = coerce_id(item.get(field))
        if value:
            ids.add(value)
    return ids


def canonical_id(item: dict) -> str | None:
    return coerce_id(item.get("id")) or coerce_id(item.get("_id"))


def find_task(classroom: dict, task_id: str) -> tuple[int, dict] | None:
    """Resolve a task by any id it is known under."""
    task_id = coerce_id(task_id)
    if not task_id:
        return None
    for index, task in enumerate(task_list(classroom) or []):
        if isinstance(task, dict) and task_id in known_ids(task):
            return index, task
    return None


def submissions_of(task: dict, create: bool = False) -> list:
    submissions = task.get("submissions")
    if isinstance(submissions, list):
        return submissions
    if create:
        task["submissions"] = []
        return task["submissions"]
    return []


def find_submission(task: dict, submission_id: str, field: str | None = None) -> tuple[int, dict] | None:
    """
    Resolve a submission by id.

    With `field` set ("id" or "_id") only that field is compared, which is how
    the grading fallback narrows or widens its match.
    """
    submission_id = coerce_id(submission_id)
    if not submission_id:
        return None
    for index, sub in enumerate(submissions_of(task)):
        if not isinstance(sub, dict):
            continue
        if field is None:
            matched = submission_id in known_ids(sub)
        else:
            matched = coerce_id(sub.get(field)) == submission_id
        if matched:
            return index, sub
    return None


def same_email(a, b) -> bool:
    if not isinstance(a, str) or not isinstance(b, str):
        return False
    return a.strip().casefold() == b.strip().casefold()


def find_student_submission(task: dict, email: str) -> tuple[int, dict] | None:
    for index, sub in enumerate(submissions_of(task)):
        if isinstance(sub, dict) and same_email(sub.get("studentEmail"), email):
            return index, sub
    return None


def student_emails(classroom: dict) -> list[str]:
    """Enrolled student emails; rosters hold either {email, ...} objects or bare strings."""
    emails: list[str] = []
    for field in ("students", "enrolledStudents"):
        for entry in classroom.get(field) or []:
            email = entry.get("email") if isinstance(entry, dict) else entry
            if isinstance(email, str) and email.strip():
                if not any(same_email(email, seen) for seen in emails):
                    emails.append(email.strip())
    return emails


def normalize_legacy_ids(classroom: dict) -> bool:
    """
    Fill in whichever of `id` / `_id` is missing on tasks and submissions and
    unwrap {"$oid": ...} values into plain strings. Items that already carry
    two different ids keep both, since clients may reference either.

    Returns True when the document was changed. Safe to run repeatedly.
    """
    changed = False
    for task in task_list(classroom) or []:
        if not isinstance(task, dict):
            continue
        changed |= _normalize_item(task)
        for sub in submissions_of(task):
            if isinstance(sub, dict):
                changed |= _normalize_item(sub)
    return changed


def _normalize_item(item: dict) -> bool:
    primary = coerce_id(item.get("id"))
    legacy = coerce_id(item.get("_id"))
    if primary is None and legacy is None:
        return False

    wanted = {"id": primary or legacy, "_id": legacy or primary}
    changed = False
    for field, value in wanted.items():
        if item.get(field) != value:
            item[field] = value
            changed = True
    return changed
