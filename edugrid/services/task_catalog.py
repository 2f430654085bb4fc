import logging

from edugrid.core.config import DEFAULT_TASK_POINTS
from edugrid.core.current_user import Identity
from edugrid.core.dates import parse_datetime, utcnow
from edugrid.core.object_id import coerce_id, new_object_id
from edugrid.core.permissions import Role, can_grade, resolve_role
from edugrid.core.results import Err, ErrorKind, Ok, Result
from edugrid.db.classroom_store import ClassroomStore
from edugrid.schemas.task import TaskCreate, TaskRead, TaskUpdate
from edugrid.services.classrooms import check_classroom_id, check_task_id, load_classroom, load_task
from edugrid.services.lookup import find_task, known_ids, task_list
from edugrid.services.presenters import present_task
from edugrid.services.stats import calculate_task_stats

logger = logging.getLogger(__name__)

MUTABLE_TASK_FIELDS = ("title", "description", "instructions", "dueDate", "points", "type", "isPublished")


def _parse_points(value) -> int | None:
    """Whole-number points, 0 included; None when the value is not a non-negative number."""
    if value is None or isinstance(value, bool):
        return None
    try:
        points = int(float(value))
    except (TypeError, ValueError, OverflowError):
        return None
    return points if points >= 0 else None


def build_task(payload: TaskCreate, created_by: str, now=None) -> dict:
    now = now or utcnow()
    task_id = new_object_id()
    points = _parse_points(payload.points)
    return {
        "_id": task_id,
        "id": task_id,
        "title": payload.title.strip(),
        "description": payload.description or "",
        "instructions": payload.instructions or "",
        "dueDate": payload.due_date.isoformat(),
        "points": DEFAULT_TASK_POINTS if points is None else points,
        "type": payload.type,
        "attachments": payload.attachments,
        "createdAt": now.isoformat(),
        "updatedAt": now.isoformat(),
        "createdBy": created_by,
        "isCompleted": False,
        "isPublished": True,
        "status": "active",
        "submissions": [],
        "stats": {
            "totalSubmissions": 0,
            "gradedSubmissions": 0,
            "averageScore": 0,
        },
    }


def _sort_key(task: dict):
    created = parse_datetime(task.get("createdAt"))
    return created.timestamp() if created else 0.0


class TaskCatalog:
    """Task create / read / update / delete inside a classroom document."""

    def __init__(self, store: ClassroomStore):
        self.store = store

    def list_tasks(self, classroom_id: str, requester: Identity) -> Result[list[TaskRead]]:
        loaded = load_classroom(self.store, classroom_id)
        if isinstance(loaded, Err):
            return loaded
        classroom = loaded.value

        if resolve_role(requester, classroom) == Role.UNAUTHORIZED:
            return Err(ErrorKind.FORBIDDEN, "You are not a member of this classroom")

        now = utcnow()
        tasks = [t for t in task_list(classroom) or [] if isinstance(t, dict)]
        tasks.sort(key=_sort_key, reverse=True)
        return Ok([present_task(task, now) for task in tasks])

    def get_task(self, classroom_id: str, task_id: str, requester: Identity) -> Result[TaskRead]:
        loaded = load_task(self.store, classroom_id, task_id)
        if isinstance(loaded, Err):
            return loaded
        classroom, task = loaded.value

        if resolve_role(requester, classroom) == Role.UNAUTHORIZED:
            return Err(ErrorKind.FORBIDDEN, "You are not a member of this classroom")

        return Ok(present_task(task, computed=True))

    def create_task(self, classroom_id: str, payload: TaskCreate, requester: Identity) -> Result[TaskRead]:
        invalid = check_classroom_id(classroom_id)
        if invalid:
            return invalid
        if not payload.title or not payload.title.strip():
            return Err(ErrorKind.VALIDATION, "Task title is required")
        if payload.due_date is None:
            return Err(ErrorKind.VALIDATION, "Due date is required")

        loaded = load_classroom(self.store, classroom_id)
        if isinstance(loaded, Err):
            return loaded
        if not can_grade(requester, loaded.value):
            return Err(ErrorKind.FORBIDDEN, "Only the classroom instructor can create tasks")

        task = build_task(payload, created_by=requester.email)

        def mutate(document: dict) -> bool:
            task_list(document, create=True).append(task)
            return True

        result = self.store.update_one(classroom_id, mutate)
        if result.matched_count == 0:
            return Err(ErrorKind.NOT_FOUND, "Classroom not found")
        if result.modified_count == 0:
            return Err(ErrorKind.NO_CHANGE, "Failed to create task - no changes made")

        logger.info("Task created: classroom=%s task=%s by=%s", classroom_id, task["id"], requester.email)
        return Ok(present_task(task, computed=True), "Task created successfully")

    def update_task(
        self,
        classroom_id: str,
        task_id: str,
        payload: TaskUpdate,
        requester: Identity,
    ) -> Result[TaskRead]:
        invalid = check_classroom_id(classroom_id) or check_task_id(task_id)
        if invalid:
            return invalid

        fields = payload.model_dump(exclude_unset=True, by_alias=True)
        changes = {}
        for field in MUTABLE_TASK_FIELDS:
            if field not in fields:
                continue
            value = fields[field]
            if field == "title":
                if not value or not value.strip():
                    return Err(ErrorKind.VALIDATION, "Task title cannot be empty")
                value = value.strip()
            elif field == "dueDate":
                if value is None:
                    return Err(ErrorKind.VALIDATION, "Due date cannot be removed")
                value = value.isoformat()
            elif field in ("description", "instructions"):
                value = value or ""
            elif field == "type":
                if value is None or not value.strip():
                    return Err(ErrorKind.VALIDATION, "Task type cannot be empty")
                value = value.strip()
            elif field == "isPublished":
                if value is None:
                    return Err(ErrorKind.VALIDATION, "isPublished must be true or false")
            elif field == "points":
                value = _parse_points(value)
                if value is None:
                    return Err(ErrorKind.VALIDATION, "Points must be a non-negative number")
            changes[field] = value

        loaded = load_task(self.store, classroom_id, task_id)
        if isinstance(loaded, Err):
            return loaded
        classroom, _ = loaded.value
        if not can_grade(requester, classroom):
            return Err(ErrorKind.FORBIDDEN, "Only the classroom instructor can update tasks")

        updated: dict = {}

        def mutate(document: dict) -> bool:
            found = find_task(document, task_id)
            if found is None:
                return False
            _, stored_task = found
            stored_task.update(changes)
            stored_task["updatedAt"] = utcnow().isoformat()
            stored_task["stats"] = calculate_task_stats(stored_task)
            updated["task"] = stored_task
            return True

        result = self.store.update_one(classroom_id, mutate)
        if result.matched_count == 0:
            return Err(ErrorKind.NOT_FOUND, "Classroom or task not found")

        logger.info(
            "Task updated: classroom=%s task=%s fields=%s",
            classroom_id,
            task_id,
            ",".join(sorted(changes)) or "-",
        )
        return Ok(present_task(updated["task"], computed=True), "Task updated successfully")

    def delete_task(self, classroom_id: str, task_id: str, requester: Identity) -> Result[None]:
        loaded = load_task(self.store, classroom_id, task_id)
        if isinstance(loaded, Err):
            return loaded
        classroom, _ = loaded.value
        if not can_grade(requester, classroom):
            return Err(ErrorKind.FORBIDDEN, "Only the classroom instructor can delete tasks")

        wanted = coerce_id(task_id)

        def mutate(document: dict) -> bool:
            tasks = task_list(document)
            if not tasks:
                return False
            remaining = [t for t in tasks if not (isinstance(t, dict) and wanted in known_ids(t))]
            if len(remaining) == len(tasks):
                return False
            tasks[:] = remaining
            return True

        result = self.store.update_one(classroom_id, mutate)
        if result.matched_count == 0:
            return Err(ErrorKind.NOT_FOUND, "Task not found")

        logger.info("Task deleted: classroom=%s task=%s by=%s", classroom_id, task_id, requester.email)
        return Ok(None, "Task deleted successfully")
