"""Loading a classroom and one of its tasks, with the not-found / bad-id results every operation shares."""
from edugrid.core.object_id import is_valid_object_id
from edugrid.core.results import Err, ErrorKind, Ok, Result
from edugrid.db.classroom_store import ClassroomStore
from edugrid.services.lookup import find_task


def check_classroom_id(classroom_id) -> Err | None:
    if not classroom_id:
        return Err(ErrorKind.VALIDATION, "Classroom ID is required")
    if not is_valid_object_id(classroom_id):
        return Err(ErrorKind.VALIDATION, "Invalid classroom ID format")
    return None


def check_task_id(task_id) -> Err | None:
    if not task_id or not str(task_id).strip():
        return Err(ErrorKind.VALIDATION, "Task ID is required")
    return None


def load_classroom(store: ClassroomStore, classroom_id) -> Result[dict]:
    invalid = check_classroom_id(classroom_id)
    if invalid:
        return invalid

    classroom = store.find_one(classroom_id)
    if classroom is None:
        return Err(ErrorKind.NOT_FOUND, "Classroom not found")
    return Ok(classroom)


def load_task(store: ClassroomStore, classroom_id, task_id) -> Result[tuple[dict, dict]]:
    """(classroom, task) for the given ids."""
    invalid = check_classroom_id(classroom_id) or check_task_id(task_id)
    if invalid:
        return invalid

    loaded = load_classroom(store, classroom_id)
    if isinstance(loaded, Err):
        return loaded

    classroom = loaded.value
    found = find_task(classroom, task_id)
    if found is None:
        return Err(ErrorKind.NOT_FOUND, "Task not found")
    return Ok((classroom, found[1]))
