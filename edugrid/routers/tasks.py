from fastapi import APIRouter, Depends, status

from edugrid.core.current_user import Identity, get_current_identity
from edugrid.core.deps import get_catalog
from edugrid.core.results import unwrap
from edugrid.schemas.base import MessageResponse
from edugrid.schemas.task import TaskCreate, TaskListResponse, TaskResponse, TaskUpdate
from edugrid.services.task_catalog import TaskCatalog

router = APIRouter()


@router.get("/{classroom_id}/tasks", response_model=TaskListResponse)
def list_tasks(
    classroom_id: str,
    catalog: TaskCatalog = Depends(get_catalog),
    me: Identity = Depends(get_current_identity),
):
    result = unwrap(catalog.list_tasks(classroom_id, me))
    return TaskListResponse(tasks=result.value, count=len(result.value))


@router.post(
    "/{classroom_id}/tasks",
    response_model=TaskResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"description": "Missing title or due date, or malformed classroom id"},
        403: {"description": "Caller is not an instructor of the classroom"},
    },
)
def create_task(
    classroom_id: str,
    payload: TaskCreate,
    catalog: TaskCatalog = Depends(get_catalog),
    me: Identity = Depends(get_current_identity),
):
    result = unwrap(catalog.create_task(classroom_id, payload, me))
    return TaskResponse(message=result.message, task=result.value)


@router.get("/{classroom_id}/tasks/{task_id}", response_model=TaskResponse)
def get_task(
    classroom_id: str,
    task_id: str,
    catalog: TaskCatalog = Depends(get_catalog),
    me: Identity = Depends(get_current_identity),
):
    result = unwrap(catalog.get_task(classroom_id, task_id, me))
    return TaskResponse(task=result.value)


@router.put("/{classroom_id}/tasks/{task_id}", response_model=TaskResponse)
def update_task(
    classroom_id: str,
    task_id: str,
    payload: TaskUpdate,
    catalog: TaskCatalog = Depends(get_catalog),
    me: Identity = Depends(get_current_identity),
):
    result = unwrap(catalog.update_task(classroom_id, task_id, payload, me))
    return TaskResponse(message=result.message, task=result.value)


@router.delete("/{classroom_id}/tasks/{task_id}", response_model=MessageResponse)
def delete_task(
    classroom_id: str,
    task_id: str,
    catalog: TaskCatalog = Depends(get_catalog),
    me: Identity = Depends(get_current_identity),
):
    result = unwrap(catalog.delete_task(classroom_id, task_id, me))
    return MessageResponse(message=result.message)
