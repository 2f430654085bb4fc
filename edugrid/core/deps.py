from fastapi import Depends, Request

from edugrid.db.classroom_store import ClassroomStore
from edugrid.services.submission_engine import TaskSubmissionEngine
from edugrid.services.task_catalog import TaskCatalog


# the store is built once in the app lifespan; handlers get it injected
def get_store(request: Request) -> ClassroomStore:
    return request.app.state.store


def get_engine(store: ClassroomStore = Depends(get_store)) -> TaskSubmissionEngine:
    return TaskSubmissionEngine(store)


def get_catalog(store: ClassroomStore = Depends(get_store)) -> TaskCatalog:
    return TaskCatalog(store)
