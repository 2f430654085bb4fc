from fastapi import APIRouter, Depends, Response, status

from edugrid.core.current_user import Identity, get_current_identity
from edugrid.core.deps import get_engine
from edugrid.core.results import unwrap
from edugrid.schemas.submission import (
    GradingResponse,
    SubmissionCreate,
    SubmissionGradeUpdate,
    SubmissionListResponse,
    SubmissionReceiptResponse,
    SubmissionResponse,
    SubmissionStatusResponse,
)
from edugrid.schemas.task import PendingStudentsResponse, TaskAnalyticsResponse
from edugrid.services.submission_engine import TaskSubmissionEngine

router = APIRouter()

TASK_PATH = "/{classroom_id}/tasks/{task_id}"


def _submit(classroom_id, task_id, payload, response, engine, me) -> SubmissionReceiptResponse:
    result = unwrap(engine.submit(classroom_id, task_id, payload, me))
    # a replacement is an update of an existing resource
    if result.value.replaced:
        response.status_code = status.HTTP_200_OK
    return SubmissionReceiptResponse(message=result.message, submission=result.value)


@router.post(
    TASK_PATH + "/submit",
    response_model=SubmissionReceiptResponse,
    status_code=status.HTTP_201_CREATED,
    responses={200: {"description": "Existing submission replaced"}},
)
def submit_task(
    classroom_id: str,
    task_id: str,
    payload: SubmissionCreate,
    response: Response,
    engine: TaskSubmissionEngine = Depends(get_engine),
    me: Identity = Depends(get_current_identity),
):
    return _submit(classroom_id, task_id, payload, response, engine, me)


# older clients call a separate endpoint; it behaves exactly like /submit
@router.post(
    TASK_PATH + "/resubmit",
    response_model=SubmissionReceiptResponse,
    status_code=status.HTTP_201_CREATED,
    responses={200: {"description": "Existing submission replaced"}},
)
def resubmit_task(
    classroom_id: str,
    task_id: str,
    payload: SubmissionCreate,
    response: Response,
    engine: TaskSubmissionEngine = Depends(get_engine),
    me: Identity = Depends(get_current_identity),
):
    return _submit(classroom_id, task_id, payload, response, engine, me)


@router.get(TASK_PATH + "/submissions", response_model=SubmissionListResponse)
def list_submissions(
    classroom_id: str,
    task_id: str,
    engine: TaskSubmissionEngine = Depends(get_engine),
    me: Identity = Depends(get_current_identity),
):
    listing = unwrap(engine.list_submissions(classroom_id, task_id, me)).value
    return SubmissionListResponse(
        submissions=listing.submissions,
        count=len(listing.submissions),
        task_title=listing.task_title,
        user_role=listing.role.value,
    )


@router.get(TASK_PATH + "/submissions/{submission_id}", response_model=SubmissionResponse)
def get_submission(
    classroom_id: str,
    task_id: str,
    submission_id: str,
    engine: TaskSubmissionEngine = Depends(get_engine),
    me: Identity = Depends(get_current_identity),
):
    result = unwrap(engine.get_submission(classroom_id, task_id, submission_id, me))
    return SubmissionResponse(submission=result.value)


@router.put(TASK_PATH + "/submissions/{submission_id}/grade", response_model=GradingResponse)
def grade_submission(
    classroom_id: str,
    task_id: str,
    submission_id: str,
    payload: SubmissionGradeUpdate,
    engine: TaskSubmissionEngine = Depends(get_engine),
    me: Identity = Depends(get_current_identity),
):
    result = unwrap(
        engine.grade(classroom_id, task_id, submission_id, payload.grade, payload.feedback, me)
    )
    return GradingResponse(message=result.message, grading=result.value)


@router.get(TASK_PATH + "/my-submission", response_model=SubmissionResponse)
def my_submission(
    classroom_id: str,
    task_id: str,
    engine: TaskSubmissionEngine = Depends(get_engine),
    me: Identity = Depends(get_current_identity),
):
    result = unwrap(engine.my_submission(classroom_id, task_id, me))
    return SubmissionResponse(submission=result.value)


@router.get(TASK_PATH + "/submission-status", response_model=SubmissionStatusResponse)
def submission_status(
    classroom_id: str,
    task_id: str,
    engine: TaskSubmissionEngine = Depends(get_engine),
    me: Identity = Depends(get_current_identity),
):
    result = unwrap(engine.submission_status(classroom_id, task_id, me))
    return SubmissionStatusResponse(status=result.value)


@router.get(TASK_PATH + "/analytics", response_model=TaskAnalyticsResponse)
def task_analytics(
    classroom_id: str,
    task_id: str,
    engine: TaskSubmissionEngine = Depends(get_engine),
    me: Identity = Depends(get_current_identity),
):
    result = unwrap(engine.analytics(classroom_id, task_id, me))
    return TaskAnalyticsResponse(analytics=result.value)


@router.get(TASK_PATH + "/pending-students", response_model=PendingStudentsResponse)
def pending_students(
    classroom_id: str,
    task_id: str,
    engine: TaskSubmissionEngine = Depends(get_engine),
    me: Identity = Depends(get_current_identity),
):
    result = unwrap(engine.pending_students(classroom_id, task_id, me))
    return PendingStudentsResponse(message=result.message, reminder=result.value)
