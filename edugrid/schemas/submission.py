from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from edugrid.schemas.base import CamelModel, Envelope


class AttachmentIn(CamelModel):
    url: Optional[str] = None
    name: Optional[str] = None
    original_name: Optional[str] = None
    type: Optional[str] = None
    mime_type: Optional[str] = None
    size: Optional[int] = None


class Attachment(CamelModel):
    url: Optional[str] = None
    name: str
    original_name: str
    type: str
    mime_type: str
    size: Optional[int] = None


class SubmissionCreate(CamelModel):
    """
    Body of submit / resubmit.

    Clients have sent the same content under several names over time:
    text as `submissionText` or `text`, the link as `submissionUrl` or
    `fileUrl`, and files either as `attachments` or as one upload described
    by `fileUrl` + `fileName` (+ `fileSize`, `fileType`).
    """

    student_name: Optional[str] = None

    submission_text: Optional[str] = None
    text: Optional[str] = None

    submission_url: Optional[str] = None
    file_url: Optional[str] = None
    file_name: Optional[str] = None
    file_size: Optional[int] = None
    file_type: Optional[str] = None

    attachments: Optional[list[AttachmentIn]] = None


class SubmissionRead(CamelModel):
    id: str
    legacy_id: Optional[str] = Field(default=None, alias="_id")
    student_email: str
    student_name: str
    submission_text: str = ""
    submission_url: Optional[str] = None
    attachments: list[Attachment] = []
    # duplicate of attachments kept for older clients
    files: list[Attachment] = []
    submitted_at: datetime
    status: str = "submitted"
    grade: Optional[float] = None
    feedback: Optional[str] = None
    graded_by: Optional[str] = None
    graded_at: Optional[datetime] = None
    version: int = 1

    is_late: bool = False
    late_by_minutes: Optional[int] = None


class SubmissionReceipt(CamelModel):
    id: str
    student_email: str
    submitted_at: datetime
    status: str
    attachment_count: int
    replaced: bool = False


class SubmissionGradeUpdate(CamelModel):
    # parsed as a float by the engine so "88" and 88 both work
    grade: Any = None
    feedback: Optional[str] = None


class GradingRead(CamelModel):
    submission_id: str
    student_email: str
    grade: float
    feedback: str
    graded_by: str
    graded_at: datetime


class SubmissionStatusRead(CamelModel):
    user_role: str
    has_submitted: bool
    can_submit: bool
    can_resubmit: bool
    is_overdue: bool
    is_graded: bool
    submit_reason: str
    resubmit_reason: str
    existing_submission: Optional[SubmissionRead] = None


class SubmissionReceiptResponse(Envelope):
    submission: SubmissionReceipt


class SubmissionResponse(Envelope):
    submission: SubmissionRead


class SubmissionListResponse(Envelope):
    submissions: list[SubmissionRead]
    count: int
    task_title: Optional[str] = None
    user_role: str


class GradingResponse(Envelope):
    grading: GradingRead


class SubmissionStatusResponse(Envelope):
    status: SubmissionStatusRead
