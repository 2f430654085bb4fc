from datetime import datetime
from typing import Any, Optional

from pydantic import Field

from edugrid.schemas.base import CamelModel, Envelope


class TaskCreate(CamelModel):
    # title / dueDate are checked by the catalog so a missing one is a 400 with a readable message
    title: Optional[str] = None
    description: Optional[str] = None
    instructions: Optional[str] = None
    due_date: Optional[datetime] = None
    points: Any = None
    type: str = "assignment"
    attachments: list[dict] = []


class TaskUpdate(CamelModel):
    """Only these fields can change after a task is created."""

    title: Optional[str] = None
    description: Optional[str] = None
    instructions: Optional[str] = None
    due_date: Optional[datetime] = None
    points: Any = None
    type: Optional[str] = None
    is_published: Optional[bool] = None


class TaskStats(CamelModel):
    total_submissions: int = 0
    graded_submissions: int = 0
    average_score: float = 0


class TaskComputedStats(CamelModel):
    submission_count: int
    is_overdue: bool
    days_until_due: Optional[int] = None
    time_remaining: Optional[str] = None


class TaskRead(CamelModel):
    id: str
    legacy_id: Optional[str] = Field(default=None, alias="_id")
    title: str
    description: str = ""
    instructions: str = ""
    due_date: Optional[datetime] = None
    points: int
    type: Optional[str] = None
    attachments: list[dict] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    created_by: Optional[str] = None
    is_published: bool = True
    status: str = "active"
    stats: TaskStats
    computed_stats: Optional[TaskComputedStats] = None


class TaskAnalytics(CamelModel):
    total_students: int
    submitted_count: int
    graded_count: int
    resubmission_count: int
    submission_rate: float
    grading_rate: float
    average_grade: Optional[float] = None
    due_date: Optional[datetime] = None
    is_overdue: bool
    created_at: Optional[datetime] = None
    last_submission_at: Optional[datetime] = None


class PendingStudents(CamelModel):
    task_title: str
    due_date: Optional[datetime] = None
    pending_students: list[str]


class TaskResponse(Envelope):
    task: TaskRead


class TaskListResponse(Envelope):
    tasks: list[TaskRead]
    count: int


class TaskAnalyticsResponse(Envelope):
    analytics: TaskAnalytics


class PendingStudentsResponse(Envelope):
    reminder: PendingStudents
