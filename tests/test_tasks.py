from datetime import datetime, timedelta, timezone

import pytest

from edugrid.core.current_user import Identity
from edugrid.core.results import Err, ErrorKind
from edugrid.schemas.submission import SubmissionCreate
from edugrid.schemas.task import TaskCreate, TaskUpdate
from edugrid.services.lookup import task_list
from edugrid.services.submission_engine import TaskSubmissionEngine
from edugrid.services.task_catalog import TaskCatalog
from tests.factories import (
    CLASSROOM_ID,
    INSTRUCTOR,
    OTHER_STUDENT,
    OUTSIDER,
    STUDENT,
    TASK_ID,
    auth_header,
    classroom_document,
    legacy_submission,
    task_document,
)

TASKS_URL = f"/api/classrooms/{CLASSROOM_ID}/tasks"
TASK_URL = f"{TASKS_URL}/{TASK_ID}"


def due_in(days: int = 7) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def create(client, email: str = INSTRUCTOR, **body):
    return client.post(TASKS_URL, headers=auth_header(email), json=body)


def test_instructor_creates_task(client, store):
    r = create(client, title="  HW2  ", dueDate=due_in(), points="50", description="Read ch. 3")
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["message"] == "Task created successfully"

    task = body["task"]
    assert task["title"] == "HW2"
    assert task["points"] == 50
    assert task["createdBy"] == INSTRUCTOR
    assert task["id"] == task["_id"]
    assert task["stats"] == {"totalSubmissions": 0, "gradedSubmissions": 0, "averageScore": 0}
    assert task["computedStats"]["isOverdue"] is False

    stored = task_list(store.find_one(CLASSROOM_ID))
    assert [t["title"] for t in stored] == ["HW1", "HW2"]
    assert stored[1]["submissions"] == []


def test_points_default_when_missing_or_not_numeric(client):
    r = create(client, title="HW2", dueDate=due_in(), points="lots")
    assert r.status_code == 201, r.text
    assert r.json()["task"]["points"] == 100


def test_zero_points_are_kept(client, store):
    r = create(client, title="Practice", dueDate=due_in(), points=0)
    assert r.status_code == 201, r.text
    assert r.json()["task"]["points"] == 0
    assert task_list(store.find_one(CLASSROOM_ID))[1]["points"] == 0

    task_id = r.json()["task"]["id"]
    assert client.get(f"{TASKS_URL}/{task_id}", headers=auth_header(STUDENT)).json()["task"]["points"] == 0


def test_create_requires_title_and_due_date(client):
    r = create(client, dueDate=due_in())
    assert r.status_code == 400
    assert r.json()["message"] == "Task title is required"

    r = create(client, title="HW2")
    assert r.status_code == 400
    assert r.json()["message"] == "Due date is required"


def test_student_cannot_create_task(client, store):
    before = store.find_one(CLASSROOM_ID)
    r = create(client, email=STUDENT, title="HW2", dueDate=due_in())
    assert r.status_code == 403
    assert store.find_one(CLASSROOM_ID) == before


def test_list_tasks_newest_first_for_members_only(client, store):
    now = datetime.now(timezone.utc)
    store.clear()
    store.insert_one(
        classroom_document(
            tasks=[
                task_document("65a1b2c3d4e5f6a7b8c9d001", title="old", createdAt=(now - timedelta(days=9)).isoformat()),
                task_document("65a1b2c3d4e5f6a7b8c9d002", title="new", createdAt=(now - timedelta(hours=1)).isoformat()),
                task_document("65a1b2c3d4e5f6a7b8c9d003", title="mid", createdAt=(now - timedelta(days=3)).isoformat()),
            ]
        )
    )

    r = client.get(TASKS_URL, headers=auth_header(STUDENT))
    assert r.status_code == 200, r.text
    assert [t["title"] for t in r.json()["tasks"]] == ["new", "mid", "old"]
    assert r.json()["count"] == 3

    r = client.get(TASKS_URL, headers=auth_header(OUTSIDER))
    assert r.status_code == 403


def test_get_task_includes_computed_stats(client, store):
    task = task_document(
        due_in=timedelta(days=2, hours=3),
        submissions=[
            legacy_submission(STUDENT, id="65a1b2c3d4e5f6a7b8c9a001", grade=80, status="graded"),
            legacy_submission(OTHER_STUDENT, id="65a1b2c3d4e5f6a7b8c9a002"),
        ],
    )
    store.clear()
    store.insert_one(classroom_document(tasks=[task]))

    r = client.get(TASK_URL, headers=auth_header(INSTRUCTOR))
    assert r.status_code == 200, r.text
    body = r.json()["task"]
    assert body["stats"] == {"totalSubmissions": 2, "gradedSubmissions": 1, "averageScore": 80.0}
    computed = body["computedStats"]
    assert computed["submissionCount"] == 2
    assert computed["isOverdue"] is False
    assert computed["daysUntilDue"] == 3
    assert computed["timeRemaining"].startswith("2 days, ")


def test_overdue_task_reports_overdue(client, store):
    store.clear()
    store.insert_one(classroom_document(tasks=[task_document(due_in=timedelta(hours=-2))]))

    computed = client.get(TASK_URL, headers=auth_header(STUDENT)).json()["task"]["computedStats"]
    assert computed["isOverdue"] is True
    assert computed["timeRemaining"] == "Overdue"


def test_update_changes_only_allowed_fields(client, store):
    r = client.put(
        TASK_URL,
        headers=auth_header(INSTRUCTOR),
        json={"title": "HW1 (revised)", "points": 20, "createdBy": "intruder@example.com", "submissions": []},
    )
    assert r.status_code == 200, r.text
    assert r.json()["message"] == "Task updated successfully"

    stored = task_list(store.find_one(CLASSROOM_ID))[0]
    assert stored["title"] == "HW1 (revised)"
    assert stored["points"] == 20
    assert "createdBy" not in stored
    assert stored["instructions"] == "Answer every question."
    assert "updatedAt" in stored


def test_update_rejects_blank_title(client):
    r = client.put(TASK_URL, headers=auth_header(INSTRUCTOR), json={"title": "  "})
    assert r.status_code == 400
    assert r.json()["message"] == "Task title cannot be empty"


@pytest.mark.parametrize(
    "body, message",
    [
        ({"type": None}, "Task type cannot be empty"),
        ({"type": " "}, "Task type cannot be empty"),
        ({"isPublished": None}, "isPublished must be true or false"),
        ({"points": -5}, "Points must be a non-negative number"),
        ({"dueDate": None}, "Due date cannot be removed"),
    ],
)
def test_update_rejects_unusable_values(client, store, body, message):
    before = store.find_one(CLASSROOM_ID)
    r = client.put(TASK_URL, headers=auth_header(INSTRUCTOR), json=body)
    assert r.status_code == 400
    assert r.json()["message"] == message
    assert store.find_one(CLASSROOM_ID) == before


def test_student_cannot_update_or_delete(client):
    assert client.put(TASK_URL, headers=auth_header(STUDENT), json={"title": "mine"}).status_code == 403
    assert client.delete(TASK_URL, headers=auth_header(STUDENT)).status_code == 403


def test_delete_task(client, store):
    r = client.delete(TASK_URL, headers=auth_header(INSTRUCTOR))
    assert r.status_code == 200, r.text
    assert r.json() == {"success": True, "message": "Task deleted successfully"}
    assert task_list(store.find_one(CLASSROOM_ID)) == []

    assert client.get(TASK_URL, headers=auth_header(INSTRUCTOR)).status_code == 404
    assert client.delete(TASK_URL, headers=auth_header(INSTRUCTOR)).status_code == 404


def test_task_known_only_by_underscore_id(client, store):
    task = task_document()
    del task["id"]
    store.clear()
    store.insert_one(classroom_document(tasks=[task]))

    r = client.get(TASK_URL, headers=auth_header(STUDENT))
    assert r.status_code == 200, r.text
    assert r.json()["task"]["id"] == TASK_ID


def test_classroom_with_bare_task_list(client, store):
    doc = classroom_document()
    doc["tasks"] = [task_document()]
    store.clear()
    store.insert_one(doc)

    assert client.get(TASK_URL, headers=auth_header(STUDENT)).status_code == 200
    r = client.post(f"{TASK_URL}/submit", headers=auth_header(STUDENT), json={"text": "done"})
    assert r.status_code == 201, r.text
    assert len(store.find_one(CLASSROOM_ID)["tasks"][0]["submissions"]) == 1


def test_first_task_in_empty_classroom(client, store):
    doc = classroom_document()
    del doc["tasks"]
    store.clear()
    store.insert_one(doc)

    r = create(client, title="Kickoff", dueDate=due_in(1))
    assert r.status_code == 201, r.text
    assert [t["title"] for t in store.find_one(CLASSROOM_ID)["tasks"]["assignments"]] == ["Kickoff"]


def test_analytics(client, store):
    task = task_document(
        submissions=[
            legacy_submission(STUDENT, id="65a1b2c3d4e5f6a7b8c9a001", grade=90, status="graded"),
            legacy_submission(OTHER_STUDENT, id="65a1b2c3d4e5f6a7b8c9a002", grade=70, status="graded"),
        ],
    )
    store.clear()
    store.insert_one(
        classroom_document(
            tasks=[task],
            enrolledStudents=["student3@example.com", STUDENT.upper()],
        )
    )

    r = client.get(f"{TASK_URL}/analytics", headers=auth_header(INSTRUCTOR))
    assert r.status_code == 200, r.text
    analytics = r.json()["analytics"]
    assert analytics["totalStudents"] == 3
    assert analytics["submittedCount"] == 2
    assert analytics["gradedCount"] == 2
    assert analytics["submissionRate"] == pytest.approx(66.7)
    assert analytics["gradingRate"] == 100.0
    assert analytics["averageGrade"] == 80.0
    assert analytics["isOverdue"] is False

    assert client.get(f"{TASK_URL}/analytics", headers=auth_header(STUDENT)).status_code == 403


def test_pending_students(client):
    client.post(f"{TASK_URL}/submit", headers=auth_header(STUDENT), json={"text": "done"})

    r = client.get(f"{TASK_URL}/pending-students", headers=auth_header(INSTRUCTOR))
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["message"] == "Found 1 students to remind"
    assert body["reminder"]["pendingStudents"] == [OTHER_STUDENT]
    assert body["reminder"]["taskTitle"] == "HW1"

    assert client.get(f"{TASK_URL}/pending-students", headers=auth_header(STUDENT)).status_code == 403


def test_engine_can_refuse_late_submissions(store):
    store.clear()
    store.insert_one(classroom_document(tasks=[task_document(due_in=timedelta(hours=-1))]))

    result = TaskSubmissionEngine(store, allow_late=False).submit(
        CLASSROOM_ID, TASK_ID, SubmissionCreate(text="late"), Identity(email=STUDENT)
    )
    assert isinstance(result, Err)
    assert result.kind == ErrorKind.FORBIDDEN
    assert result.message == "Task is overdue"


class ExplodingStore:
    def __getattr__(self, name):
        raise AssertionError(f"store.{name} must not be touched for a malformed id")


@pytest.mark.parametrize("classroom_id", ["", "abc", "65a1b2c3d4e5f6a7b8c9d0e1zz", "zza1b2c3d4e5f6a7b8c9d0e1"])
def test_malformed_classroom_id_never_reaches_store(classroom_id):
    me = Identity(email=INSTRUCTOR)
    engine = TaskSubmissionEngine(ExplodingStore())
    catalog = TaskCatalog(ExplodingStore())

    results = [
        engine.submit(classroom_id, TASK_ID, SubmissionCreate(text="x"), me),
        engine.list_submissions(classroom_id, TASK_ID, me),
        engine.get_submission(classroom_id, TASK_ID, "65a1b2c3d4e5f6a7b8c9a001", me),
        engine.my_submission(classroom_id, TASK_ID, me),
        engine.submission_status(classroom_id, TASK_ID, me),
        engine.grade(classroom_id, TASK_ID, "65a1b2c3d4e5f6a7b8c9a001", 10, None, me),
        engine.analytics(classroom_id, TASK_ID, me),
        engine.pending_students(classroom_id, TASK_ID, me),
        catalog.list_tasks(classroom_id, me),
        catalog.get_task(classroom_id, TASK_ID, me),
        catalog.create_task(classroom_id, TaskCreate(title="t", due_date=due_in()), me),
        catalog.update_task(classroom_id, TASK_ID, TaskUpdate(title="t"), me),
        catalog.delete_task(classroom_id, TASK_ID, me),
    ]

    for result in results:
        assert isinstance(result, Err)
        assert result.kind == ErrorKind.VALIDATION
        assert result.status_code == 400
