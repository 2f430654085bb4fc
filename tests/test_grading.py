import logging

from edugrid.core.current_user import Identity
from edugrid.core.results import Err, ErrorKind, Ok
from edugrid.db.classroom_store import ClassroomStore
from edugrid.services.lookup import find_task
from edugrid.services.submission_engine import TaskSubmissionEngine
from tests.factories import (
    CLASSROOM_ID,
    INSTRUCTOR,
    OTHER_STUDENT,
    STUDENT,
    TASK_ID,
    auth_header,
    classroom_document,
    legacy_submission,
    task_document,
)

TASK_URL = f"/api/classrooms/{CLASSROOM_ID}/tasks/{TASK_ID}"


def submit(client, email: str, text: str = "work") -> str:
    r = client.post(f"{TASK_URL}/submit", headers=auth_header(email), json={"text": text})
    assert r.status_code in (200, 201), r.text
    return r.json()["submission"]["id"]


def grade(client, submission_id: str, email: str = INSTRUCTOR, **body):
    return client.put(
        f"{TASK_URL}/submissions/{submission_id}/grade",
        headers=auth_header(email),
        json=body,
    )


def stored_task(store) -> dict:
    return find_task(store.find_one(CLASSROOM_ID), TASK_ID)[1]


def test_instructor_grades_submission(client, store):
    sub_id = submit(client, STUDENT)

    r = grade(client, sub_id, grade="88", feedback="Good")
    assert r.status_code == 200, r.text
    body = r.json()
    assert body["message"] == "Submission graded successfully"
    assert body["grading"]["grade"] == 88.0
    assert body["grading"]["gradedBy"] == INSTRUCTOR
    assert body["grading"]["studentEmail"] == STUDENT

    task = stored_task(store)
    sub = task["submissions"][0]
    assert sub["status"] == "graded"
    assert sub["grade"] == 88.0
    assert sub["feedback"] == "Good"
    assert sub["gradedAt"] is not None
    assert task["stats"] == {"totalSubmissions": 1, "gradedSubmissions": 1, "averageScore": 88.0}


def test_feedback_defaults_to_empty_string(client, store):
    sub_id = submit(client, STUDENT)
    assert grade(client, sub_id, grade=70).status_code == 200
    assert stored_task(store)["submissions"][0]["feedback"] == ""


def test_student_cannot_grade(client, store):
    sub_id = submit(client, STUDENT)
    before = store.find_one(CLASSROOM_ID)

    r = grade(client, sub_id, email=STUDENT, grade=100)
    assert r.status_code == 403
    assert r.json()["message"] == "Access denied. Only instructors can grade submissions."
    assert store.find_one(CLASSROOM_ID) == before


def test_regrading_keeps_only_latest_grade(client, store):
    sub_id = submit(client, STUDENT)

    assert grade(client, sub_id, grade=60, feedback="first pass").status_code == 200
    assert grade(client, sub_id, grade=95, feedback="after review").status_code == 200

    subs = stored_task(store)["submissions"]
    assert len(subs) == 1
    assert subs[0]["grade"] == 95.0
    assert subs[0]["feedback"] == "after review"


def test_grading_unknown_submission_changes_nothing(client, store):
    submit(client, STUDENT)
    before = store.find_one(CLASSROOM_ID)

    r = grade(client, "65a1b2c3d4e5f6a7b8c9eeee", grade=50)
    assert r.status_code == 404
    assert r.json()["message"] == "Submission not found"
    assert store.find_one(CLASSROOM_ID) == before


def test_grade_must_be_numeric_and_in_range(client, store):
    sub_id = submit(client, STUDENT)

    r = grade(client, sub_id, grade="excellent")
    assert r.status_code == 400
    assert r.json()["message"] == "Grade must be a number"

    r = grade(client, sub_id, grade=101)
    assert r.status_code == 400
    assert r.json()["message"] == "Grade must be between 0 and 100"

    r = grade(client, sub_id)
    assert r.status_code == 400

    assert stored_task(store)["submissions"][0]["grade"] is None


def test_instructor_recognised_by_any_legacy_field(client, store):
    store.clear()
    store.insert_one(
        classroom_document(
            teacherEmail=None,
            owner="someone@example.com",
            instructors=["ta@example.com", INSTRUCTOR],
        )
    )
    sub_id = submit(client, STUDENT)
    assert grade(client, sub_id, grade=10).status_code == 200


def test_grading_submission_stored_with_only_underscore_id(client, store):
    task = task_document(submissions=[legacy_submission(OTHER_STUDENT, _id="65a1b2c3d4e5f6a7b8c91111")])
    store.clear()
    store.insert_one(classroom_document(tasks=[task]))

    r = grade(client, "65a1b2c3d4e5f6a7b8c91111", grade=42)
    assert r.status_code == 200, r.text
    assert stored_task(store)["submissions"][0]["grade"] == 42.0


class DriftingStore(ClassroomStore):
    """Reads return ids the stored document no longer carries, like a concurrent rewrite would."""

    def find_one(self, classroom_id):
        doc = super().find_one(classroom_id)
        if doc is not None:
            for sub in find_task(doc, TASK_ID)[1]["submissions"]:
                sub["id"] = sub["_id"] = "65a1b2c3d4e5f6a7b8c92222"
        return doc


def test_grade_falls_back_to_student_email_match(store, caplog):
    task = task_document(submissions=[legacy_submission(STUDENT, submissionText="no ids at all")])
    store.clear()
    store.insert_one(classroom_document(tasks=[task]))

    drifting = DriftingStore(store.database_url)
    drifting.connect()
    try:
        engine = TaskSubmissionEngine(drifting)
        with caplog.at_level(logging.WARNING):
            result = engine.grade(
                CLASSROOM_ID,
                TASK_ID,
                "65a1b2c3d4e5f6a7b8c92222",
                77,
                "ok",
                Identity(email=INSTRUCTOR),
            )
    finally:
        drifting.disconnect()

    assert isinstance(result, Ok)
    assert result.value.grade == 77.0
    assert stored_task(store)["submissions"][0]["grade"] == 77.0
    assert "matched nothing by id" in caplog.text
    assert "matched nothing by _id" in caplog.text


class VanishingStore(ClassroomStore):
    """Every write misses, as if the submission was removed between read and write."""

    def update_one(self, classroom_id, mutate):
        return super().update_one(classroom_id, lambda doc: False)


def test_grade_reports_conflict_when_every_strategy_misses(store):
    task = task_document(submissions=[legacy_submission(STUDENT, id="65a1b2c3d4e5f6a7b8c93333")])
    store.clear()
    store.insert_one(classroom_document(tasks=[task]))

    vanishing = VanishingStore(store.database_url)
    vanishing.connect()
    try:
        result = TaskSubmissionEngine(vanishing).grade(
            CLASSROOM_ID, TASK_ID, "65a1b2c3d4e5f6a7b8c93333", 50, None, Identity(email=INSTRUCTOR)
        )
    finally:
        vanishing.disconnect()

    assert isinstance(result, Err)
    assert result.kind == ErrorKind.CONFLICT
    assert result.status_code == 404
    assert stored_task(store)["submissions"][0]["grade"] is None
