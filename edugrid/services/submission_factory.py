"""
Canonical submission records from whatever field names the client used.
"""
from datetime import datetime
from urllib.parse import urlparse

from edugrid.core.config import MAX_SUBMISSION_TEXT_LENGTH
from edugrid.core.dates import utcnow
from edugrid.core.object_id import new_object_id
from edugrid.schemas.submission import AttachmentIn, SubmissionCreate

DEFAULT_FILE_NAME = "Uploaded File"
GENERIC_BINARY = "application/octet-stream"

IMAGE_EXTENSIONS = {"jpg", "jpeg", "png", "gif", "webp", "svg"}
VIDEO_EXTENSIONS = {"mp4", "avi", "mov", "wmv", "flv", "webm"}
AUDIO_EXTENSIONS = {"mp3", "wav", "ogg", "m4a", "aac"}


def mime_type_for(extension: str) -> str:
    ext = (extension or "").lower().lstrip(".")

    if ext in IMAGE_EXTENSIONS:
        return f"image/{'jpeg' if ext == 'jpg' else ext}"
    if ext in VIDEO_EXTENSIONS:
        return f"video/{ext}"
    if ext in AUDIO_EXTENSIONS:
        return f"audio/{'mpeg' if ext == 'mp3' else ext}"
    if ext == "pdf":
        return "application/pdf"
    if ext in ("doc", "docx"):
        return "application/msword"
    if ext == "txt":
        return "text/plain"

    return GENERIC_BINARY


def extension_of(file_name: str | None) -> str:
    if not file_name or "." not in file_name:
        return ""
    return file_name.rsplit(".", 1)[-1].lower()


def filename_from_url(url: str) -> str:
    path = urlparse(url).path or url
    return path.rstrip("/").rsplit("/", 1)[-1] if path.strip("/") else ""


def attachment_from_url(url: str, name: str | None = None, size: int | None = None, mime_type: str | None = None) -> dict:
    name = name or filename_from_url(url) or DEFAULT_FILE_NAME
    inferred = mime_type_for(extension_of(name))
    return {
        "url": url,
        "name": name,
        "originalName": name,
        "type": inferred,
        "size": size,
        "mimeType": mime_type or inferred,
    }


def _text(value) -> str | None:
    if isinstance(value, str) and value.strip():
        return value
    return None


def attachment_size(value) -> int | None:
    """Byte count from whatever older clients stored ("2.3 MB", 1234.5, ...); None unless it is a whole number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str) and value.strip().isdigit():
        return int(value.strip())
    return None


def normalize_attachment(item: AttachmentIn | dict) -> dict:
    if isinstance(item, AttachmentIn):
        item = item.model_dump(by_alias=True)

    name = _text(item.get("name"))
    original_name = _text(item.get("originalName"))
    content_type = _text(item.get("type"))
    mime_type = _text(item.get("mimeType"))
    return {
        "url": _text(item.get("url")),
        "name": name or original_name or DEFAULT_FILE_NAME,
        "originalName": original_name or name or DEFAULT_FILE_NAME,
        "type": content_type or mime_type or GENERIC_BINARY,
        "size": attachment_size(item.get("size")),
        "mimeType": mime_type or content_type or GENERIC_BINARY,
    }


def _first_filled(*values: str | None) -> str | None:
    for value in values:
        if value is not None and value.strip():
            return value
    return None


def resolved_text(payload: SubmissionCreate) -> str:
    return _first_filled(payload.submission_text, payload.text) or ""


def resolved_url(payload: SubmissionCreate) -> str | None:
    return _first_filled(payload.submission_url, payload.file_url)


def build_attachments(payload: SubmissionCreate) -> list[dict]:
    """
    One upload (fileUrl + fileName) wins over an attachments array, which
    wins over deriving a file from the bare URL.
    """
    if payload.file_url and payload.file_name:
        return [
            attachment_from_url(
                payload.file_url,
                name=payload.file_name,
                size=payload.file_size,
                mime_type=payload.file_type,
            )
        ]

    if payload.attachments:
        return [normalize_attachment(att) for att in payload.attachments]

    url = resolved_url(payload)
    if url:
        return [attachment_from_url(url)]

    return []


def validate_submission(payload: SubmissionCreate) -> str | None:
    """Error message for unusable content, or None."""
    text = resolved_text(payload)
    url = resolved_url(payload)

    if not text.strip() and not url and not payload.attachments:
        return "Please provide either text, URL, or file attachments for your submission."

    if len(text) > MAX_SUBMISSION_TEXT_LENGTH:
        return f"Submission text is too long. Maximum {MAX_SUBMISSION_TEXT_LENGTH:,} characters allowed."

    if url:
        parsed = urlparse(url.strip())
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            return "Please provide a valid URL."

    return None


def default_student_name(email: str) -> str:
    return email.split("@", 1)[0] if email else "Unknown"


def build_submission(
    payload: SubmissionCreate,
    student_email: str,
    student_name: str | None = None,
    submission_id: str | None = None,
    now: datetime | None = None,
) -> dict:
    """A fresh, ungraded submission record ready to be stored."""
    submission_id = submission_id or new_object_id()
    attachments = build_attachments(payload)

    record = {
        "id": submission_id,
        "_id": submission_id,
        "studentEmail": student_email,
        "studentName": payload.student_name or student_name or default_student_name(student_email),
        "submissionText": resolved_text(payload),
        "submissionUrl": resolved_url(payload),
        "attachments": attachments,
        "files": attachments,
        "submittedAt": (now or utcnow()).isoformat(),
        "status": "submitted",
        "grade": None,
        "feedback": None,
        "gradedBy": None,
        "gradedAt": None,
        "version": 1,
    }
    return record


def backfill_attachments(submission: dict) -> list[dict]:
    """
    Attachments for display: the stored list, or one descriptor synthesized
    from the legacy `submissionUrl` when no list was stored.
    """
    attachments = submission.get("attachments") or submission.get("files") or []
    if attachments:
        return [normalize_attachment(att) for att in attachments if isinstance(att, dict)]

    url = submission.get("submissionUrl")
    if isinstance(url, str) and url.strip():
        return [attachment_from_url(url.strip())]

    return []
