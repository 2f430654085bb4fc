import os
from datetime import timedelta
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent.parent


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


DATABASE_URL = os.getenv("EDUGRID_DATABASE_URL", f"sqlite:///{BASE_DIR}/edugrid.db")

# DEV ONLY default. Set EDUGRID_SECRET_KEY in any shared environment.
SECRET_KEY = os.getenv("EDUGRID_SECRET_KEY", "change-me-in-production")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE = timedelta(minutes=int(os.getenv("EDUGRID_ACCESS_TOKEN_MINUTES", "60")))

# Older clients identify themselves with a header or query param instead of a token
TRUST_UNVERIFIED_IDENTITY = _env_bool("EDUGRID_TRUST_UNVERIFIED_IDENTITY", True)

DEBUG = _env_bool("EDUGRID_DEBUG", False)

# Late policy
ALLOW_LATE_SUBMISSIONS = _env_bool("EDUGRID_ALLOW_LATE_SUBMISSIONS", True)
GRACE_PERIOD_MINUTES = int(os.getenv("EDUGRID_GRACE_PERIOD_MINUTES", "10"))

# Tasks / submissions
DEFAULT_TASK_POINTS = 100
MAX_SUBMISSION_TEXT_LENGTH = 10_000
