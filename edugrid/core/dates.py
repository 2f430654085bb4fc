from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def parse_datetime(value) -> datetime | None:
    """
    Read a stored timestamp.

    Documents hold ISO-8601 strings (sometimes with a trailing Z), and old
    exports wrap them as {"$date": ...}. Naive values are treated as UTC.
    """
    if value is None:
        return None
    if isinstance(value, dict):
        value = value.get("$date")
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, (int, float)):
        # epoch milliseconds
        parsed = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed
