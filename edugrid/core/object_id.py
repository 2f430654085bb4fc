import re
import secrets
import time

_OBJECT_ID_RE = re.compile(r"^[0-9a-fA-F]{24}$")


def new_object_id() -> str:
    """24 hex chars: 4-byte creation timestamp followed by 8 random bytes."""
    return f"{int(time.time()) & 0xFFFFFFFF:08x}{secrets.token_hex(8)}"


def is_valid_object_id(value) -> bool:
    return isinstance(value, str) and bool(_OBJECT_ID_RE.match(value))


def coerce_id(value) -> str | None:
    """
    Read an identifier stored by any client generation.

    Old exports wrap ids as {"$oid": "..."}; everything else is stored as a string.
    """
    if value is None:
        return None
    if isinstance(value, dict):
        value = value.get("$oid")
        if value is None:
            return None
    value = str(value).strip()
    return value or None
