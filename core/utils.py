# core/utils.py

import uuid
from datetime import datetime, timezone


def sanitize(data: dict) -> dict:
    """
    Sanitize dictionary data before it is written:
    - Empty strings → None
    - Strip string whitespace
    - datetimes → ISO-8601 strings (JSON-safe for PostgREST)
    - Preserve everything else (booleans, numbers, lists, None)
    """
    clean = {}

    for k, v in data.items():
        if isinstance(v, str):
            stripped = v.strip()
            clean[k] = stripped or None
            continue

        if isinstance(v, datetime):
            clean[k] = to_iso(v)
            continue

        clean[k] = v

    return clean


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def to_iso(value: datetime) -> str:
    """Naive datetimes are treated as UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.isoformat()


def parse_datetime(value):
    """Accepts datetime or ISO string (trailing Z allowed); None passes through."""
    if value is None or isinstance(value, datetime):
        if isinstance(value, datetime) and value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    return dt if dt.tzinfo else dt.replace(tzinfo=timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())
