from __future__ import annotations

from datetime import datetime


def parse_datetime(value: str | datetime | None) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        return None

    try:
        normalized = value.replace("Z", "+00:00") if value.endswith("Z") else value
        return datetime.fromisoformat(normalized)
    except ValueError:
        return None


def safe_int(value: object, default: int = 0) -> int:
    try:
        return int(value) if value not in (None, "") else default
    except (TypeError, ValueError):
        return default


def optional_int(value: object) -> int | None:
    return safe_int(value) if value not in (None, "") else None


def safe_str(value: object) -> str | None:
    return str(value) if value not in (None, "") else None
