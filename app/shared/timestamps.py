"""Timestamp normalization.

Document stores hand timestamps back in whatever shape they keep them in:
``datetime`` objects, ISO-8601 strings, epoch seconds, or Firestore-style
``{"seconds": .., "nanoseconds": ..}`` mappings (``_seconds``/``_nanoseconds``
once serialized to JSON). Everything that crosses into the board state is
converted here to a timezone-aware UTC ``datetime``.
"""

from collections.abc import Mapping
from datetime import date, datetime, time, timezone
from typing import Annotated, Any

from pydantic import BeforeValidator

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _from_mapping(value: Mapping[str, Any]) -> datetime:
    seconds = value.get("seconds", value.get("_seconds"))
    nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
    if seconds is None:
        raise ValueError(f"Unrecognized timestamp mapping: {dict(value)!r}")
    return datetime.fromtimestamp(int(seconds), tz=timezone.utc).replace(
        microsecond=int(nanos) // 1000
    )


def to_utc_datetime(value: Any) -> datetime | None:
    """Convert any supported timestamp representation to an aware UTC datetime."""
    if value is None or value == "":
        return None

    if isinstance(value, datetime):
        # If datetime is timezone-naive, assume it's UTC
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if isinstance(value, date):
        return datetime.combine(value, time.min, tzinfo=timezone.utc)

    if isinstance(value, bool):
        raise ValueError("Booleans are not timestamps")

    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)

    if isinstance(value, str):
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        return to_utc_datetime(datetime.fromisoformat(text))

    if isinstance(value, Mapping):
        return _from_mapping(value)

    # Firestore Timestamp objects and friends
    to_datetime = getattr(value, "to_datetime", None)
    if callable(to_datetime):
        return to_utc_datetime(to_datetime())

    raise ValueError(f"Unsupported timestamp value: {value!r}")


def _required_timestamp(value: Any) -> datetime:
    return to_utc_datetime(value) or EPOCH


# Always present; missing values collapse to the epoch like unsaved server timestamps
Timestamp = Annotated[datetime, BeforeValidator(_required_timestamp)]
OptionalTimestamp = Annotated[datetime | None, BeforeValidator(to_utc_datetime)]


def native_timestamp(seconds: float | None = None) -> dict[str, int]:
    """Build a Firestore-style timestamp mapping."""
    moment = utcnow().timestamp() if seconds is None else seconds
    whole = int(moment)
    return {"seconds": whole, "nanoseconds": int((moment - whole) * 1_000_000) * 1000}
