from datetime import datetime, timezone
from typing import Annotated

from pydantic import AfterValidator, BeforeValidator


def coerce_timestamp(value):
    """Accept the shapes stored rows arrive in: ISO text, epoch seconds,
    ``{"seconds": n}`` objects or datetimes."""
    if isinstance(value, dict) and "seconds" in value:
        return datetime.fromtimestamp(value["seconds"], tz=timezone.utc)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return value


def ensure_utc(value: datetime) -> datetime:
    # naive values come back from SQLite and are stored as UTC
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


Timestamp = Annotated[datetime, BeforeValidator(coerce_timestamp), AfterValidator(ensure_utc)]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


ENTITY_CONFIG = {"from_attributes": True, "frozen": True}
