"""Deadline and expiry scoring shared by approval SLAs and document expiry."""
import math
from datetime import date, datetime, timedelta
from typing import Iterable, List, Optional, Union

from app.models.enums import URGENCY_RANK, UrgencyLevel
from app.schemas.document import DocumentRecord, DocumentView

HOUR = timedelta(hours=1)

CRITICAL_HOURS = 6
WARNING_HOURS = 24
EXPIRY_WARNING_DAYS = 30

URGENT_LEVELS = frozenset({UrgencyLevel.WARNING, UrgencyLevel.CRITICAL, UrgencyLevel.EXPIRED})

EXPIRY_LABELS = {
    UrgencyLevel.NONE: "No expiry",
    UrgencyLevel.EXPIRED: "Expired",
    UrgencyLevel.WARNING: "Expiring soon",
    UrgencyLevel.NORMAL: "Valid",
}


def urgency_for_hours(hours: Optional[float]) -> UrgencyLevel:
    if hours is None:
        return UrgencyLevel.NONE
    if hours <= 0:
        return UrgencyLevel.EXPIRED
    if hours <= CRITICAL_HOURS:
        return UrgencyLevel.CRITICAL
    if hours <= WARNING_HOURS:
        return UrgencyLevel.WARNING
    return UrgencyLevel.NORMAL


def score_urgency(deadline: Optional[datetime], now: datetime) -> UrgencyLevel:
    if deadline is None:
        return UrgencyLevel.NONE
    return urgency_for_hours((deadline - now) / HOUR)


def hours_until(deadline: Optional[datetime], now: datetime) -> Optional[int]:
    if deadline is None:
        return None
    return math.ceil((deadline - now) / HOUR)


def days_until_expiry(expiry: Union[date, datetime, None], now: datetime) -> Optional[int]:
    if expiry is None:
        return None
    if isinstance(expiry, datetime):
        return math.floor((expiry - now) / timedelta(days=1))
    return (expiry - now.date()).days


def score_expiry(expiry: Union[date, datetime, None], now: datetime) -> UrgencyLevel:
    days = days_until_expiry(expiry, now)
    if days is None:
        return UrgencyLevel.NONE
    if days < 0:
        return UrgencyLevel.EXPIRED
    if days <= EXPIRY_WARNING_DAYS:
        return UrgencyLevel.WARNING
    return UrgencyLevel.NORMAL


def is_urgent(level: UrgencyLevel) -> bool:
    return level in URGENT_LEVELS


def urgency_rank(level: UrgencyLevel) -> int:
    return URGENCY_RANK[level]


def annotate_documents(documents: Iterable[DocumentRecord], now: datetime) -> List[DocumentView]:
    views = []
    for document in documents:
        level = score_expiry(document.expiry_date, now)
        views.append(
            DocumentView(
                document=document,
                urgency=level,
                days_until_expiry=days_until_expiry(document.expiry_date, now),
                label=EXPIRY_LABELS[level],
            )
        )
    return views


def format_time_remaining(hours: Optional[int]) -> str:
    if hours is None:
        return "No deadline"
    if hours <= 0:
        return "Expired"
    if hours < 24:
        return f"{hours}h remaining"
    return f"{math.ceil(hours / 24)}d remaining"
