from datetime import datetime
from typing import Iterable, List, Mapping, Optional, Sequence

from app.models.enums import BookingStatus, IssueSeverity
from app.schemas.booking import Booking
from app.schemas.payment import PaymentEvent
from app.schemas.views import BookingFilter, BookingStats, EnrichedBooking
from app.services import reconciliation, state_machine, urgency

SORT_KEYS = ("created_at", "start_date", "driver_name", "urgency", "total_amount")
SORT_ORDERS = ("asc", "desc")

ACTIVE_LIKE = frozenset({BookingStatus.ACTIVE, BookingStatus.PARTNER_ACCEPTED})


def return_status(booking: Booking) -> str:
    if booking.return_request is None:
        return "none"
    return booking.return_request.status.value


def highest_open_severity(booking: Booking) -> Optional[IssueSeverity]:
    open_issues = [issue for issue in booking.issues if issue.is_open]
    if not open_issues:
        return None
    return max(open_issues, key=lambda issue: issue.severity.rank).severity


def enrich_booking(
    booking: Booking,
    now: datetime,
    events: Optional[Iterable[PaymentEvent]] = None,
    schedule=None,
) -> EnrichedBooking:
    payment = reconciliation.reconcile_payments(booking, events, schedule, now)

    # the approval deadline only binds while the partner has yet to answer
    deadline = (
        booking.approval_deadline
        if booking.status == BookingStatus.PENDING_PARTNER_APPROVAL
        else None
    )
    level = urgency.score_urgency(deadline, now)

    return EnrichedBooking(
        booking=booking,
        payment=payment,
        is_terminal=booking.status.is_terminal,
        status_reachable=state_machine.is_reachable(booking.status),
        allowed_targets=state_machine.allowed_targets(booking.status),
        urgency=level,
        hours_until_deadline=urgency.hours_until(deadline, now),
        days_until_start=reconciliation.days_until(booking.start_date, now),
        is_urgent=urgency.is_urgent(level),
        return_status=return_status(booking),
        open_issue_count=sum(1 for issue in booking.issues if issue.is_open),
        highest_open_severity=highest_open_severity(booking),
    )


# ---------------------------------------------------------------------
# FILTERS
# ---------------------------------------------------------------------
def matches_search(booking: Booking, term: str) -> bool:
    term = term.lower()
    haystack = (
        booking.driver_name,
        booking.partner_name,
        booking.vehicle_make,
        booking.vehicle_model,
        booking.vehicle_plate,
    )
    return any(term in value.lower() for value in haystack)


def matches_filter(item: EnrichedBooking, criteria: BookingFilter) -> bool:
    booking = item.booking

    if criteria.search and criteria.search.strip() and not matches_search(booking, criteria.search.strip()):
        return False

    if criteria.status and booking.status.value != criteria.status:
        return False

    if criteria.payment_status and item.payment.payment_status != criteria.payment_status:
        return False

    if criteria.date_range is not None:
        start, end = criteria.date_range.start, criteria.date_range.end
        if start is not None and booking.start_date < start:
            return False
        if end is not None and booking.start_date > end:
            return False

    if criteria.vehicle_category and booking.vehicle_category != criteria.vehicle_category:
        return False

    if criteria.urgency_only and not item.is_urgent:
        return False

    return True


# ---------------------------------------------------------------------
# SORTING
# ---------------------------------------------------------------------
def _sort_value(item: EnrichedBooking, sort_by: str):
    booking = item.booking
    if sort_by == "driver_name":
        return booking.driver_name.lower()
    if sort_by == "total_amount":
        return booking.total_amount
    if sort_by == "start_date":
        return booking.start_date
    return booking.created_at


def sort_bookings(items: List[EnrichedBooking], sort_by: str, sort_order: str = "desc"):
    if sort_by not in SORT_KEYS:
        raise ValueError(f"Unknown sort key: {sort_by}")

    if sort_order not in SORT_ORDERS:
        raise ValueError(f"Unknown sort order: {sort_order}")

    reverse = sort_order == "desc"

    if sort_by == "urgency":
        # bookings without a deadline always go last
        with_deadline = [item for item in items if item.hours_until_deadline is not None]
        without = [item for item in items if item.hours_until_deadline is None]
        with_deadline.sort(key=lambda item: item.hours_until_deadline, reverse=reverse)
        return with_deadline + without

    return sorted(items, key=lambda item: _sort_value(item, sort_by), reverse=reverse)


# ---------------------------------------------------------------------
# FACADE
# ---------------------------------------------------------------------
def query_bookings(
    raw_bookings: Iterable[Booking],
    filter: Optional[BookingFilter] = None,
    *,
    now: datetime,
    events: Optional[Mapping[str, Sequence[PaymentEvent]]] = None,
    schedules: Optional[Mapping[str, object]] = None,
    sort_by: Optional[str] = None,
    sort_order: str = "desc",
) -> List[EnrichedBooking]:
    criteria = filter or BookingFilter()
    events = events or {}
    schedules = schedules or {}

    enriched = [
        enrich_booking(booking, now, events.get(booking.id), schedules.get(booking.id))
        for booking in raw_bookings
    ]
    result = [item for item in enriched if matches_filter(item, criteria)]

    if sort_by:
        result = sort_bookings(result, sort_by, sort_order)
    return result


def summarize_bookings(items: Iterable[EnrichedBooking]) -> BookingStats:
    items = list(items)
    return BookingStats(
        total=len(items),
        active=sum(1 for item in items if item.booking.status in ACTIVE_LIKE),
        completed=sum(1 for item in items if item.booking.status == BookingStatus.COMPLETED),
        pending=sum(1 for item in items if item.booking.status.is_pending),
        total_spent=round(sum(item.payment.total_paid for item in items), 2),
        urgent=sum(1 for item in items if item.is_urgent),
        expiring_soon=sum(
            1
            for item in items
            if item.hours_until_deadline is not None and item.hours_until_deadline <= 6
        ),
    )
