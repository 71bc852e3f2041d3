"""Fold payment events and the recurring schedule into a booking's payment picture.

``payment_status`` is recomputed here on every call; a stored copy is never
consulted.
"""
import math
from datetime import datetime, timedelta
from typing import Iterable, List, Optional, Sequence, Union

from app.models.enums import (
    PaymentEventKind,
    PaymentEventStatus,
    PaymentStatus,
    ScheduleStatus,
)
from app.schemas.booking import Booking
from app.schemas.payment import PaymentEvent, PaymentSummary, RecurringSchedule
from app.services.errors import MalformedEvent

DAY = timedelta(days=1)


def validate_event(event: PaymentEvent):
    if event.kind == PaymentEventKind.CHARGE and event.amount < 0:
        raise MalformedEvent(event.id, event.kind, event.amount)
    if event.kind == PaymentEventKind.REFUND and event.amount >= 0:
        raise MalformedEvent(event.id, event.kind, event.amount)


def event_contribution(event: PaymentEvent) -> float:
    if event.kind == PaymentEventKind.CHARGE:
        # a charge marked refunded nets to zero by itself
        return event.amount if event.status.is_settled else 0.0

    if event.status.is_settled or event.status == PaymentEventStatus.REFUNDED:
        return -abs(event.amount)
    return 0.0


def total_paid(events: Iterable[PaymentEvent]) -> float:
    total = 0.0
    for event in events:
        validate_event(event)
        total += event_contribution(event)
    return round(total, 2)


def total_spent(events: Iterable[PaymentEvent]) -> float:
    """Net settled money across any number of bookings."""
    return total_paid(events)


def latest_settled_charge(events: Iterable[PaymentEvent]) -> Optional[PaymentEvent]:
    settled = [event for event in events if event.is_settled_charge]
    if not settled:
        return None
    return max(settled, key=lambda event: (event.occurred_at, event.id))


# ---------------------------------------------------------------------
# RECURRING SCHEDULES
# ---------------------------------------------------------------------
def current_schedule(schedules: Iterable[RecurringSchedule]) -> Optional[RecurringSchedule]:
    active = [schedule for schedule in schedules if schedule.is_active]
    if not active:
        return None
    return max(active, key=lambda schedule: (schedule.created_at, schedule.id))


def activate_schedule(
    schedules: Sequence[RecurringSchedule], new_schedule: RecurringSchedule
) -> List[RecurringSchedule]:
    """Return the booking's schedules with ``new_schedule`` as the only active one."""
    result = []
    for schedule in schedules:
        if schedule.id == new_schedule.id:
            continue
        if schedule.booking_id == new_schedule.booking_id and schedule.is_active:
            schedule = schedule.model_copy(update={"status": ScheduleStatus.INACTIVE})
        result.append(schedule)

    result.append(new_schedule.model_copy(update={"status": ScheduleStatus.ACTIVE}))
    return result


# ---------------------------------------------------------------------
# DUE DATES
# ---------------------------------------------------------------------
def days_until(moment: datetime, now: datetime) -> int:
    return math.ceil((moment - now) / DAY)


def next_payment_message(days: Optional[int], next_date: Optional[datetime]) -> Optional[str]:
    if days is None or next_date is None:
        return None
    if days < 0:
        return "overdue"
    if days == 0:
        return "today"
    if days == 1:
        return "tomorrow"
    if days < 7:
        return f"in {days} days"
    if days < 14:
        return "next week"
    return next_date.date().isoformat()


def derive_payment_status(
    booking: Booking,
    settled: bool,
    days_until_next: Optional[int],
    now: datetime,
) -> PaymentStatus:
    if days_until_next is not None and days_until_next < 0:
        return PaymentStatus.OVERDUE
    if not settled and booking.payment_deadline is not None and now > booking.payment_deadline:
        return PaymentStatus.OVERDUE
    if settled:
        return PaymentStatus.PAID
    return PaymentStatus.PENDING


def reconcile_payments(
    booking: Booking,
    events: Optional[Iterable[PaymentEvent]],
    schedule: Union[RecurringSchedule, Sequence[RecurringSchedule], None],
    now: datetime,
) -> PaymentSummary:
    events = [event for event in (events or []) if event.booking_id == booking.id]

    if isinstance(schedule, RecurringSchedule):
        schedule = schedule if schedule.is_active else None
    elif schedule:
        schedule = current_schedule(schedule)
    else:
        schedule = None

    paid = total_paid(events)
    is_recurring = schedule is not None
    amount_due = schedule.amount_per_cycle if is_recurring else booking.total_amount

    next_date = schedule.cycle_end if is_recurring else None
    days_next = days_until(next_date, now) if next_date is not None else None

    last_event = latest_settled_charge(events)
    # nothing to settle only counts as settled once a charge has gone through
    settled = paid >= amount_due if amount_due > 0 else last_event is not None

    status = derive_payment_status(booking, settled, days_next, now)

    return PaymentSummary(
        booking_id=booking.id,
        total_paid=paid,
        amount_due=round(amount_due, 2),
        amount_outstanding=round(max(amount_due - paid, 0.0), 2),
        required_charge_settled=settled,
        is_recurring=is_recurring,
        weekly_amount=schedule.amount_per_cycle if is_recurring else 0.0,
        next_payment_date=next_date,
        days_until_next_payment=days_next,
        next_payment_message=next_payment_message(days_next, next_date),
        payment_status=status.value,
        last_payment_event=last_event,
    )
