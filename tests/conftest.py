import os
import tempfile
from datetime import datetime, timedelta, timezone

# must be in place before anything under app/ is imported
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_DIR"] = tempfile.mkdtemp(prefix="rental-logs-")
os.environ.pop("REDIS_URL", None)

import pytest

from app.models.enums import BookingStatus, ScheduleStatus
from app.schemas.booking import Booking
from app.schemas.payment import PaymentEvent, RecurringSchedule

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)


def build_booking(**overrides) -> Booking:
    values = dict(
        id="bk-1",
        driver_id="drv-1",
        partner_id="ptn-1",
        vehicle_id="veh-1",
        term_weeks=4,
        total_amount=800.0,
        start_date=NOW + timedelta(days=1),
        end_date=NOW + timedelta(days=29),
        status=BookingStatus.PENDING_PARTNER_APPROVAL,
        driver_name="Alice Walker",
        partner_name="City Fleet Ltd",
        vehicle_make="Toyota",
        vehicle_model="Prius",
        vehicle_plate="AB12 CDE",
        vehicle_category="hybrid",
        created_at=NOW - timedelta(days=2),
        updated_at=NOW - timedelta(days=2),
    )
    values.update(overrides)
    return Booking(**values)


def build_event(amount, kind="charge", status="succeeded", event_id="ev-1",
                occurred_at=None, booking_id="bk-1") -> PaymentEvent:
    return PaymentEvent(
        id=event_id,
        booking_id=booking_id,
        amount=amount,
        kind=kind,
        status=status,
        occurred_at=occurred_at or NOW - timedelta(hours=1),
    )


def build_schedule(cycle_end, amount=200.0, schedule_id="sch-1",
                   status=ScheduleStatus.ACTIVE, created_at=None, booking_id="bk-1") -> RecurringSchedule:
    return RecurringSchedule(
        id=schedule_id,
        booking_id=booking_id,
        amount_per_cycle=amount,
        cycle_end=cycle_end,
        status=status,
        created_at=created_at or NOW - timedelta(days=7),
    )


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def make_booking():
    return build_booking


@pytest.fixture
def make_event():
    return build_event


@pytest.fixture
def make_schedule():
    return build_schedule
