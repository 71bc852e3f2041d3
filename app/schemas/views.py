from datetime import datetime
from typing import List, Optional
from pydantic import BaseModel

from app.models.enums import BookingStatus, IssueSeverity, UrgencyLevel
from app.schemas.booking import Booking
from app.schemas.common import Timestamp
from app.schemas.payment import PaymentSummary


class DateRange(BaseModel):
    """Inclusive bounds on start_date; either side may be left open."""
    start: Optional[Timestamp] = None
    end: Optional[Timestamp] = None


class BookingFilter(BaseModel):
    search: Optional[str] = None
    status: Optional[str] = None
    payment_status: Optional[str] = None
    date_range: Optional[DateRange] = None
    vehicle_category: Optional[str] = None
    urgency_only: bool = False

    # scoping for the data-access layer
    driver_id: Optional[str] = None
    partner_id: Optional[str] = None


class EnrichedBooking(BaseModel):
    booking: Booking
    payment: PaymentSummary

    is_terminal: bool
    status_reachable: bool
    allowed_targets: List[BookingStatus] = []

    urgency: UrgencyLevel = UrgencyLevel.NONE
    hours_until_deadline: Optional[int] = None
    days_until_start: int = 0
    is_urgent: bool = False

    return_status: str = "none"
    open_issue_count: int = 0
    highest_open_severity: Optional[IssueSeverity] = None

    @property
    def payment_status(self):
        return self.payment.payment_status


class BookingStats(BaseModel):
    total: int = 0
    active: int = 0
    completed: int = 0
    pending: int = 0
    total_spent: float = 0.0
    urgent: int = 0
    expiring_soon: int = 0


class ActivationReadiness(BaseModel):
    booking_id: str
    current_status: BookingStatus
    ready: bool
    checks: dict
    requirements: List[str] = []
    checked_at: Optional[datetime] = None
