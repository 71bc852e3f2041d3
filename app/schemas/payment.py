from typing import Optional
from pydantic import BaseModel, Field

from app.models.enums import PaymentEventKind, PaymentEventStatus, ScheduleStatus
from app.schemas.common import ENTITY_CONFIG, Timestamp


class PaymentEvent(BaseModel):
    id: str
    booking_id: str
    amount: float
    kind: PaymentEventKind
    status: PaymentEventStatus
    occurred_at: Timestamp

    model_config = ENTITY_CONFIG

    @property
    def is_settled_charge(self):
        return self.kind == PaymentEventKind.CHARGE and self.status.is_settled


class RecurringSchedule(BaseModel):
    id: str
    booking_id: str
    amount_per_cycle: float = Field(ge=0)
    cycle_end: Timestamp
    status: ScheduleStatus = ScheduleStatus.ACTIVE
    created_at: Timestamp

    model_config = ENTITY_CONFIG

    @property
    def is_active(self):
        return self.status == ScheduleStatus.ACTIVE


class ScheduleCreate(BaseModel):
    amount_per_cycle: float = Field(ge=0)
    cycle_end: Timestamp


class PaymentSummary(BaseModel):
    booking_id: str
    total_paid: float = 0.0
    amount_due: float = 0.0
    amount_outstanding: float = 0.0
    required_charge_settled: bool = False
    is_recurring: bool = False
    weekly_amount: float = 0.0
    next_payment_date: Optional[Timestamp] = None
    days_until_next_payment: Optional[int] = None
    next_payment_message: Optional[str] = None
    payment_status: str = "pending"
    last_payment_event: Optional[PaymentEvent] = None

    model_config = {"frozen": True}
