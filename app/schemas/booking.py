from typing import List, Optional
from pydantic import BaseModel, Field, model_validator

from app.models.enums import BookingStatus
from app.schemas.common import ENTITY_CONFIG, Timestamp
from app.schemas.issue import Issue
from app.schemas.return_request import ReturnRequest


class Booking(BaseModel):
    id: str
    driver_id: str
    partner_id: str
    vehicle_id: str

    term_weeks: int = Field(default=1, ge=1)
    total_amount: float = Field(ge=0)
    start_date: Timestamp
    end_date: Timestamp

    status: BookingStatus = BookingStatus.PENDING_PARTNER_APPROVAL

    return_request: Optional[ReturnRequest] = None
    issues: List[Issue] = []

    approval_deadline: Optional[Timestamp] = None
    payment_deadline: Optional[Timestamp] = None

    requires_documents: bool = True
    documents_approved: bool = False

    # display data used by search / filters
    driver_name: str = ""
    partner_name: str = ""
    vehicle_make: str = ""
    vehicle_model: str = ""
    vehicle_plate: str = ""
    vehicle_category: str = ""

    created_at: Timestamp
    updated_at: Timestamp

    model_config = ENTITY_CONFIG

    @model_validator(mode="after")
    def check_dates(self):
        if self.end_date < self.start_date:
            raise ValueError("end_date cannot be before start_date")
        if self.updated_at < self.created_at:
            raise ValueError("updated_at cannot be before created_at")
        return self

    @property
    def documents_satisfied(self):
        return not self.requires_documents or self.documents_approved

    @property
    def vehicle_label(self):
        return f"{self.vehicle_make} {self.vehicle_model}".strip()


class TransitionRequest(BaseModel):
    target_status: BookingStatus
