from typing import Optional
from pydantic import BaseModel, Field

from app.models.enums import Actor, ReturnRequestStatus
from app.schemas.common import ENTITY_CONFIG, Timestamp


LIVE_RETURN_STATUSES = frozenset({ReturnRequestStatus.PENDING, ReturnRequestStatus.APPROVED})


class ReturnRequest(BaseModel):
    id: str
    booking_id: str
    status: ReturnRequestStatus = ReturnRequestStatus.PENDING
    reason: str = Field(min_length=1)
    requested_by: Actor = Actor.DRIVER
    requested_at: Timestamp
    resolved_at: Optional[Timestamp] = None
    resolved_by: Optional[Actor] = None

    model_config = ENTITY_CONFIG

    @property
    def is_live(self):
        return self.status in LIVE_RETURN_STATUSES

    @property
    def is_resolved(self):
        return self.status != ReturnRequestStatus.PENDING


class ReturnRequestCreate(BaseModel):
    reason: str


class ReturnDecision(BaseModel):
    decision: ReturnRequestStatus
