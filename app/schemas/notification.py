from typing import List, Optional
from pydantic import BaseModel, Field


class Recipient(BaseModel):
    role: str
    user_id: Optional[str] = None  # None addresses the admin team as a whole


class NotificationIntent(BaseModel):
    kind: str
    booking_id: str
    recipients: List[Recipient]
    priority: str = "medium"
    title: str
    message: str
    data: dict = Field(default_factory=dict)

    model_config = {"frozen": True}
