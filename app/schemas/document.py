from datetime import date
from typing import Optional
from pydantic import BaseModel

from app.models.enums import UrgencyLevel


class DocumentRecord(BaseModel):
    id: str
    owner_id: str
    document_type: str
    expiry_date: Optional[date] = None

    model_config = {"from_attributes": True, "frozen": True}


class DocumentView(BaseModel):
    document: DocumentRecord
    urgency: UrgencyLevel
    days_until_expiry: Optional[int] = None
    label: str
