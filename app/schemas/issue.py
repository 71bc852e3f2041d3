from typing import Optional
from pydantic import BaseModel, Field

from app.models.enums import Actor, IssueSeverity, IssueStatus, IssueType
from app.schemas.common import ENTITY_CONFIG, Timestamp


class Issue(BaseModel):
    id: str
    booking_id: str
    issue_type: IssueType = IssueType.OTHER
    severity: IssueSeverity = IssueSeverity.MEDIUM
    description: str = Field(min_length=1)
    status: IssueStatus = IssueStatus.OPEN
    reported_by: Actor
    reported_at: Timestamp

    resolved_at: Optional[Timestamp] = None
    resolved_by: Optional[str] = None
    resolution_notes: Optional[str] = None

    model_config = ENTITY_CONFIG

    @property
    def is_open(self):
        return self.status == IssueStatus.OPEN


class IssueCreate(BaseModel):
    issue_type: IssueType = IssueType.OTHER
    severity: IssueSeverity = IssueSeverity.MEDIUM
    description: str


class IssueResolve(BaseModel):
    notes: Optional[str] = None
