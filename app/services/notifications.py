"""Notification intents emitted by booking operations.

The engine only describes who should hear about what; delivery belongs to
whichever channel the caller wires up.
"""
from typing import List

from app.models.enums import Actor, IssueSeverity, ReturnRequestStatus
from app.schemas.booking import Booking
from app.schemas.issue import Issue
from app.schemas.notification import NotificationIntent, Recipient
from app.schemas.return_request import ReturnRequest


ADMIN = Recipient(role=Actor.ADMIN.value)


def _partner(booking: Booking):
    return Recipient(role=Actor.PARTNER.value, user_id=booking.partner_id)


def _driver(booking: Booking):
    return Recipient(role=Actor.DRIVER.value, user_id=booking.driver_id)


def issue_priority(severity: IssueSeverity) -> str:
    if severity in (IssueSeverity.HIGH, IssueSeverity.CRITICAL):
        return "high"
    return "medium"


def issue_reported(booking: Booking, issue: Issue) -> List[NotificationIntent]:
    recipients = [_partner(booking), ADMIN]
    if issue.reported_by != Actor.DRIVER:
        recipients.append(_driver(booking))

    intents = [
        NotificationIntent(
            kind="issue_reported",
            booking_id=booking.id,
            recipients=recipients,
            priority=issue_priority(issue.severity),
            title=f"{issue.severity.value.upper()} Issue Reported",
            message=f"{issue.reported_by.value} reported a {issue.issue_type.value} issue: {issue.description}",
            data={"issue_id": issue.id, "severity": issue.severity.value},
        )
    ]

    if issue.severity == IssueSeverity.CRITICAL:
        intents.append(
            NotificationIntent(
                kind="critical_issue_alert",
                booking_id=booking.id,
                recipients=[ADMIN],
                priority="critical",
                title="CRITICAL ISSUE ALERT",
                message=(
                    f"Critical issue reported for vehicle {booking.vehicle_label} "
                    f"({booking.vehicle_plate}). Immediate attention required."
                ),
                data={"issue_id": issue.id, "vehicle_id": booking.vehicle_id},
            )
        )

    return intents


def return_requested(booking: Booking, request: ReturnRequest) -> List[NotificationIntent]:
    other_party = _partner(booking) if request.requested_by == Actor.DRIVER else _driver(booking)
    return [
        NotificationIntent(
            kind="return_requested",
            booking_id=booking.id,
            recipients=[other_party, ADMIN],
            title="Vehicle Return Requested",
            message=f"{request.requested_by.value} requested a vehicle return. Reason: {request.reason}",
            data={"return_request_id": request.id},
        )
    ]


def return_resolved(booking: Booking, request: ReturnRequest) -> List[NotificationIntent]:
    requester = _driver(booking) if request.requested_by == Actor.DRIVER else _partner(booking)
    approved = request.status == ReturnRequestStatus.APPROVED
    return [
        NotificationIntent(
            kind="return_approved" if approved else "return_rejected",
            booking_id=booking.id,
            recipients=[requester, ADMIN],
            title="Return Approved" if approved else "Return Rejected",
            message=(
                "Your vehicle return has been approved."
                if approved
                else "Your vehicle return request was rejected."
            ),
            data={"return_request_id": request.id},
        )
    ]


def booking_auto_rejected(booking: Booking) -> List[NotificationIntent]:
    return [
        NotificationIntent(
            kind="booking_auto_rejected",
            booking_id=booking.id,
            recipients=[_driver(booking), _partner(booking), ADMIN],
            priority="high",
            title="Booking Automatically Rejected",
            message=f"Booking {booking.id} was rejected because the partner acceptance deadline passed.",
            data={"reason": "Partner acceptance deadline exceeded"},
        )
    ]
