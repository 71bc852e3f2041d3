"""Booking status transitions plus the return-request and issue sub-flows.

Every function here is pure: it takes an entity snapshot and hands back a
new one, or raises a ``BookingRuleError``. Persisting the result is up to
the caller.
"""
import uuid
from datetime import datetime
from typing import Iterable, List, NamedTuple, Optional

from app.models.enums import (
    INITIAL_STATUS,
    Actor,
    BookingStatus,
    IssueSeverity,
    IssueStatus,
    IssueType,
    ReturnRequestStatus,
)
from app.schemas.booking import Booking
from app.schemas.common import utcnow
from app.schemas.issue import Issue
from app.schemas.notification import NotificationIntent
from app.schemas.payment import PaymentSummary
from app.schemas.return_request import ReturnRequest
from app.schemas.views import ActivationReadiness
from app.services import notifications
from app.services.errors import (
    ActorNotPermitted,
    AlreadyResolved,
    DuplicateRequest,
    InvalidRequest,
    InvalidState,
    InvalidTransition,
)

S = BookingStatus

PENDING_STATUSES = [status for status in BookingStatus if status.is_pending]

_CANCELLERS = frozenset({Actor.DRIVER, Actor.PARTNER, Actor.ADMIN})
_SYSTEM = frozenset({Actor.SYSTEM})

# (from, to) -> actors allowed to trigger it
TRANSITIONS = {
    (S.PENDING_PARTNER_APPROVAL, S.PARTNER_ACCEPTED): frozenset({Actor.PARTNER}),
    (S.PENDING_PARTNER_APPROVAL, S.REJECTED): frozenset({Actor.PARTNER, Actor.SYSTEM}),

    (S.PARTNER_ACCEPTED, S.PENDING_DOCUMENTS): _SYSTEM,
    (S.PARTNER_ACCEPTED, S.PENDING_PAYMENT): _SYSTEM,
    (S.PARTNER_ACCEPTED, S.ACTIVE): _SYSTEM,

    (S.PENDING_DOCUMENTS, S.PENDING_PAYMENT): _SYSTEM,
    (S.PENDING_DOCUMENTS, S.ACTIVE): _SYSTEM,

    (S.PENDING_PAYMENT, S.ACTIVE): _SYSTEM,

    (S.ACTIVE, S.COMPLETED): frozenset({Actor.PARTNER, Actor.SYSTEM}),
    (S.ACTIVE, S.CANCELLED): frozenset({Actor.PARTNER, Actor.ADMIN}),
}
TRANSITIONS.update({(status, S.CANCELLED): _CANCELLERS for status in PENDING_STATUSES})

RETURNABLE_STATUSES = frozenset({S.ACTIVE, S.PARTNER_ACCEPTED})
ACTIVATION_SOURCES = frozenset({S.PARTNER_ACCEPTED, S.PENDING_DOCUMENTS, S.PENDING_PAYMENT})


class TransitionContext(NamedTuple):
    """Facts the business guards need. Without it only the table is checked."""
    now: datetime
    payment: Optional[PaymentSummary] = None


class IssueReport(NamedTuple):
    issue: Issue
    notifications: List[NotificationIntent]


def allowed_targets(status: BookingStatus, actor: Optional[Actor] = None) -> List[BookingStatus]:
    return [
        target
        for (source, target), actors in TRANSITIONS.items()
        if source == status and (actor is None or actor in actors)
    ]


def _reachable_statuses():
    seen = {INITIAL_STATUS}
    frontier = [INITIAL_STATUS]
    while frontier:
        current = frontier.pop()
        for target in allowed_targets(current):
            if target not in seen:
                seen.add(target)
                frontier.append(target)
    return frozenset(seen)


REACHABLE_STATUSES = _reachable_statuses()


def is_reachable(status: BookingStatus) -> bool:
    return status in REACHABLE_STATUSES


def can_transition(status: BookingStatus, target: BookingStatus, actor: Actor) -> bool:
    if status == target:
        return True
    return actor in TRANSITIONS.get((status, target), ())


# ---------------------------------------------------------------------
# GUARDS
# ---------------------------------------------------------------------
def _payment_settled(payment: Optional[PaymentSummary]) -> bool:
    return payment is not None and payment.required_charge_settled


def _check_guards(booking: Booking, target: BookingStatus, context: TransitionContext):
    if target == S.PENDING_DOCUMENTS and booking.documents_satisfied:
        raise InvalidState("Documents are already complete for this booking", booking.status)

    if target == S.PENDING_PAYMENT:
        if not booking.documents_satisfied:
            raise InvalidState("Documents must be completed before payment", booking.status)
        if _payment_settled(context.payment):
            raise InvalidState("Payment is already settled for this booking", booking.status)

    if target == S.ACTIVE:
        if not booking.documents_satisfied:
            raise InvalidState("Documents must be approved before activation", booking.status)
        if not _payment_settled(context.payment):
            raise InvalidState("Payment must be settled before activation", booking.status)

    if booking.status == S.ACTIVE and target == S.COMPLETED:
        return_approved = (
            booking.return_request is not None
            and booking.return_request.status == ReturnRequestStatus.APPROVED
        )
        if context.now < booking.end_date and not return_approved:
            raise InvalidState(
                "Booking cannot complete before its end date without an approved return",
                booking.status,
            )


# ---------------------------------------------------------------------
# TRANSITIONS
# ---------------------------------------------------------------------
def transition(
    booking: Booking,
    target_status,
    actor,
    now: Optional[datetime] = None,
    context: Optional[TransitionContext] = None,
) -> Booking:
    target = BookingStatus(target_status)
    actor = Actor(actor)

    if booking.status == target:
        return booking

    if not can_transition(booking.status, target, actor):
        raise InvalidTransition(booking.status, target, actor)

    if context is not None:
        _check_guards(booking, target, context)

    stamp = now or (context.now if context is not None else utcnow())
    return booking.model_copy(
        update={"status": target, "updated_at": max(stamp, booking.updated_at)}
    )


def next_activation_status(booking: Booking, payment: Optional[PaymentSummary]) -> BookingStatus:
    if not booking.documents_satisfied:
        return S.PENDING_DOCUMENTS
    if not _payment_settled(payment):
        return S.PENDING_PAYMENT
    return S.ACTIVE


def advance(booking: Booking, context: TransitionContext) -> Booking:
    """Move a post-acceptance booking as far as documents and payment allow."""
    if booking.status not in ACTIVATION_SOURCES:
        return booking

    target = next_activation_status(booking, context.payment)
    if target == booking.status or (booking.status, target) not in TRANSITIONS:
        return booking
    return transition(booking, target, Actor.SYSTEM, context=context)


def activation_readiness(
    booking: Booking, payment: Optional[PaymentSummary], now: Optional[datetime] = None
) -> ActivationReadiness:
    checks = {
        "valid_status": booking.status in ACTIVATION_SOURCES,
        "payment_confirmed": _payment_settled(payment),
        "documents_approved": booking.documents_satisfied,
    }

    requirements = []
    if not checks["valid_status"]:
        requirements.append(
            f"Status must be partner_accepted, pending_documents or pending_payment "
            f"(current: {booking.status.value})"
        )
    if not checks["payment_confirmed"]:
        status = payment.payment_status if payment else "pending"
        requirements.append(f"Payment must be confirmed (current: {status})")
    if not checks["documents_approved"]:
        requirements.append("Driver documents must be approved")

    return ActivationReadiness(
        booking_id=booking.id,
        current_status=booking.status,
        ready=all(checks.values()),
        checks=checks,
        requirements=requirements,
        checked_at=now,
    )


def expire_overdue_approvals(bookings: Iterable[Booking], now: datetime) -> List[Booking]:
    expired = []
    for booking in bookings:
        if booking.status != S.PENDING_PARTNER_APPROVAL or booking.approval_deadline is None:
            continue
        if booking.approval_deadline <= now:
            expired.append(transition(booking, S.REJECTED, Actor.SYSTEM, now=now))
    return expired


# ---------------------------------------------------------------------
# RETURN REQUESTS
# ---------------------------------------------------------------------
def request_return(
    booking: Booking, reason: str, actor, now: Optional[datetime] = None
) -> ReturnRequest:
    actor = Actor(actor)
    if actor not in (Actor.DRIVER, Actor.PARTNER):
        raise ActorNotPermitted(actor, "request a vehicle return")

    if booking.status not in RETURNABLE_STATUSES:
        raise InvalidState(
            f"Cannot request return for booking with status {booking.status.value}",
            booking.status,
        )

    if booking.return_request is not None and booking.return_request.is_live:
        raise DuplicateRequest(booking.id)

    reason = (reason or "").strip()
    if not reason:
        raise InvalidRequest("A reason is required to request a return")

    return ReturnRequest(
        id=str(uuid.uuid4()),
        booking_id=booking.id,
        status=ReturnRequestStatus.PENDING,
        reason=reason,
        requested_by=actor,
        requested_at=now or utcnow(),
    )


def resolve_return(
    request: ReturnRequest,
    decision,
    resolver=Actor.PARTNER,
    now: Optional[datetime] = None,
) -> ReturnRequest:
    decision = ReturnRequestStatus(decision)
    resolver = Actor(resolver)

    if request.is_resolved:
        raise AlreadyResolved(request.id, request.status)

    if decision == ReturnRequestStatus.PENDING:
        raise InvalidTransition(request.status, decision)

    if resolver not in (Actor.PARTNER, Actor.ADMIN):
        raise ActorNotPermitted(resolver, "resolve a vehicle return")

    return request.model_copy(
        update={"status": decision, "resolved_at": now or utcnow(), "resolved_by": resolver}
    )


def attach_return_request(booking: Booking, request: ReturnRequest) -> Booking:
    return booking.model_copy(update={"return_request": request})


# ---------------------------------------------------------------------
# ISSUES
# ---------------------------------------------------------------------
def report_issue(
    booking: Booking,
    severity,
    description: str,
    reporter,
    now: Optional[datetime] = None,
    issue_type=IssueType.OTHER,
) -> IssueReport:
    reporter = Actor(reporter)
    if reporter == Actor.SYSTEM:
        raise ActorNotPermitted(reporter, "report an issue")

    if booking.status.is_terminal:
        raise InvalidState(
            f"Cannot report an issue on a {booking.status.value} booking", booking.status
        )

    description = (description or "").strip()
    if not description:
        raise InvalidRequest("An issue description is required")

    issue = Issue(
        id=f"issue_{uuid.uuid4().hex}",
        booking_id=booking.id,
        issue_type=IssueType(issue_type),
        severity=IssueSeverity(severity),
        description=description,
        status=IssueStatus.OPEN,
        reported_by=reporter,
        reported_at=now or utcnow(),
    )
    return IssueReport(issue, notifications.issue_reported(booking, issue))


def resolve_issue(
    issue: Issue, resolver: str, notes: Optional[str] = None, now: Optional[datetime] = None
) -> Issue:
    if not issue.is_open:
        return issue

    return issue.model_copy(
        update={
            "status": IssueStatus.RESOLVED,
            "resolved_at": now or utcnow(),
            "resolved_by": resolver,
            "resolution_notes": notes,
        }
    )


def attach_issue(booking: Booking, issue: Issue) -> Booking:
    if any(existing.id == issue.id for existing in booking.issues):
        issues = [issue if existing.id == issue.id else existing for existing in booking.issues]
    else:
        issues = [*booking.issues, issue]
    return booking.model_copy(update={"issues": issues})
