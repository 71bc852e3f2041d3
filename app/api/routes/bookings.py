import uuid
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.dependencies import get_caller, get_db, get_now, load_booking_for, require_admin
from app.core.logging_config import booking_logger, get_logger
from app.core.redis import acquire_write_lock, release_write_lock
from app.db import repository
from app.models.enums import Actor
from app.schemas.booking import TransitionRequest
from app.schemas.issue import IssueCreate, IssueResolve
from app.schemas.payment import RecurringSchedule, ScheduleCreate
from app.schemas.return_request import ReturnDecision, ReturnRequestCreate
from app.schemas.views import BookingFilter, DateRange
from app.services import notifications, query, reconciliation, state_machine
from app.services.state_machine import TransitionContext

router = APIRouter(prefix="/bookings", tags=["Bookings"])
logger = get_logger()


# ---------------------------------------------------------------------
# HELPERS
# ---------------------------------------------------------------------
def scoped_filter(caller, **options) -> BookingFilter:
    user_id, role = caller
    if role == Actor.DRIVER:
        options["driver_id"] = user_id
    elif role == Actor.PARTNER:
        options["partner_id"] = user_id
    return BookingFilter(**options)


def payment_summary(db: Session, booking, now: datetime):
    events = repository.fetch_payment_events(db, booking.id)
    schedule = repository.fetch_recurring_schedule(db, booking.id)
    return reconciliation.reconcile_payments(booking, events, schedule, now)


def enriched_list(db: Session, criteria: BookingFilter, now: datetime, sort_by=None, sort_order="desc"):
    bookings = repository.fetch_bookings(db, criteria)
    ids = [booking.id for booking in bookings]

    return query.query_bookings(
        bookings,
        criteria,
        now=now,
        events=repository.fetch_payment_events_for(db, ids),
        schedules=repository.fetch_recurring_schedules_for(db, ids),
        sort_by=sort_by,
        sort_order=sort_order,
    )


# =====================================================================
# LIST BOOKINGS (scoped to caller)
# =====================================================================
@router.get("/")
def list_bookings(
    search: Optional[str] = None,
    status: Optional[str] = None,
    payment_status: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    vehicle_category: Optional[str] = None,
    urgency_only: bool = False,
    sort_by: Optional[str] = None,
    sort_order: str = "desc",
    caller=Depends(get_caller),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    if sort_by and sort_by not in query.SORT_KEYS:
        raise HTTPException(status_code=400, detail=f"Invalid sort key: {sort_by}")
    if sort_order not in query.SORT_ORDERS:
        raise HTTPException(status_code=400, detail=f"Invalid sort order: {sort_order}")

    date_range = DateRange(start=start, end=end) if start or end else None
    criteria = scoped_filter(
        caller,
        search=search,
        status=status,
        payment_status=payment_status,
        date_range=date_range,
        vehicle_category=vehicle_category,
        urgency_only=urgency_only,
    )

    return enriched_list(db, criteria, now, sort_by, sort_order)


# =====================================================================
# STATS
# =====================================================================
@router.get("/stats")
def booking_stats(
    caller=Depends(get_caller),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    items = enriched_list(db, scoped_filter(caller), now)
    return query.summarize_bookings(items)


# =====================================================================
# APPROVAL DEADLINE SWEEP (admin)
# =====================================================================
@router.post("/check-deadlines")
def check_deadlines(
    admin_id: str = Depends(require_admin),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    pending = repository.fetch_bookings(
        db, BookingFilter(status="pending_partner_approval")
    )
    expired = state_machine.expire_overdue_approvals(pending, now)

    intents = []
    for booking in expired:
        repository.save_booking_status(db, booking)
        intents.extend(notifications.booking_auto_rejected(booking))
        booking_logger(booking.id).info("Auto-rejected: partner acceptance deadline exceeded")

    logger.bind(log_type="admin").info(
        f"Deadline sweep by {admin_id} → {len(expired)} rejected"
    )

    return {
        "checked": len(pending),
        "rejected": [booking.id for booking in expired],
        "notifications": intents,
    }


# =====================================================================
# SINGLE BOOKING
# =====================================================================
@router.get("/{booking_id}")
def get_booking(
    booking_id: str,
    caller=Depends(get_caller),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    booking = load_booking_for(booking_id, caller, db)
    events = repository.fetch_payment_events(db, booking.id)
    schedule = repository.fetch_recurring_schedule(db, booking.id)
    return query.enrich_booking(booking, now, events, schedule)


@router.get("/{booking_id}/payments")
def booking_payments(
    booking_id: str,
    caller=Depends(get_caller),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    booking = load_booking_for(booking_id, caller, db)
    return payment_summary(db, booking, now)


@router.get("/{booking_id}/readiness")
def booking_readiness(
    booking_id: str,
    caller=Depends(get_caller),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    booking = load_booking_for(booking_id, caller, db)
    return state_machine.activation_readiness(booking, payment_summary(db, booking, now), now)


# =====================================================================
# STATUS TRANSITIONS
# =====================================================================
@router.post("/{booking_id}/transition")
def transition_booking(
    booking_id: str,
    data: TransitionRequest,
    caller=Depends(get_caller),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    user_id, role = caller
    booking = load_booking_for(booking_id, caller, db)

    context = TransitionContext(now=now, payment=payment_summary(db, booking, now))
    updated = state_machine.transition(booking, data.target_status, role, context=context)

    if updated is not booking:
        repository.save_booking_status(db, updated)
        booking_logger(booking.id).info(
            f"{booking.status.value} → {updated.status.value} by {role.value} {user_id}"
        )

    return {"booking_id": updated.id, "status": updated.status, "updated_at": updated.updated_at}


@router.post("/{booking_id}/advance")
def advance_booking(
    booking_id: str,
    caller=Depends(get_caller),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    user_id, role = caller
    if role == Actor.DRIVER:
        raise HTTPException(status_code=403, detail="Partners or admins only")

    booking = load_booking_for(booking_id, caller, db)
    context = TransitionContext(now=now, payment=payment_summary(db, booking, now))
    updated = state_machine.advance(booking, context)

    if updated is not booking:
        repository.save_booking_status(db, updated)
        booking_logger(booking.id).info(
            f"Advanced {booking.status.value} → {updated.status.value} (requested by {user_id})"
        )

    return {"booking_id": updated.id, "status": updated.status, "changed": updated is not booking}


# =====================================================================
# RETURN REQUESTS
# =====================================================================
@router.post("/{booking_id}/return-request")
def request_return(
    booking_id: str,
    data: ReturnRequestCreate,
    caller=Depends(get_caller),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    user_id, role = caller
    booking = load_booking_for(booking_id, caller, db)

    if not acquire_write_lock(booking.id, "return-request"):
        raise HTTPException(status_code=409, detail="Another return request is being processed")

    try:
        request = state_machine.request_return(booking, data.reason, role, now=now)
        repository.save_return_request(db, request)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Return already requested")
    finally:
        release_write_lock(booking.id, "return-request")

    booking_logger(booking.id).info(f"Return requested by {role.value} {user_id}: {request.reason}")

    return {
        "return_request": request,
        "notifications": notifications.return_requested(booking, request),
    }


@router.post("/{booking_id}/return-request/resolve")
def resolve_return(
    booking_id: str,
    data: ReturnDecision,
    caller=Depends(get_caller),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    user_id, role = caller
    booking = load_booking_for(booking_id, caller, db)

    if booking.return_request is None:
        raise HTTPException(status_code=404, detail="No return request to resolve")

    request = state_machine.resolve_return(booking.return_request, data.decision, role, now=now)
    repository.save_return_request(db, request)

    booking_logger(booking.id).info(f"Return {request.status.value} by {role.value} {user_id}")

    return {
        "return_request": request,
        "notifications": notifications.return_resolved(booking, request),
    }


# =====================================================================
# ISSUES
# =====================================================================
@router.post("/{booking_id}/issues")
def report_issue(
    booking_id: str,
    data: IssueCreate,
    caller=Depends(get_caller),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    user_id, role = caller
    booking = load_booking_for(booking_id, caller, db)

    issue, intents = state_machine.report_issue(
        booking, data.severity, data.description, role, now=now, issue_type=data.issue_type
    )
    repository.save_issue(db, issue)

    booking_logger(booking.id).info(
        f"{issue.severity.value} {issue.issue_type.value} issue reported by {role.value} {user_id}"
    )

    return {"issue": issue, "notifications": intents}


@router.post("/{booking_id}/issues/{issue_id}/resolve")
def resolve_issue(
    booking_id: str,
    issue_id: str,
    data: IssueResolve,
    caller=Depends(get_caller),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    user_id, role = caller
    booking = load_booking_for(booking_id, caller, db)

    issue = next((item for item in booking.issues if item.id == issue_id), None)
    if issue is None:
        raise HTTPException(status_code=404, detail="Issue not found")

    resolved = state_machine.resolve_issue(issue, user_id, data.notes, now=now)
    if resolved is not issue:
        repository.save_issue(db, resolved)
        booking_logger(booking.id).info(f"Issue {issue.id} resolved by {role.value} {user_id}")

    return resolved


# =====================================================================
# RECURRING SCHEDULE
# =====================================================================
@router.post("/{booking_id}/schedule")
def activate_schedule(
    booking_id: str,
    data: ScheduleCreate,
    caller=Depends(get_caller),
    db: Session = Depends(get_db),
    now: datetime = Depends(get_now),
):
    user_id, role = caller
    if role == Actor.DRIVER:
        raise HTTPException(status_code=403, detail="Partners or admins only")

    booking = load_booking_for(booking_id, caller, db)

    if not acquire_write_lock(booking.id, "schedule"):
        raise HTTPException(status_code=409, detail="Schedule change already in progress")

    try:
        new_schedule = RecurringSchedule(
            id=str(uuid.uuid4()),
            booking_id=booking.id,
            amount_per_cycle=data.amount_per_cycle,
            cycle_end=data.cycle_end,
            created_at=now,
        )
        schedules = reconciliation.activate_schedule(
            repository.fetch_schedules(db, booking.id), new_schedule
        )
        repository.save_schedules(db, schedules)
    except IntegrityError:
        db.rollback()
        raise HTTPException(status_code=409, detail="Schedule changed concurrently, retry")
    finally:
        release_write_lock(booking.id, "schedule")

    booking_logger(booking.id, log_type="payment").info(
        f"Recurring schedule {new_schedule.id} activated by {user_id} "
        f"({new_schedule.amount_per_cycle} per cycle)"
    )

    return payment_summary(db, booking, now)
