"""Data-access collaborator: loads rows into engine entities and writes results back.

Every reader returns schema objects (never ORM rows), with timestamps already
normalized by the schema layer.
"""
from enum import Enum
from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from app.models.booking import Booking as BookingRow
from app.models.document import Document as DocumentRow
from app.models.issue import Issue as IssueRow
from app.models.payment_event import PaymentEvent as PaymentEventRow
from app.models.recurring_schedule import RecurringSchedule as ScheduleRow
from app.models.return_request import ReturnRequest as ReturnRequestRow
from app.schemas.booking import Booking
from app.schemas.document import DocumentRecord
from app.schemas.issue import Issue
from app.schemas.payment import PaymentEvent, RecurringSchedule
from app.schemas.return_request import ReturnRequest
from app.schemas.views import BookingFilter
from app.services.reconciliation import current_schedule


def _row_values(entity: BaseModel, exclude=None) -> dict:
    values = entity.model_dump(exclude=exclude)
    return {
        key: value.value if isinstance(value, Enum) else value
        for key, value in values.items()
    }


def _booking_query(db: Session):
    return db.query(BookingRow).options(
        selectinload(BookingRow.return_requests),
        selectinload(BookingRow.issues),
    )


# ---------------------------------------------------------------------
# READERS
# ---------------------------------------------------------------------
def fetch_bookings(db: Session, filter: Optional[BookingFilter] = None) -> List[Booking]:
    query = _booking_query(db)

    if filter is not None:
        if filter.driver_id:
            query = query.filter(BookingRow.driver_id == filter.driver_id)
        if filter.partner_id:
            query = query.filter(BookingRow.partner_id == filter.partner_id)
        if filter.status:
            query = query.filter(BookingRow.status == filter.status)
        if filter.vehicle_category:
            query = query.filter(BookingRow.vehicle_category == filter.vehicle_category)

    rows = query.order_by(BookingRow.created_at.desc()).all()
    return [Booking.model_validate(row) for row in rows]


def fetch_booking(db: Session, booking_id: str) -> Optional[Booking]:
    row = _booking_query(db).filter(BookingRow.id == booking_id).first()
    return Booking.model_validate(row) if row else None


def fetch_payment_events(db: Session, booking_id: str) -> List[PaymentEvent]:
    rows = (
        db.query(PaymentEventRow)
        .filter(PaymentEventRow.booking_id == booking_id)
        .order_by(PaymentEventRow.occurred_at, PaymentEventRow.id)
        .all()
    )
    return [PaymentEvent.model_validate(row) for row in rows]


def fetch_payment_events_for(db: Session, booking_ids: Iterable[str]) -> Dict[str, List[PaymentEvent]]:
    ids = list(booking_ids)
    grouped = {booking_id: [] for booking_id in ids}
    if not ids:
        return grouped

    rows = (
        db.query(PaymentEventRow)
        .filter(PaymentEventRow.booking_id.in_(ids))
        .order_by(PaymentEventRow.occurred_at, PaymentEventRow.id)
        .all()
    )
    for row in rows:
        grouped[row.booking_id].append(PaymentEvent.model_validate(row))
    return grouped


def fetch_schedules(db: Session, booking_id: str) -> List[RecurringSchedule]:
    rows = db.query(ScheduleRow).filter(ScheduleRow.booking_id == booking_id).all()
    return [RecurringSchedule.model_validate(row) for row in rows]


def fetch_recurring_schedule(db: Session, booking_id: str) -> Optional[RecurringSchedule]:
    return current_schedule(fetch_schedules(db, booking_id))


def fetch_recurring_schedules_for(db: Session, booking_ids: Iterable[str]) -> Dict[str, RecurringSchedule]:
    ids = list(booking_ids)
    if not ids:
        return {}

    rows = db.query(ScheduleRow).filter(
        ScheduleRow.booking_id.in_(ids),
        ScheduleRow.status == "active",
    ).all()

    grouped = {}
    for row in rows:
        grouped.setdefault(row.booking_id, []).append(RecurringSchedule.model_validate(row))
    return {booking_id: current_schedule(items) for booking_id, items in grouped.items()}


def fetch_return_request(db: Session, booking_id: str) -> Optional[ReturnRequest]:
    row = (
        db.query(ReturnRequestRow)
        .filter(ReturnRequestRow.booking_id == booking_id)
        .order_by(ReturnRequestRow.requested_at.desc())
        .first()
    )
    return ReturnRequest.model_validate(row) if row else None


def fetch_issues(db: Session, booking_id: str) -> List[Issue]:
    rows = (
        db.query(IssueRow)
        .filter(IssueRow.booking_id == booking_id)
        .order_by(IssueRow.reported_at, IssueRow.sequence)
        .all()
    )
    return [Issue.model_validate(row) for row in rows]


def fetch_documents(db: Session, owner_id: Optional[str] = None) -> List[DocumentRecord]:
    query = db.query(DocumentRow)
    if owner_id:
        query = query.filter(DocumentRow.owner_id == owner_id)
    return [DocumentRecord.model_validate(row) for row in query.order_by(DocumentRow.expiry_date).all()]


# ---------------------------------------------------------------------
# WRITERS
# ---------------------------------------------------------------------
def save_booking_status(db: Session, booking: Booking):
    row = db.query(BookingRow).filter(BookingRow.id == booking.id).first()
    row.status = booking.status.value
    row.updated_at = booking.updated_at
    db.commit()


def save_return_request(db: Session, request: ReturnRequest):
    db.merge(ReturnRequestRow(**_row_values(request)))
    db.commit()


def save_issue(db: Session, issue: Issue):
    row = IssueRow(**_row_values(issue))
    if db.get(IssueRow, issue.id) is None:
        last = (
            db.query(func.max(IssueRow.sequence))
            .filter(IssueRow.booking_id == issue.booking_id)
            .scalar()
        )
        row.sequence = (last or 0) + 1
    db.merge(row)
    db.commit()


def save_schedules(db: Session, schedules: Iterable[RecurringSchedule]):
    # deactivations first so the one-active index never sees two rows
    ordered = sorted(schedules, key=lambda schedule: schedule.is_active)
    for schedule in ordered:
        db.merge(ScheduleRow(**_row_values(schedule)))
        db.flush()
    db.commit()
