from datetime import datetime, timezone

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from app.db.session import SessionLocal
from app.db import repository
from app.core.auth_utils import resolve_caller
from app.models.enums import Actor
from app.schemas.booking import Booking


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_now() -> datetime:
    return datetime.now(timezone.utc)


def get_caller(token: str):
    return resolve_caller(token)


def require_admin(caller=Depends(get_caller)):
    user_id, role = caller
    if role != Actor.ADMIN:
        raise HTTPException(status_code=403, detail="Admins only")
    return user_id


def load_booking_for(booking_id: str, caller, db: Session) -> Booking:
    """Fetch a booking and check the caller is one of its parties (or an admin)."""
    user_id, role = caller

    booking = repository.fetch_booking(db, booking_id)
    if not booking:
        raise HTTPException(status_code=404, detail="Booking not found")

    if role == Actor.DRIVER and booking.driver_id != user_id:
        raise HTTPException(status_code=403, detail="Unauthorized - not your booking")
    if role == Actor.PARTNER and booking.partner_id != user_id:
        raise HTTPException(status_code=403, detail="Unauthorized - not your booking")

    return booking
