from sqlalchemy import Column, String, Float, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from app.db.session import Base


class PaymentEvent(Base):
    __tablename__ = "payment_events"

    id = Column(String, primary_key=True, index=True)
    booking_id = Column(String, ForeignKey("bookings.id"), nullable=False, index=True)

    amount = Column(Float, nullable=False)
    kind = Column(String, nullable=False)  # charge | refund
    status = Column(String, nullable=False, default="pending")  # pending, succeeded, paid, confirmed, failed, refunded

    occurred_at = Column(DateTime(timezone=True), nullable=False)

    booking = relationship("Booking", back_populates="payment_events")
