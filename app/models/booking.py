from sqlalchemy import Column, String, Integer, Float, Boolean, DateTime
from sqlalchemy.orm import relationship
from app.db.session import Base


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(String, primary_key=True, index=True)
    driver_id = Column(String, nullable=False, index=True)
    partner_id = Column(String, nullable=False, index=True)
    vehicle_id = Column(String, nullable=False, index=True)

    term_weeks = Column(Integer, nullable=False, default=1)
    total_amount = Column(Float, nullable=False, default=0.0)
    start_date = Column(DateTime(timezone=True), nullable=False)
    end_date = Column(DateTime(timezone=True), nullable=False)

    status = Column(String, nullable=False, default="pending_partner_approval", index=True)

    approval_deadline = Column(DateTime(timezone=True), nullable=True)
    payment_deadline = Column(DateTime(timezone=True), nullable=True)

    requires_documents = Column(Boolean, nullable=False, default=True)
    documents_approved = Column(Boolean, nullable=False, default=False)

    # Denormalized display data (search / filters)
    driver_name = Column(String, nullable=False, default="")
    partner_name = Column(String, nullable=False, default="")
    vehicle_make = Column(String, nullable=False, default="")
    vehicle_model = Column(String, nullable=False, default="")
    vehicle_plate = Column(String, nullable=False, default="")
    vehicle_category = Column(String, nullable=False, default="", index=True)

    created_at = Column(DateTime(timezone=True), nullable=False)
    updated_at = Column(DateTime(timezone=True), nullable=False)

    payment_events = relationship(
        "PaymentEvent", back_populates="booking", cascade="all, delete"
    )
    schedules = relationship(
        "RecurringSchedule", back_populates="booking", cascade="all, delete"
    )
    return_requests = relationship(
        "ReturnRequest",
        back_populates="booking",
        cascade="all, delete",
        order_by="ReturnRequest.requested_at",
    )
    issues = relationship(
        "Issue",
        back_populates="booking",
        cascade="all, delete",
        order_by="[Issue.reported_at, Issue.sequence]",
    )

    @property
    def return_request(self):
        # latest request wins; older ones are history
        return self.return_requests[-1] if self.return_requests else None
