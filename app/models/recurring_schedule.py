from sqlalchemy import Column, String, Float, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from app.db.session import Base


class RecurringSchedule(Base):
    __tablename__ = "recurring_schedules"

    id = Column(String, primary_key=True, index=True)
    booking_id = Column(String, ForeignKey("bookings.id"), nullable=False, index=True)

    amount_per_cycle = Column(Float, nullable=False)
    cycle_end = Column(DateTime(timezone=True), nullable=False)
    status = Column(String, nullable=False, default="active")  # active | inactive

    created_at = Column(DateTime(timezone=True), nullable=False)

    booking = relationship("Booking", back_populates="schedules")

    __table_args__ = (
        # one active schedule per booking
        Index(
            "uq_recurring_schedules_active",
            "booking_id",
            unique=True,
            postgresql_where=text("status = 'active'"),
            sqlite_where=text("status = 'active'"),
        ),
    )
