from sqlalchemy import Column, String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import relationship
from app.db.session import Base


class Issue(Base):
    __tablename__ = "booking_issues"

    id = Column(String, primary_key=True, index=True)
    booking_id = Column(String, ForeignKey("bookings.id"), nullable=False, index=True)

    issue_type = Column(String, nullable=False, default="other")
    severity = Column(String, nullable=False, default="medium")  # low, medium, high, critical
    description = Column(String, nullable=False)
    status = Column(String, nullable=False, default="open")  # open | resolved

    reported_by = Column(String, nullable=False)
    reported_at = Column(DateTime(timezone=True), nullable=False)
    # per-booking report order; breaks ties between equal timestamps
    sequence = Column(Integer, nullable=False, default=1)

    # Resolution metadata (the only mutable part)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    resolved_by = Column(String, nullable=True)
    resolution_notes = Column(String, nullable=True)

    booking = relationship("Booking", back_populates="issues")
