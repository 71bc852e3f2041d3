from sqlalchemy import Column, String, DateTime, ForeignKey, Index, text
from sqlalchemy.orm import relationship
from app.db.session import Base


class ReturnRequest(Base):
    __tablename__ = "return_requests"

    id = Column(String, primary_key=True, index=True)
    booking_id = Column(String, ForeignKey("bookings.id"), nullable=False, index=True)

    status = Column(String, nullable=False, default="pending")  # pending | approved | rejected
    reason = Column(String, nullable=False)

    requested_by = Column(String, nullable=False, default="driver")
    requested_at = Column(DateTime(timezone=True), nullable=False)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    resolved_by = Column(String, nullable=True)

    booking = relationship("Booking", back_populates="return_requests")

    __table_args__ = (
        # one live (pending / approved) request per booking
        Index(
            "uq_return_requests_live",
            "booking_id",
            unique=True,
            postgresql_where=text("status IN ('pending', 'approved')"),
            sqlite_where=text("status IN ('pending', 'approved')"),
        ),
    )
