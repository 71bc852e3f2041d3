from enum import Enum


class BookingStatus(str, Enum):
    PENDING_PARTNER_APPROVAL = "pending_partner_approval"
    PENDING_DRIVER_APPROVAL = "pending_driver_approval"
    PENDING_DOCUMENTS = "pending_documents"
    PENDING_PAYMENT = "pending_payment"
    PENDING_VEHICLE_ASSIGNMENT = "pending_vehicle_assignment"
    PARTNER_ACCEPTED = "partner_accepted"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REJECTED = "rejected"

    @property
    def is_pending(self):
        return self.value.startswith("pending_")

    @property
    def is_terminal(self):
        return self in TERMINAL_STATUSES


INITIAL_STATUS = BookingStatus.PENDING_PARTNER_APPROVAL

TERMINAL_STATUSES = frozenset({
    BookingStatus.COMPLETED,
    BookingStatus.CANCELLED,
    BookingStatus.REJECTED,
})


class Actor(str, Enum):
    DRIVER = "driver"
    PARTNER = "partner"
    ADMIN = "admin"
    SYSTEM = "system"


class PaymentStatus(str, Enum):
    """Booking-level payment state. Always derived, never stored."""
    PENDING = "pending"
    PAID = "paid"
    OVERDUE = "overdue"


class PaymentEventKind(str, Enum):
    CHARGE = "charge"
    REFUND = "refund"


class PaymentEventStatus(str, Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    PAID = "paid"
    CONFIRMED = "confirmed"
    FAILED = "failed"
    REFUNDED = "refunded"

    @property
    def is_settled(self):
        return self in SETTLED_STATUSES


SETTLED_STATUSES = frozenset({
    PaymentEventStatus.SUCCEEDED,
    PaymentEventStatus.PAID,
    PaymentEventStatus.CONFIRMED,
})


class ScheduleStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class ReturnRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class IssueType(str, Enum):
    MECHANICAL = "mechanical"
    DAMAGE = "damage"
    CLEANLINESS = "cleanliness"
    DOCUMENTATION = "documentation"
    OTHER = "other"


class IssueSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self):
        return SEVERITY_RANK[self]


SEVERITY_RANK = {
    IssueSeverity.LOW: 0,
    IssueSeverity.MEDIUM: 1,
    IssueSeverity.HIGH: 2,
    IssueSeverity.CRITICAL: 3,
}


class IssueStatus(str, Enum):
    OPEN = "open"
    RESOLVED = "resolved"


class UrgencyLevel(str, Enum):
    NONE = "none"
    NORMAL = "normal"
    WARNING = "warning"
    CRITICAL = "critical"
    EXPIRED = "expired"

    @property
    def rank(self):
        return URGENCY_RANK[self]


URGENCY_RANK = {
    UrgencyLevel.NONE: 0,
    UrgencyLevel.NORMAL: 1,
    UrgencyLevel.WARNING: 2,
    UrgencyLevel.CRITICAL: 3,
    UrgencyLevel.EXPIRED: 4,
}
