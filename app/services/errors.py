"""Rule violations raised by the booking engine.

Every error carries a stable ``kind`` so API callers can render an inline,
actor-specific message without parsing text.
"""


class BookingRuleError(Exception):
    kind = "booking_rule_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidTransition(BookingRuleError):
    kind = "invalid_transition"

    def __init__(self, from_status, to_status, actor=None):
        self.from_status = from_status
        self.to_status = to_status
        self.actor = actor
        message = f"Cannot move booking from {_value(from_status)} to {_value(to_status)}"
        if actor is not None:
            message += f" as {_value(actor)}"
        super().__init__(message)


class InvalidState(BookingRuleError):
    kind = "invalid_state"

    def __init__(self, message: str, status=None):
        super().__init__(message)
        self.status = status


class DuplicateRequest(BookingRuleError):
    kind = "duplicate_request"

    def __init__(self, booking_id: str):
        super().__init__(f"Return already requested for booking {booking_id}")
        self.booking_id = booking_id


class AlreadyResolved(BookingRuleError):
    kind = "already_resolved"

    def __init__(self, request_id: str, status):
        super().__init__(f"Return request {request_id} is already {_value(status)}")
        self.request_id = request_id
        self.status = status


class MalformedEvent(BookingRuleError):
    kind = "malformed_event"

    def __init__(self, event_id: str, kind, amount: float):
        super().__init__(
            f"Payment event {event_id} has amount {amount} inconsistent with kind {_value(kind)}"
        )
        self.event_id = event_id
        self.event_kind = kind
        self.amount = amount


class ActorNotPermitted(BookingRuleError):
    kind = "actor_not_permitted"

    def __init__(self, actor, operation: str):
        super().__init__(f"{_value(actor).capitalize()} cannot {operation}")
        self.actor = actor
        self.operation = operation


class InvalidRequest(BookingRuleError):
    kind = "invalid_request"


def _value(item):
    return getattr(item, "value", item)
