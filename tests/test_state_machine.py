from datetime import timedelta

import pytest

from app.models.enums import Actor, BookingStatus, TERMINAL_STATUSES
from app.services import reconciliation
from app.services.errors import InvalidState, InvalidTransition
from app.services.state_machine import (
    TRANSITIONS,
    TransitionContext,
    activation_readiness,
    advance,
    allowed_targets,
    expire_overdue_approvals,
    is_reachable,
    transition,
)

S = BookingStatus


@pytest.mark.parametrize("status", list(BookingStatus))
@pytest.mark.parametrize("target", list(BookingStatus))
def test_transition_succeeds_only_for_table_entries(make_booking, status, target):
    booking = make_booking(status=status)

    for actor in Actor:
        allowed = status == target or actor in TRANSITIONS.get((status, target), ())
        if allowed:
            assert transition(booking, target, actor).status == target
        else:
            with pytest.raises(InvalidTransition):
                transition(booking, target, actor)


@pytest.mark.parametrize("status", list(BookingStatus))
def test_same_status_transition_is_a_noop(make_booking, status):
    booking = make_booking(status=status)

    assert transition(booking, status, Actor.DRIVER) is booking


@pytest.mark.parametrize("status", sorted(TERMINAL_STATUSES, key=lambda s: s.value))
def test_terminal_bookings_cannot_move(make_booking, status):
    booking = make_booking(status=status)

    assert allowed_targets(status) == []
    for target in BookingStatus:
        if target == status:
            continue
        for actor in Actor:
            with pytest.raises(InvalidTransition):
                transition(booking, target, actor)


def test_invalid_transition_carries_the_pair(make_booking):
    booking = make_booking(status=S.PENDING_PARTNER_APPROVAL)

    with pytest.raises(InvalidTransition) as excinfo:
        transition(booking, S.ACTIVE, Actor.PARTNER)

    assert excinfo.value.from_status == S.PENDING_PARTNER_APPROVAL
    assert excinfo.value.to_status == S.ACTIVE
    assert excinfo.value.kind == "invalid_transition"


def test_driver_cannot_accept_on_partners_behalf(make_booking):
    booking = make_booking(status=S.PENDING_PARTNER_APPROVAL)

    with pytest.raises(InvalidTransition):
        transition(booking, S.PARTNER_ACCEPTED, Actor.DRIVER)


def test_any_pending_state_can_be_cancelled_by_the_driver(make_booking):
    for status in BookingStatus:
        if not status.is_pending:
            continue
        booking = make_booking(status=status)
        assert transition(booking, S.CANCELLED, Actor.DRIVER).status == S.CANCELLED


def test_transition_returns_a_new_booking_and_stamps_updated_at(make_booking, now):
    booking = make_booking()

    moved = transition(booking, S.PARTNER_ACCEPTED, Actor.PARTNER, now=now)

    assert moved is not booking
    assert booking.status == S.PENDING_PARTNER_APPROVAL
    assert moved.updated_at == now


def test_updated_at_never_moves_backwards(make_booking, now):
    booking = make_booking(updated_at=now, created_at=now - timedelta(days=1))

    moved = transition(booking, S.PARTNER_ACCEPTED, Actor.PARTNER, now=now - timedelta(hours=3))

    assert moved.updated_at == now


def test_unreachable_states_are_flagged():
    assert is_reachable(S.ACTIVE)
    assert is_reachable(S.COMPLETED)
    assert not is_reachable(S.PENDING_DRIVER_APPROVAL)
    assert not is_reachable(S.PENDING_VEHICLE_ASSIGNMENT)


# ---------------------------------------------------------------------
# GUARDS
# ---------------------------------------------------------------------
def _summary(booking, events, now):
    return reconciliation.reconcile_payments(booking, events, None, now)


def test_activation_requires_settled_payment(make_booking, now):
    booking = make_booking(status=S.PENDING_PAYMENT, documents_approved=True)
    context = TransitionContext(now=now, payment=_summary(booking, [], now))

    with pytest.raises(InvalidState):
        transition(booking, S.ACTIVE, Actor.SYSTEM, context=context)


def test_activation_requires_documents(make_booking, make_event, now):
    booking = make_booking(status=S.PARTNER_ACCEPTED, documents_approved=False)
    context = TransitionContext(now=now, payment=_summary(booking, [make_event(800)], now))

    with pytest.raises(InvalidState):
        transition(booking, S.ACTIVE, Actor.SYSTEM, context=context)


def test_early_completion_needs_an_approved_return(make_booking, now):
    booking = make_booking(status=S.ACTIVE)

    with pytest.raises(InvalidState):
        transition(booking, S.COMPLETED, Actor.PARTNER, context=TransitionContext(now=now))


def test_completion_allowed_after_end_date(make_booking, now):
    booking = make_booking(status=S.ACTIVE)
    later = booking.end_date + timedelta(minutes=1)

    moved = transition(booking, S.COMPLETED, Actor.SYSTEM, context=TransitionContext(now=later))

    assert moved.status == S.COMPLETED


@pytest.mark.parametrize(
    "documents_approved, paid, expected",
    [
        (False, False, S.PENDING_DOCUMENTS),
        (True, False, S.PENDING_PAYMENT),
        (True, True, S.ACTIVE),
    ],
)
def test_advance_moves_as_far_as_possible(make_booking, make_event, now, documents_approved, paid, expected):
    booking = make_booking(status=S.PARTNER_ACCEPTED, documents_approved=documents_approved)
    events = [make_event(800)] if paid else []

    moved = advance(booking, TransitionContext(now=now, payment=_summary(booking, events, now)))

    assert moved.status == expected


def test_advance_leaves_other_states_alone(make_booking, now):
    booking = make_booking(status=S.ACTIVE)

    assert advance(booking, TransitionContext(now=now)) is booking


def test_activation_readiness_lists_missing_requirements(make_booking, now):
    booking = make_booking(status=S.PARTNER_ACCEPTED)

    readiness = activation_readiness(booking, _summary(booking, [], now), now)

    assert not readiness.ready
    assert readiness.checks == {
        "valid_status": True,
        "payment_confirmed": False,
        "documents_approved": False,
    }
    assert len(readiness.requirements) == 2


def test_expired_approvals_are_rejected_by_the_system(make_booking, now):
    overdue = make_booking(id="bk-old", approval_deadline=now - timedelta(minutes=5))
    fresh = make_booking(id="bk-new", approval_deadline=now + timedelta(hours=5))
    no_sla = make_booking(id="bk-none")

    rejected = expire_overdue_approvals([overdue, fresh, no_sla], now)

    assert [booking.id for booking in rejected] == ["bk-old"]
    assert rejected[0].status == S.REJECTED


# ---------------------------------------------------------------------
# SCENARIO A
# ---------------------------------------------------------------------
def test_booking_accepted_paid_and_activated(make_booking, make_event, now):
    booking = make_booking(requires_documents=False)

    booking = transition(booking, S.PARTNER_ACCEPTED, Actor.PARTNER, now=now)
    assert booking.status == S.PARTNER_ACCEPTED

    booking = transition(booking, S.PENDING_PAYMENT, Actor.SYSTEM, now=now)
    assert booking.status == S.PENDING_PAYMENT

    events = [make_event(booking.total_amount, status="paid")]
    summary = reconciliation.reconcile_payments(booking, events, None, now)

    booking = transition(
        booking, S.ACTIVE, Actor.SYSTEM, context=TransitionContext(now=now, payment=summary)
    )
    assert booking.status == S.ACTIVE
    assert reconciliation.reconcile_payments(booking, events, None, now).payment_status == "paid"
