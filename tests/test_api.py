from datetime import date, timedelta

import pytest
from fastapi.testclient import TestClient
from jose import jwt
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core.dependencies import get_db, get_now
from app.db.session import Base
from app.main import app
from app.models.booking import Booking as BookingRow
from app.models.document import Document as DocumentRow
from app.models.payment_event import PaymentEvent as PaymentEventRow

from conftest import NOW


def token_for(user_id, role):
    return jwt.encode({"sub": user_id, "role": role}, "test-secret", algorithm="HS256")


DRIVER = token_for("drv-1", "driver")
OTHER_DRIVER = token_for("drv-2", "driver")
PARTNER = token_for("ptn-1", "partner")
ADMIN = token_for("admin-1", "admin")


def booking_row(**overrides):
    values = dict(
        id="bk-1",
        driver_id="drv-1",
        partner_id="ptn-1",
        vehicle_id="veh-1",
        term_weeks=4,
        total_amount=800.0,
        start_date=NOW + timedelta(days=1),
        end_date=NOW + timedelta(days=29),
        status="pending_partner_approval",
        requires_documents=True,
        documents_approved=True,
        driver_name="Alice Walker",
        partner_name="City Fleet Ltd",
        vehicle_make="Toyota",
        vehicle_model="Prius",
        vehicle_plate="AB12 CDE",
        vehicle_category="hybrid",
        created_at=NOW - timedelta(days=2),
        updated_at=NOW - timedelta(days=2),
    )
    values.update(overrides)
    return BookingRow(**values)


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    yield factory
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def seed(session_factory):
    def _seed(*rows):
        db = session_factory()
        db.add_all(rows)
        db.commit()
        db.close()
    return _seed


@pytest.fixture
def client(session_factory):
    def override_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_now] = lambda: NOW
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def test_root(client):
    assert client.get("/").json() == {"message": "Backend running successfully"}


def test_bad_token_is_rejected(client):
    response = client.get("/bookings/", params={"token": "not-a-jwt"})

    assert response.status_code == 401


def test_listing_is_scoped_to_the_caller(client, seed):
    seed(booking_row(), booking_row(id="bk-2", driver_id="drv-2", driver_name="Bob Stone"))

    mine = client.get("/bookings/", params={"token": DRIVER}).json()
    everything = client.get("/bookings/", params={"token": ADMIN}).json()

    assert [item["booking"]["id"] for item in mine] == ["bk-1"]
    assert {item["booking"]["id"] for item in everything} == {"bk-1", "bk-2"}


def test_listing_supports_search_and_sort(client, seed):
    seed(
        booking_row(total_amount=300.0),
        booking_row(id="bk-2", driver_name="Bob Stone", total_amount=900.0),
    )

    found = client.get("/bookings/", params={"token": ADMIN, "search": "bob"}).json()
    ordered = client.get(
        "/bookings/", params={"token": ADMIN, "sort_by": "total_amount", "sort_order": "asc"}
    ).json()

    assert [item["booking"]["id"] for item in found] == ["bk-2"]
    assert [item["booking"]["id"] for item in ordered] == ["bk-1", "bk-2"]


def test_unknown_sort_key_is_a_bad_request(client):
    response = client.get("/bookings/", params={"token": ADMIN, "sort_by": "colour"})

    assert response.status_code == 400


def test_other_drivers_cannot_see_a_booking(client, seed):
    seed(booking_row())

    response = client.get("/bookings/bk-1", params={"token": OTHER_DRIVER})

    assert response.status_code == 403
    assert response.json()["detail"] == "Unauthorized - not your booking"


def test_missing_booking_is_404(client):
    assert client.get("/bookings/nope", params={"token": ADMIN}).status_code == 404


def test_partner_accepts_a_booking(client, seed):
    seed(booking_row())

    response = client.post(
        "/bookings/bk-1/transition",
        params={"token": PARTNER},
        json={"target_status": "partner_accepted"},
    )

    assert response.status_code == 200
    assert response.json()["status"] == "partner_accepted"
    detail = client.get("/bookings/bk-1", params={"token": PARTNER}).json()
    assert detail["booking"]["status"] == "partner_accepted"


def test_driver_cannot_accept(client, seed):
    seed(booking_row())

    response = client.post(
        "/bookings/bk-1/transition",
        params={"token": DRIVER},
        json={"target_status": "partner_accepted"},
    )

    assert response.status_code == 409
    assert response.json()["kind"] == "invalid_transition"


def test_advance_activates_once_paid(client, seed):
    seed(
        booking_row(status="partner_accepted"),
        PaymentEventRow(
            id="ev-1", booking_id="bk-1", amount=800.0, kind="charge",
            status="succeeded", occurred_at=NOW - timedelta(hours=1),
        ),
    )

    readiness = client.get("/bookings/bk-1/readiness", params={"token": PARTNER}).json()
    response = client.post("/bookings/bk-1/advance", params={"token": PARTNER})

    assert readiness["ready"] is True
    assert response.json() == {"booking_id": "bk-1", "status": "active", "changed": True}


def test_drivers_cannot_advance(client, seed):
    seed(booking_row(status="partner_accepted"))

    assert client.post("/bookings/bk-1/advance", params={"token": DRIVER}).status_code == 403


def test_payments_endpoint_reports_summary(client, seed):
    seed(
        booking_row(status="active"),
        PaymentEventRow(
            id="ev-1", booking_id="bk-1", amount=500.0, kind="charge",
            status="paid", occurred_at=NOW - timedelta(days=1),
        ),
    )

    summary = client.get("/bookings/bk-1/payments", params={"token": DRIVER}).json()

    assert summary["total_paid"] == 500
    assert summary["amount_outstanding"] == 300
    assert summary["payment_status"] == "pending"


def test_return_request_flow(client, seed):
    seed(booking_row(status="active"))

    created = client.post(
        "/bookings/bk-1/return-request", params={"token": DRIVER}, json={"reason": "relocating"}
    )
    duplicate = client.post(
        "/bookings/bk-1/return-request", params={"token": DRIVER}, json={"reason": "again"}
    )
    resolved = client.post(
        "/bookings/bk-1/return-request/resolve", params={"token": PARTNER}, json={"decision": "approved"}
    )
    completed = client.post(
        "/bookings/bk-1/transition", params={"token": PARTNER}, json={"target_status": "completed"}
    )

    assert created.status_code == 200
    assert created.json()["return_request"]["status"] == "pending"
    assert created.json()["notifications"][0]["kind"] == "return_requested"
    assert duplicate.status_code == 409
    assert duplicate.json()["kind"] == "duplicate_request"
    assert resolved.json()["return_request"]["status"] == "approved"
    assert completed.json()["status"] == "completed"


def test_return_request_needs_an_active_booking(client, seed):
    seed(booking_row())

    response = client.post(
        "/bookings/bk-1/return-request", params={"token": DRIVER}, json={"reason": "relocating"}
    )

    assert response.status_code == 409
    assert response.json()["kind"] == "invalid_state"


def test_issue_report_and_resolve(client, seed):
    seed(booking_row(status="active"))

    reported = client.post(
        "/bookings/bk-1/issues",
        params={"token": DRIVER},
        json={"severity": "critical", "description": "Engine warning light", "issue_type": "mechanical"},
    ).json()
    issue_id = reported["issue"]["id"]

    resolved = client.post(
        f"/bookings/bk-1/issues/{issue_id}/resolve", params={"token": PARTNER}, json={"notes": "Sensor replaced"}
    ).json()
    detail = client.get("/bookings/bk-1", params={"token": ADMIN}).json()

    assert [intent["kind"] for intent in reported["notifications"]] == ["issue_reported", "critical_issue_alert"]
    assert resolved["status"] == "resolved"
    assert resolved["resolved_by"] == "ptn-1"
    assert detail["open_issue_count"] == 0


def test_blank_issue_description_is_a_bad_request(client, seed):
    seed(booking_row(status="active"))

    response = client.post(
        "/bookings/bk-1/issues", params={"token": DRIVER}, json={"severity": "low", "description": "  "}
    )

    assert response.status_code == 400
    assert response.json()["kind"] == "invalid_request"


def test_new_schedule_replaces_the_old_one(client, seed):
    seed(booking_row(status="active"))

    client.post(
        "/bookings/bk-1/schedule",
        params={"token": PARTNER},
        json={"amount_per_cycle": 150.0, "cycle_end": (NOW + timedelta(days=3)).isoformat()},
    )
    summary = client.post(
        "/bookings/bk-1/schedule",
        params={"token": PARTNER},
        json={"amount_per_cycle": 200.0, "cycle_end": (NOW + timedelta(days=7)).isoformat()},
    ).json()

    assert summary["is_recurring"] is True
    assert summary["weekly_amount"] == 200
    assert summary["days_until_next_payment"] == 7
    assert summary["next_payment_message"] == "next week"


def test_deadline_sweep_is_admin_only(client, seed):
    seed(
        booking_row(approval_deadline=NOW - timedelta(hours=1)),
        booking_row(id="bk-2", approval_deadline=NOW + timedelta(hours=5)),
    )

    forbidden = client.post("/bookings/check-deadlines", params={"token": PARTNER})
    swept = client.post("/bookings/check-deadlines", params={"token": ADMIN}).json()

    assert forbidden.status_code == 403
    assert swept["rejected"] == ["bk-1"]
    assert swept["notifications"][0]["kind"] == "booking_auto_rejected"


def test_stats(client, seed):
    seed(
        booking_row(status="active"),
        booking_row(id="bk-2", approval_deadline=NOW + timedelta(hours=2)),
    )

    stats = client.get("/bookings/stats", params={"token": ADMIN}).json()

    assert stats["total"] == 2
    assert stats["active"] == 1
    assert stats["pending"] == 1
    assert stats["urgent"] == 1


def test_document_expiry(client, seed):
    seed(
        DocumentRow(id="doc-1", owner_id="drv-1", document_type="licence", expiry_date=date(2025, 3, 1)),
        DocumentRow(id="doc-2", owner_id="drv-1", document_type="insurance", expiry_date=date(2025, 3, 25)),
        DocumentRow(id="doc-3", owner_id="drv-2", document_type="licence", expiry_date=date(2024, 1, 1)),
    )

    body = client.get("/documents/expiry", params={"token": DRIVER}).json()

    assert [view["document"]["id"] for view in body["documents"]] == ["doc-1", "doc-2"]
    assert body["expired"] == 1
    assert body["expiring_soon"] == 1


def test_unknown_sort_order_is_a_bad_request(client):
    response = client.get("/bookings/", params={"token": ADMIN, "sort_order": "sideways"})

    assert response.status_code == 400


def test_listing_accepts_a_one_sided_date_range(client, seed):
    seed(
        booking_row(),
        booking_row(id="bk-2", start_date=NOW + timedelta(days=10), end_date=NOW + timedelta(days=40)),
    )

    later = client.get(
        "/bookings/", params={"token": ADMIN, "start": (NOW + timedelta(days=5)).isoformat()}
    ).json()
    earlier = client.get(
        "/bookings/", params={"token": ADMIN, "end": (NOW + timedelta(days=5)).isoformat()}
    ).json()

    assert [item["booking"]["id"] for item in later] == ["bk-2"]
    assert [item["booking"]["id"] for item in earlier] == ["bk-1"]


def test_issues_reported_together_keep_report_order(client, seed):
    seed(booking_row(status="active"))

    reported = []
    for description in ("Scratch", "Flat tyre", "Wiper broken", "Mirror loose"):
        body = client.post(
            "/bookings/bk-1/issues",
            params={"token": DRIVER},
            json={"severity": "low", "description": description},
        ).json()
        reported.append(body["issue"]["id"])

    detail = client.get("/bookings/bk-1", params={"token": DRIVER}).json()

    assert [issue["id"] for issue in detail["booking"]["issues"]] == reported
