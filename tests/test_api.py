import json

import pytest
from fastapi.testclient import TestClient

from app.auth import get_current_user
from app.domain.users.schemas import UserProfile
from app.firebase import get_claims_provider, get_push_sender, get_store
from app.main import app
from app.routes.upload import get_object_storage
from app.shared.streaming import event_stream
from app.store import Subscription
from conftest import seed_partner, seed_service, seed_user, tomorrow_at


class SignedIn:
    """Switchable current user for dependency overrides"""

    def __init__(self):
        self.user = None

    def as_(self, uid, role="customer"):
        self.user = UserProfile(uid=uid, email=f"{uid}@example.com", displayName=uid.title(), role=role)

    async def __call__(self):
        return self.user


@pytest.fixture
def signed_in():
    return SignedIn()


@pytest.fixture
def client(store, claims, push, object_storage, signed_in):
    seed_user(store, "cust1")
    seed_user(store, "partner1", role="partner")
    seed_user(store, "root", role="admin")
    seed_service(store, "svc1", price=500)
    seed_partner(store, "partner1")

    app.dependency_overrides[get_store] = lambda: store
    app.dependency_overrides[get_claims_provider] = lambda: claims
    app.dependency_overrides[get_push_sender] = lambda: push
    app.dependency_overrides[get_object_storage] = lambda: object_storage
    app.dependency_overrides[get_current_user] = signed_in
    yield TestClient(app)
    app.dependency_overrides.clear()


def booking_body(**overrides):
    body = {
        "serviceId": "svc1",
        "partnerId": "partner1",
        "type": "scheduled",
        "scheduledTime": tomorrow_at(10).isoformat(),
        "location": {"street": "12 MG Road", "city": "Bengaluru", "zipCode": "560001"},
        "description": "Fan making noise",
    }
    body.update(overrides)
    return body


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_missing_token_is_401(store):
    app.dependency_overrides[get_store] = lambda: store
    try:
        response = TestClient(app).get("/users/me")
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 401
    assert response.json()["kind"] == "auth"


def test_public_catalog(client):
    services = client.get("/services").json()
    assert [s["id"] for s in services] == ["svc1"]

    categories = client.get("/services/categories").json()
    assert {"value": "car", "displayName": "Car"} in categories


def test_partner_quotes(client):
    response = client.get("/partners/quotes", params={"service_id": "svc1", "lat": 12.9716, "lng": 77.5946})

    assert response.status_code == 200
    quote = response.json()[0]
    assert quote["partner"]["id"] == "partner1"
    assert quote["totalAmount"] == 500
    assert quote["formattedDistance"] == "0 m"


def test_half_a_location_is_a_bad_request(client):
    response = client.get("/partners/quotes", params={"service_id": "svc1", "lat": 12.9})

    assert response.status_code == 400
    assert "lat and lng" in response.json()["detail"]


def test_booking_flow(client, signed_in, push):
    signed_in.as_("cust1")
    created = client.post("/bookings", json=booking_body())
    assert created.status_code == 201
    booking_id = created.json()["id"]

    conflict = client.post("/bookings", json=booking_body(scheduledTime=tomorrow_at(11).isoformat()))
    assert conflict.status_code == 409
    assert conflict.json() == {
        "detail": "This time slot is no longer available. Please choose another time.",
        "code": "already-exists",
        "kind": "conflict",
    }

    # Customers cannot move a booking through the partner workflow
    forbidden = client.patch(f"/bookings/{booking_id}/status", json={"status": "accepted"})
    assert forbidden.status_code == 403

    signed_in.as_("partner1", role="partner")
    accepted = client.patch(f"/bookings/{booking_id}/status", json={"status": "accepted"})
    assert accepted.json()["status"] == "accepted"

    skipped = client.patch(f"/bookings/{booking_id}/status", json={"status": "completed"})
    assert skipped.status_code == 409
    assert skipped.json()["code"] == "failed-precondition"

    signed_in.as_("cust1")
    page = client.get("/bookings/me").json()
    assert [b["id"] for b in page["bookings"]] == [booking_id]
    assert page["nextCursor"] is None

    cancelled = client.post(f"/bookings/{booking_id}/cancel")
    assert cancelled.json()["status"] == "cancelled"
    assert cancelled.json()["cancellationReason"] == "Cancelled by customer"


def test_booking_is_private(client, signed_in):
    signed_in.as_("cust1")
    booking_id = client.post("/bookings", json=booking_body()).json()["id"]

    signed_in.as_("someone")
    assert client.get(f"/bookings/{booking_id}").status_code == 403

    signed_in.as_("root", role="admin")
    assert client.get(f"/bookings/{booking_id}").status_code == 200
    assert client.get("/bookings/missing").status_code == 404


def test_admin_only_routes(client, signed_in):
    signed_in.as_("cust1")
    assert client.get("/bookings/stats").status_code == 403

    signed_in.as_("root", role="admin")
    assert client.get("/bookings/stats").json()["total"] == 0


def test_availability_is_public(client):
    response = client.get(
        "/bookings/availability", params={"partner_id": "partner1", "date": tomorrow_at(0).date().isoformat()}
    )

    assert response.status_code == 200
    assert [slot["time"] for slot in response.json()] == ["09:00", "11:00", "14:00", "16:00", "18:00"]


def test_validation_errors_are_422(client, signed_in):
    signed_in.as_("cust1")
    response = client.post("/reviews", json={"bookingId": "b1", "rating": 6})

    assert response.status_code == 422
    assert response.json()["detail"][0]["loc"][-1] == "rating"


def test_role_update_rules(client, signed_in, claims):
    signed_in.as_("cust1")
    assert client.put("/users/partner1/role", json={"role": "admin"}).status_code == 403

    signed_in.as_("root", role="admin")
    demote_self = client.put("/users/root/role", json={"role": "customer"})
    assert demote_self.status_code == 403
    assert demote_self.json()["code"] == "self-demotion"

    promoted = client.put("/users/cust1/role", json={"role": "partner"})
    assert promoted.status_code == 200
    assert promoted.json()["claims"] == {"customer": False, "partner": True, "admin": False}
    assert claims.calls == [("cust1", {"customer": False, "partner": True, "admin": False})]


def test_booking_image_upload(client, signed_in, store, object_storage):
    signed_in.as_("cust1")
    booking_id = client.post("/bookings", json=booking_body()).json()["id"]

    response = client.post(
        f"/upload/bookings/{booking_id}/images",
        files=[("files", ("leak one.png", b"png-bytes", "image/png")), ("files", ("b.jpg", b"jpg", "image/jpeg"))],
    )

    assert response.status_code == 200
    urls = response.json()["urls"]
    assert len(urls) == 2
    assert urls[0].endswith("-0-leak_one.png")
    assert store.raw("bookings", booking_id)["images"] == urls


def test_cancelled_booking_rejects_image_upload(client, signed_in, store, object_storage):
    signed_in.as_("cust1")
    booking_id = client.post("/bookings", json=booking_body()).json()["id"]
    client.post(f"/bookings/{booking_id}/cancel")

    response = client.post(
        f"/upload/bookings/{booking_id}/images", files=[("files", ("a.png", b"png-bytes", "image/png"))]
    )

    assert response.status_code == 409
    assert response.json()["code"] == "failed-precondition"
    assert object_storage.saved == []
    assert store.raw("bookings", booking_id).get("images", []) == []


def test_non_image_upload_is_rejected(client, signed_in, object_storage):
    signed_in.as_("cust1")

    response = client.post(
        "/upload/image", params={"folder": "profiles"}, files={"file": ("notes.txt", b"hi", "text/plain")}
    )

    assert response.status_code == 400
    assert response.json()["field"] == "file"
    assert object_storage.saved == []


def test_catalog_folders_are_admin_only(client, signed_in):
    signed_in.as_("cust1")

    response = client.post("/upload/image", params={"folder": "services"}, files={"file": ("a.png", b"x", "image/png")})

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_event_stream_relays_snapshots_then_closes():
    subscription = Subscription()
    subscription.push({"status": "pending"})
    stream = event_stream(subscription)

    first = await stream.__anext__()
    assert first == 'data: {"status": "pending"}\n\n'

    await stream.aclose()
    assert subscription.closed


@pytest.mark.asyncio
async def test_event_stream_reports_failure():
    subscription = Subscription()
    subscription.fail(RuntimeError("listen failed"))

    events = [event async for event in event_stream(subscription)]

    assert len(events) == 1
    assert events[0].startswith("event: error\n")
    payload = json.loads(events[0].split("data: ", 1)[1])
    assert payload["kind"] == "unknown"
