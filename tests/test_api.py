"""
HTTP surface tests, including the registry-person booking scenario:

registry person 3 (no community record yet) books "Gimnasio" (06:00-23:00)
on 2025-04-16 from 07:00 to 09:00, and a second person asking for the same
window is turned away.
"""

import pytest
from fastapi.testclient import TestClient

from condohub.main import app
from condohub.models import CommunityPerson
from condohub.utils.rate_limiter import limiter
from condohub.utils.security import create_access_token

from .conftest import fixed_clock


@pytest.fixture
def client(stores):
    app.state.stores = stores
    app.state.clock = fixed_clock
    limiter.enabled = False
    with TestClient(app) as test_client:
        test_client.headers.update({
            "Authorization": f"Bearer {create_access_token({'sub': 'front-desk'})}"
        })
        yield test_client
    app.state.stores = None
    limiter.enabled = True


@pytest.fixture
def gym(factory):
    return factory.amenity(name="Gimnasio", opening_time="06:00", closing_time="23:00")


@pytest.fixture
def registry_people(factory):
    return [
        factory.registry_person(email=f"vecino{n}@example.com", names=f"Vecino {n}")
        for n in range(1, 5)
    ]


class TestAuthAndHealth:
    def test_live(self, client):
        assert client.get("/health/live").json()["status"] == "alive"

    def test_ready(self, client):
        response = client.get("/health/ready")
        assert response.status_code == 200
        assert set(response.json()["checks"]) == {"community", "registry"}

    def test_api_requires_token(self, client):
        response = client.get("/api/combined/users", headers={"Authorization": ""})
        assert response.status_code == 401

    def test_api_rejects_bad_token(self, client):
        response = client.get("/api/combined/users", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401


class TestCombinedUsers:
    def test_list(self, client, factory, registry_people):
        factory.community_person()
        body = client.get("/api/combined/users").json()

        assert body["success"] is True
        assert len(body["data"]) == 5

    def test_lookup_by_registry_id(self, client, registry_people):
        body = client.get("/api/combined/users/id/3").json()

        assert body["success"] is True
        assert body["data"]["registry"]["email"] == "vecino3@example.com"
        assert body["data"]["community"] is None

    def test_lookup_invalid_identifier(self, client):
        response = client.get("/api/combined/users/id/not-an-id")

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_identifier"

    def test_lookup_unknown(self, client):
        response = client.get("/api/combined/users/id/60d21b4667d0d8992e610c51")

        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    def test_lookup_by_email_in_both_stores(self, client, factory):
        factory.community_person(email="doble@example.com")
        factory.registry_person(email="doble@example.com")

        body = client.get("/api/combined/users/email/DOBLE@example.com").json()

        assert body["message"] == "Person found in both stores"
        assert body["data"]["community"]["origin"] == "community"
        assert body["data"]["registry"]["origin"] == "registry"

    def test_register_then_conflict(self, client):
        payload = {
            "origin": "registry",
            "names": "Luis",
            "last_names": "Perez",
            "email": "luis@example.com",
            "password": "s3cret-pass",
        }
        assert client.post("/api/combined/users", json=payload).status_code == 201

        response = client.post("/api/combined/users", json=payload)
        assert response.status_code == 409
        assert response.json()["error"] == "email_taken"


class TestRegistryPersonBooking:
    def test_books_and_materializes_person(self, client, stores, gym, registry_people):
        response = client.post(
            f"/api/combined/booking/3/{gym.id}",
            json={"date": "2025-04-16", "timeStart": "07:00", "timeEnd": "09:00"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["data"]["grouping_id"] == gym.association_id
        assert body["data"]["time_start"] == "07:00"

        db = stores.community_session()
        try:
            person = db.query(CommunityPerson).filter(CommunityPerson.email == "vecino3@example.com").one()
            assert body["data"]["user_id"] == person.id
            assert person.password == "$2b$12$registryhash"
        finally:
            db.close()

    def test_second_person_same_window_conflicts(self, client, gym, registry_people):
        booking = {"date": "2025-04-16", "timeStart": "07:00", "timeEnd": "09:00"}
        assert client.post(f"/api/combined/booking/3/{gym.id}", json=booking).status_code == 201

        response = client.post(f"/api/combined/booking/4/{gym.id}", json=booking)

        assert response.status_code == 409
        assert response.json() == {
            "success": False,
            "data": None,
            "error": "time_conflict",
            "message": "There is already a booking for this time",
        }

    def test_repeat_booking_reuses_counterpart(self, client, stores, gym, registry_people):
        client.post(f"/api/combined/booking/3/{gym.id}",
                    json={"date": "2025-04-16", "timeStart": "07:00", "timeEnd": "08:00"})
        client.post(f"/api/combined/booking/3/{gym.id}",
                    json={"date": "2025-04-16", "timeStart": "08:00", "timeEnd": "09:00"})

        db = stores.community_session()
        try:
            assert db.query(CommunityPerson).count() == 1
        finally:
            db.close()

    def test_unknown_registry_person(self, client, gym):
        response = client.post(
            f"/api/combined/booking/99/{gym.id}",
            json={"date": "2025-04-16", "timeStart": "07:00", "timeEnd": "09:00"},
        )
        assert response.status_code == 404
        assert response.json()["error"] == "identity_not_found"

    def test_outside_hours(self, client, gym, registry_people):
        response = client.post(
            f"/api/combined/booking/3/{gym.id}",
            json={"date": "2025-04-16", "timeStart": "05:00", "timeEnd": "07:00"},
        )
        assert response.status_code == 422
        assert response.json()["error"] == "outside_hours"


class TestBookingsApi:
    def test_create_get_patch_delete(self, client, factory, gym):
        person = factory.community_person()

        created = client.post("/api/bookings", json={
            "booker": person.id,
            "amenity_id": gym.id,
            "booking_date": "2025-04-16",
            "time_start": "10:00",
            "time_end": "11:00",
        })
        assert created.status_code == 201
        booking_id = created.json()["data"]["id"]

        assert client.get(f"/api/bookings/{booking_id}").json()["data"]["time_end"] == "11:00"

        patched = client.patch(f"/api/bookings/{booking_id}", json={"time_end": "12:00", "notes": "Spinning"})
        assert patched.status_code == 200
        assert patched.json()["data"]["time_end"] == "12:00"
        assert patched.json()["data"]["notes"] == "Spinning"

        bad = client.patch(f"/api/bookings/{booking_id}", json={"time_start": "13:00"})
        assert bad.status_code == 400
        assert bad.json()["error"] == "invalid_time_range"

        assert client.delete(f"/api/bookings/{booking_id}").status_code == 200
        assert client.get(f"/api/bookings/{booking_id}").status_code == 404

    def test_create_by_email(self, client, gym, registry_people):
        response = client.post("/api/bookings", json={
            "booker": "vecino1@example.com",
            "amenity_id": gym.id,
            "date": "2025-04-16",
            "timeStart": "12:00",
            "timeEnd": "13:00",
        })
        assert response.status_code == 201

    def test_date_in_past(self, client, factory, gym):
        person = factory.community_person()
        response = client.post("/api/bookings", json={
            "booker": person.id,
            "amenity_id": gym.id,
            "date": "2025-03-01",
            "time_start": "10:00",
            "time_end": "11:00",
        })
        assert response.status_code == 422
        assert response.json()["error"] == "date_in_past"


class TestMembershipsApi:
    def test_assign_and_remove(self, client, factory):
        person = factory.registry_person()
        unit = factory.registry_unit()

        assigned = client.post(f"/api/registry/users/{person.id}/units/{unit.id}", json={"role": "owner"})
        assert assigned.status_code == 200
        assert assigned.json()["data"]["role"] == "owner"

        removed = client.delete(f"/api/registry/users/{person.id}/units/{unit.id}")
        assert removed.status_code == 200

        again = client.delete(f"/api/registry/users/{person.id}/units/{unit.id}")
        assert again.status_code == 404
        assert again.json()["error"] == "not_assigned"

    def test_assign_unknown_unit(self, client, factory):
        person = factory.registry_person()
        response = client.post(f"/api/registry/users/{person.id}/units/404")

        assert response.status_code == 404
        assert response.json()["error"] == "unit_not_found"

    def test_person_id_beyond_registry_range(self, client, factory):
        unit = factory.registry_unit()

        assigned = client.post(f"/api/registry/users/100000000000000000000/units/{unit.id}")
        assert assigned.status_code == 404
        assert assigned.json()["error"] == "person_not_found"

        removed = client.delete(f"/api/registry/users/100000000000000000000/units/{unit.id}")
        assert removed.status_code == 404
        assert removed.json()["error"] == "not_assigned"
