"""Tests for event registrations and registration lookups.

Run with: pytest tests/test_registrations.py -v
"""

from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from models import Registration
from services.registration_service import registration_closed


def team(*numbers, event_id="ai-workshop", name=None):
    body = {"eventId": event_id, "teammates": [{"registerNumber": n} for n in numbers]}
    if name:
        body["teamName"] = name
    return body


class TestRegister:
    def test_individual_registration(self, client, make_event):
        make_event("ai-workshop")
        response = client.post("/api/register", json=team("2341234"))

        assert response.status_code == 201
        [row] = response.json()["data"]
        assert row["event_id"] == "ai-workshop"
        assert row["register_number"] == "2341234"

    def test_team_registration_accepts_numeric_register_numbers(self, client, db, make_event):
        make_event("ai-workshop", participants_per_team=3)
        response = client.post("/api/register", json=team(2341234, 2341235, name="Byte Me"))

        assert response.status_code == 201
        assert db.query(Registration).filter(Registration.teamname == "Byte Me").count() == 2

    def test_duplicate_registration_conflicts(self, client, db, make_event):
        make_event("ai-workshop")
        assert client.post("/api/register", json=team("2341234")).status_code == 201

        response = client.post("/api/register", json=team("2341235", "2341234"))

        assert response.status_code == 409
        db.expire_all()
        assert db.query(Registration).count() == 1

    def test_same_number_twice_in_team(self, client, make_event):
        make_event("ai-workshop")
        assert client.post("/api/register", json=team("2341234", "2341234")).status_code == 400

    @pytest.mark.parametrize("number", ["123", "12345678", "abcdefg", None])
    def test_invalid_register_number(self, client, make_event, number):
        make_event("ai-workshop")
        assert client.post("/api/register", json=team(number)).status_code == 400

    def test_missing_teammates(self, client):
        response = client.post("/api/register", json={"eventId": "ai-workshop", "teammates": []})
        assert response.status_code == 400

    def test_unknown_event(self, client):
        assert client.post("/api/register", json=team("2341234", event_id="nope")).status_code == 404

    def test_closed_registration(self, client, make_event):
        make_event("ai-workshop", registration_deadline="2020-01-01")
        response = client.post("/api/register", json=team("2341234"))
        assert response.status_code == 400
        assert "closed" in response.json()["error"]

    def test_team_too_large(self, client, make_event):
        make_event("ai-workshop", participants_per_team=2)
        response = client.post("/api/register", json=team("2341234", "2341235", "2341236"))
        assert response.status_code == 400


class TestRegistrationClosed:
    NOW = datetime(2030, 2, 25, 18, 0, tzinfo=timezone.utc)

    def _event(self, deadline):
        return SimpleNamespace(event_id="ai-workshop", registration_deadline=deadline)

    def test_date_deadline_open_through_the_day(self):
        assert registration_closed(self._event("2030-02-25"), self.NOW) is False
        assert registration_closed(self._event("2030-02-24"), self.NOW) is True

    def test_timestamp_deadline(self):
        assert registration_closed(self._event("2030-02-25T17:59:59+00:00"), self.NOW) is True
        assert registration_closed(self._event("2030-02-25T18:00:01Z"), self.NOW) is False

    def test_naive_timestamp_is_utc(self):
        assert registration_closed(self._event("2030-02-25T17:00:00"), self.NOW) is True

    def test_unparseable_deadline_stays_open(self):
        assert registration_closed(self._event("next friday"), self.NOW) is False


class TestLookups:
    def test_participants_for_event(self, client, db, make_user, make_event):
        make_user("jane@college.edu", is_organiser=False, register_number="2341234")
        make_user("john@college.edu", is_organiser=False, register_number="2341235")
        make_event("ai-workshop")
        db.add(Registration(event_id="ai-workshop", register_number="2341234"))
        db.commit()

        response = client.get("/api/registrations", params={"event_id": "ai-workshop"})

        assert response.status_code == 200
        assert [u["email"] for u in response.json()["users"]] == ["jane@college.edu"]

    def test_participants_requires_event_id(self, client):
        assert client.get("/api/registrations").status_code == 400

    def test_registered_event_ids(self, client, db, make_event):
        make_event("ai-workshop")
        make_event("ml-bootcamp")
        db.add_all([
            Registration(event_id="ai-workshop", register_number="2341234"),
            Registration(event_id="ml-bootcamp", register_number="2341234"),
        ])
        db.commit()

        response = client.get("/api/registrations/2341234")

        assert response.status_code == 200
        assert sorted(response.json()["registeredEventIds"]) == ["ai-workshop", "ml-bootcamp"]

    def test_registered_events_summary(self, client, db, make_event):
        make_event("ai-workshop")
        db.add(Registration(event_id="ai-workshop", register_number="2341234"))
        db.commit()

        response = client.get("/api/registrations/user/2341234/events")

        assert response.json()["events"] == [
            {"id": "ai-workshop", "name": "Ai Workshop", "date": "2030-03-01", "department": "CSE"}
        ]

    def test_lookup_rejects_bad_register_number(self, client):
        assert client.get("/api/registrations/12ab").status_code == 400
