"""Tests for user sync and lookups.

Run with: pytest tests/test_users.py -v
"""

import pytest

from routers.users import split_register_number


@pytest.mark.parametrize(
    "name,register_number,expected",
    [
        ("Jane Doe 2341234", "", ("Jane Doe", "2341234")),
        ("Jane Doe", "", ("Jane Doe", "")),
        ("Jane Doe 2341234", "2349999", ("Jane Doe 2341234", "2349999")),
        ("2341234", "", ("2341234", "")),
    ],
)
def test_split_register_number(name, register_number, expected):
    assert split_register_number(name, register_number) == expected


def test_sync_creates_then_returns_existing_user(client):
    body = {"user": {"email": "jane@college.edu", "name": "Jane Doe 2341234"}}

    created = client.post("/api/users", json=body)
    assert created.status_code == 201
    assert created.json()["isNew"] is True
    user = created.json()["user"]
    assert user["name"] == "Jane Doe"
    assert user["register_number"] == "2341234"
    assert user["is_organiser"] is False

    again = client.post("/api/users", json=body)
    assert again.status_code == 200
    assert again.json()["isNew"] is False
    assert again.json()["user"]["id"] == user["id"]


def test_sync_reads_profile_from_metadata(client):
    body = {
        "user": {
            "email": "jane@college.edu",
            "user_metadata": {"full_name": "Jane Doe", "picture": "https://img.example/jane.png"},
        }
    }
    response = client.post("/api/users", json=body)

    assert response.status_code == 201
    assert response.json()["user"]["name"] == "Jane Doe"
    assert response.json()["user"]["avatar_url"] == "https://img.example/jane.png"


def test_sync_rejects_invalid_email(client):
    response = client.post("/api/users", json={"user": {"email": "nope"}})
    assert response.status_code == 400


def test_get_user(client, make_user):
    make_user("jane@college.edu", is_organiser=False)
    response = client.get("/api/users/jane@college.edu")
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "jane@college.edu"


def test_get_missing_user(client):
    response = client.get("/api/users/ghost@college.edu")
    assert response.status_code == 404
    assert response.json() == {"error": "User not found"}


def test_list_users(client, make_user):
    make_user("a@college.edu")
    make_user("b@college.edu")
    assert [u["email"] for u in client.get("/api/users").json()["users"]] == ["a@college.edu", "b@college.edu"]
