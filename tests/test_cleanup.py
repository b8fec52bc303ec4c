"""Tests for the daily cleanup of finished fests and events.

Run with: pytest tests/test_cleanup.py -v
"""

from datetime import date

from cleanup import run_cleanup
from models import Event, Fest, Registration
from storage import EVENT_IMAGES_BUCKET, FEST_IMAGES_BUCKET

TODAY = date(2030, 3, 4)


def test_removes_fests_and_events_that_ended_yesterday(db, storage, make_fest, make_event):
    make_fest("tech-fest-2030", closing_date="2030-03-03",
              fest_image_url=storage.put(FEST_IMAGES_BUCKET, "tech-fest-2030/cover.png"))
    make_fest("spring-fest", closing_date="2030-04-10")
    make_event("hackathon", fest="tech-fest-2030", end_date="2030-03-10",
               event_image_url=storage.put(EVENT_IMAGES_BUCKET, "hackathon/poster.png"))
    make_event("ai-workshop", end_date="2030-03-03",
               event_image_url=storage.put(EVENT_IMAGES_BUCKET, "ai-workshop/poster.png"))
    make_event("ml-bootcamp", end_date="2030-03-05")
    db.add_all([
        Registration(event_id="hackathon", register_number="2341234"),
        Registration(event_id="ai-workshop", register_number="2341234"),
        Registration(event_id="ml-bootcamp", register_number="2341234"),
    ])
    db.commit()

    result = run_cleanup(db, storage, today=TODAY)

    assert result.fests_deleted == 1
    assert result.events_deleted == 2
    assert result.files_attempted == 3
    assert storage.objects == {}
    db.expire_all()
    assert [f.fest_id for f in db.query(Fest).all()] == ["spring-fest"]
    assert [e.event_id for e in db.query(Event).all()] == ["ml-bootcamp"]
    assert [r.event_id for r in db.query(Registration).all()] == ["ml-bootcamp"]


def test_fest_events_are_not_cleaned_up_by_their_own_end_date(db, storage, make_fest, make_event):
    make_fest("spring-fest", closing_date="2030-04-10")
    make_event("opening-night", fest="spring-fest", end_date="2030-03-03")

    result = run_cleanup(db, storage, today=TODAY)

    assert result.events_deleted == 0
    db.expire_all()
    assert db.query(Event).count() == 1


def test_nothing_to_clean(db, storage, make_event):
    make_event("ai-workshop", end_date="2030-03-10")
    result = run_cleanup(db, storage, today=TODAY)
    assert (result.fests_deleted, result.events_deleted, result.files_attempted) == (0, 0, 0)
    assert storage.calls == []


def test_storage_failure_does_not_undo_row_deletes(db, storage, make_event):
    make_event("ai-workshop", end_date="2030-03-03",
               event_image_url=storage.put(EVENT_IMAGES_BUCKET, "ai-workshop/poster.png"))
    storage.fail_removals = True

    result = run_cleanup(db, storage, today=TODAY)

    assert result.events_deleted == 1
    db.expire_all()
    assert db.query(Event).count() == 0


class TestCleanupEndpoint:
    def test_requires_cron_secret(self, client):
        assert client.post("/api/cleanup").status_code == 401
        assert client.post("/api/cleanup", headers={"Authorization": "Bearer wrong"}).status_code == 401

    def test_runs_with_cron_secret(self, client):
        response = client.post("/api/cleanup", headers={"Authorization": "Bearer test-cron-secret"})
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Cleanup completed."
        assert body["fests_deleted"] == 0
