"""Pytest configuration and shared fixtures."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["SUPABASE_JWT_SECRET"] = "test-jwt-secret"
os.environ["CRON_SECRET"] = "test-cron-secret"

from typing import Dict, List, Tuple

import pytest
from fastapi.testclient import TestClient
from jose import jwt

from database import Base, SessionLocal, engine
from errors import UpstreamStorageError
from main import app
from models import Event, Fest, User
from storage import ObjectStorage, get_storage

JWT_SECRET = "test-jwt-secret"
STORAGE_BASE_URL = "https://project.supabase.co/storage/v1/object/public"


class InMemoryStorage(ObjectStorage):
    """ObjectStorage fake recording every call."""

    def __init__(self) -> None:
        self.objects: Dict[Tuple[str, str], bytes] = {}
        self.calls: List[Tuple] = []
        self.failing_upload_buckets = set()
        self.fail_removals = False

    def upload(self, bucket: str, path: str, data: bytes, content_type: str) -> str:
        self.calls.append(("upload", bucket, path))
        if bucket in self.failing_upload_buckets:
            raise UpstreamStorageError(f"Failed to upload file to {bucket}.")
        self.objects[(bucket, path)] = data
        return self.url_for(bucket, path)

    def remove(self, bucket: str, paths: List[str]) -> None:
        self.calls.append(("remove", bucket, tuple(paths)))
        if self.fail_removals:
            raise RuntimeError("storage unavailable")
        for path in paths:
            self.objects.pop((bucket, path), None)

    def url_for(self, bucket: str, path: str) -> str:
        return f"{STORAGE_BASE_URL}/{bucket}/{path}"

    def put(self, bucket: str, path: str) -> str:
        """Seed an object as if it had been uploaded earlier."""
        self.objects[(bucket, path)] = b"seed"
        return self.url_for(bucket, path)

    def urls(self, bucket: str) -> List[str]:
        return [self.url_for(b, path) for (b, path) in self.objects if b == bucket]


@pytest.fixture(autouse=True)
def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def db():
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def storage():
    fake = InMemoryStorage()
    app.dependency_overrides[get_storage] = lambda: fake
    yield fake
    app.dependency_overrides.pop(get_storage, None)


@pytest.fixture
def client(storage) -> TestClient:
    return TestClient(app)


def token_for(email: str) -> str:
    return jwt.encode(
        {"sub": "00000000-0000-0000-0000-000000000001", "email": email, "aud": "authenticated"},
        JWT_SECRET,
        algorithm="HS256",
    )


def auth(email: str) -> Dict[str, str]:
    return {"Authorization": f"Bearer {token_for(email)}"}


@pytest.fixture
def make_user(db):
    def _make_user(email: str, is_organiser: bool = True, register_number: str = None) -> User:
        user = User(
            email=email,
            name=email.split("@")[0],
            is_organiser=is_organiser,
            register_number=register_number,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
        return user
    return _make_user


@pytest.fixture
def organiser(make_user) -> User:
    return make_user("organiser@college.edu")


@pytest.fixture
def make_event(db):
    def _make_event(event_id: str, created_by: str = "organiser@college.edu", **overrides) -> Event:
        values = dict(
            event_id=event_id,
            title=event_id.replace("-", " ").title(),
            description="An event",
            event_date="2030-03-01",
            category="technical",
            organizing_dept="CSE",
            department_access=["CSE"],
            registration_deadline="2030-02-25",
            venue="Main Auditorium",
            organizer_email=created_by,
            created_by=created_by,
        )
        values.update(overrides)
        event = Event(**values)
        db.add(event)
        db.commit()
        db.refresh(event)
        return event
    return _make_event


@pytest.fixture
def make_fest(db):
    def _make_fest(fest_id: str, created_by: str = "organiser@college.edu", **overrides) -> Fest:
        values = dict(
            fest_id=fest_id,
            fest_title=fest_id.replace("-", " ").title(),
            opening_date="2030-03-01",
            closing_date="2030-03-03",
            description="A fest",
            department_access=["CSE"],
            category="cultural",
            contact_email=created_by,
            contact_phone="9876543210",
            event_heads=[],
            organizing_dept="CSE",
            created_by=created_by,
        )
        values.update(overrides)
        fest = Fest(**values)
        db.add(fest)
        db.commit()
        db.refresh(fest)
        return fest
    return _make_fest
