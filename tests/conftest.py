"""Shared fixtures: both storage backends and an API client over a fresh app."""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient

from studysphere.core.config import Settings
from studysphere.main import create_app
from studysphere.models.schemas import (
    InsertDiscussionPost,
    InsertPaper,
    InsertStudyGroup,
    InsertStudySession,
    InsertUser,
)
from studysphere.storage.database import DatabaseStorage
from studysphere.storage.memory import MemStorage


@pytest.fixture(params=["memory", "database"])
def storage(request):
    if request.param == "memory":
        store = MemStorage()
    else:
        store = DatabaseStorage.from_url("sqlite:///:memory:")
    yield store
    store.close()


def make_user(storage, username="ada", email=None):
    return storage.create_user(InsertUser(
        username=username,
        password="not-a-real-hash",
        email=email or f"{username}@uni.edu",
        display_name=username.title(),
        institution="State University",
    ))


def make_paper(storage, uploader_id=1, **overrides):
    fields = dict(
        uploader_id=uploader_id,
        title="Calculus I Final",
        course="MATH101",
        year=2023,
        institution="State University",
        file_url="/uploads/calc.pdf",
    )
    fields.update(overrides)
    return storage.create_paper(InsertPaper(**fields))


def make_post(storage, author_id=1, **overrides):
    fields = dict(author_id=author_id, title="Limits", content="How do limits work?", course="MATH101")
    fields.update(overrides)
    return storage.create_discussion_post(InsertDiscussionPost(**fields))


def make_group(storage, creator_id=1, **overrides):
    fields = dict(creator_id=creator_id, name="Calc crew", course="MATH101")
    fields.update(overrides)
    return storage.create_study_group(InsertStudyGroup(**fields))


def make_session(storage, group_id, created_by=1, starts_in=timedelta(days=1), title="Review"):
    start = datetime.now(timezone.utc) + starts_in
    return storage.create_study_session(InsertStudySession(
        group_id=group_id,
        created_by=created_by,
        title=title,
        start_time=start,
        end_time=start + timedelta(hours=2),
    ))


# ---------------------------------------------------------------------------
# API
# ---------------------------------------------------------------------------

@pytest.fixture
def app():
    settings = Settings(BCRYPT_ROUNDS=4, LOG_LEVEL="WARNING", STORAGE_BACKEND="memory")
    return create_app(settings=settings, storage=MemStorage())


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def other_client(app):
    with TestClient(app) as c:
        yield c


def register(client, username="ada", password="correct-horse", email=None):
    resp = client.post("/api/register", json={
        "username": username,
        "password": password,
        "email": email or f"{username}@uni.edu",
        "display_name": username.title(),
        "institution": "State University",
    })
    assert resp.status_code == 201, resp.text
    return resp.json()
