from datetime import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from pika.api.routes import get_extraction_cache, get_llm_runner
from pika.ingest.llm import LlmProvider, LlmResult
from pika.main import app
from pika.models.entities import Assignment, AssignmentType, FocusWindow, PlannerSettings
from pika.storage.cache import ExtractionCache
from pika.storage.database import Base, get_db


# Monday 2026-10-19, 08:00 local. Horizon runs Mon 19th .. Sun 25th.
MONDAY_MORNING = datetime(2026, 10, 19, 8, 0)


def make_assignment(id, due_date, hours, name=None, type=AssignmentType.HOMEWORK, weight=10.0, score=None):
    return Assignment(
        id=id,
        name=name or id,
        type=type,
        weight=weight,
        score=score,
        due_date=due_date,
        estimated_hours=hours,
    )


@pytest.fixture
def now():
    return MONDAY_MORNING


@pytest.fixture
def weekday_evenings():
    """Mon-Fri 18:00-20:00, 60-minute sessions: two slots per weekday."""
    windows = {d: (FocusWindow("18:00", "20:00"),) for d in range(1, 6)}
    return PlannerSettings(session_minutes=60, focus_windows=windows)


@pytest.fixture
def no_windows():
    return PlannerSettings(session_minutes=60, focus_windows={})


@pytest.fixture
def project_due_friday():
    return make_assignment("proj", "2026-10-23", 10, name="CS Project Milestone", type=AssignmentType.PROJECT)


@pytest.fixture
def mixed_assignments():
    """Scored and unscored work across all three types."""
    return [
        make_assignment("hw1", "2026-10-20", 3, name="Calculus Homework 4", weight=5, score=90),
        make_assignment("proj", "2026-10-23", 10, name="CS Project Milestone", type=AssignmentType.PROJECT, weight=20),
        make_assignment("exam", "2026-10-29", 6, name="Biology Exam 1", type=AssignmentType.EXAM, weight=25, score=80),
    ]


class InMemoryExtractionCache(ExtractionCache):
    """ExtractionCache backed by a dict instead of Redis."""

    def __init__(self):
        self.store = {}
        self.ttl_seconds = 60
        self.healthy = True

    def get(self, text_hash):
        return self.store.get(text_hash)

    def set(self, text_hash, parsed_json):
        self.store[text_hash] = parsed_json

    def delete(self, text_hash):
        self.store.pop(text_hash, None)

    def health_check(self):
        return self.healthy


class FakeLlm:
    """Records calls and returns a canned model reply."""

    def __init__(self, parsed_json):
        self.parsed_json = parsed_json
        self.calls = []

    def __call__(self, provider, text):
        self.calls.append((LlmProvider(provider), text))
        return LlmResult(provider=LlmProvider(provider), raw_text=str(self.parsed_json), parsed_json=self.parsed_json)


@pytest.fixture
def db_session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def extraction_cache():
    return InMemoryExtractionCache()


@pytest.fixture
def fake_llm():
    return FakeLlm([
        {
            "name": "Essay 1",
            "type": "homework",
            "weight": 10,
            "score": None,
            "due_date": "2026-10-22",
            "estimated_hours": 4,
        },
        {
            "name": "Midterm",
            "type": "exam",
            "weight": 30,
            "score": None,
            "due_date": "10/28",
            "estimated_hours": 0,
        },
    ])


@pytest.fixture
def client(db_session_factory, extraction_cache, fake_llm):
    def override_get_db():
        db = db_session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_extraction_cache] = lambda: extraction_cache
    app.dependency_overrides[get_llm_runner] = lambda: fake_llm
    yield TestClient(app)
    app.dependency_overrides.clear()
