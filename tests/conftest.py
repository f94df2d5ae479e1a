import os
import uuid
from datetime import datetime, timedelta, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, create_engine

# Importing the app creates its tables; keep them out of the working directory
os.environ.setdefault("DATABASE_URL", "sqlite://")

from study_dashboard.controller import AppController, ControllerRegistry
from study_dashboard.models import ExamQuestion
from study_dashboard.services.content_service import ContentServiceError
from study_dashboard.storage import KeyValueStore

# ============================================================================
# IN-MEMORY DATABASE FOR TESTING
# ============================================================================

# StaticPool keeps every connection on the same in-memory database
test_engine = create_engine(
    "sqlite:///:memory:",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


@pytest.fixture(scope="session", autouse=True)
def setup_test_db():
    """Create the storage table once per session."""
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def engine():
    return test_engine


@pytest.fixture
def store():
    """A store on a fresh namespace, so tests never see each other's data."""
    return KeyValueStore(test_engine, f"test-{uuid.uuid4().hex}")


class FakeClock:
    """Deterministic clock; every call advances one second."""

    def __init__(self, start=None):
        self.now = start or datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)

    def __call__(self):
        current = self.now
        self.now = current + timedelta(seconds=1)
        return current


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def controller(store, clock):
    controller = AppController(store, clock=clock)
    controller.initialize()
    return controller


# ============================================================================
# CONTENT SERVICE DOUBLE
# ============================================================================


def make_questions(count=3):
    return [
        ExamQuestion(
            question=f"Question {i + 1}?",
            options=["A", "B", "C", "D"],
            correct_answer="B",
        )
        for i in range(count)
    ]


class FakeContentService:
    """Stands in for the Gemini client; records calls and replays canned results."""

    def __init__(self, questions=None, module_text="Overview:\n• First point\nA full sentence."):
        self.questions = questions if questions is not None else make_questions()
        self.module_text = module_text
        self.error = None
        self.exam_calls = 0
        self.module_titles = []

    async def generate_exam(self):
        self.exam_calls += 1
        if self.error is not None:
            raise self.error
        return list(self.questions)

    async def generate_module_content(self, title):
        self.module_titles.append(title)
        if self.error is not None:
            raise self.error
        return self.module_text


@pytest.fixture
def content_service():
    return FakeContentService()


@pytest.fixture
def failing_content_service():
    service = FakeContentService()
    service.error = ContentServiceError("The content service returned HTTP 503. Please try again.")
    return service


# ============================================================================
# FASTAPI APP & TEST CLIENT
# ============================================================================


@pytest.fixture
def registry(clock):
    return ControllerRegistry(test_engine, clock=clock)


@pytest.fixture
def client(registry, content_service):
    """Test client wired to the in-memory store and the fake content service.

    Not used as a context manager, so the startup hook (which creates the
    on-disk database) never runs.
    """
    from study_dashboard.main import app

    original_registry = app.state.registry
    original_service = app.state.content_service
    app.state.registry = registry
    app.state.content_service = content_service

    yield TestClient(app)

    app.state.registry = original_registry
    app.state.content_service = original_service


def register(client, email, password="secret123"):
    return client.post(
        "/auth/register",
        data={"email": email, "password": password, "confirm_password": password},
    )


def login(client, email, password="secret123"):
    return client.post("/auth/login", data={"email": email, "password": password})


# ============================================================================
# PYTEST HOOKS FOR TEST SUMMARY
# ============================================================================

test_results = {"total": 0, "passed": 0, "failed": 0}


@pytest.hookimpl(tryfirst=True, hookwrapper=True)
def pytest_runtest_makereport(item, call):
    """Count outcomes of the test call phase."""
    outcome = yield
    rep = outcome.get_result()
    if rep.when == "call":
        test_results["total"] += 1
        if rep.passed:
            test_results["passed"] += 1
        elif rep.failed:
            test_results["failed"] += 1


def pytest_sessionfinish(session, exitstatus):
    total = test_results["total"]
    print("\n" + "=" * 70)
    print("TEST SUMMARY")
    print("=" * 70)
    print(f"Passed:       {test_results['passed']} / {total}")
    print(f"Failed:       {test_results['failed']}")
    print("=" * 70)
