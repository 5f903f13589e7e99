"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests.
"""
import sys
from pathlib import Path

import pytest
from loguru import logger

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from quiz_engine.config import Settings  # noqa: E402
from quiz_engine.models import OptionItem, Question, QuestionType  # noqa: E402
from quiz_engine.storage import JsonFileBackend, MemoryBackend, PersistentStore  # noqa: E402


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (real file storage)")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)


class FakeClock:
    """Manually advanced time source (seconds since the epoch)."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(autouse=True)
def loguru_to_stderr():
    """Route loguru through a single stderr sink so pytest captures it."""
    logger.remove()
    handler_id = logger.add(sys.stderr, level="DEBUG")
    yield
    logger.remove(handler_id)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def clock():
    """Fake clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def settings(tmp_path):
    """Settings pointing the durable tier at a temporary directory."""
    return Settings(storage_dir=tmp_path / "storage", _env_file=None)


@pytest.fixture
def local_backend(settings):
    """Durable (file) tier."""
    return JsonFileBackend(settings.storage_dir, name="local")


@pytest.fixture
def session_backend():
    """Session (memory) tier."""
    return MemoryBackend(name="session")


@pytest.fixture
def store(local_backend, session_backend, settings, clock):
    """PersistentStore over both tiers with a fake clock."""
    return PersistentStore(
        backends=[local_backend, session_backend],
        settings=settings,
        clock=clock,
    )


@pytest.fixture
def memory_store(settings, clock):
    """PersistentStore over a single memory tier."""
    return PersistentStore(backends=[MemoryBackend(name="session")], settings=settings, clock=clock)


@pytest.fixture
def mcq_questions():
    """Three multiple choice questions."""
    return [
        Question(
            id="q1",
            type=QuestionType.MCQ,
            prompt="Which layer of the OSI model handles routing?",
            options=["Physical", "Data Link", "Network", "Transport"],
            reference_answer="Network",
        ),
        Question(
            id="q2",
            type=QuestionType.MCQ,
            prompt="Which protocol resolves IPv4 addresses to MAC addresses?",
            options=[OptionItem(id="a", text="ARP"), OptionItem(id="b", text="DNS")],
            reference_answer="a",
        ),
        Question(
            id="q3",
            type=QuestionType.MCQ,
            prompt="Default administrative distance of OSPF?",
            options=["90", "110", "120"],
            reference_answer="110",
        ),
    ]


@pytest.fixture
def blanks_question():
    """A fill-in-the-blank question."""
    return Question(
        id="b1",
        type=QuestionType.BLANKS,
        prompt="In Python, everything is an ____.",
        reference_answer="object",
    )


@pytest.fixture
def ordering_question():
    """An ordering question with four steps."""
    return Question(
        id="o1",
        type=QuestionType.ORDERING,
        prompt="Order the TCP handshake and first data segment",
        canonical_order=["syn", "syn-ack", "ack", "data"],
    )
