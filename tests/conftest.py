import datetime

import pytest

from projects_memory.application.scheduler import ReviewScheduler
from projects_memory.application.stats.store import StatsStore
from projects_memory.domain.errors import StorageReadError, StorageWriteError
from projects_memory.domain.session import SessionContext
from projects_memory.domain.stats.models import Candidate
from projects_memory.infrastructure.adapters.stats.memory_storage import InMemoryStorage

FIXED_NOW = datetime.datetime(2026, 3, 14, 9, 30, tzinfo=datetime.timezone.utc)


class FakeClock:
    """Wall clock advancing one minute per call, starting at FIXED_NOW."""

    def __init__(self, start: datetime.datetime = FIXED_NOW):
        self.now = start

    def __call__(self) -> datetime.datetime:
        current = self.now
        self.now = current + datetime.timedelta(minutes=1)
        return current


def make_candidates(*names: str) -> list[Candidate]:
    return [Candidate(key=f"Projects/{n}.md", display_name=n) for n in names]


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def store(storage):
    return StatsStore(storage, default_score=50.0)


@pytest.fixture
def session():
    return SessionContext()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def scheduler(store, session, clock):
    return ReviewScheduler(
        store,
        session=session,
        rapprochement_factor=0.2,
        rotation_bonus=5.0,
        session_penalty_weight=1.0,
        clock=clock,
    )


@pytest.fixture
def mock_home(tmp_path, monkeypatch):
    """Mocks Path.home() to point to a temp dir."""
    home = tmp_path / "home"
    home.mkdir()

    # Mocking HOME to a temp directory to isolate config/logs
    monkeypatch.setenv("HOME", str(home))
    return home


@pytest.fixture(name="make_candidates")
def make_candidates_fixture():
    return make_candidates


@pytest.fixture
def fixed_now():
    return FIXED_NOW


class FlakyStorage(InMemoryStorage):
    """InMemoryStorage whose reads or writes can be made to fail."""

    def __init__(self, document=None):
        super().__init__(document)
        self.fail_reads = False
        self.fail_writes = False

    def read(self):
        if self.fail_reads:
            raise StorageReadError("disk unavailable")
        return super().read()

    def write(self, document):
        if self.fail_writes:
            raise StorageWriteError("disk full")
        super().write(document)


@pytest.fixture
def flaky_storage():
    return FlakyStorage()
