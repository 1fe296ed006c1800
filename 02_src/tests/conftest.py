"""Pytest configuration and fixtures."""

import sys
from pathlib import Path

import pytest
import pytest_asyncio

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))


@pytest_asyncio.fixture
async def storage():
    """Create in-memory SQLite storage for testing."""
    from logstore.storage import SqliteEventLogStore

    st = SqliteEventLogStore(":memory:")
    await st.init()
    yield st
    await st.close()


@pytest_asyncio.fixture
async def memory_store():
    """Create the in-memory test double."""
    from logstore.storage import InMemoryEventLogStore

    st = InMemoryEventLogStore()
    await st.init()
    yield st
    await st.close()


@pytest_asyncio.fixture(params=["sqlite", "memory"])
async def any_store(request):
    """Every store variant, initialized."""
    from logstore.storage import InMemoryEventLogStore, SqliteEventLogStore

    if request.param == "sqlite":
        st = SqliteEventLogStore(":memory:")
    else:
        st = InMemoryEventLogStore()
    await st.init()
    yield st
    await st.close()


class FakeTimer:
    """Timer handle recorded by FakeScheduler."""

    def __init__(self, delay, callback, args):
        self.delay = delay
        self.callback = callback
        self.args = args
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True

    def fire(self):
        self.fired = True
        self.callback(*self.args)


class FakeScheduler:
    """call_later that only fires when the test says so."""

    def __init__(self):
        self.timers: list[FakeTimer] = []

    def call_later(self, delay, callback, *args):
        timer = FakeTimer(delay, callback, args)
        self.timers.append(timer)
        return timer

    @property
    def armed(self) -> list[FakeTimer]:
        return [t for t in self.timers if not t.cancelled and not t.fired]

    def fire_all(self):
        for timer in self.armed:
            timer.fire()


class RecordingWriter:
    """Partition writer that remembers every append."""

    def __init__(self):
        self.calls: list[tuple[Path, list[str]]] = []
        self.fail_with: Exception | None = None

    async def append(self, path, lines):
        if self.fail_with:
            raise self.fail_with
        self.calls.append((Path(path), list(lines)))


@pytest.fixture
def scheduler():
    """Create a manually driven scheduler."""
    return FakeScheduler()


@pytest.fixture
def recording_writer():
    """Create a writer that records appends."""
    return RecordingWriter()


@pytest.fixture
def mirror_dir(tmp_path):
    """Directory for debug mirror files."""
    path = tmp_path / "mirror"
    path.mkdir()
    return path


@pytest.fixture
def la_zone():
    """The default display zone."""
    from logstore.time_utils import get_zone

    return get_zone("America/Los_Angeles")
