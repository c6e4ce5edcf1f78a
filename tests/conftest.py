from datetime import datetime, time, timedelta

import pytest
from sqlalchemy.orm import sessionmaker

from rfidclock.badges import BadgeRegistry
from rfidclock.clock import BusinessClock
from rfidclock.database import Base, make_engine
from rfidclock.errors import ChannelFetchFailed
from rfidclock.lateness import ShiftConfiguration
from rfidclock.ledger import AttendanceLedger
from rfidclock.models import Worker
from rfidclock.resolver import SmartEventResolver


class FakeClock(BusinessClock):
    """Business clock frozen at a given moment, moved by hand."""

    def __init__(self, current):
        super().__init__("UTC")
        self.current = current

    def now(self):
        return self.current

    def advance(self, **kwargs):
        self.current = self.current + timedelta(**kwargs)


class FakeMailbox:
    """In-memory stand-in for the device store."""

    def __init__(self):
        self.entries = {}
        self.failing = set()
        self.fetches = []
        self.values = {}
        self.writes = []

    def push(self, channel, key, payload):
        self.entries.setdefault(channel, {})[key] = payload

    def fetch_tail(self, channel, limit):
        self.fetches.append((channel, limit))
        if channel in self.failing:
            raise ChannelFetchFailed(channel, f"Timeout reading {channel}")
        return sorted(self.entries.get(channel, {}).items())[-limit:]

    def read(self, path):
        return self.values.get(path)

    def write(self, path, value):
        self.writes.append((path, value))
        self.values[path] = value


@pytest.fixture
def engine(tmp_path):
    eng = make_engine(f"sqlite:///{tmp_path / 'test.db'}")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


@pytest.fixture
def clock():
    # A Monday, at the start of the day shift
    return FakeClock(datetime(2024, 3, 4, 8, 0))


@pytest.fixture
def day_shift():
    return ShiftConfiguration(start=time(8, 0), end=time(17, 0), tolerance_minutes=15, early_entry_minutes=60)


@pytest.fixture
def night_shift():
    return ShiftConfiguration(start=time(22, 0), end=time(6, 0), tolerance_minutes=10, early_entry_minutes=60)


@pytest.fixture
def make_worker(session_factory):
    counter = {"n": 0}

    def _make(first_name="Ana", last_name="Quispe", sensor_id=None):
        counter["n"] += 1
        db = session_factory()
        try:
            worker = Worker(
                first_name=first_name,
                last_name=last_name,
                document_number=f"DOC{counter['n']:05d}",
                sensor_id=sensor_id,
            )
            db.add(worker)
            db.commit()
            return worker.id
        finally:
            db.close()

    return _make


@pytest.fixture
def badges(session_factory, clock):
    return BadgeRegistry(session_factory, clock)


@pytest.fixture
def ledger(session_factory, clock, day_shift):
    return AttendanceLedger(session_factory, clock, day_shift)


@pytest.fixture
def resolver(badges, ledger):
    return SmartEventResolver(badges, ledger)
