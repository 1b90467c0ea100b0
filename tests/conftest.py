"""Shared fixtures."""

import pytest

from versionfs.blobs.memory import Memory
from versionfs.engine import VersioningEngine
from versionfs.ledger.client import LedgerClient
from versionfs.ledger.local import LocalLedger


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        self.now += 1
        return self.now


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def ledger():
    return LocalLedger(clock=FakeClock())


@pytest.fixture
def client(ledger, sleeps):
    return LedgerClient(ledger, ledger.package_id, poll_attempts=5,
                        poll_interval=0.5, sleep=sleeps.append)


@pytest.fixture
def blobs():
    return Memory()


@pytest.fixture
def engine(blobs, client):
    return VersioningEngine(blobs, client, upload_workers=2)


@pytest.fixture
def repo(engine):
    """An engine targeted at a freshly initialized repository."""
    engine.init("proj")
    return engine


@pytest.fixture
def make_client(sleeps):
    """Factory for a client over a fresh ledger with ``indexing_lag``."""

    def make(lag: int = 0, attempts: int = 5) -> LedgerClient:
        slow = LocalLedger(indexing_lag=lag, clock=FakeClock())
        return LedgerClient(slow, slow.package_id, poll_attempts=attempts,
                            poll_interval=0.5, poll_backoff=1.5,
                            sleep=sleeps.append)

    return make
