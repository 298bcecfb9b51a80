from datetime import date, datetime

import pytest

from fleetmaint.repository import FleetRepo
from fleetmaint.storage import BlobStore

NOW = datetime(2025, 6, 1, 12, 0, 0)
TODAY = NOW.date()


@pytest.fixture
def blobs(tmp_path):
    return BlobStore(tmp_path / "data")


@pytest.fixture
def clock():
    return lambda: NOW


@pytest.fixture
def repo(blobs, clock):
    r = FleetRepo(blobs, clock=clock)
    r.load()
    return r


@pytest.fixture
def today() -> date:
    return TODAY
