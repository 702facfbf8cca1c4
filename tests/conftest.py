from datetime import datetime, timedelta, timezone

import pytest

from ballotbox.clock import FrozenClock
from ballotbox.models.voter_model import VoterIdentity
from ballotbox.service import ElectionService
from ballotbox.storage import MemoryStore

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def make_definition(title="Student Council 2026", start_in=timedelta(hours=1), duration=timedelta(hours=1), candidates=2, **extra):
    start = NOW + start_in
    data = {
        "title": title,
        "description": "Annual council vote",
        "candidates": [
            {"name": f"Candidate {i}", "party": f"Party {i}", "description": ""}
            for i in range(candidates)
        ],
        "start_time": start,
        "end_time": start + duration,
        "created_by": "admin-1",
    }
    data.update(extra)
    return data


def make_voter(voter_id="voter-1", age=30, is_verified=True, is_active=True):
    return VoterIdentity(
        voter_id=voter_id,
        name="Test Voter",
        email=f"{voter_id}@example.com",
        age=age,
        is_verified=is_verified,
        is_active=is_active,
    )


@pytest.fixture
def clock():
    return FrozenClock(NOW)


@pytest.fixture
def store():
    return MemoryStore(timeout_seconds=2)


@pytest.fixture
def service(store, clock):
    return ElectionService(store, clock)


@pytest.fixture
def open_election(service, clock):
    """An election that started 30 minutes ago and runs for another 30."""
    election = service.create_election(make_definition())
    clock.advance(timedelta(hours=1, minutes=30))
    return election
