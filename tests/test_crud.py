from datetime import timedelta

import pytest

from ballotbox.errors import ElectionLocked, NotFound, ValidationFailed
from ballotbox.models.election_model import ElectionFilter, ElectionStatus
from conftest import make_definition, make_voter


def test_create_election_assigns_positional_candidate_ids(service):
    election = service.create_election(make_definition(candidates=3))
    assert [c.id for c in election.candidates] == [0, 1, 2]
    assert all(c.votes == 0 for c in election.candidates)
    assert election.total_votes == 0
    assert election.status is ElectionStatus.SCHEDULED
    assert election.time_remaining_seconds == 3600
    assert election.settings.results_visibility.value == "after_election"
    assert election.requirements.min_age == 18


def test_duplicate_title_rejected(service):
    service.create_election(make_definition(title="Mayor"))
    with pytest.raises(ValidationFailed) as excinfo:
        service.create_election(make_definition(title="Mayor"))
    assert excinfo.value.errors == [{"field": "title", "message": "already exists"}]


def test_invalid_definition_writes_nothing(service):
    with pytest.raises(ValidationFailed):
        service.create_election(make_definition(candidates=1))
    assert service.list_elections() == []


def test_get_missing_election(service):
    with pytest.raises(NotFound):
        service.get_election("nope")


def test_list_filters(service, clock):
    past = service.create_election(make_definition(title="Past", start_in=timedelta(minutes=1), duration=timedelta(minutes=10)))
    running = service.create_election(make_definition(title="Running", start_in=timedelta(minutes=30), duration=timedelta(hours=5)))
    future = service.create_election(make_definition(title="Future", start_in=timedelta(days=2)))
    clock.advance(timedelta(hours=1))

    def ids(which):
        return {e.id for e in service.list_elections(which)}

    assert ids(ElectionFilter.ALL) == {past.id, running.id, future.id}
    assert ids(ElectionFilter.ACTIVE) == {running.id}
    assert ids(ElectionFilter.UPCOMING) == {future.id}
    assert ids(ElectionFilter.COMPLETED) == {past.id}


def test_update_before_start(service, clock):
    election = service.create_election(make_definition(candidates=2))
    clock.advance(timedelta(minutes=10))
    updated = service.update_election(election.id, make_definition(title="Renamed", candidates=3))
    assert updated.id == election.id
    assert updated.title == "Renamed"
    assert len(updated.candidates) == 3
    assert updated.created_at == election.created_at
    assert service.get_election(election.id).title == "Renamed"


def test_update_after_start_is_locked(service, open_election):
    with pytest.raises(ElectionLocked):
        service.update_election(open_election.id, make_definition(title="Too late"))
    assert service.get_election(open_election.id).title == open_election.title


def test_delete_before_start(service):
    election = service.create_election(make_definition())
    service.delete_election(election.id)
    with pytest.raises(NotFound):
        service.get_election(election.id)


def test_delete_after_start_is_locked(service, open_election):
    service.cast_vote(open_election.id, make_voter(), 0)
    with pytest.raises(ElectionLocked):
        service.delete_election(open_election.id)
    assert service.get_election(open_election.id).total_votes == 1


def test_suspend_and_resume(service, open_election):
    assert service.suspend_election(open_election.id).status is ElectionStatus.SUSPENDED
    assert service.resume_election(open_election.id).status is ElectionStatus.ACTIVE


def test_suspend_missing(service):
    with pytest.raises(NotFound):
        service.suspend_election("missing")


def test_update_cannot_move_start_into_the_past(service, clock):
    election = service.create_election(make_definition())
    clock.advance(timedelta(minutes=20))
    with pytest.raises(ValidationFailed) as excinfo:
        service.update_election(election.id, make_definition(start_in=timedelta(minutes=10)))
    assert {"field": "start_time", "message": "must be in the future"} in excinfo.value.errors
