from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest

from ballotbox.errors import (
    DuplicateVote,
    InvalidCandidate,
    NotAcceptingVotes,
    NotEligible,
    NotFound,
    StorageUnavailable,
)
from ballotbox.models.vote_model import Ballot, BallotMetadata, VoteChannel
from conftest import make_definition, make_voter


def assert_tally_consistent(service, election_id):
    election = service.get_election(election_id)
    assert election.total_votes == sum(c.votes for c in election.candidates)
    counts = service.store.count_ballots(election_id)
    for cand in election.candidates:
        assert cand.votes == counts.get(cand.id, 0)


def test_vote_lifecycle_scenario(service, clock):
    election = service.create_election(make_definition())
    voter = make_voter()

    with pytest.raises(NotAcceptingVotes) as excinfo:
        service.cast_vote(election.id, voter, 0)
    assert excinfo.value.reason == "not_started"

    clock.advance(timedelta(hours=1, minutes=30))
    ballot = service.cast_vote(election.id, voter, 0)
    assert ballot.candidate_id == 0
    assert ballot.candidate_name == "Candidate 0"
    assert ballot.cast_at == clock()

    current = service.get_election(election.id)
    assert current.candidates[0].votes == 1
    assert current.total_votes == 1

    with pytest.raises(DuplicateVote):
        service.cast_vote(election.id, voter, 1)

    current = service.get_election(election.id)
    assert [c.votes for c in current.candidates] == [1, 0]
    assert current.total_votes == 1


def test_vote_after_end_rejected(service, open_election, clock):
    clock.advance(timedelta(hours=1))
    with pytest.raises(NotAcceptingVotes) as excinfo:
        service.cast_vote(open_election.id, make_voter(), 0)
    assert excinfo.value.reason == "ended"


def test_vote_while_suspended_rejected(service, open_election):
    service.suspend_election(open_election.id)
    with pytest.raises(NotAcceptingVotes) as excinfo:
        service.cast_vote(open_election.id, make_voter(), 0)
    assert excinfo.value.reason == "suspended"

    service.resume_election(open_election.id)
    service.cast_vote(open_election.id, make_voter(), 0)


def test_unknown_election(service):
    with pytest.raises(NotFound):
        service.cast_vote("0123456789abcdef01234567", make_voter(), 0)


@pytest.mark.parametrize(("voter", "reasons"), [
    (make_voter(age=17), ["underage"]),
    (make_voter(is_verified=False), ["unverified"]),
    (make_voter(is_active=False), ["inactive"]),
    (make_voter(age=12, is_verified=False, is_active=False), ["underage", "unverified", "inactive"]),
])
def test_ineligible_voters(service, open_election, voter, reasons):
    with pytest.raises(NotEligible) as excinfo:
        service.cast_vote(open_election.id, voter, 0)
    assert excinfo.value.reasons == reasons
    assert service.get_election(open_election.id).total_votes == 0


def test_min_age_is_per_election(service, clock):
    election = service.create_election(make_definition(requirements={"min_age": 16}))
    clock.advance(timedelta(hours=1, minutes=1))
    service.cast_vote(election.id, make_voter(age=16), 1)


@pytest.mark.parametrize("candidate_id", [2, 99])
def test_invalid_candidate(service, open_election, candidate_id):
    with pytest.raises(InvalidCandidate):
        service.cast_vote(open_election.id, make_voter(), candidate_id)


def test_precondition_order(service, open_election, clock):
    # Phase is checked before eligibility and candidate
    clock.advance(timedelta(days=1))
    with pytest.raises(NotAcceptingVotes):
        service.cast_vote(open_election.id, make_voter(age=5), 42)


def test_eligibility_checked_before_candidate(service, open_election):
    with pytest.raises(NotEligible):
        service.cast_vote(open_election.id, make_voter(age=5), 42)


def test_metadata_is_kept(service, open_election):
    meta = BallotMetadata(ip_address="10.0.0.7", channel=VoteChannel.KIOSK, session_id="s-1")
    ballot = service.cast_vote(open_election.id, make_voter(), 1, meta)
    stored = service.get_ballot(open_election.id, "voter-1")
    assert stored == ballot
    assert stored.metadata.channel is VoteChannel.KIOSK
    assert stored.metadata.ip_address == "10.0.0.7"


def test_voter_can_vote_in_several_elections(service, clock):
    first = service.create_election(make_definition(title="First"))
    second = service.create_election(make_definition(title="Second"))
    clock.advance(timedelta(hours=1, minutes=10))
    voter = make_voter()

    service.cast_vote(first.id, voter, 0)
    service.cast_vote(second.id, voter, 1)

    assert service.has_voted(first.id, voter.voter_id)
    assert service.has_voted(second.id, voter.voter_id)
    record = service.get_voter(voter.voter_id)
    assert set(record.voted_elections) == {first.id, second.id}
    assert record.voted_elections[second.id].candidate_id == 1
    assert {b.election_id for b in service.voter_history(voter.voter_id)} == {first.id, second.id}


def test_has_voted_is_per_election(service, open_election):
    assert not service.has_voted(open_election.id, "voter-1")
    service.cast_vote(open_election.id, make_voter(), 0)
    assert service.has_voted(open_election.id, "voter-1")
    assert not service.has_voted(open_election.id, "voter-2")


def test_concurrent_votes_from_one_voter_count_once(service, open_election):
    voter = make_voter()

    def attempt(candidate_id):
        try:
            service.cast_vote(open_election.id, voter, candidate_id)
            return "ok"
        except DuplicateVote:
            return "duplicate"

    with ThreadPoolExecutor(max_workers=16) as pool:
        outcomes = list(pool.map(attempt, [i % 2 for i in range(64)]))

    assert outcomes.count("ok") == 1
    assert outcomes.count("duplicate") == 63
    assert len(service.election_ballots(open_election.id)) == 1
    assert service.get_election(open_election.id).total_votes == 1
    assert_tally_consistent(service, open_election.id)


def test_concurrent_votes_from_many_voters(service, open_election):
    voters = [make_voter(f"voter-{i}") for i in range(50)]

    def attempt(i):
        service.cast_vote(open_election.id, voters[i], i % 2)

    with ThreadPoolExecutor(max_workers=10) as pool:
        list(pool.map(attempt, range(50)))

    election = service.get_election(open_election.id)
    assert [c.votes for c in election.candidates] == [25, 25]
    assert_tally_consistent(service, open_election.id)


def test_storage_level_uniqueness_beats_stale_precheck(service, open_election, monkeypatch):
    # Simulate the race: the precheck sees no ballot although one exists
    service.cast_vote(open_election.id, make_voter(), 0)
    monkeypatch.setattr(service.store, "find_ballot", lambda election_id, voter_id: None)

    with pytest.raises(DuplicateVote):
        service.cast_vote(open_election.id, make_voter(), 1)

    assert [c.votes for c in service.get_election(open_election.id).candidates] == [1, 0]


def test_lock_timeout_reports_storage_unavailable(service, open_election):
    service.store.timeout_seconds = 0.05
    service.store._lock.acquire()
    try:
        with pytest.raises(StorageUnavailable) as excinfo:
            service.cast_vote(open_election.id, make_voter(), 0)
        assert excinfo.value.is_retryable
    finally:
        service.store._lock.release()


def test_store_rejects_out_of_range_candidate(service, open_election, clock):
    ballot = Ballot(
        id="b-1",
        election_id=open_election.id,
        voter_id="voter-1",
        candidate_id=7,
        candidate_name="Nobody",
        candidate_party="None",
        cast_at=clock(),
    )
    with pytest.raises(InvalidCandidate):
        service.store.record_vote(ballot, make_voter())
    assert service.store.find_ballot(open_election.id, "voter-1") is None
    assert service.get_election(open_election.id).total_votes == 0
