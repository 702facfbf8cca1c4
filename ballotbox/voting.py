"""
Vote admission.

Preconditions are checked in a fixed order so each failure has one cause:
election exists, election is active, voter is eligible, candidate exists,
no prior ballot. The ledger lookup is only a fast path; the store's
uniqueness guarantee on (election, voter) is what actually stops a racing
duplicate, and it surfaces as DuplicateVote too.
"""

import logging
from datetime import datetime
from typing import Optional

from bson import ObjectId

from ballotbox.errors import DuplicateVote, InvalidCandidate, NotEligible, NotFound
from ballotbox.lifecycle import require_accepting_votes
from ballotbox.models.vote_model import Ballot, BallotMetadata
from ballotbox.models.voter_model import VoterIdentity
from ballotbox.storage import ElectionStore

logger = logging.getLogger(__name__)


def cast_vote(
    store: ElectionStore,
    election_id: str,
    voter: VoterIdentity,
    candidate_id: int,
    now: datetime,
    metadata: Optional[BallotMetadata] = None,
) -> Ballot:
    election = store.get_election(election_id)
    if election is None:
        raise NotFound("election", election_id)

    require_accepting_votes(election, now)

    problems = voter.eligibility_problems(election.requirements.min_age)
    if problems:
        raise NotEligible(voter.voter_id, problems)

    candidate = election.get_candidate(candidate_id)
    if candidate is None:
        raise InvalidCandidate(election.id, candidate_id)

    if store.find_ballot(election.id, voter.voter_id) is not None:
        raise DuplicateVote(election.id, voter.voter_id)

    ballot = Ballot(
        id=str(ObjectId()),
        election_id=election.id,
        voter_id=voter.voter_id,
        candidate_id=candidate.id,
        candidate_name=candidate.name,
        candidate_party=candidate.party,
        cast_at=now,
        metadata=metadata or BallotMetadata(),
    )
    return store.record_vote(ballot, voter)


def has_voted(store: ElectionStore, election_id: str, voter_id: str) -> bool:
    return store.find_ballot(election_id, voter_id) is not None
