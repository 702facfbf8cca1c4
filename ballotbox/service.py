"""
ElectionService: the entry point the transport layer talks to.

Holds a store and a clock and nothing else, so any number of worker
threads can share one instance.
"""

from typing import List, Optional

from ballotbox import crud, results, voting
from ballotbox.clock import Clock, utcnow
from ballotbox.models.election_model import ElectionFilter, ElectionOut
from ballotbox.models.results_model import ElectionResults, TallyAudit, TimelineBucket
from ballotbox.models.vote_model import Ballot, BallotMetadata
from ballotbox.models.voter_model import VoterIdentity, VoterRecord
from ballotbox.storage import ElectionStore


class ElectionService:
    def __init__(self, store: ElectionStore, clock: Clock = utcnow):
        self.store = store
        self.clock = clock

    # --- elections ---

    def get_election(self, election_id: str) -> ElectionOut:
        return crud.to_view(crud.get_election(self.store, election_id), self.clock())

    def list_elections(self, which: ElectionFilter = ElectionFilter.ALL) -> List[ElectionOut]:
        now = self.clock()
        return [crud.to_view(e, now) for e in crud.list_elections(self.store, now, which)]

    def create_election(self, definition) -> ElectionOut:
        now = self.clock()
        return crud.to_view(crud.create_election(self.store, definition, now), now)

    def update_election(self, election_id: str, definition) -> ElectionOut:
        now = self.clock()
        return crud.to_view(crud.update_election(self.store, election_id, definition, now), now)

    def delete_election(self, election_id: str) -> None:
        crud.delete_election(self.store, election_id, self.clock())

    def suspend_election(self, election_id: str) -> ElectionOut:
        now = self.clock()
        return crud.to_view(crud.set_election_active(self.store, election_id, False, now), now)

    def resume_election(self, election_id: str) -> ElectionOut:
        now = self.clock()
        return crud.to_view(crud.set_election_active(self.store, election_id, True, now), now)

    # --- ballots ---

    def cast_vote(
        self,
        election_id: str,
        voter: VoterIdentity,
        candidate_id: int,
        metadata: Optional[BallotMetadata] = None,
    ) -> Ballot:
        return voting.cast_vote(self.store, election_id, voter, candidate_id, self.clock(), metadata)

    def has_voted(self, election_id: str, voter_id: str) -> bool:
        crud.get_election(self.store, election_id)
        return voting.has_voted(self.store, election_id, voter_id)

    def get_ballot(self, election_id: str, voter_id: str) -> Optional[Ballot]:
        return self.store.find_ballot(election_id, voter_id)

    def voter_history(self, voter_id: str) -> List[Ballot]:
        return self.store.list_ballots(voter_id=voter_id)

    def get_voter(self, voter_id: str) -> Optional[VoterRecord]:
        return self.store.get_voter(voter_id)

    def election_ballots(self, election_id: str) -> List[Ballot]:
        crud.get_election(self.store, election_id)
        return self.store.list_ballots(election_id=election_id)

    # --- results ---

    def get_results(self, election_id: str, voter_id: Optional[str] = None) -> ElectionResults:
        return results.get_results(self.store, election_id, self.clock(), voter_id=voter_id)

    def audit_tally(self, election_id: str) -> TallyAudit:
        return results.audit_tally(self.store, election_id)

    def voting_timeline(self, election_id: str) -> List[TimelineBucket]:
        return results.voting_timeline(self.store, election_id)
