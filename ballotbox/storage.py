# ballotbox/storage.py
import abc
import copy
import logging
import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, List, Optional, Tuple

from ballotbox.config import STORAGE_TIMEOUT_SECONDS
from ballotbox.errors import DuplicateVote, InvalidCandidate, NotFound, StorageUnavailable, ValidationFailed
from ballotbox.models.election_model import Election
from ballotbox.models.vote_model import Ballot
from ballotbox.models.voter_model import VotedElection, VoterIdentity, VoterRecord

logger = logging.getLogger(__name__)


class ElectionStore(abc.ABC):
    """Persistence contract for elections, the ballot ledger and voters.

    Implementations guarantee that ``record_vote`` is all-or-nothing and that
    at most one ballot exists per (election_id, voter_id), regardless of how
    many callers race on the same pair.
    """

    @abc.abstractmethod
    def insert_election(self, election: Election) -> Election:
        """Store a new election. A duplicate title raises ValidationFailed."""

    @abc.abstractmethod
    def get_election(self, election_id: str) -> Optional[Election]:
        """Election with its current tallies, or None."""

    @abc.abstractmethod
    def list_elections(self) -> List[Election]:
        """All elections, newest first."""

    @abc.abstractmethod
    def replace_election(self, election: Election, now: datetime) -> bool:
        """Overwrite the definition if the stored election has not started by ``now``."""

    @abc.abstractmethod
    def delete_election(self, election_id: str, now: datetime) -> bool:
        """Remove the election if it has not started by ``now``."""

    @abc.abstractmethod
    def set_active(self, election_id: str, is_active: bool, now: datetime) -> Optional[Election]:
        """Flip the active flag; returns the updated election or None."""

    @abc.abstractmethod
    def record_vote(self, ballot: Ballot, voter: VoterIdentity) -> Ballot:
        """Append the ballot, bump both counters and mark the voter, atomically.

        Raises DuplicateVote when a ballot for the pair already exists.
        """

    @abc.abstractmethod
    def find_ballot(self, election_id: str, voter_id: str) -> Optional[Ballot]:
        """The voter's ballot in the election, if any."""

    @abc.abstractmethod
    def list_ballots(self, election_id: Optional[str] = None, voter_id: Optional[str] = None) -> List[Ballot]:
        """Ledger rows matching the filters, newest first."""

    @abc.abstractmethod
    def count_ballots(self, election_id: str) -> Dict[int, int]:
        """Ledger recount: candidate id -> number of ballots."""

    @abc.abstractmethod
    def get_voter(self, voter_id: str) -> Optional[VoterRecord]:
        """Voter record with its per-election voted markers."""

    def close(self) -> None:
        pass


class MemoryStore(ElectionStore):
    """In-process store. One lock serialises every mutation.

    Documents are kept as plain dicts and copied on the way in and out, so
    callers never share state with the store.
    """

    def __init__(self, timeout_seconds: float = STORAGE_TIMEOUT_SECONDS):
        self.timeout_seconds = timeout_seconds
        self._lock = threading.Lock()
        self._elections: Dict[str, dict] = {}
        self._ballots: Dict[Tuple[str, str], dict] = {}
        self._voters: Dict[str, dict] = {}

    @contextmanager
    def _locked(self, operation: str) -> Iterator[None]:
        if not self._lock.acquire(timeout=self.timeout_seconds):
            logger.error(f"Timed out waiting for store lock during {operation}")
            raise StorageUnavailable(operation)
        try:
            yield
        finally:
            self._lock.release()

    def insert_election(self, election: Election) -> Election:
        with self._locked("insert_election"):
            if any(e["title"] == election.title for e in self._elections.values()):
                raise ValidationFailed([{"field": "title", "message": "already exists"}])
            self._elections[election.id] = election.model_dump()
        logger.info(f"Election {election.id} created")
        return election.model_copy(deep=True)

    def get_election(self, election_id: str) -> Optional[Election]:
        with self._locked("get_election"):
            doc = self._elections.get(election_id)
            return Election.model_validate(copy.deepcopy(doc)) if doc else None

    def list_elections(self) -> List[Election]:
        with self._locked("list_elections"):
            docs = copy.deepcopy(list(self._elections.values()))
        elections = [Election.model_validate(d) for d in docs]
        elections.sort(key=lambda e: e.created_at or e.start_time, reverse=True)
        return elections

    def replace_election(self, election: Election, now: datetime) -> bool:
        with self._locked("replace_election"):
            current = self._elections.get(election.id)
            if current is None or now >= current["start_time"]:
                return False
            if any(
                eid != election.id and e["title"] == election.title
                for eid, e in self._elections.items()
            ):
                raise ValidationFailed([{"field": "title", "message": "already exists"}])
            self._elections[election.id] = election.model_dump()
            return True

    def delete_election(self, election_id: str, now: datetime) -> bool:
        with self._locked("delete_election"):
            current = self._elections.get(election_id)
            if current is None or now >= current["start_time"]:
                return False
            del self._elections[election_id]
            return True

    def set_active(self, election_id: str, is_active: bool, now: datetime) -> Optional[Election]:
        with self._locked("set_active"):
            doc = self._elections.get(election_id)
            if doc is None:
                return None
            doc["is_active"] = is_active
            doc["updated_at"] = now
            return Election.model_validate(copy.deepcopy(doc))

    def record_vote(self, ballot: Ballot, voter: VoterIdentity) -> Ballot:
        key = (ballot.election_id, ballot.voter_id)
        with self._locked("record_vote"):
            if key in self._ballots:
                logger.warning(f"Rejected duplicate ballot for voter {ballot.voter_id} in election {ballot.election_id}")
                raise DuplicateVote(ballot.election_id, ballot.voter_id)
            election = self._elections.get(ballot.election_id)
            if election is None:
                raise NotFound("election", ballot.election_id)
            candidates = election["candidates"]
            if not 0 <= ballot.candidate_id < len(candidates):
                raise InvalidCandidate(ballot.election_id, ballot.candidate_id)

            # Nothing below can fail, so the four writes land together
            self._ballots[key] = ballot.model_dump()
            candidates[ballot.candidate_id]["votes"] += 1
            election["total_votes"] += 1
            election["updated_at"] = ballot.cast_at
            record = self._voters.setdefault(voter.voter_id, {"voter_id": voter.voter_id, "voted_elections": {}})
            record.update(voter.model_dump(exclude={"voter_id"}))
            record["voted_elections"][ballot.election_id] = VotedElection(
                candidate_id=ballot.candidate_id, voted_at=ballot.cast_at
            ).model_dump()
        logger.info(f"Ballot {ballot.id} recorded for election {ballot.election_id}")
        return ballot

    def find_ballot(self, election_id: str, voter_id: str) -> Optional[Ballot]:
        with self._locked("find_ballot"):
            doc = self._ballots.get((election_id, voter_id))
            return Ballot.model_validate(copy.deepcopy(doc)) if doc else None

    def list_ballots(self, election_id: Optional[str] = None, voter_id: Optional[str] = None) -> List[Ballot]:
        with self._locked("list_ballots"):
            docs = [
                copy.deepcopy(doc)
                for (eid, vid), doc in self._ballots.items()
                if (election_id is None or eid == election_id) and (voter_id is None or vid == voter_id)
            ]
        ballots = [Ballot.model_validate(d) for d in docs]
        ballots.sort(key=lambda b: b.cast_at, reverse=True)
        return ballots

    def count_ballots(self, election_id: str) -> Dict[int, int]:
        counts: Dict[int, int] = {}
        with self._locked("count_ballots"):
            for (eid, _), doc in self._ballots.items():
                if eid == election_id:
                    counts[doc["candidate_id"]] = counts.get(doc["candidate_id"], 0) + 1
        return counts

    def get_voter(self, voter_id: str) -> Optional[VoterRecord]:
        with self._locked("get_voter"):
            doc = self._voters.get(voter_id)
            return VoterRecord.model_validate(copy.deepcopy(doc)) if doc else None
