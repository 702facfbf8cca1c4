# storage_mongo.py
import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Optional

import pymongo
from bson import ObjectId
from pymongo import DESCENDING, MongoClient, ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from ballotbox.config import (
    BALLOTS_COLLECTION_NAME,
    ELECTIONS_COLLECTION_NAME,
    MONGO_USE_TRANSACTIONS,
    STORAGE_TIMEOUT_SECONDS,
    VOTERS_COLLECTION_NAME,
)
from ballotbox.database.connection import ensure_indexes, get_database
from ballotbox.errors import DuplicateVote, NotFound, StorageUnavailable, ValidationFailed
from ballotbox.models.election_model import Election
from ballotbox.models.vote_model import Ballot
from ballotbox.models.voter_model import VoterIdentity, VoterRecord
from ballotbox.storage import ElectionStore

logger = logging.getLogger(__name__)


def _object_id(value: str) -> Optional[ObjectId]:
    return ObjectId(value) if ObjectId.is_valid(value) else None


def election_to_doc(election: Election) -> Dict[str, Any]:
    doc = election.model_dump(exclude={"id"})
    doc["_id"] = ObjectId(election.id)
    # Candidate ids are positions in the list, not stored
    for cand in doc["candidates"]:
        cand.pop("id", None)
    doc["election_type"] = election.election_type.value
    doc["settings"]["results_visibility"] = election.settings.results_visibility.value
    return doc


def doc_to_election(doc: Dict[str, Any], counts: Optional[Dict[int, int]] = None) -> Election:
    """Build an Election from its document.

    When ``counts`` is given the stored counters are ignored and the tallies
    come from the ledger recount instead.
    """
    data = dict(doc)
    data["id"] = str(data.pop("_id"))
    candidates = []
    for idx, cand in enumerate(data.get("candidates", [])):
        cand = dict(cand, id=idx)
        if counts is not None:
            cand["votes"] = counts.get(idx, 0)
        candidates.append(cand)
    data["candidates"] = candidates
    if counts is not None:
        data["total_votes"] = sum(counts.values())
    return Election.model_validate(data)


def ballot_to_doc(ballot: Ballot) -> Dict[str, Any]:
    doc = ballot.model_dump(exclude={"id"})
    doc["_id"] = ObjectId(ballot.id)
    doc["metadata"]["channel"] = ballot.metadata.channel.value
    return doc


def doc_to_ballot(doc: Dict[str, Any]) -> Ballot:
    data = dict(doc)
    data["id"] = str(data.pop("_id"))
    return Ballot.model_validate(data)


class MongoStore(ElectionStore):
    """MongoDB-backed store.

    With ``use_transactions`` the ballot insert, both counter increments and
    the voter marker are written in one multi-document transaction (replica
    set required). Without it only the ballot is written and tallies are
    recounted from the ballots collection on every read, so counters can
    never drift from the ledger.
    """

    def __init__(
        self,
        client: MongoClient,
        db_name: Optional[str] = None,
        use_transactions: bool = MONGO_USE_TRANSACTIONS,
        timeout_seconds: float = STORAGE_TIMEOUT_SECONDS,
        create_indexes: bool = True,
    ):
        self.client = client
        self.db = get_database(client, db_name) if db_name else get_database(client)
        self.elections = self.db[ELECTIONS_COLLECTION_NAME]
        self.ballots = self.db[BALLOTS_COLLECTION_NAME]
        self.voters = self.db[VOTERS_COLLECTION_NAME]
        self.use_transactions = use_transactions
        self.timeout_seconds = timeout_seconds
        if create_indexes:
            with self._guard("ensure_indexes"):
                ensure_indexes(self.db)
        mode = "transactional counters" if use_transactions else "count-on-demand tallies"
        logger.info(f"Connected to MongoDB database {self.db.name} using {mode}")

    @contextmanager
    def _guard(self, operation: str, on_duplicate: Optional[Callable[[DuplicateKeyError], Exception]] = None) -> Iterator[None]:
        """Bound the operation by the storage timeout and translate driver errors."""
        try:
            with pymongo.timeout(self.timeout_seconds):
                yield
        except DuplicateKeyError as e:
            if on_duplicate is None:
                logger.error(f"Unexpected duplicate key during {operation}: {e}")
                raise StorageUnavailable(operation, e) from e
            raise on_duplicate(e) from e
        except PyMongoError as e:
            logger.error(f"MongoDB error during {operation}: {e}")
            raise StorageUnavailable(operation, e) from e

    def _tallies(self, election_ids: List[str]) -> Dict[str, Dict[int, int]]:
        pipeline = [
            {"$match": {"election_id": {"$in": election_ids}}},
            {"$group": {
                "_id": {"election_id": "$election_id", "candidate_id": "$candidate_id"},
                "count": {"$sum": 1},
            }},
        ]
        tallies: Dict[str, Dict[int, int]] = {eid: {} for eid in election_ids}
        for row in self.ballots.aggregate(pipeline):
            key = row["_id"]
            tallies[key["election_id"]][key["candidate_id"]] = row["count"]
        return tallies

    def _hydrate(self, docs: List[Dict[str, Any]]) -> List[Election]:
        if self.use_transactions:
            return [doc_to_election(d) for d in docs]
        tallies = self._tallies([str(d["_id"]) for d in docs]) if docs else {}
        return [doc_to_election(d, tallies[str(d["_id"])]) for d in docs]

    def insert_election(self, election: Election) -> Election:
        def _duplicate_title(e):
            return ValidationFailed([{"field": "title", "message": "already exists"}])

        with self._guard("insert_election", on_duplicate=_duplicate_title):
            self.elections.insert_one(election_to_doc(election))
        logger.info(f"Election {election.id} created")
        return election

    def get_election(self, election_id: str) -> Optional[Election]:
        oid = _object_id(election_id)
        if oid is None:
            return None
        with self._guard("get_election"):
            doc = self.elections.find_one({"_id": oid})
            if not doc:
                return None
            return self._hydrate([doc])[0]

    def list_elections(self) -> List[Election]:
        with self._guard("list_elections"):
            docs = list(self.elections.find().sort("created_at", DESCENDING))
            return self._hydrate(docs)

    def replace_election(self, election: Election, now: datetime) -> bool:
        oid = _object_id(election.id)
        if oid is None:
            return False

        def _duplicate_title(e):
            return ValidationFailed([{"field": "title", "message": "already exists"}])

        with self._guard("replace_election", on_duplicate=_duplicate_title):
            result = self.elections.replace_one(
                {"_id": oid, "start_time": {"$gt": now}},
                election_to_doc(election),
            )
        return result.matched_count == 1

    def delete_election(self, election_id: str, now: datetime) -> bool:
        oid = _object_id(election_id)
        if oid is None:
            return False
        with self._guard("delete_election"):
            result = self.elections.delete_one({"_id": oid, "start_time": {"$gt": now}})
        return result.deleted_count == 1

    def set_active(self, election_id: str, is_active: bool, now: datetime) -> Optional[Election]:
        oid = _object_id(election_id)
        if oid is None:
            return None
        with self._guard("set_active"):
            doc = self.elections.find_one_and_update(
                {"_id": oid},
                {"$set": {"is_active": is_active, "updated_at": now}},
                return_document=ReturnDocument.AFTER,
            )
            if not doc:
                return None
            return self._hydrate([doc])[0]

    def _mark_voted(self, ballot: Ballot, voter: VoterIdentity, session=None) -> None:
        profile = voter.model_dump(exclude={"voter_id"})
        profile[f"voted_elections.{ballot.election_id}"] = {
            "candidate_id": ballot.candidate_id,
            "voted_at": ballot.cast_at,
        }
        self.voters.update_one(
            {"_id": voter.voter_id},
            {"$set": profile},
            upsert=True,
            session=session,
        )

    def record_vote(self, ballot: Ballot, voter: VoterIdentity) -> Ballot:
        doc = ballot_to_doc(ballot)

        def _duplicate_vote(e):
            logger.warning(f"Rejected duplicate ballot for voter {ballot.voter_id} in election {ballot.election_id}")
            return DuplicateVote(ballot.election_id, ballot.voter_id)

        if not self.use_transactions:
            with self._guard("record_vote", on_duplicate=_duplicate_vote):
                self.ballots.insert_one(doc)
            # The marker is a convenience copy; the ledger already holds the truth
            try:
                with pymongo.timeout(self.timeout_seconds):
                    self._mark_voted(ballot, voter)
            except PyMongoError as e:
                logger.warning(f"Could not update voted marker for voter {ballot.voter_id}: {e}")
            logger.info(f"Ballot {ballot.id} recorded for election {ballot.election_id}")
            return ballot

        candidate_path = f"candidates.{ballot.candidate_id}"

        def _apply(session):
            self.ballots.insert_one(doc, session=session)
            result = self.elections.update_one(
                {"_id": ObjectId(ballot.election_id), candidate_path: {"$exists": True}},
                {
                    "$inc": {f"{candidate_path}.votes": 1, "total_votes": 1},
                    "$set": {"updated_at": ballot.cast_at},
                },
                session=session,
            )
            if result.matched_count != 1:
                # Raising aborts the transaction, taking the ballot with it
                raise NotFound("election", ballot.election_id)
            self._mark_voted(ballot, voter, session=session)

        with self._guard("record_vote", on_duplicate=_duplicate_vote):
            with self.client.start_session() as session:
                session.with_transaction(_apply)
        logger.info(f"Ballot {ballot.id} recorded for election {ballot.election_id}")
        return ballot

    def find_ballot(self, election_id: str, voter_id: str) -> Optional[Ballot]:
        with self._guard("find_ballot"):
            doc = self.ballots.find_one({"election_id": election_id, "voter_id": voter_id})
        return doc_to_ballot(doc) if doc else None

    def list_ballots(self, election_id: Optional[str] = None, voter_id: Optional[str] = None) -> List[Ballot]:
        query: Dict[str, Any] = {}
        if election_id is not None:
            query["election_id"] = election_id
        if voter_id is not None:
            query["voter_id"] = voter_id
        with self._guard("list_ballots"):
            docs = list(self.ballots.find(query).sort("cast_at", DESCENDING))
        return [doc_to_ballot(d) for d in docs]

    def count_ballots(self, election_id: str) -> Dict[int, int]:
        with self._guard("count_ballots"):
            return self._tallies([election_id])[election_id]

    def get_voter(self, voter_id: str) -> Optional[VoterRecord]:
        with self._guard("get_voter"):
            doc = self.voters.find_one({"_id": voter_id})
        if not doc:
            return None
        doc = dict(doc)
        doc["voter_id"] = doc.pop("_id")
        return VoterRecord.model_validate(doc)

    def close(self):
        self.client.close()
        logger.info("MongoDB connection closed")
