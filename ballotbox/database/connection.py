import logging

from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from ballotbox.config import (
    BALLOTS_COLLECTION_NAME,
    ELECTIONS_COLLECTION_NAME,
    MONGO_DB,
    MONGO_URI,
    STORAGE_TIMEOUT_SECONDS,
    VOTERS_COLLECTION_NAME,
)

logger = logging.getLogger(__name__)


def create_client(uri: str = MONGO_URI, timeout_seconds: float = STORAGE_TIMEOUT_SECONDS) -> MongoClient:
    """MongoClient whose every network wait is bounded by ``timeout_seconds``."""
    timeout_ms = int(timeout_seconds * 1000)
    return MongoClient(
        uri,
        tz_aware=True,
        serverSelectionTimeoutMS=timeout_ms,
        connectTimeoutMS=timeout_ms,
        socketTimeoutMS=timeout_ms,
    )


def get_database(client: MongoClient, name: str = MONGO_DB) -> Database:
    return client[name]


def ensure_indexes(db: Database) -> None:
    elections = db[ELECTIONS_COLLECTION_NAME]
    ballots = db[BALLOTS_COLLECTION_NAME]
    voters = db[VOTERS_COLLECTION_NAME]

    elections.create_index("title", unique=True)
    elections.create_index([("is_active", ASCENDING), ("start_time", ASCENDING), ("end_time", ASCENDING)])
    elections.create_index([("created_at", DESCENDING)])

    # One ballot per voter per election, enforced by the server
    ballots.create_index(
        [("election_id", ASCENDING), ("voter_id", ASCENDING)],
        unique=True,
        name="one_ballot_per_voter",
    )
    ballots.create_index([("election_id", ASCENDING), ("candidate_id", ASCENDING)])
    ballots.create_index([("voter_id", ASCENDING), ("cast_at", DESCENDING)])

    voters.create_index("email")
    logger.info(f"Indexes ensured on database {db.name}")
