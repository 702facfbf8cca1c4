# ballotbox/config.py
# Central place for thresholds and constants
import os
from dotenv import load_dotenv

load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), "../.env"))

# "memory" keeps everything in-process (tests, demos); "mongo" uses MONGO_URI
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "memory").lower()

# MongoDB configuration from environment variables
MONGO_URI = os.getenv("MONGO_URI", "mongodb://localhost:27017")
MONGO_DB = os.getenv("MONGO_DB", "voting_system")

# Multi-document transactions need a replica set. Without them the tallies are
# counted from the ballots collection on every read instead of stored counters.
MONGO_USE_TRANSACTIONS = os.getenv("MONGO_USE_TRANSACTIONS", "false").lower() == "true"

ELECTIONS_COLLECTION_NAME = "elections"
BALLOTS_COLLECTION_NAME = "ballots"
VOTERS_COLLECTION_NAME = "voters"

# Upper bound for any single storage operation, in seconds
STORAGE_TIMEOUT_SECONDS = float(os.getenv("STORAGE_TIMEOUT_SECONDS", "5"))

# Voter eligibility
MIN_VOTER_AGE = int(os.getenv("MIN_VOTER_AGE", "18"))
MIN_AGE_LOWER_BOUND = 16
MIN_AGE_UPPER_BOUND = 21

DEFAULT_RESULTS_VISIBILITY = os.getenv("DEFAULT_RESULTS_VISIBILITY", "after_election")

# Election definition limits
MIN_CANDIDATES = 2
TITLE_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 1000
CANDIDATE_FIELD_MAX_LENGTH = 100
CANDIDATE_DESCRIPTION_MAX_LENGTH = 500
LOCATION_MAX_LENGTH = 100

CORS_ORIGINS = [
    o.strip()
    for o in os.getenv("CORS_ORIGINS", "http://localhost:3000,http://localhost:5173").split(",")
    if o.strip()
]
