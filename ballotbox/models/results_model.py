from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class CandidateResult(BaseModel):
    candidate_id: int
    name: str
    party: str
    votes: int
    percentage: float


class ElectionResults(BaseModel):
    election_id: str
    title: str
    total_votes: int
    results: List[CandidateResult]
    winner: Optional[CandidateResult] = None
    is_tie: bool = False


class CandidateMismatch(BaseModel):
    candidate_id: int
    stored_votes: int
    ledger_votes: int


class TallyAudit(BaseModel):
    election_id: str
    consistent: bool
    stored_total: int
    ledger_total: int
    mismatches: List[CandidateMismatch]


class TimelineBucket(BaseModel):
    hour: datetime
    votes: int
