from typing import List, Optional

from pydantic import BaseModel

from ballotbox.models.vote_model import Ballot


class VoteReceipt(BaseModel):
    message: str
    ballot: Ballot


class VoteCheck(BaseModel):
    status: str  # "already_voted" | "not_voted"
    election_id: str
    voter_id: str
    ballot: Optional[Ballot] = None


class VoterHistory(BaseModel):
    voter_id: str
    elections_voted_count: int
    ballots: List[Ballot]
