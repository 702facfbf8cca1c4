from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field


class VoterIdentity(BaseModel):
    """Identity already verified by the auth collaborator; trusted as-is."""

    voter_id: str
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    age: int = Field(..., ge=0)
    is_verified: bool = False
    is_active: bool = True

    def eligibility_problems(self, min_age: int) -> List[str]:
        problems = []
        if self.age < min_age:
            problems.append("underage")
        if not self.is_verified:
            problems.append("unverified")
        if not self.is_active:
            problems.append("inactive")
        return problems


class VotedElection(BaseModel):
    candidate_id: int
    voted_at: datetime


class VoterRecord(BaseModel):
    # voted_elections is a convenience copy keyed by election id; the ballot
    # ledger stays authoritative for "has voted".
    voter_id: str
    name: Optional[str] = None
    email: Optional[str] = None
    age: Optional[int] = None
    is_verified: bool = False
    is_active: bool = True
    voted_elections: Dict[str, VotedElection] = Field(default_factory=dict)

    def has_voted_in(self, election_id: str) -> bool:
        return election_id in self.voted_elections
