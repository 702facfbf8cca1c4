from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ballotbox.clock import ensure_aware
from ballotbox.config import DEFAULT_RESULTS_VISIBILITY, MIN_VOTER_AGE


class ElectionType(str, Enum):
    GENERAL = "general"
    PRIMARY = "primary"
    LOCAL = "local"
    NATIONAL = "national"


class ResultsVisibility(str, Enum):
    IMMEDIATE = "immediate"
    AFTER_VOTING = "after_voting"
    AFTER_ELECTION = "after_election"


class ElectionStatus(str, Enum):
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"
    SUSPENDED = "suspended"


class ElectionFilter(str, Enum):
    ALL = "all"
    ACTIVE = "active"
    UPCOMING = "upcoming"
    COMPLETED = "completed"


class CandidateIn(BaseModel):
    name: str = Field(..., examples=["Asha Rao"])
    party: str = Field(..., examples=["Independent"])
    description: str = ""
    image_url: Optional[str] = None


class Candidate(CandidateIn):
    # Positional index within the election's candidate list
    id: int = Field(..., ge=0)
    votes: int = Field(default=0, ge=0)


class VoterRequirements(BaseModel):
    min_age: int = MIN_VOTER_AGE


class ElectionSettings(BaseModel):
    results_visibility: ResultsVisibility = ResultsVisibility(DEFAULT_RESULTS_VISIBILITY)


class ElectionCreate(BaseModel):
    """Definition submitted by an administrator."""

    title: str = Field(..., examples=["Student Council 2026"])
    description: str = ""
    candidates: List[CandidateIn]
    start_time: datetime
    end_time: datetime
    created_by: str
    election_type: ElectionType = ElectionType.GENERAL
    location: str = "National"
    requirements: VoterRequirements = Field(default_factory=VoterRequirements)
    settings: ElectionSettings = Field(default_factory=ElectionSettings)

    @field_validator("start_time", "end_time")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_aware(value)


class Election(BaseModel):
    id: str
    title: str
    description: str = ""
    candidates: List[Candidate]
    start_time: datetime
    end_time: datetime
    is_active: bool = True
    created_by: str
    total_votes: int = Field(default=0, ge=0)
    election_type: ElectionType = ElectionType.GENERAL
    location: str = "National"
    requirements: VoterRequirements = Field(default_factory=VoterRequirements)
    settings: ElectionSettings = Field(default_factory=ElectionSettings)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("start_time", "end_time", "created_at", "updated_at")
    @classmethod
    def _aware(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_aware(value) if value is not None else None

    def get_candidate(self, candidate_id: int) -> Optional[Candidate]:
        if isinstance(candidate_id, bool) or not isinstance(candidate_id, int):
            return None
        if 0 <= candidate_id < len(self.candidates):
            return self.candidates[candidate_id]
        return None


class ElectionOut(Election):
    """Election plus the fields derived at read time."""

    status: ElectionStatus
    time_remaining_seconds: float
