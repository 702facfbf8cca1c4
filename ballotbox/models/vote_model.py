from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ballotbox.models.voter_model import VoterIdentity


class VoteChannel(str, Enum):
    WEB = "web"
    MOBILE = "mobile"
    KIOSK = "kiosk"
    API = "api"


class BallotMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    channel: VoteChannel = VoteChannel.WEB
    session_id: Optional[str] = None


class Ballot(BaseModel):
    """One voter's accepted choice in one election. Never updated."""

    model_config = ConfigDict(frozen=True)

    id: str
    election_id: str
    voter_id: str
    candidate_id: int = Field(..., ge=0)
    candidate_name: str
    candidate_party: str
    cast_at: datetime
    metadata: BallotMetadata = Field(default_factory=BallotMetadata)


class Vote(BaseModel):
    """Cast-vote request as received from the transport layer."""

    election_id: str
    voter: VoterIdentity
    candidate_id: int = Field(..., ge=0)
    metadata: BallotMetadata = Field(default_factory=BallotMetadata)
