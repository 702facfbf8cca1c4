from typing import Optional

from fastapi import APIRouter, Depends, Request

from ballotbox.dependencies import get_service
from ballotbox.models.results_model import ElectionResults
from ballotbox.models.vote_model import Vote
from ballotbox.schemas import VoteCheck, VoterHistory, VoteReceipt
from ballotbox.service import ElectionService

vote_router = APIRouter(prefix="/vote", tags=["Vote"])


@vote_router.post("/cast", response_model=VoteReceipt)
def cast_vote(vote: Vote, request: Request, service: ElectionService = Depends(get_service)):
    """
    Casts a vote for an already-verified voter.
    Origin address and user agent are filled from the request when the
    caller did not supply them.
    """
    metadata = vote.metadata
    fill = {}
    if metadata.ip_address is None and request.client is not None:
        fill["ip_address"] = request.client.host
    if metadata.user_agent is None and request.headers.get("user-agent"):
        fill["user_agent"] = request.headers["user-agent"]
    if fill:
        metadata = metadata.model_copy(update=fill)

    ballot = service.cast_vote(vote.election_id, vote.voter, vote.candidate_id, metadata)
    return VoteReceipt(message="Vote cast successfully!", ballot=ballot)


@vote_router.get("/check/{election_id}/{voter_id}", response_model=VoteCheck)
def check_vote(election_id: str, voter_id: str, service: ElectionService = Depends(get_service)):
    """Checks whether the voter already has a ballot in this election."""
    service.get_election(election_id)
    ballot = service.get_ballot(election_id, voter_id)
    return VoteCheck(
        status="already_voted" if ballot else "not_voted",
        election_id=election_id,
        voter_id=voter_id,
        ballot=ballot,
    )


@vote_router.get("/results/{election_id}", response_model=ElectionResults)
def get_results(election_id: str, voter_id: Optional[str] = None, service: ElectionService = Depends(get_service)):
    return service.get_results(election_id, voter_id=voter_id)


@vote_router.get("/history/{voter_id}", response_model=VoterHistory)
def voter_history(voter_id: str, service: ElectionService = Depends(get_service)):
    ballots = service.voter_history(voter_id)
    return VoterHistory(voter_id=voter_id, elections_voted_count=len(ballots), ballots=ballots)
