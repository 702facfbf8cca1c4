from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Response, status

from ballotbox.dependencies import get_service
from ballotbox.models.election_model import ElectionCreate, ElectionFilter, ElectionOut
from ballotbox.models.results_model import ElectionResults, TallyAudit, TimelineBucket
from ballotbox.models.vote_model import Ballot
from ballotbox.service import ElectionService

router = APIRouter(prefix="/elections", tags=["Election"])


@router.get("", response_model=List[ElectionOut])
def list_elections(
    which: ElectionFilter = Query(ElectionFilter.ALL, alias="filter"),
    service: ElectionService = Depends(get_service),
):
    return service.list_elections(which)


@router.post("", response_model=ElectionOut, status_code=status.HTTP_201_CREATED)
def create_election(election: ElectionCreate, service: ElectionService = Depends(get_service)):
    return service.create_election(election)


@router.get("/{election_id}", response_model=ElectionOut)
def get_election(election_id: str, service: ElectionService = Depends(get_service)):
    return service.get_election(election_id)


@router.put("/{election_id}", response_model=ElectionOut)
def update_election(election_id: str, election: ElectionCreate, service: ElectionService = Depends(get_service)):
    return service.update_election(election_id, election)


@router.delete("/{election_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_election(election_id: str, service: ElectionService = Depends(get_service)):
    service.delete_election(election_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{election_id}/suspend", response_model=ElectionOut)
def suspend_election(election_id: str, service: ElectionService = Depends(get_service)):
    return service.suspend_election(election_id)


@router.post("/{election_id}/resume", response_model=ElectionOut)
def resume_election(election_id: str, service: ElectionService = Depends(get_service)):
    return service.resume_election(election_id)


@router.get("/{election_id}/results", response_model=ElectionResults)
def get_results(
    election_id: str,
    voter_id: Optional[str] = None,
    service: ElectionService = Depends(get_service),
):
    return service.get_results(election_id, voter_id=voter_id)


@router.get("/{election_id}/audit", response_model=TallyAudit)
def audit_tally(election_id: str, service: ElectionService = Depends(get_service)):
    return service.audit_tally(election_id)


@router.get("/{election_id}/timeline", response_model=List[TimelineBucket])
def voting_timeline(election_id: str, service: ElectionService = Depends(get_service)):
    return service.voting_timeline(election_id)


@router.get("/{election_id}/ballots", response_model=List[Ballot])
def election_ballots(election_id: str, service: ElectionService = Depends(get_service)):
    return service.election_ballots(election_id)
