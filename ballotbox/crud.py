import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from bson import ObjectId

from ballotbox.errors import ElectionLocked, NotFound
from ballotbox.lifecycle import election_status, has_started, time_remaining
from ballotbox.models.election_model import (
    Candidate,
    Election,
    ElectionCreate,
    ElectionFilter,
    ElectionOut,
    ElectionStatus,
)
from ballotbox.storage import ElectionStore
from ballotbox.validation import parse_election_definition, validate_election_definition

logger = logging.getLogger(__name__)

Definition = Union[ElectionCreate, Dict[str, Any]]

_FILTER_STATUS = {
    ElectionFilter.ACTIVE: ElectionStatus.ACTIVE,
    ElectionFilter.UPCOMING: ElectionStatus.SCHEDULED,
    ElectionFilter.COMPLETED: ElectionStatus.COMPLETED,
}


def to_view(election: Election, now: datetime) -> ElectionOut:
    return ElectionOut(
        **election.model_dump(),
        status=election_status(election, now),
        time_remaining_seconds=time_remaining(election, now).total_seconds(),
    )


def build_election(
    definition: ElectionCreate,
    now: datetime,
    election_id: Optional[str] = None,
    created_at: Optional[datetime] = None,
    is_active: bool = True,
) -> Election:
    candidates = [
        Candidate(
            id=idx,
            name=c.name.strip(),
            party=c.party.strip(),
            description=c.description.strip(),
            image_url=c.image_url,
            votes=0,
        )
        for idx, c in enumerate(definition.candidates)
    ]
    return Election(
        id=election_id or str(ObjectId()),
        title=definition.title.strip(),
        description=definition.description.strip(),
        candidates=candidates,
        start_time=definition.start_time,
        end_time=definition.end_time,
        is_active=is_active,
        created_by=definition.created_by,
        total_votes=0,
        election_type=definition.election_type,
        location=definition.location.strip(),
        requirements=definition.requirements,
        settings=definition.settings,
        created_at=created_at or now,
        updated_at=now,
    )


def get_election(store: ElectionStore, election_id: str) -> Election:
    election = store.get_election(election_id)
    if election is None:
        raise NotFound("election", election_id)
    return election


def list_elections(store: ElectionStore, now: datetime, which: ElectionFilter = ElectionFilter.ALL) -> List[Election]:
    elections = store.list_elections()
    if which is ElectionFilter.ALL:
        return elections
    wanted = _FILTER_STATUS[which]
    return [e for e in elections if election_status(e, now) is wanted]


def create_election(store: ElectionStore, data: Definition, now: datetime) -> Election:
    definition = parse_election_definition(data)
    validate_election_definition(definition, now)
    election = store.insert_election(build_election(definition, now))
    logger.info(f"Election '{election.title}' scheduled by {election.created_by}")
    return election


def update_election(store: ElectionStore, election_id: str, data: Definition, now: datetime) -> Election:
    """Replace the definition of an election that has not started yet."""
    current = get_election(store, election_id)
    if has_started(current, now):
        raise ElectionLocked(election_id)
    definition = parse_election_definition(data)
    validate_election_definition(definition, now)
    updated = build_election(
        definition,
        now,
        election_id=current.id,
        created_at=current.created_at,
        is_active=current.is_active,
    )
    if not store.replace_election(updated, now):
        # Started (or vanished) between the read and the write
        if store.get_election(election_id) is None:
            raise NotFound("election", election_id)
        raise ElectionLocked(election_id)
    return updated


def delete_election(store: ElectionStore, election_id: str, now: datetime) -> None:
    current = get_election(store, election_id)
    if has_started(current, now):
        raise ElectionLocked(election_id)
    if not store.delete_election(election_id, now):
        if store.get_election(election_id) is None:
            raise NotFound("election", election_id)
        raise ElectionLocked(election_id)
    logger.info(f"Election {election_id} deleted before start")


def set_election_active(store: ElectionStore, election_id: str, is_active: bool, now: datetime) -> Election:
    election = store.set_active(election_id, is_active, now)
    if election is None:
        raise NotFound("election", election_id)
    logger.info(f"Election {election_id} {'resumed' if is_active else 'suspended'}")
    return election
