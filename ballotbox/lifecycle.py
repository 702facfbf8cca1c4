"""
Election phase derivation.

The phase is never stored: it is recomputed from the election's own fields
and the current time on every read.
"""

from datetime import datetime, timedelta
from typing import Optional

from ballotbox.errors import NotAcceptingVotes
from ballotbox.models.election_model import Election, ElectionStatus, ResultsVisibility


def election_status(election: Election, now: datetime) -> ElectionStatus:
    # The active flag wins over the time bounds
    if not election.is_active:
        return ElectionStatus.SUSPENDED
    if now < election.start_time:
        return ElectionStatus.SCHEDULED
    if now > election.end_time:
        return ElectionStatus.COMPLETED
    return ElectionStatus.ACTIVE


def closed_reason(election: Election, now: datetime) -> Optional[str]:
    """Why the election refuses votes right now, or None when it accepts them."""
    status = election_status(election, now)
    if status is ElectionStatus.SUSPENDED:
        return NotAcceptingVotes.SUSPENDED
    if status is ElectionStatus.SCHEDULED:
        return NotAcceptingVotes.NOT_STARTED
    if status is ElectionStatus.COMPLETED:
        return NotAcceptingVotes.ENDED
    return None


def require_accepting_votes(election: Election, now: datetime) -> None:
    reason = closed_reason(election, now)
    if reason is not None:
        raise NotAcceptingVotes(election.id, reason)


def has_started(election: Election, now: datetime) -> bool:
    return now >= election.start_time


def time_remaining(election: Election, now: datetime) -> timedelta:
    if now < election.start_time:
        return election.start_time - now
    if now > election.end_time:
        return timedelta(0)
    return election.end_time - now


def results_visible(election: Election, now: datetime, voter_has_voted: bool = False) -> bool:
    """Apply the election's visibility policy.

    ``voter_has_voted`` only matters for ``after_voting``: the requesting voter
    may see results once their own ballot is in.
    """
    visibility = election.settings.results_visibility
    completed = election_status(election, now) is ElectionStatus.COMPLETED
    if visibility is ResultsVisibility.IMMEDIATE:
        return True
    if visibility is ResultsVisibility.AFTER_VOTING:
        return completed or voter_has_voted
    return completed
