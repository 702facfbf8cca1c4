import logging
from collections import Counter
from datetime import datetime
from typing import List, Optional

from ballotbox.errors import NotAvailable, NotFound
from ballotbox.lifecycle import results_visible
from ballotbox.models.election_model import Election
from ballotbox.models.results_model import (
    CandidateMismatch,
    CandidateResult,
    ElectionResults,
    TallyAudit,
    TimelineBucket,
)
from ballotbox.storage import ElectionStore

logger = logging.getLogger(__name__)


def compute_results(election: Election) -> ElectionResults:
    """Rank candidates and decide winner or tie. Pure; reads only the election."""
    total = election.total_votes
    rows = [
        CandidateResult(
            candidate_id=c.id,
            name=c.name,
            party=c.party,
            votes=c.votes,
            percentage=round(c.votes / total * 100, 2) if total > 0 else 0.0,
        )
        for c in election.candidates
    ]
    # sorted() is stable, so equal counts keep ballot-paper order
    ranked = sorted(rows, key=lambda r: r.votes, reverse=True)

    top = ranked[0].votes if ranked else 0
    leaders = [r for r in ranked if r.votes == top] if top > 0 else []

    return ElectionResults(
        election_id=election.id,
        title=election.title,
        total_votes=total,
        results=ranked,
        winner=leaders[0] if len(leaders) == 1 else None,
        is_tie=len(leaders) > 1,
    )


def get_results(store: ElectionStore, election_id: str, now: datetime, voter_id: Optional[str] = None) -> ElectionResults:
    election = store.get_election(election_id)
    if election is None:
        raise NotFound("election", election_id)
    voter_has_voted = voter_id is not None and store.find_ballot(election.id, voter_id) is not None
    if not results_visible(election, now, voter_has_voted=voter_has_voted):
        raise NotAvailable(election.id, election.settings.results_visibility.value)
    return compute_results(election)


def audit_tally(store: ElectionStore, election_id: str) -> TallyAudit:
    """Recount the ledger and compare it with the election's counters."""
    election = store.get_election(election_id)
    if election is None:
        raise NotFound("election", election_id)
    counts = store.count_ballots(election.id)

    mismatches = []
    for cand in election.candidates:
        ledger_votes = counts.get(cand.id, 0)
        if ledger_votes != cand.votes:
            logger.warning(
                f"Tally mismatch in election {election.id} candidate {cand.id}: "
                f"stored={cand.votes} ledger={ledger_votes}"
            )
            mismatches.append(CandidateMismatch(
                candidate_id=cand.id, stored_votes=cand.votes, ledger_votes=ledger_votes
            ))

    ledger_total = sum(counts.values())
    stored_sum = sum(c.votes for c in election.candidates)
    consistent = not mismatches and ledger_total == election.total_votes == stored_sum
    return TallyAudit(
        election_id=election.id,
        consistent=consistent,
        stored_total=election.total_votes,
        ledger_total=ledger_total,
        mismatches=mismatches,
    )


def voting_timeline(store: ElectionStore, election_id: str) -> List[TimelineBucket]:
    """Ballots per hour, oldest hour first."""
    if store.get_election(election_id) is None:
        raise NotFound("election", election_id)
    buckets = Counter(
        b.cast_at.replace(minute=0, second=0, microsecond=0)
        for b in store.list_ballots(election_id=election_id)
    )
    return [TimelineBucket(hour=hour, votes=n) for hour, n in sorted(buckets.items())]
