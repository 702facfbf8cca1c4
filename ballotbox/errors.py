"""
Domain error taxonomy for the election core.

Every failure the core can report is an ElectionError carrying a
machine-readable ``kind`` and a ``context`` dict. Callers branch on the
class (or ``kind``); only StorageUnavailable is worth retrying.
"""

from typing import Any, Dict, List, Optional


class ElectionError(Exception):
    """Base class for all expected election outcomes that are not success."""

    kind: str = "ElectionError"
    _retryable: bool = False

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None):
        self.context = context or {}
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        return self._retryable

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, **self.context}

    def __str__(self):
        base_msg = super().__str__()
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{base_msg} (context: {context_str})"
        return base_msg


class NotFound(ElectionError):
    kind = "NotFound"

    def __init__(self, resource: str, identifier: Any):
        super().__init__(
            f"{resource} not found",
            {"resource": resource, "id": str(identifier)},
        )


class NotAcceptingVotes(ElectionError):
    """The election is not in the active phase.

    ``reason`` is one of ``not_started``, ``ended`` or ``suspended``.
    """

    kind = "NotAcceptingVotes"

    NOT_STARTED = "not_started"
    ENDED = "ended"
    SUSPENDED = "suspended"

    def __init__(self, election_id: str, reason: str):
        self.reason = reason
        super().__init__(
            "Election is not accepting votes",
            {"election_id": election_id, "reason": reason},
        )


class NotEligible(ElectionError):
    kind = "NotEligible"

    def __init__(self, voter_id: str, reasons: List[str]):
        self.reasons = list(reasons)
        super().__init__(
            "Voter is not eligible",
            {"voter_id": voter_id, "reasons": self.reasons},
        )


class InvalidCandidate(ElectionError):
    kind = "InvalidCandidate"

    def __init__(self, election_id: str, candidate_id: Any):
        super().__init__(
            "Candidate does not belong to this election",
            {"election_id": election_id, "candidate_id": candidate_id},
        )


class DuplicateVote(ElectionError):
    kind = "DuplicateVote"

    def __init__(self, election_id: str, voter_id: str):
        super().__init__(
            "Voter has already voted in this election",
            {"election_id": election_id, "voter_id": voter_id},
        )


class NotAvailable(ElectionError):
    """Results are not yet published under the election's visibility policy."""

    kind = "NotAvailable"

    def __init__(self, election_id: str, visibility: str):
        super().__init__(
            "Results are not available yet",
            {"election_id": election_id, "visibility": visibility},
        )


class StorageUnavailable(ElectionError):
    """Timeout or transient infrastructure failure; safe to retry."""

    kind = "StorageUnavailable"
    _retryable = True

    def __init__(self, operation: str, original_error: Optional[Exception] = None):
        self.original_error = original_error
        context = {"operation": operation}
        if original_error is not None:
            context["original_error"] = str(original_error)
        super().__init__("Storage is unavailable", context)


class ValidationFailed(ElectionError):
    """Malformed election definition. ``errors`` lists every violated rule."""

    kind = "ValidationFailed"

    def __init__(self, errors: List[Dict[str, str]]):
        self.errors = list(errors)
        super().__init__("Election definition is invalid", {"errors": self.errors})


class ElectionLocked(ElectionError):
    """The election has started; its definition can no longer change."""

    kind = "ElectionLocked"

    def __init__(self, election_id: str):
        super().__init__(
            "Election has already started and cannot be modified",
            {"election_id": election_id},
        )
