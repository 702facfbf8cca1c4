"""Business rules for election definitions, checked before any write."""

from datetime import datetime
from typing import Any, Dict, List, Union

from pydantic import ValidationError

from ballotbox.config import (
    CANDIDATE_DESCRIPTION_MAX_LENGTH,
    CANDIDATE_FIELD_MAX_LENGTH,
    DESCRIPTION_MAX_LENGTH,
    LOCATION_MAX_LENGTH,
    MIN_AGE_LOWER_BOUND,
    MIN_AGE_UPPER_BOUND,
    MIN_CANDIDATES,
    TITLE_MAX_LENGTH,
)
from ballotbox.errors import ValidationFailed
from ballotbox.models.election_model import ElectionCreate


def parse_election_definition(data: Union[ElectionCreate, Dict[str, Any]]) -> ElectionCreate:
    """Accept a model or a raw mapping; shape errors become ValidationFailed."""
    if isinstance(data, ElectionCreate):
        return data
    try:
        return ElectionCreate.model_validate(data)
    except ValidationError as e:
        raise ValidationFailed([
            {
                "field": ".".join(str(p) for p in err["loc"]),
                "message": err["msg"],
            }
            for err in e.errors()
        ])


def _check_text(errors: List[Dict[str, str]], field: str, value: str, max_length: int, required: bool) -> None:
    text = (value or "").strip()
    if required and not text:
        errors.append({"field": field, "message": "is required"})
    elif len(text) > max_length:
        errors.append({"field": field, "message": f"cannot exceed {max_length} characters"})


def validate_election_definition(definition: ElectionCreate, now: datetime) -> None:
    """Raise ValidationFailed listing every rule the definition breaks."""
    errors: List[Dict[str, str]] = []

    _check_text(errors, "title", definition.title, TITLE_MAX_LENGTH, required=True)
    _check_text(errors, "description", definition.description, DESCRIPTION_MAX_LENGTH, required=False)
    _check_text(errors, "location", definition.location, LOCATION_MAX_LENGTH, required=False)
    _check_text(errors, "created_by", definition.created_by, CANDIDATE_FIELD_MAX_LENGTH, required=True)

    if len(definition.candidates) < MIN_CANDIDATES:
        errors.append({"field": "candidates", "message": f"at least {MIN_CANDIDATES} candidates are required"})

    for idx, cand in enumerate(definition.candidates):
        _check_text(errors, f"candidates.{idx}.name", cand.name, CANDIDATE_FIELD_MAX_LENGTH, required=True)
        _check_text(errors, f"candidates.{idx}.party", cand.party, CANDIDATE_FIELD_MAX_LENGTH, required=True)
        _check_text(
            errors, f"candidates.{idx}.description", cand.description,
            CANDIDATE_DESCRIPTION_MAX_LENGTH, required=False,
        )

    if definition.start_time <= now:
        errors.append({"field": "start_time", "message": "must be in the future"})
    if definition.end_time <= definition.start_time:
        errors.append({"field": "end_time", "message": "must be after start time"})

    min_age = definition.requirements.min_age
    if not MIN_AGE_LOWER_BOUND <= min_age <= MIN_AGE_UPPER_BOUND:
        errors.append({
            "field": "requirements.min_age",
            "message": f"must be between {MIN_AGE_LOWER_BOUND} and {MIN_AGE_UPPER_BOUND}",
        })

    if errors:
        raise ValidationFailed(errors)
