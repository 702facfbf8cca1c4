from datetime import timedelta

import pytest

from ballotbox.errors import ValidationFailed
from ballotbox.validation import parse_election_definition, validate_election_definition
from conftest import NOW, make_definition


def failed_fields(data, now=NOW):
    with pytest.raises(ValidationFailed) as excinfo:
        validate_election_definition(parse_election_definition(data), now)
    return {err["field"] for err in excinfo.value.errors}


def test_valid_definition_passes():
    validate_election_definition(parse_election_definition(make_definition()), NOW)


def test_needs_two_candidates():
    assert failed_fields(make_definition(candidates=1)) == {"candidates"}


def test_end_must_follow_start():
    data = make_definition(duration=timedelta(0))
    assert failed_fields(data) == {"end_time"}


def test_start_must_be_in_future():
    data = make_definition(start_in=timedelta(minutes=-5))
    assert "start_time" in failed_fields(data)


def test_all_problems_reported_together():
    data = make_definition(title="   ", candidates=1, duration=timedelta(hours=-1))
    assert failed_fields(data) == {"title", "candidates", "end_time"}


def test_field_lengths():
    data = make_definition(title="x" * 201)
    data["candidates"][0]["name"] = "n" * 101
    data["candidates"][1]["description"] = "d" * 501
    assert failed_fields(data) == {"title", "candidates.0.name", "candidates.1.description"}


def test_candidate_party_required():
    data = make_definition()
    data["candidates"][1]["party"] = ""
    assert failed_fields(data) == {"candidates.1.party"}


@pytest.mark.parametrize(("min_age", "ok"), [(15, False), (16, True), (21, True), (22, False)])
def test_min_age_bounds(min_age, ok):
    data = make_definition(requirements={"min_age": min_age})
    if ok:
        validate_election_definition(parse_election_definition(data), NOW)
    else:
        assert failed_fields(data) == {"requirements.min_age"}


def test_shape_errors_become_validation_failed():
    data = make_definition()
    del data["created_by"]
    data["start_time"] = "not a date"
    with pytest.raises(ValidationFailed) as excinfo:
        parse_election_definition(data)
    fields = {err["field"] for err in excinfo.value.errors}
    assert fields == {"created_by", "start_time"}


def test_unknown_visibility_rejected():
    data = make_definition(settings={"results_visibility": "whenever"})
    with pytest.raises(ValidationFailed):
        parse_election_definition(data)


def test_naive_datetimes_are_read_as_utc():
    data = make_definition()
    data["start_time"] = data["start_time"].replace(tzinfo=None)
    data["end_time"] = data["end_time"].replace(tzinfo=None)
    definition = parse_election_definition(data)
    assert definition.start_time.utcoffset() == timedelta(0)
    validate_election_definition(definition, NOW)
