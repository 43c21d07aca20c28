import pytest
from pydantic import ValidationError

from app.models import CanonicalMedia, MediaRelation, Provenance


def _record(**overrides) -> CanonicalMedia:
    data = {
        "id": 1,
        "title": "Cowboy Bebop",
        "provenance": Provenance.ANILIST,
        "genres": ("Action", "Sci-Fi"),
        "relations": (
            MediaRelation(id=2, title="Cowboy Bebop: The Movie", relation_kind="SIDE_STORY"),
        ),
    }
    data.update(overrides)
    return CanonicalMedia(**data)


def test_payload_uses_camel_case_and_round_trips():
    record = _record(external_id=1, episode_count=26, score=86)
    payload = record.to_payload()

    assert payload["externalId"] == 1
    assert payload["episodeCount"] == 26
    assert payload["provenance"] == "anilist"
    assert payload["relations"][0]["relationKind"] == "SIDE_STORY"
    assert CanonicalMedia.model_validate(payload) == record


def test_records_are_immutable():
    record = _record()
    with pytest.raises(ValidationError):
        record.title = "Trigun"


def test_score_must_be_on_canonical_scale():
    with pytest.raises(ValidationError):
        _record(score=850)


def test_unknown_episode_count_defaults_to_zero():
    assert _record().episode_count == 0

