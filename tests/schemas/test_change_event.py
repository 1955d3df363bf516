"""Tests for the ChangeEvent wire shape."""
import json
from uuid import uuid4

import pytest
from pydantic import ValidationError

from factories import make_record
from schemas.change_event import ChangeEvent, ChangeKind

OWNER = uuid4()


def test__added__carries_record_and_owner() -> None:
    record = make_record(owner=OWNER)
    event = ChangeEvent.added(record)

    assert event.kind == ChangeKind.ADDED
    assert event.owner == OWNER
    assert event.record == record
    assert event.id is None
    assert event.bookmark_id == record.id


def test__removed__carries_only_id() -> None:
    bookmark_id = uuid4()
    event = ChangeEvent.removed(OWNER, bookmark_id)

    assert event.kind == ChangeKind.REMOVED
    assert event.record is None
    assert event.bookmark_id == bookmark_id


def test__serialized_shape() -> None:
    record = make_record(owner=OWNER)
    payload = json.loads(ChangeEvent.replaced(record).model_dump_json())

    assert set(payload) == {"kind", "owner", "record", "id"}
    assert payload["kind"] == "replaced"
    assert payload["owner"] == str(OWNER)
    assert payload["record"]["id"] == str(record.id)


def test__parse_from_wire() -> None:
    bookmark_id = uuid4()
    payload = json.dumps({"kind": "removed", "owner": str(OWNER), "id": str(bookmark_id)})

    event = ChangeEvent.model_validate_json(payload)

    assert event == ChangeEvent.removed(OWNER, bookmark_id)


@pytest.mark.parametrize("kind", ["added", "replaced"])
def test__record_required_for_added_and_replaced(kind: str) -> None:
    with pytest.raises(ValidationError, match="requires 'record'"):
        ChangeEvent(kind=kind, owner=OWNER, id=uuid4())


def test__id_required_for_removed() -> None:
    with pytest.raises(ValidationError, match="requires 'id'"):
        ChangeEvent(kind=ChangeKind.REMOVED, owner=OWNER)


def test__record_owner_must_match_event_owner() -> None:
    with pytest.raises(ValidationError, match="record owner does not match"):
        ChangeEvent(kind=ChangeKind.ADDED, owner=OWNER, record=make_record(owner=uuid4()))


def test__unknown_kind_rejected() -> None:
    with pytest.raises(ValidationError):
        ChangeEvent.model_validate({"kind": "moved", "owner": str(OWNER), "id": str(uuid4())})
