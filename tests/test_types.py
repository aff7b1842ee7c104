from datetime import datetime, timedelta, timezone

import pytest

from app.relationship.types import (
    Apply,
    EdgeState,
    RelationshipEdge,
    canonical_pair,
    is_valid_user_id,
    pair_key,
)


def test_pair_key_is_order_independent():
    assert pair_key("bob", "alice") == pair_key("alice", "bob") == "alice#bob"


def test_canonical_pair_rejects_same_user():
    with pytest.raises(ValueError):
        canonical_pair("alice", "alice")


@pytest.mark.parametrize(
    "user_id,valid",
    [
        ("u1", True),
        ("x" * 64, True),
        ("", False),
        ("x" * 65, False),
        ("a#b", False),
        (None, False),
        (42, False),
    ],
)
def test_user_id_validation(user_id, valid):
    assert is_valid_user_id(user_id) is valid


def test_empty_edge_is_canonical():
    edge = RelationshipEdge.empty("zed", "amy")

    assert (edge.user_a, edge.user_b) == ("amy", "zed")
    assert edge.state is EdgeState.NONE
    assert edge.version == 0
    assert edge.other("amy") == "zed"
    with pytest.raises(ValueError):
        edge.other("bob")


def test_advance_bumps_version_and_keeps_created_at():
    t0 = datetime(2026, 1, 1, tzinfo=timezone.utc)
    t1 = t0 + timedelta(minutes=5)

    pending = RelationshipEdge.empty("amy", "zed").advance(Apply(EdgeState.PENDING, requested_by="amy"), t0)
    friends = pending.advance(Apply(EdgeState.FRIENDS), t1)

    assert pending.version == 1
    assert pending.created_at == t0
    assert friends.version == 2
    assert friends.created_at == t0
    assert friends.updated_at == t1
    assert friends.requested_by is None
