import pytest

from app.relationship.errors import InvalidCursorError, InvalidUserIdError
from app.relationship.projector import decode_cursor, encode_cursor, label_for
from app.relationship.types import EdgeState, RelationshipEdge, ViewerLabel, pair_key


def make_edge(a, b, state, requested_by=None, blocked_by=None):
    user_a, user_b = sorted((a, b))
    return RelationshipEdge(
        pair_key=pair_key(a, b),
        user_a=user_a,
        user_b=user_b,
        state=state,
        requested_by=requested_by,
        blocked_by=blocked_by,
        version=1,
    )


# ============ Labels ============

def test_labels_from_both_sides():
    pending = make_edge("alice", "bob", EdgeState.PENDING, requested_by="alice")
    blocked = make_edge("alice", "bob", EdgeState.BLOCKED, blocked_by="bob")
    friends = make_edge("alice", "bob", EdgeState.FRIENDS)

    assert label_for("alice", None) is ViewerLabel.NONE
    assert label_for("alice", pending) is ViewerLabel.PENDING_SENT
    assert label_for("bob", pending) is ViewerLabel.PENDING_RECEIVED
    assert label_for("alice", friends) is label_for("bob", friends) is ViewerLabel.FRIENDS
    assert label_for("bob", blocked) is ViewerLabel.BLOCKED
    assert label_for("alice", blocked) is ViewerLabel.BLOCKED_BY


async def test_status_reads_shared_edge(service, projector):
    await service.send("alice", "bob")

    assert await projector.status("alice", "bob") is ViewerLabel.PENDING_SENT
    assert await projector.status("bob", "alice") is ViewerLabel.PENDING_RECEIVED
    assert await projector.status("alice", "carol") is ViewerLabel.NONE
    assert await projector.status("alice", "alice") is ViewerLabel.NONE


async def test_status_validates_ids(projector):
    with pytest.raises(InvalidUserIdError):
        await projector.status("alice", "")


# ============ Lists ============

async def test_lists_split_by_direction(service, projector):
    await service.send("alice", "bob")
    await service.send("carol", "alice")
    await service.send("alice", "dave")
    await service.accept("dave", "alice")
    await service.block("alice", "erin")
    await service.block("frank", "alice")

    sent = await projector.list_pending_sent("alice")
    received = await projector.list_pending_received("alice")
    friends = await projector.list_friends("alice")
    blocked = await projector.list_blocked("alice")

    assert [(e.user_id, e.label) for e in sent.items] == [("bob", ViewerLabel.PENDING_SENT)]
    assert [(e.user_id, e.label) for e in received.items] == [("carol", ViewerLabel.PENDING_RECEIVED)]
    assert [(e.user_id, e.label) for e in friends.items] == [("dave", ViewerLabel.FRIENDS)]
    # Users who blocked alice never appear in her lists
    assert [(e.user_id, e.label) for e in blocked.items] == [("erin", ViewerLabel.BLOCKED)]
    assert all(page.next_cursor is None for page in (sent, received, friends, blocked))


async def test_list_entries_carry_since(service, projector):
    await service.send("alice", "bob")
    await service.accept("bob", "alice")

    page = await projector.list_friends("bob")
    assert page.items[0].user_id == "alice"
    assert page.items[0].since is not None


async def test_pagination_returns_each_edge_once(service, projector):
    friends = [f"user{i:02d}" for i in range(7)]
    for friend in friends:
        await service.send("alice", friend)
        await service.accept(friend, "alice")

    seen = []
    cursor = None
    while True:
        page = await projector.list_friends("alice", cursor=cursor, limit=3)
        seen.extend(entry.user_id for entry in page.items)
        cursor = page.next_cursor
        if cursor is None:
            break

    assert sorted(seen) == friends
    assert len(seen) == len(set(seen))


async def test_pagination_stable_under_unrelated_changes(service, projector):
    for friend in ("b1", "b2", "b3", "b4"):
        await service.send("alice", friend)
        await service.accept(friend, "alice")

    first = await projector.list_friends("alice", limit=2)
    # A new friendship sorting before the cursor does not shift later pages
    await service.send("alice", "a0")
    await service.accept("a0", "alice")
    second = await projector.list_friends("alice", cursor=first.next_cursor, limit=2)

    assert [e.user_id for e in first.items] == ["b1", "b2"]
    assert [e.user_id for e in second.items] == ["b3", "b4"]
    assert second.next_cursor is None


async def test_limit_is_clamped(service, store):
    from app.relationship.projector import QueryProjector

    projector = QueryProjector(store, default_limit=2, max_limit=3)
    for friend in ("b1", "b2", "b3", "b4"):
        await service.send("alice", friend)

    assert len((await projector.list_pending_sent("alice")).items) == 2
    assert len((await projector.list_pending_sent("alice", limit=50)).items) == 3
    assert len((await projector.list_pending_sent("alice", limit=0)).items) == 1


def test_cursor_round_trip_and_garbage():
    assert decode_cursor(encode_cursor("alice#bob")) == "alice#bob"
    assert decode_cursor(None) is None
    with pytest.raises(InvalidCursorError):
        decode_cursor("%%%")


async def test_are_friends_is_symmetric(service):
    await service.send("alice", "bob")
    assert not await service.are_friends("alice", "bob")

    await service.accept("bob", "alice")
    assert await service.are_friends("alice", "bob")
    assert await service.are_friends("bob", "alice")
