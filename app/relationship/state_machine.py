"""
Relationship state machine.

`decide` is a pure function of (current edge, action, actor, other). It never
touches storage or the clock, and it never raises for business conditions:
every outcome is an `Apply` or a `Reject`.

Transition table (actor acts on other):

    NONE                    send     -> PENDING(requested_by=actor), notify other
    NONE/PENDING/FRIENDS    block    -> BLOCKED(blocked_by=actor)
    PENDING(by actor)       cancel   -> NONE
    PENDING(by other)       accept   -> FRIENDS, notify other, +1 both counters
    PENDING(by other)       reject   -> NONE
    FRIENDS                 remove   -> NONE, -1 both counters
    FRIENDS                 block    -> also -1 both counters
    BLOCKED(by actor)       unblock  -> NONE
    BLOCKED(by other)       anything -> Reject(blocked)

Everything else is rejected. A missing edge rejects with `not_found`; an
existing edge in the wrong state with `invalid_transition`, except for the
`already_*` cases below.
"""

from typing import Optional

from app.relationship.types import (
    Action,
    Apply,
    Decision,
    EdgeState,
    FriendCountDelta,
    Notify,
    NotificationType,
    Reject,
    RejectReason,
    RelationshipEdge,
)


def decide(
    edge: Optional[RelationshipEdge],
    action: Action,
    actor: str,
    other: str,
    auto_accept_mutual: bool = False,
) -> Decision:
    if actor == other:
        return Reject(RejectReason.SELF_ACTION)

    state = edge.state if edge is not None else EdgeState.NONE

    if state is EdgeState.BLOCKED:
        return _decide_blocked(edge, action, actor)

    if action is Action.BLOCK:
        effects = _friend_count_deltas(actor, other, -1) if state is EdgeState.FRIENDS else ()
        return Apply(EdgeState.BLOCKED, blocked_by=actor, side_effects=effects)

    if state is EdgeState.NONE:
        return _decide_none(edge, action, actor, other)
    if state is EdgeState.PENDING:
        return _decide_pending(edge, action, actor, other, auto_accept_mutual)
    if state is EdgeState.FRIENDS:
        return _decide_friends(action, actor, other)

    return Reject(RejectReason.INVALID_TRANSITION)


def _decide_none(
    edge: Optional[RelationshipEdge], action: Action, actor: str, other: str
) -> Decision:
    if action is Action.SEND:
        return Apply(
            EdgeState.PENDING,
            requested_by=actor,
            side_effects=(
                _notify(other, NotificationType.FRIEND_REQUEST, actor, edge, other),
            ),
        )
    return Reject(RejectReason.NOT_FOUND)


def _decide_pending(
    edge: RelationshipEdge,
    action: Action,
    actor: str,
    other: str,
    auto_accept_mutual: bool,
) -> Decision:
    sent_by_actor = edge.requested_by == actor

    if action is Action.SEND:
        if not sent_by_actor and auto_accept_mutual:
            return _accept(edge, actor, other)
        return Reject(RejectReason.ALREADY_PENDING)

    if sent_by_actor:
        if action is Action.CANCEL:
            return Apply(EdgeState.NONE)
        return Reject(RejectReason.INVALID_TRANSITION)

    if action is Action.ACCEPT:
        return _accept(edge, actor, other)
    if action is Action.REJECT:
        return Apply(EdgeState.NONE)
    return Reject(RejectReason.INVALID_TRANSITION)


def _decide_friends(action: Action, actor: str, other: str) -> Decision:
    if action in (Action.SEND, Action.ACCEPT):
        return Reject(RejectReason.ALREADY_FRIENDS)
    if action is Action.REMOVE:
        return Apply(EdgeState.NONE, side_effects=_friend_count_deltas(actor, other, -1))
    return Reject(RejectReason.INVALID_TRANSITION)


def _decide_blocked(edge: RelationshipEdge, action: Action, actor: str) -> Decision:
    if edge.blocked_by != actor:
        return Reject(RejectReason.BLOCKED)
    if action is Action.UNBLOCK:
        return Apply(EdgeState.NONE)
    return Reject(RejectReason.INVALID_TRANSITION)


def _accept(edge: RelationshipEdge, actor: str, other: str) -> Apply:
    return Apply(
        EdgeState.FRIENDS,
        side_effects=(
            _notify(other, NotificationType.FRIEND_ACCEPTED, actor, edge, other),
        )
        + _friend_count_deltas(actor, other, +1),
    )


def _notify(
    recipient: str,
    event_type: NotificationType,
    actor: str,
    edge: Optional[RelationshipEdge],
    other: str,
) -> Notify:
    key = edge.pair_key if edge is not None else RelationshipEdge.empty(actor, other).pair_key
    return Notify(recipient, event_type, {"actor_id": actor, "pair_key": key})


def _friend_count_deltas(actor: str, other: str, delta: int) -> tuple:
    return (FriendCountDelta(actor, delta), FriendCountDelta(other, delta))
