import asyncio

from app.relationship.dispatcher import SideEffectDispatcher
from app.relationship.effects import InMemoryFriendCounter, InMemoryNotifier, Notifier
from app.relationship.types import FriendCountDelta, Notify, NotificationType


class FailingNotifier(Notifier):
    def __init__(self):
        self.attempts = 0

    async def notify(self, recipient_id, event_type, payload):
        self.attempts += 1
        raise ConnectionError("queue down")


async def test_dispatch_runs_in_background(dispatcher, notifier, counter):
    task = dispatcher.dispatch(
        [
            Notify("bob", NotificationType.FRIEND_REQUEST, {"actor_id": "alice"}),
            FriendCountDelta("bob", 1),
        ],
        pair_key="alice#bob",
    )

    assert task is not None
    assert dispatcher.pending == 1
    await dispatcher.drain()

    assert dispatcher.pending == 0
    assert notifier.sent == [("bob", "friend_request", {"actor_id": "alice"})]
    assert counter.counts == {"bob": 1}


async def test_dispatch_without_effects_schedules_nothing(dispatcher):
    assert dispatcher.dispatch(()) is None
    assert dispatcher.pending == 0


async def test_one_failing_effect_does_not_skip_others():
    notifier = FailingNotifier()
    counter = InMemoryFriendCounter()
    dispatcher = SideEffectDispatcher(notifier, counter)

    dispatcher.dispatch(
        [
            Notify("alice", NotificationType.FRIEND_ACCEPTED),
            FriendCountDelta("alice", 1),
            FriendCountDelta("bob", 1),
        ]
    )
    await dispatcher.drain()

    assert notifier.attempts == 1
    assert counter.counts == {"alice": 1, "bob": 1}


async def test_unknown_effect_is_contained(notifier, counter):
    dispatcher = SideEffectDispatcher(notifier, counter)

    dispatcher.dispatch(["not-an-effect", FriendCountDelta("bob", -1)])
    await dispatcher.drain()

    assert counter.counts == {"bob": -1}


async def test_failed_notification_does_not_fail_the_action(store):
    from app.relationship.coordinator import TransitionCoordinator
    from app.relationship.types import Action, ViewerLabel

    notifier = FailingNotifier()
    dispatcher = SideEffectDispatcher(notifier, InMemoryFriendCounter())
    coordinator = TransitionCoordinator(store, dispatcher)

    assert await coordinator.execute("alice", "bob", Action.SEND) is ViewerLabel.PENDING_SENT
    await dispatcher.drain()

    assert notifier.attempts == 1
    assert (await store.get_edge("alice#bob")).requested_by == "alice"


async def test_drain_waits_for_effects_scheduled_while_draining(counter):
    class SlowNotifier(InMemoryNotifier):
        async def notify(self, recipient_id, event_type, payload):
            await asyncio.sleep(0.01)
            await super().notify(recipient_id, event_type, payload)

    notifier = SlowNotifier()
    dispatcher = SideEffectDispatcher(notifier, counter)

    dispatcher.dispatch([Notify("bob", NotificationType.FRIEND_REQUEST)])
    drain = asyncio.create_task(dispatcher.drain())
    await asyncio.sleep(0)
    dispatcher.dispatch([Notify("carol", NotificationType.FRIEND_REQUEST)])
    await drain

    assert sorted(to for to, _, _ in notifier.sent) == ["bob", "carol"]
