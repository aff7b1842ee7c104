import json
from unittest.mock import MagicMock, patch

import pytest

from app.core.config import settings
from app.infra.queue import JobQueue
from app.relationship.dispatcher import SideEffectDispatcher
from app.relationship.effects import DELIVER_NOTIFICATION_JOB, InMemoryFriendCounter, QueueNotifier
from app.worker.notifications import deliver_notification, inbox_key


def test_deliver_pushes_trims_and_expires():
    redis_conn = MagicMock()
    pipe = redis_conn.pipeline.return_value

    notification_id = deliver_notification(
        "bob", "friend_request", {"actor_id": "alice", "pair_key": "alice#bob"}, redis_conn=redis_conn
    )

    key = inbox_key("bob")
    assert key == "notifications:bob"
    pushed_key, raw = pipe.lpush.call_args.args
    record = json.loads(raw)
    assert pushed_key == key
    assert record["notification_id"] == notification_id
    assert record["type"] == "friend_request"
    assert record["actor_id"] == "alice"
    assert record["is_read"] is False
    pipe.ltrim.assert_called_once_with(key, 0, settings.notification_inbox_size - 1)
    pipe.expire.assert_called_once_with(key, settings.notification_ttl_days * 24 * 60 * 60)
    pipe.execute.assert_called_once()


async def test_queue_notifier_enqueues_delivery_job():
    queue = MagicMock()
    notifier = QueueNotifier(queue)

    await notifier.notify("bob", "friend_accepted", {"actor_id": "alice"})

    queue.enqueue.assert_called_once_with(
        DELIVER_NOTIFICATION_JOB,
        args=("bob", "friend_accepted", {"actor_id": "alice"}),
    )


def test_job_queue_attaches_retry_policy():
    with patch("app.infra.queue.Queue") as queue_cls:
        queue = JobQueue(MagicMock(), "notifications", max_retries=3, retry_intervals=[10, 60, 300])
        queue.enqueue(DELIVER_NOTIFICATION_JOB, args=("bob", "friend_request", {}))

    kwargs = queue_cls.return_value.enqueue.call_args.kwargs
    assert kwargs["retry"].max == 3
    assert kwargs["retry"].intervals == [10, 60, 300]
    assert kwargs["args"] == ("bob", "friend_request", {})


def test_deliver_uses_the_worker_connection():
    job = MagicMock()
    with patch("app.worker.notifications.get_current_job", return_value=job):
        deliver_notification("bob", "friend_request", {"actor_id": "alice"})

    job.connection.pipeline.return_value.execute.assert_called_once()


def test_deliver_outside_a_worker_needs_a_connection():
    with patch("app.worker.notifications.get_current_job", return_value=None):
        with pytest.raises(RuntimeError):
            deliver_notification("bob", "friend_request", {})


async def test_dispatcher_close_releases_the_queue_connection():
    queue = MagicMock()
    dispatcher = SideEffectDispatcher(QueueNotifier(queue), InMemoryFriendCounter())

    dispatcher.dispatch([])
    await dispatcher.close()

    queue.redis.close.assert_called_once_with()
