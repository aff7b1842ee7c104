"""
Notification delivery jobs, executed by an RQ worker:

    rq worker notifications --url $REDIS_URL

Delivery is at-least-once; the inbox tolerates duplicates and readers dedupe
on `notification_id` when they need to.
"""

import json
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from redis import Redis
from rq import get_current_job

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)


def inbox_key(recipient_id: str) -> str:
    return f"notifications:{recipient_id}"


def deliver_notification(
    recipient_id: str,
    event_type: str,
    payload: Dict[str, Any],
    redis_conn: Optional[Redis] = None,
) -> str:
    """
    Push one in-app notification onto the recipient's inbox list.
    Inside a worker the job's own Redis connection is reused.
    """
    conn = redis_conn
    if conn is None:
        job = get_current_job()
        if job is None:
            raise RuntimeError("deliver_notification needs redis_conn outside an RQ worker")
        conn = job.connection
    notification_id = str(uuid.uuid4())
    record = {
        "notification_id": notification_id,
        "recipient_id": recipient_id,
        "type": event_type,
        "actor_id": payload.get("actor_id"),
        "resource_type": "user",
        "payload": payload,
        "is_read": False,
        "created_at": datetime.now(timezone.utc).isoformat(),
    }

    key = inbox_key(recipient_id)
    pipe = conn.pipeline()
    pipe.lpush(key, json.dumps(record))
    pipe.ltrim(key, 0, settings.notification_inbox_size - 1)
    pipe.expire(key, settings.notification_ttl_days * 24 * 60 * 60)
    pipe.execute()

    logger.info(
        "notification.delivered",
        notification_id=notification_id,
        recipient_id=recipient_id,
        event_type=event_type,
    )
    return notification_id
