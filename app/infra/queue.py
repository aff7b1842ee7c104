"""
Queue infrastructure configuration

Redis Queue (RQ) wrapper used to hand work to background workers.
"""

from typing import Any, Dict, Optional, Sequence

from redis import Redis
from rq import Queue, Retry
from rq.job import Job

from app.core.config import settings
from app.core.logging import get_logger

logger = get_logger(__name__)


class JobQueue:
    """Wrapper around RQ Queue with the worker defaults from settings"""

    def __init__(
        self,
        redis_conn: Redis,
        queue_name: str = "default",
        max_retries: int = 0,
        retry_intervals: Sequence[int] = (),
    ):
        self.redis = redis_conn
        self.queue_name = queue_name
        self.queue = Queue(queue_name, connection=self.redis)
        self.retry = Retry(max=max_retries, interval=list(retry_intervals) or 0) if max_retries else None

    def enqueue(
        self,
        func: str,  # "module.path.to.func"
        args: Optional[tuple] = None,
        kwargs: Optional[Dict[str, Any]] = None,
        timeout: int = settings.worker_job_timeout,
        result_ttl: int = settings.worker_result_ttl,
    ) -> Job:
        """Enqueue a job; blocking, call it off the event loop"""
        try:
            job = self.queue.enqueue(
                func,
                args=args,
                kwargs=kwargs,
                result_ttl=result_ttl,
                job_timeout=timeout,
                retry=self.retry,
            )
        except Exception as e:
            logger.error("queue.enqueue_failed", function=func, queue=self.queue_name, error=str(e))
            raise

        logger.debug("queue.enqueued", job_id=job.id, function=func, queue=self.queue_name)
        return job
