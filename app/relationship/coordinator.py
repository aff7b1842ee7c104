"""
Transition coordinator.

Runs one action end to end: read the edge, ask the state machine, write the
successor conditionally on the version that was read, retry on conflict, and
hand side effects to the dispatcher once the write has committed. No lock is
held across any await; concurrent actors on the same pair are serialized
solely by the store's compare-and-swap.
"""

import asyncio
from datetime import datetime
from typing import Callable, Optional, Union

from app.core.logging import LatencyLogger, get_logger
from app.core.time import utcnow
from app.relationship.dispatcher import SideEffectDispatcher
from app.relationship.errors import (
    ContentionError,
    InvalidUserIdError,
    RelationshipTimeoutError,
    SelfActionError,
    error_for,
)
from app.relationship.projector import label_for
from app.relationship.state_machine import decide
from app.relationship.store import EdgeStore
from app.relationship.types import (
    Action,
    Apply,
    Reject,
    RelationshipEdge,
    ViewerLabel,
    is_valid_user_id,
    pair_key,
)

logger = get_logger(__name__)

_UNSET = object()


class TransitionCoordinator:
    def __init__(
        self,
        store: EdgeStore,
        dispatcher: SideEffectDispatcher,
        max_attempts: int = 5,
        timeout: Optional[float] = None,
        auto_accept_mutual: bool = False,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.max_attempts = max_attempts
        self.timeout = timeout
        self.auto_accept_mutual = auto_accept_mutual
        self.clock = clock

    async def execute(
        self,
        actor: str,
        other: str,
        action: Union[Action, str],
        timeout: Union[float, None, object] = _UNSET,
    ) -> ViewerLabel:
        """
        Apply `action` by `actor` against `other` and return the actor's new label.

        Raises a RelationshipError subclass for business rejections (carrying the
        actor's current label), ContentionError when every attempt lost a write
        race, RelationshipTimeoutError when the deadline passes between attempts,
        and StoreUnavailableError when the store fails.
        """
        action = Action(action)
        if not is_valid_user_id(actor) or not is_valid_user_id(other):
            raise InvalidUserIdError()
        if actor == other:
            raise SelfActionError()

        key = pair_key(actor, other)
        budget = self.timeout if timeout is _UNSET else timeout
        loop = asyncio.get_running_loop()
        deadline = loop.time() + budget if budget else None
        log = logger.bind(pair_key=key, actor=actor, action=action.value)

        edge: Optional[RelationshipEdge] = None
        with LatencyLogger("relationship.execute", log):
            for attempt in range(1, self.max_attempts + 1):
                if attempt > 1 and deadline is not None and loop.time() >= deadline:
                    log.warning("relationship.timeout", attempt=attempt)
                    raise RelationshipTimeoutError(label_for(actor, edge))

                edge = await self.store.get_edge(key)
                decision = decide(edge, action, actor, other, self.auto_accept_mutual)

                if isinstance(decision, Reject):
                    log.info("relationship.rejected", reason=decision.reason.value, attempt=attempt)
                    raise error_for(decision.reason, label_for(actor, edge))

                current = edge or RelationshipEdge.empty(actor, other)
                successor = current.advance(decision, self.clock())

                if await self._write(successor, current.version, decision):
                    log.info(
                        "relationship.commit",
                        state=successor.state.value,
                        version=successor.version,
                        attempt=attempt,
                    )
                    self.dispatcher.dispatch(decision.side_effects, pair_key=key)
                    return label_for(actor, successor)

                log.info("relationship.conflict", expected_version=current.version, attempt=attempt)

        log.warning("relationship.contention", attempts=self.max_attempts)
        raise ContentionError(label_for(actor, edge))

    async def _write(self, successor: RelationshipEdge, expected_version: int, decision: Apply) -> bool:
        # Shielded so a caller timeout never abandons a half-finished conditional write
        write = asyncio.ensure_future(self.store.put_edge_if_version(successor, expected_version))
        try:
            return await asyncio.shield(write)
        except asyncio.CancelledError:
            write.add_done_callback(
                lambda task: self._finish_abandoned_write(task, successor, decision)
            )
            raise

    def _finish_abandoned_write(
        self, task: asyncio.Future, successor: RelationshipEdge, decision: Apply
    ) -> None:
        if task.cancelled() or task.exception() is not None or not task.result():
            return
        logger.info(
            "relationship.commit_after_cancel",
            pair_key=successor.pair_key,
            version=successor.version,
        )
        self.dispatcher.dispatch(decision.side_effects, pair_key=successor.pair_key)
