"""
Side-effect dispatcher.

Runs only after an edge write has committed. The edge is the durable source of
truth; notifications and counters are best-effort projections, so a failure
here is logged and never reverts or fails the action.
"""

import asyncio
from typing import Iterable, Optional, Set

from app.core.logging import get_logger
from app.relationship.effects import FriendCounter, Notifier
from app.relationship.types import FriendCountDelta, Notify, SideEffect

logger = get_logger(__name__)


class SideEffectDispatcher:
    def __init__(self, notifier: Notifier, counter: FriendCounter):
        self.notifier = notifier
        self.counter = counter
        self._tasks: Set[asyncio.Task] = set()

    def dispatch(self, effects: Iterable[SideEffect], pair_key: str = "") -> Optional[asyncio.Task]:
        """Schedule effects in the background and return immediately"""
        effects = tuple(effects)
        if not effects:
            return None

        task = asyncio.get_running_loop().create_task(self._run(effects, pair_key))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, effects: tuple, pair_key: str) -> None:
        # Each effect is its own unit: one failing must not skip the rest
        await asyncio.gather(*(self._apply_safely(effect, pair_key) for effect in effects))

    async def _apply_safely(self, effect: SideEffect, pair_key: str) -> None:
        try:
            await self._apply(effect)
        except Exception as e:
            logger.error(
                "side_effect.failed",
                effect=type(effect).__name__,
                pair_key=pair_key,
                error=str(e),
                exc_info=True,
            )

    async def _apply(self, effect: SideEffect) -> None:
        if isinstance(effect, Notify):
            await self.notifier.notify(effect.recipient_id, effect.event_type.value, effect.payload)
        elif isinstance(effect, FriendCountDelta):
            await self.counter.increment_friend_count(effect.user_id, effect.delta)
        else:
            raise TypeError(f"unknown side effect {effect!r}")

    @property
    def pending(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait for scheduled effects, used at shutdown and in tests"""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def close(self) -> None:
        """Finish scheduled effects, then release the notifier"""
        await self.drain()
        await self.notifier.close()
