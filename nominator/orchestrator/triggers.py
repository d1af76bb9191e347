"""
Trigger sources feeding the round orchestrator.

Each source is a long-running coroutine that puts Trigger items on a shared
asyncio.Queue. The orchestrator is the single consumer.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Optional

from nominator.errors import DataUnavailable
from nominator.models.round import Trigger, TriggerKind

logger = logging.getLogger(__name__)


class IntervalTrigger:
    """Emit a timer trigger every `interval_seconds`, counting ticks from 1."""

    kind = TriggerKind.TIMER

    def __init__(self, interval_seconds: float):
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.interval_seconds = interval_seconds
        self.ticks = 0

    async def run(self, queue: asyncio.Queue) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            self.ticks += 1
            logger.debug(f"Timer tick {self.ticks}")
            await queue.put(Trigger(kind=TriggerKind.TIMER, key=self.ticks))


class EraChangeTrigger:
    """
    Emit an era trigger whenever the relay chain's active era advances.

    The first era observed is emitted straight away. A failed poll is logged
    and retried on the next interval; ConnectivityLost propagates.
    """

    kind = TriggerKind.ERA

    def __init__(self, gateway, poll_seconds: float = 60.0):
        self.gateway = gateway
        self.poll_seconds = poll_seconds
        self.last_era: Optional[int] = None

    async def poll_once(self, queue: asyncio.Queue) -> Optional[int]:
        """Check the active era once; enqueue and return it if it changed."""
        try:
            era = await self.gateway.fetch_active_era()
        except DataUnavailable as e:
            logger.warning(f"Could not read active era: {e}")
            return None
        if self.last_era is not None and era <= self.last_era:
            return None
        logger.info(f"Active era changed: {self.last_era} -> {era}")
        self.last_era = era
        await queue.put(Trigger(kind=TriggerKind.ERA, key=era))
        return era

    async def run(self, queue: asyncio.Queue) -> None:
        while True:
            await self.poll_once(queue)
            await asyncio.sleep(self.poll_seconds)
