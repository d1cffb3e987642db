"""
Activity Service - periodic activity-to-price recomputation.

Counts messages and distinct authors per guild between runs, then on a fixed
interval turns each guild's counters into a true-price sample and a price
drift step. Counters are reset by every run.
"""

import asyncio
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, Optional, Set

from guild_exchange.core.matching_engine import MatchingEngine
from guild_exchange.core.ticker_registry import TickerRegistry
from guild_exchange.services.persistence import StateStore


@dataclass
class ActivityCounter:
    """Activity of one guild since the last run."""
    messages: int = 0
    authors: Set[str] = field(default_factory=set)


class ActivityService:
    """
    Service class for collecting guild activity and applying it to prices.
    """

    def __init__(
        self,
        matching_engine: MatchingEngine,
        registry: Optional[TickerRegistry] = None,
        store: Optional[StateStore] = None,
        interval_seconds: float = 60,
    ):
        """
        Initialize activity service.

        Args:
            matching_engine: Reference to the matching engine instance
            registry: Ticker registry saved alongside the engine
            store: State store written after every run (None to skip)
            interval_seconds: Seconds between runs of the background task
        """
        self.matching_engine = matching_engine
        self.registry = registry or TickerRegistry()
        self.store = store
        self.interval_seconds = interval_seconds
        self.logger = logging.getLogger(f"{__name__}.ActivityService")

        self.counters: Dict[str, ActivityCounter] = {}
        self.member_counts: Dict[str, int] = {}
        self._counter_lock = threading.Lock()

        # Background task handle
        self._task: Optional[asyncio.Task] = None

    def record_message(self, security_id: str, author_id: str) -> None:
        """Count one message; callers drop messages written by bots."""
        with self._counter_lock:
            counter = self.counters.setdefault(security_id, ActivityCounter())
            counter.messages += 1
            counter.authors.add(author_id)

    def set_member_count(self, security_id: str, member_count: int) -> None:
        if member_count < 0:
            raise ValueError(f"Member count cannot be negative, got {member_count}")
        with self._counter_lock:
            self.member_counts[security_id] = member_count

    def run_once(self) -> Dict[str, int]:
        """
        Apply the collected activity of every listed guild and reset counters.

        Guilds without activity still get a (zero) sample, so quiet guilds
        drift down.

        Returns:
            New price by security id
        """
        with self._counter_lock:
            counters, self.counters = self.counters, {}
            member_counts = dict(self.member_counts)

        new_prices: Dict[str, int] = {}
        engine = self.matching_engine
        with engine.lock:
            for security_id in list(engine.securities):
                counter = counters.get(security_id, ActivityCounter())
                new_prices[security_id] = engine.apply_activity(
                    security_id,
                    member_counts.get(security_id, 0),
                    counter.messages,
                    len(counter.authors),
                )

            if self.store is not None:
                self.store.save(engine, self.registry)

        skipped = set(counters) - set(new_prices)
        if skipped:
            self.logger.debug(f"Ignored activity of unlisted guilds: {sorted(skipped)}")

        return new_prices

    async def start(self) -> None:
        """Start background task for periodic price recomputation."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self._run_periodically())
            self.logger.info("Activity pricing task started")

    async def stop(self) -> None:
        """Stop background task."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self.logger.info("Activity pricing task stopped")

    async def _run_periodically(self) -> None:
        while True:
            try:
                await asyncio.sleep(self.interval_seconds)
                # The engine lock is a thread lock; keep the event loop free
                await asyncio.to_thread(self.run_once)
            except asyncio.CancelledError:
                break
            except Exception as e:
                self.logger.error(f"Error in activity pricing run: {e}", exc_info=True)
