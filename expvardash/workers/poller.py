"""Background poller — samples the monitored target into the history on an interval."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Optional

from expvardash.history.ring import RingHistory
from expvardash.ingestion.errors import TargetError
from expvardash.ingestion.expvar import ExpvarClient
from expvardash.models.sample import SampleRecord
from expvardash.observability.metrics import InMemoryMetrics
from expvardash.utils.time import utc_now

logger = logging.getLogger("expvardash.poller")


class Poller:
    """Asyncio-based background task feeding a :class:`RingHistory`.

    Runs inside the FastAPI event loop. On each tick it fetches one
    /debug/vars document, extracts a :class:`SampleRecord` stamped with the
    tick time and appends it. A failed tick is logged and skipped; the loop
    only stops on :meth:`stop` or cancellation.
    """

    def __init__(
        self,
        client: ExpvarClient,
        history: RingHistory,
        interval: float = 5.0,
        metrics: InMemoryMetrics | None = None,
    ) -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval!r}")
        self.client = client
        self.history = history
        self.interval = interval
        self.metrics = metrics
        self._task: Optional[asyncio.Task] = None
        self._running = False
        self.last_success: Optional[datetime] = None
        self.last_error: Optional[str] = None
        self.consecutive_failures = 0

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the background poller."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info(f"Poller started (interval={self.interval}s, target={self.client.url})")

    async def stop(self) -> None:
        """Stop the background poller gracefully."""
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Poller stopped")

    async def _run_loop(self) -> None:
        """Main poll loop, fixed-rate against the event loop's monotonic clock."""
        loop = asyncio.get_running_loop()
        next_tick = loop.time() + self.interval
        while self._running:
            try:
                await asyncio.sleep(max(0.0, next_tick - loop.time()))
                if not self._running:
                    break
                await self.poll_once()
            except asyncio.CancelledError:
                break
            except Exception as e:
                self._record_failure("unexpected", str(e))
                logger.exception("Unexpected error in poll tick")
            next_tick = self._next_deadline(next_tick, loop.time())

    def _next_deadline(self, previous: float, now: float) -> float:
        """Deadline of the next tick; ticks missed during a slow fetch are dropped."""
        deadline = previous + self.interval
        if deadline < now:
            missed = int((now - deadline) // self.interval) + 1
            logger.debug(f"Slow tick, skipping {missed} missed tick(s)")
            deadline += missed * self.interval
        return deadline

    async def poll_once(self, tick_time: Optional[datetime] = None) -> Optional[SampleRecord]:
        """Run a single tick. Returns the appended record, or None if the tick failed."""
        sample_time = tick_time or utc_now()
        try:
            snapshot = await self.client.fetch_snapshot()
        except TargetError as exc:
            self._record_failure(exc.kind, str(exc))
            logger.warning(f"Error updating stats: {exc}", extra={"target": self.client.url})
            return None

        record = SampleRecord.from_snapshot(snapshot, sample_time)
        self.history.append(record)

        self.consecutive_failures = 0
        self.last_error = None
        self.last_success = sample_time
        if self.metrics is not None:
            self.metrics.observe_poll(ok=True)
        logger.debug(f"Sampled {record.command}: alloc={record.alloc_bytes} sys={record.sys_bytes}")
        return record

    def _record_failure(self, kind: str, message: str) -> None:
        self.consecutive_failures += 1
        self.last_error = message
        if self.metrics is not None:
            self.metrics.observe_poll(ok=False, kind=kind)

    def status(self) -> dict:
        return {
            "running": self._running,
            "interval_seconds": self.interval,
            "last_success": self.last_success.isoformat() if self.last_success else None,
            "consecutive_failures": self.consecutive_failures,
            "last_error": self.last_error,
        }
