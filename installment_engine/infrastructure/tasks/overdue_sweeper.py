"""Periodic background task that flags past-due installments as overdue"""

import asyncio
import logging
import time
from typing import Callable, ContextManager, Optional

from installment_engine.domain.ledger import PlanLedger
from installment_engine.infrastructure.observability.logging import log_sweep_completed
from installment_engine.infrastructure.observability.metrics import record_sweep, sweep_runs_counter
from installment_engine.utils.clock import Clock

DEFAULT_INTERVAL_SECONDS = 24 * 60 * 60


class OverdueSweeper:
    """
    Run the ledger's overdue sweep once at start, then every `interval_seconds`.

    Schedule:
    - First sweep runs immediately when started
    - A failed sweep is logged and counted; the next one still runs on time
    - stop() interrupts the wait between sweeps instead of sleeping it out

    Args:
        ledger_factory: Returns a context manager yielding a PlanLedger bound to
            a fresh store session; entered once per sweep
        clock: Source of the "now" handed to each sweep
        interval_seconds: Period between sweeps (default 24 hours)
    """

    def __init__(
        self,
        ledger_factory: Callable[[], ContextManager[PlanLedger]],
        clock: Clock,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
    ):
        self.ledger_factory = ledger_factory
        self.clock = clock
        self.interval_seconds = interval_seconds
        self._stopping = asyncio.Event()
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> asyncio.Task:
        if not self.running:
            self._stopping.clear()
            self._task = asyncio.create_task(self.run(), name="overdue-sweeper")
        return self._task

    async def stop(self) -> None:
        self._stopping.set()
        if self._task is not None:
            await self._task
            self._task = None

    async def run(self) -> None:
        logging.info("Overdue sweeper started", extra={"interval_seconds": self.interval_seconds})
        while not self._stopping.is_set():
            await self.run_once()
            try:
                await asyncio.wait_for(self._stopping.wait(), timeout=self.interval_seconds)
            except asyncio.TimeoutError:
                pass
        logging.info("Overdue sweeper stopped")

    async def run_once(self) -> Optional[int]:
        """Run one sweep in a worker thread; returns installments marked, or None on failure"""
        start_time = time.time()
        try:
            marked = await asyncio.to_thread(self._sweep)
        except Exception:
            sweep_runs_counter.labels(outcome="failure").inc()
            logging.error("Error occurred during overdue status update task", exc_info=True)
            return None

        duration = time.time() - start_time
        record_sweep(marked, duration)
        log_sweep_completed(marked, duration * 1000, trigger="scheduled")
        return marked

    def _sweep(self) -> int:
        with self.ledger_factory() as ledger:
            return ledger.sweep_overdue(self.clock.now())
