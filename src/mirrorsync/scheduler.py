from __future__ import annotations

import concurrent.futures
import logging
import threading
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class SchedulerState(str, Enum):
    STOPPED = "stopped"
    SCHEDULED = "scheduled"


class CycleScheduler:
    """Runs ``cycle`` now and then every ``interval_seconds``, never two at once.

    A ticker thread hands every firing to a small worker pool, so a slow cycle does
    not delay the clock; firings that find a cycle still in flight are skipped.
    """

    def __init__(self, cycle: Callable[[], Any], interval_seconds: float) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self.cycle = cycle
        self.interval_seconds = float(interval_seconds)
        self.last_result: Any = None
        self._cycle_guard = threading.Lock()
        self._state_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._ticker: threading.Thread | None = None
        self._pool: concurrent.futures.ThreadPoolExecutor | None = None
        self._cycle_thread: threading.Thread | None = None

    @property
    def state(self) -> SchedulerState:
        with self._state_lock:
            return SchedulerState.SCHEDULED if self._ticker is not None else SchedulerState.STOPPED

    @property
    def cycle_in_progress(self) -> bool:
        return self._cycle_guard.locked()

    def start(self) -> None:
        with self._state_lock:
            if self._ticker is not None:
                return
            self._stop_event = threading.Event()
            self._pool = concurrent.futures.ThreadPoolExecutor(
                max_workers=2, thread_name_prefix="mirrorsync-cycle"
            )
            self._ticker = threading.Thread(
                target=self._tick_loop,
                args=(self._stop_event, self._pool),
                name="mirrorsync-ticker",
                daemon=True,
            )
            self._ticker.start()
        logger.info("Synchronization started. Period: %.0fs", self.interval_seconds)

    def stop(self, *, wait: bool = False, timeout: float | None = None) -> None:
        with self._state_lock:
            ticker = self._ticker
            pool = self._pool
            if ticker is None:
                return
            self._stop_event.set()
            self._ticker = None
            self._pool = None

        if ticker is not threading.current_thread():
            ticker.join(timeout)
        if pool is not None:
            # a worker cannot join its own pool
            in_cycle = self._cycle_thread is threading.current_thread()
            pool.shutdown(wait=wait and not in_cycle, cancel_futures=True)
        logger.info("Synchronization stopped.")

    def run_cycle(self) -> bool:
        """Run one guarded cycle; False when skipped because another is running."""
        if not self._cycle_guard.acquire(blocking=False):
            logger.warning(
                "Skipping start of synchronization cycle, previous one still in progress"
            )
            return False
        self._cycle_thread = threading.current_thread()
        try:
            self.last_result = self.cycle()
            logger.info("Synchronization finished. Waiting for new round to start.")
        except Exception as exc:  # noqa: BLE001
            logger.error("Sync failed: %s", exc, exc_info=logger.isEnabledFor(logging.DEBUG))
        finally:
            self._cycle_thread = None
            self._cycle_guard.release()
        return True

    def wait_idle(self, timeout: float | None = None) -> bool:
        acquired = self._cycle_guard.acquire(timeout=-1 if timeout is None else timeout)
        if acquired:
            self._cycle_guard.release()
        return acquired

    def _tick_loop(
        self,
        stop_event: threading.Event,
        pool: concurrent.futures.ThreadPoolExecutor,
    ) -> None:
        while not stop_event.is_set():
            try:
                pool.submit(self.run_cycle)
            except RuntimeError:
                # pool shut down by stop()
                return
            if stop_event.wait(self.interval_seconds):
                return

    def __enter__(self) -> CycleScheduler:
        self.start()
        return self

    def __exit__(self, *_exc: object) -> None:
        self.stop(wait=True)
