# ============================================================================
# WORK QUEUE
# ============================================================================
# STATUS: Core - Worker pool feeding ids to a manager
# PURPOSE: Run Executor.execute(id) with bounded concurrency and delayed retry
# CREATED: 27 SEP 2026
# ============================================================================
"""
Work Queue

An in-memory queue of record ids in front of an Executor (a StagedManager or
the OrchestrationManager). Workers pop an id, call execute(id) and act on the
returned delay:

    delay == 0   drop the id
    delay  > 0   re-add the id after `delay` seconds via loop.call_later
    exception    log and drop (the record's state in the store says why)

On stop, ids still waiting are dropped and each worker exits after its
current call.

add() is idempotent while an id waits in the queue. An add() for an id that
a worker is processing right now is remembered and the id is queued again
once that worker is done, so a single id never runs on two workers of the
same queue at once.

The queue holds the only transient state of the engine: the id. After a
restart it is rebuilt from the store (services.reprocess_service).
"""

import asyncio
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from core.logging import ComponentType, get_logger, log_context

logger = get_logger(__name__, ComponentType.QUEUE)

# Placed once per worker on stop, after the backlog is dropped, so each
# worker finishes only its current id
_STOP = object()


class Executor(ABC):
    """Anything a Queue can drive."""

    @abstractmethod
    async def execute(self, item_id: str) -> float:
        """Process one id and return the repeat-after delay in seconds."""


class Queue:
    """Bounded asyncio worker pool over an unbounded id queue."""

    def __init__(self, executor: Executor, name: str, speed_factor: float = 1):
        self.executor = executor
        self.name = name
        self.speed_factor = speed_factor

        self._queue: asyncio.Queue = asyncio.Queue()
        self._dirty: Set[str] = set()
        self._processing: Set[str] = set()
        self._timers: Set[asyncio.TimerHandle] = set()

        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._workers: List[asyncio.Task] = []
        self._stop_watcher: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None
        self._stopping = False

        # Metrics
        self._started_at: Optional[datetime] = None
        self._added = 0
        self._processed = 0
        self._requeued = 0
        self._errors = 0

    # =========================================================================
    # PRODUCER SIDE
    # =========================================================================

    def add(self, item_id: str) -> None:
        """Enqueue an id. Duplicates of a queued id collapse into one."""
        if self._stopping or item_id in self._dirty:
            return
        self._dirty.add(item_id)
        self._added += 1
        if item_id in self._processing:
            return
        self._queue.put_nowait(item_id)

    def add_after(self, item_id: str, delay: float) -> None:
        """Enqueue an id after `delay` seconds (scaled by the speed factor)."""
        if self._stopping:
            return
        if delay <= 0 or self._loop is None:
            self.add(item_id)
            return

        handle: Optional[asyncio.TimerHandle] = None

        def fire():
            self._timers.discard(handle)
            self.add(item_id)

        handle = self._loop.call_later(delay / self.speed_factor, fire)
        self._timers.add(handle)

    def speed_up(self, factor: float) -> None:
        """Test-only: divide every future delay by `factor`."""
        self.speed_factor = factor

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, stop_event: asyncio.Event, workers: int) -> None:
        """
        Start `workers` worker tasks and return immediately.

        Must be called from a running event loop.
        """
        if self._workers:
            raise RuntimeError(f"queue {self.name} is already running")

        self._loop = asyncio.get_running_loop()
        self._stop_event = stop_event
        self._started_at = datetime.now(timezone.utc)
        self._workers = [
            asyncio.create_task(self._worker(f"{self.name}-{i}"), name=f"queue-{self.name}-{i}")
            for i in range(workers)
        ]
        self._stop_watcher = asyncio.create_task(self._watch_stop(stop_event))
        logger.info(f"Queue {self.name} started with {workers} workers")

    async def _watch_stop(self, stop_event: asyncio.Event) -> None:
        await stop_event.wait()
        self._stopping = True
        for handle in list(self._timers):
            handle.cancel()
        self._timers.clear()
        dropped = self._drain()
        if dropped:
            logger.info(f"Queue {self.name} stopping, dropped {dropped} queued ids")
        for _ in self._workers:
            self._queue.put_nowait(_STOP)

    def _drain(self) -> int:
        dropped = 0
        while True:
            try:
                item_id = self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
            self._dirty.discard(item_id)
            dropped += 1
        return dropped

    async def wait_stopped(self) -> None:
        """Wait until every worker has exited after the stop event."""
        if self._workers:
            await asyncio.gather(*self._workers, return_exceptions=True)
        if self._stop_watcher is not None:
            await self._stop_watcher
        logger.info(
            f"Queue {self.name} stopped (processed={self._processed}, "
            f"requeued={self._requeued}, errors={self._errors})"
        )

    # =========================================================================
    # CONSUMER SIDE
    # =========================================================================

    async def _worker(self, worker_id: str) -> None:
        with log_context(worker_id=worker_id):
            while True:
                item_id = await self._queue.get()
                if item_id is _STOP or self._stop_requested:
                    break

                self._dirty.discard(item_id)
                self._processing.add(item_id)
                delay = 0.0
                try:
                    delay = await self.executor.execute(item_id)
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    self._errors += 1
                    logger.error(f"Error processing {item_id} on queue {self.name}: {e}", exc_info=True)
                finally:
                    self._processed += 1
                    self._processing.discard(item_id)
                    if item_id in self._dirty and not self._stopping:
                        self._queue.put_nowait(item_id)

                if delay and delay > 0:
                    self._requeued += 1
                    self.add_after(item_id, delay)

    # =========================================================================
    # INTROSPECTION
    # =========================================================================

    @property
    def _stop_requested(self) -> bool:
        return self._stopping or (self._stop_event is not None and self._stop_event.is_set())

    @property
    def is_running(self) -> bool:
        return bool(self._workers) and not self._stopping

    @property
    def stats(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "running": self.is_running,
            "workers": len(self._workers),
            "started_at": self._started_at.isoformat() if self._started_at else None,
            "queued": len(self._dirty - self._processing),
            "processing": len(self._processing),
            "scheduled": len(self._timers),
            "added": self._added,
            "processed": self._processed,
            "requeued": self._requeued,
            "errors": self._errors,
        }


__all__ = [
    "Executor",
    "Queue",
]
