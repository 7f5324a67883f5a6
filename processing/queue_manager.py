"""
Bounded-concurrency queue for upload processing.

This module provides the admission control used by the upload pipeline:
work items wait in a FIFO pending list and are released to the event loop
one at a time until the configured concurrency limit is reached. Whenever
a running action settles the freed slot is handed to the next pending item.
"""

import asyncio
import threading
import time
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Set
from collections import deque
from dataclasses import dataclass
import logging

logger = logging.getLogger(__name__)


@dataclass
class WorkItem:
    """A unit of submitted work and the coroutine function that performs it."""
    payload: Any
    action: Callable[[], Awaitable[Any]]


class BoundedTaskQueue:
    """
    FIFO task queue that runs at most ``concurrency_limit`` actions at once.

    Actions run as asyncio tasks on the running event loop. Failures are
    logged and counted but never propagated to the submitter, and every
    settled action releases its slot regardless of outcome.
    """

    def __init__(self, concurrency_limit: int = 5, action_timeout: Optional[float] = None):
        """
        Initialize the bounded task queue.

        Args:
            concurrency_limit: Maximum number of actions executing at once
            action_timeout: Optional deadline in seconds for each action (None = no deadline)
        """
        if isinstance(concurrency_limit, bool) or not isinstance(concurrency_limit, int):
            raise ValueError(f"concurrency_limit must be an integer, got {concurrency_limit!r}")
        if concurrency_limit < 1:
            raise ValueError(f"concurrency_limit must be positive, got {concurrency_limit}")
        if action_timeout is not None and action_timeout <= 0:
            raise ValueError(f"action_timeout must be positive, got {action_timeout}")

        self._concurrency_limit = concurrency_limit
        self._action_timeout = action_timeout

        self._pending = deque()
        self._active_count = 0
        self._running_tasks: Set[asyncio.Task] = set() # keeps task references alive
        self._running_items: List[WorkItem] = []
        self._idle = asyncio.Event()
        self._idle.set()
        self._shutdown_event = threading.Event()

        # Guards pending, active_count and stats against readers on other threads
        self._admission_lock = threading.Lock()
        self._stats = {
            'total_added': 0,
            'total_processed': 0,
            'total_failed': 0,
            'processing_start_time': None
        }

        logger.info(f"BoundedTaskQueue initialized (concurrency_limit={concurrency_limit})")

    @property
    def concurrency_limit(self) -> int:
        return self._concurrency_limit

    @property
    def active_count(self) -> int:
        return self._active_count

    def submit(self, item: WorkItem) -> bool:
        """
        Append a work item to the pending list and try to dispatch it.

        Must be called from the thread running the event loop. Returns as
        soon as the item is enqueued, not when it completes.

        Args:
            item: WorkItem to enqueue

        Returns:
            bool: True if the item was accepted, False if the queue is shut down

        Raises:
            RuntimeError: No event loop is running; the queue is left unchanged
        """
        loop = asyncio.get_running_loop()

        if self._shutdown_event.is_set():
            logger.warning(f"Queue is shut down - rejecting item: {item.payload!r}")
            return False

        with self._admission_lock:
            self._pending.append(item)
            self._stats['total_added'] += 1

            # Set start time on first item
            if self._stats['processing_start_time'] is None:
                self._stats['processing_start_time'] = time.time()

            self._idle.clear()

        logger.debug(f"Submitted item: {item.payload!r} (pending={len(self._pending)})")
        self._dispatch(loop)
        return True

    def submit_many(self, items: Iterable[WorkItem]) -> int:
        """
        Submit each item independently, preserving the given order.

        Returns:
            int: Number of items accepted
        """
        accepted = 0
        for item in items:
            if self.submit(item):
                accepted += 1
        return accepted

    def _dispatch(self, loop: asyncio.AbstractEventLoop):
        """Start pending actions until the concurrency limit is reached."""
        started = []
        with self._admission_lock:
            while self._active_count < self._concurrency_limit and self._pending:
                item = self._pending.popleft()
                self._active_count += 1
                self._running_items.append(item)
                started.append(item)

        for item in started:
            task = loop.create_task(self._run(item))
            self._running_tasks.add(task)
            task.add_done_callback(self._running_tasks.discard)

    async def _run(self, item: WorkItem):
        """Execute one action and release its slot once it settles."""
        success = False
        try:
            if self._action_timeout is not None:
                await asyncio.wait_for(item.action(), timeout=self._action_timeout)
            else:
                await item.action()
            success = True
        except asyncio.TimeoutError:
            logger.error(f"Action timed out after {self._action_timeout}s: {item.payload!r}")
        except Exception as e:
            logger.error(f"Action failed for {item.payload!r}: {e}")
        finally:
            self._task_settled(item, success)

    def _task_settled(self, item: WorkItem, success: bool):
        with self._admission_lock:
            self._active_count -= 1
            self._running_items.remove(item)
            if success:
                self._stats['total_processed'] += 1
            else:
                self._stats['total_failed'] += 1

        logger.debug(f"Action settled: {item.payload!r} (success: {success})")

        if not self._shutdown_event.is_set():
            self._dispatch(asyncio.get_running_loop())

        with self._admission_lock:
            if self._active_count == 0 and not self._pending:
                self._idle.set()

    def discard_pending(self, predicate: Callable[[WorkItem], bool]) -> List[WorkItem]:
        """
        Remove items that have not been dispatched yet.

        Running actions are never affected.

        Args:
            predicate: Returns True for every pending item to remove

        Returns:
            List of removed WorkItems, in submission order
        """
        with self._admission_lock:
            kept, removed = deque(), []
            for item in self._pending:
                if predicate(item):
                    removed.append(item)
                else:
                    kept.append(item)
            self._pending = kept
            if self._active_count == 0 and not self._pending:
                self._idle.set()

        if removed:
            logger.debug(f"Discarded {len(removed)} pending item(s)")
        return removed

    async def wait_idle(self):
        """Wait until nothing is pending or running."""
        await self._idle.wait()

    def get_progress(self) -> Dict[str, Any]:
        """
        Get current processing progress and statistics.

        Returns:
            Dict containing queue state and throughput information
        """
        with self._admission_lock:
            stats = self._stats.copy()
            active_count = self._active_count
            queue_size = len(self._pending)

        total_completed = stats['total_processed'] + stats['total_failed']
        if stats['total_added'] > 0:
            progress_percentage = (total_completed / stats['total_added']) * 100
        else:
            progress_percentage = 0.0

        processing_rate = 0.0
        if stats['processing_start_time'] and total_completed > 0:
            elapsed_time = time.time() - stats['processing_start_time']
            if elapsed_time > 0:
                processing_rate = total_completed / elapsed_time

        return {
            'is_processing': active_count > 0 or queue_size > 0,
            'concurrency_limit': self._concurrency_limit,
            'active_count': active_count,
            'queue_size': queue_size,
            'total_added': stats['total_added'],
            'total_processed': stats['total_processed'],
            'total_failed': stats['total_failed'],
            'progress_percentage': progress_percentage,
            'processing_rate': processing_rate,  # items per second
        }

    def running_items(self) -> List[WorkItem]:
        """Get items whose actions are currently executing."""
        with self._admission_lock:
            return list(self._running_items)

    def pending_items(self) -> List[WorkItem]:
        """Get items waiting for dispatch, in submission order."""
        with self._admission_lock:
            return list(self._pending)

    def is_empty(self) -> bool:
        """Check if nothing is waiting for dispatch."""
        return not self._pending

    def is_idle(self) -> bool:
        """Check if nothing is pending or running."""
        return self._active_count == 0 and not self._pending

    def size(self) -> int:
        """Get number of pending items."""
        return len(self._pending)

    def is_shutdown(self) -> bool:
        return self._shutdown_event.is_set()

    def shutdown(self) -> List[WorkItem]:
        """
        Stop accepting work and drop everything still pending.

        Running actions are left to finish on their own.

        Returns:
            List of pending WorkItems that were dropped
        """
        logger.info("Shutdown initiated for BoundedTaskQueue")

        self._shutdown_event.set()
        dropped = self.discard_pending(lambda item: True)

        if dropped:
            logger.info(f"Dropped {len(dropped)} pending item(s) on shutdown")
        return dropped
