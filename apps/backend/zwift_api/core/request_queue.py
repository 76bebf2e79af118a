"""
request_queue.py — In-process queue that serializes and paces AI calls.

The AI provider throttles aggressively (HTTP 429) and bills per call, so every
AI-bound route submits its call here instead of calling GeminiClient directly.
The queue guarantees, for this process only:

  - at most one call in flight at any instant,
  - successive calls start at least `min_interval` seconds apart,
  - at most `max_queue_size` calls waiting; beyond that enqueue fails fast,
  - a call that waited longer than `max_wait` is rejected, never dispatched.

Each pass of the drain loop dispatches exactly one entry. If more entries
remain, another pass is scheduled `retry_delay` seconds later. An entry's age
is checked when it is popped and again after any pacing sleep.

Usage in routes:
    from fastapi import Depends
    from zwift_api.core.request_queue import RateLimitedRequestQueue, get_ai_queue

    @router.post("/api/some-ai-endpoint")
    async def my_endpoint(payload: MyRequest, queue: RateLimitedRequestQueue = Depends(get_ai_queue)):
        text = await queue.enqueue(lambda: gemini_client.generate(prompt))

Wire into app (in main.py):
    app.state.ai_queue = RateLimitedRequestQueue.from_settings(settings)

Retries are the caller's business. Errors raised by the work itself reach the
caller unchanged; the queue does not log or classify them.

Horizontal scaling note: each process has its own queue and its own limit.
Sharing one limit across instances needs an external counter.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

from fastapi import Request

from zwift_api.core.config import Settings

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ── Errors ────────────────────────────────────────────────────────────────────

class QueueError(Exception):
    """Base class for failures raised by the queue itself (not by the work)."""


class QueueFullError(QueueError):
    def __init__(self, max_size: int) -> None:
        super().__init__("Request queue is full. Please try again in a few moments.")
        self.max_size = max_size


class RequestTimeoutError(QueueError):
    def __init__(self, waited: float) -> None:
        super().__init__("Request timeout. Please try again.")
        self.waited = waited


class ExecutionTimeoutError(QueueError):
    def __init__(self, budget: float) -> None:
        super().__init__(f"AI request exceeded {budget:.1f}s and was cancelled.")
        self.budget = budget


class QueueClosedError(QueueError):
    def __init__(self) -> None:
        super().__init__("Request queue is shutting down.")


# ── Entry ─────────────────────────────────────────────────────────────────────

@dataclass
class QueuedRequest(Generic[T]):
    work: Callable[[], Awaitable[T]]
    future: asyncio.Future
    enqueued_at: float


@dataclass
class QueueStats:
    dispatched: int = 0
    failed: int = 0
    expired: int = 0
    rejected: int = 0
    skipped: int = 0


# ── Queue ─────────────────────────────────────────────────────────────────────

class RateLimitedRequestQueue:
    """
    FIFO queue with one-in-flight dispatch and minimum spacing.

    All state is touched only from the event loop thread (enqueue and the
    drain task), so no locking is needed. Times are in seconds, measured on
    the running loop's monotonic clock.
    """

    def __init__(
        self,
        min_interval: float = 2.0,
        max_queue_size: int = 10,
        max_wait: float = 30.0,
        retry_delay: float = 0.1,
        max_execution: Optional[float] = None,
    ) -> None:
        if max_queue_size < 1:
            raise ValueError("max_queue_size must be at least 1")
        self.min_interval = min_interval
        self.max_queue_size = max_queue_size
        self.max_wait = max_wait
        self.retry_delay = retry_delay
        self.max_execution = max_execution

        self._pending: deque[QueuedRequest[Any]] = deque()
        self._processing = False
        self._closed = False
        self._last_dispatch: Optional[float] = None
        self._drain_task: Optional[asyncio.Task] = None
        self._retry_handle: Optional[asyncio.TimerHandle] = None
        self._stats = QueueStats()

    @classmethod
    def from_settings(cls, cfg: Settings) -> "RateLimitedRequestQueue":
        """Build a queue from the AI_QUEUE_* settings (milliseconds → seconds)."""
        return cls(
            min_interval=cfg.ai_queue_min_interval_ms / 1000,
            max_queue_size=cfg.ai_queue_max_size,
            max_wait=cfg.ai_queue_max_wait_ms / 1000,
            retry_delay=cfg.ai_queue_retry_delay_ms / 1000,
            max_execution=(cfg.ai_queue_max_execution_ms / 1000) or None,
        )

    def __len__(self) -> int:
        return len(self._pending)

    @property
    def is_processing(self) -> bool:
        return self._processing

    @property
    def closed(self) -> bool:
        return self._closed

    def stats(self) -> dict[str, Any]:
        return {
            "pending": len(self._pending),
            "processing": self._processing,
            "dispatched": self._stats.dispatched,
            "failed": self._stats.failed,
            "expired": self._stats.expired,
            "rejected": self._stats.rejected,
            "skipped": self._stats.skipped,
        }

    # ── Public API ────────────────────────────────────────────────────────────

    def enqueue(self, work: Callable[[], Awaitable[T]]) -> asyncio.Future:
        """
        Accept a unit of work and return a future for its outcome.

        Must be called from inside a running event loop.

        Raises:
            QueueFullError:   pending collection already at max_queue_size.
            QueueClosedError: close() has been called.

        The returned future resolves with work()'s result, or raises
        whatever work() raised, RequestTimeoutError (waited too long) or
        ExecutionTimeoutError (ran past max_execution).
        """
        if self._closed:
            raise QueueClosedError()
        if len(self._pending) >= self.max_queue_size:
            self._stats.rejected += 1
            raise QueueFullError(self.max_queue_size)

        loop = asyncio.get_running_loop()
        entry = QueuedRequest(work=work, future=loop.create_future(), enqueued_at=loop.time())
        self._pending.append(entry)
        self._trigger()
        return entry.future

    async def close(self) -> None:
        """Stop draining and fail everything still waiting with QueueClosedError."""
        self._closed = True
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None

        task = self._drain_task
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        while self._pending:
            entry = self._pending.popleft()
            if not entry.future.done():
                entry.future.set_exception(QueueClosedError())

    # ── Drain loop ────────────────────────────────────────────────────────────

    def _trigger(self) -> None:
        if self._processing or self._closed or not self._pending:
            return
        self._processing = True
        self._drain_task = asyncio.get_running_loop().create_task(self._drain())

    def _retry(self) -> None:
        self._retry_handle = None
        self._trigger()

    async def _drain(self) -> None:
        loop = asyncio.get_running_loop()
        entry: Optional[QueuedRequest[Any]] = None
        try:
            while self._pending:
                entry = self._pending.popleft()

                if entry.future.done():
                    # Caller cancelled while waiting.
                    self._stats.skipped += 1
                    continue

                if self._expire_if_stale(entry, loop.time()):
                    continue

                if self._last_dispatch is not None:
                    gap = loop.time() - self._last_dispatch
                    if gap < self.min_interval:
                        logger.debug("AI queue pacing: sleeping %.3fs", self.min_interval - gap)
                        await asyncio.sleep(self.min_interval - gap)

                    if entry.future.done():
                        self._stats.skipped += 1
                        continue
                    if self._expire_if_stale(entry, loop.time()):
                        continue

                self._last_dispatch = loop.time()
                await self._dispatch(entry)
                break
        except asyncio.CancelledError:
            # Closed mid-pass: the popped entry is no longer in _pending.
            if entry is not None and not entry.future.done():
                entry.future.set_exception(QueueClosedError())
            raise
        finally:
            self._processing = False
            self._drain_task = None
            if self._pending and not self._closed:
                self._retry_handle = loop.call_later(self.retry_delay, self._retry)

    def _expire_if_stale(self, entry: QueuedRequest[Any], now: float) -> bool:
        waited = now - entry.enqueued_at
        if waited <= self.max_wait:
            return False
        self._stats.expired += 1
        entry.future.set_exception(RequestTimeoutError(waited))
        return True

    async def _dispatch(self, entry: QueuedRequest[Any]) -> None:
        self._stats.dispatched += 1
        try:
            task = await self._run(entry.work)
        except asyncio.CancelledError:
            # Only the drain task itself being cancelled lands here (close()).
            if not entry.future.done():
                entry.future.set_exception(QueueClosedError())
            raise
        except Exception as exc:
            self._stats.failed += 1
            if not entry.future.done():
                entry.future.set_exception(exc)
            return

        if entry.future.done():
            return
        if task.cancelled():
            # work() raised CancelledError on its own; the queue stays open.
            self._stats.failed += 1
            entry.future.cancel()
        elif task.exception() is not None:
            self._stats.failed += 1
            entry.future.set_exception(task.exception())
        else:
            entry.future.set_result(task.result())

    async def _run(self, work: Callable[[], Awaitable[T]]) -> asyncio.Future:
        """
        Run work() as its own task and return it once finished.

        A CancelledError escaping this method always means the drain task was
        cancelled; one raised by work() stays inside the returned task.
        """
        task = asyncio.ensure_future(work())
        try:
            await asyncio.wait({task}, timeout=self.max_execution)
        except asyncio.CancelledError:
            task.cancel()
            raise
        if not task.done():
            task.cancel()
            # Let its cleanup finish before the next dispatch starts.
            await asyncio.wait({task})
            raise ExecutionTimeoutError(self.max_execution)
        return task


# ── FastAPI dependency ────────────────────────────────────────────────────────

def get_ai_queue(request: Request) -> RateLimitedRequestQueue:
    """
    FastAPI dependency — the process queue stored on app.state by main.py.

    Tests swap in isolated queues via app.dependency_overrides[get_ai_queue].
    """
    return request.app.state.ai_queue
