"""
Concurrency primitives used by the traversal engine.

- ConcurrencyLimiter bounds how many directory scans run at once.
- OutstandingCounter tracks scheduled-but-unfinished tasks and fires exactly
  once when the last one finishes.
- ResultStream carries records from many worker threads to one consumer.
"""

import logging
import threading
from collections import deque
from typing import Any, Callable, Deque, Iterator


logger = logging.getLogger(__name__)


class StreamClosedError(RuntimeError):
    """Raised when publishing to, or closing, a stream that is already closed."""
    pass


class ConcurrencyLimiter:
    """
    Counting permit pool of fixed capacity.

    ``acquire`` blocks until a permit is free; ``release`` never blocks. The
    limiter also records how many permits are held right now and the highest
    number ever held at once.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"Limiter capacity must be at least 1, got {capacity}")
        self._capacity = capacity
        self._semaphore = threading.Semaphore(capacity)
        self._lock = threading.Lock()
        self._active = 0
        self._peak = 0

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def active(self) -> int:
        with self._lock:
            return self._active

    @property
    def peak(self) -> int:
        with self._lock:
            return self._peak

    def acquire(self) -> None:
        """Block until a permit is available and take it."""
        self._semaphore.acquire()
        with self._lock:
            self._active += 1
            if self._active > self._peak:
                self._peak = self._active

    def release(self) -> None:
        """Return a permit."""
        with self._lock:
            if self._active == 0:
                raise ValueError("Limiter released more times than acquired")
            self._active -= 1
        self._semaphore.release()

    def __enter__(self) -> 'ConcurrencyLimiter':
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()


class OutstandingCounter:
    """
    Number of traversal tasks scheduled but not yet finished.

    The counter starts at one for the root task. Callers must ``increment``
    before a child task can run and ``decrement`` when a task exits, on every
    exit path. The transition to zero happens exactly once and invokes
    ``on_zero``; after that the counter can no longer be incremented.
    """

    def __init__(self, on_zero: Callable[[], None], initial: int = 1):
        if initial < 1:
            raise ValueError(f"Initial count must be at least 1, got {initial}")
        self._on_zero = on_zero
        self._lock = threading.Lock()
        self._value = initial

    @property
    def value(self) -> int:
        with self._lock:
            return self._value

    def increment(self) -> None:
        with self._lock:
            if self._value == 0:
                raise RuntimeError("Cannot register a task after all tasks have finished")
            self._value += 1

    def decrement(self) -> bool:
        """
        Deregister one finished task.

        Returns:
            True if this call brought the counter to zero
        """
        with self._lock:
            if self._value == 0:
                raise RuntimeError("Outstanding counter decremented below zero")
            self._value -= 1
            reached_zero = self._value == 0

        if reached_zero:
            logger.debug("All traversal tasks finished")
            self._on_zero()
        return reached_zero


class ResultStream:
    """
    Many-producer, single-consumer channel of results.

    Producers call ``publish``; the consumer iterates the stream until it is
    closed. A bounded stream makes producers wait for the consumer. Once the
    stream is cancelled, pending and future publishes return immediately
    without delivering anything. Closing never waits for buffer space.
    """

    def __init__(self, maxsize: int = 0):
        self._maxsize = maxsize
        self._items: Deque[Any] = deque()
        self._lock = threading.Lock()
        self._not_empty = threading.Condition(self._lock)
        self._not_full = threading.Condition(self._lock)
        self._closed = False
        self._cancelled = False

    @property
    def closed(self) -> bool:
        with self._lock:
            return self._closed

    @property
    def cancelled(self) -> bool:
        with self._lock:
            return self._cancelled

    def _full(self) -> bool:
        return 0 < self._maxsize <= len(self._items)

    def publish(self, item: Any) -> bool:
        """
        Hand an item to the consumer, waiting while the stream is full.

        Returns:
            True if the item was queued, False if the stream was cancelled

        Raises:
            StreamClosedError: If the stream has already been closed
        """
        with self._not_full:
            if self._closed:
                raise StreamClosedError("Cannot publish to a closed result stream")
            while self._full() and not self._cancelled:
                self._not_full.wait()
            if self._cancelled:
                return False
            self._items.append(item)
            self._not_empty.notify()
            return True

    def close(self) -> None:
        """
        Mark the end of the stream.

        Must be called exactly once, after the last producer has finished.
        """
        with self._lock:
            if self._closed:
                raise StreamClosedError("Result stream closed twice")
            self._closed = True
            if self._cancelled:
                # Nobody drains a cancelled stream.
                self._items.clear()
            self._not_empty.notify_all()

    def cancel(self) -> None:
        """Stop accepting results; producers stop waiting on a full stream."""
        with self._lock:
            if not self._cancelled:
                logger.debug("Result stream cancelled")
            self._cancelled = True
            self._not_full.notify_all()

    def __iter__(self) -> Iterator[Any]:
        while True:
            with self._not_empty:
                while not self._items and not self._closed:
                    self._not_empty.wait()
                if not self._items:
                    return
                item = self._items.popleft()
                self._not_full.notify()
            yield item
