"""
Unit tests for the traversal concurrency primitives.

Tests the permit pool, the outstanding-task counter and the result stream.
"""

import threading
import time

import pytest

from pfind.tools.concurrency import (
    ConcurrencyLimiter,
    OutstandingCounter,
    ResultStream,
    StreamClosedError,
)


class TestConcurrencyLimiter:
    """Test cases for ConcurrencyLimiter."""

    def test_invalid_capacity(self):
        with pytest.raises(ValueError):
            ConcurrencyLimiter(0)

    def test_acquire_release_tracks_active_and_peak(self):
        limiter = ConcurrencyLimiter(3)

        limiter.acquire()
        limiter.acquire()
        assert limiter.active == 2
        limiter.release()
        limiter.acquire()
        limiter.release()
        limiter.release()

        assert limiter.active == 0
        assert limiter.peak == 2
        assert limiter.capacity == 3

    def test_release_without_acquire(self):
        limiter = ConcurrencyLimiter(1)

        with pytest.raises(ValueError):
            limiter.release()

    def test_context_manager_releases_on_error(self):
        limiter = ConcurrencyLimiter(1)

        with pytest.raises(RuntimeError):
            with limiter:
                assert limiter.active == 1
                raise RuntimeError("boom")

        assert limiter.active == 0

    def test_acquire_blocks_at_capacity(self):
        """Test that a second acquire waits until a permit is released."""
        limiter = ConcurrencyLimiter(1)
        limiter.acquire()
        acquired = threading.Event()

        def worker():
            limiter.acquire()
            acquired.set()
            limiter.release()

        thread = threading.Thread(target=worker)
        thread.start()

        assert not acquired.wait(0.1)
        limiter.release()
        assert acquired.wait(2)
        thread.join(2)
        assert limiter.peak == 1

    def test_bound_respected_under_contention(self):
        """Test that concurrent holders never exceed capacity."""
        limiter = ConcurrencyLimiter(4)

        def worker():
            for _ in range(20):
                with limiter:
                    time.sleep(0.001)

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(10)

        assert 1 <= limiter.peak <= 4
        assert limiter.active == 0


class TestOutstandingCounter:
    """Test cases for OutstandingCounter."""

    def test_starts_at_one(self):
        counter = OutstandingCounter(on_zero=lambda: None)

        assert counter.value == 1

    def test_invalid_initial(self):
        with pytest.raises(ValueError):
            OutstandingCounter(on_zero=lambda: None, initial=0)

    def test_fires_once_on_zero(self):
        calls = []
        counter = OutstandingCounter(on_zero=lambda: calls.append(1))

        counter.increment()
        assert counter.decrement() is False
        assert calls == []
        assert counter.decrement() is True
        assert calls == [1]

    def test_cannot_go_below_zero(self):
        counter = OutstandingCounter(on_zero=lambda: None)
        counter.decrement()

        with pytest.raises(RuntimeError):
            counter.decrement()

    def test_cannot_increment_after_zero(self):
        counter = OutstandingCounter(on_zero=lambda: None)
        counter.decrement()

        with pytest.raises(RuntimeError):
            counter.increment()

    def test_concurrent_updates_fire_exactly_once(self):
        """Test that many threads decrementing reach zero exactly once."""
        calls = []
        counter = OutstandingCounter(on_zero=lambda: calls.append(1))
        for _ in range(199):
            counter.increment()

        def worker():
            for _ in range(25):
                counter.decrement()

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(10)

        assert counter.value == 0
        assert calls == [1]


class TestResultStream:
    """Test cases for ResultStream."""

    def test_publish_then_drain(self):
        stream = ResultStream()
        stream.publish("a")
        stream.publish("b")
        stream.close()

        assert list(stream) == ["a", "b"]
        assert stream.closed

    def test_close_twice(self):
        stream = ResultStream()
        stream.close()

        with pytest.raises(StreamClosedError):
            stream.close()

    def test_publish_after_close(self):
        stream = ResultStream()
        stream.close()

        with pytest.raises(StreamClosedError):
            stream.publish("late")

    def test_many_producers_one_consumer(self):
        """Test that every published item is delivered exactly once."""
        stream = ResultStream(maxsize=4)
        counter = OutstandingCounter(on_zero=stream.close, initial=5)

        def producer(start):
            try:
                for i in range(start, start + 100):
                    stream.publish(i)
            finally:
                counter.decrement()

        threads = [threading.Thread(target=producer, args=(n * 100,)) for n in range(5)]
        for thread in threads:
            thread.start()

        received = list(stream)
        for thread in threads:
            thread.join(5)

        assert sorted(received) == list(range(500))

    def test_cancel_unblocks_producer(self):
        """Test that a producer waiting on a full stream returns after cancel."""
        stream = ResultStream(maxsize=1)
        stream.publish("first")
        results = []

        thread = threading.Thread(target=lambda: results.append(stream.publish("second")))
        thread.start()
        time.sleep(0.05)
        stream.cancel()
        thread.join(2)

        assert results == [False]
        assert stream.cancelled

    def test_close_after_cancel_discards_pending(self):
        """Test that a cancelled full stream can still be closed."""
        stream = ResultStream(maxsize=1)
        stream.publish("pending")
        stream.cancel()

        stream.close()

        assert list(stream) == []

    def test_close_does_not_wait_for_space(self):
        """Test that closing a full stream returns and keeps queued items."""
        stream = ResultStream(maxsize=1)
        stream.publish("queued")

        closer = threading.Thread(target=stream.close)
        closer.start()
        closer.join(2)

        assert not closer.is_alive()
        assert list(stream) == ["queued"]

    def test_consumer_wakes_on_close(self):
        """Test that a consumer waiting on an empty stream stops once it is closed."""
        stream = ResultStream()
        received = []

        consumer = threading.Thread(target=lambda: received.extend(stream))
        consumer.start()
        time.sleep(0.05)
        stream.close()
        consumer.join(2)

        assert not consumer.is_alive()
        assert received == []
