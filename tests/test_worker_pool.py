"""Tests for the bounded OCR worker pool."""

import threading
import time

import pytest

from src.ocr.worker_pool import OCRWorkerPool, PoolStats, WorkerHandle
from src.utils.exceptions import WorkerAcquisitionError


class CountingFactory:
    """Engine factory counting how many engines it built."""

    def __init__(self, engine_cls, fail_times: int = 0) -> None:
        self.engine_cls = engine_cls
        self.fail_times = fail_times
        self.created: list = []

    def __call__(self):
        if self.fail_times:
            self.fail_times -= 1
            raise RuntimeError("tessdata missing")
        engine = self.engine_cls()
        self.created.append(engine)
        return engine


class TestAcquireRelease:
    """Tests for lazy creation and reuse of workers."""

    def test_lazy_creation(self, fake_engine_cls) -> None:
        factory = CountingFactory(fake_engine_cls)
        pool = OCRWorkerPool(factory, size=2)
        assert factory.created == []
        assert pool.stats() == PoolStats(size=2, created=0, idle=0, busy=0, closed=False)

        handle = pool.acquire()
        assert isinstance(handle, WorkerHandle)
        assert len(factory.created) == 1
        assert pool.stats().busy == 1

    def test_engine_reused_after_release(self, fake_engine_cls) -> None:
        factory = CountingFactory(fake_engine_cls)
        pool = OCRWorkerPool(factory, size=2)

        first = pool.acquire()
        pool.release(first)
        second = pool.acquire()

        assert second is first
        assert second.uses == 2
        assert len(factory.created) == 1

    def test_double_release_ignored(self, fake_engine_cls) -> None:
        pool = OCRWorkerPool(CountingFactory(fake_engine_cls), size=1)
        handle = pool.acquire()
        pool.release(handle)
        pool.release(handle)

        stats = pool.stats()
        assert stats.busy == 0
        assert stats.idle == 1

    def test_invalid_size(self, fake_engine_cls) -> None:
        with pytest.raises(ValueError):
            OCRWorkerPool(CountingFactory(fake_engine_cls), size=0)


class TestBounds:
    """Tests for the outstanding-worker bound."""

    def test_timeout_when_exhausted(self, fake_engine_cls) -> None:
        pool = OCRWorkerPool(CountingFactory(fake_engine_cls), size=1)
        pool.acquire()

        with pytest.raises(WorkerAcquisitionError, match="available"):
            pool.acquire(timeout=0.05)

    def test_waiter_gets_released_worker(self, fake_engine_cls) -> None:
        pool = OCRWorkerPool(CountingFactory(fake_engine_cls), size=1)
        held = pool.acquire()
        acquired: list[WorkerHandle] = []

        waiter = threading.Thread(target=lambda: acquired.append(pool.acquire(timeout=5)))
        waiter.start()
        time.sleep(0.05)
        assert acquired == []

        pool.release(held)
        waiter.join(timeout=5)
        assert acquired == [held]

    def test_concurrent_use_never_exceeds_size(self, fake_engine_cls) -> None:
        factory = CountingFactory(fake_engine_cls)
        pool = OCRWorkerPool(factory, size=3)
        lock = threading.Lock()
        active = 0
        peak = 0

        def work() -> None:
            nonlocal active, peak
            with pool.worker(timeout=10):
                with lock:
                    active += 1
                    peak = max(peak, active)
                time.sleep(0.01)
                with lock:
                    active -= 1

        threads = [threading.Thread(target=work) for _ in range(12)]
        for t in threads:
            t.start()
        for t in threads:
            t.join(timeout=10)

        assert peak <= 3
        assert len(factory.created) <= 3
        stats = pool.stats()
        assert stats.busy == 0
        assert stats.idle == stats.created


class TestScopedAcquisition:
    """Tests for the worker() context manager."""

    def test_released_on_success(self, fake_engine_cls) -> None:
        pool = OCRWorkerPool(CountingFactory(fake_engine_cls), size=1)
        with pool.worker() as handle:
            assert pool.stats().busy == 1
            assert handle.engine is not None
        assert pool.stats().busy == 0

    def test_released_on_error(self, fake_engine_cls) -> None:
        pool = OCRWorkerPool(CountingFactory(fake_engine_cls), size=1)
        with pytest.raises(RuntimeError):
            with pool.worker():
                raise RuntimeError("recognition crashed")

        assert pool.stats().busy == 0
        assert pool.acquire(timeout=0.1) is not None


class TestInitializationFailure:
    """Tests for engine factory failures."""

    def test_failure_surfaces_and_frees_slot(self, fake_engine_cls) -> None:
        factory = CountingFactory(fake_engine_cls, fail_times=1)
        pool = OCRWorkerPool(factory, size=1)

        with pytest.raises(WorkerAcquisitionError) as exc_info:
            pool.acquire()
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert pool.stats().created == 0

        handle = pool.acquire(timeout=0.1)
        assert handle.engine is factory.created[0]

    def test_acquisition_error_passed_through(self) -> None:
        def factory():
            raise WorkerAcquisitionError("no tesseract")

        pool = OCRWorkerPool(factory, size=1)
        with pytest.raises(WorkerAcquisitionError, match="no tesseract"):
            pool.acquire()

    def test_interrupted_initialization_frees_slot(self, fake_engine_cls) -> None:
        calls = []

        def factory():
            calls.append(1)
            if len(calls) == 1:
                raise KeyboardInterrupt
            return fake_engine_cls()

        pool = OCRWorkerPool(factory, size=1)

        with pytest.raises(KeyboardInterrupt):
            pool.acquire()
        assert pool.stats() == PoolStats(size=1, created=0, idle=0, busy=0, closed=False)

        handle = pool.acquire(timeout=0.1)
        assert handle.engine is not None
        assert pool.stats().busy == 1


class TestClose:
    """Tests for shutting the pool down."""

    def test_close_terminates_idle_and_refuses_acquire(self, fake_engine_cls) -> None:
        factory = CountingFactory(fake_engine_cls)
        pool = OCRWorkerPool(factory, size=1)
        pool.release(pool.acquire())

        pool.close()

        assert factory.created[0].closed is True
        assert pool.stats().closed is True
        with pytest.raises(WorkerAcquisitionError, match="closed"):
            pool.acquire()

    def test_busy_worker_terminated_on_release(self, fake_engine_cls) -> None:
        factory = CountingFactory(fake_engine_cls)
        with OCRWorkerPool(factory, size=1) as pool:
            handle = pool.acquire()
        assert factory.created[0].closed is False

        pool.release(handle)
        assert factory.created[0].closed is True
        assert pool.stats().created == 0
