"""Bounded pool of reusable OCR engine instances.

Engines are expensive to start (Tesseract loads language data on every
initialization), so the pool creates them lazily up to a fixed size and
hands them out one caller at a time. Callers beyond the bound wait for a
release.
"""

import threading
import time
import uuid
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Protocol

import numpy as np

from src.utils.exceptions import WorkerAcquisitionError
from src.utils.logger import get_logger

logger = get_logger(__name__)


class OCREngine(Protocol):
    """Anything able to run whole-image recognition."""

    def recognize(self, image: np.ndarray) -> Any: ...


@dataclass
class WorkerHandle:
    """An engine checked out of the pool."""

    id: str
    engine: OCREngine
    created_at: float
    uses: int = 0


@dataclass
class PoolStats:
    """Snapshot of pool occupancy."""

    size: int
    created: int
    idle: int
    busy: int
    closed: bool


def _close_engine(handle: WorkerHandle) -> None:
    close = getattr(handle.engine, "close", None)
    if not callable(close):
        return
    try:
        close()
        logger.debug("Worker %s terminated", handle.id)
    except Exception as exc:
        logger.warning("Error while terminating worker %s: %s", handle.id, exc)


class OCRWorkerPool:
    """Thread-safe pool bounding the number of concurrent OCR operations.

    Args:
        engine_factory: Callable building a new engine. Exceptions it
            raises are reported as :class:`WorkerAcquisitionError`.
        size: Maximum number of engines, and of outstanding handles.
        acquire_timeout: Default number of seconds to wait for a free
            worker; ``None`` waits indefinitely.
    """

    def __init__(
        self,
        engine_factory: Callable[[], OCREngine],
        size: int = 1,
        acquire_timeout: float | None = None,
    ) -> None:
        if size < 1:
            raise ValueError(f"Pool size must be at least 1, got {size}")
        self.size = size
        self.acquire_timeout = acquire_timeout
        self._engine_factory = engine_factory
        self._cond = threading.Condition()
        self._idle: list[WorkerHandle] = []
        self._busy: dict[str, WorkerHandle] = {}
        self._slots = 0
        self._closed = False

    def acquire(self, timeout: float | None = None) -> WorkerHandle:
        """Check out a worker, creating one if the pool is below its size.

        Args:
            timeout: Seconds to wait for a free worker. Defaults to the
                pool's ``acquire_timeout``.

        Returns:
            Handle owned exclusively by the caller until released.

        Raises:
            WorkerAcquisitionError: If the pool is closed, the wait times
                out, or a new engine fails to initialize.
        """
        if timeout is None:
            timeout = self.acquire_timeout
        deadline = None if timeout is None else time.monotonic() + timeout

        with self._cond:
            while True:
                if self._closed:
                    raise WorkerAcquisitionError("Worker pool is closed")
                if self._idle:
                    handle = self._idle.pop()
                    return self._checkout(handle)
                if self._slots < self.size:
                    self._slots += 1
                    break
                remaining = None if deadline is None else deadline - time.monotonic()
                if remaining is not None and remaining <= 0:
                    raise WorkerAcquisitionError(
                        f"No OCR worker became available within {timeout}s"
                    )
                self._cond.wait(remaining)

        handle = self._create_worker()
        with self._cond:
            return self._checkout(handle)

    def _create_worker(self) -> WorkerHandle:
        """Build an engine for a slot already reserved by the caller."""
        try:
            engine = self._engine_factory()
        except BaseException as exc:
            # The reserved slot goes back even on interrupts.
            with self._cond:
                self._slots -= 1
                self._cond.notify()
            if not isinstance(exc, Exception):
                raise
            logger.error("Failed to initialize OCR worker: %s", exc)
            if isinstance(exc, WorkerAcquisitionError):
                raise
            raise WorkerAcquisitionError(f"Failed to initialize OCR worker: {exc}") from exc

        handle = WorkerHandle(
            id=uuid.uuid4().hex[:8],
            engine=engine,
            created_at=time.time(),
        )
        logger.info("Created OCR worker %s (%d/%d)", handle.id, self._slots, self.size)
        return handle

    def _checkout(self, handle: WorkerHandle) -> WorkerHandle:
        handle.uses += 1
        self._busy[handle.id] = handle
        logger.debug(
            "Worker %s acquired. Idle: %d, Busy: %d",
            handle.id,
            len(self._idle),
            len(self._busy),
        )
        return handle

    def release(self, handle: WorkerHandle) -> None:
        """Return a worker to the pool.

        Releasing a handle that is not checked out is logged and ignored.

        Args:
            handle: Handle previously returned by :meth:`acquire`.
        """
        with self._cond:
            if handle is None or self._busy.pop(handle.id, None) is None:
                logger.warning(
                    "Ignoring release of worker %s: not checked out",
                    getattr(handle, "id", None),
                )
                return

            if self._closed:
                self._slots -= 1
                _close_engine(handle)
            else:
                self._idle.append(handle)
            logger.debug(
                "Worker %s released. Idle: %d, Busy: %d",
                handle.id,
                len(self._idle),
                len(self._busy),
            )
            self._cond.notify()

    @contextmanager
    def worker(self, timeout: float | None = None) -> Iterator[WorkerHandle]:
        """Check out a worker for the duration of a ``with`` block.

        The worker is released on every exit path, including exceptions
        and interrupts raised inside the block.
        """
        handle = self.acquire(timeout)
        try:
            yield handle
        finally:
            self.release(handle)

    def stats(self) -> PoolStats:
        """Return a snapshot of the pool's occupancy."""
        with self._cond:
            return PoolStats(
                size=self.size,
                created=self._slots,
                idle=len(self._idle),
                busy=len(self._busy),
                closed=self._closed,
            )

    def close(self) -> None:
        """Terminate idle engines and refuse further acquisitions.

        Engines still checked out are terminated when they are released.
        """
        with self._cond:
            if self._closed:
                return
            self._closed = True
            idle, self._idle = self._idle, []
            self._slots -= len(idle)
            self._cond.notify_all()

        for handle in idle:
            _close_engine(handle)
        logger.info("Worker pool closed (%d idle workers terminated)", len(idle))

    def __enter__(self) -> "OCRWorkerPool":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
