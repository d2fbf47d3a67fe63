"""Bounded pool of worker threads for one-shot background jobs."""

from __future__ import annotations

import queue
import threading
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from ..logging import get_logger
from ..model import BackgroundJob

logger = get_logger(__name__)

_STOP = object()


class WorkerPoolError(RuntimeError):
    pass


class QueueFullError(WorkerPoolError):
    pass


class PoolClosedError(WorkerPoolError):
    pass


@dataclass(frozen=True, slots=True)
class FunctionJob:
    """Adapt a plain callable to the BackgroundJob protocol."""

    name: str
    fn: Callable[[], Any]

    def execute(self) -> None:
        self.fn()


class WorkerPool:
    """Fixed worker threads consuming a bounded queue.

    `submit` never blocks: a full queue is reported to the caller. `stop`
    drains whatever is already queued before the workers exit.
    """

    def __init__(self, queue_size: int = 100) -> None:
        if queue_size < 1:
            raise ValueError("queue_size must be at least 1")
        self.capacity = queue_size
        self._queue: queue.Queue[Any] = queue.Queue(maxsize=queue_size)
        self._threads: list[threading.Thread] = []
        self._lock = threading.Lock()
        self._closed = False
        self._running = 0

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    @property
    def running(self) -> int:
        with self._lock:
            return self._running

    @property
    def started(self) -> bool:
        with self._lock:
            return bool(self._threads)

    def submit(self, job: BackgroundJob) -> None:
        """Queue a job or raise QueueFullError immediately."""
        with self._lock:
            if self._closed:
                raise PoolClosedError("worker pool is stopped")
            try:
                self._queue.put_nowait(job)
            except queue.Full:
                logger.warning("worker.queue_full", job=job.name, capacity=self.capacity)
                raise QueueFullError(
                    f"worker queue is full ({self.capacity}); rejected job {job.name}"
                ) from None
        logger.debug("worker.job.queued", job=job.name)

    def start(self, workers: int) -> None:
        if workers < 1:
            raise ValueError("workers must be at least 1")
        with self._lock:
            if self._closed:
                raise PoolClosedError("worker pool is stopped")
            if self._threads:
                raise RuntimeError("worker pool already started")
            for index in range(1, workers + 1):
                thread = threading.Thread(
                    target=self._work,
                    args=(index,),
                    name=f"vigil-worker-{index}",
                    daemon=True,
                )
                thread.start()
                self._threads.append(thread)
        logger.info("worker.pool.started", workers=workers, capacity=self.capacity)

    def stop(self) -> None:
        """Refuse new jobs, finish queued and in-flight ones, join workers."""
        with self._lock:
            already_closed = self._closed
            self._closed = True
            threads = list(self._threads)
        if not already_closed:
            # one sentinel per worker, queued behind the remaining jobs
            for _ in threads:
                self._queue.put(_STOP)
            if not threads and not self._queue.empty():
                logger.warning("worker.pool.unstarted_jobs", pending=self._queue.qsize())
        for thread in threads:
            thread.join()
        if not already_closed:
            logger.info("worker.pool.stopped", workers=len(threads))

    def _work(self, worker_id: int) -> None:
        while True:
            item = self._queue.get()
            try:
                if item is _STOP:
                    return
                self._run(worker_id, item)
            finally:
                self._queue.task_done()

    def _run(self, worker_id: int, job: BackgroundJob) -> None:
        with self._lock:
            self._running += 1
        name = getattr(job, "name", repr(job))
        try:
            job.execute()
        except Exception:
            logger.exception("worker.job.crashed", worker=worker_id, job=name)
        else:
            logger.debug("worker.job.done", worker=worker_id, job=name)
        finally:
            with self._lock:
                self._running -= 1
