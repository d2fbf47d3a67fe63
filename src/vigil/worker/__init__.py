"""Bounded background job execution."""

from .pool import FunctionJob, PoolClosedError, QueueFullError, WorkerPool, WorkerPoolError

__all__ = [
    "FunctionJob",
    "PoolClosedError",
    "QueueFullError",
    "WorkerPool",
    "WorkerPoolError",
]
