"""Recurring job registry backed by a durable store and a cron engine."""

from .registry import (
    InvalidCronSpecError,
    JobNotFoundError,
    JobRegistry,
    SchedulerError,
    TaskFunc,
    UnknownTaskTypeError,
)
from .store import JobRecord, JobStore, JobStoreError, JsonJobStore

__all__ = [
    "InvalidCronSpecError",
    "JobNotFoundError",
    "JobRecord",
    "JobRegistry",
    "JobStore",
    "JobStoreError",
    "JsonJobStore",
    "SchedulerError",
    "TaskFunc",
    "UnknownTaskTypeError",
]
