"""Durable recurring jobs bound to named task types and a cron engine."""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass

from apscheduler.job import Job
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from ..logging import get_logger
from ..model import ScheduledJob
from ..utils.rwlock import RWLock
from .store import JobRecord, JobStore

logger = get_logger(__name__)

TaskFunc = Callable[[], None]


class SchedulerError(RuntimeError):
    pass


class UnknownTaskTypeError(SchedulerError):
    pass


class InvalidCronSpecError(SchedulerError):
    pass


class JobNotFoundError(SchedulerError):
    pass


@dataclass(slots=True)
class _ActiveJob:
    record: JobRecord
    handle: Job


class JobRegistry:
    """Named recurring jobs, persisted before they are scheduled.

    The store is the source of truth across restarts: `add_job` writes the
    row before touching the cron engine and `load_jobs` rebuilds the engine
    state from the rows.

    Callbacks run on the scheduler's worker threads and may start their own
    event loop, so only thread-based schedulers are accepted.
    """

    def __init__(
        self, store: JobStore, *, scheduler: BackgroundScheduler | None = None
    ) -> None:
        if scheduler is not None and not isinstance(scheduler, BackgroundScheduler):
            raise TypeError(
                f"JobRegistry needs a BackgroundScheduler, got {type(scheduler).__name__}"
            )
        self.store = store
        self._scheduler = scheduler if scheduler is not None else BackgroundScheduler()
        self._task_types: dict[str, TaskFunc] = {}
        self._jobs: dict[str, _ActiveJob] = {}
        self._lock = RWLock()

    # --- lifecycle ---

    def start(self, *, paused: bool = False) -> None:
        if not self._scheduler.running:
            self._scheduler.start(paused=paused)
            logger.info("scheduler.started", jobs=len(self._jobs))

    def shutdown(self, *, wait: bool = True) -> None:
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
            logger.info("scheduler.stopped")

    # --- task types ---

    def register_task_type(self, task_type: str, fn: TaskFunc) -> None:
        """Bind a callback to a task type, replacing any previous one."""
        with self._lock.write():
            replaced = task_type in self._task_types
            self._task_types[task_type] = fn
        logger.debug("scheduler.task_type.registered", task_type=task_type, replaced=replaced)

    @property
    def task_types(self) -> list[str]:
        with self._lock.read():
            return sorted(self._task_types)

    # --- jobs ---

    def add_job(
        self,
        name: str,
        cron_spec: str,
        task_type: str,
        description: str = "",
    ) -> ScheduledJob:
        """Persist and schedule a job, replacing any job with the same name."""
        with self._lock.write():
            return self._add_job_locked(name, cron_spec, task_type, description)

    def remove_job(self, name: str) -> None:
        with self._lock.write():
            if name not in self._jobs and self.store.get(name) is None:
                raise JobNotFoundError(f"unknown job: {name}")
            self.store.delete(name)
            self._unschedule_locked(name)
        logger.info("scheduler.job.removed", job=name)

    def load_jobs(self) -> list[ScheduledJob]:
        """Re-register every persisted job with the cron engine.

        Rows are visited oldest first (ties broken by name). A row whose task
        type was already loaded in this pass is deleted from the store. Rows
        whose task type has no callback are skipped and left in place.
        """
        with self._lock.write():
            records = sorted(self.store.list_all(), key=lambda r: (r.created_at, r.name))
            loaded: list[ScheduledJob] = []
            owners: dict[str, str] = {}
            for record in records:
                if record.task_type not in self._task_types:
                    logger.warning(
                        "scheduler.load.unknown_task_type",
                        job=record.name,
                        task_type=record.task_type,
                    )
                    continue
                owner = owners.get(record.task_type)
                if owner is not None:
                    logger.warning(
                        "scheduler.load.duplicate_task_type",
                        job=record.name,
                        task_type=record.task_type,
                        kept=owner,
                    )
                    self.store.delete(record.name)
                    self._unschedule_locked(record.name)
                    continue
                try:
                    trigger = self._build_trigger(record.cron_spec)
                except ValueError as exc:
                    logger.error(
                        "scheduler.load.invalid_cron",
                        job=record.name,
                        cron_spec=record.cron_spec,
                        error=str(exc),
                    )
                    continue
                active = self._schedule_locked(record, trigger)
                owners[record.task_type] = record.name
                loaded.append(self._snapshot(active))
        logger.info("scheduler.load.done", loaded=len(loaded), stored=len(records))
        return loaded

    def ensure_system_job(
        self,
        name: str,
        cron_spec: str,
        task_type: str,
        description: str = "",
    ) -> bool:
        """Add a bootstrap job unless any stored job already has its task type."""
        with self._lock.write():
            for record in self.store.list_all():
                if record.task_type == task_type:
                    if record.cron_spec != cron_spec:
                        logger.warning(
                            "scheduler.system_job.schedule_mismatch",
                            task_type=task_type,
                            job=record.name,
                            stored=record.cron_spec,
                            configured=cron_spec,
                        )
                    logger.debug(
                        "scheduler.system_job.present",
                        task_type=task_type,
                        job=record.name,
                    )
                    return False
            self._add_job_locked(name, cron_spec, task_type, description)
            return True

    def run_job_now(self, name: str) -> threading.Thread:
        """Fire a job's callback once on its own thread and return immediately."""
        with self._lock.read():
            active = self._jobs.get(name)
            if active is None:
                raise JobNotFoundError(f"unknown job: {name}")
            task_type = active.record.task_type
            fn = self._task_types.get(task_type)
        if fn is None:
            raise UnknownTaskTypeError(f"no callback registered for task type: {task_type}")
        thread = threading.Thread(
            target=self._invoke,
            args=(name, task_type, fn),
            name=f"vigil-run-{name}",
            daemon=True,
        )
        thread.start()
        logger.info("scheduler.job.run_now", job=name, task_type=task_type)
        return thread

    def list_jobs(self) -> list[ScheduledJob]:
        with self._lock.read():
            return [self._snapshot(self._jobs[name]) for name in sorted(self._jobs)]

    def get_job(self, name: str) -> ScheduledJob | None:
        with self._lock.read():
            active = self._jobs.get(name)
            return self._snapshot(active) if active is not None else None

    # --- internals ---

    def _add_job_locked(
        self,
        name: str,
        cron_spec: str,
        task_type: str,
        description: str,
    ) -> ScheduledJob:
        if task_type not in self._task_types:
            raise UnknownTaskTypeError(f"unknown task type: {task_type}")

        previous = self.store.get(name)
        self.store.upsert(
            JobRecord(
                name=name,
                cron_spec=cron_spec,
                task_type=task_type,
                description=description,
            )
        )
        try:
            trigger = self._build_trigger(cron_spec)
        except ValueError as exc:
            self._rollback(name, previous)
            logger.warning(
                "scheduler.job.invalid_cron",
                job=name,
                cron_spec=cron_spec,
                error=str(exc),
            )
            raise InvalidCronSpecError(
                f"invalid cron spec {cron_spec!r} for job {name!r}: {exc}"
            ) from exc

        record = self.store.get(name) or JobRecord(
            name=name, cron_spec=cron_spec, task_type=task_type, description=description
        )
        try:
            active = self._schedule_locked(record, trigger)
        except Exception:
            self._rollback(name, previous)
            raise
        logger.info(
            "scheduler.job.added",
            job=name,
            cron_spec=cron_spec,
            task_type=task_type,
            replaced=previous is not None,
        )
        return self._snapshot(active)

    def _rollback(self, name: str, previous: JobRecord | None) -> None:
        try:
            if previous is None:
                self.store.delete(name)
            else:
                self.store.upsert(previous)
        except Exception:
            logger.exception("scheduler.job.rollback_failed", job=name)

    def _build_trigger(self, cron_spec: str) -> CronTrigger:
        return CronTrigger.from_crontab(cron_spec, timezone=self._scheduler.timezone)

    def _schedule_locked(self, record: JobRecord, trigger: CronTrigger) -> _ActiveJob:
        self._unschedule_locked(record.name)
        handle = self._scheduler.add_job(
            self._fire,
            trigger=trigger,
            args=(record.name,),
            id=record.name,
            name=record.name,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        active = _ActiveJob(record=record, handle=handle)
        self._jobs[record.name] = active
        return active

    def _unschedule_locked(self, name: str) -> None:
        active = self._jobs.pop(name, None)
        if active is None:
            return
        try:
            active.handle.remove()
        except JobLookupError:
            pass

    def _fire(self, name: str) -> None:
        with self._lock.read():
            active = self._jobs.get(name)
            task_type = active.record.task_type if active is not None else None
            fn = self._task_types.get(task_type) if task_type is not None else None
        if task_type is None or fn is None:
            logger.warning("scheduler.job.missing_callback", job=name, task_type=task_type)
            return
        self._invoke(name, task_type, fn)

    @staticmethod
    def _invoke(name: str, task_type: str, fn: TaskFunc) -> None:
        logger.debug("scheduler.job.firing", job=name, task_type=task_type)
        try:
            fn()
        except Exception:
            logger.exception("scheduler.job.failed", job=name, task_type=task_type)
        else:
            logger.debug("scheduler.job.done", job=name, task_type=task_type)

    @staticmethod
    def _snapshot(active: _ActiveJob) -> ScheduledJob:
        return ScheduledJob(
            name=active.record.name,
            cron_spec=active.record.cron_spec,
            task_type=active.record.task_type,
            description=active.record.description,
            next_run_time=getattr(active.handle, "next_run_time", None),
        )
