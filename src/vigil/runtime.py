"""Wire the registry, worker pool, heartbeat and dispatcher together."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import anyio
from apscheduler.schedulers.background import BackgroundScheduler

from .brain import Brain
from .heartbeat import HeartbeatController, HeartbeatHistory
from .logging import get_logger
from .model import BackgroundJob
from .notify import Dispatcher, LineNotifier, Notifier, QuietHours, TelegramNotifier
from .scheduler import JobRegistry, JsonJobStore, SchedulerError, TaskFunc
from .settings import NotifySettings, VigilSettings
from .worker import WorkerPool

logger = get_logger(__name__)

HEARTBEAT_TASK = "heartbeat"
HEARTBEAT_JOB = "heartbeat"
MORNING_BRIEFING_TASK = "morning_briefing"


def build_notifiers(settings: NotifySettings) -> list[Notifier]:
    notifiers: list[Notifier] = []
    if settings.telegram is not None:
        notifiers.append(
            TelegramNotifier(settings.telegram.bot_token, settings.telegram.chat_id)
        )
    if settings.line is not None:
        notifiers.append(LineNotifier(settings.line.token))
    return notifiers


def build_dispatcher(settings: NotifySettings) -> Dispatcher:
    dispatcher = Dispatcher(
        cooldown_s=settings.cooldown_s,
        quiet_hours=QuietHours(settings.quiet_start, settings.quiet_end),
        send_timeout_s=settings.send_timeout_s,
    )
    for notifier in build_notifiers(settings):
        dispatcher.register(notifier)
    return dispatcher


class Runtime:
    """Owns every long-lived component of a running daemon."""

    def __init__(
        self,
        settings: VigilSettings,
        brain: Brain,
        *,
        dispatcher: Dispatcher | None = None,
        scheduler: BackgroundScheduler | None = None,
        on_cycle_complete: Callable[[], None] | None = None,
    ) -> None:
        self.settings = settings
        self.brain = brain
        self.dispatcher = dispatcher if dispatcher is not None else build_dispatcher(settings.notify)
        self.store = JsonJobStore(Path(settings.jobs.store_path).expanduser())
        self.registry = JobRegistry(self.store, scheduler=scheduler)
        self.pool = WorkerPool(settings.workers.queue_size)
        self.heartbeat = HeartbeatController(
            brain,
            timeout_s=settings.heartbeat.timeout_s,
            on_complete=on_cycle_complete,
            history=HeartbeatHistory(
                HEARTBEAT_JOB,
                Path(settings.heartbeat.history_dir).expanduser(),
                max_runs=settings.heartbeat.max_runs,
            ),
        )
        self._started = False
        self._stopped = False

        if settings.heartbeat.enabled:
            self.registry.register_task_type(HEARTBEAT_TASK, self._heartbeat_task)
        self.registry.register_task_type(MORNING_BRIEFING_TASK, self._morning_briefing_task)

    def register_task_type(self, task_type: str, fn: TaskFunc) -> None:
        self.registry.register_task_type(task_type, fn)

    def submit(self, job: BackgroundJob) -> None:
        self.pool.submit(job)

    def start(self, *, paused: bool = False) -> None:
        """Bootstrap system jobs, restore persisted ones, start workers and cron."""
        if self._started:
            return
        self._started = True

        heartbeat = self.settings.heartbeat
        if heartbeat.enabled:
            self._ensure(HEARTBEAT_JOB, heartbeat.schedule, HEARTBEAT_TASK, "Autonomous heartbeat cycle")
        for job in self.settings.jobs.system_jobs:
            self._ensure(job.name, job.schedule, job.task_type, job.description)

        self.registry.load_jobs()
        self.pool.start(self.settings.workers.count)
        self.registry.start(paused=paused)
        logger.info("runtime.started", jobs=len(self.registry.list_jobs()))

    def stop(self) -> None:
        if not self._started or self._stopped:
            return
        self._stopped = True
        self.registry.shutdown(wait=True)
        self.pool.stop()
        self.dispatcher.close()
        logger.info("runtime.stopped")

    def _ensure(self, name: str, schedule: str, task_type: str, description: str) -> None:
        try:
            self.registry.ensure_system_job(name, schedule, task_type, description)
        except SchedulerError as exc:
            logger.warning("runtime.system_job.failed", job=name, task_type=task_type, error=str(exc))

    def _heartbeat_task(self) -> None:
        self.heartbeat.pulse()

    def _morning_briefing_task(self) -> None:
        async def _run() -> None:
            with anyio.fail_after(self.settings.heartbeat.timeout_s):
                await self.brain.generate_morning_briefing()

        anyio.run(_run)
        logger.info("runtime.morning_briefing.done")
