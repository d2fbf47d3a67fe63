"""Tests for runtime wiring."""

from __future__ import annotations

import threading
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from apscheduler.schedulers.background import BackgroundScheduler

from vigil.notify import LineNotifier, TelegramNotifier
from vigil.scheduler import JobRecord
from vigil.runtime import HEARTBEAT_JOB, Runtime, build_dispatcher
from vigil.settings import NotifySettings, VigilSettings
from vigil.worker import FunctionJob


def make_brain() -> MagicMock:
    brain = MagicMock()
    brain.collect_env = AsyncMock(return_value="")
    brain.think = AsyncMock(return_value="IDLE")
    brain.execute_decision = AsyncMock()
    brain.run_patrol = AsyncMock()
    brain.generate_morning_briefing = AsyncMock()
    return brain


def make_settings(tmp_path: Path, **overrides) -> VigilSettings:
    data = {
        "heartbeat": {"history_dir": str(tmp_path / "heartbeats")},
        "jobs": {"store_path": str(tmp_path / "jobs.json")},
        "workers": {"count": 2, "queue_size": 4},
    }
    for key, value in overrides.items():
        data.setdefault(key, {}).update(value)
    return VigilSettings.model_validate(data)


def start_runtime(settings: VigilSettings, brain: MagicMock) -> Runtime:
    runtime = Runtime(settings, brain, scheduler=BackgroundScheduler(timezone="UTC"))
    runtime.start(paused=True)
    return runtime


class TestRuntime:
    """Tests for Runtime start/stop."""

    def test_bootstraps_system_jobs(self, tmp_path: Path) -> None:
        runtime = start_runtime(make_settings(tmp_path), make_brain())
        try:
            names = [job.name for job in runtime.registry.list_jobs()]
            assert names == ["daily_morning_briefing", HEARTBEAT_JOB]
            assert runtime.store.get(HEARTBEAT_JOB).cron_spec == "*/5 * * * *"
        finally:
            runtime.stop()

    def test_restart_does_not_duplicate(self, tmp_path: Path) -> None:
        settings = make_settings(tmp_path)
        start_runtime(settings, make_brain()).stop()

        runtime = start_runtime(settings, make_brain())
        try:
            assert len(runtime.store.list_all()) == 2
            assert len(runtime.registry.list_jobs()) == 2
        finally:
            runtime.stop()

    def test_heartbeat_disabled(self, tmp_path: Path) -> None:
        settings = make_settings(tmp_path, heartbeat={"enabled": False})
        runtime = start_runtime(settings, make_brain())
        try:
            assert runtime.registry.get_job(HEARTBEAT_JOB) is None
            assert runtime.store.get(HEARTBEAT_JOB) is None
        finally:
            runtime.stop()

    def test_heartbeat_task_pulses_controller(self, tmp_path: Path) -> None:
        brain = make_brain()
        runtime = start_runtime(make_settings(tmp_path), brain)
        try:
            runtime.registry.run_job_now(HEARTBEAT_JOB).join(timeout=5)
            brain.collect_env.assert_awaited_once()
            assert len(runtime.heartbeat.history.load().runs) == 1
        finally:
            runtime.stop()

    def test_morning_briefing_task(self, tmp_path: Path) -> None:
        brain = make_brain()
        runtime = start_runtime(make_settings(tmp_path), brain)
        try:
            runtime.registry.run_job_now("daily_morning_briefing").join(timeout=5)
            brain.generate_morning_briefing.assert_awaited_once()
        finally:
            runtime.stop()

    def test_custom_task_type_loaded_from_store(self, tmp_path: Path) -> None:
        settings = make_settings(tmp_path)
        first = start_runtime(settings, make_brain())
        first.stop()

        first.store.upsert(
            JobRecord(name="nightly_cleanup", cron_spec="0 3 * * *", task_type="memory_cleanup")
        )

        ran = threading.Event()
        runtime = Runtime(settings, make_brain(), scheduler=BackgroundScheduler(timezone="UTC"))
        runtime.register_task_type("memory_cleanup", ran.set)
        runtime.start(paused=True)
        try:
            runtime.registry.run_job_now("nightly_cleanup").join(timeout=5)
            assert ran.is_set()
        finally:
            runtime.stop()

    def test_submit_runs_on_pool(self, tmp_path: Path) -> None:
        runtime = start_runtime(make_settings(tmp_path), make_brain())
        try:
            done = threading.Event()
            runtime.submit(FunctionJob("index-files", done.set))
            assert done.wait(timeout=5)
        finally:
            runtime.stop()

    def test_stop_is_idempotent(self, tmp_path: Path) -> None:
        runtime = start_runtime(make_settings(tmp_path), make_brain())
        runtime.stop()
        runtime.stop()
        assert runtime.pool.started is True


class TestBuildDispatcher:
    """Tests for notifier construction from settings."""

    def test_no_channels(self) -> None:
        dispatcher = build_dispatcher(NotifySettings())
        try:
            assert dispatcher.notifiers == []
        finally:
            dispatcher.close()

    def test_channels_and_quiet_hours(self) -> None:
        settings = NotifySettings.model_validate(
            {
                "quiet_start": 22,
                "quiet_end": 6,
                "telegram": {"bot_token": "1:a", "chat_id": 5},
                "line": {"token": "l"},
            }
        )
        dispatcher = build_dispatcher(settings)
        try:
            kinds = [type(n) for n in dispatcher.notifiers]
            assert kinds == [TelegramNotifier, LineNotifier]
            assert (dispatcher.quiet_hours.start, dispatcher.quiet_hours.end) == (22, 6)
        finally:
            dispatcher.close()
