import asyncio
import pytest
from unittest.mock import AsyncMock
from core.exceptions import SchedulingError
from etl.triggers import CronTriggers, FileWatchTriggers, build_cron_trigger, resolve_watch_path
from models.base import TriggerType
from schemas.sync import SyncJobSnapshot


def job(job_id, trigger_type, trigger_config=""):
    return SyncJobSnapshot(
        id=job_id,
        name=job_id,
        source_type="csv_file",
        trigger_type=trigger_type,
        trigger_config=trigger_config,
    )


@pytest.mark.asyncio
async def test_cron_schedules_valid_expressions_only():
    triggers = CronTriggers(AsyncMock())
    try:
        scheduled = triggers.start([
            job("a", TriggerType.SCHEDULE, "*/5 * * * *"),
            job("b", TriggerType.SCHEDULE, "every tuesday"),
            job("c", TriggerType.MANUAL, "*/5 * * * *"),
            job("d", TriggerType.SCHEDULE, "   "),
        ])

        assert scheduled == 1
        assert triggers.scheduled_job_ids() == ["a"]
    finally:
        triggers.stop()

    assert triggers.scheduler is None


@pytest.mark.asyncio
async def test_cron_without_jobs_does_not_start_scheduler():
    triggers = CronTriggers(AsyncMock())
    assert triggers.start([job("a", TriggerType.MANUAL)]) == 0
    assert triggers.scheduler is None


@pytest.mark.asyncio
async def test_file_watch_debounce_coalesces_bursts():
    callback = AsyncMock()
    triggers = FileWatchTriggers(callback, debounce_ms=30)

    triggers.notify("job-1", "/tmp/a.csv")
    await asyncio.sleep(0.01)
    triggers.notify("job-1", "/tmp/a.csv")
    assert triggers.pending() == ["job-1"]

    await asyncio.sleep(0.15)

    callback.assert_awaited_once_with("job-1")
    assert triggers.pending() == []
    triggers.stop()


@pytest.mark.asyncio
async def test_file_watch_jobs_debounce_independently():
    callback = AsyncMock()
    triggers = FileWatchTriggers(callback, debounce_ms=20)

    triggers.notify("job-1")
    triggers.notify("job-2")
    await asyncio.sleep(0.1)

    assert sorted(call.args[0] for call in callback.await_args_list) == ["job-1", "job-2"]
    triggers.stop()


@pytest.mark.asyncio
async def test_file_watch_stop_cancels_pending_runs():
    callback = AsyncMock()
    triggers = FileWatchTriggers(callback, debounce_ms=30)

    triggers.notify("job-1")
    triggers.stop()
    await asyncio.sleep(0.08)

    callback.assert_not_awaited()


@pytest.mark.asyncio
async def test_file_watch_skips_missing_directories(tmp_path):
    triggers = FileWatchTriggers(AsyncMock(), debounce_ms=20)

    watched = triggers.start([
        job("a", TriggerType.FILE_WATCH, str(tmp_path / "missing" / "data.csv")),
        job("b", TriggerType.SCHEDULE, "*/5 * * * *"),
    ])

    assert watched == 0
    assert triggers._task is None


@pytest.mark.asyncio
async def test_file_watch_runs_job_on_change(tmp_path):
    target = tmp_path / "data.csv"
    target.write_text("a\n1\n", encoding="utf-8")
    callback = AsyncMock()
    triggers = FileWatchTriggers(callback, debounce_ms=20)

    try:
        assert triggers.start([job("a", TriggerType.FILE_WATCH, str(target))]) == 1
        await asyncio.sleep(0.3)

        target.write_text("a\n1\n2\n", encoding="utf-8")
        for _ in range(50):
            if callback.await_count:
                break
            await asyncio.sleep(0.1)

        callback.assert_awaited_with("a")
    finally:
        triggers.stop()


def test_invalid_cron_expression_is_scheduling_error():
    with pytest.raises(SchedulingError, match="invalid cron expression"):
        build_cron_trigger("a", "61 * * * *")


def test_watch_path_requires_existing_directory(tmp_path):
    assert resolve_watch_path("a", f"  {tmp_path / 'data.csv'}  ") == str(tmp_path / "data.csv")
    with pytest.raises(SchedulingError):
        resolve_watch_path("a", str(tmp_path / "missing" / "data.csv"))
