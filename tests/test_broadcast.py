"""Tests for the broadcast job and its schedule."""

from __future__ import annotations

from datetime import datetime, time, timezone
from unittest.mock import AsyncMock, MagicMock, patch
from zoneinfo import ZoneInfo

import pytest
from telegram.error import Forbidden

from orderbot.memory.user_registry import InMemoryUserRegistry
from orderbot.scheduler.broadcast import (
    BroadcastJob,
    BroadcastReport,
    broadcast_loop,
    load_schedule,
    next_run_after,
    parse_times,
)

JAKARTA = ZoneInfo("Asia/Jakarta")
SLOTS = parse_times(["08:00", "12:00", "18:00"])


class TestBroadcastJob:
    @pytest.mark.asyncio
    async def test_empty_registry(self, store: MagicMock) -> None:
        send = AsyncMock()
        report = await BroadcastJob(store, InMemoryUserRegistry(), send, delay=0).run()
        assert (report.sent, report.failed) == (0, 0)
        send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_sends_to_every_user(self, store: MagicMock) -> None:
        send = AsyncMock()
        registry = InMemoryUserRegistry([1, 2, 3])
        report = await BroadcastJob(store, registry, send, delay=0).run()
        assert report.sent == 3
        assert report.failed == 0
        assert sorted(call.args[0] for call in send.await_args_list) == [1, 2, 3]
        assert all(call.args[1] == "Promo hari ini!" for call in send.await_args_list)

    @pytest.mark.asyncio
    async def test_failure_does_not_abort_fanout(self, store: MagicMock) -> None:
        send = AsyncMock(side_effect=[None, Forbidden("bot was blocked by the user"), None])
        report = await BroadcastJob(store, InMemoryUserRegistry([1, 2, 3]), send, delay=0).run()
        assert report.sent == 2
        assert report.failed == 1
        assert send.await_count == 3

    @pytest.mark.asyncio
    async def test_non_telegram_error_does_not_abort_fanout(self, store: MagicMock) -> None:
        send = AsyncMock(side_effect=[RuntimeError("boom"), None, None])
        report = await BroadcastJob(store, InMemoryUserRegistry([1, 2, 3]), send, delay=0).run()
        assert report.sent == 2
        assert report.failed == 1
        assert send.await_count == 3

    @pytest.mark.asyncio
    async def test_fetch_failure_is_noop(self, store: MagicMock) -> None:
        store.get_broadcast.return_value = {"success": False, "message": "down"}
        send = AsyncMock()
        report = await BroadcastJob(store, InMemoryUserRegistry([1]), send, delay=0).run()
        assert report.skipped
        assert (report.sent, report.failed) == (0, 0)
        send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_message_is_noop(self, store: MagicMock) -> None:
        store.get_broadcast.return_value = {"success": True, "broadcastMessage": ""}
        send = AsyncMock()
        report = await BroadcastJob(store, InMemoryUserRegistry([1]), send, delay=0).run()
        assert report.skipped
        send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_pauses_between_sends(self, store: MagicMock) -> None:
        send = AsyncMock()
        job = BroadcastJob(store, InMemoryUserRegistry([1, 2, 3]), send, delay=0.1)
        with patch("orderbot.scheduler.broadcast.asyncio.sleep", new=AsyncMock()) as sleep:
            await job.run()
        assert sleep.await_count == 2
        sleep.assert_awaited_with(0.1)


class TestBroadcastReport:
    def test_summary_counts(self) -> None:
        summary = BroadcastReport(sent=5, failed=1).summary()
        assert "Berhasil: 5" in summary
        assert "Gagal: 1" in summary

    def test_summary_skipped(self) -> None:
        assert "dilewati" in BroadcastReport(skipped="kosong").summary()


class TestNextRunAfter:
    def test_next_slot_same_day(self) -> None:
        now = datetime(2025, 6, 15, 9, 30, tzinfo=JAKARTA)
        assert next_run_after(now, SLOTS, JAKARTA) == datetime(2025, 6, 15, 12, 0, tzinfo=JAKARTA)

    def test_exact_slot_moves_on(self) -> None:
        now = datetime(2025, 6, 15, 12, 0, tzinfo=JAKARTA)
        assert next_run_after(now, SLOTS, JAKARTA).hour == 18

    def test_rolls_over_to_tomorrow(self) -> None:
        now = datetime(2025, 6, 15, 19, 0, tzinfo=JAKARTA)
        assert next_run_after(now, SLOTS, JAKARTA) == datetime(2025, 6, 16, 8, 0, tzinfo=JAKARTA)

    def test_converts_from_utc(self) -> None:
        # 00:30 UTC is 07:30 in Jakarta (UTC+7)
        now = datetime(2025, 6, 15, 0, 30, tzinfo=timezone.utc)
        assert next_run_after(now, SLOTS, JAKARTA) == datetime(2025, 6, 15, 8, 0, tzinfo=JAKARTA)

    def test_no_times(self) -> None:
        with pytest.raises(ValueError):
            next_run_after(datetime.now(JAKARTA), [], JAKARTA)


def test_parse_times_sorted() -> None:
    assert parse_times(["18:00", "08:00", "12:30"]) == [time(8, 0), time(12, 30), time(18, 0)]


class TestLoadSchedule:
    def test_defaults_parse(self) -> None:
        slots, tz = load_schedule(["12:00", "08:00"], "Asia/Jakarta")
        assert slots == [time(8, 0), time(12, 0)]
        assert tz == JAKARTA

    @pytest.mark.parametrize("times", [[], ["8"], ["25:00"], ["08:xx"]])
    def test_bad_times(self, times: list[str]) -> None:
        with pytest.raises(ValueError):
            load_schedule(times, "Asia/Jakarta")

    def test_bad_timezone(self) -> None:
        with pytest.raises(ValueError, match="timezone"):
            load_schedule(["08:00"], "Mars/Olympus_Mons")


class _StopLoop(Exception):
    pass


class TestBroadcastLoop:
    @pytest.mark.asyncio
    async def test_runs_job_and_survives_a_crash(self) -> None:
        job = MagicMock()
        job.run = AsyncMock(side_effect=[RuntimeError("sheet down"), BroadcastReport(sent=1)])
        sleep = AsyncMock(side_effect=[None, None, _StopLoop()])
        with patch("orderbot.scheduler.broadcast.asyncio.sleep", new=sleep):
            with pytest.raises(_StopLoop):
                await broadcast_loop(job, ["08:00", "12:00", "18:00"], "Asia/Jakarta")
        assert job.run.await_count == 2
        assert sleep.await_count == 3
        assert all(0 < call.args[0] <= 24 * 3600 for call in sleep.await_args_list)

    @pytest.mark.asyncio
    async def test_invalid_schedule_disables_loop(self) -> None:
        job = MagicMock()
        job.run = AsyncMock()
        await broadcast_loop(job, ["8"], "Asia/Jakarta")
        job.run.assert_not_awaited()
