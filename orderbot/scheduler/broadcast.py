import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, time, timedelta
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from telegram.error import TelegramError

from orderbot import config
from orderbot.util.async_helpers import run_sync

logger = logging.getLogger(__name__)


@dataclass
class BroadcastReport:
    sent: int = 0
    failed: int = 0
    skipped: Optional[str] = None

    def summary(self):
        if self.skipped:
            return f"⚠️ Broadcast dilewati: {self.skipped}"
        return f"📢 Broadcast selesai.\n✅ Berhasil: {self.sent}\n❌ Gagal: {self.failed}"


class BroadcastJob:
    """Sends the operator's broadcast text from the sheet to every known user.

    ``send`` is an async callable ``send(user_id, text)``; in production it
    wraps ``bot.send_message``. The job knows nothing about scheduling, so
    the cron loop below and the /broadcast command both just await run().
    """

    def __init__(self, store, registry, send, delay=None):
        self.store = store
        self.registry = registry
        self.send = send
        self.delay = config.BROADCAST_DELAY_SECONDS if delay is None else delay

    async def run(self) -> BroadcastReport:
        response = await run_sync(self.store.get_broadcast)
        if not (response and response.get("success")):
            logger.warning("Broadcast fetch failed: %s", (response or {}).get("message"))
            return BroadcastReport(skipped="gagal mengambil pesan broadcast")

        text = response.get("broadcastMessage")
        if not text:
            logger.info("No broadcast message set, skipping")
            return BroadcastReport(skipped="pesan broadcast kosong")

        report = BroadcastReport()
        user_ids = self.registry.snapshot()
        for index, user_id in enumerate(user_ids):
            try:
                await self.send(user_id, text)
                report.sent += 1
            except TelegramError as e:
                report.failed += 1
                logger.warning("Broadcast to %s failed: %s", user_id, e)
            except Exception:
                report.failed += 1
                logger.exception("Broadcast to %s failed", user_id)
            if index < len(user_ids) - 1:
                await asyncio.sleep(self.delay)

        logger.info("Broadcast done: %d sent, %d failed", report.sent, report.failed)
        return report


def parse_times(values):
    """'08:00' style strings to datetime.time objects. Raises ValueError."""
    parsed = []
    for value in values:
        try:
            hour, minute = value.split(":")
            parsed.append(time(int(hour), int(minute)))
        except ValueError:
            raise ValueError(f"invalid broadcast time {value!r}, expected HH:MM") from None
    if not parsed:
        raise ValueError("no broadcast times configured")
    return sorted(parsed)


def load_schedule(times=None, timezone=None):
    """Parse the configured slots and timezone. Raises ValueError."""
    slots = parse_times(config.BROADCAST_TIMES if times is None else times)
    name = timezone or config.BROADCAST_TIMEZONE
    try:
        return slots, ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"unknown broadcast timezone {name!r}") from None


def next_run_after(now, times, tz):
    """First scheduled slot strictly after *now*, in timezone *tz*."""
    local_now = now.astimezone(tz)
    for day_offset in (0, 1):
        day = local_now.date() + timedelta(days=day_offset)
        for slot in times:
            candidate = datetime.combine(day, slot, tzinfo=tz)
            if candidate > local_now:
                return candidate
    raise ValueError("no broadcast times configured")


async def broadcast_loop(job, times=None, timezone=None):
    """Run *job* at each configured time of day, forever."""
    try:
        times, tz = load_schedule(times, timezone)
    except ValueError as e:
        logger.error("[cron] scheduled broadcast disabled: %s", e)
        return
    while True:
        now = datetime.now(tz)
        next_run = next_run_after(now, times, tz)
        wait_seconds = (next_run - now).total_seconds()
        logger.info("[cron] next broadcast at %s (%ds)", next_run.strftime("%Y-%m-%d %H:%M %Z"), int(wait_seconds))
        await asyncio.sleep(wait_seconds)
        try:
            report = await job.run()
        except Exception:
            logger.exception("[cron] broadcast crashed")
            continue
        logger.info("[cron] %s", report.summary().replace("\n", " "))
