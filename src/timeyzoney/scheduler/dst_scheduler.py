"""
Hourly DST reconciliation.

The scheduler wakes at the top of every hour and sweeps the timezones in
use: zones that just changed offset (see ``transition_detector``) get every
user's nickname re-derived through the fan-out updater.

States::

    IDLE --start()--> ARMED --top of hour--> RUNNING --sweep done--> ARMED ...
    any  --stop()---> IDLE
    any  --shutdown()--> STOPPED (terminal)

Stopping only prevents future sweeps; a sweep already in flight finishes.
Unless ``allow_overlap`` is set, a tick that finds the previous sweep still
running is skipped.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Protocol, Set

from timeyzoney.audit.audit_log import AuditLog
from timeyzoney.datatypes.sync_datatypes import (
    SchedulerState,
    SchedulerStatus,
    SweepReport,
    TimezoneUpdateSummary,
)
from timeyzoney.timezone.offset_calculator import InvalidTimezoneError, current_offset, utc_now
from timeyzoney.timezone.transition_detector import has_just_transitioned
from timeyzoney.util.logger import get_logger

logger = get_logger("dst_scheduler")

SWEEP_INTERVAL_SECONDS = 60 * 60


class TimezoneDirectory(Protocol):
    async def list_in_use_timezones(self) -> list[str]: ...


class TimezoneUpdater(Protocol):
    async def update_timezone(self, timezone_id: str) -> TimezoneUpdateSummary: ...


def seconds_until_next_hour(now: datetime) -> float:
    next_hour = now.replace(minute=0, second=0, microsecond=0) + timedelta(hours=1)
    return (next_hour - now).total_seconds()


class DSTScheduler:
    """
    Coordinator-side timer driving the DST sweep.

    Args:
        directory: Provides the timezones in use.
        updater: Re-derives nicknames for a transitioned timezone.
        audit: Receives detection, summary and error events.
        detector: ``(timezone_id, now) -> bool`` transition check.
        clock: Returns the current aware UTC datetime.
        sleep: Awaitable sleep, replaceable in tests.
        allow_overlap: Let a new sweep start while the previous one runs.
    """

    def __init__(
        self,
        directory: TimezoneDirectory,
        updater: TimezoneUpdater,
        audit: AuditLog,
        *,
        detector: Callable[[str, datetime], bool] = has_just_transitioned,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        interval_seconds: float = SWEEP_INTERVAL_SECONDS,
        allow_overlap: bool = False,
    ) -> None:
        self.directory = directory
        self.updater = updater
        self.audit = audit
        self._detect = detector
        self._clock = clock
        self._sleep = sleep
        self.interval_seconds = interval_seconds
        self.allow_overlap = allow_overlap

        self._state = SchedulerState.IDLE
        self._runner: asyncio.Task[None] | None = None
        self._sweeps: Set[asyncio.Task[SweepReport]] = set()
        self._next_check_at: datetime | None = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._runner is not None and not self._runner.done()

    @property
    def sweep_in_progress(self) -> bool:
        return any(not task.done() for task in self._sweeps)

    def start(self) -> bool:
        """
        Arm the timer for the next top of the hour.

        Returns False, without side effects, when already running or shut down.
        Must be called from a running event loop.
        """
        if self._state is SchedulerState.STOPPED:
            logger.warning("[DST SCHEDULER] Cannot start: scheduler has been shut down")
            return False
        if self.is_running:
            logger.warning("[DST SCHEDULER] DST scheduler already running")
            return False

        now = self._clock()
        delay = seconds_until_next_hour(now)
        self._next_check_at = now + timedelta(seconds=delay)
        self._runner = asyncio.get_running_loop().create_task(self._run(delay), name="timeyzoney-dst-scheduler")
        self._state = SchedulerState.ARMED

        logger.info(
            "[DST SCHEDULER] Started; first DST check in %d minutes (at %s UTC)",
            round(delay / 60), self._next_check_at.strftime("%H:%M"),
        )
        return True

    def stop(self) -> None:
        """Cancel pending wake-ups. In-flight sweeps are left to finish. Idempotent."""
        if self._runner is not None and not self._runner.done():
            self._runner.cancel()
            logger.info("[DST SCHEDULER] Stopped")
        self._runner = None
        self._next_check_at = None
        if self._state is not SchedulerState.STOPPED:
            self._state = SchedulerState.IDLE

    async def shutdown(self) -> None:
        """Stop for good; the scheduler cannot be started again."""
        runner = self._runner
        self.stop()
        self._state = SchedulerState.STOPPED
        if runner is not None:
            try:
                await runner
            except asyncio.CancelledError:
                pass
        logger.info("[DST SCHEDULER] Shutdown complete")

    def get_status(self) -> SchedulerStatus:
        if self.is_running and self._next_check_at is not None:
            next_check = f"Every hour on the hour (next: {self._next_check_at.strftime('%H:%M')} UTC)"
        else:
            next_check = "Not scheduled"
        return SchedulerStatus(running=self.is_running, state=self._state, next_check=next_check)

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    async def _run(self, first_delay: float) -> None:
        await self._sleep(first_delay)
        while True:
            self._launch_sweep()
            self._next_check_at = self._clock() + timedelta(seconds=self.interval_seconds)
            await self._sleep(self.interval_seconds)

    def _launch_sweep(self) -> asyncio.Task[SweepReport] | None:
        if not self.allow_overlap and self.sweep_in_progress:
            logger.warning("[DST SCHEDULER] Previous DST sweep still running; skipping this hour's tick")
            return None

        task = asyncio.get_running_loop().create_task(self.run_sweep(), name="timeyzoney-dst-sweep")
        self._sweeps.add(task)
        task.add_done_callback(self._sweeps.discard)
        return task

    # ------------------------------------------------------------------
    # Sweep
    # ------------------------------------------------------------------

    async def run_sweep(self) -> SweepReport:
        """
        Check every timezone in use and update users of those that transitioned.

        Never raises: a failure to read the directory ends this sweep only and
        is reported through the logger and the audit log.
        """
        report = SweepReport(started_at=self._clock())
        if self._state is not SchedulerState.STOPPED:
            self._state = SchedulerState.RUNNING

        try:
            logger.info("[DST SCHEDULER] Checking for DST changes...")
            timezones = await self.directory.list_in_use_timezones()
            if not timezones:
                logger.info("[DST SCHEDULER] No timezones in use, skipping DST check")
                return report

            report.timezones_checked = len(timezones)
            report.transitioned = self._detect_transitions(timezones, report.started_at)
            if not report.transitioned:
                logger.info("[DST SCHEDULER] No DST changes detected in %d timezone(s)", len(timezones))
                return report

            logger.info(
                "[DST SCHEDULER] DST changes detected in %d timezone(s): %s",
                len(report.transitioned), ", ".join(report.transitioned),
            )
            for timezone_id in report.transitioned:
                report.nicknames_updated += await self._update_timezone(timezone_id)

            logger.info(
                "[DST SCHEDULER] DST update complete: %d nickname(s) updated across %d timezone(s)",
                report.nicknames_updated, len(report.transitioned),
            )
            if report.nicknames_updated > 0:
                await self.audit.log_sweep_complete(report.nicknames_updated, report.transitioned)
        except Exception as exc:
            report.failed = True
            logger.exception("[DST SCHEDULER] DST check failed: %s", exc)
            await self.audit.log_sweep_error(exc)
        finally:
            self._settle_state()

        return report

    def _settle_state(self) -> None:
        """Leave RUNNING once the calling sweep is the last one in flight."""
        if self._state is SchedulerState.STOPPED:
            return
        current = asyncio.current_task()
        if any(task is not current and not task.done() for task in self._sweeps):
            self._state = SchedulerState.RUNNING
        elif self.is_running:
            self._state = SchedulerState.ARMED
        else:
            self._state = SchedulerState.IDLE

    def _detect_transitions(self, timezones: list[str], now: datetime) -> list[str]:
        transitioned = []
        for timezone_id in timezones:
            try:
                if self._detect(timezone_id, now):
                    transitioned.append(timezone_id)
            except Exception as exc:
                logger.error("[DST SCHEDULER] Error checking DST for %s: %s", timezone_id, exc)
        return transitioned

    async def _update_timezone(self, timezone_id: str) -> int:
        try:
            new_offset = current_offset(timezone_id)
        except InvalidTimezoneError:
            new_offset = "unknown"

        await self.audit.log_dst_detected(timezone_id, new_offset)
        try:
            summary = await self.updater.update_timezone(timezone_id)
        except Exception as exc:
            logger.error("[DST SCHEDULER] Error processing users in %s: %s", timezone_id, exc)
            return 0

        logger.info("[DST SCHEDULER] Updated %d nickname(s) in %s", summary.nicknames_updated, timezone_id)
        await self.audit.log_dst_change(timezone_id, summary.nicknames_updated, new_offset)
        return summary.nicknames_updated
