"""Polling auto-logger for scheduled routine variables.

Each tick reads the user's active routine bindings, works out which are due
at the current wall-clock minute and, when at least one is, asks the
auto-log endpoint to create logs for today. Ticks are serialized: the loop
awaits a whole tick before waiting for the next one.
"""

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Mapping
from datetime import datetime
from typing import Any, Optional

import structlog

from app.core.exceptions import AutoLogServiceError

from .base import AutoLogResult, RoutineBinding
from .matching import ProcessedKeys, select_due_variables
from .timeinfo import get_current_time_info, seconds_until_midnight

logger = structlog.get_logger(__name__)

DEFAULT_CHECK_INTERVAL_MS = 60_000

FetchBindings = Callable[[str], Awaitable[list[RoutineBinding]]]
CreateAutoLogs = Callable[[str, str], Awaitable[dict[str, Any]]]


async def fetch_bindings_from_database(user_id: str) -> list[RoutineBinding]:
    """Default binding source: the routines tables, read off the event loop."""
    from .repository import fetch_active_bindings

    return await asyncio.to_thread(fetch_active_bindings, user_id)


class RoutineAutoLogger:
    """Background auto-logger for one user.

    Owns its suppression state exclusively. ``check_routines`` can be called
    manually; ``start``/``stop`` control the polling loop and the midnight
    reset task.
    """

    def __init__(
        self,
        user_id: Optional[str],
        check_interval_ms: int = DEFAULT_CHECK_INTERVAL_MS,
        enabled: bool = True,
        fetch_bindings: Optional[FetchBindings] = None,
        create_auto_logs: Optional[CreateAutoLogs] = None,
        clock: Optional[Callable[[], datetime]] = None,
        on_auto_log_created: Optional[Callable[[dict[str, Any]], Any]] = None,
        on_error: Optional[Callable[[Exception], Any]] = None,
    ):
        """Initialize the auto-logger.

        Args:
            user_id: Owner of the routines to evaluate. Empty keeps it idle.
            check_interval_ms: Delay between the end of one tick and the next.
            enabled: Whether checks run at all.
            fetch_bindings: Async callable returning the user's active bindings.
            create_auto_logs: Async callable ``(target_date, user_id)`` that
                triggers auto-log creation and returns the summary.
            clock: Returns the user's wall-clock time (default ``datetime.now``).
                Weekday, date and midnight are all taken from it.
            on_auto_log_created: Called with the summary when logs were created.
            on_error: Called with the exception when a tick fails.
        """
        if check_interval_ms <= 0:
            raise ValueError("check_interval_ms must be positive")

        self.user_id = user_id or ""
        self.check_interval_ms = check_interval_ms
        self.enabled = enabled
        self.last_check: Optional[datetime] = None
        self.on_auto_log_created = on_auto_log_created
        self.on_error = on_error

        self._fetch_bindings = fetch_bindings or fetch_bindings_from_database
        self._create_auto_logs = create_auto_logs
        self._clock = clock or datetime.now
        self._processed = ProcessedKeys()
        self._tick_lock = asyncio.Lock()
        self._stop_event: Optional[asyncio.Event] = None
        self._loop_task: Optional[asyncio.Task] = None
        self._midnight_task: Optional[asyncio.Task] = None
        self._logger = logger.bind(component="routine_auto_logger")

    # -------------------------------------------------------------------------
    # Observable state
    # -------------------------------------------------------------------------

    @property
    def is_running(self) -> bool:
        """True while a tick is in flight."""
        return self._tick_lock.locked()

    @property
    def is_active(self) -> bool:
        """True while the polling loop is scheduled."""
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def processed_today(self) -> set[tuple[Any, str]]:
        return set(self._processed.today)

    def status(self) -> dict[str, Any]:
        return {
            "user_id": self.user_id or None,
            "enabled": self.enabled,
            "active": self.is_active,
            "running": self.is_running,
            "check_interval_ms": self.check_interval_ms,
            "last_check": self.last_check.isoformat() if self.last_check else None,
            "processed_today": [
                {"variable_id": v, "date": d}
                for v, d in sorted(self._processed.today, key=lambda k: (k[1], str(k[0])))
            ],
        }

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    async def trigger_auto_logging(self) -> AutoLogResult:
        """Run one evaluation and call the auto-log endpoint if anything is due.

        The user and suppression state are read once, so a tick that is still
        in flight when the user changes finishes against its own user.
        """
        user_id = self.user_id
        processed = self._processed
        time_info = get_current_time_info(self._clock())

        if processed.roll_date(time_info):
            self._logger.info("processed_today_reset", date=time_info.current_date)
        processed.roll_minute(time_info)

        bindings = await self._load_bindings(user_id)
        due = select_due_variables(bindings, time_info, processed)

        if not due:
            return AutoLogResult(success=True, summary={"auto_logs_created": 0})

        due_ids = [b.variable_id for b in due]
        self._logger.info(
            "auto_log_due",
            user_id=user_id,
            date=time_info.current_date,
            minute=time_info.current_time_minute,
            variables=due_ids,
        )

        try:
            summary = await self._call_create_auto_logs(time_info.current_date, user_id)
            created = int(summary.get("auto_logs_created") or 0)
        except Exception as e:
            self._logger.error(
                "auto_log_failed",
                user_id=user_id,
                date=time_info.current_date,
                error=str(e),
            )
            await self._notify(self.on_error, e)
            return AutoLogResult(success=False, error=str(e), due_variable_ids=due_ids)

        processed.mark_processed(due_ids, time_info)

        self._logger.info(
            "auto_log_completed",
            user_id=user_id,
            date=time_info.current_date,
            auto_logs_created=created,
        )
        if created > 0:
            await self._notify(self.on_auto_log_created, summary)

        return AutoLogResult(success=True, summary=summary, due_variable_ids=due_ids)

    async def check_routines(self) -> Optional[AutoLogResult]:
        """Evaluate once now.

        Returns None without evaluating when disabled, when no user is set,
        or when another tick is still in flight.
        """
        if not self.enabled or not self.user_id:
            return None

        if self._tick_lock.locked():
            self._logger.debug("auto_log_check_skipped", reason="tick_in_flight")
            return None

        async with self._tick_lock:
            try:
                return await self.trigger_auto_logging()
            finally:
                self.last_check = self._clock()

    def clear_processed_today(self) -> None:
        self._processed.clear_today()

    def clear_processed_this_minute(self) -> None:
        self._processed.clear_this_minute()

    async def _load_bindings(self, user_id: str) -> list[RoutineBinding]:
        try:
            return list(await self._fetch_bindings(user_id))
        except Exception as e:
            self._logger.error("routine_fetch_failed", user_id=user_id, error=str(e))
            return []

    async def _call_create_auto_logs(self, target_date: str, user_id: str) -> dict[str, Any]:
        if self._create_auto_logs is None:
            from .client import AutoLogClient

            self._create_auto_logs = AutoLogClient().create_auto_logs

        summary = await self._create_auto_logs(target_date, user_id)
        if summary is None:
            return {}
        if not isinstance(summary, Mapping):
            raise AutoLogServiceError(
                f"Unexpected auto-log summary: {type(summary).__name__}"
            )
        return dict(summary)

    async def _notify(self, callback: Optional[Callable[[Any], Any]], payload: Any) -> None:
        if callback is None:
            return
        try:
            result = callback(payload)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self._logger.warning("auto_log_callback_failed", error=str(e))

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def start(self):
        """Start polling. No-op when the loop is already scheduled."""
        if self.is_active:
            return

        self._stop_event = asyncio.Event()
        self._loop_task = asyncio.create_task(self._run_loop(self._stop_event))
        self._midnight_task = asyncio.create_task(self._midnight_loop(self._stop_event))
        self._logger.info(
            "auto_logger_started", user_id=self.user_id, interval_ms=self.check_interval_ms
        )

    async def stop(self, wait: bool = False):
        """Stop polling.

        An in-flight tick is not aborted and may still mark variables as
        processed. With ``wait`` the call returns once that tick finished.
        """
        loop_task = self._loop_task
        if self._stop_event is not None:
            self._stop_event.set()

        if self._midnight_task is not None:
            self._midnight_task.cancel()
            self._midnight_task = None

        self._loop_task = None

        if loop_task is not None:
            self._logger.info("auto_logger_stopped", user_id=self.user_id)
            if wait and not loop_task.done():
                await loop_task

    async def update(self, enabled: Optional[bool] = None, user_id: Optional[str] = None):
        """Apply new settings; runs only while enabled with a user set."""
        if enabled is not None:
            self.enabled = enabled

        if user_id is not None and user_id != self.user_id:
            await self.stop()
            self.user_id = user_id
            self._processed = ProcessedKeys()

        if self.enabled and self.user_id:
            await self.start()
        else:
            await self.stop()

    async def _run_loop(self, stop_event: asyncio.Event):
        while not stop_event.is_set():
            try:
                await self.check_routines()
            except Exception as e:
                self._logger.error("auto_logger_tick_failed", error=str(e))

            if await self._wait_or_stop(stop_event, self.check_interval_ms / 1000):
                break

    async def _midnight_loop(self, stop_event: asyncio.Event):
        """Clear the once-per-day suppression at every local midnight."""
        while not stop_event.is_set():
            delay = seconds_until_midnight(self._clock())
            if await self._wait_or_stop(stop_event, delay):
                break
            self.clear_processed_today()
            self._logger.info("processed_today_cleared", user_id=self.user_id)

    @staticmethod
    async def _wait_or_stop(stop_event: asyncio.Event, seconds: float) -> bool:
        """Sleep up to ``seconds``; True if stopped meanwhile."""
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=max(seconds, 0))
            return True
        except asyncio.TimeoutError:
            return False
