import asyncio
import inspect
from collections.abc import Callable
from datetime import datetime, timezone

from newapi_stats.client.errors import NewAPIError
from newapi_stats.config import MIN_REFRESH_INTERVAL_SECONDS, settings
from newapi_stats.observability.logger import get_logger
from newapi_stats.stats.models import Stats
from newapi_stats.stats.service import NewAPIStatsService

log = get_logger("poller")


class RefreshInProgress(Exception):
    """A fetch cycle is already running."""


def _checked_interval(seconds: float) -> float:
    if seconds < MIN_REFRESH_INTERVAL_SECONDS:
        raise ValueError(f"Refresh interval must be at least {MIN_REFRESH_INTERVAL_SECONDS}s")
    return float(seconds)


class StatsPoller:
    """Runs the stats service on a timer, one cycle at a time.

    A tick that fires while a cycle is still in flight is dropped, so two
    cycles never race on the cached access token. The last good snapshot is
    kept across failures; an unconfigured account clears it.
    """

    def __init__(
        self,
        service: NewAPIStatsService,
        interval_seconds: float | None = None,
        on_update: Callable[[Stats], object] | None = None,
        on_error: Callable[[Exception], object] | None = None,
    ):
        self.service = service
        if interval_seconds is None:
            interval_seconds = settings.refresh_interval_seconds
        self._interval = _checked_interval(interval_seconds)
        self._on_update = on_update
        self._on_error = on_error
        self._lock = asyncio.Lock()
        self._wake_event = asyncio.Event()
        self._running = False
        self._task: asyncio.Task | None = None

        self.latest: Stats | None = None
        self.last_error: str | None = None
        self.last_attempt_at: datetime | None = None

    @property
    def interval_seconds(self) -> float:
        return self._interval

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    def start(self):
        if self._task is not None:
            return
        self._running = True
        self._task = asyncio.create_task(self._run(), name="stats_poller")

    async def stop(self):
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        log.info("poller_stopped")

    def wake(self):
        """Cut the current sleep short and run the next cycle now."""
        self._wake_event.set()

    def set_interval(self, seconds: float):
        self._interval = _checked_interval(seconds)
        log.info("poller_interval_changed", interval=self._interval)
        self.wake()

    async def refresh(self) -> Stats | None:
        """Run one cycle now. Errors are recorded, reported, then re-raised."""
        if self._lock.locked():
            raise RefreshInProgress()
        async with self._lock:
            return await self._cycle()

    async def tick(self):
        """One timer firing: skipped if a cycle is in flight, never raises."""
        if self._lock.locked():
            log.info("refresh_skipped_busy")
            return
        try:
            await self.refresh()
        except Exception:
            # Already logged and recorded by _cycle; the next tick retries
            return

    async def _cycle(self) -> Stats | None:
        self.last_attempt_at = datetime.now(timezone.utc)
        try:
            stats = await self.service.fetch_stats()
        except NewAPIError as e:
            self.last_error = e.message
            log.warning("refresh_failed", kind=e.kind, error=e.message)
            await self._notify(self._on_error, e)
            raise
        except Exception as e:
            self.last_error = str(e) or type(e).__name__
            log.error("refresh_error", error=self.last_error)
            await self._notify(self._on_error, e)
            raise

        self.last_error = None
        self.latest = stats
        if stats is not None:
            await self._notify(self._on_update, stats)
        return stats

    async def _notify(self, callback: Callable | None, arg):
        if callback is None:
            return
        try:
            result = callback(arg)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            log.error("poller_callback_error", error=str(e))

    async def _interruptible_sleep(self, seconds: float):
        try:
            await asyncio.wait_for(self._wake_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass
        finally:
            self._wake_event.clear()

    async def _run(self):
        log.info("poller_started", interval=self._interval)
        while self._running:
            await self.tick()
            await self._interruptible_sleep(self._interval)
