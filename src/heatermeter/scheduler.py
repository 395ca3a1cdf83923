"""
HeaterMeter sync engine
Decides per tick between a full history fetch and an incremental status
poll, applies the result to the sample store and notifies listeners.

A tick runs in two phases:
  1. fetch_tick()  - network and decoding only, returns a TickResult
  2. apply()       - the only place the store and timers change
tick() runs both under a lock so two ticks never overlap. A login attempt,
when one is due, happens after listeners have been notified.
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

import aiohttp

from .auth import AuthSession, LoginResult, request_login
from .decoders import parse_history, parse_status
from .exceptions import DecodeError, NotAuthenticatedError
from .fetcher import FailoverFetcher
from .models import NamedSample, ProbeMetadata, ResultKind, SavedHistory, TickResult
from .settings import HeaterMeterSettings
from .store import SampleStore

logger = logging.getLogger(__name__)

HISTORY_PATH = "/luci/lm/hist"
STATUS_PATH = "/luci/lm/hmstatus"

# Rebuild from history past this many samples, nobody can see that much detail
MAX_SAMPLES = 500
# Wait at least this long between full history refreshes
MIN_HISTORY_UPDATE_MS = 5000
# Force a history refresh if the last good update is older than this
MAX_UPDATE_DELTA_MS = 5000

Listener = Callable[[Optional[NamedSample]], Any]


def _now_ms() -> float:
    return time.time() * 1000.0


class HeaterMeterClient:
    """Owns every piece of engine state: store, failover fetcher, auth session and timers"""

    def __init__(
        self,
        settings: HeaterMeterSettings,
        fetcher: Optional[FailoverFetcher] = None,
        clock: Optional[Callable[[], float]] = None,
        saved_history: Optional[SavedHistory] = None,
    ):
        self.settings = settings
        self.fetcher = fetcher or FailoverFetcher(settings.servers)
        self.store = SampleStore()
        self.auth = AuthSession(settings.admin_password)
        self.clock = clock or _now_ms
        self.saved_history = saved_history

        self.latest_sample: Optional[NamedSample] = None
        self.last_update_time = 0.0
        self.last_history_time = 0.0
        self.tick_count = 0
        self.failed_ticks = 0

        self._listeners: List[Listener] = []
        self._pending_listener_ops: List[Tuple[str, Listener]] = []
        self._dispatching = False
        self._tick_lock = asyncio.Lock()

    # ================== LISTENERS ==================

    def add_listener(self, listener: Listener) -> None:
        """Register a listener; it gets the latest sample right away if there is one"""
        if self._dispatching:
            self._pending_listener_ops.append(("add", listener))
            return
        self._register(listener)

    def remove_listener(self, listener: Listener) -> None:
        if self._dispatching:
            self._pending_listener_ops.append(("remove", listener))
            return
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _register(self, listener: Listener) -> None:
        self._listeners.append(listener)
        if self.latest_sample is not None:
            self._call_listener(listener, self.latest_sample)

    def _call_listener(self, listener: Listener, sample: Optional[NamedSample]) -> None:
        try:
            listener(sample)
        except Exception:
            logger.exception(f"Listener {listener!r} failed")

    def _notify(self, sample: Optional[NamedSample]) -> None:
        self._dispatching = True
        try:
            for listener in self._listeners:
                self._call_listener(listener, sample)
        finally:
            self._dispatching = False

        pending, self._pending_listener_ops = self._pending_listener_ops, []
        for op, listener in pending:
            if op == "add":
                self._register(listener)
            else:
                self.remove_listener(listener)

    # ================== SETTINGS ==================

    def set_admin_password(self, password: Optional[str]) -> None:
        self.settings.admin_password = password or ""
        self.auth.set_password(password)

    def set_saved_history(self, saved_history: Optional[SavedHistory]) -> None:
        """Use a captured dataset instead of the live appliance"""
        self.saved_history = saved_history
        if saved_history is not None:
            logger.info(f"Using saved history with {len(saved_history.samples)} samples")

    def clear_saved_history(self) -> None:
        self.saved_history = None

    @property
    def last_status_message(self) -> Optional[str]:
        return self.auth.last_status_message

    # ================== FETCH PHASE ==================

    def should_fetch_history(self, now: float) -> bool:
        since_update = now - self.last_update_time
        since_history = now - self.last_history_time
        size = self.store.size()

        return (size == 0 or size > MAX_SAMPLES or since_update > MAX_UPDATE_DELTA_MS) \
            and since_history > MIN_HISTORY_UPDATE_MS

    async def fetch_tick(self, now: float) -> TickResult:
        """Fetch and decode whatever this tick needs. Never touches engine state."""
        if self.should_fetch_history(now):
            return await self._fetch_history(now)
        return await self._fetch_status(now)

    async def _fetch_history(self, now: float) -> TickResult:
        logger.debug("Getting history")

        if self.saved_history is not None:
            return TickResult.from_history([s.copy() for s in self.saved_history.samples], now)

        body = await self.fetcher.fetch(HISTORY_PATH)
        if body is None:
            return TickResult.failed("history fetch failed", now, history_attempted=True)

        try:
            history = parse_history(body)
        except DecodeError as e:
            logger.warning(f"Unable to decode history: {e}")
            return TickResult.failed(str(e), now, history_attempted=True)

        return TickResult.from_history(history, now)

    async def _fetch_status(self, now: float) -> TickResult:
        if self.saved_history is not None:
            if not self.saved_history.samples:
                return TickResult.failed("saved history is empty", now)
            last = self.saved_history.samples[-1].copy()
            metadata = ProbeMetadata(probe_names=list(self.saved_history.probe_names))
            return TickResult.from_status(NamedSample(last, metadata), now)

        sample = await self._request_status()
        if sample is None:
            return TickResult.failed("status fetch failed", now)
        return TickResult.from_status(sample, now)

    async def fetch_status(self) -> Optional[NamedSample]:
        """Fetch the current status without touching the store.

        Waits for a running tick so the two never fail over at the same time.
        """
        async with self._tick_lock:
            return await self._request_status()

    async def _request_status(self) -> Optional[NamedSample]:
        body = await self.fetcher.fetch(STATUS_PATH)
        if body is None:
            return None

        try:
            return parse_status(body)
        except DecodeError as e:
            logger.warning(f"Unable to decode status: {e}")
            return None

    async def _login(self) -> LoginResult:
        session = await self.fetcher.ensure_session()
        return await request_login(session, self.fetcher.base_url, self.auth.password)

    # ================== APPLY PHASE ==================

    def apply(self, result: TickResult) -> Optional[NamedSample]:
        """Apply a fetched result, then notify listeners with the latest sample"""
        if result.history_attempted:
            self.last_history_time = result.fetched_at

        if result.kind is ResultKind.STATUS:
            self.store.append_status(result.status)
            latest = result.status
        elif result.kind is ResultKind.HISTORY:
            self.store.rebuild_from_history(result.history)
            latest = self.store.latest_sample()
        elif result.kind is ResultKind.FAILED:
            logger.warning(f"No sample this tick: {result.error}")
            self.failed_ticks += 1
            latest = None
        else:
            raise ValueError(f"Unknown tick result kind: {result.kind}")

        if result.ok:
            self.last_update_time = result.fetched_at

        self.latest_sample = latest
        self._notify(latest)
        return latest

    async def tick(self) -> Optional[NamedSample]:
        """Run one full sync cycle. Returns None when no sample was obtained."""
        async with self._tick_lock:
            self.tick_count += 1
            now = self.clock()
            result = await self.fetch_tick(now)
            latest = self.apply(result)

            # A good result means the server is reachable, so try to log in.
            # Listeners already have this tick's sample, a slow login can't hold it back.
            if result.ok and self.auth.needs_login:
                self.auth.apply_login(await self._login())

            return latest

    # ================== WRITE COMMANDS ==================

    async def change_set_point(self, set_point: int) -> bool:
        """Ask the appliance to drive toward a new set point"""
        try:
            url, headers = self.auth.set_point_request(self.fetcher.base_url, set_point)
        except NotAuthenticatedError as e:
            logger.warning(f"Set point change to {set_point} refused: {e}")
            return False

        session = await self.fetcher.ensure_session()
        try:
            async with session.post(url, headers=headers) as response:
                response.raise_for_status()
        except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
            logger.error(f"Set point change to {set_point} failed: {e!r}")
            return False

        logger.info(f"Set point changed to {set_point}")
        return True

    # ================== STATUS ==================

    def get_status(self) -> Dict[str, Any]:
        """Engine status for monitoring"""
        return {
            "current_server": self.fetcher.current_server,
            "server_url": self.fetcher.base_url,
            "sample_count": self.store.size(),
            "newest_time": self.store.newest_time,
            "last_update_time": self.last_update_time or None,
            "last_history_time": self.last_history_time or None,
            "authenticated": self.auth.is_authenticated,
            "last_status_message": self.auth.last_status_message,
            "using_saved_history": self.saved_history is not None,
            "tick_count": self.tick_count,
            "failed_ticks": self.failed_ticks,
        }

    async def close(self):
        await self.fetcher.close()
