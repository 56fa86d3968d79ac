from __future__ import annotations

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional

from . import badge as badge_projector
from . import notifier
from .models import MetricSnapshot
from .ordering import KeyOrderResolver
from .state import PersistedState, RuntimeState
from .storage import JsonStore
from .usage_api import UsageFetchError

logger = logging.getLogger("usage_watch.poller")

USAGE_DATA_KEY = "usageData"

Fetcher = Callable[[], Awaitable[MetricSnapshot]]
NotifySink = Callable[[str, str, str], Awaitable[None]]
BadgeSink = Callable[[str, str, str], Awaitable[None]]


def now_ms() -> int:
    return int(time.time() * 1000)


class PollOrchestrator:
    def __init__(
            self,
            store: JsonStore,
            fetch: Fetcher,
            notify: NotifySink,
            set_badge: BadgeSink,
            *,
            resolver: Optional[KeyOrderResolver] = None,
            clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.fetch = fetch
        self.notify = notify
        self.set_badge = set_badge
        self.resolver = resolver or KeyOrderResolver(store)
        self.clock = clock

    async def load_state(self) -> Optional[PersistedState]:
        return PersistedState.from_dict(await self.store.get(USAGE_DATA_KEY))

    async def poll(self) -> None:
        try:
            snapshot = await self.fetch()
        except UsageFetchError as e:
            await self._record_failure(e)
            return

        state = PersistedState(snapshot=snapshot, last_updated=self.clock(), error=None)
        await self.store.set(USAGE_DATA_KEY, state.to_dict())
        logger.info("Usage poll ok: %s", _summary(snapshot))

        order = await self.resolver.resolve(snapshot)
        await self._show(badge_projector.project(snapshot, order))
        await self._check_thresholds(snapshot)

    async def _record_failure(self, exc: UsageFetchError) -> None:
        prev = await self.load_state()
        state = prev or PersistedState()
        state.error = exc.code
        state.last_updated = self.clock()
        await self.store.set(USAGE_DATA_KEY, state.to_dict())

        logger.warning("Usage poll failed: %s", exc)

        if prev is None or prev.snapshot is None:
            await self._show(badge_projector.DEGRADED_BADGE)

    async def _check_thresholds(self, snapshot: MetricSnapshot) -> None:
        primary = await self.resolver.primary_key(snapshot)
        notified = await self.store.get(notifier.NOTIFIED_KEY)
        if not isinstance(notified, dict):
            notified = {}

        fired, updated = notifier.evaluate(snapshot, notified, primary)

        for n in fired:
            try:
                await self.notify(n.id, n.title, n.body)
                logger.info("Threshold alert %s", n.id)
            except Exception:
                # unsent alerts stay unmarked
                updated.pop(n.id, None)
                logger.exception("Failed to send alert %s", n.id)

        if updated != notified:
            await self.store.set(notifier.NOTIFIED_KEY, updated)

    async def reproject(self) -> None:
        """Redraw the badge from the stored snapshot without fetching."""
        state = await self.load_state()
        if state is None or state.snapshot is None:
            return

        order = await self.resolver.resolve(state.snapshot)
        await self._show(badge_projector.project(state.snapshot, order))

    async def _show(self, b: badge_projector.Badge) -> None:
        try:
            await self.set_badge(b.text, b.background_color, b.text_color)
        except Exception:
            logger.exception("Failed to update badge")


def _summary(snapshot: MetricSnapshot) -> str:
    parts = [f"{k}={e.percent}%" for k, e in snapshot.items() if e is not None]
    return ", ".join(parts) or "no data"


async def poll_loop(
        orchestrator: PollOrchestrator,
        state: RuntimeState,
        stop_event: asyncio.Event,
        interval_seconds: int,
) -> None:
    state.running = True
    try:
        while not stop_event.is_set():
            try:
                await orchestrator.poll()
                state.last_error = None
            except Exception as e:
                state.last_error = str(e)
                logger.exception("Poll crashed")
            finally:
                state.poll_count += 1
                state.last_poll_ms = now_ms()

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=interval_seconds)
            except asyncio.TimeoutError:
                pass
    finally:
        state.running = False
