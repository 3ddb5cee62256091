from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from concurrent.futures import ThreadPoolExecutor
from datetime import date
from typing import Any

from solo_system.core.config import Settings
from solo_system.schemas.progress import ProgressEntry
from solo_system.schemas.state import ProgressState, Task
from solo_system.services.progress_log import chart_window
from solo_system.services.progression import ProgressionEngine, fresh_state
from solo_system.services.state_gateway import GatewayError, HttpStateGateway, StateGateway

logger = logging.getLogger(__name__)


class MissingUserIdError(ValueError):
    """Raised when an operation needs a user code and none is set."""


class QuestSession:
    """Client session: one user code, its progress state and the sync timers.

    Writes to the gateway are fire-and-forget on a single worker thread, so
    saves leave in the order they were made and failures are only logged.
    Loads happen on the event loop's default executor and never overwrite
    local state when they fail.
    """

    def __init__(
        self,
        gateway: StateGateway,
        *,
        refresh_interval_seconds: float = 3.0,
        reset_check_interval_seconds: float = 60.0,
        on_notify: Callable[[str], None] | None = None,
        randint: Callable[[int, int], int] = random.randint,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._gateway = gateway
        self._refresh_interval_seconds = refresh_interval_seconds
        self._reset_check_interval_seconds = reset_check_interval_seconds
        self._on_notify = on_notify
        self._randint = randint
        self._today = today

        self.user_id: str | None = None
        self.engine: ProgressionEngine | None = None
        self.history: list[ProgressEntry] = []

        self._timers: list[asyncio.Task[None]] = []
        self._writer = ThreadPoolExecutor(max_workers=1, thread_name_prefix="solo-persist")

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        gateway: StateGateway | None = None,
        **kwargs: Any,
    ) -> QuestSession:
        return cls(
            gateway or HttpStateGateway.from_settings(settings),
            refresh_interval_seconds=settings.refresh_interval_seconds,
            reset_check_interval_seconds=settings.reset_check_interval_seconds,
            **kwargs,
        )

    @property
    def state(self) -> ProgressState | None:
        return self.engine.state if self.engine is not None else None

    # ── login / logout ───────────────────────────────────────────────────

    def login(self, code: str) -> str:
        user_id = code.strip()
        if not user_id:
            raise MissingUserIdError("User ID required")
        self.user_id = user_id
        return user_id

    def logout(self) -> None:
        """Stop the timers and drop local state without waiting on in-flight writes."""
        self._cancel_timers()
        self.user_id = None
        self.engine = None
        self.history = []

    def _cancel_timers(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers = []

    def close(self) -> None:
        self.logout()
        self._writer.shutdown(wait=False)

    def _require_user(self) -> str:
        if not self.user_id:
            raise MissingUserIdError("User ID required")
        return self.user_id

    def _require_engine(self) -> ProgressionEngine:
        self._require_user()
        if self.engine is None:
            raise RuntimeError("Progress state has not been loaded")
        return self.engine

    # ── fire-and-forget writes ───────────────────────────────────────────

    def _dispatch(
        self,
        label: str,
        fn: Callable[[str, Any], None],
        user_id: str,
        payload: Any,
    ) -> None:
        def _run() -> None:
            try:
                fn(user_id, payload)
            except GatewayError:
                logger.warning("%s failed for %s", label, user_id, exc_info=True)
            except Exception:
                logger.exception("%s failed unexpectedly for %s", label, user_id)

        self._writer.submit(_run)

    def _persist(self, state: ProgressState) -> None:
        user_id = self._require_user()
        self._dispatch("Save", self._gateway.save, user_id, state.model_copy(deep=True))

    def _record_history(self, entry: ProgressEntry) -> None:
        user_id = self._require_user()
        self._dispatch("Progress append", self._gateway.append_history, user_id, entry)

    def _notify(self, text: str) -> None:
        logger.info("Notice for %s: %s", self.user_id, text)
        if self._on_notify is not None:
            self._on_notify(text)

    def drain(self, timeout: float | None = None) -> None:
        """Block until queued writes finish. Logout never calls this."""
        # One worker, FIFO: the marker completes after everything queued before it.
        self._writer.submit(lambda: None).result(timeout=timeout)

    def _attach(self, state: ProgressState) -> None:
        if self.engine is None:
            self.engine = ProgressionEngine(
                state,
                persist=self._persist,
                record_history=self._record_history,
                notify=self._notify,
                randint=self._randint,
                today=self._today,
            )
        else:
            self.engine.state = state

    # ── loads ────────────────────────────────────────────────────────────

    async def refresh(self) -> ProgressState | None:
        """Pull the stored state and overwrite the local copy.

        A missing record starts a fresh state and saves it. A failed load
        keeps whatever is already in memory.
        """
        user_id = self._require_user()
        try:
            loaded = await asyncio.to_thread(self._gateway.load, user_id)
        except GatewayError:
            logger.warning("Load failed for %s, keeping local state", user_id, exc_info=True)
            return self.state

        if self.user_id != user_id:
            return None

        if loaded is None:
            loaded = fresh_state(self._today())
            self._attach(loaded)
            self._persist(loaded)
        else:
            self._attach(loaded)
        return loaded

    async def load_history(self) -> list[ProgressEntry]:
        user_id = self._require_user()
        try:
            self.history = await asyncio.to_thread(self._gateway.load_history, user_id)
        except GatewayError:
            logger.warning("Progress load failed for %s", user_id, exc_info=True)
        return self.history

    async def chart_data(self, view: str = "daily") -> list[ProgressEntry]:
        return chart_window(await self.load_history(), view)

    # ── timers ───────────────────────────────────────────────────────────

    async def start(self) -> None:
        self._require_user()
        self._cancel_timers()
        await self.refresh()
        self._timers = [
            asyncio.create_task(self._every(self._refresh_interval_seconds, self.refresh)),
            asyncio.create_task(
                self._every(self._reset_check_interval_seconds, self._daily_reset_tick)
            ),
        ]

    @staticmethod
    async def _every(interval: float, action: Callable[[], Awaitable[Any]]) -> None:
        while True:
            await asyncio.sleep(interval)
            try:
                await action()
            except Exception:
                logger.exception("Timer tick failed, keeping local state")

    async def _daily_reset_tick(self) -> None:
        if self.engine is not None:
            self.engine.check_daily_reset()

    # ── quest actions ────────────────────────────────────────────────────

    def complete_daily_quest(self, index: int) -> int:
        return self._require_engine().complete_daily_quest(index)

    def complete_custom_task(self, index: int) -> int:
        return self._require_engine().complete_custom_task(index)

    def add_custom_task(self, name: str) -> Task | None:
        return self._require_engine().add_custom_task(name)

    def award_xp(self, amount: int) -> int:
        return self._require_engine().award_xp(amount)

    def discipline_check(self, kind: str) -> int:
        return self._require_engine().discipline_check(kind)

    def check_daily_reset(self) -> ProgressEntry | None:
        return self._require_engine().check_daily_reset()
