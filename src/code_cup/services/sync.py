"""Periodic and lifecycle-driven saving of the app state."""

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field

from code_cup.services.app_state import AppStateStore

_logger = logging.getLogger(__name__)

ACTIVE = "active"
INACTIVE = "inactive"
BACKGROUND = "background"
APP_STATES = {ACTIVE, INACTIVE, BACKGROUND}


@dataclass
class BackgroundSync:
    """Auto-saves while the app is active and once when it is backgrounded."""

    store: AppStateStore
    interval_seconds: float = 30.0
    app_state: str = ACTIVE
    _timer: asyncio.Task[None] | None = field(default=None, init=False)

    @property
    def is_running(self) -> bool:
        """Return True while the auto-save timer is scheduled."""
        return self._timer is not None and not self._timer.done()

    def start(self) -> None:
        """Start (or restart) the auto-save timer."""
        self.stop()
        self._timer = asyncio.get_running_loop().create_task(self._run())

    def stop(self) -> None:
        """Cancel the auto-save timer if it is running."""
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def close(self) -> None:
        """Stop the timer and wait for it to finish cancelling."""
        timer = self._timer
        self.stop()
        if timer is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await timer

    async def handle_app_state_change(self, next_state: str) -> None:
        """React to the app moving between foreground and background."""
        if next_state not in APP_STATES:
            raise ValueError(f"Unknown app state: {next_state}")
        previous, self.app_state = self.app_state, next_state
        if previous != ACTIVE and next_state == ACTIVE:
            _logger.info("App came to foreground, starting auto-save")
            self.start()
        elif previous == ACTIVE and next_state != ACTIVE:
            _logger.info("App went to %s, saving data", next_state)
            self.stop()
            await self.force_save()

    async def force_save(self) -> bool:
        """Save the whole state now; never raises."""
        try:
            saved = await self.store.save_app_state()
        except Exception:
            _logger.exception("Forced save failed")
            return False
        if not saved:
            _logger.warning("Forced save completed with failures")
        return saved

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.store.save_app_state()
            except Exception:
                _logger.exception("Auto-save failed")
