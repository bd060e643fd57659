"""Debounced saves with cancellable timers."""

import asyncio
import logging
from collections.abc import Awaitable, Callable

logger = logging.getLogger(__name__)

SaveFactory = Callable[[], Awaitable[None]]


class DebouncedSaver:
    """Runs the latest scheduled save per key once ``delay`` has passed quietly.

    Scheduling again for the same key restarts the timer and replaces the
    save. Errors raised by a save go to ``on_error``.
    """

    def __init__(self, delay: float, on_error: Callable[[str, Exception], None] | None = None):
        self.delay = delay
        self.on_error = on_error
        self._timers: dict[str, asyncio.Task] = {}
        self._saves: dict[str, SaveFactory] = {}

    @property
    def pending(self) -> list[str]:
        return list(self._timers)

    def schedule(self, key: str, save: SaveFactory) -> None:
        self._cancel_timer(key)
        self._saves[key] = save
        self._timers[key] = asyncio.create_task(self._run_later(key))

    async def _run_later(self, key: str) -> None:
        await asyncio.sleep(self.delay)
        self._timers.pop(key, None)
        await self._run(key)

    async def _run(self, key: str) -> None:
        save = self._saves.pop(key, None)
        if save is None:
            return
        try:
            await save()
        except Exception as e:
            logger.error("Autosave for %s failed: %s", key, str(e))
            if self.on_error is None:
                raise
            self.on_error(key, e)

    async def flush(self, key: str | None = None) -> None:
        """Run pending saves now instead of waiting for their timers."""
        keys = [key] if key is not None else list(self._saves)
        for k in keys:
            self._cancel_timer(k)
            await self._run(k)

    def _cancel_timer(self, key: str) -> None:
        timer = self._timers.pop(key, None)
        if timer is not None and not timer.done():
            timer.cancel()

    def cancel(self, key: str) -> None:
        self._cancel_timer(key)
        self._saves.pop(key, None)

    def cancel_all(self) -> None:
        for key in list(self._timers):
            self._cancel_timer(key)
        self._saves.clear()
