# -*- coding: utf-8 -*-
"""
Author: rahn
Datum: 19.10.2026
Version: 1.0
Beschreibung: Abbrechbare Polling-Schleife fuer asynchrone Provider-Jobs.
              Fester Takt, Endzustands-Praedikat, explizites start/stop.
              sleep ist injizierbar, damit Tests mit einer Fake-Uhr laufen.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

from exceptions import ProviderError

logger = logging.getLogger(__name__)


class PollingLoop:
    """
    Ruft poll() im festen Abstand auf, bis is_terminal(status) wahr ist,
    stop() aufgerufen wird oder zu viele Provider-Fehler in Folge auftreten.
    """

    def __init__(
        self,
        poll: Callable[[], Awaitable[Any]],
        interval: float,
        is_terminal: Callable[[Any], bool],
        on_update: Optional[Callable[[Any], Any]] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        max_consecutive_errors: int = 3,
    ):
        self._poll = poll
        self.interval = interval
        self._is_terminal = is_terminal
        self._on_update = on_update
        self._sleep = sleep
        self.max_consecutive_errors = max_consecutive_errors

        self.last_status: Any = None
        self.last_error: Optional[ProviderError] = None
        self.poll_count = 0
        self._stopped = False
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> "PollingLoop":
        """Startet die Schleife als Task; ein zweiter Aufruf ist wirkungslos."""
        if self._task is None:
            self._task = asyncio.ensure_future(self._run())
        return self

    def stop(self) -> None:
        """Bricht die Schleife sofort ab, auch mitten in einem laufenden Poll; danach keine weiteren Aufrufe."""
        self._stopped = True
        if self._task is not None and not self._task.done():
            self._task.cancel()

    async def wait(self) -> Any:
        """Wartet auf das Ende der Schleife und liefert den letzten Status."""
        if self._task is None:
            return self.last_status
        try:
            await self._task
        except asyncio.CancelledError:
            if not self._stopped:
                raise
        return self.last_status

    async def _run(self) -> None:
        consecutive_errors = 0
        while not self._stopped:
            self.poll_count += 1
            try:
                status = await self._poll()
            except ProviderError as e:
                consecutive_errors += 1
                self.last_error = e
                logger.warning("Poll fehlgeschlagen (%s/%s): %s",
                               consecutive_errors, self.max_consecutive_errors, e)
                if consecutive_errors >= self.max_consecutive_errors:
                    return
            else:
                consecutive_errors = 0
                self.last_status = status
                if self._on_update is not None:
                    update = self._on_update(status)
                    if asyncio.iscoroutine(update):
                        await update
                if self._is_terminal(status):
                    return

            if self._stopped:
                return
            await self._sleep(self.interval)
