"""
Recognition Supervisor

Supervised restart loop around a RecognitionAdapter. Transient errors
restart the source after a short backoff while the session is open;
terminal errors surface once; cancellation stops everything immediately.
"""

import asyncio
from typing import AsyncIterator, Awaitable, Callable, Optional

from core.errors import PresenterError, TransientRecognitionError
from modules.recognition.base import RecognitionAdapter, UtteranceEvent
from utils.logger import get_logger

logger = get_logger('recognition.supervisor')


class RecognitionSupervisor:
    """
    Owns the adapter lifecycle for one session.

    Args:
        adapter: Recognition source
        is_open: True while the session is Active or Paused
        is_paused: True while the session is Paused (restarts wait for resume)
        restart_backoff: Seconds to wait before restarting after a transient error
        max_restarts: Give up after this many restarts (0 = unlimited)
        on_error: Optional async callback for user-visible notifications
    """

    def __init__(
        self,
        adapter: RecognitionAdapter,
        is_open: Callable[[], bool],
        is_paused: Callable[[], bool] = lambda: False,
        restart_backoff: float = 1.0,
        max_restarts: int = 0,
        on_error: Optional[Callable[[PresenterError], Awaitable[None]]] = None
    ):
        self.adapter = adapter
        self.is_open = is_open
        self.is_paused = is_paused
        self.restart_backoff = restart_backoff
        self.max_restarts = max_restarts
        self.on_error = on_error

        self.restarts = 0
        self._cancelled = False
        self._last_final_ts: Optional[float] = None

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self):
        """Stop the source and suppress any further restarts"""
        self._cancelled = True
        self.adapter.stop()
        logger.info("Recognition supervisor cancelled")

    async def events(self) -> AsyncIterator[UtteranceEvent]:
        """
        Ordered event stream.

        Raises:
            RecognitionUnavailable / PermissionDenied: once, on terminal failure
            TransientRecognitionError: only when max_restarts is exhausted
        """
        self.adapter.start()

        try:
            while not self._cancelled:
                try:
                    async for event in self.adapter.stream():
                        if self._cancelled:
                            return
                        yield self._ordered(event)
                    # Source stopped on its own
                    return

                except TransientRecognitionError as e:
                    if not await self._should_restart(e):
                        return
                    self.adapter.restart()
                    logger.info(f"Recognition restarted ({self.restarts} restarts so far)")
        finally:
            self.adapter.stop()

    async def _should_restart(self, error: TransientRecognitionError) -> bool:
        """Apply the restart policy; waits out the backoff and any pause"""
        if self._cancelled or not self.is_open():
            logger.debug(f"Transient error after session closed, not restarting: {error.message}")
            return False

        if self.max_restarts and self.restarts >= self.max_restarts:
            logger.error(f"Giving up after {self.restarts} restarts: {error.message}")
            raise error

        self.restarts += 1
        logger.warning(f"Transient recognition error ({error.reason}), restarting in {self.restart_backoff}s")

        if self.on_error is not None:
            await self.on_error(error)

        await asyncio.sleep(self.restart_backoff)

        # Restart loop is held while the session is paused
        while not self._cancelled and self.is_open() and self.is_paused():
            await asyncio.sleep(self.restart_backoff)

        return not self._cancelled and self.is_open()

    def _ordered(self, event: UtteranceEvent) -> UtteranceEvent:
        """Keep final timestamps non-decreasing"""
        if not event.is_final:
            return event

        if self._last_final_ts is not None and event.timestamp < self._last_final_ts:
            logger.debug(f"Clamping out-of-order final ({event.timestamp} < {self._last_final_ts})")
            event = UtteranceEvent(
                text=event.text,
                is_final=True,
                confidence=event.confidence,
                timestamp=self._last_final_ts
            )

        self._last_final_ts = event.timestamp
        return event
