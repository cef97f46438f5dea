"""In-process completion poller for async renders."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

from job_reels.config import settings
from job_reels.logging import get_logger

logger = get_logger(__name__)

PollCallback = Callable[[str, str], Awaitable[Any]]


class AsyncCompletionPoller:
    """Schedules one delayed completion check per item.

    Entries are timer handles on the running event loop, keyed by item id.
    A fired entry removes itself before running the callback, so the
    callback may schedule the next check. Callback errors are logged and
    the check is re-armed; whether a successful check re-arms is up to the
    callback.
    """

    def __init__(self, callback: PollCallback, interval: float | None = None) -> None:
        """Initialize the poller.

        Args:
            callback: Coroutine function called with (owner_user_id, item_id)
            interval: Default delay in seconds between checks
        """
        self._callback = callback
        self.interval = interval if interval is not None else settings.video_poll_interval_seconds
        self._handles: dict[str, asyncio.TimerHandle] = {}
        self._running: set[asyncio.Task[Any]] = set()

    def schedule(self, owner_user_id: str, item_id: str, delay: float | None = None) -> bool:
        """Arm a check for ``item_id`` unless one is already pending.

        Returns:
            True if a new check was scheduled
        """
        if item_id in self._handles:
            return False
        loop = asyncio.get_running_loop()
        wait = self.interval if delay is None else delay
        self._handles[item_id] = loop.call_later(wait, self._fire, owner_user_id, item_id)
        logger.debug("poll_scheduled", item_id=item_id, delay_seconds=wait)
        return True

    def _fire(self, owner_user_id: str, item_id: str) -> None:
        self._handles.pop(item_id, None)
        task = asyncio.ensure_future(self._run(owner_user_id, item_id))
        self._running.add(task)
        task.add_done_callback(self._running.discard)

    async def _run(self, owner_user_id: str, item_id: str) -> None:
        try:
            await self._callback(owner_user_id, item_id)
        except Exception as e:
            logger.warning("poll_failed", item_id=item_id, error=str(e))
            self.schedule(owner_user_id, item_id)

    def cancel(self, item_id: str) -> bool:
        handle = self._handles.pop(item_id, None)
        if handle is None:
            return False
        handle.cancel()
        logger.debug("poll_cancelled", item_id=item_id)
        return True

    def cancel_all(self) -> None:
        for handle in self._handles.values():
            handle.cancel()
        self._handles.clear()

    def is_scheduled(self, item_id: str) -> bool:
        return item_id in self._handles

    @property
    def pending_ids(self) -> list[str]:
        return list(self._handles)
