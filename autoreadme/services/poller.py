"""
Run Poller - waits for a remote run to reach a terminal status.

Fixed-delay polling with no retry: any error while fetching the status ends
the wait immediately. The sleep between polls is interruptible by a cancel
event and by ordinary task cancellation.
"""
import asyncio
import logging
import time
from typing import Optional

from ..errors import PollCancelledError, RunTimeoutError
from ..models import ThreadRun
from ..protocols import IRunTracker
from ..utils.events import EventEmitter, PipelineEvent

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 3.0


class RunPoller:
    """
    Polls a run until it is completed, cancelled, failed or expired.

    Usage:
        poller = RunPoller(client, interval=3.0)
        final = await poller.wait(run)
        if not final.succeeded:
            ...
    """

    def __init__(
        self,
        client: IRunTracker,
        interval: float = DEFAULT_POLL_INTERVAL,
        events: Optional[EventEmitter] = None,
    ):
        if interval < 0:
            raise ValueError("interval must not be negative")
        self._client = client
        self._interval = interval
        self._events = events

    @property
    def interval(self) -> float:
        return self._interval

    async def wait(
        self,
        run: ThreadRun,
        cancel: Optional[asyncio.Event] = None,
        timeout: Optional[float] = None,
    ) -> ThreadRun:
        """
        Poll ``run`` until it reaches a terminal status.

        Args:
            run: Handle returned when the run was submitted
            cancel: Optional event that aborts the wait when set
            timeout: Optional overall deadline in seconds (None waits forever)

        Returns:
            The first terminal snapshot. A failed or cancelled run is returned,
            not raised; callers check ``succeeded``.

        Raises:
            ServiceError / TransportError: a status fetch failed
            PollCancelledError: ``cancel`` was set
            RunTimeoutError: ``timeout`` elapsed
        """
        deadline = time.monotonic() + timeout if timeout is not None else None
        attempt = 0

        while True:
            if cancel is not None and cancel.is_set():
                raise PollCancelledError(f"polling of run {run.id} cancelled")

            attempt += 1
            snapshot = await self._client.get_run(run.thread_id, run.id)
            logger.debug(f"run {run.id} poll #{attempt}: status={snapshot.status}")
            if self._events:
                await self._events.emit(PipelineEvent.POLL, snapshot, attempt)

            if snapshot.is_terminal:
                logger.info(f"run {run.id} finished with status {snapshot.status} after {attempt} polls")
                return snapshot

            delay = self._interval
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise RunTimeoutError(run.id, timeout)
                delay = min(delay, remaining)

            await self._sleep(delay, cancel, run)

    async def _sleep(self, delay: float, cancel: Optional[asyncio.Event], run: ThreadRun) -> None:
        if cancel is None:
            await asyncio.sleep(delay)
            return
        try:
            await asyncio.wait_for(cancel.wait(), timeout=delay)
        except asyncio.TimeoutError:
            return
        raise PollCancelledError(f"polling of run {run.id} cancelled")
