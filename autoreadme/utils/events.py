"""Pipeline events and the emitter the CLI display subscribes to."""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Union

logger = logging.getLogger(__name__)


class PipelineEvent(str, Enum):
    """Names of the events a README generation emits, with their payloads."""
    PHASE_START = "phase_start"          # (PhaseProgress)
    UPLOAD_COMPLETE = "upload_complete"  # (name, file_id)
    UPLOAD_FAIL = "upload_fail"          # (UploadFailure)
    DELETE_COMPLETE = "delete_complete"  # (file_id, file_id)
    DELETE_FAIL = "delete_fail"          # (UploadFailure)
    POLL = "poll"                        # (ThreadRun, attempt)


EventName = Union[PipelineEvent, str]


@dataclass
class PhaseProgress:
    """Progress of one pipeline phase."""
    phase: str
    message: str = ""
    current: int = 0
    total: int = 0


class EventEmitter:
    """
    Dispatches pipeline events to sync or async listeners.

    Event names are checked against ``PipelineEvent``, so a misspelled
    subscription fails at ``on()`` instead of silently never firing.
    Listener errors are logged and never reach the pipeline.
    """

    def __init__(self):
        self._listeners: Dict[PipelineEvent, List[Callable]] = {}
        self._lock = asyncio.Lock()

    @staticmethod
    def _resolve(event: EventName) -> PipelineEvent:
        try:
            return PipelineEvent(event)
        except ValueError:
            raise ValueError(f"unknown pipeline event: {event!r}") from None

    def on(self, event: EventName, callback: Callable):
        listeners = self._listeners.setdefault(self._resolve(event), [])
        if callback not in listeners:
            listeners.append(callback)

    def off(self, event: EventName, callback: Callable):
        listeners = self._listeners.get(self._resolve(event), [])
        if callback in listeners:
            listeners.remove(callback)

    async def emit(self, event: EventName, *args, **kwargs):
        event = self._resolve(event)
        if not self._listeners.get(event):
            return

        async with self._lock:
            for callback in self._listeners[event][:]:
                try:
                    if asyncio.iscoroutinefunction(callback):
                        await callback(*args, **kwargs)
                    else:
                        callback(*args, **kwargs)
                except Exception as e:
                    logger.error(f"Error in {event.value} listener: {e}")
