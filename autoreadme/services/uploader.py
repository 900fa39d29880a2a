"""
Concurrent Uploader - uploads a cohort of named byte streams.

- At most ``max_concurrency`` operations are in flight at once
- One failure never cancels, delays or aborts another upload
- The call returns only after every item has an outcome
"""
import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from ..errors import AdmissionError
from ..models import UploadFailure, UploadReport
from ..protocols import IFileStore
from ..utils.events import EventEmitter, PipelineEvent

logger = logging.getLogger(__name__)

DEFAULT_MAX_CONCURRENCY = 5

Job = Callable[[], Awaitable[Any]]


async def acquire_slot(
    semaphore: asyncio.Semaphore,
    cancel: Optional[asyncio.Event] = None,
) -> bool:
    """
    Wait for a slot on ``semaphore``, giving up if ``cancel`` is set first.

    Returns True when a slot is held (caller must release it), False when
    the wait was abandoned. No slot is held in that case.
    """
    if cancel is None:
        await semaphore.acquire()
        return True
    if cancel.is_set():
        return False

    acquire = asyncio.ensure_future(semaphore.acquire())
    cancelled = asyncio.ensure_future(cancel.wait())
    try:
        done, _ = await asyncio.wait(
            {acquire, cancelled}, return_when=asyncio.FIRST_COMPLETED
        )
    except asyncio.CancelledError:
        await _abandon(semaphore, acquire, cancelled)
        raise

    if acquire in done:
        cancelled.cancel()
        await asyncio.gather(cancelled, return_exceptions=True)
        return True

    await _abandon(semaphore, acquire, cancelled)
    return False


async def _abandon(semaphore: asyncio.Semaphore, *waiters: "asyncio.Future[Any]") -> None:
    for waiter in waiters:
        waiter.cancel()
    results = await asyncio.gather(*waiters, return_exceptions=True)
    # acquire finished before the cancel landed: give the slot back
    if results[0] is True:
        semaphore.release()


class BatchUploader:
    """
    Uploads (and deletes) artifacts under a fixed concurrency ceiling.

    Usage:
        uploader = BatchUploader(client, max_concurrency=5)
        report = await uploader.upload_all({"combined_source_files.py": b"..."})
        if not report.success:
            ...
    """

    def __init__(
        self,
        client: IFileStore,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
        events: Optional[EventEmitter] = None,
    ):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self._client = client
        self._max_concurrency = max_concurrency
        self._events = events

    @property
    def max_concurrency(self) -> int:
        return self._max_concurrency

    async def upload_all(
        self,
        documents: Mapping[str, bytes],
        cancel: Optional[asyncio.Event] = None,
    ) -> UploadReport:
        """
        Upload every document concurrently.

        Args:
            documents: Mapping of upload name to content
            cancel: Optional event; once set, items still waiting for a slot
                are recorded as AdmissionError without being sent

        Returns:
            UploadReport with one outcome per document
        """
        total = len(documents)
        logger.info(f"Starting upload: {total} files (max {self._max_concurrency} parallel)")

        def _job(index: int, name: str, content: bytes) -> Job:
            async def run() -> str:
                size_kb = len(content) / 1024
                logger.debug(f"[{index}/{total}] Uploading: {name} ({size_kb:.1f} KB)")
                return await self._client.upload_file(name, content)
            return run

        jobs = [
            (name, _job(index, name, content))
            for index, (name, content) in enumerate(documents.items(), 1)
        ]
        succeeded, failures = await self._run_cohort(
            jobs, cancel, PipelineEvent.UPLOAD_COMPLETE, PipelineEvent.UPLOAD_FAIL
        )

        report = UploadReport(uploaded=succeeded, failures=failures)
        logger.info(
            f"File uploads complete: {len(report.uploaded)} successful, {len(report.failures)} failed"
        )
        return report

    async def delete_all(
        self,
        file_ids: Iterable[str],
        cancel: Optional[asyncio.Event] = None,
    ) -> List[UploadFailure]:
        """Delete artifacts by identifier; returns the failures."""
        def _job(file_id: str) -> Job:
            async def run() -> str:
                await self._client.delete_file(file_id)
                return file_id
            return run

        jobs = [(file_id, _job(file_id)) for file_id in dict.fromkeys(file_ids)]
        deleted, failures = await self._run_cohort(
            jobs, cancel, PipelineEvent.DELETE_COMPLETE, PipelineEvent.DELETE_FAIL
        )
        logger.info(f"Deleted {len(deleted)} files, {len(failures)} failed")
        return failures

    async def _run_cohort(
        self,
        jobs: List[Tuple[str, Job]],
        cancel: Optional[asyncio.Event],
        complete_event: PipelineEvent,
        fail_event: PipelineEvent,
    ) -> Tuple[Dict[str, Any], List[UploadFailure]]:
        """Fan out ``jobs`` under the semaphore and join them all."""
        semaphore = asyncio.Semaphore(self._max_concurrency)
        results_lock = asyncio.Lock()
        succeeded: Dict[str, Any] = {}
        failures: List[UploadFailure] = []

        async def _fail(name: str, error: Exception) -> None:
            failure = UploadFailure(name, error)
            async with results_lock:
                failures.append(failure)
            if self._events:
                await self._events.emit(fail_event, failure)

        async def _run_one(name: str, job: Job) -> None:
            if not await acquire_slot(semaphore, cancel):
                logger.debug(f"Admission cancelled for {name}")
                await _fail(name, AdmissionError(name))
                return

            try:
                value = await job()
            except Exception as e:
                logger.error(f"Error processing {name}: {e}")
                await _fail(name, e)
                return
            finally:
                semaphore.release()

            async with results_lock:
                succeeded[name] = value
            logger.debug(f"Done: {name} -> {value}")
            if self._events:
                await self._events.emit(complete_event, name, value)

        tasks = [asyncio.create_task(_run_one(name, job)) for name, job in jobs]
        try:
            await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

        return succeeded, failures
