"""Orchestrator - drives the select → combine → upload → run → poll pipeline."""
import asyncio
import logging
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from .errors import RunFailedError, UploadFailedError
from .models import GenerationResult, PipelineConfig, Settings, ThreadRun, UploadReport
from .protocols import IAssistantClient
from .services.combiner import build_batch_documents
from .services.poller import RunPoller
from .services.selector import FileSelector
from .services.uploader import BatchUploader
from .utils.events import EventEmitter, EventName, PhaseProgress, PipelineEvent

logger = logging.getLogger(__name__)

README_QUERY = """Please generate a README for the attached source code. All of the files for a
given file extension have been combined into a single file called combined_source_files.[ext]
where ext is the file extension. The combined file is organized into a set of file blocks,
where each block starts with

### FILE START [filepath]

and ends with

### FILE END [filepath]

where [filepath] gives the path of the original source code file. Treat the code within
each file block as a separate file for the purposes of the README.

Please do not include any references to the combined_source_files.[ext] file containing the
combined source code. Only reference the original source code files using the file names provided.
Ensure that context is provided that explains the purpose of the code and how it can be used
where possible."""


class ReadmeOrchestrator:
    """
    Generates a README for a source tree using injected services.

    Phases run strictly in order: nothing is uploaded before every batch is
    rendered, and no run is submitted before every upload has an outcome.
    Any upload failure aborts generation (no README from partial sources).

    Usage:
        async with AssistantAPIClient(settings.access_token) as client:
            orchestrator = ReadmeOrchestrator(client, settings)
            orchestrator.on("phase_start", lambda p: print(p.message))
            result = await orchestrator.generate(Path("my-project"))
    """

    def __init__(
        self,
        client: IAssistantClient,
        settings: Settings,
        config: Optional[PipelineConfig] = None,
        selector: Optional[FileSelector] = None,
    ):
        self._client = client
        self._settings = settings
        self._config = config or PipelineConfig()
        self._selector = selector or FileSelector()
        self._events = EventEmitter()
        self._uploader = BatchUploader(
            client,
            max_concurrency=self._config.max_concurrent_uploads,
            events=self._events,
        )
        self._poller = RunPoller(client, interval=self._config.poll_interval, events=self._events)

    def on(self, event: EventName, callback: Callable):
        """
        Subscribe to a ``PipelineEvent`` (member or its string value).

        Events:
            phase_start(PhaseProgress), upload_complete(name, file_id),
            upload_fail(UploadFailure), delete_complete(file_id, file_id),
            delete_fail(UploadFailure), poll(ThreadRun, attempt)

        Raises:
            ValueError: ``event`` is not a known pipeline event
        """
        self._events.on(event, callback)

    async def _phase(self, phase: str, message: str, total: int = 0):
        logger.debug(message)
        await self._events.emit(PipelineEvent.PHASE_START, PhaseProgress(phase, message, 0, total))

    async def generate(
        self,
        target: Union[str, Path],
        cancel: Optional[asyncio.Event] = None,
    ) -> GenerationResult:
        """
        Generate ``<target>/<output_filename>``.

        Raises:
            WalkError: the target tree cannot be enumerated
            RenderError: a batch document failed to render
            UploadFailedError: one or more batch documents failed to upload
            RunFailedError: the run ended cancelled/failed/expired
            ServiceError / TransportError: a remote call failed
        """
        target = Path(target)

        await self._phase("selecting", f"Collecting source files in {target}")
        files = self._selector.select(target)
        logger.debug(f"found {len(files)} files to upload")
        if not files:
            logger.warning(f"no source files found in {target}")

        await self._phase("combining", f"Combining {len(files)} files")
        documents = build_batch_documents(files)
        to_upload: Dict[str, bytes] = {doc.filename: doc.content for doc in documents}

        await self._phase("uploading", f"Uploading {len(to_upload)} files", len(to_upload))
        report = await self._uploader.upload_all(to_upload, cancel)
        if not report.success:
            await self._abort_upload(report)

        try:
            run = await self._run(report, cancel)
            content = await self._fetch_readme(run)
        finally:
            if self._config.cleanup_uploads:
                await self._cleanup(report)

        output = target / self._config.output_filename
        await self._phase("writing", f"Writing README content to {output}")
        output.write_text(content, encoding="utf-8")
        logger.info(f"README written to {output}")

        return GenerationResult(
            output_path=output,
            run=run,
            file_ids=tuple(report.file_ids),
            batch_count=len(documents),
            file_count=len(files),
        )

    async def _abort_upload(self, report: UploadReport):
        for failure in report.failures:
            logger.debug(f"error uploading file {failure.name}: {failure.message}")
        logger.debug(f"found {len(report.failures)} errors during file upload")

        if report.uploaded:
            # no README is produced, so uploaded batches are orphans
            await self._cleanup(report)
        raise UploadFailedError(report.failures)

    async def _cleanup(self, report: UploadReport):
        if not report.uploaded:
            return
        failures = await self._uploader.delete_all(report.file_ids)
        for failure in failures:
            logger.warning(f"could not delete uploaded file {failure.name}: {failure.message}")

    async def _run(self, report: UploadReport, cancel: Optional[asyncio.Event]) -> ThreadRun:
        await self._phase("running", "Generating README using assistant")
        run = await self._client.create_thread_and_run(
            self._settings.assistant_id,
            self._settings.vector_store_id,
            README_QUERY,
            report.file_ids,
        )
        logger.debug(f"created thread {run.thread_id} with run {run.id}")

        final = await self._poller.wait(run, cancel=cancel, timeout=self._config.poll_timeout)
        if not final.succeeded:
            logger.debug(f"run status is {final.status}")
            raise RunFailedError(final)
        return final

    async def _fetch_readme(self, run: ThreadRun) -> str:
        await self._phase("downloading", "Downloading README content from assistant")
        messages = await self._client.get_thread_messages(run.thread_id)
        if not messages or messages[0].first_text is None:
            raise RunFailedError(run, "run produced no text response")
        return messages[0].first_text
