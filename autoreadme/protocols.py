"""
Protocols (Interfaces) for Dependency Inversion.

The pipeline services depend on these small interfaces, not on the HTTP
adapter, so tests can substitute fakes.
"""
from typing import Any, Dict, List, Protocol, Sequence, runtime_checkable

from .models import ThreadMessage, ThreadRun


@runtime_checkable
class IFileStore(Protocol):
    """Interface for uploading and deleting artifacts on the remote service."""

    async def upload_file(self, filename: str, content: bytes) -> str:
        """Upload a named byte stream and return the artifact identifier."""
        ...

    async def delete_file(self, file_id: str) -> None:
        """Delete an artifact by identifier."""
        ...


@runtime_checkable
class IRunTracker(Protocol):
    """Interface for fetching the status of a submitted run."""

    async def get_run(self, thread_id: str, run_id: str) -> ThreadRun:
        ...


@runtime_checkable
class IAssistantClient(IFileStore, IRunTracker, Protocol):
    """Full set of remote operations used by the orchestrator."""

    async def create_thread_and_run(
        self,
        assistant_id: str,
        vector_store_id: str,
        content: str,
        file_ids: Sequence[str],
    ) -> ThreadRun:
        ...

    async def get_thread_messages(self, thread_id: str) -> List[ThreadMessage]:
        ...

    async def get_model(self, model: str) -> Dict[str, Any]:
        ...
