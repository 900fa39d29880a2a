"""HTTP adapter for the assistants API."""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from ..errors import ErrorKind, ServiceError, TransportError
from ..models import FileAttachment, ThreadMessage, ThreadRun

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://api.openai.com/v1"
ASSISTANTS_BETA_HEADERS = {"OpenAI-Beta": "assistants=v2"}


class AssistantAPIClient:
    """
    HTTP client adapter for the assistants, files, vector store and thread APIs.

    Implements IAssistantClient protocol. Non-success responses raise
    ServiceError, connection-level failures raise TransportError. Nothing
    is retried.

    Usage:
        async with AssistantAPIClient(token) as client:
            file_id = await client.upload_file("combined_source_files.py", data)
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = DEFAULT_API_URL,
        timeout: int = 60,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self):
        self._client = httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            headers={"Authorization": f"Bearer {self._access_token}"},
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args):
        if self._client:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        endpoint: str,
        beta: bool = False,
        require: Optional[str] = None,
        **kwargs: Any,
    ) -> Dict[str, Any]:
        """
        Send one request and return the decoded JSON object.

        ``require`` names a key the payload must contain. Any response that
        is not a JSON object (or lacks that key) raises ServiceError.
        """
        if not self._client:
            raise RuntimeError("AssistantAPIClient not initialized. Use 'async with' context.")

        headers = dict(ASSISTANTS_BETA_HEADERS) if beta else None
        try:
            response = await self._client.request(method, endpoint, headers=headers, **kwargs)
        except httpx.RequestError as exc:
            raise TransportError(method, f"{self._base_url}{endpoint}", exc) from exc

        logger.debug(f"received http(s) response: {method} {endpoint} - {response.status_code}")

        if not response.is_success:
            error = ServiceError.from_status(response.status_code, self._error_body(response))
            logger.debug(f"error response: {error.body}")
            raise error

        if not response.content:
            payload: Any = {}
        else:
            try:
                payload = response.json()
            except ValueError as exc:
                logger.debug(f"undecodable response body: {exc}")
                raise ServiceError(response.status_code, {"raw": response.text}, ErrorKind.API) from exc

        if not isinstance(payload, dict):
            raise ServiceError(response.status_code, {"raw": payload}, ErrorKind.API)
        if require and require not in payload:
            logger.debug(f"response to {method} {endpoint} has no {require!r}: {payload}")
            raise ServiceError(response.status_code, payload, ErrorKind.API)
        return payload

    @staticmethod
    def _error_body(response: httpx.Response) -> Dict[str, Any]:
        try:
            payload = response.json()
        except ValueError:
            return {"raw": response.text}
        return payload if isinstance(payload, dict) else {"raw": payload}

    # =========================================================================
    # Validation / setup
    # =========================================================================

    async def verify_credentials(self) -> None:
        """Raise ServiceError (kind AUTHENTICATION on 401) if the token is rejected."""
        await self._request("GET", "/models")

    async def get_model(self, model: str) -> Dict[str, Any]:
        return await self._request("GET", f"/models/{model}")

    async def get_assistant(self, assistant_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/assistants/{assistant_id}", beta=True)

    async def create_assistant(
        self,
        name: str,
        description: str,
        model: str,
        vector_store_id: str,
    ) -> str:
        data = await self._request("POST", "/assistants", beta=True, require="id", json={
            "model": model,
            "name": name,
            "description": description,
            "tools": [{"type": "file_search"}],
            "tool_resources": {
                "file_search": {"vector_store_ids": [vector_store_id]},
            },
        })
        return data["id"]

    async def get_vector_store(self, vector_store_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/vector_stores/{vector_store_id}", beta=True)

    async def create_vector_store(self, name: str) -> str:
        data = await self._request(
            "POST", "/vector_stores", beta=True, require="id", json={"name": name}
        )
        return data["id"]

    # =========================================================================
    # Files
    # =========================================================================

    async def upload_file(self, filename: str, content: bytes) -> str:
        """Upload ``content`` as ``filename`` with purpose ``assistants``."""
        data = await self._request(
            "POST",
            "/files",
            require="id",
            files={"file": (filename, content)},
            data={"purpose": "assistants"},
        )
        return data["id"]

    async def delete_file(self, file_id: str) -> None:
        await self._request("DELETE", f"/files/{file_id}")

    # =========================================================================
    # Threads / runs
    # =========================================================================

    async def create_thread_and_run(
        self,
        assistant_id: str,
        vector_store_id: str,
        content: str,
        file_ids: Sequence[str],
    ) -> ThreadRun:
        """Create a thread holding one user message and start a run on it."""
        attachments = [FileAttachment(file_id).to_dict() for file_id in file_ids]
        data = await self._request("POST", "/threads/runs", beta=True, require="id", json={
            "assistant_id": assistant_id,
            "thread": {
                "messages": [
                    {"role": "user", "content": content, "attachments": attachments},
                ],
                "tool_resources": {
                    "file_search": {"vector_store_ids": [vector_store_id]},
                },
            },
        })
        return ThreadRun.from_dict(data)

    async def get_run(self, thread_id: str, run_id: str) -> ThreadRun:
        data = await self._request(
            "GET", f"/threads/{thread_id}/runs/{run_id}", beta=True, require="status"
        )
        return ThreadRun.from_dict(data)

    async def get_thread_messages(self, thread_id: str) -> List[ThreadMessage]:
        """Messages of a thread, newest first."""
        data = await self._request("GET", f"/threads/{thread_id}/messages", beta=True)
        return [ThreadMessage.from_dict(item) for item in data.get("data") or []]
