"""
Error types for the README pipeline.

Callers branch on ``ServiceError.kind`` instead of inspecting runtime types
to tell authentication failures apart from general API failures.
"""
from enum import Enum
from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .models import ThreadRun, UploadFailure


class ErrorKind(Enum):
    """Coarse classification of a remote service failure."""
    AUTHENTICATION = "authentication"
    API = "api"


class AutoReadmeError(Exception):
    """Base class for every error raised by autoreadme."""


class WalkError(AutoReadmeError):
    """The source tree could not be enumerated."""

    def __init__(self, root: str, reason: str):
        self.root = root
        self.reason = reason
        super().__init__(f"cannot walk source tree {root}: {reason}")


class RenderError(AutoReadmeError):
    """A batch document could not be rendered; ``partial`` holds what was written."""

    def __init__(self, filename: str, cause: Exception, partial: bytes = b""):
        self.filename = filename
        self.cause = cause
        self.partial = partial
        super().__init__(f"error reading content from file {filename}: {cause}")


class AdmissionError(AutoReadmeError):
    """An operation was cancelled while waiting for a concurrency slot."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"cancelled before admission: {name}")


class ServiceError(AutoReadmeError):
    """Non-success response from the remote service."""

    def __init__(
        self,
        status_code: int,
        body: Optional[Dict[str, Any]] = None,
        kind: ErrorKind = ErrorKind.API,
    ):
        self.status_code = status_code
        self.body = body or {}
        self.kind = kind
        super().__init__(
            f"received service error type {kind.value}: status code {status_code}"
        )

    @classmethod
    def from_status(cls, status_code: int, body: Optional[Dict[str, Any]] = None) -> "ServiceError":
        kind = ErrorKind.AUTHENTICATION if status_code == 401 else ErrorKind.API
        return cls(status_code, body, kind)

    @property
    def is_auth(self) -> bool:
        return self.kind == ErrorKind.AUTHENTICATION


class TransportError(AutoReadmeError):
    """The request never produced a response (connection, DNS, timeout)."""

    def __init__(self, method: str, url: str, cause: Exception):
        self.method = method
        self.url = url
        self.cause = cause
        super().__init__(f"{method} {url} failed: {cause}")


class PollCancelledError(AutoReadmeError):
    """Polling was interrupted by the caller's cancel signal."""


class RunTimeoutError(AutoReadmeError):
    """The run did not reach a terminal status within the caller's deadline."""

    def __init__(self, run_id: str, timeout: float):
        self.run_id = run_id
        self.timeout = timeout
        super().__init__(f"run {run_id} not finished after {timeout:.1f}s")


class ConfigFileNotFoundError(AutoReadmeError):
    def __init__(self, path: str):
        self.path = path
        super().__init__(f"cannot find config file at provided path {path}")


class InvalidConfigFileError(AutoReadmeError):
    def __init__(self, path: str, reason: str = ""):
        self.path = path
        self.reason = reason
        message = f"error loading config file at provided path {path}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)


class UploadFailedError(AutoReadmeError):
    """At least one batch document failed to upload."""

    def __init__(self, failures: List["UploadFailure"]):
        self.failures = failures
        super().__init__(f"found {len(failures)} errors during file upload")


class RunFailedError(AutoReadmeError):
    """The run reached a terminal status other than ``completed``."""

    def __init__(self, run: "ThreadRun", reason: Optional[str] = None):
        self.run = run
        super().__init__(reason or f"run {run.id} finished with status {run.status}")
