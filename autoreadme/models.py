"""
Models for autoreadme.

Dataclasses for pipeline configuration, batch documents, upload outcomes and
the remote run/message payloads.
"""
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

TERMINAL_STATUSES = frozenset({"completed", "cancelled", "failed", "expired"})
COMBINED_FILENAME_PREFIX = "combined_source_files"


@dataclass(frozen=True)
class Settings:
    """Immutable credentials and remote identifiers loaded from the config file."""
    access_token: str
    model_version: str
    assistant_id: str
    vector_store_id: str

    # JSON key -> attribute
    FIELDS = {
        "accessToken": "access_token",
        "modelVersion": "model_version",
        "assistantId": "assistant_id",
        "vectorStoreId": "vector_store_id",
    }

    def to_dict(self) -> Dict[str, str]:
        return {key: getattr(self, attr) for key, attr in self.FIELDS.items()}

    def __repr__(self) -> str:
        masked = f"{self.access_token[:4]}..." if self.access_token else ""
        return (
            f"Settings(access_token={masked!r}, model_version={self.model_version!r}, "
            f"assistant_id={self.assistant_id!r}, vector_store_id={self.vector_store_id!r})"
        )


@dataclass(frozen=True)
class PipelineConfig:
    """Immutable tuning for a single pipeline invocation."""
    max_concurrent_uploads: int = 5
    poll_interval: float = 3.0
    poll_timeout: Optional[float] = None  # None waits forever
    output_filename: str = "README.md"
    cleanup_uploads: bool = False

    def __post_init__(self):
        if self.max_concurrent_uploads < 1:
            raise ValueError("max_concurrent_uploads must be at least 1")
        if self.poll_interval < 0:
            raise ValueError("poll_interval must not be negative")


@dataclass(frozen=True)
class BatchDocument:
    """One combined upload artifact holding every source file of one extension."""
    extension: str
    members: Tuple[str, ...]
    content: bytes

    @property
    def filename(self) -> str:
        return COMBINED_FILENAME_PREFIX + self.extension

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class UploadFailure:
    """Failed upload (or delete) of a single named item."""
    name: str
    error: Exception

    @property
    def message(self) -> str:
        text = str(self.error).strip()
        return text or type(self.error).__name__


@dataclass
class UploadReport:
    """
    Outcome of a cohort upload.

    ``uploaded`` maps item name to the identifier the service assigned.
    Each submitted item contributes to exactly one of ``uploaded``/``failures``.
    """
    uploaded: Dict[str, str] = field(default_factory=dict)
    failures: List[UploadFailure] = field(default_factory=list)

    @property
    def file_ids(self) -> List[str]:
        return list(self.uploaded.values())

    @property
    def success(self) -> bool:
        return not self.failures

    @property
    def total(self) -> int:
        return len(self.uploaded) + len(self.failures)


@dataclass(frozen=True)
class ThreadRun:
    """Read-only snapshot of a remote run."""
    id: str
    thread_id: str
    status: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ThreadRun":
        return cls(
            id=data.get("id", ""),
            thread_id=data.get("thread_id", ""),
            status=data.get("status", ""),
        )

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def succeeded(self) -> bool:
        return self.status == "completed"


@dataclass(frozen=True)
class FileAttachment:
    file_id: str
    tools: Tuple[str, ...] = ("file_search",)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "file_id": self.file_id,
            "tools": [{"type": tool} for tool in self.tools],
        }


@dataclass(frozen=True)
class ThreadMessage:
    """A thread message; ``texts`` holds the text segments in order."""
    role: str
    texts: Tuple[str, ...] = ()
    attachments: Tuple[FileAttachment, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ThreadMessage":
        texts = []
        for part in data.get("content") or []:
            if isinstance(part, dict) and part.get("type") == "text":
                texts.append((part.get("text") or {}).get("value", ""))
        attachments = tuple(
            FileAttachment(
                file_id=item.get("file_id", ""),
                tools=tuple(t.get("type", "") for t in item.get("tools") or []),
            )
            for item in data.get("attachments") or []
        )
        return cls(role=data.get("role", ""), texts=tuple(texts), attachments=attachments)

    @property
    def first_text(self) -> Optional[str]:
        return self.texts[0] if self.texts else None


@dataclass(frozen=True)
class GenerationResult:
    """Result of a completed README generation."""
    output_path: Path
    run: ThreadRun
    file_ids: Tuple[str, ...]
    batch_count: int
    file_count: int
