"""Services for autoreadme."""
from .api_client import AssistantAPIClient
from .combiner import build_batch_documents, combine_files, group_by_extension
from .poller import RunPoller
from .selector import FileSelector
from .uploader import BatchUploader

__all__ = [
    "AssistantAPIClient",
    "BatchUploader",
    "FileSelector",
    "RunPoller",
    "build_batch_documents",
    "combine_files",
    "group_by_extension",
]
