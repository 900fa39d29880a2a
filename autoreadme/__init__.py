"""
autoreadme - Generate a README for a source tree with a hosted assistant.

Source files are selected by extension, combined into one document per
extension, uploaded concurrently, and attached to an assistant run whose
first text reply becomes README.md.

Usage:
    from autoreadme import AssistantAPIClient, ReadmeOrchestrator, load_settings

    settings = load_settings()
    async with AssistantAPIClient(settings.access_token) as client:
        orchestrator = ReadmeOrchestrator(client, settings)
        result = await orchestrator.generate("my-project")
        print(result.output_path)
"""
__version__ = "0.1.0"

from .config import default_config_path, load_settings, write_settings
from .errors import (
    AutoReadmeError,
    ErrorKind,
    RunFailedError,
    ServiceError,
    UploadFailedError,
)
from .models import GenerationResult, PipelineConfig, Settings, ThreadRun, UploadReport
from .orchestrator import ReadmeOrchestrator
from .services import AssistantAPIClient, BatchUploader, FileSelector, RunPoller
from .utils.events import PipelineEvent

__all__ = [
    # Main
    "ReadmeOrchestrator",
    "AssistantAPIClient",
    # Services
    "FileSelector",
    "BatchUploader",
    "RunPoller",
    # Models
    "GenerationResult",
    "PipelineConfig",
    "Settings",
    "ThreadRun",
    "UploadReport",
    "PipelineEvent",
    # Config
    "default_config_path",
    "load_settings",
    "write_settings",
    # Errors
    "AutoReadmeError",
    "ErrorKind",
    "RunFailedError",
    "ServiceError",
    "UploadFailedError",
]
