"""
Batch Grouper & Combiner.

Groups selected files by logical extension and renders each group into one
self-describing document:

    ### FILE START <name>

    <content>

    ### FILE END <name>

so many source files travel as a single upload attachment.
"""
import io
import logging
import os
from typing import BinaryIO, Dict, List, Mapping, Union

from ..errors import RenderError
from ..models import COMBINED_FILENAME_PREFIX, BatchDocument

logger = logging.getLogger(__name__)

Content = Union[bytes, BinaryIO]

FILE_START_MARKER = "### FILE START {name}\n\n"
FILE_END_MARKER = "\n\n### FILE END {name}\n\n"

_CHUNK_SIZE = 64 * 1024

__all__ = [
    "COMBINED_FILENAME_PREFIX",
    "Content",
    "build_batch_documents",
    "combine_files",
    "group_by_extension",
]


def group_by_extension(files: Mapping[str, Content]) -> Dict[str, Dict[str, Content]]:
    """
    Partition ``files`` by extension, leading dot included (``.py``).

    Files without an extension share the ``""`` group.
    """
    grouped: Dict[str, Dict[str, Content]] = {}
    for filename, content in files.items():
        ext = os.path.splitext(filename)[1]
        grouped.setdefault(ext, {})[filename] = content
    return grouped


def _copy_member(buffer: io.BytesIO, content: Content) -> None:
    if isinstance(content, (bytes, bytearray, memoryview)):
        buffer.write(content)
        return
    while True:
        chunk = content.read(_CHUNK_SIZE)
        if not chunk:
            break
        buffer.write(chunk)


def combine_files(files: Mapping[str, Content]) -> bytes:
    """
    Render ``files`` into one delimited document.

    Raises:
        RenderError: a member stream failed to read; ``partial`` holds the
            bytes written before the failure
    """
    buffer = io.BytesIO()
    for name, content in files.items():
        buffer.write(FILE_START_MARKER.format(name=name).encode("utf-8"))
        try:
            _copy_member(buffer, content)
        except (OSError, ValueError) as e:
            logger.warning(f"error reading content from file {name}: {e}")
            raise RenderError(name, e, buffer.getvalue()) from e
        buffer.write(FILE_END_MARKER.format(name=name).encode("utf-8"))
    return buffer.getvalue()


def build_batch_documents(files: Mapping[str, Content]) -> List[BatchDocument]:
    """Group ``files`` and render one ``BatchDocument`` per extension."""
    documents = []
    grouped = group_by_extension(files)
    logger.debug(f"found {len(grouped)} unique file extensions")

    for ext, members in grouped.items():
        document = BatchDocument(
            extension=ext,
            members=tuple(members),
            content=combine_files(members),
        )
        logger.debug(f"combined {len(members)} files of type {ext} into {document.filename}")
        documents.append(document)
    return documents
