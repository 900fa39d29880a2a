"""
File Selector - Single Responsibility: decide which files describe the project.

Walks a source tree, drops build/dependency/cache directories, keeps files
whose extension is in the allow-list and rewrites a few extensions the
remote service does not accept.
"""
import logging
import os
import re
from pathlib import Path
from typing import Dict, Optional, Union

from ..errors import WalkError

logger = logging.getLogger(__name__)

EXCLUDED_PATH_PATTERNS = tuple(
    re.compile(rf"(^|[\\/]){name}([\\/]|$)")
    for name in ("node_modules", "__pycache__", "dist", "bin")
)

ALLOWED_EXTENSIONS = frozenset({
    ".c",
    ".cpp",
    ".css",
    ".go",
    ".html",
    ".java",
    ".js",
    ".php",
    ".pkl",
    ".py",
    ".rb",
    ".tar",
    ".tex",
    ".ts",
    ".sh",
    ".bash",
    ".zsh",
    ".ps1",
})

# Rewritten entries are accepted without consulting ALLOWED_EXTENSIONS.
FILENAME_REWRITES = {
    ".vue": ".vue.txt",
    ".jsx": ".js",
    ".tsx": ".tx",
}


def is_excluded(path: str) -> bool:
    """True if any segment of ``path`` names an excluded directory."""
    return any(pattern.search(path) for pattern in EXCLUDED_PATH_PATTERNS)


def map_filename(path: str) -> Optional[str]:
    """
    Return the logical filename for ``path``, or None if it is not a source file.

    Only the trailing extension is rewritten, so directory names are left
    alone: ``my.vue-app/App.vue`` -> ``my.vue-app/App.vue.txt``.
    """
    if is_excluded(path):
        return None

    ext = os.path.splitext(path)[1]
    mapped = FILENAME_REWRITES.get(ext)
    if mapped is not None:
        return path[: -len(ext)] + mapped

    if ext in ALLOWED_EXTENSIONS:
        return path
    return None


class FileSelector:
    """
    Collects source files from a directory tree.

    Usage:
        files = FileSelector().select(Path("my-project"))
        # {"main.py": b"...", "nested/example.py": b"..."}
    """

    def select(self, root: Union[str, Path]) -> Dict[str, bytes]:
        """
        Walk ``root`` and read every selected file.

        Args:
            root: Directory to scan

        Returns:
            Mapping of logical filename (relative to root) to file content

        Raises:
            WalkError: root is missing, not a directory, or cannot be listed
        """
        root = Path(root)
        if not root.is_dir():
            raise WalkError(str(root), "path does not exist or is not a directory")

        files: Dict[str, bytes] = {}

        def _on_error(exc: OSError):
            raise WalkError(str(root), str(exc)) from exc

        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
            rel_dir = Path(dirpath).relative_to(root).as_posix()
            # prune in place so excluded trees are never descended into
            dirnames[:] = [
                d for d in dirnames
                if not is_excluded(d if rel_dir == "." else f"{rel_dir}/{d}")
            ]

            for name in filenames:
                full_path = Path(dirpath) / name
                rel_path = full_path.relative_to(root).as_posix()

                logical = map_filename(rel_path)
                if logical is None:
                    continue
                if full_path.is_dir():
                    continue

                try:
                    content = full_path.read_bytes()
                except OSError as e:
                    logger.warning(f"error opening file {full_path}: {e}")
                    continue

                if logical in files:
                    logger.debug(f"logical name {logical} already selected, replacing")
                logger.debug(f"adding file {rel_path}")
                files[logical] = content

        logger.info(f"Selected {len(files)} source files under {root}")
        return files
