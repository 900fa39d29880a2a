"""
Configuration file handling.

Settings are stored as JSON:

    {
      "accessToken": "...",
      "modelVersion": "gpt-4o-mini",
      "assistantId": "asst_...",
      "vectorStoreId": "vs_..."
    }
"""
from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional, Union

from .errors import ConfigFileNotFoundError, InvalidConfigFileError
from .models import Settings

logger = logging.getLogger(__name__)

CONFIG_PATH_ENV = "AUTOREADME_CONFIG"


def default_config_path() -> Path:
    """``$AUTOREADME_CONFIG`` if set, else ``~/.autoreadme/config.json``."""
    env_path = os.getenv(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path).expanduser()
    return Path.home() / ".autoreadme" / "config.json"


def load_settings(path: Optional[Union[str, Path]] = None) -> Settings:
    """
    Load and validate settings.

    Raises:
        ConfigFileNotFoundError: nothing exists at ``path``
        InvalidConfigFileError: path is a directory, unreadable, not JSON,
            or a required field is missing or empty
    """
    path = Path(path) if path is not None else default_config_path()

    if not path.exists():
        logger.debug(f"cannot find config file at path {path}")
        raise ConfigFileNotFoundError(str(path))
    if path.is_dir():
        logger.debug(f"cannot load config {path}: path is directory, expected file")
        raise InvalidConfigFileError(str(path), "path is a directory")

    try:
        payload = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        logger.debug(f"error reading config file: {exc}")
        raise InvalidConfigFileError(str(path), "file cannot be read") from exc
    except ValueError as exc:
        logger.debug(f"error decoding config file: {exc}")
        raise InvalidConfigFileError(str(path), "invalid JSON") from exc

    if not isinstance(payload, dict):
        raise InvalidConfigFileError(str(path), "expected a JSON object")

    missing = [
        key for key in Settings.FIELDS
        if not isinstance(payload.get(key), str) or not payload[key].strip()
    ]
    if missing:
        for key in missing:
            logger.debug(f"config validation error: {key} is required")
        raise InvalidConfigFileError(str(path), f"missing required fields: {', '.join(missing)}")

    return Settings(**{attr: payload[key] for key, attr in Settings.FIELDS.items()})


def write_settings(settings: Settings, path: Union[str, Path]) -> Path:
    """Write ``settings`` as indented JSON, creating parent directories."""
    path = Path(path).expanduser()
    parent = path.parent
    if str(parent) in {".", "/"}:
        raise ValueError(f"invalid file path or directory: {path}")

    parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(settings.to_dict(), indent=2), encoding="utf-8")
    logger.debug(f"wrote configuration to {path}")
    return path
