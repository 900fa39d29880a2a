"""Shared fixtures for autoreadme tests."""
import json
from pathlib import Path

import pytest

from autoreadme.models import Settings


@pytest.fixture
def settings():
    return Settings(
        access_token="sk-test-token",
        model_version="gpt-4o-mini",
        assistant_id="asst_123",
        vector_store_id="vs_123",
    )


@pytest.fixture
def config_file(tmp_path: Path, settings: Settings) -> Path:
    path = tmp_path / "config" / "config.json"
    path.parent.mkdir()
    path.write_text(json.dumps(settings.to_dict()), encoding="utf-8")
    return path


@pytest.fixture
def source_tree(tmp_path: Path) -> Path:
    """main.py, nested/__init__.py, nested/example.py and an excluded node_modules/lib.js."""
    root = tmp_path / "project"
    (root / "nested").mkdir(parents=True)
    (root / "node_modules").mkdir()
    (root / "main.py").write_bytes(b"print('hello')\n")
    (root / "nested" / "__init__.py").write_bytes(b"")
    (root / "nested" / "example.py").write_bytes(b"def example():\n    return 1\n")
    (root / "node_modules" / "lib.js").write_bytes(b"module.exports = {}\n")
    return root
