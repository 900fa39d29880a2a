"""Tests for autoreadme models."""
import dataclasses

import pytest

from autoreadme.models import (
    BatchDocument,
    PipelineConfig,
    Settings,
    ThreadMessage,
    ThreadRun,
    UploadFailure,
    UploadReport,
)


class TestSettings:
    def test_to_dict_uses_json_keys(self, settings):
        assert settings.to_dict() == {
            "accessToken": "sk-test-token",
            "modelVersion": "gpt-4o-mini",
            "assistantId": "asst_123",
            "vectorStoreId": "vs_123",
        }

    def test_repr_masks_token(self, settings):
        assert "sk-test-token" not in repr(settings)

    def test_immutable(self, settings):
        with pytest.raises(dataclasses.FrozenInstanceError):
            settings.access_token = "other"


class TestPipelineConfig:
    def test_defaults(self):
        config = PipelineConfig()
        assert config.max_concurrent_uploads == 5
        assert config.poll_interval == 3.0
        assert config.poll_timeout is None
        assert config.output_filename == "README.md"
        assert config.cleanup_uploads is False

    def test_invalid_values(self):
        with pytest.raises(ValueError):
            PipelineConfig(max_concurrent_uploads=0)
        with pytest.raises(ValueError):
            PipelineConfig(poll_interval=-1)


class TestBatchDocument:
    def test_filename(self):
        assert BatchDocument(".py", ("a.py",), b"abc").filename == "combined_source_files.py"
        assert BatchDocument("", ("Makefile",), b"").filename == "combined_source_files"


class TestUploadReport:
    def test_counts(self):
        report = UploadReport(
            uploaded={"a": "file-a"},
            failures=[UploadFailure("b", RuntimeError(""))],
        )
        assert report.file_ids == ["file-a"]
        assert report.total == 2
        assert report.success is False
        assert report.failures[0].message == "RuntimeError"


class TestThreadRun:
    @pytest.mark.parametrize("status,terminal", [
        ("queued", False),
        ("in_progress", False),
        ("requires_action", False),
        ("completed", True),
        ("cancelled", True),
        ("failed", True),
        ("expired", True),
    ])
    def test_terminal(self, status, terminal):
        assert ThreadRun("r", "t", status).is_terminal is terminal

    def test_from_dict(self):
        run = ThreadRun.from_dict({"id": "r", "thread_id": "t", "status": "completed", "extra": 1})
        assert run == ThreadRun("r", "t", "completed")


class TestThreadMessage:
    def test_non_text_parts_skipped(self):
        message = ThreadMessage.from_dict({
            "role": "assistant",
            "content": [
                {"type": "image_file", "image_file": {"file_id": "x"}},
                {"type": "text", "text": {"value": "hello"}},
            ],
        })
        assert message.first_text == "hello"

    def test_no_text(self):
        assert ThreadMessage.from_dict({"role": "assistant", "content": []}).first_text is None
