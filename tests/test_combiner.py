"""Tests for batch grouping and combining."""
import io
import re

import pytest

from autoreadme.errors import RenderError
from autoreadme.services.combiner import (
    build_batch_documents,
    combine_files,
    group_by_extension,
)

BLOCK = re.compile(rb"### FILE START (.+?)\n\n(.*?)\n\n### FILE END \1\n\n", re.S)


class _BrokenStream(io.RawIOBase):
    def readable(self):
        return True

    def read(self, size=-1):
        raise OSError("disk went away")


class TestGroupByExtension:
    def test_partitions_by_extension(self):
        grouped = group_by_extension({
            "main.py": b"a",
            "lib/util.py": b"b",
            "app.js": b"c",
            "Makefile": b"d",
        })

        assert set(grouped) == {".py", ".js", ""}
        assert set(grouped[".py"]) == {"main.py", "lib/util.py"}
        assert grouped[""] == {"Makefile": b"d"}

    def test_dotted_directory_uses_file_extension(self):
        grouped = group_by_extension({"a.d/file.txt": b""})
        assert set(grouped) == {".txt"}


class TestCombineFiles:
    def test_exact_layout(self):
        combined = combine_files({"main.py": b"print(1)"})
        assert combined == b"### FILE START main.py\n\nprint(1)\n\n### FILE END main.py\n\n"

    def test_blocks_recover_each_member(self):
        files = {"a.py": b"one", "b/c.py": b"two\nlines", "empty.py": b""}

        blocks = BLOCK.findall(combine_files(files))

        assert [(name.decode(), body) for name, body in blocks] == [
            ("a.py", b"one"),
            ("b/c.py", b"two\nlines"),
            ("empty.py", b""),
        ]

    def test_empty_mapping(self):
        assert combine_files({}) == b""

    def test_stream_members(self):
        combined = combine_files({"a.py": io.BytesIO(b"streamed")})
        assert b"streamed" in combined

    def test_read_failure_carries_partial(self):
        files = {"ok.py": b"fine", "bad.py": _BrokenStream()}

        with pytest.raises(RenderError) as exc_info:
            combine_files(files)

        err = exc_info.value
        assert err.filename == "bad.py"
        assert err.partial.startswith(b"### FILE START ok.py\n\nfine")
        assert err.partial.endswith(b"### FILE START bad.py\n\n")
        assert "bad.py" in str(err)


class TestBuildBatchDocuments:
    def test_one_document_per_extension(self):
        documents = build_batch_documents({
            "main.py": b"x",
            "nested/example.py": b"y",
            "App.js": b"z",
        })

        by_name = {doc.filename: doc for doc in documents}
        assert set(by_name) == {"combined_source_files.py", "combined_source_files.js"}
        assert by_name["combined_source_files.py"].members == ("main.py", "nested/example.py")
        assert by_name["combined_source_files.js"].size == len(by_name["combined_source_files.js"].content)

    def test_empty_selection_has_no_documents(self):
        assert build_batch_documents({}) == []
