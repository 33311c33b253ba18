"""Tests for TestDataLoader."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import patch

import pytest

from ecrpub_testkit.config import Config
from ecrpub_testkit.errors import SizeExceededError
from ecrpub_testkit.testdata.loader import MAX_DOCUMENT_SIZE, TestDataDocument, TestDataLoader


class TestTestDataLoader:
    """Test suite for TestDataLoader."""

    @pytest.fixture
    def root(self, tmp_path: Path) -> Path:
        """Test data root with one policy document."""
        root = tmp_path / "testdata"
        root.mkdir()
        (root / "policy.json").write_text(
            '{"Resource": "{{REPOSITORY_NAME}}", "Sid": "{{REPOSITORY_NAME}}-pull"}', encoding="utf-8"
        )
        return root

    def test_replaces_every_placeholder(self, root: Path) -> None:
        """Test all occurrences are substituted."""
        content = TestDataLoader(root).load("policy.json", "my-repo")

        assert content == '{"Resource": "my-repo", "Sid": "my-repo-pull"}'
        assert "{{REPOSITORY_NAME}}" not in content

    def test_no_placeholder(self, root: Path) -> None:
        """Test documents without placeholders are returned as-is."""
        (root / "plain.txt").write_text("hello", encoding="utf-8")

        assert TestDataLoader(root).load("plain.txt", "my-repo") == "hello"

    def test_oversize_file_is_not_read(self, root: Path) -> None:
        """Test a 2 MiB file raises before any read."""
        big = root / "big.json"
        big.write_bytes(b"x" * (2 * 1024 * 1024))

        with patch.object(Path, "read_text") as mock_read:
            with pytest.raises(SizeExceededError) as exc_info:
                TestDataLoader(root).load("big.json", "my-repo")

        mock_read.assert_not_called()
        assert exc_info.value.size == 2 * 1024 * 1024
        assert exc_info.value.limit == MAX_DOCUMENT_SIZE

    def test_exactly_at_limit_is_read(self, root: Path) -> None:
        """Test the size limit is inclusive."""
        (root / "edge.txt").write_bytes(b"a" * MAX_DOCUMENT_SIZE)

        assert len(TestDataLoader(root).load("edge.txt", "r")) == MAX_DOCUMENT_SIZE

    def test_missing_file_propagates_os_error(self, root: Path) -> None:
        """Test missing files raise the underlying OSError."""
        with pytest.raises(FileNotFoundError):
            TestDataLoader(root).load("missing.json", "r")

    def test_rejects_path_escape(self, root: Path) -> None:
        """Test names cannot leave the root."""
        (root.parent / "secret.txt").write_text("secret", encoding="utf-8")

        with pytest.raises(ValueError, match="escapes"):
            TestDataLoader(root).load("../secret.txt", "r")

    def test_not_cached(self, root: Path) -> None:
        """Test each load reads the current file content."""
        loader = TestDataLoader(root)
        first = loader.load("policy.json", "r")
        (root / "policy.json").write_text("changed {{REPOSITORY_NAME}}", encoding="utf-8")

        assert loader.load("policy.json", "r") != first

    def test_document_custom_placeholder(self, tmp_path: Path) -> None:
        """Test a document with a custom placeholder and limit."""
        path = tmp_path / "doc.txt"
        path.write_text("name=@@NAME@@", encoding="utf-8")

        document = TestDataDocument(path=path, size_limit=100, placeholder="@@NAME@@")

        assert document.render("repo") == "name=repo"

    def test_invalid_utf8_raises(self, root: Path) -> None:
        """Test undecodable content raises UnicodeDecodeError."""
        (root / "binary.bin").write_bytes(b"\xff\xfe{{REPOSITORY_NAME}}")

        with pytest.raises(UnicodeDecodeError):
            TestDataLoader(root).load("binary.bin", "r")

    def test_from_config_uses_testdata_root(self, root: Path) -> None:
        """Test from_config roots the loader at config.testdata_root."""
        loader = TestDataLoader.from_config(Config(testdata_root=root))

        assert loader.root == root
        assert loader.load("policy.json", "my-repo").startswith('{"Resource": "my-repo"')
