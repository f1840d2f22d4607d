from __future__ import annotations

import pytest
from pathlib import Path
from unittest.mock import patch

from depwatch.exceptions import FileOperationError
from depwatch.utils.filesystem import safe_read_file, safe_write_file, validate_path


@pytest.mark.unit
class TestSafeReadFile:
    """Tests for safe_read_file."""

    def test_reads_text(self, tmp_path: Path) -> None:
        path = tmp_path / "rebar.config"
        path.write_text("{deps, []}.", encoding="utf-8")

        assert safe_read_file(path) == "{deps, []}."

    def test_accepts_string_path(self, tmp_path: Path) -> None:
        path = tmp_path / "repos.txt"
        path.write_text("a/b 1.0.0\n", encoding="utf-8")

        assert safe_read_file(str(path)) == "a/b 1.0.0\n"

    def test_missing_file(self, tmp_path: Path) -> None:
        """Missing files raise FileOperationError with the read operation."""
        with pytest.raises(FileOperationError) as exc_info:
            safe_read_file(tmp_path / "missing.json")

        assert exc_info.value.operation == "read"
        assert "File not found" in exc_info.value.message

    def test_directory_rejected(self, tmp_path: Path) -> None:
        with pytest.raises(FileOperationError, match="Not a file"):
            safe_read_file(tmp_path)

    def test_size_limit(self, tmp_path: Path) -> None:
        """Files over the limit are refused before reading."""
        path = tmp_path / "big.txt"
        path.write_text("x" * 100, encoding="utf-8")

        with pytest.raises(FileOperationError, match="File too large"):
            safe_read_file(path, max_size=10)

    def test_size_limit_disabled(self, tmp_path: Path) -> None:
        path = tmp_path / "big.txt"
        path.write_text("x" * 100, encoding="utf-8")

        assert len(safe_read_file(path, max_size=None)) == 100

    def test_decode_error(self, tmp_path: Path) -> None:
        """Undecodable bytes become FileOperationError."""
        path = tmp_path / "binary.txt"
        path.write_bytes(b"\xff\xfe\xfa")

        with pytest.raises(FileOperationError, match="Failed to read file"):
            safe_read_file(path)


@pytest.mark.unit
class TestSafeWriteFile:
    """Tests for safe_write_file."""

    def test_writes_and_returns_resolved_path(self, tmp_path: Path) -> None:
        target = tmp_path / "report.md"

        written = safe_write_file(target, "# Report\n")

        assert written == target.resolve()
        assert target.read_text(encoding="utf-8") == "# Report\n"

    def test_creates_parent_directories(self, tmp_path: Path) -> None:
        target = tmp_path / "out" / "nested" / "report.md"

        safe_write_file(target, "content")

        assert target.read_text(encoding="utf-8") == "content"

    def test_overwrites_existing(self, tmp_path: Path) -> None:
        target = tmp_path / "report.md"
        target.write_text("old", encoding="utf-8")

        safe_write_file(target, "new")

        assert target.read_text(encoding="utf-8") == "new"

    def test_no_temporary_files_left(self, tmp_path: Path) -> None:
        safe_write_file(tmp_path / "report.md", "content")

        assert [p.name for p in tmp_path.iterdir()] == ["report.md"]

    def test_replace_failure_cleans_up(self, tmp_path: Path) -> None:
        """A failed replace raises and removes the temporary file."""
        target = tmp_path / "report.md"

        with patch.object(Path, "replace", side_effect=OSError("disk full")):
            with pytest.raises(FileOperationError) as exc_info:
                safe_write_file(target, "content")

        assert exc_info.value.operation == "write"
        assert list(tmp_path.iterdir()) == []


@pytest.mark.unit
class TestValidatePath:
    """Tests for validate_path."""

    def test_resolves(self, tmp_path: Path) -> None:
        assert validate_path(tmp_path / "a" / ".." / "b") == (tmp_path / "b").resolve()

    def test_inside_base(self, tmp_path: Path) -> None:
        inner = tmp_path / "inner.txt"
        assert validate_path(inner, base_dir=tmp_path) == inner.resolve()

    def test_outside_base(self, tmp_path: Path) -> None:
        """Escaping the base directory is refused."""
        with pytest.raises(FileOperationError, match="outside allowed base"):
            validate_path(tmp_path / ".." / "elsewhere", base_dir=tmp_path)
