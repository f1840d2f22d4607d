"""
Filesystem helpers for depwatch.

Manifests are read with a size limit and reports are written through a
temporary sibling file, so an interrupted run never leaves a truncated
report. Every failure surfaces as :class:`FileOperationError`.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from depwatch.constants import MAX_FILE_SIZE
from depwatch.exceptions import FileOperationError
from depwatch.utils.logger import get_logger

logger = get_logger("filesystem")

PathLike = Union[str, Path]


def safe_read_file(
    file_path: PathLike,
    *,
    max_size: Optional[int] = MAX_FILE_SIZE,
    encoding: str = "utf-8",
) -> str:
    """Read a text file, refusing files larger than *max_size* bytes.

    Args:
        file_path: Path to the file.
        max_size: Size limit in bytes; ``None`` disables it.
        encoding: Text encoding.

    Raises:
        FileOperationError: The file is missing, is not a regular file, is
            too large, or cannot be decoded.
    """
    path = Path(file_path)

    def failure(message: str, exc: Optional[Exception] = None) -> FileOperationError:
        return FileOperationError(
            message, file_path=str(path), operation="read", original_error=exc
        )

    if not path.exists():
        raise failure(f"File not found: {path}")
    if not path.is_file():
        raise failure(f"Not a file: {path}")

    size = path.stat().st_size
    if max_size is not None and size > max_size:
        raise failure(f"File too large: {size} bytes (max {max_size})")

    try:
        return path.read_text(encoding=encoding)
    except (OSError, UnicodeDecodeError) as exc:
        raise failure(f"Failed to read file: {exc}", exc) from exc


def safe_write_file(file_path: PathLike, content: str) -> Path:
    """Replace *file_path* with *content*, creating parent directories.

    Returns:
        The resolved path that was written.

    Raises:
        FileOperationError: The directory or file cannot be written.
    """
    target = Path(file_path)
    temp_path: Optional[Path] = None

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(
            dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp"
        )
        temp_path = Path(temp_name)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
            handle.flush()
            os.fsync(handle.fileno())
        temp_path.replace(target)
    except OSError as exc:
        if temp_path is not None:
            _discard(temp_path)
        raise FileOperationError(
            f"Could not write {target}: {exc}",
            file_path=str(target),
            operation="write",
            original_error=exc,
        ) from exc

    logger.debug("Wrote %d characters to %s", len(content), target)
    return target.resolve()


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Could not remove temporary file %s: %s", path, exc)


def validate_path(
    path: PathLike,
    *,
    base_dir: Optional[PathLike] = None,
) -> Path:
    """Resolve *path*; with *base_dir*, refuse anything outside it."""
    resolved = Path(path).expanduser().resolve()
    if base_dir is None:
        return resolved

    base = Path(base_dir).resolve()
    if resolved != base and base not in resolved.parents:
        raise FileOperationError(
            f"Path outside allowed base directory: {resolved}",
            file_path=str(path),
            operation="validate",
        )
    return resolved
