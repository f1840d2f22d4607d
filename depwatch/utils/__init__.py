"""Shared helpers: console output, logging, files, HTTP and versions."""

from __future__ import annotations

from depwatch.utils.console import (
    colorize_status,
    get_raw_console,
    print_error,
    print_success,
    print_table,
    print_warning,
    reconfigure_console,
)
from depwatch.utils.filesystem import safe_read_file, safe_write_file, validate_path
from depwatch.utils.http import HTTPClient
from depwatch.utils.logger import (
    disable_logging,
    get_logger,
    is_logging_configured,
    level_for_verbosity,
    setup_logging,
)
from depwatch.utils.version_utils import (
    Comparison,
    NormalizedVersion,
    compare,
    get_update_type,
    normalize,
)

__all__ = [
    "Comparison",
    "HTTPClient",
    "NormalizedVersion",
    "colorize_status",
    "compare",
    "disable_logging",
    "get_logger",
    "get_raw_console",
    "get_update_type",
    "is_logging_configured",
    "level_for_verbosity",
    "normalize",
    "print_error",
    "print_success",
    "print_table",
    "print_warning",
    "reconfigure_console",
    "safe_read_file",
    "safe_write_file",
    "setup_logging",
    "validate_path",
]
