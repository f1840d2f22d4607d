"""
Executable module for depwatch.

Running:
    python -m depwatch

is equivalent to:
    depwatch
"""

from __future__ import annotations

import sys


def _print_startup_error(exc: ImportError) -> int:
    """Explain why the CLI could not be loaded and return exit code 1."""
    sys.stderr.write("depwatch could not start: a required module failed to import.\n")
    sys.stderr.write(f"Python version  : {sys.version}\n")
    try:
        from depwatch.__version__ import __version__

        sys.stderr.write(f"depwatch version: {__version__}\n")
    except ImportError:
        sys.stderr.write("depwatch version: <unknown>\n")
    sys.stderr.write(f"ImportError: {exc}\n")
    return 1


def main() -> int:
    """
    Main entrypoint when executing `python -m depwatch`.

    Returns:
        Exit code returned by the CLI.
    """
    try:
        # Import lazily so dependencies are only loaded during CLI use
        from depwatch.cli import main as cli_main
    except ImportError as exc:
        return _print_startup_error(exc)

    return cli_main()


if __name__ == "__main__":
    sys.exit(main())
