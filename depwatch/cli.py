"""
Command-line entry point for depwatch.

The ``depwatch`` group owns the options shared by every subcommand
(configuration file, verbosity, color) and stores the result in a
:class:`~depwatch.context.DepWatchContext` on ``ctx.obj``. Subcommands
live in :mod:`depwatch.commands`.
"""

from __future__ import annotations

import os
import sys
import logging
from pathlib import Path
from typing import Optional

import click

from depwatch.__version__ import __version__
from depwatch.config import DepWatchConfig, load_config
from depwatch.context import DepWatchContext
from depwatch.exceptions import ConfigError, DepWatchError
from depwatch.utils.logger import get_logger, level_for_verbosity, setup_logging
from depwatch.utils.console import print_error, print_warning, reconfigure_console

logger = get_logger("cli")

#: Exit status for Ctrl+C, matching shells (128 + SIGINT).
EXIT_INTERRUPTED = 130


@click.group(context_settings={"help_option_names": ["-h", "--help"]})
@click.option(
    "--config",
    "-c",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    envvar="DEPWATCH_CONFIG",
    help="Read settings from this TOML file instead of searching for one.",
)
@click.option(
    "--verbose",
    "-v",
    count=True,
    help="Log progress to stderr (-v for info, -vv for debug).",
)
@click.option(
    "--color/--no-color",
    default=True,
    envvar="DEPWATCH_COLOR",
    help="Colorize console output.",
)
@click.version_option(
    version=__version__,
    prog_name="depwatch",
    message="%(prog)s %(version)s",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: Optional[Path],
    verbose: int,
    color: bool,
) -> None:
    """depwatch - audit pinned dependencies against their upstream releases.

    \b
    Commands:
      depwatch audit MANIFEST      Compare pinned versions with upstream

    \b
    Examples:
      depwatch audit rebar.config
      depwatch audit package.json --include-dev
      depwatch -v audit repos.txt --format json
    """
    level = level_for_verbosity(verbose)
    setup_logging(level=level, verbose=verbose >= 2)
    logger.debug("depwatch %s, log level %s", __version__, logging.getLevelName(level))

    _apply_color_preference(color)

    ctx.obj = DepWatchContext()
    ctx.obj.verbose = verbose
    ctx.obj.color = color
    ctx.obj.config = _load_config_or_exit(config)
    ctx.obj.config_path = config or ctx.obj.config.source_path


def _apply_color_preference(color: bool) -> None:
    """Export the color choice through ``NO_COLOR`` and rebuild the console."""
    if color:
        os.environ.pop("NO_COLOR", None)
    else:
        os.environ["NO_COLOR"] = "1"
    reconfigure_console()


def _load_config_or_exit(config_path: Optional[Path]) -> DepWatchConfig:
    """Load configuration; a broken file stops the CLI with status 1."""
    try:
        loaded = load_config(config_path)
    except ConfigError as exc:
        print_error(str(exc))
        raise SystemExit(1) from exc

    if loaded.source_path is None:
        logger.debug("No configuration file, using defaults")
    return loaded


def _register_commands(group: click.Group) -> None:
    try:
        from depwatch.commands.audit import audit
    except ImportError as exc:
        sys.stderr.write(f"FATAL: Failed to import CLI commands: {exc}\n")
        sys.exit(1)

    group.add_command(audit)


_register_commands(cli)


def main() -> int:
    """Run the CLI and translate the outcome into a process exit status.

    Returns:
        0 on success, 1 on application errors (and on updates found with
        ``--fail-on-updates``), 2 on usage errors, 130 when interrupted.
    """
    try:
        result = cli(standalone_mode=False)
    except (click.exceptions.Abort, KeyboardInterrupt):
        print_warning("\nOperation cancelled by user")
        return EXIT_INTERRUPTED
    except click.ClickException as exc:
        exc.show()
        return exc.exit_code
    except DepWatchError as exc:
        print_error(str(exc))
        logger.debug("Error details: %s", exc.details or "<none>", exc_info=True)
        return 1
    except Exception as exc:
        print_error(f"Unexpected error: {exc}")
        logger.exception("Unhandled exception in CLI")
        return 1

    return result if isinstance(result, int) else 0


if __name__ == "__main__":
    sys.exit(main())
