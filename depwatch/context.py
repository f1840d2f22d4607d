"""
Shared context object for depwatch CLI commands.

One :class:`DepWatchContext` is created per invocation by the root command
group and handed to subcommands through Click's object mechanism.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import click

from depwatch.config import DepWatchConfig


class DepWatchContext:
    """Global context object for depwatch CLI commands.

    Attributes:
        config_path: Path to the configuration file that was loaded, if any.
        verbose: Verbosity level (0=WARNING, 1=INFO, 2+=DEBUG).
        color: Whether colored terminal output is enabled.
        config: Effective configuration (defaults when no file was found).
    """

    __slots__ = ("config_path", "verbose", "color", "config")

    def __init__(self) -> None:
        self.config_path: Optional[Path] = None
        self.verbose: int = 0
        self.color: bool = True
        self.config: DepWatchConfig = DepWatchConfig()


#: Click decorator for injecting :class:`DepWatchContext` into commands.
pass_context = click.make_pass_decorator(DepWatchContext, ensure=True)
