"""Audit command implementation for depwatch.

Compares the versions pinned in a dependency manifest with the latest
upstream releases and writes a report next to the manifest.

The command wires together four core components:

1. **ManifestParser** reads ``rebar.config``, ``package.json`` or a plain
   ``owner/repo VERSION`` list into :class:`DependencyEntry` objects.
2. **GitHubSource / NpmRegistrySource** resolve the latest upstream
   version and release notes for each entry.
3. **ReconciliationEngine** evaluates entries one after another and
   classifies each one.
4. **Renderer** writes the markdown (or JSON) report.

Typical usage::

    # Audit an Erlang project, report written to backend/report.md
    $ depwatch audit backend/rebar.config

    # Frontend dependencies, including devDependencies
    $ depwatch audit frontend/package.json --include-dev

    # Fail a CI job when anything is outdated
    $ depwatch audit repos.txt --fail-on-updates
"""

from __future__ import annotations

import sys
import click
import asyncio
from pathlib import Path
from typing import Any, Dict, List, Optional

from depwatch.constants import GITHUB_TOKEN_ENV, NOT_AVAILABLE
from depwatch.context import pass_context, DepWatchContext
from depwatch.exceptions import DepWatchError
from depwatch.models import DependencyReport, ReportStatus
from depwatch.core import (
    GitHubSource,
    ManifestKind,
    NpmRegistrySource,
    ReconciliationEngine,
    UpstreamResolver,
    default_report_path,
    load_manifest,
    write_report,
)
from depwatch.core.manifest import manifest_summary
from depwatch.utils import (
    HTTPClient,
    colorize_status,
    get_logger,
    print_error,
    print_success,
    print_table,
    print_warning,
    validate_path,
)

logger = get_logger("commands.audit")

_KIND_CHOICES = ["auto"] + [kind.value for kind in ManifestKind]


@click.command()
@click.argument(
    "manifest",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--kind",
    "-k",
    type=click.Choice(_KIND_CHOICES, case_sensitive=False),
    default="auto",
    help="Manifest format (detected from the file name by default).",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="Report path (default: report.md next to the manifest).",
)
@click.option(
    "--format",
    "-f",
    type=click.Choice(["markdown", "json"], case_sensitive=False),
    default="markdown",
    help="Report format.",
)
@click.option(
    "--include-dev",
    is_flag=True,
    default=None,
    help="Also audit devDependencies in package.json.",
)
@click.option(
    "--github-token",
    envvar=GITHUB_TOKEN_ENV,
    default=None,
    help=f"GitHub access token (default: ${GITHUB_TOKEN_ENV}).",
)
@click.option(
    "--fail-on-updates",
    is_flag=True,
    help="Exit with status 1 when any dependency needs an update.",
)
@pass_context
def audit(
    ctx: DepWatchContext,
    manifest: Path,
    kind: str,
    output: Optional[Path],
    format: str,
    include_dev: Optional[bool],
    github_token: Optional[str],
    fail_on_updates: bool,
) -> None:
    """Audit MANIFEST against the latest upstream releases.

    Every dependency is checked sequentially. Failures are recorded in the
    report for that dependency only; the audit always runs to the end.

    Args:
        ctx: Depwatch context with configuration and verbosity settings.
        manifest: Path to the manifest file.
        kind: Manifest format, or ``auto``.
        output: Report path; defaults to ``report.md`` beside the manifest.
        format: Report format (``markdown`` or ``json``).
        include_dev: Audit ``devDependencies`` too. Overrides the config
            file when given.
        github_token: GitHub access token.
        fail_on_updates: Exit 1 when any dependency needs an update.

    Exits:
        0 on success, 1 on error or when ``--fail-on-updates`` is set and
        updates were found.
    """
    try:
        needs_update = asyncio.run(
            _audit_async(
                ctx,
                manifest,
                kind=None if kind == "auto" else ManifestKind(kind.lower()),
                output=output,
                fmt=format.lower(),
                include_dev=include_dev,
                github_token=github_token,
            )
        )
        sys.exit(1 if fail_on_updates and needs_update else 0)

    except DepWatchError as e:
        print_error(f"{e}")
        sys.exit(1)


# ---------------------------------------------------------------------------
# Async orchestration
# ---------------------------------------------------------------------------


async def _audit_async(
    ctx: DepWatchContext,
    manifest_path: Path,
    *,
    kind: Optional[ManifestKind],
    output: Optional[Path],
    fmt: str,
    include_dev: Optional[bool],
    github_token: Optional[str],
) -> bool:
    """Async implementation of the audit command.

    Returns:
        ``True`` if any dependency needs an update.

    Raises:
        DepWatchError: The manifest cannot be read or parsed, or the report
            cannot be written.
    """
    config = ctx.config
    if include_dev is None:
        include_dev = config.include_dev_dependencies

    manifest = load_manifest(
        validate_path(manifest_path),
        kind,
        include_dev_dependencies=include_dev,
    )
    logger.debug("Manifest: %s", manifest_summary(manifest))

    for note in manifest.skipped:
        logger.info("Skipped %s", note)

    if not manifest.entries:
        print_warning(f"No dependencies found in {manifest_path}")

    if not github_token:
        print_warning(
            f"{GITHUB_TOKEN_ENV} is not set; GitHub requests are unauthenticated "
            "and heavily rate limited"
        )

    async with HTTPClient(timeout=config.timeout) as http:
        resolver = _build_resolver(manifest.kind, http, ctx, github_token)
        engine = ReconciliationEngine(resolver)
        reports = await engine.evaluate_all(manifest.entries)

    if reports:
        _display_table(reports)

    target = output or default_report_path(manifest_path, fmt)
    written = write_report(reports, target, manifest=manifest, fmt=fmt)

    _print_summary(reports, written)
    return any(report.update_needed for report in reports)


def _build_resolver(
    kind: ManifestKind,
    http: HTTPClient,
    ctx: DepWatchContext,
    github_token: Optional[str],
) -> UpstreamResolver:
    """Pick the upstream variant for a manifest kind."""
    config = ctx.config
    github = GitHubSource(
        http,
        token=github_token,
        api_url=config.github_api_url,
        release_limit=config.release_limit,
        tag_limit=config.tag_limit,
    )
    if kind is ManifestKind.NPM:
        return NpmRegistrySource(http, github, registry_url=config.npm_registry_url)
    return github


# ---------------------------------------------------------------------------
# Console output
# ---------------------------------------------------------------------------


def _display_table(reports: List[DependencyReport]) -> None:
    """Render the audit results as a Rich table."""
    data = [_create_table_row(report) for report in reports]

    column_styles: Dict[str, Dict[str, Any]] = {
        "Dependency": {"style": "bold cyan", "no_wrap": True},
        "Status": {"no_wrap": True},
        "Current": {"justify": "center", "style": "dim"},
        "Latest": {"justify": "center", "style": "bold green"},
        "Update": {"justify": "center"},
        "Details": {"justify": "left", "no_wrap": False},
    }

    print_table(data, title="Dependency Audit", column_styles=column_styles)


def _create_table_row(report: DependencyReport) -> Dict[str, str]:
    if report.is_error:
        details = f"{report.error_kind}: {report.message}"
    elif report.changelog != NOT_AVAILABLE:
        details = report.changelog
    else:
        details = report.message or ""

    return {
        "Dependency": report.name,
        "Status": colorize_status(report.status.value, report.status.label),
        "Current": report.current_version,
        "Latest": report.latest_version,
        "Update": report.update_type or "-",
        "Details": details,
    }


def _print_summary(reports: List[DependencyReport], written: Path) -> None:
    errors = sum(1 for r in reports if r.is_error)
    updates = sum(1 for r in reports if r.update_needed)
    security = sum(1 for r in reports if r.status is ReportStatus.SECURITY_URGENT)
    deprecated = sum(1 for r in reports if r.status.is_deprecated)

    if security:
        print_warning(f"{security} dependency(ies) have security-related releases")
    if deprecated:
        print_warning(f"{deprecated} dependency(ies) have archived upstreams")
    if errors:
        print_warning(f"{errors} dependency(ies) could not be checked")
    if updates:
        print_warning(f"{updates} of {len(reports)} dependency(ies) need an update")
    elif reports and not errors:
        print_success("All dependencies are up to date!")

    print_success(f"Report written to {written}")
