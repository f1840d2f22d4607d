"""Report rendering for depwatch.

Turns an ordered sequence of :class:`DependencyReport` objects into a
markdown document (or JSON) and writes it next to the audited manifest.
Renderers only read report fields; they never re-derive owner, repo, or
tag information from formatted text.
"""

from __future__ import annotations

import json
from collections import Counter
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

from depwatch.constants import DEFAULT_REPORT_NAME, NOT_AVAILABLE
from depwatch.core.manifest import Manifest, ManifestKind
from depwatch.models.report import DependencyReport, ReportStatus
from depwatch.utils import get_logger, safe_write_file

logger = get_logger("renderer")

#: Supported output formats and their file extensions.
REPORT_FORMATS: Dict[str, str] = {"markdown": ".md", "json": ".json"}

_TABLE_HEADER = (
    "| # | Dependency | Status | Current | Latest | Update | Changelog | Source |\n"
    "| :---: | :--- | :--- | :---: | :---: | :---: | :--- | :--- |\n"
)


def _cell(text: Optional[str]) -> str:
    """Make arbitrary text safe for a single markdown table cell."""
    if not text:
        return "-"
    return " ".join(text.split()).replace("\\", "\\\\").replace("|", "\\|")


def _status_cell(report: DependencyReport) -> str:
    label = report.status.label
    if report.update_needed or report.security_patch or report.archived:
        return f"**{label}**"
    return label


def _latest_cell(report: DependencyReport) -> str:
    if report.latest_version == NOT_AVAILABLE:
        return NOT_AVAILABLE
    if report.source_link and report.update_needed:
        return f"[`{report.latest_version}`]({report.source_link})"
    return f"`{report.latest_version}`"


def _changelog_cell(report: DependencyReport) -> str:
    if report.is_error:
        kind = f"{report.error_kind}: " if report.error_kind else ""
        return _cell(f"❌ {kind}{report.message or 'unknown error'}")
    if report.changelog != NOT_AVAILABLE:
        return report.changelog
    if report.update_needed and report.message:
        return _cell(report.message)
    return NOT_AVAILABLE


def _source_cell(report: DependencyReport) -> str:
    if report.repository and report.repository_url:
        return f"[{report.repository}]({report.repository_url})"
    return _cell(report.source_link)


def render_markdown(
    reports: Sequence[DependencyReport],
    *,
    kind: ManifestKind = ManifestKind.REPO_LIST,
    project_name: Optional[str] = None,
    project_version: Optional[str] = None,
) -> str:
    """Render reports as a markdown document.

    Args:
        reports: Reports in the order they should appear.
        kind: Manifest kind, which selects the title.
        project_name: Project name shown under the title, if known.
        project_version: Project version shown next to the name.
    """
    lines: List[str] = [f"# 📈 {kind.report_title}\n\n"]

    if project_name:
        version = f" (`{project_version}`)" if project_version else ""
        lines.append(f"## Project: **{project_name}**{version}\n\n")

    lines.append(
        "This report compares the versions pinned in your manifest against "
        "the latest upstream releases.\n"
    )
    lines.append(
        "> **Note:** 'Update Recommended' means updating is advised; "
        "security patches and archived upstreams are called out explicitly.\n\n"
    )

    lines.append("## Summary\n\n")
    counts = Counter(report.status for report in reports)
    lines.append(f"* Dependencies checked: **{len(reports)}**\n")
    for status in ReportStatus:
        if counts.get(status):
            lines.append(f"* {status.label}: **{counts[status]}**\n")
    lines.append("\n---\n\n")

    if not reports:
        lines.append("_No dependencies were audited._\n")
        return "".join(lines)

    lines.append("## Dependencies\n\n")
    lines.append(_TABLE_HEADER)

    for index, report in enumerate(reports, start=1):
        lines.append(
            f"| {index} | `{report.name}` | {_status_cell(report)} "
            f"| `{report.current_version}` | {_latest_cell(report)} "
            f"| {report.update_type or '-'} | {_changelog_cell(report)} "
            f"| {_source_cell(report)} |\n"
        )

    return "".join(lines)


def render_json(reports: Sequence[DependencyReport]) -> str:
    """Render reports as a pretty-printed JSON array."""
    data = [report.to_json() for report in reports]
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def default_report_path(manifest_path: Union[str, Path], fmt: str = "markdown") -> Path:
    """Report path used when none is given: next to the manifest.

    Examples:
        >>> default_report_path("backend/rebar.config").as_posix()
        'backend/report.md'
    """
    return Path(manifest_path).parent / f"{DEFAULT_REPORT_NAME}{REPORT_FORMATS[fmt]}"


def write_report(
    reports: Sequence[DependencyReport],
    output_path: Union[str, Path],
    *,
    manifest: Optional[Manifest] = None,
    fmt: str = "markdown",
) -> Path:
    """Render *reports* and write them to *output_path*.

    Markdown output gets a ``.md`` suffix appended when missing.

    Returns:
        The path that was written.
    """
    path = Path(output_path)

    if fmt == "json":
        content = render_json(reports)
    else:
        if path.suffix.lower() != ".md":
            path = path.with_name(path.name + ".md")
        content = render_markdown(
            reports,
            kind=manifest.kind if manifest else ManifestKind.REPO_LIST,
            project_name=manifest.project_name if manifest else None,
            project_version=manifest.project_version if manifest else None,
        )

    written = safe_write_file(path, content)
    logger.info("Report written to %s", written)
    return written
