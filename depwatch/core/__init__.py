"""
Core functionality exports for depwatch.

Importing from here keeps user-facing imports clean and stable:

    from depwatch.core import ReconciliationEngine, GitHubSource
"""

from __future__ import annotations

from depwatch.core.changelog import ChangelogExcerpt, ChangelogExtractor
from depwatch.core.engine import ReconciliationEngine, classify
from depwatch.core.manifest import (
    Manifest,
    ManifestKind,
    ManifestParser,
    detect_manifest_kind,
    load_manifest,
)
from depwatch.core.renderer import (
    default_report_path,
    render_json,
    render_markdown,
    write_report,
)
from depwatch.core.resolvers import (
    GitHubSource,
    NpmRegistrySource,
    UpstreamResolver,
    select_latest_tag,
)
from depwatch.core.source_url import parse_repo_url

__all__ = [
    "ChangelogExcerpt",
    "ChangelogExtractor",
    "ReconciliationEngine",
    "classify",
    "Manifest",
    "ManifestKind",
    "ManifestParser",
    "detect_manifest_kind",
    "load_manifest",
    "default_report_path",
    "render_json",
    "render_markdown",
    "write_report",
    "GitHubSource",
    "NpmRegistrySource",
    "UpstreamResolver",
    "select_latest_tag",
    "parse_repo_url",
]
