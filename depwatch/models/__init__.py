"""
Unified data model exports for depwatch.

Example:
    >>> from depwatch.models import DependencyEntry, DependencyReport, ReportStatus
"""

from __future__ import annotations

from depwatch.models.entry import DependencyEntry
from depwatch.models.report import DependencyReport, ReportStatus
from depwatch.models.upstream import ReleaseInfo, RepoMetadata, UpstreamVersionInfo

__all__ = [
    "DependencyEntry",
    "DependencyReport",
    "ReportStatus",
    "ReleaseInfo",
    "RepoMetadata",
    "UpstreamVersionInfo",
]
