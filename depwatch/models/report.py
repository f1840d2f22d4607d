"""
Dependency report model for depwatch.

A :class:`DependencyReport` is the immutable result of evaluating one
dependency. Renderers consume only the fields defined here; owner, repo,
and release tag are carried as structured data so that no renderer ever
has to parse them back out of formatted text.
"""

from __future__ import annotations

from enum import Enum
from dataclasses import dataclass
from typing import Any, Dict, Optional

from depwatch.constants import GITHUB_WEB_URL, NOT_AVAILABLE


class ReportStatus(str, Enum):
    """Final classification of a dependency, highest precedence first."""

    DEPRECATED_UPDATE_NEEDED = "deprecated-update-needed"
    DEPRECATED_UP_TO_DATE = "deprecated-up-to-date"
    SECURITY_URGENT = "security-urgent"
    UPDATE_RECOMMENDED_NO_CHANGELOG = "update-recommended-changelog-unavailable"
    UPDATE_RECOMMENDED = "update-recommended"
    UP_TO_DATE = "up-to-date"
    ERROR = "error"

    @property
    def label(self) -> str:
        """Human-readable label used in reports."""
        return _STATUS_LABELS[self]

    @property
    def precedence(self) -> int:
        """Rank of this status; lower numbers win."""
        return list(ReportStatus).index(self)

    @property
    def is_deprecated(self) -> bool:
        return self in (
            ReportStatus.DEPRECATED_UPDATE_NEEDED,
            ReportStatus.DEPRECATED_UP_TO_DATE,
        )


_STATUS_LABELS: Dict[ReportStatus, str] = {
    ReportStatus.DEPRECATED_UPDATE_NEEDED: "⛔ DEPRECATED (Update Needed)",
    ReportStatus.DEPRECATED_UP_TO_DATE: "⛔ DEPRECATED (Up to date)",
    ReportStatus.SECURITY_URGENT: "🚨 URGENT Update Required (Security Patch)",
    ReportStatus.UPDATE_RECOMMENDED_NO_CHANGELOG: (
        "🔄 Update Recommended (Changelog unavailable)"
    ),
    ReportStatus.UPDATE_RECOMMENDED: "🔄 Update Recommended",
    ReportStatus.UP_TO_DATE: "✅ Up to date",
    ReportStatus.ERROR: "❌ Error",
}


@dataclass(frozen=True)
class DependencyReport:
    """Outcome of auditing a single dependency.

    Attributes:
        name: Dependency name as declared in the manifest.
        current_version: Current version in display form.
        latest_version: Latest upstream version in display form, or
            ``"N/A"`` when it could not be determined.
        status: Final classification.
        update_needed: Upstream has a strictly newer version.
        security_patch: A skipped release mentions a security keyword.
        archived: The upstream repository is archived.
        changelog: Excerpt of the newest skipped release, or ``"N/A"``.
        source_link: Browser link for the dependency's upstream.
        update_type: ``major``/``minor``/``patch``/``prerelease`` when an
            update is needed.
        message: Error or warning detail retained verbatim.
        error_kind: Taxonomy name of the error (``InvalidVersion``, ...).
        owner: Upstream repository owner, when resolved.
        repo: Upstream repository name, when resolved.
        release_tag: Tag of the newest skipped release, when known.
    """

    name: str
    current_version: str
    status: ReportStatus
    latest_version: str = NOT_AVAILABLE
    update_needed: bool = False
    security_patch: bool = False
    archived: bool = False
    changelog: str = NOT_AVAILABLE
    source_link: Optional[str] = None
    update_type: Optional[str] = None
    message: Optional[str] = None
    error_kind: Optional[str] = None
    owner: str = ""
    repo: str = ""
    release_tag: Optional[str] = None

    # ------------------------------------------------------------------
    # Derived properties
    # ------------------------------------------------------------------

    @property
    def is_error(self) -> bool:
        return self.status is ReportStatus.ERROR

    @property
    def repository(self) -> Optional[str]:
        """``owner/repo`` when both are known."""
        if self.owner and self.repo:
            return f"{self.owner}/{self.repo}"
        return None

    @property
    def repository_url(self) -> Optional[str]:
        """Browser URL of the upstream repository."""
        if self.repository:
            return f"{GITHUB_WEB_URL}/{self.repository}"
        return None

    # ------------------------------------------------------------------
    # Serialization
    # ------------------------------------------------------------------

    def to_json(self) -> Dict[str, Any]:
        """Serialize the report to a JSON-compatible dictionary.

        Optional fields are omitted when empty.
        """
        entry: Dict[str, Any] = {
            "name": self.name,
            "status": self.status.value,
            "versions": {
                "current": self.current_version,
                "latest": self.latest_version,
            },
            "update_needed": self.update_needed,
            "security_patch": self.security_patch,
            "archived": self.archived,
        }

        if self.update_type:
            entry["update_type"] = self.update_type
        if self.changelog != NOT_AVAILABLE:
            entry["changelog"] = self.changelog
        if self.repository:
            entry["repository"] = self.repository
        if self.release_tag:
            entry["release_tag"] = self.release_tag
        if self.source_link:
            entry["source"] = self.source_link
        if self.message:
            entry["message"] = self.message
        if self.error_kind:
            entry["error"] = self.error_kind

        return entry

    def __str__(self) -> str:
        if self.update_needed:
            return (
                f"{self.name} {self.current_version} → {self.latest_version} "
                f"({self.status.value})"
            )
        return f"{self.name} {self.current_version} ({self.status.value})"
