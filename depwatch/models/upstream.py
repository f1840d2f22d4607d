"""
Upstream data models for depwatch.

These value objects describe what an upstream source (GitHub or the npm
registry) reported for one dependency during one evaluation. They are
never cached across evaluations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


@dataclass(frozen=True)
class ReleaseInfo:
    """A published release on a source-control host.

    Attributes:
        tag: Tag name exactly as published (``v1.3.0``, ``pkg@1.3.0``).
        name: Release title; may be empty.
        body: Release notes; may be empty.
        html_url: Browser URL of the release page, if provided.
    """

    tag: str
    name: str = ""
    body: str = ""
    html_url: Optional[str] = None

    @classmethod
    def from_api(cls, payload: Dict[str, Any]) -> "ReleaseInfo":
        """Build a release from a GitHub REST API release object."""
        return cls(
            tag=str(payload.get("tag_name") or ""),
            name=str(payload.get("name") or ""),
            body=str(payload.get("body") or ""),
            html_url=payload.get("html_url"),
        )


@dataclass(frozen=True)
class RepoMetadata:
    """Repository-level facts used to flag unmaintained upstreams."""

    archived: bool = False
    html_url: Optional[str] = None


@dataclass(frozen=True)
class UpstreamVersionInfo:
    """The newest version an upstream knows about.

    Attributes:
        latest_version: Latest version string as reported upstream.
        owner: Repository owner, when a repository is known.
        repo: Repository name, when a repository is known.
        release: The release behind ``latest_version``, when it came from
            a published release rather than a bare tag.
        from_tags: ``True`` when the version was picked from the tag list
            because the repository has no releases.
        source_url: Repository URL declared by a package registry.
        archived: Archived flag, when the source already knows it.
    """

    latest_version: str
    owner: str = ""
    repo: str = ""
    release: Optional[ReleaseInfo] = None
    from_tags: bool = False
    source_url: Optional[str] = None
    archived: Optional[bool] = None

    @property
    def has_repository(self) -> bool:
        """True when both owner and repo are known."""
        return bool(self.owner and self.repo)

    @property
    def body(self) -> Optional[str]:
        """Release notes of the latest release, if any."""
        return self.release.body if self.release else None
