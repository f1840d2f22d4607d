"""Upstream resolvers for depwatch.

A resolver answers three questions about a dependency's upstream: what is
the newest version, which releases exist, and is the repository archived.
Two variants exist:

- :class:`GitHubSource` reads a repository URL from the manifest and asks
  the GitHub REST API, preferring the latest published release and falling
  back to the highest semantic-version tag when no release exists.
- :class:`NpmRegistrySource` asks the npm registry for the ``latest``
  version and uses the repository URL declared there to read changelogs
  and archive status from GitHub.

Resolvers raise the upstream exceptions from :mod:`depwatch.exceptions`;
the reconciliation engine turns them into report data. Every resolver is
handed its :class:`~depwatch.utils.http.HTTPClient` explicitly.

Typical usage::

    async with HTTPClient() as http:
        github = GitHubSource(http, token=os.environ.get("GITHUB_TOKEN"))
        info = await github.resolve_latest(entry)
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence
from urllib.parse import quote

from depwatch.constants import (
    DEFAULT_RELEASE_LIMIT,
    DEFAULT_TAG_LIMIT,
    GITHUB_ACCEPT_HEADER,
    GITHUB_API_URL,
    NPM_REGISTRY_URL,
)
from depwatch.core.source_url import parse_repo_url
from depwatch.exceptions import (
    NoReleasesFoundError,
    SourceUnresolvableError,
    UpstreamNotFoundError,
    UpstreamUnreachableError,
)
from depwatch.models.entry import DependencyEntry
from depwatch.models.upstream import ReleaseInfo, RepoMetadata, UpstreamVersionInfo
from depwatch.utils.http import HTTPClient
from depwatch.utils.logger import get_logger
from depwatch.utils.version_utils import (
    Comparison,
    NormalizedVersion,
    compare,
    normalize,
    version_from_tag,
)

logger = get_logger("resolvers")


def select_latest_tag(tags: Sequence[str]) -> Optional[str]:
    """Pick the tag with the highest semantic version.

    Tags that do not normalize to a valid version (``nightly``,
    ``release-2024``) are ignored. When two tags have equal precedence the
    first one seen wins.

    Examples:
        >>> select_latest_tag(["v1.2.0", "nightly", "v1.10.0", "v1.9.9"])
        'v1.10.0'
        >>> select_latest_tag(["main"]) is None
        True
    """
    best_tag: Optional[str] = None
    best_version: Optional[NormalizedVersion] = None

    for tag in tags:
        version = normalize(version_from_tag(tag))
        if not version.valid:
            continue
        if best_version is None or compare(version, best_version) is Comparison.GREATER:
            best_tag, best_version = tag, version

    return best_tag


class UpstreamResolver(ABC):
    """Capabilities the reconciliation engine needs from an upstream."""

    #: Short name used in logs and reports.
    name: str = "upstream"

    @abstractmethod
    async def resolve_latest(self, entry: DependencyEntry) -> UpstreamVersionInfo:
        """Return the newest upstream version for *entry*.

        Raises:
            SourceUnresolvableError: No repository can be identified.
            NoReleasesFoundError: The repository has no usable version.
            UpstreamUnreachableError: The upstream could not be queried.
        """

    @abstractmethod
    async def list_releases(
        self,
        owner: str,
        repo: str,
        limit: Optional[int] = None,
    ) -> List[ReleaseInfo]:
        """Return published releases, newest first."""

    @abstractmethod
    async def repo_metadata(self, owner: str, repo: str) -> RepoMetadata:
        """Return repository-level metadata (archive status)."""


class GitHubSource(UpstreamResolver):
    """Resolver backed by the GitHub REST API.

    Args:
        http: Shared HTTP client.
        token: Personal access token. Without one, requests are
            unauthenticated and subject to much lower rate limits.
        api_url: API base URL (GitHub Enterprise installations differ).
        release_limit: Releases requested per changelog scan.
        tag_limit: Tags requested when falling back to tags.
    """

    name = "github"

    def __init__(
        self,
        http: HTTPClient,
        *,
        token: Optional[str] = None,
        api_url: str = GITHUB_API_URL,
        release_limit: int = DEFAULT_RELEASE_LIMIT,
        tag_limit: int = DEFAULT_TAG_LIMIT,
    ) -> None:
        self.http = http
        self.token = token or None
        self.api_url = api_url.rstrip("/")
        self.release_limit = release_limit
        self.tag_limit = tag_limit

    @property
    def authenticated(self) -> bool:
        return self.token is not None

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": GITHUB_ACCEPT_HEADER}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _repo_url(self, owner: str, repo: str, suffix: str = "") -> str:
        return f"{self.api_url}/repos/{quote(owner)}/{quote(repo)}{suffix}"

    async def _get(self, url: str, *, expected_type: Any = dict, **params: Any) -> Any:
        return await self.http.get_json(
            url,
            headers=self._headers(),
            params=params or None,
            expected_type=expected_type,
        )

    # ------------------------------------------------------------------
    # Capabilities
    # ------------------------------------------------------------------

    async def latest_release(self, owner: str, repo: str) -> ReleaseInfo:
        """Fetch the most recent published (non-draft, non-prerelease) release.

        Raises:
            UpstreamNotFoundError: The repository has no releases (or does
                not exist).
        """
        payload = await self._get(self._repo_url(owner, repo, "/releases/latest"))
        release = ReleaseInfo.from_api(payload)
        if not release.tag:
            raise UpstreamNotFoundError(
                f"Latest release of {owner}/{repo} has no tag",
                url=self._repo_url(owner, repo, "/releases/latest"),
            )
        return release

    async def list_tags(
        self,
        owner: str,
        repo: str,
        limit: Optional[int] = None,
    ) -> List[str]:
        """Return tag names in the order GitHub lists them."""
        payload = await self._get(
            self._repo_url(owner, repo, "/tags"),
            expected_type=list,
            per_page=limit or self.tag_limit,
        )
        return [
            str(item["name"])
            for item in payload
            if isinstance(item, dict) and item.get("name")
        ]

    async def list_releases(
        self,
        owner: str,
        repo: str,
        limit: Optional[int] = None,
    ) -> List[ReleaseInfo]:
        payload = await self._get(
            self._repo_url(owner, repo, "/releases"),
            expected_type=list,
            per_page=limit or self.release_limit,
        )
        releases = [
            ReleaseInfo.from_api(item)
            for item in payload
            if isinstance(item, dict) and not item.get("draft")
        ]
        return [release for release in releases if release.tag]

    async def repo_metadata(self, owner: str, repo: str) -> RepoMetadata:
        payload = await self._get(self._repo_url(owner, repo))
        return RepoMetadata(
            archived=bool(payload.get("archived", False)),
            html_url=payload.get("html_url"),
        )

    # ------------------------------------------------------------------
    # Latest-version resolution
    # ------------------------------------------------------------------

    async def resolve_latest(self, entry: DependencyEntry) -> UpstreamVersionInfo:
        owner, repo = parse_repo_url(entry.source_url or "")
        if not (owner and repo):
            raise SourceUnresolvableError(
                f"Cannot determine owner/repo for {entry.name}",
                source_url=entry.source_url,
            )
        return await self.resolve_repository(owner, repo)

    async def resolve_repository(self, owner: str, repo: str) -> UpstreamVersionInfo:
        """Resolve the newest version of ``owner/repo``: release first, then tags."""
        try:
            release = await self.latest_release(owner, repo)
        except UpstreamNotFoundError:
            logger.debug("No release for %s/%s; falling back to tags", owner, repo)
        else:
            return UpstreamVersionInfo(
                latest_version=release.tag,
                owner=owner,
                repo=repo,
                release=release,
            )

        tags = await self.list_tags(owner, repo)
        latest_tag = select_latest_tag(tags)

        if latest_tag is None:
            raise NoReleasesFoundError(
                "No releases or semantic version tags found",
                repository=f"{owner}/{repo}",
            )

        return UpstreamVersionInfo(
            latest_version=latest_tag,
            owner=owner,
            repo=repo,
            from_tags=True,
        )


class NpmRegistrySource(UpstreamResolver):
    """Resolver backed by the npm registry, with GitHub for changelogs.

    Args:
        http: Shared HTTP client.
        github: GitHub resolver used for releases and archive status of
            the repository each package declares.
        registry_url: Registry base URL.
    """

    name = "npm"

    def __init__(
        self,
        http: HTTPClient,
        github: GitHubSource,
        *,
        registry_url: str = NPM_REGISTRY_URL,
    ) -> None:
        self.http = http
        self.github = github
        self.registry_url = registry_url.rstrip("/")

    async def registry_latest(self, package_name: str) -> UpstreamVersionInfo:
        """Query the registry's ``latest`` document for *package_name*.

        The declared repository URL (``repository`` as a string or as an
        object with ``url``) is returned alongside the version.

        Raises:
            UpstreamNotFoundError: The package does not exist.
            UpstreamUnreachableError: The document has no version.
        """
        url = f"{self.registry_url}/{quote(package_name, safe='@')}/latest"
        payload = await self.http.get_json(url)

        version = payload.get("version")
        if not isinstance(version, str) or not version:
            raise UpstreamUnreachableError(
                f"npm registry returned no version for {package_name}",
                url=url,
            )

        return UpstreamVersionInfo(
            latest_version=version,
            source_url=_repository_url(payload.get("repository")),
        )

    async def resolve_latest(self, entry: DependencyEntry) -> UpstreamVersionInfo:
        info = await self.registry_latest(entry.name)
        owner, repo = parse_repo_url(info.source_url or "")

        if not (owner and repo):
            logger.debug("%s declares no usable repository URL", entry.name)
            return info

        return UpstreamVersionInfo(
            latest_version=info.latest_version,
            owner=owner,
            repo=repo,
            source_url=info.source_url,
        )

    async def list_releases(
        self,
        owner: str,
        repo: str,
        limit: Optional[int] = None,
    ) -> List[ReleaseInfo]:
        return await self.github.list_releases(owner, repo, limit)

    async def repo_metadata(self, owner: str, repo: str) -> RepoMetadata:
        return await self.github.repo_metadata(owner, repo)


def _repository_url(repository: Any) -> Optional[str]:
    """Read the ``repository`` field of a package document."""
    if isinstance(repository, str):
        return repository or None
    if isinstance(repository, dict):
        url = repository.get("url")
        return url if isinstance(url, str) and url else None
    return None
