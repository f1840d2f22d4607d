"""Version reconciliation for depwatch.

The :class:`ReconciliationEngine` turns one :class:`DependencyEntry` into
one :class:`DependencyReport`. Per dependency it:

1. normalizes the current version; an invalid one ends the evaluation
   with an ``InvalidVersion`` error;
2. resolves the latest upstream version through its resolver; failures
   end the evaluation with the resolver's message kept verbatim;
3. compares the two versions; when the upstream is not strictly newer the
   dependency is up to date and no changelog is fetched;
4. otherwise scans every release newer than the current version for
   security keywords and excerpts the newest one;
5. classifies the result.

Archive status is looked up once a version has been resolved, whether or
not an update is needed, so that deprecated upstreams are always visible.

Status precedence, highest first::

    deprecated (update needed) > deprecated (up to date) > security urgent
    > update recommended, changelog unavailable > update recommended
    > up to date > error

Evaluations are sequential and share no state; a failure in one never
prevents the others from running.

Typical usage::

    async with HTTPClient() as http:
        engine = ReconciliationEngine(GitHubSource(http, token=token))
        reports = await engine.evaluate_all(entries)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional

from depwatch.constants import NOT_AVAILABLE
from depwatch.core.changelog import ChangelogExtractor
from depwatch.core.resolvers import UpstreamResolver
from depwatch.core.source_url import github_repo_url
from depwatch.exceptions import DepWatchError, InvalidVersionError
from depwatch.models.entry import DependencyEntry
from depwatch.models.report import DependencyReport, ReportStatus
from depwatch.models.upstream import ReleaseInfo, UpstreamVersionInfo
from depwatch.utils.logger import get_logger
from depwatch.utils.version_utils import (
    Comparison,
    NormalizedVersion,
    compare,
    get_update_type,
    is_newer,
    normalize,
    version_from_tag,
)

logger = get_logger("engine")

ProgressCallback = Callable[[int, int, DependencyReport], None]


def classify(
    *,
    archived: bool,
    update_needed: bool,
    security_patch: bool,
    changelog_available: bool,
) -> ReportStatus:
    """Pick the final status for a successfully resolved dependency.

    Examples:
        >>> classify(archived=True, update_needed=False,
        ...          security_patch=True, changelog_available=True).value
        'deprecated-up-to-date'
        >>> classify(archived=False, update_needed=True,
        ...          security_patch=False, changelog_available=False).value
        'update-recommended-changelog-unavailable'
    """
    if archived:
        if update_needed:
            return ReportStatus.DEPRECATED_UPDATE_NEEDED
        return ReportStatus.DEPRECATED_UP_TO_DATE
    if security_patch:
        return ReportStatus.SECURITY_URGENT
    if not update_needed:
        return ReportStatus.UP_TO_DATE
    if not changelog_available:
        return ReportStatus.UPDATE_RECOMMENDED_NO_CHANGELOG
    return ReportStatus.UPDATE_RECOMMENDED


@dataclass(frozen=True)
class ChangelogScan:
    """What the release scan found for versions newer than the current one.

    Attributes:
        excerpt: Excerpt of the newest newer release, or ``"N/A"``.
        security_patch: Any newer release mentions a security keyword.
        release: The newest newer release, when one was found.
        message: Why the changelog is missing or incomplete, if it is.
    """

    excerpt: str = NOT_AVAILABLE
    security_patch: bool = False
    release: Optional[ReleaseInfo] = None
    message: Optional[str] = None

    @property
    def available(self) -> bool:
        return self.excerpt != NOT_AVAILABLE


class ReconciliationEngine:
    """Evaluates dependencies against one upstream resolver.

    Args:
        resolver: The upstream variant for the manifest being audited.
        extractor: Changelog extractor; a default one is created if
            omitted.
        check_archived: Look up repository archive status.
    """

    def __init__(
        self,
        resolver: UpstreamResolver,
        extractor: Optional[ChangelogExtractor] = None,
        *,
        check_archived: bool = True,
    ) -> None:
        self.resolver = resolver
        self.extractor = extractor or ChangelogExtractor()
        self.check_archived = check_archived

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def evaluate_all(
        self,
        entries: Iterable[DependencyEntry],
        *,
        progress_callback: Optional[ProgressCallback] = None,
    ) -> List[DependencyReport]:
        """Evaluate entries one after another, in manifest order.

        Unexpected exceptions from one entry are logged and recorded as an
        error report for that entry only.

        Args:
            entries: Dependencies to audit. Duplicates are reported twice.
            progress_callback: Optional callback invoked as
                ``(completed, total, report)`` after each entry.
        """
        entry_list = list(entries)
        reports: List[DependencyReport] = []

        for entry in entry_list:
            try:
                report = await self.evaluate(entry)
            except Exception as exc:
                logger.exception("Unexpected failure while auditing %s", entry.name)
                report = self._error_report(
                    entry,
                    normalize(entry.raw_version).display,
                    message=f"Unexpected error: {exc}",
                    error_kind=type(exc).__name__,
                )

            reports.append(report)
            if progress_callback:
                progress_callback(len(reports), len(entry_list), report)

        return reports

    async def evaluate(self, entry: DependencyEntry) -> DependencyReport:
        """Audit a single dependency.

        Expected failures (invalid versions, unreachable or rate-limited
        upstreams, unresolvable sources) are returned as ``error`` reports;
        they are never raised.
        """
        logger.info("Checking %s (current: %s)", entry.name, entry.raw_version)

        current = normalize(entry.raw_version)
        if not current.valid:
            exc = InvalidVersionError(
                f"Invalid current version: {entry.raw_version}",
                version=entry.raw_version,
            )
            return self._error_from_exception(entry, current, exc)

        try:
            upstream = await self.resolver.resolve_latest(entry)
        except DepWatchError as exc:
            logger.warning("Could not resolve %s: %s", entry.name, exc.message)
            return self._error_from_exception(entry, current, exc)

        latest = normalize(version_from_tag(upstream.latest_version))
        comparison = compare(current, latest)
        update_needed = comparison is Comparison.LESS

        if comparison is Comparison.INCOMPARABLE:
            logger.debug(
                "Latest version %r of %s is not a semantic version",
                upstream.latest_version,
                entry.name,
            )

        archived = await self._is_archived(upstream)

        if not update_needed:
            return self._build_report(
                entry,
                current,
                latest,
                upstream,
                archived=archived,
                update_needed=False,
                scan=ChangelogScan(),
            )

        scan = await self._scan_changelog(upstream, current, latest)
        return self._build_report(
            entry,
            current,
            latest,
            upstream,
            archived=archived,
            update_needed=True,
            scan=scan,
        )

    # ------------------------------------------------------------------
    # Resolution steps
    # ------------------------------------------------------------------

    async def _is_archived(self, upstream: UpstreamVersionInfo) -> bool:
        """Return the archive flag; lookup failures count as not archived."""
        if upstream.archived is not None:
            return upstream.archived
        if not (self.check_archived and upstream.has_repository):
            return False

        try:
            metadata = await self.resolver.repo_metadata(upstream.owner, upstream.repo)
        except DepWatchError as exc:
            logger.warning(
                "Could not fetch repository details for %s/%s: %s",
                upstream.owner,
                upstream.repo,
                exc.message,
            )
            return False

        if metadata.archived:
            logger.info("Repository %s/%s is archived", upstream.owner, upstream.repo)
        return metadata.archived

    async def _scan_changelog(
        self,
        upstream: UpstreamVersionInfo,
        current: NormalizedVersion,
        latest: NormalizedVersion,
    ) -> ChangelogScan:
        """Scan the releases an upgrade to *latest* would skip.

        Only versions above *current* and at or below *latest* count, so
        pre-releases published after the latest release are ignored.
        """
        if not upstream.has_repository:
            return ChangelogScan(message="Repository link missing")

        failure: Optional[str] = None
        try:
            releases = await self.resolver.list_releases(upstream.owner, upstream.repo)
        except DepWatchError as exc:
            logger.warning(
                "Could not list releases for %s/%s: %s",
                upstream.owner,
                upstream.repo,
                exc.message,
            )
            failure = exc.message
            releases = []

        # The release resolved as "latest" may be missing from the listing
        if upstream.release and all(r.tag != upstream.release.tag for r in releases):
            releases = [upstream.release, *releases]

        security_patch = False
        newest: Optional[ReleaseInfo] = None
        newest_version: Optional[NormalizedVersion] = None

        for release in releases:
            version = normalize(version_from_tag(release.tag))
            if not is_newer(version, current):
                continue
            if latest.valid and compare(version, latest) is Comparison.GREATER:
                continue

            if self.extractor.is_security_related(release.body, release.name):
                logger.debug("Security keyword in %s release notes", release.tag)
                security_patch = True

            if newest_version is None or is_newer(version, newest_version):
                newest, newest_version = release, version

        if newest is None:
            if failure is None:
                failure = (
                    "Only tags exist; no release notes available"
                    if upstream.from_tags
                    else "No release notes found for newer versions"
                )
            return ChangelogScan(security_patch=security_patch, message=failure)

        excerpt = self.extractor.summarize(newest.body)
        if excerpt == NOT_AVAILABLE and failure is None:
            failure = f"Release {newest.tag} has no release notes"

        return ChangelogScan(
            excerpt=excerpt,
            security_patch=security_patch,
            release=newest,
            message=failure,
        )

    # ------------------------------------------------------------------
    # Report construction
    # ------------------------------------------------------------------

    def _build_report(
        self,
        entry: DependencyEntry,
        current: NormalizedVersion,
        latest: NormalizedVersion,
        upstream: UpstreamVersionInfo,
        *,
        archived: bool,
        update_needed: bool,
        scan: ChangelogScan,
    ) -> DependencyReport:
        status = classify(
            archived=archived,
            update_needed=update_needed,
            security_patch=scan.security_patch,
            changelog_available=scan.available,
        )

        logger.info("%s: %s", entry.name, status.value)

        return DependencyReport(
            name=entry.name,
            current_version=current.display,
            latest_version=latest.display,
            status=status,
            update_needed=update_needed,
            security_patch=scan.security_patch,
            archived=archived,
            changelog=scan.excerpt,
            source_link=self._source_link(entry, upstream, scan.release),
            update_type=get_update_type(current, latest) if update_needed else None,
            message=scan.message if update_needed else None,
            owner=upstream.owner,
            repo=upstream.repo,
            release_tag=scan.release.tag if scan.release else None,
        )

    @staticmethod
    def _source_link(
        entry: DependencyEntry,
        upstream: UpstreamVersionInfo,
        release: Optional[ReleaseInfo],
    ) -> Optional[str]:
        """Most specific browser link available for the dependency."""
        if not upstream.has_repository:
            return upstream.source_url or entry.source_url

        repo_url = github_repo_url(upstream.owner, upstream.repo)
        if release is not None:
            return release.html_url or f"{repo_url}/releases/tag/{release.tag}"
        if upstream.from_tags:
            return f"{repo_url}/tags"
        return repo_url

    def _error_from_exception(
        self,
        entry: DependencyEntry,
        current: NormalizedVersion,
        exc: DepWatchError,
    ) -> DependencyReport:
        return self._error_report(
            entry,
            current.display,
            message=exc.message,
            error_kind=exc.kind,
        )

    @staticmethod
    def _error_report(
        entry: DependencyEntry,
        current_display: str,
        *,
        message: str,
        error_kind: str,
    ) -> DependencyReport:
        logger.info("%s: error (%s)", entry.name, error_kind)
        return DependencyReport(
            name=entry.name,
            current_version=current_display,
            status=ReportStatus.ERROR,
            source_link=entry.source_url,
            message=message,
            error_kind=error_kind,
        )
