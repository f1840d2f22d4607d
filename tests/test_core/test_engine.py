from __future__ import annotations

import httpx
import pytest
from typing import List, Optional
from unittest.mock import AsyncMock, MagicMock

from depwatch.core.engine import ReconciliationEngine, classify
from depwatch.core.resolvers import GitHubSource, UpstreamResolver
from depwatch.exceptions import (
    NoReleasesFoundError,
    SourceUnresolvableError,
    UpstreamRateLimitedError,
    UpstreamUnreachableError,
)
from depwatch.models import (
    DependencyEntry,
    ReleaseInfo,
    ReportStatus,
    RepoMetadata,
    UpstreamVersionInfo,
)
from depwatch.utils.http import HTTPClient


def _resolver(
    latest: Optional[UpstreamVersionInfo] = None,
    releases: Optional[List[ReleaseInfo]] = None,
    archived: bool = False,
) -> MagicMock:
    """A resolver double with AsyncMock capabilities."""
    resolver = MagicMock(spec=UpstreamResolver)
    resolver.resolve_latest = AsyncMock(return_value=latest)
    resolver.list_releases = AsyncMock(return_value=releases or [])
    resolver.repo_metadata = AsyncMock(return_value=RepoMetadata(archived=archived))
    return resolver


def _latest(tag: str, body: str = "", **kwargs) -> UpstreamVersionInfo:
    return UpstreamVersionInfo(
        latest_version=tag,
        owner="acme",
        repo="widget",
        release=ReleaseInfo(tag=tag, body=body),
        **kwargs,
    )


def _entry(version: str, name: str = "widget") -> DependencyEntry:
    return DependencyEntry(
        name=name,
        raw_version=version,
        source_url="https://github.com/acme/widget",
    )


@pytest.mark.unit
class TestClassify:
    """Tests for status precedence."""

    def test_deprecated_with_update_beats_everything(self) -> None:
        status = classify(
            archived=True, update_needed=True, security_patch=True, changelog_available=True
        )
        assert status is ReportStatus.DEPRECATED_UPDATE_NEEDED

    def test_deprecated_up_to_date(self) -> None:
        status = classify(
            archived=True, update_needed=False, security_patch=False, changelog_available=False
        )
        assert status is ReportStatus.DEPRECATED_UP_TO_DATE

    def test_security_beats_missing_changelog(self) -> None:
        status = classify(
            archived=False, update_needed=True, security_patch=True, changelog_available=False
        )
        assert status is ReportStatus.SECURITY_URGENT

    def test_changelog_unavailable(self) -> None:
        status = classify(
            archived=False, update_needed=True, security_patch=False, changelog_available=False
        )
        assert status is ReportStatus.UPDATE_RECOMMENDED_NO_CHANGELOG

    def test_update_recommended(self) -> None:
        status = classify(
            archived=False, update_needed=True, security_patch=False, changelog_available=True
        )
        assert status is ReportStatus.UPDATE_RECOMMENDED

    def test_up_to_date(self) -> None:
        status = classify(
            archived=False, update_needed=False, security_patch=False, changelog_available=False
        )
        assert status is ReportStatus.UP_TO_DATE

    def test_precedence_order_matches_enum(self) -> None:
        """Statuses are declared highest precedence first."""
        precedences = [status.precedence for status in ReportStatus]
        assert precedences == sorted(precedences)


@pytest.mark.unit
class TestEvaluate:
    """Tests for single-dependency evaluation."""

    @pytest.mark.asyncio
    async def test_security_release(self) -> None:
        """A vulnerability fix in a newer release makes the update urgent."""
        release = ReleaseInfo(tag="v1.3.0", body="Fixes a vulnerability in parsing")
        resolver = _resolver(_latest("v1.3.0", release.body), releases=[release])

        report = await ReconciliationEngine(resolver).evaluate(_entry("1.2.0"))

        assert report.status is ReportStatus.SECURITY_URGENT
        assert report.update_needed is True
        assert report.security_patch is True
        assert report.current_version == "v1.2.0"
        assert report.latest_version == "v1.3.0"
        assert report.update_type == "minor"
        assert report.changelog == "Fixes a vulnerability in parsing"
        assert report.release_tag == "v1.3.0"

    @pytest.mark.asyncio
    async def test_up_to_date_skips_changelog(self) -> None:
        """No releases are listed when nothing newer exists."""
        resolver = _resolver(_latest("v2.0.0"))

        report = await ReconciliationEngine(resolver).evaluate(_entry("2.0.0"))

        assert report.status is ReportStatus.UP_TO_DATE
        assert report.update_needed is False
        assert report.changelog == "N/A"
        assert report.update_type is None
        resolver.list_releases.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_ahead_of_upstream_is_up_to_date(self) -> None:
        resolver = _resolver(_latest("v1.0.0"))

        report = await ReconciliationEngine(resolver).evaluate(_entry("1.1.0"))

        assert report.status is ReportStatus.UP_TO_DATE
        resolver.list_releases.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_current_version(self) -> None:
        """Branch names never reach the resolver or the comparator."""
        resolver = _resolver(_latest("v1.0.0"))

        report = await ReconciliationEngine(resolver).evaluate(_entry("main"))

        assert report.status is ReportStatus.ERROR
        assert report.error_kind == "InvalidVersion"
        assert "main" in (report.message or "")
        assert report.latest_version == "N/A"
        resolver.resolve_latest.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_incomparable_latest_is_up_to_date(self) -> None:
        """A non-semantic upstream version is not treated as an update."""
        resolver = _resolver(_latest("nightly-2024"))

        report = await ReconciliationEngine(resolver).evaluate(_entry("1.0.0"))

        assert report.status is ReportStatus.UP_TO_DATE
        assert report.update_needed is False

    @pytest.mark.asyncio
    async def test_rate_limit_message_kept(self) -> None:
        """The reset time reaches the report verbatim."""
        resolver = _resolver()
        resolver.resolve_latest.side_effect = UpstreamRateLimitedError(
            "Rate limit exceeded. Try again after 2024-01-01T00:00:00Z.",
            reset_time="2024-01-01T00:00:00Z",
        )

        report = await ReconciliationEngine(resolver).evaluate(_entry("1.0.0"))

        assert report.status is ReportStatus.ERROR
        assert report.update_needed is False
        assert report.error_kind == "UpstreamRateLimited"
        assert "2024-01-01T00:00:00Z" in (report.message or "")

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error,kind",
        [
            (SourceUnresolvableError("Cannot determine owner/repo"), "SourceUnresolvable"),
            (NoReleasesFoundError("No releases or semantic version tags found"), "NoReleasesFound"),
            (UpstreamUnreachableError("HTTP 500 error"), "UpstreamUnreachable"),
        ],
    )
    async def test_resolver_failures_become_reports(self, error, kind: str) -> None:
        resolver = _resolver()
        resolver.resolve_latest.side_effect = error

        report = await ReconciliationEngine(resolver).evaluate(_entry("1.0.0"))

        assert report.status is ReportStatus.ERROR
        assert report.error_kind == kind
        assert report.message == error.message
        assert report.source_link == "https://github.com/acme/widget"

    @pytest.mark.asyncio
    async def test_security_flag_from_older_unseen_release(self) -> None:
        """Any skipped release can carry the security flag, not only the newest."""
        releases = [
            ReleaseInfo(tag="v1.4.0", body="New widgets"),
            ReleaseInfo(tag="v1.3.0", body="Addresses CVE-2024-1234"),
            ReleaseInfo(tag="v1.1.0", body="Old security fix"),
        ]
        resolver = _resolver(_latest("v1.4.0", "New widgets"), releases=releases)

        report = await ReconciliationEngine(resolver).evaluate(_entry("1.2.0"))

        assert report.status is ReportStatus.SECURITY_URGENT
        assert report.changelog == "New widgets"
        assert report.release_tag == "v1.4.0"

    @pytest.mark.asyncio
    async def test_releases_not_newer_are_ignored(self) -> None:
        """Security notes in releases at or below the current version do not count."""
        releases = [
            ReleaseInfo(tag="v1.3.0", body="Faster"),
            ReleaseInfo(tag="v1.2.0", body="security fix"),
        ]
        resolver = _resolver(_latest("v1.3.0", "Faster"), releases=releases)

        report = await ReconciliationEngine(resolver).evaluate(_entry("1.2.0"))

        assert report.status is ReportStatus.UPDATE_RECOMMENDED
        assert report.security_patch is False

    @pytest.mark.asyncio
    async def test_releases_above_latest_are_ignored(self) -> None:
        """A pre-release published after the latest release is outside the upgrade."""
        releases = [
            ReleaseInfo(tag="v2.0.0-beta.1", body="Security rework preview"),
            ReleaseInfo(tag="v1.3.0", body="Routine improvements"),
        ]
        resolver = _resolver(
            _latest("v1.3.0", "Routine improvements"), releases=releases
        )

        report = await ReconciliationEngine(resolver).evaluate(_entry("1.2.0"))

        assert report.release_tag == "v1.3.0"
        assert report.status is ReportStatus.UPDATE_RECOMMENDED
        assert report.security_patch is False
        assert report.changelog == "Routine improvements"

    @pytest.mark.asyncio
    async def test_newest_release_chosen_by_version(self) -> None:
        """The excerpt comes from the highest version, whatever the listing order."""
        releases = [
            ReleaseInfo(tag="v1.3.0", body="three"),
            ReleaseInfo(tag="v1.5.0", body="five"),
            ReleaseInfo(tag="v1.4.0", body="four"),
        ]
        resolver = _resolver(_latest("v1.5.0", "five"), releases=releases)

        report = await ReconciliationEngine(resolver).evaluate(_entry("1.0.0"))

        assert report.changelog == "five"

    @pytest.mark.asyncio
    async def test_latest_release_added_when_missing_from_listing(self) -> None:
        resolver = _resolver(_latest("v2.0.0", "Big release"), releases=[])

        report = await ReconciliationEngine(resolver).evaluate(_entry("1.0.0"))

        assert report.status is ReportStatus.UPDATE_RECOMMENDED
        assert report.changelog == "Big release"
        assert report.update_type == "major"

    @pytest.mark.asyncio
    async def test_empty_release_notes(self) -> None:
        resolver = _resolver(_latest("v1.1.0", ""), releases=[])

        report = await ReconciliationEngine(resolver).evaluate(_entry("1.0.0"))

        assert report.status is ReportStatus.UPDATE_RECOMMENDED_NO_CHANGELOG
        assert report.changelog == "N/A"
        assert report.message == "Release v1.1.0 has no release notes"

    @pytest.mark.asyncio
    async def test_tags_only(self) -> None:
        """Tag-resolved versions have no notes and link to the tag list."""
        latest = UpstreamVersionInfo(
            latest_version="v1.1.0", owner="acme", repo="widget", from_tags=True
        )
        resolver = _resolver(latest, releases=[])

        report = await ReconciliationEngine(resolver).evaluate(_entry("1.0.0"))

        assert report.status is ReportStatus.UPDATE_RECOMMENDED_NO_CHANGELOG
        assert report.message == "Only tags exist; no release notes available"
        assert report.source_link == "https://github.com/acme/widget/tags"

    @pytest.mark.asyncio
    async def test_release_listing_failure(self) -> None:
        """A failed listing still classifies, with the reason kept."""
        latest = UpstreamVersionInfo(latest_version="v1.1.0", owner="acme", repo="widget")
        resolver = _resolver(latest)
        resolver.list_releases.side_effect = UpstreamUnreachableError("HTTP 502 error")

        report = await ReconciliationEngine(resolver).evaluate(_entry("1.0.0"))

        assert report.status is ReportStatus.UPDATE_RECOMMENDED_NO_CHANGELOG
        assert report.message == "HTTP 502 error"

    @pytest.mark.asyncio
    async def test_no_repository(self) -> None:
        """npm packages without a repository cannot have a changelog."""
        resolver = _resolver(UpstreamVersionInfo(latest_version="2.0.0"))

        report = await ReconciliationEngine(resolver).evaluate(_entry("1.0.0", name="tiny"))

        assert report.status is ReportStatus.UPDATE_RECOMMENDED_NO_CHANGELOG
        assert report.message == "Repository link missing"
        resolver.repo_metadata.assert_not_awaited()
        resolver.list_releases.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_archived_up_to_date(self) -> None:
        """Deprecation is visible even without an update."""
        resolver = _resolver(_latest("v1.0.0"), archived=True)

        report = await ReconciliationEngine(resolver).evaluate(_entry("1.0.0"))

        assert report.status is ReportStatus.DEPRECATED_UP_TO_DATE
        assert report.archived is True

    @pytest.mark.asyncio
    async def test_archived_outranks_security(self) -> None:
        release = ReleaseInfo(tag="v1.1.0", body="security fix")
        resolver = _resolver(_latest("v1.1.0", release.body), releases=[release], archived=True)

        report = await ReconciliationEngine(resolver).evaluate(_entry("1.0.0"))

        assert report.status is ReportStatus.DEPRECATED_UPDATE_NEEDED
        assert report.security_patch is True

    @pytest.mark.asyncio
    async def test_archive_lookup_failure_is_not_archived(self) -> None:
        resolver = _resolver(_latest("v1.0.0"))
        resolver.repo_metadata.side_effect = UpstreamUnreachableError("boom")

        report = await ReconciliationEngine(resolver).evaluate(_entry("1.0.0"))

        assert report.status is ReportStatus.UP_TO_DATE
        assert report.archived is False

    @pytest.mark.asyncio
    async def test_archive_check_disabled(self) -> None:
        resolver = _resolver(_latest("v1.0.0"), archived=True)

        engine = ReconciliationEngine(resolver, check_archived=False)
        report = await engine.evaluate(_entry("1.0.0"))

        assert report.status is ReportStatus.UP_TO_DATE
        resolver.repo_metadata.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_monorepo_tag(self) -> None:
        """``pkg@1.2.0`` tags compare by their version part."""
        release = ReleaseInfo(tag="widget@1.2.0", body="Improvements")
        resolver = _resolver(_latest("widget@1.2.0", release.body), releases=[release])

        report = await ReconciliationEngine(resolver).evaluate(_entry("1.1.0"))

        assert report.latest_version == "v1.2.0"
        assert report.status is ReportStatus.UPDATE_RECOMMENDED
        assert report.source_link == "https://github.com/acme/widget/releases/tag/widget@1.2.0"

    @pytest.mark.asyncio
    async def test_release_html_url_preferred(self) -> None:
        release = ReleaseInfo(tag="v1.1.0", body="notes", html_url="https://example.test/r")
        latest = UpstreamVersionInfo(
            latest_version="v1.1.0", owner="acme", repo="widget", release=release
        )
        resolver = _resolver(latest, releases=[release])

        report = await ReconciliationEngine(resolver).evaluate(_entry("1.0.0"))

        assert report.source_link == "https://example.test/r"
        assert report.repository == "acme/widget"


@pytest.mark.unit
class TestEvaluateAll:
    """Tests for sequential evaluation of many entries."""

    @pytest.mark.asyncio
    async def test_order_and_isolation(self) -> None:
        """One failure does not stop the others; order is preserved."""
        resolver = _resolver()
        resolver.resolve_latest.side_effect = [
            _latest("v1.0.0"),
            UpstreamUnreachableError("down"),
            _latest("v3.0.0"),
        ]
        entries = [_entry("1.0.0", "a"), _entry("1.0.0", "b"), _entry("3.0.0", "c")]

        reports = await ReconciliationEngine(resolver).evaluate_all(entries)

        assert [r.name for r in reports] == ["a", "b", "c"]
        assert [r.status for r in reports] == [
            ReportStatus.UP_TO_DATE,
            ReportStatus.ERROR,
            ReportStatus.UP_TO_DATE,
        ]

    @pytest.mark.asyncio
    async def test_unexpected_exception_isolated(self) -> None:
        resolver = _resolver()
        resolver.resolve_latest.side_effect = [RuntimeError("bug"), _latest("v1.0.0")]

        reports = await ReconciliationEngine(resolver).evaluate_all(
            [_entry("1.0.0", "a"), _entry("1.0.0", "b")]
        )

        assert reports[0].status is ReportStatus.ERROR
        assert reports[0].error_kind == "RuntimeError"
        assert reports[0].message == "Unexpected error: bug"
        assert reports[1].status is ReportStatus.UP_TO_DATE

    @pytest.mark.asyncio
    async def test_duplicates_reported_twice(self) -> None:
        resolver = _resolver(_latest("v1.0.0"))

        reports = await ReconciliationEngine(resolver).evaluate_all(
            [_entry("1.0.0"), _entry("1.0.0")]
        )

        assert len(reports) == 2

    @pytest.mark.asyncio
    async def test_progress_callback(self) -> None:
        resolver = _resolver(_latest("v1.0.0"))
        calls = []

        await ReconciliationEngine(resolver).evaluate_all(
            [_entry("1.0.0", "a"), _entry("1.0.0", "b")],
            progress_callback=lambda done, total, report: calls.append((done, total, report.name)),
        )

        assert calls == [(1, 2, "a"), (2, 2, "b")]

    @pytest.mark.asyncio
    async def test_empty(self) -> None:
        assert await ReconciliationEngine(_resolver()).evaluate_all([]) == []


@pytest.mark.integration
class TestEngineWithGitHub:
    """End-to-end scenarios through GitHubSource and a fake GitHub API."""

    @pytest.mark.asyncio
    async def test_security_release_end_to_end(self) -> None:
        release = {"tag_name": "v1.3.0", "name": "v1.3.0", "body": "Fixes a vulnerability in parsing"}
        routes = {
            "/repos/acme/widget/releases/latest": release,
            "/repos/acme/widget/releases": [release],
            "/repos/acme/widget": {"archived": False},
        }

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.path in routes:
                return httpx.Response(200, json=routes[request.url.path])
            return httpx.Response(404)

        async with HTTPClient(transport=httpx.MockTransport(handler)) as http:
            engine = ReconciliationEngine(GitHubSource(http))
            report = await engine.evaluate(
                DependencyEntry("widget", "1.2.0", "git+https://github.com/acme/widget.git")
            )

        assert report.status is ReportStatus.SECURITY_URGENT
        assert report.update_needed is True
        assert (report.owner, report.repo) == ("acme", "widget")

    @pytest.mark.asyncio
    async def test_rate_limited_end_to_end(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                403,
                headers={"X-RateLimit-Remaining": "0", "X-RateLimit-Reset": "1704067200"},
                json={"message": "API rate limit exceeded"},
            )

        async with HTTPClient(transport=httpx.MockTransport(handler)) as http:
            engine = ReconciliationEngine(GitHubSource(http))
            reports = await engine.evaluate_all(
                [_entry("1.0.0", "a"), _entry("1.0.0", "b")]
            )

        for report in reports:
            assert report.status is ReportStatus.ERROR
            assert report.update_needed is False
            assert "2024-01-01T00:00:00Z" in (report.message or "")
