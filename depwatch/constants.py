"""
Centralized constants for depwatch.

This module defines immutable configuration values used across depwatch,
including upstream endpoints, network settings, changelog extraction
rules, and logging formats. All values are intended to be treated as
read-only.
"""

from typing import Final, FrozenSet

# ---------------------------------------------------------------------------
# Project metadata
# ---------------------------------------------------------------------------

#: HTTP User-Agent template used for outbound requests.
USER_AGENT_TEMPLATE: Final[str] = "depwatch/{version}"

# ---------------------------------------------------------------------------
# Upstream endpoints
# ---------------------------------------------------------------------------

#: Base URL for the GitHub REST API.
GITHUB_API_URL: Final[str] = "https://api.github.com"

#: Base URL for browsing GitHub repositories (used for report links).
GITHUB_WEB_URL: Final[str] = "https://github.com"

#: Base URL for the npm registry.
NPM_REGISTRY_URL: Final[str] = "https://registry.npmjs.org"

#: Media type requested from the GitHub REST API.
GITHUB_ACCEPT_HEADER: Final[str] = "application/vnd.github+json"

#: Environment variable holding the GitHub access token.
GITHUB_TOKEN_ENV: Final[str] = "GITHUB_TOKEN"

# ---------------------------------------------------------------------------
# HTTP configuration
# ---------------------------------------------------------------------------

#: Default network timeout in seconds.
DEFAULT_TIMEOUT: Final[int] = 30

#: Number of releases requested when scanning changelogs.
DEFAULT_RELEASE_LIMIT: Final[int] = 30

#: Number of tags requested when no release exists.
DEFAULT_TAG_LIMIT: Final[int] = 30

#: Response header carrying the remaining request quota.
RATE_LIMIT_REMAINING_HEADER: Final[str] = "X-RateLimit-Remaining"

#: Response header carrying the quota reset time (epoch seconds).
RATE_LIMIT_RESET_HEADER: Final[str] = "X-RateLimit-Reset"

#: Format used to render rate-limit reset times.
RESET_TIME_FORMAT: Final[str] = "%Y-%m-%dT%H:%M:%SZ"

# ---------------------------------------------------------------------------
# Version handling
# ---------------------------------------------------------------------------

#: Canonical prefix carried by every normalized version.
VERSION_PREFIX: Final[str] = "v"

#: Range and comparator characters stripped from raw versions.
VERSION_OPERATOR_CHARS: Final[str] = "^~=<> "

# ---------------------------------------------------------------------------
# Changelog extraction
# ---------------------------------------------------------------------------

#: Keywords that mark a release as security related (matched lowercase).
SECURITY_KEYWORDS: Final[FrozenSet[str]] = frozenset(
    {"security", "vulnerability", "cve", "patch"}
)

#: Markdown characters removed from changelog excerpts.
MARKDOWN_STRIP_CHARS: Final[str] = "*#[]()`"

#: Maximum changelog excerpt length before the ellipsis.
CHANGELOG_EXCERPT_LENGTH: Final[int] = 80

#: Marker appended to truncated excerpts.
ELLIPSIS: Final[str] = "..."

#: Placeholder for absent versions and excerpts.
NOT_AVAILABLE: Final[str] = "N/A"

# ---------------------------------------------------------------------------
# Manifests and reports
# ---------------------------------------------------------------------------

#: Version specifier prefixes in package.json that are not registry versions.
NPM_LOCAL_SPEC_PREFIXES: Final[tuple] = ("file:", "link:", "workspace:")

#: Default report file name, written next to the manifest.
DEFAULT_REPORT_NAME: Final[str] = "report"

#: Maximum allowed file size (in bytes) when reading manifests.
MAX_FILE_SIZE: Final[int] = 10 * 1024 * 1024  # 10 MB

# ---------------------------------------------------------------------------
# Configuration defaults
# ---------------------------------------------------------------------------

#: Whether devDependencies in package.json are audited by default.
DEFAULT_INCLUDE_DEV_DEPENDENCIES: Final[bool] = False

# ---------------------------------------------------------------------------
# Logging configuration
# ---------------------------------------------------------------------------

#: Timestamp format for verbose logging.
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

#: Default log format (non-verbose).
LOG_DEFAULT_FORMAT: Final[str] = "%(levelname)s: %(message)s"

#: Verbose log format including timestamp and logger name.
LOG_VERBOSE_FORMAT: Final[str] = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
