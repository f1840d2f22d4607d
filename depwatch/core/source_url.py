"""Repository URL parsing for depwatch.

Manifests and registries describe repositories in many notations::

    git://github.com/acme/widget.git
    git+https://github.com/acme/widget.git#readme
    https://gitlab.com/acme/widget
    git@github.com:acme/widget.git
    github:acme/widget
    acme/widget

:func:`parse_repo_url` reduces all of them to an ``(owner, repo)`` pair.
An empty pair means "no upstream source available"; callers decide what
that means for the dependency being audited.
"""

from __future__ import annotations

from typing import List, Tuple

from depwatch.constants import GITHUB_WEB_URL

#: Scheme prefixes stripped before splitting, longest first.
_SCHEME_PREFIXES: Tuple[str, ...] = (
    "git+https://",
    "git+http://",
    "git+ssh://",
    "https://",
    "http://",
    "ssh://",
    "git://",
)

#: Hosts whose URLs carry ``owner/repo`` right after the host segment.
_KNOWN_HOSTS: Tuple[str, ...] = ("github.com", "gitlab.com")


def _strip_scheme(url: str) -> str:
    for prefix in _SCHEME_PREFIXES:
        if url.lower().startswith(prefix):
            return url[len(prefix) :]
    return url


def _path_segments(url: str) -> List[str]:
    """Split a scheme-less URL into its non-empty path segments."""
    text = _strip_scheme(url.strip())

    # user@host prefix of ssh-style URLs
    if text.startswith("git@"):
        text = text[len("git@") :]

    text = text.split("#", 1)[0].rstrip("/")
    if text.endswith(".git"):
        text = text[: -len(".git")]

    # scp-like "host:owner/repo" and npm shorthand "github:owner/repo"
    if ":" in text:
        text = text.split(":", 1)[1]

    return [part for part in text.split("/") if part]


def parse_repo_url(url: str) -> Tuple[str, str]:
    """Extract ``(owner, repo)`` from a repository URL.

    Args:
        url: Repository URL in any supported notation.

    Returns:
        The owner and repository names, or ``("", "")`` when fewer than
        two path segments can be found.

    Examples:
        >>> parse_repo_url("git+https://github.com/acme/widget.git")
        ('acme', 'widget')
        >>> parse_repo_url("git@github.com:acme/widget.git")
        ('acme', 'widget')
        >>> parse_repo_url("https://github.com/acme")
        ('', '')
    """
    if not url:
        return "", ""

    parts = _path_segments(url)

    if parts and any(host in parts[0].lower() for host in _KNOWN_HOSTS):
        if len(parts) >= 3:
            return parts[1], parts[2]
        return "", ""

    if len(parts) >= 2:
        return parts[0], parts[1]

    return "", ""


def github_repo_url(owner: str, repo: str) -> str:
    """Browser URL of a GitHub repository."""
    return f"{GITHUB_WEB_URL}/{owner}/{repo}"
