"""Changelog excerpt extraction and security keyword detection.

Release notes are markdown of arbitrary length. Reports need two things
from them: whether a release mentions a security fix, and a short,
single-line summary that can sit inside a markdown table cell.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional

from depwatch.constants import (
    CHANGELOG_EXCERPT_LENGTH,
    ELLIPSIS,
    MARKDOWN_STRIP_CHARS,
    NOT_AVAILABLE,
    SECURITY_KEYWORDS,
)

_WHITESPACE_RUN = re.compile(r"\s+")


@dataclass(frozen=True)
class ChangelogExcerpt:
    """Result of :meth:`ChangelogExtractor.extract`.

    Attributes:
        excerpt: Bounded single-line summary, or ``"N/A"``.
        is_security_related: A security keyword appeared in the title or
            body.
    """

    excerpt: str = NOT_AVAILABLE
    is_security_related: bool = False

    @property
    def available(self) -> bool:
        return self.excerpt != NOT_AVAILABLE


class ChangelogExtractor:
    """Turns release notes into report-ready excerpts.

    Args:
        max_length: Maximum excerpt length before the ellipsis marker.
        keywords: Lowercase keywords that flag a security release.
    """

    def __init__(
        self,
        max_length: int = CHANGELOG_EXCERPT_LENGTH,
        keywords: Iterable[str] = SECURITY_KEYWORDS,
    ) -> None:
        self.max_length = max_length
        self.keywords: FrozenSet[str] = frozenset(k.lower() for k in keywords)
        self._strip_table = str.maketrans("", "", MARKDOWN_STRIP_CHARS)

    def is_security_related(self, body: Optional[str], title: Optional[str] = "") -> bool:
        """Return True if any keyword occurs in ``title`` or ``body``.

        Matching is a case-insensitive substring search, so ``CVE-2024-1``
        and ``patched`` both match.
        """
        text = f"{body or ''} {title or ''}".lower()
        return any(keyword in text for keyword in self.keywords)

    def summarize(self, body: Optional[str]) -> str:
        """Reduce release notes to a bounded, table-safe single line.

        Markdown emphasis, heading, link, and code characters are removed,
        whitespace runs collapse to one space, and backslashes and pipes are
        escaped. Truncation never splits an escape sequence.
        Returns ``"N/A"`` when nothing readable is left.
        """
        if not body:
            return NOT_AVAILABLE

        text = body.translate(self._strip_table)
        text = _WHITESPACE_RUN.sub(" ", text).strip()
        text = text.replace("\\", "\\\\").replace("|", "\\|")

        if not text:
            return NOT_AVAILABLE

        if len(text) <= self.max_length:
            return text

        cut = text[: self.max_length].rstrip()
        # An odd run of trailing backslashes means the cut split an escape
        trailing = len(cut) - len(cut.rstrip("\\"))
        if trailing % 2:
            cut = cut[:-1].rstrip()
        return cut + ELLIPSIS

    def extract(self, body: Optional[str], title: Optional[str] = "") -> ChangelogExcerpt:
        """Build the excerpt and security flag for one release.

        Args:
            body: Raw release notes.
            title: Release title, included in keyword matching only.
        """
        return ChangelogExcerpt(
            excerpt=self.summarize(body),
            is_security_related=self.is_security_related(body, title),
        )
