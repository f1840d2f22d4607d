from __future__ import annotations

import pytest

from depwatch.core.changelog import ChangelogExcerpt, ChangelogExtractor


@pytest.fixture
def extractor() -> ChangelogExtractor:
    return ChangelogExtractor()


def _has_unescaped_pipe(text: str) -> bool:
    """True when a pipe follows an even run of backslashes."""
    run = 0
    for char in text:
        if char == "|" and run % 2 == 0:
            return True
        run = run + 1 if char == "\\" else 0
    return False


@pytest.mark.unit
class TestSecurityDetection:
    """Tests for ChangelogExtractor.is_security_related."""

    @pytest.mark.parametrize(
        "body",
        [
            "Security fix",
            "CVE-2024-1",
            "vulnerability patched",
            "SECURITY: upgrade openssl",
            "Apply patch for header parsing",
        ],
    )
    def test_keywords_match(self, extractor: ChangelogExtractor, body: str) -> None:
        """Each keyword triggers the flag regardless of case."""
        assert extractor.is_security_related(body) is True

    def test_routine_release(self, extractor: ChangelogExtractor) -> None:
        assert extractor.is_security_related("routine refactor") is False

    def test_title_is_checked(self, extractor: ChangelogExtractor) -> None:
        """A keyword in the release title alone is enough."""
        assert extractor.is_security_related("Internal cleanup", "Security release") is True

    def test_empty_inputs(self, extractor: ChangelogExtractor) -> None:
        assert extractor.is_security_related(None, None) is False
        assert extractor.is_security_related("", "") is False

    def test_custom_keywords(self) -> None:
        """Keywords can be overridden and are matched lowercase."""
        custom = ChangelogExtractor(keywords=["Exploit"])
        assert custom.is_security_related("fixes an exploit") is True
        assert custom.is_security_related("security fix") is False


@pytest.mark.unit
class TestSummarize:
    """Tests for ChangelogExtractor.summarize."""

    def test_strips_markdown(self, extractor: ChangelogExtractor) -> None:
        body = "## What's new\n* **Faster** parsing\n* See [docs](https://x.y) `code`"
        assert extractor.summarize(body) == "What's new Faster parsing See docshttps://x.y code"

    def test_collapses_whitespace(self, extractor: ChangelogExtractor) -> None:
        assert extractor.summarize("line one\n\n\tline   two\r\n") == "line one line two"

    def test_escapes_pipes(self, extractor: ChangelogExtractor) -> None:
        """Pipes would break the table; they are escaped."""
        assert extractor.summarize("a | b") == "a \\| b"

    def test_short_text_untouched(self, extractor: ChangelogExtractor) -> None:
        assert extractor.summarize("Bug fixes") == "Bug fixes"

    def test_truncates_with_ellipsis(self, extractor: ChangelogExtractor) -> None:
        """Long notes are cut to 80 characters plus the ellipsis."""
        excerpt = extractor.summarize("word " * 50)

        assert excerpt.endswith("...")
        assert len(excerpt) <= 80 + len("...")

    def test_exactly_max_length_not_truncated(self, extractor: ChangelogExtractor) -> None:
        text = "x" * 80
        assert extractor.summarize(text) == text

    def test_no_unescaped_pipe_after_truncation(self, extractor: ChangelogExtractor) -> None:
        excerpt = extractor.summarize("| col " * 40)

        assert len(excerpt) <= 83
        stripped = excerpt.replace("\\|", "")
        assert "|" not in stripped

    def test_escapes_backslashes(self, extractor: ChangelogExtractor) -> None:
        """A literal backslash before a pipe must not cancel its escape."""
        excerpt = extractor.summarize(r"a \| b")

        assert excerpt == r"a \\\| b"
        assert not _has_unescaped_pipe(excerpt)

    def test_trailing_backslash_escaped(self, extractor: ChangelogExtractor) -> None:
        assert extractor.summarize("C:\\temp\\") == "C:\\\\temp\\\\"

    def test_truncation_keeps_pipe_escape_whole(self) -> None:
        """A cut between the backslash and its pipe drops the half escape."""
        short = ChangelogExtractor(max_length=5)

        assert short.summarize("abcd|efgh") == "abcd..."

    def test_truncation_keeps_backslash_escape_whole(self) -> None:
        short = ChangelogExtractor(max_length=5)

        assert short.summarize("abcd\\efgh") == "abcd..."

    def test_truncation_after_complete_escape(self) -> None:
        short = ChangelogExtractor(max_length=5)

        assert short.summarize("abc|efgh") == "abc\\|..."

    @pytest.mark.parametrize("body", ["x" * 79 + "|tail", "x" * 78 + "\\|tail", "\\| " * 40])
    def test_excerpt_never_ends_mid_escape(
        self, extractor: ChangelogExtractor, body: str
    ) -> None:
        excerpt = extractor.summarize(body)

        assert excerpt.endswith("...")
        assert not _has_unescaped_pipe(excerpt)
        body_part = excerpt[: -len("...")]
        trailing = len(body_part) - len(body_part.rstrip("\\"))
        assert trailing % 2 == 0

    @pytest.mark.parametrize("body", [None, "", "   \n ", "## ** []()"])
    def test_nothing_readable(self, extractor: ChangelogExtractor, body) -> None:
        """Empty or markup-only notes have no excerpt."""
        assert extractor.summarize(body) == "N/A"

    def test_custom_length(self) -> None:
        short = ChangelogExtractor(max_length=5)
        assert short.summarize("abcdefgh") == "abcde..."


@pytest.mark.unit
class TestExtract:
    """Tests for ChangelogExtractor.extract."""

    def test_combines_excerpt_and_flag(self, extractor: ChangelogExtractor) -> None:
        result = extractor.extract("Fixes a vulnerability in parsing")

        assert result == ChangelogExcerpt(
            excerpt="Fixes a vulnerability in parsing",
            is_security_related=True,
        )
        assert result.available is True

    def test_absent_body(self, extractor: ChangelogExtractor) -> None:
        result = extractor.extract(None)

        assert result.excerpt == "N/A"
        assert result.is_security_related is False
        assert result.available is False
