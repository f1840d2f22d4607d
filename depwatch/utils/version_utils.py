"""
Version normalization and comparison utilities for depwatch.

Manifests express versions in many shapes (``^1.2.3``, ``v2.0.0``,
``>=0.4.1``, ``main``). This module rewrites them into a canonical,
``v``-prefixed form and compares them with Semantic Versioning 2.0.0
precedence rules.

Invalid versions are values, not failures: :func:`normalize` never raises,
and :func:`compare` answers :attr:`Comparison.INCOMPARABLE` whenever either
side is invalid.
"""

from __future__ import annotations

import re
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from depwatch.constants import VERSION_OPERATOR_CHARS, VERSION_PREFIX

_SEMVER_PATTERN = re.compile(
    r"^(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-((?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+([0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)


class Comparison(Enum):
    """Outcome of comparing two normalized versions."""

    LESS = -1
    EQUAL = 0
    GREATER = 1
    INCOMPARABLE = None


@dataclass(frozen=True)
class NormalizedVersion:
    """A version string rewritten into canonical ``vMAJOR.MINOR.PATCH`` form.

    Attributes:
        display: Canonical form, always carrying the ``v`` prefix.
        valid: Whether ``display`` parses as a semantic version.
        major: Major component (0 when invalid).
        minor: Minor component (0 when invalid).
        patch: Patch component (0 when invalid).
        prerelease: Pre-release identifier without the leading ``-``.
        build: Build metadata without the leading ``+``; ignored when
            comparing.
        raw: The original input. Excluded from equality so that
            normalizing an already-normalized value yields an equal result.
    """

    display: str
    valid: bool
    major: int = 0
    minor: int = 0
    patch: int = 0
    prerelease: Optional[str] = None
    build: Optional[str] = None
    raw: str = field(default="", compare=False)

    @property
    def bare(self) -> str:
        """Canonical form without the ``v`` prefix (``1.2.3``)."""
        return self.display[len(VERSION_PREFIX) :]

    @property
    def release(self) -> Tuple[int, int, int]:
        """The numeric ``(major, minor, patch)`` triple."""
        return self.major, self.minor, self.patch

    def __str__(self) -> str:
        return self.display


def strip_version(raw: str) -> str:
    """Remove range operators, whitespace, and a leading ``v`` from *raw*.

    Only the first whitespace-separated token survives, so compound npm
    ranges such as ``>=1.2.0 <2.0.0`` reduce to their lower bound.

    Examples:
        >>> strip_version("^1.2.3")
        '1.2.3'
        >>> strip_version(">= v2.0.0")
        '2.0.0'
    """
    text = raw.strip().lstrip(VERSION_OPERATOR_CHARS)
    if text:
        text = text.split()[0]
    if text[:1] in ("v", "V"):
        text = text[1:]
    return text


def normalize(raw: Union[str, NormalizedVersion]) -> NormalizedVersion:
    """Canonicalize an arbitrary version string.

    Args:
        raw: Version as written in a manifest or tag, or an already
            normalized value (returned unchanged).

    Returns:
        A :class:`NormalizedVersion`; ``valid`` is ``False`` for branch
        names, commit hashes, and anything else that is not
        ``MAJOR.MINOR.PATCH[-prerelease][+build]``.

    Examples:
        >>> normalize("~1.4.0").display
        'v1.4.0'
        >>> normalize("main").valid
        False
    """
    if isinstance(raw, NormalizedVersion):
        return raw

    stripped = strip_version(raw)
    display = f"{VERSION_PREFIX}{stripped}"
    match = _SEMVER_PATTERN.match(stripped)

    if match is None:
        return NormalizedVersion(display=display, valid=False, raw=raw)

    major, minor, patch, prerelease, build = match.groups()
    return NormalizedVersion(
        display=display,
        valid=True,
        major=int(major),
        minor=int(minor),
        patch=int(patch),
        prerelease=prerelease,
        build=build,
        raw=raw,
    )


def version_from_tag(tag: str) -> str:
    """Return the version part of a release tag.

    Monorepos tag releases as ``package@1.2.3``; only the part after the
    last ``@`` is a version.

    Examples:
        >>> version_from_tag("@scope/widget@2.1.0")
        '2.1.0'
        >>> version_from_tag("v1.0.0")
        'v1.0.0'
    """
    return tag.rsplit("@", 1)[-1]


def is_valid(raw: Union[str, NormalizedVersion]) -> bool:
    """Return True if *raw* normalizes to a valid semantic version."""
    return normalize(raw).valid


def compare(a: NormalizedVersion, b: NormalizedVersion) -> Comparison:
    """Compare two normalized versions by semantic-version precedence.

    Major, minor, and patch compare numerically. A pre-release sorts below
    its release (``1.0.0-rc1 < 1.0.0``); two pre-releases compare
    identifier by identifier. Build metadata is ignored.

    Examples:
        >>> compare(normalize("1.0.0-rc1"), normalize("1.0.0"))
        <Comparison.LESS: -1>
        >>> compare(normalize("main"), normalize("1.0.0"))
        <Comparison.INCOMPARABLE: None>
    """
    if not (a.valid and b.valid):
        return Comparison.INCOMPARABLE

    if a.release != b.release:
        return Comparison.LESS if a.release < b.release else Comparison.GREATER

    return _compare_prerelease(a.prerelease, b.prerelease)


def _compare_prerelease(left: Optional[str], right: Optional[str]) -> Comparison:
    """Order two pre-release strings; ``None`` means a final release."""
    if left == right:
        return Comparison.EQUAL
    if left is None:
        return Comparison.GREATER
    if right is None:
        return Comparison.LESS

    left_ids = left.split(".")
    right_ids = right.split(".")

    for left_id, right_id in zip(left_ids, right_ids):
        if left_id == right_id:
            continue
        return (
            Comparison.LESS
            if _identifier_key(left_id) < _identifier_key(right_id)
            else Comparison.GREATER
        )

    # All shared identifiers equal: the shorter list sorts first
    if len(left_ids) == len(right_ids):
        return Comparison.EQUAL
    return Comparison.LESS if len(left_ids) < len(right_ids) else Comparison.GREATER


def _identifier_key(identifier: str) -> Tuple[int, int, str]:
    """Sort key for one pre-release identifier.

    Numeric identifiers sort numerically and below alphanumeric ones;
    alphanumeric identifiers sort lexically.
    """
    if identifier.isdigit():
        return 0, int(identifier), ""
    return 1, 0, identifier


def is_newer(candidate: NormalizedVersion, current: NormalizedVersion) -> bool:
    """Return True only when *candidate* is strictly greater than *current*."""
    return compare(candidate, current) is Comparison.GREATER


def get_update_type(
    current: Optional[NormalizedVersion],
    target: Optional[NormalizedVersion],
) -> str:
    """Describe the kind of change between two versions.

    Returns:
        One of:
            - ``"same"``       : Versions have equal precedence
            - ``"downgrade"``  : Target is lower than current
            - ``"major"``      : Major version change
            - ``"minor"``      : Minor version change
            - ``"patch"``      : Patch-level change
            - ``"prerelease"`` : Only the pre-release part differs
            - ``"unknown"``    : Missing or invalid versions

    Examples:
        >>> get_update_type(normalize("1.0.0"), normalize("2.0.0"))
        'major'
        >>> get_update_type(normalize("1.2.3"), normalize("main"))
        'unknown'
    """
    if current is None or target is None:
        return "unknown"

    result = compare(current, target)

    if result is Comparison.INCOMPARABLE:
        return "unknown"
    if result is Comparison.EQUAL:
        return "same"
    if result is Comparison.GREATER:
        return "downgrade"

    if current.major != target.major:
        return "major"
    if current.minor != target.minor:
        return "minor"
    if current.patch != target.patch:
        return "patch"
    return "prerelease"
