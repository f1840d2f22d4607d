"""
Dependency entry model for depwatch.

A :class:`DependencyEntry` is what a manifest loader hands to the
reconciliation engine: a name, the version exactly as written in the
manifest, and where the dependency's source lives (if known).
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class DependencyEntry:
    """One dependency declared in a manifest.

    Attributes:
        name: Dependency name as declared (``jiffy``, ``react``,
            ``owner/repo``).
        raw_version: Version string as written (``^1.2.3``, ``v2.0.0``).
        source_url: Repository URL, or ``None`` when the manifest does not
            declare one (npm packages are located through the registry).
        line_number: 1-based manifest line, when the loader knows it.
    """

    name: str
    raw_version: str
    source_url: Optional[str] = None
    line_number: Optional[int] = None

    def __str__(self) -> str:
        return f"{self.name}@{self.raw_version}"
