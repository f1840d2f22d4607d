"""Dependency manifest loading for depwatch.

Three manifest formats are understood:

- **Erlang build configs** (``rebar.config``): git dependencies pinned to a
  tag inside the ``{deps, [...]}`` block, e.g.
  ``{jiffy, ".*", {git, "https://github.com/davisp/jiffy", {tag, "1.1.1"}}}``.
  Conditional wrappers such as ``{if_var_true, tools, ...}`` are unwrapped.
- **JavaScript package manifests** (``package.json``): registry
  dependencies from ``dependencies`` (and optionally ``devDependencies``);
  local paths and git specifiers are skipped.
- **Plain repository lists** (any other file): one ``owner/repo VERSION``
  pair per line, ``#`` comments allowed.

Every format is reduced to :class:`DependencyEntry` objects in file order.

Typical usage::

    manifest = ManifestParser().parse_file("backend/rebar.config")
    for entry in manifest.entries:
        print(entry.name, entry.raw_version, entry.source_url)
"""

from __future__ import annotations

import re
import json
from enum import Enum
from pathlib import Path
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from depwatch.constants import NPM_LOCAL_SPEC_PREFIXES
from depwatch.core.source_url import github_repo_url
from depwatch.exceptions import ParseError
from depwatch.models.entry import DependencyEntry
from depwatch.utils import get_logger, safe_read_file

logger = get_logger("manifest")

_ERLANG_COMMENT = re.compile(r"%[^\n]*")
_DEPS_BLOCK = re.compile(r"\{deps,\s*\[([\s\S]*?)\]\}")
_CONDITIONAL_WRAPPERS = (
    re.compile(r"\{if_var_true,\s*\w+,"),
    re.compile(r"\{if_version_above,\s*\"[^\"]*\","),
    re.compile(r"\{if_version_below,\s*\"[^\"]*\","),
    re.compile(r"\bif_not_rebar3\b"),
    re.compile(r"\bif_rebar3\b"),
)
_GIT_TAG_DEP = re.compile(
    r"\{([a-zA-Z0-9_@-]+),\s*"
    r"(?:\"[^\"]*\",\s*)?"
    r"\{git,\s*\"([^\"]+)\",\s*"
    r"\{tag,\s*\"([^\"]+)\"\}\}\}"
)


class ManifestKind(str, Enum):
    """Supported manifest formats."""

    REBAR = "rebar"
    NPM = "npm"
    REPO_LIST = "repo-list"

    @property
    def report_title(self) -> str:
        """Report title for this kind of manifest."""
        return {
            ManifestKind.REBAR: "Erlang Dependency Update Audit",
            ManifestKind.NPM: "Frontend Dependency Update Report",
            ManifestKind.REPO_LIST: "GitHub Dependency Update Report",
        }[self]


def detect_manifest_kind(path: Union[str, Path]) -> ManifestKind:
    """Guess the manifest format from its file name.

    Examples:
        >>> detect_manifest_kind("backend/rebar.config").value
        'rebar'
        >>> detect_manifest_kind("input.txt").value
        'repo-list'
    """
    name = Path(path).name.lower()
    if name == "package.json":
        return ManifestKind.NPM
    if name.endswith(".config") or name == "rebar.config":
        return ManifestKind.REBAR
    return ManifestKind.REPO_LIST


@dataclass
class Manifest:
    """A parsed manifest.

    Attributes:
        kind: Manifest format.
        entries: Dependencies in file order.
        path: File the manifest was read from, if any.
        project_name: Project name (``package.json`` only).
        project_version: Project version (``package.json`` only).
        skipped: Human-readable notes about entries that were ignored.
    """

    kind: ManifestKind
    entries: List[DependencyEntry] = field(default_factory=list)
    path: Optional[Path] = None
    project_name: Optional[str] = None
    project_version: Optional[str] = None
    skipped: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)


class ManifestParser:
    """Parses dependency manifests into :class:`DependencyEntry` lists.

    Args:
        include_dev_dependencies: Also audit ``devDependencies`` in
            ``package.json``.
    """

    def __init__(self, include_dev_dependencies: bool = False) -> None:
        self.include_dev_dependencies = include_dev_dependencies

    def parse_file(
        self,
        file_path: Union[str, Path],
        kind: Optional[ManifestKind] = None,
    ) -> Manifest:
        """Read and parse a manifest file.

        Args:
            file_path: Manifest path.
            kind: Manifest format; detected from the file name if omitted.

        Raises:
            FileOperationError: The file cannot be read.
            ParseError: The content is not a valid manifest.
        """
        path = Path(file_path)
        kind = kind or detect_manifest_kind(path)
        logger.debug("Parsing %s as %s manifest", path, kind.value)

        content = safe_read_file(path)
        manifest = self.parse_string(content, kind, source_file_path=str(path))
        manifest.path = path
        return manifest

    def parse_string(
        self,
        content: str,
        kind: ManifestKind,
        *,
        source_file_path: Optional[str] = None,
    ) -> Manifest:
        """Parse manifest text of the given kind."""
        if kind is ManifestKind.REBAR:
            manifest = self._parse_rebar(content, source_file_path)
        elif kind is ManifestKind.NPM:
            manifest = self._parse_package_json(content, source_file_path)
        else:
            manifest = self._parse_repo_list(content)

        logger.info("Found %d dependencies in %s manifest", len(manifest), kind.value)
        return manifest

    # ------------------------------------------------------------------
    # rebar.config
    # ------------------------------------------------------------------

    def _parse_rebar(self, content: str, source: Optional[str]) -> Manifest:
        text = _ERLANG_COMMENT.sub("", content)

        block = _DEPS_BLOCK.search(text)
        if block is None:
            raise ParseError(
                "Could not find {deps, [...]} block in config",
                file_path=source,
            )

        deps_text = block.group(1)
        for wrapper in _CONDITIONAL_WRAPPERS:
            deps_text = wrapper.sub("", deps_text)
        deps_text = deps_text.replace("{tag: ", "{tag, ")

        manifest = Manifest(kind=ManifestKind.REBAR)
        for match in _GIT_TAG_DEP.finditer(deps_text):
            name, url, tag = match.groups()
            manifest.entries.append(
                DependencyEntry(name=name, raw_version=tag, source_url=url)
            )

        if not manifest.entries:
            raise ParseError(
                "No git/tag dependencies found in deps block",
                file_path=source,
            )

        return manifest

    # ------------------------------------------------------------------
    # package.json
    # ------------------------------------------------------------------

    def _parse_package_json(self, content: str, source: Optional[str]) -> Manifest:
        try:
            document = json.loads(content)
        except json.JSONDecodeError as exc:
            raise ParseError(
                f"Invalid JSON: {exc.msg}",
                line_number=exc.lineno,
                file_path=source,
            ) from exc

        if not isinstance(document, dict):
            raise ParseError("package.json must contain a JSON object", file_path=source)

        manifest = Manifest(
            kind=ManifestKind.NPM,
            project_name=_optional_str(document.get("name")),
            project_version=_optional_str(document.get("version")),
        )

        sections = ["dependencies"]
        if self.include_dev_dependencies:
            sections.append("devDependencies")

        for section in sections:
            self._collect_npm_section(manifest, document.get(section), section, source)

        return manifest

    def _collect_npm_section(
        self,
        manifest: Manifest,
        section: Any,
        section_name: str,
        source: Optional[str],
    ) -> None:
        if section is None:
            return
        if not isinstance(section, dict):
            raise ParseError(f"'{section_name}' must be an object", file_path=source)

        for name, spec in section.items():
            if not isinstance(spec, str) or not spec.strip():
                manifest.skipped.append(f"{name}: missing version")
                continue
            if _is_non_registry_spec(spec):
                logger.debug("Skipping %s (%s): not a registry version", name, spec)
                manifest.skipped.append(f"{name}: {spec}")
                continue
            manifest.entries.append(DependencyEntry(name=name, raw_version=spec.strip()))

    # ------------------------------------------------------------------
    # owner/repo list
    # ------------------------------------------------------------------

    def _parse_repo_list(self, content: str) -> Manifest:
        manifest = Manifest(kind=ManifestKind.REPO_LIST)

        for line_number, raw_line in enumerate(content.splitlines(), start=1):
            line = raw_line.split("#", 1)[0].strip()
            if not line:
                continue

            parts = line.split()
            repo_parts = parts[0].split("/") if parts else []

            if len(parts) != 2 or len(repo_parts) != 2 or not all(repo_parts):
                logger.warning("Format error on line %d skipped: %r", line_number, line)
                manifest.skipped.append(f"line {line_number}: {line}")
                continue

            owner, repo = repo_parts
            manifest.entries.append(
                DependencyEntry(
                    name=f"{owner}/{repo}",
                    raw_version=parts[1],
                    source_url=github_repo_url(owner, repo),
                    line_number=line_number,
                )
            )

        return manifest


def _is_non_registry_spec(spec: str) -> bool:
    """True for local paths and VCS specifiers that no registry can answer."""
    spec = spec.strip()
    return spec.startswith(NPM_LOCAL_SPEC_PREFIXES) or "git" in spec


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def load_manifest(
    file_path: Union[str, Path],
    kind: Optional[ManifestKind] = None,
    *,
    include_dev_dependencies: bool = False,
) -> Manifest:
    """Convenience wrapper around :meth:`ManifestParser.parse_file`."""
    parser = ManifestParser(include_dev_dependencies=include_dev_dependencies)
    return parser.parse_file(file_path, kind)


def manifest_summary(manifest: Manifest) -> Dict[str, Any]:
    """Small dictionary describing a manifest, for debug logging."""
    return {
        "kind": manifest.kind.value,
        "path": str(manifest.path) if manifest.path else None,
        "entries": len(manifest.entries),
        "skipped": len(manifest.skipped),
    }
