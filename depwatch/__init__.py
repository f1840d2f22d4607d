"""
depwatch: Upstream Dependency Audit Tool

depwatch reads a project's dependency manifest, asks the upstream source
of every dependency what its newest release is, and writes a markdown
report that tells the operator which dependencies are out of date, which
skipped releases mention a security fix, and which upstream repositories
have been archived.

Supported manifests:
    • Erlang build configs (``rebar.config``, git/tag dependencies)
    • JavaScript package manifests (``package.json``)
    • Plain repository lists (``owner/repo VERSION`` per line)

Upstream sources:
    • GitHub releases, tags, and repository metadata
    • The npm registry (with GitHub-hosted changelogs)
"""

from __future__ import annotations

from depwatch.__version__ import __version__

# ---------------------------------------------------------------------------
# Package Metadata
# ---------------------------------------------------------------------------

__author__ = "depwatch Contributors"
__license__ = "Apache-2.0"
__description__ = "Audit dependency manifests against GitHub and npm upstreams."

__all__ = [
    "__version__",
]
