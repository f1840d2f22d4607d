"""
Exception types raised by depwatch.

Every error derives from :class:`DepWatchError`, which pairs a readable
message with a ``details`` mapping of structured context (paths, URLs,
status codes) that is shown in ``str()`` and available to logging.

Upstream failures carry a short ``kind`` name (``UpstreamRateLimited``,
``SourceUnresolvable``, ...) that the reconciliation engine records on the
dependency report instead of aborting the audit.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, MutableMapping, Optional

#: Longest response body kept in error details.
_MAX_BODY_LENGTH = 200


def _compact(**values: Any) -> Dict[str, Any]:
    """Keep only the values that are not ``None``."""
    return {key: value for key, value in values.items() if value is not None}


def _shorten(text: str, limit: int = _MAX_BODY_LENGTH) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class DepWatchError(Exception):
    """Base class for depwatch errors.

    Args:
        message: Human-readable error message.
        details: Structured context about the failure.
    """

    __slots__ = ("message", "details")

    #: Short taxonomy name recorded on dependency reports.
    kind: str = "Error"

    def __init__(
        self,
        message: str,
        details: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message: str = message
        self.details: MutableMapping[str, Any] = dict(details or {})

    def __str__(self) -> str:
        if not self.details:
            return self.message
        context = ", ".join(f"{key}={value}" for key, value in self.details.items())
        return f"{self.message} ({context})"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, details={dict(self.details)!r})"


class ParseError(DepWatchError):
    """A dependency manifest could not be parsed.

    Args:
        message: Error description.
        line_number: 1-based line where parsing failed.
        line_content: The offending line.
        file_path: Manifest being parsed.
    """

    __slots__ = ("line_number", "line_content", "file_path")

    kind = "Parse"

    def __init__(
        self,
        message: str,
        *,
        line_number: Optional[int] = None,
        line_content: Optional[str] = None,
        file_path: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            _compact(line=line_number, content=line_content, file=file_path),
        )
        self.line_number = line_number
        self.line_content = line_content
        self.file_path = file_path


class ConfigError(DepWatchError):
    """A configuration file is missing, unreadable, or invalid."""

    __slots__ = ("config_path", "option")

    kind = "Config"

    def __init__(
        self,
        message: str,
        *,
        config_path: Optional[str] = None,
        option: Optional[str] = None,
    ) -> None:
        super().__init__(message, _compact(config=config_path, option=option))
        self.config_path = config_path
        self.option = option


class InvalidVersionError(DepWatchError):
    """A version string is not a semantic version (a branch name, a hash)."""

    __slots__ = ("version",)

    kind = "InvalidVersion"

    def __init__(self, message: str, *, version: Optional[str] = None) -> None:
        super().__init__(message, _compact(version=version))
        self.version = version


class SourceUnresolvableError(DepWatchError):
    """No ``owner/repo`` pair could be extracted for a dependency."""

    __slots__ = ("source_url",)

    kind = "SourceUnresolvable"

    def __init__(self, message: str, *, source_url: Optional[str] = None) -> None:
        super().__init__(message, _compact(source=source_url))
        self.source_url = source_url


class NoReleasesFoundError(DepWatchError):
    """An upstream has neither releases nor semantic-version tags."""

    __slots__ = ("repository",)

    kind = "NoReleasesFound"

    def __init__(self, message: str, *, repository: Optional[str] = None) -> None:
        super().__init__(message, _compact(repository=repository))
        self.repository = repository


class NetworkError(DepWatchError):
    """An HTTP request failed.

    Args:
        message: Error description.
        url: Requested URL.
        status_code: HTTP status, when a response arrived.
        response_body: Response text; only a prefix is kept in ``details``.
    """

    __slots__ = ("url", "status_code", "response_body")

    kind = "Network"

    def __init__(
        self,
        message: str,
        *,
        url: Optional[str] = None,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ) -> None:
        super().__init__(
            message,
            _compact(
                url=url,
                status_code=status_code,
                response=_shorten(response_body) if response_body is not None else None,
            ),
        )
        self.url = url
        self.status_code = status_code
        self.response_body = response_body


class UpstreamUnreachableError(NetworkError):
    """An upstream registry could not be queried successfully."""

    __slots__ = ()

    kind = "UpstreamUnreachable"


class UpstreamNotFoundError(UpstreamUnreachableError):
    """The upstream resource does not exist (HTTP 404).

    Kept distinct so that a missing GitHub release can fall back to tags.
    """

    __slots__ = ()

    kind = "UpstreamNotFound"


class UpstreamRateLimitedError(UpstreamUnreachableError):
    """The upstream request quota is exhausted.

    The reset time is part of the message so the operator knows when a
    re-run can succeed. Requests are never retried automatically.

    Args:
        message: Error description.
        reset_time: When the quota resets, already formatted for humans.
        **kwargs: Forwarded to :class:`NetworkError`.
    """

    __slots__ = ("reset_time",)

    kind = "UpstreamRateLimited"

    def __init__(
        self,
        message: str,
        *,
        reset_time: Optional[str] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.reset_time = reset_time
        if reset_time is not None:
            self.details["reset"] = reset_time


class FileOperationError(DepWatchError):
    """Reading or writing a file failed.

    Args:
        message: Error description.
        file_path: File involved.
        operation: ``read``, ``write`` or ``validate``.
        original_error: The underlying exception.
    """

    __slots__ = ("file_path", "operation", "original_error")

    kind = "FileOperation"

    def __init__(
        self,
        message: str,
        *,
        file_path: Optional[str] = None,
        operation: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ) -> None:
        super().__init__(
            message,
            _compact(
                path=file_path,
                operation=operation,
                original_error=str(original_error) if original_error else None,
            ),
        )
        self.file_path = file_path
        self.operation = operation
        self.original_error = original_error
