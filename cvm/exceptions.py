"""Error taxonomy for cvm.

Fatal errors (configuration, reference resolution, write-back) abort the run.
Per-package errors (malformed or unreadable versions) are recorded on the
package result and the scan continues.
"""

from __future__ import annotations

from typing import Any, Mapping


class CvmError(Exception):
    """Base exception for cvm."""

    context: dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        self.context = dict(context) if context is not None else {}

    def to_json_error(self) -> dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class ConfigurationError(CvmError):
    """Invalid options, config file, or workspace layout. Fatal before scanning."""


class ManifestNotFound(ConfigurationError, FileNotFoundError):
    """A package manifest file does not exist."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        ConfigurationError.__init__(self, message, context=context)


class ManifestParseError(CvmError, ValueError):
    """A manifest could not be parsed as TOML."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        CvmError.__init__(self, message, context=context)


class ReferenceResolutionError(CvmError):
    """The reference branch or remote could not be found or fetched."""

    def __init__(
        self,
        message: str,
        *,
        branches: list[str] | None = None,
        remotes: list[str] | None = None,
        context: Mapping[str, Any] | None = None,
    ) -> None:
        ctx = dict(context or {})
        ctx["branches"] = list(branches or [])
        ctx["remotes"] = list(remotes or [])
        super().__init__(message, context=ctx)

    def __str__(self) -> str:
        lines = [super().__str__()]
        branches = self.context.get("branches") or []
        remotes = self.context.get("remotes") or []
        lines.append(f"Available branches: {', '.join(branches) if branches else '(none)'}")
        lines.append(f"Available remotes: {', '.join(remotes) if remotes else '(none)'}")
        return "\n".join(lines)


class MalformedVersion(CvmError, ValueError):
    """A version string is not a ``major.minor.patch`` triple of 0-255 values."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        CvmError.__init__(self, message, context=context)


class VersionExtractionError(CvmError):
    """The version of a package could not be read from one side of the diff."""


class PolicyViolation(CvmError):
    """One or more packages are stale under ``--check``."""

    def __init__(self, violations: list[str]) -> None:
        self.violations = list(violations)
        super().__init__(
            "One or more workspace versions are out of date",
            context={"violations": self.violations},
        )


class WriteBackError(CvmError):
    """Rewriting, staging, or committing a manifest failed. Fatal immediately."""


__all__ = [
    "CvmError",
    "ConfigurationError",
    "ManifestNotFound",
    "ManifestParseError",
    "ReferenceResolutionError",
    "MalformedVersion",
    "VersionExtractionError",
    "PolicyViolation",
    "WriteBackError",
]
