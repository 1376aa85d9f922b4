"""Error types raised while generating or running cloud report benchmarks.

Every error carries a JSON-friendly ``context`` mapping so it can be written
into a run record or a log line unchanged.
"""

from __future__ import annotations

from typing import Any, Mapping


def _jsonable(value: Any) -> Any:
    if isinstance(value, Mapping):
        return normalize_context(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_jsonable(item) for item in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    return str(value)


def normalize_context(context: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of ``context`` with paths, enums and tuples made JSON-friendly."""
    return {str(key): _jsonable(val) for key, val in context.items()}


class CRError(Exception):
    """Base error type for typed failure handling."""

    def __init__(
        self,
        message: str,
        *,
        context: Mapping[str, Any] | None = None,
        cause: Exception | None = None,
    ) -> None:
        super().__init__(message)
        self.context = normalize_context(context or {})
        if cause is not None:
            self.__cause__ = cause

    @property
    def error_type(self) -> str:
        return type(self).__name__


class ConfigurationError(CRError):
    """Invalid configuration file, option value or argument template."""


class ArgumentEvaluationError(ConfigurationError):
    """A templated argument could not be evaluated for a target."""

    @property
    def argument(self) -> str | None:
        return self.context.get("argument")


class ScriptGenerationError(CRError):
    """An output directory or driver script could not be written."""


class TemplateRenderError(CRError):
    """The driver template itself is missing or malformed."""


class RemoteCommandError(CRError):
    """A cluster-management or benchmark command exited unsuccessfully."""

    @property
    def returncode(self) -> int | None:
        return self.context.get("returncode")


class RunLockError(CRError):
    """Another escalation run already holds the lease."""

    @property
    def holder_pid(self) -> int | None:
        return self.context.get("pid")


def error_to_payload(error: CRError) -> dict[str, Any]:
    """Run-record payload for ``error``."""
    return {
        "error_type": error.error_type,
        "error": str(error),
        "error_context": error.context,
    }
