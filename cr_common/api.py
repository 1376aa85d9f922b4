"""Public API surface for cr_common."""

from cr_common.config.env import parse_bool_env, path_from_env
from cr_common.errors import (
    ArgumentEvaluationError,
    ConfigurationError,
    CRError,
    RemoteCommandError,
    RunLockError,
    ScriptGenerationError,
    TemplateRenderError,
    error_to_payload,
)
from cr_common.logging import bind_log_context, configure_logging, unbind_log_context
from cr_common.models.target import RenderContext, WaitOutcome

__all__ = [
    "ArgumentEvaluationError",
    "CRError",
    "ConfigurationError",
    "RemoteCommandError",
    "RenderContext",
    "RunLockError",
    "ScriptGenerationError",
    "TemplateRenderError",
    "WaitOutcome",
    "bind_log_context",
    "configure_logging",
    "error_to_payload",
    "parse_bool_env",
    "path_from_env",
    "unbind_log_context",
]
