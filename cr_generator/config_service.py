"""Resolve and load report configuration files."""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import ValidationError

from cr_common.errors import ConfigurationError
from cr_generator.models.config import ReportConfig

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAMES = ("cloud_report.yaml", "cloud_report.yml", "cloud_report.json")


def resolve_config_path(config_path: Optional[Path]) -> Path:
    """Return the config path to load.

    Respects an explicit path, then ``CR_CONFIG_PATH``, then a
    ``cloud_report.{yaml,yml,json}`` file in the working directory.
    """
    if config_path is not None:
        return Path(config_path).expanduser()

    env_path = os.environ.get("CR_CONFIG_PATH")
    if env_path:
        return Path(env_path).expanduser()

    for name in DEFAULT_CONFIG_NAMES:
        local = Path(name)
        if local.exists():
            return local
    raise ConfigurationError(
        "No configuration file found; pass --config or set CR_CONFIG_PATH",
        context={"searched": list(DEFAULT_CONFIG_NAMES)},
    )


def _read_document(path: Path) -> Any:
    text = path.read_text(encoding="utf-8")
    if path.suffix.lower() == ".json":
        return json.loads(text)
    return yaml.safe_load(text)


def load_report_config(config_path: Optional[Path] = None) -> ReportConfig:
    """Load and validate a report configuration."""
    path = resolve_config_path(config_path)
    if not path.exists():
        raise ConfigurationError(
            f"Configuration file not found: {path}", context={"path": path}
        )
    try:
        data = _read_document(path)
    except (OSError, ValueError, yaml.YAMLError) as exc:
        raise ConfigurationError(
            f"Unable to parse configuration file {path}: {exc}",
            context={"path": path},
            cause=exc,
        )
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            "Config file must contain a mapping at the top level.",
            context={"path": path},
        )
    try:
        config = ReportConfig.model_validate(data)
    except ValidationError as exc:
        raise ConfigurationError(
            f"Invalid configuration in {path}: {exc}",
            context={"path": path, "errors": exc.errors(include_url=False)},
            cause=exc,
        )
    logger.debug("Loaded config %s with %d cloud(s)", path, len(config.clouds))
    return config
