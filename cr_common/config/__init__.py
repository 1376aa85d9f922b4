"""Configuration helpers for cr_common."""

from .env import parse_bool_env, path_from_env

__all__ = ["parse_bool_env", "path_from_env"]
