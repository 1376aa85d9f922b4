"""Public API surface for cr_generator."""

from cr_generator.config_service import load_report_config, resolve_config_path
from cr_generator.identity import (
    cluster_identity,
    format_machine_type,
    hash_strings,
    sanitize_identity,
)
from cr_generator.models.config import CloudConfig, MachineConfig, ReportConfig
from cr_generator.renderer import (
    GeneratedScript,
    ScriptRenderer,
    generate_scripts,
    iter_targets,
    make_all_dirs,
)
from cr_generator.resolver import (
    combine_args,
    evaluate_args,
    format_deployment_args,
    resolve_target,
)

__all__ = [
    "CloudConfig",
    "GeneratedScript",
    "MachineConfig",
    "ReportConfig",
    "ScriptRenderer",
    "cluster_identity",
    "combine_args",
    "evaluate_args",
    "format_deployment_args",
    "format_machine_type",
    "generate_scripts",
    "hash_strings",
    "iter_targets",
    "load_report_config",
    "make_all_dirs",
    "resolve_config_path",
    "resolve_target",
    "sanitize_identity",
]
