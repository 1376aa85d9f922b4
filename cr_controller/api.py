"""Public API surface for cr_controller."""

from cr_controller.adapters.roachprod import (
    ClusterManager,
    CommandResult,
    CommandRunner,
    SubprocessRunner,
    node_target,
)
from cr_controller.benchmarks import (
    BENCHMARKS,
    BenchmarkHandle,
    BenchmarkLauncher,
    BenchmarkDefinition,
    results_dir,
)
from cr_controller.driver import build_driver_app, driver_log_dir, run_driver
from cr_controller.models.options import (
    BenchmarkKind,
    BootstrapStep,
    DriverOptions,
    parse_benchmarks,
    parse_bootstrap,
)
from cr_controller.models.state import OrchestrationPhase, PhaseStateMachine
from cr_controller.orchestrator import OrchestrationSummary, Orchestrator, cluster_name_for
from cr_controller.runner_bundle import REMOTE_RUNNER_DIR, build_runner_bundle, install_command

__all__ = [
    "BENCHMARKS",
    "BenchmarkHandle",
    "BenchmarkKind",
    "BenchmarkLauncher",
    "BenchmarkDefinition",
    "BootstrapStep",
    "ClusterManager",
    "CommandResult",
    "CommandRunner",
    "DriverOptions",
    "OrchestrationPhase",
    "OrchestrationSummary",
    "Orchestrator",
    "PhaseStateMachine",
    "REMOTE_RUNNER_DIR",
    "SubprocessRunner",
    "build_driver_app",
    "build_runner_bundle",
    "cluster_name_for",
    "driver_log_dir",
    "install_command",
    "node_target",
    "parse_benchmarks",
    "parse_bootstrap",
    "results_dir",
    "run_driver",
]
