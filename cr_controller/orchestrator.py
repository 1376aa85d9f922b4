"""Phase sequencing for a generated driver script.

Bootstrap phases are gated independently so an operator can re-invoke only
the remaining ones after a partial failure. Benchmarks are started back to
back without blocking, then waited on one at a time in request order.
"""

from __future__ import annotations

import getpass
import logging
import os
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, List, Optional

from cr_common.errors import RemoteCommandError
from cr_common.logging import bind_log_context, unbind_log_context
from cr_common.models.target import RenderContext, WaitOutcome
from cr_controller.adapters.roachprod import ClusterManager
from cr_controller.benchmarks import BenchmarkHandle, BenchmarkLauncher, TMUX_SESSION
from cr_controller.models.options import BenchmarkKind, BootstrapStep, DriverOptions
from cr_controller.models.state import OrchestrationPhase, PhaseStateMachine
from cr_controller.runner_bundle import (
    REMOTE_RUNNER_DIR,
    build_runner_bundle,
    install_command,
)

logger = logging.getLogger(__name__)

REMOTE_SCRIPTS_DIR = "scripts"
COCKROACH_ARTIFACT = "cockroach"
SETUP_SCRIPT = "./scripts/gen/setup.sh"


def cluster_name_for(context: RenderContext, user: Optional[str] = None) -> str:
    """Per-user cluster name: ``$USER-<identity>``."""
    owner = user or os.environ.get("USER") or getpass.getuser()
    return f"{owner}-{context.cluster}"


@dataclass
class OrchestrationSummary:
    """What a driver invocation did."""

    cluster: str
    phases: List[OrchestrationPhase] = field(default_factory=list)
    started: List[BenchmarkKind] = field(default_factory=list)
    results: Dict[BenchmarkKind, Path] = field(default_factory=dict)


class Orchestrator:
    """Run the bootstrap, benchmark and teardown phases for one target."""

    def __init__(
        self,
        context: RenderContext,
        options: DriverOptions,
        log_dir: Path,
        *,
        cluster: Optional[ClusterManager] = None,
        user: Optional[str] = None,
        wait_timeout: Optional[float] = None,
        clock: Callable[[], datetime] = datetime.now,
        state_machine: Optional[PhaseStateMachine] = None,
        bundle_builder: Callable[[Path], Path] = build_runner_bundle,
    ) -> None:
        self.context = context
        self.options = options
        self.log_dir = Path(log_dir)
        self.cluster = cluster or ClusterManager()
        self.cluster_name = cluster_name_for(context, user)
        self.wait_timeout = wait_timeout
        self.clock = clock
        self.state_machine = state_machine or PhaseStateMachine()
        self.launcher = BenchmarkLauncher(self.cluster, self.cluster_name, options.nodes)
        self.bundle_builder = bundle_builder
        self.state_machine.register_callback(self._log_phase)

    def _log_phase(self, phase: OrchestrationPhase, reason: Optional[str]) -> None:
        bind_log_context(phase=phase.value)
        if phase is OrchestrationPhase.FAILED:
            logger.error("Run failed on %s: %s", self.cluster_name, reason)
        else:
            logger.info("Phase %s (cluster %s)", phase.value, self.cluster_name)

    def _enter(self, phase: OrchestrationPhase) -> None:
        self.state_machine.transition(phase)

    def run(self) -> OrchestrationSummary:
        summary = OrchestrationSummary(cluster=self.cluster_name)
        bind_log_context(cluster=self.cluster_name)
        try:
            self._run_phases(summary)
        except BaseException as exc:
            if not self.state_machine.is_terminal():
                reason = str(exc) or type(exc).__name__
                self.state_machine.transition(OrchestrationPhase.FAILED, reason=reason)
            raise
        finally:
            summary.phases = self.state_machine.history
            unbind_log_context("cluster", "phase")
        return summary

    def _run_phases(self, summary: OrchestrationSummary) -> None:
        opts = self.options
        if opts.wants(BootstrapStep.CREATE):
            self._enter(OrchestrationPhase.CREATING)
            self.create_cluster()
        if opts.wants(BootstrapStep.UPLOAD):
            self._enter(OrchestrationPhase.UPLOADING)
            self.upload_scripts()
        if opts.wants(BootstrapStep.SETUP):
            self._enter(OrchestrationPhase.SETTING_UP)
            self.setup_cluster()

        handles: List[BenchmarkHandle]
        if opts.benchmarks and not opts.resume:
            self._enter(OrchestrationPhase.RUNNING)
            handles = [self.start_benchmark(kind) for kind in opts.benchmarks]
            summary.started = [handle.kind for handle in handles]
        else:
            handles = [self.launcher.handle_for(kind) for kind in opts.benchmarks]

        if handles:
            self._enter(OrchestrationPhase.WAITING)
            for handle in handles:
                summary.results[handle.kind] = self.wait_and_fetch(handle)

        if opts.destroy:
            self._enter(OrchestrationPhase.DESTROYING)
            self.cluster.destroy(self.cluster_name)
        self._enter(OrchestrationPhase.FINISHED)

    def create_cluster(self) -> None:
        ctx = self.context
        self.cluster.create(
            self.cluster_name,
            self.options.nodes,
            ctx.lifetime,
            ctx.cloud,
            ctx.machine_type,
            ctx.deployment_argv(),
        )
        self.cluster.run(self.cluster_name, "tmux", "new", "-s", TMUX_SESSION, "-d")

    def upload_scripts(self) -> None:
        name = self.cluster_name
        self.cluster.run(name, "rm", "-rf", f"./{REMOTE_SCRIPTS_DIR}")
        self.cluster.put(name, self.context.scripts_dir, REMOTE_SCRIPTS_DIR)
        self.cluster.run(name, "chmod", "-R", "+x", f"./{REMOTE_SCRIPTS_DIR}")
        self.cluster.run(name, f"rm -f ./{COCKROACH_ARTIFACT}")
        if self.options.cockroach_binary is None:
            self.cluster.stage(name, COCKROACH_ARTIFACT)
        else:
            self.cluster.put(name, str(self.options.cockroach_binary), COCKROACH_ARTIFACT)
        self.upload_runner()

    def upload_runner(self) -> None:
        """Push the TPC-C runner packages and install their dependencies."""
        name = self.cluster_name
        with tempfile.TemporaryDirectory(prefix="cr-runner-") as tmp:
            bundle = self.bundle_builder(Path(tmp) / REMOTE_RUNNER_DIR)
            self.cluster.run(name, "rm", "-rf", f"./{REMOTE_RUNNER_DIR}")
            self.cluster.put(name, str(bundle), REMOTE_RUNNER_DIR)
        self.cluster.run(name, *install_command())

    def setup_cluster(self) -> None:
        self.cluster.run(self.cluster_name, "sudo", SETUP_SCRIPT, self.context.cloud)

    def start_benchmark(self, kind: BenchmarkKind) -> BenchmarkHandle:
        return self.launcher.start(kind, self.options.extra_for(kind))

    def wait_and_fetch(self, handle: BenchmarkHandle) -> Path:
        logger.info("Waiting for %s to complete", handle.kind.value)
        outcome = self.launcher.wait(handle, timeout=self.wait_timeout)
        while outcome is WaitOutcome.STILL_RUNNING:
            logger.info("%s still running on %s", handle.kind.value, handle.target)
            outcome = self.launcher.wait(handle, timeout=self.wait_timeout)
        if outcome is WaitOutcome.PROCESS_GONE:
            raise RemoteCommandError(
                f"{handle.kind.value} benchmark did not complete successfully; check logs",
                context={"benchmark": handle.kind.value, "target": handle.target},
            )
        destination = self.launcher.fetch_results(handle, self.log_dir, self.clock())
        logger.info("Fetched %s results into %s", handle.kind.value, destination)
        return destination
