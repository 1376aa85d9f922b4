"""Benchmark runners on the cluster: start, wait and fetch results.

Each runner is an opaque script uploaded under ``./scripts/gen``. Starting
one opens a detached tmux window and returns a handle immediately; waiting
runs the same script with ``-w``, which blocks until the runner's own
completion signal.
"""

from __future__ import annotations

import logging
import subprocess
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Callable, Dict, Optional

from cr_common.errors import RemoteCommandError
from cr_common.models.target import WaitOutcome
from cr_controller.adapters.roachprod import ClusterManager, node_target
from cr_controller.models.options import BenchmarkKind

logger = logging.getLogger(__name__)

TMUX_SESSION = "cloud-report"
NETPERF_PORT = 1337
COCKROACH_START_FLAGS = "--cache=0.25 --max-sql-memory=0.4"
STORE_DISCOVERY_CMD = "ls -1d /mnt/data[2-9]* 2>/dev/null || echo"
RESULTS_TIMESTAMP = "%Y%m%d.%H:%M:%S"
SUCCESS_MARKER = "success"


@dataclass(frozen=True)
class BenchmarkDefinition:
    """Where a benchmark runs and what it produces."""

    kind: BenchmarkKind
    script: str
    results_dir: str
    node: Callable[[int], str]


BENCHMARKS: Dict[BenchmarkKind, BenchmarkDefinition] = {
    BenchmarkKind.CPU: BenchmarkDefinition(
        BenchmarkKind.CPU, "./scripts/gen/cpu.sh", "coremark-results", lambda n: "1"
    ),
    BenchmarkKind.IO: BenchmarkDefinition(
        BenchmarkKind.IO, "./scripts/gen/fio.sh", "fio-results", lambda n: "1"
    ),
    BenchmarkKind.NET: BenchmarkDefinition(
        BenchmarkKind.NET,
        "./scripts/gen/network-netperf.sh",
        "netperf-results",
        lambda n: str(n - 1),
    ),
    BenchmarkKind.TPCC: BenchmarkDefinition(
        BenchmarkKind.TPCC, "./scripts/gen/tpcc.sh", "tpcc-results", lambda n: str(n)
    ),
}


@dataclass(frozen=True)
class BenchmarkHandle:
    """A benchmark started (or previously started) on a cluster node."""

    kind: BenchmarkKind
    target: str
    script: str
    results_dir: str
    started: bool = True


def results_dir(log_dir: Path, name: str, now: datetime) -> Path:
    """Date-suffixed results directory under ``log_dir``."""
    return log_dir / f"{name}.{now.strftime(RESULTS_TIMESTAMP)}"


class BenchmarkLauncher:
    """Start benchmarks in tmux windows and collect their results."""

    def __init__(self, cluster: ClusterManager, cluster_name: str, nodes: int):
        self.cluster = cluster
        self.cluster_name = cluster_name
        self.nodes = nodes

    def node(self, nodes: str | int) -> str:
        return node_target(self.cluster_name, nodes)

    def handle_for(self, kind: BenchmarkKind, *, started: bool = False) -> BenchmarkHandle:
        """Handle for a benchmark without starting it (resume)."""
        definition = BENCHMARKS[kind]
        return BenchmarkHandle(
            kind=kind,
            target=self.node(definition.node(self.nodes)),
            script=definition.script,
            results_dir=definition.results_dir,
            started=started,
        )

    def run_under_tmux(self, name: str, target: str, command: str) -> None:
        self.cluster.run(
            target, "tmux", "neww", "-t", TMUX_SESSION, "-n", name, "-d", "--", command
        )

    def start(self, kind: BenchmarkKind, extra_args: str = "") -> BenchmarkHandle:
        """Launch a benchmark without waiting for it."""
        handle = self.handle_for(kind, started=True)
        logger.info("Starting %s benchmark on %s", kind.value, handle.target)
        if kind == BenchmarkKind.NET:
            self._start_net(handle, extra_args)
        elif kind == BenchmarkKind.TPCC:
            self._start_tpcc(handle, extra_args)
        else:
            self.run_under_tmux(kind.value, handle.target, _join(handle.script, extra_args))
        return handle

    def _start_net(self, handle: BenchmarkHandle, extra_args: str) -> None:
        server_node = self.node(self.nodes)
        server = self.cluster.ip(server_node)
        self.cluster.run(server_node, handle.script, "-S", "-p", str(NETPERF_PORT))
        command = _join(handle.script, f"-s {server} -p {NETPERF_PORT}", extra_args)
        self.run_under_tmux(handle.kind.value, handle.target, command)

    def start_cockroach(self) -> None:
        """Start cockroach on every node but the last one (the load generator)."""
        output = self.cluster.run(self.node(1), STORE_DISCOVERY_CMD)
        stores = " ".join(f"--store {path}/cockroach" for path in output.split())
        self.cluster.start(self.node(f"1-{self.nodes - 1}"), _join(stores, COCKROACH_START_FLAGS))

    def _start_tpcc(self, handle: BenchmarkHandle, extra_args: str) -> None:
        self.cluster.run(handle.target, "rm", "-f", f"./{handle.results_dir}/{SUCCESS_MARKER}")
        self.start_cockroach()
        pgurls = self.cluster.pgurl(self.node(f"1-{self.nodes - 1}"))
        command = _join(handle.script, extra_args, " ".join(pgurls))
        self.run_under_tmux(handle.kind.value, handle.target, command)

    def wait(self, handle: BenchmarkHandle, timeout: Optional[float] = None) -> WaitOutcome:
        """Block on the runner's completion signal."""
        try:
            self.cluster.run(handle.target, handle.script, "-w", timeout=timeout)
        except subprocess.TimeoutExpired:
            return WaitOutcome.STILL_RUNNING
        except RemoteCommandError as exc:
            logger.warning("%s benchmark did not complete: %s", handle.kind.value, exc)
            return WaitOutcome.PROCESS_GONE
        return WaitOutcome.COMPLETED

    def fetch_results(
        self, handle: BenchmarkHandle, log_dir: Path, now: Optional[datetime] = None
    ) -> Path:
        destination = results_dir(log_dir, handle.results_dir, now or datetime.now())
        self.cluster.get(handle.target, f"./{handle.results_dir}", str(destination))
        return destination


def _join(*parts: str) -> str:
    return " ".join(part for part in parts if part)
