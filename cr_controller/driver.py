"""Command-line entry point embedded in every generated driver script."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional, Sequence

import typer
from rich.console import Console

from cr_common.errors import ConfigurationError, CRError
from cr_common.logging import configure_logging
from cr_common.models.target import RenderContext
from cr_controller.adapters.roachprod import ClusterManager
from cr_controller.models.options import (
    DEFAULT_NODES,
    BenchmarkKind,
    DriverOptions,
    default_extra_args,
    parse_benchmarks,
    parse_bootstrap,
)
from cr_controller.orchestrator import Orchestrator

logger = logging.getLogger(__name__)

DRIVER_HELP = """Orchestrate cloud report benchmarks for one target.

\b
-b create: creates cluster
-b upload: uploads required scripts
-b setup:  executes setup script on the cluster
-b all:    all of the above steps
-w cpu|io|net|tpcc|all: benchmarks to execute
"""


def driver_log_dir(script_path: str | Path) -> Path:
    """``<script dir>/../logs/<script name>``."""
    script = Path(script_path).resolve()
    return script.parent.parent / "logs" / script.stem


def _default_logging(log_dir: Path) -> None:
    log_dir.mkdir(parents=True, exist_ok=True)
    configure_logging(log_file=log_dir / "driver.log", force=True)


def build_driver_app(
    context: RenderContext,
    script_path: str | Path,
    *,
    cluster_factory: Callable[[], ClusterManager] = ClusterManager,
    setup_logging: Callable[[Path], None] = _default_logging,
    console: Optional[Console] = None,
) -> typer.Typer:
    """Build the typer app bound to one target's render context."""
    out = console or Console(stderr=True)
    app = typer.Typer(add_completion=False, help=DRIVER_HELP)

    @app.command()
    def drive(
        bootstrap: Optional[List[str]] = typer.Option(
            None, "-b", "--bootstrap", help="Bootstrap step: create, upload, setup or all."
        ),
        workload: Optional[List[str]] = typer.Option(
            None, "-w", "--workload", help="Benchmark to run: cpu, io, net, tpcc or all."
        ),
        destroy: bool = typer.Option(False, "-d", "--destroy", help="Destroy the cluster."),
        cockroach_binary: Optional[Path] = typer.Option(
            None, "-c", "--cockroach-binary", help="Override cockroach binary to use."
        ),
        resume: bool = typer.Option(
            False,
            "-r",
            "--resume",
            help="Do not start benchmarks; resume waiting for their completion.",
        ),
        nodes: int = typer.Option(
            DEFAULT_NODES, "-n", "--nodes", help="Override number of nodes in the cluster."
        ),
        io_args: Optional[str] = typer.Option(None, "-I", help="Additional IO benchmark arguments."),
        net_args: Optional[str] = typer.Option(
            None, "-N", help="Additional network benchmark arguments."
        ),
        cpu_args: Optional[str] = typer.Option(None, "-C", help="Additional CPU benchmark arguments."),
        tpcc_args: Optional[str] = typer.Option(
            None, "-T", help="Additional TPCC benchmark arguments."
        ),
    ) -> None:
        try:
            steps = parse_bootstrap(bootstrap or [])
        except ConfigurationError as exc:
            raise typer.BadParameter(str(exc), param_hint="-b")
        try:
            kinds = parse_benchmarks(workload or [])
        except ConfigurationError as exc:
            raise typer.BadParameter(str(exc), param_hint="-w")
        if nodes < 2:
            raise typer.BadParameter("a cluster needs at least 2 nodes", param_hint="-n")

        extra = default_extra_args(context.bench_args)
        overrides = {
            BenchmarkKind.IO: io_args,
            BenchmarkKind.NET: net_args,
            BenchmarkKind.CPU: cpu_args,
            BenchmarkKind.TPCC: tpcc_args,
        }
        extra.update({kind: value for kind, value in overrides.items() if value is not None})

        options = DriverOptions(
            bootstrap=steps,
            benchmarks=kinds,
            resume=resume,
            destroy=destroy,
            nodes=nodes,
            cockroach_binary=cockroach_binary,
            extra_args=extra,
        )
        log_dir = driver_log_dir(script_path)
        setup_logging(log_dir)
        orchestrator = Orchestrator(context, options, log_dir, cluster=cluster_factory())
        try:
            summary = orchestrator.run()
        except CRError as exc:
            logger.error("Driver failed: %s (%s)", exc, exc.context)
            out.print(f"[red]{exc}[/red]")
            raise typer.Exit(1)
        for kind, path in summary.results.items():
            out.print(f"[green]{kind.value}[/green] results: {path}")

    return app


def run_driver(
    context_json: str, argv: Sequence[str], *, script_path: str | Path
) -> int:
    """Entry point called by generated scripts; returns the process exit code."""
    context = RenderContext.model_validate_json(context_json)
    app = build_driver_app(context, script_path)
    try:
        app(args=list(argv), prog_name=Path(script_path).name)
    except SystemExit as exc:
        if exc.code is None:
            return 0
        return exc.code if isinstance(exc.code, int) else 1
    return 0
