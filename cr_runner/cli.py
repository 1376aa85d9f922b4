"""``cr-tpcc``: escalation controller entry point run on a cluster node."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, List, Optional

import typer
from rich.console import Console

from cr_common.config.env import path_from_env
from cr_common.errors import CRError, RunLockError
from cr_common.logging import configure_logging
from cr_common.models.target import WaitOutcome
from cr_runner.escalation import (
    DEFAULT_ACTIVE,
    DEFAULT_DURATION,
    DEFAULT_WAREHOUSES,
    CockroachWorkload,
    EscalationController,
    EscalationSettings,
)
from cr_runner.lease import RunLease, read_holder
from cr_runner.run_record import RunStatus
from cr_runner.waiter import DEFAULT_POLL_INTERVAL, wait_for_completion

logger = logging.getLogger(__name__)


def default_lease_path() -> Path:
    return path_from_env("CR_TPCC_PIDFILE", Path.home() / "tpcc-bench.pid")


def default_results_dir() -> Path:
    return path_from_env("CR_TPCC_RESULTS_DIR", Path.home() / "tpcc-results")


def default_cockroach_binary() -> Path:
    return path_from_env("CR_COCKROACH_BINARY", Path.home() / "cockroach")


def _default_logging(log_file: Path) -> None:
    configure_logging(log_file=log_file, force=True)


def build_app(
    *,
    workload_factory: Callable[[], CockroachWorkload] = lambda: CockroachWorkload(
        default_cockroach_binary(), cwd=Path.home()
    ),
    setup_logging: Callable[[Path], None] = _default_logging,
    console: Optional[Console] = None,
) -> typer.Typer:
    """Build the ``cr-tpcc`` typer app."""
    out = console or Console(stderr=True)
    app = typer.Typer(add_completion=False, help="Run TPC-C at increasing load until it saturates.")

    @app.command()
    def tpcc(
        pgurls: Optional[List[str]] = typer.Argument(None, help="pgurls of the cluster nodes."),
        force: bool = typer.Option(
            False, "-f", "--force", help="Ignore existing pid file; override and rerun."
        ),
        wait: bool = typer.Option(
            False, "-w", "--wait", help="Wait for the currently running benchmark to complete."
        ),
        warehouses: int = typer.Option(
            DEFAULT_WAREHOUSES, "-W", "--warehouses", help="Number of warehouses (highest level)."
        ),
        active: int = typer.Option(
            DEFAULT_ACTIVE, "-A", "--active", help="Number of active warehouses to start with."
        ),
        increment: Optional[int] = typer.Option(
            None,
            "-I",
            "--increment",
            help="Active warehouse increment; 0 runs once at the highest level.",
        ),
        skip_load: bool = typer.Option(False, "-s", "--skip-load", help="Skip loading stage."),
        duration: str = typer.Option(DEFAULT_DURATION, "-d", "--duration", help="Duration per level."),
        poll_interval: float = typer.Option(DEFAULT_POLL_INTERVAL, "--poll-interval", hidden=True),
    ) -> None:
        lease_path = default_lease_path()
        results_dir = default_results_dir()

        if wait:
            outcome = wait_for_completion(results_dir, lease_path, poll_interval=poll_interval)
            if outcome is not WaitOutcome.COMPLETED:
                out.print("TPC-C benchmark did not complete successfully.  Check logs")
                raise typer.Exit(1)
            return

        if lease_path.exists() and not force:
            out.print(f"TPCC benchmark already running (pid {read_holder(lease_path)})")
            return

        if not pgurls:
            out.print("[red]list of pgurls required[/red]")
            raise typer.Exit(1)

        settings = EscalationSettings(
            pgurls=list(pgurls),
            warehouses=warehouses,
            active=active,
            increment=increment,
            duration=duration,
            skip_load=skip_load,
        )
        try:
            with RunLease(lease_path, force=force):
                controller = EscalationController(settings, workload_factory(), results_dir)
                controller.prepare_results_dir()
                setup_logging(results_dir / "script.log")
                record = controller.run()
        except RunLockError as exc:
            out.print(f"TPCC benchmark already running (pid {exc.holder_pid})")
            return
        except CRError as exc:
            logger.error("TPC-C escalation failed: %s", exc)
            out.print(f"[red]{exc}[/red]")
            raise typer.Exit(1)

        if record.status is RunStatus.FAILED:
            out.print("[yellow]No level passed; see reports in[/yellow] " + str(results_dir))
        else:
            out.print(
                f"[green]{record.status.value}[/green]: passed levels {record.passed_levels}"
            )

    return app


app = build_app()


def main() -> None:
    """Console script entrypoint (Typer app)."""
    app()


if __name__ == "__main__":
    main()
