from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from cr_common.errors import CRError
from cr_generator.api import (
    ScriptRenderer,
    cluster_identity,
    format_machine_type,
    iter_targets,
    load_report_config,
)


def _fail(console: Console, exc: CRError) -> None:
    console.print(f"[red]{exc.error_type}:[/red] {exc}")
    raise typer.Exit(1)


def register_generate_command(app: typer.Typer, console: Console) -> None:
    """Register ``generate`` and ``targets`` on the given Typer app."""

    @app.command("generate")
    def generate(
        config: Optional[Path] = typer.Option(
            None, "--config", "-c", help="Report configuration (YAML or JSON)."
        ),
        scripts_dir: str = typer.Option(
            "./scripts",
            "--scripts-dir",
            help="Directory containing scripts uploaded to cloud VMs that execute benchmarks.",
        ),
        lifetime: str = typer.Option("24h", "--lifetime", "-l", help="Cluster lifetime."),
        output_root: Optional[Path] = typer.Option(
            None, "--output-root", "-o", help="Override the configured output root."
        ),
    ) -> None:
        """Generate scripts necessary for execution of cloud report benchmarks."""
        try:
            cfg = load_report_config(config)
            scripts = ScriptRenderer(
                cfg, scripts_dir, lifetime, output_root=output_root
            ).generate()
        except CRError as exc:
            _fail(console, exc)
            return

        if not scripts:
            console.print("[yellow]No machine types configured; nothing generated.[/yellow]")
            return
        table = Table(title="Generated driver scripts", header_style="bold magenta")
        table.add_column("Cloud", style="cyan")
        table.add_column("Machine type")
        table.add_column("Cluster")
        table.add_column("Script", style="green")
        for script in scripts:
            table.add_row(script.cloud, script.machine_type, script.cluster, str(script.path))
        console.print(table)

    @app.command("targets")
    def targets(
        config: Optional[Path] = typer.Option(
            None, "--config", "-c", help="Report configuration (YAML or JSON)."
        ),
    ) -> None:
        """List configured targets and their cluster identities."""
        try:
            cfg = load_report_config(config)
        except CRError as exc:
            _fail(console, exc)
            return
        table = Table(title="Targets", header_style="bold magenta")
        table.add_column("Cloud", style="cyan")
        table.add_column("Group")
        table.add_column("Machine type")
        table.add_column("Cluster")
        table.add_column("Script name")
        for cloud, machine_type in iter_targets(cfg):
            table.add_row(
                cloud.cloud,
                cloud.group or "-",
                machine_type,
                cluster_identity(cloud.cloud, cloud.group, cfg.report_version, machine_type),
                f"{format_machine_type(machine_type)}.py",
            )
        console.print(table)
