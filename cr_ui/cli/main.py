"""
Command-line interface for cloud-report.

Generates per-target driver scripts from a layered report configuration.
"""

from __future__ import annotations

import typer
from rich.console import Console

from cr_common.logging import configure_logging
from cr_ui.cli.commands.generate import register_generate_command

console = Console()

app = typer.Typer(
    help="Generate cloud report benchmark driver scripts.", no_args_is_help=True
)


@app.callback()
def entry(
    debug: bool = typer.Option(False, "--debug", help="Enable debug logging."),
) -> None:
    """Global options."""
    configure_logging(debug=debug)


register_generate_command(app, console)


def main() -> None:
    """Console script entrypoint (Typer app)."""
    app()


if __name__ == "__main__":
    main()
