"""catalogci CLI entry point."""

from __future__ import annotations

import importlib.metadata
from typing import Annotated

import typer

from catalogci.cli.matrix import matrix_cmd
from catalogci.cli.metrics import classify_cmd, multisig_metrics_cmd


def _installed_version() -> str:
    try:
        return importlib.metadata.version("catalog-ci")
    except importlib.metadata.PackageNotFoundError:
        return "dev"


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"catalogci {_installed_version()}")
        raise typer.Exit()


app = typer.Typer(
    name="catalogci",
    help=(
        "catalogci — Backstage-driven CI helpers.\n\n"
        "  catalogci matrix            Component matrix for the changed files of a push / PR.\n"
        "  catalogci multisig-metrics  Multisig, signer and access-key telemetry to Datadog."
    ),
    add_completion=False,
)


@app.callback()
def main_callback(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = False,
) -> None:
    """catalogci — Backstage-driven CI helpers."""


app.command("matrix")(matrix_cmd)
app.command("multisig-metrics")(multisig_metrics_cmd)
app.command("classify")(classify_cmd)


@app.command("version")
def version_cmd() -> None:
    """Show the installed catalogci version."""
    typer.echo(f"catalogci {_installed_version()}")


if __name__ == "__main__":
    app()
