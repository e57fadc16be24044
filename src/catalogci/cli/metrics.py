"""catalogci multisig-metrics / classify commands.

multisig-metrics builds every series batch from the catalog and submits the
batches to Datadog; a failed batch is reported but does not fail the command.
classify prints the classifier group counts without submitting anything.
"""

from __future__ import annotations

from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table

from catalogci.cli.common import err_console, load_cfg_or_exit, load_entities_or_exit
from catalogci.cli.errors import err_no_datadog_key, warn_batches_failed
from catalogci.config import ConfigError
from catalogci.log import configure_logging
from catalogci.multisig.collector import OWNER_MULTISIG, OWNER_USER, MultisigsCollector
from catalogci.multisig.metrics import generate_all_metrics
from catalogci.multisig.sink import DatadogSink

console = Console()

_LOCAL_HOST = "local"


def multisig_metrics_cmd(
    backstage_url: Annotated[
        str | None,
        typer.Option("--backstage-url", help="Backstage base URL (default: $BACKSTAGE_URL)."),
    ] = None,
    entities_file: Annotated[
        str | None,
        typer.Option("--entities-file", help="Local YAML/JSON catalog export instead of the API."),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Build the series and show a summary without submitting."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log request payloads."),
    ] = False,
) -> None:
    """Submit multisig, signer, and access-key metrics to Datadog."""
    configure_logging(verbose=verbose)
    cfg = load_cfg_or_exit(backstage_url, entities_file)
    entities = load_entities_or_exit(cfg)

    collector = MultisigsCollector(entities)
    batches = generate_all_metrics(collector, cfg.backstage.url or _LOCAL_HOST)

    if dry_run:
        table = Table(title="Metric batches (dry run)", show_header=True, header_style="bold")
        table.add_column("Batch", style="bold")
        table.add_column("Series", justify="right")
        for name, series in batches.items():
            table.add_row(name, str(len(series)))
        console.print(table)
        return

    try:
        sink = DatadogSink(site=cfg.metrics.site, timeout=cfg.metrics.timeout)
    except ConfigError:
        err_console.print(err_no_datadog_key())
        raise typer.Exit(1) from None

    results = sink.submit_all(batches)

    table = Table(title="Metric submission", show_header=True, header_style="bold")
    table.add_column("Batch", style="bold")
    table.add_column("Series", justify="right")
    table.add_column("Status")
    for result in results:
        status = "[green]✓ submitted[/]" if result.ok else f"[red]✗ {result.error}[/]"
        table.add_row(result.batch, str(result.series_count), status)
    console.print(table)

    failed = [r.batch for r in results if not r.ok]
    if failed:
        err_console.print(warn_batches_failed(failed))


def classify_cmd(
    backstage_url: Annotated[
        str | None,
        typer.Option("--backstage-url", help="Backstage base URL (default: $BACKSTAGE_URL)."),
    ] = None,
    entities_file: Annotated[
        str | None,
        typer.Option("--entities-file", help="Local YAML/JSON catalog export instead of the API."),
    ] = None,
) -> None:
    """Show multisig / signer / access-key group counts for the catalog."""
    configure_logging()
    cfg = load_cfg_or_exit(backstage_url, entities_file)
    collector = MultisigsCollector(load_entities_or_exit(cfg))

    keys = collector.get_all_access_keys()
    signers = collector.get_signers()

    table = Table(title="Catalog classification", show_header=True, header_style="bold")
    table.add_column("Group", style="bold")
    table.add_column("Count", justify="right")
    table.add_row("Multisigs", str(len(collector.get_multisigs())))
    table.add_row("Signers", str(len(signers)))
    table.add_row("  unknown (stub)", str(sum(1 for s in signers if s.stub)))
    table.add_row("Access keys", str(len(keys)))
    table.add_row("  owned by users", str(sum(1 for k in keys if k.owner_kind == OWNER_USER)))
    table.add_row("  owned by multisigs", str(sum(1 for k in keys if k.owner_kind == OWNER_MULTISIG)))
    table.add_row("  deprecated", str(sum(1 for k in keys if k.deprecated)))
    table.add_row("  unknown owner", str(sum(1 for k in keys if k.unknown)))
    table.add_row("Contracts with keys", str(len(collector.get_access_keys_per_contract())))
    console.print(table)
