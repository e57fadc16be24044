"""catalogci rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from catalogci.cli.errors import err_no_backstage_url
    err_console.print(err_no_backstage_url())
    raise typer.Exit(1)
"""

from __future__ import annotations


def err_no_backstage_url() -> str:
    """Neither a Backstage URL nor an entities file is configured."""
    return (
        "[red]Error:[/] BACKSTAGE_URL is required.\n"
        "  Set:  export BACKSTAGE_URL=https://user@backstage.example.com\n"
        "  or pass --entities-file catalog.yaml for an offline export."
    )


def err_no_repository() -> str:
    """The repository the matrix is generated for is unknown."""
    return (
        "[red]Error:[/] Repository not set.\n"
        "  Set:  export GITHUB_REPOSITORY=<owner>/<repo>\n"
        "  or pass --repository <owner>/<repo>."
    )


def err_no_datadog_key() -> str:
    """Metric submission requested without an API key."""
    return (
        "[red]Error:[/] No Datadog API key.\n"
        "  Set:  export DD_API_KEY=<key>\n"
        "  or use --dry-run to print the series without submitting."
    )


def err_catalog_unavailable(detail: str) -> str:
    """The catalog could not be read."""
    return (
        f"[red]Error:[/] Cannot read the catalog: {detail}\n"
        "  Check BACKSTAGE_URL and that the catalog backend is reachable,\n"
        "  or use --entities-file with a local export."
    )


def err_changed_files(detail: str) -> str:
    """The changed-file list could not be fetched."""
    return (
        f"[red]Error:[/] Cannot list changed files: {detail}\n"
        "  Set:  export GITHUB_TOKEN=<token> with contents:read,\n"
        "  or use --force-all-checks to skip change detection."
    )


def err_invalid_config(detail: str) -> str:
    """A config file was rejected."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {detail}\n"
        "  Fix catalog-ci.yaml and re-run."
    )


def warn_batches_failed(names: list[str]) -> str:
    """Some metric batches were rejected; the rest were submitted."""
    listed = ", ".join(names)
    return (
        f"[yellow]⚠[/] {len(names)} metric batch(es) failed: {listed}\n"
        "  Other batches were submitted. Re-run the workflow to retry."
    )
