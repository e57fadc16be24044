"""catalogci matrix — component matrix for the current push / pull request.

The matrix JSON is printed to stdout and, inside GitHub Actions, appended to
``$GITHUB_OUTPUT`` as ``matrix=<json>`` for use in ``fromJSON()``.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Annotated

import typer

from catalogci.changes.git import GitDiffSource
from catalogci.changes.github import GitHubDiffSource, load_event_payload
from catalogci.changes.models import ChangedFile
from catalogci.cli.common import err_console, load_cfg_or_exit, load_entities_or_exit
from catalogci.cli.errors import err_changed_files, err_no_repository
from catalogci.config import CatalogCiConfig
from catalogci.log import configure_logging
from catalogci.matrix.builder import generate_component_matrix


def matrix_cmd(
    backstage_url: Annotated[
        str | None,
        typer.Option("--backstage-url", help="Backstage base URL (default: $BACKSTAGE_URL)."),
    ] = None,
    entities_file: Annotated[
        str | None,
        typer.Option("--entities-file", help="Local YAML/JSON catalog export instead of the API."),
    ] = None,
    repository: Annotated[
        str | None,
        typer.Option("--repository", help="owner/repo (default: $GITHUB_REPOSITORY)."),
    ] = None,
    event_name: Annotated[
        str | None,
        typer.Option("--event-name", help="Triggering event (default: $GITHUB_EVENT_NAME)."),
    ] = None,
    force_all_checks: Annotated[
        bool,
        typer.Option("--force-all-checks", help="Run checks for every component."),
    ] = False,
    base_ref: Annotated[
        str | None,
        typer.Option("--base-ref", help="Diff the local checkout against this ref instead of the GitHub API."),
    ] = None,
    github_output: Annotated[
        Path | None,
        typer.Option("--github-output", help="File to append matrix=<json> to (default: $GITHUB_OUTPUT)."),
    ] = None,
    root: Annotated[
        Path,
        typer.Option("--root", hidden=True, help="Checkout root for manifest lookups (for testing)."),
    ] = Path("."),
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Log every manifest probe."),
    ] = False,
) -> None:
    """Print the CI component matrix for the changed files of this event."""
    configure_logging(verbose=verbose)
    cfg = load_cfg_or_exit(backstage_url, entities_file)
    if repository:
        cfg.github.repository = repository
    if event_name:
        cfg.github.event_name = event_name
    if force_all_checks:
        cfg.matrix.force_all_checks = True

    repo_url = cfg.github.repo_url
    if not repo_url:
        err_console.print(err_no_repository())
        raise typer.Exit(1)

    entities = load_entities_or_exit(cfg)
    changed_files = _changed_files_or_exit(cfg, base_ref)

    matrix = generate_component_matrix(
        entities,
        changed_files,
        repo_url,
        cfg.github.event_name,
        cfg.matrix.force_all_checks,
        base=root,
        default_go_version=cfg.matrix.default_go_version,
    )

    typer.echo(json.dumps(matrix, indent=2))

    output_path = github_output or _env_path("GITHUB_OUTPUT")
    if output_path is not None:
        with output_path.open("a", encoding="utf-8") as fh:
            fh.write(f"matrix={json.dumps(matrix)}\n")


def _changed_files_or_exit(cfg: CatalogCiConfig, base_ref: str | None) -> list[ChangedFile]:
    try:
        if base_ref:
            return GitDiffSource(base_ref).fetch_changed_files()
        source = GitHubDiffSource(
            load_event_payload(cfg.github.event_path),
            cfg.github.repository,
            api_url=cfg.github.api_url,
        )
        return source.fetch_changed_files(cfg.github.event_name)
    except (RuntimeError, ValueError) as exc:  # DiffSourceError, git failures, bad ref
        err_console.print(err_changed_files(str(exc)))
        raise typer.Exit(1) from None


def _env_path(name: str) -> Path | None:
    value = os.environ.get(name)
    return Path(value) if value else None
