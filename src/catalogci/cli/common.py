"""Helpers shared by catalogci commands: config + catalog loading with exit-on-error."""

from __future__ import annotations

import typer
from rich.console import Console

from catalogci.catalog.client import CatalogError, fetch_entities
from catalogci.catalog.models import Entity
from catalogci.cli.errors import err_catalog_unavailable, err_invalid_config, err_no_backstage_url
from catalogci.config import CatalogCiConfig, ConfigError, load_config

err_console = Console(stderr=True)


def load_cfg_or_exit(backstage_url: str | None, entities_file: str | None) -> CatalogCiConfig:
    """Load layered config and apply the catalog flags (layer 1)."""
    try:
        cfg = load_config()
    except ConfigError as exc:
        err_console.print(err_invalid_config(str(exc)))
        raise typer.Exit(1) from None
    if backstage_url:
        cfg.backstage.url = backstage_url
    if entities_file:
        cfg.backstage.entities_file = entities_file
    return cfg


def load_entities_or_exit(cfg: CatalogCiConfig) -> list[Entity]:
    try:
        cfg.require_catalog()
        return fetch_entities(
            cfg.backstage.url,
            cfg.backstage.entities_file,
            timeout=cfg.metrics.timeout,
        )
    except ConfigError:
        err_console.print(err_no_backstage_url())
        raise typer.Exit(1) from None
    except CatalogError as exc:
        err_console.print(err_catalog_unavailable(str(exc)))
        raise typer.Exit(1) from None
