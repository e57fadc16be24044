"""catalogci configuration loader.

Priority (high → low):
  1. CLI flags           (handled at call site — not in this module)
  2. Environment variables  (BACKSTAGE_URL, GITHUB_*, DD_SITE, CATALOG_CI_*)
  3. Per-project catalog-ci.yaml  (working directory)
  4. Global ~/.catalog-ci/config.yaml
  5. Hardcoded defaults

Credentials (GITHUB_TOKEN, DD_API_KEY) are read from the environment only; a
config file that names one is rejected.
All YAML reads use yaml.safe_load() — never yaml.load().
"""

from __future__ import annotations

import os
import re
import warnings
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

_GLOBAL_CONFIG_DIR: Path = Path.home() / ".catalog-ci"
_GLOBAL_CONFIG_PATH: Path = _GLOBAL_CONFIG_DIR / "config.yaml"
_PROJECT_CONFIG_NAME: str = "catalog-ci.yaml"

# Fields that suggest a credential are forbidden in any config file.
# Matches: api_key, apikey, api-key, app_key, _token (suffix), standalone token,
# _secret (suffix), standalone secret, password, passwd, credential(s).
_API_KEY_RE: re.Pattern[str] = re.compile(
    r"(?:api|app)[_\-]?(?:key|secret)"
    r"|_token$"
    r"|^token$"
    r"|_secret$"
    r"|^secret$"
    r"|passw(?:ord|d)"
    r"|credential",
    re.IGNORECASE,
)

_KNOWN_SECTIONS: frozenset[str] = frozenset(["backstage", "github", "matrix", "metrics"])

_TRUTHY: frozenset[str] = frozenset(["1", "true", "yes", "on"])


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class ConfigError(ValueError):
    """Raised when required configuration is missing or a config value is forbidden."""


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass
class BackstageCfg:
    """Catalog source configuration (catalog-ci.yaml: backstage:).

    Attributes:
        url: Backstage base URL. May carry a ``user@host`` prefix; the part after
            the last ``@`` becomes the ``host`` tag on every metric.
        entities_file: Local YAML/JSON catalog export used instead of the API.
    """

    url: str | None = None
    entities_file: str | None = None


@dataclass
class GitHubCfg:
    """GitHub context (catalog-ci.yaml: github:)."""

    server_url: str = "https://github.com"
    api_url: str = "https://api.github.com"
    repository: str | None = None  # owner/repo
    event_name: str | None = None
    event_path: str | None = None

    @property
    def repo_url(self) -> str | None:
        if not self.repository:
            return None
        return f"{self.server_url.rstrip('/')}/{self.repository}"


@dataclass
class MatrixCfg:
    """Component matrix settings (catalog-ci.yaml: matrix:)."""

    force_all_checks: bool = False
    default_go_version: str = "1.18"


@dataclass
class MetricsCfg:
    """Metrics submission settings (catalog-ci.yaml: metrics:)."""

    site: str = "datadoghq.eu"
    timeout: int = 30


@dataclass
class CatalogCiConfig:
    """Root configuration object, built by load_config() from merged YAML layers."""

    backstage: BackstageCfg = field(default_factory=BackstageCfg)
    github: GitHubCfg = field(default_factory=GitHubCfg)
    matrix: MatrixCfg = field(default_factory=MatrixCfg)
    metrics: MetricsCfg = field(default_factory=MetricsCfg)

    def require_catalog(self) -> None:
        """Raise ConfigError unless a catalog URL or entities file is configured."""
        if not self.backstage.url and not self.backstage.entities_file:
            raise ConfigError(
                "BACKSTAGE_URL is required, make sure to set the secret "
                "(or pass --entities-file for an offline catalog export)."
            )


# ---------------------------------------------------------------------------
# Validation helpers
# ---------------------------------------------------------------------------


def _check_no_api_keys(data: dict[str, Any], source: Path) -> None:
    """Raise ConfigError if *data* contains any credential-like key names."""

    def _scan(obj: Any, path: str) -> None:
        if isinstance(obj, dict):
            for k, v in obj.items():
                full = f"{path}.{k}" if path else k
                if _API_KEY_RE.search(str(k)):
                    raise ConfigError(
                        f"Config '{source}' contains a forbidden key '{full}'.\n"
                        f"  Credentials must be set via environment variables, not config files.\n"
                        f"  Remove '{full}' from {source.name} and use:\n"
                        f"    export {str(k).upper().replace('-', '_')}=<value>"
                    )
                _scan(v, full)

    _scan(data, "")


def _warn_unknown_keys(data: dict[str, Any], source: Path) -> None:
    """Emit a UserWarning for unrecognised top-level keys."""
    for key in data:
        if key not in _KNOWN_SECTIONS:
            warnings.warn(
                f"Unknown config key '{key}' in '{source}' — ignored.",
                UserWarning,
                stacklevel=4,
            )


def parse_flag(value: Any) -> bool:
    """Interpret a workflow input / env var as a boolean flag.

    Empty strings and ``"false"`` are off; GitHub passes every input as a string.
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUTHY


# ---------------------------------------------------------------------------
# Merge + build
# ---------------------------------------------------------------------------


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Return a new dict that is *base* deep-merged with *override*."""
    result = dict(base)
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


def _cfg_from_dict(data: dict[str, Any]) -> CatalogCiConfig:
    """Build a *CatalogCiConfig* from a merged raw YAML dict."""
    cfg = CatalogCiConfig()

    if "backstage" in data:
        b = data["backstage"] or {}
        cfg.backstage = BackstageCfg(
            url=b.get("url") or cfg.backstage.url,
            entities_file=b.get("entities_file") or cfg.backstage.entities_file,
        )

    if "github" in data:
        g = data["github"] or {}
        cfg.github = GitHubCfg(
            server_url=str(g.get("server_url", cfg.github.server_url)),
            api_url=str(g.get("api_url", cfg.github.api_url)),
            repository=g.get("repository") or cfg.github.repository,
        )

    if "matrix" in data:
        m = data["matrix"] or {}
        cfg.matrix = MatrixCfg(
            force_all_checks=parse_flag(m.get("force_all_checks", cfg.matrix.force_all_checks)),
            default_go_version=str(m.get("default_go_version", cfg.matrix.default_go_version)),
        )

    if "metrics" in data:
        mt = data["metrics"] or {}
        cfg.metrics = MetricsCfg(
            site=str(mt.get("site", cfg.metrics.site)),
            timeout=int(mt.get("timeout", cfg.metrics.timeout)),
        )

    return cfg


def _apply_env_overrides(cfg: CatalogCiConfig) -> CatalogCiConfig:
    """Apply environment variable overrides (layer 2)."""
    if url := os.environ.get("BACKSTAGE_URL"):
        cfg.backstage.url = url
    if entities_file := os.environ.get("CATALOG_CI_ENTITIES_FILE"):
        cfg.backstage.entities_file = entities_file
    if flag := os.environ.get("CATALOG_CI_FORCE_ALL_CHECKS"):
        cfg.matrix.force_all_checks = parse_flag(flag)
    if server_url := os.environ.get("GITHUB_SERVER_URL"):
        cfg.github.server_url = server_url
    if api_url := os.environ.get("GITHUB_API_URL"):
        cfg.github.api_url = api_url
    if repository := os.environ.get("GITHUB_REPOSITORY"):
        cfg.github.repository = repository
    if event_name := os.environ.get("GITHUB_EVENT_NAME"):
        cfg.github.event_name = event_name
    if event_path := os.environ.get("GITHUB_EVENT_PATH"):
        cfg.github.event_path = event_path
    if site := os.environ.get("DD_SITE"):
        cfg.metrics.site = site
    return cfg


def _read_layer(path: Path) -> dict[str, Any]:
    raw = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(raw, dict):
        raise ConfigError(f"Config '{path}' must be a YAML mapping, got {type(raw).__name__}.")
    _check_no_api_keys(raw, path)
    _warn_unknown_keys(raw, path)
    return raw


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def load_config(
    project_dir: Path | None = None,
    *,
    global_config_path: Path | None = None,
) -> CatalogCiConfig:
    """Load and return a merged *CatalogCiConfig*.

    Applies layers in order: global → per-project → env vars.
    CLI flag overrides must be applied by the caller after this function.

    Args:
        project_dir: Directory to search for *catalog-ci.yaml*. Defaults to CWD.
        global_config_path: Override the global config path (for testing).

    Raises:
        ConfigError: If a config file contains credential-like fields or is not
            a mapping.
    """
    global_path = global_config_path if global_config_path is not None else _GLOBAL_CONFIG_PATH
    search_dir = project_dir if project_dir is not None else Path.cwd()

    merged: dict[str, Any] = {}

    if global_path.exists():
        merged = _deep_merge(merged, _read_layer(global_path))

    project_cfg_path = search_dir / _PROJECT_CONFIG_NAME
    if project_cfg_path.exists():
        merged = _deep_merge(merged, _read_layer(project_cfg_path))

    cfg = _cfg_from_dict(merged)
    return _apply_env_overrides(cfg)
