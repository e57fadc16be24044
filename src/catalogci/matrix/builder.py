"""Component matrix builder — one CI matrix entry per catalog component.

Each entry tells the workflow where the component lives, which toolchains it
uses (Solidity, Rust, Go), which static checks to run, and whether failures are
tolerated. Filesystem probes are relative to *base* (the checkout root); all
paths in the output are repository-relative.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Sequence

from catalogci.catalog.entity import (
    SourceLocationError,
    allow_tests_to_fail,
    security_tier,
    source_location_dir,
)
from catalogci.catalog.models import Entity
from catalogci.changes.models import ChangedFile
from catalogci.log import get_logger
from catalogci.matrix.attribution import changed_entities, components, entities_in_repo, inspect_entities
from catalogci.matrix.policy import run_tests_policy

logger = get_logger(__name__)

DEFAULT_GO_VERSION = "1.18"
REPO_ROOT = "."

SOLIDITY_TAGS: frozenset[str] = frozenset(["ethereum", "aurora"])
RUST_TAG = "near"

CARGO_MANIFEST = "Cargo.toml"
GO_MANIFEST = "go.mod"
NODE_MANIFEST = "package.json"
SLITHER_CONFIG = "slither.config.json"

DEFAULT_SLITHER_ARGS = (
    '--filter-paths "node_modules|testing|test|lib" '
    "--exclude timestamp,solc-version,naming-convention,assembly-usage"
)

_GO_VERSION_RE = re.compile(r"^go\s+(\S+)", re.MULTILINE)


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ComponentConfig:
    """A single ``include`` entry of the CI matrix."""

    name: str
    tags: list[str]
    path: str
    security_tier: int
    allow_tests_to_fail: bool
    node_root: str
    go_version: str
    is_solidity: bool
    is_rust: bool
    is_go: bool
    run_slither: bool
    slither_args: str
    run_clippy: bool
    run_go_static_checks: bool
    changed: bool = False
    run_tests: bool = True
    reason: str = field(default="", compare=False)

    def to_dict(self) -> dict[str, Any]:
        """Serialise with the camelCase keys the workflow expressions use."""
        return {
            "name": self.name,
            "tags": list(self.tags),
            "path": self.path,
            "securityTier": self.security_tier,
            "allowTestsToFail": self.allow_tests_to_fail,
            "nodeRoot": self.node_root,
            "goVersion": self.go_version,
            "isSolidity": self.is_solidity,
            "isRust": self.is_rust,
            "isGo": self.is_go,
            "runSlither": self.run_slither,
            "slitherArgs": self.slither_args,
            "runClippy": self.run_clippy,
            "runGoStaticChecks": self.run_go_static_checks,
            "changed": self.changed,
            "runTests": self.run_tests,
        }


# ---------------------------------------------------------------------------
# Filesystem probes
# ---------------------------------------------------------------------------


def _segments(dir_name: str) -> list[str]:
    return [s for s in dir_name.split("/") if s and s != "."]


def locate_root(dir_name: str, root_file: str, base: Path | None = None) -> str | None:
    """Closest directory at or above *dir_name* that contains *root_file*.

    Returns the repository-relative directory (``"."`` for the root), or None
    if no directory up to and including the root has the file.
    """
    base = base if base is not None else Path.cwd()
    dirs = _segments(dir_name)
    logger.debug("searching %s for %s", root_file, dir_name)
    while True:
        candidate = base.joinpath(*dirs, root_file)
        logger.debug("checking: %s", candidate)
        if candidate.is_file():
            found = "/".join(dirs) if dirs else REPO_ROOT
            logger.debug("Found %s root for %s: %s", root_file, dir_name, found)
            return found
        if not dirs:
            return None
        dirs.pop()


def find_root(dir_name: str, root_file: str, base: Path | None = None) -> str:
    """Like :func:`locate_root` but falls back to the repository root."""
    found = locate_root(dir_name, root_file, base)
    if found is None:
        logger.warning("Unable to find %s for %s, using the default", root_file, dir_name or REPO_ROOT)
        return REPO_ROOT
    return found


def has_in_root(dir_name: str, root_file: str, base: Path | None = None) -> bool:
    """True if *root_file* exists directly in *dir_name*."""
    base = base if base is not None else Path.cwd()
    test_file = base.joinpath(*_segments(dir_name), root_file)
    if test_file.is_file():
        logger.debug("Found %s", test_file)
        return True
    logger.debug("Unable to find %s in %s", root_file, dir_name or REPO_ROOT)
    return False


def parse_go_version(mod_file: Path, default: str = DEFAULT_GO_VERSION) -> str:
    """The ``go <version>`` directive of *mod_file*, or *default* with a warning."""
    if mod_file.is_file():
        match = _GO_VERSION_RE.search(mod_file.read_text(encoding="utf-8"))
        if match:
            return match.group(1)
    logger.warning("unable to detect go version in %s, using %s", mod_file, default)
    return default


def explicit_relative_location(loc: str) -> str:
    """``services/a`` → ``./services/a``; the root stays ``.``."""
    if loc in ("", REPO_ROOT):
        return REPO_ROOT
    if loc.startswith("./"):
        return loc
    return "/".join([REPO_ROOT, *loc.split("/")])


def slither_args(path: str, base: Path | None = None) -> str:
    """Slither runs from the repository root with *path* as its target, so a
    per-component config has to be passed explicitly."""
    if has_in_root(path, SLITHER_CONFIG, base):
        return f"--config-file {explicit_relative_location(path)}/{SLITHER_CONFIG}"
    return DEFAULT_SLITHER_ARGS


# ---------------------------------------------------------------------------
# Per-component config
# ---------------------------------------------------------------------------


def component_path(entity: Entity) -> str:
    """Source directory of *entity*, ``"."`` for the repository root.

    Raises:
        SourceLocationError: If the entity has no usable source location.
    """
    return source_location_dir(entity) or REPO_ROOT


def component_config(
    entity: Entity,
    run_tests: bool,
    *,
    changed: bool = False,
    reason: str = "",
    base: Path | None = None,
    default_go_version: str = DEFAULT_GO_VERSION,
) -> ComponentConfig:
    base = base if base is not None else Path.cwd()
    path = component_path(entity)
    tags = set(entity.tags)

    is_solidity = bool(SOLIDITY_TAGS & tags)
    is_rust = RUST_TAG in tags or locate_root(path, CARGO_MANIFEST, base) is not None
    go_root = locate_root(path, GO_MANIFEST, base)
    is_go = go_root is not None
    go_version = (
        parse_go_version(base.joinpath(*_segments(go_root), GO_MANIFEST), default_go_version)
        if go_root is not None
        else default_go_version
    )

    return ComponentConfig(
        name=entity.name,
        tags=list(entity.tags),
        path=path,
        security_tier=security_tier(entity),
        allow_tests_to_fail=allow_tests_to_fail(entity),
        node_root=find_root(path, NODE_MANIFEST, base),
        go_version=go_version,
        is_solidity=is_solidity,
        is_rust=is_rust,
        is_go=is_go,
        run_slither=is_solidity and run_tests,
        slither_args=slither_args(path, base),
        run_clippy=is_rust and run_tests,
        run_go_static_checks=is_go and run_tests,
        changed=changed,
        run_tests=run_tests,
        reason=reason,
    )


# ---------------------------------------------------------------------------
# Matrix
# ---------------------------------------------------------------------------


def build_component_configs(
    entities: Sequence[Entity],
    changed_files: Sequence[ChangedFile],
    repo_url: str,
    event_name: str | None = None,
    force_all: Any = None,
    *,
    base: Path | None = None,
    default_go_version: str = DEFAULT_GO_VERSION,
) -> list[ComponentConfig]:
    """Attribute *changed_files* to the repository's components and build their configs.

    Components whose source location cannot be resolved are skipped with a
    warning rather than failing the whole matrix.
    """
    items = components(entities_in_repo(entities, repo_url))
    inspect_entities("Component entities in this repo", items)

    logger.info("Changed files count: %d", len(changed_files))
    changed = changed_entities(items, changed_files)
    inspect_entities("Changed components", changed)
    changed_ids = {id(e) for e in changed}

    logger.info("Generating component matrix...")
    configs: list[ComponentConfig] = []
    for item in items:
        is_item_changed = id(item) in changed_ids
        decision = run_tests_policy(item, is_item_changed, event_name, force_all)
        try:
            configs.append(
                component_config(
                    item,
                    decision.run,
                    changed=is_item_changed,
                    reason=decision.reason,
                    base=base,
                    default_go_version=default_go_version,
                )
            )
        except SourceLocationError as exc:
            logger.warning("Skipping %s: %s", item.name, exc)
    return configs


def generate_component_matrix(
    entities: Sequence[Entity],
    changed_files: Sequence[ChangedFile],
    repo_url: str,
    event_name: str | None = None,
    force_all: Any = None,
    *,
    base: Path | None = None,
    default_go_version: str = DEFAULT_GO_VERSION,
) -> dict[str, list[dict[str, Any]]]:
    """The ``{"include": [...]}`` matrix for a GitHub Actions ``strategy.matrix``."""
    configs = build_component_configs(
        entities,
        changed_files,
        repo_url,
        event_name,
        force_all,
        base=base,
        default_go_version=default_go_version,
    )
    return {"include": [c.to_dict() for c in configs]}
