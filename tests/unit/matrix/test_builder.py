"""Tests for the component matrix builder."""

from __future__ import annotations

import logging
from pathlib import Path

import pytest

from catalogci.catalog.models import Entity
from catalogci.changes.models import ChangedFile
from catalogci.matrix.builder import (
    DEFAULT_SLITHER_ARGS,
    build_component_configs,
    component_config,
    explicit_relative_location,
    find_root,
    generate_component_matrix,
    has_in_root,
    locate_root,
    parse_go_version,
    slither_args,
)

REPO = "https://github.com/aurora-is-near/monorepo"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _component(
    name: str,
    location: str,
    tags: list[str] | None = None,
    tier: str | None = None,
    kind: str = "Component",
) -> Entity:
    annotations = {"backstage.io/source-location": f"url:{REPO}/tree/main/{location}"}
    if tier is not None:
        annotations["aurora.dev/security-tier"] = tier
    return Entity.from_dict(
        {
            "kind": kind,
            "metadata": {"name": name, "tags": tags or [], "annotations": annotations},
        }
    )


def _touch(base: Path, rel: str, content: str = "") -> Path:
    path = base / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Filesystem probes
# ---------------------------------------------------------------------------


def test_locate_root_walks_upwards(tmp_path: Path) -> None:
    _touch(tmp_path, "services/package.json", "{}")
    (tmp_path / "services/a/src").mkdir(parents=True)
    assert locate_root("services/a/src", "package.json", tmp_path) == "services"


def test_locate_root_prefers_closest(tmp_path: Path) -> None:
    _touch(tmp_path, "package.json", "{}")
    _touch(tmp_path, "services/a/package.json", "{}")
    assert locate_root("services/a", "package.json", tmp_path) == "services/a"


def test_locate_root_at_repository_root(tmp_path: Path) -> None:
    _touch(tmp_path, "Cargo.toml")
    assert locate_root("crates/x", "Cargo.toml", tmp_path) == "."


def test_locate_root_missing(tmp_path: Path) -> None:
    assert locate_root("services/a", "go.mod", tmp_path) is None


def test_find_root_defaults_to_repository_root(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="catalogci"):
        assert find_root("services/a", "package.json", tmp_path) == "."
    assert "Unable to find package.json" in caplog.text


def test_has_in_root_does_not_walk_up(tmp_path: Path) -> None:
    _touch(tmp_path, "contracts/slither.config.json", "{}")
    assert has_in_root("contracts", "slither.config.json", tmp_path)
    assert not has_in_root("contracts/token", "slither.config.json", tmp_path)


def test_parse_go_version(tmp_path: Path) -> None:
    mod = _touch(tmp_path, "go.mod", "module example.com/a\n\ngo 1.21\n\nrequire foo v1.0.0\n")
    assert parse_go_version(mod) == "1.21"


def test_parse_go_version_missing_file_warns(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.WARNING, logger="catalogci"):
        assert parse_go_version(tmp_path / "go.mod") == "1.18"
    assert any(r.levelno == logging.WARNING for r in caplog.records)


def test_parse_go_version_without_directive(tmp_path: Path) -> None:
    mod = _touch(tmp_path, "go.mod", "module example.com/a\n")
    assert parse_go_version(mod, default="1.20") == "1.20"


@pytest.mark.parametrize(
    "loc,expected",
    [(".", "."), ("", "."), ("contracts", "./contracts"), ("./contracts", "./contracts"), ("a/b", "./a/b")],
)
def test_explicit_relative_location(loc: str, expected: str) -> None:
    assert explicit_relative_location(loc) == expected


def test_slither_args_uses_component_config(tmp_path: Path) -> None:
    _touch(tmp_path, "contracts/token/slither.config.json", "{}")
    assert slither_args("contracts/token", tmp_path) == "--config-file ./contracts/token/slither.config.json"
    assert slither_args("contracts/other", tmp_path) == DEFAULT_SLITHER_ARGS


# ---------------------------------------------------------------------------
# Component config
# ---------------------------------------------------------------------------


def test_component_config_go_service(tmp_path: Path) -> None:
    _touch(tmp_path, "services/a/go.mod", "module a\n\ngo 1.21\n")
    _touch(tmp_path, "package.json", "{}")
    entity = _component("a", "services/a/", tier="2")
    cfg = component_config(entity, run_tests=True, base=tmp_path)
    assert cfg.path == "services/a"
    assert cfg.is_go and cfg.run_go_static_checks
    assert cfg.go_version == "1.21"
    assert cfg.node_root == "."
    assert not cfg.is_rust and not cfg.is_solidity
    assert cfg.security_tier == 2
    assert cfg.allow_tests_to_fail is False


def test_component_config_solidity_and_rust_by_tag(tmp_path: Path) -> None:
    entity = _component("bridge", "contracts/bridge/", tags=["ethereum", "near"])
    cfg = component_config(entity, run_tests=False, base=tmp_path)
    assert cfg.is_solidity and cfg.is_rust
    assert not cfg.run_slither and not cfg.run_clippy
    assert cfg.go_version == "1.18"
    assert cfg.security_tier == -1
    assert cfg.allow_tests_to_fail is True


def test_component_config_rust_by_manifest(tmp_path: Path) -> None:
    _touch(tmp_path, "Cargo.toml")
    cfg = component_config(_component("engine", "engine/"), run_tests=True, base=tmp_path)
    assert cfg.is_rust and cfg.run_clippy


def test_component_config_root_location(tmp_path: Path) -> None:
    cfg = component_config(_component("root", ""), run_tests=True, base=tmp_path)
    assert cfg.path == "."


def test_to_dict_uses_workflow_keys(tmp_path: Path) -> None:
    data = component_config(_component("a", "services/a/"), run_tests=True, base=tmp_path).to_dict()
    assert set(data) >= {
        "name",
        "tags",
        "path",
        "securityTier",
        "allowTestsToFail",
        "nodeRoot",
        "goVersion",
        "isSolidity",
        "isRust",
        "isGo",
        "runSlither",
        "slitherArgs",
        "runClippy",
        "runGoStaticChecks",
    }
    assert "reason" not in data


# ---------------------------------------------------------------------------
# Matrix
# ---------------------------------------------------------------------------


def test_matrix_only_includes_repo_components(tmp_path: Path) -> None:
    entities = [
        _component("a", "services/a/"),
        _component("api", "services/a/", kind="API"),
        Entity.from_dict(
            {
                "kind": "Component",
                "metadata": {
                    "name": "elsewhere",
                    "annotations": {
                        "backstage.io/source-location": "url:https://github.com/org/other/tree/main/x/"
                    },
                },
            }
        ),
    ]
    matrix = generate_component_matrix(entities, [], REPO, "push", base=tmp_path)
    assert [item["name"] for item in matrix["include"]] == ["a"]


def test_matrix_pull_request_changed_only(tmp_path: Path) -> None:
    entities = [
        _component("a", "services/a/", tags=["ci-sec-changed-only"]),
        _component("b", "services/b/", tags=["ci-sec-changed-only"]),
        _component("c", "services/c/"),
    ]
    configs = build_component_configs(
        entities, [ChangedFile("services/a/main.go")], REPO, "pull_request", base=tmp_path
    )
    by_name = {c.name: c for c in configs}
    assert by_name["a"].changed and by_name["a"].run_tests
    assert not by_name["b"].changed and not by_name["b"].run_tests
    assert not by_name["c"].changed and by_name["c"].run_tests


def test_matrix_force_all_overrides_changed_only(tmp_path: Path) -> None:
    entities = [_component("b", "services/b/", tags=["ci-sec-changed-only"])]
    configs = build_component_configs(entities, [], REPO, "pull_request", force_all=True, base=tmp_path)
    assert configs[0].run_tests is True


def test_matrix_uses_configured_default_go_version(tmp_path: Path) -> None:
    _touch(tmp_path, "services/a/go.mod", "module a\n")
    matrix = generate_component_matrix(
        [_component("a", "services/a/")], [], REPO, base=tmp_path, default_go_version="1.22"
    )
    assert matrix["include"][0]["goVersion"] == "1.22"
