"""Tests for catalogci matrix command."""

from __future__ import annotations

import json
import subprocess
from pathlib import Path

import pytest
import yaml
from typer.testing import CliRunner

from catalogci.cli.main import app

runner = CliRunner()

REPO = "https://github.com/aurora-is-near/monorepo"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _component(name: str, path: str, tags: list[str] | None = None) -> dict:
    return {
        "kind": "Component",
        "metadata": {
            "name": name,
            "tags": tags or [],
            "annotations": {
                "backstage.io/source-location": f"url:{REPO}/tree/main/{path}",
                "aurora.dev/security-tier": "1",
            },
        },
        "spec": {"type": "service"},
    }


def _write_catalog(tmp_path: Path) -> Path:
    path = tmp_path / "catalog.yaml"
    path.write_text(
        yaml.safe_dump_all(
            [
                _component("svc-a", "services/a/", tags=["ci-sec-changed-only"]),
                _component("svc-b", "services/b/", tags=["ci-sec-changed-only"]),
            ]
        ),
        encoding="utf-8",
    )
    return path


def _invoke(tmp_path: Path, *extra: str):
    catalog = _write_catalog(tmp_path)
    output = tmp_path / "github_output"
    result = runner.invoke(
        app,
        [
            "matrix",
            "--entities-file",
            str(catalog),
            "--repository",
            "aurora-is-near/monorepo",
            "--github-output",
            str(output),
            "--root",
            str(tmp_path),
            *extra,
        ],
    )
    return result, output


def _matrix(output: Path) -> dict:
    line = output.read_text(encoding="utf-8").strip()
    assert line.startswith("matrix=")
    return json.loads(line[len("matrix="):])


def _fake_git(stdout: str):
    def run(*args, **kwargs):
        return subprocess.CompletedProcess(args=args[0], returncode=0, stdout=stdout, stderr="")

    return run


# ---------------------------------------------------------------------------
# catalogci matrix
# ---------------------------------------------------------------------------


def test_matrix_push_runs_everything(tmp_path: Path) -> None:
    (tmp_path / "services/a").mkdir(parents=True)
    (tmp_path / "services/a/go.mod").write_text("module a\n\ngo 1.21\n", encoding="utf-8")
    result, output = _invoke(tmp_path, "--event-name", "push")
    assert result.exit_code == 0, result.output
    matrix = _matrix(output)
    by_name = {item["name"]: item for item in matrix["include"]}
    assert set(by_name) == {"svc-a", "svc-b"}
    assert all(item["runTests"] for item in by_name.values())
    assert by_name["svc-a"]["isGo"] is True
    assert by_name["svc-a"]["goVersion"] == "1.21"
    assert by_name["svc-b"]["securityTier"] == 1


def test_matrix_pull_request_with_local_diff(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("catalogci.changes.git.subprocess.run", _fake_git("M\tservices/a/main.go\n"))
    result, output = _invoke(tmp_path, "--event-name", "pull_request", "--base-ref", "origin/main")
    assert result.exit_code == 0, result.output
    by_name = {item["name"]: item for item in _matrix(output)["include"]}
    assert by_name["svc-a"]["changed"] is True
    assert by_name["svc-a"]["runTests"] is True
    assert by_name["svc-b"]["runTests"] is False


def test_matrix_force_all_checks(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("catalogci.changes.git.subprocess.run", _fake_git(""))
    result, output = _invoke(
        tmp_path, "--event-name", "pull_request", "--base-ref", "origin/main", "--force-all-checks"
    )
    assert result.exit_code == 0, result.output
    assert all(item["runTests"] for item in _matrix(output)["include"])


def test_matrix_force_all_from_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CATALOG_CI_FORCE_ALL_CHECKS", "true")
    monkeypatch.setattr("catalogci.changes.git.subprocess.run", _fake_git(""))
    result, output = _invoke(tmp_path, "--event-name", "pull_request", "--base-ref", "origin/main")
    assert result.exit_code == 0, result.output
    assert all(item["runTests"] for item in _matrix(output)["include"])


def test_matrix_appends_to_env_output(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    env_output = tmp_path / "env_output"
    monkeypatch.setenv("GITHUB_OUTPUT", str(env_output))
    catalog = _write_catalog(tmp_path)
    result = runner.invoke(
        app,
        ["matrix", "--entities-file", str(catalog), "--repository", "aurora-is-near/monorepo", "--root", str(tmp_path)],
    )
    assert result.exit_code == 0, result.output
    assert len(_matrix(env_output)["include"]) == 2


def test_matrix_without_catalog_fails(tmp_path: Path) -> None:
    result = runner.invoke(app, ["matrix", "--repository", "aurora-is-near/monorepo"])
    assert result.exit_code == 1
    assert "BACKSTAGE_URL" in result.output


def test_matrix_without_repository_fails(tmp_path: Path) -> None:
    catalog = _write_catalog(tmp_path)
    result = runner.invoke(app, ["matrix", "--entities-file", str(catalog)])
    assert result.exit_code == 1
    assert "GITHUB_REPOSITORY" in result.output


def test_matrix_git_failure_fails(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def boom(*args, **kwargs):
        raise subprocess.CalledProcessError(128, args[0], stderr="fatal: bad revision 'nope'")

    monkeypatch.setattr("catalogci.changes.git.subprocess.run", boom)
    result, _ = _invoke(tmp_path, "--event-name", "pull_request", "--base-ref", "nope")
    assert result.exit_code == 1
    assert "Cannot list changed files" in result.output


def test_matrix_missing_git_reports_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    def no_git(*args, **kwargs):
        raise FileNotFoundError(2, "No such file or directory", "git")

    monkeypatch.setattr("catalogci.changes.git.subprocess.run", no_git)
    result, _ = _invoke(tmp_path, "--event-name", "pull_request", "--base-ref", "origin/main")
    assert result.exit_code == 1
    assert "Cannot list changed files" in result.output


# ---------------------------------------------------------------------------
# catalogci --version
# ---------------------------------------------------------------------------


def test_version_flag_exits_zero() -> None:
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert "catalogci" in result.output
