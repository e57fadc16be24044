"""Tests for the local git changed-file source."""

from __future__ import annotations

import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from catalogci.changes.git import GitDiffSource, parse_name_status
from catalogci.changes.models import ChangeType


def test_parse_name_status() -> None:
    output = "M\tservices/a/main.go\nA\tcontracts/Token.sol\nD\told.txt\nR100\tsrc/a.rs\tsrc/b.rs\n\n"
    changes = parse_name_status(output)
    assert [(c.file, c.change_type) for c in changes] == [
        ("services/a/main.go", ChangeType.EDIT),
        ("contracts/Token.sol", ChangeType.ADD),
        ("old.txt", ChangeType.DELETE),
        ("src/b.rs", ChangeType.EDIT),
    ]


@pytest.mark.parametrize("ref", ["", "--output=/tmp/x", "-p"])
def test_rejects_option_like_refs(ref: str) -> None:
    with pytest.raises(ValueError):
        GitDiffSource(ref)


def test_fetch_runs_git_without_shell(tmp_path: Path) -> None:
    completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="M\tREADME.md\n", stderr="")
    with patch("catalogci.changes.git.subprocess.run", return_value=completed) as mock_run:
        changes = GitDiffSource("origin/main", tmp_path).fetch_changed_files()
    assert [c.file for c in changes] == ["README.md"]
    args, kwargs = mock_run.call_args
    assert args[0] == ["git", "diff", "--name-status", "origin/main...HEAD"]
    assert kwargs["shell"] is False
    assert kwargs["cwd"] == tmp_path


def test_fetch_git_failure_raises_runtime_error(tmp_path: Path) -> None:
    err = subprocess.CalledProcessError(128, ["git"], stderr="fatal: bad revision\n")
    with patch("catalogci.changes.git.subprocess.run", side_effect=err):
        with pytest.raises(RuntimeError, match="bad revision"):
            GitDiffSource("nope", tmp_path).fetch_changed_files()


def test_fetch_missing_git_binary_raises_runtime_error(tmp_path: Path) -> None:
    with patch("catalogci.changes.git.subprocess.run", side_effect=FileNotFoundError("git")):
        with pytest.raises(RuntimeError, match="Cannot run git"):
            GitDiffSource("origin/main", tmp_path).fetch_changed_files()
