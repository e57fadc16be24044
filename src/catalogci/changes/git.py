"""Local git diff source — changed files between a base ref and HEAD.

Used outside GitHub Actions (or when the API is unavailable).
shell=False always; the ref is passed as a single argv element after a guard
against option injection.
"""

from __future__ import annotations

import subprocess
from pathlib import Path

from catalogci.changes.models import ChangedFile, parse_git_status


class GitDiffSource:
    """``git diff --name-status <base_ref>...HEAD`` in *repo_dir*."""

    def __init__(self, base_ref: str, repo_dir: Path | None = None) -> None:
        if not base_ref or base_ref.startswith("-"):
            raise ValueError(f"Invalid base ref: {base_ref!r}")
        self.base_ref = base_ref
        self.repo_dir = repo_dir if repo_dir is not None else Path.cwd()

    def fetch_changed_files(self) -> list[ChangedFile]:
        """Raises RuntimeError if git fails or is not installed (unknown ref, not a repository)."""
        try:
            result = subprocess.run(
                ["git", "diff", "--name-status", f"{self.base_ref}...HEAD"],
                cwd=self.repo_dir,
                shell=False,
                check=True,
                capture_output=True,
                text=True,
            )
        except subprocess.CalledProcessError as exc:
            raise RuntimeError(f"git diff against {self.base_ref} failed: {exc.stderr.strip()}") from None
        except OSError as exc:
            raise RuntimeError(f"Cannot run git in {self.repo_dir}: {exc}") from None
        return parse_name_status(result.stdout)


def parse_name_status(output: str) -> list[ChangedFile]:
    """Parse ``--name-status`` lines; renames and copies report the new path."""
    changes: list[ChangedFile] = []
    for line in output.splitlines():
        parts = line.split("\t")
        if len(parts) < 2:
            continue
        status = parts[0].strip()
        changes.append(ChangedFile(file=parts[-1], change_type=parse_git_status(status)))
    return changes
