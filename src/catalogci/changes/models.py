"""Changed-file model shared by every diff source."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ChangeType(Enum):
    ADD = "add"
    EDIT = "edit"
    DELETE = "delete"
    ANY = "any"


# GitHub file statuses → ChangeType; anything unlisted (renamed, copied, changed) is an edit.
_GITHUB_STATUS: dict[str, ChangeType] = {
    "added": ChangeType.ADD,
    "removed": ChangeType.DELETE,
    "modified": ChangeType.EDIT,
}

# `git diff --name-status` letters.
_GIT_STATUS: dict[str, ChangeType] = {
    "A": ChangeType.ADD,
    "D": ChangeType.DELETE,
    "M": ChangeType.EDIT,
}


def parse_github_status(status: str | None) -> ChangeType:
    return _GITHUB_STATUS.get(status or "", ChangeType.EDIT)


def parse_git_status(letter: str) -> ChangeType:
    return _GIT_STATUS.get(letter[:1], ChangeType.EDIT)


@dataclass(frozen=True)
class ChangedFile:
    file: str
    change_type: ChangeType = ChangeType.EDIT
    patch: str | None = None
