"""Changed-file sources — GitHub API (push / pull request) and local git."""

from catalogci.changes.models import ChangedFile, ChangeType

__all__ = ["ChangeType", "ChangedFile"]
