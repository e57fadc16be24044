"""GitHub diff source — changed files for the triggering workflow event.

Branches on the event name:
  push          → compare ``before...after`` from the event payload
  anything else → list the files of ``pull_request.number``
  unset         → no changes

Security requirements:
- GITHUB_TOKEN is sent as a request header only; never logged, never in error output.
- Timeout: 30 seconds per request.
"""

from __future__ import annotations

import json
import os
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path
from typing import Any

from catalogci.changes.models import ChangedFile, parse_github_status
from catalogci.log import get_logger

logger = get_logger(__name__)

_USER_AGENT = "catalogci/0.1"
_TIMEOUT = 30  # seconds
_PER_PAGE = 100
_MAX_PAGES = 30  # GitHub caps pull request file listings at 3000 files


class DiffSourceError(RuntimeError):
    """Raised when the GitHub API cannot be queried for changed files."""


def load_event_payload(event_path: str | None) -> dict[str, Any]:
    """Read the workflow event payload (``$GITHUB_EVENT_PATH``); {} when unavailable."""
    if not event_path:
        return {}
    path = Path(event_path)
    if not path.is_file():
        logger.warning("Event payload %s not found", event_path)
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        logger.warning("Event payload %s is not valid JSON: %s", event_path, exc)
        return {}
    return data if isinstance(data, dict) else {}


class GitHubDiffSource:
    """Fetch changed files through the GitHub REST API.

    Args:
        payload: Parsed workflow event payload.
        repository: ``owner/repo`` of the workflow run (``$GITHUB_REPOSITORY``).
        api_url: REST API root (``$GITHUB_API_URL``).
        token: API token; read from ``$GITHUB_TOKEN`` when omitted.
    """

    def __init__(
        self,
        payload: dict[str, Any],
        repository: str | None,
        api_url: str = "https://api.github.com",
        token: str | None = None,
        timeout: int = _TIMEOUT,
    ) -> None:
        self._payload = payload
        self._repository = repository
        self._api_url = api_url.rstrip("/")
        self._token = token if token is not None else os.environ.get("GITHUB_TOKEN", "")
        self._timeout = timeout

    def fetch_changed_files(self, event_name: str | None) -> list[ChangedFile]:
        if not event_name:
            return []
        if event_name == "push":
            changes = self._changes_from_sha()
        else:
            changes = self._changes_from_pr()
        logger.debug("found changed files:")
        for change in changes:
            logger.debug("  %s", change.file)
        return changes

    # ------------------------------------------------------------------
    # push
    # ------------------------------------------------------------------

    def _changes_from_sha(self) -> list[ChangedFile]:
        before = self._payload.get("before")
        after = self._payload.get("after")
        repo = self._payload.get("repository") or {}
        owner = (repo.get("owner") or {}).get("name") or (repo.get("owner") or {}).get("login")
        name = repo.get("name")
        if not before or not after or not owner or not name:
            return []
        path = (
            f"/repos/{_quote(owner)}/{_quote(name)}/compare/"
            f"{_quote(before)}...{_quote(after)}"
        )
        data = self._get(path)
        files = data.get("files") if isinstance(data, dict) else None
        return [_to_changed_file(f) for f in files or []]

    # ------------------------------------------------------------------
    # pull_request
    # ------------------------------------------------------------------

    def _changes_from_pr(self) -> list[ChangedFile]:
        pull_request = self._payload.get("pull_request")
        if not pull_request or not self._repository:
            return []
        number = pull_request.get("number")
        if number is None:
            return []
        owner, _, name = self._repository.partition("/")
        changes: list[ChangedFile] = []
        for page in range(1, _MAX_PAGES + 1):
            path = (
                f"/repos/{_quote(owner)}/{_quote(name)}/pulls/{int(number)}/files"
                f"?per_page={_PER_PAGE}&page={page}"
            )
            batch = self._get(path)
            if not isinstance(batch, list):
                break
            changes.extend(_to_changed_file(f) for f in batch)
            if len(batch) < _PER_PAGE:
                break
        return changes

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------

    def _get(self, path: str) -> Any:
        url = f"{self._api_url}{path}"
        headers = {
            "User-Agent": _USER_AGENT,
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self._token:
            headers["Authorization"] = f"Bearer {self._token}"
        req = urllib.request.Request(url, headers=headers)
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:  # noqa: S310
                return json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            raise DiffSourceError(f"GitHub API returned HTTP {exc.code} for {path}") from None
        except urllib.error.URLError as exc:
            raise DiffSourceError(f"Cannot reach GitHub API at {self._api_url}: {exc.reason}") from None
        except json.JSONDecodeError as exc:
            raise DiffSourceError(f"GitHub API response for {path} is not JSON: {exc}") from None


def _quote(value: Any) -> str:
    return urllib.parse.quote(str(value), safe="")


def _to_changed_file(raw: dict[str, Any]) -> ChangedFile:
    return ChangedFile(
        file=str(raw.get("filename", "")),
        change_type=parse_github_status(raw.get("status")),
        patch=raw.get("patch"),
    )
