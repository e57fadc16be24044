"""Catalog sources — Backstage API client and offline catalog exports.

Network requirements:
- Allowed URL schemes: https:// and http:// only.
- Timeout: 30 seconds (connect + read) unless configured.
- Credentials embedded in the Backstage URL (``user@host``) are stripped from
  every log line and error message.
"""

from __future__ import annotations

import base64
import json
import re
import urllib.error
import urllib.parse
import urllib.request
from pathlib import Path
from typing import Any, Iterable

import yaml

from catalogci.catalog.models import Entity
from catalogci.config import ConfigError
from catalogci.log import get_logger

logger = get_logger(__name__)

_USER_AGENT = "catalogci/0.1"
_TIMEOUT = 30  # seconds
_ALLOWED_SCHEMES = {"https", "http"}

_CRED_RE = re.compile(r"(https?://)([^/]+@)", re.IGNORECASE)


class CatalogError(RuntimeError):
    """Raised when the catalog cannot be read."""


def _sanitise_url(url: str) -> str:
    """Remove embedded credentials from a URL for safe logging / error messages."""
    return _CRED_RE.sub(r"\1***@", url)


def _split_credentials(url: str) -> tuple[str, str | None]:
    """Return (*url* without userinfo, basic-auth userinfo or None)."""
    parsed = urllib.parse.urlsplit(url)
    if "@" not in parsed.netloc:
        return url, None
    userinfo, _, host = parsed.netloc.rpartition("@")
    return parsed._replace(netloc=host).geturl(), urllib.parse.unquote(userinfo)


class CatalogClient:
    """Read every entity from a Backstage catalog backend.

    *base_url* is the Backstage root; entities are read from
    ``<base_url>/api/catalog/entities``.
    """

    def __init__(self, base_url: str | None, timeout: int = _TIMEOUT) -> None:
        if not base_url:
            raise ConfigError("BACKSTAGE_URL is required, make sure to set the secret")
        parsed = urllib.parse.urlsplit(base_url)
        if parsed.scheme not in _ALLOWED_SCHEMES:
            raise ConfigError(
                f"Unsupported Backstage URL scheme '{parsed.scheme}'. Allowed: https://, http://"
            )
        self._base_url, self._userinfo = _split_credentials(base_url.rstrip("/"))
        self._timeout = timeout

    @property
    def entities_url(self) -> str:
        return f"{self._base_url}/api/catalog/entities"

    def fetch_entities(self) -> list[Entity]:
        """Fetch and parse all entities.

        Raises:
            CatalogError: On HTTP/network failure or an unexpected payload.
        """
        logger.info("Connecting to Backstage to fetch available entities")
        payload = self._get_json(self.entities_url)
        items = payload.get("items") if isinstance(payload, dict) else payload
        if not isinstance(items, list):
            raise CatalogError(
                f"Unexpected catalog response from {_sanitise_url(self.entities_url)}: "
                f"expected a list of entities"
            )
        entities = parse_entities(items)
        logger.info("Total backstage entities: %d", len(entities))
        return entities

    def _get_json(self, url: str) -> Any:
        req = urllib.request.Request(
            url,
            headers={"User-Agent": _USER_AGENT, "Accept": "application/json"},
        )
        if self._userinfo:
            token = base64.b64encode(self._userinfo.encode("utf-8")).decode("ascii")
            req.add_header("Authorization", f"Basic {token}")
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:  # noqa: S310
                return json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as exc:
            raise CatalogError(
                f"Backstage returned HTTP {exc.code} for {_sanitise_url(url)}"
            ) from None
        except urllib.error.URLError as exc:
            raise CatalogError(f"Cannot reach Backstage at {_sanitise_url(url)}: {exc.reason}") from None
        except json.JSONDecodeError as exc:
            raise CatalogError(f"Backstage response is not JSON: {exc}") from None


def parse_entities(items: Iterable[Any]) -> list[Entity]:
    """Build Entity objects from raw mappings, skipping non-mapping items."""
    entities: list[Entity] = []
    for item in items:
        if not isinstance(item, dict):
            logger.warning("Skipping catalog item that is not a mapping: %r", item)
            continue
        entities.append(Entity.from_dict(item))
    return entities


def load_entities_file(path: Path) -> list[Entity]:
    """Read entities from a local catalog export.

    Accepts a JSON document (list, or ``{"items": [...]}``) or a YAML stream of
    one entity per document (the ``catalog-info.yaml`` format).

    Raises:
        CatalogError: If the file is missing or cannot be parsed.
    """
    if not path.is_file():
        raise CatalogError(f"Entities file not found: {path}")
    text = path.read_text(encoding="utf-8")
    try:
        if path.suffix == ".json":
            data = json.loads(text)
            items = data.get("items", []) if isinstance(data, dict) else data
        else:
            items = []
            for doc in yaml.safe_load_all(text):
                if doc is None:
                    continue
                if isinstance(doc, dict) and "items" in doc and "kind" not in doc:
                    items.extend(doc["items"] or [])
                elif isinstance(doc, list):
                    items.extend(doc)
                else:
                    items.append(doc)
    except (json.JSONDecodeError, yaml.YAMLError) as exc:
        raise CatalogError(f"Cannot parse entities file {path}: {exc}") from None
    entities = parse_entities(items)
    logger.info("Loaded %d entities from %s", len(entities), path)
    return entities


def fetch_entities(backstage_url: str | None, entities_file: str | None = None, timeout: int = _TIMEOUT) -> list[Entity]:
    """Entities from *entities_file* when given, else from the Backstage API.

    Raises:
        ConfigError: If neither source is configured.
        CatalogError: If the configured source cannot be read.
    """
    if entities_file:
        return load_entities_file(Path(entities_file))
    return CatalogClient(backstage_url, timeout=timeout).fetch_entities()
