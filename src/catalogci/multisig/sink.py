"""Datadog metrics sink — submit series batches to the v2 intake API.

Security requirements:
- DD_API_KEY is sent as a request header only; never logged, never in error output.
- Timeout: 30 seconds per batch unless configured.

Batches share no state, so they are submitted concurrently; a failing batch is
logged and reported in its SubmissionResult without affecting the others.
"""

from __future__ import annotations

import http.client
import json
import os
import urllib.error
import urllib.request
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Mapping, Sequence

from catalogci.config import ConfigError
from catalogci.log import get_logger
from catalogci.multisig.metrics import MetricSeriesPoint

logger = get_logger(__name__)

_USER_AGENT = "catalogci/0.1"
_TIMEOUT = 30  # seconds
_MAX_WORKERS = 4


class SubmissionError(RuntimeError):
    """Raised when Datadog rejects a series batch."""


@dataclass(frozen=True)
class SubmissionResult:
    batch: str
    series_count: int
    ok: bool
    response: Any = None
    error: str | None = None


class DatadogSink:
    """POST series to ``https://api.<site>/api/v2/series``.

    Args:
        api_key: Datadog API key; read from ``$DD_API_KEY`` when omitted.
        site: Datadog site (``datadoghq.eu``, ``datadoghq.com``, ...).
    """

    def __init__(self, api_key: str | None = None, site: str = "datadoghq.eu", timeout: int = _TIMEOUT) -> None:
        key = api_key if api_key is not None else os.environ.get("DD_API_KEY", "")
        if not key:
            raise ConfigError("DD_API_KEY is required to submit metrics")
        self._api_key = key
        self.site = site
        self._timeout = timeout

    @property
    def series_url(self) -> str:
        return f"https://api.{self.site}/api/v2/series"

    def submit(self, series: Sequence[MetricSeriesPoint]) -> Any:
        """Submit one batch. Returns the decoded response body.

        Raises:
            SubmissionError: On HTTP or network failure.
        """
        body = {"series": [point.to_series() for point in series]}
        logger.debug("Data to upload: %s", json.dumps(body))
        req = urllib.request.Request(
            self.series_url,
            data=json.dumps(body).encode("utf-8"),
            method="POST",
            headers={
                "User-Agent": _USER_AGENT,
                "Content-Type": "application/json",
                "Accept": "application/json",
                "DD-API-KEY": self._api_key,
            },
        )
        try:
            with urllib.request.urlopen(req, timeout=self._timeout) as resp:  # noqa: S310
                raw = resp.read().decode("utf-8")
        except urllib.error.HTTPError as exc:
            raise SubmissionError(f"Datadog returned HTTP {exc.code} for {self.series_url}") from None
        except urllib.error.URLError as exc:
            raise SubmissionError(f"Cannot reach Datadog at {self.series_url}: {exc.reason}") from None
        except (OSError, http.client.HTTPException) as exc:
            raise SubmissionError(f"Transport error talking to Datadog at {self.series_url}: {exc}") from None
        try:
            return json.loads(raw) if raw else {}
        except json.JSONDecodeError:
            return {"raw": raw}

    def submit_all(self, batches: Mapping[str, Sequence[MetricSeriesPoint]]) -> list[SubmissionResult]:
        """Submit every non-empty batch concurrently; results keep *batches* order."""
        names = [name for name, series in batches.items() if series]
        for name, series in batches.items():
            if not series:
                logger.info("Batch %s is empty, skipped", name)
        if not names:
            return []

        with ThreadPoolExecutor(max_workers=min(_MAX_WORKERS, len(names))) as pool:
            futures = {name: pool.submit(self.submit, batches[name]) for name in names}
            results: list[SubmissionResult] = []
            for name in names:
                count = len(batches[name])
                try:
                    response = futures[name].result()
                except Exception as exc:
                    logger.error("Batch %s (%d series) failed: %s", name, count, exc)
                    results.append(SubmissionResult(name, count, ok=False, error=str(exc)))
                    continue
                logger.info("Batch %s (%d series) submitted: %s", name, count, json.dumps(response))
                results.append(SubmissionResult(name, count, ok=True, response=response))
        return results
