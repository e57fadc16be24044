"""Metric series generation from classifier output.

One gauge point per entity (or per group for aggregates), tagged with the
entity's identifying dimensions. Every series carries a ``host`` resource
taken from the catalog URL so several Backstage instances can report into one
account.

Series produced:

    backstage.multisigs.version          parsed multisig version, at fetch time
    backstage.signers                    0 = stub/unknown signer, 1 = known
    backstage.signers.inactive           1 = no signature for over 180 days
    backstage.access-keys                1 = owned by a real user, else 0
    backstage.access-keys.per-signer     keys owned by the signer's user
    backstage.access-keys.per-contract   keys owned by a contract/multisig
    backstage.access-keys.deprecated     count of deprecated keys
    backstage.access-keys.unknown        count of keys with unresolvable owners
"""

from __future__ import annotations

import re
import time
import urllib.parse
from dataclasses import dataclass
from typing import Any

from catalogci.catalog.models import STUB_NAMESPACE
from catalogci.log import get_logger
from catalogci.multisig.collector import OWNER_USER, AccessKey, MultisigsCollector

logger = get_logger(__name__)

GAUGE = 3  # Datadog MetricIntakeType.GAUGE

INACTIVE_SIGNER_SECONDS = 180 * 86_400

METRIC_MULTISIG_VERSION = "backstage.multisigs.version"
METRIC_SIGNERS = "backstage.signers"
METRIC_SIGNERS_INACTIVE = "backstage.signers.inactive"
METRIC_ACCESS_KEYS = "backstage.access-keys"
METRIC_KEYS_PER_SIGNER = "backstage.access-keys.per-signer"
METRIC_KEYS_PER_CONTRACT = "backstage.access-keys.per-contract"
METRIC_KEYS_DEPRECATED = "backstage.access-keys.deprecated"
METRIC_KEYS_UNKNOWN = "backstage.access-keys.unknown"

UNKNOWN = "unknown"

# JavaScript parseFloat semantics: longest numeric prefix after leading blanks.
_FLOAT_PREFIX_RE = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")


@dataclass(frozen=True)
class MetricResource:
    type: str
    name: str


@dataclass(frozen=True)
class MetricSeriesPoint:
    metric: str
    timestamp: int
    value: float
    resources: tuple[MetricResource, ...] = ()

    def tag(self, type_: str) -> str | None:
        """Name of the first resource of *type_*, or None."""
        for resource in self.resources:
            if resource.type == type_:
                return resource.name
        return None

    def to_series(self) -> dict[str, Any]:
        """Datadog v2 ``MetricSeries`` payload for this point."""
        return {
            "metric": self.metric,
            "type": GAUGE,
            "points": [{"timestamp": self.timestamp, "value": self.value}],
            "resources": [{"type": r.type, "name": r.name} for r in self.resources],
        }


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def host_from_url(backstage_url: str) -> str:
    """Text after the last ``@`` of *backstage_url* (``user@host`` convention).

    URLs without credentials fall back to their network location.
    """
    _, sep, tail = backstage_url.rpartition("@")
    if sep:
        return tail
    return urllib.parse.urlsplit(backstage_url).netloc or backstage_url


def parse_version(version: str | None) -> float | None:
    """Leading float of *version* (``"1.4.0"`` → 1.4), None if there is none."""
    if version is None:
        return None
    match = _FLOAT_PREFIX_RE.match(str(version))
    if not match:
        return None
    return float(match.group(1))


def _now(now: float | None) -> int:
    return round(time.time() if now is None else now)


def _resources(host: str, *pairs: tuple[str, Any]) -> tuple[MetricResource, ...]:
    resources = [MetricResource("host", host)]
    for type_, name in pairs:
        resources.append(MetricResource(type_, UNKNOWN if name is None else str(name)))
    return tuple(resources)


def _key_value(key: AccessKey) -> float:
    if key.entity.namespace == STUB_NAMESPACE or key.owner_kind != OWNER_USER:
        return 0.0
    return 1.0


# ---------------------------------------------------------------------------
# Generators
# ---------------------------------------------------------------------------


def generate_multisig_metrics(
    collector: MultisigsCollector, backstage_url: str, now: float | None = None
) -> list[MetricSeriesPoint]:
    host = host_from_url(backstage_url)
    series: list[MetricSeriesPoint] = []
    for multisig in collector.get_multisigs():
        entity = multisig.entity
        value = parse_version(multisig.version)
        if value is None:
            logger.warning(
                "%s: unparsable multisig version %r, reporting 0", entity.name, multisig.version
            )
            value = 0.0
        timestamp = multisig.fetch_date if multisig.fetch_date is not None else _now(now)
        series.append(
            MetricSeriesPoint(
                metric=METRIC_MULTISIG_VERSION,
                timestamp=timestamp,
                value=value,
                resources=_resources(
                    host,
                    ("api", entity.name),
                    ("address", multisig.address),
                    ("kind", entity.kind),
                    ("network", multisig.network),
                    ("networkType", multisig.network_type),
                    ("system", multisig.system),
                    ("owner", multisig.owner),
                ),
            )
        )
    return series


def generate_signer_metrics(
    collector: MultisigsCollector, backstage_url: str, now: float | None = None
) -> list[MetricSeriesPoint]:
    host = host_from_url(backstage_url)
    timestamp = _now(now)
    series: list[MetricSeriesPoint] = []
    for signer in collector.get_signers():
        entity = signer.entity
        series.append(
            MetricSeriesPoint(
                metric=METRIC_SIGNERS,
                timestamp=timestamp,
                value=0.0 if signer.stub else 1.0,
                resources=_resources(
                    host,
                    ("kind", entity.kind),
                    ("name", entity.name),
                    ("namespace", entity.namespace),
                    ("address", signer.address),
                    ("network", signer.network),
                    ("networkType", signer.network_type),
                    ("owner", signer.owner_name),
                ),
            )
        )
    return series


def generate_inactive_signer_metrics(
    collector: MultisigsCollector, backstage_url: str, now: float | None = None
) -> list[MetricSeriesPoint]:
    """1 for signers whose last signature is older than 180 days or unknown."""
    host = host_from_url(backstage_url)
    timestamp = _now(now)
    series: list[MetricSeriesPoint] = []
    for signer in collector.get_signers():
        entity = signer.entity
        inactive = signer.last_signed is None or (timestamp - signer.last_signed) > INACTIVE_SIGNER_SECONDS
        series.append(
            MetricSeriesPoint(
                metric=METRIC_SIGNERS_INACTIVE,
                timestamp=timestamp,
                value=1.0 if inactive else 0.0,
                resources=_resources(
                    host,
                    ("name", entity.name),
                    ("namespace", entity.namespace),
                    ("address", signer.address),
                    ("owner", signer.owner_name),
                ),
            )
        )
    return series


def generate_access_key_metrics(
    collector: MultisigsCollector, backstage_url: str, now: float | None = None
) -> list[MetricSeriesPoint]:
    host = host_from_url(backstage_url)
    timestamp = _now(now)
    series: list[MetricSeriesPoint] = []
    for key in collector.get_all_access_keys():
        entity = key.entity
        series.append(
            MetricSeriesPoint(
                metric=METRIC_ACCESS_KEYS,
                timestamp=timestamp,
                value=_key_value(key),
                resources=_resources(
                    host,
                    ("kind", entity.kind),
                    ("name", entity.name),
                    ("namespace", entity.namespace),
                    ("owner", key.owner_name),
                    ("ownerKind", key.owner_kind),
                    ("deprecated", str(key.deprecated).lower()),
                ),
            )
        )
    return series


def generate_keys_per_signer_metrics(
    collector: MultisigsCollector, backstage_url: str, now: float | None = None
) -> list[MetricSeriesPoint]:
    host = host_from_url(backstage_url)
    timestamp = _now(now)
    return [
        MetricSeriesPoint(
            metric=METRIC_KEYS_PER_SIGNER,
            timestamp=timestamp,
            value=float(len(group.keys)),
            resources=_resources(
                host,
                ("signer", group.signer.entity.name),
                ("address", group.signer.address),
                ("owner", group.signer.owner_name),
            ),
        )
        for group in collector.get_access_keys_per_signer().values()
    ]


def generate_keys_per_contract_metrics(
    collector: MultisigsCollector, backstage_url: str, now: float | None = None
) -> list[MetricSeriesPoint]:
    host = host_from_url(backstage_url)
    timestamp = _now(now)
    return [
        MetricSeriesPoint(
            metric=METRIC_KEYS_PER_CONTRACT,
            timestamp=timestamp,
            value=float(len(keys)),
            resources=_resources(host, ("contract", owner), ("ownerKind", keys[0].owner_kind)),
        )
        for owner, keys in collector.get_access_keys_per_contract().items()
    ]


def generate_key_anomaly_metrics(
    collector: MultisigsCollector, backstage_url: str, now: float | None = None
) -> list[MetricSeriesPoint]:
    """Aggregate counts of deprecated and unknown-owner keys (reported even when 0)."""
    host = host_from_url(backstage_url)
    timestamp = _now(now)
    keys = collector.get_all_access_keys()
    return [
        MetricSeriesPoint(
            metric=METRIC_KEYS_DEPRECATED,
            timestamp=timestamp,
            value=float(sum(1 for k in keys if k.deprecated)),
            resources=_resources(host),
        ),
        MetricSeriesPoint(
            metric=METRIC_KEYS_UNKNOWN,
            timestamp=timestamp,
            value=float(sum(1 for k in keys if k.unknown)),
            resources=_resources(host),
        ),
    ]


def generate_all_metrics(
    collector: MultisigsCollector, backstage_url: str, now: float | None = None
) -> dict[str, list[MetricSeriesPoint]]:
    """Every series batch, keyed by batch name. Batches are submitted independently."""
    now = _now(now)
    return {
        "multisigs": generate_multisig_metrics(collector, backstage_url, now),
        "signers": generate_signer_metrics(collector, backstage_url, now)
        + generate_inactive_signer_metrics(collector, backstage_url, now),
        "access-keys": generate_access_key_metrics(collector, backstage_url, now)
        + generate_key_anomaly_metrics(collector, backstage_url, now),
        "access-keys-per-signer": generate_keys_per_signer_metrics(collector, backstage_url, now),
        "access-keys-per-contract": generate_keys_per_contract_metrics(collector, backstage_url, now),
    }
