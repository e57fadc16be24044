"""Multisig / signer / access-key classification over a flat entity list.

Entity shapes recognised (``spec`` fields):

    multisig    spec.multisig: {version, fetchDate, ...}, address, network,
                networkType, system, owner
    signer      spec.type: signer-address, address, network, networkType,
                owner (the user holding the key), lastSigned
    access key  spec.type: access-key, owner (user, multisig or contract)

Every ``get_*`` method derives its result from the entity list on each call;
nothing is cached, so calls are independent and repeatable. Malformed or
dangling ``spec.owner`` references never raise; those keys are reported as
unknown.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from typing import Any, Iterable, Mapping

from catalogci.catalog.entity import is_stub, parse_owner_ref, ref_target
from catalogci.catalog.models import Entity, EntityRef, RefParseError

SIGNER_TYPE = "signer-address"
ACCESS_KEY_TYPE = "access-key"
TAG_DEPRECATED = "deprecated"
LIFECYCLE_DEPRECATED = "deprecated"

OWNER_USER = "user"
OWNER_MULTISIG = "multisig"
OWNER_CONTRACT = "contract"
OWNER_UNKNOWN = "unknown"

# Epoch values above this are milliseconds.
_MS_THRESHOLD = 10**12


def parse_timestamp(value: Any) -> int | None:
    """Seconds since epoch from an ISO-8601 string or a numeric epoch (s or ms)."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, datetime):
        seconds = _aware(value).timestamp()
    elif isinstance(value, date):
        seconds = datetime(value.year, value.month, value.day, tzinfo=timezone.utc).timestamp()
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            seconds = float(text)
        except ValueError:
            try:
                parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
            except ValueError:
                return None
            seconds = _aware(parsed).timestamp()
    else:
        return None
    if seconds > _MS_THRESHOLD:
        seconds /= 1000
    return round(seconds)


def _aware(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


def _spec_str(spec: Mapping[str, Any], key: str) -> str | None:
    value = spec.get(key)
    return None if value is None else str(value)


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Multisig:
    entity: Entity
    address: str | None
    network: str | None
    network_type: str | None
    system: str | None
    owner: str | None
    version: str | None
    fetch_date: int | None

    @classmethod
    def from_entity(cls, entity: Entity) -> Multisig:
        spec = entity.spec
        info = spec.get("multisig") or {}
        if not isinstance(info, Mapping):
            info = {}
        version = info.get("version")
        return cls(
            entity=entity,
            address=_spec_str(spec, "address"),
            network=_spec_str(spec, "network"),
            network_type=_spec_str(spec, "networkType"),
            system=ref_target(spec.get("system")),
            owner=ref_target(spec.get("owner")),
            version=None if version is None else str(version),
            fetch_date=parse_timestamp(info.get("fetchDate")),
        )


@dataclass(frozen=True)
class Signer:
    entity: Entity
    address: str | None
    network: str | None
    network_type: str | None
    owner: EntityRef | None
    last_signed: int | None
    stub: bool

    @classmethod
    def from_entity(cls, entity: Entity) -> Signer:
        spec = entity.spec
        try:
            owner: EntityRef | None = parse_owner_ref(spec)
        except RefParseError:
            owner = None
        return cls(
            entity=entity,
            address=_spec_str(spec, "address"),
            network=_spec_str(spec, "network"),
            network_type=_spec_str(spec, "networkType"),
            owner=owner,
            last_signed=parse_timestamp(spec.get("lastSigned")),
            stub=is_stub(entity),
        )

    @property
    def owner_name(self) -> str | None:
        return self.owner.name if self.owner else None


@dataclass(frozen=True)
class AccessKey:
    entity: Entity
    owner: EntityRef | None
    owner_kind: str
    owner_entity: Entity | None
    deprecated: bool

    @property
    def unknown(self) -> bool:
        """Owner unparsable, missing from the catalog, or a stub placeholder."""
        return self.owner is None or self.owner_entity is None or is_stub(self.owner_entity)

    @property
    def owner_name(self) -> str | None:
        return self.owner.name if self.owner else None


@dataclass(frozen=True)
class SignerKeys:
    signer: Signer
    keys: list[AccessKey] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Collector
# ---------------------------------------------------------------------------


def is_multisig(entity: Entity) -> bool:
    return isinstance(entity.spec.get("multisig"), Mapping)


def is_signer(entity: Entity) -> bool:
    return entity.spec.get("type") == SIGNER_TYPE


def is_access_key(entity: Entity) -> bool:
    return entity.spec.get("type") == ACCESS_KEY_TYPE


def is_deprecated(entity: Entity) -> bool:
    return TAG_DEPRECATED in entity.tags or entity.spec.get("lifecycle") == LIFECYCLE_DEPRECATED


def _fallback_rank(entity: Entity) -> tuple[bool, bool, str]:
    return (not is_multisig(entity), is_stub(entity), entity.ref)


class MultisigsCollector:
    """Partition catalog entities into multisigs, signers, and access keys.

    Args:
        entities: Flat entity list as fetched from the catalog. The collector
            keeps its own tuple; the caller's list is not modified.
    """

    def __init__(self, entities: Iterable[Entity]) -> None:
        self._entities: tuple[Entity, ...] = tuple(entities)

    @property
    def entities(self) -> tuple[Entity, ...]:
        return self._entities

    # ------------------------------------------------------------------
    # Multisigs and signers
    # ------------------------------------------------------------------

    def get_multisigs(self) -> list[Multisig]:
        return [Multisig.from_entity(e) for e in self._entities if is_multisig(e)]

    def get_signers(self) -> list[Signer]:
        return [Signer.from_entity(e) for e in self._entities if is_signer(e)]

    def get_unknown_signers(self) -> list[Signer]:
        return [s for s in self.get_signers() if s.stub]

    # ------------------------------------------------------------------
    # Access keys
    # ------------------------------------------------------------------

    def _index(self) -> dict[str, Entity]:
        """Entities by canonical ``kind:namespace/name`` reference and by ``namespace/name``.

        Owner refs often use a logical kind (``contract:default/token``) for an
        entity catalogued as a Component or API, so the kind-less target is a
        fallback key. Full refs take precedence. When several entities share a
        target the fallback prefers multisigs, then non-stub entities, then the
        lowest full ref, so the result does not depend on input order.
        """
        index: dict[str, Entity] = {}
        for e in sorted(self._entities, key=_fallback_rank):
            index.setdefault(f"{e.namespace}/{e.name}", e)
        for e in self._entities:
            index[e.ref] = e
        return index

    def _classify_key(self, entity: Entity, index: Mapping[str, Entity]) -> AccessKey:
        try:
            owner: EntityRef | None = parse_owner_ref(entity.spec)
        except RefParseError:
            owner = None

        owner_entity = (index.get(str(owner)) or index.get(owner.target)) if owner else None
        if owner is None:
            owner_kind = OWNER_UNKNOWN
        elif owner.kind == OWNER_USER:
            owner_kind = OWNER_USER
        elif owner_entity is not None and is_multisig(owner_entity):
            owner_kind = OWNER_MULTISIG
        else:
            owner_kind = OWNER_CONTRACT

        return AccessKey(
            entity=entity,
            owner=owner,
            owner_kind=owner_kind,
            owner_entity=owner_entity,
            deprecated=is_deprecated(entity),
        )

    def get_all_access_keys(self) -> list[AccessKey]:
        index = self._index()
        return [self._classify_key(e, index) for e in self._entities if is_access_key(e)]

    def get_user_access_keys(self) -> list[AccessKey]:
        return [k for k in self.get_all_access_keys() if k.owner_kind == OWNER_USER]

    def get_multisig_access_keys(self) -> list[AccessKey]:
        return [k for k in self.get_all_access_keys() if k.owner_kind == OWNER_MULTISIG]

    def get_deprecated_access_keys(self) -> list[AccessKey]:
        return [k for k in self.get_all_access_keys() if k.deprecated]

    def get_unknown_access_keys(self) -> list[AccessKey]:
        return [k for k in self.get_all_access_keys() if k.unknown]

    def get_access_keys_per_signer(self) -> dict[str, SignerKeys]:
        """Signer ref → the signer and every key owned by the signer's user."""
        keys_by_owner: dict[str, list[AccessKey]] = {}
        for key in self.get_all_access_keys():
            if key.owner is not None:
                keys_by_owner.setdefault(str(key.owner), []).append(key)

        result: dict[str, SignerKeys] = {}
        for signer in self.get_signers():
            owned = keys_by_owner.get(str(signer.owner), []) if signer.owner else []
            result[signer.entity.ref] = SignerKeys(signer=signer, keys=list(owned))
        return result

    def get_access_keys_per_contract(self) -> dict[str, list[AccessKey]]:
        """Owner name → keys, for keys owned by anything other than a user."""
        result: dict[str, list[AccessKey]] = {}
        for key in self.get_all_access_keys():
            if key.owner is None or key.owner_kind == OWNER_USER:
                continue
            result.setdefault(key.owner.name, []).append(key)
        return result
