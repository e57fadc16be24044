"""Domain models for Backstage catalog entities."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping

DEFAULT_NAMESPACE = "default"
STUB_NAMESPACE = "stub"


class RefParseError(ValueError):
    """Raised when an entity reference is not of the form ``kind:namespace/name``."""


@dataclass(frozen=True)
class EntityMetadata:
    name: str
    namespace: str = DEFAULT_NAMESPACE
    tags: tuple[str, ...] = ()
    annotations: Mapping[str, str] | None = None
    title: str | None = None
    description: str | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> EntityMetadata:
        annotations = raw.get("annotations")
        return cls(
            name=str(raw.get("name", "")),
            namespace=str(raw.get("namespace") or DEFAULT_NAMESPACE),
            tags=tuple(str(t) for t in raw.get("tags") or ()),
            annotations=(
                MappingProxyType({str(k): str(v) for k, v in annotations.items()})
                if isinstance(annotations, Mapping)
                else None
            ),
            title=raw.get("title"),
            description=raw.get("description"),
        )


@dataclass(frozen=True, eq=False)
class Entity:
    """A catalog record as returned by ``/api/catalog/entities``.

    ``spec`` is kept as a read-only mapping; its shape depends on ``kind`` and
    ``spec.type``. Entities are snapshots for one run and are never mutated, so
    identity is equality.
    """

    kind: str
    metadata: EntityMetadata
    spec: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    relations: tuple[Mapping[str, Any], ...] = ()
    api_version: str = "backstage.io/v1alpha1"

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> Entity:
        spec = raw.get("spec")
        return cls(
            kind=str(raw.get("kind", "")),
            metadata=EntityMetadata.from_dict(raw.get("metadata") or {}),
            spec=MappingProxyType(dict(spec)) if isinstance(spec, Mapping) else MappingProxyType({}),
            relations=tuple(r for r in raw.get("relations") or () if isinstance(r, Mapping)),
            api_version=str(raw.get("apiVersion", "backstage.io/v1alpha1")),
        )

    @property
    def name(self) -> str:
        return self.metadata.name

    @property
    def namespace(self) -> str:
        return self.metadata.namespace

    @property
    def tags(self) -> tuple[str, ...]:
        return self.metadata.tags

    @property
    def ref(self) -> str:
        """Canonical ``kind:namespace/name`` reference (kind lower-cased)."""
        return f"{self.kind.lower()}:{self.namespace}/{self.name}"


@dataclass(frozen=True)
class EntityRef:
    """Parsed ``kind:namespace/name`` ownership reference."""

    kind: str
    namespace: str
    name: str

    @classmethod
    def parse(cls, value: Any) -> EntityRef:
        """Parse *value*; the namespace defaults to ``default`` when omitted.

        Raises:
            RefParseError: If *value* is not a string or the ``:`` delimiter
                does not split it into exactly two non-empty parts.
        """
        if not isinstance(value, str):
            raise RefParseError(f"entity reference must be a string, got {value!r}")
        parts = value.split(":")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise RefParseError(f"malformed entity reference {value!r}, expected kind:namespace/name")
        kind, rest = parts
        namespace, _, name = rest.rpartition("/")
        if not name:
            raise RefParseError(f"entity reference {value!r} has an empty name")
        return cls(kind=kind.lower(), namespace=namespace or DEFAULT_NAMESPACE, name=name)

    @property
    def target(self) -> str:
        """The ``namespace/name`` half of the reference."""
        return f"{self.namespace}/{self.name}"

    def __str__(self) -> str:
        return f"{self.kind}:{self.namespace}/{self.name}"
