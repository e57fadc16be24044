"""Derived accessors over catalog entities.

Source locations are Backstage ``url:`` annotations, e.g.::

    url:https://github.com/aurora-is-near/monorepo/tree/main/services/api/

Splitting on ``/`` gives ``url:https:``, ``""``, host, org, repo, ``tree``, ref,
then the repository-relative path; the first seven segments are dropped.
"""

from __future__ import annotations

from typing import Any, Mapping

from catalogci.catalog.models import STUB_NAMESPACE, Entity, EntityRef, RefParseError

SOURCE_LOCATION_ANNOTATION = "backstage.io/source-location"
SECURITY_TIER_ANNOTATION = "aurora.dev/security-tier"

TAG_CI_SEC_DISABLE = "ci-sec-disable"
TAG_STUB = "stub"

_URL_PREFIX_SEGMENTS = 7
NO_SECURITY_TIER = -1


class SourceLocationError(ValueError):
    """Raised when an entity has no usable source-location annotation."""


def source_location_url(entity: Entity) -> str | None:
    """Return the raw ``backstage.io/source-location`` value (still ``url:`` prefixed)."""
    annotations = entity.metadata.annotations
    if not annotations:
        return None
    return annotations.get(SOURCE_LOCATION_ANNOTATION)


def _location_segments(entity: Entity) -> list[str]:
    loc = source_location_url(entity)
    if loc is None:
        raise SourceLocationError(f"{entity.name}: no {SOURCE_LOCATION_ANNOTATION} annotation")
    segments = loc.split("/")
    if len(segments) < _URL_PREFIX_SEGMENTS:
        raise SourceLocationError(
            f"{entity.name}: source location {loc!r} has fewer than "
            f"{_URL_PREFIX_SEGMENTS} path segments"
        )
    return segments


def source_location_relative(entity: Entity) -> str:
    """Repository-relative path of the entity's source location.

    Raises:
        SourceLocationError: If the annotation is missing or too short.
    """
    return "/".join(_location_segments(entity)[_URL_PREFIX_SEGMENTS:])


def source_location_dir(entity: Entity) -> str:
    """Directory part of :func:`source_location_relative` (last segment dropped).

    Raises:
        SourceLocationError: If the annotation is missing or too short.
    """
    return "/".join(_location_segments(entity)[_URL_PREFIX_SEGMENTS:-1])


def security_tier(entity: Entity) -> int:
    """``aurora.dev/security-tier`` as an int, or -1 when unset or unparsable."""
    annotations = entity.metadata.annotations
    if not annotations:
        return NO_SECURITY_TIER
    raw = annotations.get(SECURITY_TIER_ANNOTATION)
    if not raw:
        return NO_SECURITY_TIER
    try:
        return int(raw.strip())
    except ValueError:
        return NO_SECURITY_TIER


def allow_tests_to_fail(entity: Entity) -> bool:
    return security_tier(entity) < 0 or TAG_CI_SEC_DISABLE in entity.tags


def parse_owner_ref(spec: Mapping[str, Any]) -> EntityRef:
    """Parse ``spec.owner``.

    Raises:
        RefParseError: If the owner is missing or lacks the ``:`` delimiter.
    """
    owner = spec.get("owner")
    if owner is None:
        raise RefParseError("spec.owner is missing")
    return EntityRef.parse(owner)


def is_stub(entity: Entity) -> bool:
    """Placeholder entities emitted for unknown owners/signers."""
    return entity.namespace == STUB_NAMESPACE or TAG_STUB in entity.tags


def ref_target(value: Any) -> str | None:
    """Return the part after ``:`` of a reference-like string, or the raw string.

    Used for display tags (``system``, ``owner``) where a plain name is as good
    as a full reference. Returns None for non-string values.
    """
    if not isinstance(value, str):
        return None
    _, sep, rest = value.partition(":")
    return rest if sep else value
