"""Change attribution — which catalog entities does a change set touch?

An entity is changed when any changed file path starts with the entity's
repository-relative source location. This is a plain string prefix match: an
entity located at the repository root (empty relative path) is changed by every
file.
"""

from __future__ import annotations

from typing import Iterable, Sequence

from catalogci.catalog.entity import SourceLocationError, source_location_relative, source_location_url
from catalogci.catalog.models import Entity
from catalogci.changes.models import ChangedFile
from catalogci.log import get_logger

logger = get_logger(__name__)

COMPONENT_KIND = "Component"


def entities_in_repo(entities: Iterable[Entity], repo_url: str) -> list[Entity]:
    """Entities whose source location points into *repo_url*."""
    prefix = f"url:{repo_url.rstrip('/')}/"
    return [e for e in entities if (source_location_url(e) or "").startswith(prefix)]


def components(entities: Iterable[Entity]) -> list[Entity]:
    return [e for e in entities if e.kind == COMPONENT_KIND]


def is_changed(entity: Entity, changed_files: Sequence[ChangedFile]) -> bool:
    """True if any of *changed_files* lives under the entity's source location.

    Entities without a usable source location are never attributed a change.
    """
    try:
        location = source_location_relative(entity)
    except SourceLocationError as exc:
        logger.warning("%s", exc)
        return False
    return any(f.file.startswith(location) for f in changed_files)


def changed_entities(entities: Sequence[Entity], changed_files: Sequence[ChangedFile]) -> list[Entity]:
    """The subset of *entities* touched by *changed_files*, in input order."""
    return [e for e in entities if is_changed(e, changed_files)]


def inspect_entities(message: str, items: Sequence[Entity]) -> None:
    """Log a name + location listing of *items*."""
    logger.info("%s (%d):", message, len(items))
    for item in items:
        try:
            location = source_location_relative(item)
        except SourceLocationError:
            location = "?"
        logger.info(' - %s at "%s"', item.name, location)
