"""Backstage catalog layer — entity models, accessors, and catalog sources."""

from catalogci.catalog.entity import (
    SourceLocationError,
    allow_tests_to_fail,
    is_stub,
    parse_owner_ref,
    security_tier,
    source_location_dir,
    source_location_relative,
    source_location_url,
)
from catalogci.catalog.models import Entity, EntityMetadata, EntityRef, RefParseError

__all__ = [
    "Entity",
    "EntityMetadata",
    "EntityRef",
    "RefParseError",
    "SourceLocationError",
    "allow_tests_to_fail",
    "is_stub",
    "parse_owner_ref",
    "security_tier",
    "source_location_dir",
    "source_location_relative",
    "source_location_url",
]
