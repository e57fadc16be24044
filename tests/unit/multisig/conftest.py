"""Catalog fixtures for multisig classification and metrics."""

from __future__ import annotations

import pytest

from catalogci.catalog.models import Entity

NOW = 1_700_000_000
DAY = 86_400


def _entity(kind: str, name: str, spec: dict | None = None, **metadata) -> Entity:
    return Entity.from_dict({"kind": kind, "metadata": {"name": name, **metadata}, "spec": spec or {}})


def build_catalog() -> list[Entity]:
    return [
        _entity("User", "alice"),
        _entity("User", "bob"),
        _entity("Component", "token", {"type": "contract"}),
        _entity(
            "API",
            "treasury",
            {
                "type": "multisig",
                "address": "0xSAFE",
                "network": "ethereum",
                "networkType": "mainnet",
                "system": "system:default/bridge",
                "owner": "group:default/ops",
                "multisig": {"version": "1.3.0", "fetchDate": "2023-11-01T00:00:00Z"},
            },
        ),
        _entity(
            "Component",
            "alice-signer",
            {
                "type": "signer-address",
                "address": "0xA11CE",
                "network": "ethereum",
                "networkType": "mainnet",
                "owner": "user:default/alice",
                "lastSigned": NOW - 200 * DAY,
            },
        ),
        _entity(
            "Component",
            "bob-signer",
            {
                "type": "signer-address",
                "address": "0xB0B",
                "owner": "user:default/bob",
                "lastSigned": (NOW - 10 * DAY) * 1000,
            },
        ),
        _entity(
            "Component",
            "mystery-signer",
            {"type": "signer-address", "address": "0xDEAD", "owner": "user:stub/unknown"},
            namespace="stub",
        ),
        _entity("API", "alice-key-1", {"type": "access-key", "owner": "user:default/alice"}),
        _entity(
            "API",
            "alice-key-2",
            {"type": "access-key", "owner": "user:default/alice"},
            tags=["deprecated"],
        ),
        _entity("API", "token-key", {"type": "access-key", "owner": "contract:default/token"}),
        _entity("API", "treasury-key", {"type": "access-key", "owner": "api:default/treasury"}),
        _entity(
            "API",
            "old-key",
            {"type": "access-key", "owner": "contract:default/token", "lifecycle": "deprecated"},
        ),
        _entity("API", "orphan-key", {"type": "access-key", "owner": "nobody"}),
        _entity("API", "ghost-key", {"type": "access-key", "owner": "user:default/ghost"}),
    ]


@pytest.fixture()
def catalog() -> list[Entity]:
    return build_catalog()
