"""CI component matrix — change attribution, test policy, and per-component config."""

from catalogci.matrix.attribution import changed_entities, components, entities_in_repo, is_changed
from catalogci.matrix.builder import (
    ComponentConfig,
    build_component_configs,
    component_config,
    find_root,
    generate_component_matrix,
    has_in_root,
    parse_go_version,
)
from catalogci.matrix.policy import RunDecision, run_tests_policy

__all__ = [
    "ComponentConfig",
    "RunDecision",
    "build_component_configs",
    "changed_entities",
    "component_config",
    "components",
    "entities_in_repo",
    "find_root",
    "generate_component_matrix",
    "has_in_root",
    "is_changed",
    "parse_go_version",
    "run_tests_policy",
]
