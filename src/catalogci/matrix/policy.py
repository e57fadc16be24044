"""Test-execution policy — does CI run an entity's checks on this event?

Rules are evaluated in order; the first match wins:
  1. force-all flag set                 → run
  2. event is not a pull request        → run
  3. entity tagged ci-sec-changed-only  → run only if changed
  4. otherwise                          → run
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from catalogci.catalog.models import Entity
from catalogci.log import get_logger

logger = get_logger(__name__)

PULL_REQUEST_EVENT = "pull_request"
TAG_CHANGED_ONLY = "ci-sec-changed-only"


@dataclass(frozen=True)
class RunDecision:
    run: bool
    reason: str

    def __bool__(self) -> bool:
        return self.run


def run_tests_policy(
    entity: Entity,
    changed: bool,
    event_name: str | None = None,
    force_all: Any = None,
) -> RunDecision:
    """Decide whether *entity*'s checks run.

    *force_all* is any truthy value (workflow inputs arrive as strings; callers
    normalise ``"false"`` before passing it in).
    """
    if force_all:
        decision = RunDecision(True, "CI runs because of workflow config (force_all_checks: true)")
    elif event_name != PULL_REQUEST_EVENT:
        decision = RunDecision(True, "CI runs because it's not a PR")
    elif TAG_CHANGED_ONLY in entity.tags:
        decision = RunDecision(
            changed, f"CI runs for changed only (changed: {changed}) - via {TAG_CHANGED_ONLY} tag"
        )
    else:
        decision = RunDecision(
            True,
            f"CI runs by default for all components (changed: {changed}) - no {TAG_CHANGED_ONLY} tag",
        )
    logger.info("%s: %s", entity.name, decision.reason)
    return decision
