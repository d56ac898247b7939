###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Dependency resolution.

Partitions a selection of checks into ordered waves: every check in wave k
depends only on checks in waves < k or on checks that are not selected for
this run.
"""

from typing import Dict, List, Sequence, Tuple

from tpudoc.core.engine.models import Check
from tpudoc.core.errors import OrchestrationError

Wave = Tuple[Check, ...]

_WHITE, _GREY, _BLACK = 0, 1, 2


def validate_catalog(catalog: Sequence[Check]) -> None:
    """Reject duplicate ids, dangling dependencies and dependency cycles."""
    by_id: Dict[str, Check] = {}
    for check in catalog:
        if check.id in by_id:
            raise OrchestrationError(f"Duplicate check id in catalog: {check.id}")
        by_id[check.id] = check

    for check in catalog:
        missing = sorted(d for d in check.dependency_ids if d not in by_id)
        if missing:
            raise OrchestrationError(
                f"Check {check.id} depends on unknown check(s): {', '.join(missing)}"
            )

    cycle = _find_cycle(catalog, by_id)
    if cycle:
        raise OrchestrationError(f"Dependency cycle detected: {' -> '.join(cycle)}")


def _find_cycle(catalog: Sequence[Check], by_id: Dict[str, Check]) -> List[str]:
    """DFS with recursion-stack colouring; returns the cycle path or []."""
    color = {c.id: _WHITE for c in catalog}
    stack: List[str] = []

    def visit(check_id: str) -> List[str]:
        color[check_id] = _GREY
        stack.append(check_id)
        for dep in sorted(by_id[check_id].dependency_ids):
            if color[dep] == _GREY:
                return stack[stack.index(dep):] + [dep]
            if color[dep] == _WHITE:
                found = visit(dep)
                if found:
                    return found
        stack.pop()
        color[check_id] = _BLACK
        return []

    for check in catalog:
        if color[check.id] == _WHITE:
            found = visit(check.id)
            if found:
                return found
    return []


def resolve(selected: Sequence[Check], catalog: Sequence[Check]) -> List[Wave]:
    """
    Compute execution waves for `selected`.

    Edges are taken from the full catalog, so a cycle or dangling reference
    anywhere in it is fatal even if the offending checks are filtered out.
    Dependencies that are not selected are treated as already satisfied.
    Members of each wave are ordered by catalog order.
    """
    validate_catalog(catalog)

    position = {c.id: i for i, c in enumerate(catalog)}
    chosen = {c.id: c for c in selected}
    pending = {
        check_id: {d for d in check.dependency_ids if d in chosen} for check_id, check in chosen.items()
    }

    waves: List[Wave] = []
    while pending:
        ready = sorted((cid for cid, deps in pending.items() if not deps), key=lambda cid: position.get(cid, 0))
        if not ready:
            # Unreachable after validate_catalog; guard against a selection
            # that is not a subset of the catalog.
            raise OrchestrationError(f"Unresolvable dependencies among: {', '.join(sorted(pending))}")
        waves.append(tuple(chosen[cid] for cid in ready))
        for cid in ready:
            del pending[cid]
        done = set(ready)
        for deps in pending.values():
            deps -= done

    return waves
