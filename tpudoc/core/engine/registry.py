###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Check Registry and Selection

This module manages the global check registry, provides the @register_check
decorator for check registration and the `select` filter that narrows a
catalog down to the checks requested for a run.
"""

import logging
from typing import Callable, Dict, Iterable, Optional, Sequence, Tuple

from tpudoc.core.engine.models import Check, CheckCategory, CheckOutcome
from tpudoc.core.errors import ConfigurationError, OrchestrationError

log = logging.getLogger(__name__)

ALL_CATEGORIES = "all"


# ============================================================================
# Check Registry
# ============================================================================


class CheckRegistry:
    """
    Global check registry.

    Usage:
        1. Register checks via @register_check decorator (at import time)
        2. Take an immutable snapshot via catalog()
    """

    _checks: Dict[str, Check] = {}

    # ------------------------ Registration ------------------------ #

    @classmethod
    def register(cls, check: Check) -> Check:
        """Register a check."""
        if check.id in cls._checks:
            log.warning("Check '%s' already registered, overriding", check.id)
        cls._checks[check.id] = check
        log.debug(
            "[CheckRegistry] Registered check: %s (category=%s, depends_on=%s)",
            check.id,
            check.category.value,
            sorted(check.dependency_ids),
        )
        return check

    # ------------------------- Lookup APIs ------------------------ #

    @classmethod
    def catalog(cls) -> Tuple[Check, ...]:
        """Snapshot of all registered checks in canonical (category, id) order."""
        return tuple(sorted(cls._checks.values(), key=Check.sort_key))

    @classmethod
    def clear(cls) -> None:
        """Clear all checks (useful for testing)."""
        cls._checks.clear()


# ============================================================================
# Decorator: register_check
# ============================================================================


def register_check(
    check_id: str,
    *,
    name: str,
    category: CheckCategory,
    description: str = "",
    depends_on: Optional[Sequence[str]] = None,
    estimated_ms: int = 0,
) -> Callable[[Callable[..., CheckOutcome]], Callable[..., CheckOutcome]]:
    """
    Decorator to register a function as a check.

    Args:
        check_id:
            Unique check identifier (e.g., "HW-002").
        name:
            Human-readable name.
        category:
            CheckCategory the check belongs to.
        description:
            One-line description. Defaults to the function docstring.
        depends_on:
            Ids of checks that must complete before this one starts.
        estimated_ms:
            Rough runtime estimate in milliseconds.

    Example:

        @register_check(
            "HW-002",
            name="HBM Memory Availability",
            category=CheckCategory.HARDWARE,
            depends_on=["HW-001"],
            estimated_ms=100,
        )
        def check_hbm(env):
            ...
    """

    dependency_ids = frozenset(depends_on or ())

    def decorator(func: Callable[..., CheckOutcome]) -> Callable[..., CheckOutcome]:
        check = Check(
            id=check_id,
            name=name,
            category=category,
            handler=func,
            description=description or (func.__doc__ or "").strip(),
            dependency_ids=dependency_ids,
            estimated_duration_ms=estimated_ms,
        )
        CheckRegistry.register(check)
        return func

    return decorator


# ============================================================================
# Selection
# ============================================================================


def _normalize_categories(categories: Optional[Iterable]) -> Optional[frozenset]:
    """None means every category; so does any entry equal to "all"."""
    if not categories:
        return None
    selected = set()
    for category in categories:
        if isinstance(category, CheckCategory):
            selected.add(category)
        elif str(category).strip().lower() == ALL_CATEGORIES:
            return None
        else:
            selected.add(CheckCategory.parse(str(category)))
    return frozenset(selected)


def select(
    catalog: Sequence[Check],
    categories: Optional[Iterable] = None,
    only_ids: Optional[Iterable[str]] = None,
    skip_ids: Optional[Iterable[str]] = None,
) -> Tuple[Check, ...]:
    """
    Narrow `catalog` down to the checks requested for this run.

    Rules, applied in order:
        1. categories restricts to those categories ("all" or None = every one)
        2. only_ids, when non-empty, keeps exactly those ids
        3. otherwise skip_ids are removed

    The result preserves catalog order. Unknown ids in only/skip raise
    ConfigurationError; duplicate ids in the catalog raise OrchestrationError.
    """
    known = set()
    for check in catalog:
        if check.id in known:
            raise OrchestrationError(f"Duplicate check id in catalog: {check.id}")
        known.add(check.id)

    only = list(only_ids or ())
    skip = list(skip_ids or ())
    unknown = sorted({i for i in only + skip if i not in known})
    if unknown:
        raise ConfigurationError(f"Unknown check id(s): {', '.join(unknown)}")

    wanted_categories = _normalize_categories(categories)
    selected = [c for c in catalog if wanted_categories is None or c.category in wanted_categories]

    if only:
        only_set = set(only)
        selected = [c for c in selected if c.id in only_set]
    elif skip:
        skip_set = set(skip)
        selected = [c for c in selected if c.id not in skip_set]

    log.debug("[select] %d of %d checks selected", len(selected), len(catalog))
    return tuple(selected)
