###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
List CLI subcommand.

Example:
    tpu-doc list --category hardware
"""

import json
from typing import Any, List, Sequence

from tpudoc.checks import load_builtin_checks
from tpudoc.core.engine.models import Check, CheckCategory
from tpudoc.core.engine.registry import select
from tpudoc.core.errors import ConfigurationError


def render_catalog(checks: Sequence[Check]) -> str:
    lines = []
    for category in CheckCategory:
        members = [c for c in checks if c.category is category]
        if not members:
            continue
        lines.append(category.title)
        for check in members:
            lines.append(f"  {check.id:<10}{check.name}")
            if check.description:
                lines.append(f"  {'':<10}{check.description}")
            if check.dependency_ids:
                lines.append(f"  {'':<10}depends on: {', '.join(sorted(check.dependency_ids))}")
        lines.append("")
    lines.append(f"{len(checks)} check(s)")
    return "\n".join(lines)


def catalog_to_dicts(checks: Sequence[Check]) -> List[dict]:
    return [
        {
            "id": c.id,
            "name": c.name,
            "category": c.category.value,
            "description": c.description,
            "depends_on": sorted(c.dependency_ids),
            "estimated_duration_ms": c.estimated_duration_ms,
        }
        for c in checks
    ]


def run(args: Any, extra_args: List[str]) -> int:
    if extra_args:
        raise ConfigurationError(f"Unrecognized arguments: {' '.join(extra_args)}")

    checks = select(load_builtin_checks(), categories=args.category)
    if args.format == "json":
        print(json.dumps(catalog_to_dicts(checks), indent=2))
    else:
        print(render_catalog(checks))
    return 0


def register_subcommand(subparsers):
    parser = subparsers.add_parser(
        "list",
        help="List available checks.",
        description="List the built-in checks grouped by category, with their dependencies.",
    )
    parser.add_argument(
        "--category",
        action="append",
        choices=[c.value for c in CheckCategory],
        help="Only list this category (repeatable)",
    )
    parser.add_argument("--format", choices=("text", "json"), default="text")
    parser.set_defaults(func=run)
    return parser
