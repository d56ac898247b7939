###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""Cache CLI subcommand: XLA compilation cache health."""

import json
import os
from typing import Any, List

from tpudoc.core.errors import ConfigurationError
from tpudoc.platform.context import EnvironmentContext
from tpudoc.platform.real import RealEnvironment
from tpudoc.tools.cache_analysis import CacheHealth, analyze_cache, format_cache_text


def make_context(environ) -> EnvironmentContext:
    return RealEnvironment(environ)


def run(args: Any, extra_args: List[str]) -> int:
    if extra_args:
        raise ConfigurationError(f"Unrecognized arguments: {' '.join(extra_args)}")

    analysis = analyze_cache(make_context(dict(os.environ)))
    if args.format == "json":
        print(json.dumps(analysis.to_dict(), indent=2))
    else:
        print(format_cache_text(analysis, verbose=args.verbose))
    return 1 if analysis.health is CacheHealth.ERROR else 0


def register_subcommand(subparsers):
    parser = subparsers.add_parser(
        "cache",
        help="Analyze the XLA compilation cache.",
        description="Locate the XLA/JAX compilation cache and report its size, permissions and free space.",
    )
    parser.add_argument("--format", choices=("text", "json"), default="text")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show oldest and newest cache entries.")
    parser.set_defaults(func=run)
    return parser
