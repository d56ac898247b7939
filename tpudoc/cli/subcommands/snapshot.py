###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Snapshot CLI subcommand: TPU and host resource usage.

With --continuous N the snapshot is redrawn every N seconds until
interrupted.
"""

import json
import os
from typing import Any, List

from tpudoc.core.errors import ConfigurationError
from tpudoc.platform.context import EnvironmentContext
from tpudoc.platform.real import RealEnvironment
from tpudoc.tools.resource_snapshot import format_snapshot_text, take_snapshot, watch


def make_context(environ) -> EnvironmentContext:
    return RealEnvironment(environ)


def _render_json(snapshot) -> str:
    return json.dumps(snapshot.to_dict(), indent=2)


def run(args: Any, extra_args: List[str]) -> int:
    if extra_args:
        raise ConfigurationError(f"Unrecognized arguments: {' '.join(extra_args)}")
    if args.continuous is not None and args.continuous <= 0:
        raise ConfigurationError(f"--continuous must be a positive number of seconds, got {args.continuous}")

    render = _render_json if args.format == "json" else format_snapshot_text
    env = make_context(dict(os.environ))
    if args.continuous:
        watch(env, args.continuous, render)
    else:
        print(render(take_snapshot(env)))
    return 0


def register_subcommand(subparsers):
    parser = subparsers.add_parser(
        "snapshot",
        help="Show a resource usage snapshot.",
        description="Print TPU, CPU, memory and top-process usage.",
    )
    parser.add_argument("--format", choices=("text", "json"), default="text")
    parser.add_argument(
        "--continuous",
        type=int,
        default=None,
        metavar="SECONDS",
        help="Refresh the snapshot every SECONDS until Ctrl+C.",
    )
    parser.set_defaults(func=run)
    return parser
