###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""Stack CLI subcommand: JAX / jaxlib / libtpu / Python compatibility."""

import json
import os
from typing import Any, List

from tpudoc.core.errors import ConfigurationError
from tpudoc.data.compatibility import CompatibilityStatus, load_matrix
from tpudoc.platform.context import EnvironmentContext
from tpudoc.platform.real import RealEnvironment
from tpudoc.tools.stack_analysis import analyze_stack, format_matrix_text, format_stack_text


def make_context(environ) -> EnvironmentContext:
    return RealEnvironment(environ)


def run(args: Any, extra_args: List[str]) -> int:
    if extra_args:
        raise ConfigurationError(f"Unrecognized arguments: {' '.join(extra_args)}")

    matrix = load_matrix()
    if args.matrix:
        if args.format == "json":
            print(json.dumps(matrix.to_dict(), indent=2))
        else:
            print(format_matrix_text(matrix))
        return 0

    analysis = analyze_stack(make_context(dict(os.environ)), matrix)
    if args.format == "json":
        print(json.dumps(analysis.to_dict(), indent=2))
    else:
        print(format_stack_text(analysis, verbose=args.verbose))
    return 1 if analysis.status is CompatibilityStatus.INCOMPATIBLE else 0


def register_subcommand(subparsers):
    parser = subparsers.add_parser(
        "stack",
        help="Analyze the JAX software stack.",
        description="Detect JAX, jaxlib, libtpu and Python versions and check them against the compatibility matrix.",
    )
    parser.add_argument("--matrix", action="store_true", help="Print the compatibility matrix and exit.")
    parser.add_argument("--format", choices=("text", "json"), default="text")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show how each version was detected.")
    parser.set_defaults(func=run)
    return parser
