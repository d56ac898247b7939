###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""Audit CLI subcommand: XLA / JAX environment configuration review."""

import json
import os
from typing import Any, List

from tpudoc.core.errors import ConfigurationError
from tpudoc.platform.context import EnvironmentContext
from tpudoc.platform.real import RealEnvironment
from tpudoc.tools.config_audit import AuditStatus, audit_config, format_audit_text


def make_context(environ) -> EnvironmentContext:
    return RealEnvironment(environ)


def run(args: Any, extra_args: List[str]) -> int:
    if extra_args:
        raise ConfigurationError(f"Unrecognized arguments: {' '.join(extra_args)}")

    audit = audit_config(make_context(dict(os.environ)))
    if args.format == "json":
        print(json.dumps(audit.to_dict(), indent=2))
    else:
        print(format_audit_text(audit, verbose=args.verbose))
    return 1 if audit.overall_status is AuditStatus.ERROR else 0


def register_subcommand(subparsers):
    parser = subparsers.add_parser(
        "audit",
        help="Audit XLA and JAX configuration.",
        description="Review XLA_FLAGS, JAX, memory, distributed and logging settings for production use.",
    )
    parser.add_argument("--format", choices=("text", "json"), default="text")
    parser.add_argument("-v", "--verbose", action="store_true", help="Show full flag values.")
    parser.set_defaults(func=run)
    return parser
