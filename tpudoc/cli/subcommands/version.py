###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

from typing import Any, List

from tpudoc import __version__


def run(args: Any, extra_args: List[str]) -> int:
    print(f"tpu-doc {__version__}")
    return 0


def register_subcommand(subparsers):
    parser = subparsers.add_parser("version", help="Print the tpu-doc version.")
    parser.set_defaults(func=run)
    return parser
