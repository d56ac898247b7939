###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

import argparse
import importlib
import pkgutil
import sys
from typing import Callable, Iterable, List, Optional

from tpudoc import __version__
from tpudoc.core.errors import TpuDocError

SUBCOMMAND_PACKAGE = "tpudoc.cli.subcommands"
DEFAULT_SUBCOMMAND = "check"
USAGE_ERROR_EXIT = 3


class TpuDocArgumentParser(argparse.ArgumentParser):
    """ArgumentParser whose usage errors exit with code 3 instead of 2."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(USAGE_ERROR_EXIT, f"{self.prog}: error: {message}\n")


def _iter_subcommand_modules() -> Iterable[str]:
    """
    Discover every module inside `tpudoc.cli.subcommands` (excluding those that
    start with `_`) and yield its full import path.
    """

    package = importlib.import_module(SUBCOMMAND_PACKAGE)
    prefix = package.__name__ + "."
    for _, module_name, is_pkg in pkgutil.walk_packages(package.__path__, prefix):
        leaf = module_name.split(".")[-1]
        if leaf.startswith("_") or is_pkg:
            continue
        yield module_name


def _load_subcommands(subparsers: argparse._SubParsersAction) -> None:
    """
    Dynamically import each discovered module and invoke its
    `register_subcommand(subparsers)` hook.
    """

    for module_path in _iter_subcommand_modules():
        module = importlib.import_module(module_path)
        register: Callable[[argparse._SubParsersAction], argparse.ArgumentParser] = getattr(
            module, "register_subcommand", None
        )
        if register is None:
            continue
        parser = register(subparsers)
        if parser is None:
            continue
        if not hasattr(parser, "get_default") or parser.get_default("func") is None:
            raise RuntimeError(
                f"Subcommand registered by '{module_path}' must call parser.set_defaults(func=...)"
            )


def _with_default_command(argv: List[str], commands: Iterable[str]) -> List[str]:
    """`tpu-doc --hardware` is shorthand for `tpu-doc check --hardware`."""
    if argv and (argv[0] in commands or argv[0] in ("-h", "--help", "--version")):
        return argv
    return [DEFAULT_SUBCOMMAND] + argv


def build_parser() -> argparse.ArgumentParser:
    parser = TpuDocArgumentParser(
        prog="tpu-doc",
        description="Pre-deployment validation for Cloud TPU VMs",
    )
    parser.add_argument("--version", action="version", version=f"tpu-doc {__version__}")
    subparsers = parser.add_subparsers(dest="command", required=True)
    _load_subcommands(subparsers)
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """
    tpu-doc CLI entry.

    Subcommands:
    - check:   run validation checks (default when no subcommand is given)
    - list:    show the check catalog
    - info:    print environment facts
    - stack:   software stack compatibility analysis
    - cache:   XLA compilation cache analysis
    - snapshot: TPU and host resource snapshot
    - audit:   XLA / JAX configuration audit
    - version: print the tool version

    Returns the process exit code: 0 pass, 1 failures, 2 warnings only,
    3 configuration or orchestration error.
    """
    parser = build_parser()
    subparsers = next(a for a in parser._actions if isinstance(a, argparse._SubParsersAction))

    argv = list(sys.argv[1:] if argv is None else argv)
    if argv and argv[0] == "--":
        argv.pop(0)
    args, unknown_args = parser.parse_known_args(_with_default_command(argv, subparsers.choices))

    try:
        return int(args.func(args, unknown_args) or 0)
    except TpuDocError as e:
        print(f"Error: {e}", file=sys.stderr)
        return USAGE_ERROR_EXIT


if __name__ == "__main__":
    sys.exit(main())
