###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Check CLI subcommand.

Runs the validation pipeline and prints the report.

Examples:
    tpu-doc check --all
    tpu-doc check --hardware --stack --parallel --format json
    tpu-doc check --only HW-001 --only HW-003 --baseline baseline.json --fail-on-regression
"""

import json
import os
import sys
from typing import Any, List, Mapping

from tpudoc.checks import load_builtin_checks
from tpudoc.core.config.run_config import LOG_LEVELS, OUTPUT_FORMATS, RunConfig
from tpudoc.core.engine.baseline import save_baseline
from tpudoc.core.engine.models import DiffKind
from tpudoc.core.engine.orchestrator import RunResult, run_validation
from tpudoc.core.errors import ConfigurationError
from tpudoc.core.utils import logger
from tpudoc.core.utils.logger import LoggerConfig, setup_logger
from tpudoc.platform.context import EnvironmentContext
from tpudoc.platform.real import RealEnvironment
from tpudoc.report.json_report import report_to_dict
from tpudoc.report.junit_report import render_junit
from tpudoc.report.text_report import render_text

CATEGORY_FLAGS = (
    ("--all", "all", "Run all check categories (default)"),
    ("--hardware", "hardware", "Run hardware checks"),
    ("--stack", "stack", "Run software stack checks"),
    ("--performance", "performance", "Run performance benchmarks"),
    ("--io", "io", "Run storage and network I/O checks"),
    ("--security", "security", "Run security posture checks"),
    ("--config-audit", "config", "Run configuration audit checks"),
)


def make_context(environ: Mapping[str, str]) -> EnvironmentContext:
    return RealEnvironment(environ)


def render(result: RunResult, config: RunConfig, color: bool) -> str:
    if config.output_format == "json":
        data = report_to_dict(result.report)
        if result.diff is not None:
            data["baseline_comparison"] = {
                kind.value: result.diff.ids_with(kind) for kind in DiffKind if kind is not DiffKind.UNCHANGED
            }
        return json.dumps(data, indent=2)
    if config.output_format == "junit":
        return render_junit(result.report)
    return render_text(
        result.report,
        color=color,
        verbose=config.verbose,
        quiet=config.quiet,
        diff=result.diff,
        exit_code=result.exit_code,
    )


def write_report(text: str, path: str) -> None:
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(text + "\n")
    except OSError as e:
        raise ConfigurationError(f"Cannot write report to '{path}': {e}") from e
    logger.info(f"[check] report written to {path}")


def run(args: Any, extra_args: List[str]) -> int:
    """Entry point for the 'check' subcommand; returns the exit code."""
    if extra_args:
        raise ConfigurationError(f"Unrecognized arguments: {' '.join(extra_args)}")

    environ = dict(os.environ)
    config = RunConfig.from_sources(args, environ)
    setup_logger(LoggerConfig(stderr_sink_level=config.log_level.upper(), log_dir=config.log_dir))

    context = make_context(environ)
    result = run_validation(config, context, load_builtin_checks())

    color = config.color and not config.output and sys.stdout.isatty()
    text = render(result, config, color)
    if config.output:
        write_report(text, config.output)
    else:
        print(text)

    # Saved only after the report has been emitted
    if config.save_baseline:
        save_baseline(result.report, config.save_baseline)
    return result.exit_code


def register_subcommand(subparsers):
    """
    Register the 'check' subcommand to the main CLI parser.

    Flags default to None so that unset flags do not override values from the
    config file or environment.
    """
    parser = subparsers.add_parser(
        "check",
        help="Run validation checks against this host.",
        description="Run tpu-doc validation checks and report pass/warn/fail/skip per check.",
    )

    selection = parser.add_argument_group("selection")
    for flag, category, help_text in CATEGORY_FLAGS:
        selection.add_argument(flag, dest="categories", action="append_const", const=category, help=help_text)
    selection.add_argument("--only", action="append", metavar="ID", help="Run only this check (repeatable)")
    selection.add_argument("--skip", action="append", metavar="ID", help="Skip this check (repeatable)")

    execution = parser.add_argument_group("execution")
    execution.add_argument("--parallel", action="store_true", default=None, help="Run independent checks concurrently")
    execution.add_argument("--max-concurrency", type=int, metavar="N", help="Concurrency bound with --parallel")
    execution.add_argument("--fail-fast", action="store_true", default=None, help="Stop after the first failure")
    execution.add_argument("--timeout", type=int, metavar="MS", help="Global timeout in milliseconds")
    execution.add_argument("--check-timeout", type=int, metavar="MS", help="Per-check timeout in milliseconds")

    baseline = parser.add_argument_group("baseline")
    baseline.add_argument("--baseline", metavar="FILE", help="Compare against a saved JSON report")
    baseline.add_argument("--save-baseline", metavar="FILE", help="Save this run's report as a baseline")
    baseline.add_argument(
        "--fail-on-regression",
        action="store_true",
        default=None,
        help="Exit 1 when a check regressed against the baseline",
    )

    output = parser.add_argument_group("output")
    output.add_argument("--config", metavar="FILE", help="YAML run configuration")
    output.add_argument("--format", choices=OUTPUT_FORMATS, help="Report format (default: text)")
    output.add_argument("-q", "--quiet", action="store_true", default=None, help="Only show warnings and failures")
    output.add_argument("-v", "--verbose", action="store_true", default=None, help="Show details and durations")
    output.add_argument("--no-color", action="store_true", default=None, help="Disable colored output")
    output.add_argument("-o", "--output", metavar="FILE", help="Write the report to FILE instead of stdout")
    output.add_argument("--log-level", type=str.upper, choices=LOG_LEVELS, help="stderr log level (default: WARNING)")
    output.add_argument("--log-dir", metavar="DIR", help="Also write per-level log files to DIR")

    parser.set_defaults(func=run)

    return parser
