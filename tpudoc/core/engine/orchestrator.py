###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Validation run pipeline.

    select → resolve → execute → aggregate → (baseline compare)

Saving a new baseline is left to the caller so it can emit the report first.

Selection and resolution errors are raised before any check starts; once
execution begins every problem is reported as a check outcome.
"""

from dataclasses import dataclass
from typing import Optional, Sequence

from tpudoc.core.config.run_config import RunConfig
from tpudoc.core.engine.aggregator import aggregate
from tpudoc.core.engine.baseline import compare, load_baseline
from tpudoc.core.engine.executor import execute
from tpudoc.core.engine.models import BaselineDiff, Check, ValidationReport
from tpudoc.core.engine.registry import CheckRegistry, select
from tpudoc.core.engine.resolver import resolve
from tpudoc.core.utils import logger
from tpudoc.platform.context import EnvironmentContext


@dataclass(frozen=True)
class RunResult:
    report: ValidationReport
    diff: Optional[BaselineDiff] = None
    exit_code: int = 0


def run_validation(
    config: RunConfig,
    context: EnvironmentContext,
    catalog: Optional[Sequence[Check]] = None,
) -> RunResult:
    """
    Run the checks selected by `config` against `context`.

    `catalog` defaults to everything registered with CheckRegistry.
    Raises ConfigurationError / OrchestrationError before execution.
    """
    catalog = tuple(CheckRegistry.catalog() if catalog is None else catalog)

    selected = select(catalog, config.selected_categories(), config.only, config.skip)
    waves = resolve(selected, catalog)

    # Read the baseline up front so a bad path fails before checks run
    baseline = load_baseline(config.baseline) if config.baseline else None

    logger.info(f"[Orchestrator] running {len(selected)} check(s) in {len(waves)} wave(s)")
    records = execute(
        waves,
        context,
        parallel=config.parallel,
        max_concurrency=config.max_concurrency,
        check_timeout_ms=config.check_timeout_ms,
        global_timeout_ms=config.timeout_ms,
        fail_fast=config.fail_fast,
    )
    report = aggregate(records, context.fingerprint())

    exit_code = report.summary.exit_code()
    diff = None
    if baseline is not None:
        diff = compare(report, baseline)
        if config.fail_on_regression and diff.has_regressions:
            logger.warning("[Orchestrator] regression against baseline detected")
            exit_code = 1

    return RunResult(report=report, diff=diff, exit_code=exit_code)
