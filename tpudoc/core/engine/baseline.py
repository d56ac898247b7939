###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Baseline comparison.

Diffs a current report against a previously saved one, check by check.
Severity is Pass < Warn < Fail; Skip is neutral and never counts as a
regression on its own.
"""

import json
import os

from tpudoc.core.engine.models import BaselineDiff, CheckOutcome, CheckStatus, DiffKind, ValidationReport
from tpudoc.core.errors import ConfigurationError
from tpudoc.core.utils import logger
from tpudoc.report.json_report import render_json, report_from_dict


def classify(current: CheckOutcome, baseline: CheckOutcome) -> DiffKind:
    """Classify one check present in both reports."""
    cur, base = current.status, baseline.status

    if cur is base:
        return DiffKind.UNCHANGED
    if cur is CheckStatus.FAIL:
        return DiffKind.NEW_FAILURE
    if cur is CheckStatus.WARN and base is not CheckStatus.FAIL:
        return DiffKind.NEW_WARNING
    if cur is CheckStatus.PASS and base in (CheckStatus.WARN, CheckStatus.FAIL):
        return DiffKind.RESOLVED
    if cur.severity is not None and base.severity is not None and cur.severity > base.severity:
        return DiffKind.REGRESSED
    return DiffKind.UNCHANGED


def compare(current: ValidationReport, baseline: ValidationReport) -> BaselineDiff:
    cur = current.outcomes_by_id()
    base = baseline.outcomes_by_id()

    entries = {}
    for check_id, outcome in cur.items():
        if check_id in base:
            entries[check_id] = classify(outcome, base[check_id])
        else:
            entries[check_id] = DiffKind.NEW_CHECK
    for check_id in base:
        if check_id not in cur:
            entries[check_id] = DiffKind.REMOVED_CHECK

    diff = BaselineDiff(entries=entries)
    logger.debug(
        f"[Baseline] new_failures={diff.ids_with(DiffKind.NEW_FAILURE)} "
        f"regressed={diff.ids_with(DiffKind.REGRESSED)} resolved={diff.ids_with(DiffKind.RESOLVED)}"
    )
    return diff


def load_baseline(path: str) -> ValidationReport:
    """Read a report previously written with save_baseline (or `--format json`)."""
    if not os.path.isfile(path):
        raise ConfigurationError(f"Baseline file '{path}' does not exist.")
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError) as e:
        raise ConfigurationError(f"Cannot read baseline file '{path}': {e}") from e
    return report_from_dict(data)


def save_baseline(report: ValidationReport, path: str) -> None:
    """Write `report` as JSON; raises ConfigurationError when `path` cannot be written."""
    try:
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            f.write(render_json(report))
            f.write("\n")
    except OSError as e:
        raise ConfigurationError(f"Cannot write baseline file '{path}': {e}") from e
    logger.info(f"[Baseline] saved {report.summary.total} results to {path}")
