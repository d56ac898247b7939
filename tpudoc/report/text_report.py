###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Terminal rendering of a ValidationReport.

Checks are grouped under one header per category in canonical order. Quiet
mode drops passing/skipped checks and categories without issues; verbose
mode appends details and durations.
"""

import datetime
from typing import List, Optional

from tpudoc.core.engine.models import BaselineDiff, CheckCategory, CheckStatus, DiffKind, ValidationReport

RULE = "-" * 80

_GREEN, _YELLOW, _RED, _GRAY = "32", "33", "31", "90"

_STATUS_STYLE = {
    CheckStatus.PASS: ("[PASS]", _GREEN),
    CheckStatus.WARN: ("[WARN]", _YELLOW),
    CheckStatus.FAIL: ("[FAIL]", _RED),
    CheckStatus.SKIP: ("[SKIP]", _GRAY),
}

_EXIT_DESCRIPTIONS = {
    0: "all checks passed",
    1: "failures detected",
    2: "warnings detected",
}

_DIFF_SECTIONS = (
    (DiffKind.NEW_FAILURE, "New failures", _RED),
    (DiffKind.REGRESSED, "Regressed", _RED),
    (DiffKind.NEW_WARNING, "New warnings", _YELLOW),
    (DiffKind.RESOLVED, "Resolved", _GREEN),
    (DiffKind.NEW_CHECK, "New checks", _GRAY),
    (DiffKind.REMOVED_CHECK, "Removed checks", _GRAY),
)


def format_timestamp(timestamp: int) -> str:
    """Unix seconds -> ISO 8601 UTC, e.g. 2025-01-01T00:00:00Z."""
    moment = datetime.datetime.fromtimestamp(timestamp, tz=datetime.timezone.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


class TextRenderer:
    def __init__(self, color: bool = True, verbose: bool = False, quiet: bool = False):
        self.color = color
        self.verbose = verbose
        self.quiet = quiet

    def _paint(self, text: str, code: str) -> str:
        if not self.color:
            return text
        return f"\x1b[{code}m{text}\x1b[0m"

    def _describe(self, status: CheckStatus, message: str, details: str, duration_ms: int) -> str:
        if not self.verbose or status is CheckStatus.SKIP:
            return message
        if status is CheckStatus.PASS or not details:
            return f"{message} ({duration_ms}ms)"
        return f"{message} - {details} ({duration_ms}ms)"

    def render(self, report: ValidationReport, exit_code: Optional[int] = None) -> str:
        lines: List[str] = [RULE, "tpu-doc validation report", f"Host: {report.hostname}"]
        if report.tpu_type:
            lines.append(f"TPU Type: {report.tpu_type}")
        lines += [f"Timestamp: {format_timestamp(report.timestamp)}", RULE, ""]

        for category in CheckCategory:
            records = [r for r in report.records if r.check.category is category]
            if not records:
                continue
            if self.quiet:
                records = [r for r in records if r.outcome.status in (CheckStatus.WARN, CheckStatus.FAIL)]
                if not records:
                    continue

            lines.append(category.title)
            for record in records:
                outcome = record.outcome
                label, code = _STATUS_STYLE[outcome.status]
                message = self._describe(outcome.status, outcome.message, outcome.details, outcome.duration_ms)
                lines.append(f"  {self._paint(label, code)} {record.check.id}: {record.check.name} ({message})")
            lines.append("")

        summary = report.summary
        if exit_code is None:
            exit_code = summary.exit_code()
        description = _EXIT_DESCRIPTIONS.get(exit_code, "error")
        if exit_code == 1 and summary.failed == 0:
            description = "regression against baseline"

        lines += [
            RULE,
            f"SUMMARY: {summary.passed} passed, {summary.warned} warnings, "
            f"{summary.failed} failed, {summary.skipped} skipped",
            f"Total time: {summary.total_duration_ms / 1000.0:.1f}s",
            f"Exit code: {exit_code} ({description})",
            RULE,
        ]
        return "\n".join(lines)

    def render_diff(self, diff: BaselineDiff) -> str:
        lines = ["BASELINE COMPARISON"]
        changed = False
        for kind, title, code in _DIFF_SECTIONS:
            ids = diff.ids_with(kind)
            if not ids:
                continue
            changed = True
            lines.append(f"  {self._paint(title + ':', code)} {', '.join(ids)}")
        if not changed:
            lines.append("  No changes since baseline")
        unchanged = len(diff.ids_with(DiffKind.UNCHANGED))
        lines.append(f"  Unchanged: {unchanged}")
        return "\n".join(lines)


def render_text(
    report: ValidationReport,
    *,
    color: bool = True,
    verbose: bool = False,
    quiet: bool = False,
    diff: Optional[BaselineDiff] = None,
    exit_code: Optional[int] = None,
) -> str:
    renderer = TextRenderer(color=color, verbose=verbose, quiet=quiet)
    text = renderer.render(report, exit_code=exit_code)
    if diff is not None:
        text = f"{text}\n\n{renderer.render_diff(diff)}"
    return text
