###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

import time
from typing import Iterable, Optional

from tpudoc.core.engine.models import (
    CheckStatus,
    EnvironmentFingerprint,
    ExecutionRecord,
    ReportSummary,
    ValidationReport,
)


def summarize(records: Iterable[ExecutionRecord]) -> ReportSummary:
    """Count outcomes; total duration is the wall span from first start to last end."""
    records = list(records)
    counts = {status: 0 for status in CheckStatus}
    for record in records:
        counts[record.outcome.status] += 1

    starts = [r.started_at for r in records if r.started_at is not None]
    ends = [r.finished_at for r in records if r.finished_at is not None]
    span_ms = int(round((max(ends) - min(starts)) * 1000)) if starts and ends else 0

    return ReportSummary(
        passed=counts[CheckStatus.PASS],
        warned=counts[CheckStatus.WARN],
        failed=counts[CheckStatus.FAIL],
        skipped=counts[CheckStatus.SKIP],
        total=len(records),
        total_duration_ms=max(0, span_ms),
    )


def aggregate(
    records: Iterable[ExecutionRecord],
    fingerprint: EnvironmentFingerprint,
    timestamp: Optional[int] = None,
) -> ValidationReport:
    """Build an immutable report with records in canonical (category, id) order."""
    ordered = tuple(sorted(records, key=lambda r: r.check.sort_key()))
    return ValidationReport(
        timestamp=int(time.time()) if timestamp is None else int(timestamp),
        hostname=fingerprint.hostname,
        tpu_type=fingerprint.tpu_type,
        records=ordered,
        summary=summarize(ordered),
    )
