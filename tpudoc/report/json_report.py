###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
JSON rendering of a ValidationReport.

The same document shape is used for `--format json` output and for baseline
files, so a saved report can be fed back with `--baseline`.
"""

import json
from typing import Any, Dict

from tpudoc.core.engine.aggregator import summarize
from tpudoc.core.engine.models import (
    Check,
    CheckCategory,
    CheckOutcome,
    CheckStatus,
    ExecutionRecord,
    ReportSummary,
    ValidationReport,
)
from tpudoc.core.errors import ConfigurationError, TpuDocError


def outcome_to_dict(outcome: CheckOutcome) -> Dict[str, Any]:
    result = {
        "status": outcome.status.value,
        "message": outcome.message,
        "duration_ms": outcome.duration_ms,
    }
    if outcome.status in (CheckStatus.WARN, CheckStatus.FAIL):
        result["details"] = outcome.details
    return result


def summary_to_dict(summary: ReportSummary) -> Dict[str, int]:
    return {
        "passed": summary.passed,
        "warned": summary.warned,
        "failed": summary.failed,
        "skipped": summary.skipped,
        "total": summary.total,
        "total_duration_ms": summary.total_duration_ms,
    }


def report_to_dict(report: ValidationReport) -> Dict[str, Any]:
    return {
        "timestamp": report.timestamp,
        "hostname": report.hostname,
        "tpu_type": report.tpu_type or "",
        "checks": [
            {
                "id": r.check.id,
                "name": r.check.name,
                "category": r.check.category.value,
                "result": outcome_to_dict(r.outcome),
            }
            for r in report.records
        ],
        "summary": summary_to_dict(report.summary),
    }


def render_json(report: ValidationReport, indent: int = 2) -> str:
    return json.dumps(report_to_dict(report), indent=indent)


def _outcome_from_dict(result: Dict[str, Any]) -> CheckOutcome:
    status = CheckStatus(str(result["status"]).lower())
    return CheckOutcome(
        status=status,
        message=str(result.get("message", "")),
        details=str(result.get("details", "")),
        duration_ms=int(result.get("duration_ms", 0) or 0),
    )


def report_from_dict(data: Dict[str, Any]) -> ValidationReport:
    """Rehydrate a report; checks come back without handlers."""
    try:
        records = tuple(
            ExecutionRecord(
                check=Check(
                    id=str(entry["id"]),
                    name=str(entry.get("name", entry["id"])),
                    category=CheckCategory.parse(str(entry["category"])),
                ),
                outcome=_outcome_from_dict(entry["result"]),
            )
            for entry in data["checks"]
        )
        raw_summary = data.get("summary")
        if raw_summary:
            summary = ReportSummary(**{k: int(raw_summary.get(k, 0)) for k in summary_to_dict(ReportSummary())})
        else:
            summary = summarize(records)
        return ValidationReport(
            timestamp=int(data.get("timestamp", 0)),
            hostname=str(data.get("hostname", "")),
            tpu_type=data.get("tpu_type") or None,
            records=records,
            summary=summary,
        )
    except TpuDocError as e:
        raise ConfigurationError(f"Malformed report: {e}") from e
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise ConfigurationError(f"Malformed report: {type(e).__name__}: {e}") from e
