###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""JUnit XML rendering: one <testsuite> per category, one <testcase> per check."""

import xml.etree.ElementTree as ET

from tpudoc.core.engine.models import CheckCategory, CheckStatus, ValidationReport


def _seconds(ms: int) -> str:
    return f"{ms / 1000.0:.3f}"


def build_junit_tree(report: ValidationReport) -> ET.Element:
    summary = report.summary
    root = ET.Element(
        "testsuites",
        tests=str(summary.total),
        failures=str(summary.failed),
        errors="0",
        skipped=str(summary.skipped),
        time=_seconds(summary.total_duration_ms),
    )

    for category in CheckCategory:
        records = [r for r in report.records if r.check.category is category]
        if not records:
            continue
        suite = ET.SubElement(
            root,
            "testsuite",
            name=category.value,
            tests=str(len(records)),
            failures=str(sum(1 for r in records if r.outcome.status is CheckStatus.FAIL)),
            errors="0",
            skipped=str(sum(1 for r in records if r.outcome.status is CheckStatus.SKIP)),
            time=_seconds(sum(r.outcome.duration_ms for r in records)),
        )

        for record in records:
            outcome = record.outcome
            case = ET.SubElement(
                suite,
                "testcase",
                name=record.check.id,
                classname=f"tpu-doc.{category.value}",
                time=_seconds(outcome.duration_ms),
            )
            if outcome.status is CheckStatus.PASS:
                ET.SubElement(case, "system-out").text = outcome.message
            elif outcome.status is CheckStatus.WARN:
                ET.SubElement(case, "system-out").text = f"WARNING: {outcome.message} - {outcome.details}"
            elif outcome.status is CheckStatus.FAIL:
                ET.SubElement(case, "failure", message=outcome.message).text = outcome.details
            else:
                ET.SubElement(case, "skipped", message=outcome.reason)

    return root


def render_junit(report: ValidationReport) -> str:
    root = build_junit_tree(report)
    ET.indent(root, space="  ")
    body = ET.tostring(root, encoding="unicode")
    return f'<?xml version="1.0" encoding="UTF-8"?>\n{body}'
