###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Configuration audit of the XLA / JAX environment variables.

Five sections, each tagged with the id of the matching CFG check:

    CFG-001  XLA_FLAGS
    CFG-002  JAX_* settings
    CFG-003  client memory settings
    CFG-004  multi-host coordination
    CFG-005  logging and debug switches

A section is Optimal without findings, SubOptimal with only INFO findings,
and Warning / Error otherwise. The overall status is the worst section.
"""

import enum
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from tpudoc.core.utils import logger
from tpudoc.platform.context import EnvironmentContext
from tpudoc.tools.findings import RULE, Finding, Severity, banner, bullet_list, has_severity, heading

DEBUG_FLAGS = ("--xla_dump_to", "--xla_dump_hlo", "--xla_log_all", "--xla_dump_hlo_as_text")
HIGH_MEM_FRACTION = 0.95
LOW_MEM_FRACTION = 0.5
FLAGS_PREVIEW = 60


class AuditStatus(enum.Enum):
    OPTIMAL = "Optimal"
    SUBOPTIMAL = "SubOptimal"
    WARNING = "Warning"
    ERROR = "Error"

    @property
    def rank(self) -> int:
        return list(AuditStatus).index(self)


@dataclass(frozen=True)
class SectionAudit:
    check_id: str
    title: str
    status: AuditStatus
    settings: Tuple[Tuple[str, Optional[str]], ...]
    findings: Tuple[Finding, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "check_id": self.check_id,
            "status": self.status.value,
            "settings": dict(self.settings),
            "issues": [f.to_dict() for f in self.findings],
        }


@dataclass(frozen=True)
class ConfigAudit:
    sections: Tuple[SectionAudit, ...]
    multi_host: bool = False

    @property
    def overall_status(self) -> AuditStatus:
        return max((s.status for s in self.sections), key=lambda s: s.rank, default=AuditStatus.OPTIMAL)

    @property
    def recommendations(self) -> List[str]:
        seen: List[str] = []
        for section in self.sections:
            for finding in section.findings:
                if finding.recommendation and finding.recommendation not in seen:
                    seen.append(finding.recommendation)
        return seen

    def section(self, check_id: str) -> SectionAudit:
        return next(s for s in self.sections if s.check_id == check_id)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "overall_status": self.overall_status.value,
            "multi_host": self.multi_host,
            "sections": {s.title: s.to_dict() for s in self.sections},
            "recommendations": self.recommendations,
        }


def _status_of(findings: List[Finding]) -> AuditStatus:
    if has_severity(findings, Severity.ERROR):
        return AuditStatus.ERROR
    if has_severity(findings, Severity.WARNING):
        return AuditStatus.WARNING
    if findings:
        return AuditStatus.SUBOPTIMAL
    return AuditStatus.OPTIMAL


def audit_xla(env: EnvironmentContext) -> List[Finding]:
    flags = env.getenv("XLA_FLAGS")
    if not flags:
        return [Finding(Severity.INFO, "XLA_FLAGS not set (using defaults)")]
    findings = []
    for flag in DEBUG_FLAGS:
        if any(f == flag or f.startswith(flag + "=") for f in flags.split()):
            findings.append(
                Finding(
                    Severity.WARNING,
                    f"Debug flag {flag} is set (performance impact)",
                    f"Remove {flag} for production workloads",
                )
            )
    if "--xla_disable_hlo_passes" in flags:
        findings.append(
            Finding(Severity.WARNING, "HLO passes are disabled", "Enable HLO passes for optimal performance")
        )
    if "--xla_experimental" in flags:
        findings.append(
            Finding(Severity.INFO, "Experimental XLA flags are set", "Review experimental flags for stability")
        )
    return findings


def audit_jax(env: EnvironmentContext) -> List[Finding]:
    platforms = env.getenv("JAX_PLATFORMS")
    if platforms and "tpu" not in platforms.lower():
        return [
            Finding(
                Severity.WARNING,
                "JAX_PLATFORMS does not include 'tpu'",
                "Set JAX_PLATFORMS=tpu,cpu for TPU workloads",
            )
        ]
    return []


def audit_memory(env: EnvironmentContext) -> List[Finding]:
    findings = []
    if (env.getenv("XLA_PYTHON_CLIENT_PREALLOCATE") or "").lower() == "false":
        findings.append(
            Finding(
                Severity.INFO,
                "Memory preallocation is disabled",
                "Preallocation can improve performance for fixed-size models",
            )
        )
    raw = env.getenv("XLA_PYTHON_CLIENT_MEM_FRACTION")
    if raw:
        try:
            fraction = float(raw)
        except ValueError:
            findings.append(
                Finding(
                    Severity.WARNING,
                    f"XLA_PYTHON_CLIENT_MEM_FRACTION is not a number: {raw}",
                    "Set XLA_PYTHON_CLIENT_MEM_FRACTION to a value between 0 and 1",
                )
            )
        else:
            if fraction > HIGH_MEM_FRACTION:
                findings.append(
                    Finding(
                        Severity.WARNING,
                        f"High memory fraction: {fraction} (risk of OOM)",
                        "Consider lowering XLA_PYTHON_CLIENT_MEM_FRACTION to 0.9",
                    )
                )
            elif fraction < LOW_MEM_FRACTION:
                findings.append(
                    Finding(
                        Severity.INFO,
                        f"Low memory fraction: {fraction} (underutilization)",
                        "Consider increasing for larger models",
                    )
                )
    return findings


def is_multi_host(env: EnvironmentContext) -> bool:
    return bool(env.getenv("JAX_COORDINATOR_ADDRESS")) or "," in (env.getenv("TPU_WORKER_HOSTNAMES") or "")


def audit_distributed(env: EnvironmentContext) -> List[Finding]:
    if not is_multi_host(env):
        return []
    findings = []
    if not env.getenv("JAX_COORDINATOR_ADDRESS"):
        findings.append(
            Finding(
                Severity.ERROR,
                "Multi-host detected but JAX_COORDINATOR_ADDRESS not set",
                "Set JAX_COORDINATOR_ADDRESS for distributed training",
            )
        )
    if not env.getenv("CLOUD_TPU_TASK_ID"):
        findings.append(
            Finding(
                Severity.WARNING,
                "CLOUD_TPU_TASK_ID not set for multi-host",
                "Ensure CLOUD_TPU_TASK_ID is set correctly",
            )
        )
    return findings


def audit_logging(env: EnvironmentContext) -> List[Finding]:
    findings = []
    level = env.getenv("TF_CPP_MIN_LOG_LEVEL")
    if level == "0":
        findings.append(
            Finding(
                Severity.WARNING,
                "TF_CPP_MIN_LOG_LEVEL=0 (verbose logging)",
                "Set TF_CPP_MIN_LOG_LEVEL=2 for production",
            )
        )
    elif level == "3":
        findings.append(
            Finding(Severity.INFO, "TF logging is suppressed (level 3)", "Lower level for debugging if issues occur")
        )
    if env.getenv("JAX_DEBUG_NANS") in ("True", "true", "1"):
        findings.append(
            Finding(
                Severity.WARNING,
                "JAX_DEBUG_NANS is enabled (performance impact)",
                "Disable JAX_DEBUG_NANS for production",
            )
        )
    if env.getenv("JAX_TRACEBACK_FILTERING") == "off":
        findings.append(Finding(Severity.INFO, "JAX traceback filtering is disabled"))
    return findings


# (check id, section title, audited variables, audit function)
SECTIONS: Tuple[Tuple[str, str, Tuple[str, ...], Callable[[EnvironmentContext], List[Finding]]], ...] = (
    ("CFG-001", "xla", ("XLA_FLAGS",), audit_xla),
    ("CFG-002", "jax", ("JAX_PLATFORMS", "JAX_ENABLE_X64", "JAX_DEFAULT_MATMUL_PRECISION"), audit_jax),
    ("CFG-003", "memory", ("XLA_PYTHON_CLIENT_PREALLOCATE", "XLA_PYTHON_CLIENT_MEM_FRACTION"), audit_memory),
    (
        "CFG-004",
        "distributed",
        ("JAX_COORDINATOR_ADDRESS", "TPU_WORKER_HOSTNAMES", "CLOUD_TPU_TASK_ID"),
        audit_distributed,
    ),
    ("CFG-005", "logging", ("TF_CPP_MIN_LOG_LEVEL", "JAX_DEBUG_NANS", "JAX_TRACEBACK_FILTERING"), audit_logging),
)


def audit_config(env: EnvironmentContext) -> ConfigAudit:
    sections = []
    for check_id, title, variables, audit in SECTIONS:
        findings = [
            Finding(f.severity, f.description, f.recommendation, check_id=check_id) for f in audit(env)
        ]
        sections.append(
            SectionAudit(
                check_id=check_id,
                title=title,
                status=_status_of(findings),
                settings=tuple((name, env.getenv(name)) for name in variables),
                findings=tuple(findings),
            )
        )
    result = ConfigAudit(tuple(sections), multi_host=is_multi_host(env))
    logger.debug(f"[Audit] overall={result.overall_status.value}")
    return result


_SECTION_HEADINGS = {
    "CFG-001": "XLA FLAGS AUDIT",
    "CFG-002": "JAX CONFIGURATION AUDIT",
    "CFG-003": "MEMORY CONFIGURATION",
    "CFG-004": "DISTRIBUTED CONFIGURATION",
    "CFG-005": "LOGGING CONFIGURATION",
}


def _shown(name: str, value: Optional[str], verbose: bool) -> str:
    if value is None:
        return "(not set)"
    if name == "XLA_FLAGS" and not verbose and len(value) > FLAGS_PREVIEW:
        return value[:FLAGS_PREVIEW] + "..."
    return value


def format_audit_text(audit: ConfigAudit, verbose: bool = False) -> str:
    lines = banner("CONFIGURATION AUDIT")
    lines += [f"Overall Status: {audit.overall_status.value.upper()}", ""]

    for section in audit.sections:
        lines += heading(f"{section.check_id}: {_SECTION_HEADINGS[section.check_id]}")
        lines.append(f"  Status: {section.status.value}")
        if section.check_id == "CFG-004":
            lines.append(f"  Multi-host: {'Yes' if audit.multi_host else 'No'}")
        for name, value in section.settings:
            lines.append(f"  {name}: {_shown(name, value, verbose)}")
        for finding in section.findings:
            lines.append(f"  {finding.severity.tag}  {finding.description}")
        lines.append("")

    lines += bullet_list("RECOMMENDATIONS", audit.recommendations)
    lines.append(RULE)
    return "\n".join(lines)
