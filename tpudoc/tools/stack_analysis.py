###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Software stack analysis.

Detects the Python / JAX / jaxlib / libtpu / NumPy versions on the host,
checks them against the compatibility matrix and the known-conflict list,
and suggests the recommended versions for the detected TPU generation.
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from tpudoc.core.errors import PlatformError
from tpudoc.core.utils import logger
from tpudoc.data.compatibility import CompatibilityMatrix, CompatibilityStatus, load_matrix, major_minor
from tpudoc.platform.context import EnvironmentContext
from tpudoc.tools.findings import RULE, Finding, Severity, banner, bullet_list, has_severity, heading

MIN_PYTHON = (3, 9)
UNTESTED_PYTHON = (3, 13)

# (label, distribution, environment override)
DETECTED_PACKAGES = (
    ("JAX", "jax", "JAX_VERSION"),
    ("jaxlib", "jaxlib", None),
    ("libtpu", "libtpu", "LIBTPU_VERSION"),
    ("NumPy", "numpy", None),
)
# Looked up only for the known-conflict rules
CONFLICT_PACKAGES = ("tensorflow", "torch")

_STATUS_TEXT = {
    CompatibilityStatus.COMPATIBLE: "COMPATIBLE",
    CompatibilityStatus.COMPATIBLE_WITH_WARNINGS: "COMPATIBLE (with warnings)",
    CompatibilityStatus.INCOMPATIBLE: "INCOMPATIBLE",
    CompatibilityStatus.UNKNOWN: "UNKNOWN",
}


@dataclass(frozen=True)
class DetectedVersion:
    package: str
    version: Optional[str]
    method: str


@dataclass(frozen=True)
class StackAnalysis:
    versions: Tuple[DetectedVersion, ...]
    status: CompatibilityStatus
    findings: Tuple[Finding, ...]
    recommendations: Tuple[str, ...]

    def version_of(self, package: str) -> Optional[str]:
        for detected in self.versions:
            if detected.package == package:
                return detected.version
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "versions": [
                {"package": v.package, "version": v.version, "detection_method": v.method} for v in self.versions
            ],
            "issues": [f.to_dict() for f in self.findings],
            "recommendations": list(self.recommendations),
        }


def detect_version(env: EnvironmentContext, label: str, package: str, env_var: Optional[str] = None) -> DetectedVersion:
    if env_var and env.getenv(env_var):
        return DetectedVersion(label, env.getenv(env_var), f"{env_var} env var")
    try:
        return DetectedVersion(label, env.package_version(package), "package metadata")
    except PlatformError:
        return DetectedVersion(label, None, "not found")


def _python_findings(version: str) -> List[Finding]:
    parsed = major_minor(version)
    if parsed is None:
        return []
    if parsed < MIN_PYTHON:
        return [
            Finding(
                Severity.ERROR,
                f"Python {version} is below minimum required version 3.9",
                "Upgrade to Python 3.9 or later",
            )
        ]
    if parsed >= UNTESTED_PYTHON:
        return [
            Finding(
                Severity.WARNING,
                f"Python {version} may not be fully tested with JAX",
                "Consider using Python 3.10-3.12 for best compatibility",
            )
        ]
    return []


def _matrix_findings(matrix: CompatibilityMatrix, jax: str, python: str) -> List[Finding]:
    status = matrix.is_compatible(jax, python)
    if status is CompatibilityStatus.UNKNOWN:
        return [Finding(Severity.INFO, f"JAX {jax} is not in the compatibility matrix (v{matrix.version})")]
    if status is CompatibilityStatus.INCOMPATIBLE:
        entry = matrix.release(jax)
        return [
            Finding(
                Severity.WARNING,
                f"Python {python} is outside the tested range {entry.python_min}-{entry.python_max} for JAX {jax}",
                f"Use Python {entry.python_min}-{entry.python_max} with JAX {jax}",
            )
        ]
    return []


def _installed(env: EnvironmentContext, package: str) -> Optional[str]:
    try:
        return env.package_version(package)
    except PlatformError:
        return None


def analyze_stack(env: EnvironmentContext, matrix: Optional[CompatibilityMatrix] = None) -> StackAnalysis:
    matrix = matrix or load_matrix()

    python = DetectedVersion("Python", env.python_version(), "interpreter")
    detected = {label: detect_version(env, label, pkg, var) for label, pkg, var in DETECTED_PACKAGES}
    jax, jaxlib = detected["JAX"].version, detected["jaxlib"].version

    findings: List[Finding] = _python_findings(python.version)

    if jax and jaxlib and major_minor(jax) != major_minor(jaxlib):
        findings.append(
            Finding(
                Severity.ERROR,
                f"JAX {jax} and jaxlib {jaxlib} version mismatch",
                "Ensure JAX and jaxlib versions match",
            )
        )
    if jax:
        findings.extend(_matrix_findings(matrix, jax, python.version))

    if not env.getenv("TPU_LIBRARY_PATH"):
        findings.append(
            Finding(Severity.WARNING, "PJRT TPU plugin not detected", "Ensure TPU_LIBRARY_PATH is set correctly")
        )

    installed = {pkg: detected[label].version for label, pkg, _ in DETECTED_PACKAGES}
    installed.update({pkg: _installed(env, pkg) for pkg in CONFLICT_PACKAGES})
    for conflict in matrix.conflicts_for(installed):
        findings.append(Finding(Severity(conflict.severity), conflict.description, conflict.fix))

    recommendations: List[str] = []
    recommended = matrix.recommended_for(env.accelerator_type())
    if jax and recommended and jax != recommended.jax_version:
        recommendations.append(f"Recommended JAX version for your TPU: {recommended.jax_version}")
    if has_severity(findings, Severity.ERROR):
        recommendations.append("Fix critical issues before running workloads")

    if has_severity(findings, Severity.ERROR):
        status = CompatibilityStatus.INCOMPATIBLE
    elif has_severity(findings, Severity.WARNING):
        status = CompatibilityStatus.COMPATIBLE_WITH_WARNINGS
    elif jax:
        status = CompatibilityStatus.COMPATIBLE
    else:
        status = CompatibilityStatus.UNKNOWN

    logger.debug(f"[Stack] status={status.value} issues={len(findings)}")
    return StackAnalysis(
        versions=(python,) + tuple(detected[label] for label, _, _ in DETECTED_PACKAGES),
        status=status,
        findings=tuple(findings),
        recommendations=tuple(recommendations),
    )


def format_stack_text(analysis: StackAnalysis, verbose: bool = False) -> str:
    lines = banner("SOFTWARE STACK ANALYSIS")
    lines += [f"Stack Status: {_STATUS_TEXT[analysis.status]}", ""]

    lines += heading("DETECTED VERSIONS")
    for v in analysis.versions:
        row = f"  {v.package:<12} {v.version or 'Not found':<20}"
        if verbose:
            row += f" ({v.method})"
        lines.append(row.rstrip())
    lines.append("")

    if analysis.findings:
        lines += heading("ISSUES FOUND")
        for finding in analysis.findings:
            lines.append(f"  {finding.severity.tag}  {finding.description}")
            if finding.recommendation:
                lines.append(f"           Resolution: {finding.recommendation}")
        lines.append("")

    lines += bullet_list("RECOMMENDATIONS", analysis.recommendations)
    lines.append(RULE)
    return "\n".join(lines)


def format_matrix_text(matrix: CompatibilityMatrix) -> str:
    lines = banner("VERSION COMPATIBILITY MATRIX")
    lines += heading("JAX VERSIONS")
    for entry in matrix.jax_versions:
        lines += ["", f"JAX {entry.version}"]
        lines.append(f"  Python:    {entry.python_min}-{entry.python_max}")
        lines.append(f"  jaxlib:    {entry.jaxlib_version}")
        if entry.libtpu_versions:
            lines.append(f"  libtpu:    {', '.join(entry.libtpu_versions)}")
        if entry.notes:
            lines.append(f"  Notes:     {entry.notes}")

    if matrix.known_conflicts:
        lines += ["", ""] + heading("KNOWN CONFLICTS")
        for conflict in matrix.known_conflicts:
            lines.append("")
            lines.append(f"  Packages: {' + '.join(conflict.packages)}")
            lines.append(f"  Issue:    {conflict.description}")
            lines.append(f"  Fix:      {conflict.fix}")

    lines += ["", RULE]
    return "\n".join(lines)
