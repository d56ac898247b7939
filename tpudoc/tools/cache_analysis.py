###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
XLA compilation cache analysis.

The cache directory is taken from JAX_COMPILATION_CACHE_DIR, then from a
``--xla_dump_to=`` entry in XLA_FLAGS, then from JAX's default location
under ``$HOME/.cache/jax`` when that exists.
"""

import enum
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from tpudoc.core.errors import PlatformError
from tpudoc.core.utils import logger
from tpudoc.platform.context import DirectoryUsage, EnvironmentContext
from tpudoc.tools.findings import RULE, Finding, Severity, banner, bullet_list, has_severity, heading

MB = 1024 * 1024
LARGE_CACHE_MB = 10240
LOW_DISK_MB = 1024
DUMP_FLAG = "--xla_dump_to="


class CacheHealth(enum.Enum):
    HEALTHY = "Healthy"
    WARNING = "Warning"
    ERROR = "Error"
    NOT_CONFIGURED = "NotConfigured"


_HEALTH_TEXT = {
    CacheHealth.HEALTHY: "HEALTHY",
    CacheHealth.WARNING: "WARNING",
    CacheHealth.ERROR: "ERROR",
    CacheHealth.NOT_CONFIGURED: "NOT CONFIGURED",
}


@dataclass(frozen=True)
class CacheAnalysis:
    path: Optional[str]
    source: Optional[str]
    exists: bool
    writable: bool
    usage: Optional[DirectoryUsage]
    free_mb: Optional[int]
    health: CacheHealth
    findings: Tuple[Finding, ...]
    recommendations: Tuple[str, ...]

    @property
    def size_mb(self) -> float:
        return self.usage.total_bytes / MB if self.usage else 0.0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "health": self.health.value,
            "cache_path": self.path,
            "source": self.source,
            "exists": self.exists,
            "writable": self.writable,
            "file_count": self.usage.file_count if self.usage else 0,
            "size_mb": round(self.size_mb, 2),
            "oldest_entry": self.usage.oldest if self.usage else None,
            "newest_entry": self.usage.newest if self.usage else None,
            "disk_free_mb": self.free_mb,
            "issues": [f.to_dict() for f in self.findings],
            "recommendations": list(self.recommendations),
        }


def dump_dir_from_flags(xla_flags: Optional[str]) -> Optional[str]:
    for flag in (xla_flags or "").split():
        if flag.startswith(DUMP_FLAG) and flag[len(DUMP_FLAG) :]:
            return flag[len(DUMP_FLAG) :]
    return None


def find_cache_dir(env: EnvironmentContext) -> Tuple[Optional[str], Optional[str]]:
    """(path, where it came from), or (None, None) when no cache is configured."""
    if env.getenv("JAX_COMPILATION_CACHE_DIR"):
        return env.getenv("JAX_COMPILATION_CACHE_DIR"), "JAX_COMPILATION_CACHE_DIR"
    dump_dir = dump_dir_from_flags(env.getenv("XLA_FLAGS"))
    if dump_dir:
        return dump_dir, "XLA_FLAGS"
    home = env.getenv("HOME")
    if home:
        default = os.path.join(home, ".cache", "jax")
        if env.path_exists(default):
            return default, "default location"
    return None, None


def analyze_cache(env: EnvironmentContext) -> CacheAnalysis:
    path, source = find_cache_dir(env)
    findings: List[Finding] = []
    recommendations: List[str] = []

    if path is None:
        return CacheAnalysis(
            path=None,
            source=None,
            exists=False,
            writable=False,
            usage=None,
            free_mb=None,
            health=CacheHealth.NOT_CONFIGURED,
            findings=(Finding(Severity.INFO, "XLA cache is not configured"),),
            recommendations=(
                "Set XLA_FLAGS='--xla_dump_to=/path/to/cache' to enable caching",
                "Or use JAX's built-in cache: export JAX_COMPILATION_CACHE_DIR=/path/to/cache",
            ),
        )

    exists = env.path_exists(path)
    writable = exists and env.is_writable(path)
    usage: Optional[DirectoryUsage] = None
    free_mb: Optional[int] = None

    if not exists:
        findings.append(
            Finding(
                Severity.WARNING,
                f"Cache directory does not exist: {path}",
                f"Create the cache directory: mkdir -p {path}",
            )
        )
    else:
        if not writable:
            findings.append(
                Finding(Severity.ERROR, "Cache directory is not writable", f"Fix permissions on {path}")
            )
        try:
            usage = env.directory_usage(path)
        except PlatformError as e:
            logger.warning(f"[Cache] cannot scan {path}: {e}")
        try:
            free_mb = env.disk_free_bytes(path) // MB
        except PlatformError as e:
            logger.warning(f"[Cache] cannot stat {path}: {e}")

    if usage is not None:
        size_mb = usage.total_bytes / MB
        if size_mb > LARGE_CACHE_MB:
            findings.append(
                Finding(
                    Severity.WARNING,
                    f"Cache size is very large: {size_mb / 1024:.1f} GB",
                    "Consider clearing old cache entries to free disk space",
                )
            )
        if usage.file_count == 0:
            findings.append(Finding(Severity.INFO, "Cache directory is empty (no compiled modules yet)"))

    if free_mb is not None and free_mb < LOW_DISK_MB:
        findings.append(
            Finding(
                Severity.WARNING,
                f"Low disk space: {free_mb} MB available",
                "Free up disk space to avoid compilation failures",
            )
        )

    for finding in findings:
        if finding.recommendation and finding.recommendation not in recommendations:
            recommendations.append(finding.recommendation)

    if has_severity(findings, Severity.ERROR):
        health = CacheHealth.ERROR
    elif has_severity(findings, Severity.WARNING):
        health = CacheHealth.WARNING
    else:
        health = CacheHealth.HEALTHY

    logger.debug(f"[Cache] path={path} health={health.value}")
    return CacheAnalysis(
        path=path,
        source=source,
        exists=exists,
        writable=writable,
        usage=usage,
        free_mb=free_mb,
        health=health,
        findings=tuple(findings),
        recommendations=tuple(recommendations),
    )


def format_cache_text(analysis: CacheAnalysis, verbose: bool = False) -> str:
    lines = banner("XLA CACHE ANALYSIS")
    lines += [f"Cache Status: {_HEALTH_TEXT[analysis.health]}", ""]

    lines += heading("CONFIGURATION")
    lines.append(f"  Cache Path:    {analysis.path or '(not configured)'}")
    if analysis.source:
        lines.append(f"  Source:        {analysis.source}")
    if analysis.path:
        lines.append(f"  Exists:        {'Yes' if analysis.exists else 'No'}")
        lines.append(f"  Writable:      {'Yes' if analysis.writable else 'No'}")
    lines.append("")

    if analysis.usage is not None:
        lines += heading("CACHE CONTENTS")
        lines.append(f"  Files:         {analysis.usage.file_count}")
        lines.append(f"  Total Size:    {analysis.size_mb:.1f} MB")
        if analysis.free_mb is not None:
            lines.append(f"  Disk Free:     {analysis.free_mb} MB")
        if verbose:
            lines.append(f"  Oldest Entry:  {analysis.usage.oldest or '-'}")
            lines.append(f"  Newest Entry:  {analysis.usage.newest or '-'}")
        lines.append("")

    if analysis.findings:
        lines += heading("ISSUES")
        lines += [f"  {f.severity.tag}  {f.description}" for f in analysis.findings]
        lines.append("")

    lines += bullet_list("RECOMMENDATIONS", analysis.recommendations)
    lines.append(RULE)
    return "\n".join(lines)
