###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Point-in-time resource snapshot: TPU, host memory/CPU and the largest
processes. Continuous mode redraws the snapshot at a fixed interval.
"""

import time
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional, Tuple

from tpudoc.core.errors import PlatformError
from tpudoc.core.utils import logger
from tpudoc.data.specs import get_peak_tflops, get_spec, is_valid_chip_count
from tpudoc.platform.context import GIB, EnvironmentContext, MemoryUsage, ProcessMemory
from tpudoc.tools.findings import RULE, banner, heading

CLEAR_SCREEN = "\x1b[2J\x1b[1;1H"
MAX_ITERATIONS = 1000
TOP_PROCESS_LIMIT = 10
MB = 1024 * 1024


@dataclass(frozen=True)
class TpuResources:
    tpu_type: Optional[str]
    chip_count: Optional[int]
    chip_count_valid: Optional[bool]
    hbm_total_gb: Optional[float]
    peak_bf16_tflops: Optional[int]
    avg_temperature_c: Optional[float]
    # no per-chip utilization source on a TPU VM yet
    hbm_used_pct: Optional[float] = None
    duty_cycle_pct: Optional[float] = None


@dataclass(frozen=True)
class ResourceSnapshot:
    timestamp: str
    tpu: Optional[TpuResources]
    cpu_pct: Optional[float]
    memory: Optional[MemoryUsage]
    processes: Tuple[ProcessMemory, ...]

    def to_dict(self) -> Dict[str, Any]:
        memory = None
        if self.memory is not None:
            memory = {
                "used_gb": round(self.memory.used_bytes / GIB, 2),
                "total_gb": round(self.memory.total_bytes / GIB, 2),
                "swap_used_gb": round(self.memory.swap_used_bytes / GIB, 2),
                "swap_total_gb": round(self.memory.swap_total_bytes / GIB, 2),
            }
        return {
            "timestamp": self.timestamp,
            "tpu": asdict(self.tpu) if self.tpu else None,
            "system": {"cpu_pct": self.cpu_pct, "memory": memory},
            "top_processes": [
                {"pid": p.pid, "name": p.name, "rss_mb": p.rss_bytes // MB} for p in self.processes
            ],
        }


def _maybe(query: Callable[[], Any], what: str) -> Optional[Any]:
    try:
        return query()
    except PlatformError as e:
        logger.debug(f"[Snapshot] {what} unavailable: {e}")
        return None


def _tpu_resources(env: EnvironmentContext) -> Optional[TpuResources]:
    if not env.is_tpu_vm():
        return None
    tpu_type = _maybe(env.tpu_type, "tpu type")
    chips = _maybe(env.chip_count, "chip count")
    temps = _maybe(env.chip_temperatures, "temperatures")
    spec = get_spec(tpu_type)
    return TpuResources(
        tpu_type=tpu_type,
        chip_count=chips,
        chip_count_valid=is_valid_chip_count(tpu_type, chips) if spec and chips is not None else None,
        hbm_total_gb=float(spec.hbm_per_chip_gb * chips) if spec and chips is not None else None,
        peak_bf16_tflops=get_peak_tflops(tpu_type),
        avg_temperature_c=sum(temps) / len(temps) if temps else None,
    )


def take_snapshot(env: EnvironmentContext, now: Optional[datetime] = None) -> ResourceSnapshot:
    now = now or datetime.now(timezone.utc)
    return ResourceSnapshot(
        timestamp=now.strftime("%H:%M:%S UTC"),
        tpu=_tpu_resources(env),
        cpu_pct=_maybe(env.cpu_utilization, "cpu"),
        memory=_maybe(env.memory_usage, "memory"),
        processes=tuple(_maybe(lambda: env.top_processes(TOP_PROCESS_LIMIT), "processes") or ()),
    )


def _na(value: Optional[Any], fmt: str = "{}") -> str:
    return "N/A" if value is None else fmt.format(value)


def format_snapshot_text(snapshot: ResourceSnapshot) -> str:
    lines = banner(f"RESOURCE SNAPSHOT - {snapshot.timestamp}")

    lines += heading("TPU RESOURCES")
    tpu = snapshot.tpu
    if tpu is None:
        lines.append("  Not a TPU VM")
    else:
        chips = _na(tpu.chip_count)
        if tpu.chip_count_valid is False:
            chips += " (unexpected for this TPU type)"
        lines.append(f"  TPU Type:      {_na(tpu.tpu_type)}")
        lines.append(f"  Chips:         {chips}")
        lines.append(f"  HBM Total:     {_na(tpu.hbm_total_gb, '{:.0f} GB')}")
        lines.append(f"  HBM Used:      {_na(tpu.hbm_used_pct, '{:.1f}%')}")
        lines.append(f"  Duty Cycle:    {_na(tpu.duty_cycle_pct, '{:.1f}%')}")
        lines.append(f"  Peak BF16:     {_na(tpu.peak_bf16_tflops, '{} TFLOPS')}")
        lines.append(f"  Temperature:   {_na(tpu.avg_temperature_c, '{:.1f}C')}")
    lines.append("")

    lines += heading("SYSTEM RESOURCES")
    lines.append(f"  CPU:           {_na(snapshot.cpu_pct, '{:.1f}%')}")
    memory = snapshot.memory
    if memory is None:
        lines.append("  Memory:        N/A")
    else:
        pct = memory.used_bytes / memory.total_bytes * 100.0 if memory.total_bytes else 0.0
        lines.append(
            f"  Memory:        {memory.used_bytes / GIB:.1f} / {memory.total_bytes / GIB:.1f} GB ({pct:.1f}%)"
        )
        if memory.swap_total_bytes > 0:
            lines.append(
                f"  Swap:          {memory.swap_used_bytes / GIB:.1f} / {memory.swap_total_bytes / GIB:.1f} GB"
            )
    lines.append("")

    if snapshot.processes:
        lines += heading("TOP PROCESSES (by memory)")
        lines.append(f"  {'PID':>8}  {'RSS (MB)':>10}  NAME")
        for proc in snapshot.processes:
            lines.append(f"  {proc.pid:>8}  {proc.rss_bytes // MB:>10}  {proc.name}")
        lines.append("")

    lines.append(RULE)
    return "\n".join(lines)


def watch(
    env: EnvironmentContext,
    interval_s: int,
    render: Callable[[ResourceSnapshot], str],
    iterations: int = MAX_ITERATIONS,
    sleep: Optional[Callable[[float], None]] = None,
) -> int:
    """Redraw a snapshot every `interval_s` seconds; returns the number of frames shown."""
    sleep = sleep or time.sleep
    limit = min(iterations, MAX_ITERATIONS)
    frames = 0
    try:
        for frames in range(1, limit + 1):
            print(CLEAR_SCREEN, end="")
            print(render(take_snapshot(env)))
            print(f"\nRefreshing every {interval_s} seconds... (Ctrl+C to stop)")
            if frames < limit:
                sleep(interval_s)
    except KeyboardInterrupt:
        logger.info("[Snapshot] stopped")
    return frames
