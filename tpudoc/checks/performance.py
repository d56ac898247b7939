###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""Performance baselines measured with JAX micro-benchmarks."""

from tpudoc.core.engine.models import CheckCategory, CheckOutcome
from tpudoc.core.engine.registry import register_check
from tpudoc.core.errors import PlatformError
from tpudoc.platform.context import HBM_BANDWIDTH_GBPS, EnvironmentContext

NOT_TPU_VM = "Not running on a TPU VM"


@register_check(
    "PERF-001",
    name="MXU Utilization Test",
    category=CheckCategory.PERFORMANCE,
    description="Run standardized matrix multiplication and measure MXU utilization",
    depends_on=["HW-001", "STK-001"],
    estimated_ms=10_000,
)
def check_mxu_utilization(env: EnvironmentContext) -> CheckOutcome:
    if not env.is_tpu_vm():
        return CheckOutcome.skip(NOT_TPU_VM)
    try:
        utilization = env.run_benchmark("mxu_utilization")
    except PlatformError as e:
        return CheckOutcome.skip(f"MXU benchmark unavailable: {e}")

    if utilization < 70.0:
        return CheckOutcome.fail(f"MXU utilization too low: {utilization:.1f}%", "Expected at least 70% utilization")
    if utilization < 80.0:
        return CheckOutcome.warn(
            f"MXU utilization below optimal: {utilization:.1f}%", "Expected at least 80% utilization"
        )
    return CheckOutcome.pass_(f"MXU utilization: {utilization:.1f}%")


@register_check(
    "PERF-002",
    name="HBM Bandwidth Test",
    category=CheckCategory.PERFORMANCE,
    description="Measure HBM memory bandwidth",
    depends_on=["HW-001", "HW-002"],
    estimated_ms=5000,
)
def check_hbm_bandwidth(env: EnvironmentContext) -> CheckOutcome:
    if not env.is_tpu_vm():
        return CheckOutcome.skip(NOT_TPU_VM)
    try:
        tpu_type = env.tpu_type()
    except PlatformError:
        tpu_type = "unknown"
    expected = HBM_BANDWIDTH_GBPS[tpu_type]

    try:
        measured = env.run_benchmark("hbm_bandwidth")
    except PlatformError as e:
        return CheckOutcome.skip(f"HBM bandwidth test unavailable: {e}")

    pct = measured / expected * 100.0
    headline = f"{measured:.1f} GB/s ({pct:.1f}% of expected)"
    if pct < 70.0:
        return CheckOutcome.fail(f"HBM bandwidth too low: {headline}", f"Expected at least {expected * 0.7:.1f} GB/s")
    if pct < 85.0:
        return CheckOutcome.warn(
            f"HBM bandwidth below optimal: {headline}", f"Expected at least {expected * 0.85:.1f} GB/s"
        )
    return CheckOutcome.pass_(f"HBM bandwidth: {headline}")


@register_check(
    "PERF-003",
    name="Chip-to-Chip Latency",
    category=CheckCategory.PERFORMANCE,
    description="Measure latency between TPU chips",
    depends_on=["HW-001", "HW-005"],
    estimated_ms=3000,
)
def check_chip_latency(env: EnvironmentContext) -> CheckOutcome:
    if not env.is_tpu_vm():
        return CheckOutcome.skip(NOT_TPU_VM)
    try:
        chips = env.chip_count()
    except PlatformError as e:
        return CheckOutcome.skip(f"Could not determine chip count: {e}")
    if chips <= 1:
        return CheckOutcome.skip("Single-chip configuration - chip-to-chip latency not applicable")

    try:
        latency_us = env.run_benchmark("chip_latency")
    except PlatformError as e:
        return CheckOutcome.skip(f"Latency test unavailable: {e}")
    if latency_us > 20.0:
        return CheckOutcome.warn(
            f"Chip-to-chip latency elevated: {latency_us:.1f}us", "Expected less than 10us for adjacent chips"
        )
    return CheckOutcome.pass_(f"Chip-to-chip latency: {latency_us:.1f}us")


@register_check(
    "PERF-004",
    name="Compilation Latency",
    category=CheckCategory.PERFORMANCE,
    description="Measure XLA compilation time for standard graph",
    depends_on=["STK-001", "STK-003"],
    estimated_ms=15_000,
)
def check_compilation_latency(env: EnvironmentContext) -> CheckOutcome:
    if not env.is_tpu_vm():
        return CheckOutcome.skip(NOT_TPU_VM)
    try:
        seconds = env.run_benchmark("compile_time")
    except PlatformError as e:
        return CheckOutcome.skip(f"Compilation test unavailable: {e}")
    if seconds > 60.0:
        return CheckOutcome.warn(
            f"XLA compilation unusually slow: {seconds:.1f}s", "Compilation took longer than 60 seconds"
        )
    return CheckOutcome.pass_(f"XLA compilation time: {seconds:.1f}s")


@register_check(
    "PERF-005",
    name="Memory Pressure Test",
    category=CheckCategory.PERFORMANCE,
    description="Allocate and free HBM to verify no fragmentation issues",
    depends_on=["HW-002"],
    estimated_ms=5000,
)
def check_memory_pressure(env: EnvironmentContext) -> CheckOutcome:
    if not env.is_tpu_vm():
        return CheckOutcome.skip(NOT_TPU_VM)
    try:
        ok = env.run_benchmark("memory_pressure") >= 1.0
    except PlatformError as e:
        return CheckOutcome.skip(f"Memory pressure test unavailable: {e}")
    if not ok:
        return CheckOutcome.fail("Memory pressure test failed", "OOM or fragmentation issues detected")
    return CheckOutcome.pass_("Memory allocation/deallocation successful")
