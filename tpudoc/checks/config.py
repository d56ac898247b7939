###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""Configuration audit checks over the environment snapshot."""

from tpudoc.core.engine.models import CheckCategory, CheckOutcome
from tpudoc.core.engine.registry import register_check
from tpudoc.platform.context import EnvironmentContext

XLA_DEBUG_FLAGS = ("--xla_dump_to", "--xla_dump_hlo", "--xla_log_all")
MAX_MEM_FRACTION = 0.95


@register_check(
    "CFG-001",
    name="XLA Flags Audit",
    category=CheckCategory.CONFIG,
    description="Check XLA_FLAGS for potential issues",
    estimated_ms=10,
)
def check_xla_flags(env: EnvironmentContext) -> CheckOutcome:
    flags = env.getenv("XLA_FLAGS")
    if flags is None:
        return CheckOutcome.pass_("XLA_FLAGS not set (using defaults)")

    issues = [f"Debug flag {flag} is set" for flag in XLA_DEBUG_FLAGS if flag in flags]
    if "--xla_disable_hlo_passes" in flags:
        issues.append("HLO passes are disabled")
    if issues:
        return CheckOutcome.warn(f"XLA_FLAGS has {len(issues)} potential issues", "; ".join(issues))
    return CheckOutcome.pass_("XLA_FLAGS configuration is optimal")


@register_check(
    "CFG-002",
    name="JAX Configuration Audit",
    category=CheckCategory.CONFIG,
    description="Check JAX configuration values",
    depends_on=["STK-001"],
    estimated_ms=10,
)
def check_jax_config(env: EnvironmentContext) -> CheckOutcome:
    issues = []
    platforms = env.getenv("JAX_PLATFORMS")
    if platforms is not None and "tpu" not in platforms:
        issues.append("JAX_PLATFORMS does not include 'tpu'")
    if issues:
        return CheckOutcome.warn("JAX configuration has potential issues", "; ".join(issues))
    return CheckOutcome.pass_("JAX configuration appears correct")


@register_check(
    "CFG-003",
    name="Memory Preallocation Check",
    category=CheckCategory.CONFIG,
    description="Check memory preallocation settings",
    estimated_ms=10,
)
def check_memory_config(env: EnvironmentContext) -> CheckOutcome:
    issues = []
    fraction = env.getenv("XLA_PYTHON_CLIENT_MEM_FRACTION")
    if fraction is not None:
        try:
            value = float(fraction)
        except ValueError:
            value = None
        if value is not None and value > MAX_MEM_FRACTION:
            issues.append(f"High memory fraction: {value} (risk of OOM)")
    if issues:
        return CheckOutcome.warn("Memory configuration may cause issues", "; ".join(issues))
    return CheckOutcome.pass_("Memory configuration is appropriate")


@register_check(
    "CFG-004",
    name="Distributed Configuration Check",
    category=CheckCategory.CONFIG,
    description="Check multi-host configuration",
    depends_on=["HW-001"],
    estimated_ms=10,
)
def check_distributed_config(env: EnvironmentContext) -> CheckOutcome:
    coordinator = env.getenv("JAX_COORDINATOR_ADDRESS")
    workers = env.getenv("TPU_WORKER_HOSTNAMES") or ""
    if coordinator is None and "," not in workers:
        return CheckOutcome.skip("Single-host configuration")
    if coordinator is None:
        return CheckOutcome.fail(
            "Multi-host detected but JAX_COORDINATOR_ADDRESS not set",
            "Set JAX_COORDINATOR_ADDRESS for distributed training",
        )
    return CheckOutcome.pass_("Distributed configuration is correct")


@register_check(
    "CFG-005",
    name="Logging Configuration Check",
    category=CheckCategory.CONFIG,
    description="Check logging and debug settings",
    estimated_ms=10,
)
def check_logging_config(env: EnvironmentContext) -> CheckOutcome:
    issues = []
    if env.getenv("TF_CPP_MIN_LOG_LEVEL") == "0":
        issues.append("TF_CPP_MIN_LOG_LEVEL=0 (verbose logging)")
    if env.getenv("JAX_DEBUG_NANS") in ("True", "true", "1"):
        issues.append("JAX_DEBUG_NANS is enabled (performance impact)")
    if issues:
        return CheckOutcome.warn("Debug logging may impact performance", "; ".join(issues))
    return CheckOutcome.pass_("Logging configuration is production-appropriate")
