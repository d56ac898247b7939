###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Hardware checks: TPU device detection, HBM, thermals, error counters,
interconnect and driver.
"""

from tpudoc.core.engine.models import CheckCategory, CheckOutcome
from tpudoc.core.engine.registry import register_check
from tpudoc.core.errors import PlatformError
from tpudoc.platform.context import GIB, EnvironmentContext

NOT_TPU_VM = "Not running on a TPU VM"

TEMP_WARN_C = 75.0
TEMP_FAIL_C = 85.0
HBM_WARN_PCT = 90.0
HBM_FAIL_PCT = 50.0


@register_check(
    "HW-001",
    name="TPU Device Detection",
    category=CheckCategory.HARDWARE,
    description="Verify expected number of TPU chips are present",
    estimated_ms=100,
)
def check_device_detection(env: EnvironmentContext) -> CheckOutcome:
    if not env.is_tpu_vm():
        return CheckOutcome.skip(NOT_TPU_VM)
    try:
        count = env.chip_count()
    except PlatformError as e:
        return CheckOutcome.fail("Failed to detect TPU chips", str(e))

    expected = env.expected_chip_count()
    if expected is None:
        expected = count

    if count == 0:
        return CheckOutcome.fail("No TPU chips detected", "Expected at least one TPU chip but found none")
    if count < expected:
        return CheckOutcome.fail(
            f"Fewer TPU chips than expected: {count} found, {expected} expected",
            "Some TPU chips may be offline or malfunctioning",
        )
    if count > expected:
        return CheckOutcome.warn(
            f"More TPU chips than expected: {count} found, {expected} expected",
            "This is unusual but not necessarily an error",
        )
    return CheckOutcome.pass_(f"{count} chips detected")


@register_check(
    "HW-002",
    name="HBM Memory Availability",
    category=CheckCategory.HARDWARE,
    description="Check total HBM capacity and availability",
    depends_on=["HW-001"],
    estimated_ms=100,
)
def check_hbm_availability(env: EnvironmentContext) -> CheckOutcome:
    if not env.is_tpu_vm():
        return CheckOutcome.skip(NOT_TPU_VM)
    try:
        hbm = env.hbm_info()
    except PlatformError as e:
        return CheckOutcome.skip(f"HBM info unavailable: {e}")

    pct = hbm.availability_pct
    available_gb = hbm.available_bytes / GIB
    total_gb = hbm.total_bytes / GIB
    details = f"{available_gb:.1f}GB available of {total_gb:.1f}GB total"
    if pct < HBM_FAIL_PCT:
        return CheckOutcome.fail(f"HBM availability critically low: {pct:.1f}%", details)
    if pct < HBM_WARN_PCT:
        return CheckOutcome.warn(f"HBM availability below threshold: {pct:.1f}%", details)
    return CheckOutcome.pass_(f"{available_gb:.1f}GB available ({pct:.1f}%)")


@register_check(
    "HW-003",
    name="TPU Thermal Status",
    category=CheckCategory.HARDWARE,
    description="Check temperature of each TPU chip",
    depends_on=["HW-001"],
    estimated_ms=50,
)
def check_thermal_status(env: EnvironmentContext) -> CheckOutcome:
    if not env.is_tpu_vm():
        return CheckOutcome.skip(NOT_TPU_VM)
    try:
        temperatures = env.chip_temperatures()
    except PlatformError as e:
        return CheckOutcome.skip(f"Thermal info unavailable: {e}")

    hottest = max(temperatures)
    if hottest >= TEMP_FAIL_C:
        return CheckOutcome.fail(
            f"TPU temperature critical: {hottest:.1f}C", f"One or more chips above {TEMP_FAIL_C:.0f}C threshold"
        )
    if hottest >= TEMP_WARN_C:
        return CheckOutcome.warn(
            f"TPU temperature elevated: {hottest:.1f}C",
            f"One or more chips above {TEMP_WARN_C:.0f}C warning threshold",
        )
    return CheckOutcome.pass_(f"Max temperature: {hottest:.1f}C")


@register_check(
    "HW-004",
    name="TPU Error Counters",
    category=CheckCategory.HARDWARE,
    description="Check for accumulated hardware errors",
    depends_on=["HW-001"],
    estimated_ms=50,
)
def check_error_counters(env: EnvironmentContext) -> CheckOutcome:
    if not env.is_tpu_vm():
        return CheckOutcome.skip(NOT_TPU_VM)
    try:
        errors = env.error_counters()
    except PlatformError as e:
        return CheckOutcome.skip(f"Error counters unavailable: {e}")

    if errors.uncorrectable > 0:
        return CheckOutcome.fail(
            f"{errors.uncorrectable} uncorrectable errors detected",
            "Uncorrectable errors indicate hardware issues",
        )
    if errors.correctable > 0:
        return CheckOutcome.warn(
            f"{errors.correctable} correctable errors detected",
            "Correctable errors are handled but may indicate degradation",
        )
    return CheckOutcome.pass_("No hardware errors")


@register_check(
    "HW-005",
    name="ICI Interconnect Status",
    category=CheckCategory.HARDWARE,
    description="Verify inter-chip interconnect is functional",
    depends_on=["HW-001"],
    estimated_ms=200,
)
def check_interconnect(env: EnvironmentContext) -> CheckOutcome:
    if not env.is_tpu_vm():
        return CheckOutcome.skip(NOT_TPU_VM)
    try:
        chips = env.chip_count()
    except PlatformError as e:
        return CheckOutcome.skip(f"Could not determine chip count: {e}")
    if chips <= 1:
        return CheckOutcome.skip("Single-chip configuration - ICI not applicable")

    try:
        status = env.ici_status()
    except PlatformError as e:
        return CheckOutcome.skip(f"ICI status unavailable: {e}")
    if not status.healthy:
        return CheckOutcome.fail("ICI interconnect errors detected", status.details)
    return CheckOutcome.pass_(f"ICI healthy, bandwidth: {status.bandwidth_gbps:.1f} GB/s")


@register_check(
    "HW-006",
    name="Driver Status",
    category=CheckCategory.HARDWARE,
    description="Verify TPU driver kernel module is loaded",
    estimated_ms=50,
)
def check_driver(env: EnvironmentContext) -> CheckOutcome:
    if not env.driver_loaded():
        return CheckOutcome.fail("TPU driver not loaded", "The TPU kernel module is not loaded")
    try:
        return CheckOutcome.pass_(f"Driver version: {env.driver_version()}")
    except PlatformError as e:
        return CheckOutcome.warn("Driver loaded but version unknown", str(e))
