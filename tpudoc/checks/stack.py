###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Software stack checks: JAX, libtpu, XLA, Python, PJRT plugin, dependency
conflicts and required environment variables.
"""

import re
from typing import List, Optional, Tuple

from tpudoc.core.engine.models import CheckCategory, CheckOutcome
from tpudoc.core.engine.registry import register_check
from tpudoc.core.errors import PlatformError
from tpudoc.platform.context import EnvironmentContext

MIN_JAX_VERSION = (0, 4, 1)
MIN_PYTHON_VERSION = (3, 9, 0)

LIBTPU_PATHS = ("/usr/local/lib/libtpu.so", "/usr/lib/libtpu.so")
LIBTPU_DISTRIBUTIONS = ("libtpu", "libtpu-nightly")

REQUIRED_ENV = ("TPU_NAME",)
RECOMMENDED_ENV = ("TPU_WORKER_ID", "PYTHONPATH")


def parse_version(version: str) -> Optional[Tuple[int, int, int]]:
    """
    Parse "major.minor[.patch]" leniently ("3.11.5rc1" -> (3, 11, 5)).
    Returns None when major/minor are not numeric.
    """
    parts = version.strip().split(".")
    if len(parts) < 2 or not parts[0].isdigit() or not parts[1].isdigit():
        return None
    patch = 0
    if len(parts) > 2:
        m = re.match(r"\d+", parts[2])
        patch = int(m.group(0)) if m else 0
    return int(parts[0]), int(parts[1]), patch


def _fmt(version: Tuple[int, int, int]) -> str:
    return ".".join(str(v) for v in version)


def _minimum_version_outcome(label: str, version: str, minimum: Tuple[int, int, int]) -> CheckOutcome:
    parsed = parse_version(version)
    if parsed is None:
        return CheckOutcome.warn(
            f"{label} version {version} (unparseable)", "Could not parse version for compatibility check"
        )
    if parsed < minimum:
        return CheckOutcome.fail(
            f"{label} version {version} is too old", f"Minimum required version is {_fmt(minimum)}"
        )
    return CheckOutcome.pass_(f"{label} version {version}")


def _jax_version(env: EnvironmentContext) -> str:
    return env.getenv("JAX_VERSION") or env.package_version("jax")


@register_check(
    "STK-001",
    name="JAX Version",
    category=CheckCategory.STACK,
    description="Detect and validate installed JAX version",
    estimated_ms=500,
)
def check_jax_version(env: EnvironmentContext) -> CheckOutcome:
    try:
        version = _jax_version(env)
    except PlatformError as e:
        return CheckOutcome.skip(f"JAX version unavailable: {e}")
    return _minimum_version_outcome("JAX", version, MIN_JAX_VERSION)


def _libtpu_version(env: EnvironmentContext) -> str:
    version = env.getenv("LIBTPU_VERSION")
    if version:
        return version
    for distribution in LIBTPU_DISTRIBUTIONS:
        try:
            return env.package_version(distribution)
        except PlatformError:
            continue
    if any(env.path_exists(p) for p in LIBTPU_PATHS):
        return "available (version unknown)"
    raise PlatformError("libtpu not found")


@register_check(
    "STK-002",
    name="libtpu Version",
    category=CheckCategory.STACK,
    description="Detect and validate libtpu version",
    estimated_ms=100,
)
def check_libtpu_version(env: EnvironmentContext) -> CheckOutcome:
    try:
        version = _libtpu_version(env)
    except PlatformError as e:
        return CheckOutcome.skip(f"libtpu version unavailable: {e}")
    if "dev" in version or "nightly" in version:
        return CheckOutcome.warn(f"libtpu version {version}", "Using development/nightly build")
    return CheckOutcome.pass_(f"libtpu version {version}")


@register_check(
    "STK-003",
    name="XLA Compiler Version",
    category=CheckCategory.STACK,
    description="Detect XLA compiler version",
    estimated_ms=500,
)
def check_xla_version(env: EnvironmentContext) -> CheckOutcome:
    # XLA ships inside jaxlib
    try:
        return CheckOutcome.pass_(f"XLA version {env.package_version('jaxlib')}")
    except PlatformError:
        return CheckOutcome.skip("XLA version not detectable (informational only)")


@register_check(
    "STK-004",
    name="Python Version",
    category=CheckCategory.STACK,
    description="Check Python version compatibility",
    estimated_ms=50,
)
def check_python_version(env: EnvironmentContext) -> CheckOutcome:
    try:
        version = env.getenv("PYTHON_VERSION") or env.python_version()
    except PlatformError as e:
        return CheckOutcome.skip(f"Python version unavailable: {e}")
    return _minimum_version_outcome("Python", version, MIN_PYTHON_VERSION)


@register_check(
    "STK-005",
    name="PJRT Plugin Status",
    category=CheckCategory.STACK,
    description="Verify PJRT TPU plugin is available",
    estimated_ms=50,
)
def check_pjrt_plugin(env: EnvironmentContext) -> CheckOutcome:
    configured = env.getenv("TPU_LIBRARY_PATH")
    if configured:
        if env.path_exists(configured):
            return CheckOutcome.pass_(f"PJRT plugin found at {configured}")
        return CheckOutcome.fail(
            "TPU_LIBRARY_PATH points to non-existent location", f"Path {configured} does not exist"
        )
    for path in LIBTPU_PATHS:
        if env.path_exists(path):
            return CheckOutcome.pass_(f"PJRT plugin found at {path}")
    return CheckOutcome.warn("TPU_LIBRARY_PATH not set", "PJRT plugin location not specified")


def find_conflicts(env: EnvironmentContext) -> List[str]:
    """Known-bad package combinations present on this host."""
    conflicts = []

    def version_of(package: str) -> Optional[str]:
        try:
            return env.package_version(package)
        except PlatformError:
            return None

    jax = version_of("jax")
    tensorflow = version_of("tensorflow")
    numpy = version_of("numpy")

    if jax and tensorflow and jax.startswith("0.4"):
        tf_major = tensorflow.split(".")[0]
        if tf_major.isdigit() and int(tf_major) < 2:
            conflicts.append(f"JAX {jax} with TensorFlow {tensorflow} may cause conflicts")

    if jax and numpy:
        np_major = numpy.split(".")[0]
        parsed_jax = parse_version(jax)
        if np_major.isdigit() and int(np_major) >= 2 and parsed_jax and parsed_jax[:2] < (0, 4):
            conflicts.append(f"JAX {jax} may not be compatible with NumPy {numpy}")

    if jax and env.tool_available("nvcc"):
        conflicts.append("CUDA toolkit detected - ensure using TPU-compatible JAX build")

    return conflicts


@register_check(
    "STK-006",
    name="Dependency Conflicts",
    category=CheckCategory.STACK,
    description="Check for known conflicting package versions",
    estimated_ms=1000,
)
def check_dependency_conflicts(env: EnvironmentContext) -> CheckOutcome:
    conflicts = find_conflicts(env)
    if conflicts:
        return CheckOutcome.warn(f"{len(conflicts)} potential conflict(s) detected", "; ".join(conflicts))
    return CheckOutcome.pass_("No known dependency conflicts")


@register_check(
    "STK-007",
    name="Environment Variables",
    category=CheckCategory.STACK,
    description="Verify required environment variables are set",
    estimated_ms=10,
)
def check_environment_variables(env: EnvironmentContext) -> CheckOutcome:
    missing_required = [v for v in REQUIRED_ENV if not env.getenv(v)]
    missing_recommended = [v for v in RECOMMENDED_ENV if not env.getenv(v)]

    if missing_required:
        return CheckOutcome.fail(
            f"Missing required environment variable(s): {', '.join(missing_required)}",
            "These variables are required for TPU operation",
        )
    if missing_recommended:
        return CheckOutcome.warn(
            f"Missing recommended variable(s): {', '.join(missing_recommended)}",
            "These variables are recommended for optimal operation",
        )
    return CheckOutcome.pass_("All environment variables set")
