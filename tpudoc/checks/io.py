###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""Storage and network I/O checks."""

from tpudoc.core.engine.models import CheckCategory, CheckOutcome
from tpudoc.core.engine.registry import register_check
from tpudoc.core.errors import PlatformError
from tpudoc.platform.context import GIB, EnvironmentContext

GCS_HOST = "storage.googleapis.com"

GCP_SERVICES = (
    ("metadata.google.internal", 80),
    ("storage.googleapis.com", 443),
    ("compute.googleapis.com", 443),
)
DNS_NAMES = ("storage.googleapis.com", "metadata.google.internal", "compute.googleapis.com")

MIN_DISK_GBPS = 0.5
MIN_CHECKPOINT_FREE_GB = 100.0
MAX_SERVICE_LATENCY_MS = 10


@register_check(
    "IO-001",
    name="GCS Read Throughput",
    category=CheckCategory.IO,
    description="Measure read throughput from Google Cloud Storage",
    depends_on=["IO-003"],
    estimated_ms=10_000,
)
def check_gcs_throughput(env: EnvironmentContext) -> CheckOutcome:
    if not env.tool_available("gsutil"):
        return CheckOutcome.skip("gsutil not available")
    if not env.on_gcp():
        return CheckOutcome.skip("Not running on GCP")
    try:
        gbps = env.run_benchmark("gcs_read")
    except PlatformError as e:
        return CheckOutcome.skip(str(e))
    if gbps < MIN_DISK_GBPS:
        return CheckOutcome.warn(f"GCS read throughput low: {gbps:.2f} GB/s", "Expected at least 0.5 GB/s")
    return CheckOutcome.pass_(f"GCS read throughput: {gbps:.2f} GB/s")


@register_check(
    "IO-002",
    name="Local Disk Throughput",
    category=CheckCategory.IO,
    description="Measure sequential read/write to local SSD",
    estimated_ms=5000,
)
def check_local_disk(env: EnvironmentContext) -> CheckOutcome:
    try:
        gbps = env.run_benchmark("disk_write")
    except PlatformError as e:
        return CheckOutcome.skip(f"Disk throughput test failed: {e}")
    if gbps < MIN_DISK_GBPS:
        return CheckOutcome.warn(
            f"Local disk throughput low: {gbps:.2f} GB/s", "Expected at least 1 GB/s for NVMe SSD"
        )
    return CheckOutcome.pass_(f"Local disk throughput: {gbps:.2f} GB/s")


@register_check(
    "IO-003",
    name="GCS Connectivity",
    category=CheckCategory.IO,
    description="Verify connectivity to storage.googleapis.com",
    depends_on=["IO-006"],
    estimated_ms=1000,
)
def check_gcs_connectivity(env: EnvironmentContext) -> CheckOutcome:
    try:
        latency = env.tcp_connect(GCS_HOST, 443, timeout_ms=5000)
    except PlatformError as e:
        return CheckOutcome.fail(f"Cannot connect to {GCS_HOST}", f"TCP connection to port 443 failed: {e}")
    return CheckOutcome.pass_(f"GCS connectivity OK, latency: {latency:.0f}ms")


@register_check(
    "IO-004",
    name="Checkpoint Directory Access",
    category=CheckCategory.IO,
    description="Verify checkpoint directory access and space",
    estimated_ms=100,
)
def check_checkpoint_directory(env: EnvironmentContext) -> CheckOutcome:
    path = env.getenv("CHECKPOINT_DIR")
    if not path:
        return CheckOutcome.skip("CHECKPOINT_DIR environment variable not set")
    if not env.path_exists(path):
        return CheckOutcome.fail("Checkpoint directory does not exist", f"Path: {path}")
    if not env.is_writable(path):
        return CheckOutcome.fail("No write permission for checkpoint directory", f"Path: {path}")

    try:
        free_gb = env.disk_free_bytes(path) / GIB
    except PlatformError as e:
        return CheckOutcome.warn("Could not check checkpoint directory space", str(e))
    if free_gb < MIN_CHECKPOINT_FREE_GB:
        return CheckOutcome.warn(
            f"Checkpoint directory space low: {free_gb:.1f} GB available",
            f"Recommended at least {MIN_CHECKPOINT_FREE_GB:.0f}GB for checkpoints",
        )
    return CheckOutcome.pass_(f"Checkpoint directory OK, {free_gb:.1f} GB available")


@register_check(
    "IO-005",
    name="Network Latency to GCP Services",
    category=CheckCategory.IO,
    description="Measure latency to GCP services",
    depends_on=["IO-006"],
    estimated_ms=3000,
)
def check_service_latency(env: EnvironmentContext) -> CheckOutcome:
    latencies = []
    failures = []
    for host, port in GCP_SERVICES:
        try:
            latencies.append((host, env.tcp_connect(host, port, timeout_ms=5000)))
        except PlatformError as e:
            failures.append(str(e))

    if failures:
        return CheckOutcome.warn(f"{len(failures)} service(s) unreachable", "; ".join(failures))

    slowest = max((ms for _, ms in latencies), default=0.0)
    if slowest > MAX_SERVICE_LATENCY_MS:
        return CheckOutcome.warn(
            f"Network latency elevated: max {slowest:.0f}ms",
            ", ".join(f"{host}: {ms:.0f}ms" for host, ms in latencies),
        )
    return CheckOutcome.pass_(f"Network latency OK, max {slowest:.0f}ms")


@register_check(
    "IO-006",
    name="DNS Resolution",
    category=CheckCategory.IO,
    description="Verify DNS resolution is working",
    estimated_ms=500,
)
def check_dns(env: EnvironmentContext) -> CheckOutcome:
    slowest = 0.0
    failures = []
    for name in DNS_NAMES:
        try:
            slowest = max(slowest, env.resolve_host(name))
        except PlatformError as e:
            failures.append(f"{name}: {e}")
    if failures:
        return CheckOutcome.fail("DNS resolution failed", "; ".join(failures))
    return CheckOutcome.pass_(f"DNS resolution OK, max {slowest:.0f}ms")
