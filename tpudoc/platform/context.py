###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Environment context handed to every check.

Checks never touch the host directly: they ask an EnvironmentContext, which
is either a RealEnvironment (probing this machine) or a MockEnvironment
(fixed answers for tests). Every query that cannot be answered raises
PlatformError.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Mapping, Optional

from tpudoc.core.engine.models import EnvironmentFingerprint
from tpudoc.core.errors import PlatformError

GIB = 1024 ** 3

# TPU generations understood by the checks
TPU_TYPES = ("v4", "v5e", "v5p", "v6e", "v7", "unknown")

DEFAULT_CHIPS_PER_HOST = {"v4": 4, "v5e": 8, "v5p": 8, "v6e": 4, "v7": 8, "unknown": 1}
HBM_PER_CHIP_GB = {"v4": 32, "v5e": 16, "v5p": 95, "v6e": 32, "v7": 128, "unknown": 16}
ICI_BANDWIDTH_GBPS = {"v4": 400.0, "v5e": 200.0, "v5p": 450.0, "v6e": 500.0, "v7": 600.0, "unknown": 200.0}
HBM_BANDWIDTH_GBPS = {"v4": 1200.0, "v5e": 800.0, "v5p": 1600.0, "v6e": 1800.0, "v7": 2000.0, "unknown": 800.0}


def parse_tpu_type(name: str) -> str:
    """Map an accelerator name such as "v5litepod-8" to a TPU generation."""
    lower = name.lower()
    if "v5litepod" in lower or "v5e" in lower:
        return "v5e"
    if "v5p" in lower:
        return "v5p"
    if "v6e" in lower:
        return "v6e"
    if "v7" in lower:
        return "v7"
    if "v4" in lower:
        return "v4"
    return "unknown"


@dataclass(frozen=True)
class HbmInfo:
    total_bytes: int
    available_bytes: int
    per_chip_bytes: int

    @property
    def availability_pct(self) -> float:
        if self.total_bytes <= 0:
            return 0.0
        return self.available_bytes / self.total_bytes * 100.0


@dataclass(frozen=True)
class ErrorCounters:
    correctable: int = 0
    uncorrectable: int = 0


@dataclass(frozen=True)
class InterconnectStatus:
    healthy: bool
    bandwidth_gbps: float
    details: str = ""


@dataclass(frozen=True)
class DirectoryUsage:
    """Recursive file statistics; oldest/newest are file names by mtime."""

    file_count: int = 0
    total_bytes: int = 0
    oldest: Optional[str] = None
    newest: Optional[str] = None


@dataclass(frozen=True)
class MemoryUsage:
    total_bytes: int
    available_bytes: int
    swap_total_bytes: int = 0
    swap_free_bytes: int = 0

    @property
    def used_bytes(self) -> int:
        return max(0, self.total_bytes - self.available_bytes)

    @property
    def swap_used_bytes(self) -> int:
        return max(0, self.swap_total_bytes - self.swap_free_bytes)


@dataclass(frozen=True)
class ProcessMemory:
    pid: int
    name: str
    rss_bytes: int


class EnvironmentContext(ABC):
    """Read-only view of the machine under validation."""

    # ------------------------------ host ------------------------------ #

    @abstractmethod
    def hostname(self) -> str: ...

    @property
    @abstractmethod
    def env(self) -> Mapping[str, str]:
        """Snapshot of environment variables taken when the context was built."""

    def getenv(self, name: str, default: Optional[str] = None) -> Optional[str]:
        return self.env.get(name, default)

    @abstractmethod
    def python_version(self) -> str: ...

    @abstractmethod
    def package_version(self, package: str) -> str:
        """Installed version of a Python distribution (e.g. "jax")."""

    @abstractmethod
    def tool_available(self, tool: str) -> bool: ...

    @abstractmethod
    def path_exists(self, path: str) -> bool: ...

    @abstractmethod
    def is_writable(self, path: str) -> bool: ...

    @abstractmethod
    def disk_free_bytes(self, path: str) -> int: ...

    @abstractmethod
    def directory_usage(self, path: str) -> DirectoryUsage:
        """File count, size and oldest/newest entry below `path`."""

    # ---------------------------- resources ---------------------------- #

    @abstractmethod
    def memory_usage(self) -> MemoryUsage: ...

    @abstractmethod
    def cpu_utilization(self) -> float:
        """Host-wide CPU busy percentage over a short sampling window."""

    @abstractmethod
    def top_processes(self, limit: int = 10) -> List[ProcessMemory]:
        """Processes with the largest resident set, largest first."""

    # ------------------------------- TPU ------------------------------ #

    @abstractmethod
    def is_tpu_vm(self) -> bool: ...

    @abstractmethod
    def tpu_type(self) -> str:
        """One of TPU_TYPES."""

    @abstractmethod
    def chip_count(self) -> int: ...

    @abstractmethod
    def expected_chip_count(self) -> Optional[int]: ...

    @abstractmethod
    def hbm_info(self) -> HbmInfo: ...

    @abstractmethod
    def chip_temperatures(self) -> List[float]: ...

    @abstractmethod
    def error_counters(self) -> ErrorCounters: ...

    @abstractmethod
    def ici_status(self) -> InterconnectStatus: ...

    @abstractmethod
    def driver_loaded(self) -> bool: ...

    @abstractmethod
    def driver_version(self) -> str: ...

    # ----------------------------- network ---------------------------- #

    @abstractmethod
    def resolve_host(self, hostname: str) -> float:
        """Resolve `hostname`; returns resolution time in ms."""

    @abstractmethod
    def tcp_connect(self, host: str, port: int, timeout_ms: int = 5000) -> float:
        """Open and close a TCP connection; returns connect latency in ms."""

    @abstractmethod
    def exposed_ports(self) -> List[int]:
        """TCP ports listening on all interfaces."""

    # ------------------------------- GCP ------------------------------ #

    @abstractmethod
    def on_gcp(self) -> bool: ...

    @abstractmethod
    def metadata(self, path: str) -> Optional[str]:
        """
        Read a metadata server value relative to /computeMetadata/v1/
        (e.g. "instance/service-accounts/default/email"). None when the key
        does not exist; PlatformError when the server cannot be queried.
        """

    @abstractmethod
    def metadata_status_without_header(self) -> int:
        """HTTP status of a metadata request sent without Metadata-Flavor."""

    # ---------------------------- benchmarks --------------------------- #

    @abstractmethod
    def run_benchmark(self, name: str) -> float:
        """
        Run a named micro-benchmark and return its headline number:
        mxu_utilization (%), hbm_bandwidth (GB/s), chip_latency (us),
        compile_time (s), memory_pressure (1.0 ok / 0.0 failed),
        disk_write (GB/s), gcs_read (GB/s).
        """

    # ----------------------------- derived ---------------------------- #

    def accelerator_type(self) -> Optional[str]:
        """Generation for the report fingerprint, None off-TPU."""
        if not self.is_tpu_vm():
            return None
        try:
            return self.tpu_type()
        except PlatformError:
            return None

    def fingerprint(self) -> EnvironmentFingerprint:
        return EnvironmentFingerprint(hostname=self.hostname(), tpu_type=self.accelerator_type())
