###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Deterministic environment for tests and dry runs.

Every answer comes from a field; presets build the common machines
(a healthy v5e-8, a hot chip, a box that is not a TPU VM, ...). Use
`dataclasses.replace` or `with_env` to derive variants.
"""

from dataclasses import dataclass, field, replace
from types import MappingProxyType
from typing import FrozenSet, List, Mapping, Optional, Tuple

from tpudoc.core.errors import PlatformError
from tpudoc.platform.context import (
    GIB,
    HBM_PER_CHIP_GB,
    ICI_BANDWIDTH_GBPS,
    DirectoryUsage,
    EnvironmentContext,
    ErrorCounters,
    HbmInfo,
    InterconnectStatus,
    MemoryUsage,
    ProcessMemory,
)

_HEALTHY_ENV = {
    "TPU_NAME": "v5litepod-8",
    "TPU_WORKER_ID": "0",
    "PYTHONPATH": "/opt/workload",
    "CHECKPOINT_DIR": "/mnt/checkpoints",
}

_HEALTHY_METADATA = {
    "instance/service-accounts/default/email": "trainer@my-project.iam.gserviceaccount.com",
    "instance/service-accounts/default/scopes": "https://www.googleapis.com/auth/devstorage.read_only",
    "instance/attributes/enable-oslogin": "TRUE",
    "instance/attributes/accelerator-type": "v5litepod-8",
    "project/project-id": "my-project",
    "instance/zone": "projects/123/zones/us-central1-a",
}

_HEALTHY_BENCHMARKS = {
    "mxu_utilization": 85.0,
    "hbm_bandwidth": 760.0,
    "chip_latency": 8.0,
    "compile_time": 4.2,
    "memory_pressure": 1.0,
    "disk_write": 1.6,
}

_HEALTHY_PROCESSES = (
    ProcessMemory(pid=4242, name="python3", rss_bytes=24 * GIB),
    ProcessMemory(pid=812, name="containerd", rss_bytes=96 * 1024 * 1024),
    ProcessMemory(pid=1, name="systemd", rss_bytes=12 * 1024 * 1024),
)


@dataclass(frozen=True)
class MockEnvironment(EnvironmentContext):
    host: str = "mock-host"
    environ: Mapping[str, str] = field(default_factory=dict)
    python: str = "3.11.5"
    packages: Mapping[str, str] = field(default_factory=dict)
    tools: FrozenSet[str] = frozenset()
    existing_paths: FrozenSet[str] = frozenset()
    writable_paths: FrozenSet[str] = frozenset()
    free_bytes: Mapping[str, int] = field(default_factory=dict)
    directories: Mapping[str, DirectoryUsage] = field(default_factory=dict)

    memory: Optional[MemoryUsage] = None
    cpu_pct: Optional[float] = None
    processes: Tuple[ProcessMemory, ...] = ()

    tpu_vm: bool = False
    accelerator: Optional[str] = None
    chips: int = 0
    expected_chips: Optional[int] = None
    hbm_available_pct: float = 95.0
    temperatures: Tuple[float, ...] = ()
    correctable_errors: int = 0
    uncorrectable_errors: int = 0
    ici_healthy: bool = True
    driver_present: bool = False
    driver: Optional[str] = None

    dns_ms: float = 2.0
    unresolvable: FrozenSet[str] = frozenset()
    tcp_ms: float = 3.0
    unreachable: FrozenSet[str] = frozenset()
    listening: Tuple[int, ...] = ()

    gcp: bool = False
    metadata_values: Mapping[str, str] = field(default_factory=dict)
    metadata_open_status: int = 403

    benchmarks: Mapping[str, float] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "environ", MappingProxyType(dict(self.environ)))

    # ------------------------------ presets ---------------------------- #

    @classmethod
    def healthy_v5e_8(cls) -> "MockEnvironment":
        return cls(
            host="tpu-vm-001",
            environ=_HEALTHY_ENV,
            packages={"jax": "0.4.35", "jaxlib": "0.4.35", "libtpu": "0.0.5", "numpy": "1.26.4"},
            tools=frozenset({"gsutil"}),
            existing_paths=frozenset({"/usr/local/lib/libtpu.so", "/mnt/checkpoints"}),
            writable_paths=frozenset({"/mnt/checkpoints"}),
            free_bytes={"/mnt/checkpoints": 500 * GIB},
            memory=MemoryUsage(total_bytes=192 * GIB, available_bytes=150 * GIB),
            cpu_pct=12.5,
            processes=_HEALTHY_PROCESSES,
            tpu_vm=True,
            accelerator="v5e",
            chips=8,
            temperatures=(65.0, 66.0, 64.0, 67.0, 65.0, 66.0, 64.0, 65.0),
            driver_present=True,
            driver="1.0.0",
            gcp=True,
            metadata_values=_HEALTHY_METADATA,
            benchmarks=_HEALTHY_BENCHMARKS,
        )

    @classmethod
    def healthy_v6e_4(cls) -> "MockEnvironment":
        base = cls.healthy_v5e_8()
        return replace(
            base.with_env(TPU_NAME="v6e-4"),
            accelerator="v6e",
            chips=4,
            temperatures=(62.0, 63.0, 61.0, 62.0),
            driver="2.0.0",
            benchmarks={**_HEALTHY_BENCHMARKS, "hbm_bandwidth": 1650.0},
        )

    @classmethod
    def thermal_warning(cls) -> "MockEnvironment":
        return replace(cls.healthy_v5e_8(), temperatures=(65.0, 78.0, 64.0, 76.0, 65.0, 77.0, 64.0, 65.0))

    @classmethod
    def thermal_critical(cls) -> "MockEnvironment":
        return replace(cls.healthy_v5e_8(), temperatures=(65.0, 88.0, 64.0, 86.0, 65.0, 87.0, 64.0, 65.0))

    @classmethod
    def hbm_errors(cls) -> "MockEnvironment":
        return replace(cls.healthy_v5e_8(), uncorrectable_errors=5)

    @classmethod
    def with_correctable_errors(cls) -> "MockEnvironment":
        return replace(cls.healthy_v5e_8(), correctable_errors=10)

    @classmethod
    def ici_errors(cls) -> "MockEnvironment":
        return replace(cls.healthy_v5e_8(), ici_healthy=False)

    @classmethod
    def missing_driver(cls) -> "MockEnvironment":
        return replace(cls.healthy_v5e_8(), driver_present=False, driver=None)

    @classmethod
    def single_chip_v5e(cls) -> "MockEnvironment":
        return replace(cls.healthy_v5e_8().with_env(TPU_NAME="v5litepod-1"), chips=1, temperatures=(65.0,))

    @classmethod
    def low_hbm_availability(cls) -> "MockEnvironment":
        return replace(cls.healthy_v5e_8(), hbm_available_pct=60.0)

    @classmethod
    def non_tpu_vm(cls) -> "MockEnvironment":
        return cls(host="workstation", environ={"PYTHONPATH": "/opt/workload"}, packages={"numpy": "1.26.4"})

    @classmethod
    def degraded_network(cls) -> "MockEnvironment":
        return replace(
            cls.healthy_v5e_8(),
            tcp_ms=45.0,
            unreachable=frozenset({"compute.googleapis.com"}),
        )

    @classmethod
    def security_issues(cls) -> "MockEnvironment":
        metadata = dict(_HEALTHY_METADATA)
        metadata["instance/service-accounts/default/email"] = "123456789-compute@developer.gserviceaccount.com"
        metadata["instance/service-accounts/default/scopes"] = "https://www.googleapis.com/auth/cloud-platform"
        del metadata["instance/attributes/enable-oslogin"]
        return replace(
            cls.healthy_v5e_8(),
            metadata_values=metadata,
            metadata_open_status=200,
            listening=(22, 8888),
        )

    def with_env(self, **values: Optional[str]) -> "MockEnvironment":
        """Copy with environment variables set (None removes a variable)."""
        merged = dict(self.environ)
        for key, value in values.items():
            if value is None:
                merged.pop(key, None)
            else:
                merged[key] = value
        return replace(self, environ=merged)

    # ------------------------------ host ------------------------------ #

    def hostname(self) -> str:
        return self.host

    @property
    def env(self) -> Mapping[str, str]:
        return self.environ

    def python_version(self) -> str:
        return self.python

    def package_version(self, package: str) -> str:
        if package not in self.packages:
            raise PlatformError(f"{package} not installed")
        return self.packages[package]

    def tool_available(self, tool: str) -> bool:
        return tool in self.tools

    def path_exists(self, path: str) -> bool:
        return path in self.existing_paths

    def is_writable(self, path: str) -> bool:
        return path in self.writable_paths

    def disk_free_bytes(self, path: str) -> int:
        if path not in self.free_bytes:
            raise PlatformError(f"cannot stat {path}")
        return self.free_bytes[path]

    def directory_usage(self, path: str) -> DirectoryUsage:
        if path not in self.directories:
            raise PlatformError(f"{path} is not a directory")
        return self.directories[path]

    # ---------------------------- resources ---------------------------- #

    def memory_usage(self) -> MemoryUsage:
        if self.memory is None:
            raise PlatformError("/proc/meminfo not readable")
        return self.memory

    def cpu_utilization(self) -> float:
        if self.cpu_pct is None:
            raise PlatformError("/proc/stat not readable")
        return self.cpu_pct

    def top_processes(self, limit: int = 10) -> List[ProcessMemory]:
        return sorted(self.processes, key=lambda p: p.rss_bytes, reverse=True)[:limit]

    # ------------------------------- TPU ------------------------------ #

    def _require_tpu(self) -> None:
        if not self.tpu_vm:
            raise PlatformError("not a TPU VM")

    def is_tpu_vm(self) -> bool:
        return self.tpu_vm

    def tpu_type(self) -> str:
        self._require_tpu()
        return self.accelerator or "unknown"

    def chip_count(self) -> int:
        self._require_tpu()
        return self.chips

    def expected_chip_count(self) -> Optional[int]:
        return self.expected_chips

    def hbm_info(self) -> HbmInfo:
        per_chip = HBM_PER_CHIP_GB[self.tpu_type()] * GIB
        total = per_chip * self.chip_count()
        return HbmInfo(
            total_bytes=total,
            available_bytes=int(total * self.hbm_available_pct / 100.0),
            per_chip_bytes=per_chip,
        )

    def chip_temperatures(self) -> List[float]:
        self._require_tpu()
        if not self.temperatures:
            raise PlatformError("no TPU thermal zones found")
        return list(self.temperatures)

    def error_counters(self) -> ErrorCounters:
        self._require_tpu()
        return ErrorCounters(correctable=self.correctable_errors, uncorrectable=self.uncorrectable_errors)

    def ici_status(self) -> InterconnectStatus:
        if self.chip_count() <= 1:
            raise PlatformError("single chip configuration")
        bandwidth = ICI_BANDWIDTH_GBPS[self.tpu_type()]
        if self.ici_healthy:
            return InterconnectStatus(True, bandwidth, "ICI links up")
        return InterconnectStatus(False, bandwidth / 4, "2 of 8 ICI links down")

    def driver_loaded(self) -> bool:
        return self.driver_present

    def driver_version(self) -> str:
        if not self.driver:
            raise PlatformError("driver version not found")
        return self.driver

    # ----------------------------- network ---------------------------- #

    def resolve_host(self, hostname: str) -> float:
        if hostname in self.unresolvable:
            raise PlatformError(f"cannot resolve {hostname}")
        return self.dns_ms

    def tcp_connect(self, host: str, port: int, timeout_ms: int = 5000) -> float:
        if host in self.unreachable or host in self.unresolvable or f"{host}:{port}" in self.unreachable:
            raise PlatformError(f"{host}:{port} - connection failed")
        return self.tcp_ms

    def exposed_ports(self) -> List[int]:
        return sorted(self.listening)

    # ------------------------------- GCP ------------------------------ #

    def on_gcp(self) -> bool:
        return self.gcp

    def metadata(self, path: str) -> Optional[str]:
        if not self.gcp:
            raise PlatformError("metadata server unreachable")
        return self.metadata_values.get(path)

    def metadata_status_without_header(self) -> int:
        if not self.gcp:
            raise PlatformError("metadata server unreachable")
        return self.metadata_open_status

    # ---------------------------- benchmarks --------------------------- #

    def run_benchmark(self, name: str) -> float:
        if name not in self.benchmarks:
            raise PlatformError(f"{name} benchmark not available")
        return self.benchmarks[name]
