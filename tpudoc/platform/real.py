###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Probes for the machine tpu-doc is running on.

Sources, in order of preference: environment variables set by the TPU VM
image, sysfs/procfs, then the GCP metadata server. Nothing here writes to the
system except the disk benchmark, which removes its scratch file.
"""

from __future__ import annotations

import glob
import os
import platform
import shutil
import socket
import subprocess
import sys
import tempfile
import time
import urllib.error
import urllib.request
from importlib import metadata as importlib_metadata
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from tpudoc.core.errors import PlatformError
from tpudoc.platform import benchmarks
from tpudoc.platform.context import (
    DEFAULT_CHIPS_PER_HOST,
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
    parse_tpu_type,
)

METADATA_HOST = "metadata.google.internal"
METADATA_ROOT = f"http://{METADATA_HOST}/computeMetadata/v1/"
METADATA_TIMEOUT_S = 5
BENCHMARK_TIMEOUT_S = 300
DISK_TEST_BYTES = 100 * 1024 * 1024
CPU_SAMPLE_S = 0.1
MIN_PROCESS_RSS = 1024 * 1024


def run_cmd(cmd: Sequence[str], timeout_s: int = 5) -> Tuple[int, str, str]:
    p = subprocess.run(
        list(cmd),
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        timeout=timeout_s,
        check=False,
    )
    return p.returncode, (p.stdout or "").strip(), (p.stderr or "").strip()


def _read_text(path: str) -> Optional[str]:
    try:
        with open(path, "r") as f:
            return f.read().strip()
    except OSError:
        return None


def _accel_entries() -> List[str]:
    try:
        return sorted(x for x in os.listdir("/sys/class/accel") if x.startswith("accel"))
    except OSError:
        return []


def _parse_meminfo(content: str) -> Dict[str, int]:
    """Parse `Key:   123 kB` lines (/proc/meminfo, /proc/<pid>/status) into bytes."""
    values = {}
    for line in content.splitlines():
        key, sep, rest = line.partition(":")
        parts = rest.split()
        if not sep or not parts or not parts[0].isdigit():
            continue
        scale = 1024 if len(parts) > 1 and parts[1].lower() == "kb" else 1
        values[key.strip()] = int(parts[0]) * scale
    return values


def _cpu_times(content: str) -> Optional[Tuple[int, int]]:
    """(total, idle + iowait) jiffies from the aggregate "cpu" line of /proc/stat."""
    for line in content.splitlines():
        if not line.startswith("cpu "):
            continue
        fields = [int(x) for x in line.split()[1:6] if x.isdigit()]
        if len(fields) < 4:
            return None
        iowait = fields[4] if len(fields) > 4 else 0
        return sum(fields), fields[3] + iowait
    return None


def _int_or_none(value: Optional[str]) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except ValueError:
        return None


class RealEnvironment(EnvironmentContext):
    def __init__(self, environ: Optional[Mapping[str, str]] = None):
        self._env = MappingProxyType(dict(os.environ if environ is None else environ))
        self._on_gcp: Optional[bool] = None

    # ------------------------------ host ------------------------------ #

    def hostname(self) -> str:
        return self._env.get("HOSTNAME") or socket.gethostname()

    @property
    def env(self) -> Mapping[str, str]:
        return self._env

    def python_version(self) -> str:
        return platform.python_version()

    def package_version(self, package: str) -> str:
        try:
            return importlib_metadata.version(package)
        except importlib_metadata.PackageNotFoundError:
            raise PlatformError(f"{package} not installed") from None

    def tool_available(self, tool: str) -> bool:
        return shutil.which(tool) is not None

    def path_exists(self, path: str) -> bool:
        return os.path.exists(path)

    def is_writable(self, path: str) -> bool:
        return os.path.isdir(path) and os.access(path, os.W_OK | os.X_OK)

    def disk_free_bytes(self, path: str) -> int:
        try:
            return shutil.disk_usage(path).free
        except OSError as e:
            raise PlatformError(f"cannot stat {path}: {e}") from e

    def directory_usage(self, path: str) -> DirectoryUsage:
        if not os.path.isdir(path):
            raise PlatformError(f"{path} is not a directory")
        count, total = 0, 0
        oldest: Optional[Tuple[float, str]] = None
        newest: Optional[Tuple[float, str]] = None
        for root, _, files in os.walk(path):
            for name in files:
                try:
                    st = os.stat(os.path.join(root, name))
                except OSError:
                    continue
                count += 1
                total += st.st_size
                if oldest is None or st.st_mtime < oldest[0]:
                    oldest = (st.st_mtime, name)
                if newest is None or st.st_mtime > newest[0]:
                    newest = (st.st_mtime, name)
        return DirectoryUsage(
            file_count=count,
            total_bytes=total,
            oldest=oldest[1] if oldest else None,
            newest=newest[1] if newest else None,
        )

    # ---------------------------- resources ---------------------------- #

    def memory_usage(self) -> MemoryUsage:
        meminfo = _parse_meminfo(_read_text("/proc/meminfo") or "")
        if "MemTotal" not in meminfo:
            raise PlatformError("/proc/meminfo not readable")
        return MemoryUsage(
            total_bytes=meminfo["MemTotal"],
            available_bytes=meminfo.get("MemAvailable", meminfo.get("MemFree", 0)),
            swap_total_bytes=meminfo.get("SwapTotal", 0),
            swap_free_bytes=meminfo.get("SwapFree", 0),
        )

    def cpu_utilization(self) -> float:
        first = _cpu_times(_read_text("/proc/stat") or "")
        time.sleep(CPU_SAMPLE_S)
        second = _cpu_times(_read_text("/proc/stat") or "")
        if first is None or second is None:
            raise PlatformError("/proc/stat not readable")
        total = second[0] - first[0]
        idle = second[1] - first[1]
        if total <= 0:
            return 0.0
        return (total - idle) / total * 100.0

    def top_processes(self, limit: int = 10) -> List[ProcessMemory]:
        try:
            pids = [int(p) for p in os.listdir("/proc") if p.isdigit()]
        except OSError as e:
            raise PlatformError(f"cannot list /proc: {e}") from e
        processes = []
        for pid in pids:
            status = _read_text(f"/proc/{pid}/status")
            if not status:
                continue
            rss = _parse_meminfo(status).get("VmRSS", 0)
            if rss < MIN_PROCESS_RSS:
                continue
            name = _read_text(f"/proc/{pid}/comm") or "unknown"
            processes.append(ProcessMemory(pid=pid, name=name, rss_bytes=rss))
        processes.sort(key=lambda p: p.rss_bytes, reverse=True)
        return processes[:limit]

    # ------------------------------- TPU ------------------------------ #

    def is_tpu_vm(self) -> bool:
        return bool(self._env.get("TPU_NAME")) or bool(_accel_entries())

    def tpu_type(self) -> str:
        name = self._env.get("TPU_NAME") or self._env.get("TPU_ACCELERATOR_TYPE")
        if name:
            return parse_tpu_type(name)
        accelerator = self.metadata("instance/attributes/accelerator-type")
        if accelerator:
            return parse_tpu_type(accelerator)
        raise PlatformError("TPU type not detectable")

    def chip_count(self) -> int:
        configured = _int_or_none(self._env.get("TPU_CHIPS_PER_HOST"))
        if configured is not None:
            return configured
        entries = _accel_entries() or sorted(os.path.basename(p) for p in glob.glob("/dev/accel*"))
        if entries:
            return len(entries)
        if not self.is_tpu_vm():
            raise PlatformError("no TPU devices found")
        return DEFAULT_CHIPS_PER_HOST[self.tpu_type()]

    def expected_chip_count(self) -> Optional[int]:
        return _int_or_none(self._env.get("TPU_EXPECTED_CHIPS"))

    def hbm_info(self) -> HbmInfo:
        # Live HBM usage needs libtpu; report capacity with the runtime's
        # default 95% usable share.
        per_chip = HBM_PER_CHIP_GB[self.tpu_type()] * GIB
        total = per_chip * self.chip_count()
        return HbmInfo(total_bytes=total, available_bytes=int(total * 0.95), per_chip_bytes=per_chip)

    def chip_temperatures(self) -> List[float]:
        temperatures = []
        for zone in sorted(glob.glob("/sys/class/thermal/thermal_zone*")):
            zone_type = _read_text(os.path.join(zone, "type")) or ""
            if "tpu" not in zone_type and "accel" not in zone_type:
                continue
            milli = _int_or_none(_read_text(os.path.join(zone, "temp")))
            if milli is not None:
                temperatures.append(milli / 1000.0)
        if not temperatures:
            raise PlatformError("no TPU thermal zones found")
        return temperatures

    def error_counters(self) -> ErrorCounters:
        return ErrorCounters(
            correctable=_int_or_none(self._env.get("TPU_CORRECTABLE_ERRORS")) or 0,
            uncorrectable=_int_or_none(self._env.get("TPU_UNCORRECTABLE_ERRORS")) or 0,
        )

    def ici_status(self) -> InterconnectStatus:
        if self.chip_count() <= 1:
            raise PlatformError("single chip configuration")
        health = (self._env.get("TPU_HEALTH") or "").lower()
        return InterconnectStatus(
            healthy=health not in ("ici_errors", "ici-errors"),
            bandwidth_gbps=ICI_BANDWIDTH_GBPS[self.tpu_type()],
            details="ICI status inferred from TPU type",
        )

    def driver_loaded(self) -> bool:
        modules = _read_text("/proc/modules") or ""
        if any(line.startswith(("tpu", "accel")) for line in modules.splitlines()):
            return True
        return bool(glob.glob("/dev/accel*"))

    def driver_version(self) -> str:
        for path in ("/sys/module/tpu/version", "/sys/module/accel/version"):
            version = _read_text(path)
            if version:
                return version
        version = self._env.get("TPU_DRIVER_VERSION")
        if version:
            return version
        raise PlatformError("driver version not found")

    # ----------------------------- network ---------------------------- #

    def resolve_host(self, hostname: str) -> float:
        start = time.monotonic()
        try:
            socket.getaddrinfo(hostname, None)
        except socket.gaierror as e:
            raise PlatformError(f"cannot resolve {hostname}: {e}") from e
        return (time.monotonic() - start) * 1000.0

    def tcp_connect(self, host: str, port: int, timeout_ms: int = 5000) -> float:
        start = time.monotonic()
        try:
            with socket.create_connection((host, port), timeout=timeout_ms / 1000.0):
                pass
        except OSError as e:
            raise PlatformError(f"{host}:{port} - {e}") from e
        return (time.monotonic() - start) * 1000.0

    def exposed_ports(self) -> List[int]:
        ports = set()
        for table in ("/proc/net/tcp", "/proc/net/tcp6"):
            content = _read_text(table)
            if not content:
                continue
            for line in content.splitlines()[1:]:
                parts = line.split()
                if len(parts) < 4 or parts[3] != "0A":  # LISTEN
                    continue
                address, _, port_hex = parts[1].rpartition(":")
                if set(address) == {"0"}:
                    ports.add(int(port_hex, 16))
        return sorted(ports)

    # ------------------------------- GCP ------------------------------ #

    def on_gcp(self) -> bool:
        if self._on_gcp is None:
            try:
                self.tcp_connect(METADATA_HOST, 80, timeout_ms=1000)
                self._on_gcp = True
            except PlatformError:
                self._on_gcp = False
        return self._on_gcp

    def metadata(self, path: str) -> Optional[str]:
        request = urllib.request.Request(METADATA_ROOT + path, headers={"Metadata-Flavor": "Google"})
        try:
            with urllib.request.urlopen(request, timeout=METADATA_TIMEOUT_S) as response:
                return response.read().decode("utf-8").strip()
        except urllib.error.HTTPError as e:
            if e.code == 404:
                return None
            raise PlatformError(f"metadata {path}: HTTP {e.code}") from e
        except (urllib.error.URLError, OSError) as e:
            raise PlatformError(f"metadata {path}: {e}") from e

    def metadata_status_without_header(self) -> int:
        try:
            with urllib.request.urlopen(METADATA_ROOT, timeout=METADATA_TIMEOUT_S) as response:
                return response.status
        except urllib.error.HTTPError as e:
            return e.code
        except (urllib.error.URLError, OSError) as e:
            raise PlatformError(f"metadata server unreachable: {e}") from e

    # ---------------------------- benchmarks --------------------------- #

    def run_benchmark(self, name: str) -> float:
        if name == "disk_write":
            return self._disk_write_gbps()
        if name == "gcs_read":
            raise PlatformError("GCS throughput test requires configured test bucket")
        script = benchmarks.SCRIPTS.get(name)
        if script is None:
            raise PlatformError(f"unknown benchmark '{name}'")
        try:
            rc, out, err = run_cmd([sys.executable, "-c", script], timeout_s=BENCHMARK_TIMEOUT_S)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise PlatformError(f"could not run benchmark: {e}") from e
        if rc != 0:
            if "No module named 'jax'" in err:
                raise PlatformError("JAX not installed")
            first = err.splitlines()[-1] if err else "unknown error"
            raise PlatformError(f"benchmark failed: {first}")
        try:
            return float(out.splitlines()[-1])
        except (IndexError, ValueError):
            raise PlatformError(f"could not parse benchmark output: {out!r}") from None

    def _disk_write_gbps(self) -> float:
        block = b"\0" * (1024 * 1024)
        try:
            with tempfile.NamedTemporaryFile(prefix="tpu-doc-disk-") as f:
                start = time.monotonic()
                for _ in range(DISK_TEST_BYTES // len(block)):
                    f.write(block)
                f.flush()
                os.fsync(f.fileno())
                elapsed = time.monotonic() - start
        except OSError as e:
            raise PlatformError(f"disk throughput test failed: {e}") from e
        return DISK_TEST_BYTES / GIB / max(elapsed, 1e-9)

