###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

import os
import urllib.error

import pytest

from tpudoc.core.errors import PlatformError
from tpudoc.platform import real
from tpudoc.platform.real import RealEnvironment

PROC_NET_TCP = """\
  sl  local_address rem_address   st tx_queue rx_queue tr tm->when retrnsmt   uid  timeout inode
   0: 00000000:0016 00000000:0000 0A 00000000:00000000 00:00000000 00000000     0        0 1 1
   1: 0100007F:0CEA 00000000:0000 0A 00000000:00000000 00:00000000 00000000     0        0 2 1
   2: 00000000:22B8 00000000:0000 0A 00000000:00000000 00:00000000 00000000     0        0 3 1
   3: 00000000:1F90 0A00000A:D431 01 00000000:00000000 00:00000000 00000000     0        0 4 1
"""

PROC_MEMINFO = """\
MemTotal:       16384000 kB
MemFree:         1024000 kB
MemAvailable:    8192000 kB
SwapTotal:       2048000 kB
SwapFree:        2048000 kB
HugePages_Total:       0
"""


class TestRealEnvironment:
    def test_environment_snapshot(self):
        environ = {"TPU_NAME": "v5litepod-8", "HOSTNAME": "tpu-vm-007"}
        env = RealEnvironment(environ)
        environ["TPU_NAME"] = "v4-8"
        assert env.getenv("TPU_NAME") == "v5litepod-8"
        assert env.hostname() == "tpu-vm-007"
        assert env.is_tpu_vm()
        assert env.tpu_type() == "v5e"

    def test_missing_package(self):
        with pytest.raises(PlatformError, match="not installed"):
            RealEnvironment({}).package_version("surely-not-an-installed-distribution")

    def test_exposed_ports_reads_listen_sockets(self, monkeypatch):
        tables = {"/proc/net/tcp": PROC_NET_TCP}
        monkeypatch.setattr(real, "_read_text", lambda path: tables.get(path))
        # 127.0.0.1:3306 and the established socket on 8080 are not exposed
        assert RealEnvironment({}).exposed_ports() == [22, 8888]

    def test_metadata_404_is_none(self, monkeypatch):
        def fake_urlopen(request, timeout):
            raise urllib.error.HTTPError(request.full_url, 404, "Not Found", None, None)

        monkeypatch.setattr(real.urllib.request, "urlopen", fake_urlopen)
        assert RealEnvironment({}).metadata("instance/attributes/enable-oslogin") is None

    def test_metadata_unreachable(self, monkeypatch):
        def fake_urlopen(request, timeout):
            raise urllib.error.URLError("timed out")

        monkeypatch.setattr(real.urllib.request, "urlopen", fake_urlopen)
        with pytest.raises(PlatformError, match="project/project-id"):
            RealEnvironment({}).metadata("project/project-id")

    def test_on_gcp_is_cached(self, monkeypatch):
        calls = []

        def fake_connect(self, host, port, timeout_ms=5000):
            calls.append((host, port))
            raise PlatformError("no route")

        monkeypatch.setattr(RealEnvironment, "tcp_connect", fake_connect)
        env = RealEnvironment({})
        assert not env.on_gcp()
        assert not env.on_gcp()
        assert calls == [("metadata.google.internal", 80)]

    def test_unknown_benchmark(self):
        with pytest.raises(PlatformError, match="unknown benchmark"):
            RealEnvironment({}).run_benchmark("flux_capacitor")

    def test_gcs_read_needs_bucket(self):
        with pytest.raises(PlatformError, match="test bucket"):
            RealEnvironment({}).run_benchmark("gcs_read")


class TestHostResources:
    def test_parse_meminfo_scales_kb(self):
        values = real._parse_meminfo(PROC_MEMINFO)
        assert values["MemTotal"] == 16384000 * 1024
        assert values["HugePages_Total"] == 0

    def test_memory_usage(self, monkeypatch):
        monkeypatch.setattr(real, "_read_text", lambda path: PROC_MEMINFO if path == "/proc/meminfo" else None)
        usage = RealEnvironment({}).memory_usage()
        assert usage.available_bytes == 8192000 * 1024
        assert usage.swap_used_bytes == 0

    def test_memory_usage_unreadable(self, monkeypatch):
        monkeypatch.setattr(real, "_read_text", lambda path: None)
        with pytest.raises(PlatformError, match="meminfo"):
            RealEnvironment({}).memory_usage()

    def test_cpu_times(self):
        assert real._cpu_times("cpu  100 0 50 800 50 0 0\ncpu0 1 2 3 4 5") == (1000, 850)
        assert real._cpu_times("intr 1 2 3") is None

    def test_cpu_utilization(self, monkeypatch):
        samples = iter(["cpu  100 0 100 800 0", "cpu  150 0 150 900 0"])
        monkeypatch.setattr(real, "_read_text", lambda path: next(samples))
        monkeypatch.setattr(real.time, "sleep", lambda seconds: None)
        assert RealEnvironment({}).cpu_utilization() == 50.0

    def test_directory_usage(self, tmp_path):
        (tmp_path / "sub").mkdir()
        (tmp_path / "a.bin").write_bytes(b"x" * 10)
        (tmp_path / "sub" / "b.bin").write_bytes(b"x" * 5)
        os.utime(tmp_path / "a.bin", (1000, 1000))
        os.utime(tmp_path / "sub" / "b.bin", (2000, 2000))
        usage = RealEnvironment({}).directory_usage(str(tmp_path))
        assert (usage.file_count, usage.total_bytes) == (2, 15)
        assert (usage.oldest, usage.newest) == ("a.bin", "b.bin")

    def test_directory_usage_missing(self, tmp_path):
        with pytest.raises(PlatformError, match="is not a directory"):
            RealEnvironment({}).directory_usage(str(tmp_path / "missing"))
