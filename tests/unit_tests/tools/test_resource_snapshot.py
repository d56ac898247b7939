###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

from dataclasses import replace
from datetime import datetime, timezone

from tpudoc.platform.context import GIB, MemoryUsage
from tpudoc.platform.mock import MockEnvironment
from tpudoc.tools.resource_snapshot import CLEAR_SCREEN, format_snapshot_text, take_snapshot, watch

NOON = datetime(2025, 1, 3, 12, 30, 5, tzinfo=timezone.utc)


class TestTakeSnapshot:
    def test_tpu_host(self):
        snap = take_snapshot(MockEnvironment.healthy_v5e_8(), now=NOON)
        assert snap.timestamp == "12:30:05 UTC"
        assert snap.tpu.tpu_type == "v5e"
        assert snap.tpu.chip_count == 8
        assert snap.tpu.chip_count_valid is True
        assert snap.tpu.hbm_total_gb == 128.0
        assert snap.tpu.peak_bf16_tflops == 197
        assert snap.tpu.avg_temperature_c == 65.25
        assert snap.tpu.hbm_used_pct is None
        assert snap.cpu_pct == 12.5
        assert [p.name for p in snap.processes] == ["python3", "containerd", "systemd"]

    def test_unavailable_queries_are_empty(self):
        snap = take_snapshot(MockEnvironment.non_tpu_vm(), now=NOON)
        assert snap.tpu is None
        assert snap.cpu_pct is None
        assert snap.memory is None
        assert snap.processes == ()

    def test_to_dict(self):
        data = take_snapshot(MockEnvironment.healthy_v5e_8(), now=NOON).to_dict()
        assert data["system"]["memory"]["used_gb"] == 42.0
        assert data["tpu"]["chip_count"] == 8
        assert data["top_processes"][0] == {"pid": 4242, "name": "python3", "rss_mb": 24 * 1024}


class TestSnapshotText:
    def test_sections(self):
        text = format_snapshot_text(take_snapshot(MockEnvironment.healthy_v5e_8(), now=NOON))
        assert "RESOURCE SNAPSHOT - 12:30:05 UTC" in text
        assert "HBM Used:      N/A" in text
        assert "Peak BF16:     197 TFLOPS" in text
        assert "Memory:        42.0 / 192.0 GB (21.9%)" in text
        assert "Swap:" not in text
        assert "TOP PROCESSES (by memory)" in text

    def test_swap_shown_when_configured(self):
        memory = MemoryUsage(16 * GIB, 8 * GIB, swap_total_bytes=4 * GIB, swap_free_bytes=3 * GIB)
        env = replace(MockEnvironment.healthy_v5e_8(), memory=memory)
        assert "Swap:          1.0 / 4.0 GB" in format_snapshot_text(take_snapshot(env))

    def test_unexpected_chip_count_is_flagged(self):
        env = replace(MockEnvironment.healthy_v5e_8(), chips=3)
        assert "Chips:         3 (unexpected for this TPU type)" in format_snapshot_text(take_snapshot(env))

    def test_non_tpu_host(self):
        text = format_snapshot_text(take_snapshot(MockEnvironment.non_tpu_vm()))
        assert "Not a TPU VM" in text
        assert "CPU:           N/A" in text
        assert "TOP PROCESSES" not in text


class TestWatch:
    def test_redraws_until_iterations(self, capsys):
        sleeps = []
        frames = watch(MockEnvironment.healthy_v5e_8(), 5, format_snapshot_text, iterations=3, sleep=sleeps.append)
        out = capsys.readouterr().out
        assert frames == 3
        assert sleeps == [5, 5]
        assert out.count(CLEAR_SCREEN) == 3
        assert "Refreshing every 5 seconds... (Ctrl+C to stop)" in out

    def test_interrupt_stops(self, capsys):
        def interrupt(_):
            raise KeyboardInterrupt

        assert watch(MockEnvironment.healthy_v5e_8(), 1, format_snapshot_text, sleep=interrupt) == 1
        assert capsys.readouterr().out.count(CLEAR_SCREEN) == 1
