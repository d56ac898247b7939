###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

import pytest

from tpudoc.core.engine.models import EnvironmentFingerprint
from tpudoc.core.errors import PlatformError
from tpudoc.platform.context import GIB, parse_tpu_type
from tpudoc.platform.mock import MockEnvironment


@pytest.mark.parametrize(
    "name, expected",
    [
        ("v5litepod-8", "v5e"),
        ("v5e-16", "v5e"),
        ("v5p-128", "v5p"),
        ("v6e-4", "v6e"),
        ("v4-32", "v4"),
        ("tpu7x-8-v7", "v7"),
        ("a100", "unknown"),
    ],
)
def test_parse_tpu_type(name, expected):
    assert parse_tpu_type(name) == expected


class TestMockEnvironment:
    def test_fingerprint(self):
        assert MockEnvironment.healthy_v5e_8().fingerprint() == EnvironmentFingerprint("tpu-vm-001", "v5e")
        assert MockEnvironment.non_tpu_vm().fingerprint() == EnvironmentFingerprint("workstation", None)

    def test_hbm_info(self):
        hbm = MockEnvironment.low_hbm_availability().hbm_info()
        assert hbm.total_bytes == 128 * GIB
        assert hbm.per_chip_bytes == 16 * GIB
        assert hbm.availability_pct() == pytest.approx(60.0)

    def test_tpu_queries_fail_off_tpu(self):
        env = MockEnvironment.non_tpu_vm()
        with pytest.raises(PlatformError):
            env.chip_count()
        with pytest.raises(PlatformError):
            env.metadata("project/project-id")

    def test_with_env_is_a_copy(self):
        base = MockEnvironment.healthy_v5e_8()
        derived = base.with_env(JAX_PLATFORMS="tpu", CHECKPOINT_DIR=None)
        assert derived.getenv("JAX_PLATFORMS") == "tpu"
        assert derived.getenv("CHECKPOINT_DIR") is None
        assert base.getenv("CHECKPOINT_DIR") == "/mnt/checkpoints"
        assert base.getenv("JAX_PLATFORMS") is None

    def test_environ_is_read_only(self):
        env = MockEnvironment.healthy_v5e_8()
        with pytest.raises(TypeError):
            env.env["TPU_NAME"] = "v4-8"

    def test_single_chip_has_no_interconnect(self):
        with pytest.raises(PlatformError, match="single chip"):
            MockEnvironment.single_chip_v5e().ici_status()
