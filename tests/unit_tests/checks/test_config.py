###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

from tpudoc.checks.config import (
    check_distributed_config,
    check_jax_config,
    check_logging_config,
    check_memory_config,
    check_xla_flags,
)
from tpudoc.core.engine.models import CheckStatus
from tpudoc.platform.mock import MockEnvironment


class TestConfigChecks:
    def setup_method(self):
        self.env = MockEnvironment.healthy_v5e_8()

    def test_xla_flags_unset(self):
        assert check_xla_flags(self.env).message == "XLA_FLAGS not set (using defaults)"

    def test_xla_flags_clean(self):
        env = self.env.with_env(XLA_FLAGS="--xla_tpu_enable_latency_hiding_scheduler=true")
        assert check_xla_flags(env).message == "XLA_FLAGS configuration is optimal"

    def test_xla_flags_debug(self):
        env = self.env.with_env(XLA_FLAGS="--xla_dump_to=/tmp/dump --xla_disable_hlo_passes=fusion")
        outcome = check_xla_flags(env)
        assert outcome.status is CheckStatus.WARN
        assert outcome.message == "XLA_FLAGS has 2 potential issues"
        assert "HLO passes are disabled" in outcome.details

    def test_jax_platforms(self):
        assert check_jax_config(self.env).status is CheckStatus.PASS
        assert check_jax_config(self.env.with_env(JAX_PLATFORMS="tpu,cpu")).status is CheckStatus.PASS
        assert check_jax_config(self.env.with_env(JAX_PLATFORMS="cpu")).status is CheckStatus.WARN

    def test_memory_fraction(self):
        assert check_memory_config(self.env.with_env(XLA_PYTHON_CLIENT_MEM_FRACTION="0.9")).status is CheckStatus.PASS
        outcome = check_memory_config(self.env.with_env(XLA_PYTHON_CLIENT_MEM_FRACTION="0.99"))
        assert outcome.status is CheckStatus.WARN
        assert "0.99" in outcome.details

    def test_memory_fraction_unparseable_is_ignored(self):
        env = self.env.with_env(XLA_PYTHON_CLIENT_MEM_FRACTION="lots")
        assert check_memory_config(env).status is CheckStatus.PASS

    def test_distributed_single_host(self):
        assert check_distributed_config(self.env).reason == "Single-host configuration"

    def test_distributed_missing_coordinator(self):
        env = self.env.with_env(TPU_WORKER_HOSTNAMES="w0,w1,w2,w3")
        assert check_distributed_config(env).status is CheckStatus.FAIL

    def test_distributed_ok(self):
        env = self.env.with_env(TPU_WORKER_HOSTNAMES="w0,w1", JAX_COORDINATOR_ADDRESS="w0:1234")
        assert check_distributed_config(env).status is CheckStatus.PASS

    def test_logging(self):
        assert check_logging_config(self.env).status is CheckStatus.PASS
        env = self.env.with_env(TF_CPP_MIN_LOG_LEVEL="0", JAX_DEBUG_NANS="1")
        outcome = check_logging_config(env)
        assert outcome.status is CheckStatus.WARN
        assert outcome.details.count(";") == 1
