###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

from dataclasses import replace

from tpudoc.checks.hardware import (
    check_device_detection,
    check_driver,
    check_error_counters,
    check_hbm_availability,
    check_interconnect,
    check_thermal_status,
)
from tpudoc.core.engine.models import CheckStatus
from tpudoc.platform.mock import MockEnvironment


class TestDeviceDetection:
    def test_healthy(self):
        outcome = check_device_detection(MockEnvironment.healthy_v5e_8())
        assert outcome.status is CheckStatus.PASS
        assert outcome.message == "8 chips detected"

    def test_fewer_than_expected(self):
        env = replace(MockEnvironment.healthy_v5e_8(), chips=6, expected_chips=8)
        outcome = check_device_detection(env)
        assert outcome.status is CheckStatus.FAIL
        assert "6 found, 8 expected" in outcome.message

    def test_more_than_expected(self):
        env = replace(MockEnvironment.healthy_v5e_8(), expected_chips=4)
        assert check_device_detection(env).status is CheckStatus.WARN

    def test_no_chips(self):
        env = replace(MockEnvironment.healthy_v5e_8(), chips=0)
        assert check_device_detection(env).message == "No TPU chips detected"

    def test_not_a_tpu_vm(self):
        outcome = check_device_detection(MockEnvironment.non_tpu_vm())
        assert outcome.status is CheckStatus.SKIP
        assert outcome.reason == "Not running on a TPU VM"


class TestHbm:
    def test_healthy(self):
        assert check_hbm_availability(MockEnvironment.healthy_v5e_8()).status is CheckStatus.PASS

    def test_low_availability_warns(self):
        outcome = check_hbm_availability(MockEnvironment.low_hbm_availability())
        assert outcome.status is CheckStatus.WARN
        assert "60.0%" in outcome.message

    def test_critical_availability_fails(self):
        env = replace(MockEnvironment.healthy_v5e_8(), hbm_available_pct=40.0)
        assert check_hbm_availability(env).status is CheckStatus.FAIL


class TestThermal:
    def test_healthy(self):
        outcome = check_thermal_status(MockEnvironment.healthy_v5e_8())
        assert outcome.status is CheckStatus.PASS
        assert outcome.message == "Max temperature: 67.0C"

    def test_warning(self):
        outcome = check_thermal_status(MockEnvironment.thermal_warning())
        assert outcome.status is CheckStatus.WARN
        assert "78.0C" in outcome.message

    def test_critical(self):
        assert check_thermal_status(MockEnvironment.thermal_critical()).status is CheckStatus.FAIL

    def test_no_thermal_zones_skips(self):
        env = replace(MockEnvironment.healthy_v5e_8(), temperatures=())
        assert check_thermal_status(env).status is CheckStatus.SKIP


class TestErrorCounters:
    def test_uncorrectable_fail(self):
        outcome = check_error_counters(MockEnvironment.hbm_errors())
        assert outcome.status is CheckStatus.FAIL
        assert outcome.message == "5 uncorrectable errors detected"

    def test_correctable_warn(self):
        assert check_error_counters(MockEnvironment.with_correctable_errors()).status is CheckStatus.WARN

    def test_clean(self):
        assert check_error_counters(MockEnvironment.healthy_v5e_8()).message == "No hardware errors"


class TestInterconnect:
    def test_healthy(self):
        assert check_interconnect(MockEnvironment.healthy_v5e_8()).status is CheckStatus.PASS

    def test_link_errors(self):
        assert check_interconnect(MockEnvironment.ici_errors()).status is CheckStatus.FAIL

    def test_single_chip_skips(self):
        outcome = check_interconnect(MockEnvironment.single_chip_v5e())
        assert outcome.status is CheckStatus.SKIP
        assert "Single-chip" in outcome.reason


class TestDriver:
    def test_loaded(self):
        outcome = check_driver(MockEnvironment.healthy_v5e_8())
        assert outcome.status is CheckStatus.PASS
        assert outcome.message == "Driver version: 1.0.0"

    def test_missing(self):
        assert check_driver(MockEnvironment.missing_driver()).status is CheckStatus.FAIL

    def test_version_unknown(self):
        env = replace(MockEnvironment.healthy_v5e_8(), driver=None)
        assert check_driver(env).status is CheckStatus.WARN
