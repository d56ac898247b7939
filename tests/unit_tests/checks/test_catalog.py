###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

from tpudoc.checks import load_builtin_checks
from tpudoc.core.config.run_config import RunConfig
from tpudoc.core.engine.models import CheckCategory, CheckStatus
from tpudoc.core.engine.orchestrator import run_validation
from tpudoc.core.engine.registry import CheckRegistry
from tpudoc.core.engine.resolver import resolve, validate_catalog
from tpudoc.platform.mock import MockEnvironment

EXPECTED_COUNTS = {
    CheckCategory.HARDWARE: 6,
    CheckCategory.STACK: 7,
    CheckCategory.PERFORMANCE: 5,
    CheckCategory.IO: 6,
    CheckCategory.SECURITY: 7,
    CheckCategory.CONFIG: 5,
}


class TestBuiltinCatalog:
    def setup_method(self):
        self.catalog = load_builtin_checks()

    def test_catalog_size_and_categories(self):
        assert len(self.catalog) == 35
        for category, count in EXPECTED_COUNTS.items():
            assert sum(1 for c in self.catalog if c.category is category) == count

    def test_catalog_is_consistent(self):
        validate_catalog(self.catalog)

    def test_every_check_has_handler_and_description(self):
        for check in self.catalog:
            assert check.handler is not None, check.id
            assert check.description, check.id

    def test_loading_twice_keeps_the_same_checks(self):
        again = load_builtin_checks()
        assert again == self.catalog
        assert all(a.handler is b.handler for a, b in zip(again, self.catalog))

    def test_registry_cleared_inside_a_test(self):
        CheckRegistry.clear()
        assert load_builtin_checks() == ()

    def test_builtins_restored_for_the_next_test(self):
        assert len(CheckRegistry.catalog()) == 35

    def test_dependencies_from_catalog(self):
        by_id = {c.id: c for c in self.catalog}
        assert by_id["PERF-001"].dependency_ids == frozenset({"HW-001", "STK-001"})
        assert by_id["IO-001"].dependency_ids == frozenset({"IO-003"})
        assert by_id["SEC-003"].dependency_ids == frozenset({"SEC-001"})
        assert by_id["CFG-004"].dependency_ids == frozenset({"HW-001"})

    def test_dependents_run_in_later_waves(self):
        waves = resolve(self.catalog, self.catalog)
        wave_of = {c.id: i for i, wave in enumerate(waves) for c in wave}
        for check in self.catalog:
            for dep in check.dependency_ids:
                assert wave_of[dep] < wave_of[check.id]


class TestFullRunOnMocks:
    def setup_method(self):
        self.catalog = load_builtin_checks()

    def test_healthy_v5e_8(self):
        result = run_validation(RunConfig(parallel=True), MockEnvironment.healthy_v5e_8(), self.catalog)
        outcomes = result.report.outcomes_by_id()

        skipped = sorted(i for i, o in outcomes.items() if o.status is CheckStatus.SKIP)
        assert skipped == ["CFG-004", "IO-001"]
        assert result.report.summary.passed == 33
        assert result.exit_code == 0

    def test_thermal_warning(self):
        result = run_validation(RunConfig(categories=["hardware"]), MockEnvironment.thermal_warning(), self.catalog)
        assert result.report.outcomes_by_id()["HW-003"].status is CheckStatus.WARN
        assert result.exit_code == 2

    def test_hbm_errors_fail(self):
        result = run_validation(RunConfig(only=["HW-004"]), MockEnvironment.hbm_errors(), self.catalog)
        assert result.report.outcomes_by_id()["HW-004"].status is CheckStatus.FAIL
        assert result.exit_code == 1

    def test_non_tpu_vm(self):
        result = run_validation(RunConfig(categories=["hardware"]), MockEnvironment.non_tpu_vm(), self.catalog)
        outcomes = result.report.outcomes_by_id()
        for check_id in ("HW-001", "HW-002", "HW-003", "HW-004", "HW-005"):
            assert outcomes[check_id].status is CheckStatus.SKIP
        assert outcomes["HW-006"].status is CheckStatus.FAIL
        assert result.report.tpu_type is None
