###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

from unittest.mock import Mock

import pytest

from tpudoc.core.config.run_config import RunConfig
from tpudoc.core.engine.baseline import save_baseline
from tpudoc.core.engine.models import Check, CheckCategory, CheckOutcome, CheckStatus, DiffKind
from tpudoc.core.engine.orchestrator import run_validation
from tpudoc.core.errors import ConfigurationError, OrchestrationError
from tpudoc.platform.mock import MockEnvironment


def _check(check_id, outcome, category=CheckCategory.HARDWARE, deps=()):
    handler = Mock(return_value=outcome)
    return Check(id=check_id, name=check_id, category=category, handler=handler, dependency_ids=frozenset(deps))


class TestRunValidation:
    def setup_method(self):
        self.env = MockEnvironment.healthy_v5e_8()

    def test_all_pass(self):
        catalog = (_check("A", CheckOutcome.pass_("ok")), _check("B", CheckOutcome.pass_("ok"), deps=["A"]))
        result = run_validation(RunConfig(), self.env, catalog)

        assert result.exit_code == 0
        assert result.diff is None
        assert [r.check.id for r in result.report.records] == ["A", "B"]
        assert result.report.hostname == "tpu-vm-001"
        assert result.report.tpu_type == "v5e"

    def test_warning_exit_code(self):
        catalog = (_check("A", CheckOutcome.pass_("ok")), _check("B", CheckOutcome.warn("hmm")))
        assert run_validation(RunConfig(), self.env, catalog).exit_code == 2

    def test_failure_exit_code(self):
        catalog = (_check("A", CheckOutcome.warn("hmm")), _check("B", CheckOutcome.fail("bad")))
        assert run_validation(RunConfig(), self.env, catalog).exit_code == 1

    def test_total_includes_filtered_selection_only(self):
        catalog = (
            _check("A", CheckOutcome.pass_("ok")),
            _check("S", CheckOutcome.pass_("ok"), category=CheckCategory.SECURITY),
        )
        result = run_validation(RunConfig(categories=["security"]), self.env, catalog)
        assert [r.check.id for r in result.report.records] == ["S"]
        assert result.report.summary.total == 1
        catalog[0].handler.assert_not_called()

    def test_cycle_aborts_before_any_check(self):
        a = _check("A", CheckOutcome.pass_("ok"), deps=["B"])
        b = _check("B", CheckOutcome.pass_("ok"), deps=["A"])
        with pytest.raises(OrchestrationError):
            run_validation(RunConfig(), self.env, (a, b))
        a.handler.assert_not_called()
        b.handler.assert_not_called()

    def test_unknown_only_id_aborts(self):
        catalog = (_check("A", CheckOutcome.pass_("ok")),)
        with pytest.raises(ConfigurationError):
            run_validation(RunConfig(only=["ZZZ"]), self.env, catalog)
        catalog[0].handler.assert_not_called()

    def test_missing_baseline_aborts_before_checks(self, tmp_path):
        catalog = (_check("A", CheckOutcome.pass_("ok")),)
        config = RunConfig(baseline=str(tmp_path / "missing.json"))
        with pytest.raises(ConfigurationError):
            run_validation(config, self.env, catalog)
        catalog[0].handler.assert_not_called()

    def test_regression_fails_with_fail_on_regression(self, tmp_path):
        path = str(tmp_path / "baseline.json")
        baseline = run_validation(RunConfig(), self.env, (_check("A", CheckOutcome.pass_("ok")),)).report
        save_baseline(baseline, path)

        catalog = (_check("A", CheckOutcome.fail("bad")),)
        result = run_validation(RunConfig(baseline=path, fail_on_regression=True), self.env, catalog)

        assert result.diff.entries == {"A": DiffKind.NEW_FAILURE}
        assert result.exit_code == 1

    def test_new_warning_with_fail_on_regression_keeps_warning_code(self, tmp_path):
        path = str(tmp_path / "baseline.json")
        save_baseline(run_validation(RunConfig(), self.env, (_check("A", CheckOutcome.pass_("ok")),)).report, path)

        result = run_validation(
            RunConfig(baseline=path, fail_on_regression=True), self.env, (_check("A", CheckOutcome.warn("hmm")),)
        )
        assert result.diff.ids_with(DiffKind.NEW_WARNING) == ["A"]
        assert result.exit_code == 2

    def test_save_baseline_is_left_to_the_caller(self, tmp_path):
        path = tmp_path / "out" / "baseline.json"
        run_validation(RunConfig(save_baseline=str(path)), self.env, (_check("A", CheckOutcome.pass_("ok")),))
        assert not path.exists()

    def test_fail_fast_skips_rest(self):
        catalog = (
            _check("A", CheckOutcome.fail("bad")),
            _check("B", CheckOutcome.pass_("ok")),
        )
        result = run_validation(RunConfig(fail_fast=True), self.env, catalog)
        statuses = [r.outcome.status for r in result.report.records]
        assert statuses == [CheckStatus.FAIL, CheckStatus.SKIP]
        catalog[1].handler.assert_not_called()
