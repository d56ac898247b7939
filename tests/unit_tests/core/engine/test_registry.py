###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

import pytest

from tpudoc.core.engine.models import Check, CheckCategory, CheckOutcome
from tpudoc.core.engine.registry import CheckRegistry, register_check, select
from tpudoc.core.errors import ConfigurationError, OrchestrationError


def _check(check_id, category=CheckCategory.HARDWARE):
    return Check(id=check_id, name=check_id, category=category)


def _registered(check_id):
    return {c.id: c for c in CheckRegistry.catalog()}[check_id]


CATALOG = (
    _check("HW-001"),
    _check("HW-002"),
    _check("STK-001", CheckCategory.STACK),
    _check("SEC-001", CheckCategory.SECURITY),
)


class TestCheckRegistry:
    def setup_method(self):
        CheckRegistry.clear()

    def teardown_method(self):
        CheckRegistry.clear()

    def test_register_decorator(self):
        @register_check("X-001", name="Example", category=CheckCategory.CONFIG, depends_on=["X-000"])
        def my_check(env):
            return CheckOutcome.pass_("ok")

        check = _registered("X-001")
        assert check.name == "Example"
        assert check.category is CheckCategory.CONFIG
        assert check.dependency_ids == frozenset({"X-000"})
        assert check.handler is my_check

    def test_description_falls_back_to_docstring(self):
        @register_check("X-001", name="Example", category=CheckCategory.CONFIG)
        def my_check(env):
            """Checks something."""
            return CheckOutcome.pass_("ok")

        assert _registered("X-001").description == "Checks something."

    def test_catalog_sorted_by_category_then_id(self):
        @register_check("STK-002", name="b", category=CheckCategory.STACK)
        def b(env):
            return CheckOutcome.pass_("ok")

        @register_check("HW-002", name="a", category=CheckCategory.HARDWARE)
        def a(env):
            return CheckOutcome.pass_("ok")

        @register_check("HW-001", name="c", category=CheckCategory.HARDWARE)
        def c(env):
            return CheckOutcome.pass_("ok")

        assert [c.id for c in CheckRegistry.catalog()] == ["HW-001", "HW-002", "STK-002"]

    def test_reregistration_overrides(self):
        @register_check("X-001", name="first", category=CheckCategory.CONFIG)
        def first(env):
            return CheckOutcome.pass_("ok")

        @register_check("X-001", name="second", category=CheckCategory.CONFIG)
        def second(env):
            return CheckOutcome.pass_("ok")

        assert _registered("X-001").name == "second"
        assert len(CheckRegistry.catalog()) == 1


class TestSelect:
    def test_no_filters_selects_everything(self):
        assert select(CATALOG) == CATALOG

    def test_all_category_selects_everything(self):
        assert select(CATALOG, categories=["all"]) == CATALOG

    def test_category_filter_preserves_order(self):
        selected = select(CATALOG, categories=["security", "hardware"])
        assert [c.id for c in selected] == ["HW-001", "HW-002", "SEC-001"]

    def test_only_wins_over_skip_semantics(self):
        selected = select(CATALOG, only_ids=["STK-001", "HW-002"])
        assert [c.id for c in selected] == ["HW-002", "STK-001"]

    def test_skip_removes_ids(self):
        selected = select(CATALOG, skip_ids=["HW-001"])
        assert [c.id for c in selected] == ["HW-002", "STK-001", "SEC-001"]

    def test_only_intersects_with_category(self):
        selected = select(CATALOG, categories=["hardware"], only_ids=["STK-001"])
        assert selected == ()

    def test_unknown_only_id_raises(self):
        with pytest.raises(ConfigurationError, match="NOPE-1"):
            select(CATALOG, only_ids=["NOPE-1"])

    def test_unknown_skip_id_raises(self):
        with pytest.raises(ConfigurationError, match="Unknown check id"):
            select(CATALOG, skip_ids=["HW-999"])

    def test_unknown_category_raises(self):
        with pytest.raises(ConfigurationError, match="Unknown check category"):
            select(CATALOG, categories=["gpu"])

    def test_duplicate_catalog_id_raises(self):
        with pytest.raises(OrchestrationError, match="Duplicate"):
            select(CATALOG + (_check("HW-001"),))
