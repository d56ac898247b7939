###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

import sys
from pathlib import Path

import pytest


def pytest_configure(config):
    # Project root first so the in-tree tpudoc package takes precedence
    project_root = Path(__file__).resolve().parent.parent.parent
    if str(project_root) not in sys.path:
        sys.path.insert(0, str(project_root))


@pytest.fixture(scope="session")
def builtin_registry():
    """Registry contents right after the built-in checks were imported."""
    from tpudoc.checks import load_builtin_checks
    from tpudoc.core.engine.registry import CheckRegistry

    load_builtin_checks()
    return dict(CheckRegistry._checks)


@pytest.fixture(autouse=True)
def _restore_registry(builtin_registry):
    # Tests may clear or extend the global registry; put the built-ins back
    from tpudoc.core.engine.registry import CheckRegistry

    yield
    CheckRegistry._checks.clear()
    CheckRegistry._checks.update(builtin_registry)
