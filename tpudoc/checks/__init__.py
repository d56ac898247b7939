###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Built-in checks.

Importing a category module registers its checks with CheckRegistry via
@register_check. `load_builtin_checks` imports all of them and returns the
resulting catalog; repeated calls are no-ops since each module is imported once.
"""

import importlib
from typing import Tuple

from tpudoc.core.engine.models import Check
from tpudoc.core.engine.registry import CheckRegistry

BUILTIN_MODULES = ("hardware", "stack", "performance", "io", "security", "config")


def load_builtin_checks() -> Tuple[Check, ...]:
    for name in BUILTIN_MODULES:
        importlib.import_module(f"{__name__}.{name}")
    return CheckRegistry.catalog()
