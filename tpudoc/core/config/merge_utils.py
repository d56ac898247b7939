###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

import copy
from typing import Any, Dict


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Recursively merge two config dictionaries; `override` wins.

    Nested sections merge key by key, lists and scalars are replaced whole:

        base = {"check": {"parallel": False, "skip": ["SEC-002"]}}
        override = {"check": {"skip": ["PERF-001"]}, "output": {"format": "json"}}

        deep_merge(base, override) → {
            "check": {"parallel": False, "skip": ["PERF-001"]},
            "output": {"format": "json"},
        }
    """
    result = copy.deepcopy(base)

    for key, val in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(val, dict):
            result[key] = deep_merge(result[key], val)
        else:
            result[key] = copy.deepcopy(val)

    return result
