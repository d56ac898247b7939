###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Error taxonomy for tpu-doc.

Only ConfigurationError and OrchestrationError abort a run; both are raised
before any check starts and map to exit code 3. CheckFault and PlatformError
never escape the executor: they are converted into check outcomes.
"""


class TpuDocError(Exception):
    """Base class for all tpu-doc errors."""


class ConfigurationError(TpuDocError):
    """Invalid user input: unknown check ids, conflicting flags, bad files."""


class OrchestrationError(TpuDocError):
    """Invalid catalog: dependency cycles, dangling or duplicate ids."""


class CheckFault(TpuDocError):
    """A check raised, returned garbage, or overran its time budget."""

    def __init__(self, check_id: str, summary: str):
        super().__init__(f"{check_id}: {summary}")
        self.check_id = check_id
        self.summary = summary


class PlatformError(TpuDocError):
    """An environment query could not be answered."""
