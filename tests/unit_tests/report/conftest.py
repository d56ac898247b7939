###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

import pytest

from tpudoc.core.engine.aggregator import aggregate
from tpudoc.core.engine.models import (
    Check,
    CheckCategory,
    CheckOutcome,
    EnvironmentFingerprint,
    ExecutionRecord,
)


@pytest.fixture
def sample_report():
    records = [
        ExecutionRecord(
            Check("HW-001", "TPU Chip Detection", CheckCategory.HARDWARE),
            CheckOutcome.pass_("Detected 8 TPU chips").with_duration(12),
            started_at=10.0,
            finished_at=10.5,
        ),
        ExecutionRecord(
            Check("HW-003", "Thermal Status", CheckCategory.HARDWARE),
            CheckOutcome.warn("Elevated temperature", "max 78.0C").with_duration(40),
            started_at=10.5,
            finished_at=11.0,
        ),
        ExecutionRecord(
            Check("STK-001", "JAX Version", CheckCategory.STACK),
            CheckOutcome.fail("JAX not installed", "pip install jax[tpu]").with_duration(5),
            started_at=11.0,
            finished_at=12.0,
        ),
        ExecutionRecord(
            Check("IO-001", "GCS Read Throughput", CheckCategory.IO),
            CheckOutcome.skip("gsutil not available"),
        ),
    ]
    return aggregate(records, EnvironmentFingerprint("tpu-vm-001", "v5e"), timestamp=1_700_000_000)
