###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""Per-generation TPU chip specifications."""

import functools
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from tpudoc.core.errors import ConfigurationError
from tpudoc.data import load_data_file

SPECS_FILE = "tpu_specs.yaml"


@dataclass(frozen=True)
class TpuSpec:
    name: str
    hbm_per_chip_gb: int
    chips_per_host: Tuple[int, ...]
    mxu_count: int
    bf16_tflops: int
    ici_bandwidth_gbps: int


@functools.lru_cache(maxsize=None)
def load_specs() -> Dict[str, TpuSpec]:
    data = load_data_file(SPECS_FILE)
    try:
        return {
            str(key).lower(): TpuSpec(
                name=str(entry["name"]),
                hbm_per_chip_gb=int(entry["hbm_per_chip_gb"]),
                chips_per_host=tuple(int(n) for n in entry["chips_per_host"]),
                mxu_count=int(entry["mxu_count"]),
                bf16_tflops=int(entry["bf16_tflops"]),
                ici_bandwidth_gbps=int(entry["ici_bandwidth_gbps"]),
            )
            for key, entry in data["tpu_types"].items()
        }
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigurationError(f"Malformed TPU spec table: {e}") from e


def get_spec(tpu_type: Optional[str]) -> Optional[TpuSpec]:
    """Case-insensitive lookup; None for generations not in the table."""
    if not tpu_type:
        return None
    return load_specs().get(tpu_type.lower())


def is_valid_chip_count(tpu_type: Optional[str], count: int) -> bool:
    spec = get_spec(tpu_type)
    return spec is not None and count in spec.chips_per_host


def get_peak_tflops(tpu_type: Optional[str]) -> Optional[int]:
    spec = get_spec(tpu_type)
    return spec.bf16_tflops if spec else None
