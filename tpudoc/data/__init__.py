###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Reference data shipped with tpu-doc.

    compatibility.yaml   JAX / jaxlib / libtpu / Python compatibility matrix
    tpu_specs.yaml       per-generation TPU chip figures
"""

import os

from tpudoc.core.config.yaml_loader import parse_yaml

DATA_DIR = os.path.dirname(os.path.abspath(__file__))


def load_data_file(name: str) -> dict:
    """Parse a packaged YAML file; no `${VAR}` substitution is applied."""
    return parse_yaml(os.path.join(DATA_DIR, name), environ={})
