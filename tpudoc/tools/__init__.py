###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Standalone diagnostics behind the `stack`, `cache`, `snapshot` and `audit`
subcommands. Each one reads the host through an EnvironmentContext and
returns a plain result object with text and JSON renderers.
"""
