###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

import logging

from tpudoc.core.utils import logger
from tpudoc.core.utils.logger import LoggerConfig, module_format, setup_logger


class TestLogger:
    def teardown_method(self):
        setup_logger(LoggerConfig())

    def test_module_format_pads_location(self):
        formatted = module_format("x", 1)
        assert formatted.endswith("x.py:1] ")
        assert formatted.startswith("[-")

    def test_file_sinks_per_level(self, tmp_path):
        setup_logger(LoggerConfig(stderr_sink_level="ERROR", log_dir=str(tmp_path), hostname="tpu-vm-001"))

        logger.info("[Test] hello from info")
        logger.warning("[Test] careful")

        info_log = (tmp_path / "tpu-doc-info.log").read_text()
        warning_log = (tmp_path / "tpu-doc-warning.log").read_text()
        assert "hello from info" in info_log
        assert "careful" in info_log
        assert "[tpu-vm-001]" in info_log
        assert "hello from info" not in warning_log
        assert "careful" in warning_log
        assert not (tmp_path / "tpu-doc-debug.log").exists()

    def test_stdlib_logging_is_intercepted(self, tmp_path):
        setup_logger(LoggerConfig(stderr_sink_level="ERROR", log_dir=str(tmp_path)))

        logging.getLogger("tpudoc.core.engine.registry").warning("routed through loguru")

        assert "routed through loguru" in (tmp_path / "tpu-doc-warning.log").read_text()
