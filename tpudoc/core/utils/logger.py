###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

import inspect
import logging
import os
import socket
import sys
from dataclasses import dataclass
from typing import Any, List, Optional

from loguru import logger as _loguru_logger

# Usable before setup_logger() is called; loguru's default stderr sink applies.
_logger = _loguru_logger
_handler_ids: List[int] = []

# Global variable to track the maximum module format width
_max_module_format_width = 23

stderr_sink_format = (
    "[<green>{time:YYYYMMDD HH:mm:ss}</>]"
    "[<cyan>{extra[host]}</>]"
    "<level>{extra[level_padded]}</level>"
    "<level>{message}</level>"
)
file_sink_format = (
    "[<green>{time:YYYYMMDD HH:mm:ss.SSS}</>]"
    "[<cyan>{extra[host]}</>]"
    "[<magenta>pid-{process}/{thread.name}</>]"
    "<level>{extra[level_padded]}</level>"
    "<level>{message}</level>"
)

SINKED_LEVELS = ["debug", "info", "warning", "error"]


@dataclass(frozen=True)
class LoggerConfig:
    stderr_sink_level: str = "WARNING"
    log_dir: Optional[str] = None
    file_sink_level: str = "INFO"
    hostname: str = ""


def format_level_with_padding(record) -> bool:
    """
    Add a formatted level field with padding outside brackets.

    Examples:
        INFO     -> "[INFO]     " (total 11 chars)
        WARNING  -> "[WARNING]  " (total 11 chars)
        CRITICAL -> "[CRITICAL]" (total 11 chars)
    """
    record["extra"]["level_padded"] = f"[{record['level'].name}]".ljust(11)
    return True


def add_file_sink(
    logger,
    log_path: str,
    file_sink_level: str,
    level: str,
    rotation: str = "10 MB",
    retention: Optional[str] = None,
    encoding: str = "utf-8",
):
    """
    Add a per-level file sink to the logger.

    Returns:
        int: Handler ID of the added sink, or None if the level is below
        `file_sink_level` and therefore not sinked.
    """
    assert level in SINKED_LEVELS, f"unsupported sink level: {level}"

    if logger.level(level.upper()).no < logger.level(file_sink_level.upper()).no:
        return None
    level_no = logger.level(level.upper()).no
    return logger.add(
        os.path.join(log_path, f"tpu-doc-{level}.log"),
        level=level.upper(),
        format=file_sink_format,
        colorize=False,
        rotation=rotation,
        retention=retention,
        encoding=encoding,
        filter=lambda record: format_level_with_padding(record) and record["level"].no >= level_no,
    )


class InterceptHandler(logging.Handler):
    """
    Intercepts standard logging and routes it to loguru.

    Adds the same [module.py:line] prefix used by the helpers below so stdlib
    loggers inside tpudoc read the same as loguru calls.
    """

    def emit(self, record):
        try:
            level = _logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        module_name = record.name.split(".")[-1] if record.name else "unknown"
        message = f"{module_format(module_name, record.lineno)}: {record.getMessage()}"
        _logger.opt(depth=6, exception=record.exc_info).log(level, message)


def setup_logger(cfg: LoggerConfig) -> None:
    """
    (Re)configure sinks: a colorized stderr sink at `cfg.stderr_sink_level`
    and, when `cfg.log_dir` is set, one rotating file per level at or above
    `cfg.file_sink_level`. Calling it again replaces the previous sinks.
    """
    global _logger

    for handler_id in _handler_ids:
        _loguru_logger.remove(handler_id)
    _handler_ids.clear()
    # remove loguru's default stderr sink (id 0) if still present
    try:
        _loguru_logger.remove(0)
    except ValueError:
        pass

    _loguru_logger.configure(extra={"host": cfg.hostname or socket.gethostname()})

    stderr_level = cfg.stderr_sink_level.upper()
    stderr_level_no = _loguru_logger.level(stderr_level).no
    _handler_ids.append(
        _loguru_logger.add(
            sys.stderr,
            level=stderr_level,
            format=stderr_sink_format,
            colorize=True,
            filter=lambda record: format_level_with_padding(record) and record["level"].no >= stderr_level_no,
        )
    )

    if cfg.log_dir:
        os.makedirs(cfg.log_dir, exist_ok=True)
        for sinked_level in SINKED_LEVELS:
            handler_id = add_file_sink(_loguru_logger, cfg.log_dir, cfg.file_sink_level, sinked_level)
            if handler_id is not None:
                _handler_ids.append(handler_id)

    logging.root.handlers = [InterceptHandler()]
    logging.root.setLevel(logging.NOTSET)

    _logger = _loguru_logger


def module_format(module_name: str, line: int) -> str:
    """
    Format module location with dynamic width adjustment.

    Returns:
        Formatted string like "[---------executor.py:10] "
    """
    global _max_module_format_width

    location_str = f"{module_name}.py:{line}"
    if len(location_str) > _max_module_format_width:
        _max_module_format_width = len(location_str)
    return "[" + location_str.rjust(_max_module_format_width, "-") + "] "


def _with_caller(message: str) -> str:
    caller = inspect.stack()[2]
    module_name = caller.frame.f_globals["__name__"].split(".")[-1]
    return f"{module_format(module_name, caller.lineno)}: {message}"


def debug(__message: str, *args: Any, **kwargs: Any) -> None:
    _logger.debug(_with_caller(__message), *args, **kwargs)


def info(__message: str, *args: Any, **kwargs: Any) -> None:
    _logger.info(_with_caller(__message), *args, **kwargs)


def warning(__message: str, *args: Any, **kwargs: Any) -> None:
    _logger.warning(_with_caller(__message), *args, **kwargs)


def error(__message: str, *args: Any, **kwargs: Any) -> None:
    _logger.error(_with_caller(__message), *args, **kwargs)
