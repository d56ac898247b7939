###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Run configuration.

A RunConfig is assembled from four layers, lowest to highest precedence:

    defaults  →  YAML file (--config / TPU_DOC_CONFIG)
              →  environment (TPU_DOC_FORMAT, TPU_DOC_VERBOSE, NO_COLOR)
              →  CLI flags

YAML layout (every key optional):

    extends: base.yaml
    check:
      categories: [hardware, stack]
      only: []
      skip: [PERF-001]
      parallel: true
      max_concurrency: 4
      fail_fast: false
      timeout_ms: null          # whole-run budget; null means none
      check_timeout_ms: 30000
      baseline: /var/lib/tpu-doc/baseline.json
      save_baseline: null
      fail_on_regression: false
    output:
      format: text
      quiet: false
      verbose: false
      color: true
      file: null
    logging:
      level: WARNING
      dir: null
"""

import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, List, Mapping, Optional

from tpudoc.core.config.yaml_loader import parse_yaml
from tpudoc.core.engine.executor import DEFAULT_CHECK_TIMEOUT_MS, DEFAULT_MAX_CONCURRENCY
from tpudoc.core.engine.models import CheckCategory
from tpudoc.core.engine.registry import ALL_CATEGORIES
from tpudoc.core.errors import ConfigurationError

OUTPUT_FORMATS = ("text", "json", "junit")
LOG_LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")

ENV_CONFIG = "TPU_DOC_CONFIG"
ENV_FORMAT = "TPU_DOC_FORMAT"
ENV_VERBOSE = "TPU_DOC_VERBOSE"
ENV_NO_COLOR = "NO_COLOR"

# YAML section -> {yaml key: RunConfig field}
_YAML_FIELDS: Dict[str, Dict[str, str]] = {
    "check": {
        "categories": "categories",
        "only": "only",
        "skip": "skip",
        "parallel": "parallel",
        "max_concurrency": "max_concurrency",
        "fail_fast": "fail_fast",
        "timeout_ms": "timeout_ms",
        "check_timeout_ms": "check_timeout_ms",
        "baseline": "baseline",
        "save_baseline": "save_baseline",
        "fail_on_regression": "fail_on_regression",
    },
    "output": {
        "format": "output_format",
        "quiet": "quiet",
        "verbose": "verbose",
        "color": "color",
        "file": "output",
    },
    "logging": {
        "level": "log_level",
        "dir": "log_dir",
    },
}

# argparse dest -> RunConfig field; None values mean "flag not given"
_CLI_FIELDS: Dict[str, str] = {
    "categories": "categories",
    "only": "only",
    "skip": "skip",
    "parallel": "parallel",
    "max_concurrency": "max_concurrency",
    "fail_fast": "fail_fast",
    "timeout": "timeout_ms",
    "check_timeout": "check_timeout_ms",
    "baseline": "baseline",
    "save_baseline": "save_baseline",
    "fail_on_regression": "fail_on_regression",
    "format": "output_format",
    "quiet": "quiet",
    "verbose": "verbose",
    "output": "output",
    "log_level": "log_level",
    "log_dir": "log_dir",
}

_LIST_FIELDS = ("categories", "only", "skip")
_BOOL_FIELDS = ("parallel", "fail_fast", "fail_on_regression", "quiet", "verbose", "color")
_INT_FIELDS = ("max_concurrency", "timeout_ms", "check_timeout_ms")
# int fields where None (YAML null) means "no limit"
_NULLABLE_FIELDS = ("timeout_ms",)


def _truthy(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ("1", "true", "yes", "on")


def _as_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return [str(v) for v in value]
    return [s.strip() for s in str(value).split(",") if s.strip()]


@dataclass(frozen=True)
class RunConfig:
    # selection
    categories: List[str] = field(default_factory=list)
    only: List[str] = field(default_factory=list)
    skip: List[str] = field(default_factory=list)
    # execution
    parallel: bool = False
    max_concurrency: int = DEFAULT_MAX_CONCURRENCY
    fail_fast: bool = False
    timeout_ms: Optional[int] = None
    check_timeout_ms: int = DEFAULT_CHECK_TIMEOUT_MS
    # baseline
    baseline: Optional[str] = None
    save_baseline: Optional[str] = None
    fail_on_regression: bool = False
    # output
    output_format: str = "text"
    quiet: bool = False
    verbose: bool = False
    color: bool = True
    output: Optional[str] = None
    # logging
    log_level: str = "WARNING"
    log_dir: Optional[str] = None

    # ------------------------------------------------------------------ #

    @classmethod
    def from_sources(
        cls,
        args: Any = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "RunConfig":
        """
        Build and validate a RunConfig from CLI `args` (an argparse
        Namespace, may be None) and the `environ` snapshot.
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        config_path = getattr(args, "config", None) or environ.get(ENV_CONFIG)
        if config_path:
            values.update(cls._from_yaml(config_path, environ))
        values.update(cls._from_environ(environ))
        values.update(cls._from_args(args))

        return cls.from_dict(values).validate()

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "RunConfig":
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(values) - known)
        if unknown:
            raise ConfigurationError(f"Unknown run option(s): {', '.join(unknown)}")

        coerced: Dict[str, Any] = {}
        for name, value in values.items():
            if name in _LIST_FIELDS:
                value = _as_list(value)
            elif name in _BOOL_FIELDS:
                value = _truthy(value)
            elif name in _INT_FIELDS:
                if value is None and name in _NULLABLE_FIELDS:
                    coerced[name] = None
                    continue
                value = cls._as_int(name, value)
            elif name in ("output_format", "log_level") and value is not None:
                value = str(value)
            coerced[name] = value
        return cls(**coerced)

    @staticmethod
    def _as_int(name: str, value: Any) -> int:
        if isinstance(value, bool):
            raise ConfigurationError(f"'{name}' must be an integer, got {value!r}")
        try:
            return int(value)
        except (TypeError, ValueError):
            raise ConfigurationError(f"'{name}' must be an integer, got {value!r}") from None

    @staticmethod
    def _from_yaml(path: str, environ: Mapping[str, str]) -> Dict[str, Any]:
        data = parse_yaml(path, environ)
        values: Dict[str, Any] = {}
        for section, body in data.items():
            mapping = _YAML_FIELDS.get(section)
            if mapping is None:
                raise ConfigurationError(f"Config '{path}': unknown section '{section}'")
            if body is None:
                continue
            if not isinstance(body, dict):
                raise ConfigurationError(f"Config '{path}': section '{section}' must be a mapping")
            for key, value in body.items():
                if key not in mapping:
                    raise ConfigurationError(f"Config '{path}': unknown key '{section}.{key}'")
                values[mapping[key]] = value
        return values

    @staticmethod
    def _from_environ(environ: Mapping[str, str]) -> Dict[str, Any]:
        values: Dict[str, Any] = {}
        if environ.get(ENV_FORMAT):
            values["output_format"] = environ[ENV_FORMAT].strip().lower()
        if environ.get(ENV_VERBOSE):
            values["verbose"] = _truthy(environ[ENV_VERBOSE])
        # https://no-color.org: any non-empty value disables color
        if environ.get(ENV_NO_COLOR):
            values["color"] = False
        return values

    @staticmethod
    def _from_args(args: Any) -> Dict[str, Any]:
        if args is None:
            return {}
        values: Dict[str, Any] = {}
        for dest, name in _CLI_FIELDS.items():
            value = getattr(args, dest, None)
            if value is not None:
                values[name] = value
        if getattr(args, "no_color", None):
            values["color"] = False
        return values

    # ------------------------------------------------------------------ #

    def validate(self) -> "RunConfig":
        """Raise ConfigurationError on invalid or conflicting settings; returns self."""
        valid_categories = {c.value for c in CheckCategory} | {ALL_CATEGORIES}
        for category in self.categories:
            if category.strip().lower() not in valid_categories:
                raise ConfigurationError(
                    f"Unknown check category '{category}' (valid: {', '.join(sorted(valid_categories))})"
                )
        normalized = {c.strip().lower() for c in self.categories}
        if ALL_CATEGORIES in normalized and len(normalized) > 1:
            raise ConfigurationError("--all cannot be combined with a specific category")

        if self.output_format not in OUTPUT_FORMATS:
            raise ConfigurationError(
                f"Unknown output format '{self.output_format}' (valid: {', '.join(OUTPUT_FORMATS)})"
            )
        if str(self.log_level).upper() not in LOG_LEVELS:
            raise ConfigurationError(f"Unknown log level '{self.log_level}' (valid: {', '.join(LOG_LEVELS)})")

        for name in _INT_FIELDS:
            if getattr(self, name) is None and name in _NULLABLE_FIELDS:
                continue
            if getattr(self, name) <= 0:
                raise ConfigurationError(f"'{name}' must be positive, got {getattr(self, name)}")

        overlap = sorted(set(self.only) & set(self.skip))
        if overlap:
            raise ConfigurationError(f"Check id(s) given to both --only and --skip: {', '.join(overlap)}")

        if self.fail_on_regression and not self.baseline:
            raise ConfigurationError("--fail-on-regression requires --baseline")
        return self

    def selected_categories(self) -> Optional[List[str]]:
        """Requested categories, or None for all of them."""
        normalized = [c.strip().lower() for c in self.categories]
        if not normalized or ALL_CATEGORIES in normalized:
            return None
        return normalized

