###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

import os
import re
from typing import Mapping, Optional

import yaml

from tpudoc.core.config.merge_utils import deep_merge
from tpudoc.core.errors import ConfigurationError

ENV_PATTERN = re.compile(r"\${([^:{}]+)(?::([^}]*))?}")

MAX_EXTENDS_DEPTH = 8


def parse_yaml(path: str, environ: Optional[Mapping[str, str]] = None) -> dict:
    """
    Load a tpu-doc YAML config with env replacement and extends merging.

    `environ` is the variable snapshot used for `${VAR}` substitution;
    defaults to os.environ.
    """
    environ = os.environ if environ is None else environ
    return _parse(path, environ, depth=0)


def _parse(path: str, environ: Mapping[str, str], depth: int) -> dict:
    if depth > MAX_EXTENDS_DEPTH:
        raise ConfigurationError(f"Config '{path}': 'extends' nested deeper than {MAX_EXTENDS_DEPTH} levels.")
    cfg = _load_yaml(path)
    if cfg is None:
        raise ConfigurationError(f"YAML configuration file '{path}' is empty or invalid.")
    if not isinstance(cfg, dict):
        raise ConfigurationError(f"YAML configuration file '{path}' must contain a mapping at top level.")
    cfg = _resolve_env(cfg, environ)
    cfg = _apply_extends(path, cfg, environ, depth)
    return cfg


# ================================================================
# 1. Load YAML
# ================================================================
def _load_yaml(path: str):
    try:
        with open(path, "r") as f:
            return yaml.load(f, Loader=yaml.SafeLoader)
    except OSError as e:
        raise ConfigurationError(f"Cannot read config file '{path}': {e}") from e
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in config file '{path}': {e}") from e


# ================================================================
# 2. Resolve environment variables
# ================================================================
def _resolve_env(obj, environ: Mapping[str, str]):
    if isinstance(obj, dict):
        return {k: _resolve_env(v, environ) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_resolve_env(v, environ) for v in obj]
    if isinstance(obj, str):
        return _resolve_env_in_string(obj, environ)
    return obj


def _resolve_env_in_string(s: str, environ: Mapping[str, str]):
    """
    Replace `${VAR}` and `${VAR:default}` patterns in a string.

    A value that was substituted and looks numeric is converted to int or
    float. `${VAR}` without a default raises ConfigurationError when VAR is
    not set.

    Examples
    --------
    >>> _resolve_env_in_string("${TIMEOUT:30000}", {})
    30000
    >>> _resolve_env_in_string("out/${HOST}.json", {"HOST": "tpu-vm-001"})
    'out/tpu-vm-001.json'
    """

    def replace_match(m):
        var, default = m.group(1), m.group(2)

        if default is None:
            if var not in environ:
                raise ConfigurationError(f"Environment variable '{var}' is required but not set.")
            return environ[var]

        return environ.get(var, default)

    replaced = ENV_PATTERN.sub(replace_match, s)
    return _try_numeric(replaced) if replaced != s else replaced


def _try_numeric(v: str):
    try:
        if re.fullmatch(r"-?\d+", v):
            return int(v)
        return float(v)
    except ValueError:
        return v


# ================================================================
# 3. extends: base config composition (deep merge overlay)
# ================================================================
def _apply_extends(path: str, cfg: dict, environ: Mapping[str, str], depth: int):
    """
        extends:
          - base.yaml
          - site.yaml

    merge order:
        result = deep_merge(base, site)
        result = deep_merge(result, current_cfg)
    """
    if "extends" not in cfg:
        return cfg

    extends = cfg["extends"]
    if isinstance(extends, str):
        extends = [extends]

    merged = {}
    for ext in extends:
        ext_path = os.path.join(os.path.dirname(path), ext)
        merged = deep_merge(merged, _parse(ext_path, environ, depth + 1))

    local_cfg = {k: v for k, v in cfg.items() if k != "extends"}
    return deep_merge(merged, local_cfg)
