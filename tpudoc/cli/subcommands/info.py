###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Info CLI subcommand: print what tpu-doc can see of this host.

Every fact is gathered independently; a query that fails shows up as
"unavailable" rather than aborting the command.
"""

import json
import os
from typing import Any, Callable, Dict, List, Optional

from tpudoc.core.errors import ConfigurationError, PlatformError
from tpudoc.platform.context import GIB, EnvironmentContext
from tpudoc.platform.real import RealEnvironment

UNAVAILABLE = "unavailable"

RELEVANT_ENV_PREFIXES = ("TPU_", "JAX_", "XLA_", "LIBTPU", "PJRT_")


def make_context(environ) -> EnvironmentContext:
    return RealEnvironment(environ)


def _probe(query: Callable[[], Any]) -> Optional[Any]:
    try:
        return query()
    except PlatformError:
        return None


def gather_info(env: EnvironmentContext) -> Dict[str, Dict[str, Any]]:
    tpu_vm = env.is_tpu_vm()
    hbm = _probe(env.hbm_info) if tpu_vm else None
    on_gcp = env.on_gcp()

    def meta(path: str) -> Optional[str]:
        return _probe(lambda: env.metadata(path)) if on_gcp else None

    return {
        "system": {
            "hostname": env.hostname(),
            "tpu_vm": tpu_vm,
        },
        "tpu": {
            "tpu_type": _probe(env.tpu_type) if tpu_vm else None,
            "chip_count": _probe(env.chip_count) if tpu_vm else None,
            "hbm_capacity_gb": round(hbm.total_bytes / GIB) if hbm else None,
            "driver_version": _probe(env.driver_version) if tpu_vm else None,
        },
        "software": {
            "python": _probe(env.python_version),
            "jax": _probe(lambda: env.package_version("jax")),
            "jaxlib": _probe(lambda: env.package_version("jaxlib")),
            "libtpu": _probe(lambda: env.package_version("libtpu")),
            "numpy": _probe(lambda: env.package_version("numpy")),
        },
        "environment": {
            k: v for k, v in sorted(env.env.items()) if k.startswith(RELEVANT_ENV_PREFIXES)
        },
        "gcp": {
            "on_gcp": on_gcp,
            "project_id": meta("project/project-id"),
            "zone": (meta("instance/zone") or "").rsplit("/", 1)[-1] or None,
            "machine_type": (meta("instance/machine-type") or "").rsplit("/", 1)[-1] or None,
            "service_account": meta("instance/service-accounts/default/email"),
        },
    }


def render_info(info: Dict[str, Dict[str, Any]]) -> str:
    lines = []
    for section, facts in info.items():
        lines.append(section.upper())
        if not facts:
            lines.append("  (none)")
        for key, value in facts.items():
            shown = UNAVAILABLE if value is None else value
            lines.append(f"  {key:<18}{shown}")
        lines.append("")
    return "\n".join(lines).rstrip()


def run(args: Any, extra_args: List[str]) -> int:
    if extra_args:
        raise ConfigurationError(f"Unrecognized arguments: {' '.join(extra_args)}")

    info = gather_info(make_context(dict(os.environ)))
    if args.format == "json":
        print(json.dumps(info, indent=2))
    else:
        print(render_info(info))
    return 0


def register_subcommand(subparsers):
    parser = subparsers.add_parser(
        "info",
        help="Show environment information.",
        description="Print TPU, software stack and GCP facts detected on this host.",
    )
    parser.add_argument("--format", choices=("text", "json"), default="text")
    parser.set_defaults(func=run)
    return parser
