###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
JAX ecosystem compatibility matrix.

Versions are compared on their numeric release components only, so
"0.4.35.dev20241101" compares like "0.4.35" and "2.15.0rc1" like "2.15.0".
"""

import enum
import functools
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from tpudoc.core.errors import ConfigurationError
from tpudoc.data import load_data_file

MATRIX_FILE = "compatibility.yaml"
CONFLICT_SEVERITIES = ("error", "warning", "info")

_REQUIREMENT = re.compile(r"^\s*([A-Za-z0-9_.\-]+)\s*(>=|<=|==|!=|>|<)?\s*([0-9][0-9A-Za-z.\-]*)?\s*$")


class CompatibilityStatus(enum.Enum):
    COMPATIBLE = "compatible"
    COMPATIBLE_WITH_WARNINGS = "compatible_with_warnings"
    INCOMPATIBLE = "incompatible"
    UNKNOWN = "unknown"


def version_tuple(version: str) -> Tuple[int, ...]:
    """Leading numeric components: "0.4.35rc1" -> (0, 4, 35)."""
    parts = []
    for piece in str(version).strip().split("."):
        match = re.match(r"\d+", piece)
        if match is None:
            break
        parts.append(int(match.group()))
        if match.end() != len(piece):
            break
    return tuple(parts)


def major_minor(version: str) -> Optional[Tuple[int, int]]:
    parts = version_tuple(version)
    if len(parts) < 2:
        return None
    return parts[0], parts[1]


def is_version_in_range(version: str, minimum: str, maximum: str) -> bool:
    """Inclusive (major, minor) range test; False when any side is unparsable."""
    value, low, high = major_minor(version), major_minor(minimum), major_minor(maximum)
    if value is None or low is None or high is None:
        return False
    return low <= value <= high


@dataclass(frozen=True)
class Requirement:
    package: str
    op: Optional[str] = None
    version: Optional[str] = None

    @classmethod
    def parse(cls, text: str) -> "Requirement":
        match = _REQUIREMENT.match(text)
        if match is None or (match.group(2) is None) != (match.group(3) is None):
            raise ConfigurationError(f"Invalid requirement '{text}' in compatibility matrix")
        return cls(match.group(1).lower(), match.group(2), match.group(3))

    def matches(self, installed: Optional[str]) -> bool:
        if installed is None:
            return False
        if self.op is None:
            return True
        have, want = version_tuple(installed), version_tuple(self.version)
        # pad so (2, 14) vs (2, 15, 0) compares component-wise
        width = max(len(have), len(want))
        have, want = have + (0,) * (width - len(have)), want + (0,) * (width - len(want))
        return {
            ">=": have >= want,
            "<=": have <= want,
            ">": have > want,
            "<": have < want,
            "==": have == want,
            "!=": have != want,
        }[self.op]


@dataclass(frozen=True)
class JaxRelease:
    version: str
    python_min: str
    python_max: str
    jaxlib_version: str
    libtpu_versions: Tuple[str, ...] = ()
    notes: Optional[str] = None


@dataclass(frozen=True)
class KnownConflict:
    packages: Tuple[str, ...]
    requirements: Tuple[Requirement, ...]
    severity: str
    description: str
    fix: str

    def applies_to(self, installed: Dict[str, Optional[str]]) -> bool:
        return all(r.matches(installed.get(r.package)) for r in self.requirements)


@dataclass(frozen=True)
class RecommendedVersions:
    jax_version: str
    python_version: str


@dataclass(frozen=True)
class CompatibilityMatrix:
    version: str
    updated: str
    jax_versions: Tuple[JaxRelease, ...]
    known_conflicts: Tuple[KnownConflict, ...]
    recommended: Dict[str, RecommendedVersions]

    @classmethod
    def from_dict(cls, data: dict) -> "CompatibilityMatrix":
        try:
            releases = tuple(
                JaxRelease(
                    version=str(r["version"]),
                    python_min=str(r["python_min"]),
                    python_max=str(r["python_max"]),
                    jaxlib_version=str(r["jaxlib_version"]),
                    libtpu_versions=tuple(str(v) for v in r.get("libtpu_versions") or ()),
                    notes=r.get("notes"),
                )
                for r in data["jax_versions"]
            )
            conflicts = tuple(
                KnownConflict(
                    packages=tuple(str(p) for p in c["packages"]),
                    requirements=tuple(Requirement.parse(str(p)) for p in c["packages"]),
                    severity=str(c.get("severity", "warning")).lower(),
                    description=c["description"],
                    fix=c["fix"],
                )
                for c in data.get("known_conflicts") or ()
            )
            recommended = {
                str(tpu): RecommendedVersions(str(v["jax"]), str(v["python"]))
                for tpu, v in (data.get("recommended") or {}).items()
            }
        except (KeyError, TypeError) as e:
            raise ConfigurationError(f"Malformed compatibility matrix: {e}") from e
        for conflict in conflicts:
            if conflict.severity not in CONFLICT_SEVERITIES:
                raise ConfigurationError(f"Unknown conflict severity '{conflict.severity}' in compatibility matrix")
        return cls(
            version=str(data.get("version", "")),
            updated=str(data.get("updated", "")),
            jax_versions=releases,
            known_conflicts=conflicts,
            recommended=recommended,
        )

    def release(self, jax_version: str) -> Optional[JaxRelease]:
        for entry in self.jax_versions:
            if entry.version == jax_version:
                return entry
        return None

    def is_compatible(self, jax_version: str, python_version: str) -> CompatibilityStatus:
        """Python range check against the matrix entry for `jax_version`."""
        entry = self.release(jax_version)
        if entry is None:
            return CompatibilityStatus.UNKNOWN
        if not is_version_in_range(python_version, entry.python_min, entry.python_max):
            return CompatibilityStatus.INCOMPATIBLE
        return CompatibilityStatus.COMPATIBLE

    def recommended_for(self, tpu_type: Optional[str]) -> Optional[RecommendedVersions]:
        key = (tpu_type or "").lower()
        return self.recommended.get(key) or self.recommended.get("default")

    def conflicts_for(self, installed: Dict[str, Optional[str]]) -> List[KnownConflict]:
        return [c for c in self.known_conflicts if c.applies_to(installed)]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "updated": self.updated,
            "jax_versions": [
                {
                    "version": r.version,
                    "python_min": r.python_min,
                    "python_max": r.python_max,
                    "jaxlib_version": r.jaxlib_version,
                    "libtpu_versions": list(r.libtpu_versions),
                    "notes": r.notes,
                }
                for r in self.jax_versions
            ],
            "known_conflicts": [
                {"packages": list(c.packages), "severity": c.severity, "description": c.description, "fix": c.fix}
                for c in self.known_conflicts
            ],
            "recommended": {
                tpu: {"jax": rec.jax_version, "python": rec.python_version} for tpu, rec in self.recommended.items()
            },
        }


@functools.lru_cache(maxsize=None)
def load_matrix() -> CompatibilityMatrix:
    return CompatibilityMatrix.from_dict(load_data_file(MATRIX_FILE))
