###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

"""
Engine data model.

Defines the check descriptor, the outcome of a single check, execution
records and the aggregated validation report.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Tuple

from tpudoc.core.errors import ConfigurationError

# -----------------------------------------------------------------------------
# Categories & statuses
# -----------------------------------------------------------------------------


class CheckCategory(Enum):
    """Check categories; declaration order is the canonical report order."""

    HARDWARE = "hardware"
    STACK = "stack"
    PERFORMANCE = "performance"
    IO = "io"
    SECURITY = "security"
    CONFIG = "config"

    @property
    def order(self) -> int:
        return _CATEGORY_ORDER[self]

    @property
    def title(self) -> str:
        return _CATEGORY_TITLES[self]

    @classmethod
    def parse(cls, value: str) -> "CheckCategory":
        try:
            return cls(value.strip().lower())
        except ValueError:
            valid = ", ".join(c.value for c in cls)
            raise ConfigurationError(f"Unknown check category '{value}' (valid: {valid})") from None


_CATEGORY_ORDER = {c: i for i, c in enumerate(CheckCategory)}
_CATEGORY_TITLES = {
    CheckCategory.HARDWARE: "HARDWARE CHECKS",
    CheckCategory.STACK: "STACK CHECKS",
    CheckCategory.PERFORMANCE: "PERFORMANCE CHECKS",
    CheckCategory.IO: "I/O CHECKS",
    CheckCategory.SECURITY: "SECURITY CHECKS",
    CheckCategory.CONFIG: "CONFIG CHECKS",
}


class CheckStatus(Enum):
    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"
    SKIP = "skip"

    @property
    def severity(self) -> Optional[int]:
        """Pass < Warn < Fail; Skip has no severity."""
        return _SEVERITY.get(self)


_SEVERITY = {CheckStatus.PASS: 0, CheckStatus.WARN: 1, CheckStatus.FAIL: 2}


# -----------------------------------------------------------------------------
# Outcome
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CheckOutcome:
    """
    Result of one check invocation.

    A tagged value: `status` selects the variant. Pass carries a message,
    Warn/Fail carry a message and details, Skip carries only a reason
    (stored in `message`). Checks build outcomes with the constructors
    below; the executor stamps `duration_ms` afterwards.
    """

    status: CheckStatus
    message: str
    details: str = ""
    duration_ms: int = 0

    @classmethod
    def pass_(cls, message: str) -> "CheckOutcome":
        return cls(CheckStatus.PASS, message)

    @classmethod
    def warn(cls, message: str, details: str = "") -> "CheckOutcome":
        return cls(CheckStatus.WARN, message, details)

    @classmethod
    def fail(cls, message: str, details: str = "") -> "CheckOutcome":
        return cls(CheckStatus.FAIL, message, details)

    @classmethod
    def skip(cls, reason: str) -> "CheckOutcome":
        return cls(CheckStatus.SKIP, reason)

    @property
    def reason(self) -> str:
        return self.message

    @property
    def is_failure(self) -> bool:
        return self.status is CheckStatus.FAIL

    def with_duration(self, duration_ms: int) -> "CheckOutcome":
        if self.status is CheckStatus.SKIP:
            return self
        return replace(self, duration_ms=max(0, int(duration_ms)))


# -----------------------------------------------------------------------------
# Check descriptor
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class Check:
    """
    A registered validation check.

    Attributes:
        id:
            Unique identifier (e.g., "HW-001").
        name:
            Human-readable name.
        category:
            CheckCategory of the check.
        handler:
            Callable taking the environment context and returning a
            CheckOutcome. None for checks rehydrated from a stored report.
        description:
            One-line description shown by `tpu-doc list`.
        dependency_ids:
            Ids of checks that must finish before this one starts.
        estimated_duration_ms:
            Rough runtime hint, informational only.
    """

    id: str
    name: str
    category: CheckCategory
    handler: Optional[Callable[[Any], CheckOutcome]] = field(default=None, compare=False, repr=False)
    description: str = ""
    dependency_ids: FrozenSet[str] = frozenset()
    estimated_duration_ms: int = 0

    def sort_key(self) -> Tuple[int, str]:
        return (self.category.order, self.id)


# -----------------------------------------------------------------------------
# Records & report
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ExecutionRecord:
    """One check paired with its outcome; times are monotonic seconds."""

    check: Check
    outcome: CheckOutcome
    started_at: Optional[float] = None
    finished_at: Optional[float] = None


@dataclass(frozen=True)
class EnvironmentFingerprint:
    hostname: str
    tpu_type: Optional[str] = None


@dataclass(frozen=True)
class ReportSummary:
    passed: int = 0
    warned: int = 0
    failed: int = 0
    skipped: int = 0
    total: int = 0
    total_duration_ms: int = 0

    def exit_code(self) -> int:
        if self.failed > 0:
            return 1
        if self.warned > 0:
            return 2
        return 0


@dataclass(frozen=True)
class ValidationReport:
    timestamp: int
    hostname: str
    tpu_type: Optional[str]
    records: Tuple[ExecutionRecord, ...]
    summary: ReportSummary

    def outcomes_by_id(self) -> Dict[str, CheckOutcome]:
        return {r.check.id: r.outcome for r in self.records}


# -----------------------------------------------------------------------------
# Baseline diff
# -----------------------------------------------------------------------------


class DiffKind(Enum):
    NEW_FAILURE = "new_failure"
    NEW_WARNING = "new_warning"
    RESOLVED = "resolved"
    REGRESSED = "regressed"
    UNCHANGED = "unchanged"
    NEW_CHECK = "new_check"
    REMOVED_CHECK = "removed_check"


@dataclass(frozen=True)
class BaselineDiff:
    entries: Dict[str, DiffKind] = field(default_factory=dict)

    def ids_with(self, kind: DiffKind) -> List[str]:
        return sorted(check_id for check_id, k in self.entries.items() if k is kind)

    @property
    def has_regressions(self) -> bool:
        return any(k in (DiffKind.REGRESSED, DiffKind.NEW_FAILURE) for k in self.entries.values())
