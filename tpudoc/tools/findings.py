###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

import enum
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional

RULE = "=" * 80


class Severity(enum.Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def tag(self) -> str:
        return {"error": "[ERROR]", "warning": "[WARN] ", "info": "[INFO] "}[self.value]


@dataclass(frozen=True)
class Finding:
    severity: Severity
    description: str
    recommendation: Optional[str] = None
    check_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "severity": self.severity.value,
            "description": self.description,
            "recommendation": self.recommendation,
        }
        if self.check_id is not None:
            data = {"check_id": self.check_id, **data}
        return data


def has_severity(findings: Iterable[Finding], severity: Severity) -> bool:
    return any(f.severity is severity for f in findings)


def banner(title: str) -> List[str]:
    return [RULE, title.center(80).rstrip(), RULE, ""]


def heading(title: str) -> List[str]:
    return [title, "-" * len(title)]


def bullet_list(title: str, items: Iterable[str]) -> List[str]:
    items = list(items)
    if not items:
        return []
    return heading(title) + [f"  * {item}" for item in items] + [""]
