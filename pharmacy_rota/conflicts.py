"""
conflicts.py — Conflict Tracking for the Pharmacy Rota Engine

A conflict records a requirement the allocators could not satisfy.
Conflicts never abort generation: the rota is always returned complete,
with the gaps listed for a human scheduler to hand-patch.

Severity:
  - WARNING: recoverable gap (no lunch cover, clinic unfilled, ward short)
  - ERROR:   structurally important gap (no all-day dispensary coverage)

Conflict types:
  clinic, dispensary, lunch, ward, emptyDirectorate, plus the validation
  types raised by checker.py (DOUBLE_BOOKING, BAND_8A_CONFINEMENT, ...).

Usage:
  tracker = ConflictTracker(date_str)
  tracker.warning("clinic", "No pharmacist available for Warfarin Clinic")
  tracker.conflicts  → [Conflict, ...]
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


class ConflictSeverity(Enum):
    WARNING = "warning"
    ERROR = "error"


@dataclass
class Conflict:
    type: str
    description: str
    severity: ConflictSeverity = ConflictSeverity.WARNING
    location: Optional[str] = None
    staff_id: Optional[str] = None
    details: Dict[str, Any] = field(default_factory=dict)

    def __str__(self) -> str:
        parts = [f"[{self.severity.value.upper()}] {self.type}"]
        if self.location:
            parts.append(f"location={self.location}")
        if self.staff_id:
            parts.append(f"staff={self.staff_id}")
        parts.append(f"→ {self.description}")
        return " | ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "type": self.type,
            "description": self.description,
            "severity": self.severity.value,
        }
        if self.location:
            data["location"] = self.location
        if self.staff_id:
            data["staff_id"] = self.staff_id
        if self.details:
            data["details"] = dict(self.details)
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Conflict":
        return cls(
            type=data["type"],
            description=data["description"],
            severity=ConflictSeverity(data.get("severity", "warning")),
            location=data.get("location"),
            staff_id=data.get("staff_id"),
            details=dict(data.get("details") or {}),
        )


class ConflictTracker:
    """Append-only list of conflicts for one generated day."""

    def __init__(self, date_str: str = ""):
        self.date_str = date_str
        self._conflicts: List[Conflict] = []

    def add(self, conflict: Conflict) -> Conflict:
        self._conflicts.append(conflict)
        prefix = f"{self.date_str}: " if self.date_str else ""
        if conflict.severity is ConflictSeverity.ERROR:
            logger.error(f"{prefix}{conflict}")
        else:
            logger.warning(f"{prefix}{conflict}")
        return conflict

    def warning(self, conflict_type: str, description: str, **context: Any) -> Conflict:
        return self.add(Conflict(conflict_type, description, ConflictSeverity.WARNING, **context))

    def error(self, conflict_type: str, description: str, **context: Any) -> Conflict:
        return self.add(Conflict(conflict_type, description, ConflictSeverity.ERROR, **context))

    @property
    def conflicts(self) -> List[Conflict]:
        return list(self._conflicts)

    def by_severity(self, severity: ConflictSeverity) -> List[Conflict]:
        return [c for c in self._conflicts if c.severity is severity]

    def of_type(self, conflict_type: str) -> List[Conflict]:
        return [c for c in self._conflicts if c.type == conflict_type]

    def __len__(self) -> int:
        return len(self._conflicts)
