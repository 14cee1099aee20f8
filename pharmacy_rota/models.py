"""
models.py — Record Types for the Pharmacy Rota Engine

Staff, Ward, Directorate, Clinic, Assignment and Rota records.

Bands (ordered 6 < 7 < 8a) plus two non-banded operational roles:
  - "Dispensary Pharmacist": dedicated dispensary holder, never on wards
  - "EAU Practitioner":      seeded onto the EAU ward, never on dispensary

Role policy is expressed as typed predicates on Staff
(prefers_dispensary, excluded_from_dispensary, in_ward_rotation) instead
of biasing the weekly duty counters.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pharmacy_rota.conflicts import Conflict
from pharmacy_rota.schedule_config import ALL_DAY, GENERATED_BY, WORKING_WEEKDAYS

BAND_6 = "6"
BAND_7 = "7"
BAND_8A = "8a"
DISPENSARY_ROLE = "Dispensary Pharmacist"
EAU_PRACTITIONER = "EAU Practitioner"

CLINICAL_BANDS = (BAND_6, BAND_7, BAND_8A)
ALL_BANDS = CLINICAL_BANDS + (DISPENSARY_ROLE, EAU_PRACTITIONER)

# Rank used wherever "lower band first" ordering is needed
BAND_RANK: Dict[str, int] = {BAND_6: 0, BAND_7: 1, BAND_8A: 2}


class AssignmentType(str, Enum):
    WARD = "ward"
    DISPENSARY = "dispensary"
    CLINIC = "clinic"
    MANAGEMENT = "management"


class RotaStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


# ---------------------------------------------------------------------------
# Staff
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UnavailableRule:
    day_of_week: str
    start_time: str
    end_time: str

    def to_dict(self) -> Dict[str, str]:
        return {"day_of_week": self.day_of_week, "start_time": self.start_time, "end_time": self.end_time}

    @classmethod
    def from_dict(cls, data: Dict[str, str]) -> "UnavailableRule":
        return cls(data["day_of_week"], data["start_time"], data["end_time"])


@dataclass
class Staff:
    id: str
    name: str
    band: str
    warfarin_trained: bool = False
    specialist_training: List[str] = field(default_factory=list)
    primary_directorate: Optional[str] = None
    primary_wards: List[str] = field(default_factory=list)
    trained_directorates: List[str] = field(default_factory=list)
    is_default: bool = False
    working_days: List[str] = field(default_factory=lambda: list(WORKING_WEEKDAYS))
    not_available_rules: List[UnavailableRule] = field(default_factory=list)
    display_name: Optional[str] = None

    @property
    def label(self) -> str:
        return self.display_name or self.name

    @property
    def is_band_8a(self) -> bool:
        return self.band == BAND_8A

    @property
    def is_junior(self) -> bool:
        """Band 6 or 7."""
        return self.band in (BAND_6, BAND_7)

    @property
    def is_dispensary_role(self) -> bool:
        return self.band == DISPENSARY_ROLE

    @property
    def is_eau_practitioner(self) -> bool:
        return self.band == EAU_PRACTITIONER

    @property
    def prefers_dispensary(self) -> bool:
        return self.is_dispensary_role

    @property
    def excluded_from_dispensary(self) -> bool:
        return self.is_eau_practitioner

    @property
    def in_ward_rotation(self) -> bool:
        return not (self.is_dispensary_role or self.is_eau_practitioner)

    @property
    def band_rank(self) -> int:
        return BAND_RANK.get(self.band, len(BAND_RANK))

    def is_trained_in(self, directorate: str) -> bool:
        return directorate in self.trained_directorates

    def has_primary_ward(self, ward_name: str) -> bool:
        return ward_name in self.primary_wards


# ---------------------------------------------------------------------------
# Wards / clinics
# ---------------------------------------------------------------------------

@dataclass
class Ward:
    name: str
    directorate: str
    is_active: bool = True
    min_pharmacists: float = 1.0
    ideal_pharmacists: float = 1.0
    requires_special_training: bool = False
    training_type: Optional[str] = None
    difficulty: Optional[int] = None


@dataclass
class Directorate:
    name: str
    wards: List[Ward] = field(default_factory=list)

    @property
    def active_wards(self) -> List[Ward]:
        return [w for w in self.wards if w.is_active]


@dataclass
class Clinic:
    id: str
    name: str
    day_of_week: int
    start_time: str
    end_time: str
    preferred_pharmacists: List[str] = field(default_factory=list)
    requires_warfarin_training: bool = True
    include_by_default: bool = True
    is_active: bool = True
    coverage_note: Optional[str] = None


# ---------------------------------------------------------------------------
# Assignments / rota
# ---------------------------------------------------------------------------

@dataclass
class Assignment:
    staff_id: str
    type: AssignmentType
    location: str
    start_time: str = ALL_DAY[0]
    end_time: str = ALL_DAY[1]
    is_lunch_cover: bool = False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "staff_id": self.staff_id,
            "type": self.type.value,
            "location": self.location,
            "start_time": self.start_time,
            "end_time": self.end_time,
        }
        if self.is_lunch_cover:
            data["is_lunch_cover"] = True
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Assignment":
        return cls(
            staff_id=data["staff_id"],
            type=AssignmentType(data["type"]),
            location=data["location"],
            start_time=data.get("start_time", ALL_DAY[0]),
            end_time=data.get("end_time", ALL_DAY[1]),
            is_lunch_cover=bool(data.get("is_lunch_cover", False)),
        )


@dataclass
class Rota:
    date: str
    assignments: List[Assignment] = field(default_factory=list)
    conflicts: List[Conflict] = field(default_factory=list)
    status: RotaStatus = RotaStatus.DRAFT
    generated_at: str = field(default_factory=lambda: datetime.now().isoformat(timespec="seconds"))
    generated_by: str = GENERATED_BY
    included_weekdays: List[str] = field(default_factory=list)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def assignments_for(self, staff_id: str) -> List[Assignment]:
        return [a for a in self.assignments if a.staff_id == staff_id]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "date": self.date,
            "status": self.status.value,
            "generated_at": self.generated_at,
            "generated_by": self.generated_by,
            "included_weekdays": list(self.included_weekdays),
            "assignments": [a.to_dict() for a in self.assignments],
            "conflicts": [c.to_dict() for c in self.conflicts],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Rota":
        return cls(
            id=data["id"],
            date=data["date"],
            status=RotaStatus(data.get("status", "draft")),
            generated_at=data.get("generated_at", ""),
            generated_by=data.get("generated_by", GENERATED_BY),
            included_weekdays=list(data.get("included_weekdays") or []),
            assignments=[Assignment.from_dict(a) for a in data.get("assignments", [])],
            conflicts=[Conflict.from_dict(c) for c in data.get("conflicts", [])],
        )
