"""
day.py — Per-Day Working State Shared by the Allocators

DayState holds everything one day's generation mutates or reads:
  - the working staff list and lookup maps
  - active wards (priority-ordered) grouped by directorate
  - today's clinics
  - the assignment list under construction
  - the ConflictTracker
  - copies of the weekly fairness counters
  - the injected random source

Allocators (clinics → dispensary → wards) run against one DayState in that
fixed order; each reads what the previous ones committed.
"""

import logging
import random
from datetime import date
from typing import Dict, Iterable, List, Optional, Set

from pharmacy_rota.availability import EffectiveRules, is_unavailable, overlaps, weekday_label
from pharmacy_rota.conflicts import ConflictTracker
from pharmacy_rota.models import Assignment, AssignmentType, Clinic, Directorate, Staff, Ward
from pharmacy_rota.schedule_config import (
    EAU_HEADCOUNT_WEIGHT,
    EAU_WARD_MARKER,
    ITU_WARD_MARKER,
)

logger = logging.getLogger(__name__)


def sort_active_wards(directorates: Iterable[Directorate]) -> List[Ward]:
    """
    Active wards in processing order: Emergency Assessment Unit first, then
    ITU, then higher min_pharmacists. Stable for everything else.
    """
    wards = [w for d in directorates for w in d.active_wards]

    def _key(w: Ward):
        if EAU_WARD_MARKER in w.name:
            tier = 0
        elif ITU_WARD_MARKER in w.name:
            tier = 1
        else:
            tier = 2
        return (tier, -w.min_pharmacists if tier == 2 else 0)

    return sorted(wards, key=_key)


class DayState:

    def __init__(
        self,
        day: date,
        staff: List[Staff],
        directorates: List[Directorate],
        clinics: List[Clinic],
        rng: Optional[random.Random] = None,
        dispensary_duty_count: Optional[Dict[str, int]] = None,
        weekly_clinic_count: Optional[Dict[str, int]] = None,
        effective_rules: Optional[EffectiveRules] = None,
        single_pharmacist_day: bool = False,
    ):
        self.day = day
        self.date_str = day.isoformat()
        self.day_label = weekday_label(day)
        self.day_of_week = day.isoweekday()

        self.staff = list(staff)
        self.staff_by_id: Dict[str, Staff] = {s.id: s for s in self.staff}
        self.directorates = list(directorates)
        self.active_wards = sort_active_wards(self.directorates)
        self.ward_by_name: Dict[str, Ward] = {w.name: w for w in self.active_wards}
        self.wards_by_directorate: Dict[str, List[Ward]] = {}
        for w in self.active_wards:
            self.wards_by_directorate.setdefault(w.directorate, []).append(w)

        self.clinics = list(clinics)
        self.clinic_by_name: Dict[str, Clinic] = {c.name: c for c in self.clinics}

        self.rng = rng or random.Random()
        self.dispensary_duty_count: Dict[str, int] = dict(dispensary_duty_count or {})
        self.weekly_clinic_count: Dict[str, int] = dict(weekly_clinic_count or {})
        self.effective_rules = effective_rules
        self.single_pharmacist_day = single_pharmacist_day

        self.assignments: List[Assignment] = []
        self.tracker = ConflictTracker(self.date_str)
        self.full_day_dispensary: Set[str] = set()

    # -----------------------------------------------------------------------
    # Assignment list
    # -----------------------------------------------------------------------

    def add(self, staff_id: str, kind: AssignmentType, location: str,
            start: str = "00:00", end: str = "23:59", is_lunch_cover: bool = False) -> Assignment:
        a = Assignment(staff_id, kind, location, start, end, is_lunch_cover)
        self.assignments.append(a)
        return a

    def remove(self, assignment: Assignment) -> None:
        self.assignments.remove(assignment)

    def assignments_of(self, staff_id: str, kind: Optional[AssignmentType] = None) -> List[Assignment]:
        return [
            a for a in self.assignments
            if a.staff_id == staff_id and (kind is None or a.type is kind)
        ]

    def ward_assignments(self, ward_name: Optional[str] = None) -> List[Assignment]:
        return [
            a for a in self.assignments
            if a.type is AssignmentType.WARD and (ward_name is None or a.location == ward_name)
        ]

    def wards_of(self, staff_id: str) -> List[str]:
        seen: List[str] = []
        for a in self.assignments_of(staff_id, AssignmentType.WARD):
            if a.location not in seen:
                seen.append(a.location)
        return seen

    def has_ward(self, staff_id: str) -> bool:
        return bool(self.assignments_of(staff_id, AssignmentType.WARD))

    def is_on_management(self, staff_id: str) -> bool:
        return bool(self.assignments_of(staff_id, AssignmentType.MANAGEMENT))

    # -----------------------------------------------------------------------
    # Availability / conflicts
    # -----------------------------------------------------------------------

    def is_unavailable(self, staff: Staff, start: str, end: str) -> bool:
        return is_unavailable(staff, self.day_label, start, end, self.effective_rules)

    def is_available_all_day(self, staff: Staff) -> bool:
        return not self.is_unavailable(staff, "00:00", "23:59")

    def is_busy(self, staff_id: str, start: str, end: str) -> bool:
        """Any timed (clinic or dispensary) duty overlapping [start, end)."""
        return any(
            overlaps(a.start_time, a.end_time, start, end)
            for a in self.assignments_of(staff_id)
            if a.type in (AssignmentType.CLINIC, AssignmentType.DISPENSARY)
        )

    def has_dispensary_today(self, staff_id: str) -> bool:
        return bool(self.assignments_of(staff_id, AssignmentType.DISPENSARY))

    def warfarin_clinic_staff(self) -> Set[str]:
        out: Set[str] = set()
        for a in self.assignments:
            if a.type is not AssignmentType.CLINIC:
                continue
            clinic = self.clinic_by_name.get(a.location)
            if clinic and clinic.requires_warfarin_training:
                out.add(a.staff_id)
        return out

    def multi_ward_staff(self) -> Set[str]:
        return {s for s in {a.staff_id for a in self.ward_assignments()} if len(self.wards_of(s)) > 1}

    def directorate_occupants(self) -> Dict[str, Set[str]]:
        out: Dict[str, Set[str]] = {}
        for a in self.ward_assignments():
            ward = self.ward_by_name.get(a.location)
            if ward:
                out.setdefault(ward.directorate, set()).add(a.staff_id)
        return out

    def is_sole_in_any_directorate(self, staff_id: str) -> bool:
        return any(
            occupants == {staff_id} for occupants in self.directorate_occupants().values()
        )

    # -----------------------------------------------------------------------
    # Headcount
    # -----------------------------------------------------------------------

    def occupants(self, ward_name: str) -> List[Staff]:
        out: List[Staff] = []
        for a in self.ward_assignments(ward_name):
            s = self.staff_by_id.get(a.staff_id)
            if s is not None and s not in out:
                out.append(s)
        return out

    def headcount(self, ward_name: str) -> float:
        """Weighted headcount: EAU Practitioners count 0.5."""
        return sum(
            EAU_HEADCOUNT_WEIGHT if s.is_eau_practitioner else 1.0
            for s in self.occupants(ward_name)
        )

    def raw_count(self, ward_name: str) -> int:
        return len(self.ward_assignments(ward_name))

    def uncovered_wards(self) -> List[Ward]:
        return [w for w in self.active_wards if not self.ward_assignments(w.name)]

    # -----------------------------------------------------------------------
    # Randomness
    # -----------------------------------------------------------------------

    def shuffled(self, items: Iterable) -> list:
        out = list(items)
        self.rng.shuffle(out)
        return out

    def duty(self, staff_id: str) -> int:
        return self.dispensary_duty_count.get(staff_id, 0)

    def clinic_load(self, staff_id: str) -> int:
        return self.weekly_clinic_count.get(staff_id, 0)
