"""
checker.py — Post-Generation Rota Validation

Re-checks a generated rota against the engine's invariants. Findings are
returned as Conflict records (they are not added to the rota).

Errors (invariant broken):
  - DOUBLE_BOOKING:       overlapping clinic/dispensary windows for one
                          person, or the same ward listed twice for them
  - BAND_8A_CONFINEMENT:  band 8a on a ward outside their primary directorate
  - ROLE_EXCLUSION:       EAU Practitioner on dispensary, dispensary role on
                          a ward, ward + management for the same person,
                          more than one dispensary block for anyone but
                          the all-day holder
  - UNAVAILABLE:          timed duty inside a personal unavailable window

Warnings:
  - HEADCOUNT_FLOOR:      non-ITU active ward below ceil(min_pharmacists)
                          (EAU Practitioners weighted 0.5)

Usage:
  checker = RotaChecker(staff, directorates)
  errors, warnings = checker.check_all(rota)
"""

import logging
import math
from datetime import date
from typing import Dict, List, Optional, Tuple

from pharmacy_rota.availability import EffectiveRules, is_unavailable, overlaps, weekday_label
from pharmacy_rota.conflicts import Conflict, ConflictSeverity
from pharmacy_rota.models import Assignment, AssignmentType, Directorate, Rota, Staff, Ward
from pharmacy_rota.schedule_config import (
    DISPENSARY_LOCATION,
    EAU_HEADCOUNT_WEIGHT,
    ITU_DIRECTORATE,
    ITU_WARD_MARKER,
    full_day_dispensary_shifts,
)

logger = logging.getLogger(__name__)

TIMED_TYPES = (AssignmentType.CLINIC, AssignmentType.DISPENSARY)
FULL_DAY_SHIFTS = sorted(full_day_dispensary_shifts())


class RotaChecker:

    def __init__(
        self,
        staff: List[Staff],
        directorates: List[Directorate],
        effective_rules: Optional[EffectiveRules] = None,
    ):
        self.staff_by_id: Dict[str, Staff] = {s.id: s for s in staff}
        self.wards: Dict[str, Ward] = {
            w.name: w for d in directorates for w in d.wards if w.is_active
        }
        self.effective_rules = effective_rules

    def _name(self, staff_id: str) -> str:
        s = self.staff_by_id.get(staff_id)
        return s.name if s else staff_id

    def _by_staff(self, rota: Rota) -> Dict[str, List[Assignment]]:
        out: Dict[str, List[Assignment]] = {}
        for a in rota.assignments:
            out.setdefault(a.staff_id, []).append(a)
        return out

    # -----------------------------------------------------------------------
    # ERROR: double booking
    # -----------------------------------------------------------------------

    def check_double_booking(self, rota: Rota) -> List[Conflict]:
        conflicts = []
        for staff_id, items in self._by_staff(rota).items():
            timed = [a for a in items if a.type in TIMED_TYPES]
            for i, a in enumerate(timed):
                for b in timed[i + 1:]:
                    if overlaps(a.start_time, a.end_time, b.start_time, b.end_time):
                        conflicts.append(Conflict(
                            "DOUBLE_BOOKING",
                            f"{self._name(staff_id)} has {a.location} {a.start_time}-{a.end_time} "
                            f"and {b.location} {b.start_time}-{b.end_time}",
                            ConflictSeverity.ERROR,
                            staff_id=staff_id,
                        ))
            wards = [a.location for a in items if a.type is AssignmentType.WARD]
            for ward in sorted({w for w in wards if wards.count(w) > 1}):
                conflicts.append(Conflict(
                    "DOUBLE_BOOKING",
                    f"{self._name(staff_id)} listed on {ward} more than once",
                    ConflictSeverity.ERROR,
                    location=ward,
                    staff_id=staff_id,
                ))
        return conflicts

    # -----------------------------------------------------------------------
    # ERROR: band 8a confinement
    # -----------------------------------------------------------------------

    def check_band_8a_confinement(self, rota: Rota) -> List[Conflict]:
        conflicts = []
        for a in rota.assignments:
            s = self.staff_by_id.get(a.staff_id)
            if s is None or not s.is_band_8a or a.type is not AssignmentType.WARD:
                continue
            ward = self.wards.get(a.location)
            if ward is not None and ward.directorate != s.primary_directorate:
                conflicts.append(Conflict(
                    "BAND_8A_CONFINEMENT",
                    f"Band 8a {s.name} on {ward.name} ({ward.directorate}) "
                    f"outside primary directorate {s.primary_directorate}",
                    ConflictSeverity.ERROR,
                    location=ward.name,
                    staff_id=s.id,
                ))
        return conflicts

    # -----------------------------------------------------------------------
    # ERROR: role exclusions
    # -----------------------------------------------------------------------

    def check_role_exclusions(self, rota: Rota) -> List[Conflict]:
        conflicts = []
        for staff_id, items in self._by_staff(rota).items():
            s = self.staff_by_id.get(staff_id)
            if s is None:
                continue
            kinds = {a.type for a in items}
            problem = None
            if s.excluded_from_dispensary and AssignmentType.DISPENSARY in kinds:
                problem = f"EAU Practitioner {s.name} assigned to dispensary"
            elif s.is_dispensary_role and AssignmentType.WARD in kinds:
                problem = f"Dispensary Pharmacist {s.name} assigned to a ward"
            elif AssignmentType.WARD in kinds and AssignmentType.MANAGEMENT in kinds:
                problem = f"{s.name} on both ward cover and management time"
            if problem:
                conflicts.append(Conflict("ROLE_EXCLUSION", problem, ConflictSeverity.ERROR, staff_id=staff_id))

            shifts = [
                (a.start_time, a.end_time) for a in items
                if a.type is AssignmentType.DISPENSARY and not a.is_lunch_cover
            ]
            if len(shifts) > 1 and not s.prefers_dispensary and sorted(shifts) != FULL_DAY_SHIFTS:
                conflicts.append(Conflict(
                    "ROLE_EXCLUSION",
                    f"{s.name} has {len(shifts)} dispensary shifts on a shared dispensary day",
                    ConflictSeverity.ERROR,
                    location=DISPENSARY_LOCATION,
                    staff_id=staff_id,
                ))
        return conflicts

    # -----------------------------------------------------------------------
    # ERROR: unavailability
    # -----------------------------------------------------------------------

    def check_unavailability(self, rota: Rota) -> List[Conflict]:
        label = weekday_label(date.fromisoformat(rota.date))
        conflicts = []
        for a in rota.assignments:
            s = self.staff_by_id.get(a.staff_id)
            if s is None or a.type not in TIMED_TYPES:
                continue
            if is_unavailable(s, label, a.start_time, a.end_time, self.effective_rules):
                conflicts.append(Conflict(
                    "UNAVAILABLE",
                    f"{s.name} unavailable for {a.location} {a.start_time}-{a.end_time}",
                    ConflictSeverity.ERROR,
                    location=a.location,
                    staff_id=s.id,
                ))
        return conflicts

    # -----------------------------------------------------------------------
    # WARNING: headcount floor
    # -----------------------------------------------------------------------

    def check_headcount_floor(self, rota: Rota) -> List[Conflict]:
        counts: Dict[str, float] = {name: 0.0 for name in self.wards}
        seen = set()
        for a in rota.assignments:
            if a.type is not AssignmentType.WARD or a.location not in counts:
                continue
            if (a.staff_id, a.location) in seen:
                continue
            seen.add((a.staff_id, a.location))
            s = self.staff_by_id.get(a.staff_id)
            counts[a.location] += EAU_HEADCOUNT_WEIGHT if s and s.is_eau_practitioner else 1.0

        conflicts = []
        for name, ward in self.wards.items():
            if ward.directorate == ITU_DIRECTORATE or ITU_WARD_MARKER in name:
                continue
            needed = math.ceil(ward.min_pharmacists)
            if counts[name] < needed:
                conflicts.append(Conflict(
                    "HEADCOUNT_FLOOR",
                    f"{name} has {counts[name]:g} of {needed} required",
                    ConflictSeverity.WARNING,
                    location=name,
                ))
        return conflicts

    # -----------------------------------------------------------------------
    # All checks
    # -----------------------------------------------------------------------

    def check_all(self, rota: Rota) -> Tuple[List[Conflict], List[Conflict]]:
        """Return (errors, warnings)."""
        findings = (
            self.check_double_booking(rota)
            + self.check_band_8a_confinement(rota)
            + self.check_role_exclusions(rota)
            + self.check_unavailability(rota)
            + self.check_headcount_floor(rota)
        )
        errors = [c for c in findings if c.severity is ConflictSeverity.ERROR]
        warnings = [c for c in findings if c.severity is ConflictSeverity.WARNING]
        logger.info(f"Rota {rota.date}: {len(errors)} errors, {len(warnings)} warnings")
        return errors, warnings
