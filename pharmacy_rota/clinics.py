"""
clinics.py — Clinic Allocator

Fills every clinic running on the day's weekday, stopping at the first
strategy that yields someone:

  1. Preferred list     preferred_pharmacists, least weekly clinic load first
  2. Idle band 6/7      zero clinics so far this week, least loaded first
  3. 8a vs loaded 6/7   whichever pool has the lower minimum weekly load
                        (8a when no loaded 6/7 exists)
  4. Loaded band 6/7    already ran a clinic this week, least loaded first
  5. Any band 6/7       ignore load
  6. Ward rescue        free a qualified staff member covering 2+ wards by
                        handing one ward (non-primary preferred) to an idle
                        colleague, then give them the clinic

Strategies 2–5 skip anyone already covering more than one ward.
If all fail a "clinic" WARNING names the clinic.
"""

import logging
from typing import Callable, List, Optional, Tuple

from pharmacy_rota.day import DayState
from pharmacy_rota.models import AssignmentType, Clinic, Staff
from pharmacy_rota.schedule_config import WORKING_DAY
from pharmacy_rota.skills import is_clinic_qualified

logger = logging.getLogger(__name__)


class ClinicAllocator:

    def __init__(self, day: DayState):
        self.day = day

    def todays_clinics(self) -> List[Clinic]:
        return [
            c for c in self.day.clinics
            if c.is_active and c.day_of_week == self.day.day_of_week
        ]

    def run(self) -> None:
        clinics = self.todays_clinics()
        logger.info(f"{self.day.date_str}: allocating {len(clinics)} clinics")
        for clinic in clinics:
            self.allocate(clinic)

    def allocate(self, clinic: Clinic) -> Optional[Staff]:
        strategies: List[Tuple[str, Callable[[Clinic], Optional[Staff]]]] = [
            ("preferred", self._preferred),
            ("idle junior", self._idle_junior),
            ("8a vs loaded junior", self._senior_or_loaded_junior),
            ("loaded junior", self._loaded_junior),
            ("any junior", self._any_junior),
        ]
        for label, strategy in strategies:
            chosen = strategy(clinic)
            if chosen is not None:
                self._assign(clinic, chosen)
                logger.debug(f"{clinic.name}: {chosen.name} via {label}")
                return chosen

        chosen = self._rescue_from_wards(clinic)
        if chosen is not None:
            return chosen

        self.day.tracker.warning(
            "clinic",
            f"No pharmacist available for {clinic.name} "
            f"({clinic.start_time}-{clinic.end_time})",
            location=clinic.name,
        )
        return None

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    def _can_take(self, s: Staff, clinic: Clinic) -> bool:
        if not is_clinic_qualified(s, clinic):
            return False
        if self.day.is_unavailable(s, clinic.start_time, clinic.end_time):
            return False
        if self.day.is_busy(s.id, clinic.start_time, clinic.end_time):
            return False
        return True

    def _by_load(self, staff: List[Staff]) -> List[Staff]:
        return sorted(staff, key=lambda s: self.day.clinic_load(s.id))

    def _juniors(self, clinic: Clinic) -> List[Staff]:
        multi = self.day.multi_ward_staff()
        return [
            s for s in self.day.staff
            if s.is_junior and s.id not in multi and self._can_take(s, clinic)
        ]

    def _assign(self, clinic: Clinic, s: Staff) -> None:
        self.day.add(s.id, AssignmentType.CLINIC, clinic.name, clinic.start_time, clinic.end_time)
        self.day.weekly_clinic_count[s.id] = self.day.clinic_load(s.id) + 1

    # -----------------------------------------------------------------------
    # Strategies
    # -----------------------------------------------------------------------

    def _preferred(self, clinic: Clinic) -> Optional[Staff]:
        preferred = [
            self.day.staff_by_id[pid]
            for pid in clinic.preferred_pharmacists
            if pid in self.day.staff_by_id
        ]
        for s in self._by_load(preferred):
            if self._can_take(s, clinic):
                return s
        return None

    def _idle_junior(self, clinic: Clinic) -> Optional[Staff]:
        idle = [s for s in self._juniors(clinic) if self.day.clinic_load(s.id) == 0]
        return idle[0] if idle else None

    def _senior_or_loaded_junior(self, clinic: Clinic) -> Optional[Staff]:
        multi = self.day.multi_ward_staff()
        seniors = self._by_load([
            s for s in self.day.staff
            if s.is_band_8a and s.id not in multi and self._can_take(s, clinic)
        ])
        loaded = self._loaded(clinic)
        if seniors and (
            not loaded
            or self.day.clinic_load(seniors[0].id) < self.day.clinic_load(loaded[0].id)
        ):
            return seniors[0]
        return loaded[0] if loaded else None

    def _loaded(self, clinic: Clinic) -> List[Staff]:
        return self._by_load([s for s in self._juniors(clinic) if self.day.clinic_load(s.id) >= 1])

    def _loaded_junior(self, clinic: Clinic) -> Optional[Staff]:
        loaded = self._loaded(clinic)
        return loaded[0] if loaded else None

    def _any_junior(self, clinic: Clinic) -> Optional[Staff]:
        juniors = self._juniors(clinic)
        return juniors[0] if juniors else None

    def _rescue_from_wards(self, clinic: Clinic) -> Optional[Staff]:
        """Strategy 6: hand one ward of a multi-ward staff member to an idle colleague."""
        multi = self.day.multi_ward_staff()
        candidates = sorted(
            (s for s in self.day.staff if s.id in multi),
            key=lambda s: s.band_rank,
        )
        for s in candidates:
            if not self._can_take(s, clinic):
                continue
            wards = self.day.wards_of(s.id)
            give_up = next((w for w in wards if not s.has_primary_ward(w)), wards[0])
            ward = self.day.ward_by_name.get(give_up)
            backfill = self._find_backfill(ward.directorate if ward else None)
            if backfill is None:
                continue

            for a in self.day.ward_assignments(give_up):
                if a.staff_id == s.id:
                    a.staff_id = backfill.id
            self._assign(clinic, s)
            logger.info(
                f"{clinic.name}: freed {s.name} by moving {give_up} to {backfill.name}"
            )
            return s
        return None

    def _find_backfill(self, directorate: Optional[str]) -> Optional[Staff]:
        for s in self.day.staff:
            if not s.in_ward_rotation:
                continue
            if self.day.has_ward(s.id) or self.day.assignments_of(s.id, AssignmentType.CLINIC):
                continue
            if self.day.has_dispensary_today(s.id) or s.id in self.day.full_day_dispensary:
                continue
            if s.is_band_8a and s.primary_directorate != directorate:
                continue
            if self.day.is_unavailable(s, *WORKING_DAY):
                continue
            return s
        return None
