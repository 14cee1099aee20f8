"""
dispensary.py — Dispensary Allocator

Covers the four 2-hour dispensary blocks (09:00–17:00) and the 13:30–14:00
lunch-cover slot in one of three modes, tried in order:

  1. Dedicated role   a working, available "Dispensary Pharmacist" holds the
                      dispensary all day (13:00–15:00 split around lunch);
                      lunch cover is drawn from everyone else.
  2. Single-pharmacist day
                      the date is flagged: one junior (band 6, else 7, else
                      8a) holds the dispensary all day and leaves the ward
                      pool; a different person covers lunch.
                      Nobody eligible → ERROR conflict, no cover drawn.
  3. General day      lunch cover first (8a, else warfarin-trained, else
                      anyone), then each block is drawn at random from the
                      least-loaded eligible staff with band 6/7 entries
                      doubled; one dispensary duty per person per day.

Lunch-cover ordering in every mode: staff with zero dispensary duty this
week first (random order), then the rest by ascending duty count with
random tie-break.
"""

import logging
from typing import Iterable, List, Optional, Set

from pharmacy_rota.day import DayState
from pharmacy_rota.models import AssignmentType, BAND_6, BAND_7, BAND_8A, Staff
from pharmacy_rota.schedule_config import (
    DISPENSARY_BLOCKS,
    DISPENSARY_LOCATION,
    JUNIOR_DRAW_WEIGHT,
    LUNCH_COVER,
    LUNCH_COVER_LOCATION,
    WORKING_DAY,
    full_day_dispensary_shifts,
)

logger = logging.getLogger(__name__)

NO_LUNCH_COVER = "No pharmacist available for dispensary lunch cover."
NO_FULL_DAY_COVER = "No pharmacist available for all-day dispensary coverage."


class DispensaryAllocator:

    def __init__(self, day: DayState):
        self.day = day

    def run(self) -> None:
        holder = self.dedicated_holder()
        if holder is not None:
            logger.info(f"{self.day.date_str}: dispensary held by {holder.name} (dedicated role)")
            self.cover_full_day(holder)
            self.assign_lunch_cover(exclude={holder.id})
            return

        if self.day.single_pharmacist_day:
            junior = self.pick_single_pharmacist()
            if junior is not None:
                logger.info(f"{self.day.date_str}: single-pharmacist dispensary day, {junior.name} all day")
                self.day.full_day_dispensary.add(junior.id)
                self.cover_full_day(junior)
                self.assign_lunch_cover(exclude={junior.id}, exclude_role=True)
                return
            self.day.tracker.error("dispensary", NO_FULL_DAY_COVER, location=DISPENSARY_LOCATION)
            return

        self.run_general_day()

    # -----------------------------------------------------------------------
    # Mode 1 / 2
    # -----------------------------------------------------------------------

    def dedicated_holder(self) -> Optional[Staff]:
        for s in self.day.staff:
            if (
                s.prefers_dispensary
                and not self.day.is_unavailable(s, *WORKING_DAY)
                and not self.day.is_busy(s.id, *WORKING_DAY)
            ):
                return s
        return None

    def cover_full_day(self, holder: Staff) -> None:
        for start, end in full_day_dispensary_shifts():
            self.day.add(holder.id, AssignmentType.DISPENSARY, DISPENSARY_LOCATION, start, end)

    def pick_single_pharmacist(self) -> Optional[Staff]:
        warfarin = self.day.warfarin_clinic_staff()
        eligible = [
            s for s in self.day.staff
            if s.in_ward_rotation
            and s.id not in warfarin
            and not self.day.is_sole_in_any_directorate(s.id)
            and all(self._free_for(s, start, end) for start, end in DISPENSARY_BLOCKS)
        ]
        for band in (BAND_6, BAND_7, BAND_8A):
            tier = [s for s in eligible if s.band == band]
            if tier:
                return self.day.shuffled(tier)[0]
        return None

    def assign_lunch_cover(self, exclude: Set[str], exclude_role: bool = False) -> Optional[Staff]:
        candidates = [
            s for s in self._lunch_eligible()
            if s.id not in exclude and not (exclude_role and s.prefers_dispensary)
        ]
        ordered = self.order_by_duty(candidates)
        if not ordered:
            self.day.tracker.warning("lunch", NO_LUNCH_COVER, location=LUNCH_COVER_LOCATION)
            return None
        return self._add_lunch(ordered[0])

    # -----------------------------------------------------------------------
    # Mode 3
    # -----------------------------------------------------------------------

    def run_general_day(self) -> None:
        self.assign_general_lunch_cover()
        for start, end in DISPENSARY_BLOCKS:
            chosen = self.draw_block(start, end)
            if chosen is None:
                self.day.tracker.warning(
                    "dispensary",
                    f"No eligible pharmacists available for dispensary shift {start}-{end}",
                    location=DISPENSARY_LOCATION,
                )
                continue
            self.day.add(chosen.id, AssignmentType.DISPENSARY, DISPENSARY_LOCATION, start, end)
            logger.debug(f"Dispensary {start}-{end}: {chosen.name}")

    def assign_general_lunch_cover(self) -> Optional[Staff]:
        eligible = [s for s in self._lunch_eligible() if self._free_of_wards(s)]
        tiers = [
            [s for s in eligible if s.is_band_8a],
            [s for s in eligible if s.warfarin_trained],
            eligible,
        ]
        for tier in tiers:
            ordered = self.order_by_duty(tier)
            if ordered:
                return self._add_lunch(ordered[0])
        self.day.tracker.warning("lunch", NO_LUNCH_COVER, location=LUNCH_COVER_LOCATION)
        return None

    def draw_block(self, start: str, end: str) -> Optional[Staff]:
        warfarin = self.day.warfarin_clinic_staff()
        eligible = [
            s for s in self.day.staff
            if not s.excluded_from_dispensary
            and not self.day.has_dispensary_today(s.id)
            and s.id not in warfarin
            and self._free_for(s, start, end)
            and self._free_of_wards(s)
        ]
        if not eligible:
            return None
        least = min(self.day.duty(s.id) for s in eligible)
        pool: List[Staff] = []
        for s in eligible:
            if self.day.duty(s.id) != least:
                continue
            pool.extend([s] * (JUNIOR_DRAW_WEIGHT if s.is_junior else 1))
        return self.day.shuffled(pool)[0]

    # -----------------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------------

    def order_by_duty(self, staff: Iterable[Staff]) -> List[Staff]:
        """Zero-duty staff first (shuffled), then the rest by ascending duty."""
        staff = list(staff)
        zero = self.day.shuffled(s for s in staff if self.day.duty(s.id) == 0)
        rest = sorted(
            self.day.shuffled(s for s in staff if self.day.duty(s.id) != 0),
            key=lambda s: self.day.duty(s.id),
        )
        return zero + rest

    def _free_for(self, s: Staff, start: str, end: str) -> bool:
        return not self.day.is_busy(s.id, start, end) and not self.day.is_unavailable(s, start, end)

    def _free_of_wards(self, s: Staff) -> bool:
        return (
            s.id not in self.day.multi_ward_staff()
            and not self.day.is_sole_in_any_directorate(s.id)
        )

    def _lunch_eligible(self) -> List[Staff]:
        warfarin = self.day.warfarin_clinic_staff()
        return [
            s for s in self.day.staff
            if not s.excluded_from_dispensary
            and s.id not in warfarin
            and not self.day.has_dispensary_today(s.id)
            and self._free_for(s, *LUNCH_COVER)
        ]

    def _add_lunch(self, s: Staff) -> Staff:
        self.day.add(
            s.id, AssignmentType.DISPENSARY, LUNCH_COVER_LOCATION,
            LUNCH_COVER[0], LUNCH_COVER[1], is_lunch_cover=True,
        )
        logger.debug(f"Lunch cover: {s.name}")
        return s
