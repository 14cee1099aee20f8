"""
wards.py — Ward Allocator

Multi-pass greedy ward filling. WardAllocator holds the shared working pool
and runs its passes strictly in this order (see run()):

   1. seed_eau_practitioners        EAU Practitioners onto the EAU ward
   2. place_primary                 primary ward, else first free ward in the
                                    primary directorate; untrained band 6 may
                                    bump a band 7
   3. rescue_empty_directorates     every directorate but ITU gets somebody
   4. top_up_minimum                each ward up to ceil(min_pharmacists)
   5. top_up_ideal                  round-robin towards ideal (bounded)
   6. place_remaining               catch-all; band 8a to primary directorate
                                    or management, others forced onto a ward
   7. place_primary_directorate     stragglers into their primary directorate
   8. top_up_ideal                  final round-robin
   9. release_band_8a_to_management non-8a cover sufficient → 8a released
  10. release_unneeded_band_8a      all wards at ideal → idle non-default 8a
  11. rescue_uncovered_from_management
  12. balance_directorates          at most MAX_BALANCE_MOVES moves
  13. pair_uncovered_wards          one person covers several wards
  14. swap_overstaffed_for_band_8a  free remaining default 8a
  15. report_coverage_gaps          conflicts for anything still short

Invariants held by every pass:
  - band 8a staff only ever sit on wards of their primary directorate,
    otherwise they go to Management Time
  - EAU Practitioners count 0.5 towards headcount
  - ITU may finish empty
"""

import logging
import math
from typing import Dict, List, Optional, Set

from pharmacy_rota.day import DayState
from pharmacy_rota.models import AssignmentType, BAND_6, BAND_7, Staff, Ward
from pharmacy_rota.schedule_config import (
    DISPENSARY_BLOCKS,
    EAU_DIRECTORATE,
    EAU_HEADCOUNT_WEIGHT,
    EAU_WARD_MARKER,
    ITU_DIRECTORATE,
    ITU_WARD_MARKER,
    MANAGEMENT_LOCATION,
    MAX_BALANCE_MOVES,
    WARD_MATCH_WEIGHTS,
)
from pharmacy_rota.skills import can_swap_onto_ward, has_special_training

logger = logging.getLogger(__name__)


def ward_match_score(staff: Staff, ward: Ward) -> int:
    """Lower is better."""
    score = 0
    if staff.has_primary_ward(ward.name):
        score += WARD_MATCH_WEIGHTS["primary_ward"]
    if staff.primary_directorate == ward.directorate:
        score += WARD_MATCH_WEIGHTS["primary_directorate"]
    if staff.is_band_8a:
        score += WARD_MATCH_WEIGHTS["band_8a"]
    elif staff.band == BAND_7:
        score += WARD_MATCH_WEIGHTS["band_7"]
    elif staff.band == BAND_6 and staff.is_trained_in(ward.directorate):
        score += WARD_MATCH_WEIGHTS["band_6_trained"]
    return score


def can_place(staff: Staff, ward: Ward) -> bool:
    """Band 8a confinement: 8a only on wards of their primary directorate."""
    return not staff.is_band_8a or staff.primary_directorate == ward.directorate


def is_protected_ward(ward: Ward) -> bool:
    return (
        EAU_WARD_MARKER in ward.name
        or ITU_WARD_MARKER in ward.name
        or ward.directorate in (EAU_DIRECTORATE, ITU_DIRECTORATE)
    )


class WardAllocator:

    def __init__(self, day: DayState):
        self.day = day
        self.wards = day.active_wards
        self.by_directorate = day.wards_by_directorate
        self.pool: List[Staff] = []

    def run(self) -> None:
        self.build_pool()
        self.seed_eau_practitioners()
        self.place_primary()
        self.rescue_empty_directorates()
        self.top_up_minimum()
        self.top_up_ideal()
        self.place_remaining()
        self.place_primary_directorate()
        self.top_up_ideal()
        self.release_band_8a_to_management()
        self.release_unneeded_band_8a()
        self.rescue_uncovered_from_management()
        self.balance_directorates()
        self.pair_uncovered_wards()
        self.swap_overstaffed_for_band_8a()
        self.report_coverage_gaps()

    # -----------------------------------------------------------------------
    # Shared helpers
    # -----------------------------------------------------------------------

    def build_pool(self) -> None:
        """Ward-eligible staff: no dispensary role, no EAU, no full-day dispensary, available all day."""
        self.pool = []
        for s in self.day.staff:
            if not s.in_ward_rotation or s.id in self.day.full_day_dispensary:
                continue
            if not self.day.is_available_all_day(s):
                logger.debug(f"{s.name} unavailable on {self.day.day_label} — not in ward pool")
                continue
            self.pool.append(s)
        logger.info(f"{self.day.date_str}: ward pool {len(self.pool)} staff, {len(self.wards)} active wards")

    def _assign(self, s: Staff, ward: Ward) -> None:
        self.day.add(s.id, AssignmentType.WARD, ward.name)
        self._drop_from_pool(s)
        logger.debug(f"{s.name} → {ward.name} ({ward.directorate})")

    def _drop_from_pool(self, s: Staff) -> None:
        self.pool = [p for p in self.pool if p.id != s.id]

    def _unassign_ward(self, s: Staff, ward_name: Optional[str] = None) -> None:
        for a in self.day.assignments_of(s.id, AssignmentType.WARD):
            if ward_name is None or a.location == ward_name:
                self.day.remove(a)

    def _to_management(self, s: Staff) -> None:
        self._unassign_ward(s)
        self._drop_from_pool(s)
        if not self.day.is_on_management(s.id):
            self.day.add(s.id, AssignmentType.MANAGEMENT, MANAGEMENT_LOCATION)
            logger.debug(f"{s.name} → {MANAGEMENT_LOCATION}")

    def _leave_management(self, s: Staff) -> None:
        for a in self.day.assignments_of(s.id, AssignmentType.MANAGEMENT):
            self.day.remove(a)

    def _best_candidate(self, ward: Ward) -> Optional[Staff]:
        candidates = sorted(
            (s for s in self.pool if can_place(s, ward)),
            key=lambda s: ward_match_score(s, ward),
        )
        return candidates[0] if candidates else None

    def _staff_on_wards(self, wards: List[Ward]) -> List[Staff]:
        out: List[Staff] = []
        for w in wards:
            for s in self.day.occupants(w.name):
                if s not in out:
                    out.append(s)
        return out

    def _directorates_of(self, s: Staff) -> Set[str]:
        return {
            self.day.ward_by_name[name].directorate
            for name in self.day.wards_of(s.id)
            if name in self.day.ward_by_name
        }

    def _is_filled(self, directorate: str) -> bool:
        if directorate == ITU_DIRECTORATE:
            return True
        return bool(self._staff_on_wards(self.by_directorate.get(directorate, [])))

    # -----------------------------------------------------------------------
    # Pass 1: EAU seeding
    # -----------------------------------------------------------------------

    def seed_eau_practitioners(self) -> None:
        eau_ward = next((w for w in self.wards if w.directorate == EAU_DIRECTORATE), None)
        if eau_ward is None:
            return
        for s in self.day.staff:
            if s.is_eau_practitioner and self.day.is_available_all_day(s):
                self.day.add(s.id, AssignmentType.WARD, eau_ward.name)
                logger.debug(f"EAU Practitioner {s.name} → {eau_ward.name}")

    # -----------------------------------------------------------------------
    # Pass 2: primary placement
    # -----------------------------------------------------------------------

    def place_primary(self) -> None:
        placed: Set[str] = set()
        ordered = sorted(self.pool, key=lambda s: (0 if s.primary_wards else 1, -s.band_rank))
        for s in ordered:
            if not s.primary_directorate or self.day.has_ward(s.id):
                continue
            dir_wards = self.by_directorate.get(s.primary_directorate, [])
            if not dir_wards:
                continue

            target = next(
                (w for w in dir_wards if s.has_primary_ward(w.name) and w.name not in placed),
                None,
            )
            if target is None:
                target = next((w for w in dir_wards if w.name not in placed), None)

            if target is None:
                if s.band != BAND_6 or s.is_trained_in(s.primary_directorate):
                    continue
                target = self._bump_band_7(s.primary_directorate)
                if target is None:
                    continue
                logger.info(f"Untrained band 6 {s.name} takes {target.name} from a band 7")

            self._assign(s, target)
            placed.add(target.name)
        logger.info(f"Primary placement done, {len(self.pool)} staff remain in pool")

    def _bump_band_7(self, directorate: str) -> Optional[Ward]:
        """Remove a band 7 from the directorate (non-default, off-primary first); return freed ward."""
        occupants = []
        for w in self.by_directorate.get(directorate, []):
            for s in self.day.occupants(w.name):
                if s.band == BAND_7:
                    occupants.append((s, w))
        if not occupants:
            return None
        occupants.sort(key=lambda sw: (sw[0].is_default, sw[0].has_primary_ward(sw[1].name)))
        bumped, ward = occupants[0]
        self._unassign_ward(bumped, ward.name)
        self.pool.append(bumped)
        return ward

    # -----------------------------------------------------------------------
    # Pass 3: empty-directorate rescue
    # -----------------------------------------------------------------------

    def rescue_empty_directorates(self) -> None:
        queue = [d for d in self.by_directorate if not self._is_filled(d)]
        budget = 2 * len(self.by_directorate)
        while queue and budget > 0:
            budget -= 1
            directorate = queue.pop(0)
            if self._is_filled(directorate):
                continue

            chosen = self._empty_directorate_candidate(directorate)
            if chosen is None:
                self.day.tracker.warning(
                    "emptyDirectorate",
                    f"No suitable pharmacist found for empty directorate {directorate}",
                    location=directorate,
                )
                continue

            vacated = self._directorates_of(chosen)
            if vacated:
                logger.info(f"Moving {chosen.name} from {sorted(vacated)} to empty directorate {directorate}")
            self._unassign_ward(chosen)
            self._assign(chosen, self.by_directorate[directorate][0])
            for d in sorted(vacated):
                if not self._is_filled(d) and d not in queue:
                    queue.append(d)

    def _empty_directorate_candidate(self, directorate: str) -> Optional[Staff]:
        staff = [
            s for s in self.day.staff
            if s.in_ward_rotation
            and s.id not in self.day.full_day_dispensary
            and self.day.is_available_all_day(s)
        ]

        def _rank(s: Staff):
            current = self._directorates_of(s)
            return (
                bool(current),
                s.primary_directorate in current,
                s.is_default,
                not s.is_trained_in(directorate),
            )

        tiers = [
            [s for s in staff if s.band == BAND_6 and s.is_trained_in(directorate)],
            [s for s in staff if s.band == BAND_7 and s.is_trained_in(directorate)],
            [s for s in staff if s.band == BAND_7],
        ]
        for tier in tiers:
            if tier:
                return sorted(tier, key=_rank)[0]

        seniors = [s for s in staff if s.is_band_8a and s.primary_directorate == directorate]
        if seniors:
            return sorted(seniors, key=lambda s: (self.day.has_ward(s.id), not s.is_default))[0]
        return None

    # -----------------------------------------------------------------------
    # Passes 4/5: headcount top-up
    # -----------------------------------------------------------------------

    def top_up_minimum(self) -> None:
        for w in self.wards:
            needed = math.ceil(w.min_pharmacists)
            while self.day.headcount(w.name) < needed:
                chosen = self._best_candidate(w)
                if chosen is None:
                    break
                self._assign(chosen, w)

    def top_up_ideal(self) -> None:
        if not self.wards:
            return
        index = 0
        while self.pool:
            w = self.wards[index % len(self.wards)]
            if self.day.headcount(w.name) < w.ideal_pharmacists:
                chosen = self._best_candidate(w)
                if chosen is not None:
                    self._assign(chosen, w)
            index += 1
            if index > 2 * len(self.wards):
                break

    # -----------------------------------------------------------------------
    # Pass 6: catch-all placement
    # -----------------------------------------------------------------------

    def place_remaining(self) -> None:
        for directorate, dir_wards in self.by_directorate.items():
            if self._is_filled(directorate):
                continue
            candidates = sorted(
                (s for s in self.pool if can_place(s, dir_wards[0])),
                key=lambda s: not s.is_trained_in(directorate),
            )
            if candidates:
                self._assign(candidates[0], dir_wards[0])

        ordered = sorted(
            self.pool,
            key=lambda s: (s.is_band_8a, 0 if s.band == BAND_7 else 1, s.is_default),
        )
        for s in ordered:
            if s.is_band_8a:
                self._place_band_8a(s)
                continue
            target = (
                self._first_below_ideal(
                    [w for w in self.wards if s.is_trained_in(w.directorate)]
                )
                or self._first_below_ideal(self.wards)
                or (self.wards[0] if self.wards else None)
            )
            if target is not None:
                self._assign(s, target)
        logger.info(f"Catch-all placement done, {len(self.pool)} staff remain in pool")

    def _place_band_8a(self, s: Staff) -> None:
        for w in self.by_directorate.get(s.primary_directorate or "", []):
            if self.day.raw_count(w.name) < w.ideal_pharmacists:
                self._assign(s, w)
                return
        self._to_management(s)

    def _first_below_ideal(self, wards: List[Ward]) -> Optional[Ward]:
        for w in wards:
            if self.day.headcount(w.name) < w.ideal_pharmacists:
                return w
        return None

    # -----------------------------------------------------------------------
    # Pass 7: primary-directorate retry
    # -----------------------------------------------------------------------

    def place_primary_directorate(self) -> None:
        for s in list(self.pool):
            dir_wards = self.by_directorate.get(s.primary_directorate or "", [])
            ordered = sorted(dir_wards, key=lambda w: not s.has_primary_ward(w.name))
            for w in ordered:
                if self.day.raw_count(w.name) < w.ideal_pharmacists:
                    self._assign(s, w)
                    break

    # -----------------------------------------------------------------------
    # Pass 9/10: free band 8a for management time
    # -----------------------------------------------------------------------

    def release_band_8a_to_management(self) -> None:
        for directorate, dir_wards in self.by_directorate.items():
            occupants = self._staff_on_wards(dir_wards)
            seniors = [s for s in occupants if s.is_band_8a]
            if not seniors:
                continue
            has_band_7 = any(s.band == BAND_7 for s in occupants)
            cover = sum(
                EAU_HEADCOUNT_WEIGHT if s.is_eau_practitioner else 1
                for s in occupants if not s.is_band_8a
            )
            total_min = sum(w.min_pharmacists for w in dir_wards)
            total_ideal = sum(w.ideal_pharmacists for w in dir_wards)

            sufficient = cover >= total_ideal or (has_band_7 and cover >= total_min)
            if not sufficient:
                continue
            for s in seniors:
                logger.info(f"{directorate}: non-8a cover {cover:g} sufficient, {s.name} to management")
                self._to_management(s)

    def release_unneeded_band_8a(self) -> None:
        """Unassigned non-default 8a (e.g. out of the ward pool for part of the day) to management."""
        if any(self.day.headcount(w.name) < w.ideal_pharmacists for w in self.wards):
            return
        for s in self.day.staff:
            if not s.is_band_8a or s.is_default or self.day.assignments_of(s.id):
                continue
            if all(self.day.is_unavailable(s, start, end) for start, end in DISPENSARY_BLOCKS):
                continue
            logger.info(f"All wards at ideal, unassigned 8a {s.name} to management")
            self._to_management(s)

    # -----------------------------------------------------------------------
    # Pass 11: management-time rescue
    # -----------------------------------------------------------------------

    def rescue_uncovered_from_management(self) -> None:
        if not self.day.uncovered_wards():
            return

        # direct primary-ward matches
        for s in self._management_staff():
            uncovered = {w.name: w for w in self.day.uncovered_wards()}
            ward = next(
                (uncovered[name] for name in s.primary_wards
                 if name in uncovered and can_place(s, uncovered[name])),
                None,
            )
            if ward is not None:
                self._leave_management(s)
                self._assign(s, ward)
                logger.info(f"{s.name} back from management to primary ward {ward.name}")

        self._swap_default_band_8a_out()

        for s in self._management_staff():
            if not s.is_default or not self.day.uncovered_wards():
                continue
            target, displaced, rehome = self._management_target(s)
            if target is None:
                continue
            self._leave_management(s)
            if displaced is not None:
                self._unassign_ward(displaced, target.name)
            self._assign(s, target)
            logger.info(f"{s.name} from management to {target.name}")
            if displaced is not None:
                if rehome is not None:
                    self._assign(displaced, rehome)
                    logger.info(f"Displaced {displaced.name} re-homed to {rehome.name}")
                else:
                    self._to_management(displaced)

        logger.info(f"Management rescue done, {len(self.day.uncovered_wards())} wards uncovered")

    def _management_staff(self) -> List[Staff]:
        return [s for s in self.day.staff if self.day.is_on_management(s.id)]

    def _overstaffed(self) -> List[Ward]:
        return [w for w in self.wards if self.day.raw_count(w.name) > w.ideal_pharmacists]

    def _swap_default_band_8a_out(self) -> None:
        """Replace default 8a on wards with surplus staff from overstaffed wards."""
        for s in self.day.staff:
            if not (s.is_band_8a and s.is_default):
                continue
            for ward_name in self.day.wards_of(s.id):
                ward = self.day.ward_by_name[ward_name]
                replacement = self._surplus_replacement(ward)
                if replacement is None:
                    continue
                mover, source = replacement
                self._unassign_ward(mover, source.name)
                self.day.add(mover.id, AssignmentType.WARD, ward.name)
                self._to_management(s)
                logger.info(f"{mover.name} ({source.name}) replaces 8a {s.name} on {ward.name}")
                break

    def _surplus_replacement(self, ward: Ward):
        for source in self._overstaffed():
            if source.name == ward.name:
                continue
            for p in self.day.occupants(source.name):
                if p.is_band_8a or not p.in_ward_rotation:
                    continue
                if p.has_primary_ward(source.name) or ward.name in self.day.wards_of(p.id):
                    continue
                if p.is_trained_in(ward.directorate) or p.primary_directorate == ward.directorate:
                    return p, source
        return None

    def _management_target(self, s: Staff):
        """(target ward, displaced staff or None, re-home ward or None)."""
        uncovered = self.day.uncovered_wards()

        for name in s.primary_wards:
            ward = self.day.ward_by_name.get(name)
            if ward is None or not can_place(s, ward):
                continue
            occupants = self.day.occupants(name)
            if not occupants:
                return ward, None, None
            other = next((p for p in occupants if p.in_ward_rotation), None)
            if other is None:
                continue
            if other.is_default and other.has_primary_ward(name):
                continue
            other_has_home = any(w.directorate == other.primary_directorate for w in uncovered)
            if not (other_has_home or other.primary_directorate == ward.directorate):
                continue
            rehome = self._rehome_ward(other, exclude=ward.name)
            if rehome is None and not other.is_band_8a:
                continue
            return ward, other, rehome

        dir_wards = self.by_directorate.get(s.primary_directorate or "", [])
        free = next((w for w in dir_wards if w in uncovered and can_place(s, w)), None)
        if free is not None:
            return free, None, None
        for ward in dir_wards:
            other = next((p for p in self.day.occupants(ward.name) if p.in_ward_rotation), None)
            if other is None or not can_place(s, ward):
                continue
            if other.is_default and (
                other.has_primary_ward(ward.name) or other.primary_directorate == ward.directorate
            ):
                continue
            rehome = self._rehome_ward(other, exclude=ward.name)
            if rehome is None and not other.is_band_8a:
                continue
            return ward, other, rehome
        return None, None, None

    def _rehome_ward(self, s: Staff, exclude: str) -> Optional[Ward]:
        """Primary ward → primary directorate → trained directorate → any uncovered."""
        options = [
            w for w in self.day.uncovered_wards()
            if w.name != exclude and can_place(s, w)
        ]
        for test in (
            lambda w: s.has_primary_ward(w.name),
            lambda w: w.directorate == s.primary_directorate,
            lambda w: s.is_trained_in(w.directorate),
            lambda w: True,
        ):
            match = next((w for w in options if test(w)), None)
            if match is not None:
                return match
        return None

    # -----------------------------------------------------------------------
    # Pass 12: directorate balance
    # -----------------------------------------------------------------------

    def balance_directorates(self) -> None:
        moves = 0
        while moves < MAX_BALANCE_MOVES:
            uncovered_by_dir: Dict[str, List[Ward]] = {}
            for w in self.day.uncovered_wards():
                uncovered_by_dir.setdefault(w.directorate, []).append(w)
            deficient = sorted(
                (d for d, ws in uncovered_by_dir.items() if len(ws) > 1 and d != ITU_DIRECTORATE),
                key=lambda d: -len(uncovered_by_dir[d]),
            )
            if not deficient:
                break
            target_dir = deficient[0]
            target = uncovered_by_dir[target_dir][0]

            mover = self._balance_mover(uncovered_by_dir, target)
            if mover is None:
                logger.info("Directorate balance: no movable staff left")
                break
            s, source = mover
            self._unassign_ward(s, source.name)
            self.day.add(s.id, AssignmentType.WARD, target.name)
            moves += 1
            logger.info(f"Balance move {moves}: {s.name} {source.name} → {target.name}")

    def _balance_mover(self, uncovered_by_dir: Dict[str, List[Ward]], target: Ward):
        candidates = []
        for directorate, dir_wards in self.by_directorate.items():
            if directorate in uncovered_by_dir or len(dir_wards) < 2:
                continue
            occupants = self._staff_on_wards(dir_wards)
            if len(occupants) < 2:
                continue
            for w in dir_wards:
                if is_protected_ward(w):
                    continue
                for s in self.day.occupants(w.name):
                    if s.is_band_8a or not s.in_ward_rotation:
                        continue
                    if len(self._directorates_of(s)) > 1:
                        continue
                    if not has_special_training(s, target):
                        continue
                    candidates.append((s, w))
        if not candidates:
            return None
        candidates.sort(key=lambda sw: (
            self.day.raw_count(sw[1].name) <= sw[1].ideal_pharmacists,
            sw[0].has_primary_ward(sw[1].name),
            sw[0].is_default,
            sw[0].band_rank,
            sw[0].is_trained_in(sw[1].directorate),
        ))
        return candidates[0]

    # -----------------------------------------------------------------------
    # Pass 13: pair uncovered wards onto staff already in the directorate
    # -----------------------------------------------------------------------

    def pair_uncovered_wards(self) -> None:
        uncovered_by_dir: Dict[str, List[Ward]] = {}
        for w in self.day.uncovered_wards():
            uncovered_by_dir.setdefault(w.directorate, []).append(w)

        for directorate, wards in uncovered_by_dir.items():
            wards = sorted(wards, key=lambda w: (-(w.difficulty or 0), w.name))
            team = [
                s for s in self._staff_on_wards(self.by_directorate[directorate])
                if s.in_ward_rotation
            ]
            if not team:
                continue
            team.sort(key=lambda s: (
                sum(1 for w in self.by_directorate[directorate] if s.has_primary_ward(w.name)) <= 1,
                s.band_rank,
                not s.is_trained_in(directorate),
            ))
            for ward in wards:
                options = [s for s in team if can_place(s, ward) and has_special_training(s, ward)]
                if not options:
                    continue
                chosen = min(options, key=lambda s: len(self.day.wards_of(s.id)))
                self.day.add(chosen.id, AssignmentType.WARD, ward.name)
                logger.info(f"{chosen.name} additionally covers {ward.name}")

    # -----------------------------------------------------------------------
    # Pass 14: overstaffed → band 8a swap
    # -----------------------------------------------------------------------

    def swap_overstaffed_for_band_8a(self) -> None:
        for s in self.day.staff:
            if not (s.is_band_8a and s.is_default):
                continue
            for ward_name in self.day.wards_of(s.id):
                ward = self.day.ward_by_name[ward_name]
                movers = self._overstaffed_movers(exclude=ward_name)
                mover = next(
                    ((p, src) for p, src in movers
                     if can_swap_onto_ward(p, ward) and ward_name not in self.day.wards_of(p.id)),
                    None,
                )
                if mover is None:
                    continue
                p, source = mover
                self._unassign_ward(p, source.name)
                self.day.add(p.id, AssignmentType.WARD, ward.name)
                self._to_management(s)
                logger.info(f"{p.name} ({source.name}) frees 8a {s.name} from {ward.name}")
                break

    def _overstaffed_movers(self, exclude: str):
        movers = []
        for w in self._overstaffed():
            if w.name == exclude or is_protected_ward(w):
                continue
            for p in self.day.occupants(w.name):
                if p.is_band_8a or not p.in_ward_rotation:
                    continue
                movers.append((p, w))
        movers.sort(key=lambda pw: (pw[0].has_primary_ward(pw[1].name), pw[0].band_rank))
        return movers

    # -----------------------------------------------------------------------
    # Pass 15: coverage report
    # -----------------------------------------------------------------------

    def report_coverage_gaps(self) -> None:
        for w in self.wards:
            if w.directorate == ITU_DIRECTORATE or ITU_WARD_MARKER in w.name:
                continue
            needed = math.ceil(w.min_pharmacists)
            have = self.day.headcount(w.name)
            if have < needed:
                self.day.tracker.warning(
                    "ward",
                    f"{w.name} below minimum headcount ({have:g} of {needed})",
                    location=w.name,
                )

        reported = {c.location for c in self.day.tracker.of_type("emptyDirectorate")}
        for directorate in self.by_directorate:
            if directorate in reported or self._is_filled(directorate):
                continue
            self.day.tracker.warning(
                "emptyDirectorate",
                f"Directorate {directorate} has no pharmacist assigned",
                location=directorate,
            )
