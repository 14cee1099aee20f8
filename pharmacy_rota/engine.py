"""
engine.py — Pharmacy Rota Engine: Daily and Weekly Orchestration

Daily (generate_daily_rota):
  1. Parse the date, work out the weekday label
  2. Resolve today's clinics (explicit ids, else include_by_default)
  3. Clinics → dispensary → wards, in that fixed order (clinics are the
     least substitutable resource; wards need to know who is consumed)
  4. Replace any existing rota for the date in the store

Weekly (generate_weekly_rota):
  Start must be a Monday. For each selected weekday Monday→Friday the
  working staff are filtered, the day is generated with the running
  fairness counters, then the day's clinic and dispensary assignments are
  folded back into those counters before the next day starts. Days are
  strictly sequential; each depends on the previous day's counters.

Fairness counters (keys are staff ids):
  weekly_clinic_count    +1 per clinic assignment
  dispensary_duty_count  +1 per dispensary assignment, except the dedicated
                         dispensary role's own non-lunch shifts

All randomness comes from one injected random.Random.
"""

import logging
import math
import random
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Union

from pharmacy_rota.availability import EffectiveRules, parse_date, weekday_label, working_staff
from pharmacy_rota.clinics import ClinicAllocator
from pharmacy_rota.conflicts import ConflictSeverity
from pharmacy_rota.day import DayState
from pharmacy_rota.dispensary import DispensaryAllocator
from pharmacy_rota.models import CLINICAL_BANDS, AssignmentType, Clinic, Directorate, Rota, Staff
from pharmacy_rota.schedule_config import WORKING_WEEKDAYS
from pharmacy_rota.store import RotaStore
from pharmacy_rota.wards import WardAllocator

logger = logging.getLogger(__name__)

DateLike = Union[str, date]


# ---------------------------------------------------------------------------
# Clinic resolution
# ---------------------------------------------------------------------------

def resolve_clinics(clinics: Iterable[Clinic], clinic_ids: Optional[List[str]] = None) -> List[Clinic]:
    """Explicit subset when clinic_ids given, else active include_by_default clinics."""
    if clinic_ids is not None:
        wanted = set(clinic_ids)
        return [c for c in clinics if c.id in wanted and c.is_active]
    return [c for c in clinics if c.is_active and c.include_by_default]


# ---------------------------------------------------------------------------
# Daily orchestration
# ---------------------------------------------------------------------------

def build_day(
    day: DateLike,
    staff: List[Staff],
    directorates: List[Directorate],
    clinics: List[Clinic],
    clinic_ids: Optional[List[str]] = None,
    dispensary_duty_counts: Optional[Dict[str, int]] = None,
    weekly_clinic_counts: Optional[Dict[str, int]] = None,
    single_pharmacist_days: Optional[Iterable[DateLike]] = None,
    effective_rules: Optional[EffectiveRules] = None,
    rng: Optional[random.Random] = None,
) -> DayState:
    """Run the three allocators for one date and return the populated DayState."""
    d = parse_date(day)
    single_days = {parse_date(x) for x in (single_pharmacist_days or [])}
    state = DayState(
        d,
        staff,
        directorates,
        resolve_clinics(clinics, clinic_ids),
        rng=rng,
        dispensary_duty_count=dispensary_duty_counts,
        weekly_clinic_count=weekly_clinic_counts,
        effective_rules=effective_rules,
        single_pharmacist_day=d in single_days,
    )
    logger.info(f"Generating rota for {state.date_str} ({state.day_label}), {len(staff)} staff")

    ClinicAllocator(state).run()
    DispensaryAllocator(state).run()
    WardAllocator(state).run()
    return state


def generate_daily_rota(
    day: DateLike,
    staff: List[Staff],
    directorates: List[Directorate],
    clinics: List[Clinic],
    store: RotaStore,
    clinic_ids: Optional[List[str]] = None,
    dispensary_duty_counts: Optional[Dict[str, int]] = None,
    weekly_clinic_counts: Optional[Dict[str, int]] = None,
    single_pharmacist_days: Optional[Iterable[DateLike]] = None,
    effective_rules: Optional[EffectiveRules] = None,
    rng: Optional[random.Random] = None,
    included_weekdays: Optional[List[str]] = None,
) -> Rota:
    """
    Generate and persist the rota for one date.

    Raises ValueError for an unparsable date. Unfillable requirements never
    raise; they are returned as the rota's conflicts.
    """
    state = build_day(
        day, staff, directorates, clinics,
        clinic_ids=clinic_ids,
        dispensary_duty_counts=dispensary_duty_counts,
        weekly_clinic_counts=weekly_clinic_counts,
        single_pharmacist_days=single_pharmacist_days,
        effective_rules=effective_rules,
        rng=rng,
    )
    rota = Rota(
        date=state.date_str,
        assignments=list(state.assignments),
        conflicts=state.tracker.conflicts,
        included_weekdays=list(included_weekdays or []),
    )
    store.replace_for_date(rota)
    logger.info(
        f"Rota {rota.date}: {len(rota.assignments)} assignments, {len(rota.conflicts)} conflicts"
    )
    return rota


# ---------------------------------------------------------------------------
# Weekly orchestration
# ---------------------------------------------------------------------------

def update_fairness_counters(
    rota: Rota,
    staff_by_id: Dict[str, Staff],
    dispensary_duty_count: Dict[str, int],
    weekly_clinic_count: Dict[str, int],
) -> None:
    """Fold one day's clinic and dispensary assignments into the running counters."""
    for a in rota.assignments:
        if a.type is AssignmentType.CLINIC:
            weekly_clinic_count[a.staff_id] = weekly_clinic_count.get(a.staff_id, 0) + 1
        elif a.type is AssignmentType.DISPENSARY:
            s = staff_by_id.get(a.staff_id)
            if s is not None and s.prefers_dispensary and not a.is_lunch_cover:
                continue
            dispensary_duty_count[a.staff_id] = dispensary_duty_count.get(a.staff_id, 0) + 1


def generate_weekly_rota(
    start_date: DateLike,
    staff: List[Staff],
    directorates: List[Directorate],
    clinics: List[Clinic],
    store: RotaStore,
    clinic_ids: Optional[List[str]] = None,
    working_days_override: Optional[Dict[str, List[str]]] = None,
    single_pharmacist_days: Optional[Iterable[DateLike]] = None,
    selected_weekdays: Optional[List[str]] = None,
    effective_rules: Optional[EffectiveRules] = None,
    rng: Optional[random.Random] = None,
) -> List[Rota]:
    """
    Generate Monday→Friday of one week, carrying fairness counters forward.

    Raises ValueError if start_date is unparsable or not a Monday.
    """
    start = parse_date(start_date)
    if start.weekday() != 0:
        raise ValueError("Start date must be a Monday")

    rng = rng or random.Random()
    weekdays = list(selected_weekdays) if selected_weekdays else list(WORKING_WEEKDAYS)
    single_days = [parse_date(x) for x in (single_pharmacist_days or [])]
    staff_by_id = {s.id: s for s in staff}

    dispensary_duty_count: Dict[str, int] = {s.id: 0 for s in staff}
    weekly_clinic_count: Dict[str, int] = {s.id: 0 for s in staff}

    rotas: List[Rota] = []
    for offset in range(len(WORKING_WEEKDAYS)):
        d = start + timedelta(days=offset)
        label = weekday_label(d)
        if label not in weekdays:
            logger.info(f"Skipping {d.isoformat()} ({label}) — not selected")
            continue

        todays_staff = working_staff(staff, label, working_days_override)
        rota = generate_daily_rota(
            d, todays_staff, directorates, clinics, store,
            clinic_ids=clinic_ids,
            dispensary_duty_counts=dispensary_duty_count,
            weekly_clinic_counts=weekly_clinic_count,
            single_pharmacist_days=single_days,
            effective_rules=effective_rules,
            rng=rng,
            included_weekdays=weekdays,
        )
        update_fairness_counters(rota, staff_by_id, dispensary_duty_count, weekly_clinic_count)
        rotas.append(rota)

    logger.info(f"Weekly rota from {start.isoformat()}: {len(rotas)} days generated")
    return rotas


# ---------------------------------------------------------------------------
# Fairness metrics
# ---------------------------------------------------------------------------

def calculate_fairness_metrics(rotas: List[Rota], staff: List[Staff]) -> Dict[str, Any]:
    """
    Per-staff duty counts and the spread of combined clinic + dispensary duty.

    Returns:
        {
          mean, std, cv, min, max,
          counts: {staff_id: combined clinic+dispensary duties},
          per_type: {type: {staff_id: int}},   (clinic, dispensary, lunch, ward, management)
          names: {staff_id: name},
          conflicts: int, errors: int,
        }
    Only staff in clinical bands (6/7/8a) enter the spread statistics.
    """
    names = {s.id: s.name for s in staff}
    per_type: Dict[str, Dict[str, int]] = {
        key: {s.id: 0 for s in staff}
        for key in ("clinic", "dispensary", "lunch", "ward", "management")
    }
    conflicts = 0
    errors = 0

    for rota in rotas:
        conflicts += len(rota.conflicts)
        errors += sum(1 for c in rota.conflicts if c.severity is ConflictSeverity.ERROR)
        seen_ward: Dict[str, bool] = {}
        for a in rota.assignments:
            if a.staff_id not in names:
                continue
            if a.type is AssignmentType.DISPENSARY:
                key = "lunch" if a.is_lunch_cover else "dispensary"
            elif a.type is AssignmentType.WARD:
                if seen_ward.get(a.staff_id):
                    continue
                seen_ward[a.staff_id] = True
                key = "ward"
            else:
                key = a.type.value
            per_type[key][a.staff_id] += 1

    counts = {
        s.id: per_type["clinic"][s.id] + per_type["dispensary"][s.id] + per_type["lunch"][s.id]
        for s in staff
    }
    values = [counts[s.id] for s in staff if s.band in CLINICAL_BANDS]
    mean_val = sum(values) / len(values) if values else 0.0
    variance = sum((v - mean_val) ** 2 for v in values) / len(values) if values else 0.0
    std_val = math.sqrt(variance)
    cv = (std_val / mean_val * 100) if mean_val > 0 else 0.0

    return {
        "mean": mean_val,
        "std": std_val,
        "cv": cv,
        "min": min(values) if values else 0,
        "max": max(values) if values else 0,
        "counts": counts,
        "per_type": per_type,
        "names": names,
        "conflicts": conflicts,
        "errors": errors,
        "days": len(rotas),
    }


def get_weekday_dates(start: date, end: date) -> List[date]:
    """Return all Monday-Friday dates in [start, end]."""
    out = []
    d = start
    while d <= end:
        if d.weekday() < 5:
            out.append(d)
        d += timedelta(days=1)
    return out
