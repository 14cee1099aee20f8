"""
availability.py — Availability Evaluator

Pure functions deciding whether a staff member can take a duty:
  - is_unavailable: personal "not available" windows for a weekday
  - is_working:     working-day list (or a per-week override)
  - overlaps:       half-open interval test shared by every allocator

Effective rules: a per-rota map {staff_id: [UnavailableRule]} that, when it
holds an entry for a staff member, REPLACES their permanent rules for that
rota (no merge). resolve_effective_rules() builds that map from a week
configuration's ignored / extra rules.
"""

import logging
from datetime import date, datetime
from typing import Dict, Iterable, List, Optional, Union

from pharmacy_rota.models import Staff, UnavailableRule
from pharmacy_rota.schedule_config import WEEKDAY_LABELS

logger = logging.getLogger(__name__)

EffectiveRules = Dict[str, List[UnavailableRule]]


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------

def to_minutes(hhmm: str) -> int:
    """Convert 'HH:MM' to minutes since midnight."""
    try:
        hours, minutes = hhmm.strip().split(":")
        return int(hours) * 60 + int(minutes)
    except (AttributeError, ValueError):
        raise ValueError(f"Invalid time (expected HH:MM): {hhmm!r}")


def overlaps(start_a: str, end_a: str, start_b: str, end_b: str) -> bool:
    """Half-open overlap of [start_a, end_a) and [start_b, end_b)."""
    return not (
        to_minutes(end_a) <= to_minutes(start_b)
        or to_minutes(start_a) >= to_minutes(end_b)
    )


def parse_date(value: Union[str, date]) -> date:
    """Parse YYYY-MM-DD (or pass a date through). Raises ValueError otherwise."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value).strip(), "%Y-%m-%d").date()
    except ValueError:
        raise ValueError(f"Invalid date (expected YYYY-MM-DD): {value!r}")


def weekday_label(d: date) -> str:
    return WEEKDAY_LABELS[d.weekday()]


# ---------------------------------------------------------------------------
# Availability
# ---------------------------------------------------------------------------

def rules_for(staff: Staff, effective_rules: Optional[EffectiveRules] = None) -> List[UnavailableRule]:
    if effective_rules and staff.id in effective_rules:
        return effective_rules[staff.id]
    return staff.not_available_rules


def is_unavailable(
    staff: Staff,
    day_label: str,
    start: str,
    end: str,
    effective_rules: Optional[EffectiveRules] = None,
) -> bool:
    """True if any of the staff member's rules for day_label overlaps [start, end)."""
    for rule in rules_for(staff, effective_rules):
        if rule.day_of_week != day_label:
            continue
        if overlaps(start, end, rule.start_time, rule.end_time):
            return True
    return False


def is_working(
    staff: Staff,
    day_label: str,
    working_days_override: Optional[Dict[str, List[str]]] = None,
) -> bool:
    """
    Working-day check. With an override map, a staff member missing from
    the map is treated as not working.
    """
    if working_days_override is not None:
        return day_label in working_days_override.get(staff.id, [])
    return day_label in staff.working_days


def working_staff(
    staff: Iterable[Staff],
    day_label: str,
    working_days_override: Optional[Dict[str, List[str]]] = None,
) -> List[Staff]:
    return [s for s in staff if is_working(s, day_label, working_days_override)]


def resolve_effective_rules(
    staff: Iterable[Staff],
    ignored_rules: Optional[Dict[str, List[int]]] = None,
    extra_rules: Optional[Dict[str, List[UnavailableRule]]] = None,
) -> EffectiveRules:
    """
    Build the effective-rules map for one rota.

    ignored_rules: {staff_id: [indices into staff.not_available_rules]} to drop
    extra_rules:   {staff_id: [UnavailableRule]} added for this rota only

    Staff with neither get no entry, so their permanent rules apply.
    """
    ignored_rules = ignored_rules or {}
    extra_rules = extra_rules or {}
    effective: EffectiveRules = {}
    for s in staff:
        if s.id not in ignored_rules and s.id not in extra_rules:
            continue
        skip = set(ignored_rules.get(s.id, []))
        kept = [r for i, r in enumerate(s.not_available_rules) if i not in skip]
        effective[s.id] = kept + list(extra_rules.get(s.id, []))
        logger.debug(
            f"Effective rules for {s.name}: {len(kept)} kept, "
            f"{len(skip)} ignored, {len(extra_rules.get(s.id, []))} added"
        )
    return effective
