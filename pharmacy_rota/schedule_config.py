"""
schedule_config.py — Fixed Rota Configuration for the Pharmacy Rota Engine

Institutional constants shared by the allocators.

DISPENSARY GRID
───────────────
  Four 2-hour blocks cover the dispensary 09:00–17:00:
      09:00–11:00   11:00–13:00   13:00–15:00   15:00–17:00
  Lunch cover is a 30 minute carve-out inside the 13:00–15:00 block:
      13:30–14:00   (location "Dispensary (Lunch Cover)", is_lunch_cover=True)
  When one person holds the dispensary all day (dedicated role or
  single-pharmacist day) their 13:00–15:00 block is split around the
  lunch window so the lunch cover never overlaps them:
      09:00–11:00  11:00–13:00  13:00–13:30  14:00–15:00  15:00–17:00

WARD HEADCOUNT
──────────────
  Ward and management duty spans the whole day (00:00–23:59).
  EAU Practitioners count 0.5 towards a ward's min/ideal headcount.
  The ITU directorate may finish with nobody on it; every other
  directorate should have at least one occupant.

WARD MATCH SCORE (lower is better)
──────────────────────────────────
  primary ward        -10
  primary directorate  -5
  band 8a              -3
  band 7               -2
  band 6 trained here  -1
"""

from typing import Dict, List, Tuple

TimeWindow = Tuple[str, str]

WEEKDAY_LABELS: List[str] = [
    "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday",
]
WORKING_WEEKDAYS: List[str] = WEEKDAY_LABELS[:5]

ALL_DAY: TimeWindow = ("00:00", "23:59")
WORKING_DAY: TimeWindow = ("09:00", "17:00")

# ---------------------------------------------------------------------------
# Dispensary
# ---------------------------------------------------------------------------

DISPENSARY_BLOCKS: List[TimeWindow] = [
    ("09:00", "11:00"),
    ("11:00", "13:00"),
    ("13:00", "15:00"),
    ("15:00", "17:00"),
]
LUNCH_BLOCK: TimeWindow = ("13:00", "15:00")
LUNCH_COVER: TimeWindow = ("13:30", "14:00")

DISPENSARY_LOCATION = "Dispensary"
LUNCH_COVER_LOCATION = "Dispensary (Lunch Cover)"

# Band 6/7 entries are repeated this many times in the general-day draw pool
JUNIOR_DRAW_WEIGHT = 2


def full_day_dispensary_shifts() -> List[TimeWindow]:
    """Shifts for a single all-day dispensary holder, split around lunch cover."""
    shifts: List[TimeWindow] = []
    for block in DISPENSARY_BLOCKS:
        if block == LUNCH_BLOCK:
            shifts.append((LUNCH_BLOCK[0], LUNCH_COVER[0]))
            shifts.append((LUNCH_COVER[1], LUNCH_BLOCK[1]))
        else:
            shifts.append(block)
    return shifts


# ---------------------------------------------------------------------------
# Wards / management
# ---------------------------------------------------------------------------

MANAGEMENT_LOCATION = "Management Time"

EAU_DIRECTORATE = "EAU"
ITU_DIRECTORATE = "ITU"
ITU_TRAINING = "ITU"
EAU_WARD_MARKER = "Emergency Assessment Unit"
ITU_WARD_MARKER = "ITU"

EAU_HEADCOUNT_WEIGHT = 0.5

WARD_MATCH_WEIGHTS: Dict[str, int] = {
    "primary_ward":        -10,
    "primary_directorate": -5,
    "band_8a":             -3,
    "band_7":              -2,
    "band_6_trained":      -1,
}

# Staffing-balance pass moves at most this many people per day
MAX_BALANCE_MOVES = 3

# ---------------------------------------------------------------------------
# Rota store housekeeping
# ---------------------------------------------------------------------------

STALE_DRAFT_MONTHS = 2
GENERATED_BY = "system"
