"""
config.py — Master Data Loading for the Pharmacy Rota Engine

Loads staff, unavailability windows, wards and clinics from CSV, and the
per-week rota configuration from JSON.

CSV conventions:
  - list columns are ';'-separated   (e.g. primary_wards = "Ward 1;Ward 2")
  - boolean columns accept yes/true/1/y (anything else is False)
  - blank cells mean "not set"
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from pharmacy_rota.models import ALL_BANDS, Clinic, Directorate, Staff, UnavailableRule, Ward
from pharmacy_rota.schedule_config import (
    DISPENSARY_BLOCKS,
    EAU_HEADCOUNT_WEIGHT,
    LUNCH_COVER,
    MAX_BALANCE_MOVES,
    STALE_DRAFT_MONTHS,
    WARD_MATCH_WEIGHTS,
    WEEKDAY_LABELS,
    WORKING_WEEKDAYS,
)

logger = logging.getLogger(__name__)

PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CONFIG_DIR = PROJECT_ROOT / "config"
DEFAULT_STAFF_PATH          = DEFAULT_CONFIG_DIR / "staff.csv"
DEFAULT_UNAVAILABILITY_PATH = DEFAULT_CONFIG_DIR / "unavailability.csv"
DEFAULT_WARDS_PATH          = DEFAULT_CONFIG_DIR / "wards.csv"
DEFAULT_CLINICS_PATH        = DEFAULT_CONFIG_DIR / "clinics.csv"
DEFAULT_WEEK_CONFIG_PATH    = DEFAULT_CONFIG_DIR / "week_config.json"


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _read_csv(path: Path):
    import pandas as pd

    # Everything as text; blank cells become "" rather than NaN
    return pd.read_csv(path, dtype=str, keep_default_na=False)


def _parse_yes_no(value: Any, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    s = str(value).strip().lower()
    if not s:
        return default
    return s in ("yes", "true", "1", "y")


def _parse_list(raw: Any) -> List[str]:
    """';'-separated cell → list of stripped, non-empty strings."""
    if raw is None:
        return []
    return [p.strip() for p in str(raw).split(";") if p.strip()]


def _optional(raw: Any) -> Optional[str]:
    s = str(raw).strip() if raw is not None else ""
    return s or None


def _parse_float(raw: Any, default: float, column: str, path: Path) -> float:
    s = str(raw).strip()
    if not s:
        return default
    try:
        return float(s)
    except ValueError:
        raise ValueError(f"{path.name}: column '{column}' expects a number, got {raw!r}")


def _require_columns(df: Any, required: Iterable[str], path: Path) -> None:
    missing = [c for c in required if c not in df.columns]
    if missing:
        raise ValueError(f"{path.name} is missing required columns: {', '.join(missing)}")


def _check_weekdays(labels: List[str], where: str) -> List[str]:
    bad = [d for d in labels if d not in WEEKDAY_LABELS]
    if bad:
        raise ValueError(f"{where}: unknown weekday(s) {bad}")
    return labels


# ---------------------------------------------------------------------------
# Staff
# ---------------------------------------------------------------------------

def load_staff(staff_path: Optional[Path] = None) -> List[Staff]:
    """
    Load staff from staff.csv.

    Expected columns:
      id, name, band, warfarin_trained, specialist_training,
      primary_directorate, primary_wards, trained_directorates,
      is_default, working_days, display_name (optional)

    Raises FileNotFoundError if the file is missing, ValueError on an
    unknown band or a duplicate id. Order of the file is preserved.
    """
    path = Path(staff_path) if staff_path else DEFAULT_STAFF_PATH
    if not path.exists():
        raise FileNotFoundError(f"Staff file not found: {path}")

    df = _read_csv(path)
    _require_columns(df, ("id", "name", "band"), path)

    staff: List[Staff] = []
    seen = set()
    for _, row in df.iterrows():
        staff_id = str(row["id"]).strip()
        if not staff_id:
            raise ValueError(f"{path.name}: blank staff id for {row['name']!r}")
        if staff_id in seen:
            raise ValueError(f"{path.name}: duplicate staff id {staff_id!r}")
        seen.add(staff_id)

        band = str(row["band"]).strip()
        if band not in ALL_BANDS:
            raise ValueError(
                f"{path.name}: unknown band {band!r} for {row['name']!r} "
                f"(expected one of {', '.join(ALL_BANDS)})"
            )

        working_days = _parse_list(row.get("working_days", "")) or list(WORKING_WEEKDAYS)
        staff.append(Staff(
            id=staff_id,
            name=str(row["name"]).strip(),
            band=band,
            warfarin_trained=_parse_yes_no(row.get("warfarin_trained", "")),
            specialist_training=_parse_list(row.get("specialist_training", "")),
            primary_directorate=_optional(row.get("primary_directorate", "")),
            primary_wards=_parse_list(row.get("primary_wards", "")),
            trained_directorates=_parse_list(row.get("trained_directorates", "")),
            is_default=_parse_yes_no(row.get("is_default", "")),
            working_days=_check_weekdays(working_days, f"{path.name} ({staff_id})"),
            display_name=_optional(row.get("display_name", "")),
        ))

    logger.info(f"Loaded {len(staff)} staff from {path}")
    return staff


def load_unavailability(
    staff: List[Staff],
    unavailability_path: Optional[Path] = None,
) -> List[Staff]:
    """
    Attach recurring "not available" windows from unavailability.csv.

    Columns: staff_id, day_of_week, start_time, end_time
    Rows for unknown staff ids are skipped with a warning. A missing file
    leaves the staff unchanged.
    """
    path = Path(unavailability_path) if unavailability_path else DEFAULT_UNAVAILABILITY_PATH
    if not path.exists():
        logger.warning(f"Unavailability file not found: {path}. No rules attached.")
        return staff

    df = _read_csv(path)
    _require_columns(df, ("staff_id", "day_of_week", "start_time", "end_time"), path)

    by_id = {s.id: s for s in staff}
    attached = 0
    for _, row in df.iterrows():
        staff_id = str(row["staff_id"]).strip()
        person = by_id.get(staff_id)
        if person is None:
            logger.warning(f"{path.name}: unknown staff id {staff_id!r}, rule skipped")
            continue
        day = str(row["day_of_week"]).strip()
        _check_weekdays([day], f"{path.name} ({staff_id})")
        person.not_available_rules.append(
            UnavailableRule(day, str(row["start_time"]).strip(), str(row["end_time"]).strip())
        )
        attached += 1

    logger.info(f"Attached {attached} unavailability rules from {path}")
    return staff


def select_staff(staff: List[Staff], staff_ids: Optional[Iterable[str]] = None) -> List[Staff]:
    """Subset of staff by id, keeping roster order. None → everyone."""
    if staff_ids is None:
        return list(staff)
    wanted = set(staff_ids)
    unknown = wanted - {s.id for s in staff}
    if unknown:
        logger.warning(f"Ignoring unknown staff ids: {sorted(unknown)}")
    return [s for s in staff if s.id in wanted]


# ---------------------------------------------------------------------------
# Wards / clinics
# ---------------------------------------------------------------------------

def load_directorates(wards_path: Optional[Path] = None) -> List[Directorate]:
    """
    Load wards from wards.csv and group them by directorate (file order).

    Columns: name, directorate, is_active, min_pharmacists, ideal_pharmacists,
             requires_special_training, training_type, difficulty
    """
    path = Path(wards_path) if wards_path else DEFAULT_WARDS_PATH
    if not path.exists():
        raise FileNotFoundError(f"Wards file not found: {path}")

    df = _read_csv(path)
    _require_columns(df, ("name", "directorate"), path)

    directorates: Dict[str, Directorate] = {}
    for _, row in df.iterrows():
        name = str(row["name"]).strip()
        directorate = str(row["directorate"]).strip()
        difficulty = _optional(row.get("difficulty", ""))
        ward = Ward(
            name=name,
            directorate=directorate,
            is_active=_parse_yes_no(row.get("is_active", ""), default=True),
            min_pharmacists=_parse_float(row.get("min_pharmacists", ""), 1.0, "min_pharmacists", path),
            ideal_pharmacists=_parse_float(row.get("ideal_pharmacists", ""), 1.0, "ideal_pharmacists", path),
            requires_special_training=_parse_yes_no(row.get("requires_special_training", "")),
            training_type=_optional(row.get("training_type", "")),
            difficulty=int(difficulty) if difficulty else None,
        )
        directorates.setdefault(directorate, Directorate(directorate)).wards.append(ward)

    result = list(directorates.values())
    logger.info(
        f"Loaded {sum(len(d.wards) for d in result)} wards in {len(result)} directorates from {path}"
    )
    return result


def load_clinics(clinics_path: Optional[Path] = None) -> List[Clinic]:
    """
    Load clinics from clinics.csv.

    Columns: id, name, day_of_week (1=Monday … 7=Sunday), start_time, end_time,
             preferred_pharmacists, requires_warfarin_training,
             include_by_default, is_active, coverage_note
    """
    path = Path(clinics_path) if clinics_path else DEFAULT_CLINICS_PATH
    if not path.exists():
        raise FileNotFoundError(f"Clinics file not found: {path}")

    df = _read_csv(path)
    _require_columns(df, ("id", "name", "day_of_week", "start_time", "end_time"), path)

    clinics: List[Clinic] = []
    for _, row in df.iterrows():
        try:
            day_of_week = int(str(row["day_of_week"]).strip())
        except ValueError:
            raise ValueError(f"{path.name}: day_of_week must be 1-7, got {row['day_of_week']!r}")
        if not 1 <= day_of_week <= 7:
            raise ValueError(f"{path.name}: day_of_week must be 1-7, got {day_of_week}")
        clinics.append(Clinic(
            id=str(row["id"]).strip(),
            name=str(row["name"]).strip(),
            day_of_week=day_of_week,
            start_time=str(row["start_time"]).strip(),
            end_time=str(row["end_time"]).strip(),
            preferred_pharmacists=_parse_list(row.get("preferred_pharmacists", "")),
            requires_warfarin_training=_parse_yes_no(row.get("requires_warfarin_training", ""), default=True),
            include_by_default=_parse_yes_no(row.get("include_by_default", ""), default=True),
            is_active=_parse_yes_no(row.get("is_active", ""), default=True),
            coverage_note=_optional(row.get("coverage_note", "")),
        ))

    logger.info(f"Loaded {len(clinics)} clinics from {path}")
    return clinics


# ---------------------------------------------------------------------------
# Week configuration
# ---------------------------------------------------------------------------

@dataclass
class WeekConfig:
    """Saved choices for one week's generation run. None means "use the default"."""
    week_start: Optional[str] = None
    staff_ids: Optional[List[str]] = None
    clinic_ids: Optional[List[str]] = None
    working_days: Optional[Dict[str, List[str]]] = None
    single_pharmacist_days: List[str] = field(default_factory=list)
    selected_weekdays: Optional[List[str]] = None
    ignored_rules: Dict[str, List[int]] = field(default_factory=dict)
    extra_rules: Dict[str, List[UnavailableRule]] = field(default_factory=dict)
    last_modified: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "week_start": self.week_start,
            "staff_ids": self.staff_ids,
            "clinic_ids": self.clinic_ids,
            "working_days": self.working_days,
            "single_pharmacist_days": list(self.single_pharmacist_days),
            "selected_weekdays": self.selected_weekdays,
            "ignored_rules": {k: list(v) for k, v in self.ignored_rules.items()},
            "extra_rules": {k: [r.to_dict() for r in v] for k, v in self.extra_rules.items()},
            "last_modified": self.last_modified,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "WeekConfig":
        selected = data.get("selected_weekdays")
        if selected is not None:
            _check_weekdays(list(selected), "week config selected_weekdays")
        return cls(
            week_start=data.get("week_start"),
            staff_ids=data.get("staff_ids"),
            clinic_ids=data.get("clinic_ids"),
            working_days=data.get("working_days"),
            single_pharmacist_days=list(data.get("single_pharmacist_days") or []),
            selected_weekdays=selected,
            ignored_rules={k: [int(i) for i in v] for k, v in (data.get("ignored_rules") or {}).items()},
            extra_rules={
                k: [UnavailableRule.from_dict(r) for r in v]
                for k, v in (data.get("extra_rules") or {}).items()
            },
            last_modified=data.get("last_modified"),
        )


def load_week_config(week_config_path: Optional[Path] = None) -> WeekConfig:
    """Load the week configuration. Missing file → all defaults."""
    path = Path(week_config_path) if week_config_path else DEFAULT_WEEK_CONFIG_PATH
    if not path.exists():
        logger.warning(f"Week config not found: {path}. Using defaults.")
        return WeekConfig()
    with open(path) as f:
        data = json.load(f)
    return WeekConfig.from_dict(data)


def save_week_config(config: WeekConfig, week_config_path: Optional[Path] = None) -> None:
    """Persist the week configuration, stamping last_modified."""
    path = Path(week_config_path) if week_config_path else DEFAULT_WEEK_CONFIG_PATH
    path.parent.mkdir(parents=True, exist_ok=True)
    config.last_modified = datetime.now().isoformat(timespec="seconds")
    with open(path, "w") as f:
        json.dump(config.to_dict(), f, indent=2)
    logger.info(f"Week config saved to {path}")


# ---------------------------------------------------------------------------
# Full config dict
# ---------------------------------------------------------------------------

def get_config() -> Dict[str, Any]:
    return {
        "dispensary_blocks":    list(DISPENSARY_BLOCKS),
        "lunch_cover":          LUNCH_COVER,
        "eau_headcount_weight": EAU_HEADCOUNT_WEIGHT,
        "ward_match_weights":   WARD_MATCH_WEIGHTS.copy(),
        "max_balance_moves":    MAX_BALANCE_MOVES,
        "stale_draft_months":   STALE_DRAFT_MONTHS,
        "working_weekdays":     list(WORKING_WEEKDAYS),
    }


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    roster = load_unavailability(load_staff())
    print(f"Loaded {len(roster)} staff")
    for s in roster:
        flags = "warfarin" if s.warfarin_trained else ""
        print(f"  {s.id:<6} {s.name:<22} band={s.band:<22} {flags} | {s.primary_directorate or '(none)'}")

    directorates = load_directorates()
    print(f"\nDirectorates: {', '.join(d.name for d in directorates)}")
    print(f"Clinics: {len(load_clinics())}")
