"""
Pharmacy Rota Allocation Engine

Modules:
- config: Staff, ward, clinic and week-configuration loading
- availability: Working-day and unavailable-window checks
- clinics / dispensary / wards: The three daily allocators
- engine: Daily and weekly orchestration, fairness metrics
- checker: Post-generation rota validation
- store: Rota persistence (one rota per date)
- exporter: CSV, Excel and fairness-report output
"""

from .config import (
    load_staff,
    load_unavailability,
    load_directorates,
    load_clinics,
    load_week_config,
    save_week_config,
    select_staff,
    get_config,
    WeekConfig,
)

from .engine import (
    generate_daily_rota,
    generate_weekly_rota,
    calculate_fairness_metrics,
)

from .store import InMemoryRotaStore, JsonRotaStore

__all__ = [
    "load_staff",
    "load_unavailability",
    "load_directorates",
    "load_clinics",
    "load_week_config",
    "save_week_config",
    "select_staff",
    "get_config",
    "WeekConfig",
    "generate_daily_rota",
    "generate_weekly_rota",
    "calculate_fairness_metrics",
    "InMemoryRotaStore",
    "JsonRotaStore",
]
