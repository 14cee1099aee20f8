"""
dry_run.py — Weekly Rota Generation Run

Full orchestration for one week:
  1. Load staff, unavailability, wards, clinics and the week configuration
  2. Validate inputs (clinic coverage, training summary)
  3. Generate Monday → Friday into the rota store
  4. Re-check every day (double booking, 8a confinement, headcount floor …)
  5. Calculate fairness metrics
  6. Export CSV, Excel, fairness report, conflicts report
  7. Print summary to console

Usage:
  python -m pharmacy_rota.dry_run --week 2026-03-02
  python -m pharmacy_rota.dry_run --week 2026-03-02 --seed 7 --store outputs/rotas.json --visual
  python -m pharmacy_rota.dry_run              # week_start from config/week_config.json
"""

import argparse
import logging
import random
import sys
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from pharmacy_rota.availability import parse_date, resolve_effective_rules
from pharmacy_rota.checker import RotaChecker
from pharmacy_rota.config import (
    DEFAULT_CONFIG_DIR,
    PROJECT_ROOT,
    load_clinics,
    load_directorates,
    load_staff,
    load_unavailability,
    load_week_config,
    select_staff,
)
from pharmacy_rota.engine import calculate_fairness_metrics, generate_weekly_rota
from pharmacy_rota.exporter import export_fairness_report, export_to_csv, export_to_excel
from pharmacy_rota.skills import get_training_summary, validate_clinic_coverage
from pharmacy_rota.store import InMemoryRotaStore, JsonRotaStore, RotaStore

logger = logging.getLogger(__name__)

OUTPUTS_DIR = PROJECT_ROOT / "outputs"


# ---------------------------------------------------------------------------
# Visual analysis (matplotlib)
# ---------------------------------------------------------------------------

def _generate_visual_analysis(metrics: Dict[str, Any], output_dir: Path, prefix: str) -> Optional[Path]:
    """Stacked bar chart of clinic / dispensary / lunch duty per staff member."""
    import matplotlib
    matplotlib.use("Agg")
    import matplotlib.pyplot as plt

    counts = metrics.get("counts", {})
    per_type = metrics.get("per_type", {})
    mean_val = metrics.get("mean", 0)
    staff_names = metrics.get("names", {})
    ids = sorted(counts, key=lambda sid: counts[sid], reverse=True)
    if not ids:
        return None
    x = range(len(ids))

    fig, ax = plt.subplots(figsize=(13, 5))
    bottom = [0] * len(ids)
    for key, colour in (("clinic", "#1a3d7c"), ("dispensary", "#4a90d9"), ("lunch", "#2e8b57")):
        vals = [per_type.get(key, {}).get(sid, 0) for sid in ids]
        ax.bar(x, vals, bottom=bottom, color=colour, alpha=0.85, width=0.65, label=key.title())
        bottom = [b + v for b, v in zip(bottom, vals)]
    ax.axhline(mean_val, color="crimson", linewidth=1.8, linestyle="--", label=f"Mean: {mean_val:.1f}")
    ax.set_xticks(list(x))
    ax.set_xticklabels([staff_names.get(sid, sid) for sid in ids], rotation=40, ha="right", fontsize=9)
    ax.set_ylabel("Duty Count")
    ax.set_title(f"Duty Distribution by Staff\nCV = {metrics.get('cv', 0):.1f}%", fontsize=13, fontweight="bold")
    ax.legend()
    ax.grid(axis="y", alpha=0.3)
    fig.tight_layout()
    path = output_dir / f"{prefix}_duty_distribution.png"
    fig.savefig(path, dpi=150)
    plt.close(fig)
    print(f"  ✓ Visual  → {path.name}")
    return path


# ---------------------------------------------------------------------------
# Main orchestrator
# ---------------------------------------------------------------------------

def run_dry_run(
    week_start: date,
    config_dir: Path = DEFAULT_CONFIG_DIR,
    output_dir: Path = OUTPUTS_DIR,
    week_config_path: Optional[Path] = None,
    store: Optional[RotaStore] = None,
    seed: Optional[int] = None,
    visual: bool = False,
) -> Dict[str, Any]:
    """
    Generate one week of rotas and write every report.

    Args:
        week_start:       Monday of the week
        config_dir:       Directory holding staff.csv, wards.csv, clinics.csv, ...
        output_dir:       Directory for output files
        week_config_path: Week configuration JSON (default: config_dir/week_config.json)
        store:            Rota store (default: in-memory)
        seed:             Random seed for a reproducible run
        visual:           Also write a matplotlib duty chart

    Returns:
        Dict with rotas, metrics, errors, warnings, output paths
    """
    config_dir = Path(config_dir)
    output_dir = Path(output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)
    store = store if store is not None else InMemoryRotaStore()
    prefix = f"rota_{week_start.isoformat()}"
    sep = "=" * 70

    print(f"\n{sep}")
    print(f"  PHARMACY ROTA — week of {week_start.isoformat()}")
    print(f"{sep}\n")

    # ── 1. Load configuration ──────────────────────────────────────────────
    print("Step 1/6: Loading configuration...")
    staff = load_unavailability(
        load_staff(config_dir / "staff.csv"),
        config_dir / "unavailability.csv",
    )
    directorates = load_directorates(config_dir / "wards.csv")
    clinics = load_clinics(config_dir / "clinics.csv")
    week_config = load_week_config(week_config_path or config_dir / "week_config.json")
    staff = select_staff(staff, week_config.staff_ids)
    effective_rules = resolve_effective_rules(staff, week_config.ignored_rules, week_config.extra_rules)
    print(
        f"  ✓ {len(staff)} staff | {sum(len(d.wards) for d in directorates)} wards "
        f"in {len(directorates)} directorates | {len(clinics)} clinics"
    )

    # ── 2. Validate inputs ─────────────────────────────────────────────────
    print("\nStep 2/6: Validating inputs...")
    uncoverable = validate_clinic_coverage(clinics, staff)
    for name in uncoverable:
        print(f"  ⚠ WARNING: nobody qualified for clinic {name}")
    summary = get_training_summary(staff)
    print(f"  ✓ Training coverage: {len(summary)} tags across staff")

    # ── 3. Generate ────────────────────────────────────────────────────────
    print("\nStep 3/6: Generating rotas...")
    rng = random.Random(seed)
    rotas = generate_weekly_rota(
        week_start, staff, directorates, clinics, store,
        clinic_ids=week_config.clinic_ids,
        working_days_override=week_config.working_days,
        single_pharmacist_days=week_config.single_pharmacist_days,
        selected_weekdays=week_config.selected_weekdays,
        effective_rules=effective_rules,
        rng=rng,
    )
    total_assignments = sum(len(r.assignments) for r in rotas)
    print(f"  ✓ {total_assignments} assignments across {len(rotas)} days")

    # ── 4. Check ───────────────────────────────────────────────────────────
    print("\nStep 4/6: Checking rotas...")
    checker = RotaChecker(staff, directorates, effective_rules)
    errors = []
    warnings = []
    for rota in rotas:
        e, w = checker.check_all(rota)
        errors += [(rota.date, c) for c in e]
        warnings += [(rota.date, c) for c in w]
    status = "✓" if not errors else "✗"
    print(f"  {status} Check errors:   {len(errors)}")
    print(f"    Check warnings: {len(warnings)}")

    # ── 5. Metrics ─────────────────────────────────────────────────────────
    print("\nStep 5/6: Calculating fairness metrics...")
    metrics = calculate_fairness_metrics(rotas, staff)
    print(f"  ✓ Duty CV: {metrics['cv']:.2f}%  (mean {metrics['mean']:.2f})")

    # ── 6. Export ──────────────────────────────────────────────────────────
    print("\nStep 6/6: Exporting outputs...")
    staff_by_id = {s.id: s for s in staff}
    csv_path       = output_dir / f"{prefix}.csv"
    xlsx_path      = output_dir / f"{prefix}.xlsx"
    report_path    = output_dir / f"{prefix}_fairness_report.txt"
    conflicts_path = output_dir / f"{prefix}_conflicts.txt"

    export_to_csv(rotas, csv_path, staff_by_id)
    export_to_excel(rotas, xlsx_path, staff_by_id)
    export_fairness_report(metrics, report_path, label=f"Week of {week_start.isoformat()}")

    with open(conflicts_path, "w") as f:
        f.write("=== Generation Conflicts ===\n\n")
        for rota in rotas:
            for c in rota.conflicts:
                f.write(f"  {rota.date} {c}\n")
        f.write(f"\n=== Check Errors ({len(errors)}) ===\n")
        for day, c in errors:
            f.write(f"  {day} {c}\n")
        f.write(f"\n=== Check Warnings ({len(warnings)}) ===\n")
        for day, c in warnings:
            f.write(f"  {day} {c}\n")

    print(f"  ✓ CSV:       {csv_path.name}")
    print(f"  ✓ Excel:     {xlsx_path.name}")
    print(f"  ✓ Report:    {report_path.name}")
    print(f"  ✓ Conflicts: {conflicts_path.name}")

    chart_path = _generate_visual_analysis(metrics, output_dir, prefix) if visual else None

    # ── Summary ────────────────────────────────────────────────────────────
    print(f"\n{sep}")
    print("  SUMMARY")
    print(f"{sep}")
    print(f"  Week:              {week_start.isoformat()}")
    print(f"  Days generated:    {len(rotas)}")
    print(f"  Total assignments: {total_assignments}")
    print(f"  Conflicts:         {metrics['conflicts']} ({metrics['errors']} errors)")
    print(f"  Check errors:      {len(errors)}  {status}")
    print(f"  Duty CV:           {metrics['cv']:.2f}%")
    for rota in rotas:
        for c in rota.conflicts:
            print(f"    {rota.date} {c}")
    print(f"\n{sep}\n")

    return {
        "rotas":    rotas,
        "metrics":  metrics,
        "errors":   errors,
        "warnings": warnings,
        "outputs": {
            "csv":       csv_path,
            "excel":     xlsx_path,
            "report":    report_path,
            "conflicts": conflicts_path,
            "chart":     chart_path,
        },
    }


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

def main(argv: Optional[List[str]] = None) -> None:
    parser = argparse.ArgumentParser(description="Generate one week of pharmacy rotas")
    parser.add_argument("--week",        default=None,  help="Week start (a Monday) YYYY-MM-DD (default: week config week_start)")
    parser.add_argument("--config-dir",  default=None,  help="Master data directory (default: config/)")
    parser.add_argument("--output-dir",  default=None,  help="Output directory (default: outputs/)")
    parser.add_argument("--week-config", default=None,  help="Week configuration JSON")
    parser.add_argument("--store",       default=None,  help="Persist rotas to this JSON file")
    parser.add_argument("--seed",        type=int, default=None, help="Random seed for a reproducible run")
    parser.add_argument("--visual",      action="store_true", help="Write a matplotlib duty chart")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    config_dir = Path(args.config_dir) if args.config_dir else DEFAULT_CONFIG_DIR
    week_config_path = Path(args.week_config) if args.week_config else config_dir / "week_config.json"

    week = args.week or load_week_config(week_config_path).week_start
    if not week:
        print(f"Error: no --week given and no week_start in {week_config_path}")
        sys.exit(1)

    try:
        week_start = parse_date(week)
    except ValueError as e:
        print(f"Invalid date format: {e}")
        sys.exit(1)

    if week_start.weekday() != 0:
        print("Error: --week must be a Monday")
        sys.exit(1)

    run_dry_run(
        week_start,
        config_dir=config_dir,
        output_dir=Path(args.output_dir) if args.output_dir else OUTPUTS_DIR,
        week_config_path=week_config_path,
        store=JsonRotaStore(args.store) if args.store else None,
        seed=args.seed,
        visual=args.visual,
    )


if __name__ == "__main__":
    main()
