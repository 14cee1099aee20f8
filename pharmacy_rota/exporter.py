"""
exporter.py — Export Layer for the Pharmacy Rota Engine

Outputs:
  - CSV: flat (date, type, location, start, end, staff, lunch_cover)
  - Excel (.xlsx): date × location grid with staff names, plus a
    Conflicts sheet listing every recorded conflict
  - Fairness report (.txt): per-staff clinic / dispensary / lunch counts,
    spread statistics and conflict totals

Usage:
  from pharmacy_rota.exporter import export_to_csv, export_to_excel, export_fairness_report
"""

import logging
from pathlib import Path
from typing import Any, Dict, List, Optional

from pharmacy_rota.models import Rota, Staff
from pharmacy_rota.schedule_config import DISPENSARY_LOCATION, LUNCH_COVER_LOCATION, MANAGEMENT_LOCATION

logger = logging.getLogger(__name__)

CSV_FIELDS = ["date", "type", "location", "start", "end", "staff", "lunch_cover"]


def _staff_label(staff_id: str, staff_by_id: Optional[Dict[str, Staff]]) -> str:
    s = (staff_by_id or {}).get(staff_id)
    return s.label if s else staff_id


# ---------------------------------------------------------------------------
# CSV Export
# ---------------------------------------------------------------------------

def export_to_csv(
    rotas: List[Rota],
    output_path: Path,
    staff_by_id: Optional[Dict[str, Staff]] = None,
) -> None:
    """Export every assignment as one CSV row, ordered by date then start time."""
    import csv
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    with open(output_path, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
        writer.writeheader()
        for rota in sorted(rotas, key=lambda r: r.date):
            for a in sorted(rota.assignments, key=lambda a: (a.start_time, a.location)):
                writer.writerow({
                    "date": rota.date,
                    "type": a.type.value,
                    "location": a.location,
                    "start": a.start_time,
                    "end": a.end_time,
                    "staff": _staff_label(a.staff_id, staff_by_id),
                    "lunch_cover": "yes" if a.is_lunch_cover else "",
                })

    logger.info(f"CSV exported → {output_path}")


# ---------------------------------------------------------------------------
# Excel Export
# ---------------------------------------------------------------------------

def _cell_text(location: str, start: str, end: str, name: str) -> str:
    # Timed dispensary shifts carry their window so a cell reads "09:00-11:00 Alice"
    if location in (DISPENSARY_LOCATION, LUNCH_COVER_LOCATION):
        return f"{start}-{end} {name}"
    return name


def export_to_excel(
    rotas: List[Rota],
    output_path: Path,
    staff_by_id: Optional[Dict[str, Staff]] = None,
) -> None:
    """
    Export rotas to a formatted workbook.

    Sheet "Rota":      rows=date, columns=location, cells=staff names
                       (several people in one cell are '; '-joined)
    Sheet "Conflicts": date, severity, type, location, description
    """
    import pandas as pd

    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    rows = []
    conflict_rows = []
    for rota in sorted(rotas, key=lambda r: r.date):
        for a in sorted(rota.assignments, key=lambda a: a.start_time):
            rows.append({
                "Date": rota.date,
                "Location": a.location,
                "Staff": _cell_text(a.location, a.start_time, a.end_time, _staff_label(a.staff_id, staff_by_id)),
            })
        for c in rota.conflicts:
            conflict_rows.append({
                "Date": rota.date,
                "Severity": c.severity.value,
                "Type": c.type,
                "Location": c.location or "",
                "Description": c.description,
            })

    df = pd.DataFrame(rows)
    conflicts_df = pd.DataFrame(
        conflict_rows, columns=["Date", "Severity", "Type", "Location", "Description"]
    )

    with pd.ExcelWriter(output_path, engine="openpyxl") as writer:
        if df.empty:
            pd.DataFrame(columns=["Date"]).to_excel(writer, sheet_name="Rota", index=False)
        else:
            grid = df.pivot_table(
                index="Date",
                columns="Location",
                values="Staff",
                aggfunc=lambda x: "; ".join(x),
            )
            # Dispensary first, management last, wards/clinics alphabetically between
            front = [c for c in (DISPENSARY_LOCATION, LUNCH_COVER_LOCATION) if c in grid.columns]
            back = [c for c in (MANAGEMENT_LOCATION,) if c in grid.columns]
            middle = sorted(c for c in grid.columns if c not in front and c not in back)
            grid = grid[front + middle + back]
            grid.to_excel(writer, sheet_name="Rota")
            _format_excel_grid(writer, "Rota")

        conflicts_df.to_excel(writer, sheet_name="Conflicts", index=False)
        _format_excel_grid(writer, "Conflicts")

    logger.info(f"Excel exported → {output_path}")


def _format_excel_grid(writer: Any, sheet_name: str) -> None:
    """Header fill + bold, column widths, alternate row shading."""
    from openpyxl.styles import Alignment, Font, PatternFill

    ws = writer.sheets[sheet_name]
    header_fill = PatternFill("solid", fgColor="1F4E79")
    header_font = Font(bold=True, color="FFFFFF")

    for cell in ws[1]:
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center")

    for col in ws.columns:
        max_len = max((len(str(c.value)) for c in col if c.value), default=8)
        ws.column_dimensions[col[0].column_letter].width = min(max_len + 2, 40)

    alt = PatternFill("solid", fgColor="EBF3FB")
    for i, row in enumerate(ws.iter_rows(min_row=2), start=2):
        if i % 2 == 0:
            for cell in row:
                cell.fill = alt


# ---------------------------------------------------------------------------
# Fairness Report
# ---------------------------------------------------------------------------

def export_fairness_report(
    metrics: Dict[str, Any],
    output_path: Path,
    label: str = "",
    top_n: int = 3,
) -> str:
    """
    Write the fairness report (text) and return it.

    Args:
        metrics:     Output of engine.calculate_fairness_metrics()
        output_path: .txt file path
        label:       Heading suffix (e.g. 'Week of 2026-03-02')
        top_n:       Number of most/least loaded staff to list
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    counts = metrics.get("counts", {})
    per_type = metrics.get("per_type", {})
    mean_val = metrics.get("mean", 0)
    names = metrics.get("names", {})
    ranked = sorted(counts.keys(), key=lambda sid: counts.get(sid, 0), reverse=True)

    sep = "=" * 70
    rule = "─" * 70
    lines = [
        sep,
        f"  FAIRNESS REPORT{(' — ' + label) if label else ''}",
        sep,
        "",
        f"  Days generated:        {metrics.get('days', 0)}",
        f"  Mean duty load:        {mean_val:.2f}",
        f"  Std Dev:               {metrics.get('std', 0):.2f}",
        f"  CV:                    {metrics.get('cv', 0):.2f}%",
        f"  Min / Max:             {metrics.get('min', 0)} / {metrics.get('max', 0)}",
        f"  Conflicts:             {metrics.get('conflicts', 0)} ({metrics.get('errors', 0)} errors)",
        "",
        rule,
        "  Per-Staff Duty Counts",
        rule,
        f"  {'Name':<24} {'Clinic':>7} {'Disp':>6} {'Lunch':>6} {'Ward':>6} {'Mgmt':>6} {'Total':>6}",
    ]

    for sid in ranked:
        lines.append(
            f"  {names.get(sid, sid):<24}"
            f" {per_type.get('clinic', {}).get(sid, 0):>7d}"
            f" {per_type.get('dispensary', {}).get(sid, 0):>6d}"
            f" {per_type.get('lunch', {}).get(sid, 0):>6d}"
            f" {per_type.get('ward', {}).get(sid, 0):>6d}"
            f" {per_type.get('management', {}).get(sid, 0):>6d}"
            f" {counts.get(sid, 0):>6d}"
        )

    lines += ["", rule, "  Most Loaded", rule]
    for sid in ranked[:top_n]:
        lines.append(f"  {names.get(sid, sid):<24} {counts.get(sid, 0)}")

    lines += ["", rule, "  Least Loaded", rule]
    for sid in ranked[-top_n:][::-1]:
        lines.append(f"  {names.get(sid, sid):<24} {counts.get(sid, 0)}")

    lines += ["", sep]

    report_text = "\n".join(lines)
    with open(output_path, "w") as f:
        f.write(report_text)

    logger.info(f"Fairness report exported → {output_path}")
    return report_text
