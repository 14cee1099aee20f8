"""
tests/test_full_orchestration.py

Full orchestration over the sample configuration in config/:
  1. Generate the week of 2026-03-02 through run_dry_run
  2. Re-check every day (no check errors expected)
  3. Export CSV + Excel + fairness report, verify files exist
  4. JSON store persistence of the generated week
  5. CLI argument handling

Run with:
  python -m pytest tests/test_full_orchestration.py -v
"""

import csv
import json
import sys
from datetime import date
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from pharmacy_rota.dry_run import main, run_dry_run
from pharmacy_rota.exporter import CSV_FIELDS, export_fairness_report
from pharmacy_rota.models import AssignmentType
from pharmacy_rota.store import JsonRotaStore

WEEK = date(2026, 3, 2)


@pytest.fixture(scope="module")
def output_dir(tmp_path_factory):
    return tmp_path_factory.mktemp("outputs")


@pytest.fixture(scope="module")
def result(output_dir):
    return run_dry_run(WEEK, output_dir=output_dir, seed=7, visual=True)


# ============================================================
# Section 1: Generation
# ============================================================

class TestGeneration:

    def test_five_days(self, result):
        assert [r.date for r in result["rotas"]] == [
            "2026-03-02", "2026-03-03", "2026-03-04", "2026-03-05", "2026-03-06",
        ]

    def test_no_check_errors(self, result):
        errors = [f"{day} {c}" for day, c in result["errors"]]
        assert not errors, f"Check errors: {errors}"

    def test_dedicated_role_holds_dispensary(self, result):
        for rota in result["rotas"]:
            held = [a for a in rota.assignments_for("S10") if a.type is AssignmentType.DISPENSARY]
            assert len(held) == 5, f"{rota.date}: Jade King should hold 5 dispensary shifts"

    def test_eau_practitioner_on_eau(self, result):
        for rota in result["rotas"]:
            locations = [a.location for a in rota.assignments_for("S11")]
            assert locations == ["Emergency Assessment Unit"], f"{rota.date}: {locations}"

    def test_monday_clinic_to_preferred(self, result):
        monday = result["rotas"][0]
        clinic = [a for a in monday.assignments if a.type is AssignmentType.CLINIC]
        assert [(a.location, a.staff_id) for a in clinic] == [("Warfarin Clinic (Monday)", "S06")]

    def test_optional_clinic_not_run(self, result):
        friday = result["rotas"][4]
        assert not [a for a in friday.assignments if a.type is AssignmentType.CLINIC]

    def test_part_time_staff_absent(self, result):
        for rota in result["rotas"][3:]:
            assert not rota.assignments_for("S12"), f"{rota.date}: Laura Mills does not work"

    def test_extra_rule_applied(self, result):
        """Week config adds a Thursday afternoon block for S05 → no ward that day."""
        thursday = result["rotas"][3]
        assert not thursday.assignments_for("S05")


# ============================================================
# Section 2: Exports
# ============================================================

class TestExports:

    def test_files_exist(self, result):
        for key in ("csv", "excel", "report", "conflicts", "chart"):
            path = result["outputs"][key]
            assert path is not None and Path(path).exists(), f"Missing {key} output"

    def test_csv_rows(self, result):
        with open(result["outputs"]["csv"], newline="") as f:
            rows = list(csv.DictReader(f))
        assert list(rows[0].keys()) == CSV_FIELDS
        total = sum(len(r.assignments) for r in result["rotas"])
        assert len(rows) == total

    def test_excel_sheets(self, result):
        from openpyxl import load_workbook

        wb = load_workbook(result["outputs"]["excel"])
        assert wb.sheetnames == ["Rota", "Conflicts"]
        ws = wb["Rota"]
        headers = [c.value for c in ws[1]]
        assert "Dispensary" in headers
        assert ws.max_row == 6, "Header + five dates"

    def test_report_text(self, result, tmp_path):
        text = export_fairness_report(result["metrics"], tmp_path / "report.txt", label="Test")
        assert "FAIRNESS REPORT" in text
        for s_name in ("Alice Morgan", "Jade King"):
            assert s_name in text
        assert (tmp_path / "report.txt").read_text() == text


# ============================================================
# Section 3: Store
# ============================================================

class TestPersistence:

    def test_json_store(self, tmp_path):
        store = JsonRotaStore(tmp_path / "rotas.json")
        run_dry_run(WEEK, output_dir=tmp_path / "out", store=store, seed=1)
        assert len(store.list_rotas()) == 5

        # a rerun of the same week replaces, never duplicates
        run_dry_run(WEEK, output_dir=tmp_path / "out", store=store, seed=2)
        assert len(JsonRotaStore(tmp_path / "rotas.json").list_rotas()) == 5


# ============================================================
# Section 4: CLI
# ============================================================

class TestCli:

    def test_invalid_date_exits(self, capsys):
        with pytest.raises(SystemExit) as exc:
            main(["--week", "2026-02-30"])
        assert exc.value.code == 1
        assert "Invalid date" in capsys.readouterr().out

    def test_non_monday_exits(self):
        with pytest.raises(SystemExit) as exc:
            main(["--week", "2026-03-03"])
        assert exc.value.code == 1

    def test_runs_with_seed(self, tmp_path):
        main(["--week", "2026-03-02", "--seed", "3", "--output-dir", str(tmp_path)])
        assert (tmp_path / "rota_2026-03-02.csv").exists()

    def test_week_defaults_from_week_config(self, tmp_path):
        """No --week: the week config's week_start picks the week."""
        week_config = tmp_path / "week.json"
        week_config.write_text(json.dumps({"week_start": "2026-03-09"}))
        out = tmp_path / "out"
        main(["--week-config", str(week_config), "--seed", "3", "--output-dir", str(out)])
        assert (out / "rota_2026-03-09.csv").exists()

    def test_no_week_anywhere_exits(self, tmp_path, capsys):
        week_config = tmp_path / "week.json"
        week_config.write_text(json.dumps({"clinic_ids": ["C1"]}))
        with pytest.raises(SystemExit) as exc:
            main(["--week-config", str(week_config), "--output-dir", str(tmp_path)])
        assert exc.value.code == 1
        assert "no --week given" in capsys.readouterr().out
