"""
Tests for master data loading (staff, unavailability, wards, clinics, week config)
"""

import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from pharmacy_rota.config import (
    WeekConfig,
    get_config,
    load_clinics,
    load_directorates,
    load_staff,
    load_unavailability,
    load_week_config,
    save_week_config,
    select_staff,
)
from pharmacy_rota.models import UnavailableRule

STAFF_HEADER = "id,name,band,warfarin_trained,primary_directorate,primary_wards,trained_directorates\n"


@pytest.fixture(scope="module")
def staff():
    return load_unavailability(load_staff())


@pytest.fixture(scope="module")
def directorates():
    return load_directorates()


class TestStaffLoading:

    def test_sample_roster_loads(self, staff):
        assert len(staff) == 12, f"Expected 12 staff, got {len(staff)}"

    def test_ids_unique(self, staff):
        ids = [s.id for s in staff]
        assert len(ids) == len(set(ids))

    def test_list_columns_split(self, staff):
        chloe = next(s for s in staff if s.id == "S03")
        assert chloe.trained_directorates == ["Medicine", "Surgery"]
        assert chloe.primary_wards == ["Ward 2"]
        assert chloe.warfarin_trained

    def test_working_days_default_and_explicit(self, staff):
        by_id = {s.id: s for s in staff}
        assert by_id["S01"].working_days == ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"]
        assert by_id["S12"].working_days == ["Monday", "Tuesday", "Wednesday"]

    def test_roles(self, staff):
        by_id = {s.id: s for s in staff}
        assert by_id["S10"].prefers_dispensary and not by_id["S10"].in_ward_rotation
        assert by_id["S11"].excluded_from_dispensary and not by_id["S11"].in_ward_rotation
        assert by_id["S01"].is_band_8a and by_id["S01"].is_default

    def test_blank_primary_directorate_is_none(self, staff):
        assert next(s for s in staff if s.id == "S10").primary_directorate is None

    def test_unavailability_attached(self, staff):
        chloe = next(s for s in staff if s.id == "S03")
        assert chloe.not_available_rules == [UnavailableRule("Tuesday", "09:00", "12:00")]

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_staff(tmp_path / "nope.csv")

    def test_duplicate_id_rejected(self, tmp_path):
        path = tmp_path / "staff.csv"
        path.write_text(STAFF_HEADER + "X1,Ann,6,yes,,,\nX1,Ben,7,no,,,\n")
        with pytest.raises(ValueError, match="duplicate"):
            load_staff(path)

    def test_unknown_band_rejected(self, tmp_path):
        path = tmp_path / "staff.csv"
        path.write_text(STAFF_HEADER + "X1,Ann,9,yes,,,\n")
        with pytest.raises(ValueError, match="unknown band"):
            load_staff(path)

    def test_missing_unavailability_file_leaves_staff(self, tmp_path):
        path = tmp_path / "staff.csv"
        path.write_text(STAFF_HEADER + "X1,Ann,6,yes,,,\n")
        people = load_unavailability(load_staff(path), tmp_path / "none.csv")
        assert people[0].not_available_rules == []

    def test_select_staff(self, staff):
        chosen = select_staff(staff, ["S05", "S02", "ZZZ"])
        assert [s.id for s in chosen] == ["S02", "S05"], "Roster order kept, unknown ids dropped"
        assert select_staff(staff, None) == list(staff)


class TestWardsAndClinics:

    def test_directorates_in_file_order(self, directorates):
        names = [d.name for d in directorates]
        assert names == ["EAU", "ITU", "Medicine", "Surgery", "Women and Children"]

    def test_wards_grouped(self, directorates):
        medicine = next(d for d in directorates if d.name == "Medicine")
        assert [w.name for w in medicine.wards] == ["Ward 1", "Ward 2", "Ward 6"]
        assert [w.name for w in medicine.active_wards] == ["Ward 1", "Ward 2"]

    def test_ward_fields(self, directorates):
        eau = directorates[0].wards[0]
        assert eau.ideal_pharmacists == 2.0
        itu = directorates[1].wards[0]
        assert itu.requires_special_training and itu.training_type == "ITU"
        assert itu.difficulty == 5

    def test_clinics(self):
        clinics = load_clinics()
        assert [c.id for c in clinics] == ["C1", "C2", "C3", "C4"]
        by_id = {c.id: c for c in clinics}
        assert by_id["C2"].preferred_pharmacists == ["S03", "S12"]
        assert by_id["C2"].day_of_week == 3
        assert not by_id["C4"].include_by_default
        assert by_id["C1"].requires_warfarin_training
        assert by_id["C1"].coverage_note is None

    def test_bad_clinic_weekday(self, tmp_path):
        path = tmp_path / "clinics.csv"
        path.write_text("id,name,day_of_week,start_time,end_time\nC9,Bad,8,09:00,10:00\n")
        with pytest.raises(ValueError):
            load_clinics(path)


class TestWeekConfig:

    def test_sample_week_config(self):
        config = load_week_config()
        assert config.week_start == "2026-03-02"
        assert config.staff_ids is None
        assert config.extra_rules["S05"] == [UnavailableRule("Thursday", "13:00", "17:00")]

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_week_config(tmp_path / "none.json")
        assert config == WeekConfig()

    def test_save_and_reload(self, tmp_path):
        path = tmp_path / "week.json"
        config = WeekConfig(
            week_start="2026-03-09",
            clinic_ids=["C1"],
            single_pharmacist_days=["2026-03-12"],
            selected_weekdays=["Monday", "Thursday"],
            ignored_rules={"S03": [0]},
        )
        save_week_config(config, path)
        loaded = load_week_config(path)
        assert loaded.last_modified is not None, "save should stamp last_modified"
        assert loaded.clinic_ids == ["C1"]
        assert loaded.ignored_rules == {"S03": [0]}
        assert loaded.selected_weekdays == ["Monday", "Thursday"]

    def test_get_config(self):
        cfg = get_config()
        assert len(cfg["dispensary_blocks"]) == 4
        assert cfg["eau_headcount_weight"] == 0.5
