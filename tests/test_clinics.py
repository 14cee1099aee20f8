"""
Tests for the clinic allocator (strategy order, qualification, ward rescue)
"""

import random
import sys
from datetime import date
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from pharmacy_rota.clinics import ClinicAllocator
from pharmacy_rota.day import DayState
from pharmacy_rota.models import AssignmentType, Clinic, Directorate, Staff, UnavailableRule, Ward

MONDAY = date(2026, 3, 2)


@pytest.fixture
def directorates():
    return [Directorate("Medicine", [Ward("Ward 1", "Medicine"), Ward("Ward 2", "Medicine")])]


@pytest.fixture
def clinic():
    return Clinic(id="C1", name="Warfarin Clinic", day_of_week=1, start_time="09:00", end_time="12:00")


def _day(staff, directorates, clinics, clinic_counts=None):
    return DayState(
        MONDAY, staff, directorates, clinics,
        rng=random.Random(1),
        weekly_clinic_count=clinic_counts,
    )


def _clinic_holders(day):
    return [a.staff_id for a in day.assignments if a.type is AssignmentType.CLINIC]


class TestStrategyOrder:

    def test_preferred_pharmacist_wins(self, directorates, clinic):
        staff = [
            Staff(id="J1", name="Junior", band="6", warfarin_trained=True),
            Staff(id="P1", name="Preferred", band="7", warfarin_trained=True),
        ]
        clinic.preferred_pharmacists = ["P1"]
        day = _day(staff, directorates, [clinic])
        ClinicAllocator(day).run()
        assert _clinic_holders(day) == ["P1"]

    def test_unqualified_preferred_skipped(self, directorates, clinic):
        """Preferred but not warfarin-trained → next strategy (idle junior)."""
        staff = [
            Staff(id="P1", name="Preferred", band="7", warfarin_trained=False),
            Staff(id="J1", name="Junior", band="6", warfarin_trained=True),
        ]
        clinic.preferred_pharmacists = ["P1"]
        day = _day(staff, directorates, [clinic])
        ClinicAllocator(day).run()
        assert _clinic_holders(day) == ["J1"]

    def test_idle_junior_before_loaded(self, directorates, clinic):
        staff = [
            Staff(id="J1", name="Loaded", band="6", warfarin_trained=True),
            Staff(id="J2", name="Idle", band="7", warfarin_trained=True),
        ]
        day = _day(staff, directorates, [clinic], clinic_counts={"J1": 2})
        ClinicAllocator(day).run()
        assert _clinic_holders(day) == ["J2"]

    def test_band_8a_beats_more_loaded_junior(self, directorates, clinic):
        staff = [
            Staff(id="J1", name="Loaded", band="6", warfarin_trained=True),
            Staff(id="A1", name="Senior", band="8a", warfarin_trained=True),
        ]
        day = _day(staff, directorates, [clinic], clinic_counts={"J1": 2, "A1": 0})
        ClinicAllocator(day).run()
        assert _clinic_holders(day) == ["A1"]

    def test_loaded_junior_beats_more_loaded_8a(self, directorates, clinic):
        staff = [
            Staff(id="J1", name="Loaded", band="6", warfarin_trained=True),
            Staff(id="A1", name="Senior", band="8a", warfarin_trained=True),
        ]
        day = _day(staff, directorates, [clinic], clinic_counts={"J1": 1, "A1": 3})
        ClinicAllocator(day).run()
        assert _clinic_holders(day) == ["J1"]

    def test_weekly_count_incremented(self, directorates, clinic):
        staff = [Staff(id="J1", name="Junior", band="6", warfarin_trained=True)]
        day = _day(staff, directorates, [clinic], clinic_counts={"J1": 1})
        ClinicAllocator(day).run()
        assert day.weekly_clinic_count["J1"] == 2


class TestEligibility:

    def test_unavailable_staff_skipped(self, directorates, clinic):
        staff = [
            Staff(id="J1", name="Away", band="6", warfarin_trained=True,
                  not_available_rules=[UnavailableRule("Monday", "11:00", "12:00")]),
            Staff(id="J2", name="Here", band="6", warfarin_trained=True),
        ]
        day = _day(staff, directorates, [clinic])
        ClinicAllocator(day).run()
        assert _clinic_holders(day) == ["J2"]

    def test_other_weekday_clinic_ignored(self, directorates, clinic):
        clinic.day_of_week = 3
        staff = [Staff(id="J1", name="Junior", band="6", warfarin_trained=True)]
        day = _day(staff, directorates, [clinic])
        ClinicAllocator(day).run()
        assert _clinic_holders(day) == []
        assert len(day.tracker) == 0

    def test_no_qualified_staff_records_warning(self, directorates, clinic):
        staff = [Staff(id="J1", name="Untrained", band="6", warfarin_trained=False)]
        day = _day(staff, directorates, [clinic])
        ClinicAllocator(day).run()
        conflicts = day.tracker.of_type("clinic")
        assert len(conflicts) == 1, f"Expected one clinic conflict, got {day.tracker.conflicts}"
        assert "Warfarin Clinic" in conflicts[0].description

    def test_overlapping_clinics_not_double_booked(self, directorates, clinic):
        second = Clinic(id="C2", name="Second Clinic", day_of_week=1, start_time="11:00", end_time="13:00")
        staff = [Staff(id="J1", name="Only", band="6", warfarin_trained=True)]
        day = _day(staff, directorates, [clinic, second])
        ClinicAllocator(day).run()
        assert _clinic_holders(day) == ["J1"]
        assert len(day.tracker.of_type("clinic")) == 1


class TestWardRescue:

    def test_multi_ward_staff_freed_by_backfill(self, directorates, clinic):
        """A junior on two wards hands the non-primary ward to an idle colleague."""
        staff = [
            Staff(id="J1", name="Stretched", band="7", warfarin_trained=True,
                  primary_directorate="Medicine", primary_wards=["Ward 1"]),
            Staff(id="K1", name="Idle", band="6", warfarin_trained=False),
        ]
        day = _day(staff, directorates, [clinic])
        day.add("J1", AssignmentType.WARD, "Ward 1")
        day.add("J1", AssignmentType.WARD, "Ward 2")

        chosen = ClinicAllocator(day).allocate(clinic)

        assert chosen is not None and chosen.id == "J1"
        assert day.wards_of("J1") == ["Ward 1"], "Primary ward should be kept"
        assert day.wards_of("K1") == ["Ward 2"], "Non-primary ward should go to the backfill"
        assert not day.tracker.of_type("clinic")

    def test_no_backfill_leaves_clinic_unfilled(self, directorates, clinic):
        staff = [
            Staff(id="J1", name="Stretched", band="7", warfarin_trained=True,
                  primary_directorate="Medicine", primary_wards=["Ward 1"]),
        ]
        day = _day(staff, directorates, [clinic])
        day.add("J1", AssignmentType.WARD, "Ward 1")
        day.add("J1", AssignmentType.WARD, "Ward 2")

        assert ClinicAllocator(day).allocate(clinic) is None
        assert day.wards_of("J1") == ["Ward 1", "Ward 2"]
        assert len(day.tracker.of_type("clinic")) == 1
