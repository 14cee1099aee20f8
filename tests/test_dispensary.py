"""
Tests for the dispensary allocator (dedicated role, single-pharmacist day,
general-day draw, lunch cover)
"""

import random
import sys
from datetime import date
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from pharmacy_rota.conflicts import ConflictSeverity
from pharmacy_rota.day import DayState
from pharmacy_rota.dispensary import NO_FULL_DAY_COVER, NO_LUNCH_COVER, DispensaryAllocator
from pharmacy_rota.models import AssignmentType, Clinic, Directorate, Staff, UnavailableRule, Ward
from pharmacy_rota.schedule_config import (
    DISPENSARY_BLOCKS,
    DISPENSARY_LOCATION,
    LUNCH_COVER,
    LUNCH_COVER_LOCATION,
    full_day_dispensary_shifts,
)

MONDAY = date(2026, 3, 2)


@pytest.fixture
def directorates():
    return [Directorate("Medicine", [Ward("Ward 1", "Medicine")])]


@pytest.fixture
def juniors():
    return [
        Staff(id=f"J{i}", name=f"Junior {i}", band="6" if i % 2 else "7")
        for i in range(1, 6)
    ]


def _day(staff, directorates, clinics=None, seed=1, **kwargs):
    return DayState(MONDAY, staff, directorates, clinics or [], rng=random.Random(seed), **kwargs)


def _dispensary(day):
    return [a for a in day.assignments if a.type is AssignmentType.DISPENSARY]


def _lunch(day):
    return [a for a in _dispensary(day) if a.is_lunch_cover]


class TestDedicatedRole:

    def test_holder_covers_whole_day(self, directorates, juniors):
        holder = Staff(id="D1", name="Dispenser", band="Dispensary Pharmacist")
        day = _day([holder] + juniors, directorates)
        DispensaryAllocator(day).run()

        shifts = [(a.start_time, a.end_time) for a in _dispensary(day) if a.staff_id == "D1"]
        assert shifts == full_day_dispensary_shifts(), f"Unexpected holder shifts: {shifts}"

    def test_lunch_cover_is_someone_else(self, directorates, juniors):
        holder = Staff(id="D1", name="Dispenser", band="Dispensary Pharmacist")
        day = _day([holder] + juniors, directorates)
        DispensaryAllocator(day).run()

        lunch = _lunch(day)
        assert len(lunch) == 1
        assert lunch[0].staff_id != "D1"
        assert lunch[0].location == LUNCH_COVER_LOCATION
        assert (lunch[0].start_time, lunch[0].end_time) == LUNCH_COVER

    def test_only_lunch_and_holder_assigned(self, directorates, juniors):
        """No general-day blocks are drawn when the dedicated role holds the dispensary."""
        holder = Staff(id="D1", name="Dispenser", band="Dispensary Pharmacist")
        day = _day([holder] + juniors, directorates)
        DispensaryAllocator(day).run()
        non_holder = [a for a in _dispensary(day) if a.staff_id != "D1"]
        assert all(a.is_lunch_cover for a in non_holder)

    def test_unavailable_holder_falls_back_to_general_day(self, directorates, juniors):
        holder = Staff(
            id="D1", name="Dispenser", band="Dispensary Pharmacist",
            not_available_rules=[UnavailableRule("Monday", "09:00", "17:00")],
        )
        day = _day([holder] + juniors, directorates)
        DispensaryAllocator(day).run()
        assert not [a for a in _dispensary(day) if a.staff_id == "D1"]
        blocks = [(a.start_time, a.end_time) for a in _dispensary(day) if not a.is_lunch_cover]
        assert sorted(blocks) == DISPENSARY_BLOCKS

    def test_no_lunch_cover_recorded_as_conflict(self, directorates):
        """Only the holder plus an EAU Practitioner → nobody can cover lunch."""
        staff = [
            Staff(id="D1", name="Dispenser", band="Dispensary Pharmacist"),
            Staff(id="E1", name="Practitioner", band="EAU Practitioner"),
        ]
        day = _day(staff, directorates)
        DispensaryAllocator(day).run()
        conflicts = day.tracker.of_type("lunch")
        assert len(conflicts) == 1
        assert conflicts[0].description == NO_LUNCH_COVER


class TestSinglePharmacistDay:

    def test_band_6_preferred(self, directorates):
        staff = [
            Staff(id="A1", name="Senior", band="8a"),
            Staff(id="B7", name="Seven", band="7"),
            Staff(id="B6", name="Six", band="6"),
        ]
        day = _day(staff, directorates, single_pharmacist_day=True)
        DispensaryAllocator(day).run()

        holder = {a.staff_id for a in _dispensary(day) if not a.is_lunch_cover}
        assert holder == {"B6"}
        assert "B6" in day.full_day_dispensary
        lunch = _lunch(day)
        assert len(lunch) == 1 and lunch[0].staff_id != "B6"

    def test_no_candidate_is_error_and_nothing_assigned(self, directorates):
        """A flagged day nobody can hold all day stays uncovered; no general-day draw."""
        staff = [
            Staff(id="A1", name="Early", band="8a",
                  not_available_rules=[UnavailableRule("Monday", "09:00", "10:00")]),
            Staff(id="B7", name="Late", band="7",
                  not_available_rules=[UnavailableRule("Monday", "16:00", "17:00")]),
        ]
        day = _day(staff, directorates, single_pharmacist_day=True)
        DispensaryAllocator(day).run()

        errors = day.tracker.by_severity(ConflictSeverity.ERROR)
        assert [c.description for c in errors] == [NO_FULL_DAY_COVER]
        assert not day.full_day_dispensary
        assert _dispensary(day) == [], f"Unexpected dispensary cover: {_dispensary(day)}"


class TestGeneralDay:

    def test_each_block_filled_once_by_distinct_staff(self, directorates, juniors):
        day = _day(juniors, directorates)
        DispensaryAllocator(day).run()

        blocks = [a for a in _dispensary(day) if not a.is_lunch_cover]
        assert sorted((a.start_time, a.end_time) for a in blocks) == DISPENSARY_BLOCKS
        holders = [a.staff_id for a in _dispensary(day)]
        assert len(holders) == len(set(holders)), f"Someone got two dispensary duties: {holders}"
        assert all(a.location == DISPENSARY_LOCATION for a in blocks)

    def test_lunch_prefers_band_8a(self, directorates, juniors):
        senior = Staff(id="A1", name="Senior", band="8a")
        day = _day(juniors + [senior], directorates)
        DispensaryAllocator(day).run()
        assert [a.staff_id for a in _lunch(day)] == ["A1"]

    def test_lunch_then_warfarin_trained(self, directorates, juniors):
        juniors[3].warfarin_trained = True
        day = _day(juniors, directorates)
        DispensaryAllocator(day).run()
        assert [a.staff_id for a in _lunch(day)] == [juniors[3].id]

    def test_eau_practitioner_never_on_dispensary(self, directorates, juniors):
        eau = Staff(id="E1", name="Practitioner", band="EAU Practitioner")
        for seed in range(10):
            day = _day([eau] + juniors[:2], directorates, seed=seed)
            DispensaryAllocator(day).run()
            assert "E1" not in {a.staff_id for a in _dispensary(day)}

    def test_warfarin_clinic_staff_excluded(self, directorates, juniors):
        clinic = Clinic(id="C1", name="Warfarin Clinic", day_of_week=1,
                        start_time="09:00", end_time="10:00")
        day = _day(juniors, directorates, clinics=[clinic])
        day.add("J1", AssignmentType.CLINIC, "Warfarin Clinic", "09:00", "10:00")
        DispensaryAllocator(day).run()
        assert "J1" not in {a.staff_id for a in _dispensary(day)}

    def test_unfillable_block_recorded(self, directorates):
        staff = [Staff(id="J1", name="Only", band="6")]
        day = _day(staff, directorates)
        DispensaryAllocator(day).run()
        # J1 takes lunch cover, so every block is empty
        conflicts = day.tracker.of_type("dispensary")
        assert len(conflicts) == len(DISPENSARY_BLOCKS)
        assert "09:00-11:00" in conflicts[0].description


class TestDrawFairness:

    def test_least_loaded_drawn(self, directorates):
        staff = [
            Staff(id="A", name="Fresh", band="7"),
            Staff(id="B", name="Busy", band="6"),
        ]
        for seed in range(10):
            day = _day(staff, directorates, seed=seed, dispensary_duty_count={"A": 0, "B": 3})
            chosen = DispensaryAllocator(day).draw_block("09:00", "11:00")
            assert chosen.id == "A", f"seed={seed}: expected least-loaded A, got {chosen.id}"

    def test_order_by_duty_zero_first(self, directorates):
        staff = [
            Staff(id="A", name="Two", band="7"),
            Staff(id="B", name="Zero", band="6"),
            Staff(id="C", name="One", band="6"),
        ]
        day = _day(staff, directorates, dispensary_duty_count={"A": 2, "B": 0, "C": 1})
        ordered = DispensaryAllocator(day).order_by_duty(staff)
        assert [s.id for s in ordered] == ["B", "C", "A"]
