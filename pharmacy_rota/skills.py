"""
skills.py — Qualification Matching for Pharmacy Rota Allocation

Functions:
  - Warfarin certification for anticoagulation clinics
  - Directorate training and primary affiliation for ward cover
  - Ward-specific special training (trainingType) and ITU competence
  - Per-clinic qualified staff lists and a training summary for reports
"""

from typing import Dict, List

from pharmacy_rota.models import Clinic, Staff, Ward
from pharmacy_rota.schedule_config import ITU_TRAINING, ITU_WARD_MARKER


def is_clinic_qualified(staff: Staff, clinic: Clinic) -> bool:
    if clinic.requires_warfarin_training and not staff.warfarin_trained:
        return False
    return True


def has_special_training(staff: Staff, ward: Ward) -> bool:
    """Ward special-training gate (wards without requirement always pass)."""
    if not ward.requires_special_training:
        return True
    if not ward.training_type:
        return False
    return ward.training_type in staff.specialist_training


def is_itu_ward(ward: Ward) -> bool:
    return ITU_WARD_MARKER in ward.name


def is_itu_trained(staff: Staff) -> bool:
    return ITU_TRAINING in staff.specialist_training


def can_swap_onto_ward(staff: Staff, ward: Ward) -> bool:
    """
    Qualification for being moved onto a ward by an optimization swap:
    directorate knowledge or a primary ward match, plus any special
    training the ward demands, plus ITU competence for ITU wards.
    """
    if not (staff.is_trained_in(ward.directorate) or staff.has_primary_ward(ward.name)):
        return False
    if not has_special_training(staff, ward):
        return False
    if is_itu_ward(ward) and not is_itu_trained(staff):
        return False
    return True


def get_qualified_staff(clinic: Clinic, staff: List[Staff]) -> List[Staff]:
    """Return staff qualified for the clinic, in input order."""
    return [s for s in staff if is_clinic_qualified(s, clinic)]


def get_training_summary(staff: List[Staff]) -> Dict[str, List[str]]:
    """
    {tag: [staff names]} for warfarin, each specialist training tag and
    each trained directorate (prefixed 'dir:').
    """
    summary: Dict[str, List[str]] = {}

    def _add(tag: str, name: str) -> None:
        summary.setdefault(tag, []).append(name)

    for s in staff:
        if s.warfarin_trained:
            _add("warfarin", s.name)
        for tag in s.specialist_training:
            _add(tag, s.name)
        for d in s.trained_directorates:
            _add(f"dir:{d}", s.name)
    return summary


def validate_clinic_coverage(clinics: List[Clinic], staff: List[Staff]) -> List[str]:
    """Return names of clinics nobody in the roster is qualified to run."""
    return [c.name for c in clinics if not get_qualified_staff(c, staff)]
