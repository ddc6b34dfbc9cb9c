# tests/conftest.py

"""
Pytest Fixtures - Shared rule engines, assessments and profiles for all tests

SAMPLE PATIENT REFERENCE (hc_raw_items):
- HC output scales: ADL Hierarchy 3, IADL 4, CPS 2, CHESS 2, RUG group PD0
- Two falls in the last 90 days, 10 medications, recent hospital stay
- Caregiver distress 3 (requires relief), helper lives with the patient
- CA algorithm items give: PSA 5, Rehab 5, CHESS-CA 2, Pain 3, DMS 2,
  Assessment Urgency 6, Service Urgency 3, not self-reliant
"""

import json

import pytest
from fastapi.testclient import TestClient

from connected_capacity.config import settings
from connected_capacity.engines.algorithm_evaluator import AlgorithmEvaluator
from connected_capacity.engines.cap_trigger import CAPTriggerEngine
from connected_capacity.engines.category_intensity import CategoryIntensityResolver
from connected_capacity.engines.decision_tree import DecisionTreeEngine
from connected_capacity.engines.service_intensity import ServiceIntensityResolver
from connected_capacity.main import app
from connected_capacity.models.assessment import ProfileRequest
from connected_capacity.models.profile import PatientNeedsProfile
from connected_capacity.models.scheduling import (
    SchedulingPatient,
    ServiceRequirement,
    StaffMember,
)


# =============================================================================
# FASTAPI TEST CLIENT FIXTURE
# =============================================================================

@pytest.fixture(scope="module")
def client():
    """Create a TestClient for FastAPI application."""
    with TestClient(app) as test_client:
        yield test_client


# =============================================================================
# RULE ENGINE FIXTURES - PACKAGED RULE TABLES
# =============================================================================

@pytest.fixture
def rules_dir():
    """Packaged rules directory."""
    return settings.RULES_DIR


@pytest.fixture
def decision_tree_engine():
    return DecisionTreeEngine(settings.algorithms_dir)


@pytest.fixture
def cap_engine():
    return CAPTriggerEngine(settings.caps_dir)


@pytest.fixture
def algorithm_evaluator(decision_tree_engine, cap_engine):
    return AlgorithmEvaluator(decision_tree_engine, cap_engine)


@pytest.fixture
def intensity_resolver():
    return ServiceIntensityResolver(settings.intensity_matrix_path)


@pytest.fixture
def category_resolver():
    return CategoryIntensityResolver(settings.service_categories_path, settings.intensity_matrix_path)


# =============================================================================
# TEMPORARY RULE FILE FIXTURES
# =============================================================================

@pytest.fixture
def write_algorithm(tmp_path):
    """Write a decision tree into a temp algorithms dir; returns an engine over it."""
    algorithms_dir = tmp_path / "algorithms"
    algorithms_dir.mkdir()

    def _write(name, tree, computed_inputs=None, **extra):
        definition = {
            "name": name,
            "version": "1.0",
            "output_range": [0, 10],
            "tree": tree,
            **extra,
        }
        if computed_inputs is not None:
            definition["computed_inputs"] = computed_inputs
        (algorithms_dir / f"{name}.json").write_text(json.dumps(definition), encoding="utf-8")
        return DecisionTreeEngine(algorithms_dir)

    return _write


@pytest.fixture
def write_cap(tmp_path):
    """Write a CAP YAML into a temp caps dir; returns an engine over it."""
    caps_dir = tmp_path / "caps"
    (caps_dir / "clinical").mkdir(parents=True)

    def _write(name, content, subdir="clinical"):
        target = caps_dir / subdir if subdir else caps_dir
        target.mkdir(parents=True, exist_ok=True)
        (target / f"{name}.yaml").write_text(content, encoding="utf-8")
        return CAPTriggerEngine(caps_dir)

    return _write


# =============================================================================
# ASSESSMENT FIXTURES
# =============================================================================

@pytest.fixture
def hc_raw_items():
    """HC raw items: output scales plus the CA item equivalents."""
    return {
        # Output scales
        "adl_hierarchy": 3,
        "iadl_capacity": 4,
        "cps": 2,
        "chess": 2,
        "locomotion": 3,
        "transfer": 2,
        "pain_scale": 2,
        # Falls, medications, utilisation
        "falls_last_90": 2,
        "fall_history": 1,
        "medication_count": 10,
        "hospital_stay_90": 1,
        # Caregiver
        "caregiver_distress": 3,
        "informal_helper": 1,
        "helper_lives_with": 1,
        # CA algorithm items
        "iB3a": 2,
        "adl_bathing": 3,
        "adl_transfer": 2,
        "adl_hygiene": 2,
        "adl_dressing_lower": 3,
        "adl_bed_mobility": 1,
        "dyspnea": 1,
        "mood_sad_expressions": 1,
        "mood_unrealistic_fears": 0,
        "mood_crying": 1,
        "iadl_meal_prep": 4,
        "iadl_housework": 5,
        "iadl_medications": 3,
        "edema": 1,
        "vomiting": 0,
        "pain_frequency": 3,
        "pain_intensity": 3,
        "weight_loss": 0,
        "extensive_iv": 0,
        "clinical_wound": 0,
        "caregiver_stress": 1,
    }


@pytest.fixture
def hc_request_payload(hc_raw_items):
    """ProfileRequest body with a full HC assessment."""
    return {
        "patient": {"patient_id": "patient-001", "region_code": "TOR-C"},
        "hc": {
            "assessment_type": "hc",
            "assessment_date": "2026-09-15T10:00:00Z",
            "raw_items": hc_raw_items,
            "rug_group": "pd0",
        },
    }


@pytest.fixture
def hc_profile_request(hc_request_payload):
    return ProfileRequest.model_validate(hc_request_payload)


@pytest.fixture
def ca_request_payload():
    """ProfileRequest body with a CA assessment only."""
    return {
        "patient": {"patient_id": "patient-002"},
        "ca": {
            "assessment_type": "ca",
            "raw_items": {
                "ca_bathing": 3,
                "ca_dressing": 3,
                "ca_toileting": 2,
                "ca_locomotion": 2,
                "ca_eating": 2,
                "ca_short_term_memory": 1,
                "ca_decision_making": 1,
                "ca_lives_alone": 1,
            },
        },
    }


@pytest.fixture
def referral_only_payload():
    return {
        "patient": {"patient_id": "patient-003"},
        "referral": {"referral_type": "post_acute", "has_internet": True},
    }


@pytest.fixture
def empty_request_payload():
    """No assessments and no referral."""
    return {"patient": {"patient_id": "patient-004"}}


# =============================================================================
# PROFILE FIXTURES
# =============================================================================

@pytest.fixture
def make_profile():
    """Factory for PatientNeedsProfile with field overrides."""
    def _make(**overrides):
        overrides.setdefault("patient_id", "test-patient")
        return PatientNeedsProfile(**overrides)
    return _make


@pytest.fixture
def minimal_profile():
    return PatientNeedsProfile.minimal("test-patient")


# =============================================================================
# SCHEDULING FIXTURES
# =============================================================================

@pytest.fixture
def scheduling_patient():
    return SchedulingPatient(
        patient_id="patient-001",
        region_code="TOR-C",
        location={"lat": 43.6532, "lng": -79.3832},
        acuity_level="medium",
    )


@pytest.fixture
def psw_service():
    return ServiceRequirement(
        service_code="psw",
        service_name="Personal Support",
        duration_minutes=60,
        required_visits=3,
        scheduled_visits=1,
        primary_roles=["PSW"],
        eligible_roles=["RPN"],
    )


@pytest.fixture
def psw_staff():
    """One PSW in region with history, one RPN out of region."""
    return [
        StaffMember(
            staff_id="staff-psw",
            role_code="PSW",
            region_code="TOR-C",
            max_weekly_hours=40,
            scheduled_hours=24,
            previous_location={"lat": 43.6540, "lng": -79.3840},
            patient_visit_counts={"patient-001": 3},
        ),
        StaffMember(
            staff_id="staff-rpn",
            role_code="RPN",
            region_code="TOR-E",
            max_weekly_hours=40,
            scheduled_hours=10,
        ),
    ]
