# tests/test_models.py

"""
Pydantic Model Tests - validation rules and derived properties
"""

import pytest
from pydantic import ValidationError

from connected_capacity.config import Settings
from connected_capacity.models.assessment import AssessmentInput, ProfileRequest
from connected_capacity.models.enumerations import CapLevel, MatchStatus, ScenarioAxis
from connected_capacity.models.profile import PatientNeedsProfile
from connected_capacity.models.scenario import GenerationOptions, ScenarioBundle, ScenarioServiceLine
from connected_capacity.models.scheduling import (
    AssignmentSuggestion,
    GeoPoint,
    SchedulingPatient,
    ServiceRequirement,
    StaffMember,
)


def _line(**overrides):
    fields = {"service_category": "psw", "service_name": "Personal Support", "frequency_count": 3}
    fields.update(overrides)
    return ScenarioServiceLine(**fields)


# =============================================================================
# SERVICE LINE TESTS
# =============================================================================

class TestScenarioServiceLine:
    """Tests for ScenarioServiceLine labels and weekly conversion."""

    @pytest.mark.parametrize(
        "count, period, label",
        [
            (1, "day", "Once daily"),
            (2, "day", "2 times daily"),
            (1, "week", "Once per week"),
            (3, "week", "3 times per week"),
            (2, "month", "2 times per month"),
            (1, "episode", "One-time"),
        ],
    )
    def test_frequency_label(self, count, period, label):
        assert _line(frequency_count=count, frequency_period=period).frequency_label == label

    @pytest.mark.parametrize(
        "minutes, label",
        [(45, "45 min"), (60, "1 hr"), (120, "2 hrs"), (90, "1 hr 30 min")],
    )
    def test_duration_label(self, minutes, label):
        assert _line(duration_minutes=minutes).duration_label == label

    def test_weekly_visits_by_period(self):
        assert _line(frequency_count=1, frequency_period="day").weekly_visits == 7.0
        assert _line(frequency_count=3, frequency_period="week").weekly_visits == 3.0
        assert _line(frequency_count=1, frequency_period="episode").weekly_visits == 0.0
        assert _line(frequency_count=433, frequency_period="month").weekly_visits == pytest.approx(100.0)

    def test_weekly_hours(self):
        assert _line(frequency_count=5, duration_minutes=90).weekly_hours == 7.5

    def test_invalid_priority(self):
        with pytest.raises(ValidationError):
            _line(priority_level="urgent")

    def test_negative_frequency_rejected(self):
        with pytest.raises(ValidationError):
            _line(frequency_count=-1)

    def test_labels_fall_back_to_code(self):
        line = _line(discipline="np", delivery_mode="phone")
        assert line.discipline_label == "NP"
        assert line.delivery_mode_label == "Phone"


# =============================================================================
# SCENARIO BUNDLE TESTS
# =============================================================================

class TestScenarioBundle:

    @pytest.fixture
    def bundle(self):
        return ScenarioBundle(
            patient_id="p1",
            primary_axis=ScenarioAxis.SAFETY_STABILITY,
            title="Safety & Stability",
            description="",
            service_lines=[
                _line(priority_level="core"),
                _line(service_category="nursing", service_name="Nursing", discipline="rn", is_safety_critical=True,
                      priority_level="optional"),
                _line(service_category="meals", service_name="Meals", discipline="css"),
            ],
        )

    def test_unique_ids(self, bundle):
        other = ScenarioBundle(patient_id="p1", primary_axis="balanced", title="", description="")
        assert other.scenario_id != bundle.scenario_id

    def test_core_services(self, bundle):
        assert [line.service_category for line in bundle.core_services()] == ["psw", "nursing"]

    def test_grouping(self, bundle):
        by_priority = bundle.service_lines_by_priority()
        assert [len(by_priority[level]) for level in ("core", "recommended", "optional")] == [1, 1, 1]
        assert bundle.unique_disciplines() == ["psw", "rn", "css"]
        assert bundle.has_service_category("meals")

    def test_deidentified_drops_patient(self, bundle):
        data = bundle.to_deidentified()
        assert "patient_id" not in data
        assert data["axis"]["primary"]["value"] == "safety_stability"

    def test_cost_status_label(self, bundle):
        assert bundle.cost_status_label == "Within Reference"


class TestGenerationOptions:

    def test_defaults(self):
        options = GenerationOptions()
        assert (options.min_scenarios, options.max_scenarios) == (3, 5)
        assert options.include_balanced is True

    def test_min_above_max_rejected(self):
        with pytest.raises(ValidationError):
            GenerationOptions(min_scenarios=5, max_scenarios=3)

    def test_single_scenario_needs_balanced_off(self):
        """BALANCED takes one slot, so max_scenarios=1 leaves no room for an axis."""
        with pytest.raises(ValidationError):
            GenerationOptions(min_scenarios=1, max_scenarios=1)
        options = GenerationOptions(min_scenarios=1, max_scenarios=1, include_balanced=False)
        assert options.max_scenarios == 1

    def test_settings_leave_room_for_balanced(self):
        """Options built from settings always reserve the BALANCED slot."""
        with pytest.raises(ValidationError):
            Settings(MIN_SCENARIOS=1, MAX_SCENARIOS=1)
        assert GenerationOptions.from_settings().max_scenarios >= 2

    def test_reference_cap_positive(self):
        with pytest.raises(ValidationError):
            GenerationOptions(reference_cap=0)


# =============================================================================
# ASSESSMENT AND PROFILE TESTS
# =============================================================================

class TestAssessmentModels:

    def test_rug_group_uppercased(self):
        assessment = AssessmentInput(assessment_type="hc", rug_group="pd0")
        assert assessment.rug_group == "PD0"

    def test_unknown_assessment_type(self):
        with pytest.raises(ValidationError):
            AssessmentInput(assessment_type="mds")

    def test_patient_id_required(self):
        with pytest.raises(ValidationError):
            ProfileRequest.model_validate({"patient": {"patient_id": ""}})


class TestPatientNeedsProfile:

    def test_minimal_profile(self, minimal_profile):
        assert minimal_profile.confidence_level == "low"
        assert minimal_profile.is_sufficient_for_bundling() is False
        assert minimal_profile.has_algorithm_scores() is False
        assert minimal_profile.classification_type == "Unclassified"

    def test_classification(self, make_profile):
        assert make_profile(rug_group="PD0").classification_type == "RUG-III/HC"
        assert make_profile(needs_cluster="C2").primary_classification == "C2"

    def test_caps_at_level(self, make_profile):
        profile = make_profile(triggered_caps={
            "falls": {"level": "IMPROVE"},
            "adl": {"level": "FACILITATE"},
            "mood": {"level": "PREVENT"},
        })
        assert profile.caps_at_level(CapLevel.IMPROVE, CapLevel.FACILITATE) == ["falls", "adl"]

    def test_falls_risk_bounds(self, make_profile):
        with pytest.raises(ValidationError):
            make_profile(falls_risk_level=3)


# =============================================================================
# SCHEDULING MODEL TESTS
# =============================================================================

class TestSchedulingModels:

    def test_geo_point_bounds(self):
        with pytest.raises(ValidationError):
            GeoPoint(lat=91, lng=0)

    def test_staff_hours(self):
        staff = StaffMember(staff_id="s1", max_weekly_hours=40, scheduled_hours=30)
        assert staff.remaining_hours == 10
        assert staff.utilization_percent == 75.0
        assert staff.visits_with("p1") == 0

    def test_service_code_uppercased(self):
        service = ServiceRequirement(service_code="psw", service_name="PSW", required_visits=2, scheduled_visits=3)
        assert service.service_code == "PSW"
        assert service.remaining_visits == 0

    def test_eligible_role(self):
        service = ServiceRequirement(service_code="NUR", service_name="Nursing", primary_roles=["RN"],
                                     eligible_roles=["RPN"])
        assert service.is_eligible_role("RPN")
        assert not service.is_eligible_role("PSW")
        assert not service.is_eligible_role(None)

    @pytest.mark.parametrize(
        "maple, acuity, expected",
        [(None, "medium", False), (4, "low", True), (None, "high", True), (3, "medium", False)],
    )
    def test_high_acuity(self, maple, acuity, expected):
        patient = SchedulingPatient(patient_id="p1", maple_score=maple, acuity_level=acuity)
        assert patient.is_high_acuity is expected

    def test_suggestion_properties(self):
        suggestion = AssignmentSuggestion(
            patient_id="p1",
            service_code="PSW",
            service_name="PSW",
            duration_minutes=60,
            suggested_staff_id="s1",
            match_status=MatchStatus.MODERATE,
            confidence_score=65.0,
            continuity_visit_count=2,
        )
        assert suggestion.has_suggestion
        assert not suggestion.is_strong_match
        assert suggestion.continuity_note == "Has served this patient 2 times"
        assert suggestion.sort_key == 365.0

    def test_no_suggestion_without_staff(self):
        suggestion = AssignmentSuggestion(patient_id="p1", service_code="PSW", service_name="PSW",
                                          duration_minutes=60, match_status=MatchStatus.STRONG)
        assert not suggestion.has_suggestion
