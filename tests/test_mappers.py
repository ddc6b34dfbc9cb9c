# tests/test_mappers.py

"""
Assessment Mapper Tests - HC, CA and BMHS raw items to profile fields
"""

import pytest

from connected_capacity.mappers.bmhs_mapper import BmhsAssessmentMapper
from connected_capacity.mappers.ca_mapper import CaAssessmentMapper
from connected_capacity.mappers.hc_mapper import HcAssessmentMapper
from connected_capacity.models.assessment import AssessmentInput
from connected_capacity.models.enumerations import NeedsCluster


def _assessment(kind, **raw):
    return AssessmentInput(assessment_type=kind, raw_items=raw)


# HC MAPPER TESTS


class TestHcMapper:
    """Tests for HcAssessmentMapper."""

    @pytest.fixture
    def mapper(self):
        return HcAssessmentMapper()

    def test_weight(self, mapper):
        assert mapper.confidence_weight == 1.0
        assert mapper.supports_rug_classification is True

    def test_sample_patient(self, mapper, hc_raw_items):
        """Hand-checked fields for the shared HC sample."""
        assessment = AssessmentInput(assessment_type="hc", raw_items=hc_raw_items, rug_group="pd0")
        fields = mapper.map_to_profile_fields(assessment)

        assert fields["has_full_hc_assessment"] is True
        assert fields["rug_group"] == "PD0"
        assert fields["rug_category"] == "Reduced Physical Function"
        assert fields["adl_support_level"] == 3
        assert fields["iadl_support_level"] == 4
        assert fields["mobility_complexity"] == 3
        assert fields["cognitive_complexity"] == 2
        assert fields["health_instability"] == 2
        assert fields["falls_risk_level"] == 2
        assert fields["pain_management_need"] == 2
        assert fields["caregiver_stress_level"] == 3
        assert fields["caregiver_requires_relief"] is True
        assert fields["caregiver_availability_score"] == 5
        assert fields["lives_alone"] is False
        assert fields["has_polypharmacy_risk"] is True
        assert fields["has_recent_fall"] is True
        assert fields["has_recent_hospital_stay"] is True
        assert fields["has_recent_er_visit"] is False
        assert fields["medication_count"] == 10

    def test_scales_are_clamped(self, mapper):
        fields = mapper.map_to_profile_fields(_assessment("hc", adl_hierarchy=9, chess=-2, pain_scale=7))
        assert fields["adl_support_level"] == 6
        assert fields["health_instability"] == 0
        assert fields["pain_management_need"] == 3

    def test_alternate_item_keys(self, mapper):
        fields = mapper.map_to_profile_fields(_assessment("hc", CPS=4, ADL_HIERARCHY=5))
        assert fields["cognitive_complexity"] == 4
        assert fields["adl_support_level"] == 5

    def test_behaviour(self, mapper):
        fields = mapper.map_to_profile_fields(
            _assessment("hc", verbal_abuse=2, resists_care=1, wandering=1)
        )
        assert fields["behavioural_complexity"] == 3
        assert fields["has_aggression_risk"] is True
        assert fields["has_wandering_risk"] is True
        assert fields["behavioural_flags"] == ["verbal_aggression", "resists_care", "wandering"]

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ({}, 0),
            ({"fall_history": 1}, 1),
            ({"falls_last_90": 1}, 1),
            ({"falls_last_90": 2}, 2),
        ],
    )
    def test_falls_risk(self, mapper, raw, expected):
        assert mapper.extract_falls_risk_level(raw) == expected

    def test_skin_and_extensive_services(self, mapper):
        fields = mapper.map_to_profile_fields(_assessment("hc", pressure_ulcer=2, iv_therapy=1, oxygen_therapy=1))
        assert fields["skin_integrity_risk"] == 2
        assert fields["requires_extensive_services"] is True
        assert fields["extensive_services"] == ["iv_therapy", "oxygen_therapy"]

    def test_therapy_minutes(self, mapper):
        fields = mapper.map_to_profile_fields(_assessment("hc", pt_minutes=45, ot_minutes=30))
        assert fields["weekly_therapy_minutes"] == 75

    @pytest.mark.parametrize(
        "rug_group, category",
        [
            ("RB0", "Special Rehabilitation"),
            ("RA1", "Special Rehabilitation"),
            ("CC0", "Clinically Complex"),
            ("IB0", "Impaired Cognition"),
            ("ZZ9", "Unknown"),
            (None, None),
        ],
    )
    def test_rug_category(self, rug_group, category):
        assert HcAssessmentMapper.rug_category_for(rug_group) == category

    def test_rug_group_from_raw_items(self, mapper):
        fields = mapper.map_to_profile_fields(_assessment("hc", rug_group="se2", rug_numeric_rank="12"))
        assert fields["rug_group"] == "SE2"
        assert fields["rug_category"] == "Special Rehabilitation"
        assert fields["rug_numeric_rank"] == 12

    def test_explicit_rug_category_wins(self, mapper):
        assessment = AssessmentInput(assessment_type="hc", rug_group="PD0", rug_category="Special Care")
        assert mapper.map_to_profile_fields(assessment)["rug_category"] == "Special Care"

    def test_populatable_fields(self, mapper):
        fields = mapper.populatable_fields()
        assert "adl_support_level" in fields
        assert "has_polypharmacy_risk" in fields


# CA MAPPER TESTS


class TestCaMapper:
    """Tests for CaAssessmentMapper."""

    @pytest.fixture
    def mapper(self):
        return CaAssessmentMapper()

    def test_weight(self, mapper):
        assert mapper.confidence_weight == 0.7
        assert mapper.supports_rug_classification is False

    def test_sample_patient(self, mapper, ca_request_payload):
        raw = ca_request_payload["ca"]["raw_items"]
        fields = mapper.map_to_profile_fields(_assessment("ca", **raw))
        assert fields["has_ca_assessment"] is True
        assert fields["adl_support_level"] == 4
        assert fields["cognitive_complexity"] == 2
        assert fields["needs_cluster"] == "HIGH_ADL"
        assert fields["lives_alone"] is True
        assert fields["specific_adl_needs"] == ["bathing", "dressing", "toileting", "mobility"]

    def test_adl_capacity_score_preferred(self, mapper):
        assert mapper.extract_adl_support_level({"adl_capacity_score": 2, "ca_bathing": 4}) == 2

    def test_capacity_sum_rounds_half_up(self, mapper):
        """Sum 5 / 3 = 1.67 -> 2; sum 4 / 3 = 1.33 -> 1."""
        assert mapper.extract_iadl_support_level({"ca_meals": 3, "ca_housework": 2}) == 2
        assert mapper.extract_iadl_support_level({"ca_meals": 2, "ca_housework": 2}) == 1

    def test_health_instability(self, mapper):
        raw = {"ca_acute_change": 1, "ca_unstable_condition": 1, "ca_recent_hospital": 1}
        assert mapper.extract_health_instability(raw) == 5
        assert mapper.extract_health_instability({"ca_recent_hospital": 1}) == 1

    @pytest.mark.parametrize(
        "raw, cluster",
        [
            ({"adl_capacity_score": 4, "ca_short_term_memory": 2, "ca_decision_making": 1}, NeedsCluster.HIGH_ADL_COGNITIVE),
            ({"adl_capacity_score": 5}, NeedsCluster.HIGH_ADL),
            ({"ca_short_term_memory": 2, "ca_orientation": 1}, NeedsCluster.COGNITIVE_COMPLEX),
            ({"ca_aggression": 1, "ca_wandering": 1, "ca_resists_care": 1}, NeedsCluster.MH_COMPLEX),
            ({"ca_acute_change": 1, "ca_recent_hospital": 1}, NeedsCluster.MEDICAL_COMPLEX),
            ({"adl_capacity_score": 2}, NeedsCluster.MODERATE_ADL),
            ({"adl_capacity_score": 1}, NeedsCluster.LOW_ADL),
            ({}, NeedsCluster.GENERAL),
        ],
    )
    def test_needs_cluster_priority(self, mapper, raw, cluster):
        assert mapper.derive_needs_cluster(raw) == cluster

    def test_caregiver_present(self, mapper):
        fields = mapper.map_to_profile_fields(_assessment("ca", ca_caregiver_present=1))
        assert fields["caregiver_availability_score"] == 3

    def test_populatable_fields_match_mapping(self, mapper):
        fields = mapper.map_to_profile_fields(_assessment("ca"))
        assert set(mapper.populatable_fields()) == set(fields)


# BMHS MAPPER TESTS


class TestBmhsMapper:
    """Tests for BmhsAssessmentMapper."""

    @pytest.fixture
    def mapper(self):
        return BmhsAssessmentMapper()

    def test_weight(self, mapper):
        assert mapper.confidence_weight == 0.5

    def test_empty_assessment(self, mapper):
        fields = mapper.map_to_profile_fields(_assessment("bmhs"))
        assert fields["has_bmhs_assessment"] is True
        assert fields["mental_health_complexity"] == 0
        assert fields["self_harm_risk_level"] == 0
        assert fields["violence_risk_level"] == 0
        assert fields["mental_health_insight"] == "unknown"
        assert fields["requires_crisis_intervention"] is False

    @pytest.mark.parametrize(
        "raw, level",
        [
            ({"bmhs_self_injury_attempt": 1}, 3),
            ({"bmhs_suicide_plan": 1, "bmhs_command_hallucinations": 2}, 3),
            ({"bmhs_suicide_plan": 1}, 2),
            ({"bmhs_self_injury_considered": 1, "bmhs_others_concern_self_harm": 1}, 2),
            ({"bmhs_self_injury_considered": 1}, 1),
            ({"bmhs_others_concern_self_harm": 1}, 1),
            ({}, 0),
        ],
    )
    def test_self_harm_levels(self, mapper, raw, level):
        assert mapper.self_harm_risk_level(raw) == level

    @pytest.mark.parametrize(
        "raw, level",
        [
            ({"bmhs_violence_to_others": 2}, 3),
            ({"bmhs_violence_to_others": 1}, 2),
            ({"bmhs_intimidation": 2, "bmhs_weapon_history": 1}, 2),
            ({"bmhs_intimidation": 2}, 1),
            ({"bmhs_violent_ideation": 1}, 1),
            ({}, 0),
        ],
    )
    def test_violence_levels(self, mapper, raw, level):
        assert mapper.violence_risk_level(raw) == level

    def test_mental_health_complexity_capped(self, mapper):
        raw = {
            "bmhs_command_hallucinations": 2,
            "bmhs_hallucinations": 2,
            "bmhs_delusions": 1,
            "bmhs_insight": 2,
            "bmhs_abnormal_thought": 1,
        }
        assert mapper.mental_health_complexity(raw) == 5

    @pytest.mark.parametrize("value, insight", [(0, "full"), (1, "limited"), (2, "none"), (7, "unknown")])
    def test_insight(self, mapper, value, insight):
        assert mapper.insight_level({"bmhs_insight": value}) == insight

    def test_behavioural_complexity(self, mapper):
        raw = {"bmhs_violence_to_others": 1, "bmhs_verbal_abuse": 1, "bmhs_hyperarousal": 2}
        assert mapper.behavioural_complexity(raw) == 4

    def test_psychiatric_consult(self, mapper):
        assert mapper.requires_psychiatric_consult({"bmhs_command_hallucinations": 1}) is True
        assert mapper.requires_psychiatric_consult({"bmhs_suicide_plan": 1}) is True
        assert mapper.requires_psychiatric_consult(
            {"bmhs_insight": 2, "bmhs_hallucinations": 2, "bmhs_delusions": 2}
        ) is True
        assert mapper.requires_psychiatric_consult({"bmhs_hallucinations": 2}) is False

    def test_disordered_thought_score(self, mapper):
        raw = {"bmhs_hallucinations": 2, "bmhs_delusions": 1, "bmhs_irritability": 5}
        assert mapper.disordered_thought_score(raw) == 3

    def test_crisis_intervention(self, mapper):
        fields = mapper.map_to_profile_fields(_assessment("bmhs", bmhs_violence_to_others=1))
        assert fields["requires_crisis_intervention"] is True
        assert fields["has_violence_risk"] is True
