# tests/test_ingestion.py

"""
Assessment Ingestion Tests - merging sources into a PatientNeedsProfile

The HC sample is traced by hand through the mappers, derivers, CA
algorithms and CAP rules; see conftest.py for the sample reference.
"""

from unittest.mock import MagicMock, patch

import pytest

from connected_capacity.config import settings
from connected_capacity.models.assessment import (
    AssessmentInput,
    PatientContext,
    ProfileRequest,
    ReferralInput,
)
from connected_capacity.models.profile import PatientNeedsProfile
from connected_capacity.services.ingestion_service import AssessmentIngestionService


@pytest.fixture
def service(algorithm_evaluator, cap_engine):
    return AssessmentIngestionService(
        algorithm_evaluator=algorithm_evaluator,
        cap_engine=cap_engine,
        cache_enabled=False,
    )


# =============================================================================
# FULL HC PROFILE
# =============================================================================

class TestHcProfile:
    """Profile built from the shared HC sample."""

    @pytest.fixture
    def profile(self, service, hc_profile_request):
        return service.build_patient_needs_profile(hc_profile_request)

    def test_identity_and_sources(self, profile):
        assert profile.patient_id == "patient-001"
        assert profile.region_code == "TOR-C"
        assert profile.primary_assessment_type == "hc"
        assert profile.primary_assessment_date.date().isoformat() == "2026-09-15"
        assert profile.has_full_hc_assessment is True
        assert profile.has_ca_assessment is False

    def test_mapped_fields(self, profile):
        assert profile.rug_group == "PD0"
        assert profile.rug_category == "Reduced Physical Function"
        assert profile.adl_support_level == 3
        assert profile.iadl_support_level == 4
        assert profile.cognitive_complexity == 2
        assert profile.health_instability == 2
        assert profile.falls_risk_level == 2
        assert profile.caregiver_stress_level == 3
        assert profile.caregiver_requires_relief is True

    def test_derived_fields(self, profile):
        """No pattern fires and ADL 3 is below the complex default, so chronic."""
        assert profile.episode_type == "chronic"
        assert profile.rehab_potential_score == 32
        assert profile.has_rehab_potential is False

    def test_algorithm_scores(self, profile):
        assert profile.personal_support_score == 5
        assert profile.rehabilitation_score == 5
        assert profile.chess_ca_score == 2
        assert profile.pain_score == 3
        assert profile.distressed_mood_score == 2
        assert profile.assessment_urgency_score == 6
        assert profile.service_urgency_score == 3
        assert profile.self_reliance_index is False
        assert profile.has_algorithm_scores() is True

    def test_triggered_caps(self, profile):
        levels = {name: cap["level"] for name, cap in profile.triggered_caps.items()}
        assert levels == {
            "adl": "FACILITATE",
            "falls": "IMPROVE",
            "medications": "IMPROVE",
            "pain": "IMPROVE",
            "cognitive_loss": "PREVENT",
            "informal_support": "IMPROVE",
        }

    def test_quality(self, profile):
        assert profile.confidence_level == "high"
        assert profile.data_completeness_score == 1.0
        assert profile.missing_data_fields == []
        assert profile.data_quality_notes == "Full HC assessment available"


# =============================================================================
# PARTIAL DATA
# =============================================================================

class TestPartialSources:
    """CA-only and referral-only profiles."""

    def test_ca_only(self, service, ca_request_payload):
        profile = service.build_patient_needs_profile(ProfileRequest.model_validate(ca_request_payload))
        assert profile.primary_assessment_type == "ca"
        assert profile.confidence_level == "medium"
        assert profile.needs_cluster == "HIGH_ADL"
        assert profile.rug_group is None
        assert profile.classification_type == "Needs Cluster"
        assert profile.triggered_caps == {}
        assert profile.data_completeness_score < 1.0
        assert profile.data_quality_notes == (
            "CA assessment only - RUG derived from needs cluster. "
            "No RUG classification - using needs cluster for template selection"
        )

    def test_referral_only(self, service, referral_only_payload):
        profile = service.build_patient_needs_profile(ProfileRequest.model_validate(referral_only_payload))
        assert profile.primary_assessment_type == "referral_only"
        assert profile.confidence_level == "low"
        assert profile.episode_type == "post_acute"
        assert profile.has_internet is True
        assert profile.self_reliance_index is True
        assert profile.personal_support_score == 1
        assert profile.data_completeness_score == pytest.approx(0.2)
        assert profile.missing_data_fields == [
            "RUG Classification",
            "ADL Support Level",
            "Cognitive Complexity",
            "Health Instability",
            "Therapy Minutes",
        ]
        assert profile.data_quality_notes.startswith("Limited assessment data")

    def test_ca_fills_gaps_left_by_hc(self, service):
        """CA fills zero-valued HC fields but never overrides populated ones."""
        hc = AssessmentInput(assessment_type="hc", raw_items={"adl_hierarchy": 2})
        ca = AssessmentInput(assessment_type="ca", raw_items={"adl_capacity_score": 5, "ca_short_term_memory": 2})
        profile = service.build_from_sources(PatientContext(patient_id="p1"), hc=hc, ca=ca)
        assert profile.adl_support_level == 2
        assert profile.cognitive_complexity > 0
        assert profile.has_ca_assessment is True

    def test_bmhs_overrides_behaviour(self, service):
        hc = AssessmentInput(assessment_type="hc", raw_items={"verbal_abuse": 1})
        bmhs = AssessmentInput(
            assessment_type="bmhs",
            raw_items={"bmhs_violence_to_others": 1, "bmhs_verbal_abuse": 1, "bmhs_hyperarousal": 2},
        )
        profile = service.build_from_sources(PatientContext(patient_id="p1"), hc=hc, bmhs=bmhs)
        assert profile.behavioural_complexity == 4
        assert profile.has_violence_risk is True
        assert profile.triggered_caps["behaviour"]["level"] == "IMPROVE"

    def test_palliative_referral_sets_context(self, service, hc_raw_items):
        hc = AssessmentInput(assessment_type="hc", raw_items=hc_raw_items)
        referral = ReferralInput(referral_type="palliative")
        profile = service.build_from_sources(PatientContext(patient_id="p1"), hc=hc, referral=referral)
        assert profile.episode_type == "palliative"
        assert profile.service_urgency_score == 4
        assert profile.rehabilitation_score == 1

    def test_no_caps_without_engine(self, hc_profile_request):
        service = AssessmentIngestionService(cache_enabled=False)
        profile = service.build_patient_needs_profile(hc_profile_request)
        assert profile.triggered_caps == {}
        # ADL 3 approximates PSA 4 without the CA trees
        assert profile.personal_support_score == 4


# =============================================================================
# DATA SOURCES AND REFERRAL EXTRACTION
# =============================================================================

class TestDataSources:

    def test_available_sources(self, service, hc_profile_request):
        sources = service.available_data_sources(hc_profile_request)
        assert sources["has_hc"] is True
        assert sources["hc_date"] == "2026-09-15"
        assert sources["has_ca"] is False
        assert sources["ca_date"] is None
        assert sources["referral_source"] is None

    def test_sufficient_data(self, service, hc_profile_request, referral_only_payload, empty_request_payload):
        assert service.has_sufficient_data(hc_profile_request) is True
        assert service.has_sufficient_data(ProfileRequest.model_validate(referral_only_payload)) is True
        assert service.has_sufficient_data(ProfileRequest.model_validate(empty_request_payload)) is False

    def test_extract_from_referral(self):
        referral = ReferralInput(has_pers=True, is_rural=True, diagnoses=["CHF", "COPD"])
        assert AssessmentIngestionService.extract_from_referral(referral) == {
            "has_referral_data": True,
            "has_pers": True,
            "is_rural": True,
            "active_conditions": ["CHF", "COPD"],
        }

    def test_extract_from_empty_referral(self):
        assert AssessmentIngestionService.extract_from_referral(ReferralInput()) == {"has_referral_data": True}


# =============================================================================
# SCORING HELPERS
# =============================================================================

class TestDefaultAlgorithmScores:
    """Approximations used when the CA trees cannot run."""

    @pytest.mark.parametrize("adl, psa", [(0, 1), (1, 2), (4, 5), (5, 6), (6, 6)])
    def test_personal_support(self, adl, psa):
        scores = AssessmentIngestionService.default_algorithm_scores({"adl_support_level": adl})
        assert scores["personal_support_score"] == psa

    @pytest.mark.parametrize(
        "adl, cognitive, rehab",
        [(3, 2, 3), (3, 3, 2), (2, 0, 2), (1, 0, 1), (5, 4, 1)],
    )
    def test_rehabilitation(self, adl, cognitive, rehab):
        merged = {"adl_support_level": adl, "cognitive_complexity": cognitive}
        assert AssessmentIngestionService.default_algorithm_scores(merged)["rehabilitation_score"] == rehab

    def test_urgency_and_clinical(self):
        merged = {
            "adl_support_level": 5,
            "cognitive_complexity": 3,
            "health_instability": 4,
            "pain_management_need": 2,
            "mental_health_complexity": 1,
        }
        scores = AssessmentIngestionService.default_algorithm_scores(merged)
        assert scores["assessment_urgency_score"] == 6
        assert scores["service_urgency_score"] == 3
        assert scores["chess_ca_score"] == 4
        assert scores["pain_score"] == 2
        assert scores["distressed_mood_score"] == 1
        assert scores["self_reliance_index"] is False


class TestConfidenceAndCompleteness:

    @pytest.mark.parametrize(
        "factors, has_hc, expected",
        [
            ([1.0, 0.7], True, "high"),
            ([1.0], False, "medium"),
            ([0.7, 0.4], False, "medium"),
            ([0.5, 0.4], False, "low"),
            ([], False, "low"),
        ],
    )
    def test_confidence_level(self, factors, has_hc, expected):
        assert AssessmentIngestionService.calculate_confidence_level(factors, has_hc) == expected

    def test_completeness_treats_zero_as_missing(self):
        merged = {"adl_support_level": 2, "cognitive_complexity": 0, "episode_type": "chronic"}
        assert AssessmentIngestionService.calculate_completeness_score(merged) == pytest.approx(0.4)

    def test_cap_input_fallbacks(self):
        cap_input = AssessmentIngestionService.build_cap_input(
            {"falls_risk_level": 2, "pain_management_need": 2, "skin_integrity_risk": 2}
        )
        assert cap_input["has_recent_fall"] is True
        assert cap_input["pain_score"] == 2
        assert cap_input["has_pressure_ulcer_risk"] is True
        assert cap_input["episode_type"] == "unknown"
        assert cap_input["personal_support_score"] == 1


# =============================================================================
# CACHING AND FAILURE HANDLING
# =============================================================================

class TestCaching:
    """Cache behaviour with a mocked Redis cache."""

    def test_cache_hit_skips_build(self, hc_profile_request):
        cached = PatientNeedsProfile(patient_id="patient-001", adl_support_level=6)
        mock_cache = MagicMock()
        mock_cache.get.return_value = cached

        with patch("connected_capacity.services.ingestion_service.get_cache", return_value=mock_cache):
            service = AssessmentIngestionService(cache_enabled=True)
            profile = service.build_patient_needs_profile(hc_profile_request)

        assert profile is cached
        mock_cache.get.assert_called_once_with(
            f"{settings.CACHE_PREFIX_PROFILE}patient-001", PatientNeedsProfile
        )
        mock_cache.set.assert_not_called()

    def test_cache_miss_stores_profile(self, hc_profile_request):
        mock_cache = MagicMock()
        mock_cache.get.return_value = None

        with patch("connected_capacity.services.ingestion_service.get_cache", return_value=mock_cache):
            service = AssessmentIngestionService(cache_enabled=True)
            profile = service.build_patient_needs_profile(hc_profile_request)

        key, stored, ttl = mock_cache.set.call_args.args
        assert key == f"{settings.CACHE_PREFIX_PROFILE}patient-001"
        assert stored is profile
        assert ttl == settings.CACHE_TTL_PROFILE

    def test_force_refresh_bypasses_read(self, hc_request_payload):
        request = ProfileRequest.model_validate({**hc_request_payload, "force_refresh": True})
        mock_cache = MagicMock()

        with patch("connected_capacity.services.ingestion_service.get_cache", return_value=mock_cache):
            AssessmentIngestionService(cache_enabled=True).build_patient_needs_profile(request)

        mock_cache.get.assert_not_called()
        mock_cache.delete.assert_called_once_with(f"{settings.CACHE_PREFIX_PROFILE}patient-001")
        mock_cache.set.assert_called_once()

    def test_failed_refresh_drops_stale_profile(self, hc_request_payload):
        request = ProfileRequest.model_validate({**hc_request_payload, "force_refresh": True})
        broken_mapper = MagicMock()
        broken_mapper.map_to_profile_fields.side_effect = ValueError("bad item")
        mock_cache = MagicMock()

        with patch("connected_capacity.services.ingestion_service.get_cache", return_value=mock_cache):
            service = AssessmentIngestionService(hc_mapper=broken_mapper, cache_enabled=True)
            profile = service.build_patient_needs_profile(request)

        assert profile.data_quality_notes.startswith("Minimal profile")
        mock_cache.delete.assert_called_once_with(f"{settings.CACHE_PREFIX_PROFILE}patient-001")
        mock_cache.set.assert_not_called()

    def test_redis_unavailable_runs_uncached(self, hc_profile_request):
        with patch("connected_capacity.services.ingestion_service.get_cache", return_value=None):
            profile = AssessmentIngestionService(cache_enabled=True).build_patient_needs_profile(hc_profile_request)
        assert profile.has_full_hc_assessment is True

    def test_invalidate_cache(self):
        mock_cache = MagicMock()
        with patch("connected_capacity.services.ingestion_service.get_cache", return_value=mock_cache):
            AssessmentIngestionService(cache_enabled=True).invalidate_cache("patient-009")
        mock_cache.delete.assert_called_once_with(f"{settings.CACHE_PREFIX_PROFILE}patient-009")


class TestFailureHandling:

    def test_build_failure_returns_minimal_profile(self, hc_profile_request):
        broken_mapper = MagicMock()
        broken_mapper.map_to_profile_fields.side_effect = ValueError("bad item")
        service = AssessmentIngestionService(hc_mapper=broken_mapper, cache_enabled=False)

        profile = service.build_patient_needs_profile(hc_profile_request)

        assert profile.patient_id == "patient-001"
        assert profile.confidence_level == "low"
        assert profile.has_full_hc_assessment is False

    def test_evaluator_failure_uses_defaults(self, hc_profile_request, cap_engine):
        evaluator = MagicMock()
        evaluator.evaluate_all_algorithms.side_effect = RuntimeError("tree failure")
        service = AssessmentIngestionService(algorithm_evaluator=evaluator, cap_engine=cap_engine, cache_enabled=False)

        profile = service.build_patient_needs_profile(hc_profile_request)

        assert profile.personal_support_score == 4
        assert profile.rehabilitation_score == 3
