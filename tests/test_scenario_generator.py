# tests/test_scenario_generator.py

"""
Scenario Generator Tests - base services, axis modifiers, validation and comparison

Rule-based expectations use the minimal profile:
NUR 1x60 core, PSW 2x60 recommended; balanced adds MEAL 3x15.
"""

import pytest

from connected_capacity.engines.scenario_generator import PlannedService, ScenarioGenerator
from connected_capacity.engines.service_catalog import ServiceCatalog
from connected_capacity.models.enumerations import ScenarioAxis
from connected_capacity.models.scenario import GenerationOptions, ScenarioBundle, ScenarioServiceLine


@pytest.fixture
def generator():
    return ScenarioGenerator()


@pytest.fixture
def algorithm_generator(intensity_resolver, category_resolver):
    return ScenarioGenerator(intensity_resolver=intensity_resolver, category_resolver=category_resolver)


@pytest.fixture
def scored_profile(make_profile):
    """Algorithm scores that map to PSW 12h, PT/OT 1 visit each, NUR 1 visit."""
    return make_profile(
        personal_support_score=4,
        rehabilitation_score=3,
        chess_ca_score=2,
        adl_support_level=3,
        rug_group="PD0",
    )


def _line(category, name, count, cost, duration=60, code=None):
    return ScenarioServiceLine(
        service_category=category,
        service_name=name,
        frequency_count=count,
        duration_minutes=duration,
        service_code=code,
        cost_per_visit=cost,
        weekly_estimated_cost=count * cost,
    )


def _by_code(scenario):
    return {line.service_code: line for line in scenario.service_lines}


# =============================================================================
# SCENARIO SET
# =============================================================================

class TestGenerateScenarios:
    """Tests for generate_scenarios()."""

    def test_minimal_profile_fills_to_minimum(self, generator, minimal_profile):
        """Community qualifies; safety is the first fill-in; balanced is always last."""
        scenarios = generator.generate_scenarios(minimal_profile)
        axes = [s.primary_axis for s in scenarios]
        assert axes == [
            ScenarioAxis.COMMUNITY_INTEGRATED,
            ScenarioAxis.SAFETY_STABILITY,
            ScenarioAxis.BALANCED,
        ]
        assert [s.display_order for s in scenarios] == [1, 2, 3]
        assert [s.is_recommended for s in scenarios] == [True, False, False]
        assert all(s.is_validated for s in scenarios)

    def test_without_balanced_slot(self, generator, minimal_profile):
        """Without the reserved slot BALANCED is generated in its ranked position."""
        options = GenerationOptions(include_balanced=False, min_scenarios=2)
        scenarios = generator.generate_scenarios(minimal_profile, options=options)
        assert [s.primary_axis for s in scenarios] == [
            ScenarioAxis.COMMUNITY_INTEGRATED,
            ScenarioAxis.BALANCED,
        ]

    def test_explicit_axes_deduplicated(self, generator, minimal_profile):
        axes = [ScenarioAxis.TECH_ENABLED, ScenarioAxis.TECH_ENABLED, ScenarioAxis.BALANCED]
        scenarios = generator.generate_scenarios(minimal_profile, axes=axes)
        assert [s.primary_axis for s in scenarios] == [
            ScenarioAxis.TECH_ENABLED,
            ScenarioAxis.SAFETY_STABILITY,
            ScenarioAxis.BALANCED,
        ]

    def test_max_scenarios(self, generator, minimal_profile):
        axes = [
            ScenarioAxis.RECOVERY_REHAB,
            ScenarioAxis.SAFETY_STABILITY,
            ScenarioAxis.TECH_ENABLED,
            ScenarioAxis.CAREGIVER_RELIEF,
        ]
        options = GenerationOptions(min_scenarios=1, max_scenarios=3)
        scenarios = generator.generate_scenarios(minimal_profile, axes=axes, options=options)
        assert len(scenarios) == 3
        assert scenarios[-1].primary_axis == ScenarioAxis.BALANCED

    @pytest.mark.parametrize("include_balanced", [True, False])
    def test_max_scenarios_never_exceeded(self, generator, minimal_profile, include_balanced):
        axes = [ScenarioAxis.SAFETY_STABILITY, ScenarioAxis.TECH_ENABLED, ScenarioAxis.RECOVERY_REHAB]
        max_scenarios = 2 if include_balanced else 1
        options = GenerationOptions(
            min_scenarios=1, max_scenarios=max_scenarios, include_balanced=include_balanced
        )
        scenarios = generator.generate_scenarios(minimal_profile, axes=axes, options=options)
        assert len(scenarios) == max_scenarios
        assert scenarios[0].primary_axis == ScenarioAxis.SAFETY_STABILITY

    def test_reference_cap_applied(self, generator, minimal_profile):
        options = GenerationOptions(reference_cap=100.0)
        scenarios = generator.generate_scenarios(minimal_profile, options=options)
        assert all(s.reference_cap == 100.0 for s in scenarios)
        assert scenarios[-1].cost_status == "over_cap"


# =============================================================================
# SINGLE SCENARIO
# =============================================================================

class TestRuleBasedScenario:
    """Rule-based generation without algorithm scores."""

    def test_balanced_lines(self, generator, minimal_profile):
        scenario = generator.generate_single_scenario(minimal_profile, ScenarioAxis.BALANCED)
        lines = _by_code(scenario)
        assert list(lines) == ["NUR", "PSW", "MEAL"]
        assert (lines["NUR"].frequency_count, lines["NUR"].priority_level) == (1, "core")
        assert (lines["PSW"].frequency_count, lines["PSW"].priority_level) == (2, "recommended")
        assert (lines["MEAL"].frequency_count, lines["MEAL"].duration_minutes) == (3, 15)

    def test_rationale(self, generator, minimal_profile):
        lines = _by_code(generator.generate_single_scenario(minimal_profile, ScenarioAxis.BALANCED))
        assert lines["NUR"].clinical_rationale == "Baseline nursing for care coordination and monitoring"
        assert lines["PSW"].clinical_rationale == (
            "PSA 1/6 indicates light personal support need; not self-reliant in ADL/cognition"
        )
        assert lines["MEAL"].clinical_rationale == "Nutritional support"

    def test_axis_contribution(self, generator, minimal_profile):
        lines = _by_code(generator.generate_single_scenario(minimal_profile, ScenarioAxis.BALANCED))
        assert lines["NUR"].axis_contribution == "Primary contributor to Balanced Care"
        assert lines["MEAL"].axis_contribution == "Supporting service"

    def test_context(self, generator, minimal_profile):
        scenario = generator.generate_single_scenario(minimal_profile, ScenarioAxis.BALANCED)
        assert scenario.title == "Balanced Care"
        assert scenario.confidence_level == "low"
        assert scenario.confidence_notes.endswith("Default services based on profile characteristics")
        assert scenario.key_benefits[0] == "Comprehensive coverage across all care domains"
        assert "caps" not in scenario.trade_offs

    def test_annotated_costs(self, generator, minimal_profile):
        """NUR 95 + PSW 2 x 42 + MEAL 3 x 12 = 215."""
        scenario = generator.generate_scenarios(minimal_profile)[-1]
        assert scenario.weekly_estimated_cost == 215.0
        assert scenario.total_weekly_visits == 6
        assert scenario.cost_status == "within_cap"
        assert scenario.meets_safety_requirements is True
        assert scenario.safety_warnings is None

    def test_rehab_potential_adds_therapy(self, generator, make_profile):
        profile = make_profile(rehab_potential_score=45, iadl_support_level=2, cognitive_complexity=2)
        codes = [s.code for s in generator.get_rule_based_services(profile)]
        assert codes == ["NUR", "PSW", "PT", "OT", "SW", "HMK"]

    @pytest.mark.parametrize("instability, frequency", [(0, 1), (2, 2), (3, 3), (4, 5)])
    def test_nursing_frequency(self, generator, make_profile, instability, frequency):
        services = generator.get_rule_based_services(make_profile(health_instability=instability))
        assert services[0].code == "NUR"
        assert services[0].frequency == frequency

    def test_secondary_axes_in_title(self, generator, minimal_profile):
        scenario = generator.generate_single_scenario(
            minimal_profile, ScenarioAxis.SAFETY_STABILITY, [ScenarioAxis.TECH_ENABLED]
        )
        assert scenario.title == "Safety & Stability + Tech-Enabled Care"
        assert scenario.secondary_axes == [ScenarioAxis.TECH_ENABLED]


class TestAlgorithmDrivenScenario:
    """Generation from algorithm scores through the intensity matrix."""

    def test_services_from_matrix(self, algorithm_generator, scored_profile):
        services = {s.code: s for s in algorithm_generator.get_algorithm_driven_services(scored_profile)}
        assert set(services) == {"PSW", "PT", "OT", "NUR"}
        # 12 hours as 1.5-hour visits
        assert (services["PSW"].frequency, services["PSW"].duration) == (8, 90)
        assert (services["PT"].frequency, services["PT"].duration) == (1, 60)
        assert services["NUR"].source != "baseline"

    def test_caps_only_used_with_full_hc(self, algorithm_generator, make_profile):
        caps = {
            "informal_support": {
                "level": "IMPROVE",
                "cap_name": "Informal Support",
                "recommendations": [{"service": "RES", "priority": "core"}],
            }
        }
        scores = dict(personal_support_score=4, rehabilitation_score=3, chess_ca_score=2)
        without_hc = make_profile(triggered_caps=caps, **scores)
        with_hc = make_profile(triggered_caps=caps, has_full_hc_assessment=True, **scores)

        assert "RES" not in {s.code for s in algorithm_generator.get_algorithm_driven_services(without_hc)}

        scenario = algorithm_generator.generate_single_scenario(with_hc, ScenarioAxis.BALANCED)
        respite = _by_code(scenario)["RES"]
        assert respite.frequency_count == 2
        assert respite.priority_level == "core"
        assert respite.clinical_rationale == "CAP: informal_support (core) [CAP-triggered]"
        assert "Informal Support" in scenario.description
        assert scenario.trade_offs["caps"] == "CAP-driven services are non-negotiable"
        assert "Caregiver sustainability (CAP triggered)" in scenario.risks_addressed

    def test_confidence(self, algorithm_generator, scored_profile):
        scenario = algorithm_generator.generate_single_scenario(scored_profile, ScenarioAxis.BALANCED)
        assert scenario.confidence_level == "high"
        assert scenario.confidence_notes.startswith("RUG-III/HC: PD0 | Floors: ")

    def test_baseline_psw_added_for_adl_needs(self, generator, make_profile):
        catalog = ServiceCatalog()
        services = [PlannedService(catalog.get("NUR"), 1, 60, "core", True)]
        result = generator.ensure_baseline_services(services, make_profile(adl_support_level=4))
        psw = result[-1]
        assert psw.code == "PSW"
        assert psw.frequency == 4
        assert psw.is_required is True

    def test_no_baseline_psw_for_low_adl(self, generator, minimal_profile):
        result = generator.ensure_baseline_services([], minimal_profile)
        assert [s.code for s in result] == ["NUR"]


class TestAxisModifiers:
    """Tests for apply_axis_modifiers()."""

    @pytest.fixture
    def therapy(self):
        return PlannedService(ServiceCatalog().get("PT"), 4, 45, "recommended")

    def test_primary_weight(self, therapy):
        [adjusted] = ScenarioGenerator.apply_axis_modifiers([therapy], ScenarioAxis.RECOVERY_REHAB)
        assert adjusted.frequency == 6
        assert adjusted.priority == "core"
        assert adjusted.is_required is True

    def test_secondary_weight_halves_effect(self, therapy):
        [adjusted] = ScenarioGenerator.apply_axis_modifiers([therapy], ScenarioAxis.RECOVERY_REHAB, 0.5)
        assert adjusted.frequency == 5

    def test_reduction_keeps_at_least_one(self):
        psw = PlannedService(ServiceCatalog().get("PSW"), 1, 60)
        [adjusted] = ScenarioGenerator.apply_axis_modifiers([psw], ScenarioAxis.TECH_ENABLED)
        assert adjusted.frequency == 1
        assert adjusted.priority == "recommended"

    def test_balanced_unchanged(self, therapy):
        assert ScenarioGenerator.apply_axis_modifiers([therapy], ScenarioAxis.BALANCED) == [therapy]


# =============================================================================
# VALIDATION AND COMPARISON
# =============================================================================

class TestValidation:
    """Tests for validate_scenario()."""

    def _scenario(self, lines):
        return ScenarioBundle(
            patient_id="p1",
            primary_axis=ScenarioAxis.BALANCED,
            title="Balanced Care",
            description="",
            service_lines=lines,
        )

    def test_instability_without_nursing_is_error(self, make_profile):
        scenario = self._scenario([_line("psw", "Personal Support", 3, 42.0)])
        result = ScenarioGenerator.validate_scenario(scenario, make_profile(health_instability=3))
        assert result["valid"] is False
        assert result["errors"] == ["High health instability requires nursing services"]

    def test_warnings_do_not_invalidate(self, make_profile):
        scenario = self._scenario([_line("nursing", "Nursing Visit", 1, 95.0)])
        profile = make_profile(cognitive_complexity=4, adl_support_level=4)
        result = ScenarioGenerator.validate_scenario(scenario, profile)
        assert result["valid"] is True
        assert len(result["warnings"]) == 2

    def test_extensive_services_need_nursing(self, make_profile):
        scenario = self._scenario([])
        profile = make_profile(requires_extensive_services=True, extensive_services=["iv_therapy"])
        result = ScenarioGenerator.validate_scenario(scenario, profile)
        assert "Required extensive services not included" in result["errors"]

    def test_warnings_reported_as_safety_warnings(self, generator, make_profile):
        profile = make_profile(adl_support_level=4)
        scenario = generator.generate_scenarios(profile, axes=[ScenarioAxis.BALANCED])[-1]
        assert scenario.primary_axis == ScenarioAxis.BALANCED
        assert scenario.meets_safety_requirements is True
        assert scenario.safety_warnings == ["High ADL dependency may need more weekly support hours"]


class TestCompareScenarios:

    def test_compare(self, generator):
        first = ScenarioBundle(
            patient_id="p1",
            primary_axis=ScenarioAxis.BALANCED,
            title="Balanced Care",
            description="",
            service_lines=[
                _line("nursing", "Nursing Visit", 1, 95.0),
                _line("psw", "Personal Support", 3, 42.0),
            ],
            weekly_estimated_cost=221.0,
            total_weekly_hours=4.0,
        )
        second = ScenarioBundle(
            patient_id="p1",
            primary_axis=ScenarioAxis.CAREGIVER_RELIEF,
            title="Caregiver Relief",
            description="",
            service_lines=[
                _line("nursing", "Nursing Visit", 1, 95.0),
                _line("respite", "In-Home Respite", 2, 180.0, duration=240),
            ],
            weekly_estimated_cost=455.0,
            total_weekly_hours=9.0,
        )
        result = generator.compare_scenarios(first, second)
        assert result["services_added"] == ["In-Home Respite"]
        assert result["services_removed"] == ["Personal Support"]
        assert result["frequency_changes"] == []
        assert result["cost_difference"] == 234.0
        assert result["hours_difference"] == 5.0
        assert result["emphasis_shift"] == "From Balanced Care to Caregiver Relief emphasis"
        assert result["comparison_note"] == (
            "Caregiver Relief is $234/week higher in resource use; "
            "5.0 more hours of direct service per week"
        )
