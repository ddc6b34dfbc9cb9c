"""
Scenario Generator - Connected Capacity Bundle Engine
connected_capacity/engines/scenario_generator.py

Generates 3-5 scenario bundles for a patient from the needs profile.

Pipeline per axis:
    1. base services: algorithm-driven (service intensity matrix + CAP
       adjustments) when algorithm scores exist, otherwise profile rules
    2. baseline services (nursing, PSW for ADL needs) and axis additions
    3. axis frequency modifiers (primary weight 1.0, secondary 0.5)
    4. service lines, cost annotation, safety validation
"""

import math
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence

import structlog

from connected_capacity.engines.axis_selector import ScenarioAxisSelector
from connected_capacity.engines.category_intensity import CategoryIntensityResolver
from connected_capacity.engines.cost_annotation import CostAnnotationService
from connected_capacity.engines.service_catalog import ServiceCatalog, ServiceType
from connected_capacity.engines.service_intensity import ServiceIntensityResolver
from connected_capacity.models.enumerations import ScenarioAxis
from connected_capacity.models.profile import PatientNeedsProfile
from connected_capacity.models.scenario import GenerationOptions, ScenarioBundle, ScenarioServiceLine

logger = structlog.get_logger(__name__)

HOURS_PER_VISIT = 1.5
MIN_DURATION = 30
MAX_DURATION = 180
SECONDARY_AXIS_WEIGHT = 0.5

FILL_IN_AXES = (
    ScenarioAxis.SAFETY_STABILITY,
    ScenarioAxis.TECH_ENABLED,
    ScenarioAxis.CAREGIVER_RELIEF,
)

# Service code -> axis modifier category
SERVICE_CODE_TO_MODIFIER = {
    "PT": "therapy",
    "OT": "therapy",
    "SLP": "therapy",
    "RT": "respiratory",
    "NUR": "nursing",
    "NP": "nursing",
    "PSW": "psw",
    "DEM": "behavioural_psw",
    "BEH": "behavioural_psw",
    "RPM": "remote_monitoring",
    "PERS": "remote_monitoring",
    "FALL-MON": "remote_monitoring",
    "MED-DISP": "remote_monitoring",
    "TELE": "telehealth",
    "VPC": "telehealth",
    "RES": "respite",
    "CGC": "caregiver_education",
    "HMK": "homemaking",
    "HM": "homemaking",
    "MEAL": "meals",
    "ADP": "day_program",
    "REC": "activation",
    "TRANS": "transportation",
    "DEL-ACTS": "wound_care",
}


def _add(frequency: int, duration: int, priority: str, rationale: str) -> Dict[str, Any]:
    return {"frequency": frequency, "duration": duration, "priority": priority, "rationale": rationale}


# Complementary services per axis; never reduce algorithm-indicated services
AXIS_ADDITIONS: Dict[ScenarioAxis, Dict[str, Dict[str, Any]]] = {
    ScenarioAxis.COMMUNITY_INTEGRATED: {
        "ADP": _add(2, 240, "core", "Adult Day Program for social engagement"),
        "TRANS": _add(2, 60, "core", "Transportation enables community participation"),
        "REC": _add(1, 120, "recommended", "Social/recreational activities"),
        "MEAL": _add(5, 15, "recommended", "Meal delivery supports independence"),
    },
    ScenarioAxis.SAFETY_STABILITY: {
        "RPM": _add(7, 15, "core", "Continuous health monitoring"),
        "PERS": _add(7, 5, "core", "Emergency response system"),
        "FALL-MON": _add(7, 10, "core", "Falls detection and prevention"),
        "SEC": _add(3, 15, "recommended", "Regular safety checks"),
    },
    ScenarioAxis.CAREGIVER_RELIEF: {
        "RES": _add(2, 240, "core", "Respite gives caregiver essential breaks"),
        "ADP": _add(2, 240, "core", "Day program provides structured relief"),
        "CGC": _add(1, 60, "recommended", "Caregiver coaching and support"),
        "HMK": _add(2, 120, "recommended", "Homemaking reduces caregiver burden"),
    },
    ScenarioAxis.TECH_ENABLED: {
        "RPM": _add(7, 15, "core", "Remote vital sign monitoring"),
        "TELE": _add(2, 30, "core", "Telehealth replaces some in-person visits"),
        "VPC": _add(1, 20, "recommended", "Virtual primary care access"),
        "MED-DISP": _add(7, 5, "recommended", "Automated medication management"),
    },
    ScenarioAxis.COGNITIVE_SUPPORT: {
        "DEM": _add(3, 120, "core", "Specialized dementia care"),
        "BEH": _add(2, 90, "core", "Behavioural support interventions"),
        "ADP": _add(2, 240, "recommended", "Structured programming aids cognition"),
    },
    ScenarioAxis.RECOVERY_REHAB: {
        "SLP": _add(1, 45, "recommended", "Speech therapy if communication affected"),
    },
    ScenarioAxis.MEDICAL_INTENSIVE: {
        "DEL-ACTS": _add(5, 45, "core", "Delegated nursing acts for complex care"),
        "RPM": _add(7, 15, "core", "Continuous vital sign monitoring"),
    },
    ScenarioAxis.BALANCED: {
        "MEAL": _add(3, 15, "recommended", "Nutritional support"),
    },
}

KEY_BENEFITS = {
    ScenarioAxis.RECOVERY_REHAB: [
        "Intensive therapy to accelerate recovery",
        "Goal-focused approach to restore function",
        "Support for returning to independence",
    ],
    ScenarioAxis.SAFETY_STABILITY: [
        "Daily monitoring for early problem detection",
        "Consistent support to prevent falls and crises",
        "Peace of mind for patient and family",
    ],
    ScenarioAxis.TECH_ENABLED: [
        "Continuous monitoring without disruption",
        "Fewer in-person visits while maintaining oversight",
        "Quick response to changes in condition",
    ],
    ScenarioAxis.CAREGIVER_RELIEF: [
        "Scheduled respite for family caregivers",
        "Professional support to sustain caregiving",
        "Reduced caregiver burnout risk",
    ],
}
DEFAULT_BENEFITS = [
    "Comprehensive coverage across all care domains",
    "Balanced approach to patient needs",
    "Flexibility to adjust as needs change",
]

CAP_RISKS = {
    "falls": "Falls prevention (CAP triggered)",
    "pain": "Pain management (CAP triggered)",
    "pressure_ulcer": "Pressure injury prevention (CAP triggered)",
    "medications": "Medication safety (CAP triggered)",
    "cardiorespiratory": "Cardiorespiratory monitoring (CAP triggered)",
    "mood": "Mood and wellbeing support (CAP triggered)",
    "cognitive_loss": "Cognitive support (CAP triggered)",
    "informal_support": "Caregiver sustainability (CAP triggered)",
    "undernutrition": "Nutritional support (CAP triggered)",
}

_CATEGORY_RATIONALE = {
    "nursing": "Clinical monitoring and care coordination",
    "psw": "Personal care and daily living support",
    "therapy": "Functional restoration and mobility support",
    "pt": "Functional restoration and mobility support",
    "ot": "Functional restoration and mobility support",
    "respite": "Caregiver support and sustainability",
    "remote_monitoring": "Continuous health monitoring",
}

_FALLS_PREVENTION_CATEGORIES = ("nursing", "pt", "ot", "remote_monitoring")
_COGNITIVE_SUPPORT_CATEGORIES = ("psw", "behavioural_psw", "activation", "day_program")


@dataclass
class PlannedService:
    """A service before it becomes a scenario line."""
    service_type: ServiceType
    frequency: int
    duration: int
    priority: str = "recommended"
    is_required: bool = False
    rationale: Optional[str] = None
    cap_triggered: bool = False
    source: str = "rule_based"

    @property
    def code(self) -> str:
        return self.service_type.code


class ScenarioGenerator:
    """Builds, annotates and validates scenario bundles for a profile."""

    def __init__(
        self,
        axis_selector: Optional[ScenarioAxisSelector] = None,
        cost_service: Optional[CostAnnotationService] = None,
        service_catalog: Optional[ServiceCatalog] = None,
        intensity_resolver: Optional[ServiceIntensityResolver] = None,
        category_resolver: Optional[CategoryIntensityResolver] = None,
    ):
        self.axis_selector = axis_selector or ScenarioAxisSelector()
        self.cost_service = cost_service or CostAnnotationService()
        self.service_catalog = service_catalog or ServiceCatalog()
        self.intensity_resolver = intensity_resolver
        self.category_resolver = category_resolver

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    def generate_scenarios(
        self,
        profile: PatientNeedsProfile,
        axes: Optional[Sequence[ScenarioAxis]] = None,
        options: Optional[GenerationOptions] = None,
    ) -> List[ScenarioBundle]:
        options = options or GenerationOptions()
        if axes is None:
            axes = self.get_applicable_axes(profile, options.max_scenarios)

        balanced_slot = 1 if options.include_balanced else 0
        scenarios: List[ScenarioBundle] = []

        for axis in axes:
            if len(scenarios) + balanced_slot >= options.max_scenarios:
                break
            if axis == ScenarioAxis.BALANCED and options.include_balanced:
                continue
            if any(s.primary_axis == axis for s in scenarios):
                continue
            scenarios.append(self._prepare(profile, axis, options, len(scenarios) + 1))

        for axis in FILL_IN_AXES:
            if len(scenarios) + balanced_slot >= options.min_scenarios:
                break
            if any(s.primary_axis == axis for s in scenarios):
                continue
            scenarios.append(self._prepare(profile, axis, options, len(scenarios) + 1))

        if options.include_balanced:
            scenarios.append(self._prepare(profile, ScenarioAxis.BALANCED, options, len(scenarios) + 1))

        if scenarios:
            scenarios[0] = scenarios[0].model_copy(update={"is_recommended": True})

        logger.info(
            "scenarios_built",
            count=len(scenarios),
            axes=[s.primary_axis.value for s in scenarios],
            confidence=profile.confidence_level,
        )
        return scenarios

    def _prepare(
        self,
        profile: PatientNeedsProfile,
        axis: ScenarioAxis,
        options: GenerationOptions,
        order: int,
    ) -> ScenarioBundle:
        scenario = self.generate_single_scenario(profile, axis)
        scenario = self.cost_service.annotate_scenario(scenario, options.reference_cap)
        validation = self.validate_scenario(scenario, profile)
        issues = validation["errors"] + validation["warnings"]
        return scenario.model_copy(update={
            "meets_safety_requirements": validation["valid"],
            "safety_warnings": issues or None,
            "is_validated": True,
            "display_order": order,
        })

    def generate_single_scenario(
        self,
        profile: PatientNeedsProfile,
        axis: ScenarioAxis,
        secondary_axes: Sequence[ScenarioAxis] = (),
    ) -> ScenarioBundle:
        algorithm_driven = self.intensity_resolver is not None and profile.has_algorithm_scores()
        if algorithm_driven:
            services = self.get_algorithm_driven_services(profile, axis)
        else:
            services = self.get_rule_based_services(profile)
            services = self.add_axis_specific_services(services, axis)

        services = self.apply_axis_modifiers(services, axis)
        for secondary in secondary_axes:
            services = self.apply_axis_modifiers(services, secondary, SECONDARY_AXIS_WEIGHT)

        lines = self.build_service_lines(services, axis, profile)
        active_caps = self._active_caps(profile)

        return ScenarioBundle(
            patient_id=profile.patient_id,
            primary_axis=axis,
            secondary_axes=list(secondary_axes),
            title=self.generate_title(axis, secondary_axes),
            subtitle=axis.label,
            description=self.generate_description(axis, active_caps),
            icon=axis.emoji,
            service_lines=lines,
            trade_offs=self.trade_offs(axis, active_caps),
            key_benefits=list(KEY_BENEFITS.get(axis, DEFAULT_BENEFITS)),
            patient_goals_supported=axis.emphasized_goals,
            risks_addressed=self.risks_addressed(profile, active_caps),
            source="rule_engine",
            confidence_level=self.determine_confidence(profile, algorithm_driven),
            confidence_notes=self.confidence_notes(profile, algorithm_driven),
        )

    def get_applicable_axes(self, profile: PatientNeedsProfile, max_axes: int = 4) -> List[ScenarioAxis]:
        return self.axis_selector.get_applicable_axes(profile, max_axes)

    # ------------------------------------------------------------------
    # Base services
    # ------------------------------------------------------------------

    def get_algorithm_driven_services(
        self,
        profile: PatientNeedsProfile,
        axis: Optional[ScenarioAxis] = None,
    ) -> List[PlannedService]:
        scores = {
            "personal_support": profile.personal_support_score,
            "rehabilitation": profile.rehabilitation_score,
            "chess_ca": profile.chess_ca_score,
        }
        caps = profile.triggered_caps if profile.has_full_hc_assessment else {}
        resolved = self.intensity_resolver.resolve(scores, caps, axis.value if axis else None)

        services: List[PlannedService] = []
        for code, intensity in resolved.items():
            service_type = self.service_catalog.get(code)
            if service_type is None:
                continue
            if intensity.hours <= 0 and intensity.visits <= 0:
                continue

            if intensity.visits > 0:
                frequency = math.ceil(intensity.visits)
                duration = 60
            else:
                frequency = math.ceil(intensity.hours / HOURS_PER_VISIT)
                duration = round(intensity.hours * 60 / max(1, frequency))

            priority = intensity.priority or "recommended"
            services.append(PlannedService(
                service_type=service_type,
                frequency=max(1, frequency),
                duration=min(MAX_DURATION, max(MIN_DURATION, duration)),
                priority=priority,
                is_required=priority == "core",
                rationale=intensity.rationale or None,
                cap_triggered=intensity.cap_triggered,
                source=intensity.source,
            ))

        services = self.ensure_baseline_services(services, profile)
        if axis is not None:
            services = self.add_axis_specific_services(services, axis)
        return services

    def ensure_baseline_services(
        self,
        services: List[PlannedService],
        profile: PatientNeedsProfile,
    ) -> List[PlannedService]:
        codes = {s.code for s in services}
        services = list(services)

        nursing = self.service_catalog.get("NUR")
        if "NUR" not in codes and nursing is not None:
            services.append(PlannedService(
                service_type=nursing,
                frequency=1,
                duration=60,
                priority="core",
                is_required=True,
                rationale="Baseline nursing for care coordination",
                source="baseline",
            ))

        psw = self.service_catalog.get("PSW")
        if "PSW" not in codes and psw is not None and profile.adl_support_level >= 2:
            services.append(PlannedService(
                service_type=psw,
                frequency=max(2, profile.adl_support_level),
                duration=60,
                priority="recommended",
                is_required=profile.adl_support_level >= 3,
                rationale="ADL support based on functional needs",
                source="baseline",
            ))
        return services

    def add_axis_specific_services(self, services: List[PlannedService], axis: ScenarioAxis) -> List[PlannedService]:
        codes = {s.code for s in services}
        services = list(services)
        for code, config in AXIS_ADDITIONS.get(axis, {}).items():
            service_type = self.service_catalog.get(code)
            if code in codes or service_type is None:
                continue
            services.append(PlannedService(
                service_type=service_type,
                frequency=config["frequency"],
                duration=config["duration"],
                priority=config["priority"],
                is_required=config["priority"] == "core",
                rationale=config["rationale"],
                source="axis_addition",
            ))
        return services

    def get_rule_based_services(self, profile: PatientNeedsProfile) -> List[PlannedService]:
        services: List[PlannedService] = []
        catalog = self.service_catalog

        nursing = catalog.get("NUR")
        if nursing is not None:
            if profile.health_instability >= 4:
                frequency = 5
            elif profile.health_instability >= 3:
                frequency = 3
            elif profile.health_instability >= 2:
                frequency = 2
            else:
                frequency = 1
            services.append(PlannedService(
                nursing, frequency, nursing.default_duration_minutes, "core", is_required=True
            ))

        psw = catalog.get("PSW")
        if psw is not None:
            adl = profile.adl_support_level
            if adl >= 5:
                frequency = 14
            elif adl >= 4:
                frequency = 7
            elif adl >= 3:
                frequency = 5
            elif adl >= 2:
                frequency = 3
            else:
                frequency = 2
            services.append(PlannedService(
                psw, frequency, psw.default_duration_minutes,
                "core" if adl >= 3 else "recommended", is_required=adl >= 3,
            ))

        if profile.has_rehab_potential or profile.rehab_potential_score >= 30:
            for code, frequency in (("PT", 2), ("OT", 1)):
                therapy = catalog.get(code)
                if therapy is not None:
                    services.append(PlannedService(therapy, frequency, 45, "recommended"))

        social_work = catalog.get("SW")
        if social_work is not None and (profile.cognitive_complexity >= 2 or profile.behavioural_complexity >= 2):
            services.append(PlannedService(social_work, 1, 60, "recommended"))

        homemaking = catalog.get("HMK")
        if homemaking is not None and profile.iadl_support_level >= 2:
            services.append(PlannedService(homemaking, 1, 120, "optional"))

        return services

    # ------------------------------------------------------------------
    # Axis modifiers and service lines
    # ------------------------------------------------------------------

    @staticmethod
    def apply_axis_modifiers(
        services: List[PlannedService],
        axis: ScenarioAxis,
        weight: float = 1.0,
    ) -> List[PlannedService]:
        modifiers = axis.service_modifiers
        if not modifiers:
            return services

        adjusted = []
        for service in services:
            modifier = modifiers.get(SERVICE_CODE_TO_MODIFIER.get(service.code, ""))
            if modifier is None:
                adjusted.append(service)
                continue
            multiplier = 1 + (float(modifier["multiplier"]) - 1) * weight
            service = replace(service, frequency=max(1, round(service.frequency * multiplier)))
            if modifier["priority"] == "core":
                service = replace(service, priority="core", is_required=True)
            adjusted.append(service)
        return adjusted

    def build_service_lines(
        self,
        services: List[PlannedService],
        axis: ScenarioAxis,
        profile: PatientNeedsProfile,
    ) -> List[ScenarioServiceLine]:
        lines = []
        goals = axis.emphasized_goals
        for service in services:
            service_type = service.service_type
            rationale = service.rationale or self.generate_clinical_rationale(service_type, profile)
            if service.cap_triggered:
                rationale += " [CAP-triggered]"

            lines.append(ScenarioServiceLine(
                service_category=service_type.category,
                service_name=service_type.name,
                frequency_count=service.frequency,
                frequency_period="week",
                duration_minutes=service.duration,
                discipline=service_type.discipline,
                service_code=service_type.code,
                requires_specialization=service_type.requires_specialization,
                delivery_mode=service_type.delivery_mode,
                cost_per_visit=service_type.cost_per_visit,
                weekly_estimated_cost=service.frequency * service_type.cost_per_visit,
                priority_level=service.priority,
                is_safety_critical=service.is_required,
                clinical_rationale=rationale,
                patient_goal_supported=goals[0] if goals else "overall_wellbeing",
                axis_contribution=self.axis_contribution(service_type, axis),
            ))
        return lines

    @staticmethod
    def axis_contribution(service_type: ServiceType, axis: ScenarioAxis) -> str:
        if SERVICE_CODE_TO_MODIFIER.get(service_type.code) in axis.emphasized_service_categories:
            return f"Primary contributor to {axis.label}"
        return "Supporting service"

    # ------------------------------------------------------------------
    # Rationale
    # ------------------------------------------------------------------

    def generate_clinical_rationale(self, service_type: ServiceType, profile: PatientNeedsProfile) -> str:
        builders = {
            "NUR": self._nursing_rationale,
            "PSW": self._psw_rationale,
            "PT": self._pt_rationale,
            "OT": self._ot_rationale,
            "SW": self._sw_rationale,
        }
        builder = builders.get(service_type.code)
        if builder is not None:
            return builder(profile)
        return _CATEGORY_RATIONALE.get(service_type.category, "Comprehensive care support")

    @staticmethod
    def _nursing_rationale(profile: PatientNeedsProfile) -> str:
        reasons = []
        if profile.chess_ca_score >= 3:
            reasons.append(f"CHESS-CA {profile.chess_ca_score}/5 indicates health instability")
        if profile.pain_score >= 3:
            reasons.append(f"Pain Scale {profile.pain_score}/4 requires monitoring")
        if profile.service_urgency_score >= 3:
            reasons.append(
                f"Service Urgency {profile.service_urgency_score}/4 - clinical services needed within 72h"
            )
        return "; ".join(reasons) or "Baseline nursing for care coordination and monitoring"

    @staticmethod
    def _psw_rationale(profile: PatientNeedsProfile) -> str:
        psa = profile.personal_support_score
        label = "high" if psa >= 5 else "moderate" if psa >= 3 else "light"
        rationale = f"PSA {psa}/6 indicates {label} personal support need"
        if not profile.self_reliance_index:
            rationale += "; not self-reliant in ADL/cognition"
        return rationale

    @staticmethod
    def _pt_rationale(profile: PatientNeedsProfile) -> str:
        rehab = profile.rehabilitation_score
        label = "high" if rehab >= 4 else "moderate" if rehab >= 3 else "maintenance"
        return f"Rehabilitation {rehab}/5 indicates {label} PT/OT rehabilitation potential"

    @staticmethod
    def _ot_rationale(profile: PatientNeedsProfile) -> str:
        reasons = []
        if profile.rehabilitation_score >= 3:
            reasons.append(f"Rehab {profile.rehabilitation_score}/5 for functional improvement")
        if profile.iadl_support_level >= 3:
            reasons.append("IADL deficits for skill-building")
        if profile.has_home_environment_risk:
            reasons.append("Home environment safety assessment")
        return "; ".join(reasons) or "Occupational therapy for daily function"

    @staticmethod
    def _sw_rationale(profile: PatientNeedsProfile) -> str:
        reasons = []
        if profile.distressed_mood_score >= 3:
            reasons.append(f"DMS {profile.distressed_mood_score}/9 - mood support needed")
        if profile.caregiver_stress_level >= 3:
            reasons.append("Caregiver stress - support/respite planning")
        if profile.lives_alone and profile.cognitive_complexity >= 2:
            reasons.append("Lives alone with cognitive needs - community linkage")
        return "; ".join(reasons) or "Psychosocial support and care coordination"

    # ------------------------------------------------------------------
    # Scenario context
    # ------------------------------------------------------------------

    @staticmethod
    def _active_caps(profile: PatientNeedsProfile) -> Dict[str, Dict[str, Any]]:
        return {
            name: cap for name, cap in profile.triggered_caps.items()
            if cap.get("level", "NOT_TRIGGERED") != "NOT_TRIGGERED"
        }

    @staticmethod
    def generate_title(axis: ScenarioAxis, secondary_axes: Sequence[ScenarioAxis] = ()) -> str:
        return " + ".join([axis.label] + [a.label for a in secondary_axes])

    @staticmethod
    def generate_description(axis: ScenarioAxis, active_caps: Dict[str, Dict[str, Any]]) -> str:
        description = axis.description
        if active_caps:
            names = [cap.get("cap_name") or name for name, cap in active_caps.items()][:3]
            description += f" This bundle addresses active clinical protocols: {', '.join(names)}."
        return description

    @staticmethod
    def trade_offs(axis: ScenarioAxis, active_caps: Dict[str, Dict[str, Any]]) -> Dict[str, str]:
        trade_offs = axis.trade_offs
        if active_caps:
            trade_offs["caps"] = "CAP-driven services are non-negotiable"
        return trade_offs

    @staticmethod
    def risks_addressed(profile: PatientNeedsProfile, active_caps: Dict[str, Dict[str, Any]]) -> List[str]:
        risks = []
        if profile.falls_risk_level >= 2:
            risks.append("Falls prevention")
        if profile.health_instability >= 3:
            risks.append("Health stability monitoring")
        if profile.skin_integrity_risk >= 2:
            risks.append("Skin integrity management")
        if profile.cognitive_complexity >= 3:
            risks.append("Cognitive support and supervision")
        if profile.behavioural_complexity >= 2:
            risks.append("Behavioural support")

        for name in active_caps:
            cap_risk = CAP_RISKS.get(name)
            if cap_risk and cap_risk not in risks:
                risks.append(cap_risk)
        return risks

    @staticmethod
    def determine_confidence(profile: PatientNeedsProfile, algorithm_driven: bool) -> str:
        if algorithm_driven and profile.rug_group:
            return "high"
        if algorithm_driven or profile.primary_classification:
            return "medium"
        return "low"

    def confidence_notes(self, profile: PatientNeedsProfile, algorithm_driven: bool) -> str:
        parts = []
        if profile.rug_group:
            parts.append(f"RUG-III/HC: {profile.rug_group}")
        elif profile.needs_cluster:
            parts.append(f"Needs cluster: {profile.needs_cluster}")

        if self.category_resolver is not None:
            floors = self.category_resolver.resolve_to_categories(
                {
                    "personal_support": profile.personal_support_score,
                    "rehabilitation": profile.rehabilitation_score,
                    "chess_ca": profile.chess_ca_score,
                },
                self._active_caps(profile),
                profile,
            )
            summary = [
                f"{name}: {category['floor']:g} {category['unit']} floor"
                for name, category in floors.items() if category["floor"] > 0
            ]
            if summary:
                parts.append("Floors: " + ", ".join(summary[:3]))

        parts.append(f"Profile confidence: {profile.confidence_level}")
        if not algorithm_driven:
            parts.append("Default services based on profile characteristics")
        return " | ".join(parts)

    # ------------------------------------------------------------------
    # Validation and comparison
    # ------------------------------------------------------------------

    @staticmethod
    def validate_scenario(scenario: ScenarioBundle, profile: PatientNeedsProfile) -> Dict[str, Any]:
        errors: List[str] = []
        warnings: List[str] = []
        categories = {line.service_category for line in scenario.service_lines}

        if profile.health_instability >= 3 and "nursing" not in categories:
            errors.append("High health instability requires nursing services")

        if profile.falls_risk_level >= 2 and not categories & set(_FALLS_PREVENTION_CATEGORIES):
            warnings.append("High falls risk - consider additional monitoring")

        if profile.cognitive_complexity >= 4 and not categories & set(_COGNITIVE_SUPPORT_CATEGORIES):
            warnings.append("Significant cognitive impairment - consider supervision services")

        if profile.requires_extensive_services and profile.extensive_services and "nursing" not in categories:
            errors.append("Required extensive services not included")

        if profile.adl_support_level >= 4 and scenario.total_weekly_hours < 10:
            warnings.append("High ADL dependency may need more weekly support hours")

        return {"valid": not errors, "warnings": warnings, "errors": errors}

    def compare_scenarios(self, first: ScenarioBundle, second: ScenarioBundle) -> Dict[str, Any]:
        by_category_1 = {line.service_category: line for line in first.service_lines}
        by_category_2 = {line.service_category: line for line in second.service_lines}

        added, removed, frequency_changes = [], [], []
        for category in list(dict.fromkeys([*by_category_1, *by_category_2])):
            line_1 = by_category_1.get(category)
            line_2 = by_category_2.get(category)
            if line_1 is None:
                added.append(line_2.service_name)
            elif line_2 is None:
                removed.append(line_1.service_name)
            elif line_1.frequency_count != line_2.frequency_count:
                frequency_changes.append(
                    f"{line_1.service_name}: {line_1.frequency_label} → {line_2.frequency_label}"
                )

        return {
            "services_added": added,
            "services_removed": removed,
            "frequency_changes": frequency_changes,
            "cost_difference": round(second.weekly_estimated_cost - first.weekly_estimated_cost, 2),
            "hours_difference": round(second.total_weekly_hours - first.total_weekly_hours, 1),
            "emphasis_shift": f"From {first.primary_axis.label} to {second.primary_axis.label} emphasis",
            "comparison_note": self.cost_service.generate_comparison_note(first, second),
        }
