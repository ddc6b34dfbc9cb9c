from enum import Enum
from typing import Dict, List


class CapLevel(str, Enum):
    IMPROVE = "IMPROVE"          # Active intervention can improve the condition
    PREVENT = "PREVENT"          # Risk of decline; preventive focus
    FACILITATE = "FACILITATE"    # Support existing strengths / coordination
    NOT_TRIGGERED = "NOT_TRIGGERED"


class AssessmentType(str, Enum):
    HC = "hc"          # interRAI Home Care (full)
    CA = "ca"          # interRAI Contact Assessment
    BMHS = "bmhs"      # Brief Mental Health Screener
    REFERRAL = "referral"


class EpisodeType(str, Enum):
    POST_ACUTE = "post_acute"
    CHRONIC = "chronic"
    COMPLEX_CONTINUING = "complex_continuing"
    ACUTE_EXACERBATION = "acute_exacerbation"
    PALLIATIVE = "palliative"


class ConfidenceLevel(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class CostStatus(str, Enum):
    WITHIN_CAP = "within_cap"
    NEAR_CAP = "near_cap"
    OVER_CAP = "over_cap"


class MatchStatus(str, Enum):
    STRONG = "strong"
    MODERATE = "moderate"
    WEAK = "weak"
    NONE = "none"

    @property
    def rank(self) -> int:
        return _MATCH_RANK[self]


_MATCH_RANK = {
    MatchStatus.STRONG: 4,
    MatchStatus.MODERATE: 3,
    MatchStatus.WEAK: 2,
    MatchStatus.NONE: 1,
}


class NeedsCluster(str, Enum):
    # Physical function primary
    HIGH_ADL = "HIGH_ADL"
    MODERATE_ADL = "MODERATE_ADL"
    LOW_ADL = "LOW_ADL"
    # Cognitive primary
    COGNITIVE_COMPLEX = "COGNITIVE_COMPLEX"
    MH_COMPLEX = "MH_COMPLEX"
    # Medical complexity primary
    MEDICAL_COMPLEX = "MEDICAL_COMPLEX"
    POST_ACUTE = "POST_ACUTE"
    # Combined
    HIGH_ADL_COGNITIVE = "HIGH_ADL_COGNITIVE"
    GENERAL = "GENERAL"

    @property
    def label(self) -> str:
        return _CLUSTER_INFO[self][0]

    @property
    def description(self) -> str:
        return _CLUSTER_INFO[self][1]

    @property
    def approximate_rug_categories(self) -> List[str]:
        return list(_CLUSTER_INFO[self][2])

    @property
    def primary_focus(self) -> str:
        return _CLUSTER_INFO[self][3]

    def requires_high_psw_frequency(self) -> bool:
        return self in (
            NeedsCluster.HIGH_ADL,
            NeedsCluster.HIGH_ADL_COGNITIVE,
            NeedsCluster.COGNITIVE_COMPLEX,
        )

    def requires_enhanced_nursing(self) -> bool:
        return self in (
            NeedsCluster.MEDICAL_COMPLEX,
            NeedsCluster.POST_ACUTE,
            NeedsCluster.HIGH_ADL,
        )


# label, description, approximate RUG categories, primary focus
_CLUSTER_INFO = {
    NeedsCluster.HIGH_ADL: (
        "High Physical Dependency",
        "Patient requires extensive assistance with daily living activities",
        ("Reduced Physical Function", "Special Care"),
        "physical",
    ),
    NeedsCluster.MODERATE_ADL: (
        "Moderate Physical Dependency",
        "Patient needs moderate support with some daily activities",
        ("Reduced Physical Function",),
        "physical",
    ),
    NeedsCluster.LOW_ADL: (
        "Low Physical Dependency",
        "Patient is relatively independent in daily activities",
        ("Reduced Physical Function",),
        "physical",
    ),
    NeedsCluster.COGNITIVE_COMPLEX: (
        "Cognitive Complexity",
        "Primary needs relate to cognitive impairment and supervision",
        ("Impaired Cognition",),
        "cognitive",
    ),
    NeedsCluster.MH_COMPLEX: (
        "Mental Health Complexity",
        "Primary needs relate to mental health or behavioural support",
        ("Behaviour Problems", "Impaired Cognition"),
        "mental_health",
    ),
    NeedsCluster.MEDICAL_COMPLEX: (
        "Medical Complexity",
        "Multiple medical conditions requiring clinical monitoring",
        ("Clinically Complex", "Special Care"),
        "clinical",
    ),
    NeedsCluster.POST_ACUTE: (
        "Post-Acute / Rehabilitation",
        "Recent hospital discharge with rehabilitation potential",
        ("Special Rehabilitation", "Clinically Complex"),
        "rehabilitation",
    ),
    NeedsCluster.HIGH_ADL_COGNITIVE: (
        "High ADL + Cognitive",
        "Complex needs: both physical dependency and cognitive impairment",
        ("Impaired Cognition", "Special Care"),
        "cognitive",
    ),
    NeedsCluster.GENERAL: (
        "General Support",
        "General support needs without specific clinical complexity",
        ("Reduced Physical Function",),
        "general",
    ),
}


class ScenarioAxis(str, Enum):
    # Primary axes
    RECOVERY_REHAB = "recovery_rehab"
    SAFETY_STABILITY = "safety_stability"
    TECH_ENABLED = "tech_enabled"
    CAREGIVER_RELIEF = "caregiver_relief"
    # Secondary / hybrid axes
    MEDICAL_INTENSIVE = "medical_intensive"
    COGNITIVE_SUPPORT = "cognitive_support"
    COMMUNITY_INTEGRATED = "community_integrated"
    BALANCED = "balanced"

    @property
    def label(self) -> str:
        return _AXIS_INFO[self]["label"]

    @property
    def description(self) -> str:
        return _AXIS_INFO[self]["description"]

    @property
    def emoji(self) -> str:
        return _AXIS_INFO[self]["emoji"]

    @property
    def emphasized_service_categories(self) -> List[str]:
        return list(_AXIS_INFO[self]["categories"])

    @property
    def service_modifiers(self) -> Dict[str, Dict[str, object]]:
        """Category -> {"multiplier": float, "priority": str}."""
        return {k: dict(v) for k, v in _AXIS_MODIFIERS[self].items()}

    @property
    def emphasized_goals(self) -> List[str]:
        return list(_AXIS_INFO[self]["goals"])

    @property
    def trade_offs(self) -> Dict[str, str]:
        return dict(_AXIS_INFO[self]["trade_offs"])

    @property
    def is_primary(self) -> bool:
        return self in PRIMARY_AXES

    @classmethod
    def select_options(cls) -> List[Dict[str, object]]:
        return [
            {
                "value": axis.value,
                "label": axis.label,
                "description": axis.description,
                "emoji": axis.emoji,
                "is_primary": axis.is_primary,
            }
            for axis in cls
        ]


PRIMARY_AXES = (
    ScenarioAxis.RECOVERY_REHAB,
    ScenarioAxis.SAFETY_STABILITY,
    ScenarioAxis.TECH_ENABLED,
    ScenarioAxis.CAREGIVER_RELIEF,
)


def _mod(multiplier: float, priority: str) -> Dict[str, object]:
    return {"multiplier": multiplier, "priority": priority}


_AXIS_MODIFIERS = {
    ScenarioAxis.RECOVERY_REHAB: {
        "therapy": _mod(1.5, "core"),
        "activation": _mod(1.3, "recommended"),
        "nursing": _mod(1.0, "core"),
        "psw": _mod(0.9, "core"),
    },
    ScenarioAxis.SAFETY_STABILITY: {
        "nursing": _mod(1.3, "core"),
        "psw": _mod(1.2, "core"),
        "remote_monitoring": _mod(1.5, "recommended"),
        "therapy": _mod(0.8, "recommended"),
    },
    ScenarioAxis.TECH_ENABLED: {
        "remote_monitoring": _mod(2.0, "core"),
        "telehealth": _mod(1.5, "core"),
        "nursing": _mod(0.7, "recommended"),
        "psw": _mod(0.8, "recommended"),
    },
    ScenarioAxis.CAREGIVER_RELIEF: {
        "respite": _mod(2.0, "core"),
        "homemaking": _mod(1.5, "core"),
        "day_program": _mod(1.5, "recommended"),
        "caregiver_education": _mod(1.0, "core"),
    },
    ScenarioAxis.MEDICAL_INTENSIVE: {
        "nursing": _mod(2.0, "core"),
        "wound_care": _mod(1.5, "core"),
        "respiratory": _mod(1.5, "recommended"),
        "psw": _mod(1.0, "core"),
    },
    ScenarioAxis.COGNITIVE_SUPPORT: {
        "behavioural_psw": _mod(1.5, "core"),
        "activation": _mod(1.5, "core"),
        "psw": _mod(1.3, "core"),
        "nursing": _mod(0.8, "recommended"),
    },
    ScenarioAxis.COMMUNITY_INTEGRATED: {
        "day_program": _mod(1.5, "core"),
        "transportation": _mod(1.5, "core"),
        "meals": _mod(1.3, "recommended"),
        "psw": _mod(0.8, "recommended"),
    },
    ScenarioAxis.BALANCED: {},  # template defaults
}

_AXIS_INFO = {
    ScenarioAxis.RECOVERY_REHAB: {
        "label": "Recovery-Focused Care",
        "description": "Prioritizes therapy and function restoration with intensive PT/OT services to support recovery goals.",
        "emoji": "🔄",
        "categories": ("therapy", "activation", "nursing"),
        "goals": ("mobility", "independence", "strength", "function_restoration"),
        "trade_offs": {
            "emphasis": "Prioritizes recovery and function restoration",
            "approach": "More therapy sessions to accelerate progress",
            "consideration": "Best for patients with clear rehab goals and potential",
        },
    },
    ScenarioAxis.SAFETY_STABILITY: {
        "label": "Safety & Stability",
        "description": "Maximizes daily functioning and fall prevention with consistent PSW support and nursing monitoring.",
        "emoji": "🛡️",
        "categories": ("nursing", "psw", "remote_monitoring"),
        "goals": ("fall_prevention", "daily_functioning", "crisis_avoidance", "stability"),
        "trade_offs": {
            "emphasis": "Prioritizes daily safety and crisis prevention",
            "approach": "Consistent daily support and monitoring",
            "consideration": "Best for patients at risk of falls or health instability",
        },
    },
    ScenarioAxis.TECH_ENABLED: {
        "label": "Tech-Enabled Care",
        "description": "Leverages remote monitoring and telehealth for continuous oversight with targeted in-person visits.",
        "emoji": "📱",
        "categories": ("remote_monitoring", "telehealth"),
        "goals": ("continuous_monitoring", "convenience", "efficiency", "connectivity"),
        "trade_offs": {
            "emphasis": "Leverages technology for continuous oversight",
            "approach": "Remote monitoring with targeted in-person visits",
            "consideration": "Best for tech-comfortable patients with reliable connectivity",
        },
    },
    ScenarioAxis.CAREGIVER_RELIEF: {
        "label": "Caregiver Relief",
        "description": "Supports both patient and family caregiver with respite hours, homemaking, and family support services.",
        "emoji": "🤝",
        "categories": ("respite", "homemaking", "day_program", "caregiver_education"),
        "goals": ("caregiver_wellbeing", "respite", "family_support", "sustainability"),
        "trade_offs": {
            "emphasis": "Supports both patient and family caregiver",
            "approach": "Includes respite and family support services",
            "consideration": "Best when family caregiver is integral to care plan",
        },
    },
    ScenarioAxis.MEDICAL_INTENSIVE: {
        "label": "Medical Intensive",
        "description": "Provides intensive clinical care with high nursing frequency for complex medical needs.",
        "emoji": "🏥",
        "categories": ("nursing", "wound_care", "respiratory"),
        "goals": ("clinical_stability", "symptom_management", "treatment_adherence"),
        "trade_offs": {
            "emphasis": "Intensive clinical monitoring and treatment",
            "approach": "High nursing frequency with specialized care",
            "consideration": "Best for patients with complex medical needs",
        },
    },
    ScenarioAxis.COGNITIVE_SUPPORT: {
        "label": "Cognitive Support",
        "description": "Focuses on cognitive stimulation and behavioural support with structured routines and supervision.",
        "emoji": "🧠",
        "categories": ("behavioural_psw", "activation", "psw"),
        "goals": ("cognitive_engagement", "behavioural_stability", "routine", "supervision"),
        "trade_offs": {
            "emphasis": "Cognitive engagement and behavioural support",
            "approach": "Structured routines with supervision",
            "consideration": "Best for patients with dementia or cognitive impairment",
        },
    },
    ScenarioAxis.COMMUNITY_INTEGRATED: {
        "label": "Community Integrated",
        "description": "Emphasizes social engagement and community connections through day programs and social services.",
        "emoji": "🏘️",
        "categories": ("day_program", "transportation", "meals", "social"),
        "goals": ("social_engagement", "independence", "community_connection"),
        "trade_offs": {
            "emphasis": "Social connection and community engagement",
            "approach": "Day programs and social services",
            "consideration": "Best for socially isolated patients who can participate",
        },
    },
    ScenarioAxis.BALANCED: {
        "label": "Balanced Care",
        "description": "Provides a balanced mix of services across all care domains based on assessed needs.",
        "emoji": "⚖️",
        "categories": ("nursing", "psw", "therapy", "css"),
        "goals": ("overall_wellbeing", "comprehensive_support", "holistic_care"),
        "trade_offs": {
            "emphasis": "Comprehensive coverage across all domains",
            "approach": "Balanced allocation based on assessment",
            "consideration": "Suitable baseline for most patients",
        },
    },
}
