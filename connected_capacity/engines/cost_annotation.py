"""
Cost Annotation Service - Connected Capacity Bundle Engine
connected_capacity/engines/cost_annotation.py

Annotates scenarios with weekly cost and operational metrics. Cost is a
reference point, not a constraint: notes describe resource use in terms of
the patient experience for each axis.

Status thresholds (utilization of the reference cap):
    <= 85%   within_cap
    <= 100%  near_cap
    >  100%  over_cap
"""

from typing import Any, Dict, List, Sequence

from connected_capacity.engines.utils import round_half_up
from connected_capacity.models.enumerations import CostStatus, ScenarioAxis
from connected_capacity.models.scenario import ScenarioBundle, ScenarioServiceLine

DEFAULT_REFERENCE_CAP = 5000.0
CAP_THRESHOLD_WITHIN = 0.85
CAP_THRESHOLD_NEAR = 1.00

AXIS_COST_NOTES = {
    ScenarioAxis.RECOVERY_REHAB: "Therapy-intensive approach to support recovery goals.",
    ScenarioAxis.SAFETY_STABILITY: "Consistent daily support for safety and stability.",
    ScenarioAxis.TECH_ENABLED: "Remote monitoring reduces in-person visits while maintaining oversight.",
    ScenarioAxis.CAREGIVER_RELIEF: "Includes family support services to sustain caregiving.",
    ScenarioAxis.MEDICAL_INTENSIVE: "High clinical intensity for complex medical needs.",
    ScenarioAxis.COGNITIVE_SUPPORT: "Specialized support for cognitive and behavioural needs.",
    ScenarioAxis.COMMUNITY_INTEGRATED: "Community programs provide social connection and structure.",
    ScenarioAxis.BALANCED: "Balanced allocation across all care domains.",
}

_STATUS_NOTES = {
    CostStatus.WITHIN_CAP: "Resource use at {:.0f}% of typical care parameters.",
    CostStatus.NEAR_CAP: "Resource use at {:.0f}% - within typical range for this level of need.",
    CostStatus.OVER_CAP: (
        "Resource use at {:.0f}% reflects intensive service needs - may be appropriate for complexity."
    ),
}

_REMOTE_DELIVERY_MODES = ("virtual", "automated")


class CostAnnotationService:

    def annotate_scenario(
        self,
        scenario: ScenarioBundle,
        reference_cap: float = DEFAULT_REFERENCE_CAP,
    ) -> ScenarioBundle:
        """Return a copy of the scenario with cost and operational fields filled in."""
        if reference_cap <= 0:
            raise ValueError("reference_cap must be positive")

        weekly_cost = self.calculate_total_weekly_cost(scenario.service_lines)
        metrics = self.calculate_operational_metrics(scenario.service_lines)

        return scenario.model_copy(update={
            "weekly_estimated_cost": round_half_up(weekly_cost, 2),
            "reference_cap": reference_cap,
            "cost_status": self.determine_cost_status(weekly_cost, reference_cap).value,
            "cap_utilization": round_half_up(weekly_cost / reference_cap * 100, 1),
            "cost_note": self.generate_cost_note(scenario, reference_cap),
            "total_weekly_hours": round_half_up(metrics["total_weekly_hours"], 1),
            "total_weekly_visits": metrics["total_weekly_visits"],
            "in_person_percentage": round_half_up(metrics["in_person_percentage"], 1),
            "virtual_percentage": round_half_up(metrics["virtual_percentage"], 1),
            "discipline_count": metrics["discipline_count"],
        })

    @staticmethod
    def calculate_service_line_cost(line: ScenarioServiceLine) -> float:
        if line.weekly_estimated_cost > 0:
            return line.weekly_estimated_cost
        return line.weekly_visits * line.cost_per_visit

    def calculate_total_weekly_cost(self, lines: Sequence[ScenarioServiceLine]) -> float:
        return sum(self.calculate_service_line_cost(line) for line in lines)

    @staticmethod
    def determine_cost_status(weekly_cost: float, reference_cap: float) -> CostStatus:
        utilization = weekly_cost / reference_cap
        if utilization <= CAP_THRESHOLD_WITHIN:
            return CostStatus.WITHIN_CAP
        if utilization <= CAP_THRESHOLD_NEAR:
            return CostStatus.NEAR_CAP
        return CostStatus.OVER_CAP

    def generate_cost_note(self, scenario: ScenarioBundle, reference_cap: float) -> str:
        weekly_cost = self.calculate_total_weekly_cost(scenario.service_lines)
        status = self.determine_cost_status(weekly_cost, reference_cap)
        utilization = weekly_cost / reference_cap * 100
        axis_note = AXIS_COST_NOTES.get(scenario.primary_axis, "")
        return f"{axis_note} {_STATUS_NOTES[status].format(utilization)}"

    @staticmethod
    def calculate_operational_metrics(lines: Sequence[ScenarioServiceLine]) -> Dict[str, Any]:
        total_hours = 0.0
        total_visits = 0
        in_person = 0
        remote = 0
        disciplines: Dict[str, bool] = {}

        for line in lines:
            visits = int(round_half_up(line.weekly_visits, 0))
            total_hours += line.weekly_hours
            total_visits += visits
            if line.delivery_mode in _REMOTE_DELIVERY_MODES:
                remote += visits
            else:
                in_person += visits
            disciplines[line.discipline] = True

        return {
            "total_weekly_hours": total_hours,
            "total_weekly_visits": total_visits,
            "in_person_percentage": in_person / total_visits * 100 if total_visits else 100.0,
            "virtual_percentage": remote / total_visits * 100 if total_visits else 0.0,
            "discipline_count": len(disciplines),
            "disciplines": list(disciplines),
        }

    def cost_breakdown_by_category(self, lines: Sequence[ScenarioServiceLine]) -> Dict[str, Dict[str, Any]]:
        breakdown: Dict[str, Dict[str, Any]] = {}
        for line in lines:
            entry = breakdown.setdefault(
                line.service_category, {"weekly_cost": 0.0, "percentage": 0.0, "service_count": 0}
            )
            entry["weekly_cost"] += self.calculate_service_line_cost(line)
            entry["service_count"] += 1
        return self._with_percentages(breakdown, self.calculate_total_weekly_cost(lines))

    def cost_breakdown_by_discipline(self, lines: Sequence[ScenarioServiceLine]) -> Dict[str, Dict[str, Any]]:
        breakdown: Dict[str, Dict[str, Any]] = {}
        for line in lines:
            entry = breakdown.setdefault(line.discipline, {"weekly_cost": 0.0, "percentage": 0.0, "hours": 0.0})
            entry["weekly_cost"] += self.calculate_service_line_cost(line)
            entry["hours"] += line.weekly_hours
        breakdown = self._with_percentages(breakdown, self.calculate_total_weekly_cost(lines))
        for entry in breakdown.values():
            entry["hours"] = round_half_up(entry["hours"], 1)
        return breakdown

    @staticmethod
    def _with_percentages(breakdown: Dict[str, Dict[str, Any]], total: float) -> Dict[str, Dict[str, Any]]:
        if total > 0:
            for entry in breakdown.values():
                entry["percentage"] = round_half_up(entry["weekly_cost"] / total * 100, 1)
                entry["weekly_cost"] = round_half_up(entry["weekly_cost"], 2)
        return breakdown

    def generate_comparison_note(self, first: ScenarioBundle, second: ScenarioBundle) -> str:
        cost_diff = (
            self.calculate_total_weekly_cost(second.service_lines)
            - self.calculate_total_weekly_cost(first.service_lines)
        )
        hours_diff = (
            sum(line.weekly_hours for line in second.service_lines)
            - sum(line.weekly_hours for line in first.service_lines)
        )

        notes: List[str] = []
        if abs(cost_diff) > 100:
            direction = "higher" if cost_diff > 0 else "lower"
            notes.append(f"{second.title} is ${abs(cost_diff):.0f}/week {direction} in resource use")
        if abs(hours_diff) > 2:
            direction = "more" if hours_diff > 0 else "fewer"
            notes.append(f"{abs(hours_diff):.1f} {direction} hours of direct service per week")
        return "; ".join(notes)
