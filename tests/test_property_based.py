# tests/test_property_based.py
"""
Property-Based Tests - rule evaluation, intensity floors, staff scoring and costs

Hypothesis tests covering:
  - 2 DecisionTreeEngine expression properties
  - 1 CategoryIntensityResolver property
  - 2 StaffScoringService properties
  - 1 travel estimate property
  - 1 CostAnnotationService property
"""

from hypothesis import given, settings
from hypothesis import strategies as st

from connected_capacity.engines.category_intensity import CategoryIntensityResolver
from connected_capacity.engines.cost_annotation import CostAnnotationService
from connected_capacity.engines.decision_tree import DecisionTreeEngine
from connected_capacity.models.enumerations import CostStatus
from connected_capacity.models.profile import PatientNeedsProfile
from connected_capacity.models.scheduling import (
    GeoPoint,
    SchedulingPatient,
    ServiceRequirement,
    StaffMember,
)
from connected_capacity.scheduling.staff_scoring import StaffScoringService
from connected_capacity.scheduling.travel import estimate_travel_minutes

# ---------------------------------------------------------------------------
# Shared engines (hypothesis does not reset function-scoped fixtures)
# ---------------------------------------------------------------------------

ENGINE = DecisionTreeEngine()
RESOLVER = CategoryIntensityResolver()
SCORING = StaffScoringService()
COSTS = CostAnnotationService()

CAP_NAMES = ["adl", "falls", "pain", "mood", "cognitive_loss", "informal_support", "behaviour"]
CAP_LEVELS = ["IMPROVE", "FACILITATE", "PREVENT", "NOT_TRIGGERED"]
STATUS_ORDER = [CostStatus.WITHIN_CAP, CostStatus.NEAR_CAP, CostStatus.OVER_CAP]

item_st = st.integers(min_value=0, max_value=100)
lat_st = st.floats(min_value=42.0, max_value=46.0, allow_nan=False, allow_infinity=False)
lng_st = st.floats(min_value=-81.0, max_value=-77.0, allow_nan=False, allow_infinity=False)


@st.composite
def geo_point_st(draw):
    return GeoPoint(lat=draw(lat_st), lng=draw(lng_st))


@st.composite
def staff_st(draw):
    max_hours = draw(st.floats(min_value=1.0, max_value=60.0, allow_nan=False))
    return StaffMember(
        staff_id="staff-1",
        role_code=draw(st.sampled_from([None, "PSW", "RPN", "RN", "PT"])),
        region_code=draw(st.sampled_from([None, "TOR-C", "TOR-E"])),
        max_weekly_hours=max_hours,
        scheduled_hours=draw(st.floats(min_value=0.0, max_value=80.0, allow_nan=False)),
        reliability=draw(st.one_of(st.none(), st.floats(min_value=0.0, max_value=1.0, allow_nan=False))),
        previous_location=draw(st.one_of(st.none(), geo_point_st())),
        patient_visit_counts={"patient-1": draw(st.integers(min_value=0, max_value=20))},
    )


@st.composite
def patient_st(draw):
    return SchedulingPatient(
        patient_id="patient-1",
        region_code=draw(st.sampled_from([None, "TOR-C", "TOR-E"])),
        location=draw(st.one_of(st.none(), geo_point_st())),
        maple_score=draw(st.one_of(st.none(), st.integers(min_value=1, max_value=5))),
        acuity_level=draw(st.sampled_from(["low", "medium", "high"])),
    )


SERVICE = ServiceRequirement(
    service_code="psw",
    service_name="Personal Support",
    duration_minutes=60,
    primary_roles=["PSW"],
    eligible_roles=["RPN"],
)


# ---------------------------------------------------------------------------
# Expressions
# ---------------------------------------------------------------------------

@given(a=item_st, b=item_st, c=item_st)
@settings(max_examples=300)
def test_expression_sum_matches_arithmetic(a, b, c):
    """A sum expression equals the arithmetic sum of its variables."""
    assert ENGINE.evaluate_expression("a + b + c", {"a": a, "b": b, "c": c}) == a + b + c


@given(a=item_st, b=item_st)
@settings(max_examples=300)
def test_expression_boolean_count_in_range(a, b):
    """Summed comparisons count how many hold."""
    result = ENGINE.evaluate_expression("(a >= 50) + (b >= 50)", {"a": a, "b": b})
    assert result == int(a >= 50) + int(b >= 50)


# ---------------------------------------------------------------------------
# Category floors
# ---------------------------------------------------------------------------

@given(
    psa=st.integers(min_value=1, max_value=6),
    chess=st.integers(min_value=0, max_value=5),
    rehab=st.integers(min_value=1, max_value=5),
    caps=st.dictionaries(st.sampled_from(CAP_NAMES), st.sampled_from(CAP_LEVELS), max_size=4),
    falls=st.integers(min_value=0, max_value=2),
    cognitive=st.integers(min_value=0, max_value=6),
    lives_alone=st.booleans(),
)
@settings(max_examples=200)
def test_recommended_never_below_floor(psa, chess, rehab, caps, falls, cognitive, lives_alone):
    profile = PatientNeedsProfile(
        patient_id="p1",
        falls_risk_level=falls,
        cognitive_complexity=cognitive,
        lives_alone=lives_alone,
    )
    categories = RESOLVER.resolve_to_categories(
        {"personal_support": psa, "chess_ca": chess, "rehabilitation": rehab},
        {name: {"level": level} for name, level in caps.items()},
        profile,
    )
    for category in categories.values():
        assert category["floor"] >= 0
        assert category["recommended"] >= category["floor"]


# ---------------------------------------------------------------------------
# Staff scoring and travel
# ---------------------------------------------------------------------------

@given(staff=staff_st(), patient=patient_st())
@settings(max_examples=300)
def test_staff_score_bounded(staff, patient):
    score = SCORING.calculate_score(staff, patient, SERVICE)
    assert 0 <= score.total_score <= 100
    for component in score.breakdown.values():
        assert 0 <= component.score <= component.max


@given(staff=staff_st(), patient=patient_st())
@settings(max_examples=200)
def test_match_status_follows_total(staff, patient):
    score = SCORING.calculate_score(staff, patient, SERVICE)
    if score.total_score >= 80:
        assert score.match_status.value == "strong"
    elif score.total_score < 40:
        assert score.match_status.value == "none"


@given(origin=geo_point_st(), destination=geo_point_st())
@settings(max_examples=300)
def test_travel_minutes_clamped(origin, destination):
    minutes = estimate_travel_minutes(origin, destination)
    assert isinstance(minutes, int)
    assert 10 <= minutes <= 60


# ---------------------------------------------------------------------------
# Cost status
# ---------------------------------------------------------------------------

@given(
    low=st.floats(min_value=0.0, max_value=20000.0, allow_nan=False),
    delta=st.floats(min_value=0.0, max_value=20000.0, allow_nan=False),
    cap=st.floats(min_value=100.0, max_value=10000.0, allow_nan=False),
)
@settings(max_examples=300)
def test_cost_status_monotonic(low, delta, cap):
    """Spending more never moves a scenario to a better cost status."""
    lower = COSTS.determine_cost_status(low, cap)
    higher = COSTS.determine_cost_status(low + delta, cap)
    assert STATUS_ORDER.index(higher) >= STATUS_ORDER.index(lower)
