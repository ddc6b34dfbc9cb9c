from connected_capacity.mappers.base import AssessmentMapper
from connected_capacity.mappers.bmhs_mapper import BmhsAssessmentMapper
from connected_capacity.mappers.ca_mapper import CaAssessmentMapper
from connected_capacity.mappers.hc_mapper import HcAssessmentMapper

__all__ = [
    "AssessmentMapper",
    "BmhsAssessmentMapper",
    "CaAssessmentMapper",
    "HcAssessmentMapper",
]
