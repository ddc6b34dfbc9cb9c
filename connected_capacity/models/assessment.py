from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from connected_capacity.models.enumerations import AssessmentType


class AssessmentInput(BaseModel):
    """
    One interRAI assessment (HC, CA or BMHS) as submitted for profiling.
    """

    assessment_type: AssessmentType = Field(
        ...,
        description="Instrument that produced the raw items"
    )

    assessment_date: Optional[datetime] = Field(
        default=None,
        description="Date the assessment was completed"
    )

    raw_items: Dict[str, Any] = Field(
        default_factory=dict,
        description="Instrument item codes and output scales keyed by name"
    )

    rug_group: Optional[str] = Field(
        default=None,
        max_length=10,
        description="RUG-III/HC group from a linked classification, if any"
    )

    rug_category: Optional[str] = Field(
        default=None,
        description="RUG category name from a linked classification, if any"
    )

    rug_numeric_rank: Optional[int] = Field(
        default=None,
        ge=0,
        description="Numeric rank of the RUG group"
    )

    @field_validator("rug_group")
    @classmethod
    def uppercase_rug_group(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else None


class ReferralInput(BaseModel):
    """
    Referral data used to fill technology, geography and episode context.
    """

    referral_type: Optional[str] = Field(default=None, description="e.g. post_acute, palliative")
    source: Optional[str] = Field(default=None, description="Referral source, e.g. hospital")
    program: Optional[str] = Field(default=None, description="Program, e.g. transitional")
    discharge_date: Optional[date] = None
    surgery_type: Optional[str] = None
    procedure_type: Optional[str] = None
    notes: Optional[str] = None
    referral_reason: Optional[str] = None
    expected_length_of_stay: Optional[int] = Field(default=None, ge=0, description="Days")
    has_internet: bool = False
    has_pers: bool = False
    is_rural: bool = False
    diagnoses: Optional[List[str]] = None


class PatientContext(BaseModel):
    """
    Patient identity and environment. Never echoed in event logs.
    """

    patient_id: str = Field(..., min_length=1)
    region_code: Optional[str] = None
    region_name: Optional[str] = None
    last_discharge_date: Optional[date] = None


class ProfileRequest(BaseModel):
    """
    Request body for building a PatientNeedsProfile.
    """

    patient: PatientContext
    hc: Optional[AssessmentInput] = None
    ca: Optional[AssessmentInput] = None
    bmhs: Optional[AssessmentInput] = None
    referral: Optional[ReferralInput] = None
    force_refresh: bool = Field(
        default=False,
        description="Bypass the profile cache"
    )
