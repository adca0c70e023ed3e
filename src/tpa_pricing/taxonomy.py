"""Static factor taxonomy for pricing rules.

Factors are the rating dimensions a rule can condition on. They are grouped into
categories purely for presentation; the payload only ever references a factor's ``key``.
"""

from __future__ import annotations

from collections import Counter
from typing import Literal

import polars as pl
from pydantic import BaseModel, Field

FactorDataType = Literal["STRING", "NUMBER"]


class FactorDefinition(BaseModel):
    """One orthogonal rating dimension."""

    key: str = Field(description="Stable wire key, e.g. 'patient_age'")
    name: str = Field(description="Human label")
    data_type: FactorDataType = Field(default="STRING")
    allowed_values: tuple[str, ...] | None = Field(
        default=None, description="Closed choice set; None means free text/number"
    )
    description: str = ""

    model_config = {"frozen": True}


class FactorCategory(BaseModel):
    id: str
    title: str
    description: str = ""
    factors: tuple[FactorDefinition, ...] = ()

    model_config = {"frozen": True}


def _f(key: str, name: str, data_type: FactorDataType = "STRING", *allowed: str, description: str = "") -> FactorDefinition:
    return FactorDefinition(
        key=key,
        name=name,
        data_type=data_type,
        allowed_values=allowed or None,
        description=description,
    )


YES_NO = ("YES", "NO")

FACTOR_CATEGORIES: tuple[FactorCategory, ...] = (
    FactorCategory(
        id="patient",
        title="Patient Factors",
        description="Demographics and eligibility attributes",
        factors=(
            _f("patient_age", "Patient Age", "NUMBER", description="Use ranges like 0-18"),
            _f("gender", "Gender", "STRING", "M", "F"),
            _f("insurance_degree", "Insurance Degree", "STRING", "GOLD", "SILVER", "BRONZE", "PLATINUM"),
            _f("member_type", "Member Type", "STRING", "HOF", "DEPENDENT"),
            _f("relation_degree", "Relation Degree", "STRING", "SON", "WIFE", "FATHER", "MOTHER"),
            _f("chronic_status", "Chronic Condition", "STRING", *YES_NO),
            _f("pregnancy_status", "Pregnancy Status", "STRING", *YES_NO),
            _f("disability_level", "Disability Level", "STRING", "NONE", "MILD", "SEVERE"),
            _f("loyalty_score", "Loyalty Score", "NUMBER"),
        ),
    ),
    FactorCategory(
        id="provider",
        title="Provider Factors",
        description="Facility attributes and network grouping",
        factors=(
            _f("provider_type", "Provider Type", "STRING", "clinic", "hospital", "lab", "radiology"),
            _f("specialty_id", "Specialty ID", "NUMBER"),
            _f("provider_level", "Provider Level", "STRING", "A", "B", "C"),
            _f("provider_region", "Provider Region", "STRING", "AMMAN", "IRBID", "AQABA"),
            _f("provider_network_tier", "Provider Network Tier", "STRING", "IN_NETWORK", "OUT_NETWORK"),
            _f("facility_experience_years", "Facility Experience (Years)", "NUMBER"),
            _f("facility_licensing_grade", "Facility Licensing Grade", "STRING", "GRADE_1", "GRADE_2"),
        ),
    ),
    FactorCategory(
        id="doctor",
        title="Doctor Factors",
        description="Physician experience and profile",
        factors=(
            _f("doctor_experience_years", "Doctor Experience Years", "NUMBER"),
            _f("doctor_title", "Doctor Title", "STRING", "CONSULTANT", "SPECIALIST", "GP"),
            _f("doctor_gender", "Doctor Gender", "STRING", "M", "F"),
            _f("doctor_rating", "Doctor Rating", "NUMBER"),
            _f("doctor_shift", "Doctor Shift", "STRING", "DAY", "NIGHT"),
        ),
    ),
    FactorCategory(
        id="visit",
        title="Visit Factors",
        description="Visit metadata and channels",
        factors=(
            _f("visit_time", "Visit Time", "STRING", "DAY", "NIGHT"),
            _f("visit_day", "Visit Day", "STRING", "WEEKDAY", "WEEKEND", "HOLIDAY"),
            _f("visit_type", "Visit Type", "STRING", "NEW", "FOLLOWUP"),
            _f("visit_channel", "Visit Channel", "STRING", "WALK_IN", "ONLINE", "PHONE"),
            _f("visit_duration", "Visit Duration (minutes)", "NUMBER"),
        ),
    ),
    FactorCategory(
        id="policy",
        title="Policy & Insurance",
        description="Coverage, co-pay and deductibles",
        factors=(
            _f("policy_type", "Policy Type", "STRING", "VIP", "CORPORATE", "INDIVIDUAL"),
            _f("coverage_type", "Coverage Type", "STRING", "FULL", "PARTIAL", "EXCLUDED"),
            _f("co_pay_percent", "Co-Pay Percentage", "NUMBER"),
            _f("has_preapproval", "Preapproval Required", "STRING", *YES_NO),
            _f("policy_age_limit", "Policy Age Limit", "NUMBER"),
            _f("deductible_amount", "Deductible Amount", "NUMBER"),
        ),
    ),
    FactorCategory(
        id="procedure",
        title="Procedure / CPT / ICD",
        description="Clinical grouping, severity and complexity",
        factors=(
            _f("procedure_group", "Procedure Group", "STRING", "CONSULTATION", "SURGERY", "LAB", "RAD"),
            _f("cpt_level", "CPT Complexity Level", "STRING", "LOW", "MED", "HIGH"),
            _f("icd_category", "ICD Category", "STRING"),
            _f("connected_icd_count", "Connected ICD Count", "NUMBER"),
            _f("severity_level", "Severity Level", "STRING", "NORMAL", "MODERATE", "CRITICAL"),
        ),
    ),
    FactorCategory(
        id="location",
        title="Location",
        description="Geography and zoning",
        factors=(
            _f("city", "City", "STRING"),
            _f("governorate", "Governorate", "STRING"),
            _f("zone", "Zone", "STRING", "URBAN", "RURAL"),
        ),
    ),
    FactorCategory(
        id="time",
        title="Time Factors",
        description="Calendar and seasonal impact",
        factors=(
            _f("day_of_week", "Day of Week", "STRING", "SUN", "MON", "TUE", "WED", "THU", "FRI", "SAT"),
            _f("season", "Season", "STRING", "WINTER", "SPRING", "SUMMER", "AUTUMN"),
            _f("holiday_flag", "Holiday Flag", "STRING", *YES_NO),
        ),
    ),
    FactorCategory(
        id="claim",
        title="Claim Factors",
        description="Utilization and financial history",
        factors=(
            _f("claim_type", "Claim Type", "STRING", "OPD", "ER", "IPD"),
            _f("claim_amount", "Claim Amount", "NUMBER"),
            _f("claim_frequency", "Claim Frequency", "NUMBER"),
            _f("claim_previous_rejections", "Previous Rejections", "NUMBER"),
        ),
    ),
    FactorCategory(
        id="advanced",
        title="Advanced & AI Factors",
        description="Future-ready risk scores and utilization signals",
        factors=(
            _f("ai_risk_score", "AI Risk Score", "NUMBER"),
            _f("doctor_ai_score", "Doctor AI Score", "NUMBER"),
            _f("patient_risk_level", "Patient Risk Level", "STRING", "LOW", "MED", "HIGH"),
            _f("utilization_score", "Utilization Score", "NUMBER"),
            _f("fraud_score", "Fraud Score", "NUMBER"),
            _f("travel_distance_km", "Distance to Provider (KM)", "NUMBER"),
            _f("queue_load", "Queue Load", "NUMBER"),
            _f("peak_time_flag", "Peak-Time Flag", "STRING", *YES_NO),
        ),
    ),
)


def duplicate_factor_keys(categories: tuple[FactorCategory, ...] | list[FactorCategory]) -> list[str]:
    """Return factor keys that appear more than once across all categories, sorted."""
    counts = Counter(f.key for c in categories for f in c.factors)
    return sorted(key for key, n in counts.items() if n > 1)


def build_factor_lookup(
    categories: tuple[FactorCategory, ...] | list[FactorCategory],
) -> dict[str, FactorDefinition]:
    """Flatten categories into a ``key -> definition`` map.

    Raises:
        ValueError: If two factors share a key.
    """
    duplicates = duplicate_factor_keys(categories)
    if duplicates:
        raise ValueError(f"Duplicate factor keys in taxonomy: {duplicates}")
    return {f.key: f for c in categories for f in c.factors}


FACTOR_DEFINITION_LOOKUP: dict[str, FactorDefinition] = build_factor_lookup(FACTOR_CATEGORIES)


def get_factor_definition(key: str) -> FactorDefinition | None:
    """Look up a factor by key; ``None`` for keys outside the taxonomy."""
    return FACTOR_DEFINITION_LOOKUP.get(key)


def get_category(category_id: str) -> FactorCategory | None:
    for category in FACTOR_CATEGORIES:
        if category.id == category_id:
            return category
    return None


def factor_frame(categories: tuple[FactorCategory, ...] | list[FactorCategory] = FACTOR_CATEGORIES) -> pl.DataFrame:
    """Flatten the taxonomy into one row per factor, in presentation order.

    Columns: category, key, name, data_type, allowed_values (comma-joined, null when open).
    """
    rows = [
        {
            "category": c.id,
            "key": f.key,
            "name": f.name,
            "data_type": f.data_type,
            "allowed_values": ",".join(f.allowed_values) if f.allowed_values else None,
        }
        for c in categories
        for f in c.factors
    ]
    return pl.DataFrame(
        rows,
        schema={
            "category": pl.Utf8,
            "key": pl.Utf8,
            "name": pl.Utf8,
            "data_type": pl.Utf8,
            "allowed_values": pl.Utf8,
        },
    )
