"""Schema definitions for pricing rules.

Provides:
- Constants for the closed value sets used by the rule designer.
- Pydantic wire models for the create-rule payload and the backend's list responses.

Wire models use camelCase aliases; construct them with either the alias or the field name.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Generic, Literal, TypeVar, get_args

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

# ---------------------------------------------------------------------------
# Enum-like value sets
# ---------------------------------------------------------------------------
RuleScope = Literal["procedure_pricing", "authorization_rule", "limit_rule", "coverage_rule"]
RuleStatus = Literal["draft", "active"]
DiscountType = Literal["none", "percent", "amount"]
AdjustmentDirection = Literal["none", "increase", "decrease"]
AdjustmentUnit = Literal["PERCENT", "AMOUNT"]
PricingUiMode = Literal["FIXED", "POINT"]
RuleTab = Literal["general", "factors", "pricing", "summary"]

RULE_SCOPES: tuple[str, ...] = get_args(RuleScope)
RULE_STATUSES: tuple[str, ...] = get_args(RuleStatus)
DISCOUNT_TYPES: tuple[str, ...] = get_args(DiscountType)
ADJUSTMENT_DIRECTIONS: tuple[str, ...] = get_args(AdjustmentDirection)
ADJUSTMENT_UNITS: tuple[str, ...] = get_args(AdjustmentUnit)
PRICING_UI_MODES: tuple[str, ...] = get_args(PricingUiMode)
RULE_TABS: tuple[str, ...] = get_args(RuleTab)

# Written by an "any" choice in a closed-choice factor; means unset.
SAFE_EMPTY = "__none__"

GLOBAL_FACTOR_KEY = "GLOBAL"
EQUALS = "EQUALS"
FLAT_DISCOUNT = "FLAT_DISCOUNT"
PERCENT_ADJUSTMENT = "PERCENT_ADJUSTMENT"
AMOUNT_ADJUSTMENT = "AMOUNT_ADJUSTMENT"


class WireModel(BaseModel):
    """Base for models exchanged with the backend in camelCase."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Create-rule payload
# ---------------------------------------------------------------------------
class RuleCondition(WireModel):
    """One factor condition: ``{factor, operator, value}``."""

    factor: str
    operator: str = EQUALS
    value: Any = None


class RulePricing(WireModel):
    """Pricing block. FIXED carries ``fixedPrice``; POINTS carries ``points``/``basePoints``."""

    mode: str = "FIXED"
    fixed_price: float | None = None
    points: float | None = None
    base_points: float | None = None


class DiscountLogicBlock(WireModel):
    percent: float | None = None


class RuleDiscount(WireModel):
    apply: bool = True
    logic_blocks: list[DiscountLogicBlock] = Field(default_factory=list)


class RuleAdjustment(WireModel):
    """A signed global modification to the computed price.

    ``cases["default"]`` is either a signed number or the ``"GLOBAL"`` sentinel
    (percent adjustments carry their value in ``percent`` instead).
    """

    type: str
    factor_key: str = GLOBAL_FACTOR_KEY
    percent: float | None = None
    cases: dict[str, Any] = Field(default_factory=dict)


class CreateRuleRequest(WireModel):
    """The payload sent to the rule-creation endpoint. Derived, never hand-edited."""

    procedure_id: int
    price_list_id: int
    priority: int
    valid_from: date
    valid_to: date | None = None
    conditions: list[RuleCondition]
    pricing: RulePricing
    discount: RuleDiscount | None = None
    adjustments: list[RuleAdjustment] | None = None

    def to_wire(self) -> dict[str, Any]:
        """Render the JSON body: camelCase keys, optional sections omitted, ``validTo`` kept as null."""
        body = self.model_dump(by_alias=True, mode="json", exclude_none=True)
        body["validTo"] = self.valid_to.isoformat() if self.valid_to else None
        return body


# ---------------------------------------------------------------------------
# Backend responses
# ---------------------------------------------------------------------------
T = TypeVar("T")


class Page(WireModel, Generic[T]):
    """A Spring-style paged list."""

    content: list[T] = Field(default_factory=list)
    total_pages: int = 0
    total_elements: int = 0
    number: int = 0
    size: int = 0
    first: bool = True
    last: bool = True


class PriceListSummary(WireModel):
    id: int
    code: str | None = None
    name_en: str | None = None
    provider_type: str | None = None
    is_default: bool = False
    region_name: str | None = None
    valid_from: str | None = None
    valid_to: str | None = None


class ProcedureSummary(WireModel):
    id: int
    system_code: str | None = None
    name_en: str | None = None
    unit_of_measure: str | None = None
    reference_price: float | None = None


class PricingFactor(WireModel):
    """A factor as registered on the backend (distinct from the static taxonomy)."""

    id: int
    key: str
    name_en: str
    name_ar: str | None = None
    data_type: str
    allowed_values: str | None = None


class PricingRuleResponse(WireModel):
    """A persisted rule as echoed back by the backend."""

    id: int
    procedure_id: int | None = None
    procedure_name: str | None = None
    price_list_id: int | None = None
    price_list_name: str | None = None
    priority: int | None = None
    rule_json: str | None = None
    valid_from: str | list[int] | None = None
    valid_to: str | list[int] | None = None
