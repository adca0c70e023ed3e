"""Rule designer form state.

The form is an immutable :class:`RuleFormState`. Every edit goes through
:func:`update_rule_form`, which returns a new validated state for a given action.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from tpa_pricing.config import DesignerConfig
from tpa_pricing.schema import (
    SAFE_EMPTY,
    AdjustmentDirection,
    AdjustmentUnit,
    DiscountType,
    PricingUiMode,
    RuleScope,
    RuleStatus,
)


class FrozenFactors(dict):
    """Factor values of a form state. Read-only; edit through :class:`SetFactor`."""

    def _read_only(self, *args: Any, **kwargs: Any) -> Any:
        raise TypeError("Rule form factors are read-only; dispatch SetFactor instead")

    __setitem__ = __delitem__ = __ior__ = _read_only
    clear = pop = popitem = setdefault = update = _read_only

    def __reduce__(self) -> tuple:
        return (type(self), (dict(self),))


class RuleFormState(BaseModel):
    """Editing state for one candidate rule."""

    model_config = ConfigDict(frozen=True)

    # General
    name: str = ""
    scope: RuleScope = "procedure_pricing"
    status: RuleStatus = "draft"
    description: str = ""
    stackable: bool = True
    price_list_id: int | None = None
    procedure_id: int | None = None
    priority: int = Field(default=1, description="Carried through; lower is conventionally evaluated first")
    effective_from: date = Field(default_factory=date.today)
    effective_to: date | None = None

    # Pricing
    pricing_mode: PricingUiMode = "FIXED"
    base_price: float = Field(default=0.0, description="Checked for >= 0 at submit, not on edit")
    points: float = Field(default=0.0, ge=0)
    point_value: float = Field(default=0.35, ge=0)
    discount_type: DiscountType = "none"
    discount_value: float = Field(default=0.0, ge=0)
    discount_cap: float | None = Field(default=None, ge=0)
    adjustment_direction: AdjustmentDirection = "none"
    adjustment_unit: AdjustmentUnit = "PERCENT"
    adjustment_value: float = Field(default=0.0, ge=0)

    # Factors: key -> raw value; "" or SAFE_EMPTY means unset
    factors: dict[str, str] = Field(default_factory=FrozenFactors)

    @field_validator("factors", mode="after")
    @classmethod
    def freeze_factors(cls, value: dict[str, str]) -> FrozenFactors:
        return FrozenFactors(value)


def build_initial_rule_form(
    today: date | None = None,
    config: DesignerConfig | None = None,
) -> RuleFormState:
    """A fresh form with every default applied."""
    config = config or DesignerConfig()
    return RuleFormState(
        effective_from=today or date.today(),
        priority=config.default_priority,
        point_value=config.default_point_value,
    )


def is_unset_value(raw_value: str | None) -> bool:
    return raw_value is None or raw_value == SAFE_EMPTY or not raw_value.strip()


def selected_factor_entries(state: RuleFormState) -> list[tuple[str, str]]:
    """Factors with a value, in insertion order."""
    return [(key, value) for key, value in state.factors.items() if not is_unset_value(value)]


# ---------------------------------------------------------------------------
# Actions
# ---------------------------------------------------------------------------
class SetField(BaseModel):
    """Set any scalar form field by name."""

    field: str
    value: Any = None


class SetFactor(BaseModel):
    """Set one factor's raw value; an unset value removes the factor."""

    key: str
    value: str = ""


class ClearFactors(BaseModel):
    pass


class ResetForm(BaseModel):
    today: date | None = None


FormAction = SetField | SetFactor | ClearFactors | ResetForm

_SCALAR_FIELDS = frozenset(RuleFormState.model_fields) - {"factors"}


def update_rule_form(
    state: RuleFormState,
    action: FormAction,
    config: DesignerConfig | None = None,
) -> RuleFormState:
    """Apply one action and return the next state.

    Raises:
        ValueError: For an unknown field name or a value the form model rejects
            (pydantic's ``ValidationError`` is a ``ValueError``).
    """
    if isinstance(action, ResetForm):
        return build_initial_rule_form(today=action.today, config=config)

    if isinstance(action, ClearFactors):
        return state.model_copy(update={"factors": FrozenFactors()})

    if isinstance(action, SetFactor):
        factors = dict(state.factors)
        if is_unset_value(action.value):
            factors.pop(action.key, None)
        else:
            factors[action.key] = action.value
        return state.model_copy(update={"factors": FrozenFactors(factors)})

    if isinstance(action, SetField):
        if action.field not in _SCALAR_FIELDS:
            raise ValueError(f"Unknown form field '{action.field}'")
        data = state.model_dump()
        data[action.field] = action.value
        return RuleFormState.model_validate(data)

    raise TypeError(f"Unsupported form action: {type(action).__name__}")
