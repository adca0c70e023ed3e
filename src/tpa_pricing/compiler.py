"""Rule payload compiler.

Turns a :class:`RuleFormState` into the :class:`CreateRuleRequest` sent to the
rule-creation endpoint. Pure: the same state always compiles to the same payload.

Encoding notes:
- Percent discounts go in ``discount``; flat-amount discounts go in ``adjustments``
  as a ``FLAT_DISCOUNT`` entry. The asymmetry is what the backend expects.
- ``discount`` and ``adjustments`` are omitted entirely when there is nothing to send.
"""

from __future__ import annotations

import logging

from tpa_pricing.factor_values import FactorValueParser, LenientFactorValueParser
from tpa_pricing.form import RuleFormState, selected_factor_entries
from tpa_pricing.schema import (
    AMOUNT_ADJUSTMENT,
    EQUALS,
    FLAT_DISCOUNT,
    GLOBAL_FACTOR_KEY,
    PERCENT_ADJUSTMENT,
    CreateRuleRequest,
    DiscountLogicBlock,
    RuleAdjustment,
    RuleCondition,
    RuleDiscount,
    RulePricing,
)
from tpa_pricing.validate import ensure_submittable

logger = logging.getLogger(__name__)

_default_parser = LenientFactorValueParser()


def build_conditions(
    factor_entries: list[tuple[str, str]],
    parser: FactorValueParser = _default_parser,
) -> list[RuleCondition]:
    """One EQUALS condition per entry, in the given order."""
    return [
        RuleCondition(factor=key, operator=EQUALS, value=parser(key, raw))
        for key, raw in factor_entries
    ]


def build_pricing(state: RuleFormState) -> RulePricing:
    if state.pricing_mode == "POINT":
        return RulePricing(mode="POINTS", points=state.points, base_points=state.points)
    return RulePricing(mode="FIXED", fixed_price=state.base_price)


def build_discount(state: RuleFormState) -> RuleDiscount | None:
    """Percent discount block, or ``None`` unless the discount is a positive percent."""
    if state.discount_type != "percent" or state.discount_value <= 0:
        return None
    return RuleDiscount(apply=True, logic_blocks=[DiscountLogicBlock(percent=state.discount_value)])


def build_adjustments(state: RuleFormState) -> list[RuleAdjustment] | None:
    """Flat-amount discount first, then the directional adjustment; ``None`` when neither applies."""
    adjustments: list[RuleAdjustment] = []

    if state.discount_type == "amount" and state.discount_value > 0:
        cases: dict[str, float] = {"default": -abs(state.discount_value)}
        if state.discount_cap:
            cases["cap"] = state.discount_cap
        adjustments.append(
            RuleAdjustment(type=FLAT_DISCOUNT, factor_key=GLOBAL_FACTOR_KEY, cases=cases)
        )

    if state.adjustment_direction != "none" and state.adjustment_value > 0:
        signed = abs(state.adjustment_value)
        if state.adjustment_direction == "decrease":
            signed = -signed

        if state.adjustment_unit == "PERCENT":
            adjustments.append(
                RuleAdjustment(
                    type=PERCENT_ADJUSTMENT,
                    factor_key=GLOBAL_FACTOR_KEY,
                    percent=signed,
                    cases={"default": GLOBAL_FACTOR_KEY},
                )
            )
        else:
            adjustments.append(
                RuleAdjustment(
                    type=AMOUNT_ADJUSTMENT,
                    factor_key=GLOBAL_FACTOR_KEY,
                    cases={"default": signed},
                )
            )

    return adjustments or None


def compile_rule(
    state: RuleFormState,
    parser: FactorValueParser = _default_parser,
) -> CreateRuleRequest:
    """Validate a form and compile it into a create-rule request.

    Args:
        state: The form to compile.
        parser: Factor value parser; the lenient default never raises.

    Returns:
        The complete request.

    Raises:
        RuleValidationError: If the form fails the submit gate. No payload is built.
        FactorValueError: Only when a strict parser rejects a factor value.
    """
    ensure_submittable(state)

    entries = selected_factor_entries(state)
    request = CreateRuleRequest(
        procedure_id=state.procedure_id,
        price_list_id=state.price_list_id,
        priority=state.priority,
        valid_from=state.effective_from,
        valid_to=state.effective_to,
        conditions=build_conditions(entries, parser),
        pricing=build_pricing(state),
        discount=build_discount(state),
        adjustments=build_adjustments(state),
    )
    logger.debug(
        "Compiled rule %r: %d conditions, discount=%s, adjustments=%d",
        state.name,
        len(request.conditions),
        request.discount is not None,
        len(request.adjustments or []),
    )
    return request


def compile_rule_payload(
    state: RuleFormState,
    parser: FactorValueParser = _default_parser,
) -> dict:
    """Compile straight to the JSON-ready request body."""
    return compile_rule(state, parser).to_wire()
