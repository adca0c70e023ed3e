"""One-line summaries of a rule form for the summary view."""

from __future__ import annotations

from tpa_pricing.form import RuleFormState

CURRENCY = "JOD"


def format_currency(amount: float | None) -> str:
    """Dinar amounts are shown with three decimals (fils)."""
    if amount is None:
        return "-"
    return f"{CURRENCY} {amount:,.3f}"


def _number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


def summarize_discount(state: RuleFormState) -> str:
    if state.discount_type == "none":
        return "No discount applied"
    cap_text = f" (cap {format_currency(state.discount_cap)})" if state.discount_cap else ""
    if state.discount_type == "percent":
        return f"{_number(state.discount_value)}% discount{cap_text}"
    return f"{format_currency(state.discount_value)} discount{cap_text}"


def summarize_adjustment(state: RuleFormState) -> str:
    if state.adjustment_direction == "none":
        return "No manual adjustment"
    unit = "%" if state.adjustment_unit == "PERCENT" else " JD"
    sign = "+" if state.adjustment_direction == "increase" else "-"
    return f"{sign}{_number(state.adjustment_value)}{unit}"


def summarize_effectiveness(state: RuleFormState) -> str:
    if state.effective_to:
        return f"{state.effective_from.isoformat()} → {state.effective_to.isoformat()}"
    return f"Effective from {state.effective_from.isoformat()}"


def summarize_pricing(state: RuleFormState) -> str:
    if state.pricing_mode == "POINT":
        preview = state.points * state.point_value
        return f"{_number(state.points)} pts ≈ {format_currency(preview)}"
    return format_currency(state.base_price)


def summarize_rule(state: RuleFormState) -> dict[str, str]:
    """All summary lines keyed by section, in display order."""
    return {
        "pricing": summarize_pricing(state),
        "discount": summarize_discount(state),
        "adjustment": summarize_adjustment(state),
        "effectiveness": summarize_effectiveness(state),
    }
