"""Submit gate for the rule designer.

Every failed check yields a :class:`RuleIssue` naming the edit tab that should regain
focus. Issues are reported in a fixed order: name, price list/procedure, factors,
base price. Nothing here touches the network.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from tpa_pricing.form import RuleFormState, selected_factor_entries
from tpa_pricing.schema import RuleTab

MISSING_NAME = "Rule name is required."
MISSING_SELECTION = "Select a price list and procedure before saving the rule."
NO_FACTOR_CONTEXT = (
    "Select at least one factor to give the rule context. Switch to the Factors tab to add one."
)
NEGATIVE_BASE_PRICE = "Base price cannot be negative."


class RuleIssue(BaseModel):
    """A single reason the form cannot be submitted."""

    rule: str = Field(description="Name of the check that failed")
    message: str = Field(description="Human-readable message shown to the user")
    tab: RuleTab = Field(description="Edit tab that should regain focus")


class RuleValidationResult(BaseModel):
    issues: list[RuleIssue] = Field(default_factory=list)

    @property
    def passed(self) -> bool:
        return not self.issues

    @property
    def first(self) -> RuleIssue | None:
        return self.issues[0] if self.issues else None


class RuleValidationError(ValueError):
    """The form failed the submit gate. ``message``/``tab`` are the first issue's."""

    def __init__(self, issues: list[RuleIssue]) -> None:
        if not issues:
            raise ValueError("RuleValidationError requires at least one issue")
        super().__init__(issues[0].message)
        self.issues = issues

    @property
    def message(self) -> str:
        return self.issues[0].message

    @property
    def tab(self) -> RuleTab:
        return self.issues[0].tab

    @property
    def rules(self) -> list[str]:
        return [issue.rule for issue in self.issues]


def validate_rule_form(state: RuleFormState) -> RuleValidationResult:
    """Run every submit check against a form state.

    Args:
        state: The form to check.

    Returns:
        RuleValidationResult with all issues found, in reporting order.
    """
    issues: list[RuleIssue] = []

    # --- General tab ---
    if not state.name.strip():
        issues.append(RuleIssue(rule="name_required", message=MISSING_NAME, tab="general"))

    if state.price_list_id is None or state.procedure_id is None:
        issues.append(
            RuleIssue(rule="selection_required", message=MISSING_SELECTION, tab="general")
        )

    # --- Factors tab ---
    if not selected_factor_entries(state):
        issues.append(
            RuleIssue(rule="factor_context_required", message=NO_FACTOR_CONTEXT, tab="factors")
        )

    # --- Pricing tab ---
    if state.base_price < 0:
        issues.append(
            RuleIssue(rule="non_negative_base_price", message=NEGATIVE_BASE_PRICE, tab="pricing")
        )

    return RuleValidationResult(issues=issues)


def ensure_submittable(state: RuleFormState) -> None:
    """Raise :class:`RuleValidationError` unless the form passes every check."""
    result = validate_rule_form(state)
    if not result.passed:
        raise RuleValidationError(result.issues)
