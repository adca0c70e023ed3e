"""Pricing-rule tooling for a health-insurance TPA platform."""

from tpa_pricing.compiler import compile_rule, compile_rule_payload
from tpa_pricing.form import RuleFormState, build_initial_rule_form, update_rule_form
from tpa_pricing.validate import RuleValidationError, validate_rule_form

__version__ = "0.1.0"

__all__ = [
    "RuleFormState",
    "RuleValidationError",
    "build_initial_rule_form",
    "compile_rule",
    "compile_rule_payload",
    "update_rule_form",
    "validate_rule_form",
]
