"""Rule designer session.

Holds the current form, the focused edit tab, and the single in-flight submission.
Submitting compiles the form, sends it once, and either resets the form (success)
or keeps every entered value so the user can fix and resubmit (failure).
"""

from __future__ import annotations

import logging
from datetime import date

from pydantic import BaseModel, Field

from tpa_pricing.api.client import PricingApiClient, PricingApiError, ProcedureSearchFilters
from tpa_pricing.api.search import LatestOnlySearch
from tpa_pricing.compiler import compile_rule
from tpa_pricing.config import PricingConfig
from tpa_pricing.factor_values import FactorValueError, FactorValueParser, LenientFactorValueParser
from tpa_pricing.form import (
    FormAction,
    ResetForm,
    RuleFormState,
    SetField,
    build_initial_rule_form,
    update_rule_form,
)
from tpa_pricing.schema import Page, PriceListSummary, PricingRuleResponse, ProcedureSummary, RuleTab
from tpa_pricing.validate import RuleValidationError

logger = logging.getLogger(__name__)

SUBMISSION_IN_PROGRESS = "Submission already in progress"


class SubmissionResult(BaseModel):
    """Outcome of one submit attempt."""

    ok: bool
    rule: PricingRuleResponse | None = None
    error: str | None = Field(default=None, description="Message to show verbatim")
    tab: RuleTab | None = Field(default=None, description="Tab to focus after a validation error")
    issues: list[str] = Field(default_factory=list, description="Failed check names")


class RuleDesigner:
    """Interactive session around one rule form.

    Args:
        client: Backend client used for lookups and rule creation.
        config: Tooling configuration; defaults apply when omitted.
        parser: Factor value parser passed to the compiler.
        today: Date used for fresh forms; defaults to the current date.
    """

    def __init__(
        self,
        client: PricingApiClient,
        config: PricingConfig | None = None,
        parser: FactorValueParser | None = None,
        today: date | None = None,
    ) -> None:
        self.client = client
        self.config = config or PricingConfig()
        self.parser = parser or LenientFactorValueParser()
        self._today = today
        self.state: RuleFormState = build_initial_rule_form(today, self.config.designer)
        self.active_tab: RuleTab = "general"
        self.submitting = False
        self.last_error: str | None = None

        debounce = self.config.search.debounce_seconds
        self.price_list_search: LatestOnlySearch[str, Page[PriceListSummary]] = LatestOnlySearch(
            self._fetch_price_lists, debounce
        )
        self.procedure_search: LatestOnlySearch[str, Page[ProcedureSummary]] = LatestOnlySearch(
            self._fetch_procedures, debounce
        )

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------
    def dispatch(self, action: FormAction) -> RuleFormState:
        self.state = update_rule_form(self.state, action, self.config.designer)
        return self.state

    def focus(self, tab: RuleTab) -> None:
        self.active_tab = tab

    def select_price_list(self, price_list: PriceListSummary | None) -> RuleFormState:
        return self.dispatch(SetField(field="price_list_id", value=price_list.id if price_list else None))

    def select_procedure(self, procedure: ProcedureSummary | None) -> RuleFormState:
        return self.dispatch(SetField(field="procedure_id", value=procedure.id if procedure else None))

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------
    async def _fetch_price_lists(self, text: str) -> Page[PriceListSummary]:
        text = text.strip()
        return await self.client.search_price_lists(
            size=self.config.search.price_list_page_size,
            name_en=text or None,
        )

    async def _fetch_procedures(self, text: str) -> Page[ProcedureSummary]:
        return await self.client.search_procedures(
            ProcedureSearchFilters(keyword=text),
            size=self.config.search.procedure_page_size,
        )

    async def search_price_lists(self, text: str) -> Page[PriceListSummary] | None:
        """Debounced price-list lookup; ``None`` when a newer lookup replaced it."""
        return await self.price_list_search.search_latest(text)

    async def search_procedures(self, text: str) -> Page[ProcedureSummary] | None:
        """Debounced procedure lookup; ``None`` when a newer lookup replaced it."""
        return await self.procedure_search.search_latest(text)

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------
    async def submit(self) -> SubmissionResult:
        """Compile and send the current form once.

        Returns:
            SubmissionResult. Validation failures carry the tab to focus; backend
            failures carry the server message. Neither alters the form.
        """
        if self.submitting:
            logger.debug("Submit ignored: a submission is already in flight")
            return SubmissionResult(ok=False, error=SUBMISSION_IN_PROGRESS)

        try:
            request = compile_rule(self.state, self.parser)
        except RuleValidationError as e:
            self.last_error = e.message
            self.active_tab = e.tab
            return SubmissionResult(ok=False, error=e.message, tab=e.tab, issues=e.rules)
        except FactorValueError as e:
            self.last_error = str(e)
            self.active_tab = "factors"
            return SubmissionResult(ok=False, error=str(e), tab="factors", issues=["factor_value"])

        self.submitting = True
        try:
            rule = await self.client.create_pricing_rule(request)
        except PricingApiError as e:
            logger.warning("Rule submission failed: %s", e.message)
            self.last_error = e.message
            return SubmissionResult(ok=False, error=e.message)
        finally:
            self.submitting = False

        self.last_error = None
        self.dispatch(ResetForm(today=self._today))
        self.active_tab = "summary"
        return SubmissionResult(ok=True, rule=rule)
