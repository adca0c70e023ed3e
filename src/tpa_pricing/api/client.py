"""Async REST client for the pricing and procedures backend.

Covers the calls the rule designer needs: price-list search, procedure search,
pricing-factor and pricing-rule listings, and rule creation. Requests are sent once;
failures surface as :class:`PricingApiError` and are never retried here.
"""

from __future__ import annotations

import logging
from typing import Any, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from tpa_pricing.config import ClientConfig
from tpa_pricing.schema import (
    CreateRuleRequest,
    Page,
    PriceListSummary,
    PricingFactor,
    PricingRuleResponse,
    ProcedureSummary,
)

logger = logging.getLogger(__name__)

M = TypeVar("M", bound=BaseModel)

PRICE_LISTS_PATH = "/api/pricing/price-lists"
PRICING_FACTORS_PATH = "/api/pricing/pricing-factors"
PRICING_RULES_PATH = "/api/pricing/rules"


class PricingApiError(Exception):
    """Raised when a backend call fails. ``message`` is safe to show verbatim."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ProcedureSearchFilters(BaseModel):
    """Procedure search criteria. Blank strings count as unset."""

    keyword: str | None = None
    system_code: str | None = None
    is_surgical: bool | None = None
    requires_authorization: bool | None = None
    requires_anesthesia: bool | None = None
    is_active: bool | None = None
    min_price: float | None = None
    max_price: float | None = None
    valid_on: str | None = None
    category_id: int | None = None
    container_id: int | None = None

    def to_payload(self) -> dict[str, Any]:
        """camelCase body with unset and blank criteria dropped, strings trimmed."""
        payload: dict[str, Any] = {}
        for name, value in self.model_dump(by_alias=False).items():
            if value is None:
                continue
            if isinstance(value, str):
                value = value.strip()
                if not value:
                    continue
            head, *rest = name.split("_")
            payload[head + "".join(part.title() for part in rest)] = value
        return payload

    def is_active_search(self) -> bool:
        return bool(self.to_payload())


def clean_params(params: dict[str, Any]) -> dict[str, Any]:
    """Drop query parameters that are ``None`` or empty strings."""
    return {k: v for k, v in params.items() if v is not None and v != ""}


class PricingApiClient:
    """Thin async wrapper over the backend's REST endpoints.

    Use as an async context manager, or call :meth:`aclose` when done. Pass
    ``transport`` to route requests somewhere other than the network.
    """

    def __init__(
        self,
        config: ClientConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or ClientConfig()
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.config.api_key:
            headers["X-API-Key"] = self.config.api_key
        self._client = httpx.AsyncClient(
            base_url=self.config.normalized_base_url,
            headers=headers,
            timeout=httpx.Timeout(self.config.timeout_seconds, connect=10.0),
            transport=transport,
        )

    async def __aenter__(self) -> PricingApiClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------
    async def _request(
        self,
        method: str,
        path: str,
        error_message: str,
        params: dict[str, Any] | None = None,
        json_data: Any = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(
                method,
                path,
                params=clean_params(params) if params else None,
                json=json_data,
            )
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise PricingApiError(f"{error_message}: {e}") from e

        logger.debug("%s %s -> %d", method, path, response.status_code)
        if response.is_error:
            text = response.text.strip()
            raise PricingApiError(text or error_message, status_code=response.status_code)
        return response

    @staticmethod
    def _decode(response: httpx.Response, model: type[M], error_message: str) -> M:
        try:
            return model.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise PricingApiError(
                f"{error_message}: unexpected response body", response.status_code
            ) from e

    @staticmethod
    def _unwrap_envelope(response: httpx.Response, error_message: str) -> Any:
        """Procedure endpoints wrap results as ``{success, message, data}``."""
        try:
            envelope = response.json()
        except ValueError as e:
            raise PricingApiError(error_message, response.status_code) from e
        if not isinstance(envelope, dict):
            raise PricingApiError(error_message, response.status_code)
        if not envelope.get("success"):
            raise PricingApiError(envelope.get("message") or error_message, response.status_code)
        if envelope.get("data") is None:
            raise PricingApiError(
                "Procedures service returned an empty payload", response.status_code
            )
        return envelope["data"]

    # ------------------------------------------------------------------
    # Price lists and factors
    # ------------------------------------------------------------------
    async def search_price_lists(
        self,
        page: int = 0,
        size: int = 20,
        code: str | None = None,
        name_en: str | None = None,
        provider_type: str | None = None,
    ) -> Page[PriceListSummary]:
        error = "Failed to load price lists"
        response = await self._request(
            "GET",
            PRICE_LISTS_PATH,
            error,
            params={
                "page": page,
                "size": size,
                "code": code,
                "nameEn": name_en,
                "providerType": provider_type,
            },
        )
        return self._decode(response, Page[PriceListSummary], error)

    async def fetch_pricing_factors(self, page: int = 0, size: int = 100) -> Page[PricingFactor]:
        error = "Failed to load pricing factors"
        response = await self._request(
            "GET", PRICING_FACTORS_PATH, error, params={"page": page, "size": size}
        )
        return self._decode(response, Page[PricingFactor], error)

    # ------------------------------------------------------------------
    # Procedures
    # ------------------------------------------------------------------
    async def fetch_procedures(self, page: int = 0, size: int = 10) -> Page[ProcedureSummary]:
        error = "Unable to load procedures"
        response = await self._request(
            "GET",
            f"{self.config.procedures_path}/procedures",
            error,
            params={"page": page, "size": size},
        )
        data = self._unwrap_envelope(response, error)
        return Page[ProcedureSummary].model_validate(data)

    async def search_procedures(
        self,
        filters: ProcedureSearchFilters | None = None,
        page: int = 0,
        size: int = 10,
    ) -> Page[ProcedureSummary]:
        """Search procedures; with no active criteria this is a plain listing."""
        filters = filters or ProcedureSearchFilters()
        if not filters.is_active_search():
            return await self.fetch_procedures(page=page, size=size)

        error = "Unable to search procedures"
        response = await self._request(
            "POST",
            f"{self.config.procedures_path}/procedures/search",
            error,
            params={"page": page, "size": size},
            json_data=filters.to_payload(),
        )
        data = self._unwrap_envelope(response, error)
        return Page[ProcedureSummary].model_validate(data)

    # ------------------------------------------------------------------
    # Pricing rules
    # ------------------------------------------------------------------
    async def fetch_pricing_rules(
        self,
        page: int = 0,
        size: int = 20,
        procedure_id: int | None = None,
        price_list_id: int | None = None,
    ) -> Page[PricingRuleResponse]:
        error = "Failed to load pricing rules"
        response = await self._request(
            "GET",
            PRICING_RULES_PATH,
            error,
            params={
                "page": page,
                "size": size,
                "procedureId": procedure_id,
                "priceListId": price_list_id,
            },
        )
        return self._decode(response, Page[PricingRuleResponse], error)

    async def create_pricing_rule(self, request: CreateRuleRequest) -> PricingRuleResponse:
        """POST the compiled request once and return the created rule."""
        error = "Failed to create pricing rule"
        response = await self._request("POST", PRICING_RULES_PATH, error, json_data=request.to_wire())
        logger.info(
            "Created pricing rule for procedure %d on price list %d",
            request.procedure_id,
            request.price_list_id,
        )
        return self._decode(response, PricingRuleResponse, error)
