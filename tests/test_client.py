"""Tests for the async backend client, run against an in-memory transport."""

from __future__ import annotations

import httpx
import pytest
from conftest import BASE_URL, RecordingHandler, envelope, page

from tpa_pricing.api.client import (
    PricingApiClient,
    PricingApiError,
    ProcedureSearchFilters,
    clean_params,
)
from tpa_pricing.compiler import compile_rule
from tpa_pricing.config import ClientConfig
from tpa_pricing.form import RuleFormState

pytestmark = pytest.mark.anyio

PRICE_LIST = {
    "id": 7,
    "code": "PL-AMMAN",
    "nameEn": "Amman Hospitals",
    "providerType": "HOSPITAL",
    "isDefault": False,
    "regionName": "Amman",
    "validFrom": "2025-01-01",
    "validTo": None,
}
PROCEDURE = {
    "id": 2964,
    "systemCode": "CPT-99213",
    "nameEn": "Office visit, established patient",
    "unitOfMeasure": "VISIT",
    "referencePrice": 25.0,
}


def make_client(handler: RecordingHandler, **config: object) -> PricingApiClient:
    return PricingApiClient(
        ClientConfig(base_url=BASE_URL, **config), transport=httpx.MockTransport(handler)
    )


class TestFilters:
    def test_payload_is_camel_case_and_trimmed(self) -> None:
        filters = ProcedureSearchFilters(keyword="  knee ", system_code="", is_surgical=True, min_price=0)
        assert filters.to_payload() == {"keyword": "knee", "isSurgical": True, "minPrice": 0}
        assert filters.is_active_search()

    def test_blank_filters_inactive(self) -> None:
        assert not ProcedureSearchFilters(keyword="   ").is_active_search()

    def test_clean_params(self) -> None:
        assert clean_params({"page": 0, "code": "", "nameEn": None, "size": 20}) == {"page": 0, "size": 20}


class TestPriceLists:
    async def test_search_sends_only_set_params(self) -> None:
        handler = RecordingHandler(
            {("GET", "/api/pricing/price-lists"): lambda r: httpx.Response(200, json=page([PRICE_LIST]))}
        )
        async with make_client(handler) as client:
            result = await client.search_price_lists(name_en="Amman", code="")

        params = dict(handler.requests[0].url.params)
        assert params == {"page": "0", "size": "20", "nameEn": "Amman"}
        assert result.content[0].name_en == "Amman Hospitals"
        assert result.total_elements == 1

    async def test_headers(self) -> None:
        handler = RecordingHandler(
            {("GET", "/api/pricing/price-lists"): lambda r: httpx.Response(200, json=page([]))}
        )
        async with make_client(handler, api_key="secret") as client:
            await client.search_price_lists()
        request = handler.requests[0]
        assert request.headers["X-API-Key"] == "secret"
        assert request.headers["Accept"] == "application/json"

    async def test_error_uses_body_text(self) -> None:
        handler = RecordingHandler(
            {("GET", "/api/pricing/price-lists"): lambda r: httpx.Response(500, text="Database unavailable")}
        )
        async with make_client(handler) as client:
            with pytest.raises(PricingApiError) as exc:
                await client.search_price_lists()
        assert exc.value.message == "Database unavailable"
        assert exc.value.status_code == 500

    async def test_error_without_body_uses_default(self) -> None:
        handler = RecordingHandler(
            {("GET", "/api/pricing/price-lists"): lambda r: httpx.Response(503)}
        )
        async with make_client(handler) as client:
            with pytest.raises(PricingApiError, match="Failed to load price lists"):
                await client.search_price_lists()

    async def test_transport_failure(self) -> None:
        def boom(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        handler = RecordingHandler({("GET", "/api/pricing/price-lists"): boom})
        async with make_client(handler) as client:
            with pytest.raises(PricingApiError) as exc:
                await client.search_price_lists()
        assert exc.value.message.startswith("Failed to load price lists: ")
        assert exc.value.status_code is None

    async def test_unexpected_body(self) -> None:
        handler = RecordingHandler(
            {("GET", "/api/pricing/price-lists"): lambda r: httpx.Response(200, text="<html>")}
        )
        async with make_client(handler) as client:
            with pytest.raises(PricingApiError, match="unexpected response body"):
                await client.search_price_lists()


class TestProcedures:
    async def test_search_posts_filters(self) -> None:
        handler = RecordingHandler(
            {
                ("POST", "/api/v1/procedures/search"): lambda r: httpx.Response(
                    200, json=envelope(page([PROCEDURE], size=10))
                )
            }
        )
        async with make_client(handler) as client:
            result = await client.search_procedures(ProcedureSearchFilters(keyword="visit"), size=10)

        assert handler.bodies() == [{"keyword": "visit"}]
        assert dict(handler.requests[0].url.params) == {"page": "0", "size": "10"}
        assert result.content[0].system_code == "CPT-99213"

    async def test_no_criteria_falls_back_to_listing(self) -> None:
        handler = RecordingHandler(
            {("GET", "/api/v1/procedures"): lambda r: httpx.Response(200, json=envelope(page([PROCEDURE])))}
        )
        async with make_client(handler) as client:
            result = await client.search_procedures(ProcedureSearchFilters(keyword="  "))
        assert handler.requests[0].method == "GET"
        assert result.content[0].id == 2964

    async def test_unsuccessful_envelope(self) -> None:
        handler = RecordingHandler(
            {
                ("POST", "/api/v1/procedures/search"): lambda r: httpx.Response(
                    200, json=envelope(None, success=False, message="Invalid price range")
                )
            }
        )
        async with make_client(handler) as client:
            with pytest.raises(PricingApiError, match="Invalid price range"):
                await client.search_procedures(ProcedureSearchFilters(min_price=10, max_price=1))

    async def test_empty_envelope(self) -> None:
        handler = RecordingHandler(
            {("GET", "/api/v1/procedures"): lambda r: httpx.Response(200, json=envelope(None))}
        )
        async with make_client(handler) as client:
            with pytest.raises(PricingApiError, match="empty payload"):
                await client.fetch_procedures()

    async def test_custom_procedures_path(self) -> None:
        handler = RecordingHandler(
            {("GET", "/gateway/procedures"): lambda r: httpx.Response(200, json=envelope(page([])))}
        )
        async with make_client(handler, procedures_base_path="/gateway") as client:
            result = await client.fetch_procedures()
        assert result.content == []


class TestPricingRules:
    async def test_create_posts_compiled_payload_once(self, valid_form: RuleFormState) -> None:
        created = {"id": 501, "procedureId": 2964, "priceListId": 7, "priority": 1}
        handler = RecordingHandler(
            {("POST", "/api/pricing/rules"): lambda r: httpx.Response(201, json=created)}
        )
        request = compile_rule(valid_form)
        async with make_client(handler) as client:
            rule = await client.create_pricing_rule(request)

        assert len(handler.requests) == 1
        assert handler.bodies() == [request.to_wire()]
        assert rule.id == 501
        assert rule.procedure_id == 2964

    async def test_create_failure_message(self, valid_form: RuleFormState) -> None:
        handler = RecordingHandler(
            {
                ("POST", "/api/pricing/rules"): lambda r: httpx.Response(
                    409, text="Overlapping rule exists for this period"
                )
            }
        )
        async with make_client(handler) as client:
            with pytest.raises(PricingApiError) as exc:
                await client.create_pricing_rule(compile_rule(valid_form))
        assert exc.value.message == "Overlapping rule exists for this period"
        assert len(handler.requests) == 1

    async def test_list_rules_filters(self) -> None:
        handler = RecordingHandler(
            {("GET", "/api/pricing/rules"): lambda r: httpx.Response(200, json=page([{"id": 1}]))}
        )
        async with make_client(handler) as client:
            result = await client.fetch_pricing_rules(procedure_id=2964)
        assert dict(handler.requests[0].url.params) == {"page": "0", "size": "20", "procedureId": "2964"}
        assert result.content[0].id == 1

    async def test_pricing_factors(self) -> None:
        factor = {"id": 3, "key": "zone", "nameEn": "Zone", "dataType": "STRING", "allowedValues": "URBAN,RURAL"}
        handler = RecordingHandler(
            {("GET", "/api/pricing/pricing-factors"): lambda r: httpx.Response(200, json=page([factor]))}
        )
        async with make_client(handler) as client:
            result = await client.fetch_pricing_factors()
        assert result.content[0].allowed_values == "URBAN,RURAL"
