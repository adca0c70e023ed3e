"""Shared test fixtures for the pricing-rule tooling tests."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import date

import httpx
import pytest

from tpa_pricing.config import ClientConfig
from tpa_pricing.form import RuleFormState

TODAY = date(2025, 6, 15)
BASE_URL = "http://pricing.test"


@pytest.fixture(scope="module")
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def valid_form() -> RuleFormState:
    """A minimal form that passes the submit gate."""
    return RuleFormState(
        name="Specialist consult — Amman",
        price_list_id=7,
        procedure_id=2964,
        effective_from=date(2025, 1, 1),
        base_price=30.0,
        factors={"doctor_title": "SPECIALIST"},
    )


@pytest.fixture
def client_config() -> ClientConfig:
    return ClientConfig(base_url=BASE_URL)


def page(content: list[dict], number: int = 0, size: int = 20) -> dict:
    """A Spring-style page body."""
    return {
        "content": content,
        "totalPages": 1,
        "totalElements": len(content),
        "number": number,
        "size": size,
        "first": True,
        "last": True,
    }


def envelope(data: object, success: bool = True, message: str = "OK") -> dict:
    """The procedures service response wrapper."""
    return {"success": success, "code": 200, "message": message, "data": data, "timestamp": "2025-06-15T10:00:00"}


class RecordingHandler:
    """An httpx.MockTransport handler that records requests and replays a route table."""

    def __init__(self, routes: dict[tuple[str, str], Callable[[httpx.Request], httpx.Response]]):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, text=f"No route for {request.method} {request.url.path}")
        return handler(request)

    def bodies(self) -> list[dict]:
        return [json.loads(r.content) for r in self.requests if r.content]
