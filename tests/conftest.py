from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Mapping, Optional

import httpx
import pytest

from storefront.payments import PaymentProvider


class FakeProvider(PaymentProvider):
    """Records every call; failures are switched on per test."""

    def __init__(self, prices: Optional[Dict[str, str]] = None) -> None:
        self.prices = dict(prices or {})
        self.lookups: List[str] = []
        self.created: List[Dict[str, Any]] = []
        self.retrieved: List[str] = []
        self.verified: List[bytes] = []
        self.fail_create: Optional[Exception] = None
        self.fail_retrieve: Optional[Exception] = None
        self.event: Optional[Mapping[str, Any]] = None
        self.fail_verify: Optional[Exception] = None

    def find_active_price(self, provider_product_id: str) -> str:
        self.lookups.append(provider_product_id)
        if provider_product_id not in self.prices:
            raise LookupError(f"no price for {provider_product_id}")
        return self.prices[provider_product_id]

    def create_session(self, params: Dict[str, Any]) -> Mapping[str, Any]:
        if self.fail_create is not None:
            raise self.fail_create
        self.created.append(params)
        return {"id": f"cs_test_{len(self.created)}"}

    def retrieve_session(self, session_id: str) -> Mapping[str, Any]:
        self.retrieved.append(session_id)
        if self.fail_retrieve is not None:
            raise self.fail_retrieve
        return {"id": session_id, "payment_status": "paid"}

    def verify_webhook(self, payload: bytes, signature: str) -> Mapping[str, Any]:
        self.verified.append(payload)
        if self.fail_verify is not None:
            raise self.fail_verify
        return self.event or {}


class StatsService:
    """Scripted /metrics/* endpoints for an httpx.MockTransport."""

    def __init__(self) -> None:
        self.requests: List[httpx.Request] = []
        self.stats: Any = {"online": 3, "total": 42}
        self.visit: Any = {"total": 43}
        self.down = False
        # when set, heartbeats are held until the event fires
        self.heartbeat_gate: Optional[asyncio.Event] = None

    def count(self, path: str) -> int:
        return sum(1 for r in self.requests if r.url.path == path)

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if (self.heartbeat_gate is not None
                and request.url.path == "/metrics/heartbeat"):
            await self.heartbeat_gate.wait()
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)
        if request.url.path == "/metrics/stats":
            return httpx.Response(200, json=self.stats)
        if request.url.path == "/metrics/visit":
            return httpx.Response(200, json=self.visit)
        if request.url.path == "/metrics/heartbeat":
            return httpx.Response(200, json={"ok": True})
        return httpx.Response(404, json={"error": "not found"})

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))


class RecordingSink:
    def __init__(self) -> None:
        self.texts: List[str] = []

    def set_text(self, text: str) -> None:
        self.texts.append(text)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def stats_service() -> StatsService:
    return StatsService()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()
