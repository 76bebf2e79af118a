"""
test_inventory_insights.py — Tests for POST /api/ai-inventory-insights.

Runs in mock AI mode with the in-memory FakeStore from conftest. Gemini is
patched per test where a specific model answer (or failure) is needed.
"""

import asyncio
from unittest.mock import AsyncMock, patch

from zwift_api.ai.gemini_client import gemini_client
from zwift_api.core.request_queue import QueueFullError, RateLimitedRequestQueue, get_ai_queue
from zwift_api.routes.inventory_insights import build_prompt

_URL = "/api/ai-inventory-insights"

_PRODUCTS = [
    {"id": "p1", "name": "Cola 330ml", "stock": 0, "min_stock": 12, "price": 1.5, "category_id": "c1"},
    {"id": "p2", "name": "Sea Salt Crisps", "stock": 3, "min_stock": 10, "price": 1.2, "category_id": None},
]


class UpstreamError(Exception):
    def __init__(self, message, status_code):
        super().__init__(message)
        self.status_code = status_code


async def _post(client, action="restock_suggestions", products=_PRODUCTS):
    return await client.post(_URL, json={"products": products, "action": action})


# ── Happy path ────────────────────────────────────────────────────────────────

class TestInventoryInsights:
    async def test_restock_suggestions_returns_result_array(self, client):
        r = await _post(client)
        assert r.status_code == 200

        result = r.json()["result"]
        assert isinstance(result, list)
        assert {"productId", "recommendedQuantity", "urgency"} <= result[0].keys()

    async def test_smart_insights_returns_object(self, client):
        r = await _post(client, action="smart_insights")
        assert r.status_code == 200
        assert "criticalInsights" in r.json()["result"]

    async def test_reads_recent_sales(self, client, fake_store):
        await _post(client)
        assert ("recent_sales", 30) in fake_store.calls

    async def test_categorize_reads_categories(self, client, fake_store):
        r = await _post(client, action="categorize_products")
        assert r.status_code == 200
        assert ("list_categories", 20) in fake_store.calls

    async def test_other_actions_do_not_read_categories(self, client, fake_store):
        await _post(client, action="price_optimization")
        assert not any(call[0] == "list_categories" for call in fake_store.calls)

    async def test_invalid_action_returns_422(self, client):
        r = await _post(client, action="delete_everything")
        assert r.status_code == 422

    async def test_missing_products_returns_422(self, client):
        r = await client.post(_URL, json={"action": "smart_insights"})
        assert r.status_code == 422

    async def test_call_goes_through_the_queue(self, client, ai_queue):
        await _post(client)
        assert ai_queue.stats()["dispatched"] == 1


# ── Fallbacks ─────────────────────────────────────────────────────────────────

class TestInventoryFallbacks:
    async def test_prose_answer_falls_back_to_stock_heuristics(self, client):
        with patch.object(gemini_client, "generate", AsyncMock(return_value="Sorry, I cannot help.")):
            r = await _post(client)

        assert r.status_code == 200
        result = r.json()["result"]
        assert [item["productId"] for item in result] == ["p1", "p2"]
        assert result[0]["urgency"] == "High"
        assert result[0]["recommendedQuantity"] == 24
        assert result[1]["urgency"] == "Medium"

    async def test_prose_smart_insights_falls_back_to_canned_object(self, client):
        with patch.object(gemini_client, "generate", AsyncMock(return_value="no json here")):
            r = await _post(client, action="smart_insights")

        assert r.status_code == 200
        assert r.json()["result"]["criticalInsights"]

    async def test_fenced_json_is_accepted(self, client):
        answer = '```json\n[{"productId": "p1", "demand7Days": 4}]\n```'
        with patch.object(gemini_client, "generate", AsyncMock(return_value=answer)):
            r = await _post(client, action="demand_forecast")

        assert r.json()["result"] == [{"productId": "p1", "demand7Days": 4}]


# ── Errors ────────────────────────────────────────────────────────────────────

class TestInventoryErrors:
    async def test_upstream_rate_limit_returns_429(self, client):
        failing = AsyncMock(side_effect=UpstreamError("Too Many Requests", 429))
        with patch.object(gemini_client, "generate", failing):
            r = await _post(client)

        assert r.status_code == 429
        assert "rate limit" in r.json()["detail"].lower()
        assert r.headers["retry-after"] == "30"

    async def test_full_queue_returns_503(self, client, ai_queue):
        with patch.object(ai_queue, "enqueue", side_effect=QueueFullError(10)):
            r = await _post(client)

        assert r.status_code == 503
        assert r.json()["detail"] == "Request queue is full. Please try again in a few moments."
        assert r.headers["retry-after"] == "30"

    async def test_unknown_failure_returns_500(self, client):
        with patch.object(gemini_client, "generate", AsyncMock(side_effect=RuntimeError("?"))):
            r = await _post(client)

        assert r.status_code == 500
        assert r.json()["detail"] == "AI inventory analysis temporarily unavailable"

    async def test_concurrent_burst_beyond_capacity_gets_503(self, client):
        """1 in flight + 2 waiting fit; a fourth simultaneous request is turned away."""
        from zwift_api.main import app

        small_queue = RateLimitedRequestQueue(min_interval=0.0, max_queue_size=2, max_wait=5.0, retry_delay=0.01)
        app.dependency_overrides[get_ai_queue] = lambda: small_queue

        async def slow_generate(*args, **kwargs):
            await asyncio.sleep(0.2)
            return "[]"

        with patch.object(gemini_client, "generate", side_effect=slow_generate):
            responses = await asyncio.gather(*[_post(client) for _ in range(4)])

        codes = sorted(r.status_code for r in responses)
        assert codes.count(503) >= 1
        assert codes.count(200) >= 2
        await small_queue.close()


# ── Prompt building ───────────────────────────────────────────────────────────

class TestBuildPrompt:
    def test_categorize_only_includes_uncategorised_products(self):
        prompt = build_prompt("categorize_products", _PRODUCTS, [], [{"id": "c1", "name": "Drinks"}])

        assert "Sea Salt Crisps" in prompt
        assert "Cola 330ml" not in prompt
        assert "Drinks" in prompt

    def test_product_list_is_capped(self):
        products = [{"id": f"p{i}", "name": f"Product-{i:02d}"} for i in range(20)]

        prompt = build_prompt("restock_suggestions", products, [], [])
        assert "Product-09" in prompt
        assert "Product-10" not in prompt

        prompt = build_prompt("smart_insights", products, [], [])
        assert "Product-14" in prompt
        assert "Product-15" not in prompt

    def test_demand_forecast_includes_current_date(self):
        prompt = build_prompt("demand_forecast", _PRODUCTS, [], [])
        assert "Current Date:" in prompt
