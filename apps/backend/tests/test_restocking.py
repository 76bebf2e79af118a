"""
test_restocking.py — Tests for POST /api/ai-restocking-suggestions.

Verifies the happy path in mock mode, strict validation of the model's
JSON (no fallback on this route), and request validation.
"""

from unittest.mock import AsyncMock, patch

import pytest

from zwift_api.ai.gemini_client import gemini_client
from zwift_api.core.request_queue import QueueFullError
from zwift_api.models.insights import RestockingRequest
from zwift_api.routes.restocking import build_prompt

_URL = "/api/ai-restocking-suggestions"

_BODY = {
    "productName": "Cola 330ml",
    "categoryName": "Drinks",
    "currentStock": 4,
    "minStock": 24,
    "salesVelocity": 6.5,
    "totalQuantitySold": 195,
    "totalSalesCount": 140,
    "salesPeriodDays": 30,
}


async def _post_with_answer(client, answer):
    with patch.object(gemini_client, "generate", AsyncMock(return_value=answer)):
        return await client.post(_URL, json=_BODY)


class TestRestockingSuggestions:
    async def test_mock_answer_is_returned(self, client):
        r = await client.post(_URL, json=_BODY)
        assert r.status_code == 200

        data = r.json()
        assert isinstance(data["nature"], str)
        assert isinstance(data["similar_types"], list)
        assert data["suggested_restock_quantity"] == 20

    async def test_fenced_answer_is_accepted(self, client):
        answer = '```json\n{"nature": "Carbonated drink", "similar_types": ["juices"], "suggested_restock_quantity": 48}\n```'
        r = await _post_with_answer(client, answer)

        assert r.status_code == 200
        assert r.json() == {
            "nature": "Carbonated drink",
            "similar_types": ["juices"],
            "suggested_restock_quantity": 48,
        }

    async def test_quantity_is_optional(self, client):
        r = await _post_with_answer(client, '{"nature": "Snack", "similar_types": []}')

        assert r.status_code == 200
        assert r.json()["suggested_restock_quantity"] is None

    async def test_uses_flash_settings(self, client):
        generate = AsyncMock(return_value='{"nature": "Snack", "similar_types": []}')
        with patch.object(gemini_client, "generate", generate):
            await client.post(_URL, json=_BODY)

        kwargs = generate.await_args.kwargs
        assert kwargs["temperature"] == 0.5
        assert kwargs["max_output_tokens"] == 250


class TestRestockingInvalidAnswers:
    async def test_invalid_json_returns_500(self, client):
        r = await _post_with_answer(client, "I think you should order about 40 units.")

        assert r.status_code == 500
        assert r.json()["detail"] == "AI response was not valid JSON"

    @pytest.mark.parametrize("answer", [
        '{"similar_types": ["juices"], "suggested_restock_quantity": 10}',
        '{"nature": "Drink", "similar_types": "juices"}',
        '{"nature": "Drink", "similar_types": [], "suggested_restock_quantity": "ten"}',
        '{"nature": "Drink", "similar_types": [], "suggested_restock_quantity": true}',
        '["Drink"]',
    ])
    async def test_wrong_structure_returns_500(self, client, answer):
        r = await _post_with_answer(client, answer)

        assert r.status_code == 500
        assert r.json()["detail"] == "AI response has unexpected structure"


class TestRestockingErrors:
    async def test_upstream_429_is_reported(self, client):
        with patch.object(gemini_client, "generate", AsyncMock(side_effect=Exception("429 rate limited"))):
            r = await client.post(_URL, json=_BODY)

        assert r.status_code == 429

    async def test_full_queue_returns_503(self, client, ai_queue):
        with patch.object(ai_queue, "enqueue", side_effect=QueueFullError(10)):
            r = await client.post(_URL, json=_BODY)

        assert r.status_code == 503

    @pytest.mark.parametrize("field, value", [
        ("productName", ""),
        ("salesVelocity", -1),
        ("salesPeriodDays", 0),
        ("productDescription", "x" * 1001),
    ])
    async def test_invalid_request_returns_422(self, client, field, value):
        r = await client.post(_URL, json={**_BODY, field: value})
        assert r.status_code == 422

    async def test_missing_field_returns_422(self, client):
        body = {k: v for k, v in _BODY.items() if k != "minStock"}
        r = await client.post(_URL, json=body)
        assert r.status_code == 422


class TestBuildPrompt:
    def test_prompt_includes_sales_figures(self):
        prompt = build_prompt(RestockingRequest(**_BODY))

        assert "Product Name: Cola 330ml" in prompt
        assert "Sales Velocity (units/day, last 30 days): 6.50" in prompt
        assert "Product Description" not in prompt

    def test_description_is_included_when_given(self):
        prompt = build_prompt(RestockingRequest(**_BODY, productDescription="Classic cola, 330ml can"))
        assert "Product Description: Classic cola, 330ml can" in prompt
