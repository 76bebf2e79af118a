"""
Unit tests for the AI module (GeminiClient).

All tests run in mock mode — no real API keys needed.
These test the client's mode handling and canned responses, not Gemini's output.
"""

import json
from unittest.mock import AsyncMock, patch

import pytest

from zwift_api.ai.gemini_client import GeminiClient, GeminiModel
from zwift_api.ai.parsing import parse_ai_json

# ─── GeminiClient ─────────────────────────────────────────────────────────────


class TestGeminiClientMockMode:
    """GeminiClient in mock mode (default in tests)."""

    def setup_method(self):
        # Force mock mode regardless of env
        import zwift_api.core.config as cfg

        self._original = cfg.settings.ai_mock_mode
        cfg.settings.ai_mock_mode = True
        self.client = GeminiClient()

    def teardown_method(self):
        import zwift_api.core.config as cfg

        cfg.settings.ai_mock_mode = self._original

    async def test_generate_returns_string(self):
        result = await self.client.generate("test prompt")
        assert isinstance(result, str)
        assert len(result) > 0

    async def test_generate_unknown_key_returns_default(self):
        result = await self.client.generate("any prompt", response_key="nonexistent_key")
        assert "MOCK" in result

    async def test_default_response_is_not_json(self):
        """Routes rely on this to exercise their fallback path in mock mode."""
        result = await self.client.generate("any prompt")
        assert parse_ai_json(result) is None

    async def test_generate_with_flash(self):
        result = await self.client.generate_with_flash("quick check", response_key="restock_product")
        data = json.loads(result)
        assert isinstance(data["nature"], str)
        assert isinstance(data["similar_types"], list)

    async def test_generate_with_pro(self):
        result = await self.client.generate_with_pro("deep analysis", response_key="profit_insights")
        assert "strategicRecommendations" in json.loads(result)

    async def test_extra_generation_options_are_accepted(self):
        result = await self.client.generate(
            "prompt",
            model=GeminiModel.PRO,
            system_instruction="You are terse.",
            temperature=0.2,
            max_output_tokens=100,
        )
        assert isinstance(result, str)

    @pytest.mark.parametrize("action", [
        "restock_suggestions",
        "categorize_products",
        "price_optimization",
        "demand_forecast",
    ])
    async def test_inventory_mocks_are_json_arrays(self, action):
        result = await self.client.generate("p", response_key=f"inventory_{action}")
        assert isinstance(json.loads(result), list)

    async def test_smart_insights_mock_is_object(self):
        result = await self.client.generate("p", response_key="inventory_smart_insights")
        assert "criticalInsights" in json.loads(result)

    @pytest.mark.parametrize("action, expected", [
        ("performance_analysis", dict),
        ("optimization_recommendations", list),
        ("predictive_forecast", dict),
        ("investment_strategy", dict),
        ("competitive_analysis", dict),
    ])
    async def test_roi_mocks_parse(self, action, expected):
        result = await self.client.generate("p", response_key=f"roi_{action}")
        assert isinstance(json.loads(result), expected)

    async def test_chat_returns_canned_answer(self):
        result = await self.client.chat([{"role": "user", "content": "What is low on stock?"}])
        assert "MOCK" in result

    async def test_chat_maps_assistant_turns_to_model_role(self):
        generate = AsyncMock(return_value="ok")
        with patch.object(self.client, "generate", generate):
            await self.client.chat(
                [
                    {"role": "user", "content": "Hi"},
                    {"role": "assistant", "content": "Hello, how can I help?"},
                    {"role": "user", "content": "Count the products"},
                ],
                temperature=0.1,
            )

        contents = generate.await_args.args[0]
        assert [turn["role"] for turn in contents] == ["user", "model", "user"]
        assert contents[2]["parts"] == ["Count the products"]
        assert generate.await_args.kwargs["response_key"] == "chat"
        assert generate.await_args.kwargs["temperature"] == 0.1


class TestGeminiClientFallbackToMock:
    def test_real_mode_without_key_falls_back_to_mock(self):
        import zwift_api.core.config as cfg

        original_mode = cfg.settings.ai_mock_mode
        original_key = cfg.settings.gemini_api_key
        cfg.settings.ai_mock_mode = False
        cfg.settings.gemini_api_key = ""
        try:
            client = GeminiClient()
            assert client.mock_mode is True
        finally:
            cfg.settings.ai_mock_mode = original_mode
            cfg.settings.gemini_api_key = original_key


def test_model_names():
    assert GeminiModel.PRO.value == "gemini-1.5-pro"
    assert GeminiModel.FLASH.value == "gemini-1.5-flash"
