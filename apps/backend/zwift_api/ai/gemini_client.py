"""
GeminiClient — Async wrapper around Google Generative AI SDK.

Every AI feature of the POS dashboard (inventory insights, ROI insights,
profit insights, restocking suggestions, the chat assistant) goes through this
client, and every route calls it from inside the AI request queue — never
directly.

Supports two models:
  - GeminiModel.PRO   → deeper financial analysis (ROI, profit)
  - GeminiModel.FLASH → short structured answers (inventory, restocking, chat)

Supports two runtime modes (set via AI_MOCK_MODE env var):
  - MOCK mode (default): returns deterministic canned responses.
    Use for tests and local dev without API keys.
  - REAL mode: makes actual Gemini API calls.
    Requires GEMINI_API_KEY to be set.

Extension pattern: add new mock response keys to _MOCK_RESPONSES and
reference them in generate() calls via the response_key parameter.
"""

import logging
from enum import Enum
from typing import Any, Optional, Union

from zwift_api.core.config import settings

logger = logging.getLogger(__name__)


class GeminiModel(str, Enum):
    PRO = "gemini-1.5-pro"
    FLASH = "gemini-1.5-flash"


# Canned responses for mock mode.
# Keys map to response_key arguments in generate() calls.
# Inventory keys are "inventory_<action>", ROI keys are "roi_<action>".
_MOCK_RESPONSES: dict[str, str] = {
    "default": (
        "[MOCK] This is a placeholder Gemini response. "
        "Set AI_MOCK_MODE=false and provide GEMINI_API_KEY for real responses."
    ),
    # ── Inventory insights ────────────────────────────────────────────────────
    "inventory_restock_suggestions": (
        '[{"productId": "mock-1", "productName": "[MOCK] Sample product", '
        '"recommendedQuantity": 24, '
        '"reasoning": "Sales velocity over the last 30 days exceeds current stock cover.", '
        '"urgency": "High", "seasonalNotes": "No seasonal pattern detected in mock mode."}]'
    ),
    "inventory_categorize_products": (
        '[{"productId": "mock-1", "productName": "[MOCK] Sample product", '
        '"suggestedCategory": "General", "newCategory": null, '
        '"confidence": 0.6, "alternatives": ["Miscellaneous"]}]'
    ),
    "inventory_price_optimization": (
        '[{"productId": "mock-1", "productName": "[MOCK] Sample product", '
        '"currentPrice": 10.0, "suggestedPrice": 10.5, '
        '"reasoning": "Demand is stable; a small increase should not hurt volume.", '
        '"expectedImpact": "Roughly 5% more margin per unit."}]'
    ),
    "inventory_demand_forecast": (
        '[{"productId": "mock-1", "productName": "[MOCK] Sample product", '
        '"demand7Days": 12, "demand30Days": 48, "trend": "stable", '
        '"riskFactors": ["Limited sales history"]}]'
    ),
    "inventory_smart_insights": (
        '{"criticalInsights": ["[MOCK] Several products are below minimum stock."], '
        '"causes": ["Reorders lag behind sales velocity."], '
        '"immediateActions": ["Reorder items with zero stock first."], '
        '"longTermStrategy": ["Set minimum stock from 14 days of average sales."]}'
    ),
    # ── ROI insights ──────────────────────────────────────────────────────────
    "roi_performance_analysis": (
        '{"overallAssessment": "[MOCK] ROI is positive and broadly stable.", '
        '"performanceRating": "Good", '
        '"keyStrengths": ["Consistent monthly revenue"], '
        '"concernAreas": ["Investment payback is slower than target"], '
        '"trendAnalysis": "Flat to slightly rising over the last quarter.", '
        '"industryComparison": "Within the typical range for small retail.", '
        '"riskLevel": "Medium", "confidenceScore": 0.7}'
    ),
    "roi_optimization_recommendations": (
        '[{"category": "Operations", '
        '"recommendation": "[MOCK] Cut slow-moving stock to free working capital.", '
        '"impact": "Medium", "effort": "Low", "timeframe": "Short-term", '
        '"expectedROIImprovement": "3-5%", '
        '"implementation": ["List items with no sales in 60 days", "Discount or return them"]}]'
    ),
    "roi_predictive_forecast": (
        '{"forecast3Months": {"expectedROI": 10, "confidence": 0.7, "factors": ["[MOCK] Recent trend"]}, '
        '"forecast6Months": {"expectedROI": 11, "confidence": 0.6, "factors": ["Seasonality"]}, '
        '"forecast12Months": {"expectedROI": 12, "confidence": 0.5, "factors": ["Growth plans"]}, '
        '"scenarios": {"conservative": 8, "realistic": 10, "optimistic": 13}, '
        '"keyVariables": ["Revenue growth"], "seasonalFactors": ["Holiday peak"], '
        '"monitoringMetrics": ["Monthly ROI"]}'
    ),
    "roi_investment_strategy": (
        '{"currentAllocationAnalysis": "[MOCK] Most capital sits in inventory.", '
        '"allocationEffectiveness": "Medium", '
        '"recommendedAllocations": [{"category": "Inventory", "currentPercentage": 70, '
        '"recommendedPercentage": 60, "reasoning": "Reduce idle stock"}], '
        '"investmentPriorities": [{"priority": "High", "area": "Fast movers", '
        '"expectedReturn": "10-15%", "timeframe": "3-6 months"}], '
        '"strategicOpportunities": ["Bundle slow movers"], "riskMitigation": ["Keep a cash buffer"]}'
    ),
    "roi_competitive_analysis": (
        '{"marketPosition": "Average", '
        '"competitiveAdvantages": ["[MOCK] Loyal local customers"], '
        '"competitiveDisadvantages": ["Narrow product range"], '
        '"marketOpportunities": ["Online ordering"], '
        '"benchmarkComparison": {"industryAverageROI": "12-15%", '
        '"performanceVsIndustry": "At", "percentilRanking": "50th percentile"}, '
        '"strategicRecommendations": ["Widen the best-selling category"], '
        '"marketThreats": ["Discount chains nearby"]}'
    ),
    # ── Profit insights ───────────────────────────────────────────────────────
    "profit_insights": (
        '{"strategicRecommendations": ["[MOCK] Push high-margin products at the till."], '
        '"riskAssessment": {"level": "medium", "factors": ["Margin concentrated in few products"]}, '
        '"actionPlan": [{"priority": "high", "action": "Review low-margin pricing", '
        '"timeline": "This week", "expectedImpact": "2-4% margin"}], '
        '"marketingInsights": ["Bundle accessories with top sellers"], '
        '"operationalEfficiency": ["Reorder on sales velocity, not gut feel"], '
        '"competitiveAdvantage": "Fast, friendly checkout"}'
    ),
    # ── Chat assistant ────────────────────────────────────────────────────────
    "chat": (
        "[MOCK] Here is what the inventory data shows: a few products are at or "
        "below their minimum stock. Reorder those first, starting with the ones "
        "that are completely out of stock."
    ),
    # ── Restocking suggestions (single product) ───────────────────────────────
    "restock_product": (
        '{"nature": "[MOCK] Fast-moving everyday item", '
        '"similar_types": ["related consumables", "store-brand alternatives"], '
        '"suggested_restock_quantity": 20}'
    ),
}


class GeminiClient:
    """
    Central Gemini interface for the POS AI backend.

    Why centralise: single place for model swaps, cost logging and mock
    injection. Pacing lives in the request queue, not here. Don't
    instantiate per-request; use the module-level `gemini_client` singleton.
    """

    def __init__(self) -> None:
        self.mock_mode = settings.ai_mock_mode

        if not self.mock_mode:
            if not settings.gemini_api_key:
                logger.warning(
                    "GEMINI_API_KEY not set — falling back to mock mode. "
                    "Set AI_MOCK_MODE=true to silence this warning."
                )
                self.mock_mode = True
            else:
                # Lazy import: only pull in the heavy SDK if we're in real mode
                import google.generativeai as genai  # noqa: PLC0415

                genai.configure(api_key=settings.gemini_api_key)
                self._genai = genai

        if self.mock_mode:
            logger.info("GeminiClient initialised in MOCK mode")
        else:
            logger.info("GeminiClient initialised in REAL mode (model: gemini-1.5-*)")

    async def generate(
        self,
        prompt: Union[str, list[dict[str, Any]]],
        model: GeminiModel = GeminiModel.FLASH,
        response_key: str = "default",
        system_instruction: Optional[str] = None,
        temperature: Optional[float] = None,
        max_output_tokens: Optional[int] = None,
        **generation_kwargs: Any,
    ) -> str:
        """
        Generate text from a Gemini model.

        Args:
            prompt:             The full prompt string, or a list of chat turns.
            model:              Which Gemini model to use.
            response_key:       Mock response key (ignored in real mode).
            system_instruction: Optional system prompt for the model.
            temperature:        Sampling temperature (None = model default).
            max_output_tokens:  Cap on generated tokens (None = model default).
            **generation_kwargs: Passed through to GenerativeModel.generate_content_async().

        Returns:
            Generated text string.

        Raises:
            Exception: Propagates Gemini SDK errors in real mode
                       (google.api_core exceptions carry the HTTP status in `.code`).
        """
        if self.mock_mode:
            return _MOCK_RESPONSES.get(response_key, _MOCK_RESPONSES["default"])

        generation_config: dict[str, Any] = {}
        if temperature is not None:
            generation_config["temperature"] = temperature
        if max_output_tokens is not None:
            generation_config["max_output_tokens"] = max_output_tokens

        try:
            gemini_model = self._genai.GenerativeModel(
                model.value,
                system_instruction=system_instruction,
            )
            response = await gemini_model.generate_content_async(
                prompt,
                generation_config=generation_config or None,
                **generation_kwargs,
            )
            return response.text
        except Exception as exc:
            logger.error("Gemini API error (model=%s): %s", model.value, exc)
            raise

    async def generate_with_flash(self, prompt: str, response_key: str = "default", **kwargs: Any) -> str:
        """Short structured answers with Gemini Flash (low latency, lower cost)."""
        return await self.generate(prompt, model=GeminiModel.FLASH, response_key=response_key, **kwargs)

    async def generate_with_pro(self, prompt: str, response_key: str = "default", **kwargs: Any) -> str:
        """Financial analysis with Gemini Pro (higher quality, higher cost)."""
        return await self.generate(prompt, model=GeminiModel.PRO, response_key=response_key, **kwargs)

    async def chat(
        self,
        messages: list[dict[str, str]],
        model: GeminiModel = GeminiModel.FLASH,
        response_key: str = "chat",
        **kwargs: Any,
    ) -> str:
        """
        Continue a multi-turn conversation.

        `messages` are {"role": "user" | "assistant", "content": str} dicts,
        oldest first. Gemini calls the assistant side "model".
        """
        contents = [
            {"role": "model" if m["role"] == "assistant" else "user", "parts": [m["content"]]}
            for m in messages
        ]
        return await self.generate(contents, model=model, response_key=response_key, **kwargs)


# Module-level singleton — import and use this everywhere
gemini_client = GeminiClient()
