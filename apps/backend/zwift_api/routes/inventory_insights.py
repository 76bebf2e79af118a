"""
inventory_insights.py — AI analysis of low-stock / uncategorised products.

Route:
  POST /api/ai-inventory-insights

Actions:
  restock_suggestions  — how much to reorder, and how urgently
  categorize_products  — category for products with no category_id
  price_optimization   — price changes given margin and sales velocity
  demand_forecast      — expected demand over the next 7 / 30 days
  smart_insights       — overall diagnosis of the stock situation

HOW IT WORKS
────────────
1. Last 30 days of sales (with sale_items) are read from Supabase.
   categorize_products also reads up to 20 existing categories.
2. A JSON-only prompt is built from at most 10 products (15 for
   smart_insights) and a slice of the sales rows.
3. The Gemini call is submitted to the process AI queue, which spaces
   calls out and rejects when too many are waiting (→ 503).
4. The answer is parsed as JSON. If the model returned prose instead,
   a deterministic fallback is returned so the dashboard still renders.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends

from zwift_api.ai.gemini_client import gemini_client
from zwift_api.ai.parsing import parse_ai_json
from zwift_api.core.errors import raise_for_ai_error
from zwift_api.core.request_queue import RateLimitedRequestQueue, get_ai_queue
from zwift_api.models.insights import InsightsResponse, InventoryInsightsRequest
from zwift_api.services.fallbacks import inventory_fallback
from zwift_api.services.supabase_store import SupabaseStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai-inventory-insights", tags=["ai-insights"])

_SYSTEM_PROMPT = (
    "You are an AI inventory management expert. Provide practical, data-driven "
    "recommendations in valid JSON format only. Do not include any explanatory "
    "text outside the JSON."
)

# ── Prompt templates ───────────────────────────────────────────────────────────

_RESTOCK_PROMPT = """\
Analyze these low stock products and provide intelligent restocking suggestions:

Products: {products}
Recent Sales Data: {sales}

For each product, provide:
1. Recommended restock quantity based on sales velocity
2. Reasoning based on sales patterns
3. Urgency level (High/Medium/Low)
4. Seasonal considerations if applicable

Return ONLY a JSON array with this exact structure:
[
  {{
    "productId": "string",
    "productName": "string",
    "recommendedQuantity": number,
    "reasoning": "string",
    "urgency": "High|Medium|Low",
    "seasonalNotes": "string"
  }}
]"""

_CATEGORIZE_PROMPT = """\
Analyze these uncategorized products and suggest appropriate categories:

Products: {products}
Existing Categories: {categories}

For each product, suggest the most appropriate existing category OR a new category name if none fit well.

Return ONLY a JSON array with this exact structure:
[
  {{
    "productId": "string",
    "productName": "string",
    "suggestedCategory": "string",
    "newCategory": "string or null",
    "confidence": number,
    "alternatives": ["string"]
  }}
]"""

_PRICE_PROMPT = """\
Analyze pricing for these products and suggest optimizations:

Products: {products}
Sales Performance: {sales}

For each product, analyze current profit margin, sales velocity vs price point, and suggest price adjustments.

Return ONLY a JSON array with this exact structure:
[
  {{
    "productId": "string",
    "productName": "string",
    "currentPrice": number,
    "suggestedPrice": number,
    "reasoning": "string",
    "expectedImpact": "string"
  }}
]"""

_FORECAST_PROMPT = """\
Forecast demand for these products based on historical data:

Products: {products}
Sales History: {sales}
Current Date: {now}

For each product, predict expected demand for next 7 and 30 days based on historical patterns.

Return ONLY a JSON array with this exact structure:
[
  {{
    "productId": "string",
    "productName": "string",
    "demand7Days": number,
    "demand30Days": number,
    "trend": "string",
    "riskFactors": ["string"]
  }}
]"""

_SMART_INSIGHTS_PROMPT = """\
Provide intelligent insights about this inventory situation:

Low Stock Products: {products}
Recent Sales: {sales}

Analyze the overall inventory situation and provide strategic insights.

Return ONLY a JSON object with this exact structure:
{{
  "criticalInsights": ["string"],
  "causes": ["string"],
  "immediateActions": ["string"],
  "longTermStrategy": ["string"]
}}"""

# action → (template, max products, max sales rows)
_PROMPTS: dict[str, tuple[str, int, int]] = {
    "restock_suggestions": (_RESTOCK_PROMPT, 10, 20),
    "categorize_products": (_CATEGORIZE_PROMPT, 10, 0),
    "price_optimization":  (_PRICE_PROMPT, 10, 20),
    "demand_forecast":     (_FORECAST_PROMPT, 10, 30),
    "smart_insights":      (_SMART_INSIGHTS_PROMPT, 15, 25),
}


def _dump(rows: Any) -> str:
    return json.dumps(rows, indent=2, default=str)


def build_prompt(
    action: str,
    products: list[dict[str, Any]],
    sales: list[dict[str, Any]],
    categories: list[dict[str, Any]],
) -> str:
    template, max_products, max_sales = _PROMPTS[action]
    if action == "categorize_products":
        products = [p for p in products if not p.get("category_id")]

    return template.format(
        products=_dump(products[:max_products]),
        sales=_dump(sales[:max_sales]),
        categories=_dump(categories),
        now=datetime.now(timezone.utc).isoformat(),
    )


# ── POST /api/ai-inventory-insights ───────────────────────────────────────────

@router.post("", response_model=InsightsResponse, status_code=200)
async def inventory_insights(
    payload: InventoryInsightsRequest,
    queue: RateLimitedRequestQueue = Depends(get_ai_queue),
    store: SupabaseStore = Depends(get_store),
):
    """
    Run one inventory analysis through Gemini Flash.

    Returns {"result": ...} — a JSON array for per-product actions, an object
    for smart_insights. 503 when the AI queue is full or the request waited
    too long; 429 when the provider itself is rate limiting.
    """
    action = payload.action
    sales = await store.recent_sales(days=30)
    categories = await store.list_categories(limit=20) if action == "categorize_products" else []

    prompt = build_prompt(action, payload.products, sales, categories)
    logger.info("AI inventory analysis: %s for %d products", action, len(payload.products))

    try:
        raw = await queue.enqueue(
            lambda: gemini_client.generate_with_flash(
                prompt,
                response_key=f"inventory_{action}",
                system_instruction=_SYSTEM_PROMPT,
                temperature=0.1,
                max_output_tokens=2000,
            )
        )
    except Exception as exc:
        raise_for_ai_error(exc, "AI inventory analysis temporarily unavailable")

    result = parse_ai_json(raw)
    if result is None:
        logger.warning("Failed to parse AI response as JSON (action=%s), using fallback", action)
        result = inventory_fallback(action, payload.products)

    return InsightsResponse(result=result)
