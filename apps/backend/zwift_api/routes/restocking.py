"""
restocking.py — Per-product restocking advice.

Route:
  POST /api/ai-restocking-suggestions

Given one product's stock levels and recent sales velocity, asks the model
what kind of product it is, which similar product types to stock, and how
many units to reorder (enough for min stock + 7–14 days of sales).

Unlike the insight routes there is no fallback: an unparseable or
wrongly-shaped answer is a 500 so the dashboard can show "try again".
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from zwift_api.ai.gemini_client import gemini_client
from zwift_api.ai.parsing import strip_code_fences
from zwift_api.core.errors import raise_for_ai_error
from zwift_api.core.request_queue import RateLimitedRequestQueue, get_ai_queue
from zwift_api.models.insights import RestockingRequest, RestockingSuggestion

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai-restocking-suggestions", tags=["ai-insights"])

_RESTOCK_PROMPT = """\
Analyze the following product details to determine its 'nature', suggest 'types of similar products' \
for restocking, and provide a 'suggested_restock_quantity'. The suggested quantity should aim to bring \
the stock level to at least the minimum stock plus enough to cover 7-14 days of sales based on the sales \
velocity, ensuring it's a whole number and at least 1 if restocking is needed. Consider the sales velocity \
over the last {days} days. Provide the output as a JSON object ONLY, with 'nature' (a concise description, \
e.g., "Fast-moving carbonated beverage", "Seasonal fresh produce", "Durable household cleaning item"), \
'similar_types' (an array of general product categories/types, e.g., ["other sodas", "juices", "energy drinks"]), \
and 'suggested_restock_quantity' (a number representing the optimal quantity to order). Do not include any \
other text or markdown formatting outside the JSON.

Product Name: {name}
Category: {category}
Current Stock: {stock}
Minimum Stock: {min_stock}
Sales Velocity (units/day, last {days} days): {velocity:.2f}
Total Quantity Sold (last {days} days): {sold}
Total Sales Count (last {days} days): {count}
{description}
Output JSON:"""


def build_prompt(payload: RestockingRequest) -> str:
    description = f"Product Description: {payload.product_description}" if payload.product_description else ""
    return _RESTOCK_PROMPT.format(
        days=payload.sales_period_days,
        name=payload.product_name,
        category=payload.category_name,
        stock=payload.current_stock,
        min_stock=payload.min_stock,
        velocity=payload.sales_velocity,
        sold=payload.total_quantity_sold,
        count=payload.total_sales_count,
        description=description,
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_suggestion(data: Any) -> RestockingSuggestion:
    """Check the model's JSON shape; raise ValueError when it is off."""
    if not isinstance(data, dict):
        raise ValueError("not an object")
    if not isinstance(data.get("nature"), str):
        raise ValueError("'nature' must be a string")
    if not isinstance(data.get("similar_types"), list):
        raise ValueError("'similar_types' must be an array")
    quantity = data.get("suggested_restock_quantity")
    if quantity is not None and not _is_number(quantity):
        raise ValueError("'suggested_restock_quantity' must be a number")

    return RestockingSuggestion(
        nature=data["nature"],
        similar_types=[str(t) for t in data["similar_types"]],
        suggested_restock_quantity=quantity,
    )


# ── POST /api/ai-restocking-suggestions ───────────────────────────────────────

@router.post("", response_model=RestockingSuggestion, status_code=200)
async def restocking_suggestions(
    payload: RestockingRequest,
    queue: RateLimitedRequestQueue = Depends(get_ai_queue),
):
    """
    Ask Gemini Flash for nature / similar types / reorder quantity of one product.
    """
    prompt = build_prompt(payload)

    try:
        raw = await queue.enqueue(
            lambda: gemini_client.generate_with_flash(
                prompt,
                response_key="restock_product",
                temperature=0.5,
                max_output_tokens=250,
            )
        )
    except Exception as exc:
        raise_for_ai_error(exc, "Internal server error")

    cleaned = strip_code_fences(raw)
    try:
        data = json.loads(cleaned)
    except (json.JSONDecodeError, ValueError):
        logger.error("Failed to parse AI response as JSON: %s", cleaned[:200])
        raise HTTPException(status_code=500, detail="AI response was not valid JSON")

    try:
        return validate_suggestion(data)
    except ValueError as exc:
        logger.error("AI response has unexpected structure (%s): %s", exc, data)
        raise HTTPException(status_code=500, detail="AI response has unexpected structure")
