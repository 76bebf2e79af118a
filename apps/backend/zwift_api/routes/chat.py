"""
chat.py — Conversational inventory assistant.

Route:
  POST /api/chat

The dashboard sends the whole conversation plus its answer-length setting.
The latest user message is classified (health, reorder, search, stock,
count or general) and a system prompt is built that holds the current
product list from Supabase, so the model answers from real stock numbers
instead of guessing. The Gemini call goes through the process AI queue like
every other AI route.

Answer length:
  detailedMode=false           → concise,        800 tokens
  detailedMode, length < 50    → moderate,      1500 tokens
  detailedMode, length 50–74   → detailed,      2500 tokens
  detailedMode, length >= 75   → comprehensive, 4000 tokens
"""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from fastapi import APIRouter, Depends, HTTPException

from zwift_api.ai.gemini_client import gemini_client
from zwift_api.core.errors import raise_for_ai_error
from zwift_api.core.request_queue import RateLimitedRequestQueue, get_ai_queue
from zwift_api.models.chat import ChatMessage, ChatRequest, ChatResponse
from zwift_api.services.supabase_store import SupabaseStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/chat", tags=["ai-chat"])

# Products beyond this are counted in the prompt but not listed.
MAX_LISTED_PRODUCTS = 200

# Checked in order; the first group with a matching phrase wins.
_QUERY_TYPES: list[tuple[str, tuple[str, ...]]] = [
    ("health", ("health", "score")),
    ("reorder", ("reorder", "buy", "order")),
    ("search", ("search", "find", "do we have")),
    ("stock", ("low stock", "out of stock")),
    ("count", ("how many", "total", "count", "number of")),
]

_FOCUS: dict[str, str] = {
    "health": (
        "Rate the overall inventory health from the stock levels below: share of products "
        "out of stock, share below minimum stock, and what to fix first."
    ),
    "reorder": (
        "Suggest what to reorder and how many units, using stock against minimum stock "
        "and the margin between price and purchase price."
    ),
    "search": "Find the products the user is asking about and report their exact stock status.",
    "stock": "List the products that are out of stock or below their minimum stock.",
    "count": "Count from the product list below. Never estimate totals.",
    "general": "Answer the question using the inventory data below.",
}

_SYSTEM_PROMPT = """\
You are an AI assistant for mini-market inventory management.
Answer ONLY from the inventory data below. Never make up numbers or estimates; \
if the data does not contain the answer, say so.

RESPONSE MODE: {mode} ({length}%)
CONTEXT: Today is {today}. "This month" means the current month and year.

KEY RULES:
- Provide specific numbers and actionable insights from the data
- Include barcodes when available
- {depth}

FOCUS: {focus}

INVENTORY ({total} products, {out_of_stock} out of stock, {low_stock} below minimum stock):
{inventory}"""


def classify_query(query: str) -> str:
    """Bucket a user question so the prompt can say what to focus on."""
    lowered = query.lower()
    for query_type, phrases in _QUERY_TYPES:
        if any(phrase in lowered for phrase in phrases):
            return query_type
    return "general"


def response_style(detailed_mode: bool, response_length: int) -> str:
    if not detailed_mode:
        return "concise"
    if response_length >= 75:
        return "comprehensive"
    if response_length >= 50:
        return "detailed"
    return "moderate"


def max_output_tokens(detailed_mode: bool, response_length: int) -> int:
    if not detailed_mode:
        return 800
    if response_length >= 75:
        return 4000
    if response_length >= 50:
        return 2500
    return 1500


def _number(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _product_line(product: dict[str, Any]) -> str:
    line = f"- {product.get('name', 'Unnamed')}"
    if product.get("barcode"):
        line += f" [barcode {product['barcode']}]"
    line += f": stock {product.get('stock', 0)}, min {product.get('min_stock', 0)}"
    if product.get("price") is not None:
        line += f", price {product['price']}"
    if product.get("purchase_price") is not None:
        line += f", cost {product['purchase_price']}"
    return line


def _is_low(product: dict[str, Any]) -> bool:
    return _number(product.get("stock")) <= _number(product.get("min_stock"))


def format_inventory(products: list[dict[str, Any]]) -> str:
    """Low and out-of-stock products first, then the rest, capped at MAX_LISTED_PRODUCTS."""
    if not products:
        return "(no inventory data available)"

    ordered = [p for p in products if _is_low(p)] + [p for p in products if not _is_low(p)]
    lines = [_product_line(p) for p in ordered[:MAX_LISTED_PRODUCTS]]
    hidden = len(ordered) - MAX_LISTED_PRODUCTS
    if hidden > 0:
        lines.append(f"... and {hidden} more products (not listed)")
    return "\n".join(lines)


def build_system_prompt(
    query_type: str,
    detailed_mode: bool,
    response_length: int,
    products: list[dict[str, Any]],
    extra_instructions: Optional[list[str]] = None,
) -> str:
    prompt = _SYSTEM_PROMPT.format(
        mode="DETAILED" if detailed_mode else "QUICK",
        length=response_length,
        today=datetime.now(timezone.utc).date().isoformat(),
        depth=(
            "Give comprehensive analysis with recommendations"
            if detailed_mode
            else "Focus on key insights and main recommendations"
        ),
        focus=_FOCUS.get(query_type, _FOCUS["general"]),
        total=len(products),
        out_of_stock=sum(1 for p in products if _number(p.get("stock")) <= 0),
        low_stock=sum(1 for p in products if _is_low(p)),
        inventory=format_inventory(products),
    )
    if extra_instructions:
        prompt += "\n\n" + "\n".join(extra_instructions)
    return prompt


# ── POST /api/chat ────────────────────────────────────────────────────────────

@router.post("", response_model=ChatResponse, status_code=200)
async def chat(
    payload: ChatRequest,
    queue: RateLimitedRequestQueue = Depends(get_ai_queue),
    store: SupabaseStore = Depends(get_store),
):
    """
    Answer the latest user message with the current inventory as context.

    System messages from the client are appended to the system prompt;
    Gemini only takes user and model turns.
    """
    turns = [m for m in payload.messages if m.role != "system"]
    if not turns or turns[-1].role != "user" or not turns[-1].content.strip():
        raise HTTPException(status_code=400, detail="Invalid request: the last message must be a non-empty user message.")

    query_type = classify_query(turns[-1].content)
    style = response_style(payload.detailed_mode, payload.response_length)
    token_budget = max_output_tokens(payload.detailed_mode, payload.response_length)
    logger.info("Chat query: type=%s style=%s max_tokens=%d", query_type, style, token_budget)

    products = await store.inventory_snapshot()
    system_prompt = build_system_prompt(
        query_type,
        payload.detailed_mode,
        payload.response_length,
        products,
        extra_instructions=[m.content for m in payload.messages if m.role == "system"],
    )
    history = [{"role": m.role, "content": m.content} for m in turns]

    try:
        reply = await queue.enqueue(
            lambda: gemini_client.chat(
                history,
                system_instruction=system_prompt,
                temperature=0.1,
                max_output_tokens=token_budget,
            )
        )
    except Exception as exc:
        raise_for_ai_error(exc, "AI assistant temporarily unavailable")

    return ChatResponse(
        message=ChatMessage(role="assistant", content=reply.strip()),
        query_type=query_type,
        response_style=style,
    )
