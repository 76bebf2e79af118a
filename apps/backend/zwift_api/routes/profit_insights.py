"""
profit_insights.py — Strategic commentary on the profit analytics page.

Route:
  POST /api/ai-profit-insights   (per-client limit, default 10/minute)

Unlike the other AI routes this one never fails from the dashboard's point
of view: if the queue is full, the provider errors, or the answer can't be
parsed, a canned analysis is returned with HTTP 200 (`fallbackMode: true`
when the call itself failed).

Every response carries a `confidenceScore` (60–100) derived from how much
data was analysed, plus a `dataQuality` block with the counts used.
"""

import copy
import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Request

from zwift_api.ai.gemini_client import gemini_client
from zwift_api.ai.parsing import parse_ai_object
from zwift_api.core.config import settings
from zwift_api.core.rate_limit import limiter
from zwift_api.core.request_queue import RateLimitedRequestQueue, get_ai_queue
from zwift_api.models.insights import ProfitInsightsRequest
from zwift_api.services.fallbacks import PROFIT_PARSE_FALLBACK, profit_failure_fallback
from zwift_api.services.summaries import profit_confidence_score, summarize_profit_data

logger = logging.getLogger(__name__)

router = APIRouter(tags=["ai-insights"])

_SYSTEM_PROMPT = (
    "You are a business intelligence expert specializing in profit optimization and "
    "strategic planning. Provide actionable, data-driven insights."
)


def build_prompt(summary: dict[str, Any], period: str) -> str:
    top = "\n".join(
        f"- {p['name']}: ${p['revenue']:.2f} revenue, {p['profitMargin']:.1f}% margin"
        for p in summary["topProducts"]
    )
    categories = "\n".join(
        f"- {c['name']}: ${c['revenue']:.2f} revenue, {c['profitMargin']:.1f}% margin"
        for c in summary["categoryData"]
    )
    high = ", ".join(str(p["name"]) for p in summary["highMarginProducts"])
    low = ", ".join(str(p["name"]) for p in summary["lowMarginProducts"])

    return f"""\
As a business intelligence expert, analyze this profit data and provide strategic insights:

BUSINESS PERFORMANCE ({period}):
- Revenue: ${summary['totalRevenue']:.2f}
- Profit: ${summary['totalProfit']:.2f}
- Profit Margin: {summary['profitMargin']:.1f}%
- Orders: {summary['totalOrders']}
- Average Order Value: ${summary['averageOrderValue']:.2f}
- Profit Growth: {summary['profitGrowth']:.1f}%

TOP PRODUCTS:
{top}

CATEGORIES:
{categories}

MARGIN ANALYSIS:
High Margin: {high}
Low Margin: {low}

Provide analysis in this JSON format:
{{
  "strategicRecommendations": ["3-4 high-level strategic recommendations"],
  "riskAssessment": {{
    "level": "low|medium|high",
    "factors": ["key risk factors identified"]
  }},
  "actionPlan": [
    {{"priority": "high|medium|low", "action": "specific action", "timeline": "timeframe", "expectedImpact": "impact description"}}
  ],
  "marketingInsights": ["2-3 marketing-focused recommendations"],
  "operationalEfficiency": ["2-3 operational improvements"],
  "competitiveAdvantage": "key competitive advantage to focus on"
}}"""


# ── POST /api/ai-profit-insights ──────────────────────────────────────────────

@router.post("/api/ai-profit-insights", status_code=200)
@limiter.limit(settings.profit_insights_rate_limit)
async def profit_insights(
    request: Request,
    payload: ProfitInsightsRequest,
    queue: RateLimitedRequestQueue = Depends(get_ai_queue),
):
    """
    Analyse profit figures with Gemini Pro.

    Returns the AI insights merged with confidenceScore, dataQuality and
    generatedAt. Always 200 unless the per-client limit is exceeded (429).
    """
    summary = summarize_profit_data(payload.profit_data)
    prompt = build_prompt(summary, payload.period)

    try:
        raw = await queue.enqueue(
            lambda: gemini_client.generate_with_pro(
                prompt,
                response_key="profit_insights",
                system_instruction=_SYSTEM_PROMPT,
                temperature=0.7,
                max_output_tokens=1500,
            )
        )
    except Exception as exc:
        logger.error("AI profit insights error: %s", exc)
        return profit_failure_fallback()

    insights = parse_ai_object(raw)
    if insights is None:
        logger.warning("Could not parse AI profit insights, using fallback analysis")
        insights = copy.deepcopy(PROFIT_PARSE_FALLBACK)

    return {
        **insights,
        "confidenceScore": profit_confidence_score(summary),
        "dataQuality": {
            "ordersAnalyzed": summary["totalOrders"],
            "productsAnalyzed": len(summary["topProducts"]),
            "categoriesAnalyzed": len(summary["categoryData"]),
        },
        "generatedAt": datetime.now(timezone.utc).isoformat(),
    }
