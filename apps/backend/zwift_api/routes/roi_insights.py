"""
roi_insights.py — AI commentary on return-on-investment figures.

Route:
  POST /api/ai-roi-insights

The dashboard computes ROI itself (capital analytics page) and posts the
numbers here together with the analysis it wants:

  performance_analysis, optimization_recommendations, predictive_forecast,
  investment_strategy, competitive_analysis

Business context (≤50 sales in the date range, 20 products, 10 most
recent investments) is read from Supabase concurrently and condensed by
services/summaries.py before it goes into the prompt. The Gemini Pro call
runs through the AI queue like every other AI route.
"""

import json
import logging
from typing import Any

from fastapi import APIRouter, Depends

from zwift_api.ai.gemini_client import gemini_client
from zwift_api.ai.parsing import parse_ai_json
from zwift_api.core.errors import raise_for_ai_error
from zwift_api.core.request_queue import RateLimitedRequestQueue, get_ai_queue
from zwift_api.models.insights import InsightsResponse, RoiInsightsRequest
from zwift_api.services.fallbacks import roi_fallback
from zwift_api.services.summaries import summarize_business_data, summarize_roi_data
from zwift_api.services.supabase_store import SupabaseStore, get_store

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ai-roi-insights", tags=["ai-insights"])

_SYSTEM_PROMPT = (
    "You are an expert financial analyst and business strategist specializing in ROI "
    "analysis and business optimization. Provide actionable, data-driven insights in "
    "valid JSON format only. Focus on practical recommendations that can improve "
    "business performance. Consider industry benchmarks, seasonal trends, and growth "
    "opportunities in your analysis. Keep responses concise and focused."
)

# ── Prompt templates ───────────────────────────────────────────────────────────

_PERFORMANCE_PROMPT = """\
Analyze this business's ROI performance and provide comprehensive insights:

ROI Summary: {roi}
Period: {period}
Sales Summary: {sales}
Products Summary: {products}
Investments Summary: {investments}

Provide analysis on:
1. Overall ROI performance vs industry benchmarks
2. Trend analysis and trajectory
3. Key performance drivers
4. Risk assessment
5. Growth opportunities

Return ONLY a JSON object with this structure:
{{
  "overallAssessment": "string",
  "performanceRating": "Excellent|Good|Average|Poor",
  "keyStrengths": ["string"],
  "concernAreas": ["string"],
  "trendAnalysis": "string",
  "industryComparison": "string",
  "riskLevel": "Low|Medium|High",
  "confidenceScore": number
}}"""

_OPTIMIZATION_PROMPT = """\
Provide specific optimization recommendations to improve ROI:

Current ROI Summary: {roi}
Business Context:
- Sales Summary: {sales}
- Products Summary: {products}
- Investments Summary: {investments}

Focus on actionable recommendations for:
1. Cost reduction opportunities
2. Revenue enhancement strategies
3. Investment reallocation
4. Operational efficiency improvements
5. Market expansion possibilities

Return ONLY a JSON array with this structure:
[
  {{
    "category": "Cost Reduction|Revenue Enhancement|Investment Strategy|Operations|Market Expansion",
    "recommendation": "string",
    "impact": "High|Medium|Low",
    "effort": "High|Medium|Low",
    "timeframe": "Immediate|Short-term|Long-term",
    "expectedROIImprovement": "string",
    "implementation": ["string"]
  }}
]"""

_FORECAST_PROMPT = """\
Create predictive forecasts for ROI performance based on current trends:

Historical ROI Summary: {roi}
Sales Trends: {trend}
Investment Pattern: {investments}
Current Period: {period}

Analyze patterns and predict:
1. ROI trajectory for next 3, 6, and 12 months
2. Seasonal impact factors
3. Growth scenarios (conservative, realistic, optimistic)
4. Key variables that could affect predictions
5. Recommended monitoring metrics

Return ONLY a JSON object with this structure:
{{
  "forecast3Months": {{"expectedROI": number, "confidence": number, "factors": ["string"]}},
  "forecast6Months": {{"expectedROI": number, "confidence": number, "factors": ["string"]}},
  "forecast12Months": {{"expectedROI": number, "confidence": number, "factors": ["string"]}},
  "scenarios": {{"conservative": number, "realistic": number, "optimistic": number}},
  "keyVariables": ["string"],
  "seasonalFactors": ["string"],
  "monitoringMetrics": ["string"]
}}"""

_INVESTMENT_PROMPT = """\
Analyze investment strategy and provide strategic recommendations:

ROI Performance: {roi}
Investment History: {investments}
Business Performance: {sales}

Analyze and recommend:
1. Investment allocation effectiveness
2. Future investment priorities
3. Capital efficiency improvements
4. Risk-adjusted return optimization
5. Strategic investment opportunities

Return ONLY a JSON object with this structure:
{{
  "currentAllocationAnalysis": "string",
  "allocationEffectiveness": "High|Medium|Low",
  "recommendedAllocations": [
    {{"category": "string", "currentPercentage": number, "recommendedPercentage": number, "reasoning": "string"}}
  ],
  "investmentPriorities": [
    {{"priority": "High|Medium|Low", "area": "string", "expectedReturn": "string", "timeframe": "string"}}
  ],
  "strategicOpportunities": ["string"],
  "riskMitigation": ["string"]
}}"""

_COMPETITIVE_PROMPT = """\
Provide competitive and market positioning analysis:

Business ROI: {roi}
Sales Performance: {sales}
Product Portfolio: {products}

Analyze:
1. Market position based on ROI performance
2. Competitive advantages and disadvantages
3. Market opportunities
4. Benchmarking insights
5. Strategic positioning recommendations

Return ONLY a JSON object with this structure:
{{
  "marketPosition": "Market Leader|Strong Performer|Average|Below Average",
  "competitiveAdvantages": ["string"],
  "competitiveDisadvantages": ["string"],
  "marketOpportunities": ["string"],
  "benchmarkComparison": {{
    "industryAverageROI": "string",
    "performanceVsIndustry": "Above|At|Below",
    "percentilRanking": "string"
  }},
  "strategicRecommendations": ["string"],
  "marketThreats": ["string"]
}}"""

_PROMPTS: dict[str, str] = {
    "performance_analysis": _PERFORMANCE_PROMPT,
    "optimization_recommendations": _OPTIMIZATION_PROMPT,
    "predictive_forecast": _FORECAST_PROMPT,
    "investment_strategy": _INVESTMENT_PROMPT,
    "competitive_analysis": _COMPETITIVE_PROMPT,
}


def build_prompt(
    action: str,
    roi_data: dict[str, Any],
    period: str,
    context: dict[str, dict[str, Any]],
) -> str:
    sales = context["salesSummary"]
    return _PROMPTS[action].format(
        roi=json.dumps(summarize_roi_data(roi_data), default=str),
        period=period,
        sales=json.dumps(sales, default=str),
        trend=json.dumps(sales["monthlyTrend"]),
        products=json.dumps(context["productsSummary"], default=str),
        investments=json.dumps(context["investmentsSummary"], default=str),
    )


# ── POST /api/ai-roi-insights ─────────────────────────────────────────────────

@router.post("", response_model=InsightsResponse, status_code=200)
async def roi_insights(
    payload: RoiInsightsRequest,
    queue: RateLimitedRequestQueue = Depends(get_ai_queue),
    store: SupabaseStore = Depends(get_store),
):
    """
    Run one ROI analysis through Gemini Pro.

    Returns {"result": ...}; falls back to a canned per-action result when
    the model's answer isn't JSON. Queue back-pressure → 503, provider rate
    limit → 429.
    """
    start = payload.date_range.start if payload.date_range else None
    end = payload.date_range.end if payload.date_range else None
    sales, products, investments = await store.roi_context(start, end)

    context = summarize_business_data(sales, products, investments)
    period = payload.period or "unspecified"
    prompt = build_prompt(payload.action, payload.roi_data, period, context)
    logger.info("AI ROI analysis: %s for period %s", payload.action, period)

    try:
        raw = await queue.enqueue(
            lambda: gemini_client.generate_with_pro(
                prompt,
                response_key=f"roi_{payload.action}",
                system_instruction=_SYSTEM_PROMPT,
                temperature=0.2,
                max_output_tokens=2000,
            )
        )
    except Exception as exc:
        raise_for_ai_error(exc, "AI ROI analysis temporarily unavailable")

    result = parse_ai_json(raw)
    if result is None:
        logger.warning("Failed to parse AI ROI response as JSON (action=%s), using fallback", payload.action)
        result = roi_fallback(payload.action, payload.roi_data)

    return InsightsResponse(result=result)
