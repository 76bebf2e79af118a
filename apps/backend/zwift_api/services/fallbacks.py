"""
fallbacks.py — Canned results used when the AI answer can't be parsed.

The dashboard always renders *something*: if the model returns prose
instead of JSON (or, for profit insights, if the call fails outright), the
routes substitute one of these deterministic payloads.
"""

from datetime import datetime, timezone
from typing import Any

from zwift_api.services.summaries import restock_quantity, restock_urgency

# ── Inventory ─────────────────────────────────────────────────────────────────

SMART_INSIGHTS_FALLBACK: dict[str, list[str]] = {
    "criticalInsights": ["AI analysis completed but response format needs adjustment"],
    "causes": ["Multiple factors may be contributing to low stock levels"],
    "immediateActions": ["Review inventory levels and consider restocking priority items"],
    "longTermStrategy": ["Implement better demand forecasting and inventory management practices"],
}


def inventory_fallback(action: str, products: list[dict[str, Any]]) -> Any:
    """Smart-insights summary, or a stock-level restock list for the first 5 products."""
    if action == "smart_insights":
        return {key: list(values) for key, values in SMART_INSIGHTS_FALLBACK.items()}

    return [
        {
            "productId": product.get("id"),
            "productName": product.get("name"),
            "recommendedQuantity": restock_quantity(product),
            "reasoning": "AI analysis suggests restocking based on current inventory levels",
            "urgency": restock_urgency(product),
        }
        for product in products[:5]
    ]


# ── ROI ───────────────────────────────────────────────────────────────────────

def roi_fallback(action: str, roi_data: dict[str, Any]) -> Any:
    base = roi_data.get("roi") or 10

    if action == "performance_analysis":
        return {
            "overallAssessment": "Analysis completed but requires manual review",
            "performanceRating": "Average",
            "keyStrengths": ["Consistent revenue generation"],
            "concernAreas": ["Data analysis needs refinement"],
            "trendAnalysis": "Stable performance with room for improvement",
            "industryComparison": "Performing within industry standards",
            "riskLevel": "Medium",
            "confidenceScore": 0.7,
        }
    if action == "optimization_recommendations":
        return [
            {
                "category": "Operations",
                "recommendation": "Review current processes for efficiency improvements",
                "impact": "Medium",
                "effort": "Medium",
                "timeframe": "Short-term",
                "expectedROIImprovement": "5-10%",
                "implementation": ["Conduct operational audit", "Identify bottlenecks", "Implement improvements"],
            }
        ]
    if action == "predictive_forecast":
        return {
            "forecast3Months": {
                "expectedROI": base,
                "confidence": 0.7,
                "factors": ["Historical performance trends", "Current market conditions"],
            },
            "forecast6Months": {
                "expectedROI": base * 1.1,
                "confidence": 0.6,
                "factors": ["Seasonal adjustments", "Investment pipeline"],
            },
            "forecast12Months": {
                "expectedROI": base * 1.2,
                "confidence": 0.5,
                "factors": ["Long-term growth projections", "Market expansion"],
            },
            "scenarios": {
                "conservative": base * 0.8,
                "realistic": base,
                "optimistic": base * 1.3,
            },
            "keyVariables": ["Revenue growth", "Cost management", "Market conditions"],
            "seasonalFactors": ["Quarterly sales patterns", "Holiday impacts"],
            "monitoringMetrics": ["Monthly ROI", "Cash flow", "Investment efficiency"],
        }
    if action == "investment_strategy":
        return {
            "currentAllocationAnalysis": "Investment allocation requires detailed review for optimization",
            "allocationEffectiveness": "Medium",
            "recommendedAllocations": [
                {
                    "category": "Operations",
                    "currentPercentage": 60,
                    "recommendedPercentage": 50,
                    "reasoning": "Optimize operational efficiency",
                },
                {
                    "category": "Growth",
                    "currentPercentage": 40,
                    "recommendedPercentage": 50,
                    "reasoning": "Increase growth investments",
                },
            ],
            "investmentPriorities": [
                {
                    "priority": "High",
                    "area": "Technology Infrastructure",
                    "expectedReturn": "15-20%",
                    "timeframe": "6-12 months",
                }
            ],
            "strategicOpportunities": ["Digital transformation", "Market expansion"],
            "riskMitigation": ["Diversify investment portfolio", "Monitor cash flow"],
        }
    if action == "competitive_analysis":
        return {
            "marketPosition": "Average",
            "competitiveAdvantages": ["Strong customer base", "Operational efficiency"],
            "competitiveDisadvantages": ["Limited market reach", "Technology gaps"],
            "marketOpportunities": ["Digital expansion", "New market segments"],
            "benchmarkComparison": {
                "industryAverageROI": "12-15%",
                "performanceVsIndustry": "At",
                "percentilRanking": "50th percentile",
            },
            "strategicRecommendations": ["Invest in technology", "Expand market presence"],
            "marketThreats": ["Increased competition", "Economic uncertainty"],
        }
    return {"analysis": "AI analysis completed but response format needs adjustment"}


# ── Profit ────────────────────────────────────────────────────────────────────

PROFIT_PARSE_FALLBACK: dict[str, Any] = {
    "strategicRecommendations": [
        "Focus on improving profit margins through strategic pricing",
        "Optimize product mix to favor high-margin items",
        "Implement data-driven inventory management",
    ],
    "riskAssessment": {
        "level": "medium",
        "factors": ["Profit margin analysis needed", "Market competition assessment required"],
    },
    "actionPlan": [
        {
            "priority": "high",
            "action": "Review pricing strategy",
            "timeline": "This week",
            "expectedImpact": "5-10% margin improvement",
        },
        {
            "priority": "medium",
            "action": "Analyze product performance",
            "timeline": "Next week",
            "expectedImpact": "Better inventory allocation",
        },
    ],
    "marketingInsights": [
        "Promote high-margin products more prominently",
        "Create bundles to increase average order value",
    ],
    "operationalEfficiency": [
        "Streamline inventory management processes",
        "Optimize staffing based on sales patterns",
    ],
    "competitiveAdvantage": "Focus on product quality and customer service differentiation",
}


def profit_failure_fallback() -> dict[str, Any]:
    """Full response body returned when the profit-insights call fails outright."""
    return {
        "strategicRecommendations": [
            "Analyze your top-performing products and focus marketing efforts on them",
            "Review pricing strategy for products with low profit margins",
            "Implement inventory optimization based on sales patterns",
        ],
        "riskAssessment": {
            "level": "medium",
            "factors": ["AI analysis temporarily unavailable", "Manual review recommended"],
        },
        "actionPlan": [
            {
                "priority": "high",
                "action": "Review current pricing strategy",
                "timeline": "This week",
                "expectedImpact": "Potential margin improvement",
            },
            {
                "priority": "medium",
                "action": "Analyze customer buying patterns",
                "timeline": "Next week",
                "expectedImpact": "Better product positioning",
            },
        ],
        "marketingInsights": [
            "Focus marketing budget on highest-margin products",
            "Create promotional campaigns for underperforming items",
        ],
        "operationalEfficiency": [
            "Optimize inventory levels based on demand patterns",
            "Review supplier relationships for cost optimization",
        ],
        "competitiveAdvantage": "Leverage data-driven decision making for competitive edge",
        "confidenceScore": 75,
        "dataQuality": {"ordersAnalyzed": 0, "productsAnalyzed": 0, "categoriesAnalyzed": 0},
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "fallbackMode": True,
    }
