"""
summaries.py — Condense raw POS rows into small prompt-sized summaries.

Prompts are billed per token and the provider rejects huge payloads, so the
routes never send raw tables to the model. These pure functions reduce
sales / products / investments / ROI / profit figures to a handful of
headline numbers plus a few sample rows.

Output dicts use camelCase keys because they are embedded verbatim (as JSON)
in the prompts and echoed back to the dashboard.

TESTING
────────
    cd apps/backend
    pytest tests/test_summaries.py -v
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Iterable, Optional

Row = dict[str, Any]

_TREND_MONTHS = 6


def _num(value: Any) -> float:
    """Coerce a DB / JSON value to float; None, '' and junk count as 0."""
    try:
        return float(value or 0)
    except (TypeError, ValueError):
        return 0.0


def _mean(values: list[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def _month_of(timestamp: Any) -> Optional[str]:
    """'2024-03-15T10:00:00Z' → '2024-03' (UTC); None if unparseable."""
    if not timestamp:
        return None
    try:
        parsed = datetime.fromisoformat(str(timestamp).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc)
    return parsed.strftime("%Y-%m")


# ── Sales / products / investments ────────────────────────────────────────────

def calculate_monthly_trend(sales: Iterable[Row]) -> list[dict[str, Any]]:
    """Revenue per calendar month, oldest first, last six months only."""
    monthly: dict[str, float] = {}
    for sale in sales:
        amount = _num(sale.get("total_amount"))
        month = _month_of(sale.get("created_at"))
        if month and amount:
            monthly[month] = monthly.get(month, 0.0) + amount

    ordered = sorted(monthly.items())[-_TREND_MONTHS:]
    return [{"month": month, "amount": amount} for month, amount in ordered]


def summarize_sales(sales: list[Row]) -> dict[str, Any]:
    amounts = [_num(s.get("total_amount")) for s in sales]
    return {
        "totalSales": len(sales),
        "totalRevenue": sum(amounts),
        "averageSaleAmount": _mean(amounts),
        "recentSales": [
            {
                "date": s.get("created_at"),
                "amount": s.get("total_amount"),
                "items_count": len(s.get("sale_items") or []),
            }
            for s in sales[:5]
        ],
        "monthlyTrend": calculate_monthly_trend(sales),
    }


def summarize_products(products: list[Row]) -> dict[str, Any]:
    categories: list[str] = []
    for p in products:
        category = p.get("category")
        if category and category not in categories:
            categories.append(category)

    return {
        "totalProducts": len(products),
        "averagePrice": _mean([_num(p.get("price")) for p in products]),
        "categories": categories,
        "topProducts": [
            {"name": p.get("name"), "price": p.get("price"), "category": p.get("category")}
            for p in products[:5]
        ],
    }


def summarize_investments(investments: list[Row]) -> dict[str, Any]:
    amounts = [_num(i.get("amount")) for i in investments]
    return {
        "totalInvestments": len(investments),
        "totalAmount": sum(amounts),
        "averageInvestment": _mean(amounts),
        "recentInvestments": [
            {
                "date": i.get("investment_date"),
                "amount": i.get("amount"),
                "description": (i.get("description") or "")[:50] or "No description",
            }
            for i in investments[:3]
        ],
    }


def summarize_business_data(
    sales: list[Row],
    products: list[Row],
    investments: list[Row],
) -> dict[str, dict[str, Any]]:
    """Bundle the three summaries used as context by the ROI prompts."""
    return {
        "salesSummary": summarize_sales(sales),
        "productsSummary": summarize_products(products),
        "investmentsSummary": summarize_investments(investments),
    }


# ── ROI ───────────────────────────────────────────────────────────────────────

def summarize_roi_data(roi: dict[str, Any]) -> dict[str, Any]:
    """Headline ROI metrics plus a three-month tail of the monthly series."""
    monthly = roi.get("monthlyData") or []
    return {
        "roi": roi.get("roi"),
        "annualizedRoi": roi.get("annualizedRoi"),
        "totalInvestment": roi.get("totalInvestment"),
        "netProfit": roi.get("netProfit"),
        "paybackPeriod": roi.get("paybackPeriod"),
        "profitabilityIndex": roi.get("profitabilityIndex"),
        "monthlyDataSummary": {
            "count": len(monthly),
            "avgROI": _mean([_num(m.get("roi")) for m in monthly]),
            "trend": monthly[-3:],
        },
    }


# ── Profit ────────────────────────────────────────────────────────────────────

def summarize_profit_data(data: dict[str, Any]) -> dict[str, Any]:
    """Trim the dashboard's profit payload to what the profit prompt needs."""
    daily = data.get("dailyData")
    if daily is None:
        daily_trend = "unknown"
    else:
        daily_trend = "increasing" if len(daily) > 7 else "stable"

    return {
        "totalRevenue": _num(data.get("totalRevenue")),
        "totalProfit": _num(data.get("totalProfit")),
        "profitMargin": _num(data.get("profitMargin")),
        "totalOrders": int(_num(data.get("totalOrders"))),
        "averageOrderValue": _num(data.get("averageOrderValue")),
        "profitGrowth": _num(data.get("profitGrowth")),
        "revenueGrowth": _num(data.get("revenueGrowth")),
        "topProducts": [
            {
                "name": p.get("name"),
                "revenue": _num(p.get("revenue")),
                "profit": _num(p.get("profit")),
                "profitMargin": _num(p.get("profitMargin")),
                "quantitySold": _num(p.get("quantitySold")),
            }
            for p in (data.get("topProducts") or [])[:5]
        ],
        "lowMarginProducts": [
            {"name": p.get("name"), "profitMargin": _num(p.get("profitMargin")), "revenue": _num(p.get("revenue"))}
            for p in (data.get("lowMarginProducts") or [])[:3]
        ],
        "highMarginProducts": [
            {"name": p.get("name"), "profitMargin": _num(p.get("profitMargin")), "revenue": _num(p.get("revenue"))}
            for p in (data.get("highMarginProducts") or [])[:3]
        ],
        "categoryData": [
            {
                "name": c.get("name"),
                "revenue": _num(c.get("revenue")),
                "profit": _num(c.get("profit")),
                "profitMargin": _num(c.get("profitMargin")),
            }
            for c in (data.get("categoryData") or [])[:5]
        ],
        "dailyTrend": daily_trend,
        "seasonality": "unknown" if daily is None else "detected",
    }


def profit_confidence_score(summary: dict[str, Any]) -> int:
    """
    Rough 60–100 score for how much the profit insights can be trusted,
    based on how much data went into the prompt.
    """
    score = (
        (20 if summary["totalOrders"] > 10 else 10)
        + (20 if len(summary["topProducts"]) > 3 else 10)
        + (20 if summary["profitMargin"] > 0 else 0)
        + (20 if len(summary["categoryData"]) > 2 else 10)
        + (20 if abs(summary["profitGrowth"]) < 50 else 10)
    )
    return min(100, max(60, score))


# ── Inventory ─────────────────────────────────────────────────────────────────

def restock_quantity(product: Row) -> int:
    """Twice the minimum stock, or ten more than on hand, whichever is larger."""
    stock = _num(product.get("stock"))
    min_stock = _num(product.get("min_stock"))
    return int(max(min_stock * 2, stock + 10))


def restock_urgency(product: Row) -> str:
    stock = _num(product.get("stock"))
    min_stock = _num(product.get("min_stock"))
    if stock == 0:
        return "High"
    if stock < min_stock / 2:
        return "Medium"
    return "Low"
