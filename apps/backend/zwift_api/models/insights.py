"""
insights.py — Pydantic models for the AI insight endpoints.

The POS dashboard posts camelCase JSON, so request fields carry camelCase
aliases; `populate_by_name` also lets tests and scripts use snake_case.
"""

from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


# ── Inventory insights ────────────────────────────────────────────────────────

InventoryAction = Literal[
    "restock_suggestions",
    "categorize_products",
    "price_optimization",
    "demand_forecast",
    "smart_insights",
]


class InventoryInsightsRequest(BaseModel):
    """Low-stock (or uncategorised) products plus the analysis to run on them."""

    model_config = ConfigDict(populate_by_name=True)

    products:     list[dict[str, Any]] = Field(..., description="Product rows from the dashboard (id, name, stock, min_stock, price, category_id…)")
    action:       InventoryAction
    product_data: Optional[dict[str, Any]] = Field(default=None, alias="productData")


class InsightsResponse(BaseModel):
    """Wrapper used by inventory + ROI insights: `result` is the parsed AI JSON (or fallback)."""

    result: Any


# ── ROI insights ──────────────────────────────────────────────────────────────

RoiAction = Literal[
    "performance_analysis",
    "optimization_recommendations",
    "predictive_forecast",
    "investment_strategy",
    "competitive_analysis",
]


class DateRange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    start: Optional[str] = Field(default=None, alias="from")  # ISO-8601
    end:   Optional[str] = Field(default=None, alias="to")


class RoiInsightsRequest(BaseModel):
    """ROI figures computed client-side + which analysis to run."""

    model_config = ConfigDict(populate_by_name=True)

    action:     RoiAction
    roi_data:   dict[str, Any] = Field(..., alias="roiData")
    period:     Optional[str] = None
    date_range: Optional[DateRange] = Field(default=None, alias="dateRange")


# ── Profit insights ───────────────────────────────────────────────────────────

class ProfitInsightsRequest(BaseModel):
    """Profit analytics payload (revenue, margins, top products, categories…)."""

    model_config = ConfigDict(populate_by_name=True)

    profit_data: dict[str, Any] = Field(..., alias="profitData")
    period:      str = "selected period"


# ── Restocking suggestions ────────────────────────────────────────────────────

class RestockingRequest(BaseModel):
    """Sales statistics for one product that needs restocking."""

    model_config = ConfigDict(populate_by_name=True)

    product_name:        str   = Field(..., min_length=1, alias="productName")
    category_name:       str   = Field(..., min_length=1, alias="categoryName")
    current_stock:       float = Field(..., alias="currentStock")
    min_stock:           float = Field(..., alias="minStock")
    sales_velocity:      float = Field(..., ge=0, alias="salesVelocity")        # units / day
    total_quantity_sold: float = Field(..., ge=0, alias="totalQuantitySold")
    total_sales_count:   int   = Field(..., ge=0, alias="totalSalesCount")
    sales_period_days:   int   = Field(..., gt=0, alias="salesPeriodDays")
    product_description: Optional[str] = Field(default=None, max_length=1000, alias="productDescription")


class RestockingSuggestion(BaseModel):
    """What the model thinks the product is, and how many to order."""

    nature:                     str
    similar_types:              list[str]
    suggested_restock_quantity: Optional[Union[int, float]] = None
