"""
SupabaseStore — Read-only access to the POS tables via Supabase's REST API.

The AI routes only ever *read* context rows (sales, products, categories,
investments) before building a prompt, so instead of a full Postgres driver
this talks to PostgREST directly:

    GET {SUPABASE_URL}/rest/v1/{table}?select=...&created_at=gte.<iso>&order=created_at.desc&limit=50
    headers: apikey: <anon key>, Authorization: Bearer <anon key>

PostgREST caps a single response at 1000 rows, so `select_all()` walks
limit/offset pages until a short page comes back.

Graceful degradation: if SUPABASE_URL / SUPABASE_ANON_KEY are not set, or a
request fails, every read returns an empty list with a logged warning. The
AI call still goes ahead, just with less context.
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

import httpx

from zwift_api.core.config import settings

logger = logging.getLogger(__name__)

PAGE_SIZE = 1000

Row = dict[str, Any]


class SupabaseStore:
    """
    Thin async wrapper around the Supabase PostgREST endpoint.

    `transport` lets tests plug in an httpx.MockTransport.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0,
    ) -> None:
        self.url = (settings.supabase_url if url is None else url).rstrip("/")
        self.api_key = settings.supabase_anon_key if api_key is None else api_key
        self.enabled = bool(self.url and self.api_key)
        self._transport = transport
        self._timeout = timeout

        if not self.enabled:
            logger.warning(
                "SUPABASE_URL / SUPABASE_ANON_KEY not set — store reads disabled. "
                "AI insights will work but without sales/product context."
            )

    def _headers(self) -> dict[str, str]:
        return {
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Accept": "application/json",
        }

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[list[tuple[str, str]]] = None,
        order: Optional[str] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> list[Row]:
        """
        Run one PostgREST select.

        Args:
            table:   Table name, e.g. "sales".
            columns: PostgREST select expression, e.g. "*, sale_items(*)".
            filters: (column, "op.value") pairs, e.g. ("created_at", "gte.2024-01-01").
                     A list, so the same column can be filtered twice (range).
            order:   e.g. "created_at.desc".
            limit:   Max rows.
            offset:  Rows to skip.

        Returns:
            List of row dicts. Returns [] if not configured or on any error.
        """
        if not self.enabled:
            return []

        params: list[tuple[str, str]] = [("select", columns)]
        params.extend(filters or [])
        if order:
            params.append(("order", order))
        if limit is not None:
            params.append(("limit", str(limit)))
        if offset:
            params.append(("offset", str(offset)))

        async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
            try:
                response = await client.get(
                    f"{self.url}/rest/v1/{table}",
                    headers=self._headers(),
                    params=params,
                )
                response.raise_for_status()
                data = response.json()
                return data if isinstance(data, list) else []

            except httpx.HTTPStatusError as exc:
                logger.error(
                    "Supabase error on %s: %s — %s",
                    table,
                    exc.response.status_code,
                    exc.response.text[:200],
                )
                return []
            except Exception as exc:
                logger.error("Supabase request failed on %s: %s", table, exc)
                return []

    async def select_all(
        self,
        table: str,
        columns: str = "*",
        filters: Optional[list[tuple[str, str]]] = None,
        order: Optional[str] = None,
        page_size: int = PAGE_SIZE,
    ) -> list[Row]:
        """Fetch every matching row, one `page_size` page at a time."""
        rows: list[Row] = []
        offset = 0
        while True:
            page = await self.select(
                table, columns, filters=filters, order=order, limit=page_size, offset=offset,
            )
            rows.extend(page)
            if len(page) < page_size:
                return rows
            offset += page_size

    # ── Domain reads ──────────────────────────────────────────────────────────

    async def recent_sales(self, days: int = 30) -> list[Row]:
        """All sales (with their sale_items) created in the last `days` days."""
        since = datetime.now(timezone.utc) - timedelta(days=days)
        return await self.select_all(
            "sales",
            "*, sale_items(*)",
            filters=[("created_at", f"gte.{since.isoformat()}")],
            order="created_at.desc",
        )

    async def sales_between(
        self,
        start: Optional[str] = None,
        end: Optional[str] = None,
        limit: int = 50,
    ) -> list[Row]:
        """Newest `limit` sales in [start, end]; defaults to the last 365 days."""
        now = datetime.now(timezone.utc)
        start = start or (now - timedelta(days=365)).isoformat()
        end = end or now.isoformat()
        return await self.select(
            "sales",
            "created_at, total_amount, sale_items(quantity)",
            filters=[("created_at", f"gte.{start}"), ("created_at", f"lte.{end}")],
            order="created_at.desc",
            limit=limit,
        )

    async def list_products(self, limit: int = 20) -> list[Row]:
        return await self.select("products", "name, price, category", limit=limit)

    async def list_categories(self, limit: int = 20) -> list[Row]:
        return await self.select("categories", "*", limit=limit)

    async def list_investments(self, limit: int = 10) -> list[Row]:
        return await self.select(
            "investments",
            "investment_date, amount, description",
            order="investment_date.desc",
            limit=limit,
        )

    async def inventory_snapshot(self) -> list[Row]:
        """Every product with its stock levels, for the chat assistant's context."""
        return await self.select_all(
            "products",
            "id, name, barcode, price, purchase_price, stock, min_stock",
            order="name.asc",
        )

    async def roi_context(
        self,
        start: Optional[str] = None,
        end: Optional[str] = None,
    ) -> tuple[list[Row], list[Row], list[Row]]:
        """Sales, products and investments for ROI prompts, fetched concurrently."""
        sales, products, investments = await asyncio.gather(
            self.sales_between(start, end, limit=50),
            self.list_products(limit=20),
            self.list_investments(limit=10),
        )
        return sales, products, investments


# Module-level singleton
supabase_store = SupabaseStore()


def get_store() -> SupabaseStore:
    """
    FastAPI dependency — inject the store into route handlers.

    Tests replace it with an in-memory fake via app.dependency_overrides.
    """
    return supabase_store
