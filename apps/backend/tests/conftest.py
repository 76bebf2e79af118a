"""
pytest configuration and shared fixtures for the Zwift POS AI API tests.

Key concern: tests must not require Supabase, a Gemini API key, or wait
two real seconds between AI calls. We achieve this by:
  1. Ensuring AI_MOCK_MODE=true so GeminiClient returns canned responses.
  2. Overriding get_store with an in-memory FakeStore (no HTTP).
  3. Overriding get_ai_queue with a fresh, fast queue per test so pacing
     state and counters never leak between tests.

Queue behaviour itself (spacing, capacity, expiry) is tested directly in
test_request_queue.py with small intervals.
"""

import os

import pytest
from httpx import ASGITransport, AsyncClient

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("AI_MOCK_MODE", "true")
os.environ.setdefault("ENVIRONMENT", "test")


class FakeStore:
    """In-memory stand-in for SupabaseStore; records which reads were made."""

    enabled = False

    def __init__(self, sales=None, products=None, categories=None, investments=None, inventory=None):
        self.sales = sales or []
        self.products = products or []
        self.categories = categories or []
        self.investments = investments or []
        self.inventory = inventory or []
        self.calls: list[tuple] = []

    async def recent_sales(self, days=30):
        self.calls.append(("recent_sales", days))
        return self.sales

    async def sales_between(self, start=None, end=None, limit=50):
        self.calls.append(("sales_between", start, end, limit))
        return self.sales[:limit]

    async def list_products(self, limit=20):
        self.calls.append(("list_products", limit))
        return self.products[:limit]

    async def list_categories(self, limit=20):
        self.calls.append(("list_categories", limit))
        return self.categories[:limit]

    async def list_investments(self, limit=10):
        self.calls.append(("list_investments", limit))
        return self.investments[:limit]

    async def inventory_snapshot(self):
        self.calls.append(("inventory_snapshot",))
        return self.inventory

    async def roi_context(self, start=None, end=None):
        self.calls.append(("roi_context", start, end))
        return self.sales[:50], self.products[:20], self.investments[:10]


@pytest.fixture()
def fake_store():
    return FakeStore(
        sales=[
            {"id": "s1", "created_at": "2024-05-02T10:00:00Z", "total_amount": 40, "sale_items": [{"quantity": 2}]},
            {"id": "s2", "created_at": "2024-04-11T09:30:00Z", "total_amount": 25.5, "sale_items": []},
        ],
        products=[{"name": "Cola 330ml", "price": 1.5, "category": "Drinks"}],
        categories=[{"id": "c1", "name": "Drinks"}],
        investments=[{"investment_date": "2024-01-01", "amount": 1000, "description": "Fridge"}],
        inventory=[
            {"id": "p1", "name": "Cola 330ml", "barcode": "5000112", "price": 1.5, "purchase_price": 0.8, "stock": 0, "min_stock": 12},
            {"id": "p2", "name": "Sea Salt Crisps", "barcode": None, "price": 1.2, "purchase_price": 0.5, "stock": 40, "min_stock": 10},
        ],
    )


@pytest.fixture()
def ai_queue():
    """Fresh queue with a short interval so route tests stay fast."""
    from zwift_api.core.request_queue import RateLimitedRequestQueue

    return RateLimitedRequestQueue(min_interval=0.0, max_queue_size=10, max_wait=5.0, retry_delay=0.01)


@pytest.fixture()
async def client(fake_store, ai_queue):
    """
    HTTPX async test client wired to the FastAPI app, with the store and
    AI queue replaced by the fixtures above.

    Usage:
        async def test_something(client):
            response = await client.get("/health")
            assert response.status_code == 200
    """
    from zwift_api.core.rate_limit import limiter
    from zwift_api.core.request_queue import get_ai_queue
    from zwift_api.main import app
    from zwift_api.services.supabase_store import get_store

    # Reset in-memory rate-limit counters so tests are independent.
    limiter.reset()

    app.dependency_overrides[get_store] = lambda: fake_store
    app.dependency_overrides[get_ai_queue] = lambda: ai_queue
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()
    await ai_queue.close()
