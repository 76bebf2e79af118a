#!/usr/bin/env python3
"""
smoke_queue.py — Fire a burst of AI requests at a running API and watch the queue.

Usage (from apps/backend/, with the API running on :8000):
    # 12 simultaneous smart_insights requests (default)
    python scripts/smoke_queue.py

    # Custom burst against another host
    python scripts/smoke_queue.py --url http://localhost:8080 --count 20 --action restock_suggestions

What to expect with default settings (2 s spacing, 10 waiting)
──────────────────────────────────────────────────────────────
  - Requests that fit in the queue return 200, roughly 2 s apart.
  - Requests beyond capacity return 503 immediately with Retry-After: 30.
  - Requests still waiting after 30 s return 503 "Request timeout".

In mock mode (AI_MOCK_MODE=true) every AI call is instant, so the latencies
printed show the queue's pacing on its own.
"""

import argparse
import asyncio
import time
from collections import Counter

import httpx

_SAMPLE_PRODUCTS = [
    {"id": "smoke-1", "name": "Cola 330ml", "stock": 0, "min_stock": 12, "price": 1.5},
    {"id": "smoke-2", "name": "Sea Salt Crisps", "stock": 3, "min_stock": 10, "price": 1.2},
]


async def fire(client: httpx.AsyncClient, index: int, action: str) -> tuple[int, int, float, str]:
    started = time.monotonic()
    try:
        response = await client.post(
            "/api/ai-inventory-insights",
            json={"products": _SAMPLE_PRODUCTS, "action": action},
        )
    except httpx.HTTPError as exc:
        return index, 0, time.monotonic() - started, f"{type(exc).__name__}: {exc}"

    detail = ""
    if response.status_code != 200:
        try:
            detail = response.json().get("detail", "")
        except ValueError:
            detail = response.text[:80]
    return index, response.status_code, time.monotonic() - started, detail


async def run(url: str, count: int, action: str, timeout: float) -> None:
    async with httpx.AsyncClient(base_url=url, timeout=timeout) as client:
        try:
            health = (await client.get("/health")).json()
        except httpx.HTTPError as exc:
            print(f"ERROR: Cannot reach API at {url}: {exc}")
            return

        print(f"Connected to {url} (env: {health.get('environment')}, ai_mode: {health.get('ai_mode')})")
        print(f"Queue before burst: {health.get('queue')}")
        print(f"\nFiring {count} × {action}…")

        results = await asyncio.gather(*[fire(client, i, action) for i in range(count)])

        for index, status, elapsed, detail in sorted(results, key=lambda r: r[2]):
            suffix = f"  {detail}" if detail else ""
            print(f"  #{index:02d}  {status or 'ERR':>3}  {elapsed:6.2f}s{suffix}")

        summary = Counter(status for _, status, _, _ in results)
        print("\nStatus counts: " + ", ".join(f"{code or 'ERR'}×{n}" for code, n in sorted(summary.items())))

        health = (await client.get("/health")).json()
        print(f"Queue after burst: {health.get('queue')}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Burst-test the AI request queue of a running API.")
    parser.add_argument("--url", default="http://localhost:8000", help="API base URL")
    parser.add_argument("--count", type=int, default=12, help="Number of simultaneous requests")
    parser.add_argument(
        "--action",
        default="smart_insights",
        choices=[
            "restock_suggestions",
            "categorize_products",
            "price_optimization",
            "demand_forecast",
            "smart_insights",
        ],
    )
    parser.add_argument("--timeout", type=float, default=60.0, help="Per-request timeout in seconds")
    args = parser.parse_args()

    asyncio.run(run(args.url, args.count, args.action, args.timeout))


if __name__ == "__main__":
    main()
