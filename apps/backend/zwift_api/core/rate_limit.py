"""
rate_limit.py — Per-client request limiter.

Uses slowapi (a Starlette-compatible wrapper around the `limits` library).
Requests are keyed by client IP address, so one dashboard tab hammering
"Generate insights" can't starve every other till.

This is separate from the process-wide AI queue in request_queue.py:
the limiter caps how often one client may ask, the queue caps how often
the whole process may call the AI provider.

Usage in routes:
    from fastapi import Request
    from zwift_api.core.rate_limit import limiter

    @router.post("/api/some-ai-endpoint")
    @limiter.limit("10/minute")
    async def my_endpoint(request: Request, payload: MyRequest):
        ...

Wire into app (in main.py):
    from slowapi import _rate_limit_exceeded_handler
    from slowapi.errors import RateLimitExceeded
    from zwift_api.core.rate_limit import limiter

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Key requests by client IP (honours X-Forwarded-For only when the
# deployment's proxy rewrites the client address).
limiter = Limiter(key_func=get_remote_address)
