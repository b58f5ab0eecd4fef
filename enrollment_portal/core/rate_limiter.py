from fastapi import HTTPException, Request
from fastapi.responses import JSONResponse
from typing import Callable, Dict, NamedTuple
import math
import time

from .config import settings

# How often idle client keys are swept, in seconds
PRUNE_INTERVAL = 60


class RateLimitBudget(NamedTuple):
    name: str
    max_requests: int
    window: int


def default_budgets() -> Dict[str, RateLimitBudget]:
    return {
        "general": RateLimitBudget("general", settings.rate_limit_general, settings.rate_limit_general_window),
        "auth": RateLimitBudget("auth", settings.rate_limit_auth, settings.rate_limit_auth_window),
        "api": RateLimitBudget("api", settings.rate_limit_api, settings.rate_limit_api_window),
    }


class RateLimiter:
    """Sliding-window request counter keyed by client address and budget."""

    def __init__(self, budgets: Dict[str, RateLimitBudget] = None, clock: Callable[[], float] = time.time):
        self.requests: Dict[str, list] = {}
        self.budgets = budgets or default_budgets()
        self._clock = clock
        self._last_prune = clock()

    def budget_for_path(self, path: str) -> RateLimitBudget:
        if path.startswith("/api/v1/auth"):
            return self.budgets["auth"]
        if path.startswith("/api/"):
            return self.budgets["api"]
        return self.budgets["general"]

    def check_rate_limit(self, client_ip: str, budget: RateLimitBudget):
        """Record one request, raising 429 with Retry-After when over budget"""
        key = f"{client_ip}:{budget.name}"
        now = self._clock()

        if now - self._last_prune >= PRUNE_INTERVAL:
            self.prune(now)

        # Clean old requests
        timestamps = [req_time for req_time in self.requests.get(key, []) if now - req_time < budget.window]

        # Check limit
        if len(timestamps) >= budget.max_requests:
            self.requests[key] = timestamps
            retry_after = max(1, math.ceil(budget.window - (now - timestamps[0])))
            raise HTTPException(
                status_code=429,
                detail="Rate limit exceeded",
                headers={"Retry-After": str(retry_after)}
            )

        # Add current request
        timestamps.append(now)
        self.requests[key] = timestamps

    def prune(self, now: float = None):
        """Drop keys with no requests left inside their budget window"""
        now = self._clock() if now is None else now
        for key in list(self.requests):
            budget = self.budgets.get(key.rsplit(":", 1)[-1])
            window = budget.window if budget else 0
            self.requests[key] = [t for t in self.requests[key] if now - t < window]
            if not self.requests[key]:
                del self.requests[key]
        self._last_prune = now

    def reset(self):
        self.requests.clear()


rate_limiter = RateLimiter()


async def rate_limit_middleware(request: Request, call_next):
    """HTTP middleware applying the budget that matches the request path"""
    limiter: RateLimiter = getattr(request.app.state, "rate_limiter", rate_limiter)
    client_ip = request.client.host if request.client else "unknown"
    try:
        limiter.check_rate_limit(client_ip, limiter.budget_for_path(request.url.path))
    except HTTPException as e:
        return JSONResponse(
            status_code=e.status_code,
            content={"error": "Too Many Requests", "message": e.detail},
            headers=e.headers
        )
    return await call_next(request)
