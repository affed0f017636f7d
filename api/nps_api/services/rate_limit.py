import threading
import time
from collections import defaultdict, deque
from dataclasses import dataclass

from fastapi import Depends, Request

from ..errors import RateLimitError
from ..http_helpers import client_ip


@dataclass
class RateDecision:
    allowed: bool
    retry_after_seconds: int


class InMemoryRateLimiter:
    """Sliding-window counter per key. Process-local."""

    def __init__(self, clock=time.time) -> None:
        self._events: dict[str, deque[float]] = defaultdict(deque)
        self._lock = threading.Lock()
        self._clock = clock

    def check(self, key: str, limit: int, window_seconds: int) -> RateDecision:
        now = self._clock()
        cutoff = now - window_seconds
        with self._lock:
            dq = self._events[key]
            while dq and dq[0] <= cutoff:
                dq.popleft()
            if len(dq) >= limit:
                retry_after = max(1, int(dq[0] + window_seconds - now))
                return RateDecision(allowed=False, retry_after_seconds=retry_after)
            dq.append(now)
            return RateDecision(allowed=True, retry_after_seconds=0)

    def reset(self) -> None:
        with self._lock:
            self._events.clear()


limiter = InMemoryRateLimiter()


def rate_limit_dependency(route_key: str, limit: int, window_seconds: int):
    def _dep(request: Request) -> None:
        fallback = request.client.host if request.client and request.client.host else "unknown"
        key = f"{route_key}:{client_ip(request.headers, fallback)}"
        decision = limiter.check(key, limit=limit, window_seconds=window_seconds)
        if not decision.allowed:
            raise RateLimitError(
                f"Too many requests. Retry in {decision.retry_after_seconds}s",
                headers={"Retry-After": str(decision.retry_after_seconds)},
            )

    return Depends(_dep)
