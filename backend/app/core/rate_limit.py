# backend/app/core/rate_limit.py
import os
import threading
import time
from typing import Dict, List, Tuple

from fastapi import HTTPException, Request, status


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


class SimpleRateLimiter:
    """
    In-memory sliding-window rate limiter keyed by (key, client_ip).

    Good enough for a single-instance deployment. Used as a FastAPI
    dependency, so keep the call signature free of *args/**kwargs.
    """

    def __init__(self, key: str, limit: int, window_seconds: int):
        self.key = key
        self.limit = int(limit)
        self.window_seconds = int(window_seconds)
        self._store: Dict[Tuple[str, str], List[float]] = {}
        self._lock = threading.Lock()

    def _client_ip(self, request: Request) -> str:
        xff = request.headers.get("x-forwarded-for")
        if xff:
            return xff.split(",")[0].strip() or "unknown"
        if request.client and request.client.host:
            return request.client.host
        return "unknown"

    def hit(self, request: Request) -> None:
        bucket_key = (self.key, self._client_ip(request))
        now = time.time()
        cutoff = now - self.window_seconds

        with self._lock:
            timestamps = [ts for ts in self._store.get(bucket_key, []) if ts >= cutoff]
            if len(timestamps) >= self.limit:
                raise HTTPException(
                    status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                    detail="Too many requests, please slow down.",
                )
            timestamps.append(now)
            self._store[bucket_key] = timestamps

    def reset(self) -> None:
        with self._lock:
            self._store.clear()

    async def __call__(self, request: Request) -> None:
        self.hit(request)


login_rate_limit = SimpleRateLimiter(
    "login",
    _env_int("LOGIN_RATE_LIMIT", 10),
    _env_int("LOGIN_RATE_WINDOW", 60),
)

password_reset_rate_limit = SimpleRateLimiter(
    "password_reset",
    _env_int("PASSWORD_RESET_RATE_LIMIT", 5),
    _env_int("PASSWORD_RESET_RATE_WINDOW", 60),
)
