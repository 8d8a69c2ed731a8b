from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request


class SlidingWindowRateLimiter:
    """In-process limiter keyed by caller; one deque of hit timestamps per key."""

    def __init__(self) -> None:
        self._hits: dict[str, deque[float]] = {}
        self._lock = asyncio.Lock()

    async def hit(self, key: str, *, limit: int, window_seconds: int) -> int:
        """Record a hit. Returns 0 when allowed, otherwise seconds until retry."""
        now = time.monotonic()
        async with self._lock:
            bucket = self._hits.setdefault(key, deque())
            while bucket and bucket[0] <= now - window_seconds:
                bucket.popleft()
            if len(bucket) >= limit:
                return max(int(window_seconds - (now - bucket[0])) + 1, 1)
            bucket.append(now)
            return 0

    async def reset(self) -> None:
        async with self._lock:
            self._hits.clear()


auth_rate_limiter = SlidingWindowRateLimiter()


def rate_limited(scope: str, *, limit: int, window_seconds: int = 60):
    async def dependency(
        request: Request,
        x_forwarded_for: Annotated[str | None, Header(alias="X-Forwarded-For")] = None,
    ) -> None:
        forwarded = (x_forwarded_for or "").split(",")[0].strip()
        caller = forwarded or (request.client.host if request.client else "unknown")
        retry_after = await auth_rate_limiter.hit(
            f"{scope}:{caller}", limit=limit, window_seconds=window_seconds
        )
        if retry_after:
            raise HTTPException(
                status_code=429,
                detail="Too many authentication attempts, please try again later",
                headers={"Retry-After": str(retry_after)},
            )

    return Depends(dependency)
