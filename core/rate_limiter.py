# core/rate_limiter.py

import time
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from fastapi import HTTPException, Request

from core.logging_config import logger


# In-memory sliding window, per process
_rate_limit_store: Dict[str, List[float]] = defaultdict(list)


def check_rate_limit(identifier: str, max_requests: int = 10, window_seconds: int = 60) -> Tuple[bool, int]:
    """
    Record one hit for ``identifier`` if it is under the limit.

    Returns:
        (allowed, remaining)
    """
    now = time.time()
    window_start = now - window_seconds

    hits = [ts for ts in _rate_limit_store[identifier] if ts > window_start]

    if len(hits) >= max_requests:
        _rate_limit_store[identifier] = hits
        return False, 0

    hits.append(now)
    _rate_limit_store[identifier] = hits
    return True, max_requests - len(hits)


def reset_rate_limits(identifier: Optional[str] = None) -> None:
    if identifier is None:
        _rate_limit_store.clear()
    else:
        _rate_limit_store.pop(identifier, None)


def get_rate_limit_identifier(request: Request, scope: str = "global") -> str:
    """``<scope>:<client ip>``, honouring the first X-Forwarded-For hop."""
    client_ip = request.client.host if request.client else "unknown"

    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        client_ip = forwarded_for.split(",")[0].strip()

    return f"{scope}:{client_ip}"


def rate_limit(scope: str, max_requests: int = 10, window_seconds: int = 60):
    """
    Dependency factory:

        @router.post("/login", dependencies=[Depends(rate_limit("login", 5, 60))])

    Raises 429 with Retry-After once the window is full.
    """

    def dependency(request: Request) -> int:
        identifier = get_rate_limit_identifier(request, scope)
        allowed, remaining = check_rate_limit(identifier, max_requests, window_seconds)

        if not allowed:
            logger.warning(f"🚦 Rate limit hit for {identifier}")
            raise HTTPException(
                status_code=429,
                detail=f"Rate limit exceeded. Maximum {max_requests} requests per {window_seconds} seconds.",
                headers={
                    "X-RateLimit-Limit": str(max_requests),
                    "X-RateLimit-Window": str(window_seconds),
                    "Retry-After": str(window_seconds),
                },
            )

        return remaining

    return dependency
