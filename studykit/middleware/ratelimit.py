import logging
import time
import asyncio
from collections import deque
from typing import Callable, Iterable
from fastapi import Request
from fastapi.responses import JSONResponse
from jose import JWTError

from studykit.auth.deps import COOKIE_NAME
from studykit.utils.security import decode_token

logger = logging.getLogger(__name__)

GUARDED_PREFIXES = ("/api/documents/upload", "/api/chat")


class RateLimitMiddleware:
    """Sliding-window limit per user (or per IP for anonymous callers)
    on the LLM-backed paths."""

    def __init__(
        self,
        app,
        *,
        window_seconds: int,
        max_calls: int,
        key_func: Callable[[Request], str],
        include_path_prefixes: Iterable[str] = GUARDED_PREFIXES,
    ):
        self.app = app
        self.window = window_seconds
        self.max_calls = max_calls
        self.key_func = key_func
        self.include_paths = tuple(include_path_prefixes)

        self._buckets: dict[str, deque[float]] = {}
        self._lock = asyncio.Lock()

    def _should_guard(self, path: str) -> bool:
        return any(path.startswith(p) for p in self.include_paths)

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        path = scope.get("path", "")
        if not self._should_guard(path):
            return await self.app(scope, receive, send)

        request = Request(scope, receive=receive)
        key = self.key_func(request)

        now = time.monotonic()
        async with self._lock:
            q = self._buckets.setdefault(key, deque())

            cutoff = now - self.window
            while q and q[0] < cutoff:
                q.popleft()

            if len(q) >= self.max_calls:
                retry_after = max(1, int(q[0] + self.window - now))
                logger.warning("rate limit hit for %s on %s", key, path)
                resp = JSONResponse(
                    status_code=429,
                    content={"detail": "Too Many Requests", "try_again_in": retry_after},
                    headers={"Retry-After": str(retry_after)},
                )
                return await resp(scope, receive, send)

            q.append(now)

        return await self.app(scope, receive, send)


def client_key(req: Request) -> str:
    auth = req.headers.get("authorization", "")
    token = auth.split(" ", 1)[1].strip() if auth.lower().startswith("bearer ") else req.cookies.get(COOKIE_NAME)
    if token:
        try:
            sub = decode_token(token).get("sub")
            if sub:
                return f"user:{sub}"
        except JWTError:
            pass

    ip = req.client.host if req.client else "unknown"
    return f"ip:{ip}"
