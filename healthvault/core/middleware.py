"""
Custom middleware for the FastAPI application.
"""
import time
import logging
import uuid
from collections import deque
from typing import Deque, Dict

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from ..config import settings

# Set up logging
logger = logging.getLogger(__name__)

def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    Logs every request with a generated request id and its duration.

    The id is exposed as request.state.request_id and the X-Request-ID header.
    Request bodies are never logged since they carry passwords and tokens.
    """
    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        logger.info(f"Request {request_id} started: {request.method} {request.url.path} from {client_ip(request)}")

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            process_time = time.perf_counter() - start_time
            logger.error(
                f"Request {request_id} failed: {request.method} {request.url.path} "
                f"- Error: {str(e)} - Duration: {process_time:.4f}s"
            )
            raise

        process_time = time.perf_counter() - start_time
        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        response.headers["X-Request-ID"] = request_id
        logger.info(
            f"Request {request_id} completed: {request.method} {request.url.path} "
            f"- Status: {response.status_code} - Duration: {process_time:.4f}s"
        )
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    Sliding-window rate limit per client IP, kept in process memory.

    Health checks are not counted.
    """
    exempt_paths = ("/health",)

    def __init__(self, app: ASGIApp, rate_limit: int = 100, window_seconds: int = 900):
        super().__init__(app)
        self.rate_limit = rate_limit
        self.window_seconds = window_seconds
        self.requests: Dict[str, Deque[float]] = {}
        self.last_sweep = time.monotonic()

    def prune(self, now: float) -> None:
        """Drop expired timestamps and forget clients with none left."""
        for ip in list(self.requests):
            timestamps = self.requests[ip]
            while timestamps and now - timestamps[0] >= self.window_seconds:
                timestamps.popleft()
            if not timestamps:
                del self.requests[ip]
        self.last_sweep = now

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.exempt_paths:
            return await call_next(request)

        ip = client_ip(request)
        now = time.monotonic()
        if now - self.last_sweep >= self.window_seconds:
            self.prune(now)
        timestamps = self.requests.setdefault(ip, deque())
        while timestamps and now - timestamps[0] >= self.window_seconds:
            timestamps.popleft()

        if len(timestamps) >= self.rate_limit:
            retry_after = int(self.window_seconds - (now - timestamps[0])) + 1
            logger.warning(f"Rate limit exceeded for IP: {ip}")
            return JSONResponse(
                status_code=429,
                content={"error": "Too many requests, please try again later"},
                headers={"Retry-After": str(retry_after)}
            )

        timestamps.append(now)
        return await call_next(request)


def setup_middlewares(app):
    """
    Set up all custom middlewares for the application.

    Args:
        app: FastAPI application instance
    """
    if settings.rate_limit_enabled:
        app.add_middleware(
            RateLimitMiddleware,
            rate_limit=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds
        )
    # added last so it wraps the rate limiter and logs 429s too
    app.add_middleware(RequestLoggingMiddleware)
