"""
Custom middleware for the FastAPI application
"""
import time

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request


class LoggingMiddleware(BaseHTTPMiddleware):
    """Middleware to log all requests and responses"""
    async def dispatch(self, request: Request, call_next):
        started = time.perf_counter()
        print(f"REQUEST: {request.method} {request.url.path}", flush=True)
        try:
            response = await call_next(request)
        except Exception as e:
            print(f"ERROR in request: {type(e).__name__}: {str(e)}", flush=True)
            raise
        elapsed_ms = (time.perf_counter() - started) * 1000
        print(f"RESPONSE: {response.status_code} ({elapsed_ms:.1f} ms)", flush=True)
        return response
