"""
Logging middleware for the UBL Converter API
Provides automatic request/response logging with correlation IDs
"""
import time
from typing import Callable, Optional
from uuid import uuid4

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from ubl_converter.core.logging import audit_logger, LogLevel, LogCategory

CORRELATION_HEADER = "X-Request-ID"


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Middleware for request/response logging

    The correlation id comes from the X-Request-ID header, or is generated
    when the client sends none, and is echoed on the response.
    """

    def __init__(self, app, exclude_paths: Optional[list] = None):
        super().__init__(app)
        self.exclude_paths = exclude_paths or ["/health", "/ping", "/docs", "/redoc"]

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        correlation_id = request.headers.get(CORRELATION_HEADER) or str(uuid4())
        token = audit_logger.set_correlation_id(correlation_id)
        request.state.correlation_id = correlation_id

        try:
            # Skip logging for excluded paths
            if any(request.url.path.startswith(path) for path in self.exclude_paths):
                response = await call_next(request)
                response.headers[CORRELATION_HEADER] = correlation_id
                return response

            return await self._dispatch_logged(request, call_next, correlation_id)
        finally:
            audit_logger.reset_correlation_id(token)

    async def _dispatch_logged(self, request: Request, call_next: Callable, correlation_id: str) -> Response:
        start_time = time.time()
        content_length = request.headers.get("content-length")

        audit_logger.log_api_request(
            method=request.method,
            path=request.url.path,
            query_params=dict(request.query_params) if request.query_params else None,
            headers=dict(request.headers),
            body_size=int(content_length) if content_length and content_length.isdigit() else None,
            client_ip=self._get_client_ip(request),
            user_agent=request.headers.get("user-agent")
        )

        try:
            response = await call_next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            audit_logger.log_api_response(
                method=request.method,
                path=request.url.path,
                status_code=500,
                duration_ms=duration_ms,
                error_code="INTERNAL_SERVER_ERROR"
            )
            audit_logger.log_structured(
                level=LogLevel.ERROR,
                category=LogCategory.SYSTEM,
                message=f"Request processing failed: {str(e)}",
                method=request.method,
                path=request.url.path,
                exception=str(e),
                duration_ms=duration_ms
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        audit_logger.log_api_response(
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            duration_ms=duration_ms
        )

        response.headers[CORRELATION_HEADER] = correlation_id
        return response

    def _get_client_ip(self, request: Request) -> str:
        """Extract client IP address from request"""
        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("x-real-ip")
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return "unknown"
