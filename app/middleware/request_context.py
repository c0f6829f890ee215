"""
RequestContext Middleware - request ID, client IP and user agent on request.state.

Audit entries for exports and broadcasts read these values, and the
X-Request-ID response header lets the dashboard quote a request when
reporting a failed download.
"""

import uuid

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import settings
from app.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    """
    Adds to request.state:
    - request_id: UUID for tracing this request
    - ip_address: Client IP address
    - user_agent: Client user agent string
    """

    async def dispatch(self, request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        request.state.request_id = request_id
        request.state.ip_address = self._extract_client_ip(request)
        request.state.user_agent = request.headers.get("user-agent")

        logger.debug(
            "Request started",
            request_id=request_id,
            method=request.method,
            path=request.url.path,
        )

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response

    def _extract_client_ip(self, request: Request) -> str | None:
        """
        Client IP, taken from X-Forwarded-For only when the direct peer is a
        trusted proxy and TRUST_X_FORWARDED_FOR is enabled.
        """
        direct_ip = request.client.host if request.client else None

        if not settings.TRUST_X_FORWARDED_FOR or direct_ip not in settings.TRUSTED_PROXY_IPS:
            return direct_ip

        forwarded_for = request.headers.get("x-forwarded-for")
        if forwarded_for:
            # "client, proxy1, proxy2": first entry is the original client
            return forwarded_for.split(",")[0].strip()

        return direct_ip
