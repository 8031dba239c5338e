# Copyright (c) Microsoft Corporation.
# Licensed under the MIT License.
"""
FastAPI middleware for request correlation.
"""

from __future__ import annotations
import time
import uuid
from typing import Any, Optional
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from src.core.observability.context import RequestScope
from src.core.observability.logger import get_logger

CORRELATION_ID_HEADER = "X-Correlation-ID"
USER_ID_HEADER = "X-User-Id"
SKIP_PATHS = {"/healthz", "/favicon.ico", "/metrics"}


logger = get_logger(__name__)


class ObservabilityMiddleware(BaseHTTPMiddleware):
    """
    Scopes correlation id and caller identity to each request.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request with request context.

        :param request: Incoming request
        :type request: Request
        :param call_next: Next handler in chain
        :type call_next: RequestResponseEndpoint
        :returns: Response
        :rtype: Response
        """
        if request.url.path in SKIP_PATHS:
            return await call_next(request)
        correlation_id = request.headers.get(CORRELATION_ID_HEADER) or str(uuid.uuid4())
        user_id = self._get_user_id(request)
        with RequestScope(correlation_id=correlation_id, user_id=user_id):
            start_time = time.perf_counter()
            response: Optional[Response] = None
            try:
                response = await call_next(request)
            finally:
                duration_ms = int((time.perf_counter() - start_time) * 1000)
                status_code = response.status_code if response else 500
                logger.info(
                    "%s %s %s",
                    request.method,
                    request.url.path,
                    status_code,
                    extra={
                        "custom_dimensions": {
                            "http_method": request.method,
                            "http_path": str(request.url.path),
                            "http_status_code": status_code,
                            "duration_ms": duration_ms,
                        }
                    },
                )
            response.headers[CORRELATION_ID_HEADER] = correlation_id
            return response

    @staticmethod
    def _get_user_id(request: Request) -> Optional[str]:
        """Extract caller identity from the request.

        :param request: Incoming request
        :returns: User id, or None for anonymous callers
        :rtype: Optional[str]
        """
        user_id = request.headers.get(USER_ID_HEADER)
        if user_id:
            return user_id.strip() or None
        user = request.scope.get("user")
        if user is not None and getattr(user, "is_authenticated", False):
            return getattr(user, "display_name", None) or None
        return None


def add_observability_middleware(app: Any) -> None:
    """
    Add observability middleware to FastAPI app.

    :param app: FastAPI application instance
    :type app: FastAPI
    """
    app.add_middleware(ObservabilityMiddleware)
