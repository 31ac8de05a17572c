"""Correlation context middleware for request tracing.

Propagates the request ID and caller identity to the logging context.
"""

from __future__ import annotations

import uuid

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from panpal.observability.logging import request_id_var, user_id_var


class CorrelationMiddleware(BaseHTTPMiddleware):
    """Sets request_id / user_id context variables for each request.

    Headers:
    - x-request-id: reused when the client sends one, generated otherwise
    - x-user-id: caller identity, copied into log records
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request.headers.get("x-request-id") or str(uuid.uuid4())
        user_id = request.headers.get("x-user-id") or ""

        request_token = request_id_var.set(request_id)
        user_token = user_id_var.set(user_id)
        try:
            request.state.request_id = request_id
            response = await call_next(request)
            response.headers["x-request-id"] = request_id
            return response
        finally:
            request_id_var.reset(request_token)
            user_id_var.reset(user_token)
