from __future__ import annotations

from typing import Callable

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Adds the deployment's hardening headers unless a route already set them."""

    def __init__(self, app: ASGIApp, hsts_policy: str, csp_policy: str, frame_options: str):
        super().__init__(app)
        self.headers = {
            "Strict-Transport-Security": hsts_policy,
            "Content-Security-Policy": csp_policy,
            "X-Frame-Options": frame_options,
            "X-Content-Type-Options": "nosniff",
            "Referrer-Policy": "no-referrer",
        }

    async def dispatch(self, request, call_next: Callable):
        resp: Response = await call_next(request)
        for name, value in self.headers.items():
            if value:
                resp.headers.setdefault(name, value)
        return resp
