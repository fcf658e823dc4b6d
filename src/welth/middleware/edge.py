"""Edge protection middleware: shield and bot detection.

Learn: First stage of the chain. Builds a RequestDetails snapshot,
asks the edge guard for a decision and short-circuits denied requests
with 403 before any auth or handler code runs. Allowed responses get
the standard security headers.
"""

from typing import Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from welth.middleware.matcher import runs_middleware
from welth.security.guard import Guard
from welth.security.request import RequestDetails

logger = structlog.get_logger()


class EdgeProtectionMiddleware(BaseHTTPMiddleware):
    """Deny hostile or automated traffic, harden everything else."""

    def __init__(
        self,
        app,
        guard: Guard,
        matcher: Callable[[str], bool] = runs_middleware,
    ):
        super().__init__(app)
        self.guard = guard
        self.matcher = matcher

    async def dispatch(self, request: Request, call_next) -> Response:
        if not self.matcher(request.url.path):
            return await call_next(request)

        decision = await self.guard.protect(RequestDetails.from_request(request))
        request.state.edge_decision = decision

        if decision.is_denied():
            reason = decision.reason.type if decision.reason else "UNKNOWN"
            logger.warning(
                "welth.edge.blocked",
                reason=reason,
                ip=decision.ip,
                user_agent=request.headers.get("user-agent"),
            )
            if decision.reason is not None and decision.reason.is_rate_limit():
                return JSONResponse(
                    status_code=429,
                    content={"detail": "Too many requests", "reason": reason},
                    headers={"Retry-After": str(decision.reason.reset)},
                )
            return JSONResponse(
                status_code=403,
                content={"detail": "Forbidden", "reason": reason},
            )

        response: Response = await call_next(request)
        _add_security_headers(request, response)
        return response


def _add_security_headers(request: Request, response: Response) -> None:
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    if request.url.scheme == "https":
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
