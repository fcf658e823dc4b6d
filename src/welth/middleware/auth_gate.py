"""Auth gate middleware: redirect signed-out users off protected pages.

Learn: Second stage of the chain, after edge protection. It resolves
the identity for every matched request (stored on request.state for
handlers) and redirects to sign-in only for the protected prefixes.
API routes are not gated here; actions answer 401 themselves.
"""

from typing import Callable

import structlog
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from welth.auth.dependencies import redirect_to_sign_in, resolve_identity
from welth.middleware.matcher import runs_middleware

logger = structlog.get_logger()


class AuthGateMiddleware(BaseHTTPMiddleware):
    def __init__(
        self,
        app,
        is_protected: Callable[[str], bool],
        matcher: Callable[[str], bool] = runs_middleware,
    ):
        super().__init__(app)
        self.is_protected = is_protected
        self.matcher = matcher

    async def dispatch(self, request: Request, call_next) -> Response:
        if not self.matcher(request.url.path):
            return await call_next(request)

        identity = resolve_identity(request)
        request.state.identity = identity

        if identity is None and self.is_protected(request.url.path):
            logger.info("welth.auth.redirect_sign_in")
            return redirect_to_sign_in(request)

        return await call_next(request)
