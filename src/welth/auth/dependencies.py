"""Identity resolution and FastAPI auth dependencies.

Learn: The auth gate middleware resolves the identity once and stores
it on request.state. Handlers get it through `get_identity` and pass it
explicitly into services. Nothing below the route layer looks at the
request to find out who is calling.
"""

from typing import Optional
from urllib.parse import urlencode

import structlog
from fastapi import Request
from starlette.responses import RedirectResponse

from welth.auth.session import TokenError, verify_session_token
from welth.config import settings

logger = structlog.get_logger()

SESSION_COOKIE = "__session"


class Identity:
    """The signed-in user as the identity provider knows them."""

    def __init__(self, user_id: str, session_id: Optional[str] = None):
        self.user_id = user_id  # provider subject id
        self.session_id = session_id

    def __repr__(self) -> str:
        return f"Identity(user_id={self.user_id!r})"


def _session_token(request: Request) -> Optional[str]:
    authorization = request.headers.get("authorization")
    if authorization and authorization.startswith("Bearer "):
        return authorization[7:]
    return request.cookies.get(SESSION_COOKIE)


def resolve_identity(request: Request) -> Optional[Identity]:
    """Identity for the request, or None when signed out.

    An invalid or expired token counts as signed out.
    """
    token = _session_token(request)
    if not token:
        return None
    try:
        payload = verify_session_token(token)
    except TokenError as e:
        logger.info("welth.auth.invalid_token", error=str(e))
        return None
    return Identity(user_id=payload["sub"], session_id=payload.get("sid"))


def redirect_to_sign_in(request: Request) -> RedirectResponse:
    """Send the browser to sign in, then back to where it was going."""
    query = urlencode({"redirect_url": str(request.url)})
    return RedirectResponse(f"{settings.sign_in_url}?{query}", status_code=307)


async def get_identity(request: Request) -> Optional[Identity]:
    """FastAPI dependency: the resolved identity, or None."""
    if hasattr(request.state, "identity"):
        return request.state.identity
    identity = resolve_identity(request)
    request.state.identity = identity
    return identity
