"""Session token verification.

Learn: The identity provider signs short-lived JWT session tokens.
`sub` is the provider's user id, `azp` the origin that requested the
token. We verify signature, expiry, optional issuer and authorized
party. `create_session_token` exists for local development and tests
with an HS256 key; production tokens are never minted here.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from welth.config import settings


class TokenError(Exception):
    """Raised when a session token can't be verified."""


def verify_session_token(token: str) -> dict:
    """Verify and decode a session token.

    Returns the payload dict on success.
    Raises TokenError on failure.
    """
    options = {"require": ["sub", "exp"]}
    try:
        payload = jwt.decode(
            token,
            settings.identity_jwt_key,
            algorithms=settings.identity_jwt_algorithms,
            issuer=settings.identity_issuer or None,
            options=options,
            leeway=5,
        )
    except jwt.ExpiredSignatureError:
        raise TokenError("Session token has expired")
    except jwt.InvalidTokenError as e:
        raise TokenError(f"Invalid session token: {e}")

    parties = settings.identity_authorized_parties
    if parties and payload.get("azp") not in parties:
        raise TokenError("Session token was issued for another origin")
    return payload


def create_session_token(
    subject: str,
    expires_minutes: int = 60,
    azp: Optional[str] = None,
) -> str:
    """Mint an HS256 session token with the configured key (dev only)."""
    now = datetime.now(timezone.utc)
    payload = {
        "sub": subject,
        "iat": now,
        "exp": now + timedelta(minutes=expires_minutes),
    }
    if settings.identity_issuer:
        payload["iss"] = settings.identity_issuer
    if azp:
        payload["azp"] = azp
    return jwt.encode(payload, settings.identity_jwt_key, algorithm="HS256")
