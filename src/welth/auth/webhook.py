"""Identity-provider webhook signature verification.

Learn: The provider signs each delivery with HMAC-SHA256 over
"{msg_id}.{timestamp}.{body}" using the base64 part of a "whsec_"
secret. The signature header can hold several space-separated
"v1,<base64>" entries (key rotation); any match is accepted.
Timestamps older or newer than five minutes are rejected (replay).
"""

import base64
import hashlib
import hmac
import time
from typing import Optional

TOLERANCE_SECONDS = 300


class WebhookSignatureError(Exception):
    """Raised when a webhook delivery can't be authenticated."""


def _secret_bytes(secret: str) -> bytes:
    if secret.startswith("whsec_"):
        return base64.b64decode(secret[len("whsec_"):])
    return secret.encode()


def sign(secret: str, msg_id: str, timestamp: str, body: bytes) -> str:
    signed = f"{msg_id}.{timestamp}.".encode() + body
    digest = hmac.new(_secret_bytes(secret), signed, hashlib.sha256).digest()
    return "v1," + base64.b64encode(digest).decode()


def verify(
    secret: str,
    msg_id: Optional[str],
    timestamp: Optional[str],
    signature_header: Optional[str],
    body: bytes,
    now: Optional[float] = None,
) -> None:
    if not secret:
        raise WebhookSignatureError("Webhook secret is not configured")
    if not (msg_id and timestamp and signature_header):
        raise WebhookSignatureError("Missing signature headers")
    try:
        sent_at = int(timestamp)
    except ValueError:
        raise WebhookSignatureError("Invalid timestamp")
    if abs((now if now is not None else time.time()) - sent_at) > TOLERANCE_SECONDS:
        raise WebhookSignatureError("Timestamp outside tolerance")

    expected = sign(secret, msg_id, timestamp, body)
    for candidate in signature_header.split():
        if hmac.compare_digest(expected, candidate):
            return
    raise WebhookSignatureError("No matching signature")
