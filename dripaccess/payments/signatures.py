"""
Gateway signature verification.

The gateway signs two things with HMAC-SHA256 (hex digest):

- webhook bodies, with the webhook secret, over the raw request bytes;
- checkout confirmations, with the API key secret, over
  ``"<order_id>|<payment_id>"``.

Verification always runs on the untouched bytes. Decoding and re-encoding
JSON before verifying changes whitespace and key order and breaks the hash.
"""

from __future__ import annotations

import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)


def compute_signature(payload: bytes, secret: str) -> str:
    return hmac.new(
        key=secret.encode("utf-8"),
        msg=payload,
        digestmod=hashlib.sha256,
    ).hexdigest()


def verify(payload: bytes, signature: str | None, secret: str | None) -> bool:
    """
    Return True only if ``signature`` is the HMAC of ``payload`` under ``secret``.

    Fails closed: a missing signature, a missing secret, a non-bytes payload or
    any unexpected error all return False. Callers must treat False as "reject
    the event" and never fall back to a weaker check.
    """
    if not signature or not secret:
        return False
    if not isinstance(payload, (bytes, bytearray)):
        return False
    try:
        expected = compute_signature(bytes(payload), secret)
        return hmac.compare_digest(expected, signature.strip())
    except Exception:
        logger.warning("Signature verification raised; rejecting", exc_info=True)
        return False


def checkout_payload(gateway_order_id: str, gateway_payment_id: str) -> bytes:
    """Bytes the gateway signs for a client-side checkout confirmation."""
    return f"{gateway_order_id}|{gateway_payment_id}".encode()
