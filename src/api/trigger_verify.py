# src/api/trigger_verify.py
#
#   Verifies that batch triggers come from our scheduler using HMAC-SHA256
#   over the raw request body, base64 encoded in X-Trigger-Signature

import base64
import hashlib
import hmac

from config import settings

SIGNATURE_HEADER = "X-Trigger-Signature"


def sign_payload(payload: bytes, secret: str) -> str:
    digest = hmac.new(
        key=secret.encode('utf-8'),
        msg=payload,
        digestmod=hashlib.sha256
    ).digest()
    return base64.b64encode(digest).decode('utf-8')


def verify_trigger(payload: bytes, signature_header: str, secret: str = None) -> bool:
    """
    Verify that a trigger request was signed with the shared secret.

    Args:
        payload: Raw request body bytes
        signature_header: Value of X-Trigger-Signature header
        secret: Shared secret (default: TRIGGER_SECRET from settings)

    Returns:
        True if signature is valid (or no secret is configured), False otherwise
    """
    if secret is None:
        secret = settings.TRIGGER_SECRET

    if not secret:
        # local/dev without a secret, skip verification
        return True

    if not signature_header:
        return False

    # constant-time comparison
    return hmac.compare_digest(sign_payload(payload, secret), signature_header)
