"""HMAC-SHA256 helpers shared by gateways and webhook verification."""

import hashlib
import hmac


def hmac_sha256_hex(secret: str, message: str | bytes) -> str:
    body = message.encode() if isinstance(message, str) else message
    return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()


def signature_matches(secret: str, message: str | bytes, signature: str) -> bool:
    """Constant-time comparison of ``signature`` against the expected digest."""
    if not secret or not signature:
        return False
    expected = hmac_sha256_hex(secret, message).encode()
    return hmac.compare_digest(expected, signature.encode("utf-8", "surrogateescape"))


def payment_signature_message(gateway_order_id: str, gateway_payment_id: str) -> str:
    return f"{gateway_order_id}|{gateway_payment_id}"
