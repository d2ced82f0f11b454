"""HMAC-SHA256 signing shared by the exchange clients."""

import hashlib
import hmac


def hmac_sha256_hex(secret: str, payload: str) -> str:
    """Return the lowercase hex HMAC-SHA256 of *payload* keyed by *secret*."""
    return hmac.new(secret.encode(), payload.encode(), hashlib.sha256).hexdigest()


def bybit_signature(api_key: str, api_secret: str, recv_window: int, payload: str, timestamp: int) -> str:
    """Bybit V5: sign ``timestamp + api_key + recv_window + payload``."""
    return hmac_sha256_hex(api_secret, f"{timestamp}{api_key}{recv_window}{payload}")


def bingx_signature(api_secret: str, payload: str) -> str:
    """BingX: sign the sorted ``k=v&...`` parameter string as-is."""
    return hmac_sha256_hex(api_secret, payload)
