"""Redaction helpers so credentials never reach the logs."""

_MASKED_HEADERS = {"x-bapi-api-key", "x-bapi-sign", "x-bx-apikey"}


def mask_headers(headers: dict[str, str]) -> dict[str, str]:
    """Lower-case header names and truncate API key / signature values."""
    masked = {}
    for k, v in headers.items():
        key = k.lower()
        masked[key] = f"{v[:6]}..." if key in _MASKED_HEADERS else v
    return masked


def mask_signature(url: str) -> str:
    """Replace the ``signature=`` query value with ``***``."""
    marker = "signature="
    i = url.find(marker)
    if i == -1:
        return url
    start = i + len(marker)
    amp = url.find("&", start)
    if amp == -1:
        return url[:start] + "***"
    return url[:start] + "***" + url[amp:]
