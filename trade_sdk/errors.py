"""Exception types raised by the SDK."""

from typing import Any


class TradeSdkError(Exception):
    """Base class for every error raised by trade_sdk."""


class SessionNotInitializedError(TradeSdkError, RuntimeError):
    """The shared session was used before ``setup()``."""


class AuthError(TradeSdkError):
    """Credentials are missing or unusable for an authenticated request."""


class ConfigError(TradeSdkError):
    """A client was built with an invalid configuration."""


class HttpStatusError(TradeSdkError):
    """The exchange answered with a non-2xx HTTP status."""

    def __init__(self, status_code: int, body: str, url: str = ""):
        self.status_code = status_code
        self.body = body
        self.url = url
        super().__init__(f"HTTP {status_code}: {body[:200]}")


class ExchangeResponseError(TradeSdkError):
    """The exchange answered 2xx but reported an error in its envelope."""

    def __init__(self, code: int, message: str, payload: Any = None):
        self.code = code
        self.message = message
        self.payload = payload
        super().__init__(f"Exchange error {code}: {message}")

    @classmethod
    def from_payload(cls, payload: dict, code_field: str, msg_field: str) -> "ExchangeResponseError":
        code = payload.get(code_field, -1)
        try:
            code = int(code)
        except (TypeError, ValueError):
            code = -1
        return cls(code, str(payload.get(msg_field, "")), payload)
