"""Generic async HTTP layer the exchange clients are built on.

``BaseHttpClient`` owns credentials and the ``httpx.AsyncClient`` (pooled from
a ``SharedSessionManager`` when one is initialized, private otherwise).
``HttpClient`` adds the verb helpers and the response/error handling shared by
every exchange; subclasses only decide how a request is signed and laid out.
"""

from __future__ import annotations

import enum
import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar, Generic, TypeVar

import httpx
from pydantic import BaseModel

from trade_sdk.config import get_settings
from trade_sdk.errors import AuthError, ConfigError, ExchangeResponseError, HttpStatusError
from trade_sdk.services.session import SharedSessionManager
from trade_sdk.utils.masking import mask_headers, mask_signature

logger = logging.getLogger(__name__)

PRIVATE_POOL_KEEPALIVE = 50

T = TypeVar("T", bound=BaseModel)


def stringify(value: Any) -> str:
    """Render a parameter value the way exchanges expect in query strings."""
    if isinstance(value, enum.Enum):
        value = value.value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def clean_params(params: dict[str, Any] | None) -> dict[str, Any]:
    """Drop ``None`` and empty-string values and unwrap enums."""
    out: dict[str, Any] = {}
    for k, v in (params or {}).items():
        if v is None or v == "":
            continue
        out[k] = v.value if isinstance(v, enum.Enum) else v
    return out


@dataclass
class RequestArgs:
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    content: str | None = None


class BaseHttpClient:
    """Credentials plus the underlying ``httpx.AsyncClient``."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        api_secret: str | None = None,
        recv_window: int = 5000,
        session: SharedSessionManager | None = None,
        timeout: float | None = None,
    ):
        if recv_window <= 0:
            raise ConfigError(f"recv_window must be positive, got {recv_window}")
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.api_secret = api_secret
        self.recv_window = recv_window

        if session is not None and session.is_initialized():
            self.client = session.get_client()
            self.uses_shared_session = True
        else:
            self.client = httpx.AsyncClient(
                headers={"Content-Type": "application/json", "Accept": "application/json"},
                limits=httpx.Limits(max_keepalive_connections=PRIVATE_POOL_KEEPALIVE),
                timeout=timeout if timeout is not None else get_settings().request_timeout,
            )
            self.uses_shared_session = False

    def set_recv_window(self, recv_window: int) -> None:
        if recv_window <= 0:
            raise ConfigError(f"recv_window must be positive, got {recv_window}")
        self.recv_window = recv_window

    def is_shared_session_enabled(self) -> bool:
        return self.uses_shared_session

    def _require_credentials(self) -> tuple[str, str]:
        if not self.api_key:
            raise AuthError("API key required for authenticated requests")
        if not self.api_secret:
            raise AuthError("API secret required for authenticated requests")
        return self.api_key, self.api_secret

    async def aclose(self) -> None:
        """Close the private client.  A pooled client belongs to the session."""
        if not self.uses_shared_session:
            await self.client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()


class HttpClient(BaseHttpClient, ABC, Generic[T]):
    """Verb helpers over an exchange-specific request layout.

    Subclasses set ``envelope`` (the pydantic response model) and the names
    of the code/message fields used to detect exchange-level errors.
    """

    envelope: ClassVar[type[BaseModel]]
    code_field: ClassVar[str] = "code"
    msg_field: ClassVar[str] = "msg"

    @abstractmethod
    def build_request_args(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None,
        auth: bool,
    ) -> RequestArgs:
        """Return the URL, headers and body for one request."""

    def _timestamp(self) -> int:
        return int(time.time() * 1000)

    async def request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        auth: bool = False,
    ) -> T:
        method = method.upper()
        args = self.build_request_args(method, endpoint, params, auth)
        logger.debug("Sending %s %s", method, mask_signature(args.url))

        resp = await self.client.request(
            method, args.url, headers=args.headers, content=args.content,
        )
        if not resp.is_success:
            logger.error(
                "HTTP error: method=%s url=%s headers=%s status=%d body=%s",
                method, mask_signature(args.url), mask_headers(args.headers),
                resp.status_code, resp.text[:500],
            )
            raise HttpStatusError(resp.status_code, resp.text, mask_signature(args.url))

        data = resp.json()
        if data.get(self.code_field, 0) != 0:
            err = ExchangeResponseError.from_payload(data, self.code_field, self.msg_field)
            logger.error(
                "Exchange error: method=%s url=%s headers=%s status=%d error=%s",
                method, mask_signature(args.url), mask_headers(args.headers),
                resp.status_code, err,
            )
            raise err
        return self.envelope.model_validate(data)

    async def get(self, endpoint: str, params: dict[str, Any] | None = None, auth: bool = False) -> T:
        return await self.request("GET", endpoint, params, auth)

    async def post(self, endpoint: str, params: dict[str, Any] | None = None, auth: bool = False) -> T:
        return await self.request("POST", endpoint, params, auth)

    async def put(self, endpoint: str, params: dict[str, Any] | None = None, auth: bool = False) -> T:
        return await self.request("PUT", endpoint, params, auth)

    async def delete(self, endpoint: str, params: dict[str, Any] | None = None, auth: bool = False) -> T:
        return await self.request("DELETE", endpoint, params, auth)
