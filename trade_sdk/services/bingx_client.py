"""BingX open-API REST client: request signing plus a subset of endpoints.

BingX signs the key-sorted ``k=v&...`` parameter string (``recvWindow`` and
``timestamp`` included) and expects the signature as a ``signature`` query
parameter on GET, or a ``signature`` body field otherwise.
"""

import json
import logging
from typing import Any
from urllib.parse import quote

from trade_sdk.schemas import BingxPositionSide, BingxResponse
from trade_sdk.services.http_client import HttpClient, RequestArgs, clean_params, stringify
from trade_sdk.services.session import SharedSessionManager
from trade_sdk.services.signing import bingx_signature

logger = logging.getLogger(__name__)

MAINNET_URL = "https://open-api.bingx.com"
DEMO_URL = "https://open-api-vst.bingx.com"


def prepare_payload(method: str, params: dict[str, Any], timestamp: int) -> tuple[str, str | None]:
    """Return ``(string_to_sign, url_query)``; the query is ``None`` for non-GET.

    GET values are percent-encoded in the URL only when some value is a JSON
    structure.  For other verbs ``timestamp`` is added to *params* in place
    unless the caller already set one.
    """
    if method == "GET":
        pairs = sorted((k, stringify(v)) for k, v in params.items())
        has_struct = any("{" in v or "[" in v for _, v in pairs)
        to_sign = "&".join(f"{k}={v}" for k, v in pairs + [("timestamp", str(timestamp))])
        if has_struct:
            encoded = [(k, quote(v, safe="")) for k, v in pairs]
        else:
            encoded = pairs
        query = "&".join(f"{k}={v}" for k, v in encoded + [("timestamp", str(timestamp))])
        return to_sign, query

    params.setdefault("timestamp", timestamp)
    to_sign = "&".join(f"{k}={stringify(params[k])}" for k in sorted(params))
    return to_sign, None


class BingxHttpClient(HttpClient[BingxResponse]):
    """HTTP client for BingX mainnet and the VST demo environment."""

    envelope = BingxResponse
    code_field = "code"
    msg_field = "msg"

    def __init__(
        self,
        api_key: str | None = None,
        api_secret: str | None = None,
        demo: bool = False,
        recv_window: int = 5000,
        session: SharedSessionManager | None = None,
    ):
        super().__init__(
            DEMO_URL if demo else MAINNET_URL, api_key, api_secret, recv_window, session=session,
        )
        self.demo = demo

    def build_request_args(self, method, endpoint, params, auth) -> RequestArgs:
        timestamp = self._timestamp()
        params = clean_params(params)
        params["recvWindow"] = self.recv_window

        headers: dict[str, str] = {}
        api_secret = None
        if auth:
            api_key, api_secret = self._require_credentials()
            headers["X-BX-APIKEY"] = api_key

        to_sign, query = prepare_payload(method, params, timestamp)
        signature = bingx_signature(api_secret, to_sign) if auth else None

        url = f"{self.base_url}{endpoint}"
        if method == "GET":
            url = f"{url}?{query}"
            if signature:
                url = f"{url}&signature={signature}"
            return RequestArgs(url=url, headers=headers)

        body = dict(params)
        if signature:
            body["signature"] = signature
        return RequestArgs(url=url, headers=headers, content=json.dumps(body, separators=(",", ":")))


class BingxClient(BingxHttpClient):
    """BingX client with typed endpoint methods."""

    async def get_server_time(self) -> BingxResponse:
        return await self.get("/openApi/swap/v2/server/time")

    async def get_api_permissions(self) -> BingxResponse:
        return await self.get("/openApi/v1/account/apiPermissions", auth=True)

    # ── Spot ───────────────────────────────────────────────────────────────

    async def get_spot_symbols(self, symbol: str | None = None) -> BingxResponse:
        return await self.get("/openApi/spot/v1/common/symbols", {"symbol": symbol})

    async def get_spot_klines(
        self,
        symbol: str,
        interval: str,
        start_time: int | None = None,
        end_time: int | None = None,
        limit: int | None = None,
    ) -> BingxResponse:
        params = {
            "symbol": symbol,
            "interval": interval,
            "startTime": start_time,
            "endTime": end_time,
            "limit": limit,
        }
        return await self.get("/openApi/spot/v2/market/kline", params)

    async def get_spot_balance(self) -> BingxResponse:
        return await self.get("/openApi/spot/v1/account/balance", auth=True)

    # ── Perpetual swap ─────────────────────────────────────────────────────

    async def get_swap_contracts(self, symbol: str | None = None) -> BingxResponse:
        return await self.get("/openApi/swap/v2/quote/contracts", {"symbol": symbol})

    async def get_swap_klines(
        self,
        symbol: str,
        interval: str,
        start_time: int | None = None,
        end_time: int | None = None,
        limit: int | None = None,
    ) -> BingxResponse:
        params = {
            "symbol": symbol,
            "interval": interval,
            "startTime": start_time,
            "endTime": end_time,
            "limit": limit,
        }
        return await self.get("/openApi/swap/v3/quote/klines", params)

    async def get_swap_balance(self) -> BingxResponse:
        return await self.get("/openApi/swap/v3/user/balance", auth=True)

    async def get_swap_positions(self, symbol: str | None = None) -> BingxResponse:
        return await self.get("/openApi/swap/v2/user/positions", {"symbol": symbol}, auth=True)

    async def place_swap_order(
        self,
        symbol: str,
        side: str,
        order_type: str,
        quantity: float,
        position_side: BingxPositionSide = BingxPositionSide.both,
        price: float | None = None,
        client_order_id: str | None = None,
        reduce_only: bool | None = None,
    ) -> BingxResponse:
        """POST /openApi/swap/v2/trade/order.  *side* is BUY/SELL, *order_type* MARKET/LIMIT/..."""
        params = {
            "symbol": symbol,
            "side": stringify(side).upper(),
            "type": stringify(order_type).upper(),
            "quantity": quantity,
            "positionSide": position_side,
            "price": price,
            "clientOrderId": client_order_id,
            "reduceOnly": reduce_only,
        }
        logger.info(
            "Placing swap %s %s %s qty=%s price=%s",
            params["side"], params["type"], symbol, quantity, price,
        )
        return await self.post("/openApi/swap/v2/trade/order", params, auth=True)

    async def cancel_all_swap_orders(self, symbol: str | None = None) -> BingxResponse:
        return await self.delete("/openApi/swap/v2/trade/allOpenOrders", {"symbol": symbol}, auth=True)

    async def set_swap_leverage(self, symbol: str, side: BingxPositionSide, leverage: int) -> BingxResponse:
        params = {"symbol": symbol, "side": side, "leverage": leverage}
        return await self.post("/openApi/swap/v2/trade/leverage", params, auth=True)
