"""Bybit V5 REST client: request signing plus a subset of endpoints.

Signed requests carry ``X-BAPI-*`` headers with an HMAC-SHA256 over
``timestamp + api_key + recv_window + payload`` where the payload is the
sorted query string for GET and the sorted compact JSON body otherwise.
"""

import json
import logging
from typing import Any

from trade_sdk.schemas import BybitAccountType, BybitCategory, BybitResponse, OrderType, Side, TimeInForce
from trade_sdk.services.http_client import HttpClient, RequestArgs, clean_params, stringify
from trade_sdk.services.session import SharedSessionManager
from trade_sdk.services.signing import bybit_signature

logger = logging.getLogger(__name__)

DOMAIN = "bybit.com"


def bybit_base_url(testnet: bool, demo: bool) -> str:
    if demo and testnet:
        sub = "api-demo-testnet"
    elif demo:
        sub = "api-demo"
    elif testnet:
        sub = "api-testnet"
    else:
        sub = "api"
    return f"https://{sub}.{DOMAIN}"


def prepare_payload(method: str, params: dict[str, Any] | None) -> str:
    """Payload that is both signed and sent.

    >>> prepare_payload("GET", {"symbol": "BTCUSDT", "category": "linear"})
    'category=linear&symbol=BTCUSDT'
    >>> prepare_payload("POST", {})
    '{}'
    """
    cleaned = clean_params(params)
    if method == "GET":
        return "&".join(f"{k}={stringify(cleaned[k])}" for k in sorted(cleaned))
    return json.dumps({k: cleaned[k] for k in sorted(cleaned)}, separators=(",", ":"))


class BybitHttpClient(HttpClient[BybitResponse]):
    """HTTP client for Bybit mainnet, testnet and demo trading."""

    envelope = BybitResponse
    code_field = "retCode"
    msg_field = "retMsg"

    def __init__(
        self,
        api_key: str | None = None,
        api_secret: str | None = None,
        testnet: bool = False,
        demo: bool = False,
        recv_window: int = 5000,
        referral_id: str | None = None,
        session: SharedSessionManager | None = None,
    ):
        super().__init__(
            bybit_base_url(testnet, demo), api_key, api_secret, recv_window, session=session,
        )
        self.testnet = testnet
        self.demo = demo
        self.referral_id = referral_id

    def build_request_args(self, method, endpoint, params, auth) -> RequestArgs:
        timestamp = self._timestamp()
        payload = prepare_payload(method, params)

        if method == "GET":
            url = f"{self.base_url}{endpoint}?{payload}" if payload else f"{self.base_url}{endpoint}"
            content = None
        else:
            url = f"{self.base_url}{endpoint}"
            content = payload

        headers: dict[str, str] = {}
        if auth:
            api_key, api_secret = self._require_credentials()
            headers.update({
                "X-BAPI-API-KEY": api_key,
                "X-BAPI-SIGN": bybit_signature(api_key, api_secret, self.recv_window, payload, timestamp),
                "X-BAPI-SIGN-TYPE": "2",
                "X-BAPI-TIMESTAMP": str(timestamp),
                "X-BAPI-RECV-WINDOW": str(self.recv_window),
            })
        if self.referral_id:
            headers["Referer"] = self.referral_id
        return RequestArgs(url=url, headers=headers, content=content)


class BybitClient(BybitHttpClient):
    """Bybit client with typed endpoint methods."""

    # ── Market ─────────────────────────────────────────────────────────────

    async def get_server_time(self) -> BybitResponse:
        return await self.get("/v5/market/time")

    async def get_kline(
        self,
        symbol: str,
        interval: str,
        category: BybitCategory | None = None,
        start: int | None = None,
        end: int | None = None,
        limit: int | None = None,
    ) -> BybitResponse:
        params = {
            "symbol": symbol,
            "interval": interval,
            "category": category,
            "start": start,
            "end": end,
            "limit": limit,
        }
        return await self.get("/v5/market/kline", params)

    async def get_instruments_info(
        self,
        category: BybitCategory,
        symbol: str | None = None,
        base_coin: str | None = None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> BybitResponse:
        params = {
            "category": category,
            "symbol": symbol,
            "baseCoin": base_coin,
            "limit": limit,
            "cursor": cursor,
        }
        return await self.get("/v5/market/instruments-info", params)

    # ── Account ────────────────────────────────────────────────────────────

    async def get_wallet_balance(
        self,
        account_type: BybitAccountType = BybitAccountType.unified,
        coin: str | None = None,
    ) -> BybitResponse:
        params = {"accountType": account_type, "coin": coin}
        return await self.get("/v5/account/wallet-balance", params, auth=True)

    async def get_account_info(self) -> BybitResponse:
        return await self.get("/v5/account/info", auth=True)

    # ── Position ───────────────────────────────────────────────────────────

    async def get_positions(
        self,
        category: BybitCategory,
        symbol: str | None = None,
        settle_coin: str | None = None,
        limit: int | None = None,
        cursor: str | None = None,
    ) -> BybitResponse:
        params = {
            "category": category,
            "symbol": symbol,
            "settleCoin": settle_coin,
            "limit": limit,
            "cursor": cursor,
        }
        return await self.get("/v5/position/list", params, auth=True)

    async def set_leverage(
        self,
        category: BybitCategory,
        symbol: str,
        buy_leverage: str,
        sell_leverage: str,
    ) -> BybitResponse:
        params = {
            "category": category,
            "symbol": symbol,
            "buyLeverage": buy_leverage,
            "sellLeverage": sell_leverage,
        }
        return await self.post("/v5/position/set-leverage", params, auth=True)

    # ── Trade ──────────────────────────────────────────────────────────────

    async def place_order(
        self,
        category: BybitCategory,
        symbol: str,
        side: Side,
        order_type: OrderType,
        qty: str,
        price: str | None = None,
        time_in_force: TimeInForce | None = None,
        order_link_id: str | None = None,
        reduce_only: bool | None = None,
        take_profit: str | None = None,
        stop_loss: str | None = None,
    ) -> BybitResponse:
        """POST /v5/order/create.  Quantities and prices are strings, as Bybit expects."""
        params = {
            "category": category,
            "symbol": symbol,
            "side": side,
            "orderType": order_type,
            "qty": qty,
            "price": price,
            "timeInForce": time_in_force,
            "orderLinkId": order_link_id,
            "reduceOnly": reduce_only,
            "takeProfit": take_profit,
            "stopLoss": stop_loss,
        }
        logger.info(
            "Placing %s %s %s qty=%s price=%s",
            stringify(category), stringify(side), symbol, qty, price,
        )
        return await self.post("/v5/order/create", params, auth=True)

    async def cancel_order(
        self,
        category: BybitCategory,
        symbol: str,
        order_id: str | None = None,
        order_link_id: str | None = None,
    ) -> BybitResponse:
        if not order_id and not order_link_id:
            raise ValueError("order_id or order_link_id is required")
        params = {
            "category": category,
            "symbol": symbol,
            "orderId": order_id,
            "orderLinkId": order_link_id,
        }
        return await self.post("/v5/order/cancel", params, auth=True)

    async def get_open_orders(
        self,
        category: BybitCategory,
        symbol: str | None = None,
        settle_coin: str | None = None,
        limit: int | None = None,
    ) -> BybitResponse:
        params = {
            "category": category,
            "symbol": symbol,
            "settleCoin": settle_coin,
            "limit": limit,
        }
        return await self.get("/v5/order/realtime", params, auth=True)

    async def cancel_all_orders(
        self,
        category: BybitCategory,
        symbol: str | None = None,
        settle_coin: str | None = None,
    ) -> BybitResponse:
        params = {"category": category, "symbol": symbol, "settleCoin": settle_coin}
        return await self.post("/v5/order/cancel-all", params, auth=True)
