from __future__ import annotations

import enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ── Bybit ──────────────────────────────────────────────────────────────────

class BybitCategory(str, enum.Enum):
    spot = "spot"
    linear = "linear"
    inverse = "inverse"
    option = "option"


class BybitAccountType(str, enum.Enum):
    unified = "UNIFIED"
    contract = "CONTRACT"
    spot = "SPOT"
    fund = "FUND"


class BybitResponse(BaseModel):
    """Bybit V5 response envelope."""
    model_config = ConfigDict(populate_by_name=True)

    ret_code: int = Field(alias="retCode")
    ret_msg: str = Field(default="", alias="retMsg")
    result: Any = None
    ret_ext_info: Any = Field(default=None, alias="retExtInfo")
    time: int = 0


# ── BingX ──────────────────────────────────────────────────────────────────

class BingxPositionSide(str, enum.Enum):
    long = "LONG"
    short = "SHORT"
    both = "BOTH"


class BingxResponse(BaseModel):
    """BingX response envelope.  ``retryable`` arrives as 1/0 on the wire."""
    model_config = ConfigDict(populate_by_name=True)

    code: int
    msg: str = ""
    data: Any = None
    debug_msg: str | None = Field(default=None, alias="debugMsg")
    retryable: bool | None = None

    @field_validator("retryable", mode="before")
    @classmethod
    def _retryable_from_int(cls, v):
        if v in (1, "1", True):
            return True
        if v in (0, "0", False):
            return False
        return None


# ── Shared ─────────────────────────────────────────────────────────────────

class Side(str, enum.Enum):
    buy = "Buy"
    sell = "Sell"


class OrderType(str, enum.Enum):
    market = "Market"
    limit = "Limit"


class TimeInForce(str, enum.Enum):
    gtc = "GTC"
    ioc = "IOC"
    fok = "FOK"
    post_only = "PostOnly"
