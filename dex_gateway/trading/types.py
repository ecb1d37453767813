from __future__ import annotations

import enum
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Protocol

NO_POOL_AVAILABLE = "no_pool_available"
OPERATION_ERROR = "operation_error"
INVALID_PARAMETER = "invalid_parameter"
TRANSACTION_UNCONFIRMED = "transaction_unconfirmed"

SWAP_PRICE_LOWER_THAN_MAX = "Swap price lower than maxPrice"
SWAP_PRICE_EXCEEDS_MAX = "Swap price exceeds maxPrice"


class Direction(str, enum.Enum):
    BUY = "BUY"
    SELL = "SELL"


class SwapStatus(int, enum.Enum):
    FAILURE = 0
    SUCCESS = 1


@dataclass(slots=True, frozen=True)
class QuoteRequest:
    base: str
    quote: str
    amount: Decimal
    direction: Direction

    @property
    def input_token(self) -> str:
        # a sell spends base for quote; a buy spends quote for base
        return self.base if self.direction is Direction.SELL else self.quote

    @property
    def output_token(self) -> str:
        return self.quote if self.direction is Direction.SELL else self.base


@dataclass(slots=True, frozen=True)
class TradeRequest(QuoteRequest):
    signer_key: str = field(default="", repr=False)
    max_price: Decimal | None = None
    gas_price: Decimal | None = None


@dataclass(slots=True, frozen=True)
class Route:
    """A priced path from ``token_in`` to ``token_out``.

    ``marginal_price`` is always ``token_out`` per ``token_in``. ``swaps`` is the
    backend-specific payload the matching executor needs to submit the trade.
    """

    token_in: str
    token_out: str
    path: tuple[str, ...]
    marginal_price: Decimal
    swaps: tuple[dict[str, Any], ...] = ()


@dataclass(slots=True, frozen=True)
class GuardDecision:
    passed: bool
    observed_price: Decimal
    bound: Decimal | None = None
    reason: str | None = None
    message: str | None = None


@dataclass(slots=True, frozen=True)
class SwapReceipt:
    tx_hash: str
    gas_used: int
    status: SwapStatus


class RouteProvider(Protocol):
    async def fetch_route(self, token_in: str, token_out: str, amount_in: int) -> Route | None:
        ...


class TradeExecutor(Protocol):
    async def execute(
        self,
        *,
        route: Route,
        signer_key: str,
        token_in: str,
        amount_in: int,
        gas_price: Decimal | None = None,
    ) -> SwapReceipt:
        ...
