"""Outward response contract shared by the quote and trade endpoints.

Every pipeline run ends in exactly one of the variants below; ``format_response``
turns it into an HTTP status and a JSON body. Soft rejections (no route, price
guard) use a success status, hard failures a server-error status.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Union

from .errors import ClassifiedError
from .types import (
    NO_POOL_AVAILABLE,
    TRANSACTION_UNCONFIRMED,
    Direction,
    QuoteRequest,
    SwapReceipt,
)


@dataclass(slots=True, frozen=True)
class QuoteResult:
    request: QuoteRequest
    price: str
    expected_amount: Decimal
    swaps: tuple[dict[str, Any], ...]


@dataclass(slots=True, frozen=True)
class TradeResult(QuoteResult):
    receipt: SwapReceipt | None = None


@dataclass(slots=True, frozen=True)
class NoRouteResult:
    pass


@dataclass(slots=True, frozen=True)
class GuardRejection:
    reason: str
    message: str


@dataclass(slots=True, frozen=True)
class PendingConfirmation:
    tx_hash: str
    message: str


@dataclass(slots=True, frozen=True)
class OperationError:
    classified: ClassifiedError


GatewayResponse = Union[
    QuoteResult,
    TradeResult,
    NoRouteResult,
    GuardRejection,
    PendingConfirmation,
    OperationError,
]


def now_ms() -> int:
    return int(time.time() * 1000)


def latency_seconds(started_at_ms: int, finished_at_ms: int | None = None) -> float:
    finished = now_ms() if finished_at_ms is None else finished_at_ms
    return max(0, finished - started_at_ms) / 1000


def _quote_body(result: QuoteResult, *, network: str, started_at_ms: int) -> dict[str, Any]:
    request = result.request
    expected_key = "expectedOut" if request.direction is Direction.SELL else "expectedIn"
    return {
        "network": network,
        "timestamp": started_at_ms,
        "latency": latency_seconds(started_at_ms),
        "base": request.base,
        "quote": request.quote,
        "amount": float(request.amount),
        expected_key: float(result.expected_amount),
        "price": result.price,
        "swaps": [dict(swap) for swap in result.swaps],
    }


def format_response(
    response: GatewayResponse,
    *,
    network: str,
    started_at_ms: int,
) -> tuple[int, dict[str, Any]]:
    if isinstance(response, TradeResult):
        body = _quote_body(response, network=network, started_at_ms=started_at_ms)
        if response.receipt is not None:
            body["gasUsed"] = response.receipt.gas_used
            body["txHash"] = response.receipt.tx_hash
            body["status"] = int(response.receipt.status)
        return 200, body

    if isinstance(response, QuoteResult):
        return 200, _quote_body(response, network=network, started_at_ms=started_at_ms)

    if isinstance(response, NoRouteResult):
        return 200, {"error": NO_POOL_AVAILABLE, "message": ""}

    if isinstance(response, GuardRejection):
        return 200, {"error": response.reason, "message": response.message}

    if isinstance(response, PendingConfirmation):
        return 202, {
            "error": TRANSACTION_UNCONFIRMED,
            "message": response.message,
            "txHash": response.tx_hash,
        }

    if isinstance(response, OperationError):
        return response.classified.status, response.classified.to_dict()

    raise TypeError(f"Unsupported gateway response: {response!r}")
