from __future__ import annotations

import re
from decimal import Decimal
from typing import Any

from aiohttp import web
from web3 import Web3

from dex_gateway.trading.amounts import parse_decimal, parse_positive_amount
from dex_gateway.trading.errors import ValidationError
from dex_gateway.trading.registry import TokenRegistry
from dex_gateway.trading.types import Direction, QuoteRequest, TradeRequest

PRIVATE_KEY_RE = re.compile(r"^(0x)?[0-9a-fA-F]{64}$")


async def read_params(request: web.Request) -> dict[str, str]:
    """Accept form-encoded or JSON bodies; values come back as stripped strings."""
    if request.content_type == "application/json":
        try:
            data: Any = await request.json()
        except ValueError as error:
            # covers JSONDecodeError and a body that is not valid UTF-8
            raise ValidationError(f"Request body is not valid JSON: {error}") from error
        if not isinstance(data, dict):
            raise ValidationError("Request body must be a JSON object")
    else:
        data = await request.post()

    params: dict[str, str] = {}
    for key, value in data.items():
        if value is None or not isinstance(value, (str, int, float)):
            continue
        params[str(key)] = str(value).strip()
    return params


def _require(params: dict[str, str], name: str) -> str:
    value = params.get(name, "")
    if not value:
        raise ValidationError(f"Missing required parameter: {name}")
    return value


def _token(params: dict[str, str], name: str, registry: TokenRegistry) -> str:
    raw = _require(params, name)
    address = registry.resolve(raw)
    if not Web3.is_address(address):
        raise ValidationError(f"{name} is not a known token symbol or address: {raw}")
    return address


def _optional_positive(params: dict[str, str], name: str) -> Decimal | None:
    raw = params.get(name, "")
    if not raw:
        return None
    value = parse_decimal(raw, field_name=name)
    if value <= 0:
        raise ValidationError(f"{name} must be greater than zero, got {raw!r}")
    return value


def build_quote_request(
    params: dict[str, str],
    *,
    direction: Direction,
    registry: TokenRegistry,
) -> QuoteRequest:
    return QuoteRequest(
        base=_token(params, "base", registry),
        quote=_token(params, "quote", registry),
        amount=parse_positive_amount(_require(params, "amount")),
        direction=direction,
    )


def build_trade_request(
    params: dict[str, str],
    *,
    direction: Direction,
    registry: TokenRegistry,
) -> TradeRequest:
    signer_key = _require(params, "privateKey")
    if not PRIVATE_KEY_RE.match(signer_key):
        raise ValidationError("privateKey must be 32 bytes of hex")

    quote_request = build_quote_request(params, direction=direction, registry=registry)
    return TradeRequest(
        base=quote_request.base,
        quote=quote_request.quote,
        amount=quote_request.amount,
        direction=direction,
        signer_key=signer_key,
        max_price=_optional_positive(params, "maxPrice"),
        gas_price=_optional_positive(params, "gasPrice"),
    )
