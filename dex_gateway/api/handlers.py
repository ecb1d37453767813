from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from aiohttp import web
from web3 import AsyncWeb3

from dex_gateway.common import best_effort, log_event, sanitize_text
from dex_gateway.trading import (
    Direction,
    SwapPipeline,
    TokenRegistry,
    ValidationError,
    classify,
    format_response,
    now_ms,
)

from .params import build_quote_request, build_trade_request, read_params


@dataclass(slots=True, frozen=True)
class Backend:
    name: str
    network: str
    pipeline: SwapPipeline
    w3: AsyncWeb3
    exchange_proxy: str
    provider_url: str


BACKEND_KEY = web.AppKey("backend", Backend)
REGISTRY_KEY = web.AppKey("token_registry", TokenRegistry)
LOGGER_KEY = web.AppKey("logger", logging.Logger)
BACKENDS_KEY = web.AppKey("backends", list)


def _validation_failed(request: web.Request, error: ValidationError) -> web.Response:
    backend = request.app[BACKEND_KEY]
    log_event(
        request.config_dict[LOGGER_KEY],
        level="info",
        event="request_validation_failed",
        message="Rejected malformed request before pipeline start",
        backend=backend.name,
        path=request.path,
        detail=error.message,
    )
    classified = classify(error)
    return web.json_response(classified.to_dict(), status=classified.status)


async def _quote(request: web.Request, direction: Direction) -> web.Response:
    started_at_ms = now_ms()
    backend = request.app[BACKEND_KEY]
    try:
        params = await read_params(request)
        quote_request = build_quote_request(
            params,
            direction=direction,
            registry=request.config_dict[REGISTRY_KEY],
        )
    except ValidationError as error:
        return _validation_failed(request, error)

    outcome = await backend.pipeline.quote(quote_request)
    status, body = format_response(outcome, network=backend.network, started_at_ms=started_at_ms)
    return web.json_response(body, status=status)


async def _trade(request: web.Request, direction: Direction) -> web.Response:
    started_at_ms = now_ms()
    backend = request.app[BACKEND_KEY]
    try:
        params = await read_params(request)
        trade_request = build_trade_request(
            params,
            direction=direction,
            registry=request.config_dict[REGISTRY_KEY],
        )
    except ValidationError as error:
        return _validation_failed(request, error)

    outcome = await backend.pipeline.trade(trade_request)
    status, body = format_response(outcome, network=backend.network, started_at_ms=started_at_ms)
    return web.json_response(body, status=status)


async def sell_price(request: web.Request) -> web.Response:
    """POST /<backend>/sell-price  {base, quote, amount}"""
    return await _quote(request, Direction.SELL)


async def buy_price(request: web.Request) -> web.Response:
    """POST /<backend>/buy-price  {base, quote, amount}"""
    return await _quote(request, Direction.BUY)


async def sell(request: web.Request) -> web.Response:
    """POST /<backend>/sell  {privateKey, base, quote, amount, maxPrice?, gasPrice?}"""
    return await _trade(request, Direction.SELL)


async def buy(request: web.Request) -> web.Response:
    """POST /<backend>/buy  {privateKey, base, quote, amount, maxPrice?, gasPrice?}"""
    return await _trade(request, Direction.BUY)


async def backend_status(request: web.Request) -> web.Response:
    backend = request.app[BACKEND_KEY]
    connected = await best_effort(
        backend.w3.is_connected,
        logger=request.config_dict[LOGGER_KEY],
        event="ledger_check_failed",
        message="Ledger RPC connectivity check failed",
        default=False,
        backend=backend.name,
    )
    body: dict[str, Any] = {
        "network": backend.network,
        "provider": sanitize_text(backend.provider_url),
        "exchangeProxy": backend.exchange_proxy,
        "connection": bool(connected),
        "timestamp": now_ms(),
    }
    return web.json_response(body)


async def gateway_status(request: web.Request) -> web.Response:
    backends: dict[str, str] = {}
    for backend in request.app[BACKENDS_KEY]:
        backends[backend.name] = backend.network
    return web.json_response({"status": "ok", "backends": backends, "timestamp": now_ms()})
