from __future__ import annotations

import logging
from typing import Awaitable, Callable

import aiohttp
from aiohttp import web
from web3 import AsyncWeb3

from dex_gateway.common import best_effort
from dex_gateway.runtime import AppSettings
from dex_gateway.trading import (
    ConstantProductExecutor,
    ConstantProductRouteProvider,
    SwapPipeline,
    TokenRegistry,
    WeightedPoolExecutor,
    WeightedPoolRouteProvider,
)

from . import handlers
from .handlers import BACKEND_KEY, BACKENDS_KEY, LOGGER_KEY, REGISTRY_KEY, Backend

CLEANUPS_KEY = web.AppKey("cleanups", list)


def create_backend_app(backend: Backend) -> web.Application:
    app = web.Application()
    app[BACKEND_KEY] = backend
    app.router.add_post("/", handlers.backend_status)
    app.router.add_post("/sell-price", handlers.sell_price)
    app.router.add_post("/buy-price", handlers.buy_price)
    app.router.add_post("/sell", handlers.sell)
    app.router.add_post("/buy", handlers.buy)
    return app


async def _run_cleanups(app: web.Application) -> None:
    for name, cleanup in app[CLEANUPS_KEY]:
        await best_effort(
            cleanup,
            logger=app[LOGGER_KEY],
            event="shutdown_cleanup_failed",
            message="Failed to release resource during shutdown",
            resource=name,
        )


def create_app(
    *,
    logger: logging.Logger,
    backends: list[Backend],
    registry: TokenRegistry | None = None,
    cleanups: list[tuple[str, Callable[[], Awaitable[None]]]] | None = None,
) -> web.Application:
    app = web.Application()
    app[LOGGER_KEY] = logger
    app[REGISTRY_KEY] = registry or TokenRegistry()
    app[BACKENDS_KEY] = list(backends)
    app[CLEANUPS_KEY] = list(cleanups or [])
    app.router.add_get("/", handlers.gateway_status)

    for backend in backends:
        app.add_subapp(f"/{backend.name}", create_backend_app(backend))

    app.on_cleanup.append(_run_cleanups)
    return app


def build_app_from_settings(
    settings: AppSettings,
    *,
    logger: logging.Logger,
    registry: TokenRegistry,
) -> web.Application:
    if not settings.ethereum_rpc_url:
        raise ValueError("ETHEREUM_RPC_URL is required.")

    provider = AsyncWeb3.AsyncHTTPProvider(
        settings.ethereum_rpc_url,
        request_kwargs={"timeout": aiohttp.ClientTimeout(total=settings.rpc_timeout_seconds)},
    )
    w3 = AsyncWeb3(provider)
    executor_options = {
        "logger": logger,
        "w3": w3,
        "confirm_timeout_seconds": settings.confirm_timeout_seconds,
        "confirm_poll_interval_seconds": settings.confirm_poll_interval_seconds,
        "gas_limit": settings.gas_limit,
    }

    uniswap_executor = ConstantProductExecutor(
        contract_address=settings.uniswap_router,
        deadline_seconds=settings.swap_deadline_seconds,
        **executor_options,
    )
    uniswap = Backend(
        name="uniswap",
        network=settings.uniswap_network,
        pipeline=SwapPipeline(
            logger=logger,
            backend="uniswap",
            route_provider=ConstantProductRouteProvider(
                logger=logger,
                w3=w3,
                factory_address=settings.uniswap_factory,
            ),
            executor=uniswap_executor,
        ),
        w3=w3,
        exchange_proxy=uniswap_executor.contract_address,
        provider_url=settings.ethereum_rpc_url,
    )

    sor = WeightedPoolRouteProvider(
        logger=logger,
        sor_url=settings.balancer_sor_url,
        timeout_seconds=settings.sor_timeout_seconds,
    )
    balancer_executor = WeightedPoolExecutor(
        contract_address=settings.balancer_exchange_proxy,
        **executor_options,
    )
    balancer = Backend(
        name="balancer",
        network=settings.balancer_network,
        pipeline=SwapPipeline(
            logger=logger,
            backend="balancer",
            route_provider=sor,
            executor=balancer_executor,
        ),
        w3=w3,
        exchange_proxy=balancer_executor.contract_address,
        provider_url=settings.ethereum_rpc_url,
    )

    return create_app(
        logger=logger,
        backends=[uniswap, balancer],
        registry=registry,
        cleanups=[("sor_session", sor.close), ("ledger_rpc", provider.disconnect)],
    )
