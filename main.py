from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import ssl

from aiohttp import web
from dotenv import load_dotenv

from dex_gateway.api import build_app_from_settings
from dex_gateway.common import log_event
from dex_gateway.runtime import AppSettings, setup_logger
from dex_gateway.trading import TokenRegistry


def build_ssl_context(app_settings: AppSettings) -> ssl.SSLContext | None:
    """Mutual TLS: the server presents its cert and requires a client cert signed by the CA."""
    if not app_settings.tls_enabled:
        return None

    cert_path = app_settings.cert_path
    context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH, cafile=f"{cert_path}/ca_cert.pem")
    context.load_cert_chain(
        certfile=f"{cert_path}/server_cert.pem",
        keyfile=f"{cert_path}/server_key.pem",
        password=app_settings.cert_passphrase or None,
    )
    context.verify_mode = ssl.CERT_REQUIRED
    return context


async def serve(
    *,
    logger: logging.Logger,
    app_settings: AppSettings,
    app: web.Application,
    stop_event: asyncio.Event,
) -> None:
    runner = web.AppRunner(app, access_log=logging.getLogger("aiohttp.access"))
    await runner.setup()
    site = web.TCPSite(
        runner,
        host=app_settings.host,
        port=app_settings.port,
        ssl_context=build_ssl_context(app_settings),
    )
    await site.start()

    log_event(
        logger,
        level="info",
        event="gateway_started",
        message="Gateway listening",
        host=app_settings.host,
        port=app_settings.port,
        tls=app_settings.tls_enabled,
        uniswap_network=app_settings.uniswap_network,
        balancer_network=app_settings.balancer_network,
    )

    try:
        await stop_event.wait()
    finally:
        await runner.cleanup()
        logger.info("Shutdown completed", extra={"event": "shutdown_completed"})


async def main() -> None:
    load_dotenv()
    app_settings = AppSettings.from_env()
    logger = setup_logger(app_settings.log_level)

    registry = TokenRegistry.from_file(app_settings.token_list_path)
    app = build_app_from_settings(app_settings, logger=logger, registry=registry)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def request_shutdown(sig: signal.Signals) -> None:
        logger.info(
            "Shutdown signal received",
            extra={"event": "shutdown_signal_received", "signal": sig.name},
        )
        stop_event.set()

    for sig in (signal.SIGTERM, signal.SIGINT):
        with contextlib.suppress(NotImplementedError):
            loop.add_signal_handler(sig, request_shutdown, sig)

    await serve(logger=logger, app_settings=app_settings, app=app, stop_event=stop_event)


if __name__ == "__main__":
    asyncio.run(main())
