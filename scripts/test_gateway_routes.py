from __future__ import annotations

import logging
import unittest
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

from aiohttp import web
from aiohttp.test_utils import AioHTTPTestCase
from web3 import Web3

from dex_gateway.api import Backend, create_app
from dex_gateway.trading import Route, SwapPipeline, SwapReceipt, SwapStatus, TokenRegistry

WETH = Web3.to_checksum_address("0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2")
DAI = "0x6B175474E89094C44Da98b954EedeAC495271d0F"
PAIR = Web3.to_checksum_address("0xa478c2975ab1ea89e8196811f51a7b7ade33eb11")
SIGNER_KEY = "11" * 32


def _make_route(price: str) -> Route:
    return Route(token_in=WETH, token_out=DAI, path=(PAIR,), marginal_price=Decimal(price))


class GatewayRoutesTests(AioHTTPTestCase):
    async def get_application(self) -> web.Application:
        logger = logging.getLogger("test.routes")
        self.provider = MagicMock()
        self.provider.fetch_route = AsyncMock(return_value=_make_route("150"))
        self.executor = MagicMock()
        self.executor.execute = AsyncMock(
            return_value=SwapReceipt(tx_hash="0xfeed", gas_used=120_000, status=SwapStatus.SUCCESS)
        )
        self.w3 = MagicMock()
        self.w3.is_connected = AsyncMock(return_value=True)
        self.cleanup = AsyncMock()
        backend = Backend(
            name="uniswap",
            network="kovan",
            pipeline=SwapPipeline(
                logger=logger,
                backend="uniswap",
                route_provider=self.provider,
                executor=self.executor,
            ),
            w3=self.w3,
            exchange_proxy=PAIR,
            provider_url="https://kovan.example.io/v3/?apiKey=secret",
        )
        return create_app(
            logger=logger,
            backends=[backend],
            registry=TokenRegistry({"weth": WETH, "DAI": DAI}),
            cleanups=[("test_resource", self.cleanup)],
        )

    async def test_sell_price_accepts_form_body_and_symbols(self) -> None:
        resp = await self.client.post("/uniswap/sell-price", data={"base": "WETH", "quote": "dai", "amount": "0.1"})

        self.assertEqual(resp.status, 200)
        body = await resp.json()
        self.assertEqual(body["network"], "kovan")
        self.assertEqual(body["base"], WETH)
        self.assertEqual(body["quote"], DAI)
        self.assertEqual(body["price"], "150.00000")
        self.assertEqual(body["expectedOut"], 15.0)
        self.assertGreaterEqual(body["latency"], 0)
        self.provider.fetch_route.assert_awaited_once_with(WETH, DAI, 10**17)

    async def test_buy_price_accepts_json_body(self) -> None:
        self.provider.fetch_route.return_value = Route(
            token_in=DAI, token_out=WETH, path=(PAIR,), marginal_price=Decimal("0.005")
        )

        resp = await self.client.post("/uniswap/buy-price", json={"base": WETH, "quote": DAI, "amount": 1})

        self.assertEqual(resp.status, 200)
        body = await resp.json()
        self.assertEqual(body["price"], "200.00000")
        self.assertEqual(body["expectedIn"], 200.0)

    async def test_missing_amount_is_rejected_before_pipeline(self) -> None:
        resp = await self.client.post("/uniswap/sell-price", data={"base": WETH, "quote": DAI})

        self.assertEqual(resp.status, 400)
        self.assertEqual(
            await resp.json(),
            {"error": "invalid_parameter", "message": "Missing required parameter: amount"},
        )
        self.provider.fetch_route.assert_not_awaited()

    async def test_unknown_token_is_rejected(self) -> None:
        resp = await self.client.post("/uniswap/sell-price", data={"base": "NOPE", "quote": DAI, "amount": "1"})

        self.assertEqual(resp.status, 400)
        body = await resp.json()
        self.assertEqual(body["error"], "invalid_parameter")
        self.assertIn("NOPE", body["message"])

    async def test_non_object_json_is_rejected(self) -> None:
        resp = await self.client.post("/uniswap/sell", json=["not", "an", "object"])

        self.assertEqual(resp.status, 400)

    async def test_json_body_with_invalid_utf8_is_rejected(self) -> None:
        resp = await self.client.post(
            "/uniswap/sell-price",
            data=b'{"base": "\xff"}',
            headers={"Content-Type": "application/json"},
        )

        self.assertEqual(resp.status, 400)
        body = await resp.json()
        self.assertEqual(body["error"], "invalid_parameter")
        self.provider.fetch_route.assert_not_awaited()

    async def test_malformed_private_key_never_reaches_executor(self) -> None:
        resp = await self.client.post(
            "/uniswap/sell",
            data={"privateKey": "0x1234", "base": WETH, "quote": DAI, "amount": "1"},
        )

        self.assertEqual(resp.status, 400)
        body = await resp.json()
        self.assertNotIn("0x1234", body["message"])
        self.executor.execute.assert_not_awaited()

    async def test_sell_below_floor_returns_guard_rejection(self) -> None:
        self.provider.fetch_route.return_value = _make_route("95")

        resp = await self.client.post(
            "/uniswap/sell",
            data={"privateKey": SIGNER_KEY, "base": WETH, "quote": DAI, "amount": "1", "maxPrice": "100"},
        )

        self.assertEqual(resp.status, 200)
        body = await resp.json()
        self.assertEqual(body["error"], "Swap price lower than maxPrice")
        self.executor.execute.assert_not_awaited()

    async def test_sell_executes_and_reports_receipt(self) -> None:
        resp = await self.client.post(
            "/uniswap/sell",
            data={"privateKey": SIGNER_KEY, "base": WETH, "quote": DAI, "amount": "1", "gasPrice": "12"},
        )

        self.assertEqual(resp.status, 200)
        body = await resp.json()
        self.assertEqual(body["txHash"], "0xfeed")
        self.assertEqual(body["gasUsed"], 120_000)
        self.assertEqual(body["status"], 1)
        self.assertEqual(body["expectedOut"], 150.0)
        self.assertEqual(self.executor.execute.await_args.kwargs["gas_price"], Decimal("12"))

    async def test_non_positive_max_price_is_rejected(self) -> None:
        resp = await self.client.post(
            "/uniswap/buy",
            data={"privateKey": SIGNER_KEY, "base": WETH, "quote": DAI, "amount": "1", "maxPrice": "0"},
        )

        self.assertEqual(resp.status, 400)
        self.executor.execute.assert_not_awaited()

    async def test_no_route_returns_no_pool_available(self) -> None:
        self.provider.fetch_route.return_value = None

        resp = await self.client.post("/uniswap/sell-price", data={"base": WETH, "quote": DAI, "amount": "1"})

        self.assertEqual(resp.status, 200)
        self.assertEqual(await resp.json(), {"error": "no_pool_available", "message": ""})

    async def test_backend_status_masks_provider_credentials(self) -> None:
        resp = await self.client.post("/uniswap/")

        self.assertEqual(resp.status, 200)
        body = await resp.json()
        self.assertEqual(body["network"], "kovan")
        self.assertEqual(body["provider"], "https://kovan.example.io/v3/")
        self.assertEqual(body["exchangeProxy"], PAIR)
        self.assertTrue(body["connection"])

    async def test_backend_status_reports_unreachable_ledger(self) -> None:
        self.w3.is_connected.side_effect = ConnectionError("refused")

        resp = await self.client.post("/uniswap/")

        self.assertEqual(resp.status, 200)
        self.assertFalse((await resp.json())["connection"])

    async def test_root_lists_mounted_backends(self) -> None:
        resp = await self.client.get("/")

        self.assertEqual(resp.status, 200)
        body = await resp.json()
        self.assertEqual(body["status"], "ok")
        self.assertEqual(body["backends"], {"uniswap": "kovan"})


class GatewayCleanupTests(unittest.IsolatedAsyncioTestCase):
    async def test_cleanup_failures_do_not_stop_later_cleanups(self) -> None:
        first = AsyncMock(side_effect=RuntimeError("already closed"))
        second = AsyncMock()
        app = create_app(
            logger=logging.getLogger("test.routes"),
            backends=[],
            cleanups=[("first", first), ("second", second)],
        )

        app.freeze()
        await app.cleanup()

        first.assert_awaited_once()
        second.assert_awaited_once()


if __name__ == "__main__":
    unittest.main()
