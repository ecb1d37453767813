from __future__ import annotations

import logging
from decimal import Decimal, localcontext
from typing import Any

import aiohttp
from web3 import AsyncWeb3

from dex_gateway.common import log_event

from .contracts import UNISWAP_V2_FACTORY_ABI, UNISWAP_V2_PAIR_ABI, ZERO_ADDRESS
from .types import Route


def _ratio(numerator: int, denominator: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = 40
        return Decimal(numerator) / Decimal(denominator)


class ConstantProductRouteProvider:
    """Prices a direct constant-product pair straight from its on-chain reserves."""

    def __init__(
        self,
        *,
        logger: logging.Logger,
        w3: AsyncWeb3,
        factory_address: str,
    ) -> None:
        self._logger = logger
        self._w3 = w3
        self._factory = w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(factory_address),
            abi=UNISWAP_V2_FACTORY_ABI,
        )

    async def fetch_route(self, token_in: str, token_out: str, amount_in: int) -> Route | None:
        token_in = AsyncWeb3.to_checksum_address(token_in)
        token_out = AsyncWeb3.to_checksum_address(token_out)

        pair_address = await self._get_pair_address(token_in, token_out)
        if not pair_address or pair_address == ZERO_ADDRESS:
            log_event(
                self._logger,
                level="info",
                event="route_not_found",
                message="No constant-product pair for token pair",
                token_in=token_in,
                token_out=token_out,
            )
            return None

        reserve_in, reserve_out = await self._get_reserves(pair_address, token_in)
        if reserve_in <= 0 or reserve_out <= 0:
            log_event(
                self._logger,
                level="info",
                event="route_not_found",
                message="Constant-product pair has no liquidity",
                pair=pair_address,
            )
            return None

        return Route(
            token_in=token_in,
            token_out=token_out,
            path=(pair_address,),
            marginal_price=_ratio(reserve_out, reserve_in),
            swaps=({"pool": pair_address, "tokenIn": token_in, "tokenOut": token_out},),
        )

    async def _get_pair_address(self, token_in: str, token_out: str) -> str:
        return await self._factory.functions.getPair(token_in, token_out).call()

    async def _get_reserves(self, pair_address: str, token_in: str) -> tuple[int, int]:
        pair = self._w3.eth.contract(address=pair_address, abi=UNISWAP_V2_PAIR_ABI)
        reserve0, reserve1, _ = await pair.functions.getReserves().call()
        token0 = await pair.functions.token0().call()
        if str(token0).lower() == token_in.lower():
            return int(reserve0), int(reserve1)
        return int(reserve1), int(reserve0)


class WeightedPoolRouteProvider:
    """Asks an external smart-order-router service for a weighted-pool swap plan.

    The service takes ``{tokenIn, tokenOut, amount}`` (amount in base units) and
    answers ``{swaps: [...], expectedOut: "<base units>"}``. An empty plan means
    there is no pool for the pair.
    """

    def __init__(
        self,
        *,
        logger: logging.Logger,
        sor_url: str,
        timeout_seconds: float = 10.0,
    ) -> None:
        self._logger = logger
        self._sor_url = sor_url
        self._timeout_seconds = timeout_seconds
        self._session: aiohttp.ClientSession | None = None

    async def connect(self) -> None:
        if self._session is None:
            timeout = aiohttp.ClientTimeout(total=self._timeout_seconds)
            self._session = aiohttp.ClientSession(timeout=timeout)

    async def close(self) -> None:
        if self._session is not None:
            await self._session.close()
            self._session = None

    async def fetch_route(self, token_in: str, token_out: str, amount_in: int) -> Route | None:
        token_in = AsyncWeb3.to_checksum_address(token_in)
        token_out = AsyncWeb3.to_checksum_address(token_out)

        data = await self._request_swaps(token_in, token_out, amount_in)
        swaps = self._normalize_swaps(data.get("swaps"))
        try:
            expected_out = int(str(data.get("expectedOut") or "0"))
        except ValueError as error:
            raise RuntimeError(f"Unexpected SOR expectedOut: {data.get('expectedOut')!r}") from error

        if not swaps or expected_out <= 0:
            log_event(
                self._logger,
                level="info",
                event="route_not_found",
                message="SOR returned no weighted-pool swaps",
                token_in=token_in,
                token_out=token_out,
                amount_in=str(amount_in),
            )
            return None

        path: list[str] = []
        for swap in swaps:
            if swap["pool"] not in path:
                path.append(swap["pool"])

        return Route(
            token_in=token_in,
            token_out=token_out,
            path=tuple(path),
            marginal_price=_ratio(expected_out, amount_in),
            swaps=tuple(swaps),
        )

    async def _request_swaps(self, token_in: str, token_out: str, amount_in: int) -> dict[str, Any]:
        if not self._sor_url:
            raise RuntimeError("BALANCER_SOR_URL is not configured.")
        if self._session is None:
            await self.connect()
        if self._session is None:
            raise RuntimeError("SOR HTTP session is not initialized.")

        payload = {"tokenIn": token_in, "tokenOut": token_out, "amount": str(amount_in)}
        async with self._session.post(self._sor_url, json=payload) as response:
            data = await response.json(content_type=None)
            if response.status >= 400:
                raise RuntimeError(f"SOR request failed: status={response.status} body={data}")

        if not isinstance(data, dict):
            raise RuntimeError(f"Unexpected SOR response: {data}")
        return data

    @staticmethod
    def _normalize_swaps(raw: Any) -> list[dict[str, Any]]:
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise RuntimeError(f"SOR swaps must be a list: {raw}")

        swaps: list[dict[str, Any]] = []
        for index, item in enumerate(raw):
            if not isinstance(item, dict) or not item.get("pool"):
                raise RuntimeError(f"SOR swap[{index}] is invalid: {item}")
            swaps.append(
                {
                    "pool": AsyncWeb3.to_checksum_address(str(item["pool"])),
                    "tokenInParam": str(item.get("tokenInParam") or "0"),
                    "tokenOutParam": str(item.get("tokenOutParam") or "0"),
                    "maxPrice": str(item.get("maxPrice") or "0"),
                }
            )
        return swaps
