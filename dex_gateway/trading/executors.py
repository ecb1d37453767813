from __future__ import annotations

import asyncio
import logging
import time
from decimal import Decimal
from typing import Any

import aiohttp
from eth_account import Account
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3
from web3.exceptions import ContractLogicError, TimeExhausted, Web3Exception

from dex_gateway.common import log_event

from .contracts import BALANCER_EXCHANGE_PROXY_ABI, UNISWAP_V2_ROUTER_ABI
from .errors import ConfirmationTimeoutError, ExecutionError, ValidationError
from .types import Route, SwapReceipt, SwapStatus

TRANSACTION_FAILED = "transaction failed"


class LedgerSwapExecutor:
    """Signs, broadcasts and confirms one swap transaction against a ledger contract.

    Subclasses only decide which contract call encodes the swap. A call to
    :meth:`execute` is not idempotent and is never retried here.
    """

    abi: list[dict[str, Any]] = []

    def __init__(
        self,
        *,
        logger: logging.Logger,
        w3: AsyncWeb3,
        contract_address: str,
        confirm_timeout_seconds: float = 120.0,
        confirm_poll_interval_seconds: float = 1.0,
        gas_limit: int = 350_000,
    ) -> None:
        self._logger = logger
        self._w3 = w3
        self._contract = w3.eth.contract(
            address=AsyncWeb3.to_checksum_address(contract_address),
            abi=self.abi,
        )
        self._confirm_timeout_seconds = confirm_timeout_seconds
        self._confirm_poll_interval_seconds = confirm_poll_interval_seconds
        self._gas_limit = gas_limit

    @property
    def contract_address(self) -> str:
        return self._contract.address

    async def execute(
        self,
        *,
        route: Route,
        signer_key: str,
        token_in: str,
        amount_in: int,
        gas_price: Decimal | None = None,
    ) -> SwapReceipt:
        if AsyncWeb3.to_checksum_address(token_in) != route.token_in:
            raise ExecutionError(f"Route starts at {route.token_in}, not at {token_in}")

        signer = self._load_signer(signer_key)
        call = self._build_swap_call(route=route, amount_in=amount_in, recipient=signer.address)
        tx_hash = await self._submit(call=call, signer=signer, gas_price=gas_price)
        log_event(
            self._logger,
            level="info",
            event="swap_submitted",
            message="Swap transaction broadcast",
            tx_hash=tx_hash,
            contract=self.contract_address,
            token_in=route.token_in,
            token_out=route.token_out,
            amount_in=str(amount_in),
        )
        return await self._wait_for_receipt(tx_hash)

    def _build_swap_call(self, *, route: Route, amount_in: int, recipient: str) -> Any:
        raise NotImplementedError

    @staticmethod
    def _load_signer(signer_key: str) -> LocalAccount:
        try:
            return Account.from_key(signer_key)
        except Exception as error:
            raise ValidationError("privateKey is not a valid private key") from error

    async def _submit(self, *, call: Any, signer: LocalAccount, gas_price: Decimal | None) -> str:
        try:
            if gas_price is not None:
                gas_price_wei = AsyncWeb3.to_wei(gas_price, "gwei")
            else:
                gas_price_wei = await self._w3.eth.gas_price

            tx = await call.build_transaction(
                {
                    "from": signer.address,
                    "nonce": await self._w3.eth.get_transaction_count(signer.address, "pending"),
                    "chainId": await self._w3.eth.chain_id,
                    "gasPrice": gas_price_wei,
                }
            )
            if int(tx["gas"]) > self._gas_limit:
                raise ExecutionError(f"Estimated gas {tx['gas']} exceeds gas limit {self._gas_limit}")

            signed = signer.sign_transaction(tx)
            tx_hash = await self._w3.eth.send_raw_transaction(signed.raw_transaction)
        except ContractLogicError as error:
            raise ExecutionError(str(error), reason=getattr(error, "message", None) or None) from error
        except (Web3Exception, aiohttp.ClientError, asyncio.TimeoutError, ValueError) as error:
            raise ExecutionError(f"Swap submission failed: {error}") from error

        return AsyncWeb3.to_hex(tx_hash)

    async def _wait_for_receipt(self, tx_hash: str) -> SwapReceipt:
        try:
            receipt = await self._w3.eth.wait_for_transaction_receipt(
                tx_hash,
                timeout=self._confirm_timeout_seconds,
                poll_latency=self._confirm_poll_interval_seconds,
            )
        except TimeExhausted as error:
            log_event(
                self._logger,
                level="warning",
                event="swap_unconfirmed",
                message="No receipt before confirmation timeout; outcome unknown",
                tx_hash=tx_hash,
                timeout_seconds=self._confirm_timeout_seconds,
            )
            raise ConfirmationTimeoutError(
                f"Transaction {tx_hash} not confirmed within {self._confirm_timeout_seconds:g}s",
                tx_hash=tx_hash,
            ) from error

        status = SwapStatus(int(receipt["status"]))
        gas_used = int(receipt["gasUsed"])
        log_event(
            self._logger,
            level="info" if status is SwapStatus.SUCCESS else "warning",
            event="swap_confirmed",
            message="Swap transaction mined",
            tx_hash=tx_hash,
            status=status.name,
            gas_used=gas_used,
        )
        if status is SwapStatus.FAILURE:
            raise ExecutionError(
                f"Transaction {tx_hash} reverted (gasUsed={gas_used})",
                reason=TRANSACTION_FAILED,
                tx_hash=tx_hash,
            )
        return SwapReceipt(tx_hash=tx_hash, gas_used=gas_used, status=status)


class ConstantProductExecutor(LedgerSwapExecutor):
    abi = UNISWAP_V2_ROUTER_ABI

    def __init__(self, *, deadline_seconds: int = 600, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._deadline_seconds = deadline_seconds

    def _build_swap_call(self, *, route: Route, amount_in: int, recipient: str) -> Any:
        deadline = int(time.time()) + self._deadline_seconds
        return self._contract.functions.swapExactTokensForTokens(
            amount_in,
            0,
            [route.token_in, route.token_out],
            recipient,
            deadline,
        )


class WeightedPoolExecutor(LedgerSwapExecutor):
    abi = BALANCER_EXCHANGE_PROXY_ABI

    def _build_swap_call(self, *, route: Route, amount_in: int, recipient: str) -> Any:
        swaps = [
            (
                swap["pool"],
                int(swap["tokenInParam"]),
                int(swap["tokenOutParam"]),
                int(swap["maxPrice"]),
            )
            for swap in route.swaps
        ]
        return self._contract.functions.batchSwapExactIn(
            swaps,
            route.token_in,
            route.token_out,
            amount_in,
            0,
        )
