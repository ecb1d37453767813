from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from decimal import Decimal

from dex_gateway.common import log_event
from dex_gateway.common.async_utils import run_uncancellable

from . import guard
from .amounts import invert_price, normalize_price, to_base_units, to_significant
from .errors import ClassifiedError, ConfirmationTimeoutError, classify
from .responses import (
    GatewayResponse,
    GuardRejection,
    NoRouteResult,
    OperationError,
    PendingConfirmation,
    QuoteResult,
    TradeResult,
)
from .types import Direction, QuoteRequest, Route, RouteProvider, TradeExecutor, TradeRequest


class PipelineState(str, enum.Enum):
    INIT = "INIT"
    PARAMS_READY = "PARAMS_READY"
    ROUTE_FETCHED = "ROUTE_FETCHED"
    NO_ROUTE = "NO_ROUTE"
    PRICED = "PRICED"
    GUARD_PASSED = "GUARD_PASSED"
    GUARD_REJECTED = "GUARD_REJECTED"
    SUBMITTED = "SUBMITTED"
    CONFIRMED = "CONFIRMED"
    UNCONFIRMED = "UNCONFIRMED"
    ERROR = "ERROR"


@dataclass(slots=True, frozen=True)
class PricedRoute:
    route: Route
    price: str
    guard_price: Decimal
    expected_amount: Decimal


class SwapPipeline:
    """Quote and guarded-execute flow shared by every pool backend.

    The backend only supplies how to find a route and how to submit a swap;
    direction handling, the price guard, amount conversion and outcome mapping
    live here once.
    """

    def __init__(
        self,
        *,
        logger: logging.Logger,
        backend: str,
        route_provider: RouteProvider,
        executor: TradeExecutor,
    ) -> None:
        self._logger = logger
        self.backend = backend
        self.route_provider = route_provider
        self.executor = executor

    async def quote(self, request: QuoteRequest) -> GatewayResponse:
        state = PipelineState.INIT
        try:
            state = self._advance(state, PipelineState.PARAMS_READY, request)
            priced = await self._price(request)
            state = self._advance(state, PipelineState.ROUTE_FETCHED, request)
            if priced is None:
                self._advance(state, PipelineState.NO_ROUTE, request)
                return NoRouteResult()

            self._advance(state, PipelineState.PRICED, request, price=priced.price)
            return QuoteResult(
                request=request,
                price=priced.price,
                expected_amount=priced.expected_amount,
                swaps=priced.route.swaps,
            )
        except Exception as error:
            return self._fail(state, request, error)

    async def trade(self, request: TradeRequest) -> GatewayResponse:
        state = PipelineState.INIT
        try:
            state = self._advance(state, PipelineState.PARAMS_READY, request)
            amount_in = to_base_units(request.amount)
            priced = await self._price(request, amount_in=amount_in)
            state = self._advance(state, PipelineState.ROUTE_FETCHED, request)
            if priced is None:
                self._advance(state, PipelineState.NO_ROUTE, request)
                return NoRouteResult()

            state = self._advance(state, PipelineState.PRICED, request, price=priced.price)
            decision = guard.check(
                priced.guard_price,
                request.max_price,
                request.direction,
                display_price=priced.price,
            )
            if not decision.passed:
                self._advance(
                    state,
                    PipelineState.GUARD_REJECTED,
                    request,
                    level="info",
                    price=priced.price,
                    max_price=str(request.max_price),
                )
                return GuardRejection(reason=decision.reason or "", message=decision.message or "")

            state = self._advance(state, PipelineState.GUARD_PASSED, request)
            state = self._advance(state, PipelineState.SUBMITTED, request)
            receipt = await run_uncancellable(
                self.executor.execute(
                    route=priced.route,
                    signer_key=request.signer_key,
                    token_in=request.input_token,
                    amount_in=amount_in,
                    gas_price=request.gas_price,
                ),
                logger=self._logger,
                event="swap_finished_after_cancel",
                message=f"{self.backend} request was cancelled while its swap was in flight",
                backend=self.backend,
                direction=request.direction.value,
            )
            self._advance(state, PipelineState.CONFIRMED, request, tx_hash=receipt.tx_hash)
            return TradeResult(
                request=request,
                price=priced.price,
                expected_amount=priced.expected_amount,
                swaps=priced.route.swaps,
                receipt=receipt,
            )
        except ConfirmationTimeoutError as error:
            self._advance(state, PipelineState.UNCONFIRMED, request, level="warning", tx_hash=error.tx_hash)
            return PendingConfirmation(tx_hash=error.tx_hash, message=error.message)
        except Exception as error:
            return self._fail(state, request, error)

    async def _price(self, request: QuoteRequest, *, amount_in: int | None = None) -> PricedRoute | None:
        if amount_in is None:
            amount_in = to_base_units(request.amount)

        route = await self.route_provider.fetch_route(request.input_token, request.output_token, amount_in)
        if route is None:
            return None

        # routes are priced output-per-input; a buy routes quote->base, so flip
        # it back to quote-per-base before anything compares or displays it
        raw_price = route.marginal_price
        if request.direction is Direction.BUY:
            raw_price = invert_price(raw_price)

        # the guard sees the untruncated price; clients see the 8-digit one
        price = to_significant(raw_price)
        return PricedRoute(
            route=route,
            price=price,
            guard_price=normalize_price(raw_price),
            expected_amount=request.amount * Decimal(price),
        )

    def _advance(
        self,
        current: PipelineState,
        target: PipelineState,
        request: QuoteRequest,
        *,
        level: str = "debug",
        **fields: object,
    ) -> PipelineState:
        log_event(
            self._logger,
            level=level,
            event="pipeline_state",
            message=f"{self.backend} {request.direction.value.lower()} {current.value} -> {target.value}",
            backend=self.backend,
            direction=request.direction.value,
            state=target.value,
            previous_state=current.value,
            base=request.base,
            quote=request.quote,
            **fields,
        )
        return target

    def _fail(self, state: PipelineState, request: QuoteRequest, error: Exception) -> OperationError:
        classified: ClassifiedError = classify(error)
        log_event(
            self._logger,
            level="warning" if classified.status < 500 else "exception",
            event="operation_error",
            message=f"{self.backend} pipeline failed in state {state.value}",
            backend=self.backend,
            direction=request.direction.value,
            state=PipelineState.ERROR.value,
            previous_state=state.value,
            error=classified.error,
            detail=str(classified.message),
        )
        return OperationError(classified=classified)
