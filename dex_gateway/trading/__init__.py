from .errors import (
    ConfirmationTimeoutError,
    ExecutionError,
    GatewayError,
    ValidationError,
    classify,
)
from .executors import ConstantProductExecutor, WeightedPoolExecutor
from .pipeline import PipelineState, SwapPipeline
from .providers import ConstantProductRouteProvider, WeightedPoolRouteProvider
from .registry import TokenRegistry
from .responses import format_response, now_ms
from .types import (
    SWAP_PRICE_EXCEEDS_MAX,
    SWAP_PRICE_LOWER_THAN_MAX,
    Direction,
    QuoteRequest,
    Route,
    SwapReceipt,
    SwapStatus,
    TradeRequest,
)

__all__ = [
    "ConfirmationTimeoutError",
    "ConstantProductExecutor",
    "ConstantProductRouteProvider",
    "Direction",
    "ExecutionError",
    "GatewayError",
    "PipelineState",
    "QuoteRequest",
    "Route",
    "SWAP_PRICE_EXCEEDS_MAX",
    "SWAP_PRICE_LOWER_THAN_MAX",
    "SwapPipeline",
    "SwapReceipt",
    "SwapStatus",
    "TokenRegistry",
    "TradeRequest",
    "ValidationError",
    "WeightedPoolExecutor",
    "WeightedPoolRouteProvider",
    "classify",
    "format_response",
    "now_ms",
]
