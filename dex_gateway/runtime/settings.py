from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Callable, TypeVar

N = TypeVar("N", int, float)

UNISWAP_V2_FACTORY = "0x5C69bEe701ef814a2B6a3EDD4B1652CB9cc5aA6f"
UNISWAP_V2_ROUTER = "0x7a250d5630B4cF539739dF2C5dAcb4c659F2488D"
BALANCER_EXCHANGE_PROXY = "0x3E66B66Fd1d0b02fDa6C811Da9E0547970DB2f21"

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def _env(name: str, default: str = "") -> str:
    return os.getenv(name, default).strip()


def _as_int(raw: str) -> int:
    return int(float(raw))


def _env_number(name: str, default: N, cast: Callable[[str], N], *, minimum: N) -> N:
    """Unset or malformed values fall back to ``default``; the result is clamped to ``minimum``."""
    raw = _env(name)
    try:
        value = cast(raw) if raw else default
    except ValueError:
        value = default
    return max(minimum, value)


@dataclass(slots=True)
class AppSettings:
    host: str
    port: int
    log_level: str
    ethereum_rpc_url: str
    rpc_timeout_seconds: float
    uniswap_network: str
    uniswap_factory: str
    uniswap_router: str
    balancer_network: str
    balancer_sor_url: str
    balancer_exchange_proxy: str
    sor_timeout_seconds: float
    token_list_path: str
    confirm_timeout_seconds: float
    confirm_poll_interval_seconds: float
    swap_deadline_seconds: int
    gas_limit: int
    cert_path: str
    cert_passphrase: str

    @classmethod
    def from_env(cls) -> "AppSettings":
        log_level = _env("LOG_LEVEL", "INFO").upper()
        return cls(
            host=_env("HOST", "0.0.0.0"),
            port=_env_number("PORT", 5000, _as_int, minimum=1),
            log_level=log_level if log_level in LOG_LEVELS else "INFO",
            ethereum_rpc_url=_env("ETHEREUM_RPC_URL"),
            rpc_timeout_seconds=_env_number("RPC_TIMEOUT_SECONDS", 30.0, float, minimum=1.0),
            uniswap_network=_env("UNISWAP_NETWORK", "mainnet"),
            uniswap_factory=_env("UNISWAP_FACTORY", UNISWAP_V2_FACTORY),
            uniswap_router=_env("UNISWAP_ROUTER", UNISWAP_V2_ROUTER),
            balancer_network=_env("BALANCER_NETWORK", "mainnet"),
            balancer_sor_url=_env("BALANCER_SOR_URL"),
            balancer_exchange_proxy=_env("BALANCER_EXCHANGE_PROXY", BALANCER_EXCHANGE_PROXY),
            sor_timeout_seconds=_env_number("SOR_TIMEOUT_SECONDS", 10.0, float, minimum=1.0),
            token_list_path=_env("TOKEN_LIST_PATH"),
            confirm_timeout_seconds=_env_number("CONFIRM_TIMEOUT_SECONDS", 120.0, float, minimum=5.0),
            confirm_poll_interval_seconds=_env_number("CONFIRM_POLL_INTERVAL_SECONDS", 1.0, float, minimum=0.1),
            swap_deadline_seconds=_env_number("SWAP_DEADLINE_SECONDS", 600, _as_int, minimum=30),
            gas_limit=_env_number("GAS_LIMIT", 350_000, _as_int, minimum=21_000),
            cert_path=_env("CERT_PATH").rstrip("/"),
            # passphrases may legitimately contain surrounding whitespace
            cert_passphrase=os.getenv("CERT_PASSPHRASE", ""),
        )

    @property
    def tls_enabled(self) -> bool:
        return bool(self.cert_path)
