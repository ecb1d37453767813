from __future__ import annotations

import json
from pathlib import Path
from types import MappingProxyType
from typing import Mapping


class TokenRegistry:
    """Read-only symbol -> address map, loaded once at startup."""

    def __init__(self, tokens: Mapping[str, str] | None = None) -> None:
        self._tokens = MappingProxyType({symbol.upper(): address for symbol, address in (tokens or {}).items()})

    @classmethod
    def from_file(cls, path: str) -> "TokenRegistry":
        if not path:
            return cls()

        data = json.loads(Path(path).read_text(encoding="utf-8"))
        if isinstance(data, dict) and isinstance(data.get("tokens"), list):
            # token-list format: {"tokens": [{"symbol": ..., "address": ...}]}
            return cls({str(item["symbol"]): str(item["address"]) for item in data["tokens"]})
        if isinstance(data, dict):
            return cls({str(symbol): str(address) for symbol, address in data.items()})
        raise ValueError(f"Unsupported token list format in {path}")

    def __len__(self) -> int:
        return len(self._tokens)

    def resolve(self, value: str) -> str:
        """Return the address for a known symbol, otherwise ``value`` unchanged."""
        return self._tokens.get(value.strip().upper(), value.strip())
