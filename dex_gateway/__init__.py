"""Quote/execute gateway for constant-product and weighted DEX liquidity pools."""

__version__ = "0.1.0"
