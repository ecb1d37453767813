from __future__ import annotations

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

UNISWAP_V2_FACTORY_ABI = [
    {
        "name": "getPair",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "tokenA", "type": "address"},
            {"name": "tokenB", "type": "address"},
        ],
        "outputs": [{"name": "pair", "type": "address"}],
    },
]

UNISWAP_V2_PAIR_ABI = [
    {
        "name": "getReserves",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [
            {"name": "reserve0", "type": "uint112"},
            {"name": "reserve1", "type": "uint112"},
            {"name": "blockTimestampLast", "type": "uint32"},
        ],
    },
    {
        "name": "token0",
        "type": "function",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
    },
]

UNISWAP_V2_ROUTER_ABI = [
    {
        "name": "swapExactTokensForTokens",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "amountIn", "type": "uint256"},
            {"name": "amountOutMin", "type": "uint256"},
            {"name": "path", "type": "address[]"},
            {"name": "to", "type": "address"},
            {"name": "deadline", "type": "uint256"},
        ],
        "outputs": [{"name": "amounts", "type": "uint256[]"}],
    },
]

BALANCER_EXCHANGE_PROXY_ABI = [
    {
        "name": "batchSwapExactIn",
        "type": "function",
        "stateMutability": "payable",
        "inputs": [
            {
                "name": "swaps",
                "type": "tuple[]",
                "components": [
                    {"name": "pool", "type": "address"},
                    {"name": "tokenInParam", "type": "uint256"},
                    {"name": "tokenOutParam", "type": "uint256"},
                    {"name": "maxPrice", "type": "uint256"},
                ],
            },
            {"name": "tokenIn", "type": "address"},
            {"name": "tokenOut", "type": "address"},
            {"name": "totalAmountIn", "type": "uint256"},
            {"name": "minTotalAmountOut", "type": "uint256"},
        ],
        "outputs": [{"name": "totalAmountOut", "type": "uint256"}],
    },
]
