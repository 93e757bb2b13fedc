from typing import Any, Final

PERMIT2_ADDRESS: Final[str] = "0x000000000022D473030F116dDEE9F6B43aC78BA3"
PERMIT2_DOMAIN_NAME: Final[str] = "Permit2"

PERMIT_DETAILS_TYPE: Final[list[dict[str, str]]] = [
    {"name": "token", "type": "address"},
    {"name": "amount", "type": "uint160"},
    {"name": "expiration", "type": "uint48"},
    {"name": "nonce", "type": "uint48"},
]

PERMIT_BATCH_TYPES: Final[dict[str, list[dict[str, str]]]] = {
    "PermitDetails": PERMIT_DETAILS_TYPE,
    "PermitBatch": [
        {"name": "details", "type": "PermitDetails[]"},
        {"name": "spender", "type": "address"},
        {"name": "sigDeadline", "type": "uint256"},
    ],
}

EIP712_DOMAIN_TYPE: Final[list[dict[str, str]]] = [
    {"name": "name", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

PERMIT2_ABI: Final[list[dict[str, Any]]] = [
    {
        "inputs": [
            {"name": "owner", "type": "address"},
            {"name": "token", "type": "address"},
            {"name": "spender", "type": "address"},
        ],
        "name": "allowance",
        "outputs": [
            {"name": "amount", "type": "uint160"},
            {"name": "expiration", "type": "uint48"},
            {"name": "nonce", "type": "uint48"},
        ],
        "stateMutability": "view",
        "type": "function",
    }
]
