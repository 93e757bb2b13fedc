from typing import Final

ZERO_ADDRESS: Final[str] = "0x0000000000000000000000000000000000000000"

MAX_UINT256: Final[int] = 2**256 - 1
MAX_UINT160: Final[int] = 2**160 - 1

# TickMath bounds shared by v3 and v4 pools
SDK_MIN_TICK: Final[int] = -887272
SDK_MAX_TICK: Final[int] = 887272

# Symbols quoted as USD in price displays
USD_PEGGED_SYMBOLS: Final[frozenset[str]] = frozenset(
    {"USDC", "USDT", "DAI", "USDS", "USDE", "USD0", "AUSDC", "AUSDT", "ATUSDC"}
)
