from __future__ import annotations

from lp_positions.core.errors import InvalidInput, ServiceFailure
from lp_positions.core.interfaces import PoolStateProvider
from lp_positions.core.models import (
    DependentAmountResult,
    LiquidityCalcRequest,
    PoolConfig,
)
from lp_positions.core.utils.tick_math import (
    amounts_for_liquidity,
    liquidity_for_amount0,
    liquidity_for_amount1,
    sqrt_price_x96_from_tick,
)
from lp_positions.core.utils.units import parse_units


class LocalLiquidityMathService:
    """In-process liquidity math against the latest pool snapshot."""

    def __init__(self, pool: PoolConfig, pool_state: PoolStateProvider):
        self.pool = pool
        self.pool_state = pool_state

    async def calculate(self, request: LiquidityCalcRequest) -> DependentAmountResult:
        if request.tick_lower >= request.tick_upper:
            raise InvalidInput(
                f"Invalid tick range: {request.tick_lower} >= {request.tick_upper}"
            )
        state = await self.pool_state.get_pool_state(self.pool.pool_id)
        if state is None:
            raise ServiceFailure(f"Pool state unavailable for {self.pool.pool_id}")

        is_token0 = request.input_token == self.pool.token0.symbol
        if not is_token0 and request.input_token != self.pool.token1.symbol:
            raise InvalidInput(f"{request.input_token} is not in this pool")
        token = self.pool.token0 if is_token0 else self.pool.token1
        try:
            raw = parse_units(request.input_amount, token.decimals)
        except ValueError as exc:
            raise InvalidInput(str(exc), original_error=exc) from exc

        sqrt_p = int(state.sqrt_price_x96)
        sqrt_a = sqrt_price_x96_from_tick(request.tick_lower)
        sqrt_b = sqrt_price_x96_from_tick(request.tick_upper)

        if is_token0:
            if sqrt_p >= sqrt_b:
                raise InvalidInput(f"{token.symbol} cannot be added above the range")
            liquidity = liquidity_for_amount0(max(sqrt_p, sqrt_a), sqrt_b, raw)
            amount0 = raw
            amount1 = amounts_for_liquidity(sqrt_p, sqrt_a, sqrt_b, liquidity)[1]
        else:
            if sqrt_p <= sqrt_a:
                raise InvalidInput(f"{token.symbol} cannot be added below the range")
            liquidity = liquidity_for_amount1(sqrt_a, min(sqrt_p, sqrt_b), raw)
            amount0 = amounts_for_liquidity(sqrt_p, sqrt_a, sqrt_b, liquidity)[0]
            amount1 = raw

        return DependentAmountResult(
            liquidity=str(liquidity),
            final_tick_lower=request.tick_lower,
            final_tick_upper=request.tick_upper,
            amount0=str(amount0),
            amount1=str(amount1),
            pool_tick_at_calc=state.tick,
            pool_price_at_calc=state.price,
        )
