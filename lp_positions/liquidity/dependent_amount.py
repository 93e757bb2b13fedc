"""Debounced, generation-tagged calculation of the paired deposit amount.

Every input change bumps ``generation``. A pending debounce is cancelled
outright; a request already sent to the math service is allowed to finish and
its response is dropped if the generation moved on in the meantime.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, replace
from enum import StrEnum

from loguru import logger

from lp_positions.core.config import get_debounce_ms
from lp_positions.core.constants import MAX_UINT256
from lp_positions.core.errors import (
    InvalidInput,
    PositionCoreError,
    StaleResult,
    classify_service_error,
)
from lp_positions.core.interfaces import LiquidityMathService
from lp_positions.core.models import (
    DependentAmountResult,
    LiquidityCalcRequest,
    PoolConfig,
    PoolState,
    TokenMetadata,
)
from lp_positions.core.utils.formatting import format_token_amount
from lp_positions.core.utils.units import (
    clean_amount,
    format_units,
    parse_decimal_amount,
    parse_units,
)

# Amounts at or above this are sentinel "unbounded" values from the service
_UNBOUNDED_AMOUNT = MAX_UINT256 // 2


class ActiveSide(StrEnum):
    TOKEN0 = "TOKEN0"
    TOKEN1 = "TOKEN1"

    @property
    def other(self) -> ActiveSide:
        return ActiveSide.TOKEN1 if self is ActiveSide.TOKEN0 else ActiveSide.TOKEN0


@dataclass(frozen=True)
class DependentAmountState:
    active_side: ActiveSide | None = None
    active_amount: str = ""
    tick_lower: int | None = None
    tick_upper: int | None = None
    dependent_amount: str = ""
    dependent_raw: str | None = None
    result: DependentAmountResult | None = None
    pool_tick: int | None = None
    pool_price: str | None = None
    error: PositionCoreError | None = None
    is_calculating: bool = False
    generation: int = 0

    @property
    def amount0(self) -> str:
        if self.active_side is ActiveSide.TOKEN0:
            return self.active_amount
        return self.dependent_amount

    @property
    def amount1(self) -> str:
        if self.active_side is ActiveSide.TOKEN1:
            return self.active_amount
        return self.dependent_amount


@dataclass
class _Request:
    generation: int
    side: ActiveSide
    amount: str
    tick_lower: int
    tick_upper: int


def addable_tokens(
    tick_lower: int, tick_upper: int, pool_tick: int
) -> tuple[bool, bool]:
    """Which of ``(token0, token1)`` a deposit into the range can include."""
    if pool_tick < tick_lower:
        return True, False
    if pool_tick >= tick_upper:
        return False, True
    return True, True


def display_amount(raw: str | int, token: TokenMetadata) -> str:
    value = int(raw)
    if value >= _UNBOUNDED_AMOUNT:
        value = 0
    return format_token_amount(
        format_units(value, token.decimals), token.display_decimals
    )


class DependentAmountCalculator:
    def __init__(
        self,
        pool: PoolConfig,
        service: LiquidityMathService,
        *,
        debounce_ms: int | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        on_change: Callable[[DependentAmountState], None] | None = None,
    ):
        self.pool = pool
        self.service = service
        if debounce_ms is None:
            debounce_ms = get_debounce_ms()
        self.debounce_s = debounce_ms / 1000
        self._sleep = sleep
        self._listeners: list[Callable[[DependentAmountState], None]] = (
            [on_change] if on_change else []
        )
        self._generation = 0
        self._debouncing: asyncio.Task | None = None
        self._tasks: set[asyncio.Task] = set()
        self.state = DependentAmountState()
        self.logger = logger.bind(component=self.__class__.__name__)

    @property
    def generation(self) -> int:
        return self._generation

    def subscribe(self, listener: Callable[[DependentAmountState], None]) -> None:
        self._listeners.append(listener)

    def set_pool_state(self, pool_state: PoolState | None) -> None:
        """Latest polled snapshot; replaced by as-of-calculation values on success."""
        if pool_state is None:
            self._write(pool_tick=None, pool_price=None)
        else:
            self._write(pool_tick=pool_state.tick, pool_price=pool_state.price)

    def set_input(
        self, side: ActiveSide, amount: str, tick_lower: int, tick_upper: int
    ) -> None:
        """Record a user edit and schedule the debounced calculation."""
        request = self._begin(side, amount, tick_lower, tick_upper)
        if request is None:
            return
        task = asyncio.get_running_loop().create_task(self._run(request, debounce=True))
        self._debouncing = task
        self._track(task)

    async def calculate_now(
        self, side: ActiveSide, amount: str, tick_lower: int, tick_upper: int
    ) -> DependentAmountState:
        request = self._begin(side, amount, tick_lower, tick_upper)
        if request is not None:
            await self._run(request, debounce=False)
        return self.state

    async def wait(self) -> DependentAmountState:
        """Wait for every scheduled or in-flight request to settle."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
        return self.state

    def cancel(self) -> None:
        """Invalidate anything pending or in flight."""
        self._generation += 1
        self._cancel_debounce()
        if self.state.is_calculating:
            self._write(is_calculating=False)

    def reset(self) -> None:
        self.cancel()
        self._write(
            active_side=None,
            active_amount="",
            tick_lower=None,
            tick_upper=None,
            dependent_amount="",
            dependent_raw=None,
            result=None,
            error=None,
        )

    def switch_pool(self, pool: PoolConfig) -> None:
        self.reset()
        self.pool = pool
        self._write(pool_tick=None, pool_price=None)

    def _begin(
        self, side: ActiveSide, amount: str, tick_lower: int, tick_upper: int
    ) -> _Request | None:
        self._generation += 1
        self._cancel_debounce()
        cleaned = clean_amount(amount)
        self._write(
            active_side=side,
            active_amount=amount,
            tick_lower=tick_lower,
            tick_upper=tick_upper,
            is_calculating=False,
        )

        if tick_lower >= tick_upper:
            self._clear(
                InvalidInput(f"Invalid tick range: {tick_lower} >= {tick_upper}")
            )
            return None

        value = parse_decimal_amount(cleaned)
        if value is None or value <= 0:
            self._clear(None)
            return None

        pool_tick = self.state.pool_tick
        if pool_tick is not None and (pool_tick < tick_lower or pool_tick > tick_upper):
            self._apply_one_sided(side, cleaned, tick_lower, tick_upper)
            return None

        return _Request(self._generation, side, cleaned, tick_lower, tick_upper)

    def _apply_one_sided(
        self, side: ActiveSide, amount: str, tick_lower: int, tick_upper: int
    ) -> None:
        token = self._token(side)
        try:
            raw = parse_units(amount, token.decimals)
        except ValueError as exc:
            self._clear(InvalidInput(str(exc), original_error=exc))
            return
        result = DependentAmountResult(
            liquidity="0",
            final_tick_lower=tick_lower,
            final_tick_upper=tick_upper,
            amount0=str(raw) if side is ActiveSide.TOKEN0 else "0",
            amount1=str(raw) if side is ActiveSide.TOKEN1 else "0",
            pool_tick_at_calc=self.state.pool_tick,
            pool_price_at_calc=self.state.pool_price,
        )
        self.logger.debug(
            f"Pool tick {self.state.pool_tick} outside ({tick_lower}, {tick_upper}); "
            "one-sided deposit computed locally"
        )
        self._write(
            result=result,
            dependent_raw="0",
            dependent_amount="0",
            error=None,
        )

    async def _run(self, request: _Request, *, debounce: bool) -> None:
        if debounce and self.debounce_s > 0:
            try:
                await self._sleep(self.debounce_s)
            except asyncio.CancelledError:
                return
        if request.generation != self._generation:
            return

        if self._debouncing is asyncio.current_task():
            self._debouncing = None
        self._write(is_calculating=True)
        self.logger.debug(
            f"Dispatching calculation gen={request.generation} side={request.side} "
            f"amount={request.amount} range=({request.tick_lower}, {request.tick_upper})"
        )

        try:
            result = await self.service.calculate(self._build_request(request))
        except Exception as exc:  # noqa: BLE001
            if request.generation != self._generation:
                self.logger.debug(
                    f"Discarding stale failure gen={request.generation}: {exc}"
                )
                return
            error = classify_service_error(exc, service="liquidity math")
            self.logger.error(f"Dependent amount calculation failed: {error}")
            self._clear(error, clear_pool_state=True)
            return

        if request.generation != self._generation:
            stale = StaleResult(
                f"Discarding result gen={request.generation} (current={self._generation})",
                details={"generation": request.generation},
            )
            self.logger.debug(str(stale))
            return
        self._apply_result(request, result)

    def _apply_result(self, request: _Request, result: DependentAmountResult) -> None:
        target = request.side.other
        raw = result.amount1 if target is ActiveSide.TOKEN1 else result.amount0
        try:
            display = display_amount(raw, self._token(target))
            raw_value = int(raw)
        except (TypeError, ValueError) as exc:
            self._clear(
                classify_service_error(exc, service="liquidity math"), clear_pool_state=True
            )
            return
        if raw_value >= _UNBOUNDED_AMOUNT:
            raw_value = 0

        updates: dict = {
            "result": result,
            "dependent_raw": str(raw_value),
            "dependent_amount": display,
            "error": None,
            "is_calculating": False,
        }
        if result.pool_tick_at_calc is not None:
            updates["pool_tick"] = result.pool_tick_at_calc
        if result.pool_price_at_calc is not None:
            updates["pool_price"] = result.pool_price_at_calc
        self._write(**updates)

    def _build_request(self, request: _Request) -> LiquidityCalcRequest:
        return LiquidityCalcRequest(
            token0=self.pool.token0.symbol,
            token1=self.pool.token1.symbol,
            input_amount=request.amount,
            input_token=self._token(request.side).symbol,
            tick_lower=request.tick_lower,
            tick_upper=request.tick_upper,
            chain_id=self.pool.chain_id,
        )

    def _token(self, side: ActiveSide) -> TokenMetadata:
        return self.pool.token0 if side is ActiveSide.TOKEN0 else self.pool.token1

    def _clear(
        self, error: PositionCoreError | None, *, clear_pool_state: bool = False
    ) -> None:
        updates: dict = {
            "dependent_amount": "",
            "dependent_raw": None,
            "result": None,
            "error": error,
            "is_calculating": False,
        }
        if clear_pool_state:
            updates["pool_tick"] = None
            updates["pool_price"] = None
        self._write(**updates)

    def _cancel_debounce(self) -> None:
        if self._debouncing is not None and not self._debouncing.done():
            self._debouncing.cancel()
        self._debouncing = None

    def _track(self, task: asyncio.Task) -> None:
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _write(self, **updates) -> None:
        self.state = replace(self.state, generation=self._generation, **updates)
        for listener in self._listeners:
            listener(self.state)
