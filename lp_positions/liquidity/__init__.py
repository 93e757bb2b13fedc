from lp_positions.liquidity.capital_efficiency import (
    BoostedApr,
    CapitalEfficiency,
    boosted_apr,
    capital_efficiency,
)
from lp_positions.liquidity.dependent_amount import (
    ActiveSide,
    DependentAmountCalculator,
    DependentAmountState,
)
from lp_positions.liquidity.range_presets import (
    FULL_RANGE,
    FullRange,
    Percentage,
    Preset,
    RangeSelection,
    detect_preset,
    preset_to_range,
)
from lp_positions.liquidity.tick_price import Denomination, price_to_tick, tick_to_price
from lp_positions.liquidity.transaction_steps import TransactionStepMachine

__all__ = [
    "ActiveSide",
    "BoostedApr",
    "CapitalEfficiency",
    "Denomination",
    "DependentAmountCalculator",
    "DependentAmountState",
    "FULL_RANGE",
    "FullRange",
    "Percentage",
    "Preset",
    "RangeSelection",
    "TransactionStepMachine",
    "boosted_apr",
    "capital_efficiency",
    "detect_preset",
    "preset_to_range",
    "price_to_tick",
    "tick_to_price",
]
