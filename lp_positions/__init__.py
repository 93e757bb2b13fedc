__version__ = "0.1.0"

from lp_positions.core import (
    PositionCoreError,
    ServiceFailure,
    TransactionFailure,
    UserRejection,
)
from lp_positions.liquidity import (
    DependentAmountCalculator,
    RangeSelection,
    TransactionStepMachine,
)

__all__ = [
    "__version__",
    "DependentAmountCalculator",
    "PositionCoreError",
    "RangeSelection",
    "ServiceFailure",
    "TransactionFailure",
    "TransactionStepMachine",
    "UserRejection",
]
