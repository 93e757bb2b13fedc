from lp_positions.core.errors import (
    ErrorCode,
    InvalidInput,
    PositionCoreError,
    RangeTooNarrow,
    ServiceFailure,
    StaleResult,
    TransactionFailure,
    UserRejection,
)

__all__ = [
    "ErrorCode",
    "InvalidInput",
    "PositionCoreError",
    "RangeTooNarrow",
    "ServiceFailure",
    "StaleResult",
    "TransactionFailure",
    "UserRejection",
]
