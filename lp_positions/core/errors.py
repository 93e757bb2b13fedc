"""Error taxonomy for position calculations and transaction flows.

Every failure crossing a service boundary (math service, approval provider,
signer) is converted into one of these types before it reaches calculator or
step-machine state.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any


class ErrorCode(StrEnum):
    INVALID_INPUT = "INVALID_INPUT"
    RANGE_TOO_NARROW = "RANGE_TOO_NARROW"
    STALE_RESULT = "STALE_RESULT"
    SERVICE_FAILURE = "SERVICE_FAILURE"
    USER_REJECTION = "USER_REJECTION"
    TRANSACTION_FAILURE = "TRANSACTION_FAILURE"


USER_REJECTION_CODE = 4001

_USER_REJECTION_MARKERS = (
    "user rejected",
    "user denied",
    "user cancelled",
    "user canceled",
    "rejected by user",
    "denied by user",
)

_NETWORK_ERROR_MARKERS = (
    "network",
    "rpc",
    "timeout",
    "fetch",
    "connection",
    "socket",
    "enotfound",
    "econnrefused",
)


class PositionCoreError(Exception):
    """Base error.

    ``recoverable`` means the same operation may succeed when retried.
    ``surfaced`` is False for outcomes the UI must never show as an error.
    """

    default_code: ErrorCode = ErrorCode.SERVICE_FAILURE
    recoverable: bool = False
    surfaced: bool = True

    def __init__(
        self,
        message: str,
        *,
        code: ErrorCode | None = None,
        original_error: BaseException | None = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.original_error = original_error
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.code}] {self.message}"

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code}, message={self.message!r})"


class InvalidInput(PositionCoreError):
    default_code = ErrorCode.INVALID_INPUT


class RangeTooNarrow(PositionCoreError):
    default_code = ErrorCode.RANGE_TOO_NARROW

    @classmethod
    def for_preset(
        cls, label: str, tick_lower: int, tick_upper: int, tick_spacing: int
    ) -> RangeTooNarrow:
        return cls(
            f"Preset {label} collapses below one tick spacing "
            f"({tick_lower}, {tick_upper}, spacing={tick_spacing})",
            details={
                "preset": label,
                "tick_lower": tick_lower,
                "tick_upper": tick_upper,
                "tick_spacing": tick_spacing,
            },
        )


class StaleResult(PositionCoreError):
    default_code = ErrorCode.STALE_RESULT
    surfaced = False


class ServiceFailure(PositionCoreError):
    default_code = ErrorCode.SERVICE_FAILURE
    recoverable = True


class UserRejection(PositionCoreError):
    default_code = ErrorCode.USER_REJECTION
    recoverable = True
    surfaced = False


class TransactionFailure(PositionCoreError):
    default_code = ErrorCode.TRANSACTION_FAILURE
    recoverable = True


class TransactionRevertedError(TransactionFailure):
    def __init__(
        self,
        txn_hash: str,
        receipt: dict[str, Any] | None = None,
        message: str | None = None,
    ):
        self.txn_hash = txn_hash
        self.receipt = receipt or {}
        super().__init__(
            message or f"Transaction reverted: {txn_hash}",
            details={"txn_hash": txn_hash},
        )


def _error_chain(exc: BaseException | None) -> list[BaseException]:
    chain: list[BaseException] = []
    while exc is not None and exc not in chain:
        chain.append(exc)
        nested = getattr(exc, "original_error", None) or getattr(exc, "cause", None)
        exc = nested if isinstance(nested, BaseException) else exc.__cause__
    return chain


def is_user_rejection(exc: BaseException | None) -> bool:
    """Detect a wallet-level decline (EIP-1193 code 4001 or a rejection message)."""
    for err in _error_chain(exc):
        if isinstance(err, UserRejection):
            return True
        if getattr(err, "code", None) == USER_REJECTION_CODE:
            return True
        message = str(getattr(err, "message", "") or err).lower()
        if any(marker in message for marker in _USER_REJECTION_MARKERS):
            return True
    return False


def is_network_error(exc: BaseException | None) -> bool:
    for err in _error_chain(exc):
        message = str(err).lower()
        if any(marker in message for marker in _NETWORK_ERROR_MARKERS):
            return True
    return False


def classify_service_error(exc: BaseException, *, service: str) -> PositionCoreError:
    if isinstance(exc, PositionCoreError):
        return exc
    kind = "network error" if is_network_error(exc) else "error"
    return ServiceFailure(
        f"{service} {kind}: {exc}",
        original_error=exc,
        details={"service": service, "network": kind == "network error"},
    )


def classify_transaction_error(exc: BaseException, *, step: str) -> PositionCoreError:
    if is_user_rejection(exc):
        if isinstance(exc, UserRejection):
            return exc
        return UserRejection(
            f"{step} rejected by user", original_error=exc, details={"step": step}
        )
    if isinstance(exc, PositionCoreError):
        return exc
    return TransactionFailure(
        f"{step} failed: {exc}", original_error=exc, details={"step": step}
    )
