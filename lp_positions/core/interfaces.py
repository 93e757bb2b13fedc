"""Contracts for the collaborators the core consumes.

Concrete implementations live in ``lp_positions.clients`` and
``lp_positions.services``; tests substitute ``AsyncMock`` objects.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from lp_positions.core.models import (
    ApprovalState,
    DependentAmountResult,
    DepositParams,
    LiquidityCalcRequest,
    PoolState,
    TokenMetadata,
)


@runtime_checkable
class PoolStateProvider(Protocol):
    async def get_pool_state(self, pool_id: str) -> PoolState | None: ...


@runtime_checkable
class LiquidityMathService(Protocol):
    async def calculate(self, request: LiquidityCalcRequest) -> DependentAmountResult: ...


@runtime_checkable
class ApprovalStateProvider(Protocol):
    async def check_approvals(
        self,
        tokens: tuple[TokenMetadata, TokenMetadata],
        amounts: tuple[int, int],
        owner: str,
    ) -> ApprovalState: ...


@runtime_checkable
class Signer(Protocol):
    async def sign_typed_data(
        self,
        domain: dict[str, Any],
        types: dict[str, list[dict[str, str]]],
        values: dict[str, Any],
    ) -> str: ...

    async def send_approval_tx(self, token: TokenMetadata) -> Any: ...

    async def send_deposit_tx(
        self, params: DepositParams, permit_signature: str | None = None
    ) -> Any: ...


class TokenRegistry(Protocol):
    def get_token(self, symbol: str) -> TokenMetadata | None: ...
