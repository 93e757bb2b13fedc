from __future__ import annotations

from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, field_validator

from lp_positions.core.constants import USD_PEGGED_SYMBOLS


class TokenMetadata(BaseModel):
    symbol: str
    address: str
    decimals: int = Field(ge=0, le=255)
    display_decimals: int = Field(default=4, ge=0)

    @property
    def is_usd_pegged(self) -> bool:
        return self.symbol.upper() in USD_PEGGED_SYMBOLS


class PoolConfig(BaseModel):
    pool_id: str
    chain_id: int
    token0: TokenMetadata
    token1: TokenMetadata
    tick_spacing: int = Field(gt=0)
    # "stable" pools get tighter presets and extra price precision
    pool_type: str = "volatile"

    @property
    def is_stable(self) -> bool:
        return self.pool_type.lower() == "stable"


class PoolState(BaseModel):
    tick: int
    sqrt_price_x96: str
    liquidity: str
    # token1 per token0, decimal adjusted
    price: str

    @field_validator("sqrt_price_x96", "liquidity", "price", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str:
        return str(value)


class LiquidityCalcRequest(BaseModel):
    token0: str
    token1: str
    input_amount: str
    input_token: str
    tick_lower: int
    tick_upper: int
    chain_id: int


class DependentAmountResult(BaseModel):
    liquidity: str
    final_tick_lower: int
    final_tick_upper: int
    # raw integer strings
    amount0: str
    amount1: str
    pool_tick_at_calc: int | None = None
    pool_price_at_calc: str | None = None


class PermitDetails(BaseModel):
    token: str
    amount: int
    expiration: int
    nonce: int


class PermitBatch(BaseModel):
    details: list[PermitDetails]
    spender: str
    sig_deadline: int

    def to_message(self) -> dict[str, Any]:
        return {
            "details": [d.model_dump() for d in self.details],
            "spender": self.spender,
            "sigDeadline": self.sig_deadline,
        }


class PermitPayload(BaseModel):
    domain: dict[str, Any]
    types: dict[str, list[dict[str, str]]]
    primary_type: str = "PermitBatch"
    batch: PermitBatch


class ApprovalState(BaseModel):
    needs_token0_approval: bool = False
    needs_token1_approval: bool = False
    needs_token0_permit: bool = False
    needs_token1_permit: bool = False
    permit: PermitPayload | None = None

    @property
    def needs_permit(self) -> bool:
        return self.permit is not None and (
            self.needs_token0_permit or self.needs_token1_permit
        )


class DepositParams(BaseModel):
    pool: PoolConfig
    tick_lower: int
    tick_upper: int
    liquidity: str
    amount0_max: str
    amount1_max: str
    recipient: str
    deadline: int | None = None
    # NFT id of an existing position to add liquidity to; None mints a new one
    token_id: int | None = Field(default=None, ge=0)

    @property
    def is_increase(self) -> bool:
        return self.token_id is not None

    @property
    def action_label(self) -> str:
        return f"increase #{self.token_id}" if self.is_increase else "mint"


class StepStatus(StrEnum):
    IDLE = "IDLE"
    IN_PROGRESS = "IN_PROGRESS"
    SUCCEEDED = "SUCCEEDED"
    FAILED = "FAILED"


class StepBase(BaseModel):
    status: StepStatus = StepStatus.IDLE
    error: str | None = None
    result: Any = None


class ApproveToken0(StepBase):
    type: Literal["APPROVE_TOKEN0"] = "APPROVE_TOKEN0"
    token: TokenMetadata


class ApproveToken1(StepBase):
    type: Literal["APPROVE_TOKEN1"] = "APPROVE_TOKEN1"
    token: TokenMetadata


class SignPermit(StepBase):
    type: Literal["SIGN_PERMIT"] = "SIGN_PERMIT"


class Deposit(StepBase):
    type: Literal["DEPOSIT"] = "DEPOSIT"
    params: DepositParams


TransactionStep = Annotated[
    ApproveToken0 | ApproveToken1 | SignPermit | Deposit,
    Field(discriminator="type"),
]


class StepEvent(BaseModel):
    step: str
    status: StepStatus
    detail: str | None = None


class TransactionPlan(BaseModel):
    steps: list[TransactionStep] = []
