"""Resumable approve -> permit -> deposit sequencing for one position action.

The machine owns an ordered plan and a cursor. ``advance()`` runs exactly one
step; a failed or rejected step keeps the cursor so the next ``advance()``
retries only that step. Every approval or permit step re-checks with the
approval-state provider before executing, because requirements can change
between planning and execution.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any

from loguru import logger

from lp_positions.core.errors import (
    PositionCoreError,
    TransactionFailure,
    UserRejection,
    classify_service_error,
    classify_transaction_error,
)
from lp_positions.core.interfaces import ApprovalStateProvider, Signer
from lp_positions.core.models import (
    ApprovalState,
    ApproveToken0,
    ApproveToken1,
    Deposit,
    DepositParams,
    SignPermit,
    StepEvent,
    StepStatus,
    TransactionPlan,
    TransactionStep,
)
from lp_positions.core.utils.formatting import format_duration


def build_plan(approvals: ApprovalState, params: DepositParams) -> TransactionPlan:
    steps: list[TransactionStep] = []
    if approvals.needs_token0_approval:
        steps.append(ApproveToken0(token=params.pool.token0))
    if approvals.needs_token1_approval:
        steps.append(ApproveToken1(token=params.pool.token1))
    if approvals.needs_permit:
        steps.append(SignPermit())
    steps.append(Deposit(params=params))
    return TransactionPlan(steps=steps)


def format_signature_deadline(sig_deadline: int, now: int | None = None) -> str:
    now = int(time.time()) if now is None else now
    return format_duration(sig_deadline - now)


class TransactionStepMachine:
    def __init__(
        self,
        approvals: ApprovalStateProvider,
        signer: Signer,
        *,
        owner: str,
    ):
        self.approvals = approvals
        self.signer = signer
        self.owner = owner
        self.plan = TransactionPlan()
        self.cursor = 0
        self.permit_signature: str | None = None
        self.history: list[StepEvent] = []
        self.last_error: PositionCoreError | None = None
        self.last_receipt: Any = None
        self._amounts: tuple[int, int] = (0, 0)
        self._fresh_state: ApprovalState | None = None
        self._lock = asyncio.Lock()
        self._epoch = 0
        self.logger = logger.bind(component=self.__class__.__name__)

    @property
    def is_busy(self) -> bool:
        return self._lock.locked() or any(
            step.status is StepStatus.IN_PROGRESS for step in self.plan.steps
        )

    @property
    def current_step(self) -> TransactionStep | None:
        if self.cursor < len(self.plan.steps):
            return self.plan.steps[self.cursor]
        return None

    @property
    def next_step(self) -> str | None:
        step = self.current_step
        return step.type if step is not None else None

    @property
    def is_idle(self) -> bool:
        return not self.plan.steps

    @property
    def completed_steps(self) -> list[str]:
        return [s.type for s in self.plan.steps if s.status is StepStatus.SUCCEEDED]

    async def prepare(
        self, params: DepositParams, amounts: tuple[int, int]
    ) -> TransactionPlan:
        """Build a fresh plan from what the provider reports is still required."""
        if self.is_busy:
            self.logger.debug("prepare() ignored while a step is in progress")
            return self.plan

        self.reset()
        state = await self._query_approvals(params, amounts)
        self._amounts = amounts
        self.plan = build_plan(state, params)
        self.logger.info(
            f"Planned steps for {params.action_label}: {[s.type for s in self.plan.steps]}"
        )
        return self.plan

    async def advance(self) -> TransactionStep | None:
        """Execute the step under the cursor. No-op while another step runs."""
        if self.is_busy:
            self.logger.debug("advance() ignored: a step is already in progress")
            return None

        async with self._lock:
            step = self.current_step
            if step is None:
                return None
            epoch = self._epoch
            self._mark(step, StepStatus.IN_PROGRESS)

            try:
                outcome = await self._execute(step)
            except Exception as exc:  # noqa: BLE001
                if epoch != self._epoch:
                    return step
                self._fail(step, exc)
                return step

            if epoch != self._epoch:
                self.logger.debug(f"{step.type} finished after reset; result dropped")
                return step

            step.result = outcome
            self._mark(step, StepStatus.SUCCEEDED)
            self.cursor += 1
            self.last_error = None

            if isinstance(step, Deposit):
                self.last_receipt = outcome
                self.logger.info(
                    f"Deposit ({step.params.action_label}) confirmed; transaction flow complete"
                )
                self.reset()
            return step

    def reset(self) -> None:
        """Drop the plan and any held permit signature."""
        self._epoch += 1
        self.plan = TransactionPlan()
        self.cursor = 0
        self.permit_signature = None
        self._fresh_state = None

    async def _execute(self, step: TransactionStep) -> Any:
        match step:
            case ApproveToken0() | ApproveToken1():
                return await self._approve(step)
            case SignPermit():
                return await self._sign_permit()
            case Deposit(params=params):
                return await self.signer.send_deposit_tx(params, self.permit_signature)

    async def _approve(self, step: ApproveToken0 | ApproveToken1) -> Any:
        state = await self._current_approvals()
        if not self._needs_approval(step, state):
            self.logger.info(f"{step.type} no longer required; skipping")
            return None

        receipt = await self.signer.send_approval_tx(step.token)
        # approval only counts once the provider sees it on-chain
        after = await self._query_approvals(self._deposit_params(), self._amounts)
        if self._needs_approval(step, after):
            raise TransactionFailure(
                f"{step.token.symbol} approval not confirmed on-chain yet",
                details={"step": step.type},
            )
        self._fresh_state = after
        self._sync_permit_step(after)
        return receipt

    async def _sign_permit(self) -> str | None:
        state = await self._current_approvals()
        if not state.needs_permit or state.permit is None:
            self.logger.info("Permit no longer required; skipping signature")
            return None

        payload = state.permit
        signature = await self.signer.sign_typed_data(
            payload.domain, payload.types, payload.batch.to_message()
        )
        self.permit_signature = signature
        self.logger.info(
            "Batch permit signed for "
            f"{format_signature_deadline(payload.batch.sig_deadline)}"
        )
        return signature

    def _sync_permit_step(self, state: ApprovalState) -> None:
        """Insert a permit step ahead of the deposit when one became necessary."""
        if not state.needs_permit:
            return
        if any(isinstance(s, SignPermit) for s in self.plan.steps):
            return
        deposit_index = next(
            i for i, s in enumerate(self.plan.steps) if isinstance(s, Deposit)
        )
        self.plan.steps.insert(deposit_index, SignPermit())
        self.logger.info("Permit became required; added SIGN_PERMIT before deposit")

    async def _current_approvals(self) -> ApprovalState:
        if self._fresh_state is not None:
            state, self._fresh_state = self._fresh_state, None
            return state
        return await self._query_approvals(self._deposit_params(), self._amounts)

    async def _query_approvals(
        self, params: DepositParams, amounts: tuple[int, int]
    ) -> ApprovalState:
        try:
            return await self.approvals.check_approvals(
                (params.pool.token0, params.pool.token1), amounts, self.owner
            )
        except Exception as exc:  # noqa: BLE001
            raise classify_service_error(exc, service="approval state") from exc

    def _deposit_params(self) -> DepositParams:
        return next(s.params for s in self.plan.steps if isinstance(s, Deposit))

    @staticmethod
    def _needs_approval(
        step: ApproveToken0 | ApproveToken1, state: ApprovalState
    ) -> bool:
        if isinstance(step, ApproveToken0):
            return state.needs_token0_approval
        return state.needs_token1_approval

    def _fail(self, step: TransactionStep, exc: BaseException) -> None:
        error = classify_transaction_error(exc, step=step.type)
        self.last_error = error
        if isinstance(error, UserRejection):
            self.logger.debug(f"{step.type} rejected by user; waiting at same step")
            self._mark(step, StepStatus.IDLE, detail="rejected")
            return
        self.logger.error(f"{step.type} failed: {error}")
        step.error = error.message
        self._mark(step, StepStatus.FAILED, detail=error.message)

    def _mark(
        self, step: TransactionStep, status: StepStatus, detail: str | None = None
    ) -> None:
        step.status = status
        if status is StepStatus.IN_PROGRESS:
            step.error = None
        self.history.append(StepEvent(step=step.type, status=status, detail=detail))
        if status is StepStatus.SUCCEEDED:
            self.logger.info(f"{step.type} -> {status}")
