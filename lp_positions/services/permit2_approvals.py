"""On-chain approval state for Permit2-based deposits.

Each token first needs an ERC20 allowance toward Permit2, then a Permit2
allowance toward the position manager. Tokens still missing the ERC20 approval
are not checked for a permit; the permit is re-evaluated after approval.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from contextlib import AbstractAsyncContextManager

from eth_utils import to_checksum_address
from loguru import logger
from web3 import AsyncWeb3

from lp_positions.core.config import (
    get_permit_expiration_s,
    get_permit_sig_deadline_s,
    get_position_manager_address,
)
from lp_positions.core.constants import MAX_UINT160, ZERO_ADDRESS
from lp_positions.core.constants.erc20_abi import ERC20_ABI
from lp_positions.core.constants.permit2 import (
    PERMIT2_ABI,
    PERMIT2_ADDRESS,
    PERMIT2_DOMAIN_NAME,
    PERMIT_BATCH_TYPES,
)
from lp_positions.core.models import (
    ApprovalState,
    PermitBatch,
    PermitDetails,
    PermitPayload,
    TokenMetadata,
)
from lp_positions.core.utils.web3 import web3_from_chain_id


def is_native_token(token: TokenMetadata) -> bool:
    return token.address.lower() == ZERO_ADDRESS


def permit_domain(chain_id: int) -> dict:
    return {
        "name": PERMIT2_DOMAIN_NAME,
        "chainId": chain_id,
        "verifyingContract": PERMIT2_ADDRESS,
    }


class Permit2ApprovalProvider:
    def __init__(
        self,
        chain_id: int,
        *,
        spender: str | None = None,
        web3_factory: Callable[
            [int], AbstractAsyncContextManager[AsyncWeb3]
        ] = web3_from_chain_id,
        clock: Callable[[], float] = time.time,
    ):
        self.chain_id = chain_id
        self.spender = to_checksum_address(
            spender or get_position_manager_address(chain_id)
        )
        self._web3_factory = web3_factory
        self._clock = clock
        self.logger = logger.bind(component=self.__class__.__name__)

    async def check_approvals(
        self,
        tokens: tuple[TokenMetadata, TokenMetadata],
        amounts: tuple[int, int],
        owner: str,
    ) -> ApprovalState:
        owner = to_checksum_address(owner)
        now = int(self._clock())
        needs_approval = [False, False]
        needs_permit = [False, False]
        details: list[PermitDetails] = []

        async with self._web3_factory(self.chain_id) as web3:
            permit2 = web3.eth.contract(
                address=to_checksum_address(PERMIT2_ADDRESS), abi=PERMIT2_ABI
            )
            for index, (token, required) in enumerate(zip(tokens, amounts, strict=True)):
                if is_native_token(token) or required <= 0:
                    continue
                token_address = to_checksum_address(token.address)
                erc20 = web3.eth.contract(address=token_address, abi=ERC20_ABI)
                allowance = await erc20.functions.allowance(
                    owner, to_checksum_address(PERMIT2_ADDRESS)
                ).call(block_identifier="pending")
                if int(allowance) < required:
                    needs_approval[index] = True
                    continue

                amount, expiration, nonce = await permit2.functions.allowance(
                    owner, token_address, self.spender
                ).call(block_identifier="pending")
                sufficient = int(amount) >= MAX_UINT160 or int(amount) >= required
                unexpired = int(expiration) == 0 or int(expiration) > now
                if sufficient and unexpired:
                    continue
                needs_permit[index] = True
                details.append(
                    PermitDetails(
                        token=token_address,
                        amount=MAX_UINT160,
                        expiration=now + get_permit_expiration_s(),
                        nonce=int(nonce),
                    )
                )

        permit = None
        if details:
            permit = PermitPayload(
                domain=permit_domain(self.chain_id),
                types=PERMIT_BATCH_TYPES,
                batch=PermitBatch(
                    details=details,
                    spender=self.spender,
                    sig_deadline=now + get_permit_sig_deadline_s(),
                ),
            )
        self.logger.debug(
            f"Approvals for {owner}: erc20={needs_approval} permit={needs_permit}"
        )
        return ApprovalState(
            needs_token0_approval=needs_approval[0],
            needs_token1_approval=needs_approval[1],
            needs_token0_permit=needs_permit[0],
            needs_token1_permit=needs_permit[1],
            permit=permit,
        )
