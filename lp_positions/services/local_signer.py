from __future__ import annotations

from collections.abc import Awaitable, Callable
from contextlib import AbstractAsyncContextManager
from typing import Any

from eth_account import Account
from eth_account.messages import encode_typed_data
from eth_utils import to_checksum_address
from loguru import logger
from web3 import AsyncWeb3

from lp_positions.core.constants import MAX_UINT256
from lp_positions.core.constants.erc20_abi import ERC20_ABI
from lp_positions.core.constants.permit2 import EIP712_DOMAIN_TYPE, PERMIT2_ADDRESS
from lp_positions.core.errors import TransactionRevertedError
from lp_positions.core.models import DepositParams, TokenMetadata
from lp_positions.core.utils.web3 import web3_from_chain_id

GAS_BUFFER_MULTIPLIER = 1.1
DEFAULT_RECEIPT_TIMEOUT_S = 180

DepositBuilder = Callable[[DepositParams, str | None], Awaitable[dict[str, Any]]]


def primary_type_for(types: dict[str, list[dict[str, str]]]) -> str:
    """The struct no other struct references."""
    referenced = {
        field["type"].rstrip("[]") for fields in types.values() for field in fields
    }
    candidates = [name for name in types if name not in referenced]
    if len(candidates) != 1:
        raise ValueError(f"Cannot infer primary type from {list(types)}")
    return candidates[0]


def build_typed_data(
    domain: dict[str, Any],
    types: dict[str, list[dict[str, str]]],
    values: dict[str, Any],
) -> dict[str, Any]:
    struct_types = {k: v for k, v in types.items() if k != "EIP712Domain"}
    return {
        "types": {"EIP712Domain": EIP712_DOMAIN_TYPE, **struct_types},
        "primaryType": primary_type_for(struct_types),
        "domain": domain,
        "message": values,
    }


class LocalAccountSigner:
    """Signs with a local private key and submits through the configured RPC.

    Deposit calldata is protocol specific, so ``deposit_builder`` produces the
    unsigned transaction (``to``, ``data``, ``value``) for given params.
    """

    def __init__(
        self,
        private_key: str,
        chain_id: int,
        *,
        deposit_builder: DepositBuilder,
        web3_factory: Callable[
            [int], AbstractAsyncContextManager[AsyncWeb3]
        ] = web3_from_chain_id,
        receipt_timeout_s: int = DEFAULT_RECEIPT_TIMEOUT_S,
    ):
        self.account = Account.from_key(private_key)
        self.address = self.account.address
        self.chain_id = chain_id
        self.deposit_builder = deposit_builder
        self._web3_factory = web3_factory
        self.receipt_timeout_s = receipt_timeout_s
        self.logger = logger.bind(component=self.__class__.__name__)

    async def sign_typed_data(
        self,
        domain: dict[str, Any],
        types: dict[str, list[dict[str, str]]],
        values: dict[str, Any],
    ) -> str:
        typed_data = build_typed_data(domain, types, values)
        signable = encode_typed_data(full_message=typed_data)
        signed = self.account.sign_message(signable)
        return "0x" + bytes(signed.signature).hex()

    async def send_approval_tx(self, token: TokenMetadata) -> dict[str, Any]:
        async with self._web3_factory(self.chain_id) as web3:
            contract = web3.eth.contract(
                address=to_checksum_address(token.address), abi=ERC20_ABI
            )
            data = contract.encode_abi(
                "approve", [to_checksum_address(PERMIT2_ADDRESS), MAX_UINT256]
            )
            tx = {
                "to": to_checksum_address(token.address),
                "from": self.address,
                "data": data,
                "chainId": self.chain_id,
            }
            return await self._send(web3, tx)

    async def send_deposit_tx(
        self, params: DepositParams, permit_signature: str | None = None
    ) -> dict[str, Any]:
        self.logger.info(
            f"Building {params.action_label} deposit in ({params.tick_lower}, {params.tick_upper})"
        )
        tx = dict(await self.deposit_builder(params, permit_signature))
        tx.setdefault("from", self.address)
        tx.setdefault("chainId", self.chain_id)
        async with self._web3_factory(self.chain_id) as web3:
            return await self._send(web3, tx)

    async def _send(
        self, web3: AsyncWeb3, transaction: dict[str, Any]
    ) -> dict[str, Any]:
        tx = dict(transaction)
        tx["nonce"] = await web3.eth.get_transaction_count(
            self.address, block_identifier="pending"
        )
        if "gas" not in tx:
            tx["gas"] = int(await web3.eth.estimate_gas(tx) * GAS_BUFFER_MULTIPLIER)
        if "gasPrice" not in tx and "maxFeePerGas" not in tx:
            tx["gasPrice"] = await web3.eth.gas_price

        self.logger.info(f"Broadcasting transaction to {tx.get('to')}")
        signed = self.account.sign_transaction(tx)
        raw_hash = await web3.eth.send_raw_transaction(signed.raw_transaction)
        txn_hash = "0x" + bytes(raw_hash).hex()
        receipt = await web3.eth.wait_for_transaction_receipt(
            txn_hash, timeout=self.receipt_timeout_s
        )
        if receipt.get("status") == 0:
            raise TransactionRevertedError(txn_hash, dict(receipt))
        self.logger.info(f"Transaction confirmed: {txn_hash}")
        return dict(receipt)
