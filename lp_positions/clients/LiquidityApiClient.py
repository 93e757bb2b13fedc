from __future__ import annotations

import time
from typing import Any

import httpx
from loguru import logger

from lp_positions.core.config import get_api_base_url, get_api_key, get_http_timeout_s
from lp_positions.core.errors import ServiceFailure, classify_service_error
from lp_positions.core.models import (
    ApprovalState,
    DependentAmountResult,
    LiquidityCalcRequest,
    PermitBatch,
    PermitDetails,
    PermitPayload,
    PoolState,
    TokenMetadata,
)
from lp_positions.core.utils.retry import retry_async

_RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code in _RETRYABLE_STATUS_CODES
    return False


def parse_calculation(data: dict[str, Any]) -> DependentAmountResult:
    return DependentAmountResult(
        liquidity=str(data["liquidity"]),
        final_tick_lower=int(data["finalTickLower"]),
        final_tick_upper=int(data["finalTickUpper"]),
        amount0=str(data["amount0"]),
        amount1=str(data["amount1"]),
        pool_tick_at_calc=data.get("currentPoolTick"),
        pool_price_at_calc=(
            str(data["currentPrice"]) if data.get("currentPrice") is not None else None
        ),
    )


def parse_pool_state(data: dict[str, Any]) -> PoolState:
    tick = data.get("currentPoolTick", data.get("tick"))
    return PoolState(
        tick=int(tick),
        sqrt_price_x96=data["sqrtPriceX96"],
        liquidity=data["liquidity"],
        price=data["currentPrice"],
    )


def parse_approvals(data: dict[str, Any]) -> ApprovalState:
    permit = None
    batch = data.get("permitBatchData")
    signature = data.get("signatureDetails")
    if batch and signature:
        permit = PermitPayload(
            domain=signature["domain"],
            types=signature["types"],
            primary_type=signature.get("primaryType", "PermitBatch"),
            batch=PermitBatch(
                details=[
                    PermitDetails(
                        token=d["token"],
                        amount=int(d["amount"]),
                        expiration=int(d["expiration"]),
                        nonce=int(d["nonce"]),
                    )
                    for d in batch["details"]
                ],
                spender=batch["spender"],
                sig_deadline=int(batch["sigDeadline"]),
            ),
        )
    return ApprovalState(
        needs_token0_approval=bool(data.get("needsToken0ERC20Approval")),
        needs_token1_approval=bool(data.get("needsToken1ERC20Approval")),
        needs_token0_permit=bool(data.get("needsToken0Permit")),
        needs_token1_permit=bool(data.get("needsToken1Permit")),
        permit=permit,
    )


class LiquidityApiClient:
    """Remote liquidity API: math service, pool state and approval state."""

    def __init__(self, chain_id: int, *, base_url: str | None = None):
        self.chain_id = chain_id
        self.base_url = (base_url or get_api_base_url()).rstrip("/")
        self.client = httpx.AsyncClient(timeout=httpx.Timeout(get_http_timeout_s()))
        self.headers = {
            "Content-Type": "application/json",
        }

    async def close(self) -> None:
        await self.client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        **kwargs: Any,
    ) -> dict[str, Any]:
        url = f"{self.base_url}/liquidity/{path}"
        if not self.headers.get("X-API-KEY") and (api_key := get_api_key()):
            self.headers["X-API-KEY"] = api_key

        async def _send() -> httpx.Response:
            logger.debug(f"Making {method} request to {url}")
            start_time = time.time()
            resp = await self.client.request(method, url, headers=self.headers, **kwargs)
            elapsed = time.time() - start_time
            if resp.status_code >= 400:
                logger.warning(
                    f"HTTP {resp.status_code} response for {method} {url} after {elapsed:.2f}s"
                )
            else:
                logger.debug(
                    f"HTTP {resp.status_code} response for {method} {url} after {elapsed:.2f}s"
                )
            resp.raise_for_status()
            return resp

        try:
            resp = await retry_async(_send, label=path, should_retry=_is_retryable)
            data = resp.json()
        except Exception as exc:  # noqa: BLE001
            raise classify_service_error(exc, service=path) from exc
        if not isinstance(data, dict):
            raise ServiceFailure(f"{path} returned a non-object payload")
        return data

    async def calculate(self, request: LiquidityCalcRequest) -> DependentAmountResult:
        data = await self._request(
            "POST",
            "calculate-liquidity-parameters",
            json={
                "token0Symbol": request.token0,
                "token1Symbol": request.token1,
                "inputAmount": request.input_amount,
                "inputTokenSymbol": request.input_token,
                "userTickLower": request.tick_lower,
                "userTickUpper": request.tick_upper,
                "chainId": request.chain_id,
            },
        )
        try:
            return parse_calculation(data)
        except (KeyError, TypeError, ValueError) as exc:
            raise ServiceFailure(
                f"Malformed calculation response: {exc}", original_error=exc
            ) from exc

    async def get_pool_state(self, pool_id: str) -> PoolState | None:
        data = await self._request("GET", "get-pool-state", params={"poolId": pool_id})
        if data.get("sqrtPriceX96") is None:
            return None
        try:
            return parse_pool_state(data)
        except (KeyError, TypeError, ValueError) as exc:
            raise ServiceFailure(
                f"Malformed pool state response: {exc}", original_error=exc
            ) from exc

    async def check_approvals(
        self,
        tokens: tuple[TokenMetadata, TokenMetadata],
        amounts: tuple[int, int],
        owner: str,
    ) -> ApprovalState:
        token0, token1 = tokens
        data = await self._request(
            "POST",
            "check-approvals",
            json={
                "userAddress": owner,
                "token0Symbol": token0.symbol,
                "token1Symbol": token1.symbol,
                "amount0": str(amounts[0]),
                "amount1": str(amounts[1]),
                "chainId": self.chain_id,
            },
        )
        try:
            return parse_approvals(data)
        except (KeyError, TypeError, ValueError) as exc:
            raise ServiceFailure(
                f"Malformed approvals response: {exc}", original_error=exc
            ) from exc
