from contextlib import asynccontextmanager

from web3 import AsyncHTTPProvider, AsyncWeb3

from lp_positions.core.config import get_rpc_urls


def _get_rpcs_for_chain_id(chain_id: int) -> list:
    mapping = get_rpc_urls()
    rpcs = mapping.get(str(chain_id))
    if rpcs is None:
        rpcs = mapping.get(chain_id)  # allow int keys
    if rpcs is None:
        raise ValueError(f"No RPCs configured for chain ID {chain_id}")
    if isinstance(rpcs, str):
        return [rpcs]
    return rpcs


def get_web3_from_chain_id(chain_id: int) -> AsyncWeb3:
    rpc = _get_rpcs_for_chain_id(chain_id)[0]
    return AsyncWeb3(AsyncHTTPProvider(rpc))


@asynccontextmanager
async def web3_from_chain_id(chain_id: int):
    web3 = get_web3_from_chain_id(chain_id)
    try:
        yield web3
    finally:
        await web3.provider.disconnect()
