from lp_positions.clients.LiquidityApiClient import LiquidityApiClient

__all__ = ["LiquidityApiClient"]
