from lp_positions.services.local_math import LocalLiquidityMathService
from lp_positions.services.local_signer import LocalAccountSigner
from lp_positions.services.permit2_approvals import Permit2ApprovalProvider

__all__ = [
    "LocalAccountSigner",
    "LocalLiquidityMathService",
    "Permit2ApprovalProvider",
]
