"""Fee module for the route aggregator.

This module provides:
- Referral registry and accumulated fee pools (FeeStore)
- Fee accrual on the output asset of a batch
- Configurable fee scale and claim limits

Usage:
    from aggregator.fees import FeeStore, apply_fees

    store = FeeStore(static_fee=30)
    referral_id = store.add_referral(owner, fee=100)

    with store.transaction():
        applied = apply_fees(vault, token_out, referral_id, store)
"""

from aggregator.fees.accrual import AppliedFees, apply_fees
from aggregator.fees.config import DEFAULT_FEE_CONFIG, FeeConfig
from aggregator.fees.store import FeeStore, ReferralConfig

__all__ = [
    # Store
    "FeeStore",
    "ReferralConfig",
    # Accrual
    "AppliedFees",
    "apply_fees",
    # Config
    "FeeConfig",
    "DEFAULT_FEE_CONFIG",
]
