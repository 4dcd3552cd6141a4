"""Fee configuration for the aggregator."""

from dataclasses import dataclass

from aggregator.constants import TOTAL_FEE


@dataclass(frozen=True)
class FeeConfig:
    """Centralized configuration for fee accrual and claims.

    Attributes:
        total_fee: Basis-point scale of referral and static fees (10,000 = 100%)
        max_claim_assets: Most distinct assets paid out by one claim call.
            Assets beyond the limit stay claimable for the next call.
    """

    total_fee: int = TOTAL_FEE
    max_claim_assets: int = 100

    @property
    def max_referral_fee(self) -> int:
        """Referral fee ceiling. The protocol takes a matching cut, so half the scale."""
        return self.total_fee // 2


# Default configuration instance
DEFAULT_FEE_CONFIG = FeeConfig()
