"""Fee accrual on the batch output."""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from aggregator.fees.store import FeeStore
from aggregator.safe_int import S
from aggregator.vault import Vault

logger = structlog.get_logger()


@dataclass(frozen=True)
class AppliedFees:
    """Fees withheld from the output asset of one batch.

    Attributes:
        token: Output asset the fees were taken in
        referral_id: Referral credited, or None when the static fee applied
        referral_fee: Amount credited to the referrer pool
        admin_fee: Amount credited to the protocol pool
    """

    token: str
    referral_id: int | None = None
    referral_fee: int = 0
    admin_fee: int = 0

    @property
    def total(self) -> int:
        return self.referral_fee + self.admin_fee


def apply_fees(vault: Vault, token_out: str, referral_id: int, store: FeeStore) -> AppliedFees:
    """Withhold referral / protocol fees from the vault's output balance.

    An active referral with a non-zero fee takes ``balance * fee / scale``
    and the protocol takes a matching amount. Without one, the static fee
    goes to the protocol alone. referral_id 0 means no referral.

    Returns:
        AppliedFees describing what was withheld
    """
    balance = S(vault.balance_of(token_out) if token_out in vault else 0)
    scale = store.config.total_fee

    referral = store.find_referral(referral_id) if referral_id > 0 else None
    if referral is not None and referral.active and referral.fee > 0:
        referral_fee = (balance * referral.fee // scale).value
        vault.withdraw(token_out, referral_fee * 2)
        store.accrue_referrer_fee(referral_id, token_out, referral_fee)
        store.accrue_admin_fee(token_out, referral_fee)
        applied = AppliedFees(
            token=token_out,
            referral_id=referral_id,
            referral_fee=referral_fee,
            admin_fee=referral_fee,
        )
    else:
        admin_fee = (balance * store.static_fee // scale).value
        vault.withdraw(token_out, admin_fee)
        store.accrue_admin_fee(token_out, admin_fee)
        applied = AppliedFees(token=token_out, admin_fee=admin_fee)

    logger.debug(
        "fees_applied",
        token=token_out,
        referral_id=applied.referral_id,
        referral_fee=applied.referral_fee,
        admin_fee=applied.admin_fee,
    )
    return applied


__all__ = ["AppliedFees", "apply_fees"]
