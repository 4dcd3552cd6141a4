"""Referral registry and accumulated fee pools.

Fees collected by batches accumulate here until claimed: one pool per
referral id and one protocol ("admin") pool. All state is in memory and
keyed the same way the on-chain storage is. Every read and write
takes the store's reentrant lock, and a transaction holds it until the
block finishes, so admin writes never interleave with a batch.
"""

from __future__ import annotations

import copy
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass

import structlog

from aggregator.errors import FeeExceedsCeiling, NotReferralOwner, ReferralNotFound
from aggregator.fees.config import DEFAULT_FEE_CONFIG, FeeConfig
from aggregator.models.instructions import Payment

logger = structlog.get_logger()


@dataclass
class ReferralConfig:
    """Referral record.

    Attributes:
        owner: Address allowed to claim the referral's fees
        fee: Referral fee in basis points
        active: Inactive referrals fall back to the static fee
    """

    owner: str
    fee: int
    active: bool = True


class FeeStore:
    """In-memory referral records and fee balances."""

    def __init__(self, config: FeeConfig | None = None, static_fee: int = 0):
        self.config = config or DEFAULT_FEE_CONFIG
        self._check_static_fee(static_fee)
        self._static_fee = static_fee
        self._referral_counter = 0
        self._referrals: dict[int, ReferralConfig] = {}
        self._referrer_balances: dict[int, dict[str, int]] = {}
        self._admin_balances: dict[str, int] = {}
        self._lock = threading.RLock()

    # --- Admin configuration ---

    def add_referral(self, owner: str, fee: int) -> int:
        """Register a referral and return its id (ids start at 1).

        Raises:
            FeeExceedsCeiling: If fee is above half the fee scale
        """
        self._check_referral_fee(fee)
        with self._lock:
            self._referral_counter += 1
            referral_id = self._referral_counter
            self._referrals[referral_id] = ReferralConfig(owner=owner, fee=fee)
        logger.info("referral_added", referral_id=referral_id, owner=owner, fee=fee)
        return referral_id

    def set_referral_fee(self, referral_id: int, fee: int) -> None:
        with self._lock:
            referral = self.get_referral(referral_id)
            self._check_referral_fee(fee)
            referral.fee = fee

    def set_referral_active(self, referral_id: int, active: bool) -> None:
        with self._lock:
            self.get_referral(referral_id).active = active

    def set_referral_owner(self, referral_id: int, owner: str) -> None:
        with self._lock:
            self.get_referral(referral_id).owner = owner

    def set_static_fee(self, fee: int) -> None:
        """Set the fee charged when no active referral applies.

        Raises:
            FeeExceedsCeiling: If fee is above 100%
        """
        self._check_static_fee(fee)
        with self._lock:
            self._static_fee = fee

    def _check_referral_fee(self, fee: int) -> None:
        if fee < 0:
            raise ValueError(f"Fee must be non-negative, got {fee}")
        if fee > self.config.max_referral_fee:
            raise FeeExceedsCeiling(fee, self.config.max_referral_fee)

    def _check_static_fee(self, fee: int) -> None:
        if fee < 0:
            raise ValueError(f"Fee must be non-negative, got {fee}")
        if fee > self.config.total_fee:
            raise FeeExceedsCeiling(fee, self.config.total_fee)

    # --- Lookups ---

    @property
    def static_fee(self) -> int:
        return self._static_fee

    def get_referral(self, referral_id: int) -> ReferralConfig:
        """Referral record for referral_id.

        Raises:
            ReferralNotFound: If no referral has this id
        """
        referral = self._referrals.get(referral_id)
        if referral is None:
            raise ReferralNotFound(referral_id)
        return referral

    def find_referral(self, referral_id: int) -> ReferralConfig | None:
        return self._referrals.get(referral_id)

    def referrer_balances(self, referral_id: int) -> dict[str, int]:
        with self._lock:
            return dict(self._referrer_balances.get(referral_id, {}))

    def admin_balances(self) -> dict[str, int]:
        with self._lock:
            return dict(self._admin_balances)

    # --- Accrual ---

    def accrue_referrer_fee(self, referral_id: int, token: str, amount: int) -> None:
        if amount <= 0:
            return
        with self._lock:
            pool = self._referrer_balances.setdefault(referral_id, {})
            pool[token] = pool.get(token, 0) + amount

    def accrue_admin_fee(self, token: str, amount: int) -> None:
        if amount <= 0:
            return
        with self._lock:
            self._admin_balances[token] = self._admin_balances.get(token, 0) + amount

    # --- Claims ---

    def claim_referral_fees(self, referral_id: int, caller: str) -> list[Payment]:
        """Pay out a referral's accumulated fees to its owner.

        Raises:
            ReferralNotFound: If no referral has this id
            NotReferralOwner: If caller is not the referral owner
        """
        with self._lock:
            referral = self.get_referral(referral_id)
            if caller != referral.owner:
                raise NotReferralOwner(referral_id, caller)
            payments = self._drain(self._referrer_balances.get(referral_id, {}))
        logger.info(
            "referral_fees_claimed",
            referral_id=referral_id,
            asset_count=len(payments),
        )
        return payments

    def claim_admin_fees(self) -> list[Payment]:
        with self._lock:
            payments = self._drain(self._admin_balances)
        logger.info("admin_fees_claimed", asset_count=len(payments))
        return payments

    def _drain(self, pool: dict[str, int]) -> list[Payment]:
        """Remove up to max_claim_assets entries from pool, oldest first."""
        tokens = list(pool)[: self.config.max_claim_assets]
        return [Payment(token, pool.pop(token)) for token in tokens]

    # --- Atomicity ---

    @contextmanager
    def transaction(self) -> Iterator[FeeStore]:
        """Hold the store lock for the block; restore all state if it raises."""
        with self._lock:
            snapshot = (
                self._static_fee,
                self._referral_counter,
                copy.deepcopy(self._referrals),
                copy.deepcopy(self._referrer_balances),
                dict(self._admin_balances),
            )
            try:
                yield self
            except BaseException:
                (
                    self._static_fee,
                    self._referral_counter,
                    self._referrals,
                    self._referrer_balances,
                    self._admin_balances,
                ) = snapshot
                raise


__all__ = ["FeeStore", "ReferralConfig"]
