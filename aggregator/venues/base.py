"""Interfaces for the external venues and the pool state they expose.

The engine never talks to a chain directly. Venue calls go through a
VenueAdapter and read-only pool storage (pair maps, reserves, fee
settings) through a PoolStateReader. Both are injected, so tests and
simulations can plug in in-memory implementations.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Protocol, runtime_checkable

from aggregator.constants import JEX_FEE_DENOM, ONEDEX_FEE_DENOM, XEXCHANGE_FEE_DENOM
from aggregator.models.instructions import Action, Payment


class PairFee(str, Enum):
    """OneDex pair fee tier.

    The total fee is charged on the input; the special part (owner plus
    real-yield fee) leaves the pool, the rest stays with the LPs.
    """

    PERCENT_04 = "percent_04"
    PERCENT_06 = "percent_06"
    PERCENT_10 = "percent_10"

    @property
    def total_fee(self) -> int:
        """Total fee in basis points."""
        return _ONEDEX_TOTAL_FEES[self]

    @property
    def special_fee(self) -> int:
        """Part of the fee that leaves the pool, in basis points."""
        return _ONEDEX_SPECIAL_FEES[self]


_ONEDEX_TOTAL_FEES = {
    PairFee.PERCENT_04: 40,
    PairFee.PERCENT_06: 60,
    PairFee.PERCENT_10: 100,
}

_ONEDEX_SPECIAL_FEES = {
    PairFee.PERCENT_04: 20,
    PairFee.PERCENT_06: 30,
    PairFee.PERCENT_10: 50,
}


@dataclass(frozen=True)
class PoolSnapshot:
    """Reserves and fee settings of a two-token CPMM pool.

    Attributes:
        first_token: Pool's first token
        second_token: Pool's second token
        reserve_first: Reserve of first_token
        reserve_second: Reserve of second_token
        total_fee: Total swap fee numerator
        special_fee: Part of the fee taken from the input that leaves the pool
        lp_fee: Part of an output-side fee that stays in the pool
        fee_denom: Fee denominator
    """

    first_token: str
    second_token: str
    reserve_first: int
    reserve_second: int
    total_fee: int
    special_fee: int = 0
    lp_fee: int = 0
    fee_denom: int = XEXCHANGE_FEE_DENOM

    @classmethod
    def xexchange(
        cls,
        first_token: str,
        second_token: str,
        reserve_first: int,
        reserve_second: int,
        total_fee_percent: int,
        special_fee_percent: int,
    ) -> PoolSnapshot:
        return cls(
            first_token,
            second_token,
            reserve_first,
            reserve_second,
            total_fee=total_fee_percent,
            special_fee=special_fee_percent,
            fee_denom=XEXCHANGE_FEE_DENOM,
        )

    @classmethod
    def onedex(
        cls,
        first_token: str,
        second_token: str,
        reserve_first: int,
        reserve_second: int,
        pair_fee: PairFee,
    ) -> PoolSnapshot:
        return cls(
            first_token,
            second_token,
            reserve_first,
            reserve_second,
            total_fee=pair_fee.total_fee,
            special_fee=pair_fee.special_fee,
            fee_denom=ONEDEX_FEE_DENOM,
        )

    @classmethod
    def jex(
        cls,
        first_token: str,
        second_token: str,
        reserve_first: int,
        reserve_second: int,
        lp_fees: int,
        platform_fees: int,
    ) -> PoolSnapshot:
        return cls(
            first_token,
            second_token,
            reserve_first,
            reserve_second,
            total_fee=lp_fees + platform_fees,
            lp_fee=lp_fees,
            fee_denom=JEX_FEE_DENOM,
        )


@runtime_checkable
class VenueAdapter(Protocol):
    """Synchronous calls into the external venues.

    Every method transfers ``payments`` to the venue at ``venue`` and
    returns every payment the venue sent back, in the order received.
    A venue that rejects a call raises (VenueError or its own error) and
    the whole batch aborts.
    """

    def swap(
        self,
        venue: str,
        action: Action,
        payments: Sequence[Payment],
        min_amount_out: int,
        path: Sequence[str] | None = None,
    ) -> list[Payment]:
        """Swap the payments; ``path`` is set for router-based venues."""
        ...

    def add_liquidity(
        self,
        venue: str,
        action: Action,
        payments: Sequence[Payment],
        min_amounts: Sequence[int],
    ) -> list[Payment]:
        ...

    def remove_liquidity(
        self,
        venue: str,
        action: Action,
        payments: Sequence[Payment],
        min_amounts: Sequence[int],
    ) -> list[Payment]:
        """Burn LP tokens; one minimum per expected output token."""
        ...

    def wrap(self, venue: str, payments: Sequence[Payment]) -> list[Payment]:
        ...

    def unwrap(self, venue: str, payments: Sequence[Payment]) -> list[Payment]:
        ...

    def stake(self, venue: str, action: Action, payments: Sequence[Payment]) -> list[Payment]:
        ...

    def supply(self, venue: str, action: Action, payments: Sequence[Payment]) -> list[Payment]:
        ...

    def redeem(self, venue: str, action: Action, payments: Sequence[Payment]) -> list[Payment]:
        ...


@runtime_checkable
class PoolStateReader(Protocol):
    """Read-only access to venue-hosted storage."""

    def get_pair_address(self, first_token: str, second_token: str) -> str:
        """xExchange pair for two tokens, in either order."""
        ...

    def get_hatom_market(self, h_token: str) -> str:
        """Hatom money market that issues ``h_token``."""
        ...

    def get_pool_snapshot(self, action: Action, pool_address: str) -> PoolSnapshot:
        """Reserves and fees of the pool a zappable add-liquidity targets."""
        ...


__all__ = ["PairFee", "PoolSnapshot", "PoolStateReader", "VenueAdapter"]
