"""Pre-swap solver for two-sided liquidity provision.

Before adding liquidity to a constant-product pool, the engine swaps part of
the over-represented token into the other one so that the pool's quote()
accepts (almost) everything. The venue's add-liquidity computes

    quote(a, reserve_a, reserve_b) = a * reserve_b // reserve_a

with truncating division and refunds the side it cannot use. The solver
simulates the pre-swap with the pool's exact integer math, including the
part of the fee that leaves the pool, and binary-searches the swap amount
that leaves the least refunded dust.

Two fee models are covered:
- OnInput (xExchange, OneDex): the fee is charged on the input, the
  special fee leaves the pool and the rest of the input joins the reserve.
- OnOutput (Jex): the fee is charged on the raw output, the LP part of it
  stays in the pool.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from aggregator.models.instructions import ActionType
from aggregator.safe_int import S, SafeInt
from aggregator.venues.base import PoolSnapshot

logger = structlog.get_logger()

# Upper bound on search iterations; enough for 128-bit amounts
MAX_BINARY_SEARCH_ITERATIONS = 128


@dataclass(frozen=True)
class OnInput:
    """Fee taken from the input; special_fee_num of it leaves the pool."""

    special_fee_num: int = 0


@dataclass(frozen=True)
class OnOutput:
    """Fee taken from the raw output; lp_fee_num of it stays in the pool."""

    lp_fee_num: int = 0


FeeMode = OnInput | OnOutput


@dataclass(frozen=True)
class SwapSimulation:
    """Outcome of a simulated CPMM swap.

    Attributes:
        output: Amount the swapper receives
        amount_out_leaving: Amount that leaves the output reserve
        amount_in_to_reserves: Amount that joins the input reserve
    """

    output: int
    amount_out_leaving: int
    amount_in_to_reserves: int

    @classmethod
    def empty(cls) -> SwapSimulation:
        return cls(0, 0, 0)


@dataclass(frozen=True)
class PreSwap:
    """Swap to perform before adding liquidity.

    Attributes:
        swap_from_first: True to swap first token into second, else the reverse
        amount: Amount of the input side to swap; 0 means no swap
    """

    swap_from_first: bool
    amount: int

    @property
    def is_noop(self) -> bool:
        return self.amount == 0

    @classmethod
    def none(cls) -> PreSwap:
        return cls(swap_from_first=True, amount=0)


def simulate_swap_output(
    amount_in: int,
    reserve_in: int,
    reserve_out: int,
    fee_num: int,
    fee_denom: int,
    mode: FeeMode,
) -> SwapSimulation:
    """Simulate a CPMM swap with the venue's integer math.

    OnInput:
        output = in * (d - f) * r_out / (r_in * d + in * (d - f))
        reserve_in grows by in - in * special / d

    OnOutput:
        raw = in * r_out / (r_in + in)
        output = raw * (d - f) / d
        reserve_out shrinks by raw * (d - lp) / d

    Args:
        amount_in: Amount swapped in
        reserve_in: Reserve of the input token
        reserve_out: Reserve of the output token
        fee_num: Total fee numerator
        fee_denom: Fee denominator
        mode: Fee model of the venue

    Returns:
        SwapSimulation; all zero for a zero amount, an empty reserve or a
        fee above 100%
    """
    if amount_in == 0 or reserve_in == 0 or reserve_out == 0 or fee_num > fee_denom:
        return SwapSimulation.empty()

    fee_factor = S(fee_denom) - S(fee_num)
    amount = S(amount_in)

    if isinstance(mode, OnInput):
        numerator = amount * fee_factor * S(reserve_out)
        denominator = S(reserve_in) * S(fee_denom) + amount * fee_factor
        output = numerator // denominator
        special_fee = amount * S(mode.special_fee_num) // S(fee_denom)
        return SwapSimulation(
            output=output.value,
            amount_out_leaving=output.value,
            amount_in_to_reserves=(amount - special_fee).value,
        )

    raw_output = amount * S(reserve_out) // (S(reserve_in) + amount)
    output = raw_output * fee_factor // S(fee_denom)
    leaving = raw_output * (S(fee_denom) - S(mode.lp_fee_num)) // S(fee_denom)
    return SwapSimulation(
        output=output.value,
        amount_out_leaving=leaving.value,
        amount_in_to_reserves=amount_in,
    )


def dust_after_swap(
    swap_amount: int,
    swap_balance: int,
    other_balance: int,
    reserve_in: int,
    reserve_out: int,
    simulation: SwapSimulation,
) -> tuple[int, int, int, int, int]:
    """Dust the venue's quote() would refund after the simulated pre-swap.

    The venue uses all of one side and quotes the other: if
    quote(swap side) fits in the other side, the excess of the other side
    is refunded, otherwise the excess of the swap side is.

    Returns:
        (dust, final_swap_balance, final_other_balance, new_reserve_in,
        new_reserve_out)
    """
    final_swap = S(swap_balance) - S(swap_amount)
    final_other = S(other_balance) + S(simulation.output)
    new_reserve_in = S(reserve_in) + S(simulation.amount_in_to_reserves)
    new_reserve_out = S(reserve_out) - S(simulation.amount_out_leaving)

    quote_other = final_swap * new_reserve_out // new_reserve_in
    if quote_other <= final_other:
        dust = final_other - quote_other
    else:
        quote_swap = final_other * new_reserve_in // new_reserve_out
        dust = final_swap - quote_swap

    return (
        dust.value,
        final_swap.value,
        final_other.value,
        new_reserve_in.value,
        new_reserve_out.value,
    )


def _binary_search_pre_swap(
    swap_balance: int,
    other_balance: int,
    reserve_in: int,
    reserve_out: int,
    fee_num: int,
    fee_denom: int,
    mode: FeeMode,
) -> int:
    low: SafeInt = S.zero()
    high = S(swap_balance)
    best_swap = 0
    best_dust = swap_balance

    for _ in range(MAX_BINARY_SEARCH_ITERATIONS):
        if high <= low + 1:
            break

        mid = low + (high - low) // 2
        simulation = simulate_swap_output(
            mid.value, reserve_in, reserve_out, fee_num, fee_denom, mode
        )
        if simulation.output == 0:
            low = mid
            continue

        dust, final_swap, final_other, new_reserve_in, new_reserve_out = dust_after_swap(
            mid.value, swap_balance, other_balance, reserve_in, reserve_out, simulation
        )
        if dust < best_dust:
            best_dust = dust
            best_swap = mid.value

        # Compare final_swap / new_reserve_in against final_other / new_reserve_out
        product_swap = S(final_swap) * S(new_reserve_out)
        product_other = S(final_other) * S(new_reserve_in)
        if product_swap > product_other:
            low = mid
        elif product_swap < product_other:
            high = mid
        else:
            return mid.value

    return best_swap


def compute_optimal_pre_swap(
    balance_first: int,
    balance_second: int,
    reserve_first: int,
    reserve_second: int,
    fee_num: int,
    fee_denom: int,
    mode: FeeMode,
) -> PreSwap:
    """Compute the pre-swap that minimizes add-liquidity dust.

    The side whose balance-to-reserve ratio is higher is the one swapped.
    A single-sided holding is solved like any other imbalance.

    Args:
        balance_first: Held amount of the pool's first token
        balance_second: Held amount of the pool's second token
        reserve_first: Pool reserve of the first token
        reserve_second: Pool reserve of the second token
        fee_num: Total fee numerator
        fee_denom: Fee denominator
        mode: Fee model of the venue

    Returns:
        PreSwap; amount 0 when nothing should be swapped
    """
    if (
        (balance_first == 0 and balance_second == 0)
        or reserve_first == 0
        or reserve_second == 0
        or fee_num > fee_denom
    ):
        return PreSwap.none()

    # balance_first / reserve_first vs balance_second / reserve_second
    product_first = S(balance_first) * S(reserve_second)
    product_second = S(balance_second) * S(reserve_first)

    # No tolerance band: truncation in quote() leaves dust even when the
    # ratios are nearly equal.
    if product_first > product_second:
        amount = _binary_search_pre_swap(
            balance_first, balance_second, reserve_first, reserve_second, fee_num, fee_denom, mode
        )
        return PreSwap(swap_from_first=True, amount=amount)
    if product_second > product_first:
        amount = _binary_search_pre_swap(
            balance_second, balance_first, reserve_second, reserve_first, fee_num, fee_denom, mode
        )
        return PreSwap(swap_from_first=False, amount=amount)
    return PreSwap.none()


def fee_params_for(action: ActionType, snapshot: PoolSnapshot) -> tuple[int, int, FeeMode]:
    """Fee numerator, denominator and fee model for a zappable pool.

    Raises:
        ValueError: If the action is not a zappable add-liquidity
    """
    if action in (ActionType.XEXCHANGE_ADD_LIQUIDITY, ActionType.ONEDEX_ADD_LIQUIDITY):
        return snapshot.total_fee, snapshot.fee_denom, OnInput(snapshot.special_fee)
    if action is ActionType.JEX_ADD_LIQUIDITY:
        return snapshot.total_fee, snapshot.fee_denom, OnOutput(snapshot.lp_fee)
    raise ValueError(f"{action.name} has no pre-swap fee model")


__all__ = [
    "MAX_BINARY_SEARCH_ITERATIONS",
    "FeeMode",
    "OnInput",
    "OnOutput",
    "PreSwap",
    "SwapSimulation",
    "compute_optimal_pre_swap",
    "dust_after_swap",
    "fee_params_for",
    "simulate_swap_output",
]
