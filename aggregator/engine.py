"""Sequential execution of decoded instructions against a vault.

For each instruction the engine:
1. withdraws the input payments from the vault (or takes the previous
   result verbatim for chained instructions),
2. resolves the venue address,
3. dispatches to the VenueAdapter method for the action's operation, or
   pre-balances the inputs first for zappable add-liquidity actions,
4. deposits every returned payment back into the vault.

Venue calls use a fixed internal minimum output; user slippage is only
enforced on the final output of the batch.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence

import structlog

from aggregator.config import DEFAULT_ENGINE_CONFIG, EngineConfig
from aggregator.errors import (
    PrevAmountAssetMismatch,
    PrevAmountUnavailable,
    VenueAddressRequired,
    VenueError,
    ZeroInputAmount,
)
from aggregator.fees.store import FeeStore
from aggregator.models.instructions import (
    Action,
    ActionCategory,
    ActionType,
    All,
    Fixed,
    InputArg,
    Instruction,
    OperationKind,
    Payment,
    Ppm,
    PrevAmount,
    VenueFamily,
)
from aggregator.vault import Vault
from aggregator.venues.base import PoolStateReader, VenueAdapter
from aggregator.zap import compute_optimal_pre_swap, fee_params_for

logger = structlog.get_logger()

# Venues whose calls take twice the internal minimum
_DOUBLE_MIN_VENUES = frozenset({VenueFamily.JEX_STABLE})

# Add-liquidity calls that take a single minimum (LP amount)
_SINGLE_MIN_ADD_VENUES = frozenset(
    {VenueFamily.ASHSWAP_V1, VenueFamily.ASHSWAP_V2, VenueFamily.JEX_STABLE}
)

# Swap action used for the pre-swap of each zappable add-liquidity
_PRE_SWAP_ACTIONS = {
    ActionType.XEXCHANGE_ADD_LIQUIDITY: ActionType.XEXCHANGE_SWAP,
    ActionType.ONEDEX_ADD_LIQUIDITY: ActionType.ONEDEX_SWAP,
    ActionType.JEX_ADD_LIQUIDITY: ActionType.JEX_SWAP,
}


class ExecutionEngine:
    """Executes instructions one at a time against a batch vault.

    Attributes:
        venues: Adapter performing the venue calls
        pool_state: Reader for pair maps, money markets and pool reserves
        fee_store: Receives dust left over by pre-balanced liquidity adds
        config: Engine configuration
    """

    def __init__(
        self,
        venues: VenueAdapter,
        pool_state: PoolStateReader,
        fee_store: FeeStore,
        config: EngineConfig | None = None,
    ):
        self.venues = venues
        self.pool_state = pool_state
        self.fee_store = fee_store
        self.config = config or DEFAULT_ENGINE_CONFIG

        self._dispatchers: dict[
            OperationKind, Callable[[Instruction, str, list[Payment]], list[Payment]]
        ] = {
            OperationKind.SWAP: self._swap,
            OperationKind.ADD_LIQUIDITY: self._add_liquidity,
            OperationKind.REMOVE_LIQUIDITY: self._remove_liquidity,
            OperationKind.WRAP: lambda _, venue, p: self.venues.wrap(venue, p),
            OperationKind.UNWRAP: lambda _, venue, p: self.venues.unwrap(venue, p),
            OperationKind.STAKE: lambda i, venue, p: self.venues.stake(venue, i.action, p),
            OperationKind.SUPPLY: lambda i, venue, p: self.venues.supply(venue, i.action, p),
            OperationKind.REDEEM: lambda i, venue, p: self.venues.redeem(venue, i.action, p),
        }

    def execute(self, vault: Vault, instruction: Instruction, token_out: str) -> list[Payment]:
        """Execute one instruction.

        Args:
            vault: Batch vault; inputs are withdrawn from it and outputs
                deposited into it
            instruction: Decoded instruction
            token_out: Output asset of the batch

        Returns:
            Payments returned by the venue

        Raises:
            AggregatorError: Any resolution or venue failure; the batch aborts
        """
        payments = self.resolve_payments(vault, instruction)
        venue = self.resolve_venue(instruction, payments)
        action_type = instruction.action.type

        if action_type.is_zappable:
            outputs = self._pre_balance_and_add_liquidity(
                vault, instruction, venue, payments, token_out
            )
        else:
            outputs = self._dispatchers[action_type.operation](instruction, venue, payments)
            self._deposit_outputs(vault, outputs)

        logger.debug(
            "instruction_executed",
            action=action_type.name,
            venue=venue,
            inputs=[(p.token, p.amount) for p in payments],
            outputs=[(p.token, p.amount) for p in outputs],
        )
        return outputs

    # --- Inputs ---

    def resolve_payments(self, vault: Vault, instruction: Instruction) -> list[Payment]:
        """Withdraw the instruction's inputs from the vault.

        Raises:
            PrevAmountUnavailable: Chained input without a previous result
            PrevAmountAssetMismatch: PrevAmount for a different asset
            ZeroInputAmount: A resolved amount is zero
            InsufficientBalance: The vault cannot cover an input
        """
        if instruction.inputs is None:
            prev = vault.prev_result
            if prev is None:
                raise PrevAmountUnavailable()
            if prev.amount == 0:
                raise ZeroInputAmount(prev.token)
            vault.withdraw(prev.token, prev.amount)
            return [Payment(prev.token, prev.amount)]

        return [self._withdraw_input(vault, arg) for arg in instruction.inputs]

    def _withdraw_input(self, vault: Vault, arg: InputArg) -> Payment:
        mode = arg.mode
        if isinstance(mode, Fixed):
            amount = vault.withdraw(arg.token, mode.amount)
        elif isinstance(mode, Ppm):
            amount = vault.withdraw_ppm(arg.token, mode.ppm)
        elif isinstance(mode, All):
            amount = vault.withdraw_all(arg.token)
        elif isinstance(mode, PrevAmount):
            prev = vault.prev_result
            if prev is None:
                raise PrevAmountUnavailable()
            if prev.token != arg.token:
                raise PrevAmountAssetMismatch(prev.token, arg.token)
            amount = vault.withdraw(arg.token, prev.amount)
        else:
            raise TypeError(f"Unknown amount mode: {mode!r}")

        if amount == 0:
            raise ZeroInputAmount(arg.token)
        return Payment(arg.token, amount)

    # --- Venue resolution ---

    def resolve_venue(self, instruction: Instruction, payments: Sequence[Payment]) -> str:
        """Address of the venue the instruction calls.

        Raises:
            VenueAddressRequired: Explicit-address action without an address
        """
        action = instruction.action
        action_type = action.type
        venue = action_type.venue

        if action_type is ActionType.XEXCHANGE_SWAP:
            return self.pool_state.get_pair_address(_output_token(action), payments[0].token)
        if action_type is ActionType.XEXCHANGE_ADD_LIQUIDITY:
            if len(payments) < 2:
                raise VenueError("xExchange pair lookup needs both pool tokens as inputs")
            return self.pool_state.get_pair_address(payments[0].token, payments[1].token)
        if venue is VenueFamily.ONEDEX:
            return self.config.onedex_router
        if venue is VenueFamily.WRAPPER:
            return self.config.wrapper
        if action_type is ActionType.XOXNO_LIQUID_STAKING:
            return self.config.xegld_staking
        if action_type is ActionType.LXOXNO_LIQUID_STAKING:
            return self.config.lxoxno_staking
        if action_type is ActionType.HATOM_LIQUID_STAKING:
            return self.config.hatom_staking
        if action_type is ActionType.HATOM_REDEEM:
            return self.pool_state.get_hatom_market(payments[0].token)
        if action_type is ActionType.HATOM_SUPPLY:
            return self.pool_state.get_hatom_market(_output_token(action))

        if instruction.address is None:
            raise VenueAddressRequired(action.name)
        return instruction.address

    # --- Direct dispatch ---

    def _internal_min(self, action: Action) -> int:
        if action.type.venue in _DOUBLE_MIN_VENUES:
            return self.config.min_internal_output * 2
        return self.config.min_internal_output

    def _swap(self, instruction: Instruction, venue: str, payments: list[Payment]) -> list[Payment]:
        action = instruction.action
        path = None
        if action.type is ActionType.ONEDEX_SWAP:
            path = [p.token for p in payments] + [_output_token(action)]
        return self.venues.swap(venue, action, payments, self._internal_min(action), path=path)

    def _add_liquidity(
        self, instruction: Instruction, venue: str, payments: list[Payment]
    ) -> list[Payment]:
        action = instruction.action
        minimum = self._internal_min(action)
        if action.type.venue in _SINGLE_MIN_ADD_VENUES:
            min_amounts = [minimum]
        else:
            min_amounts = [minimum, minimum]
        return self.venues.add_liquidity(venue, action, payments, min_amounts)

    def _remove_liquidity(
        self, instruction: Instruction, venue: str, payments: list[Payment]
    ) -> list[Payment]:
        action = instruction.action
        minimum = self._internal_min(action)
        # Stable pools name their output count; CPMM pools always return two
        if action.type.category is ActionCategory.OUTPUT_COUNT:
            count = action.output_count or 0
        else:
            count = 2
        return self.venues.remove_liquidity(venue, action, payments, [minimum] * count)

    @staticmethod
    def _deposit_outputs(vault: Vault, outputs: list[Payment]) -> None:
        for payment in outputs:
            if payment.amount > 0:
                vault.deposit(payment.token, payment.amount)
        if len(outputs) == 1:
            vault.prev_result = outputs[0]

    # --- Pre-balanced add liquidity ---

    def _pre_balance_and_add_liquidity(
        self,
        vault: Vault,
        instruction: Instruction,
        venue: str,
        payments: list[Payment],
        token_out: str,
    ) -> list[Payment]:
        """Swap the excess side, then add liquidity once.

        LP tokens equal to token_out go to the vault; refunds and any other
        returned asset are credited to the protocol fee pool.
        """
        action = instruction.action
        snapshot = self.pool_state.get_pool_snapshot(action, venue)

        balance_first = 0
        balance_second = 0
        for payment in payments:
            if payment.token == snapshot.first_token:
                balance_first += payment.amount
            elif payment.token == snapshot.second_token:
                balance_second += payment.amount
            else:
                raise VenueError(
                    f"{payment.token} is not a token of pool "
                    f"{snapshot.first_token}/{snapshot.second_token}"
                )

        fee_num, fee_denom, fee_mode = fee_params_for(action.type, snapshot)
        pre_swap = compute_optimal_pre_swap(
            balance_first,
            balance_second,
            snapshot.reserve_first,
            snapshot.reserve_second,
            fee_num,
            fee_denom,
            fee_mode,
        )

        if not pre_swap.is_noop:
            if pre_swap.swap_from_first:
                received = self._pre_swap(
                    action, venue, snapshot.first_token, snapshot.second_token, pre_swap.amount
                )
                balance_first -= pre_swap.amount
                balance_second += received
            else:
                received = self._pre_swap(
                    action, venue, snapshot.second_token, snapshot.first_token, pre_swap.amount
                )
                balance_second -= pre_swap.amount
                balance_first += received

            logger.debug(
                "zap_pre_swap",
                action=action.name,
                swap_from_first=pre_swap.swap_from_first,
                swap_amount=pre_swap.amount,
                received=received,
            )

        lp_payments = [
            Payment(token, amount)
            for token, amount in (
                (snapshot.first_token, balance_first),
                (snapshot.second_token, balance_second),
            )
            if amount > 0
        ]
        minimum = self._internal_min(action)
        outputs = self.venues.add_liquidity(venue, action, lp_payments, [minimum, minimum])

        for payment in outputs:
            if payment.amount == 0:
                continue
            if payment.token == token_out:
                vault.deposit(payment.token, payment.amount)
            else:
                self.fee_store.accrue_admin_fee(payment.token, payment.amount)
        return outputs

    def _pre_swap(
        self, action: Action, venue: str, token_in: str, token_other: str, amount: int
    ) -> int:
        swap_type = _PRE_SWAP_ACTIONS[action.type]
        swap_action = Action(swap_type, output_token=token_other)
        if swap_type is ActionType.JEX_SWAP:
            swap_action = Action(swap_type)

        path = [token_in, token_other] if swap_type is ActionType.ONEDEX_SWAP else None
        outputs = self.venues.swap(
            venue,
            swap_action,
            [Payment(token_in, amount)],
            self._internal_min(action),
            path=path,
        )
        if len(outputs) != 1 or outputs[0].token != token_other:
            raise VenueError(f"Pre-swap into {token_other} returned {outputs!r}")
        return outputs[0].amount


def _output_token(action: Action) -> str:
    if action.output_token is None:
        raise VenueError(f"{action.name} needs an output token")
    return action.output_token


__all__ = ["ExecutionEngine"]
