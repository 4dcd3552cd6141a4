"""Instruction model: actions, amount modes, inputs and payments.

An instruction is the atomic unit of execution: which venue operation to
perform, which vault balances feed it, and optionally which venue address
to call.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum, IntEnum


class VenueFamily(str, Enum):
    """External venue an action talks to."""

    XEXCHANGE = "xexchange"
    ASHSWAP_V1 = "ashswap_v1"
    ASHSWAP_V2 = "ashswap_v2"
    ONEDEX = "onedex"
    JEX = "jex"
    JEX_STABLE = "jex_stable"
    WRAPPER = "wrapper"
    XOXNO = "xoxno"
    LXOXNO = "lxoxno"
    HATOM = "hatom"


class OperationKind(str, Enum):
    """Venue operation; selects the VenueAdapter method."""

    SWAP = "swap"
    ADD_LIQUIDITY = "add_liquidity"
    REMOVE_LIQUIDITY = "remove_liquidity"
    WRAP = "wrap"
    UNWRAP = "unwrap"
    STAKE = "stake"
    SUPPLY = "supply"
    REDEEM = "redeem"


class ActionCategory(str, Enum):
    """Byte layout of a compact instruction."""

    OUTPUT_TOKEN = "output_token"  # [action, out_tok, in_tok, in_mode, -, addr]
    MULTI_INPUT = "multi_input"  # [action, tok1, tok2, tok3, shared_mode, addr]
    OUTPUT_COUNT = "output_count"  # [action, count, in_tok, in_mode, -, addr]
    PAIR_ID = "pair_id"  # [action, tok1, tok2, shared_mode, -, pair_id]
    DUAL_INPUT = "dual_input"  # [action, tok1, mode1, tok2, mode2, addr]


class ActionType(IntEnum):
    """Supported venue operations. Values are the compact action byte."""

    # xExchange (CPMM)
    XEXCHANGE_SWAP = 0
    XEXCHANGE_ADD_LIQUIDITY = 1
    XEXCHANGE_REMOVE_LIQUIDITY = 2
    # AshSwap V1 (StableSwap)
    ASHSWAP_POOL_SWAP = 3
    ASHSWAP_POOL_ADD_LIQUIDITY = 4
    ASHSWAP_POOL_REMOVE_LIQUIDITY = 5
    # AshSwap V2 (CurveCrypto)
    ASHSWAP_V2_SWAP = 6
    ASHSWAP_V2_ADD_LIQUIDITY = 7
    ASHSWAP_V2_REMOVE_LIQUIDITY = 8
    # OneDex
    ONEDEX_SWAP = 9
    ONEDEX_ADD_LIQUIDITY = 10
    ONEDEX_REMOVE_LIQUIDITY = 11
    # Jex CPMM
    JEX_SWAP = 12
    JEX_ADD_LIQUIDITY = 13
    JEX_REMOVE_LIQUIDITY = 14
    # Jex stable
    JEX_STABLE_SWAP = 15
    JEX_STABLE_ADD_LIQUIDITY = 16
    JEX_STABLE_REMOVE_LIQUIDITY = 17
    # Native coin wrapping
    WRAPPING = 18
    UNWRAPPING = 19
    # Liquid staking
    XOXNO_LIQUID_STAKING = 20
    LXOXNO_LIQUID_STAKING = 21
    HATOM_LIQUID_STAKING = 22
    # Hatom lending
    HATOM_REDEEM = 23
    HATOM_SUPPLY = 24

    @property
    def category(self) -> ActionCategory:
        """Compact byte layout used by this action."""
        if self in _OUTPUT_TOKEN_ACTIONS:
            return ActionCategory.OUTPUT_TOKEN
        if self in _MULTI_INPUT_ACTIONS:
            return ActionCategory.MULTI_INPUT
        if self in _OUTPUT_COUNT_ACTIONS:
            return ActionCategory.OUTPUT_COUNT
        if self is ActionType.ONEDEX_ADD_LIQUIDITY:
            return ActionCategory.PAIR_ID
        return ActionCategory.DUAL_INPUT

    @property
    def operation(self) -> OperationKind:
        return _OPERATIONS[self]

    @property
    def venue(self) -> VenueFamily:
        return _VENUES[self]

    @property
    def is_zappable(self) -> bool:
        """Two-sided CPMM add liquidity that is pre-balanced before the call."""
        return self in _ZAPPABLE_ACTIONS

    @property
    def auto_resolves_venue(self) -> bool:
        """True when the venue address never comes from the instruction."""
        return self in _AUTO_VENUE_ACTIONS


_OUTPUT_TOKEN_ACTIONS = frozenset(
    {
        ActionType.XEXCHANGE_SWAP,
        ActionType.ASHSWAP_POOL_SWAP,
        ActionType.ONEDEX_SWAP,
        ActionType.JEX_STABLE_SWAP,
        ActionType.HATOM_SUPPLY,
    }
)

_MULTI_INPUT_ACTIONS = frozenset(
    {
        ActionType.ASHSWAP_POOL_ADD_LIQUIDITY,
        ActionType.ASHSWAP_V2_ADD_LIQUIDITY,
        ActionType.JEX_STABLE_ADD_LIQUIDITY,
    }
)

_OUTPUT_COUNT_ACTIONS = frozenset(
    {
        ActionType.ASHSWAP_POOL_REMOVE_LIQUIDITY,
        ActionType.ASHSWAP_V2_REMOVE_LIQUIDITY,
        ActionType.JEX_STABLE_REMOVE_LIQUIDITY,
    }
)

_ZAPPABLE_ACTIONS = frozenset(
    {
        ActionType.XEXCHANGE_ADD_LIQUIDITY,
        ActionType.ONEDEX_ADD_LIQUIDITY,
        ActionType.JEX_ADD_LIQUIDITY,
    }
)

_AUTO_VENUE_ACTIONS = frozenset(
    {
        ActionType.XEXCHANGE_SWAP,
        ActionType.XEXCHANGE_ADD_LIQUIDITY,
        ActionType.ONEDEX_SWAP,
        ActionType.ONEDEX_ADD_LIQUIDITY,
        ActionType.ONEDEX_REMOVE_LIQUIDITY,
        ActionType.WRAPPING,
        ActionType.UNWRAPPING,
        ActionType.XOXNO_LIQUID_STAKING,
        ActionType.LXOXNO_LIQUID_STAKING,
        ActionType.HATOM_LIQUID_STAKING,
        ActionType.HATOM_REDEEM,
        ActionType.HATOM_SUPPLY,
    }
)

_SWAP = OperationKind.SWAP
_ADD = OperationKind.ADD_LIQUIDITY
_REMOVE = OperationKind.REMOVE_LIQUIDITY

_OPERATIONS: dict[ActionType, OperationKind] = {
    ActionType.XEXCHANGE_SWAP: _SWAP,
    ActionType.XEXCHANGE_ADD_LIQUIDITY: _ADD,
    ActionType.XEXCHANGE_REMOVE_LIQUIDITY: _REMOVE,
    ActionType.ASHSWAP_POOL_SWAP: _SWAP,
    ActionType.ASHSWAP_POOL_ADD_LIQUIDITY: _ADD,
    ActionType.ASHSWAP_POOL_REMOVE_LIQUIDITY: _REMOVE,
    ActionType.ASHSWAP_V2_SWAP: _SWAP,
    ActionType.ASHSWAP_V2_ADD_LIQUIDITY: _ADD,
    ActionType.ASHSWAP_V2_REMOVE_LIQUIDITY: _REMOVE,
    ActionType.ONEDEX_SWAP: _SWAP,
    ActionType.ONEDEX_ADD_LIQUIDITY: _ADD,
    ActionType.ONEDEX_REMOVE_LIQUIDITY: _REMOVE,
    ActionType.JEX_SWAP: _SWAP,
    ActionType.JEX_ADD_LIQUIDITY: _ADD,
    ActionType.JEX_REMOVE_LIQUIDITY: _REMOVE,
    ActionType.JEX_STABLE_SWAP: _SWAP,
    ActionType.JEX_STABLE_ADD_LIQUIDITY: _ADD,
    ActionType.JEX_STABLE_REMOVE_LIQUIDITY: _REMOVE,
    ActionType.WRAPPING: OperationKind.WRAP,
    ActionType.UNWRAPPING: OperationKind.UNWRAP,
    ActionType.XOXNO_LIQUID_STAKING: OperationKind.STAKE,
    ActionType.LXOXNO_LIQUID_STAKING: OperationKind.STAKE,
    ActionType.HATOM_LIQUID_STAKING: OperationKind.STAKE,
    ActionType.HATOM_REDEEM: OperationKind.REDEEM,
    ActionType.HATOM_SUPPLY: OperationKind.SUPPLY,
}

_VENUES: dict[ActionType, VenueFamily] = {
    ActionType.XEXCHANGE_SWAP: VenueFamily.XEXCHANGE,
    ActionType.XEXCHANGE_ADD_LIQUIDITY: VenueFamily.XEXCHANGE,
    ActionType.XEXCHANGE_REMOVE_LIQUIDITY: VenueFamily.XEXCHANGE,
    ActionType.ASHSWAP_POOL_SWAP: VenueFamily.ASHSWAP_V1,
    ActionType.ASHSWAP_POOL_ADD_LIQUIDITY: VenueFamily.ASHSWAP_V1,
    ActionType.ASHSWAP_POOL_REMOVE_LIQUIDITY: VenueFamily.ASHSWAP_V1,
    ActionType.ASHSWAP_V2_SWAP: VenueFamily.ASHSWAP_V2,
    ActionType.ASHSWAP_V2_ADD_LIQUIDITY: VenueFamily.ASHSWAP_V2,
    ActionType.ASHSWAP_V2_REMOVE_LIQUIDITY: VenueFamily.ASHSWAP_V2,
    ActionType.ONEDEX_SWAP: VenueFamily.ONEDEX,
    ActionType.ONEDEX_ADD_LIQUIDITY: VenueFamily.ONEDEX,
    ActionType.ONEDEX_REMOVE_LIQUIDITY: VenueFamily.ONEDEX,
    ActionType.JEX_SWAP: VenueFamily.JEX,
    ActionType.JEX_ADD_LIQUIDITY: VenueFamily.JEX,
    ActionType.JEX_REMOVE_LIQUIDITY: VenueFamily.JEX,
    ActionType.JEX_STABLE_SWAP: VenueFamily.JEX_STABLE,
    ActionType.JEX_STABLE_ADD_LIQUIDITY: VenueFamily.JEX_STABLE,
    ActionType.JEX_STABLE_REMOVE_LIQUIDITY: VenueFamily.JEX_STABLE,
    ActionType.WRAPPING: VenueFamily.WRAPPER,
    ActionType.UNWRAPPING: VenueFamily.WRAPPER,
    ActionType.XOXNO_LIQUID_STAKING: VenueFamily.XOXNO,
    ActionType.LXOXNO_LIQUID_STAKING: VenueFamily.LXOXNO,
    ActionType.HATOM_LIQUID_STAKING: VenueFamily.HATOM,
    ActionType.HATOM_REDEEM: VenueFamily.HATOM,
    ActionType.HATOM_SUPPLY: VenueFamily.HATOM,
}


@dataclass(frozen=True)
class Action:
    """An action type together with its embedded parameter.

    Exactly one parameter is set, depending on the action's category:
    output_token for swaps and Hatom supply, output_count for stable
    remove liquidity, pair_id for OneDex add liquidity.
    """

    type: ActionType
    output_token: str | None = None
    output_count: int | None = None
    pair_id: int | None = None

    @property
    def name(self) -> str:
        return self.type.name


# --- Amount modes ---


@dataclass(frozen=True)
class Fixed:
    """Exact quantity."""

    amount: int


@dataclass(frozen=True)
class Ppm:
    """Parts per million of the current vault balance (1_000_000 = 100%)."""

    ppm: int


@dataclass(frozen=True)
class All:
    """Entire current vault balance of the token."""


@dataclass(frozen=True)
class PrevAmount:
    """Asset and amount of the previous instruction's single output."""


AmountMode = Fixed | Ppm | All | PrevAmount


@dataclass(frozen=True)
class InputArg:
    """Input asset and how much of it to withdraw."""

    token: str
    mode: AmountMode


@dataclass(frozen=True)
class Instruction:
    """The atomic unit of execution.

    Attributes:
        action: Which venue operation to perform
        inputs: Inputs to withdraw from the vault. None chains the previous
            result verbatim.
        address: Venue address. None auto-resolves from the action.
    """

    action: Action
    inputs: tuple[InputArg, ...] | None = None
    address: str | None = None


@dataclass(frozen=True)
class Payment:
    """A transfer of a token amount (deposit, venue input or venue output)."""

    token: str
    amount: int
    nonce: int = 0


__all__ = [
    "Action",
    "ActionCategory",
    "ActionType",
    "All",
    "AmountMode",
    "Fixed",
    "InputArg",
    "Instruction",
    "OperationKind",
    "Payment",
    "Ppm",
    "PrevAmount",
    "VenueFamily",
]
