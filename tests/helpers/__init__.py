"""Test helpers module for shared test utilities.

This module consolidates common test utilities to reduce duplication:
- constants: Token identifiers and venue addresses
- factories: Payment, instruction and compact tuple factories
- fakes: In-memory venue adapter and pool state reader
"""

from tests.helpers.constants import (
    ASH,
    ASH_POOL,
    EGLD,
    HATOM_MARKET,
    HWEGLD,
    JEX_PAIR,
    JEX_STABLE_POOL,
    LP_STABLE,
    LP_WEGLD_USDC,
    MEX,
    OTHER_USER,
    REFERRAL_OWNER,
    USDC,
    WEGLD,
    XEGLD,
    XEXCHANGE_PAIR,
    make_address,
)
from tests.helpers.factories import make_compact, make_instruction, make_payment
from tests.helpers.fakes import FakeCpmmPool, FakePoolState, FakeVenue

__all__ = [
    # Constants
    "EGLD",
    "WEGLD",
    "USDC",
    "MEX",
    "ASH",
    "XEGLD",
    "HWEGLD",
    "LP_WEGLD_USDC",
    "LP_STABLE",
    "XEXCHANGE_PAIR",
    "ASH_POOL",
    "JEX_PAIR",
    "JEX_STABLE_POOL",
    "HATOM_MARKET",
    "REFERRAL_OWNER",
    "OTHER_USER",
    "make_address",
    # Factories
    "make_payment",
    "make_instruction",
    "make_compact",
    # Fakes
    "FakeVenue",
    "FakePoolState",
    "FakeCpmmPool",
]
