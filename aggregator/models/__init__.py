"""Data models for aggregator instructions and requests."""

from aggregator.models.instructions import (
    Action,
    ActionCategory,
    ActionType,
    All,
    AmountMode,
    Fixed,
    InputArg,
    Instruction,
    OperationKind,
    Payment,
    Ppm,
    PrevAmount,
    VenueFamily,
)
from aggregator.models.types import Address, BigUint, TokenId

__all__ = [
    # Types
    "Address",
    "BigUint",
    "TokenId",
    # Instructions
    "Action",
    "ActionCategory",
    "ActionType",
    "AmountMode",
    "All",
    "Fixed",
    "InputArg",
    "Instruction",
    "OperationKind",
    "Payment",
    "Ppm",
    "PrevAmount",
    "VenueFamily",
]
