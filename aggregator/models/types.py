"""Shared type definitions for aggregator request models.

These types are used across the structured and compact route models.
"""

import re
from typing import Annotated, Any

from pydantic import BeforeValidator, Field, PlainSerializer

# Bech32 data charset used by erd1 addresses
_BECH32_CHARSET = "qpzry9x8gf2tvdw0s3jn54khce6mua7l"
_ADDRESS_RE = re.compile(rf"^erd1[{_BECH32_CHARSET}]{{58}}$")
_TOKEN_RE = re.compile(r"^[A-Z0-9]{3,10}-[a-f0-9]{6}$")


def validate_big_uint(value: Any) -> int:
    """Validate that a value is a non-negative integer amount.

    Args:
        value: Value to validate (decimal string or int)

    Returns:
        The amount as int

    Raises:
        ValueError: If value is not a valid non-negative integer
    """
    if isinstance(value, bool):
        raise ValueError("BigUint cannot be a boolean")

    if isinstance(value, int):
        if value < 0:
            raise ValueError(f"BigUint cannot be negative: {value}")
        return value

    if not isinstance(value, str):
        raise ValueError(f"BigUint must be string or int, got {type(value).__name__}")

    try:
        int_value = int(value)
    except ValueError as err:
        raise ValueError(f"BigUint must be a decimal integer string: '{value}'") from err

    if int_value < 0:
        raise ValueError(f"BigUint cannot be negative: {value}")

    return int_value


# Token amount, accepted as int or decimal string, emitted as a decimal string in JSON
BigUint = Annotated[
    int,
    BeforeValidator(validate_big_uint),
    PlainSerializer(str, return_type=str, when_used="json"),
    Field(description="Unsigned integer amount (int or decimal string)"),
]

# erd1 bech32 address
Address = Annotated[str, Field(pattern=_ADDRESS_RE.pattern)]

# Fungible token identifier (TICKER-abcdef)
TokenId = Annotated[str, Field(pattern=_TOKEN_RE.pattern)]

# Single compact byte
U8 = Annotated[int, Field(ge=0, le=255)]

# Trailing compact field (address index or pair id)
U16 = Annotated[int, Field(ge=0, le=0xFFFF)]


def is_valid_address(address: str) -> bool:
    """Check if a string is a valid erd1 bech32 address.

    Only the shape and charset are checked, not the bech32 checksum.
    """
    if not isinstance(address, str):
        return False
    return _ADDRESS_RE.match(address) is not None
