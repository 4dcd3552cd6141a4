"""Protocol constants for the route aggregator.

Centralizes sentinel indices of the compact format, fee scales and the
well-known venue addresses that instructions resolve automatically.
"""

from aggregator.models.types import is_valid_address

# Identifier reserved for the chain's native coin
NATIVE_TOKEN = "EGLD-000000"

# Parts-per-million scale (1_000_000 = 100%)
PPM_SCALE = 1_000_000

# Basis-point scale for referral and static fees (10_000 = 100%)
TOTAL_FEE = 10_000

# Internal sanity floor passed to venues as minimum output. User slippage is
# enforced once, on the final output of the whole batch.
MIN_INTERNAL_OUTPUT = 1

# Compact encoding sentinels
IDX_NONE = 255  # no token in this slot
IDX_NATIVE = 254  # native coin instead of a registry entry
IDX_AUTO = 255  # venue address resolved from the action / asset pair

# Compact mode byte layout: 0 = All, 1 = Prev, 2..127 = Fixed, 128..255 = Ppm
MODE_ALL = 0
MODE_PREV = 1
MODE_FIXED_OFFSET = 2
MODE_PPM_THRESHOLD = 128

# Venue fee denominators
XEXCHANGE_FEE_DENOM = 100_000
ONEDEX_FEE_DENOM = TOTAL_FEE
JEX_FEE_DENOM = TOTAL_FEE


def _validate_venue_address(name: str, address: str) -> str:
    """Validate and return a well-known venue address.

    Raises:
        ValueError: If the address is not a bech32 erd1 address
    """
    if not is_valid_address(address):
        raise ValueError(f"Invalid {name} address: {address} (must be erd1 + 58 chars)")
    return address


# Well-known venues (mainnet). Validated at import time to catch typos early.
ONE_DEX_ROUTER = _validate_venue_address(
    "ONE_DEX_ROUTER", "erd1qqqqqqqqqqqqqpgqqz6vp9y50ep867vnr296mqf3dduh6guvmvlsu3sujc"
)
WRAPPER_SC = _validate_venue_address(
    "WRAPPER_SC", "erd1qqqqqqqqqqqqqpgqhe8t5jewej70zupmh44jurgn29psua5l2jps3ntjj3"
)
XEGLD_STAKING = _validate_venue_address(
    "XEGLD_STAKING", "erd1qqqqqqqqqqqqqpgq8538ku69p97lq4eug75y8d6g6yfwhd7c45qs4zvejt"
)
LXOXNO_STAKING = _validate_venue_address(
    "LXOXNO_STAKING", "erd1qqqqqqqqqqqqqpgq04vxf48vdlr97p3jz73qtxlf4l9p8rezd8ksl35mf7"
)
HATOM_STAKING = _validate_venue_address(
    "HATOM_STAKING", "erd1qqqqqqqqqqqqqpgq4gzfcw7kmkjy8zsf04ce6dl0auhtzjx078sslvrf4e"
)
