"""Aggregator error classes.

Every error aborts the whole batch. Each class carries a stable ``code``
that the HTTP layer reports to callers.
"""

from __future__ import annotations


class AggregatorError(Exception):
    """Base error for aggregator operations."""

    code = "aggregator_error"


class InvalidAction(AggregatorError):
    """Compact action byte is outside the known range."""

    code = "invalid_action"

    def __init__(self, action_byte: int) -> None:
        super().__init__(f"Invalid action type: {action_byte}")
        self.action_byte = action_byte


class InvalidPpm(AggregatorError):
    """PPM value exceeds 1,000,000 (100%)."""

    code = "invalid_ppm"

    def __init__(self, ppm: int) -> None:
        super().__init__(f"PPM value exceeds 1,000,000 (100%): {ppm}")
        self.ppm = ppm


class PrevAmountUnavailable(AggregatorError):
    """PrevAmount requested but no prior instruction produced a single output."""

    code = "prev_amount_unavailable"

    def __init__(self) -> None:
        super().__init__("PrevAmount not available")


class PrevAmountAssetMismatch(AggregatorError):
    """PrevAmount requested for a different asset than the previous output."""

    code = "prev_amount_asset_mismatch"

    def __init__(self, expected: str, got: str) -> None:
        super().__init__(f"PrevAmount token mismatch: previous output is {expected}, got {got}")
        self.expected = expected
        self.got = got


class ZeroInputAmount(AggregatorError):
    """A resolved input amount is zero."""

    code = "zero_input_amount"

    def __init__(self, token: str) -> None:
        super().__init__(f"Zero input amount for token {token}")
        self.token = token


class InsufficientBalance(AggregatorError):
    """Vault withdrawal exceeds the held balance."""

    code = "insufficient_balance"

    def __init__(self, token: str, have: int, need: int) -> None:
        super().__init__(
            f"Insufficient vault balance for token {token}: have {have}, need {need}"
        )
        self.token = token
        self.have = have
        self.need = need


class AssetNotFound(AggregatorError):
    """Strict vault lookup of an asset that is not held."""

    code = "asset_not_found"

    def __init__(self, token: str) -> None:
        super().__init__(f"Token not found in vault: {token}")
        self.token = token


class InsufficientOutput(AggregatorError):
    """Final output balance is below the declared minimum."""

    code = "insufficient_output"

    def __init__(self, have: int, need: int) -> None:
        super().__init__(f"Slippage limit exceeded: have {have}, need {need}")
        self.have = have
        self.need = need


class NonFungibleDeposit(AggregatorError):
    """Deposit carries a non-zero nonce."""

    code = "non_fungible_deposit"

    def __init__(self, token: str, nonce: int) -> None:
        super().__init__(f"Only fungible ESDT tokens are accepted, got {token} (nonce {nonce})")
        self.token = token
        self.nonce = nonce


class FeeExceedsCeiling(AggregatorError):
    """Admin fee configuration above the allowed ceiling."""

    code = "fee_exceeds_ceiling"

    def __init__(self, fee: int, ceiling: int) -> None:
        super().__init__(f"Fee {fee} exceeds ceiling {ceiling}")
        self.fee = fee
        self.ceiling = ceiling


class ReferralNotFound(AggregatorError):
    """No referral record for this id."""

    code = "referral_not_found"

    def __init__(self, referral_id: int) -> None:
        super().__init__(f"Referral not found: {referral_id}")
        self.referral_id = referral_id


class NotReferralOwner(AggregatorError):
    """Claim attempted by someone other than the referral owner."""

    code = "not_referral_owner"

    def __init__(self, referral_id: int, caller: str) -> None:
        super().__init__(f"Not referral owner: {caller} for referral {referral_id}")
        self.referral_id = referral_id
        self.caller = caller


class RegistryIndexError(AggregatorError):
    """Compact instruction references a registry slot that does not exist."""

    code = "registry_index_error"

    def __init__(self, registry: str, index: int, size: int) -> None:
        super().__init__(f"Index {index} out of range for {registry} registry (size {size})")
        self.registry = registry
        self.index = index
        self.size = size


class VenueAddressRequired(AggregatorError):
    """Action needs an explicit venue address and none was given."""

    code = "venue_address_required"

    def __init__(self, action: str) -> None:
        super().__init__(f"Action {action} requires an explicit venue address")
        self.action = action


class VenueError(AggregatorError):
    """External venue rejected a call or returned an unusable result."""

    code = "venue_error"
