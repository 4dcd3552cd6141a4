"""Engine configuration for the aggregator."""

from dataclasses import dataclass
from enum import Enum

from aggregator.constants import (
    HATOM_STAKING,
    LXOXNO_STAKING,
    MIN_INTERNAL_OUTPUT,
    NATIVE_TOKEN,
    ONE_DEX_ROUTER,
    WRAPPER_SC,
    XEGLD_STAKING,
)


class ReturnPolicy(str, Enum):
    """What happens to the vault once the batch has run."""

    # Only the output asset goes back to the caller, every other remaining
    # asset is swept into the protocol fee pool as dust.
    OUTPUT_ONLY = "output_only"
    # Every remaining asset goes back to the caller.
    FULL_LEDGER = "full_ledger"


@dataclass(frozen=True)
class EngineConfig:
    """Centralized configuration for batch execution.

    Attributes:
        native_token: Identifier of the chain's native coin
        min_internal_output: Minimum output passed to every venue call
        return_policy: How remaining vault balances are distributed
        strict_vault: If True, balance lookups of absent assets raise
            AssetNotFound instead of returning zero
        onedex_router: OneDex router (all OneDex actions go through it)
        wrapper: Native coin wrapper
        xegld_staking: Xoxno xEGLD liquid staking
        lxoxno_staking: Xoxno LXOXNO liquid staking
        hatom_staking: Hatom sEGLD liquid staking
    """

    native_token: str = NATIVE_TOKEN
    min_internal_output: int = MIN_INTERNAL_OUTPUT
    return_policy: ReturnPolicy = ReturnPolicy.OUTPUT_ONLY
    strict_vault: bool = False

    onedex_router: str = ONE_DEX_ROUTER
    wrapper: str = WRAPPER_SC
    xegld_staking: str = XEGLD_STAKING
    lxoxno_staking: str = LXOXNO_STAKING
    hatom_staking: str = HATOM_STAKING


# Default configuration instance
DEFAULT_ENGINE_CONFIG = EngineConfig()
