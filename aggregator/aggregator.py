"""Batch entry point of the route aggregator.

The Aggregator turns a deposit plus a route into transfers back to the
caller:

1. build a vault from the deposits,
2. decode the compact route (compact form only),
3. execute every instruction in order,
4. withhold referral / protocol fees from the output asset,
5. enforce the caller's minimum output on the net amount,
6. distribute the vault according to the return policy.

The whole batch runs inside a fee-store transaction, so any failure leaves
the accumulated fees and referral state exactly as they were.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

import structlog

from aggregator.config import DEFAULT_ENGINE_CONFIG, EngineConfig, ReturnPolicy
from aggregator.decoder import CompactInstruction, decode_instructions
from aggregator.engine import ExecutionEngine
from aggregator.errors import AggregatorError, InsufficientOutput
from aggregator.fees.accrual import AppliedFees, apply_fees
from aggregator.fees.store import FeeStore
from aggregator.models.instructions import Instruction, Payment
from aggregator.registries import Registries
from aggregator.vault import Vault
from aggregator.venues.base import PoolStateReader, VenueAdapter

logger = structlog.get_logger()


@dataclass(frozen=True)
class BatchResult:
    """Outcome of one successful batch.

    Attributes:
        token_out: Output asset of the batch
        transfers: Payments sent back to the caller
        fees: Fees withheld from the output asset
        swept_dust: Leftover non-output balances credited to the protocol pool
    """

    token_out: str
    transfers: list[Payment] = field(default_factory=list)
    fees: AppliedFees | None = None
    swept_dust: list[Payment] = field(default_factory=list)

    @property
    def output_amount(self) -> int:
        return sum(p.amount for p in self.transfers if p.token == self.token_out)


class Aggregator:
    """Runs batches against injected venues and a shared fee store.

    Batches are serialized by the fee store's transaction, which also
    holds off admin writes until the batch has committed or rolled back.
    """

    def __init__(
        self,
        venues: VenueAdapter,
        pool_state: PoolStateReader,
        fee_store: FeeStore | None = None,
        config: EngineConfig | None = None,
    ) -> None:
        self.config = config or DEFAULT_ENGINE_CONFIG
        self.fee_store = fee_store or FeeStore()
        self.engine = ExecutionEngine(venues, pool_state, self.fee_store, self.config)

    def aggregate_compact(
        self,
        deposits: Sequence[Payment],
        min_amount_out: int,
        token_out_idx: int,
        referral_id: int,
        tokens: Sequence[str],
        addresses: Sequence[str],
        amounts: Sequence[int],
        instructions: Iterable[CompactInstruction | Iterable[int]],
    ) -> BatchResult:
        """Execute a compact route.

        Args:
            deposits: Assets sent in by the caller
            min_amount_out: Minimum net output after fees
            token_out_idx: Token registry index of the output asset
            referral_id: Referral to credit (0 for none)
            tokens: Token registry
            addresses: Venue address registry
            amounts: Amount / PPM registry
            instructions: Compact instructions, in execution order

        Returns:
            BatchResult with the caller's transfers

        Raises:
            AggregatorError: On any decoding, execution or slippage failure
        """
        try:
            registries = Registries.from_lists(
                tokens, addresses, amounts, native_token=self.config.native_token
            )
            token_out = registries.resolve_token(token_out_idx)
            decoded = decode_instructions(instructions, registries)
        except AggregatorError as e:
            logger.warning("batch_aborted", error=e.code, detail=str(e))
            raise
        return self.aggregate(deposits, decoded, token_out, min_amount_out, referral_id)

    def aggregate(
        self,
        deposits: Sequence[Payment],
        instructions: Sequence[Instruction],
        token_out: str,
        min_amount_out: int,
        referral_id: int = 0,
    ) -> BatchResult:
        """Execute a structured route. See aggregate_compact."""
        logger.info(
            "batch_started",
            token_out=token_out,
            deposit_count=len(deposits),
            instruction_count=len(instructions),
            referral_id=referral_id,
        )

        try:
            with self.fee_store.transaction():
                result = self._run(deposits, instructions, token_out, min_amount_out, referral_id)
        except AggregatorError as e:
            logger.warning("batch_aborted", error=e.code, detail=str(e))
            raise

        logger.info(
            "batch_completed",
            token_out=token_out,
            output_amount=result.output_amount,
            fees=result.fees.total if result.fees else 0,
            swept_assets=len(result.swept_dust),
        )
        return result

    def _run(
        self,
        deposits: Sequence[Payment],
        instructions: Sequence[Instruction],
        token_out: str,
        min_amount_out: int,
        referral_id: int,
    ) -> BatchResult:
        vault = Vault.from_payments(deposits, strict=self.config.strict_vault)

        for instruction in instructions:
            self.engine.execute(vault, instruction, token_out)

        fees = apply_fees(vault, token_out, referral_id, self.fee_store)

        have = vault.balance_of(token_out) if token_out in vault else 0
        if have < min_amount_out:
            raise InsufficientOutput(have, min_amount_out)

        transfers, swept = self._distribute(vault, token_out)
        return BatchResult(token_out=token_out, transfers=transfers, fees=fees, swept_dust=swept)

    def _distribute(self, vault: Vault, token_out: str) -> tuple[list[Payment], list[Payment]]:
        """Empty the vault into caller transfers and swept dust."""
        transfers: list[Payment] = []
        swept: list[Payment] = []

        for payment in vault.all_payments():
            vault.withdraw_all(payment.token)
            if (
                self.config.return_policy is ReturnPolicy.FULL_LEDGER
                or payment.token == token_out
            ):
                transfers.append(payment)
            else:
                self.fee_store.accrue_admin_fee(payment.token, payment.amount)
                swept.append(payment)

        return transfers, swept


# Process-wide aggregator used by the HTTP service. None until venues are wired.
_default_aggregator: Aggregator | None = None
_default_fee_store = FeeStore()


def get_default_fee_store() -> FeeStore:
    return _default_fee_store


def get_default_aggregator() -> Aggregator | None:
    return _default_aggregator


def set_default_aggregator(aggregator: Aggregator | None) -> None:
    """Install the aggregator served by the HTTP endpoints."""
    global _default_aggregator
    _default_aggregator = aggregator


__all__ = [
    "Aggregator",
    "BatchResult",
    "get_default_aggregator",
    "get_default_fee_store",
    "set_default_aggregator",
]
