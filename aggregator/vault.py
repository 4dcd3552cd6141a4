"""In-memory balance ledger for one batch.

The vault tracks every asset the batch currently holds: the deposits, then
whatever each instruction returns. Balances live in a dict for lookups and
in an insertion-ordered token list so that the final sweep returns assets in
a stable order. Both always share the same key set, and no asset is ever
kept with a zero balance.
"""

from __future__ import annotations

from collections.abc import Iterable

from aggregator.constants import PPM_SCALE
from aggregator.errors import AssetNotFound, InsufficientBalance, InvalidPpm, NonFungibleDeposit
from aggregator.models.instructions import Payment


class Vault:
    """Balance ledger plus the previous instruction's single output.

    Attributes:
        strict: If True, balance_of raises AssetNotFound for absent assets
    """

    def __init__(self, strict: bool = False) -> None:
        self.strict = strict
        self._balances: dict[str, int] = {}
        self._tokens: list[str] = []
        self._prev_result: Payment | None = None

    @classmethod
    def from_payments(cls, payments: Iterable[Payment], strict: bool = False) -> Vault:
        """Build a vault from the batch deposits.

        Raises:
            NonFungibleDeposit: If a deposit carries a non-zero nonce
        """
        vault = cls(strict=strict)
        for payment in payments:
            if payment.nonce != 0:
                raise NonFungibleDeposit(payment.token, payment.nonce)
            if payment.amount > 0:
                vault.deposit(payment.token, payment.amount)
        return vault

    # --- Mutations ---

    def deposit(self, token: str, amount: int) -> None:
        """Credit amount of token, appending the token if it is new."""
        if amount <= 0:
            raise ValueError(f"Deposit amount must be positive, got {amount}")
        if token in self._balances:
            self._balances[token] += amount
        else:
            self._balances[token] = amount
            self._tokens.append(token)

    def withdraw(self, token: str, amount: int) -> int:
        """Debit exactly amount of token, dropping the entry when it reaches zero.

        Raises:
            InsufficientBalance: If the vault holds less than amount
        """
        have = self._balances.get(token, 0)
        if amount > have:
            raise InsufficientBalance(token, have, amount)
        if amount == 0:
            return 0
        if amount == have:
            self._remove(token)
        else:
            self._balances[token] = have - amount
        return amount

    def withdraw_all(self, token: str) -> int:
        """Remove and return the whole balance of token (0 when absent)."""
        if token not in self._balances:
            return 0
        return self._remove(token)

    def withdraw_ppm(self, token: str, ppm: int) -> int:
        """Withdraw floor(balance * ppm / 1_000_000) of token.

        Raises:
            InvalidPpm: If ppm is above 1_000_000
        """
        if ppm > PPM_SCALE:
            raise InvalidPpm(ppm)
        amount = self.ppm_of(token, ppm)
        if amount == 0:
            return 0
        return self.withdraw(token, amount)

    def _remove(self, token: str) -> int:
        amount = self._balances.pop(token)
        self._tokens.remove(token)
        return amount

    # --- Views ---

    def balance_of(self, token: str) -> int:
        """Current balance of token.

        Raises:
            AssetNotFound: In strict mode, if the token is not held
        """
        if token not in self._balances:
            if self.strict:
                raise AssetNotFound(token)
            return 0
        return self._balances[token]

    def ppm_of(self, token: str, ppm: int) -> int:
        return self._balances.get(token, 0) * ppm // PPM_SCALE

    def has_minimum(self, token: str, minimum: int) -> bool:
        return self._balances.get(token, 0) >= minimum

    def tokens(self) -> list[str]:
        return list(self._tokens)

    def all_payments(self) -> list[Payment]:
        """Every held balance, in insertion order."""
        return [Payment(token, self._balances[token]) for token in self._tokens]

    def is_empty(self) -> bool:
        return not self._tokens

    @property
    def prev_result(self) -> Payment | None:
        return self._prev_result

    @prev_result.setter
    def prev_result(self, payment: Payment | None) -> None:
        self._prev_result = payment

    def __contains__(self, token: object) -> bool:
        return token in self._balances

    def __len__(self) -> int:
        return len(self._tokens)

    def __repr__(self) -> str:
        held = ", ".join(f"{t}={self._balances[t]}" for t in self._tokens)
        return f"Vault({held})"


__all__ = ["Vault"]
