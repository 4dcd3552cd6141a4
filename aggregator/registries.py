"""Index registries referenced by compact instructions.

A compact route ships three flat arrays next to its instructions: token
identifiers, venue addresses and numeric values. Instructions refer to
entries by single-byte index, with a few reserved sentinel indices.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from aggregator.constants import IDX_AUTO, IDX_NATIVE, IDX_NONE, NATIVE_TOKEN
from aggregator.errors import RegistryIndexError


@dataclass(frozen=True)
class Registries:
    """Immutable token, address and amount registries for one batch."""

    tokens: tuple[str, ...] = ()
    addresses: tuple[str, ...] = ()
    amounts: tuple[int, ...] = ()
    native_token: str = field(default=NATIVE_TOKEN, compare=False)

    @classmethod
    def from_lists(
        cls,
        tokens: Sequence[str] = (),
        addresses: Sequence[str] = (),
        amounts: Sequence[int] = (),
        native_token: str = NATIVE_TOKEN,
    ) -> Registries:
        return cls(
            tokens=tuple(tokens),
            addresses=tuple(addresses),
            amounts=tuple(amounts),
            native_token=native_token,
        )

    def resolve_token(self, idx: int) -> str:
        """Resolve a token index, mapping IDX_NATIVE to the native coin."""
        if idx == IDX_NATIVE:
            return self.native_token
        return _lookup("tokens", self.tokens, idx)

    def token_or_none(self, idx: int) -> str | None:
        """Resolve a token index where IDX_NONE marks an empty slot."""
        if idx == IDX_NONE:
            return None
        return self.resolve_token(idx)

    def resolve_address(self, idx: int) -> str | None:
        """Resolve an address index; IDX_AUTO means auto-resolve (None)."""
        if idx == IDX_AUTO:
            return None
        return _lookup("addresses", self.addresses, idx)

    def amount(self, idx: int) -> int:
        return _lookup("amounts", self.amounts, idx)


def _lookup(name: str, values: tuple, idx: int):  # type: ignore[no-untyped-def]
    if not 0 <= idx < len(values):
        raise RegistryIndexError(name, idx, len(values))
    return values[idx]


__all__ = ["Registries"]
