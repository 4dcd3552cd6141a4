"""Compact instruction decoding.

Each compact instruction is five single-byte fields followed by a 16-bit
field, 7 bytes on the wire (big-endian, like the chain's nested encoding):

    [action, b1, b2, b3, b4, addr_or_pair]

How b1..b4 are read depends on the action's category:

    OUTPUT_TOKEN  [action, out_tok, in_tok, in_mode, -,           addr]
    MULTI_INPUT   [action, tok1,    tok2,   tok3,    shared_mode, addr]
    OUTPUT_COUNT  [action, count,   in_tok, in_mode, -,           addr]
    PAIR_ID       [action, tok1,    tok2,   shared_mode, -,       pair_id]
    DUAL_INPUT    [action, tok1,    mode1,  tok2,    mode2,       addr]

Mode bytes: 0 = All, 1 = Prev, 2..127 = Fixed(amounts[v - 2]),
128..255 = Ppm(amounts[v - 128]). The same amounts slot holds either an
exact amount or a PPM factor depending on the mode byte.
"""

from __future__ import annotations

import struct
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass

import structlog

from aggregator.constants import (
    IDX_NONE,
    MODE_ALL,
    MODE_FIXED_OFFSET,
    MODE_PPM_THRESHOLD,
    MODE_PREV,
)
from aggregator.errors import InvalidAction
from aggregator.models.instructions import (
    Action,
    ActionCategory,
    ActionType,
    All,
    AmountMode,
    Fixed,
    InputArg,
    Instruction,
    Ppm,
    PrevAmount,
)
from aggregator.registries import Registries

logger = structlog.get_logger()

_WIRE_FORMAT = struct.Struct(">BBBBBH")

# Size of one serialized compact instruction
COMPACT_INSTRUCTION_SIZE = _WIRE_FORMAT.size


@dataclass(frozen=True)
class CompactInstruction:
    """One fixed-width compact instruction tuple."""

    action: int
    b1: int
    b2: int
    b3: int
    b4: int
    addr_or_pair: int

    @classmethod
    def from_tuple(cls, values: Iterable[int]) -> CompactInstruction:
        """Build from a 6-field tuple.

        Raises:
            ValueError: If the tuple has the wrong length or a field overflows
        """
        fields = tuple(values)
        if len(fields) != 6:
            raise ValueError(f"Compact instruction needs 6 fields, got {len(fields)}")
        for i, v in enumerate(fields[:5]):
            if not 0 <= v <= 0xFF:
                raise ValueError(f"Field {i} must fit in one byte: {v}")
        if not 0 <= fields[5] <= 0xFFFF:
            raise ValueError(f"Address/pair field must fit in two bytes: {fields[5]}")
        return cls(*fields)

    @classmethod
    def from_bytes(cls, data: bytes) -> CompactInstruction:
        if len(data) != COMPACT_INSTRUCTION_SIZE:
            raise ValueError(
                f"Compact instruction is {COMPACT_INSTRUCTION_SIZE} bytes, got {len(data)}"
            )
        return cls(*_WIRE_FORMAT.unpack(data))

    def to_bytes(self) -> bytes:
        return _WIRE_FORMAT.pack(
            self.action, self.b1, self.b2, self.b3, self.b4, self.addr_or_pair
        )

    def as_tuple(self) -> tuple[int, int, int, int, int, int]:
        return (self.action, self.b1, self.b2, self.b3, self.b4, self.addr_or_pair)


def decode_instruction_stream(data: bytes) -> Iterator[CompactInstruction]:
    """Split a concatenated byte stream into compact instructions.

    Raises:
        ValueError: If the stream length is not a multiple of the record size
    """
    if len(data) % COMPACT_INSTRUCTION_SIZE:
        raise ValueError(
            f"Instruction stream length {len(data)} is not a multiple of "
            f"{COMPACT_INSTRUCTION_SIZE}"
        )
    for offset in range(0, len(data), COMPACT_INSTRUCTION_SIZE):
        yield CompactInstruction.from_bytes(data[offset : offset + COMPACT_INSTRUCTION_SIZE])


def decode_mode(mode_byte: int, registries: Registries) -> AmountMode:
    """Decode a compact mode byte into an AmountMode.

    PPM values are not range-checked here; the vault rejects values above
    100% when the mode is consumed.
    """
    if mode_byte == MODE_ALL:
        return All()
    if mode_byte == MODE_PREV:
        return PrevAmount()
    if mode_byte >= MODE_PPM_THRESHOLD:
        return Ppm(registries.amount(mode_byte - MODE_PPM_THRESHOLD))
    return Fixed(registries.amount(mode_byte - MODE_FIXED_OFFSET))


def _is_chained(token_idx: int, mode_byte: int) -> bool:
    return mode_byte == MODE_PREV and token_idx == IDX_NONE


def _single_input(
    token_idx: int, mode_byte: int, registries: Registries
) -> tuple[InputArg, ...] | None:
    if _is_chained(token_idx, mode_byte):
        return None
    return (InputArg(registries.resolve_token(token_idx), decode_mode(mode_byte, registries)),)


def _shared_mode_inputs(
    token_indices: Iterable[int], mode_byte: int, registries: Registries
) -> tuple[InputArg, ...]:
    mode = decode_mode(mode_byte, registries)
    return tuple(
        InputArg(registries.resolve_token(idx), mode) for idx in token_indices if idx != IDX_NONE
    )


# --- Per-category decoders: (action type, compact, registries) -> (Action, inputs) ---

_Decoded = tuple[Action, tuple[InputArg, ...] | None]


def _decode_output_token(
    action_type: ActionType, c: CompactInstruction, registries: Registries
) -> _Decoded:
    action = Action(action_type, output_token=registries.resolve_token(c.b1))
    return action, _single_input(c.b2, c.b3, registries)


def _decode_multi_input(
    action_type: ActionType, c: CompactInstruction, registries: Registries
) -> _Decoded:
    # First token is always present; b2 / b3 may be IDX_NONE
    inputs = (InputArg(registries.resolve_token(c.b1), decode_mode(c.b4, registries)),)
    inputs += _shared_mode_inputs((c.b2, c.b3), c.b4, registries)
    return Action(action_type), inputs


def _decode_output_count(
    action_type: ActionType, c: CompactInstruction, registries: Registries
) -> _Decoded:
    action = Action(action_type, output_count=c.b1)
    return action, _single_input(c.b2, c.b3, registries)


def _decode_pair_id(
    action_type: ActionType, c: CompactInstruction, registries: Registries
) -> _Decoded:
    mode = decode_mode(c.b3, registries)
    inputs = (
        InputArg(registries.resolve_token(c.b1), mode),
        InputArg(registries.resolve_token(c.b2), mode),
    )
    return Action(action_type, pair_id=c.addr_or_pair), inputs


def _decode_dual_input(
    action_type: ActionType, c: CompactInstruction, registries: Registries
) -> _Decoded:
    first = _single_input(c.b1, c.b2, registries)
    if first is None:
        return Action(action_type), None
    if c.b3 != IDX_NONE:
        second = InputArg(registries.resolve_token(c.b3), decode_mode(c.b4, registries))
        first += (second,)
    return Action(action_type), first


CATEGORY_DECODERS: dict[
    ActionCategory, Callable[[ActionType, CompactInstruction, Registries], _Decoded]
] = {
    ActionCategory.OUTPUT_TOKEN: _decode_output_token,
    ActionCategory.MULTI_INPUT: _decode_multi_input,
    ActionCategory.OUTPUT_COUNT: _decode_output_count,
    ActionCategory.PAIR_ID: _decode_pair_id,
    ActionCategory.DUAL_INPUT: _decode_dual_input,
}


def parse_action_byte(action_byte: int) -> ActionType:
    """Map a compact action byte to its ActionType.

    Raises:
        InvalidAction: If the byte is not a known action
    """
    try:
        return ActionType(action_byte)
    except ValueError:
        raise InvalidAction(action_byte) from None


def decode_instruction(compact: CompactInstruction, registries: Registries) -> Instruction:
    """Decode one compact instruction against the batch registries.

    Args:
        compact: The compact tuple
        registries: Token, address and amount registries of the batch

    Returns:
        The structured Instruction

    Raises:
        InvalidAction: If the action byte is unknown
        RegistryIndexError: If a field references a missing registry slot
    """
    action_type = parse_action_byte(compact.action)
    category = action_type.category
    action, inputs = CATEGORY_DECODERS[category](action_type, compact, registries)

    # Pair-id actions carry the pair id in the address field; auto-venue
    # actions ignore whatever the field holds.
    address: str | None = None
    if category is not ActionCategory.PAIR_ID and not action_type.auto_resolves_venue:
        address = registries.resolve_address(compact.addr_or_pair)

    return Instruction(action=action, inputs=inputs, address=address)


def decode_instructions(
    compacts: Iterable[CompactInstruction | Iterable[int]], registries: Registries
) -> list[Instruction]:
    """Decode a whole compact route, in order."""
    instructions = []
    for raw in compacts:
        compact = raw if isinstance(raw, CompactInstruction) else CompactInstruction.from_tuple(raw)
        instructions.append(decode_instruction(compact, registries))

    logger.debug("route_decoded", instruction_count=len(instructions))
    return instructions


__all__ = [
    "CATEGORY_DECODERS",
    "COMPACT_INSTRUCTION_SIZE",
    "CompactInstruction",
    "decode_instruction",
    "decode_instructions",
    "decode_mode",
    "decode_instruction_stream",
    "parse_action_byte",
]
