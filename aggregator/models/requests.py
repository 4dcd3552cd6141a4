"""Pydantic models for the aggregator HTTP API.

Amounts are accepted as ints or decimal strings and returned as decimal
strings. Field names are camelCase on the wire.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Discriminator, Field, Tag, field_serializer, field_validator

from aggregator.decoder import (
    COMPACT_INSTRUCTION_SIZE,
    CompactInstruction,
    decode_instruction_stream,
)
from aggregator.models.instructions import (
    Action,
    ActionType,
    All,
    AmountMode,
    Fixed,
    InputArg,
    Instruction,
    Payment,
    Ppm,
    PrevAmount,
)
from aggregator.models.types import U8, U16, Address, BigUint, TokenId

_CAMEL = {"populate_by_name": True}


class PaymentModel(BaseModel):
    """A token amount sent in or out."""

    token: TokenId
    amount: BigUint
    nonce: int = Field(default=0, ge=0)

    def to_payment(self) -> Payment:
        return Payment(self.token, self.amount, self.nonce)

    @classmethod
    def from_payment(cls, payment: Payment) -> PaymentModel:
        return cls(token=payment.token, amount=payment.amount, nonce=payment.nonce)


# --- Amount modes ---


class FixedModeModel(BaseModel):
    kind: Literal["fixed"] = "fixed"
    amount: BigUint


class PpmModeModel(BaseModel):
    kind: Literal["ppm"] = "ppm"
    ppm: int = Field(ge=0, description="Parts per million of the vault balance")


class AllModeModel(BaseModel):
    kind: Literal["all"] = "all"


class PrevModeModel(BaseModel):
    kind: Literal["prev"] = "prev"


def _get_mode_kind(v: dict[str, Any] | BaseModel) -> str:
    """Discriminator function for AmountModeModel."""
    if isinstance(v, dict):
        return str(v.get("kind", ""))
    return str(getattr(v, "kind", ""))


AmountModeModel = Annotated[
    Annotated[FixedModeModel, Tag("fixed")]
    | Annotated[PpmModeModel, Tag("ppm")]
    | Annotated[AllModeModel, Tag("all")]
    | Annotated[PrevModeModel, Tag("prev")],
    Discriminator(_get_mode_kind),
]


_ModeModel = FixedModeModel | PpmModeModel | AllModeModel | PrevModeModel


def mode_from_model(model: _ModeModel) -> AmountMode:
    if isinstance(model, FixedModeModel):
        return Fixed(model.amount)
    if isinstance(model, PpmModeModel):
        return Ppm(model.ppm)
    if isinstance(model, AllModeModel):
        return All()
    return PrevAmount()


def mode_to_model(mode: AmountMode) -> _ModeModel:
    if isinstance(mode, Fixed):
        return FixedModeModel(amount=mode.amount)
    if isinstance(mode, Ppm):
        return PpmModeModel(ppm=mode.ppm)
    if isinstance(mode, All):
        return AllModeModel()
    return PrevModeModel()


class InputArgModel(BaseModel):
    token: TokenId
    mode: AmountModeModel


class InstructionModel(BaseModel):
    """Structured instruction.

    ``action`` accepts the action byte or its name (e.g. "XEXCHANGE_SWAP")
    and is returned as the name.
    """

    action: ActionType
    output_token: TokenId | None = Field(default=None, alias="outputToken")
    output_count: U8 | None = Field(default=None, alias="outputCount")
    pair_id: U16 | None = Field(default=None, alias="pairId")
    inputs: list[InputArgModel] | None = Field(
        default=None,
        description="Inputs withdrawn from the vault. Omit to chain the previous result.",
    )
    address: Address | None = Field(default=None, description="Venue address, if explicit")

    model_config = _CAMEL

    @field_validator("action", mode="before")
    @classmethod
    def parse_action(cls, v: Any) -> Any:
        if isinstance(v, str) and not v.isdigit():
            try:
                return ActionType[v.upper()]
            except KeyError:
                raise ValueError(f"Unknown action: {v}") from None
        return v

    @field_serializer("action")
    def serialize_action(self, action: ActionType) -> str:
        return action.name

    def to_instruction(self) -> Instruction:
        inputs = None
        if self.inputs is not None:
            inputs = tuple(InputArg(arg.token, mode_from_model(arg.mode)) for arg in self.inputs)
        action = Action(
            self.action,
            output_token=self.output_token,
            output_count=self.output_count,
            pair_id=self.pair_id,
        )
        return Instruction(action=action, inputs=inputs, address=self.address)

    @classmethod
    def from_instruction(cls, instruction: Instruction) -> InstructionModel:
        action = instruction.action
        inputs = None
        if instruction.inputs is not None:
            inputs = [
                InputArgModel(token=arg.token, mode=mode_to_model(arg.mode))
                for arg in instruction.inputs
            ]
        return cls(
            action=action.type,
            output_token=action.output_token,
            output_count=action.output_count,
            pair_id=action.pair_id,
            inputs=inputs,
            address=instruction.address,
        )


# --- Routes ---

CompactTuple = tuple[U8, U8, U8, U8, U8, U16]


class CompactRoute(BaseModel):
    """Registries plus compact instructions, as tuples or a hex byte stream."""

    tokens: list[TokenId] = Field(default_factory=list)
    addresses: list[Address] = Field(default_factory=list)
    amounts: list[BigUint] = Field(default_factory=list)
    instructions: list[CompactTuple] = Field(default_factory=list)
    instructions_hex: str | None = Field(
        default=None,
        alias="instructionsHex",
        description="Concatenated 7-byte instructions; used instead of `instructions`",
    )

    model_config = _CAMEL

    @field_validator("instructions_hex")
    @classmethod
    def validate_hex(cls, v: str | None) -> str | None:
        if v is None:
            return v
        v = v.removeprefix("0x")
        try:
            data = bytes.fromhex(v)
        except ValueError as err:
            raise ValueError("instructionsHex must be hex encoded") from err
        if len(data) % COMPACT_INSTRUCTION_SIZE:
            raise ValueError(
                f"instructionsHex length must be a multiple of {COMPACT_INSTRUCTION_SIZE} bytes"
            )
        return v

    def compact_instructions(self) -> list[CompactInstruction]:
        if self.instructions_hex is not None:
            return list(decode_instruction_stream(bytes.fromhex(self.instructions_hex)))
        return [CompactInstruction.from_tuple(t) for t in self.instructions]


class DecodeRequest(CompactRoute):
    """Decode a compact route without executing it."""


class DecodeResponse(BaseModel):
    instructions: list[InstructionModel]


class CompactRouteRequest(CompactRoute):
    """Execute a compact route."""

    deposits: list[PaymentModel] = Field(min_length=1)
    min_amount_out: BigUint = Field(alias="minAmountOut")
    token_out_idx: U8 = Field(alias="tokenOutIdx")
    referral_id: int = Field(default=0, ge=0, alias="referralId")


class StructuredRouteRequest(BaseModel):
    """Execute a structured route."""

    deposits: list[PaymentModel] = Field(min_length=1)
    instructions: list[InstructionModel]
    token_out: TokenId = Field(alias="tokenOut")
    min_amount_out: BigUint = Field(alias="minAmountOut")
    referral_id: int = Field(default=0, ge=0, alias="referralId")

    model_config = _CAMEL


class AppliedFeesModel(BaseModel):
    token: TokenId
    referral_id: int | None = Field(default=None, alias="referralId")
    referral_fee: BigUint = Field(default=0, alias="referralFee")
    admin_fee: BigUint = Field(default=0, alias="adminFee")

    model_config = _CAMEL


class BatchResponse(BaseModel):
    """Transfers produced by a successful batch."""

    token_out: TokenId = Field(alias="tokenOut")
    output_amount: BigUint = Field(alias="outputAmount")
    transfers: list[PaymentModel]
    fees: AppliedFeesModel | None = None
    swept_dust: list[PaymentModel] = Field(default_factory=list, alias="sweptDust")

    model_config = _CAMEL


# --- Pre-swap quote ---


class ZapQuoteRequest(BaseModel):
    """Inputs of the pre-swap solver."""

    balance_first: BigUint = Field(alias="balanceFirst")
    balance_second: BigUint = Field(alias="balanceSecond")
    reserve_first: BigUint = Field(alias="reserveFirst")
    reserve_second: BigUint = Field(alias="reserveSecond")
    fee_num: int = Field(ge=0, alias="feeNum")
    fee_denom: int = Field(gt=0, alias="feeDenom")
    fee_mode: Literal["on_input", "on_output"] = Field(default="on_input", alias="feeMode")
    special_fee_num: int = Field(default=0, ge=0, alias="specialFeeNum")
    lp_fee_num: int = Field(default=0, ge=0, alias="lpFeeNum")

    model_config = _CAMEL


class ZapQuoteResponse(BaseModel):
    swap_from_first: bool = Field(alias="swapFromFirst")
    swap_amount: BigUint = Field(alias="swapAmount")
    expected_output: BigUint = Field(alias="expectedOutput")

    model_config = _CAMEL


# --- Referral administration ---


class ReferralCreateRequest(BaseModel):
    owner: Address
    fee: int = Field(ge=0, description="Referral fee in basis points")


class ReferralCreateResponse(BaseModel):
    referral_id: int = Field(alias="referralId")

    model_config = _CAMEL


class ReferralUpdateRequest(BaseModel):
    """Partial update; only the fields given are changed."""

    fee: int | None = Field(default=None, ge=0)
    active: bool | None = None
    owner: Address | None = None


class ReferralModel(BaseModel):
    referral_id: int = Field(alias="referralId")
    owner: Address
    fee: int
    active: bool

    model_config = _CAMEL


class ReferralClaimRequest(BaseModel):
    caller: Address


class ClaimResponse(BaseModel):
    """Payments released by a claim."""

    payments: list[PaymentModel]


class StaticFeeRequest(BaseModel):
    fee: int = Field(ge=0, description="Static fee in basis points")


class BalancesResponse(BaseModel):
    balances: list[PaymentModel]

    @classmethod
    def from_mapping(cls, balances: dict[str, int]) -> BalancesResponse:
        return cls(balances=[PaymentModel(token=t, amount=a) for t, a in balances.items()])


__all__ = [
    "AmountModeModel",
    "AppliedFeesModel",
    "BalancesResponse",
    "BatchResponse",
    "ClaimResponse",
    "CompactRoute",
    "CompactRouteRequest",
    "DecodeRequest",
    "DecodeResponse",
    "InputArgModel",
    "InstructionModel",
    "PaymentModel",
    "ReferralClaimRequest",
    "ReferralCreateRequest",
    "ReferralCreateResponse",
    "ReferralModel",
    "ReferralUpdateRequest",
    "StaticFeeRequest",
    "StructuredRouteRequest",
    "ZapQuoteRequest",
    "ZapQuoteResponse",
]
