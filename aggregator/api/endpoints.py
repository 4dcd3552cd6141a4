"""API endpoints for the route aggregator."""

import asyncio

import structlog
from fastapi import APIRouter, Depends, HTTPException

from aggregator.aggregator import (
    Aggregator,
    BatchResult,
    get_default_aggregator,
    get_default_fee_store,
)
from aggregator.decoder import decode_instructions
from aggregator.fees.store import FeeStore
from aggregator.models.requests import (
    AppliedFeesModel,
    BalancesResponse,
    BatchResponse,
    ClaimResponse,
    CompactRouteRequest,
    DecodeRequest,
    DecodeResponse,
    InstructionModel,
    PaymentModel,
    ReferralClaimRequest,
    ReferralCreateRequest,
    ReferralCreateResponse,
    ReferralModel,
    ReferralUpdateRequest,
    StaticFeeRequest,
    StructuredRouteRequest,
    ZapQuoteRequest,
    ZapQuoteResponse,
)
from aggregator.registries import Registries
from aggregator.zap import OnInput, OnOutput, compute_optimal_pre_swap, simulate_swap_output

logger = structlog.get_logger()

router = APIRouter()


def get_aggregator() -> Aggregator:
    """Dependency provider for the aggregator instance.

    Override this in tests to inject an aggregator wired to fake venues:
        app.dependency_overrides[get_aggregator] = lambda: aggregator

    Raises:
        HTTPException: 503 when no venues have been configured
    """
    aggregator = get_default_aggregator()
    if aggregator is None:
        raise HTTPException(status_code=503, detail="No venues configured")
    return aggregator


def get_fee_store() -> FeeStore:
    """Dependency provider for the shared fee store."""
    aggregator = get_default_aggregator()
    if aggregator is not None:
        return aggregator.fee_store
    return get_default_fee_store()


def _batch_response(result: BatchResult) -> BatchResponse:
    fees = None
    if result.fees is not None:
        fees = AppliedFeesModel(
            token=result.fees.token,
            referral_id=result.fees.referral_id,
            referral_fee=result.fees.referral_fee,
            admin_fee=result.fees.admin_fee,
        )
    return BatchResponse(
        token_out=result.token_out,
        output_amount=result.output_amount,
        transfers=[PaymentModel.from_payment(p) for p in result.transfers],
        fees=fees,
        swept_dust=[PaymentModel.from_payment(p) for p in result.swept_dust],
    )


# --- Routes ---


@router.post("/decode")
async def decode(request: DecodeRequest) -> DecodeResponse:
    """Decode a compact route into structured instructions."""
    registries = Registries.from_lists(request.tokens, request.addresses, request.amounts)
    instructions = decode_instructions(request.compact_instructions(), registries)
    return DecodeResponse(
        instructions=[InstructionModel.from_instruction(i) for i in instructions]
    )


@router.post("/zap/quote")
async def zap_quote(request: ZapQuoteRequest) -> ZapQuoteResponse:
    """Run the pre-swap solver on the supplied balances and pool state."""
    if request.fee_mode == "on_output":
        mode: OnInput | OnOutput = OnOutput(request.lp_fee_num)
    else:
        mode = OnInput(request.special_fee_num)

    pre_swap = compute_optimal_pre_swap(
        request.balance_first,
        request.balance_second,
        request.reserve_first,
        request.reserve_second,
        request.fee_num,
        request.fee_denom,
        mode,
    )

    reserve_in, reserve_out = request.reserve_first, request.reserve_second
    if not pre_swap.swap_from_first:
        reserve_in, reserve_out = reserve_out, reserve_in
    simulation = simulate_swap_output(
        pre_swap.amount, reserve_in, reserve_out, request.fee_num, request.fee_denom, mode
    )

    return ZapQuoteResponse(
        swap_from_first=pre_swap.swap_from_first,
        swap_amount=pre_swap.amount,
        expected_output=simulation.output,
    )


@router.post("/aggregate", response_model_exclude_none=True)
async def aggregate_compact(
    request: CompactRouteRequest,
    aggregator: Aggregator = Depends(get_aggregator),
) -> BatchResponse:
    """Execute a compact route.

    Error Handling:
        - Invalid request schema: 422 (Pydantic)
        - Any aggregator error: 400 with its error code; the batch is
          rolled back
    """
    logger.info(
        "received_compact_route",
        instruction_count=len(request.instructions),
        deposit_count=len(request.deposits),
    )
    loop = asyncio.get_running_loop()
    result = await loop.run_in_executor(
        None,
        lambda: aggregator.aggregate_compact(
            [d.to_payment() for d in request.deposits],
            request.min_amount_out,
            request.token_out_idx,
            request.referral_id,
            request.tokens,
            request.addresses,
            request.amounts,
            request.compact_instructions(),
        ),
    )
    return _batch_response(result)


@router.post("/aggregate/structured", response_model_exclude_none=True)
async def aggregate_structured(
    request: StructuredRouteRequest,
    aggregator: Aggregator = Depends(get_aggregator),
) -> BatchResponse:
    """Execute a structured route."""
    logger.info(
        "received_structured_route",
        instruction_count=len(request.instructions),
        deposit_count=len(request.deposits),
    )
    loop = asyncio.get_running_loop()
    result = await loop.run_in_executor(
        None,
        lambda: aggregator.aggregate(
            [d.to_payment() for d in request.deposits],
            [i.to_instruction() for i in request.instructions],
            request.token_out,
            request.min_amount_out,
            request.referral_id,
        ),
    )
    return _batch_response(result)


# --- Fee administration ---
# Admin endpoints carry no authentication; access control belongs to the
# deployment (reverse proxy / network policy). Handlers are sync so they run
# in the threadpool; the fee store lock blocks while a batch is running.


@router.post("/referrals")
def add_referral(
    request: ReferralCreateRequest,
    store: FeeStore = Depends(get_fee_store),
) -> ReferralCreateResponse:
    referral_id = store.add_referral(request.owner, request.fee)
    return ReferralCreateResponse(referral_id=referral_id)


@router.patch("/referrals/{referral_id}")
def update_referral(
    referral_id: int,
    request: ReferralUpdateRequest,
    store: FeeStore = Depends(get_fee_store),
) -> ReferralModel:
    """Update a referral's fee, active flag and/or owner."""
    with store.transaction():
        referral = store.get_referral(referral_id)
        if request.fee is not None:
            store.set_referral_fee(referral_id, request.fee)
        if request.active is not None:
            store.set_referral_active(referral_id, request.active)
        if request.owner is not None:
            store.set_referral_owner(referral_id, request.owner)
        return ReferralModel(
            referral_id=referral_id,
            owner=referral.owner,
            fee=referral.fee,
            active=referral.active,
        )


@router.get("/referrals/{referral_id}/balances")
def referral_balances(
    referral_id: int,
    store: FeeStore = Depends(get_fee_store),
) -> BalancesResponse:
    store.get_referral(referral_id)
    return BalancesResponse.from_mapping(store.referrer_balances(referral_id))


@router.post("/referrals/{referral_id}/claim")
def claim_referral_fees(
    referral_id: int,
    request: ReferralClaimRequest,
    store: FeeStore = Depends(get_fee_store),
) -> ClaimResponse:
    """Release a referral's accumulated fees to its owner.

    Error Handling:
        - Unknown referral: 404
        - Caller is not the owner: 400 (not_referral_owner)
    """
    payments = store.claim_referral_fees(referral_id, request.caller)
    return ClaimResponse(payments=[PaymentModel.from_payment(p) for p in payments])


@router.get("/fees/admin")
def admin_balances(store: FeeStore = Depends(get_fee_store)) -> BalancesResponse:
    return BalancesResponse.from_mapping(store.admin_balances())


@router.post("/fees/admin/claim")
def claim_admin_fees(store: FeeStore = Depends(get_fee_store)) -> ClaimResponse:
    payments = store.claim_admin_fees()
    return ClaimResponse(payments=[PaymentModel.from_payment(p) for p in payments])


@router.post("/fees/static")
def set_static_fee(
    request: StaticFeeRequest,
    store: FeeStore = Depends(get_fee_store),
) -> dict[str, int]:
    store.set_static_fee(request.fee)
    return {"staticFee": store.static_fee}
