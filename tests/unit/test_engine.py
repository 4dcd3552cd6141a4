"""Tests for the instruction execution engine."""

import pytest

from aggregator.config import DEFAULT_ENGINE_CONFIG
from aggregator.errors import (
    InsufficientBalance,
    PrevAmountAssetMismatch,
    PrevAmountUnavailable,
    VenueAddressRequired,
    VenueError,
    ZeroInputAmount,
)
from aggregator.models.instructions import (
    ActionType,
    All,
    Fixed,
    OperationKind,
    Payment,
    Ppm,
    PrevAmount,
)
from tests.helpers import (
    ASH,
    ASH_POOL,
    EGLD,
    HATOM_MARKET,
    HWEGLD,
    JEX_PAIR,
    JEX_STABLE_POOL,
    LP_STABLE,
    LP_WEGLD_USDC,
    MEX,
    USDC,
    WEGLD,
    XEGLD,
    XEXCHANGE_PAIR,
    FakeCpmmPool,
    make_instruction,
)


def ash_swap(token_in, mode, token_out):
    return make_instruction(
        ActionType.ASHSWAP_POOL_SWAP, [(token_in, mode)], output_token=token_out, address=ASH_POOL
    )


class TestResolvePayments:
    """Tests for input resolution against the vault."""

    def test_all_mode(self, engine, vault):
        vault.deposit(USDC, 1000)
        payments = engine.resolve_payments(vault, ash_swap(USDC, All(), WEGLD))
        assert payments == [Payment(USDC, 1000)]
        assert USDC not in vault

    def test_fixed_mode(self, engine, vault):
        vault.deposit(USDC, 1000)
        payments = engine.resolve_payments(vault, ash_swap(USDC, Fixed(400), WEGLD))
        assert payments == [Payment(USDC, 400)]
        assert vault.balance_of(USDC) == 600

    def test_ppm_mode(self, engine, vault):
        vault.deposit(USDC, 1000)
        payments = engine.resolve_payments(vault, ash_swap(USDC, Ppm(250_000), WEGLD))
        assert payments == [Payment(USDC, 250)]
        assert vault.balance_of(USDC) == 750

    def test_fixed_exceeding_balance(self, engine, vault):
        vault.deposit(USDC, 100)
        with pytest.raises(InsufficientBalance):
            engine.resolve_payments(vault, ash_swap(USDC, Fixed(101), WEGLD))

    def test_ppm_rounding_to_zero(self, engine, vault):
        """A resolved amount of zero aborts instead of calling the venue."""
        vault.deposit(USDC, 100)
        with pytest.raises(ZeroInputAmount):
            engine.resolve_payments(vault, ash_swap(USDC, Ppm(1), WEGLD))

    def test_all_of_absent_token(self, engine, vault):
        with pytest.raises(ZeroInputAmount):
            engine.resolve_payments(vault, ash_swap(USDC, All(), WEGLD))

    def test_chained_without_previous_result(self, engine, vault):
        vault.deposit(USDC, 100)
        chained = make_instruction(
            ActionType.ASHSWAP_POOL_SWAP, None, output_token=WEGLD, address=ASH_POOL
        )
        with pytest.raises(PrevAmountUnavailable):
            engine.resolve_payments(vault, chained)

    def test_chained_uses_previous_result(self, engine, vault):
        vault.deposit(WEGLD, 500)
        vault.prev_result = Payment(WEGLD, 300)
        chained = make_instruction(
            ActionType.ASHSWAP_POOL_SWAP, None, output_token=USDC, address=ASH_POOL
        )
        assert engine.resolve_payments(vault, chained) == [Payment(WEGLD, 300)]
        assert vault.balance_of(WEGLD) == 200

    def test_prev_amount_mode(self, engine, vault):
        vault.deposit(WEGLD, 500)
        vault.prev_result = Payment(WEGLD, 300)
        payments = engine.resolve_payments(vault, ash_swap(WEGLD, PrevAmount(), USDC))
        assert payments == [Payment(WEGLD, 300)]

    def test_prev_amount_asset_mismatch(self, engine, vault):
        vault.deposit(USDC, 500)
        vault.prev_result = Payment(WEGLD, 300)
        with pytest.raises(PrevAmountAssetMismatch) as exc_info:
            engine.resolve_payments(vault, ash_swap(USDC, PrevAmount(), WEGLD))
        assert exc_info.value.expected == WEGLD
        assert exc_info.value.got == USDC


class TestResolveVenue:
    """Tests for venue address resolution."""

    def test_explicit_address(self, engine):
        instr = ash_swap(USDC, All(), WEGLD)
        assert engine.resolve_venue(instr, [Payment(USDC, 1)]) == ASH_POOL

    def test_explicit_address_missing(self, engine):
        instr = make_instruction(ActionType.JEX_SWAP, [(USDC, All())])
        with pytest.raises(VenueAddressRequired):
            engine.resolve_venue(instr, [Payment(USDC, 1)])

    def test_xexchange_swap_uses_pair_map(self, engine, pool_state):
        pool_state.add_pair(WEGLD, USDC, XEXCHANGE_PAIR)
        instr = make_instruction(ActionType.XEXCHANGE_SWAP, [(USDC, All())], output_token=WEGLD)
        assert engine.resolve_venue(instr, [Payment(USDC, 1)]) == XEXCHANGE_PAIR

    def test_xexchange_add_needs_two_inputs(self, engine, pool_state):
        pool_state.add_pair(WEGLD, USDC, XEXCHANGE_PAIR)
        instr = make_instruction(ActionType.XEXCHANGE_ADD_LIQUIDITY, [(USDC, All())])
        with pytest.raises(VenueError):
            engine.resolve_venue(instr, [Payment(USDC, 1)])

    @pytest.mark.parametrize(
        "action_type,expected",
        [
            (ActionType.ONEDEX_SWAP, DEFAULT_ENGINE_CONFIG.onedex_router),
            (ActionType.ONEDEX_REMOVE_LIQUIDITY, DEFAULT_ENGINE_CONFIG.onedex_router),
            (ActionType.WRAPPING, DEFAULT_ENGINE_CONFIG.wrapper),
            (ActionType.UNWRAPPING, DEFAULT_ENGINE_CONFIG.wrapper),
            (ActionType.XOXNO_LIQUID_STAKING, DEFAULT_ENGINE_CONFIG.xegld_staking),
            (ActionType.LXOXNO_LIQUID_STAKING, DEFAULT_ENGINE_CONFIG.lxoxno_staking),
            (ActionType.HATOM_LIQUID_STAKING, DEFAULT_ENGINE_CONFIG.hatom_staking),
        ],
    )
    def test_well_known_venues(self, engine, action_type, expected):
        instr = make_instruction(action_type, [(WEGLD, All())], output_token=USDC)
        assert engine.resolve_venue(instr, [Payment(WEGLD, 1)]) == expected

    def test_hatom_markets(self, engine, pool_state):
        """Redeem looks up the market of the input, supply that of the output."""
        pool_state.markets[HWEGLD] = HATOM_MARKET
        redeem = make_instruction(ActionType.HATOM_REDEEM, [(HWEGLD, All())])
        supply = make_instruction(ActionType.HATOM_SUPPLY, [(EGLD, All())], output_token=HWEGLD)
        assert engine.resolve_venue(redeem, [Payment(HWEGLD, 1)]) == HATOM_MARKET
        assert engine.resolve_venue(supply, [Payment(EGLD, 1)]) == HATOM_MARKET


class TestSwapDispatch:
    """Tests for swap calls."""

    def test_swap_deposits_output_and_sets_prev(self, engine, vault, fake_venue):
        fake_venue.set_rate(USDC, WEGLD, 1, 2)
        vault.deposit(USDC, 1000)
        outputs = engine.execute(vault, ash_swap(USDC, All(), WEGLD), WEGLD)
        assert outputs == [Payment(WEGLD, 500)]
        assert vault.balance_of(WEGLD) == 500
        assert USDC not in vault
        assert vault.prev_result == Payment(WEGLD, 500)

        (call,) = fake_venue.calls_to(OperationKind.SWAP)
        assert call.venue == ASH_POOL
        assert call.min_amounts == [DEFAULT_ENGINE_CONFIG.min_internal_output]
        assert call.path is None

    def test_onedex_swap_path(self, engine, vault, fake_venue):
        """OneDex swaps pass the path [inputs..., output]."""
        fake_venue.set_rate(WEGLD, MEX, 10, 1)
        vault.deposit(WEGLD, 10)
        instr = make_instruction(ActionType.ONEDEX_SWAP, [(WEGLD, All())], output_token=MEX)
        engine.execute(vault, instr, MEX)
        (call,) = fake_venue.calls_to(OperationKind.SWAP)
        assert call.venue == DEFAULT_ENGINE_CONFIG.onedex_router
        assert call.path == [WEGLD, MEX]
        assert vault.balance_of(MEX) == 100

    def test_jex_stable_doubles_internal_minimum(self, engine, vault, fake_venue):
        fake_venue.set_rate(USDC, ASH)
        vault.deposit(USDC, 10)
        instr = make_instruction(
            ActionType.JEX_STABLE_SWAP, [(USDC, All())], output_token=ASH, address=JEX_STABLE_POOL
        )
        engine.execute(vault, instr, ASH)
        (call,) = fake_venue.calls_to(OperationKind.SWAP)
        assert call.min_amounts == [2 * DEFAULT_ENGINE_CONFIG.min_internal_output]

    def test_jex_swap_without_output_token(self, engine, vault, fake_venue):
        fake_venue.set_rate(WEGLD, USDC, 30, 1)
        vault.deposit(WEGLD, 2)
        instr = make_instruction(ActionType.JEX_SWAP, [(WEGLD, All())], address=JEX_PAIR)
        assert engine.execute(vault, instr, USDC) == [Payment(USDC, 60)]

    def test_chained_after_zero_output(self, engine, vault, fake_venue):
        """A zero-amount previous result is never forwarded to the next venue."""
        fake_venue.on(OperationKind.SWAP, ASH_POOL, lambda _, __: [Payment(WEGLD, 0)])
        vault.deposit(USDC, 10)
        engine.execute(vault, ash_swap(USDC, All(), WEGLD), WEGLD)
        assert vault.prev_result == Payment(WEGLD, 0)

        chained = make_instruction(ActionType.JEX_SWAP, None, output_token=MEX, address=JEX_PAIR)
        with pytest.raises(ZeroInputAmount):
            engine.execute(vault, chained, MEX)
        assert len(fake_venue.calls_to(OperationKind.SWAP)) == 1

    def test_venue_failure_propagates(self, engine, vault):
        vault.deposit(USDC, 10)
        with pytest.raises(VenueError):
            engine.execute(vault, ash_swap(USDC, All(), WEGLD), WEGLD)


class TestLiquidityDispatch:
    """Tests for add / remove liquidity minimums and outputs."""

    def test_stable_add_single_minimum(self, engine, vault, fake_venue):
        fake_venue.on(
            OperationKind.ADD_LIQUIDITY,
            ASH_POOL,
            lambda _, payments: [Payment(LP_STABLE, sum(p.amount for p in payments))],
        )
        vault.deposit(USDC, 100)
        vault.deposit(ASH, 50)
        instr = make_instruction(
            ActionType.ASHSWAP_POOL_ADD_LIQUIDITY,
            [(USDC, All()), (ASH, All())],
            address=ASH_POOL,
        )
        engine.execute(vault, instr, LP_STABLE)
        (call,) = fake_venue.calls_to(OperationKind.ADD_LIQUIDITY)
        assert call.min_amounts == [1]
        assert vault.balance_of(LP_STABLE) == 150

    def test_jex_stable_add_doubled_minimum(self, engine, vault, fake_venue):
        fake_venue.convert(OperationKind.ADD_LIQUIDITY, JEX_STABLE_POOL, LP_STABLE)
        vault.deposit(USDC, 100)
        instr = make_instruction(
            ActionType.JEX_STABLE_ADD_LIQUIDITY, [(USDC, All())], address=JEX_STABLE_POOL
        )
        engine.execute(vault, instr, LP_STABLE)
        (call,) = fake_venue.calls_to(OperationKind.ADD_LIQUIDITY)
        assert call.min_amounts == [2]

    def test_cpmm_remove_two_minimums(self, engine, vault, fake_venue):
        """Two outputs go back into the vault and leave no previous result."""
        fake_venue.on(
            OperationKind.REMOVE_LIQUIDITY,
            XEXCHANGE_PAIR,
            lambda _, payments: [Payment(WEGLD, 40), Payment(USDC, 80)],
        )
        vault.deposit(LP_WEGLD_USDC, 10)
        instr = make_instruction(
            ActionType.XEXCHANGE_REMOVE_LIQUIDITY, [(LP_WEGLD_USDC, All())], address=XEXCHANGE_PAIR
        )
        engine.execute(vault, instr, WEGLD)
        (call,) = fake_venue.calls_to(OperationKind.REMOVE_LIQUIDITY)
        assert call.min_amounts == [1, 1]
        assert vault.balance_of(WEGLD) == 40
        assert vault.balance_of(USDC) == 80
        assert vault.prev_result is None

    def test_stable_remove_output_count(self, engine, vault, fake_venue):
        fake_venue.on(
            OperationKind.REMOVE_LIQUIDITY,
            JEX_STABLE_POOL,
            lambda _, payments: [Payment(USDC, 1), Payment(ASH, 2), Payment(MEX, 3)],
        )
        vault.deposit(LP_STABLE, 10)
        instr = make_instruction(
            ActionType.JEX_STABLE_REMOVE_LIQUIDITY,
            [(LP_STABLE, All())],
            output_count=3,
            address=JEX_STABLE_POOL,
        )
        engine.execute(vault, instr, USDC)
        (call,) = fake_venue.calls_to(OperationKind.REMOVE_LIQUIDITY)
        assert call.min_amounts == [2, 2, 2]

    def test_zero_outputs_not_deposited(self, engine, vault, fake_venue):
        fake_venue.on(
            OperationKind.REMOVE_LIQUIDITY,
            ASH_POOL,
            lambda _, payments: [Payment(USDC, 0), Payment(ASH, 5)],
        )
        vault.deposit(LP_STABLE, 10)
        instr = make_instruction(
            ActionType.ASHSWAP_POOL_REMOVE_LIQUIDITY,
            [(LP_STABLE, All())],
            output_count=2,
            address=ASH_POOL,
        )
        engine.execute(vault, instr, ASH)
        assert USDC not in vault
        assert vault.balance_of(ASH) == 5


class TestOtherOperations:
    """Tests for wrapping, staking and lending calls."""

    def test_wrap(self, engine, vault, fake_venue):
        fake_venue.convert(OperationKind.WRAP, DEFAULT_ENGINE_CONFIG.wrapper, WEGLD)
        vault.deposit(EGLD, 1000)
        instr = make_instruction(ActionType.WRAPPING, [(EGLD, All())])
        engine.execute(vault, instr, WEGLD)
        assert vault.balance_of(WEGLD) == 1000
        assert vault.prev_result == Payment(WEGLD, 1000)

    def test_liquid_staking(self, engine, vault, fake_venue):
        fake_venue.convert(
            OperationKind.STAKE, DEFAULT_ENGINE_CONFIG.xegld_staking, XEGLD, num=9, den=10
        )
        vault.deposit(EGLD, 1000)
        instr = make_instruction(ActionType.XOXNO_LIQUID_STAKING, [(EGLD, All())])
        engine.execute(vault, instr, XEGLD)
        assert vault.balance_of(XEGLD) == 900

    def test_supply_and_redeem(self, engine, vault, fake_venue, pool_state):
        pool_state.markets[HWEGLD] = HATOM_MARKET
        fake_venue.convert(OperationKind.SUPPLY, HATOM_MARKET, HWEGLD, num=1, den=50)
        fake_venue.convert(OperationKind.REDEEM, HATOM_MARKET, EGLD, num=50, den=1)
        vault.deposit(EGLD, 1000)

        engine.execute(
            vault,
            make_instruction(ActionType.HATOM_SUPPLY, [(EGLD, All())], output_token=HWEGLD),
            EGLD,
        )
        assert vault.balance_of(HWEGLD) == 20
        engine.execute(vault, make_instruction(ActionType.HATOM_REDEEM, None), EGLD)
        assert vault.balance_of(EGLD) == 1000
        assert HWEGLD not in vault


class TestPreBalancedAddLiquidity:
    """Tests for zappable add liquidity."""

    @pytest.fixture
    def xexchange_pool(self, fake_venue, pool_state):
        pool_state.add_pair(WEGLD, USDC, XEXCHANGE_PAIR)
        return fake_venue.add_pool(
            XEXCHANGE_PAIR, FakeCpmmPool(WEGLD, USDC, 1000, 2000, LP_WEGLD_USDC)
        )

    def xexchange_add(self):
        return make_instruction(
            ActionType.XEXCHANGE_ADD_LIQUIDITY, [(WEGLD, All()), (USDC, All())]
        )

    def test_imbalanced_inputs(self, engine, vault, fake_venue, fee_store, xexchange_pool):
        """Excess first token is swapped; LP goes to the vault, dust to admin fees."""
        vault.deposit(WEGLD, 500)
        vault.deposit(USDC, 10)
        engine.execute(vault, self.xexchange_add(), LP_WEGLD_USDC)

        (swap_call,) = fake_venue.calls_to(OperationKind.SWAP)
        assert swap_call.payments == [Payment(WEGLD, 222)]
        assert swap_call.action.output_token == USDC

        (add_call,) = fake_venue.calls_to(OperationKind.ADD_LIQUIDITY)
        assert add_call.payments == [Payment(WEGLD, 278), Payment(USDC, 373)]
        assert add_call.min_amounts == [1, 1]

        assert vault.all_payments() == [Payment(LP_WEGLD_USDC, 278)]
        assert fee_store.admin_balances() == {USDC: 1}

    def test_lp_not_batch_output(self, engine, vault, fee_store, xexchange_pool):
        """LP tokens that are not the batch output are credited as admin fees."""
        vault.deposit(WEGLD, 500)
        vault.deposit(USDC, 10)
        engine.execute(vault, self.xexchange_add(), USDC)
        assert vault.is_empty()
        assert fee_store.admin_balances() == {LP_WEGLD_USDC: 278, USDC: 1}

    def test_zap_does_not_set_prev_result(self, engine, vault, xexchange_pool):
        vault.deposit(WEGLD, 500)
        vault.deposit(USDC, 10)
        engine.execute(vault, self.xexchange_add(), LP_WEGLD_USDC)
        assert vault.prev_result is None

    def test_single_sided_jex(self, engine, vault, fake_venue, fee_store):
        fake_venue.add_pool(
            JEX_PAIR,
            FakeCpmmPool(
                WEGLD, USDC, 1000, 2000, LP_WEGLD_USDC, fee_denom=10_000, fee_on_output=True
            ),
        )
        vault.deposit(WEGLD, 500)
        instr = make_instruction(ActionType.JEX_ADD_LIQUIDITY, [(WEGLD, All())], address=JEX_PAIR)
        engine.execute(vault, instr, LP_WEGLD_USDC)

        (swap_call,) = fake_venue.calls_to(OperationKind.SWAP)
        assert swap_call.payments == [Payment(WEGLD, 225)]
        assert swap_call.action.output_token is None
        assert vault.all_payments() == [Payment(LP_WEGLD_USDC, 275)]
        assert fee_store.admin_balances() == {USDC: 1}

    def test_onedex_pre_swap_path(self, engine, vault, fake_venue):
        router = DEFAULT_ENGINE_CONFIG.onedex_router
        fake_venue.add_pool(
            router, FakeCpmmPool(WEGLD, USDC, 1000, 2000, LP_WEGLD_USDC, fee_denom=10_000)
        )
        vault.deposit(WEGLD, 500)
        instr = make_instruction(ActionType.ONEDEX_ADD_LIQUIDITY, [(WEGLD, All())], pair_id=7)
        engine.execute(vault, instr, LP_WEGLD_USDC)
        (swap_call,) = fake_venue.calls_to(OperationKind.SWAP)
        assert swap_call.path == [WEGLD, USDC]
        assert swap_call.action.type is ActionType.ONEDEX_SWAP

    def test_balanced_inputs_skip_swap(self, engine, vault, fake_venue, xexchange_pool):
        vault.deposit(WEGLD, 100)
        vault.deposit(USDC, 200)
        engine.execute(vault, self.xexchange_add(), LP_WEGLD_USDC)
        assert fake_venue.calls_to(OperationKind.SWAP) == []
        assert vault.all_payments() == [Payment(LP_WEGLD_USDC, 100)]

    def test_foreign_token(self, engine, vault, fake_venue, pool_state, xexchange_pool):
        pool_state.add_pair(WEGLD, MEX, XEXCHANGE_PAIR)
        vault.deposit(WEGLD, 100)
        vault.deposit(MEX, 100)
        instr = make_instruction(
            ActionType.XEXCHANGE_ADD_LIQUIDITY, [(WEGLD, All()), (MEX, All())]
        )
        with pytest.raises(VenueError):
            engine.execute(vault, instr, LP_WEGLD_USDC)
