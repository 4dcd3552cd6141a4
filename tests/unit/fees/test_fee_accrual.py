"""Tests for fee withholding on the batch output."""

import pytest

from aggregator.fees import AppliedFees, apply_fees
from aggregator.vault import Vault
from tests.helpers import OTHER_USER, REFERRAL_OWNER, USDC, WEGLD


@pytest.fixture
def funded_vault() -> Vault:
    vault = Vault()
    vault.deposit(USDC, 10_000)
    return vault


class TestReferralFee:
    """Tests for an active referral."""

    def test_referral_and_matching_protocol_fee(self, fee_store, funded_vault):
        """A 1% referral takes 100 for the referrer and 100 for the protocol."""
        referral_id = fee_store.add_referral(REFERRAL_OWNER, 100)

        applied = apply_fees(funded_vault, USDC, referral_id, fee_store)

        assert applied == AppliedFees(USDC, referral_id, referral_fee=100, admin_fee=100)
        assert applied.total == 200
        assert funded_vault.balance_of(USDC) == 9800
        assert fee_store.referrer_balances(referral_id) == {USDC: 100}
        assert fee_store.admin_balances() == {USDC: 100}

    def test_rounds_down(self, fee_store):
        referral_id = fee_store.add_referral(REFERRAL_OWNER, 3)
        vault = Vault()
        vault.deposit(USDC, 9999)
        applied = apply_fees(vault, USDC, referral_id, fee_store)
        assert applied.referral_fee == 2
        assert vault.balance_of(USDC) == 9995

    def test_inactive_referral_falls_back_to_static(self, fee_store, funded_vault):
        referral_id = fee_store.add_referral(REFERRAL_OWNER, 100)
        fee_store.set_referral_active(referral_id, False)
        fee_store.set_static_fee(50)

        applied = apply_fees(funded_vault, USDC, referral_id, fee_store)

        assert applied == AppliedFees(USDC, admin_fee=50)
        assert fee_store.referrer_balances(referral_id) == {}

    def test_zero_fee_referral_falls_back_to_static(self, fee_store, funded_vault):
        referral_id = fee_store.add_referral(OTHER_USER, 0)
        fee_store.set_static_fee(10)
        applied = apply_fees(funded_vault, USDC, referral_id, fee_store)
        assert applied.referral_id is None
        assert applied.admin_fee == 10


class TestStaticFee:
    """Tests for the protocol-only fee."""

    def test_static_fee(self, fee_store, funded_vault):
        fee_store.set_static_fee(25)
        applied = apply_fees(funded_vault, USDC, 0, fee_store)
        assert applied == AppliedFees(USDC, admin_fee=25)
        assert funded_vault.balance_of(USDC) == 9975
        assert fee_store.admin_balances() == {USDC: 25}

    def test_unknown_referral_uses_static(self, fee_store, funded_vault):
        fee_store.set_static_fee(25)
        assert apply_fees(funded_vault, USDC, 42, fee_store).admin_fee == 25

    def test_no_fee_configured(self, fee_store, funded_vault):
        applied = apply_fees(funded_vault, USDC, 0, fee_store)
        assert applied.total == 0
        assert funded_vault.balance_of(USDC) == 10_000
        assert fee_store.admin_balances() == {}

    def test_full_static_fee(self, fee_store, funded_vault):
        fee_store.set_static_fee(10_000)
        apply_fees(funded_vault, USDC, 0, fee_store)
        assert USDC not in funded_vault

    def test_output_not_held(self, fee_store):
        """No output balance means nothing is withheld."""
        fee_store.set_static_fee(25)
        vault = Vault(strict=True)
        vault.deposit(WEGLD, 1)
        assert apply_fees(vault, USDC, 0, fee_store).total == 0
